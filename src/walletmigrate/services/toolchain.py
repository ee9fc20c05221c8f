"""External multisig toolchain: script derivation, assembly, signing and submission."""

import asyncio
import json
import logging
from typing import Any

from walletmigrate.config import AppConfig, get_config
from walletmigrate.errors import QueryError
from walletmigrate.models.transaction import SignedTransaction, SweepTransaction
from walletmigrate.models.wallet import DerivedScript, WalletConfig

logger = logging.getLogger(__name__)


class CliToolchain:
    """Drives the toolchain executable, which prints JSON on stdout.

    Commands:
        ``derive --network N`` reads a wallet configuration on stdin and prints
        ``{script_cbor, address, stake_address, drep_id}``.
        ``build-sweep --network N`` reads a sweep description on stdin and
        prints ``{tx_cbor}``.
        ``sign --network N`` reads ``{tx_cbor}`` and prints the transaction
        with the local key's witness added as ``{tx_cbor, signer_address}``.
        ``submit --network N`` reads ``{tx_cbor}`` and prints ``{tx_hash}``.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        self._config = config or get_config()

    async def derive(self, config: WalletConfig, network: int) -> DerivedScript:
        """Derive the spending script and addresses for a configuration."""
        payload = config.for_storage().config_dump()
        result = await self._run_cli_command(["derive", "--network", str(network)], payload)
        try:
            return DerivedScript.model_validate(result)
        except ValueError as e:
            raise QueryError(f"Unexpected derive output: {e}") from e

    async def build_sweep(self, tx: SweepTransaction, network: int) -> str:
        """Build the unsigned sweep transaction and return its CBOR."""
        payload = {
            "inputs": [
                {
                    "tx_hash": u.tx_hash,
                    "output_index": u.output_index,
                    "amount": [a.model_dump() for a in u.amount],
                }
                for u in tx.inputs
            ],
            "change_address": tx.change_address,
            "script_cbor": tx.script_cbor,
        }
        result = await self._run_cli_command(["build-sweep", "--network", str(network)], payload)
        tx_cbor = result.get("tx_cbor") if isinstance(result, dict) else None
        if not tx_cbor:
            raise QueryError("Toolchain returned no transaction")
        return tx_cbor

    async def sign(self, tx_cbor: str, network: int) -> SignedTransaction:
        """Add the local signing key's witness."""
        result = await self._run_cli_command(
            ["sign", "--network", str(network)], {"tx_cbor": tx_cbor}
        )
        try:
            return SignedTransaction.model_validate(result)
        except ValueError as e:
            raise QueryError(f"Unexpected sign output: {e}") from e

    async def submit(self, tx_cbor: str, network: int) -> str:
        """Broadcast a fully signed transaction and return its hash."""
        result = await self._run_cli_command(
            ["submit", "--network", str(network)], {"tx_cbor": tx_cbor}
        )
        tx_hash = result.get("tx_hash") if isinstance(result, dict) else None
        if not tx_hash:
            raise QueryError("Toolchain returned no transaction hash")
        return tx_hash

    async def _run_cli_command(self, args: list[str], payload: dict[str, Any]) -> Any:
        """Run a toolchain command and return its parsed stdout."""
        cli_path = self._config.toolchain.path
        try:
            proc = await asyncio.create_subprocess_exec(
                cli_path,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise QueryError(f"Toolchain not found at {cli_path}") from e
        except OSError as e:
            raise QueryError(f"Toolchain at {cli_path} could not be started: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(json.dumps(payload).encode()),
                timeout=self._config.toolchain.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise QueryError(f"Toolchain command {args[0]} timed out") from e

        if proc.returncode != 0:
            logger.warning("Toolchain %s exited with %s", args[0], proc.returncode)
            raise QueryError(f"Toolchain command failed: {stderr.decode().strip()}")
        try:
            return json.loads(stdout.decode())
        except json.JSONDecodeError as e:
            raise QueryError(f"Toolchain returned invalid JSON: {e}") from e
