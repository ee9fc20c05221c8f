"""Fund sweep and the completion gate."""

import asyncio
import logging
from collections.abc import AsyncIterator

from pydantic import BaseModel

from walletmigrate.config import AppConfig, get_config
from walletmigrate.errors import CompletionBlockedError, NotFoundError, PermissionDeniedError
from walletmigrate.models.ledger import UTxO, format_ada, total_lovelace
from walletmigrate.models.transaction import PendingTransaction, SweepTransaction
from walletmigrate.models.wallet import Wallet
from walletmigrate.services.interfaces import (
    LedgerQuery,
    TransactionBuilder,
    TransactionSubmitter,
)
from walletmigrate.services.transactions import PendingTransactionLog

logger = logging.getLogger(__name__)


def build_sweep(utxos: list[UTxO], change_address: str, script_cbor: str) -> SweepTransaction:
    """Every UTxO becomes an input; all value goes to the change address."""
    return SweepTransaction(
        inputs=list(utxos),
        change_address=change_address,
        script_cbor=script_cbor,
    )


class SweepResult(BaseModel):
    """Outcome of a sweep. ``transaction`` is None when there was nothing to move."""

    transaction: PendingTransaction | None = None
    input_count: int = 0
    lovelace: int = 0

    @property
    def empty(self) -> bool:
        return self.transaction is None


class FundSweeper:
    """Builds the single sweep transaction and hands it to the signer/submitter.

    The sweep spends from the original wallet, so it needs the original's
    signature threshold. The local key signs first; co-signers add their
    witnesses to the exported transaction, and it is broadcast as soon as
    enough distinct signers have signed.
    """

    def __init__(
        self,
        ledger: LedgerQuery,
        builder: TransactionBuilder,
        submitter: TransactionSubmitter,
        transactions: PendingTransactionLog,
        config: AppConfig | None = None,
    ) -> None:
        self._ledger = ledger
        self._builder = builder
        self._submitter = submitter
        self._transactions = transactions
        self._config = config or get_config()

    async def sweep(self, original: Wallet, target: Wallet) -> SweepResult:
        utxos = await self._ledger.fetch_address_utxos(original.address)
        if not utxos:
            logger.info("Wallet %s holds no UTxOs, nothing to sweep", original.id)
            return SweepResult()

        tx = build_sweep(utxos, target.address, original.script_cbor)
        tx_cbor = await self._builder.build_sweep(tx, self._config.ledger.network)
        pending = await self._transactions.record(original.id, tx_cbor, tx.description)
        logger.info(
            "Sweep of %d UTxOs (%s) from %s to %s queued as %s",
            len(utxos),
            format_ada(tx.input_lovelace),
            original.id,
            target.address,
            pending.id,
        )
        return SweepResult(
            transaction=pending,
            input_count=len(utxos),
            lovelace=tx.input_lovelace,
        )

    async def sign(self, tx_id: str, original: Wallet) -> PendingTransaction:
        """Add the local key's witness, submitting if that meets the threshold."""
        pending = await self._transactions.get(tx_id)
        if pending is None:
            raise NotFoundError(f"Transaction not found: {tx_id}")
        signed = await self._submitter.sign(pending.tx_cbor, self._config.ledger.network)
        return await self.add_signature(tx_id, signed.signer_address, signed.tx_cbor, original)

    async def add_signature(
        self, tx_id: str, signer_address: str, tx_cbor: str, original: Wallet
    ) -> PendingTransaction:
        """Record a signer's witnessed transaction and submit once enough have signed."""
        if signer_address not in original.signers_addresses:
            raise PermissionDeniedError(
                f"{signer_address} is not a signer of wallet {original.name}"
            )
        pending = await self._transactions.add_signature(tx_id, signer_address, tx_cbor)
        return await self.submit_if_ready(pending, original)

    async def submit_if_ready(
        self, pending: PendingTransaction, original: Wallet
    ) -> PendingTransaction:
        required = original.required_signatures
        if len(pending.signed_addresses) < required:
            logger.info(
                "Transaction %s has %d of %d signatures",
                pending.id,
                len(pending.signed_addresses),
                required,
            )
            return pending
        tx_hash = await self._submitter.submit(pending.tx_cbor, self._config.ledger.network)
        return await self._transactions.mark_submitted(pending.id, tx_hash)

    async def record_submission(self, tx_id: str, tx_hash: str) -> PendingTransaction:
        """The transaction was broadcast outside this application."""
        return await self._transactions.mark_submitted(tx_id, tx_hash)


class CompletionStatus(BaseModel):
    """What still sits on the original wallet."""

    utxo_count: int
    pending_count: int
    lovelace: int = 0

    @property
    def ready(self) -> bool:
        return self.utxo_count == 0 and self.pending_count == 0

    @property
    def balance_display(self) -> str:
        return format_ada(self.lovelace)

    @property
    def blocking_reason(self) -> str | None:
        if self.ready:
            return None
        reasons = []
        if self.utxo_count > 0:
            reasons.append(f"{self.utxo_count} UTxO(s) ({self.balance_display}) remain")
        if self.pending_count > 0:
            reasons.append(f"{self.pending_count} transaction(s) are still pending")
        return "; ".join(reasons) + " on the original wallet."


class CompletionGate:
    """Polls the original wallet until it is empty and quiet."""

    def __init__(
        self,
        ledger: LedgerQuery,
        transactions: PendingTransactionLog,
        config: AppConfig | None = None,
    ) -> None:
        self._ledger = ledger
        self._transactions = transactions
        self._config = config or get_config()

    async def check(self, original: Wallet) -> CompletionStatus:
        utxos, pending = await asyncio.gather(
            self._ledger.fetch_address_utxos(original.address),
            self._transactions.count_pending(original.id),
        )
        return CompletionStatus(
            utxo_count=len(utxos),
            pending_count=pending,
            lovelace=total_lovelace(utxos),
        )

    async def ensure_ready(self, original: Wallet) -> CompletionStatus:
        """Raise :class:`CompletionBlockedError` unless the gate is open."""
        status = await self.check(original)
        if not status.ready:
            raise CompletionBlockedError(status)
        return status

    async def watch(
        self, original: Wallet, interval: float | None = None
    ) -> AsyncIterator[CompletionStatus]:
        """Yield a status on every poll; stops after the first ready one."""
        if interval is None:
            interval = self._config.performance.completion_poll_interval_seconds
        while True:
            status = await self.check(original)
            yield status
            if status.ready:
                return
            await asyncio.sleep(interval)
