"""Collaborator interfaces for the ledger and the external toolchain."""

from typing import Protocol

from walletmigrate.models.ledger import AccountStatus, DRepStatus, UTxO
from walletmigrate.models.transaction import SignedTransaction, SweepTransaction
from walletmigrate.models.wallet import DerivedScript, WalletConfig


class LedgerQuery(Protocol):
    """Read-only chain queries."""

    async def fetch_address_utxos(self, address: str) -> list[UTxO]: ...

    async def get_account_status(self, stake_address: str) -> AccountStatus | None:
        """``None`` when the stake address has never been registered."""
        ...

    async def get_drep_status(self, drep_id: str) -> DRepStatus | None:
        """``None`` when the credential has never been registered."""
        ...


class ScriptDeriver(Protocol):
    """Signer keys plus threshold rule to spending script and address."""

    async def derive(self, config: WalletConfig, network: int) -> DerivedScript: ...


class TransactionBuilder(Protocol):
    """Assembles unsigned transactions."""

    async def build_sweep(self, tx: SweepTransaction, network: int) -> str:
        """Return the unsigned transaction CBOR."""
        ...


class TransactionSubmitter(Protocol):
    """Signs with the local key and broadcasts fully signed transactions."""

    async def sign(self, tx_cbor: str, network: int) -> SignedTransaction: ...

    async def submit(self, tx_cbor: str, network: int) -> str:
        """Return the transaction hash."""
        ...
