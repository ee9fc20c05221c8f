"""Sweep and pending multisig transaction models."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from walletmigrate.models.ledger import UTxO, total_lovelace


class SweepTransaction(BaseModel):
    """Spend every UTxO of a wallet into the change output of another.

    There are no explicit outputs: the builder balances all value, minus the
    fee, into ``change_address``.
    """

    inputs: list[UTxO]
    change_address: str
    script_cbor: str
    description: str = "Migration: Transfer all funds to new wallet"

    @property
    def input_lovelace(self) -> int:
        return total_lovelace(self.inputs)


class SignedTransaction(BaseModel):
    """A transaction carrying one more witness."""

    tx_cbor: str
    signer_address: str


class TransactionState(str, Enum):
    """Lifecycle of a multisig transaction awaiting co-signatures."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    REJECTED = "rejected"


class PendingTransaction(BaseModel):
    """A built transaction collecting signatures for a wallet."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    wallet_id: str
    tx_cbor: str
    description: str = ""
    state: TransactionState = TransactionState.PENDING
    signed_addresses: list[str] = Field(default_factory=list)
    tx_hash: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_pending(self) -> bool:
        return self.state == TransactionState.PENDING

    def text_envelope(self) -> dict[str, Any]:
        """The transaction in the text envelope format signing tools read."""
        return {
            "type": "Tx ConwayEra",
            "description": self.description,
            "cborHex": self.tx_cbor,
        }
