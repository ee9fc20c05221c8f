"""Pending multisig transaction log."""

import logging
from datetime import datetime
from typing import Any

from walletmigrate.errors import InvalidTransitionError, NotFoundError
from walletmigrate.models.transaction import PendingTransaction, TransactionState
from walletmigrate.services.database import Database

logger = logging.getLogger(__name__)


class PendingTransactionLog:
    """Built transactions waiting for co-signatures before submission."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def record(self, wallet_id: str, tx_cbor: str, description: str = "") -> PendingTransaction:
        """Store a newly built transaction as pending."""
        tx = PendingTransaction(wallet_id=wallet_id, tx_cbor=tx_cbor, description=description)
        async with self._db.transaction() as data:
            data.transactions[tx.id] = tx
        logger.info("Recorded pending transaction %s for wallet %s", tx.id, wallet_id)
        return tx

    async def get(self, tx_id: str) -> PendingTransaction | None:
        return self._db.data.transactions.get(tx_id)

    async def list_pending(self, wallet_id: str) -> list[PendingTransaction]:
        """Pending transactions of a wallet, oldest first."""
        pending = [
            t
            for t in self._db.data.transactions.values()
            if t.wallet_id == wallet_id and t.state == TransactionState.PENDING
        ]
        return sorted(pending, key=lambda t: t.created_at)

    async def count_pending(self, wallet_id: str) -> int:
        return len(await self.list_pending(wallet_id))

    async def add_signature(
        self, tx_id: str, address: str, tx_cbor: str | None = None
    ) -> PendingTransaction:
        """Record that a signer has signed, keeping the witnessed CBOR if given."""
        tx = self._require_pending(tx_id)
        changes: dict[str, Any] = {}
        if address not in tx.signed_addresses:
            changes["signed_addresses"] = [*tx.signed_addresses, address]
        if tx_cbor:
            changes["tx_cbor"] = tx_cbor
        if not changes:
            return tx
        return await self._update(tx_id, **changes)

    async def mark_submitted(self, tx_id: str, tx_hash: str) -> PendingTransaction:
        self._require_pending(tx_id)
        tx = await self._update(tx_id, state=TransactionState.SUBMITTED, tx_hash=tx_hash)
        logger.info("Transaction %s submitted as %s", tx_id, tx_hash)
        return tx

    async def mark_rejected(self, tx_id: str) -> PendingTransaction:
        self._require_pending(tx_id)
        tx = await self._update(tx_id, state=TransactionState.REJECTED)
        logger.info("Transaction %s rejected", tx_id)
        return tx

    def _require(self, tx_id: str) -> PendingTransaction:
        tx = self._db.data.transactions.get(tx_id)
        if tx is None:
            raise NotFoundError(f"Transaction not found: {tx_id}")
        return tx

    def _require_pending(self, tx_id: str) -> PendingTransaction:
        tx = self._require(tx_id)
        if not tx.is_pending:
            raise InvalidTransitionError(f"Transaction {tx_id} is already {tx.state.value}")
        return tx

    async def _update(self, tx_id: str, **changes: Any) -> PendingTransaction:
        async with self._db.transaction() as data:
            tx = self._require(tx_id).model_copy(update={**changes, "updated_at": datetime.now()})
            data.transactions[tx_id] = tx
        return tx
