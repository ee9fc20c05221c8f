"""Durable keyed store shared by the record, wallet and proxy services."""

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from walletmigrate.errors import MutationError
from walletmigrate.models.migration import MigrationRecord
from walletmigrate.models.proxy import Proxy
from walletmigrate.models.transaction import PendingTransaction
from walletmigrate.models.wallet import DraftWallet, Wallet

logger = logging.getLogger(__name__)


class StoreData(BaseModel):
    """All persisted collections, keyed by id."""

    migrations: dict[str, MigrationRecord] = Field(default_factory=dict)
    drafts: dict[str, DraftWallet] = Field(default_factory=dict)
    wallets: dict[str, Wallet] = Field(default_factory=dict)
    proxies: dict[str, Proxy] = Field(default_factory=dict)
    transactions: dict[str, PendingTransaction] = Field(default_factory=dict)


class Database:
    """In-memory collections, written to one JSON document on every commit.

    Mutations run inside :meth:`transaction`, which serializes writers and
    rolls the in-memory state back when the body or the write fails.
    """

    def __init__(self, path: Path | None = None, data: StoreData | None = None) -> None:
        self._path = path
        self._data = data or StoreData()
        self._lock = asyncio.Lock()

    @classmethod
    def load(cls, path: Path) -> "Database":
        """Open a store file, starting empty if it does not exist yet."""
        if not path.exists():
            return cls(path)
        try:
            data = StoreData.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise MutationError(f"Store file {path} is unreadable: {e}") from e
        logger.info(
            "Loaded store %s (%d migrations, %d wallets)",
            path,
            len(data.migrations),
            len(data.wallets),
        )
        return cls(path, data)

    @property
    def data(self) -> StoreData:
        """Read access. Callers must not mutate outside a transaction."""
        return self._data

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreData]:
        """Run a check-then-write sequence atomically."""
        async with self._lock:
            snapshot = self._data.model_copy(deep=True)
            try:
                yield self._data
                self._flush()
            except BaseException:
                self._data = snapshot
                raise

    def _flush(self) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(self._data.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise MutationError(f"Could not write store {self._path}: {e}") from e
