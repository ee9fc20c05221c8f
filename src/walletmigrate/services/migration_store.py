"""Migration record store."""

import logging
from datetime import datetime
from typing import Any

from walletmigrate.errors import (
    InvalidTransitionError,
    MigrationConflictError,
    NotFoundError,
    PermissionDeniedError,
)
from walletmigrate.models.migration import (
    MigrationData,
    MigrationRecord,
    MigrationSnapshot,
    MigrationStatus,
    MigrationStep,
)
from walletmigrate.services.database import Database, StoreData

logger = logging.getLogger(__name__)


class MigrationRecordStore:
    """Durable migration records.

    At most one active (pending or in-progress) record may exist per original
    wallet; :meth:`create_migration` enforces it under the store lock.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def create_migration(
        self,
        original_wallet_id: str,
        owner_address: str,
        snapshot: MigrationSnapshot,
        current_step: MigrationStep = MigrationStep.PRE_CHECKS,
        new_wallet_id: str | None = None,
    ) -> MigrationRecord:
        """Create a record, refusing a second active one for the same wallet."""
        async with self._db.transaction() as data:
            existing = self._active_for_wallet(data, original_wallet_id)
            if existing is not None:
                raise MigrationConflictError(existing)
            record = MigrationRecord(
                original_wallet_id=original_wallet_id,
                owner_address=owner_address,
                snapshot=snapshot,
                current_step=current_step,
                new_wallet_id=new_wallet_id,
                status=(
                    MigrationStatus.PENDING
                    if current_step == MigrationStep.PRE_CHECKS
                    else MigrationStatus.IN_PROGRESS
                ),
            )
            data.migrations[record.id] = record
        logger.info(
            "Created migration %s for wallet %s at %s",
            record.id,
            original_wallet_id,
            current_step.name,
        )
        return record

    async def get_migration(
        self, migration_id: str, requester: str | None = None
    ) -> MigrationRecord | None:
        """Get a record by ID, optionally checking ownership."""
        record = self._db.data.migrations.get(migration_id)
        if record is not None and requester is not None and record.owner_address != requester:
            raise PermissionDeniedError("Not owner of migration")
        return record

    async def get_pending_migrations(self, owner_address: str) -> list[MigrationRecord]:
        """Active records owned by an address, newest first."""
        records = [
            r
            for r in self._db.data.migrations.values()
            if r.owner_address == owner_address and r.is_active
        ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    async def get_migration_by_original_wallet(
        self, original_wallet_id: str
    ) -> MigrationRecord | None:
        """The active record for an original wallet, if any."""
        return self._active_for_wallet(self._db.data, original_wallet_id)

    async def update_migration_step(
        self,
        migration_id: str,
        current_step: MigrationStep,
        status: MigrationStatus | None = None,
        new_wallet_id: str | None = None,
    ) -> MigrationRecord:
        """Persist a step change together with its status."""
        async with self._db.transaction() as data:
            record = self._require_active(data, migration_id)
            changes: dict[str, Any] = {
                "current_step": current_step,
                "updated_at": datetime.now(),
            }
            if status is not None:
                changes["status"] = status
                if status == MigrationStatus.COMPLETED:
                    changes["completed_at"] = datetime.now()
            if new_wallet_id is not None:
                changes["new_wallet_id"] = new_wallet_id
            record = record.model_copy(update=changes)
            data.migrations[migration_id] = record
        return record

    async def update_migration_data(self, migration_id: str, **changes: Any) -> MigrationRecord:
        """Merge fields into the record's migration data."""
        async with self._db.transaction() as data:
            record = self._require_active(data, migration_id)
            merged = MigrationData.model_validate({**record.data.model_dump(), **changes})
            record = record.model_copy(update={"data": merged, "updated_at": datetime.now()})
            data.migrations[migration_id] = record
        return record

    async def complete_migration(self, migration_id: str) -> MigrationRecord:
        """Close a record as completed."""
        record = await self.update_migration_step(
            migration_id, MigrationStep.COMPLETE, MigrationStatus.COMPLETED
        )
        logger.info("Completed migration %s", migration_id)
        return record

    async def cancel_migration(self, migration_id: str) -> MigrationRecord:
        """Close a record as aborted. The record itself is kept."""
        record = await self.update_migration_step(
            migration_id, MigrationStep.ABORTED, MigrationStatus.ABORTED
        )
        logger.info("Cancelled migration %s", migration_id)
        return record

    def _active_for_wallet(self, data: StoreData, original_wallet_id: str) -> MigrationRecord | None:
        active = [
            r
            for r in data.migrations.values()
            if r.original_wallet_id == original_wallet_id and r.is_active
        ]
        return max(active, key=lambda r: r.created_at, default=None)

    def _require_active(self, data: StoreData, migration_id: str) -> MigrationRecord:
        record = data.migrations.get(migration_id)
        if record is None:
            raise NotFoundError(f"Migration not found: {migration_id}")
        if record.status.is_terminal:
            raise InvalidTransitionError(
                f"Migration {migration_id} is already {record.status.value}"
            )
        return record
