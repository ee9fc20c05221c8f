"""Draft and committed wallet stores."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from walletmigrate.errors import NotFoundError, WalletConfigError
from walletmigrate.models.wallet import (
    DerivedScript,
    DraftWallet,
    ScriptType,
    Wallet,
    WalletConfig,
)
from walletmigrate.services.database import Database

logger = logging.getLogger(__name__)


class DraftWalletStore:
    """Mutable pre-commit wallets, editable by anyone holding the invite link."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def create_new_wallet(
        self,
        config: WalletConfig,
        owner_address: str,
        migration_id: str | None = None,
    ) -> DraftWallet:
        """Create a draft.

        With a ``migration_id`` the call is idempotent: an existing draft for
        that migration is returned instead of creating a second one.
        """
        if not config.can_create_draft():
            raise WalletConfigError(["A wallet name and at least one signer are required"])
        async with self._db.transaction() as data:
            if migration_id is not None:
                for draft in data.drafts.values():
                    if draft.migration_id == migration_id:
                        logger.info("Draft %s already exists for %s", draft.id, migration_id)
                        return draft
            draft = DraftWallet(
                **config.for_storage().config_dump(),
                owner_address=owner_address,
                migration_id=migration_id,
            )
            data.drafts[draft.id] = draft
        logger.info("Created draft wallet %s", draft.id)
        return draft

    async def get_new_wallet(self, draft_id: str) -> DraftWallet | None:
        """Get a draft by ID."""
        return self._db.data.drafts.get(draft_id)

    async def find_by_migration(self, migration_id: str) -> DraftWallet | None:
        """The draft created for a migration, if any."""
        for draft in self._db.data.drafts.values():
            if draft.migration_id == migration_id:
                return draft
        return None

    async def update_new_wallet(self, draft_id: str, **changes: Any) -> DraftWallet:
        """Apply a partial configuration update."""

        def merge(config: WalletConfig) -> WalletConfig:
            return WalletConfig.model_validate({**config.config_dump(), **changes})

        return await self.apply(draft_id, merge)

    async def apply(
        self, draft_id: str, change: Callable[[WalletConfig], WalletConfig]
    ) -> DraftWallet:
        """Replace a draft's configuration with ``change(config)``."""
        async with self._db.transaction() as data:
            draft = data.drafts.get(draft_id)
            if draft is None:
                raise NotFoundError(f"Draft wallet not found: {draft_id}")
            config = change(WalletConfig.from_record(draft))
            draft = DraftWallet(
                **config.for_storage().config_dump(),
                id=draft.id,
                owner_address=draft.owner_address,
                migration_id=draft.migration_id,
                created_at=draft.created_at,
                updated_at=datetime.now(),
            )
            data.drafts[draft_id] = draft
        return draft

    async def add_signer(
        self,
        draft_id: str,
        address: str,
        description: str = "",
        stake_key: str = "",
        drep_key: str = "",
    ) -> DraftWallet:
        return await self.apply(
            draft_id, lambda c: c.with_signer_added(address, description, stake_key, drep_key)
        )

    async def remove_signer(self, draft_id: str, index: int) -> DraftWallet:
        return await self.apply(draft_id, lambda c: c.with_signer_removed(index))

    async def set_required_signers(self, draft_id: str, count: int) -> DraftWallet:
        return await self.apply(draft_id, lambda c: c.with_required_signers(count))

    async def set_stake_credential(self, draft_id: str, credential_hash: str) -> DraftWallet:
        return await self.apply(draft_id, lambda c: c.with_stake_credential(credential_hash))

    async def clear_stake_credential(self, draft_id: str) -> DraftWallet:
        return await self.apply(draft_id, lambda c: c.with_stake_credential(None))

    async def set_script_type(self, draft_id: str, script_type: ScriptType) -> DraftWallet:
        return await self.apply(draft_id, lambda c: c.with_script_type(script_type))

    async def delete_new_wallet(self, draft_id: str) -> bool:
        """Delete a draft. Returns False if it was already gone."""
        async with self._db.transaction() as data:
            removed = data.drafts.pop(draft_id, None)
        if removed is not None:
            logger.info("Deleted draft wallet %s", draft_id)
        return removed is not None


class WalletStore:
    """Committed multisig wallets."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def add_wallet(self, wallet: Wallet) -> str:
        """Register an existing wallet."""
        async with self._db.transaction() as data:
            data.wallets[wallet.id] = wallet
        return wallet.id

    async def create_wallet(
        self,
        config: WalletConfig,
        script: DerivedScript,
        owner_address: str = "",
        migration_id: str | None = None,
    ) -> Wallet:
        """Commit a configuration with its derived script.

        With a ``migration_id`` the call is idempotent: a wallet already
        committed for that migration is returned unchanged.
        """
        problems = config.validation_problems()
        if problems:
            raise WalletConfigError(problems)
        async with self._db.transaction() as data:
            if migration_id is not None:
                for wallet in data.wallets.values():
                    if wallet.migration_id == migration_id:
                        logger.info("Wallet %s already exists for %s", wallet.id, migration_id)
                        return wallet
            wallet = Wallet(
                **config.for_storage().config_dump(),
                script_cbor=script.script_cbor,
                address=script.address,
                stake_address=script.stake_address,
                drep_id=script.drep_id,
                owner_address=owner_address,
                migration_id=migration_id,
            )
            data.wallets[wallet.id] = wallet
        logger.info("Created wallet %s at %s", wallet.id, wallet.address)
        return wallet

    async def get_wallet(self, owner_address: str, wallet_id: str) -> Wallet | None:
        """Get a wallet the address may access."""
        wallet = self._db.data.wallets.get(wallet_id)
        if wallet is None or not wallet.is_accessible_by(owner_address):
            return None
        return wallet

    async def get_by_id(self, wallet_id: str) -> Wallet | None:
        return self._db.data.wallets.get(wallet_id)

    async def find_by_migration(self, migration_id: str) -> Wallet | None:
        """The wallet committed for a migration, if any."""
        for wallet in self._db.data.wallets.values():
            if wallet.migration_id == migration_id:
                return wallet
        return None

    async def set_migration_target(self, original_wallet_id: str, target_wallet_id: str) -> Wallet:
        return await self._replace(
            original_wallet_id, migration_target_wallet_id=target_wallet_id
        )

    async def clear_migration_target(self, original_wallet_id: str) -> Wallet:
        return await self._replace(original_wallet_id, migration_target_wallet_id=None)

    async def archive_wallet(self, original_wallet_id: str) -> Wallet:
        wallet = await self._replace(original_wallet_id, is_archived=True)
        logger.info("Archived wallet %s", original_wallet_id)
        return wallet

    async def detach_from_migration(self, wallet_id: str) -> Wallet:
        """Keep a wallet but drop its link to a cancelled migration."""
        return await self._replace(wallet_id, migration_id=None)

    async def delete_wallet(self, wallet_id: str) -> bool:
        """Delete a committed wallet. Returns False if it was already gone."""
        async with self._db.transaction() as data:
            removed = data.wallets.pop(wallet_id, None)
        if removed is not None:
            logger.info("Deleted wallet %s", wallet_id)
        return removed is not None

    async def abort_migration(
        self, original_wallet_id: str, new_wallet_id: str | None = None
    ) -> Wallet:
        """Drop the new wallet (draft or committed) and clear the pointer.

        A failed deletion does not prevent the pointer from being cleared.
        """
        if new_wallet_id is not None:
            try:
                async with self._db.transaction() as data:
                    if data.drafts.pop(new_wallet_id, None) is not None:
                        logger.info("Deleted draft wallet %s", new_wallet_id)
                    elif data.wallets.pop(new_wallet_id, None) is not None:
                        logger.info("Deleted wallet %s", new_wallet_id)
                    else:
                        logger.info("No wallet found with ID %s during abort", new_wallet_id)
            except Exception:
                logger.exception("Error deleting wallet %s during abort", new_wallet_id)
        return await self.clear_migration_target(original_wallet_id)

    async def _replace(self, wallet_id: str, **changes: Any) -> Wallet:
        async with self._db.transaction() as data:
            wallet = data.wallets.get(wallet_id)
            if wallet is None:
                raise NotFoundError(f"Wallet not found: {wallet_id}")
            wallet = wallet.model_copy(update=changes)
            data.wallets[wallet_id] = wallet
        return wallet
