"""Screen classes for WalletMigrate."""

from walletmigrate.screens.abort_confirm import AbortConfirmModal
from walletmigrate.screens.migration import MigrationPane

__all__ = [
    "AbortConfirmModal",
    "MigrationPane",
]
