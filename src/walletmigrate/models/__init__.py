"""Data models for WalletMigrate."""

from walletmigrate.models.ledger import AccountStatus, Asset, DRepStatus, UTxO
from walletmigrate.models.migration import (
    MigrationData,
    MigrationRecord,
    MigrationSnapshot,
    MigrationStatus,
    MigrationStep,
)
from walletmigrate.models.precheck import PreCheckReport, PreCheckResult, PreCheckStatus
from walletmigrate.models.proxy import Proxy
from walletmigrate.models.state import MigrationFlags, MigrationState
from walletmigrate.models.transaction import (
    PendingTransaction,
    SweepTransaction,
    TransactionState,
)
from walletmigrate.models.wallet import (
    DerivedScript,
    DraftWallet,
    ScriptType,
    Wallet,
    WalletConfig,
)

__all__ = [
    "AccountStatus",
    "Asset",
    "DRepStatus",
    "DerivedScript",
    "DraftWallet",
    "MigrationData",
    "MigrationFlags",
    "MigrationRecord",
    "MigrationSnapshot",
    "MigrationState",
    "MigrationStatus",
    "MigrationStep",
    "PendingTransaction",
    "PreCheckReport",
    "PreCheckResult",
    "PreCheckStatus",
    "Proxy",
    "ScriptType",
    "SweepTransaction",
    "TransactionState",
    "UTxO",
    "Wallet",
    "WalletConfig",
]
