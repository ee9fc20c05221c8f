"""Business logic services for WalletMigrate."""

from walletmigrate.services.database import Database
from walletmigrate.services.ledger import BlockfrostLedger
from walletmigrate.services.migration_store import MigrationRecordStore
from walletmigrate.services.orchestrator import AbortReport, MigrationOrchestrator
from walletmigrate.services.prechecks import PreCheckAggregator
from walletmigrate.services.proxy_registry import ProxyRegistry
from walletmigrate.services.sweep import CompletionGate, CompletionStatus, FundSweeper
from walletmigrate.services.toolchain import CliToolchain
from walletmigrate.services.transactions import PendingTransactionLog
from walletmigrate.services.wallet_store import DraftWalletStore, WalletStore

__all__ = [
    "AbortReport",
    "BlockfrostLedger",
    "CliToolchain",
    "CompletionGate",
    "CompletionStatus",
    "Database",
    "DraftWalletStore",
    "FundSweeper",
    "MigrationOrchestrator",
    "MigrationRecordStore",
    "PendingTransactionLog",
    "PreCheckAggregator",
    "ProxyRegistry",
    "WalletStore",
]
