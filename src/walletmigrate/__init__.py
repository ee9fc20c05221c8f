"""WalletMigrate - resumable migration of multisig wallets."""

__version__ = "0.1.0"
