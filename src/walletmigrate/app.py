"""Main Textual application entry point."""

import argparse
import logging

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header

from walletmigrate.config import AppConfig, configure_logging, get_config
from walletmigrate.models.state import Notify
from walletmigrate.screens.migration import MigrationPane
from walletmigrate.services.database import Database
from walletmigrate.services.ledger import BlockfrostLedger
from walletmigrate.services.orchestrator import MigrationOrchestrator
from walletmigrate.services.toolchain import CliToolchain

logger = logging.getLogger(__name__)


class WalletMigrateApp(App):
    """WalletMigrate - move a multisig wallet to a new signer configuration."""

    TITLE = "WalletMigrate"
    SUB_TITLE = "Multisig Wallet Migration"

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
    ]

    def __init__(
        self,
        db: Database,
        original_wallet_id: str,
        owner_address: str,
        config: AppConfig | None = None,
    ) -> None:
        super().__init__()
        self.config = config or get_config()
        toolchain = CliToolchain(self.config)
        self.orchestrator = MigrationOrchestrator.create(
            db,
            original_wallet_id,
            owner_address,
            ledger=BlockfrostLedger(self.config),
            deriver=toolchain,
            builder=toolchain,
            submitter=toolchain,
            config=self.config,
            notifier=self._show_notice,
        )

    def compose(self) -> ComposeResult:
        """Create the application layout."""
        yield Header()
        yield MigrationPane(self.orchestrator)
        yield Footer()

    def _show_notice(self, notice: Notify) -> None:
        self.notify(notice.message, title=notice.title, severity=notice.level.value)


def main() -> None:
    """Run the application."""
    parser = argparse.ArgumentParser(description="Migrate a multisig wallet")
    parser.add_argument("wallet_id", help="ID of the wallet to migrate")
    parser.add_argument("owner_address", help="Address of the user running the migration")
    args = parser.parse_args()

    config = get_config()
    configure_logging(config.log_level)
    db = Database.load(config.store.path)
    logger.info("Starting migration UI for wallet %s", args.wallet_id)

    app = WalletMigrateApp(db, args.wallet_id, args.owner_address, config)
    app.run()


if __name__ == "__main__":
    main()
