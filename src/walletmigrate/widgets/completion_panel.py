"""Completion gate panel."""

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.message import Message
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Button, Label

from walletmigrate.services.sweep import CompletionStatus


class CompletionPanel(Widget):
    """Residual UTxOs, pending transactions and balance of the original wallet."""

    class CompleteRequested(Message):
        """Request to complete the migration."""

    class RefreshRequested(Message):
        """Request to re-check the original wallet."""

    DEFAULT_CSS = """
    CompletionPanel {
        height: auto;
        padding: 1;
        border: solid $primary;
    }

    CompletionPanel .stat-value {
        text-style: bold;
    }

    CompletionPanel .gate-reason {
        color: $warning;
        margin: 1 0;
    }

    CompletionPanel .panel-buttons Button {
        margin-right: 1;
    }

    CompletionPanel.ready {
        border: solid $success;
    }
    """

    status: reactive[CompletionStatus | None] = reactive(None)

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label("Checking the original wallet...", classes="stat-value", id="utxos")
            yield Label("", classes="stat-value", id="pending")
            yield Label("", classes="stat-value", id="balance")
            yield Label("", classes="gate-reason", id="reason")
            with Horizontal(classes="panel-buttons"):
                yield Button("Refresh", variant="default", id="refresh")
                yield Button("Complete Migration", variant="success", id="complete", disabled=True)

    def watch_status(self, status: CompletionStatus | None) -> None:
        if status is None:
            return
        self.set_class(status.ready, "ready")
        try:
            self.query_one("#utxos", Label).update(f"Remaining UTxOs: {status.utxo_count}")
            self.query_one("#pending", Label).update(
                f"Pending transactions: {status.pending_count}"
            )
            self.query_one("#balance", Label).update(f"Balance: {status.balance_display}")
            self.query_one("#reason", Label).update(status.blocking_reason or "")
            self.query_one("#complete", Button).disabled = not status.ready
        except NoMatches:
            pass

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.id == "complete":
            self.post_message(self.CompleteRequested())
        elif event.button.id == "refresh":
            self.post_message(self.RefreshRequested())
