"""Abort confirmation modal."""

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Static

from walletmigrate.models.transaction import PendingTransaction, TransactionState


class AbortConfirmModal(ModalScreen[bool]):
    """Ask before running the compensating actions."""

    DEFAULT_CSS = """
    AbortConfirmModal {
        align: center middle;
    }

    AbortConfirmModal .modal-container {
        width: 70;
        height: auto;
        background: $surface;
        border: solid $error;
        padding: 1 2;
    }

    AbortConfirmModal .modal-title {
        text-style: bold;
        margin-bottom: 1;
        text-align: center;
        width: 100%;
    }

    AbortConfirmModal .funds-warning {
        color: $warning;
        margin-bottom: 1;
    }

    AbortConfirmModal .modal-buttons {
        margin-top: 1;
        align: right middle;
        height: auto;
    }
    """

    def __init__(self, transfer: PendingTransaction | None = None) -> None:
        super().__init__()
        self.transfer = transfer

    def compose(self) -> ComposeResult:
        with Container(classes="modal-container"):
            yield Label("Abort Migration?", classes="modal-title")
            yield Static(
                "The temporary wallet, the migration pointer and the migration "
                "record will be cleaned up."
            )
            if self.transfer is not None and self.transfer.state == TransactionState.SUBMITTED:
                yield Static(
                    "The fund transfer has already been submitted. Aborting cannot "
                    "reverse it and the new wallet will be kept.",
                    classes="funds-warning",
                )
            elif self.transfer is not None and self.transfer.is_pending:
                yield Static(
                    "The pending fund transfer will be cancelled and can no longer "
                    "be signed. No funds have moved.",
                    classes="funds-warning",
                )
            with Horizontal(classes="modal-buttons"):
                yield Button("Keep Going", variant="default", id="cancel")
                yield Button("Abort", variant="error", id="confirm")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "confirm")
