"""Sweep transaction signing panel."""

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.message import Message
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Button, Input, Label

from walletmigrate.models.transaction import PendingTransaction


class TransferPanel(Widget):
    """Signatures collected on the sweep, plus export and co-signing controls."""

    class SignRequested(Message):
        """Request to sign with the local key."""

    class ExportRequested(Message):
        """Request to export the transaction for co-signers."""

    class CosignatureEntered(Message):
        """A co-signer's witnessed transaction was pasted in."""

        def __init__(self, signer_address: str, tx_cbor: str) -> None:
            super().__init__()
            self.signer_address = signer_address
            self.tx_cbor = tx_cbor

    class SubmissionEntered(Message):
        """The hash of a transaction broadcast elsewhere was entered."""

        def __init__(self, tx_hash: str) -> None:
            super().__init__()
            self.tx_hash = tx_hash

    DEFAULT_CSS = """
    TransferPanel {
        height: auto;
        padding: 1;
        border: solid $primary;
        margin-bottom: 1;
    }

    TransferPanel .stat-value {
        text-style: bold;
    }

    TransferPanel .form-row {
        height: auto;
    }

    TransferPanel .form-row Input {
        width: 40;
    }

    TransferPanel .panel-buttons Button {
        margin-right: 1;
    }

    TransferPanel.submitted {
        border: solid $success;
    }
    """

    required_signatures: reactive[int] = reactive(0)
    transaction: reactive[PendingTransaction | None] = reactive(None)

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label("Loading the fund transfer...", classes="stat-value", id="tx-state")
            yield Label("", id="tx-signers")
            with Horizontal(classes="panel-buttons", id="tx-actions"):
                yield Button("Sign", variant="primary", id="sign")
                yield Button("Export for Co-signers", variant="default", id="export")
            with Horizontal(classes="form-row", id="cosign-row"):
                yield Input(placeholder="Co-signer address", id="cosigner-address")
                yield Input(placeholder="Signed transaction CBOR", id="cosigned-cbor")
                yield Button("Add Signature", id="add-cosignature")
            with Horizontal(classes="form-row", id="submitted-row"):
                yield Input(placeholder="Transaction hash", id="tx-hash")
                yield Button("Mark Submitted", id="mark-submitted")

    def watch_transaction(self, tx: PendingTransaction | None) -> None:
        if tx is None:
            return
        self.set_class(not tx.is_pending, "submitted")
        try:
            if tx.tx_hash:
                state_text = f"Transfer {tx.state.value}: {tx.tx_hash}"
            else:
                state_text = f"Transfer {tx.state.value}"
            self.query_one("#tx-state", Label).update(state_text)
            signers = ", ".join(tx.signed_addresses) or "none"
            self.query_one("#tx-signers", Label).update(
                f"Signatures {len(tx.signed_addresses)} of {self.required_signatures}: {signers}"
            )
            for row in ("#tx-actions", "#cosign-row", "#submitted-row"):
                self.query_one(row).display = tx.is_pending
        except NoMatches:
            pass

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        button_id = event.button.id
        if button_id == "sign":
            self.post_message(self.SignRequested())
        elif button_id == "export":
            self.post_message(self.ExportRequested())
        elif button_id == "add-cosignature":
            address = self.query_one("#cosigner-address", Input).value.strip()
            tx_cbor = self.query_one("#cosigned-cbor", Input).value.strip()
            if not address or not tx_cbor:
                self.notify("Co-signer address and signed CBOR are required", severity="error")
                return
            self.post_message(self.CosignatureEntered(address, tx_cbor))
        elif button_id == "mark-submitted":
            tx_hash = self.query_one("#tx-hash", Input).value.strip()
            if not tx_hash:
                self.notify("Transaction hash is required", severity="error")
                return
            self.post_message(self.SubmissionEntered(tx_hash))
