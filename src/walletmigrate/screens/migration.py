"""Migration pane: one view per workflow step."""

from textual import work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.css.query import NoMatches
from textual.widget import Widget
from textual.widgets import Button, Input, Label, Static

from walletmigrate.models.migration import MigrationStep
from walletmigrate.models.precheck import PreCheckReport, PreCheckResult
from walletmigrate.models.state import MigrationState
from walletmigrate.models.wallet import DraftWallet, ScriptType
from walletmigrate.screens.abort_confirm import AbortConfirmModal
from walletmigrate.services.orchestrator import MigrationOrchestrator
from walletmigrate.services.sweep import CompletionStatus
from walletmigrate.widgets.completion_panel import CompletionPanel
from walletmigrate.widgets.precheck_card import PreCheckCard
from walletmigrate.widgets.step_indicator import StepIndicator
from walletmigrate.widgets.transfer_panel import TransferPanel

_CHECK_TITLES = {
    "drep": "DRep Registration",
    "staking": "Staking Registration",
    "pending_transactions": "Pending Transactions",
}

_TRANSFER_STEPS = (
    MigrationStep.FUND_TRANSFER,
    MigrationStep.PROXY_TRANSFER,
    MigrationStep.COMPLETE,
)

_SCRIPT_TYPE_BUTTONS = {
    "script-all": ScriptType.ALL,
    "script-any": ScriptType.ANY,
    "script-at-least": ScriptType.AT_LEAST,
}


def wants_completion_poll(state: MigrationState, status: CompletionStatus | None = None) -> bool:
    """Poll the original wallet only at an open last step while the gate is closed."""
    if state.is_terminal or state.step != MigrationStep.COMPLETE:
        return False
    return status is None or not status.ready


class MigrationPane(Widget):
    """Renders the orchestrator state. Holds no migration state of its own."""

    DEFAULT_CSS = """
    MigrationPane {
        height: 100%;
    }

    MigrationPane #step-body {
        height: 1fr;
        padding: 1 2;
    }

    MigrationPane .section-header {
        text-style: bold;
        margin-bottom: 1;
    }

    MigrationPane .muted {
        color: $text-muted;
    }

    MigrationPane .error-text {
        color: $error;
    }

    MigrationPane .step-buttons {
        height: auto;
        margin-top: 1;
    }

    MigrationPane .step-buttons Button {
        margin-right: 1;
    }

    MigrationPane .form-row {
        height: auto;
        margin-bottom: 1;
    }

    MigrationPane .form-row Input {
        width: 60;
    }

    MigrationPane #footer-bar {
        height: auto;
        dock: bottom;
        padding: 0 2;
    }
    """

    def __init__(self, orchestrator: MigrationOrchestrator) -> None:
        super().__init__()
        self.orchestrator = orchestrator
        self.report = PreCheckReport()
        self._poll_timer = None

    def compose(self) -> ComposeResult:
        with Container():
            yield StepIndicator(id="step-indicator")
            yield ScrollableContainer(id="step-body")
            with Horizontal(id="footer-bar"):
                yield Button("Abort Migration", variant="error", id="abort", disabled=True)

    def on_mount(self) -> None:
        self._mount_migration()

    @work(exclusive=True, group="migration")
    async def _mount_migration(self) -> None:
        await self.orchestrator.mount()
        await self._render_step()

    async def _render_step(self) -> None:
        """Rebuild the body for the current step."""
        state = self.orchestrator.state
        self.query_one("#step-indicator", StepIndicator).step = state.step
        self.query_one("#abort", Button).disabled = not state.can_abort
        if not wants_completion_poll(state):
            self._stop_polling()

        body = self.query_one("#step-body", ScrollableContainer)
        await body.remove_children()

        if state.is_terminal:
            await body.mount(Label(f"Migration {state.status.value}.", classes="section-header"))
            if self.orchestrator.last_abort is not None:
                await body.mount_all(self._abort_outcomes())
            return

        if not state.started:
            await body.mount_all(self._start_view())
        elif state.step == MigrationStep.PRE_CHECKS:
            await body.mount_all(self._prechecks_view())
            self._run_prechecks()
        elif state.step == MigrationStep.CREATE_WALLET:
            await body.mount_all(self._create_wallet_view(await self.orchestrator.draft()))
        elif state.step == MigrationStep.PROXY_SETUP:
            await body.mount_all(self._proxy_setup_view())
        elif state.step == MigrationStep.FUND_TRANSFER:
            await body.mount_all(self._fund_transfer_view())
        elif state.step == MigrationStep.PROXY_TRANSFER:
            await body.mount_all(self._proxy_transfer_view())
        elif state.step == MigrationStep.COMPLETE:
            await body.mount(CompletionPanel(id="completion-panel"))
            self._refresh_completion()
            if self._poll_timer is None and wants_completion_poll(state):
                self._poll_timer = self.set_interval(
                    self.orchestrator.poll_interval, self._refresh_completion
                )

        if state.transfer_tx_id and state.step in _TRANSFER_STEPS:
            await body.mount(TransferPanel(id="transfer-panel"), before=0)
            self._refresh_transfer()

        if state.error:
            await body.mount(Label(f"Error: {state.error}", classes="error-text"))

    # Step views

    def _start_view(self) -> list[Widget]:
        state = self.orchestrator.state
        if state.flags.legacy_resume_available:
            return [
                Label("Migration in progress", classes="section-header"),
                Static(
                    "This wallet already points to a new wallet but has no migration "
                    "record. Continue to resume, or abort to clean up.",
                    classes="muted",
                ),
                Horizontal(
                    Button("Continue Migration", variant="primary", id="continue-legacy"),
                    classes="step-buttons",
                ),
            ]
        return [
            Label("Migrate Wallet", classes="section-header"),
            Static(
                "Move this wallet's funds, proxies and identity to a new signer "
                "configuration.",
                classes="muted",
            ),
            Horizontal(
                Button("Start Migration", variant="primary", id="start"),
                classes="step-buttons",
            ),
        ]

    def _prechecks_view(self) -> list[Widget]:
        cards: list[Widget] = [
            PreCheckCard(title, getattr(self.report, name), id=f"check-{name}")
            for name, title in _CHECK_TITLES.items()
        ]
        return [
            Label("Pre-Checks", classes="section-header"),
            *cards,
            Label("", classes="muted", id="check-summary"),
            Horizontal(
                Button("Re-run Checks", variant="default", id="rerun-checks"),
                Button("Continue", variant="primary", id="continue-checks", disabled=True),
                classes="step-buttons",
            ),
        ]

    def _create_wallet_view(self, draft: DraftWallet | None) -> list[Widget]:
        if draft is None:
            return [
                Label("Create New Wallet", classes="section-header"),
                Static(
                    "A temporary wallet will be created from the current signers. "
                    "Co-signers can then review and edit it through an invite link.",
                    classes="muted",
                ),
                Horizontal(
                    Button("Create Temporary Wallet", variant="primary", id="create-draft"),
                    classes="step-buttons",
                ),
            ]

        signers = [
            Label(f"{i + 1}. {desc or 'Signer'}: {addr}")
            for i, (addr, desc) in enumerate(
                zip(draft.signers_addresses, draft.signers_descriptions)
            )
        ]
        threshold = (
            f"{draft.required_signatures} of {draft.signer_count}"
            if draft.num_required_signers is not None
            else draft.script_type.value
        )
        return [
            Label(draft.name, classes="section-header"),
            Label(f"Invite link: {self.orchestrator.invite_link()}", classes="muted"),
            Label(f"Script type: {draft.script_type.value}"),
            Label(f"Required signatures: {threshold}"),
            Label(f"Stake credential: {draft.stake_credential_hash or 'per-signer keys'}"),
            *signers,
            Vertical(
                Horizontal(
                    Input(placeholder="Signer address", id="signer-address"),
                    Button("Add Signer", id="add-signer"),
                    classes="form-row",
                ),
                Horizontal(
                    Input(placeholder="Signer number", id="remove-index"),
                    Button("Remove Signer", id="remove-signer"),
                    classes="form-row",
                ),
                Horizontal(
                    Input(placeholder="Required signers", id="required-signers"),
                    Button("Set", id="set-required"),
                    classes="form-row",
                ),
                Horizontal(
                    Input(placeholder="Stake credential hash", id="stake-credential"),
                    Button("Set", id="set-credential"),
                    Button("Clear", id="clear-credential"),
                    classes="form-row",
                ),
                Horizontal(
                    Button("All", id="script-all"),
                    Button("Any", id="script-any"),
                    Button("At Least", id="script-at-least"),
                    classes="form-row",
                ),
            ),
            Horizontal(
                Button("Create Wallet", variant="primary", id="finalize"),
                classes="step-buttons",
            ),
        ]

    def _proxy_setup_view(self) -> list[Widget]:
        return [
            Label("Proxy Setup", classes="section-header"),
            Static(
                "Optionally set up a governance proxy for the new wallet.",
                classes="muted",
            ),
            Horizontal(
                Button("Skip", variant="default", id="skip-proxy"),
                Button("Continue", variant="primary", id="continue-proxy"),
                classes="step-buttons",
            ),
        ]

    def _fund_transfer_view(self) -> list[Widget]:
        state = self.orchestrator.state
        text = (
            f"Transfer already initiated: {state.transfer_tx_id}"
            if state.flags.transfer_initiated
            else "Every UTxO of the current wallet will be sent to the new wallet "
            "in a single transaction."
        )
        return [
            Label("Transfer Funds", classes="section-header"),
            Static(text, classes="muted"),
            Horizontal(
                Button("Transfer Funds", variant="primary", id="sweep"),
                classes="step-buttons",
            ),
        ]

    def _proxy_transfer_view(self) -> list[Widget]:
        return [
            Label("Transfer Proxies", classes="section-header"),
            Static(
                "Proxy registrations of the current wallet will be moved to the new wallet.",
                classes="muted",
            ),
            Horizontal(
                Button("Transfer Proxies", variant="primary", id="transfer-proxies"),
                classes="step-buttons",
            ),
        ]

    def _abort_outcomes(self) -> list[Widget]:
        report = self.orchestrator.last_abort
        return [
            Static(report.summary, classes="muted"),
            *(
                Label(f"{o.action}: {o.status.value} {o.detail}".rstrip())
                for o in report.outcomes
            ),
        ]

    # Actions

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if button_id == "abort":
            self._confirm_abort()
        elif button_id == "rerun-checks":
            self._run_prechecks()
        elif button_id == "add-signer":
            address = self.query_one("#signer-address", Input).value.strip()
            if not address:
                self.notify("Signer address is required", severity="error")
                return
            self._run_action(lambda: self.orchestrator.add_signer(address))
        elif button_id == "set-required":
            value = self.query_one("#required-signers", Input).value.strip()
            if not value.isdigit() or int(value) < 1:
                self.notify("Required signers must be a positive number", severity="error")
                return
            self._run_action(lambda: self.orchestrator.set_required_signers(int(value)))
        elif button_id == "remove-signer":
            value = self.query_one("#remove-index", Input).value.strip()
            if not value.isdigit() or int(value) < 1:
                self.notify("Enter the number of the signer to remove", severity="error")
                return
            self._run_action(lambda: self.orchestrator.remove_signer(int(value) - 1))
        elif button_id == "set-credential":
            credential = self.query_one("#stake-credential", Input).value.strip()
            if not credential:
                self.notify("Stake credential hash is required", severity="error")
                return
            self._run_action(lambda: self.orchestrator.set_stake_credential(credential))
        elif button_id == "clear-credential":
            self._run_action(self.orchestrator.clear_stake_credential)
        elif button_id in _SCRIPT_TYPE_BUTTONS:
            script_type = _SCRIPT_TYPE_BUTTONS[button_id]
            self._run_action(lambda: self.orchestrator.set_script_type(script_type))
        else:
            actions = {
                "start": self.orchestrator.start_migration,
                "continue-legacy": self.orchestrator.continue_legacy,
                "continue-checks": self.orchestrator.continue_to_wallet_creation,
                "create-draft": self.orchestrator.create_draft,
                "finalize": self.orchestrator.finalize,
                "continue-proxy": self.orchestrator.finish_proxy_setup,
                "skip-proxy": lambda: self.orchestrator.finish_proxy_setup(skipped=True),
                "sweep": self.orchestrator.transfer_funds,
                "transfer-proxies": self.orchestrator.transfer_proxies,
            }
            action = actions.get(button_id)
            if action is not None:
                self._run_action(action)

    def on_completion_panel_complete_requested(self, event: CompletionPanel.CompleteRequested) -> None:
        self._run_action(self.orchestrator.complete)

    def on_completion_panel_refresh_requested(self, event: CompletionPanel.RefreshRequested) -> None:
        self._refresh_completion()

    def on_transfer_panel_sign_requested(self, event: TransferPanel.SignRequested) -> None:
        self._run_action(self.orchestrator.sign_transfer)

    def on_transfer_panel_export_requested(self, event: TransferPanel.ExportRequested) -> None:
        self._export_transfer()

    def on_transfer_panel_cosignature_entered(
        self, event: TransferPanel.CosignatureEntered
    ) -> None:
        self._run_action(
            lambda: self.orchestrator.add_cosignature(event.signer_address, event.tx_cbor)
        )

    def on_transfer_panel_submission_entered(self, event: TransferPanel.SubmissionEntered) -> None:
        self._run_action(lambda: self.orchestrator.record_submission(event.tx_hash))

    @work(exclusive=True, group="abort-confirm")
    async def _confirm_abort(self) -> None:
        try:
            transfer = await self.orchestrator.transfer_transaction()
        except Exception as e:
            self.notify(f"Could not load the fund transfer: {e}", severity="error")
            transfer = None
        self.app.push_screen(AbortConfirmModal(transfer), self._on_abort_confirmed)

    def _on_abort_confirmed(self, confirmed: bool | None) -> None:
        if confirmed:
            self._run_action(self.orchestrator.abort)

    @work(exclusive=True, group="migration")
    async def _run_action(self, action) -> None:
        """Run an orchestrator intent, then re-render."""
        try:
            await action()
        except Exception as e:
            self.notify(f"Error: {e}", severity="error")
        await self._render_step()

    @work(exclusive=True, group="prechecks")
    async def _run_prechecks(self) -> None:
        """Run the checks, updating each card as its result arrives."""
        self.report = PreCheckReport()
        for name in _CHECK_TITLES:
            self._update_card(name, getattr(self.report, name))
        self.query_one("#continue-checks", Button).disabled = True

        def on_result(name: str, result: PreCheckResult) -> None:
            self.report = self.report.model_copy(update={name: result})
            self._update_card(name, result)

        try:
            await self.orchestrator.run_prechecks(on_result)
        except Exception as e:
            self.notify(f"Pre-checks failed: {e}", severity="error")
            return

        summary = self.report.summary or "All checks passed."
        try:
            self.query_one("#check-summary", Label).update(summary)
            self.query_one("#continue-checks", Button).disabled = not self.report.ready
        except NoMatches:
            pass

    def _update_card(self, name: str, result: PreCheckResult) -> None:
        try:
            self.query_one(f"#check-{name}", PreCheckCard).result = result
        except NoMatches:
            pass

    @work(exclusive=True, group="completion")
    async def _refresh_completion(self) -> None:
        try:
            status = await self.orchestrator.completion_status()
        except Exception as e:
            self.notify(f"Could not check the original wallet: {e}", severity="error")
            return
        if not wants_completion_poll(self.orchestrator.state, status):
            self._stop_polling()
        try:
            self.query_one("#completion-panel", CompletionPanel).status = status
        except NoMatches:
            pass

    def _stop_polling(self) -> None:
        if self._poll_timer is not None:
            self._poll_timer.stop()
            self._poll_timer = None

    @work(exclusive=True, group="transfer")
    async def _refresh_transfer(self) -> None:
        """Show the signatures collected on the sweep."""
        try:
            original = await self.orchestrator.original_wallet()
            transfer = await self.orchestrator.transfer_transaction()
        except Exception as e:
            self.notify(f"Could not load the fund transfer: {e}", severity="error")
            return
        if transfer is None:
            return
        try:
            panel = self.query_one("#transfer-panel", TransferPanel)
        except NoMatches:
            return
        panel.required_signatures = original.required_signatures
        panel.transaction = transfer

    @work(exclusive=True, group="transfer-export")
    async def _export_transfer(self) -> None:
        try:
            path = await self.orchestrator.export_transfer()
        except Exception as e:
            self.notify(f"Export failed: {e}", severity="error")
            return
        self.notify(f"Transfer exported to {path}")
