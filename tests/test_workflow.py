"""Tests for the workflow reducer."""

from walletmigrate.models.migration import (
    MigrationRecord,
    MigrationSnapshot,
    MigrationStatus,
    MigrationStep,
)
from walletmigrate.models.precheck import PreCheckReport, PreCheckResult, PreCheckStatus
from walletmigrate.models.state import (
    AbortFinished,
    AbortMigration,
    AbortRequested,
    CreateDraft,
    CreateRecord,
    DraftCreated,
    DraftRequested,
    FinalizeRequested,
    FinalizeWallet,
    LegacyContinueRequested,
    MigrationState,
    NoticeLevel,
    Notify,
    PersistStep,
    PreChecksCompleted,
    Resumed,
    StartRequested,
    StepPersisted,
    StepPersistFailed,
    SweepFunds,
    SweepInitiated,
    SweepRequested,
    WalletFinalized,
)
from walletmigrate.models.wallet import WalletConfig
from walletmigrate.services.workflow import reduce

from conftest import OWNER

CONFIG = WalletConfig(name="New", signers_addresses=["addr_a"])


def record_at(step: MigrationStep, **changes) -> MigrationRecord:
    return MigrationRecord(
        id="m1",
        original_wallet_id="w1",
        owner_address=OWNER,
        current_step=step,
        status=MigrationStatus.IN_PROGRESS,
        snapshot=MigrationSnapshot(name="Treasury"),
        **changes,
    )


def state_at(step: MigrationStep, **changes) -> MigrationState:
    state = MigrationState(original_wallet_id="w1", owner_address=OWNER)
    return state.with_record(record_at(step, **changes))


def effect_types(effects) -> list[type]:
    return [type(e) for e in effects if not isinstance(e, Notify)]


def report(*statuses: PreCheckStatus) -> PreCheckReport:
    drep, staking, pending = (PreCheckResult(status=s, message="") for s in statuses)
    return PreCheckReport(drep=drep, staking=staking, pending_transactions=pending)


class TestStart:
    """Tests for starting and resuming."""

    def test_start_creates_record(self):
        """Test start asks for a record when none exists."""
        state = MigrationState(original_wallet_id="w1", owner_address=OWNER)

        new_state, effects = reduce(state, StartRequested())

        assert new_state == state
        assert effect_types(effects) == [CreateRecord]

    def test_start_when_started_is_noop(self):
        """Test a second start does nothing."""
        state = state_at(MigrationStep.PRE_CHECKS)

        _, effects = reduce(state, StartRequested())

        assert effects == []

    def test_resume_restores_step(self):
        """Test resuming adopts the persisted step and target."""
        state = MigrationState(original_wallet_id="w1", owner_address=OWNER)
        record = record_at(MigrationStep.FUND_TRANSFER, new_wallet_id="w2")

        new_state, _ = reduce(state, Resumed(record=record, draft_id=None))

        assert new_state.step == MigrationStep.FUND_TRANSFER
        assert new_state.new_wallet_id == "w2"
        assert new_state.migration_id == "m1"

    def test_legacy_pointer_is_not_auto_run(self):
        """Test a legacy pointer only offers a Continue action."""
        state = MigrationState(original_wallet_id="w1", owner_address=OWNER)

        new_state, effects = reduce(state, Resumed(legacy_target_id="w2"))

        assert new_state.flags.legacy_resume_available
        assert not new_state.started
        assert effect_types(effects) == []

        _, effects = reduce(new_state, LegacyContinueRequested())
        assert effects == [CreateRecord(legacy_target_id="w2")]


class TestPreChecks:
    """Tests for the pre-check gate."""

    def test_all_success_persists_next_step(self):
        """Test a clean report advances to wallet creation."""
        state = state_at(MigrationStep.PRE_CHECKS)
        ok = PreCheckStatus.SUCCESS

        _, effects = reduce(state, PreChecksCompleted(report=report(ok, ok, ok)))

        assert PersistStep(step=MigrationStep.CREATE_WALLET) in effects

    def test_error_blocks(self):
        """Test an error result blocks with a notification."""
        state = state_at(MigrationStep.PRE_CHECKS)
        ok, err = PreCheckStatus.SUCCESS, PreCheckStatus.ERROR

        _, effects = reduce(state, PreChecksCompleted(report=report(err, ok, ok)))

        assert effect_types(effects) == []
        assert effects[0].level == NoticeLevel.ERROR

    def test_unresolved_blocks(self):
        """Test loading results block."""
        state = state_at(MigrationStep.PRE_CHECKS)

        _, effects = reduce(state, PreChecksCompleted(report=PreCheckReport()))

        assert effect_types(effects) == []


class TestDraftAndFinalize:
    """Tests for the two-phase wallet commit."""

    def test_draft_requested_once(self):
        """Test re-invoking draft creation is a no-op."""
        state = state_at(MigrationStep.CREATE_WALLET)

        state, effects = reduce(state, DraftRequested(config=CONFIG))
        assert effects == [CreateDraft(config=CONFIG)]

        _, effects = reduce(state, DraftRequested(config=CONFIG))
        assert effects == []

    def test_draft_exists_is_noop(self):
        """Test an existing draft suppresses creation."""
        state = state_at(MigrationStep.CREATE_WALLET)
        state, _ = reduce(state, DraftCreated(draft_id="d1"))

        _, effects = reduce(state, DraftRequested(config=CONFIG))

        assert effects == []

    def test_invalid_config_blocks_locally(self):
        """Test an incomplete config produces only an error notification."""
        state = state_at(MigrationStep.CREATE_WALLET)

        new_state, effects = reduce(state, DraftRequested(config=WalletConfig(name="New")))

        assert effect_types(effects) == []
        assert effects[0].level == NoticeLevel.ERROR
        assert not new_state.flags.draft_attempted

    def test_finalize_once(self):
        """Test finalize runs once until it fails."""
        state = state_at(MigrationStep.CREATE_WALLET)
        state, _ = reduce(state, DraftCreated(draft_id="d1"))

        state, effects = reduce(state, FinalizeRequested())
        assert effects == [FinalizeWallet(draft_id="d1")]

        _, effects = reduce(state, FinalizeRequested())
        assert effects == []

    def test_wallet_with_proxies_skips_proxy_setup(self):
        """Test proxies on the original wallet skip PROXY_SETUP."""
        state = state_at(MigrationStep.CREATE_WALLET)

        _, effects = reduce(state, WalletFinalized(wallet_id="w2", has_proxies=True))

        assert PersistStep(step=MigrationStep.FUND_TRANSFER, new_wallet_id="w2") in effects

    def test_wallet_without_proxies_goes_to_proxy_setup(self):
        """Test wallets without proxies pass through PROXY_SETUP."""
        state = state_at(MigrationStep.CREATE_WALLET)

        _, effects = reduce(state, WalletFinalized(wallet_id="w2", has_proxies=False))

        assert PersistStep(step=MigrationStep.PROXY_SETUP, new_wallet_id="w2") in effects

    def test_step_changes_only_after_persist(self):
        """Test the step is unchanged until the record write is confirmed."""
        state = state_at(MigrationStep.CREATE_WALLET)

        state, _ = reduce(state, WalletFinalized(wallet_id="w2", has_proxies=False))
        assert state.step == MigrationStep.CREATE_WALLET

        state, _ = reduce(
            state, StepPersisted(record=record_at(MigrationStep.PROXY_SETUP, new_wallet_id="w2"))
        )
        assert state.step == MigrationStep.PROXY_SETUP
        assert state.new_wallet_id == "w2"

    def test_persist_failure_allows_retry(self):
        """Test a failed step write resets the finalize guard."""
        state = state_at(MigrationStep.CREATE_WALLET)
        state, _ = reduce(state, FinalizeRequested())

        state, effects = reduce(
            state, StepPersistFailed(step=MigrationStep.PROXY_SETUP, error="disk full")
        )

        assert state.step == MigrationStep.CREATE_WALLET
        assert not state.flags.finalize_attempted
        assert effects[0].level == NoticeLevel.ERROR


class TestSweep:
    """Tests for the fund sweep step."""

    def test_sweep_requested(self):
        """Test sweep runs against the new wallet."""
        state = state_at(MigrationStep.FUND_TRANSFER, new_wallet_id="w2")

        _, effects = reduce(state, SweepRequested())

        assert effects == [SweepFunds(new_wallet_id="w2")]

    def test_sweep_already_initiated(self):
        """Test an initiated transfer is never rebuilt."""
        state = state_at(MigrationStep.FUND_TRANSFER, new_wallet_id="w2")
        state = state.model_copy(
            update={"flags": state.flags.model_copy(update={"transfer_initiated": True})}
        )

        _, effects = reduce(state, SweepRequested())

        assert effects == [PersistStep(step=MigrationStep.PROXY_TRANSFER)]

    def test_sweep_initiated_marks_transfer(self):
        """Test the transfer flag is set and the step advances."""
        state = state_at(MigrationStep.FUND_TRANSFER, new_wallet_id="w2")

        new_state, effects = reduce(state, SweepInitiated(tx_id="tx1", input_count=2))

        assert new_state.flags.transfer_initiated
        assert new_state.transfer_tx_id == "tx1"
        assert PersistStep(step=MigrationStep.PROXY_TRANSFER) in effects

    def test_empty_sweep_proceeds(self):
        """Test nothing to sweep still proceeds without a transfer flag."""
        state = state_at(MigrationStep.FUND_TRANSFER, new_wallet_id="w2")

        new_state, effects = reduce(state, SweepInitiated())

        assert not new_state.flags.transfer_initiated
        assert PersistStep(step=MigrationStep.PROXY_TRANSFER) in effects

    def test_submitted_sweep_notice(self):
        """Test a sweep submitted on the spot is announced as submitted."""
        state = state_at(MigrationStep.FUND_TRANSFER, new_wallet_id="w2")

        _, effects = reduce(state, SweepInitiated(tx_id="tx1", submitted=True))

        notices = [e for e in effects if isinstance(e, Notify)]
        assert notices[0].title == "Transfer Submitted"
        assert notices[0].level == NoticeLevel.INFO

    def test_unsigned_sweep_warns(self):
        """Test a sweep that could not be signed locally warns with the reason."""
        state = state_at(MigrationStep.FUND_TRANSFER, new_wallet_id="w2")

        new_state, effects = reduce(
            state, SweepInitiated(tx_id="tx1", sign_error="signing key locked")
        )

        notices = [e for e in effects if isinstance(e, Notify)]
        assert notices[0].title == "Transfer Unsigned"
        assert notices[0].level == NoticeLevel.WARNING
        assert "signing key locked" in notices[0].message
        assert new_state.transfer_tx_id == "tx1"
        assert PersistStep(step=MigrationStep.PROXY_TRANSFER) in effects


class TestAbort:
    """Tests for abort handling."""

    def test_abort_requested(self):
        """Test abort is available on a started migration."""
        state = state_at(MigrationStep.CREATE_WALLET)

        _, effects = reduce(state, AbortRequested())

        assert effects == [AbortMigration()]

    def test_abort_unavailable_when_not_started(self):
        """Test abort does nothing without a migration."""
        state = MigrationState(original_wallet_id="w1", owner_address=OWNER)

        _, effects = reduce(state, AbortRequested())

        assert effects == []

    def test_complete_abort_resets_state(self):
        """Test a complete abort terminalizes the state."""
        state = state_at(MigrationStep.CREATE_WALLET, new_wallet_id="w2")

        new_state, _ = reduce(state, AbortFinished(complete=True, summary="done"))

        assert new_state.step == MigrationStep.ABORTED
        assert new_state.status == MigrationStatus.ABORTED
        assert new_state.new_wallet_id is None
        assert new_state.is_terminal

    def test_incomplete_abort_keeps_state(self):
        """Test a partial abort keeps the migration open for retry."""
        state = state_at(MigrationStep.CREATE_WALLET, new_wallet_id="w2")

        new_state, effects = reduce(state, AbortFinished(complete=False, summary="retry"))

        assert new_state.step == MigrationStep.CREATE_WALLET
        assert new_state.error == "retry"
        assert new_state.can_abort
        assert effects[0].level == NoticeLevel.ERROR
