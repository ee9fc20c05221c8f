"""Migration workflow reducer.

``reduce`` is pure: it never touches a store. Steps only change when a
``StepPersisted`` event arrives, i.e. after the record write succeeded.
"""

from collections.abc import Callable
from typing import Any

from walletmigrate.models.migration import MigrationStatus, MigrationStep
from walletmigrate.models.state import (
    AbortFinished,
    AbortMigration,
    AbortRequested,
    CompleteMigration,
    CompleteRequested,
    CompletionBlocked,
    CompletionFailed,
    CreateDraft,
    CreateRecord,
    DraftCreated,
    DraftFailed,
    DraftRequested,
    Effect,
    Event,
    FinalizeFailed,
    FinalizeRequested,
    FinalizeWallet,
    LegacyContinueRequested,
    MigrationCompleted,
    MigrationFlags,
    MigrationStarted,
    MigrationState,
    NoticeLevel,
    Notify,
    PersistStep,
    PreChecksCompleted,
    ProxiesTransferred,
    ProxySetupFinished,
    ProxyTransferFailed,
    ProxyTransferRequested,
    Resumed,
    StartFailed,
    StartRequested,
    StepPersisted,
    StepPersistFailed,
    SweepFailed,
    SweepFunds,
    SweepInitiated,
    SweepRequested,
    TransferProxies,
    WalletFinalized,
)

Transition = tuple[MigrationState, list[Effect]]


def reduce(state: MigrationState, event: Event) -> Transition:
    """Apply one event to the state."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unhandled migration event: {type(event).__name__}")
    return handler(state, event)


def _update(state: MigrationState, **changes: Any) -> MigrationState:
    return state.model_copy(update=changes)


def _with_flags(state: MigrationState, **changes: bool) -> MigrationState:
    return _update(state, flags=state.flags.model_copy(update=changes))


def _error(title: str, message: str) -> Notify:
    return Notify(level=NoticeLevel.ERROR, title=title, message=message)


def _info(title: str, message: str) -> Notify:
    return Notify(level=NoticeLevel.INFO, title=title, message=message)


def _warning(title: str, message: str) -> Notify:
    return Notify(level=NoticeLevel.WARNING, title=title, message=message)


def _at(state: MigrationState, step: MigrationStep) -> bool:
    return state.started and not state.is_terminal and state.step == step


def _fresh(state: MigrationState) -> MigrationState:
    return MigrationState(
        original_wallet_id=state.original_wallet_id,
        owner_address=state.owner_address,
    )


def _resumed(state: MigrationState, event: Resumed) -> Transition:
    if event.record is not None:
        resumed = _fresh(state).with_record(event.record)
        resumed = _update(resumed, draft_id=event.draft_id)
        return resumed, [
            _info("Migration resumed", f"Continuing at step: {resumed.step.title}")
        ]
    if event.legacy_target_id is not None:
        legacy = _update(_fresh(state), legacy_target_id=event.legacy_target_id)
        legacy = _with_flags(legacy, legacy_resume_available=True)
        return legacy, [
            _warning(
                "Migration in progress",
                "This wallet already points to a new wallet. "
                "Use Continue Migration to resume or Abort to clean up.",
            )
        ]
    return _fresh(state), []


def _start_requested(state: MigrationState, event: StartRequested) -> Transition:
    if state.started and not state.is_terminal:
        return state, []
    return state, [CreateRecord()]


def _legacy_continue(state: MigrationState, event: LegacyContinueRequested) -> Transition:
    if not state.flags.legacy_resume_available or state.started:
        return state, []
    return state, [CreateRecord(legacy_target_id=state.legacy_target_id)]


def _migration_started(state: MigrationState, event: MigrationStarted) -> Transition:
    started = _fresh(state).with_record(event.record)
    if event.reused:
        return started, [_info("Migration resumed", "An open migration was found and resumed.")]
    return started, [_info("Migration started", f"Step: {started.step.title}")]


def _start_failed(state: MigrationState, event: StartFailed) -> Transition:
    return _update(state, error=event.error), [_error("Could not start migration", event.error)]


def _prechecks_completed(state: MigrationState, event: PreChecksCompleted) -> Transition:
    if not _at(state, MigrationStep.PRE_CHECKS):
        return state, []
    report = event.report
    if not report.all_resolved:
        return state, [_warning("Checks running", "Wait for all pre-checks to finish.")]
    if report.has_errors:
        return state, [_error("Pre-checks failed", report.summary or "Resolve failed checks.")]
    return state, [PersistStep(step=MigrationStep.CREATE_WALLET)]


def _draft_requested(state: MigrationState, event: DraftRequested) -> Transition:
    if not _at(state, MigrationStep.CREATE_WALLET):
        return state, []
    if state.draft_id is not None or state.flags.draft_attempted:
        return state, []
    if not event.config.can_create_draft():
        return state, [
            _error("Invalid configuration", "A wallet name and at least one signer are required.")
        ]
    return _with_flags(state, draft_attempted=True), [CreateDraft(config=event.config)]


def _draft_created(state: MigrationState, event: DraftCreated) -> Transition:
    updated = _update(state, draft_id=event.draft_id, error=None)
    if event.reused:
        return updated, []
    return updated, [
        _info("Wallet Created", "Temporary wallet created. Share the invite link with co-signers.")
    ]


def _draft_failed(state: MigrationState, event: DraftFailed) -> Transition:
    failed = _with_flags(_update(state, error=event.error), draft_attempted=False)
    return failed, [_error("Error", f"Failed to create new wallet configuration: {event.error}")]


def _finalize_requested(state: MigrationState, event: FinalizeRequested) -> Transition:
    if not _at(state, MigrationStep.CREATE_WALLET) or state.flags.finalize_attempted:
        return state, []
    return _with_flags(state, finalize_attempted=True), [FinalizeWallet(draft_id=state.draft_id)]


def _wallet_finalized(state: MigrationState, event: WalletFinalized) -> Transition:
    next_step = MigrationStep.FUND_TRANSFER if event.has_proxies else MigrationStep.PROXY_SETUP
    notice = (
        _info("Wallet found", "Reusing the wallet already created for this migration.")
        if event.reused
        else _info("Success", "New wallet created successfully!")
    )
    return _update(state, draft_id=None), [
        notice,
        PersistStep(step=next_step, new_wallet_id=event.wallet_id),
    ]


def _finalize_failed(state: MigrationState, event: FinalizeFailed) -> Transition:
    failed = _with_flags(_update(state, error=event.error), finalize_attempted=False)
    return failed, [_error("Error", f"Failed to create new wallet: {event.error}")]


def _proxy_setup_finished(state: MigrationState, event: ProxySetupFinished) -> Transition:
    if not _at(state, MigrationStep.PROXY_SETUP):
        return state, []
    effects: list[Effect] = []
    if event.skipped:
        effects.append(_info("Skipped", "Proxy setup skipped. You can set up a proxy later."))
    effects.append(PersistStep(step=MigrationStep.FUND_TRANSFER))
    return state, effects


def _sweep_requested(state: MigrationState, event: SweepRequested) -> Transition:
    if not _at(state, MigrationStep.FUND_TRANSFER) or state.new_wallet_id is None:
        return state, []
    if state.flags.transfer_initiated:
        return state, [PersistStep(step=MigrationStep.PROXY_TRANSFER)]
    return state, [SweepFunds(new_wallet_id=state.new_wallet_id)]


def _sweep_initiated(state: MigrationState, event: SweepInitiated) -> Transition:
    if event.tx_id is None:
        notice = _info(
            "No Funds to Transfer",
            "There are no funds in the current wallet to transfer.",
        )
        updated = state
    else:
        if event.submitted:
            notice = _info("Transfer Submitted", "Fund transfer transaction has been submitted.")
        elif event.sign_error:
            notice = _warning(
                "Transfer Unsigned",
                "Fund transfer transaction was created but could not be signed here "
                f"({event.sign_error}). Export it for the co-signers.",
            )
        else:
            notice = _info(
                "Transfer Initiated",
                "Fund transfer transaction has been created and is pending signatures.",
            )
        updated = _with_flags(_update(state, transfer_tx_id=event.tx_id), transfer_initiated=True)
    return updated, [notice, PersistStep(step=MigrationStep.PROXY_TRANSFER)]


def _sweep_failed(state: MigrationState, event: SweepFailed) -> Transition:
    return _update(state, error=event.error), [
        _error("Transfer Failed", f"Failed to create fund transfer transaction: {event.error}")
    ]


def _proxy_transfer_requested(state: MigrationState, event: ProxyTransferRequested) -> Transition:
    if not _at(state, MigrationStep.PROXY_TRANSFER) or state.new_wallet_id is None:
        return state, []
    return state, [TransferProxies(new_wallet_id=state.new_wallet_id)]


def _proxies_transferred(state: MigrationState, event: ProxiesTransferred) -> Transition:
    if event.count:
        notice = _info(
            "Proxies Transferred",
            f"{event.count} proxy registration(s) moved to the new wallet.",
        )
    else:
        notice = _info("No Proxies", "There are no proxy registrations to transfer.")
    return state, [notice, PersistStep(step=MigrationStep.COMPLETE)]


def _proxy_transfer_failed(state: MigrationState, event: ProxyTransferFailed) -> Transition:
    return _update(state, error=event.error), [
        _error("Transfer Failed", f"Failed to transfer proxy registrations: {event.error}")
    ]


def _complete_requested(state: MigrationState, event: CompleteRequested) -> Transition:
    if not _at(state, MigrationStep.COMPLETE):
        return state, []
    return state, [CompleteMigration()]


def _migration_completed(state: MigrationState, event: MigrationCompleted) -> Transition:
    return state.with_record(event.record), [
        _info("Migration Complete", "The old wallet has been archived.")
    ]


def _completion_blocked(state: MigrationState, event: CompletionBlocked) -> Transition:
    return state, [_warning("Not yet", event.reason)]


def _completion_failed(state: MigrationState, event: CompletionFailed) -> Transition:
    return _update(state, error=event.error), [
        _error("Error", f"Failed to complete migration: {event.error}")
    ]


def _abort_requested(state: MigrationState, event: AbortRequested) -> Transition:
    if not state.can_abort:
        return state, []
    return state, [AbortMigration()]


def _abort_finished(state: MigrationState, event: AbortFinished) -> Transition:
    if not event.complete:
        return _update(state, error=event.summary), [_error("Abort incomplete", event.summary)]
    aborted = _update(
        _fresh(state),
        migration_id=state.migration_id,
        step=MigrationStep.ABORTED,
        status=MigrationStatus.ABORTED,
        flags=MigrationFlags(),
    )
    return aborted, [_info("Migration aborted", event.summary)]


def _step_persisted(state: MigrationState, event: StepPersisted) -> Transition:
    return state.with_record(event.record), []


def _step_persist_failed(state: MigrationState, event: StepPersistFailed) -> Transition:
    failed = _update(state, error=event.error)
    if event.step in (MigrationStep.PROXY_SETUP, MigrationStep.FUND_TRANSFER):
        failed = _with_flags(failed, finalize_attempted=False)
    return failed, [
        _error("Error", f"Could not save progress to {event.step.title}: {event.error}")
    ]


_HANDLERS: dict[type[Event], Callable[[MigrationState, Any], Transition]] = {
    Resumed: _resumed,
    StartRequested: _start_requested,
    LegacyContinueRequested: _legacy_continue,
    MigrationStarted: _migration_started,
    StartFailed: _start_failed,
    PreChecksCompleted: _prechecks_completed,
    DraftRequested: _draft_requested,
    DraftCreated: _draft_created,
    DraftFailed: _draft_failed,
    FinalizeRequested: _finalize_requested,
    WalletFinalized: _wallet_finalized,
    FinalizeFailed: _finalize_failed,
    ProxySetupFinished: _proxy_setup_finished,
    SweepRequested: _sweep_requested,
    SweepInitiated: _sweep_initiated,
    SweepFailed: _sweep_failed,
    ProxyTransferRequested: _proxy_transfer_requested,
    ProxiesTransferred: _proxies_transferred,
    ProxyTransferFailed: _proxy_transfer_failed,
    CompleteRequested: _complete_requested,
    MigrationCompleted: _migration_completed,
    CompletionBlocked: _completion_blocked,
    CompletionFailed: _completion_failed,
    AbortRequested: _abort_requested,
    AbortFinished: _abort_finished,
    StepPersisted: _step_persisted,
    StepPersistFailed: _step_persist_failed,
}
