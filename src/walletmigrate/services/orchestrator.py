"""Migration orchestrator: runs workflow effects against the stores."""

import asyncio
import json
import logging
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from walletmigrate.config import AppConfig, get_config
from walletmigrate.errors import (
    CompletionBlockedError,
    InvalidTransitionError,
    MigrationConflictError,
    MigrationError,
    MutationError,
    NotFoundError,
    WalletConfigError,
)
from walletmigrate.models.migration import MigrationSnapshot, MigrationStatus, MigrationStep
from walletmigrate.models.precheck import PreCheckReport, PreCheckResult
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
    MigrationStarted,
    MigrationState,
    Notify,
    NoticeLevel,
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
from walletmigrate.models.transaction import PendingTransaction, TransactionState
from walletmigrate.models.wallet import DraftWallet, ScriptType, Wallet, WalletConfig
from walletmigrate.services.database import Database
from walletmigrate.services.interfaces import (
    LedgerQuery,
    ScriptDeriver,
    TransactionBuilder,
    TransactionSubmitter,
)
from walletmigrate.services.migration_store import MigrationRecordStore
from walletmigrate.services.prechecks import PreCheckAggregator
from walletmigrate.services.proxy_registry import ProxyRegistry
from walletmigrate.services.sweep import CompletionGate, CompletionStatus, FundSweeper
from walletmigrate.services.transactions import PendingTransactionLog
from walletmigrate.services.wallet_store import DraftWalletStore, WalletStore
from walletmigrate.services.workflow import reduce

logger = logging.getLogger(__name__)

_FAILURE_EVENTS: dict[type[Effect], Callable[[Any, str], Event]] = {
    CreateRecord: lambda effect, error: StartFailed(error=error),
    PersistStep: lambda effect, error: StepPersistFailed(step=effect.step, error=error),
    CreateDraft: lambda effect, error: DraftFailed(error=error),
    FinalizeWallet: lambda effect, error: FinalizeFailed(error=error),
    SweepFunds: lambda effect, error: SweepFailed(error=error),
    TransferProxies: lambda effect, error: ProxyTransferFailed(error=error),
    CompleteMigration: lambda effect, error: CompletionFailed(error=error),
    AbortMigration: lambda effect, error: AbortFinished(
        complete=False, summary=f"Abort failed and can be retried: {error}"
    ),
}


class OutcomeStatus(str, Enum):
    """Result of one compensating action."""

    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


class CompensationOutcome(BaseModel):
    action: str
    status: OutcomeStatus
    detail: str = ""


class AbortReport(BaseModel):
    """Per-action outcome of an abort."""

    outcomes: list[CompensationOutcome] = Field(default_factory=list)
    funds_moved: bool = False

    @property
    def complete(self) -> bool:
        return all(o.status != OutcomeStatus.FAILED for o in self.outcomes)

    @property
    def failed(self) -> list[CompensationOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.FAILED]

    @property
    def summary(self) -> str:
        if not self.complete:
            actions = ", ".join(o.action for o in self.failed)
            return f"Some cleanup steps failed and can be retried: {actions}."
        if self.funds_moved:
            return (
                "Migration records were cleaned up, but funds were already sent to the "
                "new wallet and aborting cannot return them. The new wallet has been kept."
            )
        return "The migration was cancelled and all temporary data removed."


class MigrationOrchestrator:
    """Sequences one original wallet's migration.

    User intents go through :meth:`dispatch`; the workflow reducer decides the
    effects and this class runs them, feeding each outcome back as an event.
    Dispatches are serialized so a double click cannot interleave two runs.
    """

    def __init__(
        self,
        original_wallet_id: str,
        owner_address: str,
        *,
        records: MigrationRecordStore,
        drafts: DraftWalletStore,
        wallets: WalletStore,
        proxies: ProxyRegistry,
        transactions: PendingTransactionLog,
        ledger: LedgerQuery,
        deriver: ScriptDeriver,
        builder: TransactionBuilder,
        submitter: TransactionSubmitter,
        config: AppConfig | None = None,
        notifier: Callable[[Notify], None] | None = None,
    ) -> None:
        self._config = config or get_config()
        self._records = records
        self._drafts = drafts
        self._wallets = wallets
        self._proxies = proxies
        self._transactions = transactions
        self._ledger = ledger
        self._deriver = deriver
        self._prechecks = PreCheckAggregator(ledger, deriver, transactions, proxies, self._config)
        self._sweeper = FundSweeper(ledger, builder, submitter, transactions, self._config)
        self._gate = CompletionGate(ledger, transactions, self._config)
        self._notifier = notifier
        self._lock = asyncio.Lock()
        self._state = MigrationState(
            original_wallet_id=original_wallet_id, owner_address=owner_address
        )
        self.notifications: list[Notify] = []
        self.last_report: PreCheckReport | None = None
        self.last_completion: CompletionStatus | None = None
        self.last_abort: AbortReport | None = None

        self._effects: dict[type[Effect], Callable[[Effect], Awaitable[Event | None]]] = {
            CreateRecord: self._create_record,
            PersistStep: self._persist_step,
            CreateDraft: self._create_draft,
            FinalizeWallet: self._finalize_wallet,
            SweepFunds: self._sweep_funds,
            TransferProxies: self._transfer_proxies,
            CompleteMigration: self._complete_migration,
            AbortMigration: self._abort_migration,
            Notify: self._notify,
        }

    @classmethod
    def create(
        cls,
        db: Database,
        original_wallet_id: str,
        owner_address: str,
        *,
        ledger: LedgerQuery,
        deriver: ScriptDeriver,
        builder: TransactionBuilder,
        submitter: TransactionSubmitter,
        config: AppConfig | None = None,
        notifier: Callable[[Notify], None] | None = None,
    ) -> "MigrationOrchestrator":
        """Wire an orchestrator to the stores of one database."""
        return cls(
            original_wallet_id,
            owner_address,
            records=MigrationRecordStore(db),
            drafts=DraftWalletStore(db),
            wallets=WalletStore(db),
            proxies=ProxyRegistry(db),
            transactions=PendingTransactionLog(db),
            ledger=ledger,
            deriver=deriver,
            builder=builder,
            submitter=submitter,
            config=config,
            notifier=notifier,
        )

    @property
    def state(self) -> MigrationState:
        return self._state

    async def dispatch(self, event: Event) -> MigrationState:
        """Apply an event and run effects until the workflow settles."""
        async with self._lock:
            await self._drain(event)
        return self._state

    async def _drain(self, event: Event | None) -> None:
        queue: deque[Event] = deque([event] if event is not None else [])
        while queue:
            current = queue.popleft()
            self._state, effects = reduce(self._state, current)
            for effect in effects:
                follow_up = await self._run_effect(effect)
                if follow_up is not None:
                    queue.append(follow_up)

    async def _run_effect(self, effect: Effect) -> Event | None:
        """Run one effect; an unexpected error becomes its failure event."""
        try:
            return await self._effects[type(effect)](effect)
        except Exception as e:
            failure = _FAILURE_EVENTS.get(type(effect))
            if failure is None:
                raise
            logger.exception("%s failed unexpectedly", type(effect).__name__)
            return failure(effect, str(e) or type(e).__name__)

    # User intents

    async def mount(self) -> MigrationState:
        """Restore an open migration for this wallet, or surface a legacy pointer."""
        pending = await self._records.get_pending_migrations(self._state.owner_address)
        for record in pending:
            if record.original_wallet_id == self._state.original_wallet_id:
                draft = await self._drafts.find_by_migration(record.id)
                return await self.dispatch(
                    Resumed(record=record, draft_id=draft.id if draft else None)
                )

        original = await self._wallets.get_by_id(self._state.original_wallet_id)
        if original is not None and original.migration_target_wallet_id:
            return await self.dispatch(
                Resumed(legacy_target_id=original.migration_target_wallet_id)
            )
        return await self.dispatch(Resumed())

    async def start_migration(self) -> MigrationState:
        return await self.dispatch(StartRequested())

    async def continue_legacy(self) -> MigrationState:
        return await self.dispatch(LegacyContinueRequested())

    async def advance(
        self, next_step: MigrationStep, target_wallet_id: str | None = None
    ) -> MigrationState:
        """Persist a step change directly. Illegal transitions raise before any write."""
        if not self._state.started:
            raise InvalidTransitionError("No migration has been started")
        if not self._state.step.can_advance_to(next_step):
            raise InvalidTransitionError(
                f"Cannot move from {self._state.step.title} to {next_step.title}"
            )
        async with self._lock:
            event = await self._run_effect(
                PersistStep(step=next_step, new_wallet_id=target_wallet_id)
            )
            await self._drain(event)
        return self._state

    async def run_prechecks(
        self, on_result: Callable[[str, PreCheckResult], None] | None = None
    ) -> PreCheckReport:
        """Run the pre-checks, reporting each result as soon as it resolves."""
        original = await self._require_original()
        report = PreCheckReport()
        async for name, result in self._prechecks.iter_results(original):
            report = report.model_copy(update={name: result})
            if on_result is not None:
                on_result(name, result)
        self.last_report = report
        return report

    async def continue_to_wallet_creation(self) -> MigrationState:
        return await self.dispatch(PreChecksCompleted(report=self.last_report or PreCheckReport()))

    async def original_wallet(self) -> Wallet:
        return await self._require_original()

    async def prefill(self) -> WalletConfig:
        """Draft configuration derived from the original wallet."""
        return (await self._require_original()).migration_prefill()

    async def create_draft(self, config: WalletConfig | None = None) -> MigrationState:
        if config is None:
            config = await self.prefill()
        return await self.dispatch(DraftRequested(config=config))

    async def draft(self) -> DraftWallet | None:
        if self._state.draft_id is None:
            return None
        return await self._drafts.get_new_wallet(self._state.draft_id)

    def invite_link(self) -> str | None:
        if self._state.draft_id is None:
            return None
        base_url = self._config.ui.invite_base_url.rstrip("/")
        return f"{base_url}/wallets/invite/{self._state.draft_id}"

    async def add_signer(self, address: str, description: str = "") -> DraftWallet:
        return await self._drafts.add_signer(self._require_draft_id(), address, description)

    async def remove_signer(self, index: int) -> DraftWallet:
        return await self._drafts.remove_signer(self._require_draft_id(), index)

    async def set_required_signers(self, count: int) -> DraftWallet:
        return await self._drafts.set_required_signers(self._require_draft_id(), count)

    async def set_stake_credential(self, credential_hash: str) -> DraftWallet:
        return await self._drafts.set_stake_credential(self._require_draft_id(), credential_hash)

    async def clear_stake_credential(self) -> DraftWallet:
        return await self._drafts.clear_stake_credential(self._require_draft_id())

    async def set_script_type(self, script_type: ScriptType) -> DraftWallet:
        return await self._drafts.set_script_type(self._require_draft_id(), script_type)

    @property
    def poll_interval(self) -> float:
        return self._config.performance.completion_poll_interval_seconds

    async def finalize(self) -> MigrationState:
        return await self.dispatch(FinalizeRequested())

    async def finish_proxy_setup(self, skipped: bool = False) -> MigrationState:
        return await self.dispatch(ProxySetupFinished(skipped=skipped))

    async def transfer_funds(self) -> MigrationState:
        return await self.dispatch(SweepRequested())

    async def transfer_proxies(self) -> MigrationState:
        return await self.dispatch(ProxyTransferRequested())

    async def transfer_transaction(self) -> PendingTransaction | None:
        """The sweep transaction of this migration, if one was built."""
        if self._state.transfer_tx_id is None:
            return None
        return await self._transactions.get(self._state.transfer_tx_id)

    async def sign_transfer(self) -> PendingTransaction:
        """Sign the sweep with the local key again, e.g. after a signing failure."""
        async with self._lock:
            tx_id = self._require_transfer_id()
            return await self._sweeper.sign(tx_id, await self._require_original())

    async def add_cosignature(self, signer_address: str, tx_cbor: str) -> PendingTransaction:
        """Record a co-signer's witnessed sweep; submits once the threshold is met."""
        async with self._lock:
            tx_id = self._require_transfer_id()
            return await self._sweeper.add_signature(
                tx_id, signer_address, tx_cbor, await self._require_original()
            )

    async def record_submission(self, tx_hash: str) -> PendingTransaction:
        """Record a sweep that was broadcast outside this application."""
        async with self._lock:
            return await self._sweeper.record_submission(self._require_transfer_id(), tx_hash)

    async def export_transfer(self, directory: Path | None = None) -> Path:
        """Write the sweep as a text envelope file for the co-signers."""
        tx = await self.transfer_transaction()
        if tx is None:
            raise NotFoundError("No fund transfer has been created")
        directory = directory or self._config.ui.export_dir
        path = directory / f"migration-transfer-{tx.id}.json"
        try:
            directory.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(tx.text_envelope(), indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise MutationError(f"Could not export the transfer to {path}: {e}") from e
        logger.info("Exported transfer %s to %s", tx.id, path)
        return path

    async def completion_status(self) -> CompletionStatus:
        status = await self._gate.check(await self._require_original())
        self.last_completion = status
        return status

    async def watch_completion(self, interval: float | None = None) -> AsyncIterator[CompletionStatus]:
        """Poll the completion gate until it opens."""
        original = await self._require_original()
        async for status in self._gate.watch(original, interval):
            self.last_completion = status
            yield status

    async def complete(self) -> MigrationState:
        return await self.dispatch(CompleteRequested())

    async def abort(self) -> AbortReport | None:
        """Run every compensating action. Returns None if abort was not available."""
        self.last_abort = None
        await self.dispatch(AbortRequested())
        return self.last_abort

    # Effects

    async def _notify(self, effect: Notify) -> None:
        log = logger.warning if effect.level != NoticeLevel.INFO else logger.info
        log("%s: %s", effect.title, effect.message)
        self.notifications.append(effect)
        if self._notifier is not None:
            self._notifier(effect)
        return None

    async def _create_record(self, effect: CreateRecord) -> Event:
        try:
            original = await self._require_original()
            pointer = effect.legacy_target_id or original.migration_target_wallet_id
            record = await self._records.create_migration(
                original.id,
                self._state.owner_address,
                MigrationSnapshot(name=original.name, description=original.description),
                current_step=(
                    MigrationStep.CREATE_WALLET if pointer else MigrationStep.PRE_CHECKS
                ),
                new_wallet_id=pointer,
            )
        except MigrationConflictError as e:
            if e.existing.owner_address != self._state.owner_address:
                return StartFailed(error="Another owner already has a migration open for this wallet")
            logger.info("Reusing open migration %s", e.existing.id)
            return MigrationStarted(record=e.existing, reused=True)
        except MigrationError as e:
            return StartFailed(error=str(e))
        return MigrationStarted(record=record)

    async def _persist_step(self, effect: PersistStep) -> Event:
        migration_id = self._state.migration_id
        if migration_id is None:
            return StepPersistFailed(step=effect.step, error="No migration has been started")
        if not self._state.step.can_advance_to(effect.step):
            return StepPersistFailed(
                step=effect.step,
                error=f"Cannot move from {self._state.step.title} to {effect.step.title}",
            )
        try:
            record = await self._records.update_migration_step(
                migration_id,
                effect.step,
                status=MigrationStatus.IN_PROGRESS,
                new_wallet_id=effect.new_wallet_id,
            )
        except MigrationError as e:
            logger.warning("Could not persist step %s: %s", effect.step.name, e)
            return StepPersistFailed(step=effect.step, error=str(e))
        logger.info("Migration %s moved to %s", migration_id, effect.step.name)
        return StepPersisted(record=record)

    async def _create_draft(self, effect: CreateDraft) -> Event:
        migration_id = self._state.migration_id
        try:
            existing = await self._drafts.find_by_migration(migration_id)
            if existing is not None:
                return DraftCreated(draft_id=existing.id, reused=True)
            draft = await self._drafts.create_new_wallet(
                effect.config, self._state.owner_address, migration_id
            )
        except MigrationError as e:
            return DraftFailed(error=str(e))
        return DraftCreated(draft_id=draft.id)

    async def _finalize_wallet(self, effect: FinalizeWallet) -> Event:
        migration_id = self._state.migration_id
        try:
            original = await self._require_original()
            existing = await self._existing_target(original)
            if existing is not None:
                await self._bind_target(original, existing)
                return WalletFinalized(
                    wallet_id=existing.id,
                    has_proxies=await self._has_proxies(original),
                    reused=True,
                )

            draft = None
            if effect.draft_id is not None:
                draft = await self._drafts.get_new_wallet(effect.draft_id)
            if draft is None:
                draft = await self._drafts.find_by_migration(migration_id)
            if draft is None and self._state.new_wallet_id:
                draft = await self._drafts.get_new_wallet(self._state.new_wallet_id)
            if draft is None:
                return FinalizeFailed(error="There is no wallet configuration to finalize")

            config = WalletConfig.from_record(draft)
            problems = config.validation_problems()
            if problems:
                raise WalletConfigError(problems)
            script = await self._deriver.derive(config, self._config.ledger.network)
            wallet = await self._wallets.create_wallet(
                config, script, self._state.owner_address, migration_id
            )
            await self._bind_target(original, wallet)
            await self._drafts.delete_new_wallet(draft.id)
        except MigrationError as e:
            logger.warning("Finalizing wallet failed: %s", e)
            return FinalizeFailed(error=str(e))
        return WalletFinalized(wallet_id=wallet.id, has_proxies=await self._has_proxies(original))

    async def _sweep_funds(self, effect: SweepFunds) -> Event:
        migration_id = self._state.migration_id
        try:
            record = await self._records.get_migration(migration_id)
            if record is not None and record.data.transfer_tx_id:
                logger.info("Sweep already initiated as %s", record.data.transfer_tx_id)
                return SweepInitiated(tx_id=record.data.transfer_tx_id)
            original = await self._require_original()
            target = await self._wallets.get_by_id(effect.new_wallet_id)
            if target is None:
                raise NotFoundError(f"New wallet not found: {effect.new_wallet_id}")
            result = await self._sweeper.sweep(original, target)
            if result.transaction is None:
                return SweepInitiated()
            try:
                await self._records.update_migration_data(
                    migration_id,
                    transfer_tx_id=result.transaction.id,
                    transfer_initiated_at=datetime.now(),
                )
            except MigrationError:
                await self._transactions.mark_rejected(result.transaction.id)
                raise
        except MigrationError as e:
            logger.warning("Sweep failed: %s", e)
            return SweepFailed(error=str(e))

        tx_id = result.transaction.id
        try:
            signed = await self._sweeper.sign(tx_id, original)
        except MigrationError as e:
            logger.warning("Could not sign sweep %s locally: %s", tx_id, e)
            return SweepInitiated(tx_id=tx_id, input_count=result.input_count, sign_error=str(e))
        return SweepInitiated(
            tx_id=tx_id,
            input_count=result.input_count,
            submitted=signed.state == TransactionState.SUBMITTED,
        )

    async def _transfer_proxies(self, effect: TransferProxies) -> Event:
        try:
            count = await self._proxies.transfer_proxies(
                self._state.original_wallet_id, effect.new_wallet_id
            )
        except MigrationError as e:
            return ProxyTransferFailed(error=str(e))
        return ProxiesTransferred(count=count)

    async def _complete_migration(self, effect: CompleteMigration) -> Event:
        try:
            original = await self._require_original()
            self.last_completion = await self._gate.ensure_ready(original)
            if original.migration_target_wallet_id:
                await self._wallets.clear_migration_target(original.id)
            if not original.is_archived:
                await self._wallets.archive_wallet(original.id)
        except CompletionBlockedError as e:
            self.last_completion = e.status
            return CompletionBlocked(reason=str(e))
        except MigrationError as e:
            logger.warning("Completing migration failed: %s", e)
            return CompletionFailed(error=str(e))

        try:
            record = await self._records.complete_migration(self._state.migration_id)
        except MigrationError as e:
            logger.warning("Original %s archived but the record stayed open: %s", original.id, e)
            return CompletionFailed(
                error=f"The original wallet was archived but the migration record "
                f"could not be closed ({e}). Retry to finish."
            )
        return MigrationCompleted(record=record)

    async def _abort_migration(self, effect: AbortMigration) -> Event:
        report = await self._compensate()
        self.last_abort = report
        for outcome in report.outcomes:
            logger.info("Abort %s: %s %s", outcome.action, outcome.status.value, outcome.detail)
        return AbortFinished(complete=report.complete, summary=report.summary)

    # Abort compensation

    async def _compensate(self) -> AbortReport:
        """Run each compensating action in order, isolating failures."""
        state = self._state
        transfer_tx_id = state.transfer_tx_id
        if transfer_tx_id is None and state.migration_id is not None:
            record = await self._records.get_migration(state.migration_id)
            if record is not None:
                transfer_tx_id = record.data.transfer_tx_id
        transfer = await self._transactions.get(transfer_tx_id) if transfer_tx_id else None
        report = AbortReport(
            funds_moved=transfer is not None and transfer.state == TransactionState.SUBMITTED
        )
        actions = [
            ("Cancel pending transfer", lambda: self._reject_transfer(transfer)),
            ("Delete draft wallet", self._drop_draft),
            ("Delete new wallet", lambda: self._drop_new_wallet(report)),
            ("Clear migration pointer", self._clear_pointer),
            ("Cancel migration record", self._cancel_record),
        ]
        for name, action in actions:
            try:
                status, detail = await action()
            except Exception as e:
                logger.exception("Abort action %r failed", name)
                status, detail = OutcomeStatus.FAILED, str(e)
            report.outcomes.append(CompensationOutcome(action=name, status=status, detail=detail))
        return report

    async def _reject_transfer(
        self, transfer: PendingTransaction | None
    ) -> tuple[OutcomeStatus, str]:
        if transfer is None:
            return OutcomeStatus.SKIPPED, "No fund transfer"
        current = await self._transactions.get(transfer.id)
        if current is None or not current.is_pending:
            label = current.state.value if current is not None else "gone"
            return OutcomeStatus.SKIPPED, f"Transfer {transfer.id} is {label}"
        await self._transactions.mark_rejected(transfer.id)
        return OutcomeStatus.DONE, transfer.id

    async def _drop_draft(self) -> tuple[OutcomeStatus, str]:
        draft_ids: set[str] = set()
        if self._state.draft_id is not None:
            draft_ids.add(self._state.draft_id)
        if self._state.migration_id is not None:
            draft = await self._drafts.find_by_migration(self._state.migration_id)
            if draft is not None:
                draft_ids.add(draft.id)
        if self._state.legacy_target_id and await self._drafts.get_new_wallet(
            self._state.legacy_target_id
        ):
            draft_ids.add(self._state.legacy_target_id)
        if not draft_ids:
            return OutcomeStatus.SKIPPED, "No draft wallet"
        for draft_id in draft_ids:
            await self._drafts.delete_new_wallet(draft_id)
        return OutcomeStatus.DONE, ", ".join(sorted(draft_ids))

    async def _drop_new_wallet(self, report: AbortReport) -> tuple[OutcomeStatus, str]:
        wallet = await self._existing_target(await self._require_original())
        if wallet is None:
            return OutcomeStatus.SKIPPED, "No new wallet"
        if not report.funds_moved and await self._ledger.fetch_address_utxos(wallet.address):
            report.funds_moved = True
        if report.funds_moved:
            await self._wallets.detach_from_migration(wallet.id)
            return OutcomeStatus.SKIPPED, f"Kept {wallet.id}: funds were already sent to it"
        moved = await self._proxies.transfer_proxies(wallet.id, self._state.original_wallet_id)
        if moved:
            logger.info("Returned %d proxies to %s", moved, self._state.original_wallet_id)
        await self._wallets.delete_wallet(wallet.id)
        return OutcomeStatus.DONE, wallet.id

    async def _clear_pointer(self) -> tuple[OutcomeStatus, str]:
        original = await self._require_original()
        if not original.migration_target_wallet_id:
            return OutcomeStatus.SKIPPED, "No pointer set"
        await self._wallets.clear_migration_target(original.id)
        return OutcomeStatus.DONE, ""

    async def _cancel_record(self) -> tuple[OutcomeStatus, str]:
        if self._state.migration_id is None:
            return OutcomeStatus.SKIPPED, "No migration record"
        record = await self._records.get_migration(self._state.migration_id)
        if record is not None and record.status == MigrationStatus.ABORTED:
            return OutcomeStatus.SKIPPED, "Already cancelled"
        await self._records.cancel_migration(self._state.migration_id)
        return OutcomeStatus.DONE, self._state.migration_id

    # Helpers

    def _require_transfer_id(self) -> str:
        if not self._state.started or self._state.is_terminal:
            raise InvalidTransitionError("No migration is in progress")
        if self._state.transfer_tx_id is None:
            raise NotFoundError("No fund transfer has been created")
        return self._state.transfer_tx_id

    def _require_draft_id(self) -> str:
        if self._state.draft_id is None:
            raise NotFoundError("No temporary wallet has been created")
        return self._state.draft_id

    async def _require_original(self) -> Wallet:
        wallet = await self._wallets.get_wallet(
            self._state.owner_address, self._state.original_wallet_id
        )
        if wallet is None:
            raise NotFoundError(f"Wallet not found: {self._state.original_wallet_id}")
        return wallet

    async def _existing_target(self, original: Wallet) -> Wallet | None:
        """The committed new wallet, located by state, pointer, or migration id."""
        for wallet_id in (
            self._state.new_wallet_id,
            original.migration_target_wallet_id,
            self._state.legacy_target_id,
        ):
            if wallet_id:
                wallet = await self._wallets.get_by_id(wallet_id)
                if wallet is not None:
                    return wallet
        if self._state.migration_id is None:
            return None
        return await self._wallets.find_by_migration(self._state.migration_id)

    async def _bind_target(self, original: Wallet, target: Wallet) -> None:
        """Point the original at the new wallet and drop the superseded draft."""
        if original.migration_target_wallet_id != target.id:
            await self._wallets.set_migration_target(original.id, target.id)
        if self._state.migration_id is not None:
            draft = await self._drafts.find_by_migration(self._state.migration_id)
            if draft is not None:
                await self._drafts.delete_new_wallet(draft.id)

    async def _has_proxies(self, original: Wallet) -> bool:
        return bool(await self._proxies.get_proxies_by_wallet(original.id))
