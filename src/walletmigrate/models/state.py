"""Serializable migration state plus the events and effects that drive it.

The workflow reducer turns ``(state, event)`` into ``(state, effects)``; the
orchestrator runs each effect and feeds the outcome back as another event.
"""

from enum import Enum

from pydantic import BaseModel, Field

from walletmigrate.models.migration import MigrationRecord, MigrationStatus, MigrationStep
from walletmigrate.models.precheck import PreCheckReport
from walletmigrate.models.wallet import WalletConfig


class MigrationFlags(BaseModel):
    """One-shot guards. Fast paths only; the stores hold the truth."""

    draft_attempted: bool = False
    finalize_attempted: bool = False
    transfer_initiated: bool = False
    legacy_resume_available: bool = False


class MigrationState(BaseModel):
    """Everything the presentation layer needs to render a migration."""

    original_wallet_id: str
    owner_address: str
    migration_id: str | None = None
    step: MigrationStep = MigrationStep.PRE_CHECKS
    status: MigrationStatus | None = None
    new_wallet_id: str | None = None
    draft_id: str | None = None
    transfer_tx_id: str | None = None
    legacy_target_id: str | None = None
    flags: MigrationFlags = Field(default_factory=MigrationFlags)
    error: str | None = None

    @property
    def started(self) -> bool:
        return self.migration_id is not None

    @property
    def is_terminal(self) -> bool:
        return self.status is not None and self.status.is_terminal

    @property
    def can_abort(self) -> bool:
        """Abort stays available until the record is closed."""
        if self.is_terminal:
            return False
        return self.started or self.legacy_target_id is not None

    def with_record(self, record: MigrationRecord) -> "MigrationState":
        """Adopt the persisted record as the source of truth."""
        flags = self.flags.model_copy(
            update={
                "transfer_initiated": self.flags.transfer_initiated or record.transfer_initiated,
                "legacy_resume_available": False,
            }
        )
        return self.model_copy(
            update={
                "migration_id": record.id,
                "step": record.current_step,
                "status": record.status,
                "new_wallet_id": record.new_wallet_id,
                "transfer_tx_id": record.data.transfer_tx_id,
                "flags": flags,
                "error": None,
            }
        )


class NoticeLevel(str, Enum):
    """Severity of a user-visible notification."""

    INFO = "information"
    WARNING = "warning"
    ERROR = "error"


# Events


class Event(BaseModel):
    """Something that happened: a user intent or an effect outcome."""


class Resumed(Event):
    record: MigrationRecord | None = None
    draft_id: str | None = None
    legacy_target_id: str | None = None


class StartRequested(Event):
    pass


class LegacyContinueRequested(Event):
    pass


class MigrationStarted(Event):
    record: MigrationRecord
    reused: bool = False


class StartFailed(Event):
    error: str


class PreChecksCompleted(Event):
    report: PreCheckReport


class DraftRequested(Event):
    config: WalletConfig


class DraftCreated(Event):
    draft_id: str
    reused: bool = False


class DraftFailed(Event):
    error: str


class FinalizeRequested(Event):
    pass


class WalletFinalized(Event):
    wallet_id: str
    has_proxies: bool
    reused: bool = False


class FinalizeFailed(Event):
    error: str


class ProxySetupFinished(Event):
    skipped: bool = False


class SweepRequested(Event):
    pass


class SweepInitiated(Event):
    tx_id: str | None = None
    input_count: int = 0
    submitted: bool = False
    sign_error: str | None = None


class SweepFailed(Event):
    error: str


class ProxyTransferRequested(Event):
    pass


class ProxiesTransferred(Event):
    count: int


class ProxyTransferFailed(Event):
    error: str


class CompleteRequested(Event):
    pass


class MigrationCompleted(Event):
    record: MigrationRecord


class CompletionBlocked(Event):
    reason: str


class CompletionFailed(Event):
    error: str


class AbortRequested(Event):
    pass


class AbortFinished(Event):
    complete: bool
    summary: str


class StepPersisted(Event):
    record: MigrationRecord


class StepPersistFailed(Event):
    step: MigrationStep
    error: str


# Effects


class Effect(BaseModel):
    """Work the orchestrator must perform against the stores or services."""


class CreateRecord(Effect):
    legacy_target_id: str | None = None


class PersistStep(Effect):
    step: MigrationStep
    new_wallet_id: str | None = None


class CreateDraft(Effect):
    config: WalletConfig


class FinalizeWallet(Effect):
    draft_id: str | None = None


class SweepFunds(Effect):
    new_wallet_id: str


class TransferProxies(Effect):
    new_wallet_id: str


class CompleteMigration(Effect):
    pass


class AbortMigration(Effect):
    pass


class Notify(Effect):
    level: NoticeLevel = NoticeLevel.INFO
    title: str
    message: str
