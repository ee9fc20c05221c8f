"""Migration record models and the step state machine."""

from datetime import datetime
from enum import Enum, IntEnum
from uuid import uuid4

from pydantic import BaseModel, Field


class MigrationStep(IntEnum):
    """Workflow steps, in order. ABORTED is an out-of-band terminal."""

    ABORTED = -1
    PRE_CHECKS = 0
    CREATE_WALLET = 1
    PROXY_SETUP = 2
    FUND_TRANSFER = 3
    PROXY_TRANSFER = 4
    COMPLETE = 5

    @property
    def title(self) -> str:
        """Human-readable step name."""
        titles = {
            MigrationStep.ABORTED: "Aborted",
            MigrationStep.PRE_CHECKS: "Pre-Checks",
            MigrationStep.CREATE_WALLET: "Create New Wallet",
            MigrationStep.PROXY_SETUP: "Proxy Setup",
            MigrationStep.FUND_TRANSFER: "Transfer Funds",
            MigrationStep.PROXY_TRANSFER: "Transfer Proxies",
            MigrationStep.COMPLETE: "Complete",
        }
        return titles[self]

    def can_advance_to(self, next_step: "MigrationStep") -> bool:
        """Check a transition against the state machine."""
        if next_step == MigrationStep.ABORTED:
            return self != MigrationStep.ABORTED
        return next_step in _FORWARD.get(self, frozenset())


_FORWARD: dict[MigrationStep, frozenset[MigrationStep]] = {
    MigrationStep.PRE_CHECKS: frozenset({MigrationStep.CREATE_WALLET}),
    # Wallets that already have proxies skip PROXY_SETUP.
    MigrationStep.CREATE_WALLET: frozenset(
        {MigrationStep.PROXY_SETUP, MigrationStep.FUND_TRANSFER}
    ),
    MigrationStep.PROXY_SETUP: frozenset({MigrationStep.FUND_TRANSFER}),
    MigrationStep.FUND_TRANSFER: frozenset({MigrationStep.PROXY_TRANSFER}),
    MigrationStep.PROXY_TRANSFER: frozenset({MigrationStep.COMPLETE}),
}


class MigrationStatus(str, Enum):
    """Migration record status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        """Completed and aborted records are closed."""
        return self in (MigrationStatus.COMPLETED, MigrationStatus.ABORTED)


class MigrationSnapshot(BaseModel):
    """Original wallet identity captured when the migration starts."""

    name: str
    description: str = ""


class MigrationData(BaseModel):
    """Free-form progress data attached to a migration record."""

    transfer_tx_id: str | None = None
    transfer_initiated_at: datetime | None = None
    error_message: str | None = None


class MigrationRecord(BaseModel):
    """One migration attempt for an original wallet."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    original_wallet_id: str
    owner_address: str
    current_step: MigrationStep = MigrationStep.PRE_CHECKS
    status: MigrationStatus = MigrationStatus.PENDING
    new_wallet_id: str | None = None
    snapshot: MigrationSnapshot
    data: MigrationData = Field(default_factory=MigrationData)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Pending and in-progress records are active."""
        return not self.status.is_terminal

    @property
    def transfer_initiated(self) -> bool:
        """Whether the sweep transaction was handed to the submitter."""
        return self.data.transfer_tx_id is not None
