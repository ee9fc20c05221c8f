"""Pre-migration check results."""

from enum import Enum

from pydantic import BaseModel, Field


class PreCheckStatus(str, Enum):
    """Outcome of a single pre-check."""

    LOADING = "loading"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class PreCheckResult(BaseModel):
    """Result of one pre-check. Never persisted."""

    status: PreCheckStatus = PreCheckStatus.LOADING
    message: str
    details: str | None = None

    @property
    def resolved(self) -> bool:
        return self.status != PreCheckStatus.LOADING


class PreCheckReport(BaseModel):
    """The three pre-checks that gate wallet creation."""

    drep: PreCheckResult = Field(
        default_factory=lambda: PreCheckResult(message="Checking DRep registration...")
    )
    staking: PreCheckResult = Field(
        default_factory=lambda: PreCheckResult(message="Checking staking registration...")
    )
    pending_transactions: PreCheckResult = Field(
        default_factory=lambda: PreCheckResult(message="Checking pending transactions...")
    )

    @property
    def results(self) -> list[PreCheckResult]:
        return [self.drep, self.staking, self.pending_transactions]

    @property
    def all_resolved(self) -> bool:
        return all(r.resolved for r in self.results)

    @property
    def has_errors(self) -> bool:
        return any(r.status == PreCheckStatus.ERROR for r in self.results)

    @property
    def has_warnings(self) -> bool:
        return any(r.status == PreCheckStatus.WARNING for r in self.results)

    @property
    def ready(self) -> bool:
        """Warnings are surfaced but do not block."""
        return self.all_resolved and not self.has_errors

    @property
    def summary(self) -> str | None:
        if not self.all_resolved:
            return None
        if self.has_errors:
            return "Some checks failed. Resolve these issues before proceeding with migration."
        if self.has_warnings:
            return (
                "Some warnings were found. You can proceed, but consider addressing "
                "these items after migration."
            )
        return None
