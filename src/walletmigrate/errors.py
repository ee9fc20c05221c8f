"""Exception types raised by the migration services."""

from typing import Any


class MigrationError(Exception):
    """Base class for migration failures. All of them are recoverable."""


class WalletConfigError(MigrationError):
    """A wallet configuration is incomplete or inconsistent.

    Raised before any store or network call is made.
    """

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


class QueryError(MigrationError):
    """A ledger, registry or toolchain read failed."""


class MutationError(MigrationError):
    """A store write failed."""


class NotFoundError(MigrationError, KeyError):
    """A mutation referenced an unknown record."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Not found"


class PermissionDeniedError(MigrationError):
    """The requester does not own the record."""


class MigrationConflictError(MigrationError):
    """A non-terminal migration already exists for the original wallet."""

    def __init__(self, existing: Any) -> None:
        super().__init__(
            f"Wallet {existing.original_wallet_id} already has migration {existing.id} "
            f"in status {existing.status.value}"
        )
        self.existing = existing


class InvalidTransitionError(MigrationError):
    """A step change is not allowed by the state machine."""


class CompletionBlockedError(MigrationError):
    """The original wallet still holds value or has transactions in flight."""

    def __init__(self, status: Any) -> None:
        super().__init__(status.blocking_reason or "Completion is blocked")
        self.status = status
