"""
Error taxonomy for the core.

Errors fall into three families, and each family is handled at a
different place:

- ValidationError: bad or missing input. Raised before the store is
  touched; the caller corrects the input and tries again.
- StoreError: the persistent store failed. Write failures are caught at
  the call site and returned as a failed WriteResult so local state
  survives; read failures surface from subscriptions.
- ServiceUnavailable: the text-generation collaborator failed. Never
  reaches program or log code paths; degrades to a placeholder.
"""

from dataclasses import dataclass, field
from typing import Optional


class PlaybookError(Exception):
    """Base class for all errors raised by the core."""
    pass


class ValidationError(PlaybookError):
    """Raised when required input is missing or malformed."""
    pass


class InvalidEditError(ValidationError):
    """Raised when a local edit addresses a node that doesn't exist."""
    pass


class ConflictPendingError(ValidationError):
    """Raised when saving while a remote change has not been resolved."""
    pass


class StoreError(PlaybookError):
    """Base class for persistent store failures."""
    pass


class StoreWriteError(StoreError):
    """Raised when a write (set, add or batch) fails."""
    pass


class StoreReadError(StoreError):
    """Raised when a read or subscription fails."""
    pass


class ServiceUnavailable(PlaybookError):
    """Raised when the text-generation service can't produce a response."""
    pass


class ServiceRateLimited(ServiceUnavailable):
    """Raised when the text-generation service rejects us for rate limits."""
    pass


@dataclass(frozen=True)
class WriteResult:
    """
    Outcome of a save or commit.

    Store failures are reported through this value instead of being
    raised, so an edit buffer or staged buffer is never unwound by an
    exception it didn't cause.
    """
    ok: bool
    error: Optional[StoreWriteError] = None
    record_ids: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def success(cls, record_ids: tuple[str, ...] = ()) -> "WriteResult":
        return cls(ok=True, record_ids=tuple(record_ids))

    @classmethod
    def failure(cls, error: StoreWriteError) -> "WriteResult":
        return cls(ok=False, error=error)

    @property
    def message(self) -> str:
        return str(self.error) if self.error else ""
