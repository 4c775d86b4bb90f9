"""Error taxonomy shared by the recorder, store, analysis and exporters.

Caller misuse (unknown ids, double destroy) never raises; it is logged and
kept as a ``ValidationWarning`` on the store. Everything below is raised.
"""

from __future__ import annotations

from typing import Optional, Sequence


class BorrowTraceError(RuntimeError):
    """Base class for tracker failures surfaced to callers."""


class CycleError(BorrowTraceError):
    """Raised when an operation that assumes acyclicity meets a cycle."""

    def __init__(self, message: str, cycle: Sequence[int] = ()) -> None:
        super().__init__(message)
        self.cycle = tuple(cycle)


class SerializationError(BorrowTraceError):
    """Base class for encoder and decoder failures."""


class ExportError(SerializationError):
    """Raised when an export cannot be produced in full."""


class ImportFormatError(SerializationError):
    """Raised when an exported document cannot be read back."""


class LockUnavailable(BorrowTraceError):
    """Raised when a bounded-wait lock acquisition times out."""

    def __init__(
        self, operation: str, timeout: Optional[float] = None
    ) -> None:
        if timeout is None:
            message = f"Lock unavailable for '{operation}'"
        else:
            message = (
                f"Lock unavailable for '{operation}' "
                f"after waiting {timeout:.3f}s"
            )
        super().__init__(message)
        self.operation = operation
        self.timeout = timeout


class ExportStoreError(BorrowTraceError):
    """Raised when persisting or loading an exported document fails."""
