"""
Exception types for the bond tracker pipeline.

Fetch-level and write-level errors are fatal to a run. Field-level errors
are recovered by dropping the affected record.
"""

from typing import Any


class BondTrackerError(Exception):
    """Base class for all bond tracker errors."""


class NetworkError(BondTrackerError):
    """Raised when a page cannot be fetched.

    Covers connection and DNS failures, per-request timeouts and any
    non-redirect response outside the 2xx range.

    Attributes:
        url: The URL that failed.
        reason: Human-readable failure reason.
        status_code: HTTP status code, when a response was received.
    """

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        self.message = f"Fetching {url} failed: {reason}"
        super().__init__(self.message)


class RedirectLoopError(NetworkError):
    """Raised when a redirect chain is longer than the configured limit."""

    def __init__(self, url: str, max_redirects: int) -> None:
        self.max_redirects = max_redirects
        super().__init__(url, f"more than {max_redirects} redirects")


class RunTimeoutError(NetworkError):
    """Raised when a whole pipeline run exceeds its wall-clock budget."""

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__("<pipeline>", f"run exceeded {timeout_seconds}s")


class MalformedFieldError(BondTrackerError):
    """Raised when a field matched structurally but failed validation.

    Attributes:
        field: Name of the field being converted.
        raw_value: The text that was matched.
        reason: Why the value was rejected.
    """

    def __init__(self, field: str, raw_value: Any, reason: str) -> None:
        self.field = field
        self.raw_value = raw_value
        self.reason = reason
        self.message = f"Malformed {field} {raw_value!r}: {reason}"
        super().__init__(self.message)


class SnapshotWriteError(BondTrackerError):
    """Raised when the snapshot cannot be persisted."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        self.message = f"Writing snapshot to {path} failed: {reason}"
        super().__init__(self.message)


class BondTrackerWarning(UserWarning):
    """Base class for non-fatal pipeline signals."""


class ExtractionEmptyResult(BondTrackerWarning):
    """Emitted when a family's page produced zero records.

    This usually means the upstream markup changed. It does not abort
    the run.
    """

    def __init__(self, family: str, url: str) -> None:
        self.family = family
        self.url = url
        super().__init__(f"No {family} records extracted from {url}")
