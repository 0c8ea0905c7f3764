"""
GeocodeHub — Custom Exception Hierarchy
========================================
Every error the geocoder raises on purpose comes from here; catch
``GeocodeHubError`` for all of them or a subclass for one kind.

Hierarchy::

    GeocodeHubError                      ← catch-all base
    ├── InputValidationError             ← null / empty arguments, bad files
    │   └── ColumnNotFoundError          ← CSV column missing
    ├── ConfigurationError               ← API key or settings unavailable
    ├── GeocodingError                   ← anything the provider round-trip raises
    │   ├── TransportError               ← HTTP failure / non-success status
    │   │   └── GeocodingRateLimitError  ← HTTP 429 from the provider
    │   ├── ProviderError                ← response received but unusable
    │   ├── MalformedResultError         ← batch result row has the wrong shape
    │   ├── BatchJobInterruptedError     ← polling cancelled or timed out
    │   └── BatchJobFailedError          ← job ended failed / cancelled / deleted
    └── OutputWriteError                 ← cannot write to output path

Usage::

    from shared.python.exceptions import ProviderError

    raise ProviderError("Batch submission response has no <RequestId> element")
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class GeocodeHubError(Exception):
    """Root of the hierarchy.  ``message`` holds the text shown to users."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InputValidationError(GeocodeHubError):
    """Raised when a caller supplies a missing or empty required argument.

    Always raised before any network activity takes place.
    """


class ColumnNotFoundError(InputValidationError):
    """A column configured for the CSV tool is not in the file.

    Args:
        column: Configured column name.
        available: Header of the file, listed in the message.

    Example::

        raise ColumnNotFoundError("postal_code", df.columns.tolist())
    """

    def __init__(self, column: str, available: list[str]) -> None:
        super().__init__(f"CSV has no column {column!r}; header is {list(available)}")
        self.column = column
        self.available = list(available)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(GeocodeHubError):
    """Raised when a required setting (e.g. the HERE API key) is unavailable."""


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------


class GeocodingError(GeocodeHubError):
    """Raised when a geocoding operation fails for any reason.

    Subclass this for transport, provider and batch-job errors.
    """


class TransportError(GeocodingError):
    """Raised when an HTTP call cannot complete or returns a non-success status.

    Args:
        message: Human-readable description of the failure.
        url: The endpoint that was called (without the query string).
        status_code: HTTP status returned, or ``None`` for connection-level
                     failures (DNS, refused connection, timeout).
        transient: ``True`` when repeating the same request may succeed
                   (connection failure, timeout, HTTP 408 or 5xx).
    """

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.url: str | None = url
        self.status_code: int | None = status_code
        self.transient: bool = transient


class GeocodingRateLimitError(TransportError):
    """HTTP 429.  Not retried automatically.

    Args:
        provider: Service name, e.g. ``"HERE"``.
        retry_after: ``Retry-After`` header in seconds, ``None`` when absent.
        url: The endpoint that was rate limited.

    Example::

        raise GeocodingRateLimitError("HERE", retry_after=60)
    """

    def __init__(
        self,
        provider: str,
        retry_after: int | None = None,
        *,
        url: str | None = None,
    ) -> None:
        wait = f"; retry in {retry_after}s" if retry_after is not None else ""
        super().__init__(
            f"{provider} rejected the request with HTTP 429{wait}",
            url=url,
            status_code=429,
        )
        self.provider = provider
        self.retry_after = retry_after


class ProviderError(GeocodingError):
    """Raised when the provider answered but the payload is structurally unexpected.

    Examples: XML without the expected element, an empty result archive,
    a body that is not valid JSON.  Never retried.
    """


class MalformedResultError(GeocodingError):
    """Raised when a batch result row does not have the expected number of fields.

    A shape violation means the result schema changed, so the whole decode
    is aborted rather than skipping the row.

    Args:
        line_number: 1-based line number inside the result file.
        line: The offending raw line.
        field_count: Number of fields the line split into.
        expected: Number of fields required.
    """

    def __init__(self, line_number: int, line: str, field_count: int, expected: int) -> None:
        super().__init__(
            f"Result line {line_number} has {field_count} field(s), "
            f"expected {expected}: {line!r}"
        )
        self.line_number: int = line_number
        self.line: str = line
        self.field_count: int = field_count
        self.expected: int = expected


class BatchJobInterruptedError(GeocodingError):
    """Raised when waiting for a batch job is abandoned before a terminal status.

    Args:
        job_id: Provider-issued identifier of the job being polled.
        reason: ``"cancelled"`` or ``"timed out"``.
    """

    def __init__(self, job_id: str, reason: str) -> None:
        super().__init__(f"Waiting for batch job {job_id} was {reason}")
        self.job_id: str = job_id
        self.reason: str = reason


class BatchJobFailedError(GeocodingError):
    """Raised by :meth:`BatchOutcome.raise_for_status` for a job that did not complete.

    Args:
        job_id: Provider-issued identifier of the job.
        status: The terminal status the job ended in.
    """

    def __init__(self, job_id: str | None, status: str) -> None:
        super().__init__(f"Batch job {job_id} finished without completing: {status}")
        self.job_id: str | None = job_id
        self.status: str = status


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class OutputWriteError(GeocodeHubError):
    """The GeoJSON output (or its folder) could not be written.

    Args:
        output_path: Target path as text.
        reason: Text of the underlying ``OSError``.
    """

    def __init__(self, output_path: str, reason: str) -> None:
        super().__init__(f"Cannot write {output_path}: {reason}")
        self.output_path = output_path
        self.reason = reason
