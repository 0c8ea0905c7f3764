"""
HERE Geocoder — Data Model
===========================
Plain value types shared by the single-item and batch geocoders.

Classes:
    Coordinates     WGS84 latitude / longitude pair.
    Address         Flat bag of address fields.
    JobStatus       Lifecycle states of a provider batch job.
    BatchJob        Handle for one submitted batch job.
    BatchOutcome    What a batch call did with each request id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable

from shared.python.exceptions import BatchJobFailedError

RequestId = Hashable


@dataclass(frozen=True)
class Coordinates:
    """WGS84 coordinate pair in decimal degrees.

    A pair where both components are ``0.0`` is *empty*: it is what an unset
    value looks like and is never accepted as a geocoding result.
    """

    latitude: float = 0.0
    longitude: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.latitude == 0.0 and self.longitude == 0.0

    @staticmethod
    def is_null_or_empty(value: Coordinates | None) -> bool:
        """Return ``True`` for ``None`` or an empty pair."""
        return value is None or value.is_empty

    def to_geojson_point(self) -> dict[str, Any]:
        """GeoJSON ``Point`` geometry (longitude first)."""
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}


@dataclass(frozen=True)
class Address:
    """Postal address consumed as a flat set of fields.

    Attributes:
        street: Street line, e.g. ``"123 Main St"``.
        city: City or municipality.
        region: State / province.
        postal_code: ZIP or postal code.
        country: Country name or code, passed to the provider verbatim.
        label: Provider-formatted single-line address (reverse lookups only).
        coordinates: Position of the match (reverse lookups only).
    """

    street: str = ""
    city: str = ""
    region: str = ""
    postal_code: str = ""
    country: str = ""
    label: str | None = None
    coordinates: Coordinates | None = None


class JobStatus(str, Enum):
    """Status of a provider batch job.

    ``completed`` is the only successful terminal state.  ``failed``,
    ``cancelled`` and ``deleted`` are terminal failures.
    """

    SUBMITTED = "submitted"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    DELETED = "deleted"

    @classmethod
    def from_provider(cls, value: str) -> JobStatus:
        """Map a provider ``<Status>`` value to a :class:`JobStatus`.

        Matching is exact and case-sensitive.  Any value that is not a
        terminal status (``accepted``, ``running``, ``submitted`` …) means
        the job is still in progress.
        """
        for member in _TERMINAL:
            if member.value == value:
                return member
        return cls.RUNNING

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset(
    {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED, JobStatus.DELETED}
)


@dataclass
class BatchJob:
    """A provider-side batch job.

    Created by :meth:`BatchJobClient.submit`; ``status`` is only changed by
    polling.  Discarded once the batch call returns.
    """

    job_id: str
    status: JobStatus = JobStatus.SUBMITTED

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True)
class BatchOutcome:
    """Result of :meth:`BatchGeoCoder.geocode_addresses`.

    Attributes:
        job_id: Provider job identifier, ``None`` when no job was submitted.
        status: Terminal status of the job.
        resolved: Request ids that ``on_resolved`` was called for, in call order.
        unresolved: Request ids passed to ``on_unresolved``.
    """

    job_id: str | None
    status: JobStatus
    resolved: tuple[RequestId, ...] = field(default_factory=tuple)
    unresolved: tuple[RequestId, ...] = field(default_factory=tuple)

    @property
    def completed(self) -> bool:
        return self.status is JobStatus.COMPLETED

    def raise_for_status(self) -> None:
        """Raise :class:`BatchJobFailedError` if the job did not complete."""
        if not self.completed:
            raise BatchJobFailedError(self.job_id, self.status.value)
