"""Core data models shared by the validator geolocation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional


class LocationStatus(str, Enum):
    LOCATED = "located"
    PENDING = "pending"


@dataclass(frozen=True, slots=True)
class CandidateEntity:
    """A validator discovered on the cluster during the current run."""

    node_identity: str
    vote_identity: str
    address: str


@dataclass(frozen=True, slots=True)
class LocationInfo:
    """Location fields resolved for a single IP address."""

    country: Optional[str] = None
    country_code: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    isp: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True, slots=True)
class EnrichedRecord:
    """Persisted validator entry, optionally carrying a resolved location."""

    node_identity: str
    vote_identity: str
    address: str
    location: Optional[LocationInfo] = None
    raw_row: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)

    @property
    def status(self) -> LocationStatus:
        if self.location is not None and self.location.has_coordinates:
            return LocationStatus.LOCATED
        return LocationStatus.PENDING

    @property
    def is_located(self) -> bool:
        return self.status is LocationStatus.LOCATED


def bare_record(candidate: CandidateEntity) -> EnrichedRecord:
    return EnrichedRecord(
        node_identity=candidate.node_identity,
        vote_identity=candidate.vote_identity,
        address=candidate.address,
    )


def enrich(candidate: CandidateEntity, location: Optional[LocationInfo]) -> EnrichedRecord:
    """Merge a candidate's identity fields with an optional lookup result."""
    return EnrichedRecord(
        node_identity=candidate.node_identity,
        vote_identity=candidate.vote_identity,
        address=candidate.address,
        location=location,
    )


def index_by_node(records: Iterable[EnrichedRecord]) -> Dict[str, EnrichedRecord]:
    return {record.node_identity: record for record in records}
