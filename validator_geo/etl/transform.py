"""Utilities for transforming RPC, ip-api and dataset payloads into models."""

import logging
from typing import Any, Dict, Optional

from validator_geo.models import EnrichedRecord, LocationInfo

logger = logging.getLogger(__name__)

# Persisted key -> LocationInfo attribute. Also the ip-api field names.
_LOCATION_KEYS = (
    ("country", "country"),
    ("countryCode", "country_code"),
    ("region", "region"),
    ("city", "city"),
    ("lat", "latitude"),
    ("lon", "longitude"),
    ("isp", "isp"),
)


def parse_gossip_address(gossip: Optional[str]) -> Optional[str]:
    """Return the host part of a gossip `host:port` endpoint."""
    if not gossip:
        return None
    gossip = gossip.strip()
    if gossip.startswith("["):
        host, _, _ = gossip[1:].partition("]")
    else:
        host, _, _ = gossip.partition(":")
    return host or None


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def parse_location(payload: Dict[str, Any]) -> LocationInfo:
    return LocationInfo(
        country=_strip_or_none(payload.get("country")),
        country_code=_strip_or_none(payload.get("countryCode")),
        region=_strip_or_none(payload.get("region")),
        city=_strip_or_none(payload.get("city")),
        latitude=_safe_float(payload.get("lat")),
        longitude=_safe_float(payload.get("lon")),
        isp=_strip_or_none(payload.get("isp")),
    )


def record_to_row(record: EnrichedRecord) -> Dict[str, Any]:
    """Serialize a record; rows loaded from disk are written back exactly as read."""
    if record.raw_row is not None:
        return dict(record.raw_row)
    row: Dict[str, Any] = {
        "nodePubkey": record.node_identity,
        "votePubkey": record.vote_identity,
        "ip": record.address,
    }
    if record.location is not None:
        for key, attr in _LOCATION_KEYS:
            value = getattr(record.location, attr)
            if value is not None:
                row[key] = value
    return row


def row_to_record(row: Dict[str, Any]) -> EnrichedRecord:
    """Rebuild a record from its persisted form; location is kept only if any field is set."""
    if not isinstance(row, dict):
        raise ValueError(f"dataset row must be an object, got {type(row).__name__}")
    node_identity = row.get("nodePubkey")
    if not node_identity or not isinstance(node_identity, str):
        raise ValueError("dataset row is missing nodePubkey")

    location = None
    if any(row.get(key) is not None for key, _ in _LOCATION_KEYS):
        location = parse_location(row)

    return EnrichedRecord(
        node_identity=node_identity,
        vote_identity=row.get("votePubkey") or "",
        address=row.get("ip") or "",
        location=location,
        raw_row=dict(row),
    )
