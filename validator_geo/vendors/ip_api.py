"""Client utilities for the ip-api.com geolocation service."""

import logging
from typing import Optional

import requests

from validator_geo.core.config import get_settings
from validator_geo.etl.transform import parse_location
from validator_geo.models import LocationInfo

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_FIELDS = "status,country,countryCode,region,city,lat,lon,isp"


class LookupMiss(RuntimeError):
    """Raised when ip-api cannot resolve an address."""


def _fetch(address: str) -> LocationInfo:
    settings = get_settings()
    url = f"{settings.geo_api_url}/{address}"
    response = _SESSION.get(url, params={"fields": _FIELDS}, timeout=settings.request_timeout)
    response.raise_for_status()
    payload = response.json()
    if not isinstance(payload, dict):
        raise LookupMiss("response is not an object")
    status = payload.get("status")
    if status != "success":
        raise LookupMiss(f"status={status} message={payload.get('message')}")
    return parse_location(payload)


def locate(address: str) -> Optional[LocationInfo]:
    """Resolve one address; any failure is logged and returned as None."""
    try:
        return _fetch(address)
    except LookupMiss as exc:
        logger.warning("No location for %s: %s", address, exc)
    except (requests.RequestException, ValueError) as exc:
        logger.error("Failed to geolocate %s: %s", address, exc)
    return None
