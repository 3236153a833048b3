"""Application configuration helpers.

Every tunable comes from the environment (optionally via a `.env` file) so the
same worker can be pointed at a different cluster or lookup service without
code changes. CLI flags in the job entrypoint override these values.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://x1-testnet-rpc.surge.sh"
DEFAULT_GEO_API_URL = "http://ip-api.com/json"
# ip-api.com free tier allows 45 requests per minute.
DEFAULT_GEO_CALL_BUDGET = 45
DEFAULT_GEO_CALL_DELAY_MS = 100
DEFAULT_DATASET_PATH = "validator-locations.json"
DEFAULT_REQUEST_TIMEOUT = 10.0


class ConfigError(RuntimeError):
    """Raised when a configuration value cannot be used."""


@dataclass(frozen=True)
class Settings:
    rpc_url: str = DEFAULT_RPC_URL
    geo_api_url: str = DEFAULT_GEO_API_URL
    geo_call_budget: int = DEFAULT_GEO_CALL_BUDGET
    geo_call_delay_ms: int = DEFAULT_GEO_CALL_DELAY_MS
    dataset_path: str = DEFAULT_DATASET_PATH
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def _get_non_negative_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


def _get_positive_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load, validate and cache worker settings to avoid repeated env lookups."""
    load_dotenv()

    rpc_url = os.getenv("RPC_URL") or DEFAULT_RPC_URL
    geo_api_url = (os.getenv("GEO_API_URL") or DEFAULT_GEO_API_URL).rstrip("/")
    geo_call_budget = _get_non_negative_int("GEO_CALL_BUDGET", DEFAULT_GEO_CALL_BUDGET)
    geo_call_delay_ms = _get_non_negative_int("GEO_CALL_DELAY_MS", DEFAULT_GEO_CALL_DELAY_MS)
    dataset_path = os.getenv("DATASET_PATH") or DEFAULT_DATASET_PATH
    request_timeout = _get_positive_float("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)

    if geo_call_budget == 0:
        logger.warning("GEO_CALL_BUDGET is 0; no new locations will be looked up this run.")

    return Settings(
        rpc_url=rpc_url,
        geo_api_url=geo_api_url,
        geo_call_budget=geo_call_budget,
        geo_call_delay_ms=geo_call_delay_ms,
        dataset_path=dataset_path,
        request_timeout=request_timeout,
    )
