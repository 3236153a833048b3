import sys
from pathlib import Path

import pytest

# Ensure `validator_geo` is importable when running pytest from the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from validator_geo.core import config  # noqa: E402


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    for name in ("RPC_URL", "GEO_API_URL", "GEO_CALL_BUDGET", "GEO_CALL_DELAY_MS", "DATASET_PATH", "REQUEST_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()
