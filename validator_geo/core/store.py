"""Dataset helpers for the worker."""

import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from validator_geo.etl.transform import record_to_row, row_to_record
from validator_geo.models import EnrichedRecord, index_by_node

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class StoreCorrupt(RuntimeError):
    """Raised when the persisted dataset cannot be read or parsed."""


def _read_rows(path: Path) -> List[Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as exc:
        raise StoreCorrupt(f"{path}: {exc}") from exc
    if not isinstance(data, list):
        raise StoreCorrupt(f"{path}: expected a JSON array, got {type(data).__name__}")
    return data


def load_dataset(path: PathLike) -> Dict[str, EnrichedRecord]:
    """Load the previous run's records keyed by node identity.

    A missing or unreadable file is a cold start and yields an empty mapping.
    """
    path = Path(path)
    if not path.exists():
        logger.info("No existing data found at %s, starting fresh", path)
        return {}
    try:
        rows = _read_rows(path)
    except StoreCorrupt as exc:
        logger.warning("Existing dataset is unreadable, starting fresh: %s", exc)
        return {}

    records: List[EnrichedRecord] = []
    for index, row in enumerate(rows):
        try:
            records.append(row_to_record(row))
        except ValueError as exc:
            logger.warning("Skipping dataset row %d: %s", index, exc)
    existing = index_by_node(records)
    logger.info("Loaded %d existing locations", len(existing))
    return existing


def _target_mode(path: Path) -> int:
    if path.exists():
        return stat.S_IMODE(path.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def save_dataset(path: PathLike, records: Iterable[EnrichedRecord]) -> None:
    """Overwrite the dataset with the given records via write-then-rename.

    The file keeps its current permissions, or gets the umask default when new.
    """
    path = Path(path)
    rows = [record_to_row(record) for record in records]
    directory = path.parent
    directory.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(rows, fh, ensure_ascii=False, indent=2)
            fh.write("\n")
        os.chmod(tmp_name, _target_mode(path))
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    logger.info("Saved %d records to %s", len(rows), path)
