import json
import os
import stat

from validator_geo.core import store
from validator_geo.core.reconcile import CallBudget, reconcile
from validator_geo.models import CandidateEntity, EnrichedRecord, LocationInfo


def test_load_dataset_missing_file_is_cold_start(tmp_path):
    assert store.load_dataset(tmp_path / "missing.json") == {}


def test_load_dataset_unparseable_file_is_cold_start(tmp_path, caplog):
    path = tmp_path / "validator-locations.json"
    path.write_text("{not json", encoding="utf-8")

    with caplog.at_level("WARNING"):
        assert store.load_dataset(path) == {}

    assert "starting fresh" in " ".join(caplog.messages)


def test_load_dataset_non_array_is_cold_start(tmp_path):
    path = tmp_path / "validator-locations.json"
    path.write_text('{"nodePubkey": "A"}', encoding="utf-8")

    assert store.load_dataset(path) == {}


def test_load_dataset_keys_by_node_and_skips_bad_rows(tmp_path):
    path = tmp_path / "validator-locations.json"
    path.write_text(
        json.dumps(
            [
                {"nodePubkey": "A", "votePubkey": "vA", "ip": "1.1.1.1", "lat": 1.0, "lon": 2.0},
                {"votePubkey": "orphan"},
                {"nodePubkey": "B", "votePubkey": "vB", "ip": "2.2.2.2"},
            ]
        ),
        encoding="utf-8",
    )

    existing = store.load_dataset(path)

    assert list(existing) == ["A", "B"]
    assert existing["A"].is_located is True
    assert existing["B"].is_located is False


def test_save_dataset_overwrites_with_pretty_json(tmp_path):
    path = tmp_path / "nested" / "validator-locations.json"
    path.parent.mkdir()
    path.write_text("stale content", encoding="utf-8")
    records = [
        EnrichedRecord("A", "vA", "1.1.1.1", LocationInfo(city="Oslo", latitude=59.9, longitude=10.7)),
        EnrichedRecord("B", "vB", "2.2.2.2"),
    ]

    store.save_dataset(path, records)

    text = path.read_text(encoding="utf-8")
    assert text.startswith("[\n  {")
    assert json.loads(text) == [
        {"nodePubkey": "A", "votePubkey": "vA", "ip": "1.1.1.1", "city": "Oslo", "lat": 59.9, "lon": 10.7},
        {"nodePubkey": "B", "votePubkey": "vB", "ip": "2.2.2.2"},
    ]
    assert [p.name for p in path.parent.iterdir()] == ["validator-locations.json"]


def test_save_then_load_preserves_records(tmp_path):
    path = tmp_path / "validator-locations.json"
    records = [EnrichedRecord("A", "vA", "1.1.1.1", LocationInfo(country="Peru", latitude=-12.0, longitude=-77.0))]

    store.save_dataset(path, records)

    assert store.load_dataset(path) == {"A": records[0]}


def test_save_dataset_keeps_existing_file_mode(tmp_path):
    path = tmp_path / "validator-locations.json"
    path.write_text("[]", encoding="utf-8")
    os.chmod(path, 0o644)

    store.save_dataset(path, [EnrichedRecord("A", "vA", "1.1.1.1")])

    assert stat.S_IMODE(path.stat().st_mode) == 0o644


def test_save_dataset_new_file_uses_umask_default(tmp_path):
    path = tmp_path / "validator-locations.json"
    umask = os.umask(0o022)
    try:
        store.save_dataset(path, [EnrichedRecord("A", "vA", "1.1.1.1")])
    finally:
        os.umask(umask)

    assert stat.S_IMODE(path.stat().st_mode) == 0o644


def test_cached_rows_are_written_back_unchanged(tmp_path):
    path = tmp_path / "validator-locations.json"
    cached_row = {"nodePubkey": "A", "ip": "1.1.1.1", "city": " Oslo ", "region": "", "lat": 1, "lon": 2, "note": "x"}
    path.write_text(json.dumps([cached_row]), encoding="utf-8")

    existing = store.load_dataset(path)
    result = reconcile(
        [CandidateEntity("A", "vA", "9.9.9.9")],
        existing,
        CallBudget(limit=0),
        locate=lambda address: None,
    )
    store.save_dataset(path, result.records)

    assert json.loads(path.read_text(encoding="utf-8")) == [cached_row]
