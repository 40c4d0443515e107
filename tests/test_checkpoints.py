from household_dedupe.checkpoints import InMemoryCheckpointStore, JsonCheckpointStore, run_fingerprint
from household_dedupe.config import DedupeConfig
from household_dedupe.models import Checkpoint, Edge


def _checkpoint() -> Checkpoint:
    return Checkpoint(
        fingerprint="abc",
        pairs_done=42,
        edges=[Edge(0, 3, 0.99, ("EXACT_ID",)), Edge(1, 2, 0.84, ("TOKEN_REORDER",))],
    )


def test_json_store_round_trip(tmp_path) -> None:
    store = JsonCheckpointStore(tmp_path / "checkpoints")

    assert store.load("run/1") is None
    store.save("run/1", _checkpoint())

    assert (tmp_path / "checkpoints" / "run_1.checkpoint.json").exists()
    assert store.load("run/1") == _checkpoint()

    store.clear("run/1")
    assert store.load("run/1") is None
    store.clear("run/1")


def test_json_store_ignores_corrupt_file(tmp_path) -> None:
    (tmp_path / "s.checkpoint.json").write_text("{not json", encoding="utf-8")

    assert JsonCheckpointStore(tmp_path).load("s") is None


def test_memory_store_returns_copies() -> None:
    store = InMemoryCheckpointStore()
    checkpoint = _checkpoint()
    store.save("s", checkpoint)

    checkpoint.edges.clear()
    loaded = store.load("s")

    assert loaded is not None
    assert len(loaded.edges) == 2


def test_fingerprint_tracks_records_and_config(generated_records) -> None:
    base = run_fingerprint(generated_records, DedupeConfig())

    assert base == run_fingerprint(list(generated_records), DedupeConfig())
    assert base != run_fingerprint(generated_records[:-1], DedupeConfig())
    assert base != run_fingerprint(generated_records, DedupeConfig.from_mapping({"thresholds": {"minPair": 0.7}}))
