from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Sequence
from pathlib import Path

from household_dedupe.config import DedupeConfig
from household_dedupe.models import Checkpoint, Edge, NormalizedRecord

logger = logging.getLogger(__name__)


def run_fingerprint(records: Sequence[NormalizedRecord], config: DedupeConfig) -> str:
    """Digest of everything that determines the edge list, so stale cursors are ignored."""
    digest = hashlib.sha256()
    digest.update(json.dumps(config.to_dict(), sort_keys=True).encode("utf-8"))
    for record in records:
        fields = (
            record.id,
            record.woman_normalized,
            record.husband_normalized,
            record.national_id,
            record.phone,
            record.village_normalized,
            record.subdistrict_normalized,
            "|".join(record.children_normalized),
        )
        digest.update("\x1f".join(fields).encode("utf-8"))
        digest.update(b"\x1e")
    return digest.hexdigest()


class InMemoryCheckpointStore:
    def __init__(self) -> None:
        self._checkpoints: dict[str, Checkpoint] = {}

    def load(self, session_id: str) -> Checkpoint | None:
        checkpoint = self._checkpoints.get(session_id)
        if checkpoint is None:
            return None
        return Checkpoint(checkpoint.fingerprint, checkpoint.pairs_done, list(checkpoint.edges))

    def save(self, session_id: str, checkpoint: Checkpoint) -> None:
        self._checkpoints[session_id] = Checkpoint(checkpoint.fingerprint, checkpoint.pairs_done, list(checkpoint.edges))

    def clear(self, session_id: str) -> None:
        self._checkpoints.pop(session_id, None)


class JsonCheckpointStore:
    """One JSON file per session under ``directory``; survives process restarts."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    def _path(self, session_id: str) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in session_id)
        return self._directory / f"{safe}.checkpoint.json"

    def load(self, session_id: str) -> Checkpoint | None:
        path = self._path(session_id)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as handle:
            try:
                payload = json.load(handle)
            except json.JSONDecodeError:
                logger.warning("Ignoring unreadable checkpoint %s", path)
                return None
        return Checkpoint(
            fingerprint=payload["fingerprint"],
            pairs_done=int(payload["pairs_done"]),
            edges=[Edge(a=a, b=b, score=score, reasons=tuple(reasons)) for a, b, score, reasons in payload["edges"]],
        )

    def save(self, session_id: str, checkpoint: Checkpoint) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path(session_id)
        tmp_path = path.with_suffix(".tmp")
        payload = {
            "fingerprint": checkpoint.fingerprint,
            "pairs_done": checkpoint.pairs_done,
            "edges": [[edge.a, edge.b, edge.score, list(edge.reasons)] for edge in checkpoint.edges],
        }
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle)
        tmp_path.replace(path)

    def clear(self, session_id: str) -> None:
        self._path(session_id).unlink(missing_ok=True)
