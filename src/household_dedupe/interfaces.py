from __future__ import annotations

from typing import Protocol

from household_dedupe.models import Checkpoint, NormalizedRecord, PairScore, Progress


class PairScorer(Protocol):
    """Step 2: bounded, symmetric similarity of two normalized records."""

    def score(self, left: NormalizedRecord, right: NormalizedRecord, with_breakdown: bool = False) -> PairScore:
        ...


class CheckpointStore(Protocol):
    """Persists the edge-building cursor of a session so an interrupted run can resume."""

    def load(self, session_id: str) -> Checkpoint | None:
        ...

    def save(self, session_id: str, checkpoint: Checkpoint) -> None:
        ...

    def clear(self, session_id: str) -> None:
        ...


class ProgressCallback(Protocol):
    def __call__(self, progress: Progress) -> None:
        ...


class CancelToken(Protocol):
    """Anything with ``is_set()``, e.g. ``threading.Event``."""

    def is_set(self) -> bool:
        ...
