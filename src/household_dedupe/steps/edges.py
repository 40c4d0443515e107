from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import Executor
from functools import partial
from itertools import islice

from household_dedupe.errors import PipelineCancelled
from household_dedupe.interfaces import CancelToken, CheckpointStore, PairScorer
from household_dedupe.models import Checkpoint, Edge, NormalizedRecord
from household_dedupe.steps.blocking import BlockIndex, candidate_pairs

logger = logging.getLogger(__name__)

ScoredPair = tuple[int, int, NormalizedRecord, NormalizedRecord]


def _score_pairs(scorer: PairScorer, min_score: float, pairs: Sequence[ScoredPair]) -> list[Edge]:
    edges: list[Edge] = []
    for a, b, left, right in pairs:
        result = scorer.score(left, right)
        if result.score >= min_score:
            edges.append(Edge(a=a, b=b, score=result.score, reasons=result.reasons))
    return edges


def _batched(pairs: Iterable[tuple[int, int]], size: int) -> Iterator[list[tuple[int, int]]]:
    iterator = iter(pairs)
    while batch := list(islice(iterator, size)):
        yield batch


class EdgeBuilder:
    """Scores candidate pairs in batches and keeps those at or above ``min_score``.

    Between batches it reports progress, persists a checkpoint (when a store
    and session id are given) and honours cancellation. The candidate stream
    is deterministic for a given block index, so a checkpoint only needs the
    number of pairs already consumed.
    """

    def __init__(
        self,
        scorer: PairScorer,
        progress_every: int = 5000,
        executor: Executor | None = None,
        slice_size: int = 1000,
        checkpoint_store: CheckpointStore | None = None,
        session_id: str | None = None,
    ) -> None:
        self._scorer = scorer
        self._progress_every = max(1, progress_every)
        self._executor = executor
        self._slice_size = max(1, slice_size)
        self._checkpoint_store = checkpoint_store
        self._session_id = session_id

    def build(
        self,
        records: Sequence[NormalizedRecord],
        blocks: BlockIndex,
        min_score: float,
        chunk_size: int,
        fingerprint: str = "",
        on_batch: Callable[[int, int], None] | None = None,
        cancel: CancelToken | None = None,
    ) -> list[Edge]:
        edges: list[Edge] = []
        pairs_done = 0
        stream = candidate_pairs(blocks, chunk_size)

        checkpoint = self._restore(fingerprint)
        if checkpoint is not None:
            edges.extend(checkpoint.edges)
            for _ in islice(stream, checkpoint.pairs_done):
                pairs_done += 1
            logger.info("Resuming edge building after %d pairs (%d edges kept)", pairs_done, len(edges))

        for batch in _batched(stream, self._progress_every):
            if cancel is not None and cancel.is_set():
                raise PipelineCancelled(f"Cancelled after {pairs_done} pair comparisons")
            edges.extend(self._score_batch(records, batch, min_score))
            pairs_done += len(batch)
            logger.debug("Scored %d pairs, %d edges kept", pairs_done, len(edges))
            self._persist(Checkpoint(fingerprint, pairs_done, edges))
            if on_batch is not None:
                on_batch(pairs_done, len(edges))

        if cancel is not None and cancel.is_set():
            raise PipelineCancelled(f"Cancelled after {pairs_done} pair comparisons")
        if self._checkpoint_store is not None and self._session_id is not None:
            self._checkpoint_store.clear(self._session_id)

        edges.sort(key=lambda edge: edge.sort_key)
        logger.info("Built %d edges from %d candidate pairs", len(edges), pairs_done)
        return edges

    def _score_batch(
        self,
        records: Sequence[NormalizedRecord],
        batch: list[tuple[int, int]],
        min_score: float,
    ) -> list[Edge]:
        pairs = [(a, b, records[a], records[b]) for a, b in batch]
        if self._executor is None:
            return _score_pairs(self._scorer, min_score, pairs)

        slices = [pairs[start : start + self._slice_size] for start in range(0, len(pairs), self._slice_size)]
        edges: list[Edge] = []
        for part in self._executor.map(partial(_score_pairs, self._scorer, min_score), slices):
            edges.extend(part)
        return edges

    def _restore(self, fingerprint: str) -> Checkpoint | None:
        if self._checkpoint_store is None or self._session_id is None:
            return None
        checkpoint = self._checkpoint_store.load(self._session_id)
        if checkpoint is None:
            return None
        if checkpoint.fingerprint != fingerprint:
            logger.info("Discarding checkpoint for session %s: input or configuration changed", self._session_id)
            self._checkpoint_store.clear(self._session_id)
            return None
        return checkpoint

    def _persist(self, checkpoint: Checkpoint) -> None:
        if self._checkpoint_store is None or self._session_id is None:
            return
        self._checkpoint_store.save(self._session_id, checkpoint)
