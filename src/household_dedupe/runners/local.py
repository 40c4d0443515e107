from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Any

from household_dedupe.checkpoints import run_fingerprint
from household_dedupe.config import DedupeConfig
from household_dedupe.errors import PipelineCancelled
from household_dedupe.interfaces import CancelToken, CheckpointStore, ProgressCallback
from household_dedupe.models import Cluster, Edge, NormalizedRecord, Progress, Stage
from household_dedupe.schema import FieldMapping
from household_dedupe.steps.annotate import ClusterAnnotator
from household_dedupe.steps.blocking import block_statistics, build_blocks
from household_dedupe.steps.clustering import SizeCappedClusterer
from household_dedupe.steps.edges import EdgeBuilder
from household_dedupe.steps.normalize import RecordNormalizer
from household_dedupe.steps.scoring import CascadeScorer

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DedupeResult:
    clusters: list[Cluster]
    edges: list[Edge]
    records: list[NormalizedRecord]
    block_stats: dict[str, Any] = field(default_factory=dict)


class DedupeSession:
    """One dedupe run: rows arrive in chunks via ``receive``, then ``run`` computes the clusters.

    All run state lives on the session; nothing is shared between sessions
    except the injected checkpoint store, which is keyed by ``session_id``.
    """

    def __init__(
        self,
        mapping: FieldMapping,
        config: DedupeConfig | None = None,
        *,
        session_id: str | None = None,
        checkpoint_store: CheckpointStore | None = None,
        executor: Executor | None = None,
        on_progress: ProgressCallback | None = None,
        cancel: CancelToken | None = None,
        progress_every: int = 5000,
    ) -> None:
        self.config = config or DedupeConfig()
        self.session_id = session_id
        self._normalizer = RecordNormalizer(mapping)
        self._scorer = CascadeScorer(self.config)
        self._checkpoint_store = checkpoint_store
        self._executor = executor
        self._on_progress = on_progress
        self._cancel = cancel
        self._progress_every = progress_every
        self._records: list[NormalizedRecord] = []

    @property
    def records(self) -> list[NormalizedRecord]:
        return list(self._records)

    def receive(
        self,
        rows: Sequence[Mapping[str, Any]],
        ids: Sequence[str] | None = None,
        total: int | None = None,
    ) -> None:
        self._check_cancel()
        self._records.extend(self._normalizer.normalize(rows, ids=ids, start_index=len(self._records)))
        received = len(self._records)
        self._report(Stage.RECEIVING, min(5, 1 + received // 1000), received, total or received)

    def run(self) -> DedupeResult:
        records = self._records
        thresholds = self.config.thresholds
        logger.info("Deduplicating %d records (session=%s)", len(records), self.session_id)

        self._check_cancel()
        self._report(Stage.BLOCKING, 5, 0, len(records))
        blocks = build_blocks(records)
        stats = block_statistics(blocks, len(records), thresholds.block_chunk_size)
        logger.info(
            "Built %d blocks; at most %d candidate pairs",
            stats["total_blocks"],
            stats["estimated_pairs_with_blocking"],
        )

        estimate = max(1, stats["estimated_pairs_with_blocking"])

        def edge_progress(pairs_done: int, _edges_kept: int) -> None:
            percent = 10 + round(40 * min(1.0, pairs_done / estimate))
            self._report(Stage.BUILDING_EDGES, percent, pairs_done, estimate)

        self._report(Stage.BUILDING_EDGES, 10, 0, estimate)
        builder = EdgeBuilder(
            self._scorer,
            progress_every=self._progress_every,
            executor=self._executor,
            checkpoint_store=self._checkpoint_store,
            session_id=self.session_id,
        )
        edges = builder.build(
            records,
            blocks,
            min_score=thresholds.min_pair,
            chunk_size=thresholds.block_chunk_size,
            fingerprint=run_fingerprint(records, self.config),
            on_batch=edge_progress,
            cancel=self._cancel,
        )

        def merge_progress(done: int, total: int) -> None:
            self._report(Stage.MERGING_EDGES, 60 + round(20 * done / max(1, total)), done, total)

        self._report(Stage.MERGING_EDGES, 60, 0, len(edges))
        clusterer = SizeCappedClusterer(self._scorer, min_internal=thresholds.min_internal)
        clusters = clusterer.cluster(records, edges, on_progress=merge_progress, cancel=self._cancel)

        self._check_cancel()
        self._report(Stage.ANNOTATING, 95, len(clusters), len(clusters))
        clusters = ClusterAnnotator().annotate(clusters)

        self._report(Stage.DONE, 100, len(clusters), len(clusters))
        logger.info("Produced %d clusters from %d edges", len(clusters), len(edges))
        return DedupeResult(clusters=clusters, edges=edges, records=list(records), block_stats=stats)

    def _report(self, status: Stage, percent: int, completed: int, total: int) -> None:
        if self._on_progress is not None:
            self._on_progress(Progress(status, percent, completed, total))

    def _check_cancel(self) -> None:
        if self._cancel is not None and self._cancel.is_set():
            raise PipelineCancelled(f"Session {self.session_id or '<anonymous>'} cancelled")


class LocalDedupePipeline:
    """Single-process runner: the whole input in one session."""

    def __init__(self, mapping: FieldMapping, config: DedupeConfig | None = None, **session_options: Any) -> None:
        self._mapping = mapping
        self._config = config
        self._session_options = session_options

    def session(self) -> DedupeSession:
        return DedupeSession(self._mapping, self._config, **self._session_options)

    def run_detailed(self, rows: Sequence[Mapping[str, Any]], ids: Sequence[str] | None = None) -> DedupeResult:
        session = self.session()
        session.receive(rows, ids=ids, total=len(rows))
        return session.run()

    def run(self, rows: Sequence[Mapping[str, Any]]) -> list[Cluster]:
        return self.run_detailed(rows).clusters
