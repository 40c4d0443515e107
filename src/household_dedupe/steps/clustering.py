from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from itertools import combinations

from household_dedupe.errors import PipelineCancelled
from household_dedupe.interfaces import CancelToken, PairScorer
from household_dedupe.models import Cluster, Edge, NormalizedRecord, PairAudit

logger = logging.getLogger(__name__)

MAX_CLUSTER_SIZE = 4
SPLIT_THRESHOLD_FLOOR = 0.45


class UnionFind:
    """Disjoint sets over record indices with member lists and reasons per root.

    Items map to nodes; ``detach`` moves an item onto a fresh node so it can
    start over as a singleton while the old tree stays intact.
    """

    def __init__(self, items: Iterable[int] = ()) -> None:
        self._node: dict[int, int] = {}
        self._parent: list[int] = []
        self._members: dict[int, list[int]] = {}
        self._reasons: dict[int, set[str]] = {}
        for item in items:
            self._add(item)

    def _add(self, item: int) -> int:
        node = len(self._parent)
        self._parent.append(node)
        self._node[item] = node
        self._members[node] = [item]
        self._reasons[node] = set()
        return node

    def _root(self, node: int) -> int:
        root = node
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[node] != root:
            self._parent[node], node = root, self._parent[node]
        return root

    def find(self, item: int) -> int:
        node = self._node.get(item)
        if node is None:
            node = self._add(item)
        return self._root(node)

    def size(self, item: int) -> int:
        return len(self._members[self.find(item)])

    def members(self, item: int) -> list[int]:
        return sorted(self._members[self.find(item)])

    def reasons(self, item: int) -> set[str]:
        return set(self._reasons[self.find(item)])

    def add_reasons(self, item: int, reasons: Iterable[str]) -> None:
        self._reasons[self.find(item)].update(reasons)

    def union(self, left: int, right: int, reasons: Iterable[str] = ()) -> int:
        root_left, root_right = self.find(left), self.find(right)
        if root_left != root_right:
            if len(self._members[root_left]) < len(self._members[root_right]):
                root_left, root_right = root_right, root_left
            self._parent[root_right] = root_left
            self._members[root_left].extend(self._members.pop(root_right))
            self._reasons[root_left].update(self._reasons.pop(root_right))
        self._reasons[root_left].update(reasons)
        return root_left

    def detach(self, item: int) -> None:
        root = self.find(item)
        if len(self._members[root]) == 1:
            return
        self._members[root].remove(item)
        self._add(item)

    def groups(self) -> dict[int, list[int]]:
        return {root: sorted(members) for root, members in self._members.items()}


@dataclass(slots=True)
class SplitGroup:
    members: list[int]
    reasons: set[str] = field(default_factory=set)
    audits: list[PairAudit] = field(default_factory=list)


def split_cluster(
    indices: Sequence[int],
    records: Sequence[NormalizedRecord],
    scorer: PairScorer,
    min_internal: float,
    max_size: int = MAX_CLUSTER_SIZE,
) -> list[SplitGroup]:
    """Break a record set into groups of at most ``max_size`` using its strongest internal pairs.

    Sets within the cap come back whole. Larger sets are re-clustered greedily
    on pairs scoring at least the threshold; any group still over the cap is
    queued again with the threshold raised to the floor. Singletons are dropped.
    """
    groups: list[SplitGroup] = []
    stack: list[tuple[list[int], float]] = [(sorted(indices), min_internal)]
    while stack:
        members, threshold = stack.pop()
        if len(members) < 2:
            continue
        scored = {
            (a, b): scorer.score(records[a], records[b], with_breakdown=True)
            for a, b in combinations(members, 2)
        }
        if len(members) <= max_size:
            groups.append(_group(members, scored, records, threshold))
            continue

        local_edges = sorted(
            (Edge(a, b, result.score, result.reasons) for (a, b), result in scored.items() if result.score >= threshold),
            key=lambda edge: edge.sort_key,
        )
        uf = UnionFind(members)
        for edge in local_edges:
            if uf.find(edge.a) == uf.find(edge.b):
                continue
            if uf.size(edge.a) + uf.size(edge.b) <= max_size:
                uf.union(edge.a, edge.b)
        for group in uf.groups().values():
            if len(group) > max_size:
                stack.append((group, max(threshold, SPLIT_THRESHOLD_FLOOR)))
            elif len(group) > 1:
                groups.append(_group(group, scored, records, threshold))
    groups.sort(key=lambda group: group.members[0])
    return groups


def _group(members: list[int], scored: dict, records: Sequence[NormalizedRecord], threshold: float) -> SplitGroup:
    group = SplitGroup(members=list(members))
    for a, b in combinations(members, 2):
        result = scored[(a, b)]
        if result.score < threshold:
            continue
        group.reasons.update(result.reasons)
        group.audits.append(
            PairAudit(
                a=records[a].id,
                b=records[b].id,
                final_score=result.score,
                component_scores=dict(result.breakdown or {}),
                reasons=list(result.reasons),
            )
        )
    return group


class SizeCappedClusterer:
    """Greedy highest-score-first merging that never lets a group exceed the cap."""

    def __init__(
        self,
        scorer: PairScorer,
        min_internal: float = 0.50,
        max_size: int = MAX_CLUSTER_SIZE,
        progress_every: int = 200,
    ) -> None:
        self._scorer = scorer
        self._min_internal = min_internal
        self._max_size = max_size
        self._progress_every = max(1, progress_every)

    def cluster(
        self,
        records: Sequence[NormalizedRecord],
        edges: Sequence[Edge],
        on_progress: Callable[[int, int], None] | None = None,
        cancel: CancelToken | None = None,
    ) -> list[Cluster]:
        uf = UnionFind(range(len(records)))
        finalized: set[int] = set()
        results: list[tuple[list[int], set[str], list[PairAudit]]] = []

        ordered = sorted(edges, key=lambda edge: edge.sort_key)
        for position, edge in enumerate(ordered, start=1):
            if position % self._progress_every == 0:
                if cancel is not None and cancel.is_set():
                    raise PipelineCancelled(f"Cancelled while merging edge {position} of {len(ordered)}")
                if on_progress is not None:
                    on_progress(position, len(ordered))

            if edge.a in finalized or edge.b in finalized:
                continue
            if uf.find(edge.a) == uf.find(edge.b):
                uf.add_reasons(edge.a, edge.reasons)
                continue
            if uf.size(edge.a) + uf.size(edge.b) <= self._max_size:
                uf.union(edge.a, edge.b, edge.reasons)
                continue

            combined = sorted(set(uf.members(edge.a)) | set(uf.members(edge.b)))
            groups = split_cluster(combined, records, self._scorer, self._min_internal, self._max_size)
            for group in groups:
                finalized.update(group.members)
                results.append((group.members, group.reasons, group.audits))
            for item in combined:
                if item not in finalized:
                    uf.detach(item)

        if on_progress is not None:
            on_progress(len(ordered), len(ordered))

        leftovers = 0
        for members in uf.groups().values():
            live = [item for item in members if item not in finalized]
            if len(live) < 2:
                continue
            leftovers += 1
            reasons = uf.reasons(live[0])
            for group in split_cluster(live, records, self._scorer, self._min_internal, self._max_size):
                results.append((group.members, reasons | group.reasons, group.audits))
        logger.debug("Merged %d edges; %d leftover components validated", len(ordered), leftovers)

        results.sort(key=lambda result: result[0][0])
        return [
            Cluster(
                cluster_id=f"cluster_{number:05d}",
                record_ids=[records[i].id for i in members],
                reasons=sorted(reasons),
                pair_scores=audits,
                records=[records[i] for i in members],
            )
            for number, (members, reasons, audits) in enumerate(results, start=1)
        ]
