from __future__ import annotations

import statistics
from collections.abc import Sequence
from itertools import combinations

from household_dedupe.models import Cluster, NormalizedRecord
from household_dedupe.steps.similarity import jaro_winkler, token_at

SIZE_PENALTY = 0.02

CONFIDENCE_LEVELS: tuple[tuple[float, str], ...] = (
    (0.92, "CONFIRMED"),
    (0.85, "STRONG_SUSPECT"),
    (0.70, "SUSPECT"),
)


def confidence_level(confidence: float) -> str:
    for floor, label in CONFIDENCE_LEVELS:
        if confidence >= floor:
            return label
    return "POSSIBLE"


def cluster_confidence(scores: Sequence[float], size: int) -> float:
    """Mean pair score, discounted by its spread and by how large the group is."""
    if not scores:
        return 0.0
    spread = statistics.pstdev(scores) if len(scores) > 1 else 0.0
    value = statistics.fmean(scores) - spread - SIZE_PENALTY * max(0, size - 2)
    return max(0.0, min(1.0, value))


def _positional_similarity(left: Sequence[str], right: Sequence[str]) -> float:
    width = max(len(left), len(right))
    if width == 0:
        return 0.0
    return sum(jaro_winkler(token_at(left, i), token_at(right, i)) for i in range(width)) / width


def name_averages(records: Sequence[NormalizedRecord]) -> tuple[float, float]:
    woman_scores: list[float] = []
    husband_scores: list[float] = []
    for left, right in combinations(records, 2):
        woman_scores.append(_positional_similarity(left.woman_tokens, right.woman_tokens))
        token_part = _positional_similarity(left.husband_tokens, right.husband_tokens)
        full = jaro_winkler(left.husband_normalized, right.husband_normalized)
        husband_scores.append(0.6 * token_part + 0.4 * full)
    if not woman_scores:
        return 0.0, 0.0
    return statistics.fmean(woman_scores), statistics.fmean(husband_scores)


class ClusterAnnotator:
    """Fills in confidence and name-similarity summaries used by review tooling."""

    def annotate(self, clusters: Sequence[Cluster]) -> list[Cluster]:
        for cluster in clusters:
            scores = [audit.final_score for audit in cluster.pair_scores]
            cluster.confidence = cluster_confidence(scores, len(cluster.record_ids))
            cluster.confidence_level = confidence_level(cluster.confidence)
            cluster.avg_woman_name_score, cluster.avg_husband_name_score = name_averages(cluster.records)
        return list(clusters)
