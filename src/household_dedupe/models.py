from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Mapping


class Reason(StrEnum):
    """Tags naming the heuristic that linked two records."""

    EXACT_ID = "EXACT_ID"
    POLYGAMY_PATTERN = "POLYGAMY_PATTERN"
    TOKEN_REORDER = "TOKEN_REORDER"
    DUPLICATED_HUSBAND_LINEAGE = "DUPLICATED_HUSBAND_LINEAGE"
    WOMAN_LINEAGE_MATCH = "WOMAN_LINEAGE_MATCH"
    INVESTIGATION_PLACEHOLDER = "INVESTIGATION_PLACEHOLDER"
    POLYGAMY_SHARED_HOUSEHOLD = "POLYGAMY_SHARED_HOUSEHOLD"
    EXACT_WOMAN_MATCH = "EXACT_WOMAN_MATCH"
    SAME_WOMAN_FIRSTNAME_EXACT_HUSBAND = "SAME_WOMAN_FIRSTNAME_EXACT_HUSBAND"
    CORE_WOMAN_AND_HUSBAND_LINEAGE_MATCH = "CORE_WOMAN_AND_HUSBAND_LINEAGE_MATCH"
    FULL_WOMAN_AND_HUSBAND_MATCH = "FULL_WOMAN_AND_HUSBAND_MATCH"
    SAME_HUSBAND_WOMAN_VARIANT = "SAME_HUSBAND_WOMAN_VARIANT"
    WOMAN_LINEAGE_ONLY = "WOMAN_LINEAGE_ONLY"
    TOKEN_REORDER_LAST_RESORT = "TOKEN_REORDER_LAST_RESORT"


class Stage(StrEnum):
    RECEIVING = "receiving"
    BLOCKING = "blocking"
    BUILDING_EDGES = "building-edges"
    MERGING_EDGES = "merging-edges"
    ANNOTATING = "annotating"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class NormalizedRecord:
    """Read-only view of one source row after field mapping and normalization."""

    id: str
    index: int
    raw: Mapping[str, Any]
    woman_name: str = ""
    husband_name: str = ""
    national_id: str = ""
    phone: str = ""
    village: str = ""
    subdistrict: str = ""
    beneficiary_id: str = ""
    woman_normalized: str = ""
    husband_normalized: str = ""
    village_normalized: str = ""
    subdistrict_normalized: str = ""
    woman_tokens: tuple[str, ...] = ()
    husband_tokens: tuple[str, ...] = ()
    children: tuple[str, ...] = ()
    children_normalized: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PairScore:
    """Similarity of two records: the score, the tags explaining it and, on request, components."""

    score: float
    reasons: tuple[str, ...] = ()
    rule: str | None = None
    breakdown: dict[str, float] | None = None


@dataclass(frozen=True, slots=True)
class Edge:
    """Scored link between two record indices (``a < b``)."""

    a: int
    b: int
    score: float
    reasons: tuple[str, ...] = ()

    @property
    def sort_key(self) -> tuple[float, int, int]:
        return (-self.score, self.a, self.b)


@dataclass(slots=True)
class PairAudit:
    """Intra-cluster pair score kept for review and audit display."""

    a: str
    b: str
    final_score: float
    component_scores: dict[str, float]
    reasons: list[str] = field(default_factory=list)


@dataclass(slots=True)
class PairBreakdown:
    a: str
    b: str
    score: float
    reasons: list[str]
    rule: str | None
    breakdown: dict[str, float]


@dataclass(slots=True)
class Cluster:
    """Between two and four records that likely belong to the same household member."""

    cluster_id: str
    record_ids: list[str]
    reasons: list[str]
    pair_scores: list[PairAudit]
    records: list[NormalizedRecord] = field(default_factory=list, repr=False)
    confidence: float = 0.0
    confidence_level: str = ""
    avg_woman_name_score: float = 0.0
    avg_husband_name_score: float = 0.0


@dataclass(frozen=True, slots=True)
class Progress:
    status: Stage
    percent_complete: int
    items_completed: int = 0
    items_total: int = 0


@dataclass(slots=True)
class Checkpoint:
    """Resumable edge-building cursor: candidate pairs consumed so far and the edges kept."""

    fingerprint: str
    pairs_done: int
    edges: list[Edge] = field(default_factory=list)
