"""Override rules for Arabic name lineage and household patterns.

Woman names are read positionally: first name, father, grandfather, then the
family name (4th token) or further ancestors. A rule that fires replaces the
weighted composite with ``min(1, minPair + boost)``.

Two rule sets exist. ``clustering`` is the cascade used when grouping records;
``review`` is the tiered cascade used by the review screen, with stricter
woman/husband identity tiers checked first.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from household_dedupe.config import DedupeConfig
from household_dedupe.models import NormalizedRecord, Reason
from household_dedupe.steps.normalize import normalize_text
from household_dedupe.steps.similarity import jaccard, jaro_winkler, last_token, order_free, token_at

PLACEHOLDER_WORDS = frozenset(
    normalize_text(word)
    for word in ("تحت", "التحقيق", "مراجعة", "قيد", "موقوف", "غير", "مكتمل", "التحقق", "مراجعه")
)


class PairView:
    """Both records of a pair with lazily computed shared measurements."""

    def __init__(self, left: NormalizedRecord, right: NormalizedRecord) -> None:
        self.left = left
        self.right = right
        self.a = left.woman_tokens
        self.b = right.woman_tokens
        self.ha = left.husband_tokens
        self.hb = right.husband_tokens
        self._husband_order_free: float | None = None

    def woman(self, index: int) -> float:
        return jaro_winkler(token_at(self.a, index), token_at(self.b, index))

    def husband(self, index: int) -> float:
        return jaro_winkler(token_at(self.ha, index), token_at(self.hb, index))

    def woman_family(self) -> float:
        return jaro_winkler(last_token(self.a), last_token(self.b))

    def husband_family(self) -> float:
        return jaro_winkler(last_token(self.ha), last_token(self.hb))

    def husband_full(self) -> float:
        return jaro_winkler(self.left.husband_normalized, self.right.husband_normalized)

    def husband_order_free(self) -> float:
        if self._husband_order_free is None:
            self._husband_order_free = order_free(self.ha, self.hb)
        return self._husband_order_free

    def woman_jaccard(self) -> float:
        return jaccard(self.a, self.b)

    def children_jaccard(self) -> float:
        return jaccard(self.left.children_normalized, self.right.children_normalized)

    def four_vs_five(self) -> bool:
        return sorted((len(self.a), len(self.b))) == [4, 5]

    def shared_lineage_tokens(self, threshold: float = 0.93) -> int:
        forward = sum(1 for x in self.a if any(jaro_winkler(x, y) >= threshold for y in self.b))
        backward = sum(1 for y in self.b if any(jaro_winkler(x, y) >= threshold for x in self.a))
        return min(forward, backward)

    def has_placeholder(self, include_husband: bool = True) -> bool:
        names = [self.a, self.b]
        if include_husband:
            names += [self.ha, self.hb]
        return any(token in PLACEHOLDER_WORDS for tokens in names for token in tokens)


@dataclass(frozen=True, slots=True)
class Rule:
    name: str
    reason: Reason
    boost: float
    matches: Callable[[PairView], bool]
    toggle: str | None = None
    fixed_score: float | None = None

    def enabled(self, config: DedupeConfig) -> bool:
        return self.toggle is None or bool(getattr(config.rules, self.toggle))

    def score(self, min_pair: float) -> float:
        if self.fixed_score is not None:
            return self.fixed_score
        return min(1.0, min_pair + self.boost)


@dataclass(frozen=True, slots=True)
class RuleMatch:
    rule: str
    score: float
    reason: Reason


def _first_name_match(p: PairView) -> bool:
    return bool(p.a) and bool(p.b) and p.woman(0) >= 0.93


def _household_children(p: PairView) -> bool:
    husband_strong = p.husband_full() >= 0.90 or p.husband_order_free() >= 0.90
    return _first_name_match(p) and husband_strong and p.children_jaccard() >= 0.90


def _woman_core(p: PairView) -> bool:
    return p.woman(0) >= 0.93 and p.woman(1) >= 0.93 and p.woman(2) >= 0.93


def _different_husband(p: PairView) -> bool:
    return p.husband(0) < 0.7


def _lineage_surname_differs(p: PairView) -> bool:
    return _woman_core(p) and p.woman(3) < 0.85 and _different_husband(p)


def _lineage_surname_matches(p: PairView) -> bool:
    return _woman_core(p) and p.woman(3) >= 0.85 and _different_husband(p)


def _lineage_variant_with_surname(p: PairView) -> bool:
    return p.four_vs_five() and _woman_core(p) and p.woman(3) >= 0.93 and _different_husband(p)


def _husband_lineage_variant(p: PairView) -> bool:
    return (
        p.four_vs_five()
        and p.woman(0) >= 0.95
        and p.woman(3) >= 0.93
        and p.husband(0) >= 0.95
        and p.woman(1) >= 0.93
        and p.woman(2) < 0.93
    )


def _lineage_variant(p: PairView) -> bool:
    return p.four_vs_five() and _woman_core(p) and _different_husband(p)


def _dominant_lineage(p: PairView) -> bool:
    if min(len(p.a), len(p.b), len(p.ha), len(p.hb)) < 3:
        return False
    woman_lineage = p.woman(1) >= 0.93 and p.woman(2) >= 0.93 and p.woman_family() >= 0.90
    same_husband = (
        p.husband(0) >= 0.93 and p.husband(1) >= 0.93 and p.husband(2) >= 0.93 and p.husband_family() >= 0.90
    )
    first = p.woman(0)
    return woman_lineage and same_husband and (first >= 0.55 or first == 0)


def _placeholder(p: PairView) -> bool:
    return (
        p.has_placeholder()
        and p.woman(0) >= 0.95
        and p.woman_family() >= 0.90
        and p.husband_order_free() >= 0.93
    )


def _shared_household(p: PairView) -> bool:
    return p.husband_order_free() >= 0.95 and p.woman_family() >= 0.90 and p.shared_lineage_tokens() >= 3


def _token_overlap(p: PairView) -> bool:
    return p.woman_jaccard() >= 0.80


CLUSTERING_RULES: tuple[Rule, ...] = (
    Rule("token_reorder", Reason.TOKEN_REORDER, 0.22, _token_overlap),
    Rule("household_children", Reason.DUPLICATED_HUSBAND_LINEAGE, 0.25, _household_children),
    Rule("woman_lineage_surname_differs", Reason.WOMAN_LINEAGE_MATCH, 0.18, _lineage_surname_differs),
    Rule("woman_lineage_surname_matches", Reason.WOMAN_LINEAGE_MATCH, 0.18, _lineage_surname_matches),
    Rule("woman_lineage_4v5_surname", Reason.WOMAN_LINEAGE_MATCH, 0.17, _lineage_variant_with_surname),
    Rule("husband_lineage_4v5", Reason.DUPLICATED_HUSBAND_LINEAGE, 0.20, _husband_lineage_variant),
    Rule("woman_lineage_4v5", Reason.WOMAN_LINEAGE_MATCH, 0.16, _lineage_variant),
    Rule("dominant_lineage", Reason.DUPLICATED_HUSBAND_LINEAGE, 0.23, _dominant_lineage),
    Rule(
        "investigation_placeholder",
        Reason.INVESTIGATION_PLACEHOLDER,
        0.25,
        _placeholder,
        toggle="enable_investigation_rule",
    ),
    Rule(
        "shared_household",
        Reason.POLYGAMY_SHARED_HOUSEHOLD,
        0.30,
        _shared_household,
        toggle="enable_shared_household_rule",
    ),
)


def _exact_woman(p: PairView) -> bool:
    return (
        len(p.a) >= 4
        and len(p.b) >= 4
        and p.woman(0) >= 0.98
        and p.woman(1) >= 0.98
        and p.woman(2) >= 0.95
    )


def _first_name_exact_husband(p: PairView) -> bool:
    return _first_name_match(p) and p.husband_full() >= 0.96


def _core_woman_and_husband(p: PairView) -> bool:
    if min(len(p.a), len(p.b), len(p.ha), len(p.hb)) < 3:
        return False
    return (
        p.woman(0) >= 0.98
        and p.woman(1) >= 0.90
        and p.woman(2) >= 0.95
        and p.husband(0) >= 0.98
        and p.husband(1) >= 0.95
        and p.husband(2) >= 0.95
    )


def _full_woman_and_husband(p: PairView) -> bool:
    if min(len(p.a), len(p.b), len(p.ha), len(p.hb)) < 4:
        return False
    return (
        p.woman(0) >= 0.95
        and p.woman(1) >= 0.95
        and p.woman(2) >= 0.93
        and p.husband(0) >= 0.95
        and p.husband(1) >= 0.93
        and p.husband(2) >= 0.93
    )


def _same_husband_woman_variant(p: PairView) -> bool:
    return (
        len(p.a) >= 3
        and len(p.b) >= 3
        and p.woman(0) >= 0.95
        and p.woman(1) >= 0.95
        and p.woman(2) >= 0.93
        and p.husband_order_free() >= 0.95
    )


def _woman_lineage_only(p: PairView) -> bool:
    return len(p.a) >= 3 and len(p.b) >= 3 and _woman_core(p) and p.husband(0) < 0.6


def _review_placeholder(p: PairView) -> bool:
    return (
        p.has_placeholder(include_husband=False)
        and p.woman(0) >= 0.95
        and p.woman_family() >= 0.93
        and p.husband_order_free() >= 0.93
    )


def _review_shared_household(p: PairView) -> bool:
    return p.husband_order_free() >= 0.8 and p.woman_family() >= 0.9 and p.shared_lineage_tokens() >= 3


REVIEW_RULES: tuple[Rule, ...] = (
    Rule("exact_woman", Reason.EXACT_WOMAN_MATCH, 0.35, _exact_woman),
    Rule(
        "first_name_exact_husband",
        Reason.SAME_WOMAN_FIRSTNAME_EXACT_HUSBAND,
        0.0,
        _first_name_exact_husband,
        fixed_score=1.0,
    ),
    Rule("core_woman_and_husband", Reason.CORE_WOMAN_AND_HUSBAND_LINEAGE_MATCH, 0.33, _core_woman_and_husband),
    Rule("full_woman_and_husband", Reason.FULL_WOMAN_AND_HUSBAND_MATCH, 0.32, _full_woman_and_husband),
    Rule("same_husband_woman_variant", Reason.SAME_HUSBAND_WOMAN_VARIANT, 0.27, _same_husband_woman_variant),
    Rule("household_children", Reason.DUPLICATED_HUSBAND_LINEAGE, 0.25, _household_children),
    Rule("woman_lineage_only", Reason.WOMAN_LINEAGE_ONLY, 0.20, _woman_lineage_only),
    Rule(
        "investigation_placeholder",
        Reason.INVESTIGATION_PLACEHOLDER,
        0.25,
        _review_placeholder,
        toggle="enable_investigation_rule",
    ),
    Rule(
        "shared_household",
        Reason.POLYGAMY_SHARED_HOUSEHOLD,
        0.30,
        _review_shared_household,
        toggle="enable_shared_household_rule",
    ),
    Rule("token_overlap_last_resort", Reason.TOKEN_REORDER_LAST_RESORT, 0.22, _token_overlap),
)

RULE_SETS: dict[str, tuple[Rule, ...]] = {
    "clustering": CLUSTERING_RULES,
    "review": REVIEW_RULES,
}


def apply_rules(view: PairView, config: DedupeConfig) -> RuleMatch | None:
    """First matching rule of the configured set, or ``None`` when nothing fires."""
    min_pair = config.thresholds.min_pair
    for rule in RULE_SETS[config.rules.rule_set]:
        if rule.enabled(config) and rule.matches(view):
            return RuleMatch(rule=rule.name, score=rule.score(min_pair), reason=rule.reason)
    return None
