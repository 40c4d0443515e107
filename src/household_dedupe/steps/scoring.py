from __future__ import annotations

from collections.abc import Sequence
from itertools import combinations

from household_dedupe.config import DedupeConfig, ScoreWeights
from household_dedupe.models import NormalizedRecord, PairBreakdown, PairScore, Reason
from household_dedupe.steps.rules import PairView, apply_rules
from household_dedupe.steps.similarity import component_scores, jaro_winkler, token_at

EXACT_ID_SCORE = 0.99
POLYGAMY_SCORE = 0.97
COMPOUNDING_BONUS = 0.04

_WEIGHT_FIELDS: dict[str, str] = {
    "firstNameScore": "first_name",
    "familyNameScore": "family_name",
    "advancedNameScore": "advanced_name",
    "tokenReorderScore": "token_reorder",
    "husbandScore": "husband",
    "idScore": "id",
    "phoneScore": "phone",
    "childrenScore": "children",
    "locationScore": "location",
}


def score_pair(
    left: NormalizedRecord,
    right: NormalizedRecord,
    config: DedupeConfig,
    with_breakdown: bool = False,
) -> PairScore:
    """Score two records through the decision cascade; the first matching stage wins.

    Order: exact national ID, polygamy pattern, the configured override rules,
    then the weighted composite of all field components.
    """
    breakdown = component_scores(left, right) if with_breakdown else None

    if left.national_id and left.national_id == right.national_id:
        return PairScore(EXACT_ID_SCORE, (Reason.EXACT_ID.value,), "exact_id", breakdown)

    if config.rules.enable_polygamy_rules and _polygamy_pattern(left, right):
        return PairScore(POLYGAMY_SCORE, (Reason.POLYGAMY_PATTERN.value,), "polygamy_pattern", breakdown)

    match = apply_rules(PairView(left, right), config)
    if match is not None:
        return PairScore(match.score, (match.reason.value,), match.rule, breakdown)

    components = breakdown if breakdown is not None else component_scores(left, right)
    score = composite_score(components, config.final_score_weights)
    reasons = (Reason.TOKEN_REORDER.value,) if components["tokenReorderScore"] > 0.85 else ()
    return PairScore(score, reasons, None, breakdown)


def composite_score(components: dict[str, float], weights: ScoreWeights) -> float:
    score = sum(getattr(weights, field) * components[key] for key, field in _WEIGHT_FIELDS.items())
    strong = sum(
        1
        for key in ("firstNameScore", "familyNameScore", "tokenReorderScore")
        if components[key] >= 0.85
    )
    if strong >= 2:
        score = min(1.0, score + COMPOUNDING_BONUS)
    return max(0.0, min(1.0, score))


def _polygamy_pattern(left: NormalizedRecord, right: NormalizedRecord) -> bool:
    a, b = left.woman_tokens, right.woman_tokens
    return (
        jaro_winkler(left.husband_normalized, right.husband_normalized) >= 0.95
        and jaro_winkler(token_at(a, 1), token_at(b, 1)) >= 0.93
        and jaro_winkler(token_at(a, 2), token_at(b, 2)) >= 0.90
    )


class CascadeScorer:
    """``PairScorer`` bound to one configuration; picklable for process pools."""

    def __init__(self, config: DedupeConfig) -> None:
        self.config = config

    def score(self, left: NormalizedRecord, right: NormalizedRecord, with_breakdown: bool = False) -> PairScore:
        return score_pair(left, right, self.config, with_breakdown=with_breakdown)


def full_pairwise_breakdown(
    records: Sequence[NormalizedRecord],
    config: DedupeConfig | None = None,
) -> list[PairBreakdown]:
    """Score every pair of a (small) record subset, best pairs first."""
    config = config or DedupeConfig()
    rows: list[PairBreakdown] = []
    for left, right in combinations(records, 2):
        result = score_pair(left, right, config, with_breakdown=True)
        rows.append(
            PairBreakdown(
                a=left.id,
                b=right.id,
                score=result.score,
                reasons=list(result.reasons),
                rule=result.rule,
                breakdown=result.breakdown or {},
            )
        )
    rows.sort(key=lambda row: (-row.score, row.a, row.b))
    return rows
