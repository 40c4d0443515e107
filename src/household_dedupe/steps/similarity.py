"""String and field similarity primitives used by the pair scorer.

All functions return values in ``[0, 1]`` and are symmetric in their two
arguments; an empty side always scores 0.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from household_dedupe.models import NormalizedRecord

_PREFIX_SCALE = 0.1
_MAX_PREFIX = 4


def jaro(left: str, right: str) -> float:
    """Jaro similarity with a match window of ``max(len) // 2 - 1``, matched greedily left to right."""
    if not left or not right:
        return 0.0
    window = max(len(left), len(right)) // 2 - 1
    left_matched = [False] * len(left)
    right_matched = [False] * len(right)
    matches = 0
    for i, char in enumerate(left):
        for j in range(max(0, i - window), min(i + window + 1, len(right))):
            if not right_matched[j] and right[j] == char:
                left_matched[i] = right_matched[j] = True
                matches += 1
                break
    if matches == 0:
        return 0.0

    right_chars = (char for char, matched in zip(right, right_matched) if matched)
    out_of_order = sum(1 for char, matched in zip(left, left_matched) if matched and char != next(right_chars))
    transpositions = out_of_order / 2
    return (matches / len(left) + matches / len(right) + (matches - transpositions) / matches) / 3


def jaro_winkler(left: str, right: str) -> float:
    """Jaro-Winkler with the prefix bonus applied at every Jaro level."""
    if not left or not right:
        return 0.0
    if right < left:
        left, right = right, left
    jaro_score = jaro(left, right)
    prefix = 0
    for a, b in zip(left[:_MAX_PREFIX], right[:_MAX_PREFIX]):
        if a != b:
            break
        prefix += 1
    return jaro_score + prefix * _PREFIX_SCALE * (1.0 - jaro_score)


def jaccard(left: Iterable[str], right: Iterable[str]) -> float:
    left_set, right_set = set(left), set(right)
    union = len(left_set | right_set)
    if union == 0:
        return 0.0
    return len(left_set & right_set) / union


def order_free(left: Sequence[str], right: Sequence[str]) -> float:
    """Token-order-insensitive name similarity: 0.7 Jaccard + 0.3 JW of sorted tokens."""
    if not left or not right:
        return 0.0
    sorted_jw = jaro_winkler(" ".join(sorted(left)), " ".join(sorted(right)))
    return 0.7 * jaccard(left, right) + 0.3 * sorted_jw


def token_at(tokens: Sequence[str], index: int) -> str:
    return tokens[index] if len(tokens) > index else ""


def last_token(tokens: Sequence[str]) -> str:
    return tokens[-1] if tokens else ""


def _roots(tokens: Sequence[str]) -> str:
    return " ".join(token[:3] for token in tokens)


def phone_score(left: str, right: str) -> float:
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    if left[-6:] == right[-6:]:
        return 0.85
    if left[-4:] == right[-4:]:
        return 0.6
    return 0.0


def id_score(left: str, right: str) -> float:
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    if left[-5:] == right[-5:]:
        return 0.75
    return 0.0


def location_score(left: NormalizedRecord, right: NormalizedRecord) -> float:
    score = 0.0
    if left.village_normalized and left.village_normalized == right.village_normalized:
        score += 0.4
    if left.subdistrict_normalized and left.subdistrict_normalized == right.subdistrict_normalized:
        score += 0.25
    return min(0.5, score)


def component_scores(left: NormalizedRecord, right: NormalizedRecord) -> dict[str, float]:
    """Every weighted component of the composite score, keyed by its weight name."""
    a, b = left.woman_tokens, right.woman_tokens
    root_a, root_b = _roots(a), _roots(b)
    advanced = min(0.5, jaro_winkler(root_a, root_b)) if root_a and root_b else 0.0
    husband = max(
        jaro_winkler(left.husband_normalized, right.husband_normalized),
        order_free(left.husband_tokens, right.husband_tokens),
    )
    return {
        "firstNameScore": jaro_winkler(token_at(a, 0), token_at(b, 0)),
        "familyNameScore": jaro_winkler(" ".join(a[1:]), " ".join(b[1:])),
        "advancedNameScore": advanced,
        "tokenReorderScore": order_free(a, b),
        "husbandScore": husband,
        "idScore": id_score(left.national_id, right.national_id),
        "phoneScore": phone_score(left.phone, right.phone),
        "childrenScore": jaccard(left.children_normalized, right.children_normalized),
        "locationScore": location_score(left, right),
    }
