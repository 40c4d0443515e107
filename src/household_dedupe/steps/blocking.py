"""Blocking: group records under overlapping keys so only same-block pairs are scored.

Two records are compared only when they share at least one key. Blocks larger
than ``blockChunkSize`` are walked slice against slice, so every pair of the
block is still produced whatever the chunk size.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterator, Sequence
from typing import Any

from household_dedupe.models import NormalizedRecord
from household_dedupe.steps.similarity import last_token, token_at

CATCH_ALL_KEY = "blk:all"
NAME_PREFIX = 3
PLACE_PREFIX = 6


class BlockIndex:
    """Multi-map from block key to the record indices carrying it, in insertion order."""

    def __init__(self) -> None:
        self._blocks: dict[str, list[int]] = defaultdict(list)

    def add(self, key: str, index: int) -> None:
        self._blocks[key].append(index)

    def get(self, key: str) -> list[int]:
        return list(self._blocks.get(key, ()))

    def keys(self) -> list[str]:
        return list(self._blocks)

    def items(self) -> Iterator[tuple[str, list[int]]]:
        return iter(self._blocks.items())

    def candidate_blocks(self) -> Iterator[tuple[str, list[int]]]:
        for key, members in self._blocks.items():
            if len(members) >= 2:
                yield key, members

    def __len__(self) -> int:
        return len(self._blocks)


def blocking_keys(record: NormalizedRecord) -> list[str]:
    woman, husband = record.woman_tokens, record.husband_tokens
    woman_first = token_at(woman, 0)[:NAME_PREFIX]
    father = token_at(woman, 1)
    husband_first = token_at(husband, 0)
    phone_tail = record.phone[-4:]
    id_tail = record.national_id[-4:]

    keys: list[str] = []

    def add(kind: str, *parts: str) -> None:
        if all(parts):
            keys.append(f"{kind}:{':'.join(parts)}")

    add("wf", woman_first)
    add("ff", father)
    if len(woman) > 1:
        add("wl", last_token(woman))
    add("hf", husband_first)
    if len(husband) > 1:
        add("hl", last_token(husband))
    add("v", record.village_normalized[:PLACE_PREFIX])
    add("sd", record.subdistrict_normalized[:PLACE_PREFIX])
    add("ffhf", father, husband_first)
    add("wfhf", woman_first, husband_first[:NAME_PREFIX])
    if woman:
        add("ws", "|".join(sorted(woman)))
    add("wp", woman_first, phone_tail)
    add("wi", woman_first, id_tail)
    add("nid", record.national_id)
    return keys or [CATCH_ALL_KEY]


def build_blocks(records: Sequence[NormalizedRecord]) -> BlockIndex:
    index = BlockIndex()
    for position, record in enumerate(records):
        for key in dict.fromkeys(blocking_keys(record)):
            index.add(key, position)
    return index


def _slice_pairs(members: list[int], chunk_size: int) -> Iterator[tuple[int, int]]:
    slices = [members[start : start + chunk_size] for start in range(0, len(members), chunk_size)]
    for position, head in enumerate(slices):
        for offset, left in enumerate(head):
            for right in head[offset + 1 :]:
                yield left, right
        for tail in slices[position + 1 :]:
            for left in head:
                for right in tail:
                    yield left, right


def candidate_pairs(blocks: BlockIndex, chunk_size: int) -> Iterator[tuple[int, int]]:
    """Yield each unordered pair ``(i, j)`` with ``i < j`` once, lazily."""
    seen: set[tuple[int, int]] = set()
    for _, members in blocks.candidate_blocks():
        for left, right in _slice_pairs(members, chunk_size):
            pair = (left, right) if left < right else (right, left)
            if pair in seen:
                continue
            seen.add(pair)
            yield pair


def block_statistics(blocks: BlockIndex, record_count: int, chunk_size: int) -> dict[str, Any]:
    """Block counts, sizes and the share of all-pairs work avoided."""
    total_pairs = record_count * (record_count - 1) // 2
    sizes = [len(members) for _, members in blocks.items()]

    block_pairs = 0
    sliced_blocks = 0
    for _, members in blocks.candidate_blocks():
        block_pairs += len(members) * (len(members) - 1) // 2
        if len(members) > chunk_size:
            sliced_blocks += 1

    kind_counts: dict[str, int] = defaultdict(int)
    for key in blocks.keys():
        kind_counts[key.split(":", 1)[0]] += 1

    return {
        "total_records": record_count,
        "total_pairs_without_blocking": total_pairs,
        "total_blocks": len(blocks),
        "candidate_blocks": sum(1 for size in sizes if size >= 2),
        "sliced_blocks": sliced_blocks,
        "estimated_pairs_with_blocking": block_pairs,
        "reduction_ratio": 1 - min(block_pairs, total_pairs) / total_pairs if total_pairs > 0 else 0,
        "block_size_distribution": {
            "min": min(sizes) if sizes else 0,
            "max": max(sizes) if sizes else 0,
            "mean": sum(sizes) / len(sizes) if sizes else 0,
        },
        "key_kind_counts": dict(kind_counts),
    }
