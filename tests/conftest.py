from __future__ import annotations

from typing import Any, Callable

import pytest

from household_dedupe.datasets import DEFAULT_MAPPING, ReferenceDatasetGenerator
from household_dedupe.models import NormalizedRecord
from household_dedupe.steps import RecordNormalizer


def household_row(
    woman: str = "",
    husband: str = "",
    national_id: str = "",
    phone: str = "",
    village: str = "",
    subdistrict: str = "",
    children: Any = "",
) -> dict[str, Any]:
    return {
        "WOMAN_NAME": woman,
        "HUSBAND_NAME": husband,
        "NATIONAL_ID": national_id,
        "PHONE": phone,
        "VILLAGE": village,
        "SUBDISTRICT": subdistrict,
        "CHILDREN": children,
    }


@pytest.fixture
def make_record() -> Callable[..., NormalizedRecord]:
    normalizer = RecordNormalizer(DEFAULT_MAPPING)

    def _make(index: int = 0, **fields: Any) -> NormalizedRecord:
        return normalizer.normalize_row(household_row(**fields), index=index, record_id=f"row_{index}")

    return _make


@pytest.fixture
def generated_records() -> list[NormalizedRecord]:
    rows = ReferenceDatasetGenerator(seed=11).generate(size=60, duplicate_rate=0.3)
    return RecordNormalizer(DEFAULT_MAPPING).normalize(rows)
