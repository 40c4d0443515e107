import pytest

from household_dedupe.datasets import DEFAULT_MAPPING, ReferenceDatasetGenerator
from household_dedupe.steps import RecordNormalizer, digits_only, normalize_children, normalize_text, tokenize


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("  فاطِمَة  أحمد ", "فاطمه احمد"),
        ("إيمان آمنة", "ايمان امنه"),
        ("محـــمد", "محمد"),
        ("يحيى", "يحي"),
        ("عبد الله صالح", "عبدالله صالح"),
        ("عبد الرحمن", "عبدالرحمن"),
        ("فاطمة-علي/الحكيمي", "فاطمه علي الحكيمي"),
        ("Fatima  ALI", "fatima ali"),
        ("رقم ٤٥", "رقم 45"),
        ("مؤمن رئيس", "مومن رييس"),
    ],
)
def test_normalize_text_folds_arabic_variants(raw: str, expected: str) -> None:
    assert normalize_text(raw) == expected


def test_normalize_text_is_total() -> None:
    assert normalize_text(None) == ""
    assert normalize_text("") == ""
    assert normalize_text("   ") == ""
    assert normalize_text("ًٌٍ") == ""
    assert normalize_text(12345) == "12345"


def test_normalize_text_is_idempotent() -> None:
    samples = [
        "يحييييى عبد  الله",
        "يحييحيي",
        "عبد عبد علي",
        "الـــحَكِيمِيّ، أبو بكر!",
        "ﻻ إله",
        "Ahmed عبد",
    ]
    rows = ReferenceDatasetGenerator(seed=3).generate(size=80, duplicate_rate=0.5)
    samples.extend(row["WOMAN_NAME"] for row in rows)
    samples.extend(row["HUSBAND_NAME"] for row in rows)

    for sample in samples:
        once = normalize_text(sample)
        assert normalize_text(once) == once


def test_tokenize_drops_empty_tokens() -> None:
    assert tokenize(" أحمد   علي ") == ["احمد", "علي"]
    assert tokenize("") == []
    assert tokenize("؟؟") == []


def test_digits_only_folds_arabic_indic_digits() -> None:
    assert digits_only("+967 ٧٧١-٢٣٤") == "967771234"
    assert digits_only(None) == ""
    assert digits_only("n/a") == ""


def test_normalize_children_accepts_strings_and_lists() -> None:
    assert normalize_children("سالم;; ليلى،|يوسف") == ["سالم", "ليلي", "يوسف"]
    assert normalize_children(["آمنة", "", None]) == ["امنه"]
    assert normalize_children(None) == []
    assert normalize_children(",,،") == []


def test_record_normalizer_defaults_missing_fields() -> None:
    records = RecordNormalizer(DEFAULT_MAPPING).normalize([{"WOMAN_NAME": "فاطمة أحمد"}, {}])

    first, second = records
    assert first.id == "row_0"
    assert first.woman_tokens == ("فاطمه", "احمد")
    assert first.husband_tokens == ()
    assert first.children_normalized == ()
    assert second.id == "row_1"
    assert second.index == 1
    assert second.woman_normalized == ""
    assert second.national_id == ""


def test_record_normalizer_keeps_raw_row_and_custom_ids() -> None:
    row = {"WOMAN_NAME": "مريم", "PHONE": "77 123 4567", "NATIONAL_ID": " 0123 ", "CHILDREN": "سالم، هند"}
    [record] = RecordNormalizer(DEFAULT_MAPPING).normalize([row], ids=["hh_1"], start_index=5)

    assert record.id == "hh_1"
    assert record.index == 5
    assert record.raw is row
    assert record.phone == "771234567"
    assert record.national_id == "0123"
    assert record.children == ("سالم", "هند")


def test_record_name_tokens_match_tokenize() -> None:
    rows = ReferenceDatasetGenerator(seed=6).generate(size=60, duplicate_rate=0.5)
    rows.append({"WOMAN_NAME": "  عبد  الله ـــ  يحيى ", "HUSBAND_NAME": "؟"})

    records = RecordNormalizer(DEFAULT_MAPPING).normalize(rows)

    for row, record in zip(rows, records):
        assert list(record.woman_tokens) == tokenize(row["WOMAN_NAME"])
        assert list(record.husband_tokens) == tokenize(row["HUSBAND_NAME"])
