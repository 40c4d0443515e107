from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from household_dedupe.models import NormalizedRecord
from household_dedupe.schema import FieldMapping, FieldTag

_ARABIC_DIGITS = str.maketrans("٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹", "01234567890123456789")
_LETTER_FOLDS = str.maketrans(
    {
        "أ": "ا",
        "إ": "ا",
        "آ": "ا",
        "ٱ": "ا",
        "ة": "ه",
        "ى": "ي",
        "ی": "ي",
        "ؤ": "و",
        "ئ": "ي",
        "گ": "ك",
        "ک": "ك",
    }
)

# harakat, superscript alef, Quranic annotation marks, tatweel, bare hamza
_STRIP = re.compile(r"[\u0610-\u061A\u064B-\u065F\u0670\u06D6-\u06ED\u0640\u0621]")
_DISALLOWED = re.compile(r"[^\u0621-\u064A0-9a-zA-Z\s]")
_WHITESPACE = re.compile(r"\s+")
_YAHYA = re.compile(r"\u064A\u062D\u064A\u064A+")
_ABD_PREFIX = re.compile(r"(?<![\u0621-\u064A])\u0639\u0628\u062F (?=[\u0621-\u064A])")
_CHILD_DELIMITERS = re.compile(r"[;,|،]")


def normalize_text(value: Any) -> str:
    """Fold an Arabic name or place string into its canonical comparison form.

    Never raises: ``None`` and other empty values become ``""``. Applying it to
    its own output returns the same string.
    """
    if value is None:
        return ""
    text = unicodedata.normalize("NFKC", str(value)).translate(_ARABIC_DIGITS)
    text = _STRIP.sub("", text)
    text = text.translate(_LETTER_FOLDS)
    text = _DISALLOWED.sub(" ", text)
    text = _WHITESPACE.sub(" ", text).strip().lower()
    if not text:
        return ""
    # each pass shortens the text, so this reaches a fixed point
    folded = _YAHYA.sub("يحي", text)
    while folded != text:
        text, folded = folded, _YAHYA.sub("يحي", folded)
    return _ABD_PREFIX.sub("عبد", text)


def split_tokens(normalized: str) -> list[str]:
    """Tokens of already-normalized text."""
    return normalized.split() if normalized else []


def tokenize(value: Any) -> list[str]:
    return split_tokens(normalize_text(value))


def digits_only(value: Any) -> str:
    if value is None:
        return ""
    folded = unicodedata.normalize("NFKC", str(value)).translate(_ARABIC_DIGITS)
    return "".join(ch for ch in folded if "0" <= ch <= "9")


def split_children(value: Any) -> list[str]:
    """Raw children entries: list items as-is, or a delimited string split apart."""
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        entries: Iterable[Any] = value
    else:
        entries = _CHILD_DELIMITERS.split(str(value))
    return [text for text in (str(entry).strip() for entry in entries if entry is not None) if text]


def normalize_children(value: Any) -> list[str]:
    return [normalized for normalized in (normalize_text(entry) for entry in split_children(value)) if normalized]


class RecordNormalizer:
    """Maps raw rows onto canonical fields and precomputes every normalized form."""

    def __init__(self, mapping: FieldMapping) -> None:
        self._mapping = mapping

    def normalize(
        self,
        rows: Sequence[Mapping[str, Any]],
        ids: Sequence[str] | None = None,
        start_index: int = 0,
    ) -> list[NormalizedRecord]:
        records: list[NormalizedRecord] = []
        for offset, row in enumerate(rows):
            index = start_index + offset
            record_id = ids[offset] if ids is not None else f"row_{index}"
            records.append(self.normalize_row(row, index=index, record_id=record_id))
        return records

    def normalize_row(self, row: Mapping[str, Any], index: int, record_id: str) -> NormalizedRecord:
        woman = _text(self._mapping.value_for(row, FieldTag.WOMAN_NAME))
        husband = _text(self._mapping.value_for(row, FieldTag.HUSBAND_NAME))
        village = _text(self._mapping.value_for(row, FieldTag.VILLAGE))
        subdistrict = _text(self._mapping.value_for(row, FieldTag.SUBDISTRICT))
        children = split_children(self._mapping.value_for(row, FieldTag.CHILDREN))

        woman_normalized = normalize_text(woman)
        husband_normalized = normalize_text(husband)
        return NormalizedRecord(
            id=record_id,
            index=index,
            raw=row,
            woman_name=woman,
            husband_name=husband,
            national_id=_text(self._mapping.value_for(row, FieldTag.NATIONAL_ID)).strip(),
            phone=digits_only(self._mapping.value_for(row, FieldTag.PHONE)),
            village=village,
            subdistrict=subdistrict,
            beneficiary_id=_text(self._mapping.value_for(row, FieldTag.BENEFICIARY_ID)).strip(),
            woman_normalized=woman_normalized,
            husband_normalized=husband_normalized,
            village_normalized=normalize_text(village),
            subdistrict_normalized=normalize_text(subdistrict),
            woman_tokens=tuple(split_tokens(woman_normalized)),
            husband_tokens=tuple(split_tokens(husband_normalized)),
            children=tuple(children),
            children_normalized=tuple(normalize_children(children)),
        )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
