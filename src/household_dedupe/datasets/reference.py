from __future__ import annotations

import random
from collections.abc import Sequence

from household_dedupe.datasets.profiles import DEFAULT_COLUMNS, ID_COLUMN

_WOMAN_NAMES = [
    "فاطمة",
    "عائشة",
    "مريم",
    "خديجة",
    "زينب",
    "أمينة",
    "سعاد",
    "نورة",
    "هدى",
    "أسماء",
    "رقية",
    "سلمى",
]
_MALE_NAMES = [
    "أحمد",
    "محمد",
    "علي",
    "حسن",
    "صالح",
    "عبد الله",
    "يحيى",
    "عمر",
    "قاسم",
    "ناصر",
    "سعيد",
    "إبراهيم",
    "عبد الرحمن",
    "منصور",
    "خالد",
]
_FAMILY_NAMES = ["الحكيمي", "الأهدل", "العامري", "الشرعبي", "المقطري", "الزبيدي", "القدسي", "الصبري"]
_CHILD_NAMES = ["سالم", "ليلى", "يوسف", "هند", "مازن", "رنا", "أنس", "جميلة", "بلال", "آمنة"]
_VILLAGES = ["الحصين", "بني سعد", "المعافر", "الشمايتين", "ذي السفال", "الضالع"]
_SUBDISTRICTS = ["المسراخ", "الوازعية", "حيفان", "السياني", "جبن"]

_ARABIC_DIGITS = str.maketrans("0123456789", "٠١٢٣٤٥٦٧٨٩")
_FATHA = "َ"
_TATWEEL = "ـ"


class ReferenceDatasetGenerator:
    """Generate synthetic household registrations (with intentional dupes) for tests and benchmarks."""

    def __init__(self, seed: int = 7) -> None:
        self._rng = random.Random(seed)

    def generate(
        self,
        size: int,
        duplicate_rate: float = 0.15,
        columns: Sequence[str] = DEFAULT_COLUMNS,
    ) -> list[dict[str, str]]:
        if size <= 0:
            return []

        unique_count = int(size * (1.0 - duplicate_rate))
        unique_count = max(1, min(unique_count, size))

        rows = [self._profile(i) for i in range(unique_count)]
        while len(rows) < size:
            source = self._rng.choice(rows[:unique_count])
            variant = dict(source)
            self._perturb(variant)
            rows.append(variant)

        self._rng.shuffle(rows)
        return [
            {ID_COLUMN: f"hh_{position:07d}", **{column: row.get(column, "") for column in columns}}
            for position, row in enumerate(rows)
        ]

    def _profile(self, idx: int) -> dict[str, str]:
        family = self._rng.choice(_FAMILY_NAMES)
        woman = [
            self._rng.choice(_WOMAN_NAMES),
            self._rng.choice(_MALE_NAMES),
            self._rng.choice(_MALE_NAMES),
            self._rng.choice(_FAMILY_NAMES),
        ]
        husband = [
            self._rng.choice(_MALE_NAMES),
            self._rng.choice(_MALE_NAMES),
            self._rng.choice(_MALE_NAMES),
            family,
        ]
        children = self._rng.sample(_CHILD_NAMES, k=self._rng.randint(0, 4))
        return {
            "BENEFICIARY_ID": f"BNF-{100000 + idx}",
            "WOMAN_NAME": " ".join(woman),
            "HUSBAND_NAME": " ".join(husband),
            "NATIONAL_ID": f"{self._rng.randint(10**9, 10**10 - 1)}",
            "PHONE": f"77{self._rng.randint(0, 9_999_999):07d}",
            "VILLAGE": self._rng.choice(_VILLAGES),
            "SUBDISTRICT": self._rng.choice(_SUBDISTRICTS),
            "CHILDREN": "، ".join(children),
            "REGISTERED_DATE": f"2024-{(idx % 12) + 1:02d}-{(idx % 27) + 1:02d}",
        }

    def _perturb(self, row: dict[str, str]) -> None:
        mutation = self._rng.choice(["reorder", "spelling", "drop_middle", "phone", "second_wife", "mixed"])

        if mutation in {"reorder", "mixed"}:
            tokens = row["WOMAN_NAME"].split()
            self._rng.shuffle(tokens)
            row["WOMAN_NAME"] = " ".join(tokens)

        if mutation in {"spelling", "mixed"}:
            row["WOMAN_NAME"] = self._spelling_variant(row["WOMAN_NAME"])
            row["HUSBAND_NAME"] = self._spelling_variant(row["HUSBAND_NAME"])

        if mutation == "drop_middle":
            tokens = row["WOMAN_NAME"].split()
            if len(tokens) > 3:
                del tokens[2]
            row["WOMAN_NAME"] = " ".join(tokens)
            row["NATIONAL_ID"] = ""

        if mutation in {"phone", "mixed"}:
            row["PHONE"] = self._phone_variant(row["PHONE"])

        if mutation == "second_wife":
            tokens = row["WOMAN_NAME"].split()
            tokens[0] = self._rng.choice([name for name in _WOMAN_NAMES if name != tokens[0]])
            row["WOMAN_NAME"] = " ".join(tokens)
            row["NATIONAL_ID"] = f"{self._rng.randint(10**9, 10**10 - 1)}"
            row["CHILDREN"] = ""

        row["BENEFICIARY_ID"] = f"{row['BENEFICIARY_ID']}-{self._rng.randint(1, 9)}"

    def _spelling_variant(self, name: str) -> str:
        variant = self._rng.choice(["hamza", "ta_marbuta", "diacritic", "tatweel"])
        if variant == "hamza":
            return " ".join("أ" + token[1:] if token.startswith("ا") else token for token in name.split())
        if variant == "ta_marbuta":
            return " ".join(token[:-1] + "ة" if token.endswith("ه") else token for token in name.split())
        if variant == "diacritic" and name:
            return name[0] + _FATHA + name[1:]
        if len(name) > 2:
            return name[:2] + _TATWEEL + name[2:]
        return name

    def _phone_variant(self, phone: str) -> str:
        variant = self._rng.choice(["international", "spaced", "arabic_digits"])
        if variant == "international":
            return f"+967 {phone}"
        if variant == "spaced":
            return f"{phone[:3]} {phone[3:6]} {phone[6:]}"
        return phone.translate(_ARABIC_DIGITS)
