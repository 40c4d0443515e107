from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Mapping

from household_dedupe.errors import MappingError


class FieldTag(StrEnum):
    WOMAN_NAME = "womanName"
    HUSBAND_NAME = "husbandName"
    NATIONAL_ID = "nationalId"
    PHONE = "phone"
    VILLAGE = "village"
    SUBDISTRICT = "subdistrict"
    CHILDREN = "children"
    BENEFICIARY_ID = "beneficiaryId"


REQUIRED_FIELDS: tuple[FieldTag, ...] = (
    FieldTag.WOMAN_NAME,
    FieldTag.HUSBAND_NAME,
    FieldTag.NATIONAL_ID,
    FieldTag.PHONE,
    FieldTag.VILLAGE,
    FieldTag.SUBDISTRICT,
    FieldTag.CHILDREN,
)


@dataclass(frozen=True)
class FieldMapping:
    """Maps canonical household fields to the columns of a source dataset."""

    tag_to_column: Mapping[FieldTag, str]

    @classmethod
    def from_mapping(cls, mapping: Mapping[FieldTag | str, str]) -> "FieldMapping":
        frozen: dict[FieldTag, str] = {}
        for key, column in mapping.items():
            try:
                tag = FieldTag(key)
            except ValueError:
                # cluster_id and other UI-only keys are carried in saved mappings
                continue
            if column:
                frozen[tag] = str(column)

        missing = [tag.value for tag in REQUIRED_FIELDS if tag not in frozen]
        if missing:
            raise MappingError(missing)
        return cls(tag_to_column=frozen)

    def column_for(self, tag: FieldTag) -> str | None:
        return self.tag_to_column.get(tag)

    def value_for(self, row: Mapping[str, Any], tag: FieldTag) -> Any:
        column = self.column_for(tag)
        if column is None:
            return None
        return row.get(column)

    def to_dict(self) -> dict[str, str]:
        return {tag.value: column for tag, column in self.tag_to_column.items()}
