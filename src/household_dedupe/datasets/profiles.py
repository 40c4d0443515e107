from __future__ import annotations

from household_dedupe.schema import FieldMapping, FieldTag

ID_COLUMN = "RECORD_ID"

# Column layout of the beneficiary registration sheets.
DEFAULT_COLUMNS = [
    "BENEFICIARY_ID",
    "WOMAN_NAME",
    "HUSBAND_NAME",
    "NATIONAL_ID",
    "PHONE",
    "VILLAGE",
    "SUBDISTRICT",
    "CHILDREN",
    "REGISTERED_DATE",
]


DEFAULT_MAPPING = FieldMapping.from_mapping(
    {
        FieldTag.BENEFICIARY_ID: "BENEFICIARY_ID",
        FieldTag.WOMAN_NAME: "WOMAN_NAME",
        FieldTag.HUSBAND_NAME: "HUSBAND_NAME",
        FieldTag.NATIONAL_ID: "NATIONAL_ID",
        FieldTag.PHONE: "PHONE",
        FieldTag.VILLAGE: "VILLAGE",
        FieldTag.SUBDISTRICT: "SUBDISTRICT",
        FieldTag.CHILDREN: "CHILDREN",
    }
)
