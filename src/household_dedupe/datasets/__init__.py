from household_dedupe.datasets.profiles import DEFAULT_COLUMNS, DEFAULT_MAPPING, ID_COLUMN
from household_dedupe.datasets.reference import ReferenceDatasetGenerator

__all__ = ["DEFAULT_COLUMNS", "DEFAULT_MAPPING", "ID_COLUMN", "ReferenceDatasetGenerator"]
