"""Size-capped fuzzy deduplication of Arabic household beneficiary records."""

from household_dedupe.config import DedupeConfig, load_config
from household_dedupe.errors import ConfigurationError, DedupeError, MappingError, PipelineCancelled
from household_dedupe.models import Cluster, Edge, NormalizedRecord, PairBreakdown, PairScore, Progress
from household_dedupe.schema import FieldMapping, FieldTag
from household_dedupe.steps.scoring import full_pairwise_breakdown, score_pair

__all__ = [
    "Cluster",
    "ConfigurationError",
    "DedupeConfig",
    "DedupeError",
    "Edge",
    "FieldMapping",
    "FieldTag",
    "MappingError",
    "NormalizedRecord",
    "PairBreakdown",
    "PairScore",
    "PipelineCancelled",
    "Progress",
    "full_pairwise_breakdown",
    "load_config",
    "score_pair",
]
