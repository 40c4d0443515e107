from household_dedupe.steps.annotate import ClusterAnnotator
from household_dedupe.steps.blocking import BlockIndex, block_statistics, build_blocks, candidate_pairs
from household_dedupe.steps.clustering import SizeCappedClusterer, UnionFind, split_cluster
from household_dedupe.steps.edges import EdgeBuilder
from household_dedupe.steps.normalize import RecordNormalizer, digits_only, normalize_children, normalize_text, tokenize
from household_dedupe.steps.scoring import CascadeScorer, full_pairwise_breakdown, score_pair
from household_dedupe.steps.similarity import jaccard, jaro_winkler, order_free

__all__ = [
    "BlockIndex",
    "CascadeScorer",
    "ClusterAnnotator",
    "EdgeBuilder",
    "RecordNormalizer",
    "SizeCappedClusterer",
    "UnionFind",
    "block_statistics",
    "build_blocks",
    "candidate_pairs",
    "digits_only",
    "full_pairwise_breakdown",
    "jaccard",
    "jaro_winkler",
    "normalize_children",
    "normalize_text",
    "order_free",
    "score_pair",
    "split_cluster",
    "tokenize",
]
