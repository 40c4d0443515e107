from household_dedupe.runners.local import DedupeResult, DedupeSession, LocalDedupePipeline

__all__ = ["DedupeResult", "DedupeSession", "LocalDedupePipeline"]
