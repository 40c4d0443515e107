from __future__ import annotations


class DedupeError(Exception):
    """Base class for errors raised by the dedupe engine."""


class ConfigurationError(DedupeError):
    """A configuration value could not be interpreted.

    ``field`` is the dotted path of the offending option, e.g. ``thresholds.minPair``.
    """

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Invalid configuration for '{field}': {reason}")
        self.field = field
        self.reason = reason


class MappingError(DedupeError):
    """Required canonical fields are not mapped to a source column."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing column mapping for required fields: {', '.join(missing)}")
        self.missing = missing


class PipelineCancelled(DedupeError):
    """Raised at a yield point after the caller requested cancellation."""
