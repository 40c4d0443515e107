"""Engine configuration.

Options mirror the settings payload saved by the review tool, so both the
camelCase keys (``minPair``) and the Python field names (``min_pair``) are
accepted. Numeric ranges are deliberately left unchecked: callers may retune
weights freely and only the final pair score is clamped. Values that cannot be
read as numbers/booleans are rejected with a ``ConfigurationError`` naming the
offending option.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from household_dedupe.errors import ConfigurationError


class _Section(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)


class Thresholds(_Section):
    min_pair: float = Field(0.62, alias="minPair")
    min_internal: float = Field(0.50, alias="minInternal")
    block_chunk_size: int = Field(3000, alias="blockChunkSize", gt=0)


class ScoreWeights(_Section):
    first_name: float = Field(0.15, alias="firstNameScore")
    family_name: float = Field(0.25, alias="familyNameScore")
    advanced_name: float = Field(0.12, alias="advancedNameScore")
    token_reorder: float = Field(0.10, alias="tokenReorderScore")
    husband: float = Field(0.12, alias="husbandScore")
    id: float = Field(0.08, alias="idScore")
    phone: float = Field(0.05, alias="phoneScore")
    children: float = Field(0.06, alias="childrenScore")
    location: float = Field(0.04, alias="locationScore")


class RuleSettings(_Section):
    enable_polygamy_rules: bool = Field(True, alias="enablePolygamyRules")
    enable_investigation_rule: bool = Field(True, alias="enableInvestigationRule")
    enable_shared_household_rule: bool = Field(True, alias="enableSharedHouseholdRule")
    rule_set: Literal["clustering", "review"] = Field("clustering", alias="ruleSet")


class DedupeConfig(_Section):
    thresholds: Thresholds = Field(default_factory=Thresholds)
    final_score_weights: ScoreWeights = Field(default_factory=ScoreWeights, alias="finalScoreWeights")
    rules: RuleSettings = Field(default_factory=RuleSettings)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "DedupeConfig":
        try:
            return cls.model_validate(dict(data or {}))
        except ValidationError as exc:
            error = exc.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or "<root>"
            raise ConfigurationError(field, error["msg"]) from exc

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def load_config(path: Path) -> DedupeConfig:
    with path.open("r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(str(path), f"not valid JSON ({exc.msg})") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(str(path), "expected a JSON object")
    return DedupeConfig.from_mapping(payload)
