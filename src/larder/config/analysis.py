"""Thresholds and heuristics for import analysis."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_int_env_var
from .errors import ConfigurationError

EXACT_MATCH_SCORE = 100
DEFAULT_NEAR_MATCH_THRESHOLD = 70
DEFAULT_VARIATION_THRESHOLD = 70
DEFAULT_MERGE_THRESHOLD = 85
DEFAULT_AVERAGE_RECORD_BYTES = 1024
DEFAULT_NEAR_MATCH_SAVINGS = 0.75


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    near_match_threshold: int = DEFAULT_NEAR_MATCH_THRESHOLD
    variation_threshold: int = DEFAULT_VARIATION_THRESHOLD
    merge_threshold: int = DEFAULT_MERGE_THRESHOLD
    average_record_bytes: int = DEFAULT_AVERAGE_RECORD_BYTES
    near_match_savings: float = DEFAULT_NEAR_MATCH_SAVINGS

    def __post_init__(self) -> None:
        for name in ("near_match_threshold", "variation_threshold", "merge_threshold"):
            value = getattr(self, name)
            if not 0 <= value < EXACT_MATCH_SCORE:
                raise ConfigurationError(
                    f"{name} must be within [0, 100), got {value}", setting=name
                )
        if self.average_record_bytes <= 0:
            raise ConfigurationError("average_record_bytes must be positive")
        if not 0.0 <= self.near_match_savings <= 1.0:
            raise ConfigurationError("near_match_savings must be within [0, 1]")


def get_analysis_config() -> AnalysisConfig:
    return AnalysisConfig(
        near_match_threshold=optional_int_env_var(
            "LARDER_NEAR_MATCH_THRESHOLD", DEFAULT_NEAR_MATCH_THRESHOLD
        ),
        variation_threshold=optional_int_env_var(
            "LARDER_VARIATION_THRESHOLD", DEFAULT_VARIATION_THRESHOLD
        ),
        merge_threshold=optional_int_env_var("LARDER_MERGE_THRESHOLD", DEFAULT_MERGE_THRESHOLD),
    )
