"""Analysis thresholds and policies.

Defaults are the module-level constants of each analytics module; an
AnalysisConfig collects them so a caller can override any subset.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from pacelab.analytics import classify, intervals, numeric, terrain, zones


@dataclass
class AnalysisConfig:
    # zones
    max_gap_sec: float = zones.MAX_GAP_SEC
    unmatched_zone_policy: str = zones.UnmatchedPolicy.EXCLUDE.value

    # work / rest intervals
    rest_ratio: float = intervals.REST_RATIO
    rest_cap_mps: float = intervals.REST_CAP_MPS
    merge_min_sec: float = intervals.MERGE_MIN_SEC
    min_interval_sec: float = intervals.MIN_INTERVAL_SEC
    warmup_ratio: float = intervals.WARMUP_RATIO
    prefer_laps: bool = True

    # terrain
    climb_grade_pct: float = terrain.CLIMB_GRADE_PCT
    climb_min_gain_m: float = terrain.CLIMB_MIN_GAIN_M
    flat_grade_pct: float = terrain.FLAT_GRADE_PCT
    elevation_min_samples: int = terrain.ELEVATION_MIN_SAMPLES
    smooth_window: int = terrain.SMOOTH_WINDOW

    # power
    np_window: int = numeric.NP_WINDOW

    # classification
    default_workout_type: str = classify.DEFAULT_WORKOUT_TYPE.value

    def __post_init__(self) -> None:
        # Validate enum-valued settings eagerly
        zones.UnmatchedPolicy(self.unmatched_zone_policy)
        classify.WorkoutType(self.default_workout_type)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisConfig:
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_config(path: str | Path) -> AnalysisConfig:
    """Read an AnalysisConfig from a JSON object file."""
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("config file must hold a JSON object")
    return AnalysisConfig.from_dict(data)
