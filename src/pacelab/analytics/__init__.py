"""Analytics engine for endurance activity streams.

Modules:
    numeric    -- Numeric primitives (mean, range stats, elevation, pace, NP)
    zones      -- Heart rate / power time-in-zone distribution
    intervals  -- Work/rest interval detection and lap processing
    terrain    -- Climb detection, terrain mix and elevation profile
    drift      -- First/second-half drift and aerobic decoupling
    classify   -- Rule-based workout and terrain classification
    summary    -- Workout summary, overall stats and power analysis
    config     -- Threshold and policy configuration
    pipeline   -- Orchestrator producing an ActivityReport
"""

from pacelab.analytics.numeric import (
    mean,
    range_stats,
    elevation_delta,
    velocity_to_pace,
    normalized_power,
    variability_index,
    RangeStats,
    ElevationDelta,
)
from pacelab.analytics.zones import (
    ZoneBand,
    ZoneConfig,
    ZoneTime,
    ZoneDistribution,
    UnmatchedPolicy,
    time_in_zones,
    zone_distribution,
)
from pacelab.analytics.intervals import (
    Segment,
    Lap,
    detect_intervals,
    process_laps,
    is_manual_lap,
)
from pacelab.analytics.terrain import (
    Climb,
    TerrainDistribution,
    ElevationProfile,
    detect_climbs,
    terrain_distribution,
    elevation_profile,
)
from pacelab.analytics.drift import compute_drift, DriftResult, HalfSplit
from pacelab.analytics.classify import (
    classify_workout,
    classify_terrain,
    WorkoutClassification,
    WorkoutType,
    WORKOUT_TYPE_DESCRIPTIONS,
)
from pacelab.analytics.summary import (
    build_summary,
    overall_stats,
    power_analysis,
    WorkoutSummary,
    OverallStats,
    PowerAnalysis,
)
from pacelab.analytics.config import AnalysisConfig, load_config
from pacelab.analytics.pipeline import analyze_activity, ActivityReport, ANALYSES

__all__ = [
    # numeric
    "mean",
    "range_stats",
    "elevation_delta",
    "velocity_to_pace",
    "normalized_power",
    "variability_index",
    "RangeStats",
    "ElevationDelta",
    # zones
    "ZoneBand",
    "ZoneConfig",
    "ZoneTime",
    "ZoneDistribution",
    "UnmatchedPolicy",
    "time_in_zones",
    "zone_distribution",
    # intervals
    "Segment",
    "Lap",
    "detect_intervals",
    "process_laps",
    "is_manual_lap",
    # terrain
    "Climb",
    "TerrainDistribution",
    "ElevationProfile",
    "detect_climbs",
    "terrain_distribution",
    "elevation_profile",
    # drift
    "compute_drift",
    "DriftResult",
    "HalfSplit",
    # classify
    "classify_workout",
    "classify_terrain",
    "WorkoutClassification",
    "WorkoutType",
    "WORKOUT_TYPE_DESCRIPTIONS",
    # summary
    "build_summary",
    "overall_stats",
    "power_analysis",
    "WorkoutSummary",
    "OverallStats",
    "PowerAnalysis",
    # config / pipeline
    "AnalysisConfig",
    "load_config",
    "analyze_activity",
    "ActivityReport",
    "ANALYSES",
]
