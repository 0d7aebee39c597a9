"""Analytics pipeline: compose the independent analyses into one report.

Each analysis runs on its own and can be switched off; a section whose
inputs are missing is simply left out of the report.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Sequence

from pacelab.analytics.classify import (
    TerrainClassification,
    WorkoutClassification,
    classify_terrain,
    classify_workout,
)
from pacelab.analytics.config import AnalysisConfig
from pacelab.analytics.drift import DriftResult, compute_drift
from pacelab.analytics.intervals import WORK, Lap, Segment, detect_intervals, process_laps
from pacelab.analytics.numeric import elevation_delta
from pacelab.analytics.summary import (
    GRANULARITY_INTERVALS,
    GRANULARITY_LAPS,
    OverallStats,
    PowerAnalysis,
    WorkoutSummary,
    build_summary,
    overall_stats,
    power_analysis,
)
from pacelab.analytics.terrain import (
    Climb,
    ElevationProfile,
    TerrainDistribution,
    detect_climbs,
    elevation_profile,
    terrain_distribution,
)
from pacelab.analytics.zones import ZoneConfig, ZoneDistribution, zone_distribution
from pacelab.streams import StreamSet

logger = logging.getLogger(__name__)


ANALYSES = (
    "zones",
    "intervals",
    "laps",
    "climbs",
    "terrain",
    "elevation",
    "drift",
    "power",
    "stats",
    "summary",
    "classification",
)


@dataclass
class ActivityReport:
    """Everything computed for one activity.  None sections are omitted."""

    sport_type: str | None = None
    summary: WorkoutSummary | None = None
    classification: WorkoutClassification | None = None
    zone_distribution: ZoneDistribution | None = None
    intervals: list[Segment] | None = None
    laps: list[Segment] | None = None
    climbs: list[Climb] | None = None
    terrain: TerrainDistribution | None = None
    terrain_classification: TerrainClassification | None = None
    elevation: ElevationProfile | None = None
    drift: DriftResult | None = None
    power_analysis: PowerAnalysis | None = None
    extended_stats: OverallStats | None = None

    def to_dict(self) -> dict[str, Any]:
        """Plain dict with every None field dropped (JSON-friendly)."""
        return _prune(asdict(self))

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        sections = [k for k, v in self.to_dict().items() if k != "sport_type" and v not in ({}, [])]
        return f"ActivityReport({', '.join(sections) or 'empty'})"


def _prune(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _prune(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_prune(v) for v in value]
    return value


def _resolve_analyses(analyses: Iterable[str] | None) -> set[str]:
    if analyses is None:
        return set(ANALYSES)
    selected = set(analyses)
    unknown = selected - set(ANALYSES)
    if unknown:
        raise ValueError(f"unknown analyses: {', '.join(sorted(unknown))}")
    return selected


def analyze_activity(
    streams: StreamSet,
    zones: ZoneConfig | None = None,
    laps: Sequence[Lap] | None = None,
    sport_type: str | None = None,
    ftp: float | None = None,
    config: AnalysisConfig | None = None,
    analyses: Iterable[str] | None = None,
) -> ActivityReport:
    """Run the enabled analyses over one activity.

    Args:
        streams: Index-aligned stream bundle.
        zones: Optional athlete zone configuration.
        laps: Optional lap metadata (alternative segmentation source).
        sport_type: Upstream sport type, used by the classifier.
        ftp: Functional threshold power for IF / TSS.
        config: Threshold and policy overrides.
        analyses: Names from :data:`ANALYSES` to run (default: all).

    Returns:
        An ActivityReport; sections that could not be computed stay None.
    """
    cfg = config or AnalysisConfig()
    enabled = _resolve_analyses(analyses)
    report = ActivityReport(sport_type=sport_type)

    # --- Zones ---
    # The classifier needs HR zones even when the zone section is not reported
    zones_result = None
    if "zones" in enabled or "classification" in enabled:
        zones_result = zone_distribution(
            streams,
            zones,
            max_gap=cfg.max_gap_sec,
            unmatched=cfg.unmatched_zone_policy,
        )
    if "zones" in enabled:
        report.zone_distribution = zones_result

    # --- Segmentation ---
    interval_result = None
    if {"intervals", "summary", "classification"} & enabled:
        interval_result = detect_intervals(
            streams,
            rest_ratio=cfg.rest_ratio,
            rest_cap=cfg.rest_cap_mps,
            merge_min_sec=cfg.merge_min_sec,
            min_interval_sec=cfg.min_interval_sec,
            warmup_ratio=cfg.warmup_ratio,
        )
    if "intervals" in enabled:
        report.intervals = interval_result

    lap_result = None
    if laps and {"laps", "summary", "classification"} & enabled:
        lap_result = process_laps(laps, streams) or None
    if "laps" in enabled:
        report.laps = lap_result

    # --- Terrain ---
    terrain_result = None
    if "climbs" in enabled:
        report.climbs = detect_climbs(
            streams,
            climb_grade=cfg.climb_grade_pct,
            min_gain=cfg.climb_min_gain_m,
        )
    if "terrain" in enabled or "classification" in enabled:
        terrain_result = terrain_distribution(streams, flat_grade=cfg.flat_grade_pct)
    if "terrain" in enabled:
        report.terrain = terrain_result
    if "elevation" in enabled:
        report.elevation = elevation_profile(
            streams,
            min_samples=cfg.elevation_min_samples,
            window=cfg.smooth_window,
        )

    # --- Derived metrics ---
    if "drift" in enabled:
        report.drift = compute_drift(streams)
    if "power" in enabled:
        report.power_analysis = power_analysis(streams, ftp=ftp, np_window=cfg.np_window)
    if "stats" in enabled:
        report.extended_stats = overall_stats(streams, np_window=cfg.np_window)

    if "summary" in enabled:
        if lap_result and cfg.prefer_laps:
            report.summary = build_summary(
                streams, lap_result, GRANULARITY_LAPS, np_window=cfg.np_window
            )
        else:
            report.summary = build_summary(
                streams, interval_result, GRANULARITY_INTERVALS, np_window=cfg.np_window
            )

    # --- Classification ---
    if "classification" in enabled:
        hr_zones = zones_result.heart_rate if zones_result is not None else None
        work_count = sum(1 for s in interval_result or [] if s.type == WORK)
        report.classification = classify_workout(
            hr_zones,
            work_intervals=work_count,
            laps=len(lap_result or []),
            sport_type=sport_type,
            default=cfg.default_workout_type,
        )
        if terrain_result is not None:
            altitude = streams.get("altitude")
            gain = elevation_delta(altitude).gain if altitude is not None else 0
            report.terrain_classification = classify_terrain(terrain_result, gain)

    skipped = [name for name in sorted(enabled) if _section_missing(report, name)]
    if skipped:
        logger.debug("sections without data: %s", ", ".join(skipped))
    return report


_SECTION_FIELDS = {
    "zones": "zone_distribution",
    "intervals": "intervals",
    "laps": "laps",
    "climbs": "climbs",
    "terrain": "terrain",
    "elevation": "elevation",
    "drift": "drift",
    "power": "power_analysis",
    "stats": "extended_stats",
    "summary": "summary",
    "classification": "classification",
}


def _section_missing(report: ActivityReport, name: str) -> bool:
    return getattr(report, _SECTION_FIELDS[name]) is None
