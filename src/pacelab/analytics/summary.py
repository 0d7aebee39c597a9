"""Activity-level aggregates: summary, overall stats and power analysis.

Totals always come from the raw streams, never from summing segments, so
data gaps and dropped noise segments are not double counted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from pacelab.analytics.intervals import LAP, WORK, Segment
from pacelab.analytics.numeric import (
    MPS_TO_KPH,
    NP_WINDOW,
    RangeStats,
    elevation_delta,
    intensity_factor,
    normalized_power,
    positive,
    range_stats,
    training_stress_score,
    variability_index,
    velocity_to_pace,
)
from pacelab.streams import StreamSet


GRANULARITY_INTERVALS = "intervals"
GRANULARITY_LAPS = "laps"


@dataclass
class WeightedRollup:
    """Duration-weighted averages across a set of segments."""

    segment_count: int
    total_duration: float
    avg_heartrate: int | None = None
    avg_power: int | None = None
    avg_cadence: int | None = None
    avg_speed_kph: float | None = None
    avg_pace: str | None = None


@dataclass
class WorkoutSummary:
    """Activity totals plus the segment-level rollup."""

    total_duration: int
    total_distance: int
    total_elevation_gain: int
    avg_pace: str
    avg_heartrate: int | None = None
    max_heartrate: float | None = None
    avg_power: int | None = None
    normalized_power: int | None = None
    avg_cadence: int | None = None
    granularity: str | None = None
    segment_counts: dict[str, int] = field(default_factory=dict)
    segment_durations: dict[str, float] = field(default_factory=dict)
    rollup: WeightedRollup | None = None

    def __repr__(self) -> str:
        return (
            f"WorkoutSummary(dur={self.total_duration}s, "
            f"dist={self.total_distance}m, "
            f"gain={self.total_elevation_gain}m, "
            f"pace={self.avg_pace})"
        )


@dataclass
class VelocityStats:
    min_kph: float
    max_kph: float
    avg_kph: float


@dataclass
class PowerStats:
    min: float
    max: float
    avg: int
    normalized: int


@dataclass
class AltitudeStats:
    min: int
    max: int
    gain: int
    loss: int


@dataclass
class OverallStats:
    velocity: VelocityStats | None = None
    heartrate: RangeStats | None = None
    power: PowerStats | None = None
    cadence: RangeStats | None = None
    altitude: AltitudeStats | None = None


@dataclass
class PowerAnalysis:
    avg_power: int
    max_power: float
    normalized_power: int
    variability_index: float | None
    ftp: float | None = None
    intensity_factor: float | None = None
    training_stress_score: float | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def total_duration(streams: StreamSet) -> float:
    """Last minus first time sample; 0 without a usable time stream."""
    times = streams.get("time")
    if times is None or len(times) < 2:
        return 0.0
    return float(times[-1] - times[0])


def _weighted(segments: Sequence[Segment], attr: str) -> float | None:
    # A metric missing on the first segment is unavailable for the set
    if getattr(segments[0], attr) is None:
        return None
    num = den = 0.0
    for seg in segments:
        value = getattr(seg, attr)
        if value is None or seg.duration <= 0:
            continue
        num += value * seg.duration
        den += seg.duration
    if den <= 0:
        return None
    return num / den


def weighted_rollup(segments: Sequence[Segment]) -> WeightedRollup | None:
    """Duration-weighted averages of the per-segment metrics."""
    if not segments:
        return None

    rollup = WeightedRollup(
        segment_count=len(segments),
        total_duration=round(sum(s.duration for s in segments), 1),
    )
    for attr in ("avg_heartrate", "avg_power", "avg_cadence"):
        value = _weighted(segments, attr)
        setattr(rollup, attr, int(round(value)) if value is not None else None)

    speed = _weighted(segments, "avg_speed_kph")
    if speed is not None:
        rollup.avg_speed_kph = round(speed, 1)
        rollup.avg_pace = velocity_to_pace(speed)
    return rollup


# ---------------------------------------------------------------------------
# Public aggregates
# ---------------------------------------------------------------------------


def build_summary(
    streams: StreamSet,
    segments: Sequence[Segment] | None = None,
    granularity: str | None = None,
    np_window: int = NP_WINDOW,
) -> WorkoutSummary:
    """Build the workout summary.

    Args:
        streams: Stream bundle for the activity.
        segments: Detected intervals or processed laps.
        granularity: ``"intervals"`` rolls up work segments only;
            ``"laps"`` rolls up every lap.
        np_window: Rolling window (samples) for normalized power.

    Returns:
        A populated WorkoutSummary; per-channel fields stay None when the
        channel is absent.
    """
    velocity = streams.get("velocity_smooth")
    distance = streams.get("distance")
    altitude = streams.get("altitude")

    valid_velocity = positive(velocity) if velocity is not None else np.array([])
    total_distance = 0.0
    if distance is not None and len(distance) > 1 and np.isfinite(distance[-1]):
        total_distance = float(distance[-1])

    summary = WorkoutSummary(
        total_duration=int(round(total_duration(streams))),
        total_distance=int(round(total_distance)),
        total_elevation_gain=elevation_delta(altitude).gain if altitude is not None else 0,
        avg_pace=(
            velocity_to_pace(float(np.mean(valid_velocity)) * MPS_TO_KPH)
            if len(valid_velocity) > 0 else "-"
        ),
    )

    hr = streams.get("heartrate")
    if hr is not None:
        stats = range_stats(hr)
        if stats is not None:
            summary.avg_heartrate = stats.avg
            summary.max_heartrate = stats.max

    power = streams.get("watts")
    if power is not None:
        valid_power = positive(power)
        if len(valid_power) > 0:
            summary.avg_power = int(round(float(np.mean(valid_power))))
            summary.normalized_power = normalized_power(valid_power, np_window)

    cadence = streams.get("cadence")
    if cadence is not None:
        stats = range_stats(cadence)
        if stats is not None:
            summary.avg_cadence = stats.avg

    if segments is None:
        return summary

    summary.granularity = granularity or GRANULARITY_INTERVALS
    for seg in segments:
        summary.segment_counts[seg.type] = summary.segment_counts.get(seg.type, 0) + 1
        summary.segment_durations[seg.type] = round(
            summary.segment_durations.get(seg.type, 0.0) + seg.duration, 1
        )

    if summary.granularity == GRANULARITY_LAPS:
        rolled = [s for s in segments if s.type == LAP]
    else:
        rolled = [s for s in segments if s.type == WORK]
    summary.rollup = weighted_rollup(rolled)
    return summary


def overall_stats(streams: StreamSet, np_window: int = NP_WINDOW) -> OverallStats:
    """Min / max / average for every available channel."""
    stats = OverallStats()

    velocity = streams.get("velocity_smooth")
    if velocity is not None:
        v = positive(velocity) * MPS_TO_KPH
        if len(v) > 0:
            stats.velocity = VelocityStats(
                min_kph=round(float(np.min(v)), 1),
                max_kph=round(float(np.max(v)), 1),
                avg_kph=round(float(np.mean(v)), 1),
            )

    hr = streams.get("heartrate")
    if hr is not None:
        stats.heartrate = range_stats(hr)

    power = streams.get("watts")
    if power is not None:
        power_range = range_stats(power)
        if power_range is not None:
            stats.power = PowerStats(
                min=power_range.min,
                max=power_range.max,
                avg=power_range.avg,
                normalized=normalized_power(positive(power), np_window),
            )

    cadence = streams.get("cadence")
    if cadence is not None:
        stats.cadence = range_stats(cadence)

    altitude = streams.get("altitude")
    if altitude is not None:
        valid = altitude[np.isfinite(altitude)]
        if len(valid) > 0:
            delta = elevation_delta(valid)
            stats.altitude = AltitudeStats(
                min=int(round(float(np.min(valid)))),
                max=int(round(float(np.max(valid)))),
                gain=delta.gain,
                loss=delta.loss,
            )

    return stats


def power_analysis(
    streams: StreamSet,
    ftp: float | None = None,
    np_window: int = NP_WINDOW,
) -> PowerAnalysis | None:
    """Average / normalized power, variability and FTP-relative load.

    Returns None without a power stream or any positive power sample.
    """
    power = streams.get("watts")
    if power is None:
        return None
    valid = positive(power)
    if len(valid) == 0:
        return None

    avg = float(np.mean(valid))
    np_watts = normalized_power(valid, np_window)
    duration = total_duration(streams) or float(len(power))

    return PowerAnalysis(
        avg_power=int(round(avg)),
        max_power=float(np.max(valid)),
        normalized_power=np_watts,
        variability_index=variability_index(np_watts, avg),
        ftp=ftp,
        intensity_factor=intensity_factor(np_watts, ftp),
        training_stress_score=training_stress_score(duration, np_watts, ftp),
    )
