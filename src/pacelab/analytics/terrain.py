"""Grade-based terrain analysis: climbs, terrain mix and elevation profile.

Grade for a step is ``delta_altitude / delta_distance * 100``.  Steps with
a non-positive distance delta (stopped, or GPS jitter going backwards)
carry no grade and are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy.signal import savgol_filter

from pacelab.analytics.intervals import channel_mean
from pacelab.analytics.numeric import elevation_delta
from pacelab.streams import StreamSet


CLIMB_GRADE_PCT = 2.0  # a climb runs while grade stays at or above this
CLIMB_MIN_GAIN_M = 20.0  # shorter runs are rollers, not climbs
FLAT_GRADE_PCT = 2.0  # |grade| below this is flat terrain

ELEVATION_MIN_SAMPLES = 10
SMOOTH_WINDOW = 11  # Savitzky-Golay window (samples, odd)
SMOOTH_POLYORDER = 2
GRADE_CLIP_PCT = 30.0

# Climb categorisation on distance (m) x average grade (%), hardest first
CLIMB_CATEGORIES = [
    ("HC", 80_000.0),
    ("1", 64_000.0),
    ("2", 32_000.0),
    ("3", 16_000.0),
    ("4", 8_000.0),
]


@dataclass
class Climb:
    """A sustained climb between two distance markers."""

    index: int
    start_index: int
    end_index: int
    start_distance: float
    end_distance: float
    distance: float
    elevation_gain: float
    avg_grade: float
    max_grade: float
    category: str | None = None
    type: str = "climb"
    duration: float | None = None
    vam: int | None = None  # vertical meters per hour
    avg_heartrate: int | None = None
    avg_power: int | None = None
    avg_cadence: int | None = None

    def __repr__(self) -> str:
        return (
            f"Climb(#{self.index}, {self.distance:.0f}m "
            f"@ {self.avg_grade:.1f}%, +{self.elevation_gain:.0f}m)"
        )


@dataclass
class TerrainBucket:
    distance: float  # meters
    percent: float  # of total horizontal distance
    avg_grade: float  # distance-weighted


@dataclass
class TerrainDistribution:
    climbing: TerrainBucket
    flat: TerrainBucket
    descending: TerrainBucket
    total_distance: float


@dataclass
class ElevationProfile:
    min_altitude: float
    max_altitude: float
    gain: int
    loss: int
    smoothed_gain: int
    smoothed_loss: int
    max_grade: float | None = None  # 99th percentile step grade
    min_grade: float | None = None  # 1st percentile step grade


def categorize_climb(distance_m: float, avg_grade: float) -> str | None:
    """Climb category from the distance x grade score; None if uncategorized."""
    score = distance_m * avg_grade
    for label, floor in CLIMB_CATEGORIES:
        if score >= floor:
            return label
    return None


def step_grades(distance: Sequence[float], altitude: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
    """Per-step grade (%) and distance delta.

    Both arrays have ``len(distance) - 1`` entries; grade is NaN where the
    distance delta is not positive or altitude is missing.
    """
    d = np.asarray(distance, dtype=np.float64)
    a = np.asarray(altitude, dtype=np.float64)
    if len(d) < 2:
        return np.array([]), np.array([])
    dd = np.diff(d)
    da = np.diff(a)
    grade = np.full(len(dd), np.nan)
    ok = np.isfinite(dd) & (dd > 0) & np.isfinite(da)
    grade[ok] = da[ok] / dd[ok] * 100.0
    return grade, dd


def detect_climbs(
    streams: StreamSet,
    climb_grade: float = CLIMB_GRADE_PCT,
    min_gain: float = CLIMB_MIN_GAIN_M,
) -> list[Climb] | None:
    """Find sustained climbs in the distance / altitude streams.

    A climb starts on the first step at or above *climb_grade* and ends on
    the first step below it.  Only climbs with at least *min_gain* meters of
    accumulated gain are reported.

    Returns None when distance or altitude is missing or misaligned.
    """
    pair = streams.aligned("distance", "altitude")
    if pair is None:
        return None
    distance, altitude = pair
    grades, dd = step_grades(distance, altitude)
    n = len(distance)

    runs: list[tuple[int, int, float, float, float]] = []
    start: int | None = None
    end = 0
    gain = horizontal = peak = 0.0

    def _close() -> None:
        if start is not None and gain >= min_gain:
            runs.append((start, end, gain, horizontal, peak))

    for step, grade in enumerate(grades):
        if np.isnan(grade):
            continue
        i = step + 1
        if grade >= climb_grade:
            if start is None:
                start = i - 1
                gain = horizontal = 0.0
                peak = grade
            gain += float(altitude[i] - altitude[i - 1])
            horizontal += dd[step]
            peak = max(peak, grade)
            end = i
        elif start is not None:
            _close()
            start = None
    _close()

    times = streams.get("time")
    if times is not None and len(times) != n:
        times = None

    climbs = []
    for k, (s, e, g, h, p) in enumerate(runs):
        climb = Climb(
            index=k + 1,
            start_index=s,
            end_index=e,
            start_distance=round(float(distance[s]), 1),
            end_distance=round(float(distance[e]), 1),
            distance=round(h, 1),
            elevation_gain=round(g, 1),
            avg_grade=round(g / h * 100.0, 1),
            max_grade=round(p, 1),
            category=categorize_climb(h, g / h * 100.0),
        )
        if times is not None:
            duration = float(times[e] - times[s])
            climb.duration = duration
            if duration > 0:
                climb.vam = int(round(g / duration * 3600.0))
        for attr, name in (("avg_heartrate", "heartrate"), ("avg_power", "watts"), ("avg_cadence", "cadence")):
            data = streams.get(name)
            if data is not None and len(data) == n:
                setattr(climb, attr, channel_mean(data, s, e))
        climbs.append(climb)
    return climbs


def terrain_distribution(
    streams: StreamSet,
    flat_grade: float = FLAT_GRADE_PCT,
) -> TerrainDistribution | None:
    """Share of horizontal distance spent climbing, flat and descending.

    Returns None when distance / altitude are unavailable or no step moved
    forward.
    """
    pair = streams.aligned("distance", "altitude")
    if pair is None:
        return None
    grades, dd = step_grades(*pair)
    valid = ~np.isnan(grades)
    if not np.any(valid):
        return None
    grades, dd = grades[valid], dd[valid]
    total = float(np.sum(dd))
    if total <= 0:
        return None

    masks = {
        "climbing": grades >= flat_grade,
        "descending": grades <= -flat_grade,
    }
    masks["flat"] = ~(masks["climbing"] | masks["descending"])

    buckets = {}
    for key, mask in masks.items():
        dist = float(np.sum(dd[mask]))
        avg = float(np.sum(grades[mask] * dd[mask]) / dist) if dist > 0 else 0.0
        buckets[key] = TerrainBucket(
            distance=round(dist, 1),
            percent=round(dist / total * 100.0, 1),
            avg_grade=round(avg, 1),
        )

    return TerrainDistribution(
        climbing=buckets["climbing"],
        flat=buckets["flat"],
        descending=buckets["descending"],
        total_distance=round(total, 1),
    )


def smooth_altitude(altitude: Sequence[float], window: int = SMOOTH_WINDOW) -> np.ndarray:
    """Savitzky-Golay smoothing of a (NaN-free) altitude series."""
    arr = np.asarray(altitude, dtype=np.float64)
    win = min(window, len(arr))
    if win % 2 == 0:
        win -= 1
    if win <= SMOOTH_POLYORDER:
        return arr
    return savgol_filter(arr, win, SMOOTH_POLYORDER)


def elevation_profile(
    streams: StreamSet,
    min_samples: int = ELEVATION_MIN_SAMPLES,
    window: int = SMOOTH_WINDOW,
) -> ElevationProfile | None:
    """Altitude range, raw and smoothed gain / loss, and grade extremes.

    Needs at least *min_samples* valid altitude samples.
    """
    altitude = streams.get("altitude")
    if altitude is None:
        return None
    valid = altitude[np.isfinite(altitude)]
    if len(valid) < min_samples:
        return None

    raw = elevation_delta(valid)
    smoothed = elevation_delta(smooth_altitude(valid, window))
    profile = ElevationProfile(
        min_altitude=round(float(np.min(valid)), 1),
        max_altitude=round(float(np.max(valid)), 1),
        gain=raw.gain,
        loss=raw.loss,
        smoothed_gain=smoothed.gain,
        smoothed_loss=smoothed.loss,
    )

    pair = streams.aligned("distance", "altitude")
    if pair is not None:
        grades, _ = step_grades(*pair)
        grades = grades[~np.isnan(grades)]
        if len(grades) > 0:
            clipped = np.clip(grades, -GRADE_CLIP_PCT, GRADE_CLIP_PCT)
            profile.max_grade = round(float(np.percentile(clipped, 99)), 1)
            profile.min_grade = round(float(np.percentile(clipped, 1)), 1)
    return profile
