"""Numeric primitives shared by every analysis.

All functions are pure and tolerate empty or partial input.  Non-positive
samples are the upstream "missing sample" sentinel for heart rate, power
and cadence, so most helpers filter them before aggregating.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np


# Standard rolling window for Normalized Power (samples, ~seconds at 1 Hz)
NP_WINDOW = 30

MPS_TO_KPH = 3.6


# ---------------------------------------------------------------------------
# Basic aggregates
# ---------------------------------------------------------------------------


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty input."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=np.float64)))


def positive(values: Sequence[float]) -> np.ndarray:
    """Return only the strictly positive, finite samples."""
    arr = np.asarray(values, dtype=np.float64)
    return arr[np.isfinite(arr) & (arr > 0)]


@dataclass
class RangeStats:
    """Min / max / rounded average over valid samples."""

    min: float
    max: float
    avg: int


def range_stats(values: Sequence[float]) -> RangeStats | None:
    """Min, max and average of the positive samples.

    Returns None when no valid sample remains, so a missing sensor is never
    reported as a zero reading.
    """
    valid = positive(values)
    if len(valid) == 0:
        return None
    return RangeStats(
        min=float(np.min(valid)),
        max=float(np.max(valid)),
        avg=int(round(float(np.mean(valid)))),
    )


# ---------------------------------------------------------------------------
# Elevation
# ---------------------------------------------------------------------------


@dataclass
class ElevationDelta:
    """Accumulated climbing and descending, in whole meters."""

    gain: int
    loss: int


def elevation_delta(altitude: Sequence[float]) -> ElevationDelta:
    """Sum positive and negative successive differences separately.

    Rounding happens once on the totals, not per step.
    """
    arr = np.asarray(altitude, dtype=np.float64)
    if len(arr) < 2:
        return ElevationDelta(gain=0, loss=0)
    diffs = np.diff(arr)
    diffs = diffs[np.isfinite(diffs)]
    gain = float(np.sum(diffs[diffs > 0]))
    loss = float(-np.sum(diffs[diffs < 0]))
    return ElevationDelta(gain=int(round(gain)), loss=int(round(loss)))


# ---------------------------------------------------------------------------
# Pace
# ---------------------------------------------------------------------------


def velocity_to_pace(velocity_kph: float) -> str:
    """Convert km/h to a ``M:SS`` per-kilometer pace string.

    Non-positive speed has no pace and yields ``"-"``.
    """
    if not velocity_kph > 0:
        return "-"
    total_sec = int(round(3600.0 / velocity_kph))
    minutes, seconds = divmod(total_sec, 60)
    return f"{minutes}:{seconds:02d}"


# ---------------------------------------------------------------------------
# Power
# ---------------------------------------------------------------------------


def normalized_power(power: Sequence[float], window: int = NP_WINDOW) -> int:
    """Normalized Power (W) using a sliding rolling mean.

    1. Rolling *window*-sample mean over the series.
    2. Raise each rolling value to the 4th power and average.
    3. Take the 4th root and round to the nearest watt.

    Returns 0 when the series is shorter than the window.
    """
    arr = np.asarray(power, dtype=np.float64)
    if window <= 0 or len(arr) < window:
        return 0
    arr = np.nan_to_num(arr, nan=0.0)
    rolling = np.lib.stride_tricks.sliding_window_view(arr, window).mean(axis=1)
    mean_fourth = float(np.mean(rolling ** 4))
    if mean_fourth <= 0:
        return 0
    return int(round(mean_fourth ** 0.25))


def variability_index(np_watts: float, avg_watts: float) -> float | None:
    """NP / average power, two decimals."""
    if avg_watts <= 0 or np_watts <= 0:
        return None
    return round(np_watts / avg_watts, 2)


def intensity_factor(np_watts: float, ftp: float | None) -> float | None:
    """NP / FTP.  None without a usable FTP."""
    if ftp is None or ftp <= 0 or np_watts <= 0:
        return None
    return round(np_watts / ftp, 2)


def training_stress_score(
    duration_sec: float,
    np_watts: float,
    ftp: float | None,
) -> float | None:
    """TSS = duration * NP * IF / (FTP * 3600) * 100."""
    if ftp is None or ftp <= 0 or np_watts <= 0 or duration_sec <= 0:
        return None
    if_value = np_watts / ftp
    tss = (duration_sec * np_watts * if_value) / (ftp * 3600.0) * 100.0
    return round(tss, 1)
