"""First-half vs second-half drift of heart rate and power.

The series is split at its midpoint index.  Drift is the percentage change
of the second-half average relative to the first half; a rising heart rate
at steady output is the classic cardiac drift signal.

Aerobic decoupling compares output per heartbeat (power, or speed when no
power meter is present) between the halves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from pacelab.analytics.numeric import positive
from pacelab.streams import StreamSet


@dataclass
class HalfSplit:
    """Averages of one channel over each half of the activity."""

    first_half: float
    second_half: float
    drift_pct: float


@dataclass
class DriftResult:
    heart_rate: HalfSplit | None = None
    power: HalfSplit | None = None
    decoupling_pct: float | None = None
    decoupling_basis: str | None = None  # "power" or "speed"


def _half_means(values: Sequence[float]) -> tuple[float, float] | None:
    arr = np.asarray(values, dtype=np.float64)
    mid = len(arr) // 2
    first = positive(arr[:mid])
    second = positive(arr[mid:])
    if len(first) == 0 or len(second) == 0:
        return None
    return float(np.mean(first)), float(np.mean(second))


def half_split(values: Sequence[float]) -> HalfSplit | None:
    """Percentage change between the two halves of *values*.

    Returns None when either half has no valid (positive) sample.
    """
    means = _half_means(values)
    if means is None:
        return None
    first, second = means
    return HalfSplit(
        first_half=round(first, 1),
        second_half=round(second, 1),
        drift_pct=round((second - first) / first * 100.0, 1),
    )


def _decoupling(output: np.ndarray, hr: np.ndarray) -> float | None:
    out_means = _half_means(output)
    hr_means = _half_means(hr)
    if out_means is None or hr_means is None:
        return None
    ef_first = out_means[0] / hr_means[0]
    ef_second = out_means[1] / hr_means[1]
    return round((ef_first - ef_second) / ef_first * 100.0, 1)


def compute_drift(streams: StreamSet) -> DriftResult | None:
    """Heart rate / power drift and aerobic decoupling for an activity.

    Returns None when neither heart rate nor power is available.
    """
    hr = streams.get("heartrate")
    power = streams.get("watts")
    if hr is None and power is None:
        return None

    result = DriftResult(
        heart_rate=half_split(hr) if hr is not None else None,
        power=half_split(power) if power is not None else None,
    )

    for basis, name in (("power", "watts"), ("speed", "velocity_smooth")):
        pair = streams.aligned(name, "heartrate")
        if pair is None:
            continue
        value = _decoupling(*pair)
        if value is not None:
            result.decoupling_pct = value
            result.decoupling_basis = basis
            break

    if result.heart_rate is None and result.power is None:
        return None
    return result
