"""Time-in-zone distribution for heart rate and power.

Each step between consecutive samples contributes its elapsed time to the
first zone band that contains the sample value.  Steps with a non-positive
time delta (duplicate / out-of-order timestamps) or a delta above the gap
limit (paused recording) are skipped entirely: they count toward no zone
and do not inflate the total.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

import numpy as np

from pacelab.streams import StreamFormatError, StreamSet


# Steps longer than this are data gaps, not effort (seconds)
MAX_GAP_SEC = 60.0

HR_ZONE_NAMES = ["Recovery", "Endurance", "Tempo", "Threshold", "VO2max"]
POWER_ZONE_NAMES = [
    "Active Recovery",
    "Endurance",
    "Tempo",
    "Threshold",
    "VO2max",
    "Anaerobic",
    "Neuromuscular",
]

# Upstream marker for an open-ended top band
_OPEN_ENDED = -1


class UnmatchedPolicy(str, Enum):
    """What to do with a sample that falls outside every band."""

    EXCLUDE = "exclude"  # no band, not counted in the total
    COUNT = "count"  # no band, but counted in the total
    NEAREST = "nearest"  # clamp into the lowest / highest band


@dataclass(frozen=True)
class ZoneBand:
    """A half-open zone band ``[min, max)``; ``max=None`` is unbounded above."""

    min: float
    max: float | None = None
    name: str | None = None

    def contains(self, value: float) -> bool:
        return value >= self.min and (self.max is None or value < self.max)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ZoneBand:
        try:
            low = float(payload["min"])
            raw_max = payload.get("max")
        except (KeyError, TypeError, ValueError) as e:
            raise StreamFormatError(f"invalid zone band {payload!r}") from e
        high = None if raw_max is None or raw_max == _OPEN_ENDED else float(raw_max)
        return cls(min=low, max=high, name=payload.get("name"))


@dataclass
class ZoneConfig:
    """Athlete-configured zones; each channel is independently optional."""

    heart_rate: list[ZoneBand] | None = None
    power: list[ZoneBand] | None = None
    custom: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ZoneConfig:
        """Parse ``{"heart_rate": {"custom_zones": .., "zones": [..]}, "power": {..}}``."""

        def _bands(section: Any) -> list[ZoneBand] | None:
            if not section:
                return None
            zones = section.get("zones") if isinstance(section, dict) else section
            if not zones:
                return None
            return [ZoneBand.from_payload(z) for z in zones]

        hr_section = payload.get("heart_rate")
        return cls(
            heart_rate=_bands(hr_section),
            power=_bands(payload.get("power")),
            custom=bool(isinstance(hr_section, dict) and hr_section.get("custom_zones")),
        )


@dataclass
class ZoneTime:
    """Time spent in one zone band."""

    zone: int  # 1-based
    name: str
    min: float
    max: float | None
    time_seconds: int
    percent: int


@dataclass
class ZoneDistribution:
    """Per-channel zone breakdowns.  A channel is None when unavailable."""

    heart_rate: list[ZoneTime] | None = None
    power: list[ZoneTime] | None = None
    zones_source: str = "athlete_configured"
    total_seconds: dict[str, int] = field(default_factory=dict)


def _match_band(value: float, bands: Sequence[ZoneBand], policy: UnmatchedPolicy) -> int | None:
    """Index of the first band containing *value*, per the unmatched policy."""
    for i, band in enumerate(bands):
        if band.contains(value):
            return i
    if policy is UnmatchedPolicy.NEAREST:
        return 0 if value < bands[0].min else len(bands) - 1
    return None


def time_in_zones(
    values: Sequence[float],
    times: Sequence[float],
    bands: Sequence[ZoneBand],
    names: Sequence[str] = HR_ZONE_NAMES,
    max_gap: float = MAX_GAP_SEC,
    unmatched: UnmatchedPolicy | str = UnmatchedPolicy.EXCLUDE,
) -> list[ZoneTime]:
    """Accumulate elapsed time per zone band.

    Args:
        values: Sensor samples (bpm or W).
        times: Co-indexed elapsed time in seconds.
        bands: Ordered, contiguous zone bands.
        names: Display names by zone position.
        max_gap: Steps longer than this are treated as gaps and skipped.
        unmatched: Policy for samples outside every band.

    Returns:
        One ZoneTime per band, or an empty list when the input is empty or
        the two series are not the same length.
    """
    policy = UnmatchedPolicy(unmatched)
    if len(values) == 0 or len(values) != len(times) or len(bands) == 0:
        return []

    vals = np.asarray(values, dtype=np.float64)
    ts = np.asarray(times, dtype=np.float64)

    band_time = [0.0] * len(bands)
    total = 0.0

    for i in range(1, len(vals)):
        dt = ts[i] - ts[i - 1]
        # NaN fails this comparison as well
        if not (0 < dt <= max_gap):
            continue
        value = vals[i]
        if np.isnan(value):
            continue
        idx = _match_band(float(value), bands, policy)
        if idx is not None:
            band_time[idx] += dt
            total += dt
        elif policy is UnmatchedPolicy.COUNT:
            total += dt

    result = []
    for i, band in enumerate(bands):
        name = band.name or (names[i] if i < len(names) else f"Zone {i + 1}")
        result.append(ZoneTime(
            zone=i + 1,
            name=name,
            min=band.min,
            max=band.max,
            time_seconds=int(round(band_time[i])),
            percent=int(round(band_time[i] / total * 100)) if total > 0 else 0,
        ))
    return result


def zone_distribution(
    streams: StreamSet,
    zones: ZoneConfig | None,
    max_gap: float = MAX_GAP_SEC,
    unmatched: UnmatchedPolicy | str = UnmatchedPolicy.EXCLUDE,
) -> ZoneDistribution | None:
    """Heart rate and power zone distributions for an activity.

    Returns None without a zone configuration or a time stream.  Each
    channel is left None when its stream is missing, misaligned, or has no
    configured bands.
    """
    if zones is None:
        return None
    if streams.get("time") is None:
        return None

    result = ZoneDistribution(
        zones_source="athlete_configured" if zones.custom else "athlete_default",
    )

    channels = (
        ("heart_rate", "heartrate", zones.heart_rate, HR_ZONE_NAMES),
        ("power", "watts", zones.power, POWER_ZONE_NAMES),
    )
    for attr, stream_name, bands, names in channels:
        if not bands:
            continue
        pair = streams.aligned(stream_name, "time")
        if pair is None:
            continue
        data, time = pair
        breakdown = time_in_zones(data, time, bands, names, max_gap=max_gap, unmatched=unmatched)
        if not breakdown:
            continue
        setattr(result, attr, breakdown)
        result.total_seconds[attr] = sum(z.time_seconds for z in breakdown)

    return result
