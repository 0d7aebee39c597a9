"""Work / rest interval detection from the velocity stream.

Algorithm:
1. Pick a rest threshold: half the peak velocity, capped at 2.5 m/s.
2. Label each sample work (>= threshold) or rest and run-length encode
   the labels into raw segments.
3. Merge: segments shorter than 30 s are absorbed into the preceding
   merged segment, extending its end index.  Same-type contiguous
   segments collapse into one.
4. Drop merged segments shorter than 60 s.
5. Relabel a slow leading work segment as warmup and a slow trailing one
   as cooldown.

Laps recorded by the athlete are an alternative segmentation source and are
turned into the same Segment record by :func:`process_laps`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from pacelab.analytics.numeric import (
    MPS_TO_KPH,
    elevation_delta,
    positive,
    velocity_to_pace,
)
from pacelab.streams import StreamFormatError, StreamSet


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

REST_RATIO = 0.5  # fraction of peak velocity separating work from rest
REST_CAP_MPS = 2.5  # threshold never exceeds this (m/s)
MERGE_MIN_SEC = 30.0  # shorter raw segments are absorbed into the previous one
MIN_INTERVAL_SEC = 60.0  # merged segments shorter than this are dropped
WARMUP_RATIO = 0.7  # boundary work slower than this x peak kph is warmup/cooldown

WORK = "work"
REST = "rest"
WARMUP = "warmup"
COOLDOWN = "cooldown"
LAP = "lap"

_AUTO_LAP = re.compile(r"^Lap \d+$")


@dataclass
class Segment:
    """A contiguous, classified index range ``[start_index, end_index]``."""

    index: int
    type: str
    start_index: int
    end_index: int
    start_time: float
    end_time: float
    duration: float
    distance: float | None = None
    avg_speed_kph: float | None = None
    avg_pace: str | None = None
    avg_heartrate: int | None = None
    max_heartrate: float | None = None
    avg_power: int | None = None
    avg_cadence: int | None = None
    elevation_gain: int | None = None
    elevation_loss: int | None = None
    name: str | None = None

    def __repr__(self) -> str:
        return (
            f"Segment({self.type} #{self.index}, "
            f"[{self.start_index}:{self.end_index}], "
            f"dur={self.duration:.0f}s)"
        )


@dataclass
class Lap:
    """Lap metadata supplied alongside the streams."""

    name: str
    start_index: int | None = None
    end_index: int | None = None
    moving_time: float = 0.0
    elapsed_time: float = 0.0
    distance: float = 0.0
    average_speed: float = 0.0
    average_heartrate: float | None = None
    max_heartrate: float | None = None
    average_cadence: float | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Lap:
        if not isinstance(payload, dict):
            raise StreamFormatError(f"lap entries must be objects, got {type(payload).__name__}")

        def _opt(key: str) -> float | None:
            value = payload.get(key)
            return float(value) if value is not None else None

        try:
            start = payload.get("start_index")
            end = payload.get("end_index")
            return cls(
                name=str(payload.get("name", "")),
                start_index=int(start) if start is not None else None,
                end_index=int(end) if end is not None else None,
                moving_time=float(payload.get("moving_time") or 0.0),
                elapsed_time=float(payload.get("elapsed_time") or 0.0),
                distance=float(payload.get("distance") or 0.0),
                average_speed=float(payload.get("average_speed") or 0.0),
                average_heartrate=_opt("average_heartrate"),
                max_heartrate=_opt("max_heartrate"),
                average_cadence=_opt("average_cadence"),
            )
        except (TypeError, ValueError) as e:
            raise StreamFormatError(f"invalid lap {payload!r}") from e


# ---------------------------------------------------------------------------
# Per-range channel metrics
# ---------------------------------------------------------------------------


def channel_mean(data: np.ndarray | None, start: int, end: int) -> int | None:
    """Rounded mean of the positive samples in ``data[start:end + 1]``."""
    if data is None:
        return None
    valid = positive(data[start:end + 1])
    if len(valid) == 0:
        return None
    return int(round(float(np.mean(valid))))


def _attach_metrics(seg: Segment, streams: StreamSet, n: int) -> None:
    """Fill the optional per-channel fields of *seg* in place."""
    start, end = seg.start_index, seg.end_index

    def _channel(name: str) -> np.ndarray | None:
        arr = streams.get(name)
        return arr if arr is not None and len(arr) == n else None

    velocity = _channel("velocity_smooth")
    if velocity is not None:
        valid = positive(velocity[start:end + 1])
        if len(valid) > 0:
            speed = float(np.mean(valid)) * MPS_TO_KPH
            seg.avg_speed_kph = round(speed, 1)
            seg.avg_pace = velocity_to_pace(speed)

    distance = _channel("distance")
    if distance is not None:
        seg.distance = round(float(distance[end] - distance[start]), 1)

    hr = _channel("heartrate")
    seg.avg_heartrate = channel_mean(hr, start, end)
    if seg.avg_heartrate is not None:
        seg.max_heartrate = float(np.max(positive(hr[start:end + 1])))

    seg.avg_power = channel_mean(_channel("watts"), start, end)
    seg.avg_cadence = channel_mean(_channel("cadence"), start, end)

    altitude = _channel("altitude")
    if altitude is not None:
        delta = elevation_delta(altitude[start:end + 1])
        seg.elevation_gain = delta.gain
        seg.elevation_loss = delta.loss


# ---------------------------------------------------------------------------
# Segmentation passes
# ---------------------------------------------------------------------------


def segment_duration(times: Sequence[float], start: int, end: int) -> float:
    """Seconds covered by samples ``start..end`` inclusive.

    A segment runs until the next sample's timestamp.  The final segment of
    the series is extended by the median sample step.
    """
    if end + 1 < len(times):
        return float(times[end + 1] - times[start])
    steps = np.diff(np.asarray(times, dtype=np.float64))
    steps = steps[np.isfinite(steps) & (steps > 0)]
    step = float(np.median(steps)) if len(steps) > 0 else 0.0
    return float(times[end] - times[start]) + step


def rest_threshold(
    velocity: Sequence[float],
    ratio: float = REST_RATIO,
    cap: float = REST_CAP_MPS,
) -> float:
    """Velocity (m/s) separating work from rest."""
    arr = np.asarray(velocity, dtype=np.float64)
    if len(arr) == 0 or not np.any(np.isfinite(arr)):
        return 0.0
    return min(float(np.nanmax(arr)) * ratio, cap)


def raw_segments(velocity: Sequence[float], threshold: float) -> list[tuple[str, int, int]]:
    """Run-length encode samples into ``(type, start, end)`` at every transition."""
    arr = np.asarray(velocity, dtype=np.float64)
    if len(arr) == 0:
        return []
    is_work = np.nan_to_num(arr, nan=0.0) >= threshold
    # Indices where the label changes
    changes = np.flatnonzero(is_work[1:] != is_work[:-1]) + 1
    starts = np.concatenate(([0], changes))
    ends = np.concatenate((changes - 1, [len(arr) - 1]))
    return [
        (WORK if is_work[s] else REST, int(s), int(e))
        for s, e in zip(starts, ends)
    ]


def merge_segments(
    segments: Sequence[tuple[str, int, int]],
    times: Sequence[float],
    min_duration: float = MERGE_MIN_SEC,
) -> list[tuple[str, int, int]]:
    """Absorb short segments into their predecessor.

    The first segment always starts a new merged entry.  A later segment is
    folded into the previous merged entry when it is shorter than
    *min_duration*, or when it has the same type and directly follows it.
    """
    merged: list[tuple[str, int, int]] = []
    for seg_type, start, end in segments:
        if not merged:
            merged.append((seg_type, start, end))
            continue
        prev_type, prev_start, prev_end = merged[-1]
        duration = segment_duration(times, start, end)
        contiguous = start == prev_end + 1
        if duration < min_duration or (seg_type == prev_type and contiguous):
            merged[-1] = (prev_type, prev_start, max(prev_end, end))
        else:
            merged.append((seg_type, start, end))
    return merged


def filter_segments(
    segments: Sequence[tuple[str, int, int]],
    times: Sequence[float],
    min_duration: float = MIN_INTERVAL_SEC,
) -> list[tuple[str, int, int]]:
    """Drop segments shorter than *min_duration* seconds."""
    return [
        (seg_type, start, end)
        for seg_type, start, end in segments
        if segment_duration(times, start, end) >= min_duration
    ]


def _relabel_boundaries(segments: list[Segment], max_kph: float, ratio: float) -> None:
    if not segments:
        return
    limit = max_kph * ratio

    first = segments[0]
    if first.type == WORK and first.avg_speed_kph is not None and first.avg_speed_kph < limit:
        first.type = WARMUP

    if len(segments) > 1:
        last = segments[-1]
        if last.type == WORK and last.avg_speed_kph is not None and last.avg_speed_kph < limit:
            last.type = COOLDOWN


def detect_intervals(
    streams: StreamSet,
    rest_ratio: float = REST_RATIO,
    rest_cap: float = REST_CAP_MPS,
    merge_min_sec: float = MERGE_MIN_SEC,
    min_interval_sec: float = MIN_INTERVAL_SEC,
    warmup_ratio: float = WARMUP_RATIO,
) -> list[Segment] | None:
    """Segment an activity into work / rest / warmup / cooldown intervals.

    Args:
        streams: Stream bundle; needs ``velocity_smooth`` and ``time``.
        rest_ratio: Fraction of peak velocity used as the work threshold.
        rest_cap: Upper bound of the work threshold (m/s).
        merge_min_sec: Raw segments shorter than this are merged away.
        min_interval_sec: Merged segments shorter than this are dropped.
        warmup_ratio: Boundary work segments slower than this fraction of
            peak speed become warmup / cooldown.

    Returns:
        The detected segments (possibly empty), or None when velocity or
        time is missing, misaligned, or never positive.
    """
    pair = streams.aligned("velocity_smooth", "time")
    if pair is None:
        return None
    velocity, times = pair
    if len(velocity) == 0:
        return None
    max_velocity = float(np.nanmax(velocity)) if np.any(np.isfinite(velocity)) else 0.0
    if max_velocity <= 0:
        return None

    threshold = rest_threshold(velocity, rest_ratio, rest_cap)
    raw = raw_segments(velocity, threshold)
    merged = merge_segments(raw, times, merge_min_sec)
    kept = filter_segments(merged, times, min_interval_sec)

    n = len(velocity)
    segments = []
    for i, (seg_type, start, end) in enumerate(kept):
        seg = Segment(
            index=i + 1,
            type=seg_type,
            start_index=start,
            end_index=end,
            start_time=float(times[start]),
            end_time=float(times[end]),
            duration=segment_duration(times, start, end),
        )
        _attach_metrics(seg, streams, n)
        segments.append(seg)

    _relabel_boundaries(segments, max_velocity * MPS_TO_KPH, warmup_ratio)
    return segments


# ---------------------------------------------------------------------------
# Laps
# ---------------------------------------------------------------------------


def is_manual_lap(lap: Lap) -> bool:
    """Auto laps are named ``Lap N``; anything else was pressed or planned."""
    return not _AUTO_LAP.match(lap.name)


def process_laps(
    laps: Sequence[Lap],
    streams: StreamSet,
    manual_only: bool = True,
) -> list[Segment]:
    """Turn lap metadata into Segment records.

    Stream slices are used when the lap carries valid sample indices;
    otherwise the lap's own summary values are reported.
    """
    selected = [lap for lap in laps if is_manual_lap(lap)] if manual_only else list(laps)
    times = streams.get("time")
    n = len(times) if times is not None else 0

    segments = []
    for i, lap in enumerate(selected):
        has_indices = (
            lap.start_index is not None
            and lap.end_index is not None
            and 0 <= lap.start_index <= lap.end_index < n
        )
        if has_indices:
            start, end = lap.start_index, lap.end_index
            start_time, end_time = float(times[start]), float(times[end])
            span = segment_duration(times, start, end)
        else:
            start, end = -1, -1
            start_time, end_time = 0.0, lap.elapsed_time
            span = end_time - start_time

        speed = lap.average_speed * MPS_TO_KPH
        seg = Segment(
            index=i + 1,
            type=LAP,
            name=lap.name,
            start_index=start,
            end_index=end,
            start_time=start_time,
            end_time=end_time,
            duration=lap.moving_time or span,
        )

        if has_indices:
            _attach_metrics(seg, streams, n)
        if lap.average_speed > 0:
            seg.avg_speed_kph = round(speed, 1)
            seg.avg_pace = velocity_to_pace(speed)
        if lap.distance > 0 or seg.distance is None:
            seg.distance = round(lap.distance, 1)

        if seg.avg_heartrate is None and lap.average_heartrate:
            seg.avg_heartrate = int(round(lap.average_heartrate))
            seg.max_heartrate = lap.max_heartrate
        if seg.avg_cadence is None and lap.average_cadence:
            seg.avg_cadence = int(round(lap.average_cadence))

        segments.append(seg)
    return segments
