"""Shared fixtures and helpers for the pacelab test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from pacelab.analytics.zones import ZoneTime
from pacelab.streams import StreamSet


# ---------------------------------------------------------------------------
# Stream-building helpers
# ---------------------------------------------------------------------------


def blocks(*pairs: tuple[float, int]) -> list[float]:
    """Expand ``(value, count)`` pairs into a flat sample list."""
    out: list[float] = []
    for value, count in pairs:
        out.extend([float(value)] * count)
    return out


def seconds(n: int, step: float = 1.0) -> list[float]:
    """Uniform elapsed-time stream ``0, step, 2*step, ...``."""
    return [i * step for i in range(n)]


def cumulative(velocity: list[float], step: float = 1.0) -> list[float]:
    """Distance stream (m) integrated from a velocity stream (m/s)."""
    out = [0.0]
    for v in velocity[1:]:
        out.append(out[-1] + v * step)
    return out


def make_streams(**channels: Any) -> StreamSet:
    """Build a StreamSet from keyword channels."""
    return StreamSet(channels)


def interval_streams(hr: bool = True) -> StreamSet:
    """400 s at 3.0 m/s, 400 s at 1.0 m/s, 400 s at 3.0 m/s (1 Hz)."""
    velocity = blocks((3.0, 400), (1.0, 400), (3.0, 400))
    channels: dict[str, Any] = {
        "time": seconds(len(velocity)),
        "velocity_smooth": velocity,
        "distance": cumulative(velocity),
    }
    if hr:
        channels["heartrate"] = [150.0] * len(velocity)
    return StreamSet(channels)


def climb_streams(step_m: float = 10.0) -> StreamSet:
    """500 m at 5 % grade, then 500 m flat, sampled every *step_m* meters."""
    n_climb = int(500 / step_m)
    distance = [i * step_m for i in range(2 * n_climb + 1)]
    altitude = [100.0 + min(i, n_climb) * step_m * 0.05 for i in range(2 * n_climb + 1)]
    return StreamSet({
        "distance": distance,
        "altitude": altitude,
        "time": seconds(len(distance), 4.0),
    })


def zone_times(*times: float) -> list[ZoneTime]:
    """ZoneTime list from per-zone seconds, with percentages filled in."""
    total = sum(times)
    return [
        ZoneTime(
            zone=i + 1,
            name=f"Zone {i + 1}",
            min=0.0,
            max=None,
            time_seconds=int(t),
            percent=int(round(t / total * 100)) if total else 0,
        )
        for i, t in enumerate(times)
    ]


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


HR_ZONES_PAYLOAD = {
    "heart_rate": {
        "custom_zones": True,
        "zones": [
            {"min": 0, "max": 120},
            {"min": 120, "max": 160},
            {"min": 160, "max": -1},
        ],
    },
}


def write_json(path: Path, payload: Any) -> Path:
    """Write *payload* as JSON to *path*."""
    with open(path, "w") as f:
        json.dump(payload, f)
    return path


@pytest.fixture
def streams_file(tmp_path: Path) -> Path:
    """Interval streams in the upstream list-of-objects shape."""
    s = interval_streams()
    payload = [{"type": name, "data": s[name].tolist()} for name in s]
    return write_json(tmp_path / "streams.json", payload)


@pytest.fixture
def zones_file(tmp_path: Path) -> Path:
    return write_json(tmp_path / "zones.json", HR_ZONES_PAYLOAD)
