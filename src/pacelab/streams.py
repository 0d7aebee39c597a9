"""Activity stream bundles and the JSON loaders that produce them.

A stream bundle is a set of named, index-aligned channels for one activity
(time, distance, heart rate, ...).  Channels are optional: a missing sensor
is represented by the channel being absent, never by a zero-filled array.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterator, Mapping

import numpy as np

logger = logging.getLogger(__name__)


STREAM_TYPES = (
    "time",
    "distance",
    "latlng",
    "altitude",
    "heartrate",
    "cadence",
    "watts",
    "velocity_smooth",
    "grade_smooth",
    "moving",
    "temp",
)


class StreamFormatError(ValueError):
    """An input file does not hold one of the accepted payload shapes."""


def _to_array(data: Any) -> np.ndarray:
    """Convert a raw sample list to float64, mapping None to NaN."""
    if isinstance(data, np.ndarray):
        return np.array(data, dtype=np.float64)
    samples = [np.nan if v is None else v for v in data]
    return np.asarray(samples, dtype=np.float64)


class StreamSet(Mapping[str, np.ndarray]):
    """Immutable mapping of channel name -> numeric sample array."""

    def __init__(self, channels: Mapping[str, Any] | None = None) -> None:
        self._channels: dict[str, np.ndarray] = {}
        for name, data in (channels or {}).items():
            try:
                arr = _to_array(data)
            except (TypeError, ValueError) as e:
                logger.debug("dropping malformed stream %r: %s", name, e)
                continue
            arr.flags.writeable = False
            self._channels[name] = arr

    @classmethod
    def from_payload(cls, payload: Any) -> StreamSet:
        """Build a StreamSet from any of the upstream stream shapes.

        Accepted:
          - ``[{"type": "heartrate", "data": [...]}, ...]``
          - ``{"heartrate": {"data": [...]}, ...}`` (keyed by type)
          - ``{"heartrate": [...], ...}``
        """
        channels: dict[str, Any] = {}
        if isinstance(payload, list):
            for entry in payload:
                if not isinstance(entry, dict) or "type" not in entry or "data" not in entry:
                    raise StreamFormatError("stream entries need 'type' and 'data' keys")
                channels[str(entry["type"])] = entry["data"]
        elif isinstance(payload, dict):
            for name, value in payload.items():
                if isinstance(value, dict):
                    if "data" not in value:
                        raise StreamFormatError(f"stream {name!r} has no 'data' key")
                    channels[str(name)] = value["data"]
                elif isinstance(value, list):
                    channels[str(name)] = value
                else:
                    raise StreamFormatError(f"stream {name!r} is not a sample list")
        else:
            raise StreamFormatError("streams must be a JSON list or object")

        unknown = sorted(set(channels) - set(STREAM_TYPES))
        if unknown:
            logger.debug("carrying unrecognised stream types: %s", ", ".join(unknown))

        streams = cls(channels)
        if channels and not streams:
            raise StreamFormatError("no stream holds numeric sample data")
        return streams

    # Mapping protocol

    def __getitem__(self, name: str) -> np.ndarray:
        return self._channels[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._channels)

    def __len__(self) -> int:
        return len(self._channels)

    def __repr__(self) -> str:
        parts = ", ".join(f"{k}[{len(v)}]" for k, v in self._channels.items())
        return f"StreamSet({parts})"

    @property
    def sample_count(self) -> int:
        """Length of the time channel (or the longest channel without one)."""
        if "time" in self._channels:
            return len(self._channels["time"])
        return max((len(v) for v in self._channels.values()), default=0)

    def get(self, name: str, default: Any = None) -> np.ndarray | None:  # type: ignore[override]
        return self._channels.get(name, default)

    def aligned(self, *names: str) -> tuple[np.ndarray, ...] | None:
        """Return the named channels only if all exist with equal length.

        A length mismatch is treated as missing data rather than an error.
        """
        arrays = []
        for name in names:
            arr = self._channels.get(name)
            if arr is None:
                return None
            arrays.append(arr)
        lengths = {len(a) for a in arrays}
        if len(lengths) > 1:
            logger.debug("channels %s are misaligned (lengths %s); skipping", names, sorted(lengths))
            return None
        return tuple(arrays)


def get_stream(streams: StreamSet, name: str) -> np.ndarray | None:
    """Return the sample array for *name*, or None when the channel is absent."""
    return streams.get(name)


# ---------------------------------------------------------------------------
# File loaders
# ---------------------------------------------------------------------------


def _read_json(path: str | Path) -> Any:
    p = Path(path)
    try:
        with open(p) as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise StreamFormatError(f"{p.name}: invalid JSON ({e.msg} at line {e.lineno})") from e


def load_streams(path: str | Path) -> StreamSet:
    """Load a stream bundle from a JSON file."""
    streams = StreamSet.from_payload(_read_json(path))
    logger.debug("loaded %r from %s", streams, path)
    return streams


def load_zones(path: str | Path):
    """Load an athlete zone configuration from a JSON file."""
    from pacelab.analytics.zones import ZoneConfig

    payload = _read_json(path)
    if not isinstance(payload, dict):
        raise StreamFormatError("zone configuration must be a JSON object")
    return ZoneConfig.from_payload(payload)


def load_laps(path: str | Path):
    """Load lap metadata (a JSON list of laps)."""
    from pacelab.analytics.intervals import Lap

    payload = _read_json(path)
    if not isinstance(payload, list):
        raise StreamFormatError("laps must be a JSON list")
    return [Lap.from_payload(entry) for entry in payload]
