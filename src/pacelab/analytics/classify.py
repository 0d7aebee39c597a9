"""Rule-based workout and terrain classification.

The workout classifier is a fixed-priority threshold cascade over heart
rate zone time / share and the number of detected work intervals.  The
first matching rule wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from pacelab.analytics.terrain import TerrainDistribution
from pacelab.analytics.zones import ZoneTime


class WorkoutType(str, Enum):
    INTERVALS = "intervals"
    ANAEROBIC = "anaerobic"
    VO2MAX = "vo2max"
    THRESHOLD = "threshold"
    TEMPO = "tempo"
    BASE = "base"
    RECOVERY = "recovery"
    MIXED = "mixed"


WORKOUT_TYPE_DESCRIPTIONS = {
    WorkoutType.INTERVALS: "Structured interval session with repeated work bouts",
    WorkoutType.ANAEROBIC: "Anaerobic/sprint work, maximal effort",
    WorkoutType.VO2MAX: "VO2max work, primarily in Zone 5",
    WorkoutType.THRESHOLD: "Threshold training, primarily in Zone 4",
    WorkoutType.TEMPO: "Tempo effort, primarily in Zone 3",
    WorkoutType.BASE: "Aerobic base building, primarily in Zone 2",
    WorkoutType.RECOVERY: "Easy recovery session, primarily in Zone 1",
    WorkoutType.MIXED: "Mixed-intensity session without a dominant zone",
}

ENDURANCE_SPORT_TYPES = {
    "Run",
    "Ride",
    "Swim",
    "VirtualRun",
    "VirtualRide",
    "Walk",
    "Hike",
    "TrailRun",
    "MountainBikeRide",
    "GravelRide",
    "EBikeRide",
    "Rowing",
    "Kayaking",
    "NordicSki",
    "BackcountrySki",
    "RollerSki",
}

# Zone time thresholds (seconds)
ANAEROBIC_Z5_SEC = 5 * 60
VO2MAX_Z5_SEC = 8 * 60
THRESHOLD_Z4_SEC = 15 * 60
THRESHOLD_Z4Z5_SEC = 20 * 60
TEMPO_Z3_SEC = 20 * 60

MIN_WORK_INTERVALS = 3
MIN_LAPS_ANAEROBIC = 3

DEFAULT_WORKOUT_TYPE = WorkoutType.TEMPO


@dataclass
class WorkoutClassification:
    label: str
    description: str

    def __repr__(self) -> str:
        return f"WorkoutClassification({self.label})"


def is_endurance_sport(sport_type: str) -> bool:
    return sport_type in ENDURANCE_SPORT_TYPES


def _by_zones(zones: Sequence[ZoneTime], laps: int, default: WorkoutType) -> WorkoutType:
    times = {z.zone: z.time_seconds for z in zones}
    shares = {z.zone: z.percent for z in zones}

    z3_time, z4_time, z5_time = (times.get(z, 0) for z in (3, 4, 5))
    z1, z2, z3 = (shares.get(z, 0) for z in (1, 2, 3))

    if laps >= MIN_LAPS_ANAEROBIC and z5_time >= ANAEROBIC_Z5_SEC:
        return WorkoutType.ANAEROBIC
    if z5_time >= VO2MAX_Z5_SEC:
        return WorkoutType.VO2MAX
    if z4_time >= THRESHOLD_Z4_SEC or z4_time + z5_time >= THRESHOLD_Z4Z5_SEC:
        return WorkoutType.THRESHOLD
    if z3 >= 35 or (z3 >= 25 and z3_time >= TEMPO_Z3_SEC):
        return WorkoutType.TEMPO
    if z2 >= 50 or (z2 >= 40 and z1 + z2 >= 70):
        return WorkoutType.BASE
    if z1 >= 40 or (z1 + z2 >= 80 and z1 >= 25):
        return WorkoutType.RECOVERY
    if z1 + z2 >= 60:
        return WorkoutType.BASE
    return default


def classify_workout(
    hr_zones: Sequence[ZoneTime] | None,
    work_intervals: int = 0,
    laps: int = 0,
    sport_type: str | None = None,
    default: WorkoutType | str = DEFAULT_WORKOUT_TYPE,
) -> WorkoutClassification | None:
    """Classify a workout from its heart rate zones and structure.

    Args:
        hr_zones: Heart rate time-in-zone breakdown (zones numbered from 1).
        work_intervals: Number of detected work intervals.
        laps: Number of manual laps.
        sport_type: Upstream sport type; non-endurance sports are returned
            as-is without intensity classification.
        default: Label used when no zone rule matches ("tempo" or "mixed").

    Returns:
        The classification, or None when there is nothing to classify on.
    """
    default = WorkoutType(default)

    if sport_type and not is_endurance_sport(sport_type):
        return WorkoutClassification(
            label=sport_type,
            description=f"{sport_type} session; intensity is not classified for this sport",
        )

    if work_intervals >= MIN_WORK_INTERVALS:
        label = WorkoutType.INTERVALS
    elif hr_zones:
        label = _by_zones(hr_zones, laps, default)
    else:
        return None

    return WorkoutClassification(label=label.value, description=WORKOUT_TYPE_DESCRIPTIONS[label])


# ---------------------------------------------------------------------------
# Terrain
# ---------------------------------------------------------------------------


class TerrainType(str, Enum):
    FLAT = "flat"
    ROLLING = "rolling"
    HILLY = "hilly"
    MOUNTAINOUS = "mountainous"


TERRAIN_DESCRIPTIONS = {
    TerrainType.FLAT: "Flat course with little sustained climbing",
    TerrainType.ROLLING: "Rolling terrain with short climbs",
    TerrainType.HILLY: "Hilly course with regular sustained climbs",
    TerrainType.MOUNTAINOUS: "Mountainous course dominated by long climbs",
}

# Upper bounds of climbing gain per kilometer (m/km)
FLAT_MAX_M_PER_KM = 5.0
ROLLING_MAX_M_PER_KM = 12.0
HILLY_MAX_M_PER_KM = 25.0

# Share of distance above the climb grade that makes flat terrain rolling
ROLLING_CLIMB_PCT = 20.0


@dataclass
class TerrainClassification:
    label: str
    description: str
    gain_per_km: float


def classify_terrain(
    terrain: TerrainDistribution | None,
    elevation_gain: float,
) -> TerrainClassification | None:
    """Label a course flat / rolling / hilly / mountainous.

    Uses climbing gain per horizontal kilometer, bumping a nominally flat
    course to rolling when a large share of it is uphill.
    """
    if terrain is None or terrain.total_distance <= 0:
        return None

    gain_per_km = elevation_gain / (terrain.total_distance / 1000.0)
    if gain_per_km < FLAT_MAX_M_PER_KM:
        label = TerrainType.FLAT
        if terrain.climbing.percent >= ROLLING_CLIMB_PCT:
            label = TerrainType.ROLLING
    elif gain_per_km < ROLLING_MAX_M_PER_KM:
        label = TerrainType.ROLLING
    elif gain_per_km < HILLY_MAX_M_PER_KM:
        label = TerrainType.HILLY
    else:
        label = TerrainType.MOUNTAINOUS

    return TerrainClassification(
        label=label.value,
        description=TERRAIN_DESCRIPTIONS[label],
        gain_per_km=round(gain_per_km, 1),
    )
