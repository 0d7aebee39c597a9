"""Tests for pacelab.analytics.zones -- time-in-zone distribution."""

import pytest

from pacelab.analytics.zones import (
    ZoneBand,
    ZoneConfig,
    UnmatchedPolicy,
    time_in_zones,
    zone_distribution,
    HR_ZONE_NAMES,
    POWER_ZONE_NAMES,
    MAX_GAP_SEC,
)
from tests.conftest import HR_ZONES_PAYLOAD, blocks, make_streams, seconds


THREE_BANDS = [ZoneBand(0, 120), ZoneBand(120, 160), ZoneBand(160, None)]
HIGH_BANDS = [ZoneBand(100, 120), ZoneBand(120, 160), ZoneBand(160, None)]


class TestZoneBand:
    def test_half_open(self):
        band = ZoneBand(120, 160)
        assert band.contains(120)
        assert band.contains(159.9)
        assert not band.contains(160)

    def test_open_ended(self):
        assert ZoneBand(160, None).contains(250)

    def test_from_payload_open_ended_marker(self):
        band = ZoneBand.from_payload({"min": 160, "max": -1})
        assert band.max is None

    def test_from_payload_missing_min(self):
        with pytest.raises(ValueError):
            ZoneBand.from_payload({"max": 120})


class TestZoneConfig:
    def test_from_payload(self):
        cfg = ZoneConfig.from_payload(HR_ZONES_PAYLOAD)
        assert [b.min for b in cfg.heart_rate] == [0, 120, 160]
        assert cfg.power is None

    def test_empty_zone_list_is_none(self):
        cfg = ZoneConfig.from_payload({"heart_rate": {"zones": []}, "power": {"zones": []}})
        assert cfg.heart_rate is None
        assert cfg.power is None


class TestTimeInZones:
    def test_constant_heart_rate_single_zone(self):
        hr = [150.0] * 100
        result = time_in_zones(hr, seconds(100), THREE_BANDS)
        assert [z.percent for z in result] == [0, 100, 0]
        assert result[1].time_seconds == 99

    def test_names_and_numbering(self):
        result = time_in_zones([150.0] * 3, seconds(3), THREE_BANDS)
        assert [z.zone for z in result] == [1, 2, 3]
        assert [z.name for z in result] == HR_ZONE_NAMES[:3]
        assert result[2].max is None

    def test_fallback_name(self):
        bands = [ZoneBand(i * 10, (i + 1) * 10) for i in range(6)]
        result = time_in_zones([5.0] * 3, seconds(3), bands)
        assert result[5].name == "Zone 6"

    def test_band_name_wins(self):
        bands = [ZoneBand(0, 100, name="Easy"), ZoneBand(100, None)]
        result = time_in_zones([50.0] * 3, seconds(3), bands)
        assert result[0].name == "Easy"

    def test_gap_steps_skipped(self):
        times = [0.0, 1.0, 2.0, 2.0 + MAX_GAP_SEC + 1, 3.0 + MAX_GAP_SEC + 1]
        result = time_in_zones([150.0] * 5, times, THREE_BANDS)
        assert result[1].time_seconds == 3

    def test_gap_at_limit_counted(self):
        times = [0.0, MAX_GAP_SEC]
        result = time_in_zones([150.0, 150.0], times, THREE_BANDS)
        assert result[1].time_seconds == 60

    def test_non_monotonic_steps_skipped(self):
        times = [0.0, 1.0, 1.0, 0.5, 3.0]
        result = time_in_zones([150.0] * 5, times, THREE_BANDS)
        # steps: +1, 0 (skip), -0.5 (skip), +2.5
        assert result[1].time_seconds == round(3.5)

    def test_all_gaps_give_zero_percent(self):
        times = [0.0, 100.0, 200.0, 300.0]
        result = time_in_zones([150.0] * 4, times, THREE_BANDS)
        assert all(z.percent == 0 for z in result)
        assert all(z.time_seconds == 0 for z in result)

    def test_percentages_sum_to_100(self):
        hr = [100.0 + i for i in range(100)]
        result = time_in_zones(hr, seconds(100), THREE_BANDS)
        assert 99 <= sum(z.percent for z in result) <= 101

    def test_empty(self):
        assert time_in_zones([], [], THREE_BANDS) == []

    def test_length_mismatch(self):
        assert time_in_zones([150.0] * 5, seconds(4), THREE_BANDS) == []

    def test_no_bands(self):
        assert time_in_zones([150.0] * 5, seconds(5), []) == []

    def test_uses_sample_at_end_of_step(self):
        # The first sample only opens the walk; it is never attributed
        hr = [170.0] + [150.0] * 10
        result = time_in_zones(hr, seconds(11), THREE_BANDS)
        assert result[2].time_seconds == 0
        assert result[1].time_seconds == 10


class TestUnmatchedPolicy:
    # Steps 1..50 carry 50 bpm (below every band), steps 51..100 carry 150
    hr = blocks((50.0, 51), (150.0, 50))
    times = seconds(101)

    def test_exclude_drops_from_total(self):
        result = time_in_zones(self.hr, self.times, HIGH_BANDS, unmatched="exclude")
        assert [z.percent for z in result] == [0, 100, 0]
        assert result[1].time_seconds == 50

    def test_count_keeps_in_total(self):
        result = time_in_zones(self.hr, self.times, HIGH_BANDS, unmatched=UnmatchedPolicy.COUNT)
        assert [z.percent for z in result] == [0, 50, 0]

    def test_nearest_clamps_into_lowest_band(self):
        result = time_in_zones(self.hr, self.times, HIGH_BANDS, unmatched="nearest")
        assert [z.percent for z in result] == [50, 50, 0]

    def test_nearest_clamps_into_highest_band(self):
        bands = [ZoneBand(100, 120), ZoneBand(120, 160)]
        result = time_in_zones([200.0] * 11, seconds(11), bands, unmatched="nearest")
        assert result[1].time_seconds == 10

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            time_in_zones(self.hr, self.times, HIGH_BANDS, unmatched="ignore")


class TestZoneDistribution:
    def test_no_zone_config(self):
        s = make_streams(time=seconds(10), heartrate=[150.0] * 10)
        assert zone_distribution(s, None) is None

    def test_no_time_stream(self):
        s = make_streams(heartrate=[150.0] * 10)
        assert zone_distribution(s, ZoneConfig(heart_rate=THREE_BANDS)) is None

    def test_heart_rate_only(self):
        s = make_streams(time=seconds(100), heartrate=[150.0] * 100)
        dist = zone_distribution(s, ZoneConfig(heart_rate=THREE_BANDS, power=THREE_BANDS))
        assert dist is not None
        assert dist.heart_rate is not None
        assert dist.power is None
        assert dist.total_seconds["heart_rate"] == 99

    def test_power_uses_power_zone_names(self):
        bands = [ZoneBand(0, 150), ZoneBand(150, 250), ZoneBand(250, None)]
        s = make_streams(time=seconds(60), watts=[200.0] * 60)
        dist = zone_distribution(s, ZoneConfig(power=bands))
        assert dist.power is not None
        assert [z.name for z in dist.power] == POWER_ZONE_NAMES[:3]
        assert dist.power[1].percent == 100

    def test_misaligned_channel_skipped(self):
        s = make_streams(time=seconds(100), heartrate=[150.0] * 90)
        dist = zone_distribution(s, ZoneConfig(heart_rate=THREE_BANDS))
        assert dist is not None
        assert dist.heart_rate is None

    def test_zones_source(self):
        s = make_streams(time=seconds(10), heartrate=[150.0] * 10)
        custom = zone_distribution(s, ZoneConfig(heart_rate=THREE_BANDS, custom=True))
        default = zone_distribution(s, ZoneConfig(heart_rate=THREE_BANDS))
        assert custom.zones_source == "athlete_configured"
        assert default.zones_source == "athlete_default"
