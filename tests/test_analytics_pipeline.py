"""Tests for pacelab.analytics.pipeline -- the composed activity report."""

import json

import pytest

from pacelab.analytics.config import AnalysisConfig
from pacelab.analytics.intervals import Lap
from pacelab.analytics.pipeline import ANALYSES, analyze_activity
from pacelab.analytics.zones import ZoneConfig
from pacelab.streams import StreamSet
from tests.conftest import (
    HR_ZONES_PAYLOAD,
    blocks,
    climb_streams,
    cumulative,
    interval_streams,
    make_streams,
    seconds,
)


HR_ZONES = ZoneConfig.from_payload(HR_ZONES_PAYLOAD)


class TestFullReport:
    def test_interval_session(self):
        report = analyze_activity(interval_streams(), zones=HR_ZONES, sport_type="Run")
        assert report.sport_type == "Run"
        assert [s.type for s in report.intervals] == ["work", "rest", "work"]
        assert report.zone_distribution.heart_rate[1].percent == 100
        assert report.zone_distribution.zones_source == "athlete_configured"
        assert report.summary.granularity == "intervals"
        assert report.summary.rollup.segment_count == 2
        assert report.drift.heart_rate.drift_pct == 0.0
        assert report.drift.decoupling_basis == "speed"
        # Two work bouts are not an interval session; HR sits in zone 2
        assert report.classification.label == "base"

    def test_missing_sections_stay_none(self):
        report = analyze_activity(interval_streams())
        assert report.climbs is None
        assert report.terrain is None
        assert report.terrain_classification is None
        assert report.elevation is None
        assert report.power_analysis is None
        assert report.zone_distribution is None
        assert report.laps is None

    def test_interval_classification(self):
        velocity = blocks((3.0, 300), (1.0, 120), (3.0, 300), (1.0, 120), (3.0, 300))
        s = make_streams(time=seconds(len(velocity)), velocity_smooth=velocity,
                         distance=cumulative(velocity))
        report = analyze_activity(s)
        assert report.classification.label == "intervals"

    def test_terrain_session(self):
        report = analyze_activity(climb_streams())
        assert len(report.climbs) == 1
        assert report.terrain.climbing.percent == 50.0
        assert report.elevation.gain == 25
        assert report.terrain_classification.label == "mountainous"
        assert report.classification is None

    def test_power_with_ftp(self):
        n = 3600
        s = make_streams(time=seconds(n), watts=[200.0] * n)
        report = analyze_activity(s, ftp=250.0)
        assert report.power_analysis.intensity_factor == 0.8
        assert report.summary.normalized_power == 200
        assert report.extended_stats.power.normalized == 200

    def test_empty_streams(self):
        report = analyze_activity(StreamSet())
        assert report.intervals is None
        assert report.summary.total_duration == 0
        assert report.summary.avg_pace == "-"


class TestSelection:
    def test_subset(self):
        report = analyze_activity(interval_streams(), zones=HR_ZONES, analyses=["summary"])
        assert report.summary is not None
        # Intervals feed the summary but are not reported
        assert report.summary.granularity == "intervals"
        assert report.intervals is None
        assert report.zone_distribution is None
        assert report.classification is None

    def test_classification_without_zone_section(self):
        report = analyze_activity(interval_streams(), zones=HR_ZONES, analyses=["classification"])
        assert report.classification.label == "base"
        assert report.zone_distribution is None

    def test_unknown_analysis(self):
        with pytest.raises(ValueError, match="unknown analyses"):
            analyze_activity(interval_streams(), analyses=["summary", "vo2"])

    def test_all_names(self):
        assert "summary" in ANALYSES and "classification" in ANALYSES


class TestLapsAndConfig:
    laps = [
        Lap(name="Rep 1", start_index=0, end_index=399),
        Lap(name="Lap 2", start_index=400, end_index=799),
        Lap(name="Rep 2", start_index=800, end_index=1199),
    ]

    def test_laps_preferred_for_summary(self):
        report = analyze_activity(interval_streams(), laps=self.laps)
        assert [s.name for s in report.laps] == ["Rep 1", "Rep 2"]
        assert report.summary.granularity == "laps"
        assert report.summary.rollup.segment_count == 2

    def test_prefer_laps_off(self):
        cfg = AnalysisConfig(prefer_laps=False)
        report = analyze_activity(interval_streams(), laps=self.laps, config=cfg)
        assert report.summary.granularity == "intervals"

    def test_only_auto_laps(self):
        laps = [Lap(name="Lap 1"), Lap(name="Lap 2")]
        report = analyze_activity(interval_streams(), laps=laps)
        assert report.laps is None
        assert report.summary.granularity == "intervals"

    def test_config_thresholds_used(self):
        velocity = blocks((3.0, 300), (1.0, 45), (3.0, 300))
        s = make_streams(time=seconds(len(velocity)), velocity_smooth=velocity)
        assert len(analyze_activity(s).intervals) == 2
        cfg = AnalysisConfig(min_interval_sec=30.0)
        assert len(analyze_activity(s, config=cfg).intervals) == 3

    def test_default_workout_type(self):
        s = make_streams(time=seconds(11), heartrate=[0.0] + [125.0] * 10)
        zones = ZoneConfig.from_payload({"heart_rate": {"zones": [
            {"min": 0, "max": 100}, {"min": 100, "max": 120},
            {"min": 120, "max": 140}, {"min": 140, "max": 160}, {"min": 160, "max": -1},
        ]}})
        # Every step sits in zone 3: tempo by share, whatever the default
        report = analyze_activity(s, zones=zones, config=AnalysisConfig(default_workout_type="mixed"))
        assert report.classification.label == "tempo"


class TestSerialization:
    def test_to_dict_prunes_none(self):
        report = analyze_activity(interval_streams(), zones=HR_ZONES)
        data = report.to_dict()
        assert "climbs" not in data
        assert "terrain" not in data
        assert "power" not in data["zone_distribution"]
        assert "avg_power" not in data["intervals"][0]
        assert data["summary"]["avg_heartrate"] == 150

    def test_to_json(self):
        report = analyze_activity(interval_streams(), zones=HR_ZONES)
        parsed = json.loads(report.to_json())
        assert parsed["classification"]["label"] == "base"
        assert len(parsed["intervals"]) == 3

    def test_repr(self):
        report = analyze_activity(interval_streams())
        assert "intervals" in repr(report)
