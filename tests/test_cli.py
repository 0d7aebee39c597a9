"""Tests for the pacelab command line interface."""

import json

from click.testing import CliRunner

from pacelab.cli import main
from tests.conftest import climb_streams, write_json


def _climb_file(tmp_path):
    s = climb_streams()
    return write_json(tmp_path / "climb.json", {name: s[name].tolist() for name in s})


class TestAnalyze:
    def test_report_json(self, streams_file, zones_file):
        result = CliRunner().invoke(main, ["analyze", str(streams_file), "--zones", str(zones_file)])
        assert result.exit_code == 0, result.output
        report = json.loads(result.output)
        assert report["classification"]["label"] == "base"
        assert len(report["intervals"]) == 3

    def test_only(self, streams_file):
        result = CliRunner().invoke(main, ["analyze", str(streams_file), "--only", "summary"])
        assert result.exit_code == 0, result.output
        report = json.loads(result.output)
        assert set(report) == {"summary"}

    def test_unknown_analysis(self, streams_file):
        result = CliRunner().invoke(main, ["analyze", str(streams_file), "--only", "summary,foo"])
        assert result.exit_code == 2
        assert "unknown analyses" in result.output

    def test_output_file(self, streams_file, tmp_path):
        out = tmp_path / "report.json"
        result = CliRunner().invoke(main, ["analyze", str(streams_file), "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert "Report written to" in result.output
        assert "summary" in json.loads(out.read_text())

    def test_invalid_json(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("[{")
        result = CliRunner().invoke(main, ["analyze", str(bad)])
        assert result.exit_code == 1
        assert "invalid JSON" in result.output

    def test_bad_config(self, streams_file, tmp_path):
        cfg = write_json(tmp_path / "cfg.json", {"not_a_setting": 1})
        result = CliRunner().invoke(main, ["analyze", str(streams_file), "--config", str(cfg)])
        assert result.exit_code == 1
        assert "unknown config keys" in result.output

    def test_default_type_option(self, streams_file):
        result = CliRunner().invoke(
            main, ["analyze", str(streams_file), "--default-type", "mixed", "--only", "summary"]
        )
        assert result.exit_code == 0, result.output


class TestSubcommands:
    def test_zones(self, streams_file, zones_file):
        result = CliRunner().invoke(main, ["zones", str(streams_file), "--zones", str(zones_file)])
        assert result.exit_code == 0, result.output
        assert "Heart rate zones" in result.output
        assert "100%" in result.output

    def test_zones_requires_config(self, streams_file):
        result = CliRunner().invoke(main, ["zones", str(streams_file)])
        assert result.exit_code == 2

    def test_intervals(self, streams_file):
        result = CliRunner().invoke(main, ["intervals", str(streams_file)])
        assert result.exit_code == 0, result.output
        assert "3 interval(s):" in result.output
        assert "work" in result.output

    def test_intervals_without_velocity(self, tmp_path):
        path = _climb_file(tmp_path)
        result = CliRunner().invoke(main, ["intervals", str(path)])
        assert "cannot detect intervals" in result.output

    def test_climbs(self, tmp_path):
        path = _climb_file(tmp_path)
        result = CliRunner().invoke(main, ["climbs", str(path)])
        assert result.exit_code == 0, result.output
        assert "1 climb(s):" in result.output
        assert "climbing 50.0%" in result.output

    def test_climbs_without_altitude(self, streams_file):
        result = CliRunner().invoke(main, ["climbs", str(streams_file)])
        assert "cannot detect climbs" in result.output
