"""Tests for the CLI using Click's test runner."""

import json

import click
import pytest
from click.testing import CliRunner

from vibe_check.cli import _resolve_pattern, cli


@pytest.fixture
def config_file(tmp_path):
    """A config.json that keeps all data inside tmp_path."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"data_dir": str(tmp_path / "data")}))
    return path


def _invoke(config_file, *args):
    return CliRunner().invoke(cli, ["--config", str(config_file), *args])


class TestResolvePattern:
    def test_normalizes(self):
        assert _resolve_pattern("secrets-auth") == "SECRETS_AUTH"
        assert _resolve_pattern("ssl_tls") == "SSL_TLS"

    def test_none(self):
        assert _resolve_pattern(None) is None

    def test_unknown_raises(self):
        with pytest.raises(click.BadParameter, match="Unknown pattern"):
            _resolve_pattern("kernel-panic")


class TestCLI:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "vibe-check" in result.output

    def test_analyze_help(self):
        result = CliRunner().invoke(cli, ["analyze", "--help"])
        assert result.exit_code == 0
        assert "--no-record" in result.output

    def test_analyze_outside_repository(self, config_file, tmp_path):
        not_a_repo = tmp_path / "plain"
        not_a_repo.mkdir()
        result = _invoke(config_file, "analyze", "--repo", str(not_a_repo))
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_status_command(self, config_file, tmp_path):
        result = _invoke(config_file, "status", "--repo", str(tmp_path))
        assert result.exit_code == 0
        assert "vibe-check Status" in result.output


class TestIntervene:
    def test_list(self):
        result = CliRunner().invoke(cli, ["intervene", "--list"])
        assert result.exit_code == 0
        assert "Intervention types" in result.output
        assert "tracer-test" in result.output

    def test_missing_type(self, config_file):
        result = _invoke(config_file, "intervene")
        assert result.exit_code != 0
        assert "Missing intervention type" in result.output

    def test_unknown_type(self, config_file):
        result = _invoke(config_file, "intervene", "meditate")
        assert result.exit_code != 0
        assert "Unknown intervention type" in result.output

    def test_record(self, config_file, tmp_path):
        result = _invoke(config_file, "intervene", "tracer-test", "--pattern", "ssl-tls",
                         "--component", "nginx", "--duration", "25", "--format", "json")
        assert result.exit_code == 0
        assert "\"TRACER_TEST\"" in result.output
        log = (tmp_path / "data" / "interventions.ndjson").read_text().splitlines()
        data = json.loads(log[-1])
        assert data["spiral_pattern"] == "SSL_TLS"
        assert data["spiral_component"] == "nginx"
        assert data["spiral_duration"] == 25


class TestLessons:
    def test_empty(self, config_file):
        result = _invoke(config_file, "lessons")
        assert result.exit_code == 0
        assert "No lessons yet" in result.output

    def test_apply_requires_effectiveness(self, config_file):
        result = _invoke(config_file, "lessons", "--apply", "lesson-x")
        assert result.exit_code != 0
        assert "--effectiveness" in result.output

    def test_dismiss_unknown(self, config_file):
        result = _invoke(config_file, "lessons", "--dismiss", "lesson-x")
        assert result.exit_code == 1
        assert "Lesson not found" in result.output

    def test_retro_without_history(self, config_file, tmp_path):
        result = _invoke(config_file, "retro", "--repo", str(tmp_path), "--format", "json")
        assert result.exit_code == 0
        assert "\"synthesis\"" in result.output
        assert "\"weekly\"" in result.output

    def test_retro_text_has_weekly_summary(self, config_file, tmp_path):
        result = _invoke(config_file, "retro", "--repo", str(tmp_path))
        assert result.exit_code == 0
        assert "No analyses recorded this week" in result.output
        assert "No previous week to compare with" in result.output


class TestTrends:
    def test_no_sessions(self, config_file, tmp_path):
        result = _invoke(config_file, "trends", "--repo", str(tmp_path))
        assert result.exit_code == 0
        assert "No stored sessions yet" in result.output


class TestConfigCommand:
    def test_no_args(self, config_file):
        result = _invoke(config_file, "config")
        assert result.exit_code == 0
        assert "vibe-check Configuration" in result.output
        assert "gap_minutes" in result.output

    def test_set_and_get(self, config_file):
        result = _invoke(config_file, "config", "--key", "gap_minutes", "--value", "45")
        assert result.exit_code == 0
        assert json.loads(config_file.read_text())["gap_minutes"] == 45

        result = _invoke(config_file, "config", "--key", "gap_minutes")
        assert "gap_minutes = 45" in result.output

    def test_invalid_value(self, config_file):
        result = _invoke(config_file, "config", "--key", "gap_minutes", "--value", "0")
        assert result.exit_code != 0

    def test_unknown_key(self, config_file):
        result = _invoke(config_file, "config", "--key", "nope")
        assert result.exit_code != 0
        assert "Unknown key" in result.output
