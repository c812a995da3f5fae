"""Tests for the cablecast CLI using Typer's CliRunner."""

from __future__ import annotations

import json
import textwrap

import pytest
from typer.testing import CliRunner

from cablecast.cli.main import app, router

runner = CliRunner()

CATALOG = """
libraries:
  movies:
    path: /media/movies
    items:
      - {id: m30, name: Short Feature, duration_minutes: 30, genres: [Comedy], year: 1984}
      - {id: m45, name: Mid Feature, duration_minutes: 45, genres: [Drama], year: 1991}
      - {id: m60, name: Long Feature, duration_minutes: 60, genres: [Comedy], year: 1987}
"""


@pytest.fixture
def cli_args(tmp_path):
    catalog = tmp_path / "libraries.yaml"
    catalog.write_text(textwrap.dedent(CATALOG), encoding="utf-8")
    return [
        "--channels-file",
        str(tmp_path / "channels.json"),
        "--catalog",
        str(catalog),
    ]


def _invoke(cli_args, *args):
    return runner.invoke(app, [*cli_args, *args])


def _add_channel(cli_args, channel_id="ch1"):
    result = _invoke(
        cli_args, "channel", "add", "--id", channel_id, "--name", "Movies", "--library", "movies",
        "--json",
    )
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestRouter:
    def test_channel_group_registered(self):
        assert "channel" in router.list_registered_groups()


class TestChannelCommands:
    def test_add_generates_schedule_and_persists(self, cli_args, tmp_path):
        payload = _add_channel(cli_args)
        assert payload["status"] == "ok"
        assert payload["channel"]["id"] == "ch1"
        assert payload["programs"] > 0

        document = json.loads((tmp_path / "channels.json").read_text(encoding="utf-8"))
        assert document["channels"][0]["scheduled_programs"]

    def test_list_reads_persisted_channels(self, cli_args):
        _add_channel(cli_args)
        result = _invoke(cli_args, "channel", "list", "--json")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["count"] == 1

    def test_list_human_output(self, cli_args):
        _add_channel(cli_args)
        result = _invoke(cli_args, "channel", "list")
        assert "Movies" in result.stdout

    def test_show_unknown_channel_fails(self, cli_args):
        result = _invoke(cli_args, "channel", "show", "nope", "--json")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["status"] == "error"

    def test_add_with_invalid_year_range_fails(self, cli_args):
        result = _invoke(
            cli_args, "channel", "add", "--name", "Bad", "--library", "movies",
            "--min-year", "2000", "--max-year", "1990",
        )
        assert result.exit_code == 1

    def test_now_shows_current_program(self, cli_args):
        _add_channel(cli_args)
        result = _invoke(cli_args, "channel", "now", "ch1", "--json")
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["current"]["channel_id"] == "ch1"
        assert payload["next"]["start_time"] == payload["current"]["end_time"]

    def test_schedule(self, cli_args):
        _add_channel(cli_args)
        result = _invoke(cli_args, "channel", "schedule", "ch1", "--hours", "6", "--json")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["count"] > 0

    def test_schedule_rejects_bad_start(self, cli_args):
        _add_channel(cli_args)
        result = _invoke(cli_args, "channel", "schedule", "ch1", "--start", "yesterday")
        assert result.exit_code == 1

    def test_regenerate(self, cli_args):
        _add_channel(cli_args)
        result = _invoke(cli_args, "channel", "regenerate", "ch1", "--hours", "2", "--json")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["count"] > 0

    def test_delete(self, cli_args):
        _add_channel(cli_args)
        result = _invoke(cli_args, "channel", "delete", "ch1")
        assert result.exit_code == 0
        result = _invoke(cli_args, "channel", "list", "--json")
        assert json.loads(result.stdout)["count"] == 0


class TestMaintain:
    def test_single_pass(self, cli_args):
        _add_channel(cli_args)
        result = _invoke(cli_args, "maintain", "--once", "--json")
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["channels_evaluated"] == 1
        assert payload["channels_failed"] == 0

    def test_single_pass_reports_failures(self, cli_args):
        result = _invoke(
            cli_args, "channel", "add", "--id", "empty", "--name", "Empty", "--library", "missing",
        )
        assert result.exit_code == 0
        result = _invoke(cli_args, "maintain", "--once")
        assert result.exit_code == 1
        assert "1 failed" in result.stdout
