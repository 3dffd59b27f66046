"""Tests for the parse command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from linkctl.cli import cli


@pytest.mark.usefixtures("_isolated_project")
class TestParseCommand:
    def test_json(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "parse", "notes.org"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["op"] == "parse"
        assert data["data"]["count"] == 4
        assert data["data"]["links"][1]["path"] == "Details"

    def test_radio(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "parse", "notes.org", "--radio"])
        data = json.loads(result.stdout)
        assert data["data"]["count"] == 5

    def test_human_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["parse", "notes.org"])
        assert result.exit_code == 0
        assert "https://example.com" in result.output
        assert "4 links" in result.output

    def test_quiet(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "parse", "notes.org"])
        assert result.stdout.splitlines()[1] == "Details"

    def test_quiet_warnings_on_stderr(self, cli_runner: CliRunner, project_root: Path) -> None:
        (project_root / "bad.org").write_text("[[x][a]b]]\n")
        result = cli_runner.invoke(cli, ["-q", "parse", "bad.org"])
        assert result.exit_code == 0
        assert "WARNING: Malformed link" in result.stderr
        assert "Malformed" not in result.stdout

    def test_missing_file(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "parse", "missing.org"])
        assert result.exit_code == 1
        assert result.stdout == ""
        data = json.loads(result.stderr)
        assert data["error"]["code"] == "NO_FILE"
