"""Tests for the expand command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from linkctl.cli import cli


@pytest.mark.usefixtures("_isolated_project")
class TestExpandCommand:
    def test_with_file_table(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "expand", "wiki:Org_mode", "--file", "notes.org"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "https://en.wikipedia.org/wiki/Org_mode"

    def test_global_table_from_config(self, cli_runner: CliRunner, project_root: Path) -> None:
        (project_root / "linkctl.toml").write_text(
            '[abbrev.links]\ngh = "https://github.com/%s"\n'
        )
        result = cli_runner.invoke(cli, ["--json", "expand", "gh:org/repo"])
        data = json.loads(result.stdout)["data"]
        assert data["expanded"] == "https://github.com/org/repo"
        assert data["key"] == "gh"

    def test_unknown_abbreviation_unchanged(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "expand", "nope:x"])
        data = json.loads(result.stdout)["data"]
        assert data["expanded"] == "nope:x"
        assert data["changed"] is False

    def test_missing_file(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["expand", "x", "--file", "missing.org"])
        assert result.exit_code == 1
        assert "Cannot read file" in result.stderr
