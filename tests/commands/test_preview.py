"""Tests for the preview command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from linkctl.cli import cli


@pytest.fixture
def pics(project_root: Path) -> Path:
    (project_root / "pics.org").write_text(
        "[[file:a.png]]\n[[file:b.png][B]]\n[[file:c.png]]\n", encoding="utf-8"
    )
    for name in ("a.png", "b.png", "c.png"):
        (project_root / name).write_bytes(b"\x89PNG")
    return project_root / "pics.org"


@pytest.mark.usefixtures("_isolated_project", "pics")
class TestPreviewCommand:
    def test_json(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "preview", "pics.org"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)["data"]
        assert data["queued"] == 2
        assert data["succeeded"] == 2

    def test_include_described_and_batch_size(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "preview", "pics.org", "--include-described", "--batch-size", "2"]
        )
        data = json.loads(result.stdout)["data"]
        assert data["queued"] == 3
        assert data["batches"] == 2
        assert data["batch_size"] == 2

    def test_batch_size_from_config(self, cli_runner: CliRunner, project_root: Path) -> None:
        (project_root / "linkctl.toml").write_text("[preview]\nbatch_size = 1\n")
        result = cli_runner.invoke(cli, ["--json", "preview", "pics.org"])
        assert json.loads(result.stdout)["data"]["batches"] == 2

    def test_zero_batch_size_rejected(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["preview", "pics.org", "--batch-size", "0"])
        assert result.exit_code == 2

    def test_human(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["preview", "pics.org"])
        assert "queued: 2" in result.output
        assert "a.png" in result.output

    def test_verbose_telemetry(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-v", "preview", "pics.org"])
        assert result.exit_code == 0
        assert "PreviewService.preview" in result.stdout
        assert "drain  (batches=1)" in result.stdout
