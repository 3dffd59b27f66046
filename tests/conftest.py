"""Shared pytest fixtures and test helpers for linkctl tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from linkctl.config.settings import LinkSettings
from linkctl.domain.registry import LinkTypeRegistry, new_registry
from linkctl.infrastructure.org_document import OrgDocument
from linkctl.infrastructure.workspace import Workspace
from linkctl.services.telemetry import disable_telemetry

SAMPLE_ORG = """\
#+TITLE: Sample
#+LINK: wiki https://en.wikipedia.org/wiki/%s

* TODO [#A] Project plan :work:
:PROPERTIES:
:CUSTOM_ID: plan
:END:
See [[Details]] and <<anchor point>> for more.

* Details
Visit https://orgmode.org or [[https://example.com][Example]].

#+NAME: setup-block
#+BEGIN_SRC python -l "#(%s)"
for x in range(3):  #(loop)
    print(x)
#+END_SRC

* Notes [1/2]
Refer to <<<Radio Item>>> and later radio item again.
"""


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def registry() -> LinkTypeRegistry:
    """Fresh registry with only the built-in link types."""
    return new_registry()


@pytest.fixture
def org_doc() -> OrgDocument:
    return OrgDocument(SAMPLE_ORG)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Temporary project directory holding ``notes.org``."""
    (tmp_path / "notes.org").write_text(SAMPLE_ORG, encoding="utf-8")
    return tmp_path


@pytest.fixture
def settings(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> LinkSettings:
    monkeypatch.delenv("LINKCTL_CONFIG", raising=False)
    return LinkSettings.from_cli(root=project_root)


@pytest.fixture
def launched() -> list[str]:
    """Targets passed to the built-in plugin's launcher."""
    return []


@pytest.fixture
def workspace(settings: LinkSettings, launched: list[str]) -> Workspace:
    """Workspace without entry-point plugins; launches are recorded."""
    return Workspace(settings, launcher=launched.append, load_plugins=False)


@pytest.fixture(autouse=True)
def _reset_cli_state() -> Generator[None]:
    """Undo process-wide state a CLI invocation leaves behind.

    Each run installs a log handler on the runner's stderr and ``-v`` turns
    telemetry on for the rest of the process.
    """
    root = logging.getLogger()
    before = set(root.handlers)
    level = logging.getLogger("linkctl").level
    yield
    disable_telemetry()
    for handler in root.handlers[:]:
        if handler not in before and handler.get_name() == "linkctl":
            root.removeHandler(handler)
    logging.getLogger("linkctl").setLevel(level)


@pytest.fixture
def _isolated_project(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp project so the CLI finds ``notes.org``.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command
    test classes.
    """
    monkeypatch.delenv("LINKCTL_CONFIG", raising=False)
    monkeypatch.chdir(project_root)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


class RecordingPreview:
    """Preview capability recording calls; returns ``result`` (or raises it)."""

    def __init__(self, result: Any = True) -> None:
        self.result = result
        self.calls: list[str] = []

    def __call__(self, handle: Any, path: str, token: Any) -> Any:
        self.calls.append(path)
        if isinstance(self.result, BaseException):
            raise self.result
        if callable(self.result):
            return self.result(path)
        return self.result
