"""Tests for the built-in launch plugin."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click
import pytest

from linkctl.domain.registry import new_registry
from linkctl.plugins.builtins.launch import LaunchError, LaunchPlugin
from linkctl.plugins.manager import PluginManager


@pytest.fixture
def opened() -> list[str]:
    return []


@pytest.fixture
def plugin(tmp_path: Path, opened: list[str]) -> LaunchPlugin:
    return LaunchPlugin(root=tmp_path, launcher=opened.append)


class TestLinkTypes:
    def test_contributes_follow_and_preview(self, plugin: LaunchPlugin) -> None:
        types = plugin.register_link_types()
        assert {"http", "https", "mailto", "doi", "file"} <= set(types)
        assert set(types["file"]) == {"follow", "preview"}
        assert set(types["https"]) == {"follow"}

    def test_merged_into_registry(self, plugin: LaunchPlugin) -> None:
        manager = PluginManager(new_registry())
        manager.register_plugin(plugin, name="launch-builtin")
        manager.discover_and_load(entry_points=False)
        https = manager.registry.get_type("https")
        assert https is not None
        assert https.get("follow") is not None
        assert https.get("export") is not None


class TestFollow:
    def test_url_follow_encodes_unsafe_chars(
        self, plugin: LaunchPlugin, opened: list[str]
    ) -> None:
        follow = plugin.register_link_types()["https"]["follow"]
        follow("//example.com/a b[1]")
        assert opened == ["https://example.com/a%20b%5B1%5D"]

    def test_doi_follow(self, plugin: LaunchPlugin, opened: list[str]) -> None:
        plugin.register_link_types()["doi"]["follow"]("10.1000/182")
        assert opened == ["https://doi.org/10.1000/182"]

    def test_file_follow_relative_to_root(
        self, plugin: LaunchPlugin, opened: list[str], tmp_path: Path
    ) -> None:
        (tmp_path / "notes.txt").write_text("x")
        plugin.follow_file("notes.txt")
        assert opened == [str(tmp_path / "notes.txt")]

    def test_missing_file(self, plugin: LaunchPlugin, opened: list[str]) -> None:
        with pytest.raises(FileNotFoundError):
            plugin.follow_file("missing.txt")
        assert opened == []

    def test_default_launcher_uses_click(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls: list[tuple[str, dict[str, Any]]] = []

        def fake_launch(url: str, **kwargs: Any) -> int:
            calls.append((url, kwargs))
            return 0

        monkeypatch.setattr(click, "launch", fake_launch)
        LaunchPlugin(root=tmp_path).register_link_types()["http"]["follow"]("//x.org")
        assert calls == [("http://x.org", {"locate": False})]

    def test_launcher_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(click, "launch", lambda url, **kwargs: 3)
        follow = LaunchPlugin(root=tmp_path).register_link_types()["http"]["follow"]
        with pytest.raises(LaunchError, match="status 3"):
            follow("//x.org")


class TestPreview:
    def test_existing_image(self, plugin: LaunchPlugin, tmp_path: Path) -> None:
        (tmp_path / "cat.PNG").write_bytes(b"\x89PNG")
        assert plugin.preview_file("h", "cat.PNG", None) is True

    def test_missing_image(self, plugin: LaunchPlugin) -> None:
        assert plugin.preview_file("h", "gone.png", None) is False

    def test_non_image(self, plugin: LaunchPlugin, tmp_path: Path) -> None:
        (tmp_path / "doc.txt").write_text("x")
        assert plugin.preview_file("h", "doc.txt", None) is False
