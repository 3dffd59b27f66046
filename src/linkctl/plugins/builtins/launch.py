"""Built-in launch plugin: open links and preview image files.

Contributes ``follow`` capabilities for web, DOI and file links, delegating
to :func:`click.launch`, and a ``preview`` capability for file links that
point at an existing image.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable
from pathlib import Path
from typing import Any

import click
import pluggy

from linkctl.domain.escape import percent_encode
from linkctl.domain.types import CapabilityKind

hookimpl = pluggy.HookimplMarker("linkctl")

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = frozenset(
    {".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".bmp", ".tif", ".tiff", ".xpm", ".pbm"}
)
# Characters a browser would otherwise read as URL structure.
_URL_UNSAFE = (" ", "[", "]")

_WEB_SCHEMES = ("http", "https", "ftp", "mailto", "news")
_FILE_TYPES = ("file", "file+sys", "file+emacs")


class LaunchError(OSError):
    """The system launcher reported a failure."""


def _launch(target: str, *, locate: bool = False) -> None:
    status = click.launch(target, locate=locate)
    if status != 0:
        raise LaunchError(f"launcher exited with status {status}")


class LaunchPlugin:
    """Opens links with the desktop's default application.

    Parameters:
        root: Directory relative file paths are resolved against.
        launcher: Replaces :func:`click.launch` based opening (tests).
    """

    def __init__(
        self,
        root: Path | None = None,
        launcher: Callable[..., None] | None = None,
    ) -> None:
        self.root = root
        self._launch = launcher or _launch

    def resolve_path(self, path: str) -> Path:
        p = Path(path).expanduser()
        if not p.is_absolute() and self.root is not None:
            p = self.root / p
        return p

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def _url_follower(self, prefix: str) -> Callable[[str, Any], None]:
        def follow(path: str, arg: Any = None) -> None:
            url = percent_encode(f"{prefix}{path}", _URL_UNSAFE)
            logger.debug("Opening %s", url)
            self._launch(url)

        return follow

    def follow_file(self, path: str, arg: Any = None) -> None:
        target = self.resolve_path(path)
        if not target.exists():
            raise FileNotFoundError(f"No such file: {target}")
        logger.debug("Opening %s", target)
        self._launch(str(target))

    def preview_file(self, handle: Hashable, path: str, token: Any) -> bool:
        """True when *path* is an existing image file."""
        target = self.resolve_path(path)
        return target.suffix.lower() in IMAGE_SUFFIXES and target.is_file()

    # ------------------------------------------------------------------
    # Setup hooks
    # ------------------------------------------------------------------

    @hookimpl
    def register_link_types(self) -> dict[str, dict[str, Any]]:
        types: dict[str, dict[str, Any]] = {}
        for scheme in _WEB_SCHEMES:
            types[scheme] = {CapabilityKind.FOLLOW: self._url_follower(f"{scheme}:")}
        types["doi"] = {CapabilityKind.FOLLOW: self._url_follower("https://doi.org/")}
        for name in _FILE_TYPES:
            types[name] = {
                CapabilityKind.FOLLOW: self.follow_file,
                CapabilityKind.PREVIEW: self.preview_file,
            }
        return types
