"""Locating ``linkctl.toml``.

Lookup order: an explicit ``--config`` path, then the ``LINKCTL_CONFIG``
environment variable, then a walk up from the start directory the way git
finds ``.git/``. The directory holding the file becomes the project root.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "linkctl.toml"
CONFIG_ENV_VAR = "LINKCTL_CONFIG"


def find_config(start: Path | None = None, *, explicit: str | Path | None = None) -> Path | None:
    """Return the config file in effect, or None.

    An *explicit* path or a ``LINKCTL_CONFIG`` value that names no file
    yields None rather than falling back to the walk-up search.
    """
    override = explicit or os.environ.get(CONFIG_ENV_VAR)
    if override:
        p = Path(override)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def project_root(config_path: Path | None) -> Path:
    """Directory relative paths (plugins, documents) are resolved against."""
    return config_path.parent.resolve() if config_path else Path.cwd()
