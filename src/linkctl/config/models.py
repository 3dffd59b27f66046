"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, linkctl.toml only contains
overrides. An empty file (or none at all) is a valid configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from linkctl.domain.abbrev import ABBREV_KEY_RE
from linkctl.domain.types import ExactHeadline

# --- linkctl.toml sections ---


class ResolveConfig(BaseModel):
    """[resolve] section."""

    model_config = {"frozen": True}

    exact_headline: ExactHeadline = ExactHeadline.QUERY_TO_CREATE
    reveal_context: bool = True


class PreviewConfig(BaseModel):
    """[preview] section."""

    model_config = {"frozen": True}

    batch_size: int = Field(default=6, ge=1)
    delay: float = Field(default=0.05, ge=0)
    include_described: bool = False


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    remove_on_insertion: bool = True
    max_size: int = Field(default=0, ge=0)


class AbbrevConfig(BaseModel):
    """[abbrev] section.

    ``links`` maps abbreviation keys to templates; ``safe_functions`` names
    the functions ``%(name)`` templates may call.
    """

    model_config = {"frozen": True}

    links: dict[str, str] = Field(default_factory=dict)
    safe_functions: list[str] = Field(default_factory=list)

    @field_validator("links")
    @classmethod
    def _check_keys(cls, value: dict[str, str]) -> dict[str, str]:
        bad = [key for key in value if not ABBREV_KEY_RE.match(key)]
        if bad:
            raise ValueError(f"Invalid abbreviation keys: {', '.join(sorted(bad))}")
        return value


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    local_dir: str = ".linkctl/plugins"
    disabled: list[str] = Field(default_factory=list)

