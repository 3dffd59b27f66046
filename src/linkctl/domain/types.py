"""Link classification enums.

These enums define the four link surface forms, the capability kinds a
link type may carry, and the outcome labels shared across the engine.
"""

from __future__ import annotations

from enum import StrEnum


class LinkKind(StrEnum):
    """Surface form a link was written in."""

    BRACKETED = "bracketed"
    ANGLE = "angle"
    PLAIN = "plain"
    RADIO_TARGET = "radio-target"


class CapabilityKind(StrEnum):
    """Named behaviors a link type may provide."""

    FOLLOW = "follow"
    EXPORT = "export"
    STORE = "store"
    COMPLETE = "complete"
    PREVIEW = "preview"
    ACTIVATE = "activate"
    INSERT_DESCRIPTION = "insert-description"
    DISPLAY = "display"
    FACE = "face"
    HELP_ECHO = "help-echo"
    HTMLIZE = "htmlize"
    KEYMAP = "keymap"
    MOUSE_FACE = "mouse-face"


class InternalType(StrEnum):
    """Link types handled by the resolver itself. Never registrable."""

    CODEREF = "coderef"
    CUSTOM_ID = "custom-id"
    FUZZY = "fuzzy"
    RADIO = "radio"


RESERVED_TYPES: frozenset[str] = frozenset(t.value for t in InternalType)


class FailureReason(StrEnum):
    """Why a resolution cascade gave up."""

    NO_CUSTOM_ID = "no-custom-id"
    NO_CODEREF = "no-coderef"
    NO_HEADLINE = "no-headline"
    NO_FUZZY_MATCH = "no-fuzzy-match"


class ExactHeadline(StrEnum):
    """Policy for searches that fail to match a heading exactly."""

    OFF = "off"
    ON = "on"
    QUERY_TO_CREATE = "query-to-create"


class StoreOutcome(StrEnum):
    """Result of adding a link to the store."""

    STORED = "stored"
    MOVED = "moved"
    ALREADY_FRONT = "already-front"


class PreviewState(StrEnum):
    """Lifecycle of the preview scheduler."""

    IDLE = "idle"
    SCANNING = "scanning"
    QUEUED = "queued"
    DRAINING = "draining"
