"""Typed errors raised by the link engine.

Grammar and codec problems are local: callers get ``None`` or a literal
fallback. Registry errors are strict. Resolution failures always carry the
search string and cascade reason so the host can tell the user what failed.
"""

from __future__ import annotations

from linkctl.domain.types import FailureReason


class LinkError(Exception):
    """Base class for every linkctl error."""


class ReservedTypeError(LinkError):
    """Attempt to register one of the resolver's internal link types."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Link type {name!r} is reserved and cannot be registered")


class MalformedLinkError(LinkError):
    """A bracketed link whose description brackets do not balance."""

    def __init__(self, text: str, span: tuple[int, int]) -> None:
        self.text = text
        self.span = span
        super().__init__(f"Malformed link at {span[0]}-{span[1]}: {text!r}")


class ResolutionFailure(LinkError):
    """No step of the resolution cascade matched."""

    def __init__(self, search: str, reason: FailureReason) -> None:
        self.search = search
        self.reason = reason
        super().__init__(_FAILURE_MESSAGES[reason].format(search=search))


class AbbrevExpansionError(LinkError):
    """An abbreviation could not be expanded safely.

    Never raised by the expander: it is returned as a warning next to the
    literal link text, and the offending entry is disabled.
    """

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Abbreviation {key!r} disabled: {reason}")


class OpenError(LinkError):
    """A follow capability failed. The original error is the ``__cause__``."""

    def __init__(self, link: str, message: str) -> None:
        self.link = link
        super().__init__(f"Cannot open {link!r}: {message}")


_FAILURE_MESSAGES: dict[FailureReason, str] = {
    FailureReason.NO_CUSTOM_ID: "No match for custom ID: {search}",
    FailureReason.NO_CODEREF: "No match for coderef: {search}",
    FailureReason.NO_HEADLINE: "No match for heading: {search}",
    FailureReason.NO_FUZZY_MATCH: "No match for fuzzy expression: {search}",
}
