"""Document provider contract consumed by the resolver and preview scheduler.

The engine never owns a text buffer. Hosts hand it an object satisfying
:class:`Document`; :class:`linkctl.infrastructure.org_document.OrgDocument`
is the reference implementation over Org text.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol, runtime_checkable

# [33%] or [2/5] statistics cookies are ignored when matching headings.
STATISTICS_COOKIE_RE = re.compile(r"\[[0-9]*(?:%|/[0-9]*)\]")

DEFAULT_CODEREF_FORMAT = "(ref:%s)"


class ElementKind(StrEnum):
    """Structural element kinds the engine distinguishes."""

    HEADING = "heading"
    SRC_BLOCK = "src-block"
    EXAMPLE_BLOCK = "example-block"
    KEYWORD = "keyword"
    PROPERTY_DRAWER = "property-drawer"
    PARAGRAPH = "paragraph"


LITERAL_KINDS = frozenset({ElementKind.SRC_BLOCK, ElementKind.EXAMPLE_BLOCK})


@dataclass(frozen=True)
class Element:
    """A structural element spanning ``[begin, end)``."""

    kind: ElementKind
    begin: int
    end: int


@dataclass(frozen=True)
class Heading:
    """A parsed heading line."""

    begin: int
    level: int
    title: str
    todo: str | None = None
    priority: str | None = None
    commented: bool = False
    tags: tuple[str, ...] = ()


# Called after a mutation with the replaced range [beg, end) in old
# coordinates and the change in document length.
ChangeObserver = Callable[[int, int, int], None]


@runtime_checkable
class Document(Protocol):
    """Abstract text + structure provider."""

    @property
    def text(self) -> str: ...

    @property
    def structured(self) -> bool: ...

    def headings(self) -> Sequence[Heading]: ...

    def find_heading_by_text(self, words: Sequence[str]) -> int | None: ...

    def find_named_element(self, words: Sequence[str]) -> int | None: ...

    def find_custom_id(self, custom_id: str) -> int | None: ...

    def find_coderef(self, label: str) -> int | None: ...

    def element_at(self, pos: int) -> Element | None: ...

    def region_text(self, beg: int, end: int) -> str: ...

    def line_text(self, pos: int) -> str: ...

    def reveal(self, pos: int) -> None: ...

    def occur(self, pattern: re.Pattern[str]) -> list[int]: ...

    def append_heading(self, title: str) -> int: ...

    def add_change_observer(self, observer: ChangeObserver) -> None: ...

    def remove_change_observer(self, observer: ChangeObserver) -> None: ...

def heading_search_words(heading: Heading) -> list[str]:
    """Words of a heading title as compared by heading search.

    TODO keyword, priority, COMMENT and tags are already split off by the
    parser; statistics cookies are dropped here.
    """
    return STATISTICS_COOKIE_RE.sub("", heading.title).split()


def words_match(candidate: Iterable[str], words: Sequence[str]) -> bool:
    """Case-insensitive, word-for-word comparison."""
    return [w.upper() for w in candidate] == [w.upper() for w in words]


def coderef_regexp(fmt: str, label: str | None = None) -> re.Pattern[str]:
    """Regexp matching a coderef written with *fmt* at the end of a line.

    Group ``ref`` spans the whole reference, group ``label`` the label.
    """
    label_re = re.escape(label) if label is not None else r"[-a-zA-Z0-9_][-a-zA-Z0-9_ ]*"
    body = re.escape(fmt).replace(re.escape("%s"), f"(?P<label>{label_re})", 1)
    return re.compile(rf"[ \t]*(?P<ref>{body})[ \t]*$", re.MULTILINE)
