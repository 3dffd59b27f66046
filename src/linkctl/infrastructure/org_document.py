"""OrgDocument — Org text as a :class:`~linkctl.domain.document.Document`.

A light line-oriented parser: headings (TODO keyword, priority, COMMENT,
tags), property drawers, keywords, and src/example blocks. It is not a full
Org parser; it knows exactly what link resolution needs.

Parsing is lazy and cached. Every mutation drops the cache and notifies the
change observers with ``(beg, end, delta)``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from linkctl.domain.abbrev import ABBREV_KEY_RE, AbbrevTable
from linkctl.domain.document import (
    DEFAULT_CODEREF_FORMAT,
    Element,
    ElementKind,
    Heading,
    coderef_regexp,
    heading_search_words,
    words_match,
)
from linkctl.domain.grammar import collect_radio_targets

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from linkctl.domain.document import ChangeObserver

logger = logging.getLogger(__name__)

ORG_SUFFIXES = frozenset({".org"})
DEFAULT_TODO_KEYWORDS = ("TODO", "DONE")

_HEADING_RE = re.compile(r"(?P<stars>\*+) (?P<rest>.*)\Z")
_TODO_LINE_RE = re.compile(
    r"^[ \t]*#\+(?:SEQ_|TYP_)?TODO:(?P<value>.*)$",
    re.MULTILINE | re.IGNORECASE,
)
_PRIORITY_RE = re.compile(r"\[#(?P<priority>[A-Z0-9])\](?:[ \t]+|\Z)")
_COMMENT_RE = re.compile(r"COMMENT(?:[ \t]+|\Z)")
_TAGS_RE = re.compile(r"[ \t]+(?P<tags>:[\w@#%:]+:)[ \t]*\Z")
_KEYWORD_RE = re.compile(r"[ \t]*#\+(?P<key>[A-Za-z_]+):[ \t]*(?P<value>.*?)[ \t]*\Z")
_BLOCK_BEGIN_RE = re.compile(
    r"[ \t]*#\+BEGIN_(?P<type>SRC|EXAMPLE)\b(?P<params>.*)\Z",
    re.IGNORECASE,
)
_DRAWER_BEGIN_RE = re.compile(r"[ \t]*:PROPERTIES:[ \t]*\Z", re.IGNORECASE)
_DRAWER_END_RE = re.compile(r"[ \t]*:END:[ \t]*\Z", re.IGNORECASE)
_PROPERTY_RE = re.compile(r"[ \t]*:(?P<key>[^:\s]+):[ \t]*(?P<value>.*?)[ \t]*\Z")
_LABEL_FORMAT_RE = re.compile(r"-l[ \t]+\"(?P<fmt>[^\"]*)\"")
_FAST_ACCESS_RE = re.compile(r"\(.*\)\Z")


@dataclass
class _Outline:
    """Everything one parse pass extracts."""

    headings: list[Heading] = field(default_factory=list)
    elements: list[Element] = field(default_factory=list)
    custom_ids: dict[str, int] = field(default_factory=dict)
    names: list[tuple[str, int]] = field(default_factory=list)
    # (block element, body begin, body end, coderef format)
    blocks: list[tuple[Element, int, int, str]] = field(default_factory=list)
    links: list[tuple[str, str]] = field(default_factory=list)


def _lines(text: str) -> Iterator[tuple[int, str]]:
    """Yield ``(offset, line)`` pairs, line terminators stripped."""
    pos = 0
    for raw in text.splitlines(keepends=True):
        yield pos, raw.rstrip("\r\n")
        pos += len(raw)


def todo_keywords(text: str) -> tuple[str, ...]:
    """TODO keywords declared by ``#+TODO:`` style lines, else the defaults."""
    found: list[str] = []
    for m in _TODO_LINE_RE.finditer(text):
        for word in m.group("value").split():
            if word == "|":
                continue
            keyword = _FAST_ACCESS_RE.sub("", word)
            if keyword and keyword not in found:
                found.append(keyword)
    return tuple(found) or DEFAULT_TODO_KEYWORDS


def parse_heading(begin: int, line: str, keywords: Sequence[str]) -> Heading | None:
    """Parse one heading line, or return None when *line* is not a heading."""
    m = _HEADING_RE.match(line)
    if m is None:
        return None
    rest = m.group("rest").strip()

    todo = None
    first, _, remainder = rest.partition(" ")
    if first in keywords:
        todo, rest = first, remainder.lstrip()

    priority = None
    if (pm := _PRIORITY_RE.match(rest)) is not None:
        priority, rest = pm.group("priority"), rest[pm.end() :]

    commented = False
    if (cm := _COMMENT_RE.match(rest)) is not None:
        commented, rest = True, rest[cm.end() :]

    tags: tuple[str, ...] = ()
    if (tm := _TAGS_RE.search(" " + rest)) is not None:
        tags = tuple(t for t in tm.group("tags").split(":") if t)
        rest = (" " + rest)[: tm.start()]

    return Heading(
        begin=begin,
        level=len(m.group("stars")),
        title=rest.strip(),
        todo=todo,
        priority=priority,
        commented=commented,
        tags=tags,
    )


def parse_outline(text: str, coderef_format: str = DEFAULT_CODEREF_FORMAT) -> _Outline:
    """Single pass over *text* collecting the structure resolution needs."""
    outline = _Outline()
    keywords = todo_keywords(text)
    lines = list(_lines(text))
    current_heading: int | None = None
    i = 0
    while i < len(lines):
        begin, line = lines[i]
        line_end = begin + len(line)

        heading = parse_heading(begin, line, keywords)
        if heading is not None:
            outline.headings.append(heading)
            outline.elements.append(Element(ElementKind.HEADING, begin, line_end))
            current_heading = begin
            i += 1
            continue

        if (bm := _BLOCK_BEGIN_RE.match(line)) is not None:
            end_re = re.compile(rf"[ \t]*#\+END_{bm.group('type')}[ \t]*\Z", re.IGNORECASE)
            close = next((j for j in range(i + 1, len(lines)) if end_re.match(lines[j][1])), None)
            if close is not None:
                kind = (
                    ElementKind.SRC_BLOCK
                    if bm.group("type").upper() == "SRC"
                    else ElementKind.EXAMPLE_BLOCK
                )
                close_begin, close_line = lines[close]
                element = Element(kind, begin, close_begin + len(close_line))
                fm = _LABEL_FORMAT_RE.search(bm.group("params"))
                fmt = fm.group("fmt") if fm is not None else coderef_format
                body_begin = lines[i + 1][0] if i + 1 < close else close_begin
                outline.elements.append(element)
                outline.blocks.append((element, body_begin, close_begin, fmt))
                i = close + 1
                continue

        if _DRAWER_BEGIN_RE.match(line):
            close = next(
                (j for j in range(i + 1, len(lines)) if _DRAWER_END_RE.match(lines[j][1])),
                None,
            )
            if close is not None:
                close_begin, close_line = lines[close]
                outline.elements.append(
                    Element(ElementKind.PROPERTY_DRAWER, begin, close_begin + len(close_line))
                )
                owner = current_heading if current_heading is not None else begin
                for _, prop_line in lines[i + 1 : close]:
                    pm = _PROPERTY_RE.match(prop_line)
                    if pm is not None and pm.group("key").upper() == "CUSTOM_ID":
                        outline.custom_ids.setdefault(pm.group("value"), owner)
                i = close + 1
                continue

        if (km := _KEYWORD_RE.match(line)) is not None:
            outline.elements.append(Element(ElementKind.KEYWORD, begin, line_end))
            key = km.group("key").upper()
            if key == "NAME":
                outline.names.append((km.group("value"), begin))
            elif key == "LINK":
                abbrev, _, template = km.group("value").partition(" ")
                if ABBREV_KEY_RE.match(abbrev):
                    outline.links.append((abbrev, template.strip()))
                else:
                    logger.warning("Ignoring #+LINK: with invalid key %r", abbrev)
        i += 1
    return outline


class OrgDocument:
    """In-memory Org buffer.

    Parameters:
        text: Document contents.
        structured: Whether heading-aware resolution applies. Plain text
            files get only target, name and fuzzy search.
        path: Source file, if any.
        coderef_format: Coderef format for blocks without a ``-l`` switch.
    """

    def __init__(
        self,
        text: str,
        *,
        structured: bool = True,
        path: Path | None = None,
        coderef_format: str = DEFAULT_CODEREF_FORMAT,
    ) -> None:
        self._text = text
        self._structured = structured
        self.path = path
        self.coderef_format = coderef_format
        self._outline: _Outline | None = None
        self._observers: list[ChangeObserver] = []
        self.revealed: list[int] = []
        self.sparse_trees: list[tuple[str, list[int]]] = []

    @classmethod
    def from_path(cls, path: Path, *, structured: bool | None = None) -> OrgDocument:
        """Read *path*; ``.org`` files are structured unless told otherwise."""
        text = path.read_text(encoding="utf-8")
        if structured is None:
            structured = path.suffix.lower() in ORG_SUFFIXES
        return cls(text, structured=structured, path=path)

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        return self._text

    @property
    def structured(self) -> bool:
        return self._structured

    def region_text(self, beg: int, end: int) -> str:
        return self._text[beg:end]

    def line_text(self, pos: int) -> str:
        """The full line containing *pos*, without its terminator."""
        start = self._text.rfind("\n", 0, pos) + 1
        stop = self._text.find("\n", pos)
        return self._text[start : stop if stop != -1 else len(self._text)]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def replace(self, beg: int, end: int, new_text: str) -> None:
        """Replace ``[beg, end)`` with *new_text* and notify observers."""
        if not 0 <= beg <= end <= len(self._text):
            raise ValueError(f"Invalid range {beg}-{end} for length {len(self._text)}")
        self._text = self._text[:beg] + new_text + self._text[end:]
        self._outline = None
        delta = len(new_text) - (end - beg)
        for observer in list(self._observers):
            observer(beg, end, delta)

    def insert(self, pos: int, new_text: str) -> None:
        self.replace(pos, pos, new_text)

    def delete(self, beg: int, end: int) -> None:
        self.replace(beg, end, "")

    def add_change_observer(self, observer: ChangeObserver) -> None:
        self._observers.append(observer)

    def remove_change_observer(self, observer: ChangeObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def outline(self) -> _Outline:
        if self._outline is None:
            self._outline = parse_outline(self._text, self.coderef_format)
        return self._outline

    def headings(self) -> list[Heading]:
        return list(self.outline.headings)

    def find_heading_by_text(self, words: Sequence[str]) -> int | None:
        for heading in self.outline.headings:
            if words_match(heading_search_words(heading), words):
                return heading.begin
        return None

    def find_named_element(self, words: Sequence[str]) -> int | None:
        for name, begin in self.outline.names:
            if words_match(name.split(), words):
                return begin
        return None

    def find_custom_id(self, custom_id: str) -> int | None:
        return self.outline.custom_ids.get(custom_id)

    def find_coderef(self, label: str) -> int | None:
        """Position of the ``(ref:label)`` reference inside a literal block."""
        for _, body_begin, body_end, fmt in self.outline.blocks:
            m = coderef_regexp(fmt, label).search(self._text, body_begin, body_end)
            if m is not None:
                return m.start("ref")
        return None

    def element_at(self, pos: int) -> Element | None:
        """Innermost element containing *pos*; a bare text line is a paragraph."""
        for element in self.outline.elements:
            if element.begin <= pos <= element.end:
                return element
        line = self.line_text(pos)
        if not line.strip():
            return None
        start = self._text.rfind("\n", 0, pos) + 1
        return Element(ElementKind.PARAGRAPH, start, start + len(line))

    def radio_targets(self) -> list[str]:
        return collect_radio_targets(self._text)

    def link_abbrevs(self) -> AbbrevTable:
        """Document-local abbreviation table from ``#+LINK:`` keywords."""
        return AbbrevTable(dict(self.outline.links))

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def reveal(self, pos: int) -> None:
        self.revealed.append(pos)

    def occur(self, pattern: re.Pattern[str]) -> list[int]:
        """Reveal every match of *pattern*; returns match positions."""
        positions = [m.start() for m in pattern.finditer(self._text)]
        self.sparse_trees.append((pattern.pattern, positions))
        for pos in positions:
            self.reveal(pos)
        return positions

    def append_heading(self, title: str) -> int:
        """Append a top-level heading; returns its position."""
        prefix = "" if not self._text or self._text.endswith("\n") else "\n"
        pos = len(self._text) + len(prefix)
        self.insert(len(self._text), f"{prefix}* {title}\n")
        return pos

    def __repr__(self) -> str:
        return f"OrgDocument(path={self.path!r}, length={len(self._text)})"
