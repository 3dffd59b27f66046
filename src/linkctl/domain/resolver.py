"""Resolver — find where an internal link points inside a document.

The search string goes through a fixed cascade; the first step that
applies decides the outcome:

1. external search hook (plugins)
2. ``#custom-id``                      -> dedicated, or hard failure
3. ``(coderef)``                       -> dedicated, or hard failure
4. ``/regexp/``                        -> sparse tree over all matches
5. ``<<target>>``          (unstarred) -> dedicated
6. ``#+NAME:`` element     (unstarred) -> dedicated
7. heading title           (structured)-> dedicated
8. create missing heading  (policy)    -> created
9. starred or exact-headline policy    -> hard failure
10. whitespace-flexible text search    -> fuzzy
11. hard failure

INVARIANT: headline-only searches never degrade to loose text search.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from linkctl.domain.document import LITERAL_KINDS, Document
from linkctl.domain.errors import ResolutionFailure
from linkctl.domain.grammar import BRACKET_RE, RADIO_TARGET_RE, LinkToken
from linkctl.domain.types import ExactHeadline, FailureReason, InternalType, LinkKind

logger = logging.getLogger(__name__)

_NEWLINE_INDENT_RE = re.compile(r"\n[ \t]*")
_CODEREF_SEARCH_RE = re.compile(r"\A\((.*)\)\Z", re.DOTALL)
_REGEXP_SEARCH_RE = re.compile(r"\A/(.*)/\Z", re.DOTALL)

SearchHook = Callable[[str, Document], Any]
ConfirmCreate = Callable[[str], bool]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Dedicated:
    """Exact structural match (target, name, heading, custom id, coderef)."""

    position: int


@dataclass(frozen=True)
class Fuzzy:
    """Match found by loose text search."""

    position: int


@dataclass(frozen=True)
class CreatedNew:
    """No match; a heading was appended at ``position``."""

    position: int


@dataclass(frozen=True)
class SparseTree:
    """Regexp search: every match was revealed, no single location."""

    pattern: str
    positions: tuple[int, ...]


@dataclass(frozen=True)
class ExternalMatch:
    """A search hook claimed the string; ``value`` is whatever it returned."""

    value: Any


@dataclass(frozen=True)
class NotFound:
    """The cascade failed. Carries the exact search string."""

    search: str
    reason: FailureReason

    def to_error(self) -> ResolutionFailure:
        return ResolutionFailure(self.search, self.reason)

    def raise_error(self) -> None:
        raise self.to_error()


ResolutionResult = Dedicated | Fuzzy | CreatedNew | SparseTree | ExternalMatch | NotFound

_RESULT_KINDS: dict[type, str] = {
    Dedicated: "dedicated",
    Fuzzy: "fuzzy",
    CreatedNew: "created",
    SparseTree: "sparse-tree",
    ExternalMatch: "external",
    NotFound: "not-found",
}


def result_kind(result: ResolutionResult) -> str:
    """Short label for a resolution result."""
    return _RESULT_KINDS[type(result)]


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SearchQuery:
    """A search string split into the parts the cascade works with."""

    search: str
    normalized: str
    starred: bool
    words: tuple[str, ...]

    @property
    def multi_line_re(self) -> str:
        """Words separated by any whitespace, line breaks included."""
        return r"(?:[ \t\n]+)".join(re.escape(w) for w in self.words)

    @property
    def title(self) -> str:
        return " ".join(self.words)


def normalize_search(search: str) -> SearchQuery:
    """Collapse line breaks, detect a leading ``*`` and split into words."""
    normalized = _NEWLINE_INDENT_RE.sub(" ", search)
    starred = normalized.startswith("*")
    words = tuple((normalized[1:] if starred else normalized).split())
    return SearchQuery(search=search, normalized=normalized, starred=starred, words=words)


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class Resolver:
    """Run the search cascade against one document.

    Parameters:
        document: Text and structure provider.
        search_hook: Called first with ``(search, document)``; a non-None
            return claims the search.
        exact_headline: Policy once targets, names and headings failed.
        confirm_create: Asked before appending a missing heading under the
            ``query-to-create`` policy. Without it nothing is created.
    """

    def __init__(
        self,
        document: Document,
        *,
        search_hook: SearchHook | None = None,
        exact_headline: ExactHeadline = ExactHeadline.QUERY_TO_CREATE,
        confirm_create: ConfirmCreate | None = None,
    ) -> None:
        self._doc = document
        self._hook = search_hook
        self._policy = ExactHeadline(exact_headline)
        self._confirm = confirm_create

    def resolve(
        self,
        search: str,
        avoid_pos: int | None = None,
        *,
        stealth: bool = False,
    ) -> ResolutionResult:
        """Resolve *search*; see the module docstring for the cascade."""
        result = self._cascade(normalize_search(search), avoid_pos)
        if isinstance(result, (Dedicated, Fuzzy, CreatedNew)):
            if self._doc.structured and not stealth:
                self._doc.reveal(result.position)
        logger.debug("Resolved %r -> %s", search, result_kind(result))
        return result

    def resolve_token(self, token: LinkToken, *, stealth: bool = False) -> ResolutionResult:
        """Resolve an internal link token (fuzzy, custom-id, coderef, radio)."""
        if token.type == InternalType.CUSTOM_ID:
            return self.resolve(f"#{token.path}", stealth=stealth)
        if token.type == InternalType.CODEREF:
            return self.resolve(f"({token.path})", stealth=stealth)
        if token.type == InternalType.RADIO:
            return self._resolve_radio(token, stealth=stealth)
        # Inside the target text, so the link never finds itself.
        avoid = token.start + 2 if token.kind is LinkKind.BRACKETED else token.start
        return self.resolve(token.path, avoid_pos=avoid, stealth=stealth)

    # ------------------------------------------------------------------
    # Cascade
    # ------------------------------------------------------------------

    def _cascade(self, query: SearchQuery, avoid_pos: int | None) -> ResolutionResult:
        search = query.search
        structured = self._doc.structured

        if self._hook is not None:
            claimed = self._hook(search, self._doc)
            if claimed is not None:
                return ExternalMatch(claimed)

        if search.startswith("#"):
            pos = self._doc.find_custom_id(query.normalized[1:])
            if pos is None:
                return NotFound(search, FailureReason.NO_CUSTOM_ID)
            return Dedicated(pos)

        if (m := _CODEREF_SEARCH_RE.match(query.normalized)) is not None:
            pos = self._doc.find_coderef(m.group(1))
            if pos is None:
                return NotFound(search, FailureReason.NO_CODEREF)
            return Dedicated(pos)

        if (m := _REGEXP_SEARCH_RE.match(query.normalized)) is not None:
            return self._sparse_tree(m.group(1))

        if query.words and not query.starred:
            pos = self._find_target(query)
            if pos is not None:
                return Dedicated(pos)
            pos = self._doc.find_named_element(query.words)
            if pos is not None:
                return Dedicated(pos)

        if query.words and structured:
            pos = self._doc.find_heading_by_text(query.words)
            if pos is not None:
                return Dedicated(pos)

        if structured and query.words and self._may_create(search):
            return CreatedNew(self._doc.append_heading(query.title))

        if query.starred or self._policy is not ExactHeadline.OFF:
            return NotFound(search, FailureReason.NO_HEADLINE)

        pos = self._fuzzy_search(query, avoid_pos)
        if pos is not None:
            return Fuzzy(pos)
        return NotFound(search, FailureReason.NO_FUZZY_MATCH)

    def _may_create(self, search: str) -> bool:
        if self._policy is not ExactHeadline.QUERY_TO_CREATE or self._confirm is None:
            return False
        return bool(self._confirm(search))

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _sparse_tree(self, pattern: str) -> SparseTree:
        try:
            compiled = re.compile(pattern, re.IGNORECASE | re.MULTILINE)
        except re.error as exc:
            logger.warning("Invalid search regexp %r (%s); matching literally", pattern, exc)
            compiled = re.compile(re.escape(pattern), re.IGNORECASE)
        return SparseTree(pattern=pattern, positions=tuple(self._doc.occur(compiled)))

    def _find_target(self, query: SearchQuery) -> int | None:
        text = self._doc.text
        target_re = re.compile(rf"<<{query.multi_line_re}>>", re.IGNORECASE)
        for m in target_re.finditer(text):
            # <<<radio>>> declarations also contain <<...>>.
            if m.start() > 0 and text[m.start() - 1] == "<":
                continue
            element = self._doc.element_at(m.start())
            if element is not None and element.kind in LITERAL_KINDS:
                continue
            return m.start()
        return None

    def _fuzzy_search(self, query: SearchQuery, avoid_pos: int | None) -> int | None:
        if not query.words:
            return None
        text = self._doc.text
        links = [(m.span(), m.span("b_desc")) for m in BRACKET_RE.finditer(text)]
        for m in re.finditer(query.multi_line_re, text, re.IGNORECASE):
            beg, end = m.span()
            if avoid_pos is not None and beg <= avoid_pos <= end:
                continue
            if _outside_description(beg, links):
                continue
            return beg
        return None

    def _resolve_radio(self, token: LinkToken, *, stealth: bool) -> ResolutionResult:
        wanted = token.path.split()
        for m in RADIO_TARGET_RE.finditer(self._doc.text):
            if [w.upper() for w in m.group("target").split()] == [w.upper() for w in wanted]:
                if self._doc.structured and not stealth:
                    self._doc.reveal(m.start())
                return Dedicated(m.start())
        return NotFound(token.path, FailureReason.NO_FUZZY_MATCH)


def _outside_description(
    pos: int,
    links: list[tuple[tuple[int, int], tuple[int, int]]],
) -> bool:
    """True when *pos* falls in a bracket link but not in its description.

    An undescribed link has the description span ``(-1, -1)``, so all of it
    counts.
    """
    for (link_beg, link_end), (desc_beg, desc_end) in links:
        if link_beg <= pos < link_end and not desc_beg <= pos < desc_end:
            return True
    return False
