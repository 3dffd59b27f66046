"""Link grammar — matchers for the four link surface forms.

Bracketed links have a fixed grammar. Angle and plain links embed the set of
registered link type names, so their patterns are rebuilt by the type
registry on every mutation (see :mod:`linkctl.domain.registry`). Radio links
depend on the targets declared in one document and are built per document.

Surface forms::

    [[target]]  [[target][description]]
    <type:path>
    type:path
    <<<radio target>>>    (declaration; bare occurrences become links)
"""

from __future__ import annotations

import logging
import re
import string
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from linkctl.domain.errors import MalformedLinkError
from linkctl.domain.escape import escape, unescape
from linkctl.domain.types import InternalType, LinkKind

if TYPE_CHECKING:
    from linkctl.domain.registry import LinkTypeRegistry

logger = logging.getLogger(__name__)

ZERO_WIDTH_SPACE = "\u200b"

# Target: plain chars, an odd backslash run escaping a bracket, or a
# backslash run followed by anything but a bracket.
_BRACKET_TARGET = r"(?:[^\[\]\\\n]|\\(?:\\\\)*[\[\]]|\\+[^\[\]\n])+"
BRACKET_RE = re.compile(
    rf"\[\[(?P<b_target>{_BRACKET_TARGET})\](?:\[(?P<b_desc>.+?)\])?\]",
    re.DOTALL,
)

TARGET_RE = re.compile(r"<<(?P<target>[^<>\n\t ](?:[^<>\n]*[^<>\n\t ])?)>>")
RADIO_TARGET_RE = re.compile(r"<<<(?P<target>[^<>\n\t ](?:[^<>\n]*[^<>\n\t ])?)>>>")

_NON_SPACE_BRACKET = r"[^\[\] \t\n()<>]"
_PARENTHESIS = (
    rf"[<(\[](?:{_NON_SPACE_BRACKET}|[<(\[]{_NON_SPACE_BRACKET}*[\])>])*[\])>]"
)
_PUNCT_CLASS = "".join(re.escape(c) for c in string.punctuation)
_PLAIN_PATH = (
    rf"(?:{_NON_SPACE_BRACKET}|{_PARENTHESIS})+"
    rf"(?:[^{_PUNCT_CLASS}\s]|[-/]|{_PARENTHESIS})"
)
_ANGLE_PATH = r"[^>\n]*(?:\n[ \t]*[^> \t\n][^>\n]*)*"

_NEWLINE_INDENT_RE = re.compile(r"[ \t]*\n[ \t]*")
_SEARCH_OPTION_RE = re.compile(r"::(.*)\Z", re.DOTALL)
_NEVER = "(?!)"


@dataclass(frozen=True)
class LinkToken:
    """One parsed link occurrence.

    ``raw_target`` is the unescaped target as written. ``type`` and
    ``path`` are derived from it (after abbreviation expansion, when an
    expander was supplied to the parser).
    """

    kind: LinkKind
    raw_target: str
    span: tuple[int, int]
    description: str | None = None
    type: str = InternalType.FUZZY.value
    path: str = ""
    search_option: str | None = None
    description_span: tuple[int, int] | None = None

    @property
    def start(self) -> int:
        return self.span[0]

    @property
    def end(self) -> int:
        return self.span[1]

    @property
    def has_description(self) -> bool:
        return self.description is not None


def types_alternation(names: Iterable[str]) -> str:
    """Regex alternation of *names*, longest first so prefixes never win."""
    ordered = sorted(set(names), key=lambda n: (-len(n), n))
    if not ordered:
        return _NEVER
    return "|".join(re.escape(n) for n in ordered)


@dataclass(frozen=True)
class LinkGrammar:
    """Compiled matchers for one set of registered link types."""

    types: tuple[str, ...]
    angle: re.Pattern[str]
    plain: re.Pattern[str]
    any: re.Pattern[str]
    type_prefix: re.Pattern[str]

    @classmethod
    def build(cls, type_names: Iterable[str]) -> LinkGrammar:
        names = tuple(type_names)
        alt = types_alternation(names)
        angle = rf"<(?P<a_type>{alt}):(?P<a_path>{_ANGLE_PATH})>"
        plain = rf"\b(?P<p_type>{alt}):(?P<p_path>{_PLAIN_PATH})"
        return cls(
            types=names,
            angle=re.compile(angle),
            plain=re.compile(plain),
            any=re.compile(
                rf"(?P<bracket>{BRACKET_RE.pattern})|(?P<angle>{angle})|(?P<plain>{plain})",
                re.DOTALL,
            ),
            type_prefix=re.compile(rf"(?P<type>{alt}):"),
        )

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_next(
        self,
        text: str,
        start: int = 0,
        *,
        expand: Callable[[str], str] | None = None,
    ) -> LinkToken | None:
        """Return the first link at or after *start*, or None.

        Raises:
            MalformedLinkError: the next bracketed link has a description
                with unbalanced square brackets.
        """
        m = self.any.search(text, start)
        if m is None:
            return None
        return self._token_from_match(m, expand)

    def iter_links(
        self,
        text: str,
        start: int = 0,
        end: int | None = None,
        *,
        expand: Callable[[str], str] | None = None,
    ) -> Iterator[LinkToken]:
        """Yield every link starting in ``[start, end)``.

        Malformed links are skipped with a warning.
        """
        limit = len(text) if end is None else end
        pos = start
        while pos < limit:
            m = self.any.search(text, pos)
            if m is None or m.start() >= limit:
                return
            pos = max(m.end(), pos + 1)
            try:
                yield self._token_from_match(m, expand)
            except MalformedLinkError as exc:
                logger.warning("Skipping malformed link: %s", exc)

    def classify(self, target: str) -> tuple[str, str, str | None]:
        """Split a bracketed target into ``(type, path, search_option)``."""
        if target.startswith(("/", "~/", "./", "../")):
            link_type, path = "file", target
        elif (m := self.type_prefix.match(target)) is not None:
            link_type, path = m.group("type"), target[m.end() :]
        elif len(target) > 1 and target.startswith("(") and target.endswith(")"):
            return InternalType.CODEREF.value, target[1:-1], None
        elif target.startswith("#"):
            return InternalType.CUSTOM_ID.value, target[1:], None
        else:
            return InternalType.FUZZY.value, target, None
        return (link_type, *_split_search_option(link_type, path))

    def _token_from_match(
        self,
        m: re.Match[str],
        expand: Callable[[str], str] | None,
    ) -> LinkToken:
        span = (m.start(), m.end())
        if m.group("bracket") is not None:
            raw = unescape(m.group("b_target"))
            desc = m.group("b_desc")
            if desc is not None and not _balanced(desc):
                raise MalformedLinkError(m.group(0), span)
            link_type, path, option = self.classify(expand(raw) if expand else raw)
            return LinkToken(
                kind=LinkKind.BRACKETED,
                raw_target=raw,
                span=span,
                description=desc,
                type=link_type,
                path=path,
                search_option=option,
                description_span=m.span("b_desc") if desc is not None else None,
            )
        if m.group("angle") is not None:
            link_type = m.group("a_type")
            path = _NEWLINE_INDENT_RE.sub("", m.group("a_path"))
            kind = LinkKind.ANGLE
        else:
            link_type = m.group("p_type")
            path = m.group("p_path")
            kind = LinkKind.PLAIN
        raw = f"{link_type}:{path}"
        path, search_option = _split_search_option(link_type, path)
        return LinkToken(
            kind=kind,
            raw_target=raw,
            span=span,
            type=link_type,
            path=path,
            search_option=search_option,
        )


def _split_search_option(link_type: str, path: str) -> tuple[str, str | None]:
    """File links carry an optional search after ``::``."""
    if link_type.startswith("file"):
        opt = _SEARCH_OPTION_RE.search(path)
        if opt is not None:
            return path[: opt.start()], opt.group(1)
    return path, None


def _balanced(description: str) -> bool:
    depth = 0
    for ch in description:
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


# ---------------------------------------------------------------------------
# Radio targets
# ---------------------------------------------------------------------------


def collect_radio_targets(text: str) -> list[str]:
    """Return the distinct ``<<<radio>>>`` values declared in *text*."""
    seen: dict[str, None] = {}
    for m in RADIO_TARGET_RE.finditer(text):
        seen.setdefault(m.group("target"), None)
    return list(seen)


def build_radio_regexp(targets: Iterable[str]) -> re.Pattern[str] | None:
    """Compile a case-insensitive matcher for bare radio-target occurrences.

    Words of a target may be separated by any blanks and at most one line
    break. Returns None when there are no targets.
    """
    alternatives: list[str] = []
    for target in sorted(set(targets), key=lambda t: (-len(t), t)):
        words = target.split()
        if words:
            alternatives.append(r"(?:[ \t]+|[ \t]*\n[ \t]*)".join(re.escape(w) for w in words))
    if not alternatives:
        return None
    body = "|".join(alternatives)
    return re.compile(rf"(?<![^\W_])(?P<radio>{body})(?![^\W_])", re.IGNORECASE)


def iter_radio_links(
    text: str,
    pattern: re.Pattern[str] | None,
    *,
    exclude: Iterable[tuple[int, int]] = (),
) -> Iterator[LinkToken]:
    """Yield radio links in *text*, skipping declarations and *exclude* spans."""
    if pattern is None:
        return
    blocked = sorted([*exclude, *(m.span() for m in RADIO_TARGET_RE.finditer(text))])
    for m in pattern.finditer(text):
        beg, end = m.span("radio")
        if any(b < end and beg < e for b, e in blocked):
            continue
        value = " ".join(m.group("radio").split())
        yield LinkToken(
            kind=LinkKind.RADIO_TARGET,
            raw_target=value,
            span=(beg, end),
            type=InternalType.RADIO.value,
            path=value,
        )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def make_link_string(target: str, description: str | None = None) -> str:
    """Build ``[[target][description]]`` with *target* escaped.

    The description may not contain ``]]`` nor end with ``]``; a zero-width
    space is inserted to break such sequences.
    """
    if not target.strip():
        raise ValueError("Empty link")
    desc = description.strip() if description else ""
    if desc:
        desc = re.sub(r"\]\Z", "]" + ZERO_WIDTH_SPACE, desc)
        desc = re.sub(r"\](?=\])", "]" + ZERO_WIDTH_SPACE, desc)
        return f"[[{escape(target)}][{desc}]]"
    return f"[[{escape(target)}]]"


# ---------------------------------------------------------------------------
# Registry-backed convenience entry points
# ---------------------------------------------------------------------------


def parse_next_link(
    text: str,
    start: int = 0,
    *,
    registry: LinkTypeRegistry | None = None,
    expand: Callable[[str], str] | None = None,
) -> LinkToken | None:
    """Parse the next link in *text* using the live registry grammar."""
    return _grammar(registry).parse_next(text, start, expand=expand)


def iter_links(
    text: str,
    start: int = 0,
    end: int | None = None,
    *,
    registry: LinkTypeRegistry | None = None,
    expand: Callable[[str], str] | None = None,
) -> Iterator[LinkToken]:
    """Iterate links in *text* using the live registry grammar."""
    return _grammar(registry).iter_links(text, start, end, expand=expand)


def _grammar(registry: LinkTypeRegistry | None) -> LinkGrammar:
    if registry is None:
        from linkctl.domain.registry import LINK_TYPES

        registry = LINK_TYPES
    return registry.snapshot().grammar
