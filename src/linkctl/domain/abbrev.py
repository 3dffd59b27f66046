"""Link abbreviations — short ``key:tag`` links expanded from templates.

Two tables are consulted: the document-local one (``#+LINK:`` keywords)
first, then the global one from configuration. A template is either a
string or a callable receiving the tag.

INVARIANT: a ``%(name)`` template never calls ``name`` unless it was marked
safe in configuration or decorated with :func:`pure_expansion`. Documents
are untrusted input; abbreviations must not become a code-execution path.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import structlog

from linkctl.domain.errors import AbbrevExpansionError

log = structlog.get_logger(__name__)

ABBREV_KEY_RE = re.compile(r"[A-Za-z][A-Za-z0-9_-]*\Z")
_LINK_SPLIT_RE = re.compile(r"([^:]*)(::?(.*))?\Z", re.DOTALL)
_FUNCTION_PLACEHOLDER_RE = re.compile(r"%\(([^)]+)\)")

_PURE_MARKER = "__linkctl_pure__"

Template = str | Callable[[str | None], Any]


def pure_expansion(func: Callable[[str | None], str]) -> Callable[[str | None], str]:
    """Mark *func* as safe to call from ``%(name)`` templates."""
    setattr(func, _PURE_MARKER, True)
    return func


@dataclass(frozen=True)
class Expansion:
    """Outcome of expanding one link.

    ``warning`` is set when an entry had to be disabled; ``text`` is then
    the literal, unexpanded link.
    """

    text: str
    key: str | None = None
    warning: AbbrevExpansionError | None = None

    @property
    def expanded(self) -> bool:
        return self.key is not None and self.warning is None


class AbbrevTable:
    """Ordered mapping of abbreviation key to template."""

    def __init__(self, entries: Mapping[str, Template] | None = None) -> None:
        self._entries: dict[str, Template] = {}
        for key, template in (entries or {}).items():
            self.add(key, template)

    def add(self, key: str, template: Template) -> None:
        if not ABBREV_KEY_RE.match(key):
            raise ValueError(f"Invalid abbreviation key: {key!r}")
        if not isinstance(template, str) and not callable(template):
            raise TypeError(f"Abbreviation {key!r} must map to a string or a callable")
        self._entries[key] = template

    def remove(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def get(self, key: str) -> Template | None:
        return self._entries.get(key)

    def items(self) -> Iterator[tuple[str, Template]]:
        return iter(list(self._entries.items()))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class AbbrevExpander:
    """Resolve abbreviation links against a local and a global table."""

    def __init__(
        self,
        global_table: AbbrevTable | None = None,
        local_table: AbbrevTable | None = None,
        *,
        functions: Mapping[str, Callable[[str | None], Any]] | None = None,
        safe_functions: Iterable[str] = (),
    ) -> None:
        self.global_table = global_table if global_table is not None else AbbrevTable()
        self.local_table = local_table if local_table is not None else AbbrevTable()
        self._functions: dict[str, Callable[[str | None], Any]] = dict(functions or {})
        self._safe: set[str] = set(safe_functions)

    def with_local(self, local_table: AbbrevTable) -> AbbrevExpander:
        """Expander for one document: same global table, functions and allow-list."""
        clone = AbbrevExpander(self.global_table, local_table)
        clone._functions = self._functions
        clone._safe = self._safe
        return clone

    # ------------------------------------------------------------------
    # Function registry and allow-list
    # ------------------------------------------------------------------

    def register_function(
        self,
        name: str,
        func: Callable[[str | None], Any],
        *,
        safe: bool = False,
    ) -> None:
        self._functions[name] = func
        if safe:
            self._safe.add(name)

    def mark_safe(self, name: str) -> None:
        self._safe.add(name)

    def is_safe(self, name: str) -> bool:
        func = self._functions.get(name)
        if func is None:
            return False
        return name in self._safe or bool(getattr(func, _PURE_MARKER, False))

    # ------------------------------------------------------------------
    # Expansion
    # ------------------------------------------------------------------

    def lookup(self, key: str) -> Template | None:
        local = self.local_table.get(key)
        if local is not None:
            return local
        return self.global_table.get(key)

    def disable(self, key: str) -> None:
        """Remove *key* from both tables."""
        self.local_table.remove(key)
        self.global_table.remove(key)

    def expand(self, link: str) -> Expansion:
        """Expand *link* if its prefix names an abbreviation.

        Links without a matching key are returned unchanged. Unsafe or
        failing expansions disable the entry and return the literal link.
        """
        m = _LINK_SPLIT_RE.match(link)
        if m is None:
            return Expansion(link)
        key = m.group(1)
        tag = m.group(3) if m.group(2) is not None else None
        template = self.lookup(key)
        if template is None:
            return Expansion(link)

        if callable(template):
            return self._call(key, link, template, tag, lambda value: value)

        fm = _FUNCTION_PLACEHOLDER_RE.search(template)
        if fm is not None:
            name = fm.group(1)
            if not self.is_safe(name):
                return self._reject(key, link, f"function {name!r} is not marked safe")
            return self._call(
                key,
                link,
                self._functions[name],
                tag,
                lambda value: template[: fm.start()] + value + template[fm.end() :],
            )
        if "%s" in template:
            return Expansion(template.replace("%s", tag or "", 1), key=key)
        if "%h" in template:
            return Expansion(template.replace("%h", quote(tag or "", safe=""), 1), key=key)
        return Expansion(template + (tag or ""), key=key)

    def _call(
        self,
        key: str,
        link: str,
        func: Callable[[str | None], Any],
        tag: str | None,
        splice: Callable[[str], str],
    ) -> Expansion:
        try:
            value = func(tag)
        except Exception as exc:
            return self._reject(key, link, f"expansion function raised {exc!r}")
        if not isinstance(value, str):
            return self._reject(key, link, "expansion function did not return a string")
        return Expansion(splice(value), key=key)

    def _reject(self, key: str, link: str, reason: str) -> Expansion:
        self.disable(key)
        error = AbbrevExpansionError(key, reason)
        log.warning("abbrev.disabled", key=key, reason=reason, link=link)
        return Expansion(link, key=key, warning=error)
