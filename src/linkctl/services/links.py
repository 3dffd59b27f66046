"""LinkService — parse, resolve, expand, store and open links.

Six surfaces over one workspace:
- parse: every link token of a file (optionally radio links too)
- resolve: run the search cascade against a file
- expand: apply abbreviation tables to a link
- types / register_type: inspect and extend the link type registry
- store / insert: capture links into the MRU store and take them out again
- open_link: dispatch a link to its type's ``follow`` capability
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from linkctl.domain.errors import MalformedLinkError, OpenError, ReservedTypeError
from linkctl.domain.grammar import (
    LinkToken,
    build_radio_regexp,
    iter_radio_links,
)
from linkctl.domain.resolver import (
    CreatedNew,
    Dedicated,
    ExternalMatch,
    Fuzzy,
    NotFound,
    ResolutionResult,
    SparseTree,
    result_kind,
)
from linkctl.domain.types import RESERVED_TYPES, CapabilityKind, LinkKind
from linkctl.infrastructure.org_document import OrgDocument
from linkctl.services.base import BaseService
from linkctl.services.result import ErrorCode, ServiceResult
from linkctl.services.telemetry import trace_span, traced


def token_to_dict(token: LinkToken) -> dict[str, Any]:
    """JSON-friendly view of a token."""
    return {
        "kind": token.kind.value,
        "type": token.type,
        "path": token.path,
        "raw_target": token.raw_target,
        "description": token.description,
        "search_option": token.search_option,
        "start": token.start,
        "end": token.end,
    }


class LinkService(BaseService):
    """Link-level operations on documents and the registry."""

    # ------------------------------------------------------------------
    # parse
    # ------------------------------------------------------------------

    @traced
    def parse(self, path: Path | str, *, radio: bool = False) -> ServiceResult:
        """List the links of *path* in document order.

        Malformed links are skipped and reported as warnings.
        """
        doc = self._load(path, "parse")
        if not isinstance(doc, OrgDocument):
            return doc

        warnings: list[str] = []
        expand = self._collecting_expander(doc, warnings)
        tokens = self._scan(doc.text, expand, warnings)

        if radio:
            with trace_span("radio"):
                pattern = build_radio_regexp(doc.radio_targets())
                spans = [t.span for t in tokens]
                tokens.extend(iter_radio_links(doc.text, pattern, exclude=spans))
                tokens.sort(key=lambda t: t.start)

        return ServiceResult(
            ok=True,
            op="parse",
            data={
                "path": str(doc.path),
                "count": len(tokens),
                "links": [token_to_dict(t) for t in tokens],
            },
            warnings=warnings,
        )

    def _scan(
        self,
        text: str,
        expand: Any,
        warnings: list[str],
    ) -> list[LinkToken]:
        grammar = self._ws.registry.grammar
        tokens: list[LinkToken] = []
        pos = 0
        while True:
            try:
                token = grammar.parse_next(text, pos, expand=expand)
            except MalformedLinkError as exc:
                warnings.append(str(exc))
                pos = exc.span[1]
                continue
            if token is None:
                return tokens
            tokens.append(token)
            pos = max(token.end, pos + 1)

    def _collecting_expander(self, doc: OrgDocument, warnings: list[str]) -> Any:
        expander = self._ws.expander_for(doc)

        def expand(link: str) -> str:
            expansion = expander.expand(link)
            if expansion.warning is not None:
                warnings.append(str(expansion.warning))
            return expansion.text

        return expand

    # ------------------------------------------------------------------
    # resolve
    # ------------------------------------------------------------------

    @traced
    def resolve(
        self,
        path: Path | str,
        search: str,
        *,
        avoid_pos: int | None = None,
        stealth: bool | None = None,
        confirm_create: Any = None,
    ) -> ServiceResult:
        """Resolve *search* inside *path*.

        *stealth* defaults to the inverse of ``[resolve] reveal_context``.
        """
        doc = self._load(path, "resolve")
        if not isinstance(doc, OrgDocument):
            return doc
        if stealth is None:
            stealth = not self._ws.settings.resolve.reveal_context

        resolver = self._ws.resolver_for(doc, confirm_create=confirm_create)
        with trace_span("cascade") as span:
            result = resolver.resolve(search, avoid_pos, stealth=stealth)
            if span is not None:
                span.annotate("kind", result_kind(result))

        if isinstance(result, NotFound):
            error = result.to_error()
            return self._fail(
                "resolve",
                ErrorCode.NOT_FOUND,
                str(error),
                search=error.search,
                reason=error.reason.value,
                path=str(doc.path),
            )
        data = {"path": str(doc.path), "search": search, **_result_data(result, doc)}
        if isinstance(result, CreatedNew):
            data["text"] = doc.text
        return ServiceResult(ok=True, op="resolve", data=data)

    # ------------------------------------------------------------------
    # expand
    # ------------------------------------------------------------------

    @traced
    def expand(self, link: str, *, path: Path | str | None = None) -> ServiceResult:
        """Expand *link* with the global table, plus *path*'s ``#+LINK:`` table."""
        expander = self._ws.abbrevs
        if path is not None:
            doc = self._load(path, "expand")
            if not isinstance(doc, OrgDocument):
                return doc
            expander = self._ws.expander_for(doc)

        expansion = expander.expand(link)
        warnings = [str(expansion.warning)] if expansion.warning is not None else []
        return ServiceResult(
            ok=True,
            op="expand",
            data={
                "link": link,
                "expanded": expansion.text,
                "key": expansion.key,
                "changed": expansion.expanded,
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # types
    # ------------------------------------------------------------------

    def types(self) -> ServiceResult:
        """Registered link types with the capability kinds they carry."""
        snapshot = self._ws.registry.snapshot()
        items = [
            {
                "name": name,
                "capabilities": sorted(k.value for k in link_type.capabilities),
            }
            for name, link_type in snapshot.types.items()
        ]
        return ServiceResult(
            ok=True,
            op="types",
            data={"count": len(items), "items": items, "reserved": sorted(RESERVED_TYPES)},
        )

    def register_type(self, name: str, capabilities: dict[str, Any] | None = None) -> ServiceResult:
        try:
            link_type = self._ws.registry.register(name, capabilities)
        except ReservedTypeError as exc:
            return self._fail("register_type", ErrorCode.RESERVED_TYPE, str(exc), name=name)
        except ValueError as exc:
            return self._fail("register_type", ErrorCode.INVALID_TYPE, str(exc), name=name)
        return ServiceResult(
            ok=True,
            op="register_type",
            data={
                "name": link_type.name,
                "capabilities": sorted(k.value for k in link_type.capabilities),
            },
        )

    # ------------------------------------------------------------------
    # store
    # ------------------------------------------------------------------

    @traced
    def store(self, path: Path | str) -> ServiceResult:
        """Store every bracketed link of *path*, in document order."""
        doc = self._load(path, "store")
        if not isinstance(doc, OrgDocument):
            return doc

        warnings: list[str] = []
        store = self._ws.store
        outcomes: list[dict[str, Any]] = []
        for token in self._scan(doc.text, None, warnings):
            if token.kind is not LinkKind.BRACKETED:
                continue
            outcome = store.add(token.raw_target, token.description)
            outcomes.append(
                {
                    "target": token.raw_target,
                    "description": token.description,
                    "outcome": outcome.value,
                }
            )
        dropped = store.trim(self._ws.settings.store.max_size)
        return ServiceResult(
            ok=True,
            op="store",
            data={
                "path": str(doc.path),
                "captured": outcomes,
                "dropped": dropped,
                "links": _stored_links(store),
            },
            warnings=warnings,
        )

    def insert(self, index: int = 0) -> ServiceResult:
        """Take entry *index* out of the store as a bracket link string."""
        store = self._ws.store
        try:
            link = store.insert_link(index)
        except IndexError:
            return self._fail(
                "insert",
                ErrorCode.NOT_FOUND,
                f"No stored link at index {index}",
                index=index,
                size=len(store),
            )
        return ServiceResult(
            ok=True,
            op="insert",
            data={"link": link, "remaining": len(store)},
        )

    # ------------------------------------------------------------------
    # open
    # ------------------------------------------------------------------

    def follow(self, token: LinkToken) -> None:
        """Run the ``follow`` capability of *token*'s type.

        Raises:
            OpenError: no follow capability, or the capability failed. The
                capability's exception is the ``__cause__``.
        """
        if token.type in RESERVED_TYPES:
            raise OpenError(token.raw_target, f"{token.type} links resolve inside a document")
        follow = self._ws.registry.get(token.type, CapabilityKind.FOLLOW)
        if follow is None:
            raise OpenError(token.raw_target, f"link type {token.type!r} cannot be followed")
        try:
            follow(token.path, None)
        except Exception as exc:
            raise OpenError(token.raw_target, str(exc)) from exc

    @traced
    def open_link(self, link: str) -> ServiceResult:
        """Parse *link* (any surface form) and follow it."""
        expand = self._ws.abbrevs.expand
        try:
            token = self._ws.registry.grammar.parse_next(
                link, expand=lambda raw: expand(raw).text
            )
        except MalformedLinkError as exc:
            return self._fail("open", ErrorCode.MALFORMED_LINK, str(exc), link=link)
        if token is None:
            return self._fail("open", ErrorCode.MALFORMED_LINK, f"Not a link: {link!r}", link=link)
        try:
            self.follow(token)
        except OpenError as exc:
            cause = exc.__cause__
            return self._fail(
                "open",
                ErrorCode.OPEN_FAILED,
                str(exc),
                link=link,
                type=token.type,
                cause=type(cause).__name__ if cause is not None else None,
            )
        return ServiceResult(
            ok=True,
            op="open",
            data={"link": link, "type": token.type, "path": token.path},
        )


def _result_data(result: ResolutionResult, doc: OrgDocument) -> dict[str, Any]:
    kind = result_kind(result)
    if isinstance(result, (Dedicated, Fuzzy, CreatedNew)):
        return {
            "kind": kind,
            "position": result.position,
            "line": doc.line_text(result.position),
        }
    if isinstance(result, SparseTree):
        return {
            "kind": kind,
            "pattern": result.pattern,
            "positions": list(result.positions),
            "count": len(result.positions),
        }
    if isinstance(result, ExternalMatch):
        return {"kind": kind, "value": repr(result.value)}
    return {"kind": kind}


def _stored_links(store: Any) -> list[dict[str, Any]]:
    return [
        {"index": i, "target": link.target, "description": link.description}
        for i, link in enumerate(store)
    ]
