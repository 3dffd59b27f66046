"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from linkctl.output.console import create_console, get_output, style_for_kind, style_for_result

if TYPE_CHECKING:
    from rich.console import Console

    from linkctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode: one value per line."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    d = result.data
    if result.op == "parse":
        return "\n".join(link["raw_target"] for link in d.get("links", []))
    if result.op == "resolve":
        positions = d.get("positions") or [d.get("position")]
        return "\n".join(str(p) for p in positions if p is not None)
    if result.op == "expand":
        return str(d.get("expanded", ""))
    if result.op == "types":
        return "\n".join(item["name"] for item in d.get("items", []))
    if result.op == "store":
        return "\n".join(link["target"] for link in d.get("links", []))
    if result.op == "insert":
        return str(d.get("link", ""))
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="link.ok")
    op = Text(f"  {result.op}", style="link.op")
    console.print(label, op, sep="", end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="link.key")
    if key == "path":
        v = Text(str(value), style="link.path")
    elif key in ("target", "expanded", "link"):
        v = Text(str(value), style="link.target")
    elif key == "kind":
        v = Text(str(value), style=style_for_result(str(value)))
    else:
        v = Text(str(value))
    console.print(k, v, sep="", end="")
    console.print()


def _render_warnings(console: Console, result: ServiceResult) -> None:
    for warning in result.warnings:
        console.print(Text("  warning: ", style="link.warning"), Text(warning), sep="")


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(console: Console, span_data: dict[str, Any], indent: int = 4) -> None:
    prefix = " " * indent
    duration = span_data.get("duration_ms", 0.0)
    style = "yellow" if duration > 100 else "dim"
    line = Text(prefix)
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {span_data.get('name', '?')}")
    annotations = span_data.get("annotations") or {}
    if annotations:
        line.append(f"  ({', '.join(f'{k}={v}' for k, v in annotations.items())})")
    console.print(line)
    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="link.error")
    op = Text(f"  {result.op}", style="link.op")
    console.print(label, op, Text(" — "), Text(msg))
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Operation renderers ───────────────────────────────────────────────


def _render_parse(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "path", d.get("path"))
    links = d.get("links", [])
    if links:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Span", justify="right", no_wrap=True)
        table.add_column("Kind")
        table.add_column("Type")
        table.add_column("Target", style="link.target")
        table.add_column("Description", style="link.description")
        if verbose:
            table.add_column("Search option", style="dim")
        for link in links:
            row = [
                f"{link['start']}-{link['end']}",
                Text(link["kind"], style=style_for_kind(link["kind"])),
                link["type"],
                link["raw_target"],
                link.get("description") or "",
            ]
            if verbose:
                row.append(link.get("search_option") or "")
            table.add_row(*row)
        console.print(table)
    console.print(f"\n{d.get('count', len(links))} links")
    _render_warnings(console, result)
    if verbose:
        _render_meta(console, result)


def _render_resolve(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    for key in ("search", "kind", "position", "line", "pattern", "count", "value"):
        if key in d:
            _field(console, key, d[key])
    if verbose and d.get("positions"):
        _field(console, "positions", ", ".join(str(p) for p in d["positions"]))
    if verbose:
        _render_meta(console, result)


def _render_expand(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "link", d.get("link"))
    _field(console, "expanded", d.get("expanded"))
    if d.get("key"):
        _field(console, "key", d["key"])
    _render_warnings(console, result)
    if verbose:
        _render_meta(console, result)


def _render_types(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Type", style="link.target", no_wrap=True)
    table.add_column("Capabilities")
    for item in d.get("items", []):
        table.add_row(item["name"], ", ".join(item["capabilities"]) or "-")
    console.print(table)
    console.print(f"\n{d.get('count', 0)} types")
    if verbose:
        _field(console, "reserved", ", ".join(d.get("reserved", [])))


def _stored_table(links: list[dict[str, Any]]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("#", justify="right")
    table.add_column("Target", style="link.target")
    table.add_column("Description", style="link.description")
    for link in links:
        table.add_row(str(link["index"]), link["target"], link.get("description") or "")
    return table


def _render_store(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "path", d.get("path"))
    captured = d.get("captured", [])
    counts: dict[str, int] = {}
    for item in captured:
        counts[item["outcome"]] = counts.get(item["outcome"], 0) + 1
    for outcome, count in counts.items():
        _field(console, outcome, count)
    if d.get("dropped"):
        _field(console, "dropped", d["dropped"])
    links = d.get("links", [])
    if links:
        console.print(_stored_table(links))
    _render_warnings(console, result)
    if verbose:
        _render_meta(console, result)


def _render_preview(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    for key in ("path", "queued", "batches", "succeeded", "failed"):
        _field(console, key, d.get(key))
    previews = d.get("previews", [])
    if previews and (verbose or d.get("succeeded")):
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Span", justify="right", no_wrap=True)
        table.add_column("Batch", justify="right")
        table.add_column("Type")
        table.add_column("Path", style="link.target")
        table.add_column("Preview")
        for item in previews:
            if item["ok"]:
                status = Text("ok", style="link.ok")
            else:
                status = Text("failed", style="link.error")
            table.add_row(
                f"{item['start']}-{item['end']}",
                str(item["batch"]),
                item["type"],
                item["path"],
                status,
            )
        console.print(table)
    if verbose:
        _render_meta(console, result)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "parse": _render_parse,
    "resolve": _render_resolve,
    "expand": _render_expand,
    "types": _render_types,
    "store": _render_store,
    "preview": _render_preview,
}
