"""Escape codec for link targets.

Pure functions, no dependencies. Bracket escaping protects targets written
inside ``[[...]]``; percent coding protects paths handed to external
programs.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

# A (possibly empty) backslash run followed by a bracket or end of string.
_ESCAPE_RE = re.compile(r"(\\*)([\[\]]|\Z)")
_UNESCAPE_RE = re.compile(r"(\\+)(?=[\[\]]|\Z)")
_PERCENT_RUN_RE = re.compile(r"(?:%[0-9A-Fa-f]{2})+")


def escape(text: str) -> str:
    """Escape *text* for use as a bracketed link target.

    Backslashes right before a bracket or the end of the string are doubled,
    and each bracket gets one more backslash in front of it::

        >>> escape("a]b")
        'a\\\\]b'
        >>> escape("dir\\\\")
        'dir\\\\\\\\'
    """

    def _double(m: re.Match[str]) -> str:
        run, cut = m.group(1), m.group(2)
        return run + run + ("\\" if cut else "") + cut

    return _ESCAPE_RE.sub(_double, text)


def unescape(text: str) -> str:
    """Inverse of :func:`escape`.

    A run of N backslashes before a bracket or the end of the string
    collapses to N // 2 backslashes.
    """
    return _UNESCAPE_RE.sub(lambda m: "\\" * (len(m.group(1)) // 2), text)


def percent_decode(text: str) -> str:
    """Decode ``%XX`` runs as UTF-8.

    A run that is not valid UTF-8 falls back to one code point per group
    instead of failing.
    """

    def _decode(m: re.Match[str]) -> str:
        groups = m.group(0).split("%")[1:]
        raw = bytes(int(g, 16) for g in groups)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return "".join(chr(b) for b in raw)

    return _PERCENT_RUN_RE.sub(_decode, text)


def percent_encode(text: str, char_set: Iterable[str]) -> str:
    """Percent-encode the characters of *text* found in *char_set*.

    Each UTF-8 byte of an encoded character becomes ``%XX`` (uppercase).
    Characters outside *char_set* pass through untouched.
    """
    targets = set(char_set)
    out: list[str] = []
    for ch in text:
        if ch in targets:
            out.append("".join(f"%{b:02X}" for b in ch.encode("utf-8")))
        else:
            out.append(ch)
    return "".join(out)
