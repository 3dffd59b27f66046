"""Tests for link abbreviation tables and the expander."""

from __future__ import annotations

import pytest

from linkctl.domain.abbrev import AbbrevExpander, AbbrevTable, pure_expansion
from linkctl.domain.errors import AbbrevExpansionError


def _expander(**entries: str) -> AbbrevExpander:
    return AbbrevExpander(AbbrevTable(entries))


class TestAbbrevTable:
    def test_add_and_get(self) -> None:
        table = AbbrevTable({"wiki": "https://w.org/%s"})
        assert table.get("wiki") == "https://w.org/%s"
        assert "wiki" in table
        assert len(table) == 1

    @pytest.mark.parametrize("key", ["1abc", "", "a b", "a:b", "_x"])
    def test_invalid_key(self, key: str) -> None:
        with pytest.raises(ValueError, match="Invalid abbreviation key"):
            AbbrevTable({key: "x"})

    def test_template_must_be_string_or_callable(self) -> None:
        with pytest.raises(TypeError):
            AbbrevTable().add("x", 42)  # type: ignore[arg-type]

    def test_remove(self) -> None:
        table = AbbrevTable({"a": "x"})
        assert table.remove("a") is True
        assert table.remove("a") is False


class TestStringTemplates:
    def test_percent_s_substitutes_tag(self) -> None:
        expansion = _expander(wiki="https://w.org/wiki/%s").expand("wiki:Org_mode")
        assert expansion.text == "https://w.org/wiki/Org_mode"
        assert expansion.key == "wiki"
        assert expansion.expanded

    def test_percent_s_without_tag(self) -> None:
        assert _expander(wiki="https://w.org/%s").expand("wiki").text == "https://w.org/"

    def test_percent_h_encodes_tag(self) -> None:
        expansion = _expander(q="https://s.org/?q=%h").expand("q:a b/c")
        assert expansion.text == "https://s.org/?q=a%20b%2Fc"

    def test_plain_template_appends_tag(self) -> None:
        assert _expander(gh="https://github.com/").expand("gh:org/repo").text == (
            "https://github.com/org/repo"
        )

    def test_double_colon_separator(self) -> None:
        assert _expander(gh="https://github.com/").expand("gh::org/repo").text == (
            "https://github.com/org/repo"
        )

    def test_unknown_key_unchanged(self) -> None:
        expansion = _expander(wiki="x").expand("https://x.org")
        assert expansion.text == "https://x.org"
        assert expansion.key is None
        assert not expansion.expanded
        assert expansion.warning is None

    def test_local_table_shadows_global(self) -> None:
        expander = AbbrevExpander(
            AbbrevTable({"wiki": "https://global/%s"}),
            AbbrevTable({"wiki": "https://local/%s"}),
        )
        assert expander.expand("wiki:a").text == "https://local/a"

    def test_with_local_keeps_global(self) -> None:
        base = _expander(wiki="https://global/%s")
        local = base.with_local(AbbrevTable({"doc": "https://doc/%s"}))
        assert local.expand("wiki:a").text == "https://global/a"
        assert local.expand("doc:b").text == "https://doc/b"
        assert base.expand("doc:b").text == "doc:b"


class TestCallableTemplates:
    def test_callable_receives_tag(self) -> None:
        expander = AbbrevExpander(AbbrevTable({"up": lambda tag: f"https://x/{tag.upper()}"}))
        assert expander.expand("up:abc").text == "https://x/ABC"

    def test_callable_returning_non_string_disables_entry(self) -> None:
        expander = AbbrevExpander(AbbrevTable({"bad": lambda tag: 42}))
        expansion = expander.expand("bad:x")
        assert expansion.text == "bad:x"
        assert isinstance(expansion.warning, AbbrevExpansionError)
        assert not expansion.expanded
        assert expander.lookup("bad") is None

    def test_callable_raising_disables_entry(self) -> None:
        def boom(tag: str | None) -> str:
            raise RuntimeError("boom")

        expander = AbbrevExpander(AbbrevTable({"boom": boom}))
        expansion = expander.expand("boom:x")
        assert expansion.text == "boom:x"
        assert "boom" in str(expansion.warning)
        assert expander.expand("boom:x").key is None


class TestFunctionPlaceholder:
    def test_unsafe_function_never_called(self) -> None:
        calls: list[str | None] = []

        def record(tag: str | None) -> str:
            calls.append(tag)
            return "x"

        expander = AbbrevExpander(
            AbbrevTable({"fn": "https://x/%(record)"}),
            AbbrevTable({"fn": "https://local/%(record)"}),
            functions={"record": record},
        )
        expansion = expander.expand("fn:tag")

        assert calls == []
        assert expansion.text == "fn:tag"
        assert isinstance(expansion.warning, AbbrevExpansionError)
        assert expansion.warning.key == "fn"
        assert "fn" not in expander.local_table
        assert "fn" not in expander.global_table

    def test_unregistered_function_refused(self) -> None:
        expander = _expander(fn="https://x/%(missing)")
        expansion = expander.expand("fn:tag")
        assert expansion.text == "fn:tag"
        assert expansion.warning is not None

    def test_allow_listed_function_spliced(self) -> None:
        expander = AbbrevExpander(
            AbbrevTable({"fn": "https://x/%(rev)/end"}),
            functions={"rev": lambda tag: (tag or "")[::-1]},
            safe_functions=["rev"],
        )
        assert expander.expand("fn:abc").text == "https://x/cba/end"

    def test_pure_marker_makes_function_safe(self) -> None:
        @pure_expansion
        def slug(tag: str | None) -> str:
            return (tag or "").replace(" ", "-")

        expander = _expander(fn="https://x/%(slug)")
        expander.register_function("slug", slug)
        assert expander.is_safe("slug")
        assert expander.expand("fn:a b").text == "https://x/a-b"

    def test_mark_safe_after_registration(self) -> None:
        expander = _expander(fn="%(f)")
        expander.register_function("f", lambda tag: "ok")
        assert not expander.is_safe("f")
        expander.mark_safe("f")
        assert expander.expand("fn:x").text == "ok"

    def test_is_safe_requires_registered_function(self) -> None:
        expander = AbbrevExpander(safe_functions=["ghost"])
        assert not expander.is_safe("ghost")
