from __future__ import annotations

import pytest

from rubex.template import Template, parse_template


def _lookup(groups: dict[int | str, bytes]):
    return groups.get


@pytest.mark.parametrize(
    "raw,segments",
    [
        ("", ()),
        ("plain", (b"plain",)),
        ("$$", (b"$",)),
        ("$1", (1,)),
        ("$0", (0,)),
        ("${0}", (0,)),
        ("$12x", ("12x",)),
        ("${12}x", (12, b"x")),
        ("$name!", ("name", b"!")),
        ("${name}s", ("name", b"s")),
        ("$01", ("01",)),
        ("$", (b"$",)),
        ("a$-b", (b"a$-b",)),
        ("${oops", (b"${oops",)),
        ("x${}y", (b"x${}y",)),
        ("${a-b}c", (b"${a-b}c",)),
        ("<$1>${", (b"<", 1, b">${")),
    ],
)
def test_parse_segments(raw: str, segments: tuple) -> None:
    assert parse_template(raw).segments == segments


def test_parse_is_reusable_and_cached() -> None:
    first = parse_template("($1)")
    assert parse_template(b"($1)") is first
    assert parse_template(first) is first


def test_parse_rejects_non_buffers() -> None:
    with pytest.raises(TypeError):
        parse_template(42)


def test_dollar_dollar_evaluates_to_dollar() -> None:
    assert parse_template("$$").evaluate(b"whole", _lookup({})) == b"$"


def test_numeric_reference() -> None:
    template = parse_template("$1")
    assert template.evaluate(b"aaabb", _lookup({1: b"aab"})) == b"aab"


def test_unknown_reference_is_empty() -> None:
    assert parse_template("$doesnotexist").evaluate(b"x", _lookup({})) == b""
    assert parse_template("[$7]").evaluate(b"x", _lookup({})) == b"[]"


def test_whole_match_reference_skips_lookup() -> None:
    def fail(_key: int | str) -> bytes | None:
        raise AssertionError("lookup called for group 0")

    assert parse_template("<$0>").evaluate(b"hit", fail) == b"<hit>"


def test_literal_detection() -> None:
    template = parse_template("$key=$value;")
    assert not template.is_literal
    assert parse_template("no refs $$").is_literal
    out = template.evaluate(b"", _lookup({"key": b"k", "value": b"v"}))
    assert out == b"k=v;"


def test_non_ascii_template() -> None:
    template = parse_template("«$1»")
    assert template.evaluate(b"", _lookup({1: "日".encode()})) == "«日»".encode()


def test_template_dataclass_is_frozen() -> None:
    template = Template((b"a",))
    with pytest.raises(AttributeError):
        template.segments = ()  # type: ignore[misc]
