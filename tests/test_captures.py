from __future__ import annotations

import pytest

import rubex
from rubex.captures import Match, NameTable, extract, group_span, resolve_index

ENGINES = ["sre", "reference"]


def test_name_table_rejects_out_of_range_index() -> None:
    with pytest.raises(ValueError):
        NameTable([("x", 0)], 1)
    with pytest.raises(ValueError):
        NameTable([("x", 3)], 2)


def test_name_table_duplicates() -> None:
    table = NameTable([("x", 2), ("y", 3), ("x", 1)], 3)
    assert table.indices("x") == (1, 2)
    assert table.first_index("x") == 1
    assert table.first_index("missing") == -1
    assert table.names() == ["x", "y"]
    assert table.subexp_names() == ["", "x", "x", "y"]
    assert "y" in table
    assert len(table) == 2


def test_unset_is_distinct_from_empty() -> None:
    spans = [0, 3, -1, -1, 3, 3]
    table = NameTable([], 2)
    assert extract(b"abc", spans, table, 1) is None
    assert extract(b"abc", spans, table, 2) == b""
    assert group_span(spans, 1) == (-1, -1)
    assert group_span(spans, 2) == (3, 3)


def test_out_of_range_and_unknown_are_unset() -> None:
    spans = [0, 3]
    table = NameTable([], 0)
    assert extract(b"abc", spans, table, 5) is None
    assert extract(b"abc", spans, table, -1) is None
    assert extract(b"abc", spans, table, "nope") is None
    assert resolve_index(spans, table, 7) == -1


def test_duplicate_name_resolves_per_match() -> None:
    table = NameTable([("x", 1), ("x", 2)], 2)
    first = [0, 2, 0, 2, -1, -1]
    second = [0, 3, -1, -1, 0, 3]
    assert extract(b"hi", first, table, "x") == b"hi"
    assert extract(b"bye", second, table, "x") == b"bye"
    assert resolve_index(second, table, "x") == 2


@pytest.mark.parametrize("engine", ENGINES)
def test_match_object(engine: str) -> None:
    with rubex.compile(r"(?P<word>\w+)(-(\d+))?", engine=engine) as regexp:
        found = regexp.search("see item-42 now")
        plain = regexp.search(b"see")
    assert found is not None and plain is not None
    assert found.group() == "see"
    assert found.span() == (0, 3)
    assert found.groups() == ("see", None, None)
    assert found.groups("") == ("see", "", "")
    assert found.groupdict() == {"word": "see"}
    assert found["word"] == "see"
    assert found.start("word") == 0
    assert found.end(3) == -1
    assert plain.group(1) == b"see"
    assert plain.submatches() == [b"see", b"see", None, None]


@pytest.mark.parametrize("engine", ENGINES)
def test_match_offsets_are_byte_offsets(engine: str) -> None:
    with rubex.compile("(語)", engine=engine) as regexp:
        found = regexp.search("日本語")
    assert found is not None
    assert found.span(1) == (6, 9)
    assert found.group(1) == "語"
    assert found.buffer == "日本語".encode()


def test_match_expand_keeps_template_type() -> None:
    with rubex.compile(r"(\w+)@(\w+)") as regexp:
        found = regexp.search(b"mail bob@example now")
    assert found is not None
    assert found.expand("$2/$1") == "example/bob"
    assert found.expand(b"$2/$1") == b"example/bob"


def test_capture_map_skips_unset_groups() -> None:
    with rubex.compile("(?P<a>x)|(?P<b>y)") as regexp:
        found = regexp.search("y")
    assert found is not None
    assert found.capture_map() == {"b": b"y"}
    assert found.groupdict() == {"a": None, "b": "y"}


def test_match_repr() -> None:
    found = Match(b"abc", [1, 2], NameTable([], 0), text=True)
    assert repr(found) == "<rubex.Match span=(1, 2) match='b'>"
