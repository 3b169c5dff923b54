from __future__ import annotations

import pytest

import rubex
from rubex.cursor import iter_spans, utf8_width

ENGINES = ["sre", "reference"]


@pytest.mark.parametrize(
    "raw,offset,width",
    [
        (b"abc", 0, 1),
        ("é".encode(), 0, 2),
        ("日".encode(), 0, 3),
        ("😀".encode(), 0, 4),
        (b"\xff", 0, 1),
        (b"\xe6\x97", 0, 1),
        (b"\xe6x\x97", 0, 1),
    ],
)
def test_utf8_width(raw: bytes, offset: int, width: int) -> None:
    assert utf8_width(raw, offset) == width


@pytest.mark.parametrize("engine", ENGINES)
@pytest.mark.parametrize("source", ["", "a", "abc", "日本語", "a\nb"])
def test_empty_pattern_yields_n_plus_one(engine: str, source: str) -> None:
    raw = source.encode()
    with rubex.compile("(?:)", engine=engine) as regexp:
        found = regexp.find_all_index(raw)
    assert len(found) == len(source) + 1
    assert all(start == end for start, end in found)
    starts = [start for start, _ in found]
    assert starts == sorted(set(starts))
    assert starts[-1] == len(raw)


def test_zero_width_never_lands_inside_a_character() -> None:
    raw = "é日😀".encode()
    with rubex.compile("") as regexp:
        assert [start for start, _ in regexp.find_all_index(raw)] == [0, 2, 5, 9]


def test_abutting_empty_match_is_dropped() -> None:
    with rubex.compile("a*") as regexp:
        assert regexp.find_all_index("baaab") == [(0, 0), (1, 4), (5, 5)]


def test_limit() -> None:
    with rubex.compile("a") as regexp:
        assert regexp.find_all("aaaa", 2) == ["a", "a"]
        assert regexp.find_all("aaaa", 0) == []
        assert regexp.find_all("aaaa", -1) == ["a"] * 4


def test_non_overlapping() -> None:
    with rubex.compile(r"\w+|\s*") as regexp:
        found = regexp.find_all_index("ab  cd e")
    for (_, prev_end), (start, _) in zip(found, found[1:]):
        assert start >= prev_end


def test_iter_spans_is_restartable() -> None:
    calls: list[int] = []

    def search(buffer: bytes, length: int, start: int) -> list[int] | None:
        calls.append(start)
        hit = buffer.find(b"x", start, length)
        if hit < 0:
            return None
        return [hit, hit + 1]

    first = list(iter_spans(search, b"axbxc"))
    second = list(iter_spans(search, b"axbxc"))
    assert first == second == [[1, 2], [3, 4]]
    assert calls == [0, 2, 4, 0, 2, 4]


def test_iter_spans_zero_limit_does_not_search() -> None:
    def search(buffer: bytes, length: int, start: int) -> list[int] | None:
        raise AssertionError("search called")

    assert list(iter_spans(search, b"abc", 0)) == []
