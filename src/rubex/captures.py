"""Capture model and extraction.

A match is a flat sequence of byte offsets, two per group, group 0 first.
``(-1, -1)`` marks a group that did not take part in the match; extraction
reports those as ``None`` so they stay distinguishable from a group that
matched the empty string.
"""

from __future__ import annotations

from typing import Any, Iterable, Union

from rubex.engine import MatchSpans
from rubex.template import parse_template

GroupKey = Union[int, str]


class NameTable:
    """Capture-group names to group indices.

    One name may be bound to several groups (alternation branches such as
    ``(?P<x>hi)|(?P<x>bye)``); at most one of them is set in any match, so
    resolution happens per match rather than per pattern.
    """

    def __init__(self, pairs: Iterable[tuple[str, int]], group_count: int) -> None:
        self.group_count = group_count
        table: dict[str, list[int]] = {}
        for name, index in pairs:
            if not 1 <= index <= group_count:
                raise ValueError(
                    f"group {name!r} bound to index {index} outside 1..{group_count}"
                )
            table.setdefault(name, []).append(index)
        self._table = {name: tuple(sorted(indices)) for name, indices in table.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._table

    def __len__(self) -> int:
        return len(self._table)

    def indices(self, name: str) -> tuple[int, ...]:
        return self._table.get(name, ())

    def names(self) -> list[str]:
        return sorted(self._table, key=lambda name: self._table[name][0])

    def subexp_names(self) -> list[str]:
        out = [""] * (self.group_count + 1)
        for name, indices in self._table.items():
            for index in indices:
                out[index] = name
        return out

    def first_index(self, name: str) -> int:
        indices = self._table.get(name)
        return indices[0] if indices else -1


def group_span(spans: MatchSpans, index: int) -> tuple[int, int]:
    if index < 0 or 2 * index + 1 >= len(spans):
        return (-1, -1)
    start, end = spans[2 * index], spans[2 * index + 1]
    if start < 0 or end < 0:
        return (-1, -1)
    return (start, end)


def resolve_index(spans: MatchSpans, names: NameTable, key: GroupKey) -> int:
    """Group index addressed by ``key`` in this match, or -1."""
    if isinstance(key, str):
        for index in names.indices(key):
            if group_span(spans, index) != (-1, -1):
                return index
        return -1
    if key < 0 or 2 * key + 1 >= len(spans):
        return -1
    return key


def extract(buffer: bytes, spans: MatchSpans, names: NameTable, key: GroupKey) -> bytes | None:
    index = resolve_index(spans, names, key)
    if index < 0:
        return None
    start, end = group_span(spans, index)
    if start < 0:
        return None
    return buffer[start:end]


def decode(value: bytes) -> str:
    return value.decode("utf-8", "surrogateescape")


class Match:
    """One match over a buffer.

    Group values are ``bytes`` for byte buffers and ``str`` for text
    buffers; offsets are byte offsets in both cases.
    """

    __slots__ = ("_buffer", "_spans", "_names", "_text")

    def __init__(self, buffer: bytes, spans: MatchSpans, names: NameTable, text: bool = False) -> None:
        self._buffer = buffer
        self._spans = tuple(spans)
        self._names = names
        self._text = text

    def __repr__(self) -> str:
        start, end = self.span()
        return f"<rubex.Match span=({start}, {end}) match={self.group()!r}>"

    def __getitem__(self, key: GroupKey) -> Any:
        return self.group(key)

    @property
    def spans(self) -> tuple[int, ...]:
        return self._spans

    @property
    def buffer(self) -> bytes:
        return self._buffer

    def span(self, key: GroupKey = 0) -> tuple[int, int]:
        index = resolve_index(self._spans, self._names, key)
        return group_span(self._spans, index)

    def start(self, key: GroupKey = 0) -> int:
        return self.span(key)[0]

    def end(self, key: GroupKey = 0) -> int:
        return self.span(key)[1]

    def extract(self, key: GroupKey = 0) -> bytes | None:
        return extract(self._buffer, self._spans, self._names, key)

    def group(self, key: GroupKey = 0) -> Any:
        value = self.extract(key)
        if value is None or not self._text:
            return value
        return decode(value)

    def groups(self, default: Any = None) -> tuple[Any, ...]:
        out = []
        for index in range(1, len(self._spans) // 2):
            value = self.group(index)
            out.append(default if value is None else value)
        return tuple(out)

    def submatches(self) -> list[Any]:
        return [self.group(index) for index in range(len(self._spans) // 2)]

    def groupdict(self, default: Any = None) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name in self._names.names():
            value = self.group(name)
            out[name] = default if value is None else value
        return out

    def capture_map(self) -> dict[str, bytes]:
        """Named captures that took part in this match, as raw bytes."""
        out: dict[str, bytes] = {}
        for name in self._names.names():
            value = self.extract(name)
            if value is not None:
                out[name] = value
        return out

    def expand(self, template: Any) -> Any:
        parsed = parse_template(template)
        result = parsed.evaluate(self.extract(0) or b"", self.extract)
        if isinstance(template, str):
            return decode(result)
        return result
