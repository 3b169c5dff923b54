"""All-matches iteration over a single-match search primitive."""

from __future__ import annotations

from typing import Callable, Iterator, Optional

from rubex.engine import MatchSpans

Search = Callable[[bytes, int, int], Optional[MatchSpans]]


def utf8_width(buffer: bytes, offset: int) -> int:
    """Byte width of the UTF-8 character at ``offset``; 1 for invalid bytes."""
    lead = buffer[offset]
    if lead < 0x80:
        return 1
    if 0xC2 <= lead <= 0xDF:
        size = 2
    elif 0xE0 <= lead <= 0xEF:
        size = 3
    elif 0xF0 <= lead <= 0xF4:
        size = 4
    else:
        return 1
    try:
        buffer[offset : offset + size].decode("utf-8")
    except UnicodeDecodeError:
        return 1
    return size


def iter_spans(search: Search, buffer: bytes, limit: int = -1) -> Iterator[MatchSpans]:
    """Yield successive non-overlapping matches of ``search`` over ``buffer``.

    After a zero-width match the cursor moves one whole character forward,
    so the scan always terminates and never lands inside a multi-byte
    character. A zero-width match that starts exactly where the previous
    match ended is skipped. ``limit < 0`` means unbounded.
    """
    if limit == 0:
        return
    length = len(buffer)
    offset = 0
    prev_end = -1
    found = 0
    while offset <= length:
        spans = search(buffer, length, offset)
        if spans is None:
            break
        start, end = spans[0], spans[1]
        if start != end or start != prev_end:
            yield spans
            found += 1
            if found == limit:
                break
        prev_end = end
        if start == end:
            if end >= length:
                break
            offset = end + utf8_width(buffer, end)
        else:
            offset = end
