"""Replace-all driver.

The driver walks the matches once and stitches the output from the gaps
between matches and whatever the producer returns for each match. The three
producers below differ only in what they do with a match.
"""

from __future__ import annotations

import functools
from typing import Callable

from rubex.captures import NameTable, extract
from rubex.cursor import Search, iter_spans
from rubex.engine import MatchSpans
from rubex.template import Template

Producer = Callable[[MatchSpans], bytes]


def replace_all(search: Search, source: bytes, produce: Producer) -> bytes:
    out: bytearray | None = None
    last = 0
    for spans in iter_spans(search, source, -1):
        start, end = spans[0], spans[1]
        if out is None:
            out = bytearray()
        out += source[last:start]
        out += produce(spans)
        last = end
    if out is None:
        return source
    out += source[last:]
    return bytes(out)


def template_producer(template: Template, source: bytes, names: NameTable) -> Producer:
    def produce(spans: MatchSpans) -> bytes:
        lookup = functools.partial(extract, source, spans, names)
        return template.evaluate(source[spans[0] : spans[1]], lookup)

    return produce


def literal_producer(replacement: bytes) -> Producer:
    def produce(_spans: MatchSpans) -> bytes:
        return replacement

    return produce


def func_producer(source: bytes, transform: Callable[[bytes], bytes]) -> Producer:
    def produce(spans: MatchSpans) -> bytes:
        return transform(source[spans[0] : spans[1]])

    return produce
