"""Substitution templates.

Grammar, scanned left to right:

* ``$$`` is a literal ``$``.
* ``$name`` / ``${name}`` reference a group. A name is the longest run of
  letters, digits and ``_``; an all-digit name without a leading zero is a
  group number (``$0`` is the whole match), anything else is a group name.
* ``${`` with no closing ``}`` anywhere after it, and the rest of the
  template, are copied literally.
* Any other ``$`` is copied literally.

Parsing never fails and evaluation never fails: references to unset,
unknown or out-of-range groups expand to nothing.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

Segment = Union[bytes, int, str]
Lookup = Callable[[Union[int, str]], Optional[bytes]]

_MAX_GROUP_NUMBER = 100_000_000


@dataclass(frozen=True)
class Template:
    segments: tuple[Segment, ...]

    @property
    def is_literal(self) -> bool:
        return all(isinstance(segment, bytes) for segment in self.segments)

    def evaluate(self, whole: bytes, lookup: Lookup) -> bytes:
        out = bytearray()
        for segment in self.segments:
            if isinstance(segment, bytes):
                out += segment
            elif segment == 0:
                out += whole
            else:
                value = lookup(segment)
                if value is not None:
                    out += value
        return bytes(out)


def _is_name_char(ch: str) -> bool:
    return ch == "_" or ch.isalpha() or ch.isdigit()


def _reference_key(name: str) -> int | str:
    if not name.isascii() or not name.isdigit():
        return name
    if len(name) > 1 and name[0] == "0":
        return name
    number = int(name)
    if number >= _MAX_GROUP_NUMBER:
        return name
    return number


def _extract_reference(text: str, dollar: int) -> tuple[int | str, int] | None:
    pos = dollar + 1
    braced = pos < len(text) and text[pos] == "{"
    if braced:
        pos += 1
    start = pos
    while pos < len(text) and _is_name_char(text[pos]):
        pos += 1
    if pos == start:
        return None
    name = text[start:pos]
    if braced:
        if pos >= len(text) or text[pos] != "}":
            return None
        pos += 1
    return _reference_key(name), pos


def encode_text(text: str) -> bytes:
    """UTF-8 encode ``text``; lone surrogates from ``surrogateescape`` become their raw byte."""
    try:
        return text.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError as exc:
        raise ValueError(
            f"text has a lone surrogate {text[exc.start]!r} at index {exc.start} "
            "that has no UTF-8 encoding"
        ) from exc


@functools.lru_cache(maxsize=256)
def _parse(raw: bytes) -> Template:
    text = raw.decode("utf-8", "surrogateescape")
    segments: list[Segment] = []
    literal: list[str] = []

    def flush() -> None:
        chunk = "".join(literal)
        literal.clear()
        if chunk:
            segments.append(encode_text(chunk))

    pos = 0
    while pos < len(text):
        dollar = text.find("$", pos)
        if dollar < 0:
            literal.append(text[pos:])
            break
        literal.append(text[pos:dollar])
        if text.startswith("$$", dollar):
            literal.append("$")
            pos = dollar + 2
            continue
        if text.startswith("${", dollar) and text.find("}", dollar + 2) < 0:
            literal.append(text[dollar:])
            break
        reference = _extract_reference(text, dollar)
        if reference is None:
            literal.append("$")
            pos = dollar + 1
            continue
        key, pos = reference
        flush()
        segments.append(key)
    flush()
    return Template(tuple(segments))


def parse_template(template: Any) -> Template:
    if isinstance(template, Template):
        return template
    if isinstance(template, str):
        return _parse(encode_text(template))
    if isinstance(template, (bytes, bytearray, memoryview)):
        return _parse(bytes(template))
    raise TypeError("template must be str or bytes-like")

