"""Compile options accepted by :func:`rubex.compile`."""

from __future__ import annotations

import enum


class Option(enum.IntFlag):
    NONE = 0
    IGNORECASE = 1
    MULTILINE = 2
    # Prefer the leftmost-longest match instead of the leftmost-first one.
    LONGEST = 4
    # Treat the buffer as single-byte characters and restrict classes to ASCII.
    ASCII = 8


def coerce_options(options: int | Option | None) -> Option:
    if options is None:
        return Option.NONE
    if isinstance(options, bool) or not isinstance(options, int):
        raise TypeError("options must be an Option flag")
    value = int(options)
    known = 0
    for member in Option:
        known |= int(member)
    if value & ~known:
        raise ValueError(f"unknown option bits: {value & ~known:#x}")
    return Option(value)
