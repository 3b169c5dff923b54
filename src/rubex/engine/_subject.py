"""Decoded view of a byte buffer for engines that match over text."""

from __future__ import annotations

import bisect
import functools
import itertools
from dataclasses import dataclass
from typing import Sequence

from rubex.config import subject_cache_size


@dataclass(frozen=True)
class Subject:
    text: str
    # offsets[i] is the byte offset of character i; offsets[-1] is the length.
    offsets: Sequence[int]

    def char_index(self, byte_offset: int) -> int:
        return bisect.bisect_left(self.offsets, byte_offset)

    def byte_offset(self, index: int) -> int:
        if index < 0:
            return -1
        return self.offsets[index]


def _encoded_width(ch: str) -> int:
    code = ord(ch)
    if code < 0x80:
        return 1
    if code < 0x800:
        return 2
    if 0xDC80 <= code <= 0xDCFF:
        # surrogateescape stand-in for one undecodable byte
        return 1
    if code < 0x10000:
        return 3
    return 4


@functools.lru_cache(maxsize=subject_cache_size())
def decode_subject(buffer: bytes, ascii_only: bool = False) -> Subject:
    if ascii_only:
        return Subject(buffer.decode("latin-1"), range(len(buffer) + 1))
    text = buffer.decode("utf-8", "surrogateescape")
    if len(text) == len(buffer):
        return Subject(text, range(len(buffer) + 1))
    offsets = tuple(itertools.accumulate(map(_encoded_width, text), initial=0))
    return Subject(text, offsets)


def spans_to_bytes(subject: Subject, spans: Sequence[int]) -> list[int]:
    return [subject.byte_offset(value) for value in spans]
