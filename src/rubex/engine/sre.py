"""Production engine: CPython's ``_sre`` matcher through the stdlib ``re`` module."""

from __future__ import annotations

import logging
import re

from rubex.engine import EngineError, MatchSpans
from rubex.engine._subject import decode_subject
from rubex.options import Option

_LOG = logging.getLogger(__name__)


class SreHandle:
    def __init__(self, compiled: re.Pattern[str], ascii_only: bool) -> None:
        self._compiled: re.Pattern[str] | None = compiled
        self._ascii_only = ascii_only
        self.group_count = compiled.groups

    def names(self) -> list[tuple[str, int]]:
        if self._compiled is None:
            return []
        pairs = self._compiled.groupindex.items()
        return sorted(pairs, key=lambda item: item[1])

    def search(self, buffer: bytes, length: int, start: int) -> MatchSpans | None:
        compiled = self._compiled
        if compiled is None:
            raise ValueError("search on a released handle")
        if length != len(buffer):
            buffer = buffer[:length]
        subject = decode_subject(bytes(buffer), self._ascii_only)
        pos = subject.char_index(start)
        if pos > len(subject.text):
            return None
        found = compiled.search(subject.text, pos)
        if found is None:
            return None
        spans: list[int] = []
        for index in range(self.group_count + 1):
            group_start, group_end = found.span(index)
            spans.append(subject.byte_offset(group_start))
            spans.append(subject.byte_offset(group_end))
        return spans

    def release(self) -> None:
        self._compiled = None


class SreEngine:
    name = "sre"
    reentrant = True
    supports_longest = False

    def compile(self, pattern: str, options: Option) -> SreHandle:
        if options & Option.LONGEST:
            raise EngineError("leftmost-longest matching is not supported by the sre engine")
        flags = 0
        if options & Option.IGNORECASE:
            flags |= re.IGNORECASE
        if options & Option.MULTILINE:
            flags |= re.MULTILINE
        ascii_only = bool(options & Option.ASCII)
        if ascii_only:
            flags |= re.ASCII
            pattern = pattern.encode("utf-8", "surrogateescape").decode("latin-1")
        try:
            compiled = re.compile(pattern, flags)
        except re.error as exc:
            raise EngineError(str(exc)) from exc
        except RecursionError as exc:
            raise EngineError("pattern too deeply nested") from exc
        _LOG.debug("sre engine compiled %r into %d groups", pattern, compiled.groups)
        return SreHandle(compiled, ascii_only)


ENGINE = SreEngine()
