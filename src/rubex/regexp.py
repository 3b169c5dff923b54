"""Compiled patterns and the public matching surface.

Every operation accepts ``str`` or a bytes-like buffer and answers in kind:
text in, text out; bytes in, bytes out. Text is matched as its UTF-8
encoding, so offsets (``find_index`` and friends) are byte offsets for both.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Any, Callable, ContextManager, Iterator

from rubex.captures import Match, NameTable, decode, group_span
from rubex.config import default_engine_name
from rubex.cursor import iter_spans
from rubex.engine import (
    LONGEST_FALLBACK,
    Engine,
    EngineError,
    MatchSpans,
    NativeHandle,
    require_engine,
)
from rubex.errors import PatternSyntaxError
from rubex.options import Option, coerce_options
from rubex.replace import func_producer, literal_producer, replace_all, template_producer
from rubex.template import encode_text, parse_template

_LOG = logging.getLogger(__name__)

# Serializes compile, recompile and release across every handle in the process.
_COMPILE_LOCK = threading.Lock()


def _as_buffer(value: Any) -> tuple[bytes, bool]:
    if isinstance(value, str):
        return encode_text(value), True
    if isinstance(value, bytes):
        return value, False
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value), False
    raise TypeError(f"expected str or bytes-like buffer, got {type(value).__name__}")


def _as_result(value: bytes | None, text: bool) -> Any:
    if value is None or not text:
        return value
    return decode(value)


def _encode_replacement(value: Any) -> bytes:
    if isinstance(value, str):
        return encode_text(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise TypeError(f"replacement must be str or bytes-like, got {type(value).__name__}")


def _resolve_engine(engine: str | Engine | None) -> Engine:
    if engine is None:
        return require_engine(default_engine_name())
    if isinstance(engine, str):
        return require_engine(engine)
    return engine


def _read_all(reader: Any) -> Any:
    data = reader.read()
    if data is None:
        return b""
    return data


class Regexp:
    """A compiled regular expression.

    Searching a ``Regexp`` never mutates it, so one instance may be shared
    by threads. :meth:`longest` recompiles in place and must not run while
    another thread is searching the same instance; :meth:`copy` gives each
    caller an independent handle instead.

    The native handle is released by :meth:`close` or by leaving a ``with``
    block; nothing is released implicitly.
    """

    def __init__(
        self,
        pattern: str | bytes,
        options: int | Option = Option.NONE,
        *,
        engine: str | Engine | None = None,
    ) -> None:
        if isinstance(pattern, (bytes, bytearray)):
            pattern = bytes(pattern).decode("utf-8", "surrogateescape")
        elif not isinstance(pattern, str):
            raise TypeError("pattern must be str or bytes")
        self._pattern = pattern
        self._options = coerce_options(options)
        self._engine = _resolve_engine(engine)
        self._handle: NativeHandle | None = None
        self._names = NameTable((), 0)
        self._search_lock: ContextManager[Any] = contextlib.nullcontext()
        self._install(self._options)

    def _engine_for(self, options: Option) -> Engine:
        if options & Option.LONGEST and not getattr(self._engine, "supports_longest", False):
            return require_engine(LONGEST_FALLBACK)
        return self._engine

    def _install(self, options: Option) -> None:
        engine = self._engine_for(options)
        with _COMPILE_LOCK:
            try:
                handle = engine.compile(self._pattern, options)
            except EngineError as exc:
                raise PatternSyntaxError(str(exc), self._pattern, engine.name) from exc
            try:
                names = NameTable(handle.names(), handle.group_count)
            except ValueError:
                handle.release()
                raise
            previous = self._handle
            if engine is not self._engine or previous is None:
                self._search_lock = (
                    contextlib.nullcontext() if engine.reentrant else threading.Lock()
                )
            if engine is not self._engine:
                _LOG.debug(
                    "%s engine cannot prefer longest matches; using %s for %r",
                    self._engine.name,
                    engine.name,
                    self._pattern,
                )
                self._engine = engine
            self._handle = handle
            self._names = names
            self._options = options
            if previous is not None:
                previous.release()
        _LOG.debug(
            "compiled %r with %s engine (options=%s, groups=%d)",
            self._pattern,
            self._engine.name,
            options,
            handle.group_count,
        )

    def __repr__(self) -> str:
        return f"rubex.Regexp({self._pattern!r}, {self._options!r}, engine={self._engine.name!r})"

    def __str__(self) -> str:
        return self._pattern

    def __enter__(self) -> "Regexp":
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.close()

    @property
    def pattern(self) -> str:
        return self._pattern

    @property
    def options(self) -> Option:
        return self._options

    @property
    def engine(self) -> str:
        return self._engine.name

    @property
    def closed(self) -> bool:
        return self._handle is None

    def close(self) -> None:
        with _COMPILE_LOCK:
            handle = self._handle
            self._handle = None
            if handle is not None:
                handle.release()
        if handle is not None:
            _LOG.debug("released handle for %r", self._pattern)

    def copy(self) -> "Regexp":
        self._ensure_open()
        _LOG.debug("copying %r", self._pattern)
        return Regexp(self._pattern, self._options, engine=self._engine)

    def longest(self) -> None:
        """Prefer leftmost-longest matches from now on.

        Recompiles the handle; the caller must hold exclusive access. An
        engine that cannot prefer longest matches hands the pattern over to
        the reference engine, which then reports itself as :attr:`engine`.
        """
        self._ensure_open()
        if self._options & Option.LONGEST:
            return
        self._install(self._options | Option.LONGEST)
        _LOG.debug("switched %r to leftmost-longest", self._pattern)

    def _ensure_open(self) -> NativeHandle:
        handle = self._handle
        if handle is None:
            raise ValueError("operation on a closed Regexp")
        return handle

    def _search(self, buffer: bytes, length: int, start: int) -> MatchSpans | None:
        handle = self._ensure_open()
        with self._search_lock:
            return handle.search(buffer, length, start)

    def _first(self, data: bytes) -> MatchSpans | None:
        return self._search(data, len(data), 0)

    def _all(self, data: bytes, limit: int) -> Iterator[MatchSpans]:
        self._ensure_open()
        return iter_spans(self._search, data, limit)

    def num_subexp(self) -> int:
        return self._ensure_open().group_count

    def subexp_names(self) -> list[str]:
        self._ensure_open()
        return self._names.subexp_names()

    def subexp_index(self, name: str) -> int:
        self._ensure_open()
        return self._names.first_index(name)

    def match(self, buffer: Any) -> bool:
        data, _ = _as_buffer(buffer)
        return self._first(data) is not None

    def search(self, buffer: Any) -> Match | None:
        data, text = _as_buffer(buffer)
        spans = self._first(data)
        if spans is None:
            return None
        return Match(data, spans, self._names, text)

    def finditer(self, buffer: Any, limit: int = -1) -> Iterator[Match]:
        data, text = _as_buffer(buffer)
        for spans in self._all(data, limit):
            yield Match(data, spans, self._names, text)

    def find(self, buffer: Any) -> Any:
        data, text = _as_buffer(buffer)
        spans = self._first(data)
        if spans is None:
            return None
        return _as_result(data[spans[0] : spans[1]], text)

    def find_index(self, buffer: Any) -> tuple[int, int] | None:
        data, _ = _as_buffer(buffer)
        spans = self._first(data)
        if spans is None:
            return None
        return (spans[0], spans[1])

    def find_submatch(self, buffer: Any) -> list[Any] | None:
        found = self.search(buffer)
        if found is None:
            return None
        return found.submatches()

    def find_submatch_index(self, buffer: Any) -> list[int] | None:
        data, _ = _as_buffer(buffer)
        spans = self._first(data)
        if spans is None:
            return None
        return list(spans)

    def find_all(self, buffer: Any, limit: int = -1) -> list[Any]:
        data, text = _as_buffer(buffer)
        return [_as_result(data[spans[0] : spans[1]], text) for spans in self._all(data, limit)]

    def find_all_index(self, buffer: Any, limit: int = -1) -> list[tuple[int, int]]:
        data, _ = _as_buffer(buffer)
        return [(spans[0], spans[1]) for spans in self._all(data, limit)]

    def find_all_submatch(self, buffer: Any, limit: int = -1) -> list[list[Any]]:
        return [found.submatches() for found in self.finditer(buffer, limit)]

    def find_all_submatch_index(self, buffer: Any, limit: int = -1) -> list[list[int]]:
        data, _ = _as_buffer(buffer)
        return [list(spans) for spans in self._all(data, limit)]

    def match_reader(self, reader: Any) -> bool:
        return self.match(_read_all(reader))

    def find_reader_index(self, reader: Any) -> tuple[int, int] | None:
        return self.find_index(_read_all(reader))

    def find_reader_submatch_index(self, reader: Any) -> list[int] | None:
        return self.find_submatch_index(_read_all(reader))

    def expand(self, template: Any, buffer: Any, spans: MatchSpans) -> Any:
        """Evaluate ``template`` against one match of this pattern in ``buffer``.

        ``spans`` is a flat offset list as returned by
        :meth:`find_submatch_index`.
        """
        data, text = _as_buffer(buffer)
        self._ensure_open()
        found = Match(data, spans, self._names)
        start, end = group_span(found.spans, 0)
        whole = data[start:end] if start >= 0 else b""
        result = parse_template(template).evaluate(whole, found.extract)
        return _as_result(result, text)

    def replace_all(self, buffer: Any, template: Any) -> Any:
        data, text = _as_buffer(buffer)
        parsed = parse_template(template)
        if parsed.is_literal:
            produce = literal_producer(b"".join(parsed.segments))
        else:
            produce = template_producer(parsed, data, self._names)
        return _as_result(replace_all(self._search, data, produce), text)

    def replace_all_literal(self, buffer: Any, replacement: Any) -> Any:
        data, text = _as_buffer(buffer)
        produce = literal_producer(_encode_replacement(replacement))
        return _as_result(replace_all(self._search, data, produce), text)

    def replace_all_func(self, buffer: Any, transform: Callable[[Any], Any]) -> Any:
        data, text = _as_buffer(buffer)

        def apply(matched: bytes) -> bytes:
            return _encode_replacement(transform(_as_result(matched, text)))

        produce = func_producer(data, apply)
        return _as_result(replace_all(self._search, data, produce), text)

    def split(self, buffer: Any, limit: int = -1) -> list[Any]:
        data, text = _as_buffer(buffer)
        if limit == 0:
            return []
        if self._pattern and not data:
            return [_as_result(b"", text)]
        pieces: list[bytes] = []
        begin = 0
        end = 0
        for spans in self._all(data, limit):
            if limit > 0 and len(pieces) == limit - 1:
                break
            end = spans[0]
            if spans[1] != 0:
                pieces.append(data[begin:end])
            begin = spans[1]
        if end != len(data):
            pieces.append(data[begin:])
        return [_as_result(piece, text) for piece in pieces]


def quote_meta(text: Any) -> Any:
    """Escape every ASCII character outside ``[A-Za-z0-9_]``.

    Non-ASCII characters (and, for bytes, bytes >= 0x80) pass through.
    """
    if isinstance(text, str):
        out: list[str] = []
        for ch in text:
            if ch.isascii() and not (ch.isalnum() or ch == "_"):
                out.append("\\")
            out.append(ch)
        return "".join(out)
    if isinstance(text, (bytes, bytearray, memoryview)):
        raw = bytearray()
        for byte in bytes(text):
            if byte < 0x80 and not (chr(byte).isalnum() or byte == 0x5F):
                raw.append(0x5C)
            raw.append(byte)
        return bytes(raw)
    raise TypeError("quote_meta expects str or bytes-like input")
