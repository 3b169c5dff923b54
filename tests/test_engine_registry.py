from __future__ import annotations

import threading

import pytest

import rubex
from rubex import engine as engines
from rubex.engine import EngineError
from rubex.options import Option


class _Handle:
    group_count = 0

    def __init__(self, needle: bytes) -> None:
        self._needle = needle
        self.released = 0
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()

    def names(self) -> list[tuple[str, int]]:
        return []

    def search(self, buffer: bytes, length: int, start: int) -> list[int] | None:
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            hit = buffer.find(self._needle, start, length)
            if hit < 0:
                return None
            return [hit, hit + len(self._needle)]
        finally:
            with self._guard:
                self.active -= 1

    def release(self) -> None:
        self.released += 1


class _LiteralEngine:
    """Substring search; not reentrant."""

    name = "test-literal"
    reentrant = False

    def __init__(self) -> None:
        self.handles: list[_Handle] = []

    def compile(self, pattern: str, options: Option) -> _Handle:
        if not pattern:
            raise EngineError("empty literal")
        handle = _Handle(pattern.encode())
        self.handles.append(handle)
        return handle


def test_builtin_engines_are_available() -> None:
    names = engines.available_engines()
    assert "sre" in names
    assert "reference" in names
    assert engines.require_engine("sre").name == "sre"
    assert engines.load_engine("reference").reentrant


def test_unknown_engine_lookup() -> None:
    assert engines.load_engine("missing") is None
    with pytest.raises(LookupError):
        engines.require_engine("missing")


def test_register_custom_engine() -> None:
    custom = _LiteralEngine()
    engines.register_engine(custom, replace=True)
    assert "test-literal" in engines.available_engines()
    with pytest.raises(ValueError, match="already registered"):
        engines.register_engine(custom)

    with rubex.compile("ab", engine="test-literal") as regexp:
        assert regexp.replace_all("xabyab", "[$0]") == "x[ab]y[ab]"
        assert regexp.split("1ab2ab3") == ["1", "2", "3"]
    assert custom.handles[-1].released == 1

    with pytest.raises(rubex.PatternSyntaxError, match="empty literal") as excinfo:
        rubex.compile("", engine=custom)
    assert excinfo.value.engine == "test-literal"


def test_non_reentrant_engine_is_serialized() -> None:
    custom = _LiteralEngine()
    regexp = rubex.compile("needle", engine=custom)
    haystack = b"hay " * 2000 + b"needle"
    errors: list[BaseException] = []

    def worker() -> None:
        try:
            for _ in range(50):
                assert regexp.find_index(haystack) == (8000, 8006)
        except AssertionError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    regexp.close()
    assert errors == []
    assert custom.handles[0].max_active == 1
    assert custom.handles[0].released == 1


def test_release_happens_once() -> None:
    custom = _LiteralEngine()
    regexp = rubex.compile("x", engine=custom)
    regexp.close()
    regexp.close()
    assert custom.handles[0].released == 1


def test_longest_moves_to_capable_engine() -> None:
    custom = _LiteralEngine()
    regexp = rubex.compile("ab", engine=custom)
    regexp.longest()
    try:
        assert regexp.engine == engines.LONGEST_FALLBACK
        assert custom.handles[0].released == 1
        assert regexp.find_index("xab") == (1, 3)
    finally:
        regexp.close()
    assert len(custom.handles) == 1


def test_sre_refuses_longest_directly() -> None:
    sre = engines.require_engine("sre")
    assert not sre.supports_longest
    assert engines.require_engine("reference").supports_longest
    with pytest.raises(EngineError, match="leftmost-longest"):
        sre.compile("a|ab", Option.LONGEST)
