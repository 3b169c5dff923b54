"""Native matcher capability and engine registry.

An engine compiles a pattern into a :class:`NativeHandle`; a handle answers a
single question: starting at a byte offset, where is the next match and where
are its groups. Everything above that (iteration, extraction, templates,
replacement) lives in the rest of the package and never names a concrete
engine.
"""

from __future__ import annotations

import importlib
import logging
import threading
from typing import Protocol, Sequence

from rubex.options import Option

_LOG = logging.getLogger(__name__)

# Flat start/end pairs, one pair per group including group 0; (-1, -1) = unset.
MatchSpans = Sequence[int]


class EngineError(Exception):
    """Compile-time diagnostic raised by an engine."""


class NativeHandle(Protocol):
    group_count: int

    def names(self) -> list[tuple[str, int]]: ...

    def search(self, buffer: bytes, length: int, start: int) -> MatchSpans | None: ...

    def release(self) -> None: ...


class Engine(Protocol):
    name: str
    reentrant: bool
    # False when the engine cannot honor Option.LONGEST.
    supports_longest: bool

    def compile(self, pattern: str, options: Option) -> NativeHandle: ...


# Engine that takes over patterns asking for leftmost-longest on engines without it.
LONGEST_FALLBACK = "reference"

_BUILTIN_ENGINES = {
    "sre": "rubex.engine.sre",
    "reference": "rubex.engine.reference",
}

_REGISTRY: dict[str, Engine] = {}
_REGISTRY_LOCK = threading.Lock()


def register_engine(engine: Engine, *, replace: bool = False) -> None:
    name = engine.name
    with _REGISTRY_LOCK:
        if name in _REGISTRY and not replace:
            raise ValueError(f"engine already registered: {name}")
        _REGISTRY[name] = engine
    _LOG.debug("registered regex engine %r (reentrant=%s)", name, engine.reentrant)


def load_engine(name: str) -> Engine | None:
    with _REGISTRY_LOCK:
        engine = _REGISTRY.get(name)
    if engine is not None:
        return engine
    module_name = _BUILTIN_ENGINES.get(name)
    if module_name is None:
        return None
    module = importlib.import_module(module_name)
    engine = module.ENGINE
    with _REGISTRY_LOCK:
        return _REGISTRY.setdefault(name, engine)


def require_engine(name: str) -> Engine:
    engine = load_engine(name)
    if engine is None:
        raise LookupError(f"regex engine unavailable: {name}")
    return engine


def available_engines() -> list[str]:
    with _REGISTRY_LOCK:
        names = set(_REGISTRY)
    names.update(_BUILTIN_ENGINES)
    return sorted(names)


__all__ = [
    "Engine",
    "EngineError",
    "LONGEST_FALLBACK",
    "MatchSpans",
    "NativeHandle",
    "available_engines",
    "load_engine",
    "register_engine",
    "require_engine",
]
