"""Environment configuration for rubex."""

from __future__ import annotations

import os

DEFAULT_ENGINE = "sre"
DEFAULT_SUBJECT_CACHE = 32


def _raw_getenv(key: str, default: str = "") -> str:
    try:
        return os.getenv(key, default)
    except Exception:
        return default


_ENGINE_CACHE: str | None = None
_ENGINE_RAW: str | None = None


def _parse_engine(raw: str) -> str:
    stripped = raw.strip().lower()
    return stripped or DEFAULT_ENGINE


def default_engine_name() -> str:
    global _ENGINE_CACHE, _ENGINE_RAW
    raw = _raw_getenv("RUBEX_ENGINE", "")
    if _ENGINE_CACHE is None or raw != _ENGINE_RAW:
        _ENGINE_RAW = raw
        _ENGINE_CACHE = _parse_engine(raw)
    return _ENGINE_CACHE


def subject_cache_size() -> int:
    raw = _raw_getenv("RUBEX_SUBJECT_CACHE", "").strip()
    if not raw:
        return DEFAULT_SUBJECT_CACHE
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_SUBJECT_CACHE
    return max(1, value)
