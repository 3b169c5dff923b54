"""Regular expressions over byte and text buffers with pluggable engines."""

from __future__ import annotations

from typing import Any

from rubex.captures import Match, NameTable
from rubex.engine import (
    Engine,
    EngineError,
    NativeHandle,
    available_engines,
    load_engine,
    register_engine,
    require_engine,
)
from rubex.errors import PatternSyntaxError, RubexError
from rubex.options import Option, coerce_options
from rubex.regexp import Regexp, quote_meta
from rubex.template import Template, parse_template


def compile(
    pattern: str | bytes,
    options: int | Option = Option.NONE,
    *,
    engine: str | Engine | None = None,
) -> Regexp:
    return Regexp(pattern, options, engine=engine)


def compile_ascii(
    pattern: str | bytes,
    options: int | Option = Option.NONE,
    *,
    engine: str | Engine | None = None,
) -> Regexp:
    """Compile with ASCII-only classes; buffers are matched byte for byte."""
    return Regexp(pattern, coerce_options(options) | Option.ASCII, engine=engine)


def match(pattern: str | bytes, buffer: Any) -> bool:
    with compile(pattern) as regexp:
        return regexp.match(buffer)


def find_all(pattern: str | bytes, buffer: Any, limit: int = -1) -> list[Any]:
    with compile(pattern) as regexp:
        return regexp.find_all(buffer, limit)


def replace_all(pattern: str | bytes, buffer: Any, template: Any) -> Any:
    with compile(pattern) as regexp:
        return regexp.replace_all(buffer, template)


def split(pattern: str | bytes, buffer: Any, limit: int = -1) -> list[Any]:
    with compile(pattern) as regexp:
        return regexp.split(buffer, limit)


__all__ = [
    "Engine",
    "EngineError",
    "Match",
    "NameTable",
    "NativeHandle",
    "Option",
    "PatternSyntaxError",
    "Regexp",
    "RubexError",
    "Template",
    "available_engines",
    "compile",
    "compile_ascii",
    "find_all",
    "load_engine",
    "match",
    "parse_template",
    "quote_meta",
    "register_engine",
    "replace_all",
    "require_engine",
    "split",
]
