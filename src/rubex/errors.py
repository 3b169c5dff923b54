from __future__ import annotations


class RubexError(Exception):
    """Base error for rubex failures."""


class PatternSyntaxError(RubexError, ValueError):
    """Pattern rejected by the matching engine at compile time.

    ``str(exc)`` is the engine diagnostic, unmodified.
    """

    def __init__(self, msg: str, pattern: str | None = None, engine: str | None = None):
        super().__init__(msg)
        self.msg = msg
        self.pattern = pattern
        self.engine = engine
