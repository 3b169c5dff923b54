"""Backtracking reference engine.

A direct interpreter over the parse tree from :mod:`rubex.engine._parser`.
Each node matcher is a generator of ``(position, groups)`` candidates in
preference order, so the first candidate is the leftmost-first match and
exhausting the generator enumerates every alternative (used for
leftmost-longest selection). Slow but dependency free and faithful on the
edge cases the API layer cares about: duplicate group names, zero-width
matches, unset groups.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from rubex.engine import EngineError, MatchSpans
from rubex.engine._parser import (
    ASCII,
    DOTALL,
    IGNORECASE,
    MULTILINE,
    _Alt,
    _Anchor,
    _Any,
    _Backref,
    _CharClass,
    _Concat,
    _Conditional,
    _Empty,
    _Group,
    _Literal,
    _Look,
    _Repeat,
    _ScopedFlags,
    error,
    fixed_width,
    parse,
)
from rubex.engine._subject import decode_subject, spans_to_bytes
from rubex.options import Option

_LOG = logging.getLogger(__name__)

Groups = tuple[tuple[int, int] | None, ...]
Candidates = Iterator[tuple[int, Groups]]

_ASCII_SPACE = frozenset(" \t\n\r\f\v")


def _is_word(ch: str, flags: int) -> bool:
    if flags & ASCII:
        return ch == "_" or (ch.isascii() and ch.isalnum())
    return ch == "_" or ch.isalnum()


def _category_match(category: str, ch: str, flags: int) -> bool:
    kind = category.lower()
    if kind == "d":
        hit = "0" <= ch <= "9" if flags & ASCII else ch.isdecimal()
    elif kind == "s":
        hit = ch in _ASCII_SPACE if flags & ASCII else ch.isspace()
    else:
        hit = _is_word(ch, flags)
    return hit if category == kind else not hit


def _class_hit(node: _CharClass, ch: str, flags: int) -> bool:
    if ch in node.chars:
        return True
    for low, high in node.ranges:
        if low <= ch <= high:
            return True
    for category in node.categories:
        if _category_match(category, ch, flags):
            return True
    return False


def _class_matches(node: _CharClass, ch: str, flags: int) -> bool:
    hit = _class_hit(node, ch, flags)
    if not hit and flags & IGNORECASE:
        for alt in (ch.lower(), ch.upper()):
            if alt != ch and _class_hit(node, alt, flags):
                hit = True
                break
    return hit != node.negated


def _single_step(node: Any, text: str, pos: int, end: int, flags: int) -> bool:
    if pos >= end:
        return False
    ch = text[pos]
    if isinstance(node, _Any):
        return bool(flags & DOTALL) or ch != "\n"
    if isinstance(node, _CharClass):
        return _class_matches(node, ch, flags)
    if flags & IGNORECASE:
        return ch.lower() == node.text.lower()
    return ch == node.text


def _is_single(node: Any) -> bool:
    if isinstance(node, (_Any, _CharClass)):
        return True
    return isinstance(node, _Literal) and len(node.text) == 1


def _anchor_matches(kind: str, text: str, pos: int, end: int, flags: int) -> bool:
    if kind == "start":
        return pos == 0 or (bool(flags & MULTILINE) and text[pos - 1] == "\n")
    if kind == "end":
        if pos == end:
            return True
        if flags & MULTILINE:
            return text[pos] == "\n"
        return pos == end - 1 and text[pos] == "\n"
    if kind == "text_start":
        return pos == 0
    if kind == "text_end":
        return pos == end
    before = pos > 0 and _is_word(text[pos - 1], flags)
    after = pos < end and _is_word(text[pos], flags)
    if kind == "boundary":
        return before != after
    return before == after


def _capture(groups: Groups, index: int, start: int, end: int) -> Groups:
    updated = list(groups)
    updated[index] = (start, end)
    return tuple(updated)


def _match_literal(node: _Literal, text: str, pos: int, end: int, groups: Groups, flags: int) -> Candidates:
    new_pos = pos + len(node.text)
    if new_pos > end:
        return
    chunk = text[pos:new_pos]
    if chunk == node.text or (flags & IGNORECASE and chunk.lower() == node.text.lower()):
        yield new_pos, groups


def _match_group(node: _Group, text: str, pos: int, end: int, groups: Groups, flags: int) -> Candidates:
    for new_pos, new_groups in _match_node(node.node, text, pos, end, groups, flags):
        yield new_pos, _capture(new_groups, node.index, pos, new_pos)


def _match_backref(node: _Backref, text: str, pos: int, end: int, groups: Groups, flags: int) -> Candidates:
    for index in node.indices:
        span = groups[index] if index < len(groups) else None
        if span is None:
            continue
        captured = text[span[0] : span[1]]
        new_pos = pos + len(captured)
        if new_pos > end:
            return
        chunk = text[pos:new_pos]
        if chunk == captured or (flags & IGNORECASE and chunk.lower() == captured.lower()):
            yield new_pos, groups
        return


def _match_look(node: _Look, text: str, pos: int, end: int, groups: Groups, flags: int) -> Candidates:
    if node.behind:
        width = fixed_width(node.node)
        start = pos - (width or 0)
        found = None
        if start >= 0:
            for end_pos, new_groups in _match_node(node.node, text, start, pos, groups, flags):
                if end_pos == pos:
                    found = new_groups
                    break
    else:
        found = None
        for _, new_groups in _match_node(node.node, text, pos, end, groups, flags):
            found = new_groups
            break
    if node.positive:
        if found is not None:
            yield pos, found
    elif found is None:
        yield pos, groups


def _match_conditional(node: _Conditional, text: str, pos: int, end: int, groups: Groups, flags: int) -> Candidates:
    matched = any(index < len(groups) and groups[index] is not None for index in node.indices)
    branch = node.yes if matched else node.no
    yield from _match_node(branch, text, pos, end, groups, flags)


def _match_concat(nodes: tuple[Any, ...], text: str, pos: int, end: int, groups: Groups, flags: int) -> Candidates:
    if not nodes:
        yield pos, groups
        return
    for new_pos, new_groups in _match_node(nodes[0], text, pos, end, groups, flags):
        yield from _match_concat(nodes[1:], text, new_pos, end, new_groups, flags)


def _match_single_repeat(node: _Repeat, text: str, pos: int, end: int, groups: Groups, flags: int) -> Candidates:
    limit = end if node.max_count is None else min(end, pos + node.max_count)
    if node.greedy:
        stop = pos
        while stop < limit and _single_step(node.node, text, stop, end, flags):
            stop += 1
        for new_pos in range(stop, pos + node.min_count - 1, -1):
            yield new_pos, groups
        return
    cur = pos
    while True:
        if cur - pos >= node.min_count:
            yield cur, groups
        if cur >= limit or not _single_step(node.node, text, cur, end, flags):
            return
        cur += 1


def _match_repeat(node: _Repeat, text: str, pos: int, end: int, groups: Groups, flags: int) -> Candidates:
    if _is_single(node.node):
        yield from _match_single_repeat(node, text, pos, end, groups, flags)
        return

    def rec(count: int, cur_pos: int, cur_groups: Groups) -> Candidates:
        if node.max_count is not None and count == node.max_count:
            yield cur_pos, cur_groups
            return
        if not node.greedy and count >= node.min_count:
            yield cur_pos, cur_groups
        for next_pos, next_groups in _match_node(node.node, text, cur_pos, end, cur_groups, flags):
            if next_pos == cur_pos and count >= node.min_count:
                continue
            yield from rec(count + 1, next_pos, next_groups)
        if node.greedy and count >= node.min_count:
            yield cur_pos, cur_groups

    yield from rec(0, pos, groups)


def _match_node(node: Any, text: str, pos: int, end: int, groups: Groups, flags: int) -> Candidates:
    if isinstance(node, _Empty):
        yield pos, groups
    elif isinstance(node, _Literal):
        yield from _match_literal(node, text, pos, end, groups, flags)
    elif isinstance(node, (_Any, _CharClass)):
        if _single_step(node, text, pos, end, flags):
            yield pos + 1, groups
    elif isinstance(node, _Anchor):
        if _anchor_matches(node.kind, text, pos, end, flags):
            yield pos, groups
    elif isinstance(node, _Group):
        yield from _match_group(node, text, pos, end, groups, flags)
    elif isinstance(node, _Backref):
        yield from _match_backref(node, text, pos, end, groups, flags)
    elif isinstance(node, _Look):
        yield from _match_look(node, text, pos, end, groups, flags)
    elif isinstance(node, _ScopedFlags):
        scoped = (flags | node.add_flags) & ~node.clear_flags
        yield from _match_node(node.node, text, pos, end, groups, scoped)
    elif isinstance(node, _Conditional):
        yield from _match_conditional(node, text, pos, end, groups, flags)
    elif isinstance(node, _Concat):
        yield from _match_concat(node.nodes, text, pos, end, groups, flags)
    elif isinstance(node, _Alt):
        for option in node.options:
            yield from _match_node(option, text, pos, end, groups, flags)
    elif isinstance(node, _Repeat):
        yield from _match_repeat(node, text, pos, end, groups, flags)
    else:
        raise TypeError(f"unsupported pattern node: {node!r}")


def _is_anchored_start(node: Any, flags: int) -> bool:
    if isinstance(node, _Anchor):
        return node.kind == "text_start" or (node.kind == "start" and not flags & MULTILINE)
    if isinstance(node, _Concat):
        return bool(node.nodes) and _is_anchored_start(node.nodes[0], flags)
    if isinstance(node, _Alt):
        return all(_is_anchored_start(option, flags) for option in node.options)
    if isinstance(node, _Group):
        return _is_anchored_start(node.node, flags)
    if isinstance(node, _Repeat):
        return node.min_count > 0 and _is_anchored_start(node.node, flags)
    return False


class ReferenceHandle:
    def __init__(
        self,
        node: Any,
        group_count: int,
        names: list[tuple[str, int]],
        flags: int,
        longest: bool,
    ) -> None:
        self._node = node
        self.group_count = group_count
        self._names = names
        self._flags = flags
        self._longest = longest
        self._anchored = _is_anchored_start(node, flags)

    def names(self) -> list[tuple[str, int]]:
        return list(self._names)

    def search(self, buffer: bytes, length: int, start: int) -> MatchSpans | None:
        if self._node is None:
            raise ValueError("search on a released handle")
        if length != len(buffer):
            buffer = buffer[:length]
        subject = decode_subject(bytes(buffer), bool(self._flags & ASCII))
        text = subject.text
        end = len(text)
        first = subject.char_index(start)
        empty: Groups = (None,) * (self.group_count + 1)
        for offset in range(first, end + 1):
            best = self._best_at(text, offset, end, empty)
            if best is not None:
                new_pos, groups = best
                spans = [offset, new_pos]
                for span in groups[1:]:
                    spans.extend(span if span is not None else (-1, -1))
                return spans_to_bytes(subject, spans)
            if self._anchored:
                break
        return None

    def _best_at(self, text: str, offset: int, end: int, empty: Groups) -> tuple[int, Groups] | None:
        best = None
        for new_pos, groups in _match_node(self._node, text, offset, end, empty, self._flags):
            if not self._longest:
                return new_pos, groups
            if best is None or new_pos > best[0]:
                best = (new_pos, groups)
        return best

    def release(self) -> None:
        self._node = None


class ReferenceEngine:
    name = "reference"
    reentrant = True
    supports_longest = True

    def compile(self, pattern: str, options: Option) -> ReferenceHandle:
        flags = 0
        if options & Option.IGNORECASE:
            flags |= IGNORECASE
        if options & Option.MULTILINE:
            flags |= MULTILINE
        if options & Option.ASCII:
            flags |= ASCII
            pattern = pattern.encode("utf-8", "surrogateescape").decode("latin-1")
        try:
            node, group_count, names, inline_flags = parse(pattern, flags)
        except error as exc:
            raise EngineError(str(exc)) from exc
        except RecursionError as exc:
            raise EngineError("pattern too deeply nested") from exc
        _LOG.debug("reference engine compiled %r into %d groups", pattern, group_count)
        return ReferenceHandle(
            node,
            group_count,
            names,
            flags | inline_flags,
            bool(options & Option.LONGEST),
        )


ENGINE = ReferenceEngine()
