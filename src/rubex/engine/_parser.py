"""Pattern parser for the reference engine.

Produces a small tree of frozen dataclass nodes. Diagnostics follow the
wording of CPython's ``sre_parse`` so both engines report the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

IGNORECASE = 2
MULTILINE = 8
DOTALL = 16
VERBOSE = 64
ASCII = 256

_INLINE_FLAGS = {
    "i": IGNORECASE,
    "m": MULTILINE,
    "s": DOTALL,
    "x": VERBOSE,
    "a": ASCII,
}

_ESCAPED_LITERALS = {
    "a": "\a",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}

_ANCHOR_ESCAPES = {
    "A": "text_start",
    "Z": "text_end",
    "z": "text_end",
    "b": "boundary",
    "B": "non_boundary",
}


class error(Exception):
    def __init__(self, msg: str, pos: int | None = None) -> None:
        if pos is not None:
            msg = f"{msg} at position {pos}"
        super().__init__(msg)


@dataclass(frozen=True)
class _Empty:
    pass


@dataclass(frozen=True)
class _Literal:
    text: str


@dataclass(frozen=True)
class _Any:
    pass


@dataclass(frozen=True)
class _Anchor:
    kind: str


@dataclass(frozen=True)
class _CharClass:
    negated: bool
    ranges: tuple[tuple[str, str], ...]
    chars: frozenset[str]
    categories: tuple[str, ...]


@dataclass(frozen=True)
class _Concat:
    nodes: tuple[Any, ...]


@dataclass(frozen=True)
class _Alt:
    options: tuple[Any, ...]


@dataclass(frozen=True)
class _Repeat:
    node: Any
    min_count: int
    max_count: int | None
    greedy: bool


@dataclass(frozen=True)
class _Group:
    node: Any
    index: int


@dataclass(frozen=True)
class _Backref:
    indices: tuple[int, ...]


@dataclass(frozen=True)
class _Look:
    node: Any
    behind: bool
    positive: bool


@dataclass(frozen=True)
class _ScopedFlags:
    node: Any
    add_flags: int
    clear_flags: int


@dataclass(frozen=True)
class _Conditional:
    indices: tuple[int, ...]
    yes: Any
    no: Any


class _Parser:
    def __init__(self, pattern: str, flags: int = 0) -> None:
        self.pattern = pattern
        self.pos = 0
        self.group_count = 0
        self.group_names: list[tuple[str, int]] = []
        self.open_groups: set[int] = set()
        self.inline_flags = 0
        self.flags = flags

    def parse(self) -> tuple[Any, int, list[tuple[str, int]], int]:
        node = self._parse_expr()
        if self.pos != len(self.pattern):
            raise error("unbalanced parenthesis", self.pos)
        return node, self.group_count, list(self.group_names), self.inline_flags

    @property
    def _verbose(self) -> bool:
        return bool((self.flags | self.inline_flags) & VERBOSE)

    def _skip_verbose(self) -> None:
        if not self._verbose:
            return
        while self.pos < len(self.pattern):
            ch = self.pattern[self.pos]
            if ch in " \t\n\r\f\v":
                self.pos += 1
            elif ch == "#":
                newline = self.pattern.find("\n", self.pos)
                self.pos = len(self.pattern) if newline < 0 else newline + 1
            else:
                break

    def _peek(self) -> str | None:
        if self.pos >= len(self.pattern):
            return None
        return self.pattern[self.pos]

    def _next(self) -> str:
        if self.pos >= len(self.pattern):
            raise error("unexpected end of pattern", self.pos)
        ch = self.pattern[self.pos]
        self.pos += 1
        return ch

    def _expect_close(self, group_start: int) -> None:
        if self._peek() != ")":
            raise error("missing ), unterminated subpattern", group_start)
        self._next()

    def _parse_expr(self) -> Any:
        terms = [self._parse_term()]
        while self._peek() == "|":
            self._next()
            terms.append(self._parse_term())
        if len(terms) == 1:
            return terms[0]
        return _Alt(tuple(terms))

    def _parse_term(self) -> Any:
        nodes: list[Any] = []
        while True:
            self._skip_verbose()
            ch = self._peek()
            if ch is None or ch in ")|":
                break
            if ch in "*+?" or (ch == "{" and self._quantifier_at(self.pos)):
                raise error("nothing to repeat", self.pos)
            node = self._parse_factor()
            if isinstance(node, _Literal) and nodes and isinstance(nodes[-1], _Literal):
                prev = nodes.pop()
                nodes.append(_Literal(prev.text + node.text))
            else:
                nodes.append(node)
        if not nodes:
            return _Empty()
        if len(nodes) == 1:
            return nodes[0]
        return _Concat(tuple(nodes))

    def _quantifier_at(self, pos: int) -> bool:
        close = self.pattern.find("}", pos)
        if close < 0:
            return False
        body = self.pattern[pos + 1 : close]
        low, sep, high = body.partition(",")
        if not low.isdigit() and not (sep and low == "" and high.isdigit()):
            return False
        return not high or high.isdigit()

    def _parse_factor(self) -> Any:
        atom_start = self.pos
        node = self._parse_atom()
        self._skip_verbose()
        ch = self._peek()
        if ch is None:
            return node
        if ch in "*+?":
            self._next()
            min_count, max_count = (0, None) if ch == "*" else (1, None)
            if ch == "?":
                min_count, max_count = (0, 1)
        elif ch == "{" and self._quantifier_at(self.pos):
            self._next()
            low = self._parse_number()
            min_count = low if low is not None else 0
            max_count = min_count
            if self._peek() == ",":
                self._next()
                max_count = self._parse_number()
            self._next()
            if max_count is not None and max_count < min_count:
                raise error("min repeat greater than max repeat", atom_start)
        else:
            return node
        if isinstance(node, (_Anchor, _Look)):
            raise error("nothing to repeat", atom_start)
        greedy = True
        if self._peek() == "?":
            self._next()
            greedy = False
        self._skip_verbose()
        nxt = self._peek()
        if nxt is not None and (
            nxt in "*+?" or (nxt == "{" and self._quantifier_at(self.pos))
        ):
            raise error("multiple repeat", self.pos)
        return _Repeat(node, min_count, max_count, greedy)

    def _parse_number(self) -> int | None:
        digits = []
        while True:
            ch = self._peek()
            if ch is None or not ("0" <= ch <= "9"):
                break
            digits.append(self._next())
        if not digits:
            return None
        return int("".join(digits))

    def _parse_name(self, terminator: str, start: int) -> str:
        close = self.pattern.find(terminator, self.pos)
        if close < 0:
            raise error("missing " + terminator + ", unterminated name", self.pos)
        name = self.pattern[self.pos : close]
        if not name:
            raise error("missing group name", self.pos)
        if not name.isidentifier():
            raise error(f"bad character in group name {name!r}", self.pos)
        self.pos = close + 1
        return name

    def _indices_for(self, name: str) -> tuple[int, ...]:
        return tuple(idx for bound, idx in self.group_names if bound == name)

    def _parse_group_body(self, group_start: int, name: str | None) -> Any:
        self.group_count += 1
        index = self.group_count
        if name is not None:
            self.group_names.append((name, index))
        self.open_groups.add(index)
        node = self._parse_expr()
        self._expect_close(group_start)
        self.open_groups.discard(index)
        return _Group(node, index)

    def _parse_atom(self) -> Any:
        start = self.pos
        ch = self._next()
        if ch == ".":
            return _Any()
        if ch == "^":
            return _Anchor("start")
        if ch == "$":
            return _Anchor("end")
        if ch == "(":
            if self._peek() != "?":
                return self._parse_group_body(start, None)
            self._next()
            marker = self._peek()
            if marker is None:
                raise error("unexpected end of pattern", self.pos)
            if marker == ":":
                self._next()
                node = self._parse_expr()
                self._expect_close(start)
                return node
            if marker == "#":
                close = self.pattern.find(")", self.pos)
                if close < 0:
                    raise error("missing ), unterminated comment", start)
                self.pos = close + 1
                return _Empty()
            if marker in "=!":
                self._next()
                node = self._parse_expr()
                self._expect_close(start)
                return _Look(node, behind=False, positive=marker == "=")
            if marker == "<":
                self._next()
                look_kind = self._peek()
                if look_kind in ("=", "!"):
                    self._next()
                    node = self._parse_expr()
                    self._expect_close(start)
                    if fixed_width(node) is None:
                        raise error("look-behind requires fixed-width pattern", start)
                    return _Look(node, behind=True, positive=look_kind == "=")
                name = self._parse_name(">", start)
                return self._parse_group_body(start, name)
            if marker == "P":
                self._next()
                kind = self._next()
                if kind == "<":
                    name = self._parse_name(">", start)
                    return self._parse_group_body(start, name)
                if kind == "=":
                    name = self._parse_name(")", start)
                    indices = self._indices_for(name)
                    if not indices:
                        raise error(f"unknown group name {name!r}", start)
                    return _Backref(indices)
                raise error(f"unknown extension ?P{kind}", start + 1)
            if marker == "(":
                self._next()
                close = self.pattern.find(")", self.pos)
                if close < 0:
                    raise error("missing ), unterminated name", self.pos)
                ref = self.pattern[self.pos : close]
                if ref.isdigit():
                    indices: tuple[int, ...] = (int(ref),)
                else:
                    indices = self._indices_for(ref)
                    if not indices:
                        raise error(f"unknown group name {ref!r}", self.pos)
                self.pos = close + 1
                yes_node = self._parse_term()
                no_node: Any = _Empty()
                if self._peek() == "|":
                    self._next()
                    no_node = self._parse_term()
                    if self._peek() == "|":
                        raise error("conditional backref with more than two branches", self.pos)
                self._expect_close(start)
                return _Conditional(indices, yes_node, no_node)
            return self._parse_flags(start)
        if ch == "[":
            return self._parse_class(start)
        if ch == "\\":
            return self._parse_escape(start)
        return _Literal(ch)

    def _parse_flags(self, start: int) -> Any:
        flags = 0
        clear_flags = 0
        seen_minus = False
        while True:
            token = self._peek()
            if token is None:
                raise error("missing -, : or )", self.pos)
            if token == "-" and not seen_minus:
                seen_minus = True
                self._next()
                continue
            bit = _INLINE_FLAGS.get(token)
            if bit is None:
                break
            self._next()
            if seen_minus:
                clear_flags |= bit
            else:
                flags |= bit
        token = self._peek()
        if token == ")" and not seen_minus:
            if not flags:
                raise error("unknown extension ?)", start + 1)
            self._next()
            self.inline_flags |= flags
            return _Empty()
        if token == ":":
            self._next()
            node = self._parse_expr()
            self._expect_close(start)
            return _ScopedFlags(node, flags, clear_flags)
        raise error(f"unknown extension ?{token}", start + 1)

    def _parse_escape(self, start: int) -> Any:
        if self._peek() is None:
            raise error("bad escape (end of pattern)", start)
        ch = self._next()
        if ch in "dDsSwW":
            return _CharClass(False, (), frozenset(), (ch,))
        if ch in _ANCHOR_ESCAPES:
            return _Anchor(_ANCHOR_ESCAPES[ch])
        if ch in "123456789":
            digits = [ch]
            while len(digits) < 2:
                nxt = self._peek()
                if nxt is None or not ("0" <= nxt <= "9"):
                    break
                digits.append(self._next())
            index = int("".join(digits))
            if index > self.group_count or index in self.open_groups:
                raise error("invalid group reference %d" % index, start + 1)
            return _Backref((index,))
        return _Literal(self._escaped_char(ch, start))

    def _escaped_char(self, ch: str, start: int) -> str:
        if ch in _ESCAPED_LITERALS:
            return _ESCAPED_LITERALS[ch]
        if ch == "0":
            return "\x00"
        if ch in "xuU":
            width = {"x": 2, "u": 4, "U": 8}[ch]
            digits = self.pattern[self.pos : self.pos + width]
            if len(digits) != width or any(
                d not in "0123456789abcdefABCDEF" for d in digits
            ):
                raise error(f"incomplete escape \\{ch}{digits}", start)
            self.pos += width
            code = int(digits, 16)
            if code > 0x10FFFF:
                raise error(f"bad escape \\{ch}{digits}", start)
            return chr(code)
        if ch.isascii() and ch.isalnum():
            raise error(f"bad escape \\{ch}", start)
        return ch

    def _parse_class(self, start: int) -> Any:
        negated = False
        chars: set[str] = set()
        ranges: list[tuple[str, str]] = []
        categories: list[str] = []
        if self._peek() == "^":
            self._next()
            negated = True
        first = True
        while True:
            ch = self._peek()
            if ch is None:
                raise error("unterminated character set", start)
            if ch == "]" and not first:
                self._next()
                break
            first = False
            item_start = self.pos
            item = self._class_item()
            if isinstance(item, tuple):
                categories.append(item[1])
                continue
            if self._peek() == "-" and self.pattern[self.pos + 1 : self.pos + 2] not in ("]", ""):
                self._next()
                end_item = self._class_item()
                if isinstance(end_item, tuple):
                    raise error(
                        "bad character range " + self.pattern[item_start : self.pos],
                        item_start,
                    )
                if end_item < item:
                    raise error(
                        "bad character range " + self.pattern[item_start : self.pos],
                        item_start,
                    )
                ranges.append((item, end_item))
                continue
            chars.add(item)
        return _CharClass(negated, tuple(ranges), frozenset(chars), tuple(categories))

    def _class_item(self) -> Any:
        start = self.pos
        ch = self._next()
        if ch != "\\":
            return ch
        if self._peek() is None:
            raise error("bad escape (end of pattern)", start)
        esc = self._next()
        if esc in "dDsSwW":
            return ("category", esc)
        if esc == "b":
            return "\b"
        return self._escaped_char(esc, start)


def fixed_width(node: Any) -> int | None:
    if isinstance(node, (_Empty, _Anchor, _Look)):
        return 0
    if isinstance(node, _Literal):
        return len(node.text)
    if isinstance(node, (_Any, _CharClass)):
        return 1
    if isinstance(node, _Backref):
        return None
    if isinstance(node, (_Group, _ScopedFlags)):
        return fixed_width(node.node)
    if isinstance(node, _Conditional):
        yes_width = fixed_width(node.yes)
        no_width = fixed_width(node.no)
        if yes_width is None or yes_width != no_width:
            return None
        return yes_width
    if isinstance(node, _Concat):
        total = 0
        for item in node.nodes:
            width = fixed_width(item)
            if width is None:
                return None
            total += width
        return total
    if isinstance(node, _Alt):
        widths = {fixed_width(option) for option in node.options}
        if len(widths) != 1 or None in widths:
            return None
        return widths.pop()
    if isinstance(node, _Repeat):
        width = fixed_width(node.node)
        if width is None or node.max_count is None:
            return None
        if node.min_count != node.max_count:
            return None
        return width * node.min_count
    return None


def parse(pattern: str, flags: int = 0) -> tuple[Any, int, list[tuple[str, int]], int]:
    return _Parser(pattern, flags).parse()
