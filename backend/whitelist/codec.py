"""
Parser and surgical editor for the SQF whitelist file.

The file contains one guarded block per role::

    if (_type isEqualTo 'ADMIN') then {
        _return = [
            '76561198000000001',
            '76561198000000002'
        ];
    };

Design:
- A small scanner walks the text, skipping comments (``//``, ``/* */``) and
  string literals, and tracks bracket/brace depth explicitly. A guard inside a
  comment is ignored; a nested ``]`` or ``}`` never ends a list early.
- ``parse`` is lenient: a role without a locatable list maps to ``[]``. It
  never raises for malformed content.
- ``serialize`` replaces only the text between ``[`` and ``]`` of the target
  role. Comments, headers and every other block stay byte-identical.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence
import re

from .domain import DEFAULT_REGISTRY, RoleRegistry
from .errors import InvalidIdentifierFormatError, RoleBlockMissingError


WhitelistDocument = dict[str, list[str]]

_GUARD_RE = re.compile(
    r"if\s*\(\s*_type\s+isEqualTo\s+['\"](?P<role>[^'\"\r\n]*)['\"]\s*\)\s*then\s*\{"
)
_RETURN_RE = re.compile(r"_return\s*=\s*\[")
_TOKEN_RE = re.compile(r"[0-9]+")
_OPENERS = "[{("
_CLOSERS = "]})"
_QUOTES = "'\""


def _is_ident(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _skip_literal(text: str, i: int) -> int | None:
    """Return the index just past a comment or string starting at ``i``.

    Returns None when ``text[i]`` does not open one. Unterminated literals run
    to the end of the text. SQF escapes a quote by doubling it.
    """
    ch = text[i]
    if ch in _QUOTES:
        j = i + 1
        while True:
            k = text.find(ch, j)
            if k < 0:
                return len(text)
            if text.startswith(ch, k + 1):
                j = k + 2
                continue
            return k + 1
    if text.startswith("//", i):
        k = text.find("\n", i)
        return len(text) if k < 0 else k
    if text.startswith("/*", i):
        k = text.find("*/", i + 2)
        return len(text) if k < 0 else k + 2
    return None


def _matching_bracket(text: str, start: int) -> int | None:
    """Index of the ``]`` closing a list whose body begins at ``start``."""
    depth = 0
    i, n = start, len(text)
    while i < n:
        nxt = _skip_literal(text, i)
        if nxt is not None:
            i = nxt
            continue
        ch = text[i]
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            if depth == 0:
                return i if ch == "]" else None
            depth -= 1
        i += 1
    return None


@dataclass(frozen=True)
class ListSpan:
    """Location of a role's list: ``text[body_start:body_end]`` is the body."""

    role: str
    guard_start: int
    return_start: int
    body_start: int
    body_end: int


def _find_guards(text: str) -> dict[str, re.Match[str]]:
    """First guard per role code, in file order, outside comments and strings."""
    found: dict[str, re.Match[str]] = {}
    i, n = 0, len(text)
    while i < n:
        nxt = _skip_literal(text, i)
        if nxt is not None:
            i = nxt
            continue
        if text[i] == "i" and (i == 0 or not _is_ident(text[i - 1])):
            m = _GUARD_RE.match(text, i)
            if m:
                found.setdefault(m.group("role"), m)
                i = m.end()
                continue
        i += 1
    return found


def _find_return_list(text: str, role: str, guard: re.Match[str]) -> ListSpan | None:
    """Find ``_return = [ ... ]`` directly inside the guarded block."""
    depth = 0
    i, n = guard.end(), len(text)
    while i < n:
        nxt = _skip_literal(text, i)
        if nxt is not None:
            i = nxt
            continue
        ch = text[i]
        if ch == "_" and depth == 0 and (i == 0 or not _is_ident(text[i - 1])):
            m = _RETURN_RE.match(text, i)
            if m:
                end = _matching_bracket(text, m.end())
                if end is None:
                    return None
                return ListSpan(role, guard.start(), i, m.end(), end)
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            if depth == 0:
                # block closed before any assignment
                return None
            depth -= 1
        i += 1
    return None


def _body_tokens(body: str) -> tuple[list[str], str | None]:
    """Split a list body on top-level commas with comments removed.

    Returns the raw tokens and the first quote character seen (if any).
    """
    tokens: list[str] = []
    buf: list[str] = []
    quote: str | None = None
    i, n = 0, len(body)
    while i < n:
        ch = body[i]
        if body.startswith("//", i) or body.startswith("/*", i):
            i = _skip_literal(body, i) or n
            continue
        if ch in _QUOTES:
            end = _skip_literal(body, i) or n
            quote = quote or ch
            buf.append(body[i:end])
            i = end
            continue
        if ch == ",":
            tokens.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
        i += 1
    tokens.append("".join(buf))
    return tokens, quote


def parse_list_body(body: str) -> list[str]:
    """Extract unique digit-only entries from a list body, order preserved."""
    tokens, _ = _body_tokens(body)
    out: list[str] = []
    seen: set[str] = set()
    for tok in tokens:
        value = tok.replace("'", "").replace('"', "").strip()
        if _TOKEN_RE.fullmatch(value) and value not in seen:
            seen.add(value)
            out.append(value)
    return out


def _line_indent(text: str, pos: int) -> str:
    line_start = text.rfind("\n", 0, pos) + 1
    j = line_start
    while j < pos and text[j] in " \t":
        j += 1
    return text[line_start:j]


def _indent_unit(indent: str) -> str:
    if not indent or indent[0] == "\t":
        return "\t"
    return " " * min(len(indent), 4)


def format_list_body(uids: Sequence[str], *, indent: str = "\t", quote: str = "'", newline: str = "\n") -> str:
    """Render identifiers one per line, one level deeper than ``indent``."""
    if not uids:
        return f"{newline}{indent}"
    entry_indent = indent + _indent_unit(indent)
    lines = f",{newline}".join(f"{entry_indent}{quote}{uid}{quote}" for uid in uids)
    return f"{newline}{lines}{newline}{indent}"


class WhitelistTextCodec:
    """Convert between whitelist text and a role -> identifiers mapping."""

    def __init__(self, roles: RoleRegistry | Iterable[str] = DEFAULT_REGISTRY) -> None:
        codes = roles.codes if isinstance(roles, RoleRegistry) else tuple(roles)
        self._roles: tuple[str, ...] = tuple(dict.fromkeys(codes))

    @property
    def roles(self) -> tuple[str, ...]:
        return self._roles

    def locate(self, text: str, role: str) -> ListSpan | None:
        guard = _find_guards(text).get(role)
        if guard is None:
            return None
        return _find_return_list(text, role, guard)

    def parse(self, text: str) -> WhitelistDocument:
        guards = _find_guards(text or "")
        doc: WhitelistDocument = {}
        for role in self._roles:
            guard = guards.get(role)
            span = _find_return_list(text, role, guard) if guard is not None else None
            doc[role] = parse_list_body(text[span.body_start:span.body_end]) if span else []
        return doc

    def serialize(self, text: str, role: str, uids: Sequence[str]) -> str:
        """Return ``text`` with only ``role``'s list body replaced by ``uids``.

        Raises:
            InvalidIdentifierFormatError: an entry is not a digit string.
            RoleBlockMissingError: the text has no editable list for ``role``.
        """
        for uid in uids:
            if not isinstance(uid, str) or not _TOKEN_RE.fullmatch(uid):
                raise InvalidIdentifierFormatError(f"Cannot write non-numeric entry {uid!r}.")
        span = self.locate(text, role)
        if span is None:
            raise RoleBlockMissingError(f"No whitelist block for role {role} found in the file.")
        _, quote = _body_tokens(text[span.body_start:span.body_end])
        newline = "\r\n" if "\r\n" in text else "\n"
        body = format_list_body(
            list(uids),
            indent=_line_indent(text, span.return_start),
            quote=quote or "'",
            newline=newline,
        )
        return text[:span.body_start] + body + text[span.body_end:]


def parse_whitelist(text: str, roles: RoleRegistry | Iterable[str] = DEFAULT_REGISTRY) -> WhitelistDocument:
    return WhitelistTextCodec(roles).parse(text)


def replace_role_list(text: str, role: str, uids: Sequence[str]) -> str:
    return WhitelistTextCodec([role]).serialize(text, role, uids)


__all__ = [
    "ListSpan",
    "WhitelistDocument",
    "WhitelistTextCodec",
    "format_list_body",
    "parse_list_body",
    "parse_whitelist",
    "replace_role_list",
]
