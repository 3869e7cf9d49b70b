"""
trainerhub/gateway/select.py

Parser for the column/embed selection strings understood by the hosted backend:

    *, trainer:profiles!trainer_id(id, full_name), likes(id, user_id)

An embed is ``[alias:]table[!hint](selection)``. The REST gateway forwards the
string as-is (whitespace removed); the in-memory gateway uses the parsed tree
to project rows and resolve joins.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Embed:
    table: str
    alias: Optional[str]
    hint: Optional[str]
    selection: "Selection"

    @property
    def key(self) -> str:
        return self.alias or self.table


@dataclass(frozen=True)
class Selection:
    columns: Tuple[str, ...] = ("*",)
    embeds: Tuple[Embed, ...] = field(default_factory=tuple)

    @property
    def star(self) -> bool:
        return "*" in self.columns


class SelectSyntaxError(ValueError):
    pass


def compact(text: str) -> str:
    """Strip all whitespace; the REST dialect rejects spaces inside select."""
    return "".join(text.split())


def parse_select(text: str) -> Selection:
    source = compact(text) or "*"
    selection, pos = _parse_selection(source, 0)
    if pos != len(source):
        raise SelectSyntaxError(f"Unexpected '{source[pos]}' at {pos} in select '{text}'")
    return selection


def _parse_selection(source: str, pos: int) -> Tuple[Selection, int]:
    columns: List[str] = []
    embeds: List[Embed] = []
    while pos < len(source) and source[pos] != ")":
        token, pos = _read_name(source, pos)
        alias = None
        if pos < len(source) and source[pos] == ":":
            alias = token
            token, pos = _read_name(source, pos + 1)
        hint = None
        if pos < len(source) and source[pos] == "!":
            hint, pos = _read_name(source, pos + 1)
        if pos < len(source) and source[pos] == "(":
            inner, pos = _parse_selection(source, pos + 1)
            if pos >= len(source) or source[pos] != ")":
                raise SelectSyntaxError(f"Unclosed embed '{token}' in select")
            pos += 1
            embeds.append(Embed(table=token, alias=alias, hint=hint, selection=inner))
        else:
            if alias or hint:
                raise SelectSyntaxError(f"Alias or hint without embed near '{token}'")
            columns.append(token)
        if pos < len(source) and source[pos] == ",":
            pos += 1
    return Selection(columns=tuple(columns), embeds=tuple(embeds)), pos


def _read_name(source: str, pos: int) -> Tuple[str, int]:
    start = pos
    while pos < len(source) and (source[pos].isalnum() or source[pos] in "_*"):
        pos += 1
    if start == pos:
        raise SelectSyntaxError(f"Expected a column or table name at {pos}")
    return source[start:pos], pos
