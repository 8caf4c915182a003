"""Path expressions over decoded JSON values.

Pulls nested values out of verified response bodies without a chain of
isinstance checks. Missing keys, out-of-range indexes and kind
mismatches yield None; only a malformed expression raises.

Grammar:
    path    := step ( "." key | "[" selector "]" )*
    key     := bare identifier (anything but '.', '[' and ']')
    selector:= integer | '"' quoted key '"' | field "=" value

Examples:
    totalBalanceIn.data[0].total
    payload.headers[name=Subject].value
    ["odd.key"].child
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Union


class JsonKind(str, Enum):
    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    NULL = "null"


def kind_of(value: Any) -> JsonKind:
    """Classify a decoded JSON value."""
    if value is None:
        return JsonKind.NULL
    # bool first: bool is a subclass of int
    if isinstance(value, bool):
        return JsonKind.BOOL
    if isinstance(value, (int, float)):
        return JsonKind.NUMBER
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, (list, tuple)):
        return JsonKind.ARRAY
    if isinstance(value, dict):
        return JsonKind.OBJECT
    raise TypeError(f"not a JSON value: {type(value).__name__}")


@dataclass(frozen=True)
class Key:
    name: str


@dataclass(frozen=True)
class Index:
    position: int


@dataclass(frozen=True)
class Match:
    """Select the first object in an array whose ``field`` equals ``value``."""

    field: str
    value: str


Step = Union[Key, Index, Match]

_INDEX_RE = re.compile(r"^-?\d+$")
_QUOTED_RE = re.compile(r'^"((?:[^"\\]|\\.)*)"$')


def _parse_selector(body: str, expr: str) -> Step:
    body = body.strip()
    if _INDEX_RE.match(body):
        return Index(int(body))
    quoted = _QUOTED_RE.match(body)
    if quoted:
        return Key(re.sub(r"\\(.)", r"\1", quoted.group(1)))
    field, sep, value = body.partition("=")
    if sep and field.strip():
        return Match(field.strip(), value.strip().strip('"'))
    raise ValueError(f"invalid selector [{body}] in path {expr!r}")


def parse_path(expr: str) -> List[Step]:
    """Parse a path expression into steps."""
    if not expr or not expr.strip():
        raise ValueError("empty path expression")

    steps: List[Step] = []
    i = 0
    n = len(expr)
    expect_key = True
    while i < n:
        ch = expr[i]
        if ch == "[":
            end = _find_close(expr, i)
            steps.append(_parse_selector(expr[i + 1:end], expr))
            i = end + 1
            expect_key = False
        elif ch == ".":
            if expect_key:
                raise ValueError(f"empty key in path {expr!r}")
            i += 1
            expect_key = True
            if i == n:
                raise ValueError(f"trailing '.' in path {expr!r}")
        elif ch == "]":
            raise ValueError(f"unbalanced ']' in path {expr!r}")
        else:
            if not expect_key:
                raise ValueError(f"missing '.' before {expr[i:]!r} in path {expr!r}")
            j = i
            while j < n and expr[j] not in ".[]":
                j += 1
            steps.append(Key(expr[i:j]))
            i = j
            expect_key = False
    return steps


def _find_close(expr: str, start: int) -> int:
    in_quote = False
    i = start + 1
    while i < len(expr):
        ch = expr[i]
        if ch == "\\" and in_quote:
            i += 2
            continue
        if ch == '"':
            in_quote = not in_quote
        elif ch == "]" and not in_quote:
            return i
        i += 1
    raise ValueError(f"unbalanced '[' in path {expr!r}")


def _scalar_text(value: Any) -> Optional[str]:
    kind = kind_of(value)
    if kind is JsonKind.STRING:
        return value
    if kind is JsonKind.BOOL:
        return "true" if value else "false"
    if kind is JsonKind.NUMBER:
        return str(value)
    if kind is JsonKind.NULL:
        return "null"
    return None


def _apply(value: Any, step: Step) -> tuple[bool, Any]:
    kind = kind_of(value)
    if isinstance(step, Key):
        if kind is JsonKind.OBJECT and step.name in value:
            return True, value[step.name]
        return False, None
    if isinstance(step, Index):
        if kind is JsonKind.ARRAY and -len(value) <= step.position < len(value):
            return True, value[step.position]
        return False, None
    if kind is not JsonKind.ARRAY:
        return False, None
    for item in value:
        if kind_of(item) is JsonKind.OBJECT and step.field in item:
            if _scalar_text(item[step.field]) == step.value:
                return True, item
    return False, None


def evaluate(value: Any, steps: List[Step]) -> Optional[Any]:
    current = value
    for step in steps:
        found, current = _apply(current, step)
        if not found:
            return None
    return current


def extract(value: Any, expr: str) -> Optional[Any]:
    """Evaluate ``expr`` against ``value``; None when the path does not resolve."""
    return evaluate(value, parse_path(expr))


def extract_from_verification(verification: Any, expr: str) -> Optional[Any]:
    """Evaluate ``expr`` against a VerificationResult's decoded response body."""
    data = verification.response_data()
    if data is None:
        return None
    return extract(data, expr)


__all__ = [
    "JsonKind",
    "kind_of",
    "Key",
    "Index",
    "Match",
    "parse_path",
    "evaluate",
    "extract",
    "extract_from_verification",
]
