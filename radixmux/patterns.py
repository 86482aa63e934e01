"""Parsing of routing patterns into static, parameter and wildcard segments."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from itertools import takewhile


class RoutingError(ValueError):
    """Raised for malformed routing patterns and invalid router setup."""


class NodeType(IntEnum):
    """Kind of a routing tree node, in matching priority order."""

    STATIC = 0  # /home
    REGEXP = 1  # /{id:[0-9]+}
    PARAM = 2  # /{user}
    CATCH_ALL = 3  # /api/v1/*


@dataclass(frozen=True)
class Segment:
    """The next dynamic segment of a pattern.

    ``tail`` is the character right after the segment ("" when there is
    none); ``start`` and ``end`` delimit the segment within the pattern.
    """

    type: NodeType
    key: str
    regexp: str
    tail: str
    start: int
    end: int


def next_segment(pattern: str) -> Segment:
    """Describe the first parameter, regexp or wildcard segment of ``pattern``.

    A wholly static pattern yields a STATIC segment spanning the pattern.
    """
    ps = pattern.find("{")
    ws = pattern.find("*")

    if ps < 0 and ws < 0:
        return Segment(NodeType.STATIC, "", "", "", 0, len(pattern))

    if ps >= 0 and ws >= 0 and ws < ps:
        raise RoutingError(
            "wildcard '*' must be the last pattern in a route, otherwise use a '{param}'"
        )

    tail = "/"

    if ps >= 0:
        node_type = NodeType.PARAM
        depth = 0
        pe = ps
        for offset, char in enumerate(pattern[ps:]):
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    pe = ps + offset
                    break
        if pe == ps:
            raise RoutingError("route param closing delimiter '}' is missing")

        key = pattern[ps + 1 : pe]
        pe += 1
        if pe < len(pattern):
            tail = pattern[pe]

        regexp = ""
        key, colon, rest = key.partition(":")
        if colon:
            node_type = NodeType.REGEXP
            regexp = rest

        if regexp:
            if not regexp.startswith("^"):
                regexp = "^" + regexp
            if not regexp.endswith("$"):
                regexp += "$"

        return Segment(node_type, key, regexp, tail, ps, pe)

    if ws < len(pattern) - 1:
        raise RoutingError(
            "wildcard '*' must be the last value in a route. "
            "trim trailing text or use a '{param}' instead"
        )
    return Segment(NodeType.CATCH_ALL, "*", "", "", ws, len(pattern))


def param_keys(pattern: str) -> list[str]:
    """Return the parameter keys of ``pattern`` in order.

    Raises RoutingError when a key appears twice.
    """
    keys: list[str] = []
    rest = pattern
    while True:
        segment = next_segment(rest)
        if segment.type is NodeType.STATIC:
            return keys
        if segment.key in keys:
            raise RoutingError(
                f"routing pattern '{pattern}' contains duplicate param key, '{segment.key}'"
            )
        keys.append(segment.key)
        rest = rest[segment.end :]


def longest_prefix(k1: str, k2: str) -> int:
    """Return the length of the common prefix of two strings."""
    return sum(1 for _ in takewhile(lambda pair: pair[0] == pair[1], zip(k1, k2)))