"""Radix tree that maps routing patterns to per-method endpoints."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable

from .methods import STUB, all_methods, method_name
from .patterns import NodeType, RoutingError, longest_prefix, next_segment, param_keys


@dataclass(eq=False)
class RouteContext:
    """Routing state recorded while a request travels through routers."""

    routes: Any = None
    route_path: str = ""
    route_method: str = ""
    route_patterns: list[str] = field(default_factory=list)
    url_param_keys: list[str] = field(default_factory=list)
    url_param_values: list[str] = field(default_factory=list)
    route_pattern: str = ""
    route_param_keys: list[str] = field(default_factory=list)
    route_param_values: list[str] = field(default_factory=list)
    methods_allowed: list[int] = field(default_factory=list)
    method_not_allowed: bool = False

    def reset(self) -> None:
        """Clear all routing state so the context can be reused."""
        self.routes = None
        self.route_path = ""
        self.route_method = ""
        self.route_patterns.clear()
        self.url_param_keys.clear()
        self.url_param_values.clear()
        self.route_pattern = ""
        self.route_param_keys.clear()
        self.route_param_values.clear()
        self.methods_allowed.clear()
        self.method_not_allowed = False


@dataclass(eq=False)
class Endpoint:
    """A handler registered on a node for one method flag."""

    handler: Any = None
    pattern: str = ""
    param_keys: list[str] = field(default_factory=list)


@dataclass
class Route:
    """Routing details of one pattern; ``handlers`` is keyed by method name."""

    sub_routes: Any
    handlers: dict[str, Any]
    pattern: str


def _search_label(group: list[Node], label: str) -> Node | None:
    lo, hi = 0, len(group) - 1
    idx = 0
    while lo <= hi:
        idx = lo + (hi - lo) // 2
        current = group[idx].label
        if label > current:
            lo = idx + 1
        elif label < current:
            hi = idx - 1
        else:
            break
    found = group[idx]
    return found if found.label == label else None


def _sort_nodes(group: list[Node]) -> None:
    group.sort(key=lambda nd: nd.label)
    # Parameter nodes ending at '/' are tried last.
    for i in range(len(group) - 1, -1, -1):
        if group[i].typ > NodeType.STATIC and group[i].tail == "/":
            group[i], group[-1] = group[-1], group[i]
            return


def _method_bits(combined: int):
    for bit in range(combined.bit_length()):
        if combined >> bit & 1:
            yield 1 << bit


@dataclass(eq=False)
class Node:
    """A node of the routing radix tree."""

    typ: NodeType = NodeType.STATIC
    label: str = ""
    tail: str = ""
    prefix: str = ""
    rex: re.Pattern[str] | None = None
    endpoints: dict[int, Endpoint] | None = None
    sub_routes: Any = None
    children: list[list[Node]] = field(
        default_factory=lambda: [[] for _ in NodeType], repr=False
    )

    def insert_route(self, method: int, pattern: str, handler: Any) -> Node:
        """Register ``handler`` for ``method`` at ``pattern``; return the leaf node."""
        n: Node = self
        search = pattern
        while True:
            if not search:
                n._set_endpoint(method, handler, pattern)
                return n

            label = search[0]
            seg_tail = ""
            seg_end = 0
            seg_type = NodeType.STATIC
            seg_regexp = ""
            if label in ("{", "*"):
                segment = next_segment(search)
                seg_type, seg_regexp = segment.type, segment.regexp
                seg_tail, seg_end = segment.tail, segment.end

            prefix = seg_regexp if seg_type is NodeType.REGEXP else ""

            parent = n
            edge = n._get_edge(seg_type, label, seg_tail, prefix)

            if edge is None:
                child = Node(label=label, tail=seg_tail, prefix=search)
                leaf = parent._add_child(child, search)
                leaf._set_endpoint(method, handler, pattern)
                return leaf

            n = edge
            if n.typ > NodeType.STATIC:
                search = search[seg_end:]
                continue

            common = longest_prefix(search, n.prefix)
            if common == len(n.prefix):
                search = search[common:]
                continue

            # Split the existing static node at the common prefix.
            child = Node(typ=NodeType.STATIC, prefix=search[:common])
            parent._replace_child(search[0], seg_tail, child)

            n.label = n.prefix[common]
            n.prefix = n.prefix[common:]
            child._add_child(n, n.prefix)

            search = search[common:]
            if not search:
                child._set_endpoint(method, handler, pattern)
                return child

            subchild = Node(typ=NodeType.STATIC, label=search[0], prefix=search)
            leaf = child._add_child(subchild, search)
            leaf._set_endpoint(method, handler, pattern)
            return leaf

    def _add_child(self, child: Node, prefix: str) -> Node:
        search = prefix
        leaf = child
        segment = next_segment(search)
        start = segment.start

        if segment.type is not NodeType.STATIC:
            if segment.type is NodeType.REGEXP:
                try:
                    rex = re.compile(segment.regexp)
                except re.error as exc:
                    raise RoutingError(
                        f"invalid regexp pattern '{segment.regexp}' in route param"
                    ) from exc
                child.prefix = segment.regexp
                child.rex = rex

            if start == 0:
                child.typ = segment.type
                start = len(search) if segment.type is NodeType.CATCH_ALL else segment.end
                child.tail = segment.tail
                if start != len(search):
                    search = search[start:]
                    nn = Node(typ=NodeType.STATIC, label=search[0], prefix=search)
                    leaf = child._add_child(nn, search)
            elif start > 0:
                child.typ = NodeType.STATIC
                child.prefix = search[:start]
                child.rex = None
                search = search[start:]
                nn = Node(typ=segment.type, label=search[0], tail=segment.tail)
                leaf = child._add_child(nn, search)

        group = self.children[child.typ]
        group.append(child)
        _sort_nodes(group)
        return leaf

    def _replace_child(self, label: str, tail: str, child: Node) -> None:
        group = self.children[child.typ]
        for i, existing in enumerate(group):
            if existing.label == label and existing.tail == tail:
                child.label = label
                child.tail = tail
                group[i] = child
                return
        raise RoutingError("replacing missing child")

    def _get_edge(self, typ: NodeType, label: str, tail: str, prefix: str) -> Node | None:
        for nd in self.children[typ]:
            if nd.label == label and nd.tail == tail:
                if typ is NodeType.REGEXP and nd.prefix != prefix:
                    continue
                return nd
        return None

    def _endpoint(self, method: int) -> Endpoint:
        assert self.endpoints is not None
        return self.endpoints.setdefault(method, Endpoint())

    def _set_endpoint(self, method: int, handler: Any, pattern: str) -> None:
        if self.endpoints is None:
            self.endpoints = {}
        keys = param_keys(pattern)

        if method & STUB == STUB:
            self._endpoint(STUB).handler = handler

        everything = all_methods()
        if method & everything == everything:
            targets = [everything, *_method_bits(everything)]
        else:
            targets = [method]
        for flag in targets:
            ep = self._endpoint(flag)
            ep.handler = handler
            ep.pattern = pattern
            ep.param_keys = keys

    def find_route(
        self, rctx: RouteContext, method: int, path: str
    ) -> tuple[Node | None, dict[int, Endpoint] | None, Any]:
        """Look up ``path`` for ``method``; return (node, endpoints, handler).

        Matched parameters and the pattern are recorded on ``rctx``.
        """
        rctx.route_pattern = ""
        rctx.route_param_keys.clear()
        rctx.route_param_values.clear()

        found = self._find(rctx, method, path)
        if found is None:
            return None, None, None

        rctx.url_param_keys.extend(rctx.route_param_keys)
        rctx.url_param_values.extend(rctx.route_param_values)

        assert found.endpoints is not None
        ep = found.endpoints[method]
        if ep.pattern:
            rctx.route_pattern = ep.pattern
            rctx.route_patterns.append(ep.pattern)

        return found, found.endpoints, ep.handler

    def _accepts(self, rctx: RouteContext, method: int) -> bool:
        assert self.endpoints is not None
        ep = self.endpoints.get(method)
        if ep is not None and ep.handler is not None:
            rctx.route_param_keys.extend(ep.param_keys)
            return True
        everything = all_methods()
        rctx.methods_allowed.extend(
            flag for flag in self.endpoints if flag not in (everything, STUB)
        )
        rctx.method_not_allowed = True
        return False

    def _find(self, rctx: RouteContext, method: int, path: str) -> Node | None:
        search = path
        values = rctx.route_param_values

        for typ, group in zip(NodeType, self.children):
            if not group:
                continue

            xn: Node | None = None
            xsearch = search
            label = search[0] if search else ""

            if typ is NodeType.STATIC:
                xn = _search_label(group, label)
                if xn is None or not xsearch.startswith(xn.prefix):
                    continue
                xsearch = xsearch[len(xn.prefix):]

            elif typ in (NodeType.PARAM, NodeType.REGEXP):
                if not xsearch:
                    continue

                for xn in group:
                    p = xsearch.find(xn.tail) if xn.tail else -1
                    if p < 0:
                        if xn.tail == "/":
                            p = len(xsearch)
                        else:
                            continue
                    elif typ is NodeType.REGEXP and p == 0:
                        continue

                    if typ is NodeType.REGEXP and xn.rex is not None:
                        if not xn.rex.search(xsearch[:p]):
                            continue
                    elif "/" in xsearch[:p]:
                        continue

                    prevlen = len(values)
                    values.append(xsearch[:p])
                    xsearch = xsearch[p:]

                    if not xsearch and xn.is_leaf() and xn._accepts(rctx, method):
                        return xn

                    found = xn._find(rctx, method, xsearch)
                    if found is not None:
                        return found

                    del values[prevlen:]
                    xsearch = search

                values.append("")

            else:
                values.append(search)
                xn = group[0]
                xsearch = ""

            if xn is None:
                continue

            if not xsearch and xn.is_leaf() and xn._accepts(rctx, method):
                return xn

            found = xn._find(rctx, method, xsearch)
            if found is not None:
                return found

            if xn.typ > NodeType.STATIC and values:
                values.pop()

        return None

    def find_pattern(self, pattern: str) -> bool:
        """Return True if ``pattern`` is already present in the tree."""
        for typ, group in zip(NodeType, self.children):
            if not group:
                continue

            if typ is NodeType.CATCH_ALL:
                n: Node | None = group[0]
            else:
                n = _search_label(group, pattern[0])
            if n is None:
                continue

            if n.typ is NodeType.STATIC:
                idx = longest_prefix(pattern, n.prefix)
                if idx < len(n.prefix):
                    continue
            elif n.typ in (NodeType.PARAM, NodeType.REGEXP):
                idx = pattern.find("}") + 1
            else:
                idx = longest_prefix(pattern, "*")

            rest = pattern[idx:]
            if not rest:
                return True
            return n.find_pattern(rest)
        return False

    def routes(self) -> list[Route]:
        """Return the routes registered in the tree, one per distinct pattern."""
        result: list[Route] = []

        def visit(endpoints: dict[int, Endpoint] | None, sub_routes: Any) -> bool:
            eps = endpoints or {}
            stub = eps.get(STUB)
            if stub is not None and stub.handler is not None and sub_routes is None:
                return False

            by_pattern: dict[str, dict[int, Endpoint]] = {}
            for flag, ep in eps.items():
                if ep.pattern:
                    by_pattern.setdefault(ep.pattern, {})[flag] = ep

            everything = all_methods()
            for pattern, grouped in by_pattern.items():
                handlers: dict[str, Any] = {}
                catch_all = grouped.get(everything)
                if catch_all is not None and catch_all.handler is not None:
                    handlers["*"] = catch_all.handler
                for flag, ep in grouped.items():
                    if ep.handler is None:
                        continue
                    name = method_name(flag)
                    if name is None:
                        continue
                    handlers[name] = ep.handler
                result.append(Route(sub_routes, handlers, pattern))
            return False

        self.walk(visit)
        return result

    def walk(self, fn: Callable[[dict[int, Endpoint] | None, Any], bool]) -> bool:
        """Visit every leaf depth first; stop early when ``fn`` returns True."""
        if (self.endpoints is not None or self.sub_routes is not None) and fn(
            self.endpoints, self.sub_routes
        ):
            return True
        return any(child.walk(fn) for group in self.children for child in group)

    def is_leaf(self) -> bool:
        """Return True if the node holds endpoints."""
        return self.endpoints is not None