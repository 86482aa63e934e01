"""WSGI request multiplexer built on the routing radix tree."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Callable, Iterable

from .methods import (
    CONNECT,
    DELETE,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    STUB,
    TRACE,
    all_methods,
    method_flag,
    method_name,
)
from .patterns import RoutingError
from .tree import Node, Route, RouteContext

ROUTE_CONTEXT_KEY = "radixmux.route_context"

App = Callable[[dict, Callable], Iterable[bytes]]
Middleware = Callable[[App], App]


def _status_line(code: int) -> str:
    try:
        return f"{code} {HTTPStatus(code).phrase}"
    except ValueError:
        return str(code)


def _chain(middlewares: list[Middleware], endpoint: App) -> App:
    handler = endpoint
    for middleware in reversed(middlewares):
        handler = middleware(handler)
    return handler


class _ChainHandler:
    """An endpoint wrapped by a fixed list of middlewares."""

    def __init__(self, middlewares: list[Middleware], endpoint: App) -> None:
        self.middlewares = list(middlewares)
        self.endpoint = endpoint
        self._chained = _chain(self.middlewares, endpoint)

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        return self._chained(environ, start_response)


def _default_not_found(environ: dict, start_response: Callable) -> Iterable[bytes]:
    start_response(
        _status_line(404),
        [
            ("Content-Type", "text/plain; charset=utf-8"),
            ("X-Content-Type-Options", "nosniff"),
        ],
    )
    return [b"404 page not found\n"]


def _default_method_not_allowed(*methods_allowed: int) -> App:
    def handler(environ: dict, start_response: Callable) -> Iterable[bytes]:
        headers = [("Allow", method_name(flag) or "") for flag in methods_allowed]
        start_response(_status_line(405), headers)
        return [b""]

    return handler


def _is_routes(obj: Any) -> bool:
    return all(callable(getattr(obj, name, None)) for name in ("routes", "middlewares", "match"))


def route_context(environ: dict) -> RouteContext | None:
    """Return the routing context stored in a WSGI environ, if any."""
    return environ.get(ROUTE_CONTEXT_KEY)


def url_param(environ: dict, key: str) -> str:
    """Return the URL parameter ``key`` of the request, or "" if absent."""
    rctx = route_context(environ)
    if rctx is None:
        return ""
    pairs = list(zip(rctx.url_param_keys, rctx.url_param_values))
    for name, value in reversed(pairs):
        if name == key:
            return value
    return ""


class Mux:
    """A WSGI application that routes requests through a radix tree."""

    def __init__(self) -> None:
        self._handler: App | None = None
        self._tree = Node()
        self._method_not_allowed: App | None = None
        self._parent: Mux | None = None
        self._not_found: App | None = None
        self._middlewares: list[Middleware] = []
        self._inline = False

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        if self._handler is None:
            return self.not_found_handler()(environ, start_response)
        if environ.get(ROUTE_CONTEXT_KEY) is not None:
            return self._handler(environ, start_response)
        rctx = RouteContext(routes=self)
        environ = {**environ, ROUTE_CONTEXT_KEY: rctx}
        return self._handler(environ, start_response)

    def use(self, *args: Middleware) -> None:
        """Append middlewares; they must all be added before any route."""
        if self._handler is not None:
            raise RoutingError("all middlewares must be defined before routes on a mux")
        self._middlewares.extend(args)

    def handle(self, pattern: str, handler: App) -> None:
        """Route ``pattern`` for every method to ``handler``."""
        self._handle(all_methods(), pattern, handler)

    def method(self, method: str, pattern: str, handler: App) -> None:
        """Route ``pattern`` for the named method to ``handler``."""
        flag = method_flag(method.upper())
        if flag is None:
            raise RoutingError(f"'{method}' http method is not supported.")
        self._handle(flag, pattern, handler)

    def connect(self, pattern: str, handler: App) -> None:
        self._handle(CONNECT, pattern, handler)

    def delete(self, pattern: str, handler: App) -> None:
        self._handle(DELETE, pattern, handler)

    def get(self, pattern: str, handler: App) -> None:
        self._handle(GET, pattern, handler)

    def head(self, pattern: str, handler: App) -> None:
        self._handle(HEAD, pattern, handler)

    def options(self, pattern: str, handler: App) -> None:
        self._handle(OPTIONS, pattern, handler)

    def patch(self, pattern: str, handler: App) -> None:
        self._handle(PATCH, pattern, handler)

    def post(self, pattern: str, handler: App) -> None:
        self._handle(POST, pattern, handler)

    def put(self, pattern: str, handler: App) -> None:
        self._handle(PUT, pattern, handler)

    def trace(self, pattern: str, handler: App) -> None:
        self._handle(TRACE, pattern, handler)

    def not_found(self, handler: App) -> None:
        """Set the handler for paths that match no route."""
        target, fn = self, handler
        if self._inline and self._parent is not None:
            target = self._parent
            fn = _ChainHandler(self._middlewares, handler)
        target._not_found = fn

        def update(sub: Mux) -> None:
            if sub._not_found is None:
                sub.not_found(fn)

        target._update_sub_routes(update)

    def method_not_allowed(self, handler: App) -> None:
        """Set the handler for routes that lack the requested method."""
        target, fn = self, handler
        if self._inline and self._parent is not None:
            target = self._parent
            fn = _ChainHandler(self._middlewares, handler)
        target._method_not_allowed = fn

        def update(sub: Mux) -> None:
            if sub._method_not_allowed is None:
                sub.method_not_allowed(fn)

        target._update_sub_routes(update)

    def with_(self, *args: Middleware) -> Mux:
        """Return an inline router that adds ``args`` to its endpoints."""
        if not self._inline and self._handler is None:
            self._update_route_handler()
        mws = list(self._middlewares) if self._inline else []
        mws.extend(args)
        inline = Mux()
        inline._inline = True
        inline._parent = self
        inline._tree = self._tree
        inline._middlewares = mws
        inline._not_found = self._not_found
        inline._method_not_allowed = self._method_not_allowed
        return inline

    def group(self, fn: Callable[[Mux], Any] | None) -> Mux:
        """Create an inline router with a fresh middleware stack and pass it to ``fn``."""
        inline = self.with_()
        if fn is not None:
            fn(inline)
        return inline

    def route(self, pattern: str, fn: Callable[[Mux], Any] | None) -> Mux:
        """Build a new subrouter with ``fn`` and mount it at ``pattern``."""
        if fn is None:
            raise RoutingError(f"attempting to Route() a nil subrouter on '{pattern}'")
        sub = Mux()
        fn(sub)
        self.mount(pattern, sub)
        return sub

    def mount(self, pattern: str, handler: App) -> None:
        """Attach ``handler`` as a subrouter below ``pattern``."""
        if handler is None:
            raise RoutingError(f"attempting to Mount() a nil handler on '{pattern}'")
        if self._tree.find_pattern(pattern + "*") or self._tree.find_pattern(pattern + "/*"):
            raise RoutingError(
                f"attempting to Mount() a handler on an existing path, '{pattern}'"
            )

        if isinstance(handler, Mux):
            if handler._not_found is None and self._not_found is not None:
                handler.not_found(self._not_found)
            if handler._method_not_allowed is None and self._method_not_allowed is not None:
                handler.method_not_allowed(self._method_not_allowed)

        def mount_handler(environ: dict, start_response: Callable) -> Iterable[bytes]:
            rctx = route_context(environ)
            rctx.route_path = self._next_route_path(rctx)
            keys, values = rctx.url_param_keys, rctx.url_param_values
            last = len(keys) - 1
            if last >= 0 and keys[last] == "*" and len(values) > last:
                values[last] = ""
            return handler(environ, start_response)

        everything = all_methods()
        if not pattern or not pattern.endswith("/"):
            self._handle(everything | STUB, pattern, mount_handler)
            self._handle(everything | STUB, pattern + "/", mount_handler)
            pattern += "/"

        is_routes = _is_routes(handler)
        method = everything | STUB if is_routes else everything
        node = self._handle(method, pattern + "*", mount_handler)
        if is_routes:
            node.sub_routes = handler

    def routes(self) -> list[Route]:
        """Return the routes registered on this router."""
        return self._tree.routes()

    def middlewares(self) -> list[Middleware]:
        """Return the middleware stack."""
        return self._middlewares

    def match(self, rctx: RouteContext, method: str, path: str) -> bool:
        """Return True if a handler exists for ``method`` and ``path``."""
        flag = method_flag(method)
        if flag is None:
            return False
        node, _, handler = self._tree.find_route(rctx, flag, path)
        if node is not None and node.sub_routes is not None:
            rctx.route_path = self._next_route_path(rctx)
            return node.sub_routes.match(rctx, method, rctx.route_path)
        return handler is not None

    def not_found_handler(self) -> App:
        """Return the handler used when no route matches."""
        return self._not_found or _default_not_found

    def method_not_allowed_handler(self, *args: int) -> App:
        """Return the handler used when a route lacks the method."""
        if self._method_not_allowed is not None:
            return self._method_not_allowed
        return _default_method_not_allowed(*args)

    def _handle(self, method: int, pattern: str, handler: App) -> Node:
        if not pattern or pattern[0] != "/":
            raise RoutingError(f"routing pattern must begin with '/' in '{pattern}'")
        if not self._inline and self._handler is None:
            self._update_route_handler()
        if self._inline:
            self._handler = self._route_http
            endpoint: App = _ChainHandler(self._middlewares, handler)
        else:
            endpoint = handler
        return self._tree.insert_route(method, pattern, endpoint)

    def _route_http(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        rctx: RouteContext = environ[ROUTE_CONTEXT_KEY]
        route_path = rctx.route_path or environ.get("PATH_INFO", "") or "/"
        if not rctx.route_method:
            rctx.route_method = environ.get("REQUEST_METHOD", "")
        flag = method_flag(rctx.route_method)
        if flag is None:
            return self.method_not_allowed_handler()(environ, start_response)
        _, _, handler = self._tree.find_route(rctx, flag, route_path)
        if handler is not None:
            return handler(environ, start_response)
        if rctx.method_not_allowed:
            return self.method_not_allowed_handler(*rctx.methods_allowed)(
                environ, start_response
            )
        return self.not_found_handler()(environ, start_response)

    @staticmethod
    def _next_route_path(rctx: RouteContext) -> str:
        keys, values = rctx.route_param_keys, rctx.route_param_values
        last = len(keys) - 1
        if last >= 0 and keys[last] == "*" and len(values) > last:
            return "/" + values[last]
        return "/"

    def _update_sub_routes(self, fn: Callable[[Mux], None]) -> None:
        for route in self._tree.routes():
            if isinstance(route.sub_routes, Mux):
                fn(route.sub_routes)

    def _update_route_handler(self) -> None:
        self._handler = _chain(self._middlewares, self._route_http)


def walk(router: Any, walk_fn: Callable[..., Any]) -> None:
    """Call ``walk_fn(method, route, handler, *middlewares)`` for every route."""
    _walk(router, walk_fn, "", [])


def _walk(router: Any, walk_fn: Callable[..., Any], parent: str, parent_mw: list) -> None:
    for route in router.routes():
        mws = [*parent_mw, *router.middlewares()]
        if route.sub_routes is not None:
            _walk(route.sub_routes, walk_fn, parent + route.pattern, mws)
            continue
        for method, handler in route.handlers.items():
            if method == "*":
                continue
            full = (parent + route.pattern).replace("/*/", "/")
            if isinstance(handler, _ChainHandler):
                walk_fn(method, full, handler.endpoint, *mws, *handler.middlewares)
            else:
                walk_fn(method, full, handler, *mws)