# radixmux

A small HTTP request router for WSGI applications. It matches request paths
against a radix tree of routing patterns. It supports URL parameters,
regular-expression parameters, catch-all wildcards, per-method handlers,
middleware stacks, inline groups and mountable sub-routers.

A `radixmux.mux.Mux` is itself a WSGI application. Any WSGI server can serve
it, and it can be mounted inside another `Mux`.

## Quick look

```python
from wsgiref.simple_server import make_server

from radixmux.mux import Mux, url_param


def hello(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [f"hi {url_param(environ, 'name')}".encode()]


def articles_index(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [b"articles"]


def article(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [f"article {url_param(environ, 'id')}".encode()]


mux = Mux()
mux.get("/hello/{name}", hello)


def articles(r):
    r.get("/", articles_index)
    r.get("/{id:[0-9]+}", article)


mux.route("/articles", articles)

make_server("127.0.0.1", 8000, mux).serve_forever()
```

The router matches against the request's `PATH_INFO`. It reads the method from
`REQUEST_METHOD`.

## Routing patterns

| Pattern                 | Matches                                               |
|-------------------------|-------------------------------------------------------|
| `/users`                | the literal path                                      |
| `/users/{id}`           | one path segment, stored as the `id` parameter        |
| `/users/{id:[0-9]+}`    | a segment that fully matches the regular expression   |
| `/files/{name}.{ext}`   | parameters split by a static delimiter                |
| `/static/*`             | everything that follows, stored as the `*` parameter  |

Some patterns are rejected when they are registered, and registering them
raises `radixmux.patterns.RoutingError`, a subclass of `ValueError`:

- a pattern that does not begin with `/`;
- a wildcard `*` anywhere but at the end;
- a parameter name that appears twice in one pattern;
- a `{` without its closing `}`;
- a regular expression that does not compile.

`radixmux.patterns` also exposes the parsing helpers `next_segment`,
`param_keys` and `longest_prefix`.

## Registering handlers

- `get`, `post`, `put`, `patch`, `delete`, `head`, `options`, `connect` and
  `trace` each register a handler for one HTTP method.
- `mux.method("GET", pattern, handler)` does the same, with the method given
  as a string. The name is case-insensitive. An unknown method raises
  `RoutingError`.
- `mux.handle(pattern, handler)` registers a handler for every method.

Registering the same pattern and method again replaces the earlier handler.

`radixmux.methods.register_method` makes other methods routable:

```python
from radixmux.methods import register_method

register_method("PURGE")
mux.method("PURGE", "/cache", purge_cache)
```

The registry is shared by the whole process.

## Middleware

A middleware is a callable that takes a WSGI application and returns a WSGI
application.

```python
def add_header(app):
    def wrapped(environ, start_response):
        def start(status, headers, exc_info=None):
            return start_response(status, headers + [("X-Served-By", "radixmux")], exc_info)
        return app(environ, start)
    return wrapped


mux = Mux()
mux.use(add_header)          # must come before any route is registered
mux.get("/", index)
```

- `mux.use(*middlewares)` appends middlewares to the router's stack. Calling
  it after a route has been registered raises `RoutingError`.
- `mux.with_(*middlewares)` returns an inline router. Routes registered on it
  also run through the given middlewares.
- `mux.group(fn)` calls `fn` with a fresh inline router, which can have its own
  `use` calls.
- `mux.route(pattern, fn)` builds a new sub-router with `fn` and mounts it at
  `pattern`.
- `mux.mount(pattern, app)` attaches any WSGI application, or another `Mux`,
  under a path prefix. Mounting twice on the same prefix raises
  `RoutingError`.

## Not found and method not allowed

When no route matches, the router answers `404` with the body
`404 page not found`. When the path matches but the method does not, it
answers `405` with an empty body and one `Allow` header for each method that
the route accepts. A method that was never registered at all also gets `405`.

Both responses can be replaced:

```python
mux.not_found(my_404_app)
mux.method_not_allowed(my_405_app)
```

A custom handler is passed on to mounted sub-routers that have none of their
own. `mux.not_found_handler()` and `mux.method_not_allowed_handler()` return
the handlers currently in use.

## Inspecting routes

- `mux.routes()` lists the `radixmux.tree.Route` entries of the router's tree.
  Each has a `pattern`, a `handlers` dict keyed by method name (with `"*"` for
  a handler on every method) and `sub_routes`.
- `mux.middlewares()` returns the router's middleware stack.
- `mux.match(rctx, method, path)` reports whether a request would be routed to
  a handler, without running it. Pass a fresh `radixmux.tree.RouteContext`;
  the call fills it in.
- `radixmux.mux.walk(mux, walk_fn)` visits every route of a router and of its
  sub-routers. `walk_fn` is called as
  `walk_fn(method, route, handler, *middlewares)`.

```python
from radixmux.mux import walk


def show(method, route, handler, *middlewares):
    print(method, route)


walk(mux, show)
```

## Inside a handler

- `url_param(environ, key)` returns a URL parameter. It returns an empty
  string if the parameter is not set.
- `route_context(environ)` returns the request's `RouteContext`, or `None`
  outside a router. The context holds the URL parameters and the route
  patterns matched so far.

## The routing tree

`radixmux.tree.Node` is the radix tree itself. It can be used without a
`Mux`. `insert_route(method, pattern, handler)` takes a method flag from
`radixmux.methods` (for example `GET`). `find_route(rctx, method, path)`
returns the matched node, its endpoints and its handler.

## What it does not do

radixmux only routes. It has no server of its own; run it under a WSGI server
such as `wsgiref`. It does not parse query strings, request bodies or
cookies. It has no request or response objects: handlers are plain WSGI
applications.