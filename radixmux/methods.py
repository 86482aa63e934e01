"""HTTP method flags used to index route endpoints.

Every supported method is represented by a distinct single-bit flag so that
sets of methods can be combined with bitwise OR. The registry is shared by
the whole process; custom methods can be added with :func:`register_method`.
"""

from __future__ import annotations

STUB = 1 << 0
CONNECT = 1 << 1
DELETE = 1 << 2
GET = 1 << 3
HEAD = 1 << 4
OPTIONS = 1 << 5
PATCH = 1 << 6
POST = 1 << 7
PUT = 1 << 8
TRACE = 1 << 9

STANDARD_METHODS = (
    "CONNECT",
    "DELETE",
    "GET",
    "HEAD",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
    "TRACE",
)

# Number of bits in a machine word; the registry never grows past it.
_WORD_BITS = 64

_flags: dict[str, int] = {
    "CONNECT": CONNECT,
    "DELETE": DELETE,
    "GET": GET,
    "HEAD": HEAD,
    "OPTIONS": OPTIONS,
    "PATCH": PATCH,
    "POST": POST,
    "PUT": PUT,
    "TRACE": TRACE,
}

_all = CONNECT | DELETE | GET | HEAD | OPTIONS | PATCH | POST | PUT | TRACE


def method_flag(method: str) -> int | None:
    """Return the flag of a registered method name, or None if unknown.

    The lookup is case-sensitive, as request methods are.
    """
    return _flags.get(method)


def method_name(flag: int) -> str | None:
    """Return the method name whose flag is exactly ``flag``, or None."""
    return next((name for name, value in _flags.items() if value == flag), None)


def register_method(method: str) -> int | None:
    """Register a custom HTTP method and return its flag.

    The name is upper-cased. Registering an existing method returns its
    current flag; an empty name is ignored and gives None.
    """
    global _all
    if not method:
        return None
    method = method.upper()
    existing = _flags.get(method)
    if existing is not None:
        return existing
    count = len(_flags)
    if count > _WORD_BITS - 2:
        raise ValueError(f"max number of methods reached ({_WORD_BITS})")
    flag = 2 << count
    _flags[method] = flag
    _all |= flag
    return flag


def all_methods() -> int:
    """Return the combined flag of every registered method."""
    return _all