"""Radix-tree HTTP request router for WSGI applications."""

__version__ = "1.0.0"

__all__ = ["methods", "patterns", "tree", "mux"]