"""Core (pure) library layer.

This package is intended to be transport-agnostic and safe to import from:
- the session controller
- the reference server
- CLI entrypoints
- tests

It should not perform network I/O or other side effects at import time.
"""
