"""Exception types raised by the subdivision engine.

Argument problems use the builtin ``ValueError``/``KeyError`` family so
callers can catch them the usual way; :class:`TopologyError` marks
corrupted internal state and is never caught inside the package.
"""

from __future__ import annotations


class UnknownVertexError(KeyError):
    """A vertex id that is not part of the graph."""


class UnknownEdgeError(KeyError):
    """A vertex pair that is not joined by an edge."""


class UnknownFaceError(KeyError):
    """A face id that does not name a live normal face."""


class PreconditionError(ValueError):
    """The operation is valid in general but not in the current state."""


class TopologyError(RuntimeError):
    """Internal integrity violation (unbounded walk, impossible geometry)."""
