"""Undirected edge storage keyed by :class:`VertexId`.

:class:`EdgeStore` owns vertex positions and adjacency only.
:class:`SpatialEdgeStore` additionally keeps a point index over the
vertices and a bounding-box tree over the edges, and answers
rectangle and circle queries.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import numpy as np

from .bbox_tree import BoundingBoxTree
from .constants import DEFAULT_MAX_ENTRIES
from .errors import PreconditionError, TopologyError, UnknownEdgeError, UnknownVertexError
from .geometry import segment_intersects_rect
from .models import Envelope, Point, VertexId
from .point_index import SpatialPointIndex

VertexFilter = Callable[[VertexId], bool]


@dataclass(eq=False)
class EdgeRecord:
    """One undirected edge. Compared by identity inside the edge tree."""

    a: VertexId
    b: VertexId
    envelope: Envelope

    def other(self, v: VertexId) -> VertexId:
        return self.b if v == self.a else self.a

    @property
    def key(self) -> Tuple[VertexId, VertexId]:
        return (self.a, self.b)


def as_point(pos) -> Point:
    x, y = float(pos[0]), float(pos[1])
    if math.isnan(x) or math.isnan(y):
        raise ValueError(f"vertex position contains NaN: {pos!r}")
    if math.isinf(x) or math.isinf(y):
        raise ValueError(f"vertex position is not finite: {pos!r}")
    return (x, y)


class EdgeStore:
    """Vertices with positions plus undirected adjacency."""

    def __init__(self) -> None:
        self._positions: Dict[VertexId, Point] = {}
        self._adjacency: Dict[VertexId, Dict[VertexId, EdgeRecord]] = {}
        self._num_edges = 0

    # ── inspection ──────────────────────────────────────────────────

    @property
    def num_vertices(self) -> int:
        return len(self._positions)

    @property
    def num_edges(self) -> int:
        return self._num_edges

    def has_vertex(self, v: VertexId) -> bool:
        return v in self._positions

    def has_edge(self, a: VertexId, b: VertexId) -> bool:
        return b in self._adjacency.get(a, ())

    def position(self, v: VertexId) -> Point:
        try:
            return self._positions[v]
        except KeyError:
            raise UnknownVertexError(v) from None

    def vertices(self) -> Iterator[VertexId]:
        return iter(list(self._positions))

    def all_edges(self) -> Iterator[Tuple[VertexId, VertexId]]:
        return iter([record.key for record in self._edge_records()])

    def connected_vertices(self, v: VertexId) -> Iterator[VertexId]:
        return iter(list(self._neighbours(v)))

    def degree(self, v: VertexId) -> int:
        return len(self._neighbours(v))

    def edge_record(self, a: VertexId, b: VertexId) -> EdgeRecord:
        try:
            return self._neighbours(a)[b]
        except KeyError:
            raise UnknownEdgeError((a, b)) from None

    # ── mutation ────────────────────────────────────────────────────

    def add_vertex(self, pos: Point, vertex_id: Optional[VertexId] = None) -> VertexId:
        point = as_point(pos)
        v = vertex_id if vertex_id is not None else VertexId.new()
        if v in self._positions:
            raise ValueError(f"vertex {v!r} already exists")
        self._positions[v] = point
        self._adjacency[v] = {}
        return v

    def remove_vertex(self, v: VertexId) -> None:
        if self._neighbours(v):
            raise PreconditionError(f"vertex {v!r} still has {self.degree(v)} incident edges")
        del self._positions[v]
        del self._adjacency[v]

    def add_edge(self, a: VertexId, b: VertexId) -> EdgeRecord:
        if a == b:
            raise ValueError(f"cannot connect vertex {a!r} to itself")
        na = self._neighbours(a)
        nb = self._neighbours(b)
        if b in na:
            raise ValueError(f"edge {a!r}-{b!r} already exists")
        record = EdgeRecord(a, b, Envelope.of_points((self._positions[a], self._positions[b])))
        na[b] = record
        nb[a] = record
        self._num_edges += 1
        return record

    def remove_edge(self, a: VertexId, b: VertexId) -> EdgeRecord:
        record = self.edge_record(a, b)
        del self._adjacency[a][b]
        del self._adjacency[b][a]
        self._num_edges -= 1
        return record

    def clear(self) -> None:
        self._positions.clear()
        self._adjacency.clear()
        self._num_edges = 0

    def transform_vertices(self, f: Callable[[Point], Point]) -> None:
        """Move every vertex to ``f(position)``."""
        self.set_positions(self.moved_positions(f))

    def affine_transform(self, matrix) -> None:
        """Apply a 2x3 or 3x3 affine *matrix* to every vertex position."""
        self.set_positions(self.affine_positions(matrix))

    def moved_positions(self, f: Callable[[Point], Point]) -> Dict[VertexId, Point]:
        """New position of every vertex under *f*, without storing them."""
        return {v: as_point(f(p)) for v, p in self._positions.items()}

    def affine_positions(self, matrix) -> Dict[VertexId, Point]:
        m = np.asarray(matrix, dtype=float)
        if m.shape not in ((2, 3), (3, 3)):
            raise ValueError(f"affine matrix must be 2x3 or 3x3, got shape {m.shape}")
        if not self._positions:
            return {}
        ids = list(self._positions)
        pts = np.array([self._positions[v] for v in ids], dtype=float)
        out = pts @ m[:2, :2].T + m[:2, 2]
        if not np.all(np.isfinite(out)):
            raise ValueError("affine transform produced non-finite coordinates")
        return {v: (x, y) for v, (x, y) in zip(ids, out.tolist())}

    def set_positions(self, moved: Dict[VertexId, Point]) -> None:
        """Store precomputed positions and refresh edge envelopes and indices."""
        for v in moved:
            if v not in self._positions:
                raise UnknownVertexError(v)
        self._positions.update(moved)
        self._refresh_edges()
        self._rebuild_indices()

    def deep_copy(
        self, preserve_ids: bool = True, vertex_filter: Optional[VertexFilter] = None
    ) -> "EdgeStore":
        """Independent copy, optionally renumbered and restricted.

        Edges survive only when both endpoints pass *vertex_filter*.
        """
        copy = self._empty_copy()
        mapping: Dict[VertexId, VertexId] = {}
        for v, pos in self._positions.items():
            if vertex_filter is not None and not vertex_filter(v):
                continue
            new_id = v if preserve_ids else VertexId.new()
            mapping[v] = new_id
            copy._positions[new_id] = pos
            copy._adjacency[new_id] = {}
        for record in self._edge_records():
            if record.a in mapping and record.b in mapping:
                a, b = mapping[record.a], mapping[record.b]
                new_record = EdgeRecord(a, b, record.envelope)
                copy._adjacency[a][b] = new_record
                copy._adjacency[b][a] = new_record
                copy._num_edges += 1
        copy._rebuild_indices()
        return copy

    # ── internals ───────────────────────────────────────────────────

    def _neighbours(self, v: VertexId) -> Dict[VertexId, EdgeRecord]:
        try:
            return self._adjacency[v]
        except KeyError:
            raise UnknownVertexError(v) from None

    def _edge_records(self) -> List[EdgeRecord]:
        seen = set()
        result: List[EdgeRecord] = []
        for neighbours in self._adjacency.values():
            for record in neighbours.values():
                if id(record) not in seen:
                    seen.add(id(record))
                    result.append(record)
        return result

    def _refresh_edges(self) -> None:
        for record in self._edge_records():
            record.envelope = Envelope.of_points(
                (self._positions[record.a], self._positions[record.b])
            )

    def _empty_copy(self) -> "EdgeStore":
        return EdgeStore()

    def _rebuild_indices(self) -> None:
        pass


class SpatialEdgeStore(EdgeStore):
    """:class:`EdgeStore` with spatial queries over vertices and edges."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        super().__init__()
        self._max_entries = max_entries
        self._vertex_index: SpatialPointIndex[VertexId] = SpatialPointIndex()
        self._edge_tree: BoundingBoxTree[EdgeRecord] = BoundingBoxTree(max_entries)

    def add_vertex(self, pos: Point, vertex_id: Optional[VertexId] = None) -> VertexId:
        v = super().add_vertex(pos, vertex_id)
        self._vertex_index.insert(self._positions[v], v)
        return v

    def remove_vertex(self, v: VertexId) -> None:
        pos = self.position(v)
        super().remove_vertex(v)
        if not self._vertex_index.remove(pos, v):
            _index_desync("vertex", v)

    def add_edge(self, a: VertexId, b: VertexId) -> EdgeRecord:
        record = super().add_edge(a, b)
        self._edge_tree.insert(record)
        return record

    def remove_edge(self, a: VertexId, b: VertexId) -> EdgeRecord:
        record = super().remove_edge(a, b)
        if not self._edge_tree.delete(record):
            _index_desync("edge", record.key)
        return record

    def clear(self) -> None:
        super().clear()
        self._vertex_index.clear()
        self._edge_tree.clear()

    # ── spatial queries ─────────────────────────────────────────────

    def vertices_in(self, rect: Envelope) -> List[VertexId]:
        return self._vertex_index.query_range(rect)

    def vertices_in_circle(self, center: Point, radius: float) -> List[VertexId]:
        if radius < 0 or math.isnan(radius):
            raise ValueError(f"radius must be non-negative, got {radius!r}")
        return self._vertex_index.query_circle(center, radius)

    def nearest_vertex(self, point: Point) -> VertexId:
        return self._vertex_index.nearest(point)

    def edges_in(self, rect: Envelope) -> List[Tuple[VertexId, VertexId]]:
        """Edges whose segment touches *rect* (exact test after tree pruning)."""
        return [record.key for record in self.edge_records_in(rect)]

    def edge_records_in(self, rect: Envelope) -> List[EdgeRecord]:
        pos = self._positions
        return [
            record
            for record in self._edge_tree.search(rect)
            if segment_intersects_rect(pos[record.a], pos[record.b], rect)
        ]

    # ── internals ───────────────────────────────────────────────────

    def _empty_copy(self) -> "SpatialEdgeStore":
        return SpatialEdgeStore(self._max_entries)

    def _rebuild_indices(self) -> None:
        self._vertex_index.rebuild((p, v) for v, p in self._positions.items())
        self._edge_tree.clear()
        self._edge_tree.bulk_load(self._edge_records())


def _index_desync(kind: str, key) -> None:
    raise TopologyError(f"spatial index out of sync: {kind} {key!r} was not indexed")
