"""Planar straight-line graph with crossing-free line insertion.

:meth:`PlanarGraph.add_line` never lets two edges cross: endpoints snap
to nearby vertices or edges, existing vertices on the new segment are
threaded through, and every crossed edge is split at the crossing.

Subclasses observe structural changes through the ``_on_*`` hooks. A
split fires only :meth:`PlanarGraph._on_split_edge`, never the add or
delete hooks of the edges it replaces.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .config import SubdivisionConfig
from .edges import EdgeRecord, SpatialEdgeStore, VertexFilter, as_point
from .errors import TopologyError, UnknownEdgeError, UnknownVertexError
from .geometry import (
    distance,
    distance_point_segment,
    is_point_on_segment,
    project_point_on_segment,
    segment_intersection,
    segments_cross,
)
from .logging_utils import get_logger
from .models import Envelope, Point, VertexId

log = get_logger(__name__)

EdgeCallback = Callable[[VertexId, VertexId], None]


class PlanarGraph:
    """Vertices and non-crossing straight edges in the plane.

    *epsilon* (or ``config.epsilon``) is fixed for the lifetime of the
    graph: closer points are one vertex, and a point this close to an
    edge lies on it.
    """

    def __init__(
        self,
        epsilon: Optional[float] = None,
        config: Optional[SubdivisionConfig] = None,
    ) -> None:
        self._config = SubdivisionConfig.resolve(epsilon, config)
        self._store = SpatialEdgeStore(self._config.tree_max_entries)

    # ── properties ──────────────────────────────────────────────────

    @property
    def config(self) -> SubdivisionConfig:
        return self._config

    @property
    def epsilon(self) -> float:
        return self._config.epsilon

    @property
    def num_vertices(self) -> int:
        return self._store.num_vertices

    @property
    def num_edges(self) -> int:
        return self._store.num_edges

    def vertices(self) -> Iterator[VertexId]:
        return self._store.vertices()

    def all_edges(self) -> Iterator[Tuple[VertexId, VertexId]]:
        return self._store.all_edges()

    def position(self, v: VertexId) -> Point:
        return self._store.position(v)

    def has_vertex(self, v: VertexId) -> bool:
        return self._store.has_vertex(v)

    def degree(self, v: VertexId) -> int:
        return self._store.degree(v)

    def edges_of_vertex(self, v: VertexId) -> List[VertexId]:
        """Vertices joined to *v* by an edge."""
        return list(self._store.connected_vertices(v))

    connected_vertices = edges_of_vertex

    def is_edge_between(self, a: VertexId, b: VertexId) -> bool:
        self._require_vertex(a)
        self._require_vertex(b)
        return self._store.has_edge(a, b)

    def vertex_at(self, point: Point) -> Optional[VertexId]:
        """The vertex within epsilon of *point* (closest first), or ``None``."""
        hits = self._store.vertices_in_circle(point, self.epsilon)
        if not hits:
            return None
        return min(hits, key=lambda v: distance(point, self._store.position(v)))

    def vertices_in(self, rect: Envelope) -> List[VertexId]:
        return self._store.vertices_in(rect)

    def vertices_in_circle(self, center: Point, radius: float) -> List[VertexId]:
        return self._store.vertices_in_circle(center, radius)

    def edges_in(self, rect: Envelope) -> List[Tuple[VertexId, VertexId]]:
        return self._store.edges_in(rect)

    # ── insertion ───────────────────────────────────────────────────

    def add_vertex(self, point: Point) -> VertexId:
        """Insert an isolated point, snapping to a vertex or edge within epsilon."""
        return self._get_or_add_vertex(as_point(point))

    def add_line(self, a: Point, b: Point) -> List[VertexId]:
        """Insert segment *ab* and return the vertex chain realising it.

        The chain starts at the vertex for *a*, ends at the vertex for
        *b*, and lists every vertex in between along the segment,
        whether it already existed or was created at a crossing.
        """
        pa = as_point(a)
        pb = as_point(b)
        va = self._get_or_add_vertex(pa)
        vb = self._get_or_add_vertex(pb)
        if va == vb:
            return [va]

        chain = self._vertices_on_line(va, vb)
        result: List[VertexId] = []
        for v1, v2 in zip(chain, chain[1:]):
            if v1 == v2:
                raise TopologyError(f"vertex {v1!r} appears twice on the line {pa}-{pb}")
            result.append(v1)
            if not self._store.has_edge(v1, v2):
                result.extend(self._connect(v1, v2))
        result.append(chain[-1])
        self._check_no_crossings(result)
        log.debug("add_line %s -> %s realised by %d vertices", pa, pb, len(result))
        return result

    def connect_vertices(self, a: VertexId, b: VertexId) -> List[VertexId]:
        """Join two existing vertices, splitting any edge in the way."""
        self._require_vertex(a)
        self._require_vertex(b)
        if a == b:
            raise ValueError(f"cannot connect vertex {a!r} to itself")
        return self.add_line(self._store.position(a), self._store.position(b))

    # ── deletion ────────────────────────────────────────────────────

    def delete_edge(self, a: VertexId, b: VertexId) -> None:
        self._require_vertex(a)
        self._require_vertex(b)
        if a == b:
            raise ValueError(f"no edge joins vertex {a!r} to itself")
        if not self._store.has_edge(a, b):
            raise UnknownEdgeError((a, b))
        self._store.remove_edge(a, b)
        self._on_delete_edge(a, b)

    def delete_vertex(self, v: VertexId, on_edge_removed: Optional[EdgeCallback] = None) -> None:
        """Delete *v* and every edge touching it.

        *on_edge_removed* is called with ``(v, neighbour)`` after each
        edge is gone.
        """
        self._require_vertex(v)
        for other in list(self._store.connected_vertices(v)):
            self._store.remove_edge(v, other)
            self._on_delete_edge(v, other)
            if on_edge_removed is not None:
                on_edge_removed(v, other)
        self._store.remove_vertex(v)
        self._on_delete_vertex(v)

    def delete_vertices_without_edges(self) -> int:
        isolated = [v for v in self._store.vertices() if self._store.degree(v) == 0]
        for v in isolated:
            self.delete_vertex(v)
        return len(isolated)

    def clear(self) -> None:
        self._store.clear()
        self._on_clear()

    # ── whole-graph operations ──────────────────────────────────────

    def transform_vertices(self, f: Callable[[Point], Point]) -> None:
        """Move every vertex to ``f(position)``.

        The mapping must preserve planarity (no edge may end up crossing
        another); affine maps with positive determinant always do. New
        positions are computed and checked before any is stored.
        """
        self._move_vertices(self._store.moved_positions(f))

    def affine_transform(self, matrix) -> None:
        self._move_vertices(self._store.affine_positions(matrix))

    def _move_vertices(self, moved: Dict[VertexId, Point]) -> None:
        self._check_moved(moved)
        self._store.set_positions(moved)
        self._on_vertices_moved()

    def deep_copy(
        self, preserve_ids: bool = True, vertex_filter: Optional[VertexFilter] = None
    ) -> "PlanarGraph":
        copy, _ = self.deep_copy_with_mapping(preserve_ids, vertex_filter)
        return copy

    def deep_copy_with_mapping(
        self, preserve_ids: bool, vertex_filter: Optional[VertexFilter]
    ) -> Tuple["PlanarGraph", Dict[VertexId, VertexId]]:
        copy = self._empty_copy()
        mapping: Dict[VertexId, VertexId] = {}
        for v in self._store.vertices():
            if vertex_filter is not None and not vertex_filter(v):
                continue
            new_id = copy._store.add_vertex(
                self._store.position(v), v if preserve_ids else None
            )
            mapping[v] = new_id
            copy._on_add_vertex(new_id)
        for a, b in self._store.all_edges():
            if a in mapping and b in mapping:
                copy._store.add_edge(mapping[a], mapping[b])
                copy._on_add_edge(mapping[a], mapping[b])
        return copy, mapping

    @classmethod
    def from_vertices_and_edges(
        cls,
        vertices: Dict[VertexId, Point],
        edges: Iterable[Tuple[VertexId, VertexId]],
        epsilon: Optional[float] = None,
        config: Optional[SubdivisionConfig] = None,
    ):
        """Rebuild a graph from stored ids, positions and edges.

        The input is trusted to be planar already (no snapping or
        splitting happens); use :func:`planardiv.diagnostics.validate_subdivision`
        on untrusted data.
        """
        graph = cls(epsilon=epsilon, config=config)
        points = {v: as_point(p) for v, p in vertices.items()}
        for v, p in points.items():
            graph._store.add_vertex(p, v)
            graph._on_add_vertex(v)
        for a, b in edges:
            graph._store.add_edge(a, b)
            graph._on_add_edge(a, b)
        return graph

    def _empty_copy(self) -> "PlanarGraph":
        return type(self)(config=self._config)

    # ── hooks ───────────────────────────────────────────────────────

    def _on_add_vertex(self, v: VertexId) -> None:
        pass

    def _on_add_edge(self, a: VertexId, b: VertexId) -> None:
        pass

    def _on_split_edge(self, a: VertexId, b: VertexId, new: VertexId) -> None:
        pass

    def _on_delete_vertex(self, v: VertexId) -> None:
        pass

    def _on_delete_edge(self, a: VertexId, b: VertexId) -> None:
        pass

    def _on_route_edge(self, a: VertexId, b: VertexId, via: VertexId) -> None:
        pass

    def _check_moved(self, moved: Dict[VertexId, Point]) -> None:
        pass

    def _on_vertices_moved(self) -> None:
        pass

    def _on_clear(self) -> None:
        pass

    # ── internals ───────────────────────────────────────────────────

    def _require_vertex(self, v: VertexId) -> None:
        if not self._store.has_vertex(v):
            raise UnknownVertexError(v)

    def _rect_around(self, pa: Point, pb: Point) -> Envelope:
        return Envelope.of_points((pa, pb)).grow(2.0 * self.epsilon)

    def _get_or_add_vertex(self, point: Point) -> VertexId:
        existing = self.vertex_at(point)
        if existing is not None:
            return existing

        pos = self._store.position
        best: Optional[EdgeRecord] = None
        best_dist = self.epsilon
        for record in self._store.edge_records_in(Envelope.around(point, self.epsilon)):
            d = distance_point_segment(point, pos(record.a), pos(record.b))
            if d <= best_dist:
                best, best_dist = record, d
        if best is not None:
            return self._split_edge(best, point)

        v = self._store.add_vertex(point)
        self._on_add_vertex(v)
        return v

    def _vertices_on_line(self, start: VertexId, end: VertexId) -> List[VertexId]:
        pos = self._store.position
        pa, pb = pos(start), pos(end)
        on_line = [
            v
            for v in self._store.vertices_in(self._rect_around(pa, pb))
            if v != start and v != end and is_point_on_segment(pos(v), pa, pb, self.epsilon)
        ]
        on_line.sort(key=lambda v: distance(pa, pos(v)))
        return [start, *on_line, end]

    def _connect(self, v1: VertexId, v2: VertexId) -> List[VertexId]:
        """Edge chain from *v1* to *v2*; returns the vertices passed on the way.

        Each step lays the segment from the running vertex to the first
        obstacle on the way to *v2*, so a step that bends off the ideal
        line is still checked against everything it passes.
        """
        passed: List[VertexId] = []
        current = v1
        limit = self._config.max_walk_steps
        for _ in range(limit):
            stop = self._next_stop(current, v2)
            if stop == current:
                continue
            if stop == v1 or stop in passed:
                raise TopologyError(f"line {v1!r}-{v2!r} runs back through {stop!r}")
            self._add_edge(current, stop)
            if stop == v2:
                return passed
            passed.append(stop)
            current = stop
        raise TopologyError(f"line {v1!r}-{v2!r} did not close within {limit} steps")

    def _next_stop(self, current: VertexId, target: VertexId) -> VertexId:
        """First vertex the segment *current* → *target* runs into.

        Returns *target* when the way is clear. Returns *current* when an
        edge passing within epsilon of either end was bent through it
        first; the caller then looks again.
        """
        pos = self._store.position
        p1, p2 = pos(current), pos(target)
        rect = self._rect_around(p1, p2)
        ends = (current, target)

        best_dist = math.inf
        best_vertex: Optional[VertexId] = None
        best_hit: Optional[Tuple[EdgeRecord, Point]] = None
        for v in self._store.vertices_in(rect):
            if v in ends or not is_point_on_segment(pos(v), p1, p2, self.epsilon):
                continue
            d = distance(p1, project_point_on_segment(pos(v), p1, p2))
            if d < best_dist:
                best_dist, best_vertex = d, v
        for record in self._store.edge_records_in(rect):
            if record.a in ends or record.b in ends:
                continue
            point = segment_intersection(p1, p2, pos(record.a), pos(record.b))
            if point is None:
                continue
            d = distance(p1, point)
            if d < best_dist:
                best_dist, best_vertex, best_hit = d, None, (record, point)

        if best_hit is None:
            return best_vertex if best_vertex is not None else target
        record, point = best_hit
        vertex = self.vertex_at(point)
        if vertex is None:
            return self._split_edge(record, point)
        if vertex == record.a or vertex == record.b:
            return vertex
        self._route_edge(record, vertex)
        return current if vertex in ends else vertex

    def _check_no_crossings(self, chain: List[VertexId]) -> None:
        """Raise if an edge at any vertex of *chain* crosses another edge."""
        pos = self._store.position
        for v in chain:
            for w in self._store.connected_vertices(v):
                p1, p2 = pos(v), pos(w)
                for record in self._store.edge_records_in(Envelope.of_points((p1, p2))):
                    if record.a in (v, w) or record.b in (v, w):
                        continue
                    if segments_cross(p1, p2, pos(record.a), pos(record.b)):
                        raise TopologyError(
                            f"edge {v!r}-{w!r} crosses {record.a!r}-{record.b!r} "
                            f"within epsilon {self.epsilon}"
                        )

    def _add_edge(self, a: VertexId, b: VertexId) -> None:
        if a == b or self._store.has_edge(a, b):
            return
        self._store.add_edge(a, b)
        self._on_add_edge(a, b)

    def _split_edge(self, record: EdgeRecord, point: Point) -> VertexId:
        a, b = record.a, record.b
        pos = self._store.position
        on_edge = project_point_on_segment(point, pos(a), pos(b))
        new = self._store.add_vertex(on_edge)
        self._store.remove_edge(a, b)
        self._store.add_edge(a, new)
        self._store.add_edge(new, b)
        self._on_split_edge(a, b, new)
        log.debug("split edge %r-%r at %s", a, b, on_edge)
        return new

    def _route_edge(self, record: EdgeRecord, via: VertexId) -> None:
        """Bend the edge of *record* through *via*, a vertex within epsilon of it."""
        a, b = record.a, record.b
        if self._store.has_edge(a, via) or self._store.has_edge(via, b):
            self.delete_edge(a, b)
            self._add_edge(a, via)
            self._add_edge(via, b)
        else:
            isolated = self._store.degree(via) == 0
            self._store.remove_edge(a, b)
            self._store.add_edge(a, via)
            self._store.add_edge(via, b)
            if isolated:
                self._on_split_edge(a, b, via)
            else:
                self._on_route_edge(a, b, via)
        log.debug("routed edge %r-%r through %r", a, b, via)
