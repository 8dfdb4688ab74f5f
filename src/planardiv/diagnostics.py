from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, Set, Tuple

import numpy as np

from .constants import INTERSECTION_TOLERANCE
from .models import FaceType, VertexId
from .planar_graph import PlanarGraph
from .subdivision import PlanarSubdivision

Edge = Tuple[VertexId, VertexId]

# pairs tested per numpy batch
_BATCH = 200_000


@dataclass(frozen=True)
class SubdivisionStats:
    vertices: int
    edges: int
    faces: int
    boundary_loops: int
    line_loops: int
    components: int
    isolated_vertices: int
    euler: int
    min_face_area: float
    max_face_area: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def vectorized_segments_cross(a, b, c, d, tolerance: float = INTERSECTION_TOLERANCE) -> np.ndarray:
    """Row-wise proper-crossing test for ``(M, 2)`` arrays of segments *ab* and *cd*.

    Touching at an endpoint and collinear overlap both count as no
    crossing. Orientations within *tolerance* of zero, relative to the
    segment lengths, are treated as zero, and segments whose bounding
    boxes are disjoint never cross.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    c = np.asarray(c, dtype=np.float64)
    d = np.asarray(d, dtype=np.float64)
    if a.size == 0:
        return np.zeros((0,), dtype=bool)
    overlap = (
        (np.maximum(a[:, 0], b[:, 0]) >= np.minimum(c[:, 0], d[:, 0]))
        & (np.maximum(c[:, 0], d[:, 0]) >= np.minimum(a[:, 0], b[:, 0]))
        & (np.maximum(a[:, 1], b[:, 1]) >= np.minimum(c[:, 1], d[:, 1]))
        & (np.maximum(c[:, 1], d[:, 1]) >= np.minimum(a[:, 1], b[:, 1]))
    )
    ab = np.hypot(b[:, 0] - a[:, 0], b[:, 1] - a[:, 1])
    cd = np.hypot(d[:, 0] - c[:, 0], d[:, 1] - c[:, 1])
    zero = tolerance * (ab + cd) ** 2

    def sign(o):
        return np.where(np.abs(o) <= zero, 0.0, np.sign(o))

    o1 = sign((b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0]))
    o2 = sign((b[:, 0] - a[:, 0]) * (d[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (d[:, 0] - a[:, 0]))
    o3 = sign((d[:, 0] - c[:, 0]) * (a[:, 1] - c[:, 1]) - (d[:, 1] - c[:, 1]) * (a[:, 0] - c[:, 0]))
    o4 = sign((d[:, 0] - c[:, 0]) * (b[:, 1] - c[:, 1]) - (d[:, 1] - c[:, 1]) * (b[:, 0] - c[:, 0]))
    return overlap & (o1 * o2 < 0) & (o3 * o4 < 0)


def find_edge_crossings(graph: PlanarGraph) -> List[Tuple[Edge, Edge]]:
    """Every pair of edges whose open segments cross.

    Pairs sharing a vertex are skipped. Cost is quadratic in the edge
    count, so this is for tests and validation, not for hot paths.
    """
    edges = list(graph.all_edges())
    if len(edges) < 2:
        return []
    index = {v: i for i, v in enumerate(graph.vertices())}
    ends = np.array([(index[a], index[b]) for a, b in edges], dtype=np.int64)
    pts = np.array([graph.position(v) for v in index], dtype=np.float64)

    ii, jj = np.triu_indices(len(edges), k=1)
    crossings: List[Tuple[Edge, Edge]] = []
    for start in range(0, len(ii), _BATCH):
        i = ii[start:start + _BATCH]
        j = jj[start:start + _BATCH]
        ei, ej = ends[i], ends[j]
        disjoint = (
            (ei[:, 0] != ej[:, 0])
            & (ei[:, 0] != ej[:, 1])
            & (ei[:, 1] != ej[:, 0])
            & (ei[:, 1] != ej[:, 1])
        )
        i, j, ei, ej = i[disjoint], j[disjoint], ei[disjoint], ej[disjoint]
        hit = vectorized_segments_cross(pts[ei[:, 0]], pts[ei[:, 1]], pts[ej[:, 0]], pts[ej[:, 1]])
        crossings.extend((edges[x], edges[y]) for x, y in zip(i[hit].tolist(), j[hit].tolist()))
    return crossings


def connected_components(graph: PlanarGraph) -> List[Set[VertexId]]:
    seen: Set[VertexId] = set()
    components: List[Set[VertexId]] = []
    for root in graph.vertices():
        if root in seen:
            continue
        component = {root}
        stack = [root]
        while stack:
            v = stack.pop()
            for w in graph.edges_of_vertex(v):
                if w not in component:
                    component.add(w)
                    stack.append(w)
        seen |= component
        components.append(component)
    return components


def euler_characteristic(sub: PlanarSubdivision) -> int:
    """``V - E + F`` with the unbounded face counted once."""
    return sub.num_vertices - sub.num_edges + sub.num_faces + 1


def subdivision_stats(sub: PlanarSubdivision) -> SubdivisionStats:
    counts = sub.loop_counts()
    areas = [sub.face_area(f) for f in sub.faces()]
    isolated = sum(1 for v in sub.vertices() if sub.degree(v) == 0)
    return SubdivisionStats(
        vertices=sub.num_vertices,
        edges=sub.num_edges,
        faces=counts[FaceType.NORMAL],
        boundary_loops=counts[FaceType.BOUNDARY],
        line_loops=counts[FaceType.LINE],
        components=len(connected_components(sub)),
        isolated_vertices=isolated,
        euler=euler_characteristic(sub),
        min_face_area=min(areas) if areas else 0.0,
        max_face_area=max(areas) if areas else 0.0,
    )


def validate_subdivision(sub: PlanarSubdivision) -> List[str]:
    """Check crossings, DCEL links and Euler's formula. Empty list means valid."""
    errors: List[str] = []
    for (a1, b1), (a2, b2) in find_edge_crossings(sub):
        errors.append(f"edges {a1!r}-{b1!r} and {a2!r}-{b2!r} cross")
    errors.extend(sub.check_integrity())

    stats = subdivision_stats(sub)
    # each component has exactly one outer loop, or none when it is a bare vertex
    outer_loops = stats.boundary_loops + stats.line_loops + stats.isolated_vertices
    if outer_loops != stats.components:
        errors.append(
            f"{stats.components} components but {outer_loops} outer loops/isolated vertices"
        )
    expected = 1 + stats.components
    if stats.components and stats.euler != expected:
        errors.append(f"V - E + F = {stats.euler}, expected {expected}")
    return errors
