"""Edge producers: feed triangulations, Voronoi diagrams and polygons into a graph.

The triangulation and tessellation themselves come from
``scipy.spatial``; this module only turns their output into
:meth:`PlanarGraph.add_line` calls.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Set, Tuple

import numpy as np
from scipy.spatial import Delaunay, Voronoi

from .models import Envelope, Point, VertexId
from .planar_graph import PlanarGraph
from .polygon import Polygon


def _as_points(points: Sequence[Point]) -> np.ndarray:
    pts = np.asarray(points, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"expected an (N, 2) array of points, got shape {pts.shape}")
    if not np.all(np.isfinite(pts)):
        raise ValueError("points must be finite")
    return pts


def delaunay_edges(points: Sequence[Point]) -> List[Tuple[Point, Point]]:
    """Unique edges of the Delaunay triangulation of *points*."""
    pts = _as_points(points)
    if len(pts) < 3:
        raise ValueError("Delaunay triangulation needs at least 3 points")
    tri = Delaunay(pts)
    coords = pts.tolist()
    pairs: Set[Tuple[int, int]] = set()
    for simplex in tri.simplices:
        for k in range(3):
            i, j = int(simplex[k]), int(simplex[(k + 1) % 3])
            pairs.add((min(i, j), max(i, j)))
    return [(tuple(coords[i]), tuple(coords[j])) for i, j in sorted(pairs)]


def add_delaunay_edges(graph: PlanarGraph, points: Sequence[Point]) -> int:
    """Insert the Delaunay triangulation of *points*; returns the edge count fed."""
    edges = delaunay_edges(points)
    for a, b in edges:
        graph.add_line(a, b)
    return len(edges)


def _clip_segment(a: Point, b: Point, rect: Envelope) -> Optional[Tuple[Point, Point]]:
    """Liang-Barsky clip of segment *ab* to *rect*."""
    x0, y0 = a
    dx, dy = b[0] - x0, b[1] - y0
    t0, t1 = 0.0, 1.0
    for p, q in (
        (-dx, x0 - rect.min_x),
        (dx, rect.max_x - x0),
        (-dy, y0 - rect.min_y),
        (dy, rect.max_y - y0),
    ):
        if p == 0.0:
            if q < 0.0:
                return None
            continue
        r = q / p
        if p < 0.0:
            t0 = max(t0, r)
        else:
            t1 = min(t1, r)
        if t0 > t1:
            return None
    return (x0 + t0 * dx, y0 + t0 * dy), (x0 + t1 * dx, y0 + t1 * dy)


def _clip_ring(ring: Sequence[Point], rect: Envelope) -> List[Point]:
    """Sutherland-Hodgman clip of *ring* against *rect*."""
    planes = (
        (lambda p: p[0] >= rect.min_x, lambda p, q: _cut_x(p, q, rect.min_x)),
        (lambda p: p[0] <= rect.max_x, lambda p, q: _cut_x(p, q, rect.max_x)),
        (lambda p: p[1] >= rect.min_y, lambda p, q: _cut_y(p, q, rect.min_y)),
        (lambda p: p[1] <= rect.max_y, lambda p, q: _cut_y(p, q, rect.max_y)),
    )
    output = list(ring)
    for inside, cut in planes:
        if not output:
            break
        source, output = output, []
        prev = source[-1]
        for cur in source:
            if inside(cur):
                if not inside(prev):
                    output.append(cut(prev, cur))
                output.append(cur)
            elif inside(prev):
                output.append(cut(prev, cur))
            prev = cur
    return output


def _cut_x(p: Point, q: Point, x: float) -> Point:
    t = (x - p[0]) / (q[0] - p[0])
    return (x, p[1] + t * (q[1] - p[1]))


def _cut_y(p: Point, q: Point, y: float) -> Point:
    t = (y - p[1]) / (q[1] - p[1])
    return (p[0] + t * (q[0] - p[0]), y)


def add_voronoi_edges(graph: PlanarGraph, points: Sequence[Point], bounds: Envelope) -> int:
    """Insert the finite Voronoi ridges of *points* clipped to *bounds*, plus the frame."""
    pts = _as_points(points)
    vor = Voronoi(pts)
    fed = 0
    for ridge in vor.ridge_vertices:
        if -1 in ridge:
            continue
        a = tuple(vor.vertices[ridge[0]])
        b = tuple(vor.vertices[ridge[1]])
        clipped = _clip_segment(a, b, bounds)
        if clipped is None:
            continue
        graph.add_line(*clipped)
        fed += 1
    for a, b in Polygon.rectangle(bounds.min_x, bounds.min_y, bounds.max_x, bounds.max_y).edges():
        graph.add_line(a, b)
        fed += 1
    return fed


def voronoi_cells(points: Sequence[Point], bounds: Envelope) -> List[Optional[Polygon]]:
    """Bounded Voronoi cell of every input point, clipped to *bounds*.

    Unbounded cells (on the convex hull) and cells clipped away
    entirely are returned as ``None``.
    """
    pts = _as_points(points)
    vor = Voronoi(pts)
    cells: List[Optional[Polygon]] = []
    for region_index in vor.point_region:
        region = vor.regions[region_index]
        if not region or -1 in region:
            cells.append(None)
            continue
        ring = _clip_ring([tuple(vor.vertices[i]) for i in region], bounds)
        try:
            cells.append(Polygon(ring) if len(ring) >= 3 else None)
        except ValueError:
            # degenerate after clipping
            cells.append(None)
    return cells


def add_polygon_edges(graph: PlanarGraph, polygon: Polygon) -> List[List[VertexId]]:
    """Insert every ring edge of *polygon*; returns the realised vertex chains."""
    return [graph.add_line(a, b) for a, b in polygon.edges()]
