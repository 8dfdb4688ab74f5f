"""Geometric predicates on plain ``(x, y)`` tuples.

All functions are pure. Tolerances are passed explicitly; the graph
layers supply their configured epsilon.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional, Sequence

from .constants import INTERSECTION_TOLERANCE
from .models import Envelope, Point

TWO_PI = 2.0 * math.pi


class PointLocation(Enum):
    INSIDE = "inside"
    ON = "on"
    OUTSIDE = "outside"


# ═══════════════════════════════════════════════════════════════════
# Vectors
# ═══════════════════════════════════════════════════════════════════

def cross(ax: float, ay: float, bx: float, by: float) -> float:
    return ax * by - ay * bx


def orient(a: Point, b: Point, c: Point) -> float:
    """Twice the signed area of triangle *abc* (> 0 when counter-clockwise)."""
    return (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])


def distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def lerp(a: Point, b: Point, t: float) -> Point:
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


def midpoint(a: Point, b: Point) -> Point:
    return lerp(a, b, 0.5)


def angle_ccw(from_vec: Point, to_vec: Point) -> float:
    """Counter-clockwise angle from *from_vec* to *to_vec* in ``[0, 2π)``."""
    angle = math.atan2(
        cross(from_vec[0], from_vec[1], to_vec[0], to_vec[1]),
        from_vec[0] * to_vec[0] + from_vec[1] * to_vec[1],
    )
    if angle < 0.0:
        angle += TWO_PI
    if angle >= TWO_PI:
        angle = 0.0
    return angle


# ═══════════════════════════════════════════════════════════════════
# Polygons
# ═══════════════════════════════════════════════════════════════════

def signed_area(points: Sequence[Point]) -> float:
    """Shoelace area; positive for counter-clockwise rings."""
    n = len(points)
    if n < 3:
        return 0.0
    total = 0.0
    for i in range(n):
        x1, y1 = points[i]
        x2, y2 = points[(i + 1) % n]
        total += x1 * y2 - x2 * y1
    return total / 2.0


def is_clockwise(points: Sequence[Point]) -> bool:
    return signed_area(points) < 0.0


def point_in_polygon(point: Point, ring: Sequence[Point], eps: float = 0.0) -> PointLocation:
    """Locate *point* relative to the closed *ring* (either winding).

    Points within *eps* of the ring are reported as ``ON``.
    """
    n = len(ring)
    if n == 0:
        return PointLocation.OUTSIDE
    px, py = point
    for i in range(n):
        if is_point_on_segment(point, ring[i], ring[(i + 1) % n], eps):
            return PointLocation.ON
    if n < 3:
        return PointLocation.OUTSIDE

    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = ring[i]
        xj, yj = ring[j]
        if (yi > py) != (yj > py):
            x_cross = xi + (py - yi) * (xj - xi) / (yj - yi)
            if px < x_cross:
                inside = not inside
        j = i
    return PointLocation.INSIDE if inside else PointLocation.OUTSIDE


# ═══════════════════════════════════════════════════════════════════
# Segments
# ═══════════════════════════════════════════════════════════════════

def project_point_on_segment(point: Point, a: Point, b: Point) -> Point:
    """Closest point to *point* on segment *ab*."""
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return a
    t = ((point[0] - a[0]) * dx + (point[1] - a[1]) * dy) / length_sq
    t = min(1.0, max(0.0, t))
    return (a[0] + t * dx, a[1] + t * dy)


def distance_point_segment(point: Point, a: Point, b: Point) -> float:
    return distance(point, project_point_on_segment(point, a, b))


def is_point_on_segment(point: Point, a: Point, b: Point, eps: float) -> bool:
    return distance_point_segment(point, a, b) <= eps


def segment_intersection(
    p1: Point,
    p2: Point,
    q1: Point,
    q2: Point,
    tolerance: float = INTERSECTION_TOLERANCE,
) -> Optional[Point]:
    """Intersection point of segments *p1p2* and *q1q2*, or ``None``.

    Solves ``p + t·r == q + u·s``. Segments whose direction cross
    product is within *tolerance* (relative to their lengths) are
    treated as parallel; collinear overlapping segments return the
    midpoint of the overlap.
    """
    rx, ry = p2[0] - p1[0], p2[1] - p1[1]
    sx, sy = q2[0] - q1[0], q2[1] - q1[1]
    qpx, qpy = q1[0] - p1[0], q1[1] - p1[1]

    r_len = math.hypot(rx, ry)
    s_len = math.hypot(sx, sy)
    if r_len == 0.0 or s_len == 0.0:
        return None

    cross_rs = cross(rx, ry, sx, sy)
    if abs(cross_rs) <= tolerance * r_len * s_len:
        if abs(cross(qpx, qpy, rx, ry)) > tolerance * r_len * max(1.0, math.hypot(qpx, qpy)):
            return None
        r_dot_r = rx * rx + ry * ry
        t0 = (qpx * rx + qpy * ry) / r_dot_r
        t1 = t0 + (sx * rx + sy * ry) / r_dot_r
        if t1 < t0:
            t0, t1 = t1, t0
        if t0 <= 1.0 and t1 >= 0.0:
            t = (max(0.0, t0) + min(1.0, t1)) / 2.0
            return (p1[0] + t * rx, p1[1] + t * ry)
        return None

    t = cross(qpx, qpy, sx, sy) / cross_rs
    u = cross(qpx, qpy, rx, ry) / cross_rs
    if 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0:
        return (p1[0] + t * rx, p1[1] + t * ry)
    return None


def segments_cross(p1: Point, p2: Point, q1: Point, q2: Point) -> bool:
    """True when the open segments properly cross (no shared endpoint)."""
    if not Envelope.of_points((p1, p2)).intersects(Envelope.of_points((q1, q2))):
        return False
    d1 = orient(q1, q2, p1)
    d2 = orient(q1, q2, p2)
    d3 = orient(p1, p2, q1)
    d4 = orient(p1, p2, q2)
    return ((d1 > 0 > d2) or (d1 < 0 < d2)) and ((d3 > 0 > d4) or (d3 < 0 < d4))


def segment_intersects_rect(a: Point, b: Point, rect: Envelope) -> bool:
    """Exact test whether segment *ab* touches the closed rectangle."""
    if rect.contains_point(a) or rect.contains_point(b):
        return True
    seg = Envelope.of_points((a, b))
    if not seg.intersects(rect):
        return False
    corners = (
        (rect.min_x, rect.min_y),
        (rect.max_x, rect.min_y),
        (rect.max_x, rect.max_y),
        (rect.min_x, rect.max_y),
    )
    signs = [orient(a, b, c) for c in corners]
    # all corners strictly on one side of the supporting line
    if all(s > 0 for s in signs) or all(s < 0 for s in signs):
        return False
    return True
