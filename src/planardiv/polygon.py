from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from .geometry import PointLocation, is_point_on_segment, point_in_polygon, signed_area
from .models import Envelope, Point

Ring = Tuple[Point, ...]


def _normalise_ring(points: Iterable[Sequence[float]], ccw: bool, what: str) -> Ring:
    ring = [(float(p[0]), float(p[1])) for p in points]
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring.pop()
    if len(ring) < 3:
        raise ValueError(f"{what} needs at least 3 points, got {len(ring)}")
    for x, y in ring:
        if math.isnan(x) or math.isnan(y) or math.isinf(x) or math.isinf(y):
            raise ValueError(f"{what} has a non-finite coordinate ({x}, {y})")
    area = signed_area(ring)
    if area == 0.0:
        raise ValueError(f"{what} has zero area")
    if (area > 0) != ccw:
        ring.reverse()
    return tuple(ring)


@dataclass(frozen=True)
class Polygon:
    """Simple polygon with optional holes.

    The outer ring is stored counter-clockwise and every hole
    clockwise, whatever order the points were given in. A repeated
    closing point is dropped.
    """

    outer: Ring
    holes: Tuple[Ring, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "outer", _normalise_ring(self.outer, True, "outer ring"))
        object.__setattr__(
            self,
            "holes",
            tuple(_normalise_ring(h, False, f"hole {i}") for i, h in enumerate(self.holes)),
        )

    @classmethod
    def rectangle(cls, min_x: float, min_y: float, max_x: float, max_y: float) -> "Polygon":
        return cls(((min_x, min_y), (max_x, min_y), (max_x, max_y), (min_x, max_y)))

    @property
    def area(self) -> float:
        return signed_area(self.outer) + sum(signed_area(h) for h in self.holes)

    def rings(self) -> List[Ring]:
        return [self.outer, *self.holes]

    def edges(self) -> List[Tuple[Point, Point]]:
        """Directed edges of the outer ring, then of each hole."""
        result = []
        for ring in self.rings():
            n = len(ring)
            result.extend((ring[i], ring[(i + 1) % n]) for i in range(n))
        return result

    def bounds(self) -> Envelope:
        return Envelope.of_points(self.outer)

    def is_on_edge(self, point: Point, eps: float = 0.0) -> bool:
        return any(is_point_on_segment(point, a, b, eps) for a, b in self.edges())

    def contains(self, point: Point, eps: float = 0.0) -> bool:
        """True when *point* is strictly inside (farther than *eps* from every ring)."""
        if point_in_polygon(point, self.outer, eps) is not PointLocation.INSIDE:
            return False
        return all(point_in_polygon(point, h, eps) is PointLocation.OUTSIDE for h in self.holes)

    def translate(self, dx: float, dy: float) -> "Polygon":
        shift = lambda ring: tuple((x + dx, y + dy) for x, y in ring)
        return Polygon(shift(self.outer), tuple(shift(h) for h in self.holes))
