from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Iterable, Tuple

Point = Tuple[float, float]


@dataclass(frozen=True, order=True)
class VertexId:
    """Opaque vertex handle wrapping a 128-bit random token."""

    value: int

    @classmethod
    def new(cls) -> "VertexId":
        return cls(uuid.uuid4().int)

    @property
    def hex(self) -> str:
        return f"{self.value:032x}"

    @classmethod
    def from_hex(cls, text: str) -> "VertexId":
        return cls(int(text, 16))

    def __repr__(self) -> str:
        return f"VertexId({self.hex[:8]})"


@dataclass(frozen=True, order=True)
class FaceId:
    """Opaque face handle. ``FaceId.EMPTY`` means "outside all faces"."""

    value: int

    EMPTY: ClassVar["FaceId"]

    @classmethod
    def new(cls) -> "FaceId":
        value = uuid.uuid4().int
        # 0 is reserved for EMPTY
        return cls(value or 1)

    @property
    def is_empty(self) -> bool:
        return self.value == 0

    def __bool__(self) -> bool:
        return self.value != 0

    def __repr__(self) -> str:
        if self.value == 0:
            return "FaceId.EMPTY"
        return f"FaceId({format(self.value, '032x')[:8]})"


FaceId.EMPTY = FaceId(0)


class FaceType(Enum):
    """Classification of a closed half-edge loop.

    NORMAL loops enclose area counter-clockwise, BOUNDARY loops are the
    clockwise outer rim of a connected component, and LINE loops run
    along both sides of every edge they visit.
    """

    NORMAL = "normal"
    BOUNDARY = "boundary"
    LINE = "line"


@dataclass(frozen=True)
class Envelope:
    """Axis-aligned bounding rectangle (closed on every side)."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def of_point(cls, point: Point) -> "Envelope":
        return cls(point[0], point[1], point[0], point[1])

    @classmethod
    def of_points(cls, points: Iterable[Point]) -> "Envelope":
        xs = []
        ys = []
        for x, y in points:
            xs.append(x)
            ys.append(y)
        if not xs:
            raise ValueError("cannot build an envelope from no points")
        return cls(min(xs), min(ys), max(xs), max(ys))

    @classmethod
    def around(cls, center: Point, radius: float) -> "Envelope":
        if radius < 0 or math.isnan(radius):
            raise ValueError(f"radius must be non-negative, got {radius!r}")
        return cls(center[0] - radius, center[1] - radius, center[0] + radius, center[1] + radius)

    @classmethod
    def empty(cls) -> "Envelope":
        return cls(math.inf, math.inf, -math.inf, -math.inf)

    @property
    def width(self) -> float:
        return max(0.0, self.max_x - self.min_x)

    @property
    def height(self) -> float:
        return max(0.0, self.max_y - self.min_y)

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def margin(self) -> float:
        return self.width + self.height

    @property
    def center(self) -> Point:
        return ((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)

    def intersects(self, other: "Envelope") -> bool:
        return (
            other.min_x <= self.max_x
            and other.min_y <= self.max_y
            and other.max_x >= self.min_x
            and other.max_y >= self.min_y
        )

    def contains(self, other: "Envelope") -> bool:
        return (
            self.min_x <= other.min_x
            and self.min_y <= other.min_y
            and other.max_x <= self.max_x
            and other.max_y <= self.max_y
        )

    def contains_point(self, point: Point) -> bool:
        return self.min_x <= point[0] <= self.max_x and self.min_y <= point[1] <= self.max_y

    def union(self, other: "Envelope") -> "Envelope":
        return Envelope(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def intersection_area(self, other: "Envelope") -> float:
        w = min(self.max_x, other.max_x) - max(self.min_x, other.min_x)
        h = min(self.max_y, other.max_y) - max(self.min_y, other.min_y)
        return max(0.0, w) * max(0.0, h)

    def enlarged_area(self, other: "Envelope") -> float:
        return self.union(other).area

    def grow(self, margin: float) -> "Envelope":
        return Envelope(
            self.min_x - margin, self.min_y - margin, self.max_x + margin, self.max_y + margin
        )
