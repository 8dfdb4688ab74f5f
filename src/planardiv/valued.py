"""Per-face application values kept consistent across topology edits.

The subdivision knows nothing about values. :class:`FaceValues` listens
to its face events and moves values along:

- split: both halves inherit the old value
- merge: the merged face keeps a value only if both parents held an
  equal one
- rename: the value moves to the new id
- created: a face carved out of another face inherits its value
- destroyed: the value is dropped
"""

from __future__ import annotations

from typing import Dict, Generic, Iterator, List, Optional, Tuple, TypeVar, Union

from .config import SubdivisionConfig
from .edges import VertexFilter
from .errors import TopologyError, UnknownFaceError
from .geometry import midpoint
from .logging_utils import get_logger
from .models import FaceId, Point, VertexId
from .polygon import Polygon
from .subdivision import FaceListener, PlanarSubdivision

log = get_logger(__name__)

T = TypeVar("T")

_MISSING = object()


class FaceValues(FaceListener, Generic[T]):
    """``FaceId -> value`` mapping that follows face events."""

    def __init__(self) -> None:
        self._values: Dict[FaceId, T] = {}

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, face_id: object) -> bool:
        return face_id in self._values

    def __iter__(self) -> Iterator[FaceId]:
        return iter(self._values)

    def get(self, face_id: FaceId, default: Optional[T] = None) -> Optional[T]:
        return self._values.get(face_id, default)

    def set(self, face_id: FaceId, value: T) -> None:
        self._values[face_id] = value

    def remove(self, face_id: FaceId) -> bool:
        return self._values.pop(face_id, _MISSING) is not _MISSING

    def items(self) -> List[Tuple[FaceId, T]]:
        return list(self._values.items())

    def clear(self) -> None:
        self._values.clear()

    # ── events ──────────────────────────────────────────────────────

    def on_face_split(self, old: FaceId, new1: FaceId, new2: FaceId) -> None:
        value = self._values.pop(old, _MISSING)
        if value is not _MISSING:
            self._values[new1] = value
            self._values[new2] = value

    def on_faces_merged(self, old1: FaceId, old2: FaceId, new: FaceId) -> None:
        value1 = self._values.pop(old1, _MISSING)
        value2 = self._values.pop(old2, _MISSING)
        if value1 is not _MISSING and value2 is not _MISSING and value1 == value2:
            self._values[new] = value1

    def on_face_renamed(self, old: FaceId, new: FaceId) -> None:
        value = self._values.pop(old, _MISSING)
        if value is not _MISSING:
            self._values[new] = value

    def on_face_created(self, new: FaceId, container: FaceId) -> None:
        value = self._values.get(container, _MISSING)
        if value is not _MISSING:
            self._values[new] = value

    def on_face_destroyed(self, old: FaceId) -> None:
        self._values.pop(old, None)


class ValuedSubdivision(Generic[T]):
    """A :class:`PlanarSubdivision` whose faces can carry a value of type *T*.

    The wrapped subdivision is available as :attr:`subdivision` for the
    full query surface; the most common operations are forwarded.
    """

    def __init__(
        self,
        epsilon: Optional[float] = None,
        config: Optional[SubdivisionConfig] = None,
        subdivision: Optional[PlanarSubdivision] = None,
    ) -> None:
        if subdivision is None:
            subdivision = PlanarSubdivision(epsilon=epsilon, config=config)
        elif epsilon is not None or config is not None:
            raise ValueError("pass either an existing subdivision or epsilon/config")
        self._subdivision = subdivision
        self._values: FaceValues[T] = FaceValues()
        subdivision.add_listener(self._values)

    # ── forwarding ──────────────────────────────────────────────────

    @property
    def subdivision(self) -> PlanarSubdivision:
        return self._subdivision

    @property
    def epsilon(self) -> float:
        return self._subdivision.epsilon

    @property
    def num_vertices(self) -> int:
        return self._subdivision.num_vertices

    @property
    def num_edges(self) -> int:
        return self._subdivision.num_edges

    @property
    def num_faces(self) -> int:
        return self._subdivision.num_faces

    def add_line(self, a: Point, b: Point) -> List[VertexId]:
        return self._subdivision.add_line(a, b)

    def delete_edge(self, a: VertexId, b: VertexId) -> None:
        self._subdivision.delete_edge(a, b)

    def delete_vertex(self, v: VertexId) -> None:
        self._subdivision.delete_vertex(v)

    def face_at(self, point: Point) -> FaceId:
        return self._subdivision.face_at(point)

    def face_left_of_edge(self, v1: VertexId, v2: VertexId) -> FaceId:
        return self._subdivision.face_left_of_edge(v1, v2)

    def faces(self) -> List[FaceId]:
        return self._subdivision.faces()

    # ── values ──────────────────────────────────────────────────────

    def set_value(self, face_id: FaceId, value: T) -> None:
        if not self._subdivision.has_face(face_id):
            raise UnknownFaceError(face_id)
        self._values.set(face_id, value)

    def try_get_value(self, where: Union[FaceId, Point]) -> Optional[T]:
        """Value of a face given by id or by a point inside it, else ``None``."""
        if isinstance(where, FaceId):
            return self._values.get(where)
        return self.value_at(where)

    def value_at(self, point: Point) -> Optional[T]:
        face_id = self._subdivision.face_at(point)
        if face_id.is_empty:
            return None
        return self._values.get(face_id)

    def remove_value(self, face_id: FaceId) -> bool:
        return self._values.remove(face_id)

    def values(self) -> Dict[FaceId, T]:
        return dict(self._values.items())

    # ── polygon overlay ─────────────────────────────────────────────

    def add_polygon_over(self, polygon: Union[Polygon, List[Point]], value: T) -> FaceId:
        """Draw *polygon* over the current subdivision and give its inside *value*.

        Everything strictly inside the polygon (vertices and chords) is
        removed so the inside becomes a single face. Holes keep their
        contents.
        """
        if not isinstance(polygon, Polygon):
            polygon = Polygon(tuple(polygon))
        sub = self._subdivision
        eps = sub.epsilon

        first_chain: List[VertexId] = []
        for p1, p2 in polygon.edges():
            chain = sub.add_line(p1, p2)
            if not first_chain:
                first_chain = chain

        bounds = polygon.bounds().grow(eps)
        covered = [v for v in sub.vertices_in(bounds) if polygon.contains(sub.position(v), eps)]
        for v in covered:
            sub.delete_vertex(v)

        pos = sub.position
        chords = [
            (a, b)
            for a, b in sub.edges_in(bounds)
            if polygon.contains(midpoint(pos(a), pos(b)), eps)
        ]
        for a, b in chords:
            sub.delete_edge(a, b)
        log.debug(
            "polygon overlay removed %d vertices and %d chords", len(covered), len(chords)
        )

        face_id = self._inside_face(first_chain)
        self._values.set(face_id, value)
        return face_id

    def _inside_face(self, chain: List[VertexId]) -> FaceId:
        sub = self._subdivision
        for a, b in zip(chain, chain[1:]):
            if sub.has_vertex(a) and sub.has_vertex(b) and sub.is_edge_between(a, b):
                face_id = sub.face_left_of_edge(a, b)
                if face_id.is_empty:
                    break
                return face_id
        raise TopologyError("polygon interior did not form a face")

    # ── copying ─────────────────────────────────────────────────────

    def deep_copy(
        self, preserve_ids: bool = True, vertex_filter: Optional[VertexFilter] = None
    ) -> "ValuedSubdivision[T]":
        """Independent copy. Faces that survive the filter keep their values."""
        sub = self._subdivision
        copy_sub, mapping = sub.deep_copy_with_mapping(preserve_ids, vertex_filter)
        result: ValuedSubdivision[T] = ValuedSubdivision(subdivision=copy_sub)
        conflicted = set()
        for face_id, value in self._values.items():
            ring = sub.face_vertices(face_id)
            if not all(v in mapping for v in ring):
                continue
            new_face = copy_sub.face_left_of_edge(mapping[ring[0]], mapping[ring[1]])
            if new_face.is_empty or new_face in conflicted:
                continue
            existing = result._values.get(new_face, _MISSING)
            if existing is not _MISSING and existing != value:
                result._values.remove(new_face)
                conflicted.add(new_face)
                continue
            result._values.set(new_face, value)
        return result
