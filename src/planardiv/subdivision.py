"""Half-edge (DCEL) maintenance on top of :class:`PlanarGraph`.

Every undirected edge is a pair of twinned half-edges. Following
``next`` from any half-edge walks one closed loop with its face on the
left. Loops are classified as

- ``NORMAL``: counter-clockwise, encloses area. These are the faces.
- ``BOUNDARY``: clockwise outer rim of a connected component.
- ``LINE``: visits both sides of every edge it touches (a tree).

Whenever a loop's half-edge set changes, the loop is rebuilt with a new
:class:`FaceId`. Listeners registered with
:meth:`PlanarSubdivision.add_listener` are told how old normal faces
map onto new ones (split, merge, rename, create, destroy) so overlays
can carry data across the churn.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .bbox_tree import BoundingBoxTree
from .config import SubdivisionConfig
from .errors import TopologyError, UnknownEdgeError, UnknownFaceError, UnknownVertexError
from .geometry import (
    PointLocation,
    angle_ccw,
    orient,
    point_in_polygon,
    segment_intersects_rect,
    signed_area,
)
from .logging_utils import get_logger
from .models import Envelope, FaceId, FaceType, Point, VertexId
from .planar_graph import PlanarGraph
from .polygon import Polygon

log = get_logger(__name__)


class HalfEdge:
    __slots__ = ("origin", "twin", "next", "previous", "face")

    def __init__(self, origin: VertexId) -> None:
        self.origin = origin
        self.twin: HalfEdge = None  # type: ignore[assignment]
        self.next: HalfEdge = None  # type: ignore[assignment]
        self.previous: HalfEdge = None  # type: ignore[assignment]
        self.face: Optional[Face] = None

    @property
    def target(self) -> VertexId:
        return self.twin.origin

    def __repr__(self) -> str:
        return f"HalfEdge({self.origin!r} -> {self.twin.origin if self.twin else '?'!r})"


@dataclass(eq=False)
class Face:
    """One closed half-edge loop. Only ``NORMAL`` loops are public faces."""

    id: FaceId
    half_edge: HalfEdge
    face_type: FaceType
    envelope: Envelope
    area: float


class FaceListener:
    """Receives face events from a :class:`PlanarSubdivision`.

    Events fire after the mutation has completed. Handlers may read the
    subdivision but must not mutate it. Override only what you need.
    """

    def on_face_split(self, old: FaceId, new1: FaceId, new2: FaceId) -> None:
        pass

    def on_faces_merged(self, old1: FaceId, old2: FaceId, new: FaceId) -> None:
        pass

    def on_face_renamed(self, old: FaceId, new: FaceId) -> None:
        pass

    def on_face_created(self, new: FaceId, container: FaceId) -> None:
        pass

    def on_face_destroyed(self, old: FaceId) -> None:
        pass


class PlanarSubdivision(PlanarGraph):
    """Planar graph that also tracks the faces its edges bound."""

    def __init__(
        self,
        epsilon: Optional[float] = None,
        config: Optional[SubdivisionConfig] = None,
    ) -> None:
        super().__init__(epsilon=epsilon, config=config)
        self._half_edges: Dict[Tuple[VertexId, VertexId], HalfEdge] = {}
        self._incident: Dict[VertexId, Optional[HalfEdge]] = {}
        self._loops: Dict[FaceId, Face] = {}
        self._loop_tree: BoundingBoxTree[Face] = BoundingBoxTree(self._config.tree_max_entries)
        self._listeners: List[FaceListener] = []

    # ═══════════════════════════════════════════════════════════════
    # Listeners
    # ═══════════════════════════════════════════════════════════════

    def add_listener(self, listener: FaceListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: FaceListener) -> None:
        self._listeners.remove(listener)

    # ═══════════════════════════════════════════════════════════════
    # Face queries
    # ═══════════════════════════════════════════════════════════════

    @property
    def num_faces(self) -> int:
        return sum(1 for f in self._loops.values() if f.face_type is FaceType.NORMAL)

    @property
    def num_groups(self) -> int:
        """Connected components that enclose area (one BOUNDARY rim each)."""
        return sum(1 for f in self._loops.values() if f.face_type is FaceType.BOUNDARY)

    @property
    def num_loops(self) -> int:
        return len(self._loops)

    def loop_counts(self) -> Dict[FaceType, int]:
        counts = {t: 0 for t in FaceType}
        for face in self._loops.values():
            counts[face.face_type] += 1
        return counts

    def faces(self) -> List[FaceId]:
        return [f.id for f in self._loops.values() if f.face_type is FaceType.NORMAL]

    def has_face(self, face_id: FaceId) -> bool:
        face = self._loops.get(face_id)
        return face is not None and face.face_type is FaceType.NORMAL

    def face_area(self, face_id: FaceId) -> float:
        return self._face(face_id).area

    def face_envelope(self, face_id: FaceId) -> Envelope:
        return self._face(face_id).envelope

    def face_at(self, point: Point) -> FaceId:
        """Smallest normal face containing *point*, else ``FaceId.EMPTY``.

        A point on an edge belongs to the smaller face that edge bounds
        when no face holds it strictly inside.
        """
        inside: Optional[Face] = None
        on_rim: Optional[Face] = None
        for face in self._loop_tree.search_point(point):
            if face.face_type is not FaceType.NORMAL:
                continue
            where = point_in_polygon(point, self._loop_points(face.half_edge))
            if where is PointLocation.INSIDE:
                if inside is None or face.area < inside.area:
                    inside = face
            elif where is PointLocation.ON:
                if on_rim is None or face.area < on_rim.area:
                    on_rim = face
        best = inside if inside is not None else on_rim
        return best.id if best is not None else FaceId.EMPTY

    def faces_in(self, rect: Envelope) -> List[FaceId]:
        """Normal faces at least partly inside *rect*."""
        result = []
        for face in self._loop_tree.search(rect):
            if face.face_type is not FaceType.NORMAL:
                continue
            if self._loop_touches_rect(face, rect):
                result.append(face.id)
        return result

    def face_left_of_edge(self, v1: VertexId, v2: VertexId) -> FaceId:
        """Face on the left of the directed edge *v1* → *v2*.

        When that side is the rim of a component (or a bare tree), the
        answer is the normal face enclosing the component, or
        ``FaceId.EMPTY``.
        """
        for v in (v1, v2):
            if not self._store.has_vertex(v):
                raise UnknownVertexError(v)
        half_edge = self._half_edges.get((v1, v2))
        if half_edge is None:
            raise UnknownEdgeError((v1, v2))
        return self._face_of_loop(half_edge.face)

    def face_left_of_segment(self, p1: Point, p2: Point) -> FaceId:
        v1 = self.vertex_at(p1)
        v2 = self.vertex_at(p2)
        if v1 is None or v2 is None:
            raise UnknownVertexError(p1 if v1 is None else p2)
        return self.face_left_of_edge(v1, v2)

    def face_vertices(self, face_id: FaceId) -> List[VertexId]:
        return [h.origin for h in self._walk(self._face(face_id).half_edge)]

    def face_contour(self, face_id: FaceId) -> List[Point]:
        """Outer boundary of the face, counter-clockwise."""
        return self._loop_points(self._face(face_id).half_edge)

    def face_holes(self, face_id: FaceId) -> List[List[Point]]:
        """Rims of the components directly inside the face (clockwise).

        Holes nested inside other holes are not included.
        """
        face = self._face(face_id)
        contour = self._loop_points(face.half_edge)
        candidates = [
            loop
            for loop in self._loop_tree.search(face.envelope)
            if loop.face_type is FaceType.BOUNDARY
            and self._points_inside(self._loop_points(loop.half_edge), contour)
        ]
        rims = [self._loop_points(loop.half_edge) for loop in candidates]
        holes = []
        for i, rim in enumerate(rims):
            nested = any(
                j != i and self._points_inside(rim, list(reversed(other)))
                for j, other in enumerate(rims)
            )
            if not nested:
                holes.append(rim)
        return holes

    def face_polygon(self, face_id: FaceId) -> Polygon:
        return Polygon(self.face_contour(face_id), self.face_holes(face_id))

    def neighbours(self, face_id: FaceId) -> List[FaceId]:
        """Normal faces across the face's outer boundary (holes excluded)."""
        face = self._face(face_id)
        result: List[FaceId] = []
        for h in self._walk(face.half_edge):
            other = h.twin.face
            if other is face or other.face_type is not FaceType.NORMAL:
                continue
            if other.id not in result:
                result.append(other.id)
        return result

    # ═══════════════════════════════════════════════════════════════
    # Face mutations
    # ═══════════════════════════════════════════════════════════════

    def merge_faces(self, face1: FaceId, face2: FaceId) -> FaceId:
        """Delete every edge shared by two adjacent faces.

        Vertices left without edges are removed. Returns the merged
        face.
        """
        f1 = self._face(face1)
        f2 = self._face(face2)
        if f1 is f2:
            raise ValueError("cannot merge a face with itself")
        shared = [(h.origin, h.target) for h in self._walk(f1.half_edge) if h.twin.face is f2]
        if not shared:
            raise ValueError(f"faces {face1!r} and {face2!r} share no edge")
        keep = next(
            (
                (h.origin, h.target)
                for h in (*self._walk(f1.half_edge), *self._walk(f2.half_edge))
                if h.twin.face is not f1 and h.twin.face is not f2
            ),
            None,
        )
        touched = set()
        for a, b in shared:
            self.delete_edge(a, b)
            touched.update((a, b))
        for v in touched:
            if self._store.degree(v) == 0:
                self.delete_vertex(v)
        if keep is None:
            # the two faces shared their whole boundary
            return FaceId.EMPTY
        merged = self.face_left_of_edge(*keep)
        log.debug("merged faces %r and %r into %r", face1, face2, merged)
        return merged

    def delete_degenerate_edges(self) -> int:
        """Remove edges that have the same loop on both sides."""
        degenerate = [
            (a, b)
            for a, b in self._store.all_edges()
            if self._half_edges[(a, b)].face is self._half_edges[(b, a)].face
        ]
        for a, b in degenerate:
            self.delete_edge(a, b)
        return len(degenerate)

    def delete_vertex_at(self, point: Point) -> bool:
        v = self.vertex_at(point)
        if v is None:
            return False
        self.delete_vertex(v)
        return True

    def delete_edge_at(self, p1: Point, p2: Point) -> bool:
        """Delete the edge between the vertices at *p1* and *p2*, if there is one."""
        a = self.vertex_at(p1)
        b = self.vertex_at(p2)
        if a is None or b is None or a == b or not self._store.has_edge(a, b):
            return False
        self.delete_edge(a, b)
        return True

    # ═══════════════════════════════════════════════════════════════
    # Integrity
    # ═══════════════════════════════════════════════════════════════

    def check_integrity(self) -> List[str]:
        """Return a list of broken DCEL invariants (empty when sound)."""
        errors: List[str] = []
        if len(self._half_edges) != 2 * self.num_edges:
            errors.append(
                f"{len(self._half_edges)} half-edges for {self.num_edges} edges"
            )
        for a, b in self._store.all_edges():
            if (a, b) not in self._half_edges or (b, a) not in self._half_edges:
                errors.append(f"edge {a!r}-{b!r} has no half-edge pair")
        for (origin, target), h in self._half_edges.items():
            if h.origin != origin or h.target != target:
                errors.append(f"{h!r} registered as {origin!r}->{target!r}")
            if h.twin.twin is not h:
                errors.append(f"{h!r}: twin.twin is not itself")
            if h.next.previous is not h or h.previous.next is not h:
                errors.append(f"{h!r}: next/previous links disagree")
            if h.next.origin != h.target:
                errors.append(f"{h!r}: next does not start at target")
            if h.face is None or self._loops.get(h.face.id) is not h.face:
                errors.append(f"{h!r}: face is not a live loop")
        for face in self._loops.values():
            try:
                loop = self._walk(face.half_edge)
            except TopologyError as exc:
                errors.append(str(exc))
                continue
            if any(h.face is not face for h in loop):
                errors.append(f"loop {face.id!r} contains half-edges of another loop")
        for v, h in self._incident.items():
            if h is None:
                if self._store.degree(v):
                    errors.append(f"vertex {v!r} has edges but no incident half-edge")
            elif h.origin != v or self._half_edges.get((v, h.target)) is not h:
                errors.append(f"vertex {v!r} has a stale incident half-edge")
            elif len(self._rotation(v)) != self._store.degree(v):
                errors.append(f"rotation around {v!r} does not match its degree")
        return errors

    # ═══════════════════════════════════════════════════════════════
    # Graph hooks
    # ═══════════════════════════════════════════════════════════════

    def _on_add_vertex(self, v: VertexId) -> None:
        self._incident[v] = None

    def _on_delete_vertex(self, v: VertexId) -> None:
        del self._incident[v]

    def _on_add_edge(self, a: VertexId, b: VertexId) -> None:
        old = self._link(a, b)
        self._replace_loops(old, [self._half_edges[(a, b)], self._half_edges[(b, a)]])

    def _on_split_edge(self, a: VertexId, b: VertexId, new: VertexId) -> None:
        h = self._half_edges.pop((a, b), None)
        if h is None:
            raise TopologyError(f"split of unknown edge {a!r}-{b!r}")
        ht = self._half_edges.pop((b, a))

        n1 = HalfEdge(new)  # new -> b
        n2 = HalfEdge(b)  # b -> new
        n1.twin, n2.twin = n2, n1

        n1.previous = h
        n1.next = h.next if h.next is not ht else n2
        n1.face = h.face
        n2.next = ht
        n2.previous = ht.previous if ht.previous is not h else n1
        n2.face = ht.face

        n1.next.previous = n1
        n2.previous.next = n2
        h.next = n1
        ht.previous = n2
        ht.origin = new

        self._half_edges[(a, new)] = h
        self._half_edges[(new, a)] = ht
        self._half_edges[(new, b)] = n1
        self._half_edges[(b, new)] = n2
        self._incident[new] = n1
        self._incident[b] = n2

    def _on_route_edge(self, a: VertexId, b: VertexId, via: VertexId) -> None:
        pos = self._store.position
        e = self._half_edges.get((a, b))
        if e is None:
            raise TopologyError(f"route of unknown edge {a!r}-{b!r}")
        # the loop on the far side from `via` only gains a vertex
        if orient(pos(a), pos(b), pos(via)) > 0:
            near, far = e.face, e.twin.face
        else:
            near, far = e.twin.face, e.face
        far_size = len(self._walk(far.half_edge))

        old, starts = self._unlink(a, b)
        old.extend(self._link(a, via))
        old.extend(self._link(via, b))
        fresh = [self._half_edges[k] for k in ((a, via), (via, a), (via, b), (b, via))]

        kept: Optional[Face] = None
        if far is not near:
            outer = fresh[1] if near is e.face else fresh[0]
            loop = self._walk(outer)
            if len(loop) == far_size + 1 and all(
                h.face is far or any(h is f for f in fresh) for h in loop
            ):
                self._refresh_loop(far, loop)
                kept = far
        old = [f for f in old if f is not kept]
        starts = [h for h in (*fresh, *starts) if kept is None or h.face is not kept]
        self._replace_loops(old, starts)

    def _on_delete_edge(self, a: VertexId, b: VertexId) -> None:
        old, starts = self._unlink(a, b)
        self._replace_loops(old, starts)

    def _check_moved(self, moved: Dict[VertexId, Point]) -> None:
        for face in self._loops.values():
            if face.face_type is FaceType.LINE:
                continue
            area = signed_area([moved[h.origin] for h in self._walk(face.half_edge)])
            if (area > 0) != (face.face_type is FaceType.NORMAL):
                raise ValueError("transform reverses the orientation of the faces")

    def _on_vertices_moved(self) -> None:
        self._loop_tree.clear()
        for face in self._loops.values():
            points = self._loop_points(face.half_edge)
            face.envelope = Envelope.of_points(points)
            face.area = abs(signed_area(points))
        self._loop_tree.bulk_load(self._loops.values())

    def _on_clear(self) -> None:
        destroyed = self.faces()
        self._half_edges.clear()
        self._incident.clear()
        self._loops.clear()
        self._loop_tree.clear()
        for face_id in destroyed:
            for listener in self._listeners:
                listener.on_face_destroyed(face_id)

    # ═══════════════════════════════════════════════════════════════
    # Internals
    # ═══════════════════════════════════════════════════════════════

    def _face(self, face_id: FaceId) -> Face:
        face = self._loops.get(face_id)
        if face is None or face.face_type is not FaceType.NORMAL:
            raise UnknownFaceError(face_id)
        return face

    def _walk(self, start: HalfEdge) -> List[HalfEdge]:
        loop = [start]
        current = start.next
        limit = self._config.max_walk_steps
        while current is not start:
            loop.append(current)
            if len(loop) > limit:
                raise TopologyError(f"face walk from {start!r} did not close within {limit} steps")
            current = current.next
        return loop

    def _rotation(self, v: VertexId) -> List[HalfEdge]:
        """Outgoing half-edges around *v*, following ``twin.next``."""
        first = self._incident.get(v)
        if first is None:
            return []
        result = [first]
        current = first.twin.next
        limit = self._config.max_vertex_degree
        while current is not first:
            result.append(current)
            if len(result) > limit:
                raise TopologyError(f"rotation around {v!r} did not close within {limit} steps")
            current = current.twin.next
        return result

    def _loop_points(self, start: HalfEdge) -> List[Point]:
        pos = self._store.position
        return [pos(h.origin) for h in self._walk(start)]

    def _find_previous_half_edge(self, origin: VertexId, target: VertexId) -> Optional[HalfEdge]:
        """Incoming half-edge at *origin* that will precede *origin* → *target*.

        That is the twin of the outgoing half-edge reached first when
        turning counter-clockwise from the new direction.
        """
        pos = self._store.position
        ox, oy = pos(origin)
        tx, ty = pos(target)
        direction = (tx - ox, ty - oy)
        best: Optional[HalfEdge] = None
        best_angle = 0.0
        for other in self._store.connected_vertices(origin):
            h = self._half_edges.get((origin, other))
            if other == target or h is None:
                continue
            px, py = pos(other)
            angle = angle_ccw(direction, (px - ox, py - oy))
            if best is None or angle < best_angle:
                best, best_angle = h, angle
        return best.twin if best is not None else None

    def _link(self, a: VertexId, b: VertexId) -> List[Face]:
        """Splice half-edges for the stored edge *ab*; returns the loops it cut into."""
        prev_a = self._find_previous_half_edge(a, b)
        prev_b = self._find_previous_half_edge(b, a)

        e = HalfEdge(a)
        t = HalfEdge(b)
        e.twin, t.twin = t, e
        e.previous = prev_a if prev_a is not None else t
        e.next = prev_b.next if prev_b is not None else t
        t.previous = prev_b if prev_b is not None else e
        t.next = prev_a.next if prev_a is not None else e

        e.previous.next = e
        t.previous.next = t
        e.next.previous = e
        t.next.previous = t

        self._half_edges[(a, b)] = e
        self._half_edges[(b, a)] = t
        self._incident[a] = e
        self._incident[b] = t
        return [p.face for p in (prev_a, prev_b) if p is not None]

    def _unlink(self, a: VertexId, b: VertexId) -> Tuple[List[Face], List[HalfEdge]]:
        """Remove the half-edges of *ab*; returns their loops and where to rewalk."""
        e = self._half_edges.pop((a, b), None)
        if e is None:
            raise TopologyError(f"delete of unknown edge {a!r}-{b!r}")
        t = self._half_edges.pop((b, a))
        old = [e.face, t.face]

        origin_dangling = e.previous is t
        target_dangling = e.next is t
        if origin_dangling:
            self._incident[a] = None
        else:
            e.previous.next = t.next
            t.next.previous = e.previous
            self._incident[a] = t.next
        if target_dangling:
            self._incident[b] = None
        else:
            t.previous.next = e.next
            e.next.previous = t.previous
            self._incident[b] = e.next

        starts = []
        if not origin_dangling:
            starts.append(e.previous)
        if not target_dangling:
            starts.append(e.next)
        return old, starts

    def _refresh_loop(self, face: Face, loop: List[HalfEdge]) -> None:
        """Keep *face* for a loop that changed shape but not identity."""
        if not self._loop_tree.delete(face):
            raise TopologyError(f"loop {face.id!r} missing from the face index")
        for h in loop:
            h.face = face
        face.half_edge = loop[0]
        points = [self._store.position(h.origin) for h in loop]
        face.envelope = Envelope.of_points(points)
        face.area = abs(signed_area(points))
        self._loop_tree.insert(face)

    def _replace_loops(self, old: Iterable[Optional[Face]], starts: Iterable[HalfEdge]) -> None:
        removed: List[Face] = []
        for face in old:
            if face is None or any(face is r for r in removed):
                continue
            removed.append(face)
            del self._loops[face.id]
            if not self._loop_tree.delete(face):
                raise TopologyError(f"loop {face.id!r} missing from the face index")

        created: List[Face] = []
        for start in starts:
            if any(start.face is c for c in created):
                continue
            created.append(self._build_loop(start))
        self._emit_events(removed, created)

    def _build_loop(self, start: HalfEdge) -> Face:
        loop = self._walk(start)
        members = set(map(id, loop))
        points = [self._store.position(h.origin) for h in loop]
        area = signed_area(points)
        if all(id(h.twin) in members for h in loop):
            face_type = FaceType.LINE
        elif area > 0:
            face_type = FaceType.NORMAL
        else:
            face_type = FaceType.BOUNDARY
        face = Face(FaceId.new(), start, face_type, Envelope.of_points(points), abs(area))
        for h in loop:
            h.face = face
        self._loops[face.id] = face
        self._loop_tree.insert(face)
        return face

    def _emit_events(self, removed: List[Face], created: List[Face]) -> None:
        old = [f.id for f in removed if f.face_type is FaceType.NORMAL]
        new = [f for f in created if f.face_type is FaceType.NORMAL]
        if not old and not new:
            return
        events: List[Callable[[FaceListener], None]] = []
        if len(old) == 1 and len(new) == 2:
            log.debug("face %r split into %r and %r", old[0], new[0].id, new[1].id)
            events.append(lambda l: l.on_face_split(old[0], new[0].id, new[1].id))
        elif len(old) == 2 and len(new) == 1:
            log.debug("faces %r and %r merged into %r", old[0], old[1], new[0].id)
            events.append(lambda l: l.on_faces_merged(old[0], old[1], new[0].id))
        elif len(old) == 1 and len(new) == 1:
            events.append(lambda l: l.on_face_renamed(old[0], new[0].id))
        else:
            for face_id in old:
                events.append(lambda l, f=face_id: l.on_face_destroyed(f))
            for face in new:
                container = self._enclosing_face(face)
                events.append(lambda l, f=face.id, c=container: l.on_face_created(f, c))
        for listener in list(self._listeners):
            for event in events:
                event(listener)

    def _face_of_loop(self, loop: Face) -> FaceId:
        if loop.face_type is FaceType.NORMAL:
            return loop.id
        return self._enclosing_face(loop)

    def _enclosing_face(self, loop: Face) -> FaceId:
        """Smallest normal face strictly containing every vertex of *loop*."""
        points = self._loop_points(loop.half_edge)
        best: Optional[Face] = None
        for face in self._loop_tree.search_point(points[0]):
            if face is loop or face.face_type is not FaceType.NORMAL:
                continue
            if best is not None and face.area >= best.area:
                continue
            if self._points_inside(points, self._loop_points(face.half_edge)):
                best = face
        return best.id if best is not None else FaceId.EMPTY

    @staticmethod
    def _points_inside(points: List[Point], ring: List[Point]) -> bool:
        return all(point_in_polygon(p, ring) is PointLocation.INSIDE for p in points)

    def _loop_touches_rect(self, face: Face, rect: Envelope) -> bool:
        points = self._loop_points(face.half_edge)
        n = len(points)
        for i in range(n):
            if segment_intersects_rect(points[i], points[(i + 1) % n], rect):
                return True
        # rect entirely inside the face
        return point_in_polygon(rect.center, points) is PointLocation.INSIDE
