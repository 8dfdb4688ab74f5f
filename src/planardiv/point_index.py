"""Mutable 2-d tree over points with attached payloads.

Nodes cut alternately on x and y by depth. Points strictly below a
node's cutting coordinate live in its left subtree, the rest (ties
included) in the right subtree. All traversals are iterative, so a
degenerate insertion order costs time but never recursion depth.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

from .errors import PreconditionError
from .models import Envelope, Point

T = TypeVar("T")


@dataclass
class _Node(Generic[T]):
    point: Point
    payload: T
    left: Optional["_Node[T]"] = None
    right: Optional["_Node[T]"] = None


class SpatialPointIndex(Generic[T]):
    """Point index supporting range, circle and nearest-neighbour queries."""

    def __init__(self, items: Optional[Iterable[Tuple[Point, T]]] = None) -> None:
        self._root: Optional[_Node[T]] = None
        self._size = 0
        if items is not None:
            self.rebuild(items)

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[Tuple[Point, T]]:
        return iter(self.items())

    # ── mutation ────────────────────────────────────────────────────

    def insert(self, point: Point, payload: T) -> None:
        point = (float(point[0]), float(point[1]))
        if math.isnan(point[0]) or math.isnan(point[1]):
            raise ValueError(f"cannot index a NaN point {point!r}")
        new = _Node(point, payload)
        self._size += 1
        if self._root is None:
            self._root = new
            return
        node = self._root
        depth = 0
        while True:
            axis = depth & 1
            if point[axis] < node.point[axis]:
                if node.left is None:
                    node.left = new
                    return
                node = node.left
            else:
                if node.right is None:
                    node.right = new
                    return
                node = node.right
            depth += 1

    def remove(self, point: Point, payload: T) -> bool:
        """Remove the entry matching both *point* and *payload*.

        Returns ``False`` when no such entry exists.
        """
        parent: Optional[_Node[T]] = None
        is_left = False
        node = self._root
        depth = 0
        while node is not None:
            if node.point == point and node.payload == payload:
                break
            axis = depth & 1
            parent = node
            is_left = point[axis] < node.point[axis]
            node = node.left if is_left else node.right
            depth += 1
        if node is None:
            return False
        self._delete_node(node, depth, parent, is_left)
        self._size -= 1
        return True

    def clear(self) -> None:
        self._root = None
        self._size = 0

    def rebuild(self, items: Iterable[Tuple[Point, T]]) -> None:
        """Replace the contents with a balanced tree built by median splits."""
        entries = [((float(p[0]), float(p[1])), payload) for p, payload in items]
        self.clear()
        if not entries:
            return
        self._size = len(entries)
        # (slice, depth, parent, attach-left)
        work: List[Tuple[list, int, Optional[_Node[T]], bool]] = [(entries, 0, None, False)]
        while work:
            chunk, depth, parent, is_left = work.pop()
            axis = depth & 1
            chunk.sort(key=lambda e: e[0][axis])
            mid = len(chunk) // 2
            # ties must end up on the right
            while mid > 0 and chunk[mid - 1][0][axis] == chunk[mid][0][axis]:
                mid -= 1
            node = _Node(chunk[mid][0], chunk[mid][1])
            if parent is None:
                self._root = node
            elif is_left:
                parent.left = node
            else:
                parent.right = node
            if mid > 0:
                work.append((chunk[:mid], depth + 1, node, True))
            if mid + 1 < len(chunk):
                work.append((chunk[mid + 1:], depth + 1, node, False))

    # ── queries ─────────────────────────────────────────────────────

    def items(self) -> List[Tuple[Point, T]]:
        result: List[Tuple[Point, T]] = []
        stack = [self._root] if self._root is not None else []
        while stack:
            node = stack.pop()
            result.append((node.point, node.payload))
            if node.left is not None:
                stack.append(node.left)
            if node.right is not None:
                stack.append(node.right)
        return result

    def query_range(self, rect: Envelope) -> List[T]:
        """Payloads whose point lies in the closed rectangle."""
        lo = (rect.min_x, rect.min_y)
        hi = (rect.max_x, rect.max_y)
        result: List[T] = []
        stack: List[Tuple[_Node[T], int]] = [(self._root, 0)] if self._root is not None else []
        while stack:
            node, depth = stack.pop()
            if rect.contains_point(node.point):
                result.append(node.payload)
            axis = depth & 1
            cut = node.point[axis]
            if node.left is not None and lo[axis] < cut:
                stack.append((node.left, depth + 1))
            if node.right is not None and hi[axis] >= cut:
                stack.append((node.right, depth + 1))
        return result

    def query_circle(self, center: Point, radius: float) -> List[T]:
        """Payloads within *radius* of *center* (boundary included)."""
        box = Envelope.around(center, radius)
        r2 = radius * radius
        result: List[T] = []
        stack: List[Tuple[_Node[T], int]] = [(self._root, 0)] if self._root is not None else []
        while stack:
            node, depth = stack.pop()
            dx = node.point[0] - center[0]
            dy = node.point[1] - center[1]
            if dx * dx + dy * dy <= r2:
                result.append(node.payload)
            axis = depth & 1
            cut = node.point[axis]
            if node.left is not None and (box.min_x, box.min_y)[axis] < cut:
                stack.append((node.left, depth + 1))
            if node.right is not None and (box.max_x, box.max_y)[axis] >= cut:
                stack.append((node.right, depth + 1))
        return result

    def nearest(self, point: Point) -> T:
        """Payload of the point closest to *point*."""
        if self._root is None:
            raise PreconditionError("nearest() on an empty index")
        best_node = self._root
        best_d2 = math.inf
        # (node, depth, squared distance from *point* to the node's half-plane)
        stack: List[Tuple[_Node[T], int, float]] = [(self._root, 0, 0.0)]
        while stack:
            node, depth, bound = stack.pop()
            if bound >= best_d2:
                continue
            dx = node.point[0] - point[0]
            dy = node.point[1] - point[1]
            d2 = dx * dx + dy * dy
            if d2 < best_d2:
                best_d2 = d2
                best_node = node
            axis = depth & 1
            diff = point[axis] - node.point[axis]
            if diff < 0:
                near, far = node.left, node.right
            else:
                near, far = node.right, node.left
            if far is not None:
                stack.append((far, depth + 1, max(bound, diff * diff)))
            if near is not None:
                stack.append((near, depth + 1, bound))
        return best_node.payload

    # ── internals ───────────────────────────────────────────────────

    def _delete_node(
        self, node: _Node[T], depth: int, parent: Optional[_Node[T]], is_left: bool
    ) -> None:
        while True:
            axis = depth & 1
            if node.right is not None:
                m, m_parent, m_depth, m_is_left = self._find_min(node.right, axis, depth + 1, node, False)
            elif node.left is not None:
                m, m_parent, m_depth, m_is_left = self._find_min(node.left, axis, depth + 1, node, True)
                node.right, node.left = node.left, None
                if m_parent is node:
                    m_is_left = False
            else:
                if parent is None:
                    self._root = None
                elif is_left:
                    parent.left = None
                else:
                    parent.right = None
                return
            node.point, node.payload = m.point, m.payload
            node, depth, parent, is_left = m, m_depth, m_parent, m_is_left

    @staticmethod
    def _find_min(
        root: _Node[T], axis: int, depth: int, parent: _Node[T], is_left: bool
    ) -> Tuple[_Node[T], _Node[T], int, bool]:
        best = (root, parent, depth, is_left)
        stack = [(root, parent, depth, is_left)]
        while stack:
            node, par, d, left = stack.pop()
            if node.point[axis] < best[0].point[axis]:
                best = (node, par, d, left)
            if node.left is not None:
                stack.append((node.left, node, d + 1, True))
            # right subtree never beats a node cutting on the same axis
            if node.right is not None and (d & 1) != axis:
                stack.append((node.right, node, d + 1, False))
        return best
