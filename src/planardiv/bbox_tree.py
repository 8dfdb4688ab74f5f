"""R-tree over items that carry an axis-aligned envelope.

Insertion follows the classic least-enlargement descent with a
margin/overlap driven split; :meth:`BoundingBoxTree.bulk_load` packs
sorted data bottom-up (OMT) and merges it into the existing tree.

Items must not change their envelope while stored. Deletion matches
by identity, so two equal-looking items are still distinct entries.
"""

from __future__ import annotations

import math
from typing import Callable, Generic, Iterable, List, Optional, Sequence, TypeVar

from .constants import (
    DEFAULT_FILL_FACTOR,
    DEFAULT_MAX_ENTRIES,
    MIN_MAX_ENTRIES,
    MIN_MIN_ENTRIES,
)
from .models import Envelope, Point

T = TypeVar("T")


def _default_envelope(item) -> Envelope:
    return item.envelope


class _Node:
    __slots__ = ("children", "height", "leaf", "envelope")

    def __init__(self, children: list, height: int = 1, leaf: bool = True) -> None:
        self.children = children
        self.height = height
        self.leaf = leaf
        self.envelope = Envelope.empty()


class BoundingBoxTree(Generic[T]):
    """Spatial index of envelope-bearing items.

    *to_envelope* maps an item to its :class:`Envelope`; by default the
    item's ``envelope`` attribute is used.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        to_envelope: Optional[Callable[[T], Envelope]] = None,
    ) -> None:
        self._max_entries = max(MIN_MAX_ENTRIES, max_entries)
        self._min_entries = max(
            MIN_MIN_ENTRIES, math.ceil(self._max_entries * DEFAULT_FILL_FACTOR)
        )
        self._to_envelope = to_envelope or _default_envelope
        self._root = _Node([])
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def envelope(self) -> Envelope:
        return self._root.envelope

    @property
    def height(self) -> int:
        return self._root.height

    # ── queries ─────────────────────────────────────────────────────

    def search(self, envelope: Envelope) -> List[T]:
        """Items whose envelope intersects *envelope*."""
        node = self._root
        if not node.children or not envelope.intersects(node.envelope):
            return []
        result: List[T] = []
        stack = [node]
        while stack:
            node = stack.pop()
            if node.leaf:
                for item in node.children:
                    if envelope.intersects(self._to_envelope(item)):
                        result.append(item)
                continue
            for child in node.children:
                if not envelope.intersects(child.envelope):
                    continue
                if envelope.contains(child.envelope):
                    result.extend(self._collect(child))
                else:
                    stack.append(child)
        return result

    def search_point(self, point: Point) -> List[T]:
        return self.search(Envelope.of_point(point))

    def all(self) -> List[T]:
        return self._collect(self._root)

    # ── mutation ────────────────────────────────────────────────────

    def clear(self) -> None:
        self._root = _Node([])
        self._count = 0

    def insert(self, item: T) -> None:
        self._insert(item, self._root.height - 1, is_node=False)
        self._count += 1

    def bulk_load(self, items: Iterable[T]) -> None:
        data = list(items)
        if not data:
            return
        if len(data) < self._min_entries:
            for item in data:
                self.insert(item)
            return

        node = self._build(data, 0)
        self._count += len(data)
        if not self._root.children:
            self._root = node
        elif self._root.height == node.height:
            self._split_root(self._root, node)
        else:
            if self._root.height < node.height:
                self._root, node = node, self._root
            self._insert(node, self._root.height - node.height - 1, is_node=True)

    def delete(self, item: T) -> bool:
        """Remove *item* (matched by identity). Returns ``False`` if absent."""
        bbox = self._to_envelope(item)
        path: List[_Node] = []
        indexes: List[int] = []
        node: Optional[_Node] = self._root
        parent: Optional[_Node] = None
        i = 0
        going_up = False

        while node is not None or path:
            if node is None:
                node = path.pop()
                parent = path[-1] if path else None
                i = indexes.pop()
                going_up = True

            if node.leaf:
                for index, child in enumerate(node.children):
                    if child is item:
                        del node.children[index]
                        path.append(node)
                        self._condense(path)
                        self._count -= 1
                        return True

            if not going_up and not node.leaf and node.envelope.contains(bbox):
                path.append(node)
                indexes.append(i)
                i = 0
                parent = node
                node = node.children[0]
            elif parent is not None:
                i += 1
                node = parent.children[i] if i < len(parent.children) else None
                going_up = False
            else:
                node = None
        return False

    # ── internals ───────────────────────────────────────────────────

    def _bbox(self, node: _Node, child) -> Envelope:
        return self._to_envelope(child) if node.leaf else child.envelope

    def _calc_bbox(self, node: _Node) -> None:
        node.envelope = self._dist_bbox(node, 0, len(node.children))

    def _dist_bbox(self, node: _Node, start: int, end: int) -> Envelope:
        env = Envelope.empty()
        for child in node.children[start:end]:
            env = env.union(self._bbox(node, child))
        return env

    def _collect(self, node: _Node) -> List[T]:
        result: List[T] = []
        stack = [node]
        while stack:
            current = stack.pop()
            if current.leaf:
                result.extend(current.children)
            else:
                stack.extend(current.children)
        return result

    def _insert(self, item, level: int, is_node: bool) -> None:
        bbox = item.envelope if is_node else self._to_envelope(item)
        insert_path: List[_Node] = []
        node = self._choose_subtree(bbox, self._root, level, insert_path)
        node.children.append(item)
        node.envelope = node.envelope.union(bbox)

        while level >= 0:
            if len(insert_path[level].children) > self._max_entries:
                self._split(insert_path, level)
                level -= 1
            else:
                break

        for i in range(level, -1, -1):
            insert_path[i].envelope = insert_path[i].envelope.union(bbox)

    def _choose_subtree(self, bbox: Envelope, node: _Node, level: int, path: List[_Node]) -> _Node:
        while True:
            path.append(node)
            if node.leaf or len(path) - 1 == level:
                return node
            min_area = math.inf
            min_enlargement = math.inf
            target = None
            for child in node.children:
                area = child.envelope.area
                enlargement = bbox.enlarged_area(child.envelope) - area
                if enlargement < min_enlargement:
                    min_enlargement = enlargement
                    min_area = min(area, min_area)
                    target = child
                elif enlargement == min_enlargement and area < min_area:
                    min_area = area
                    target = child
            node = target if target is not None else node.children[0]

    def _split(self, insert_path: List[_Node], level: int) -> None:
        node = insert_path[level]
        total = len(node.children)
        m = self._min_entries

        self._choose_split_axis(node, m, total)
        split_index = self._choose_split_index(node, m, total)

        new_node = _Node(node.children[split_index:], node.height, node.leaf)
        del node.children[split_index:]
        self._calc_bbox(node)
        self._calc_bbox(new_node)

        if level:
            insert_path[level - 1].children.append(new_node)
        else:
            self._split_root(node, new_node)

    def _split_root(self, node: _Node, new_node: _Node) -> None:
        self._root = _Node([node, new_node], node.height + 1, leaf=False)
        self._calc_bbox(self._root)

    def _choose_split_index(self, node: _Node, m: int, total: int) -> int:
        index = None
        min_overlap = math.inf
        min_area = math.inf
        for i in range(m, total - m + 1):
            bbox1 = self._dist_bbox(node, 0, i)
            bbox2 = self._dist_bbox(node, i, total)
            overlap = bbox1.intersection_area(bbox2)
            area = bbox1.area + bbox2.area
            if overlap < min_overlap:
                min_overlap = overlap
                index = i
                min_area = min(area, min_area)
            elif overlap == min_overlap and area < min_area:
                min_area = area
                index = i
        return index if index is not None else total - m

    def _choose_split_axis(self, node: _Node, m: int, total: int) -> None:
        by_x = lambda child: self._bbox(node, child).min_x
        by_y = lambda child: self._bbox(node, child).min_y
        x_margin = self._all_dist_margin(node, m, total, by_x)
        y_margin = self._all_dist_margin(node, m, total, by_y)
        # _all_dist_margin leaves the children sorted by y
        if x_margin < y_margin:
            node.children.sort(key=by_x)

    def _all_dist_margin(self, node: _Node, m: int, total: int, key) -> float:
        node.children.sort(key=key)
        left = self._dist_bbox(node, 0, m)
        right = self._dist_bbox(node, total - m, total)
        margin = left.margin + right.margin
        for i in range(m, total - m):
            left = left.union(self._bbox(node, node.children[i]))
            margin += left.margin
        for i in range(total - m - 1, m - 1, -1):
            right = right.union(self._bbox(node, node.children[i]))
            margin += right.margin
        return margin

    def _condense(self, path: Sequence[_Node]) -> None:
        for i in range(len(path) - 1, -1, -1):
            if not path[i].children:
                if i > 0:
                    siblings = path[i - 1].children
                    siblings.remove(path[i])
                else:
                    self._root = _Node([])
            else:
                self._calc_bbox(path[i])

    def _build(self, items: List[T], height: int) -> _Node:
        n = len(items)
        m = self._max_entries
        if n <= m:
            node = _Node(list(items))
            self._calc_bbox(node)
            return node

        if not height:
            height = math.ceil(math.log(n) / math.log(m))
            m = math.ceil(n / m ** (height - 1))

        node = _Node([], height, leaf=False)
        n2 = math.ceil(n / m)
        n1 = n2 * math.ceil(math.sqrt(m))

        items = sorted(items, key=lambda it: self._to_envelope(it).min_x)
        for i in range(0, n, n1):
            strip = sorted(items[i:i + n1], key=lambda it: self._to_envelope(it).min_y)
            for j in range(0, len(strip), n2):
                node.children.append(self._build(strip[j:j + n2], height - 1))
        self._calc_bbox(node)
        return node
