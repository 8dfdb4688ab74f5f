"""Tests for PlanarGraph: snapping, splitting and deletion."""

from __future__ import annotations

import pytest

from planardiv import PlanarGraph, SubdivisionConfig
from planardiv.errors import UnknownEdgeError, UnknownVertexError
from planardiv.models import Envelope


SQUARE = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]


def add_ring(graph: PlanarGraph, corners) -> None:
    n = len(corners)
    for i in range(n):
        graph.add_line(corners[i], corners[(i + 1) % n])


# ═══════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture
def square() -> PlanarGraph:
    graph = PlanarGraph()
    add_ring(graph, SQUARE)
    return graph


@pytest.fixture
def crossed_square(square: PlanarGraph) -> PlanarGraph:
    """Square with both diagonals; they meet at (5, 5)."""
    square.add_line((0.0, 0.0), (10.0, 10.0))
    square.add_line((0.0, 10.0), (10.0, 0.0))
    return square


# ═══════════════════════════════════════════════════════════════════
# Construction
# ═══════════════════════════════════════════════════════════════════


class TestConstruction:
    def test_empty_graph(self):
        graph = PlanarGraph()
        assert graph.num_vertices == 0
        assert graph.num_edges == 0
        assert graph.epsilon == pytest.approx(1e-4)

    def test_epsilon_shortcut(self):
        graph = PlanarGraph(epsilon=0.5)
        assert graph.config.epsilon == 0.5

    def test_conflicting_epsilon_and_config(self):
        with pytest.raises(ValueError):
            PlanarGraph(epsilon=0.5, config=SubdivisionConfig(epsilon=0.1))

    def test_invalid_epsilon(self):
        with pytest.raises(ValueError):
            PlanarGraph(epsilon=0.0)

    def test_square(self, square: PlanarGraph):
        assert square.num_vertices == 4
        assert square.num_edges == 4

    def test_diagonal_reuses_corners(self, square: PlanarGraph):
        square.add_line((0.0, 0.0), (10.0, 10.0))
        assert square.num_vertices == 4
        assert square.num_edges == 5

    def test_crossing_diagonals_split_at_centre(self, crossed_square: PlanarGraph):
        g = crossed_square
        assert g.num_vertices == 5
        assert g.num_edges == 8

        middle = g.vertex_at((5.0, 5.0))
        corner = g.vertex_at((10.0, 10.0))
        origin = g.vertex_at((0.0, 0.0))
        assert middle is not None and corner is not None and origin is not None
        assert g.degree(middle) == 4
        assert g.degree(corner) == 3
        assert g.is_edge_between(middle, corner)
        assert not g.is_edge_between(origin, corner)

    def test_line_starting_on_edges(self, square: PlanarGraph):
        square.add_line((0.0, 5.0), (10.0, 5.0))
        assert square.num_vertices == 6
        assert square.num_edges == 7
        assert square.degree(square.vertex_at((10.0, 5.0))) == 3

    def test_line_splits_two_edges(self):
        graph = PlanarGraph()
        graph.add_line((2.0, 0.0), (2.0, 2.0))
        graph.add_line((3.0, 0.0), (3.0, 2.0))
        chain = graph.add_line((0.0, 1.0), (5.0, 1.0))

        expected = [(0.0, 1.0), (2.0, 1.0), (3.0, 1.0), (5.0, 1.0)]
        assert [graph.position(v) for v in chain] == pytest.approx(expected)
        assert graph.num_vertices == 8
        assert graph.num_edges == 7

        at = graph.vertex_at
        assert graph.is_edge_between(at((2.0, 0.0)), at((2.0, 1.0)))
        assert graph.is_edge_between(at((2.0, 1.0)), at((2.0, 2.0)))
        assert graph.is_edge_between(at((3.0, 0.0)), at((3.0, 1.0)))
        assert graph.is_edge_between(at((3.0, 1.0)), at((3.0, 2.0)))

    def test_chain_endpoints(self, square: PlanarGraph):
        chain = square.add_line((5.0, -5.0), (5.0, 15.0))
        assert square.position(chain[0]) == (5.0, -5.0)
        assert square.position(chain[-1]) == (5.0, 15.0)
        assert len(chain) == 4

    def test_degenerate_line_is_single_vertex(self):
        graph = PlanarGraph()
        chain = graph.add_line((1.0, 1.0), (1.0, 1.0 + 1e-6))
        assert len(chain) == 1
        assert graph.num_vertices == 1
        assert graph.num_edges == 0

    def test_nan_rejected(self):
        graph = PlanarGraph()
        with pytest.raises(ValueError):
            graph.add_line((float("nan"), 0.0), (1.0, 1.0))
        assert graph.num_vertices == 0

    def test_add_vertex_snaps(self, square: PlanarGraph):
        corner = square.vertex_at((0.0, 0.0))
        assert square.add_vertex((0.0, 0.00001)) == corner
        on_edge = square.add_vertex((5.0, 0.00001))
        assert square.position(on_edge) == pytest.approx((5.0, 0.0))
        assert square.num_vertices == 5
        assert square.num_edges == 5

    def test_connect_vertices(self, square: PlanarGraph):
        a = square.vertex_at((0.0, 0.0))
        b = square.vertex_at((10.0, 10.0))
        square.connect_vertices(a, b)
        assert square.is_edge_between(a, b)
        with pytest.raises(ValueError):
            square.connect_vertices(a, a)


# ═══════════════════════════════════════════════════════════════════
# Collinear overlaps
# ═══════════════════════════════════════════════════════════════════


class TestOverlappingLines:
    def test_short_inside_long(self):
        graph = PlanarGraph()
        graph.add_line((0.0, 0.0), (10.0, 0.0))
        graph.add_line((1.0, 0.0), (2.0, 0.0))
        assert graph.num_vertices == 4
        assert graph.num_edges == 3

    def test_long_over_short(self):
        graph = PlanarGraph()
        graph.add_line((1.0, 0.0), (2.0, 0.0))
        graph.add_line((0.0, 0.0), (10.0, 0.0))
        assert graph.num_vertices == 4
        assert graph.num_edges == 3

    def test_partial_overlap(self):
        graph = PlanarGraph()
        graph.add_line((0.0, 0.0), (2.0, 0.0))
        graph.add_line((1.0, 0.0), (3.0, 0.0))
        assert graph.num_vertices == 4
        assert graph.num_edges == 3

    def test_shared_endpoint(self):
        graph = PlanarGraph()
        graph.add_line((0.0, 0.0), (2.0, 0.0))
        graph.add_line((1.0, 0.0), (2.0, 0.0))
        assert graph.num_vertices == 3
        assert graph.num_edges == 2

    def test_threads_existing_segments(self):
        graph = PlanarGraph()
        graph.add_line((1.0, 0.0), (2.0, 0.0))
        graph.add_line((3.0, 0.0), (4.0, 0.0))
        graph.add_line((5.0, 0.0), (6.0, 0.0))
        chain = graph.add_line((0.0, 0.0), (6.0, 0.0))
        assert graph.num_vertices == 7
        assert graph.num_edges == 6
        assert len(chain) == 7
        xs = [graph.position(v)[0] for v in chain]
        assert xs == sorted(xs)


class TestRepeatedLines:
    def test_same_line_twice(self, square: PlanarGraph):
        first = square.add_line((0.0, 0.0), (10.0, 10.0))
        counts = (square.num_vertices, square.num_edges)
        assert square.add_line((0.0, 0.0), (10.0, 10.0)) == first
        assert (square.num_vertices, square.num_edges) == counts

    def test_same_line_reversed(self, crossed_square: PlanarGraph):
        counts = (crossed_square.num_vertices, crossed_square.num_edges)
        chain = crossed_square.add_line((10.0, 0.0), (0.0, 10.0))
        assert len(chain) == 3
        assert (crossed_square.num_vertices, crossed_square.num_edges) == counts

    @pytest.mark.parametrize(
        "p, q",
        [
            ((0.00003, -0.00002), (10.00002, 9.99996)),
            ((-0.00004, 0.00005), (9.99997, 10.00003)),
        ],
    )
    def test_line_within_epsilon_of_existing_one(self, crossed_square: PlanarGraph, p, q):
        counts = (crossed_square.num_vertices, crossed_square.num_edges)
        chain = crossed_square.add_line(p, q)
        assert chain[0] == crossed_square.vertex_at((0.0, 0.0))
        assert chain[-1] == crossed_square.vertex_at((10.0, 10.0))
        assert chain[1] == crossed_square.vertex_at((5.0, 5.0))
        assert (crossed_square.num_vertices, crossed_square.num_edges) == counts

    def test_line_through_interior_point_within_epsilon(self, square: PlanarGraph):
        square.add_line((0.0, 5.0), (10.0, 5.0))
        counts = (square.num_vertices, square.num_edges)
        square.add_line((2.0, 5.00003), (7.0, 4.99998))
        assert square.num_vertices == counts[0] + 2
        assert square.num_edges == counts[1] + 2


# ═══════════════════════════════════════════════════════════════════
# Deletion
# ═══════════════════════════════════════════════════════════════════


class TestDeletion:
    def test_delete_edges(self, crossed_square: PlanarGraph):
        g = crossed_square
        at = g.vertex_at
        g.delete_edge(at((0.0, 0.0)), at((10.0, 0.0)))
        assert g.num_edges == 7
        g.delete_edge(at((5.0, 5.0)), at((10.0, 0.0)))
        assert g.num_edges == 6
        g.delete_edge(at((10.0, 10.0)), at((10.0, 0.0)))
        assert g.num_edges == 5

        assert g.delete_vertices_without_edges() == 1
        assert g.num_vertices == 4
        assert g.num_edges == 5

    def test_delete_centre_vertex(self, crossed_square: PlanarGraph):
        g = crossed_square
        removed = []
        g.delete_vertex(g.vertex_at((5.0, 5.0)), on_edge_removed=lambda a, b: removed.append(b))
        assert g.num_vertices == 4
        assert g.num_edges == 4
        assert len(removed) == 4

    def test_delete_missing_edge(self, crossed_square: PlanarGraph):
        at = crossed_square.vertex_at
        with pytest.raises(UnknownEdgeError):
            crossed_square.delete_edge(at((0.0, 0.0)), at((10.0, 10.0)))

    def test_unknown_vertex(self, square: PlanarGraph):
        other = PlanarGraph().add_vertex((1.0, 1.0))
        with pytest.raises(UnknownVertexError):
            square.delete_vertex(other)
        with pytest.raises(KeyError):
            square.position(other)

    def test_clear(self, square: PlanarGraph):
        square.clear()
        assert square.num_vertices == 0
        assert square.num_edges == 0
        assert square.vertex_at((0.0, 0.0)) is None


# ═══════════════════════════════════════════════════════════════════
# Queries and whole-graph operations
# ═══════════════════════════════════════════════════════════════════


class TestQueries:
    def test_vertices_in(self, crossed_square: PlanarGraph):
        found = crossed_square.vertices_in(Envelope(4.0, 4.0, 11.0, 11.0))
        points = sorted(crossed_square.position(v) for v in found)
        assert points == [(5.0, 5.0), (10.0, 10.0)]

    def test_vertices_in_circle(self, crossed_square: PlanarGraph):
        assert len(crossed_square.vertices_in_circle((5.0, 5.0), 1.0)) == 1
        assert len(crossed_square.vertices_in_circle((5.0, 5.0), 7.1)) == 5

    def test_edges_in_uses_exact_segment_test(self, square: PlanarGraph):
        square.add_line((0.0, 0.0), (10.0, 10.0))
        # box below the diagonal, touching only the bottom side
        found = square.edges_in(Envelope(6.0, -1.0, 9.0, 1.0))
        assert len(found) == 1

    def test_vertex_at_miss(self, square: PlanarGraph):
        assert square.vertex_at((5.0, 5.0)) is None

    def test_affine_transform(self, square: PlanarGraph):
        square.affine_transform([[2.0, 0.0, 1.0], [0.0, 2.0, -1.0]])
        assert square.vertex_at((21.0, 19.0)) is not None
        assert square.vertex_at((10.0, 10.0)) is None
        assert len(square.edges_in(Envelope(20.0, 0.0, 22.0, 10.0))) == 1

    def test_transform_vertices(self, square: PlanarGraph):
        square.transform_vertices(lambda p: (p[0] + 100.0, p[1]))
        assert square.vertex_at((110.0, 10.0)) is not None

    def test_transform_rejects_nan(self, square: PlanarGraph):
        with pytest.raises(ValueError):
            square.transform_vertices(lambda p: (float("nan"), p[1]))
        assert square.vertex_at((10.0, 10.0)) is not None

    def test_deep_copy_is_independent(self, crossed_square: PlanarGraph):
        copy = crossed_square.deep_copy()
        copy.delete_vertex(copy.vertex_at((5.0, 5.0)))
        assert crossed_square.num_vertices == 5
        assert copy.num_vertices == 4
        assert set(copy.vertices()) < set(crossed_square.vertices())

    def test_deep_copy_new_ids_and_filter(self, crossed_square: PlanarGraph):
        centre = crossed_square.vertex_at((5.0, 5.0))
        copy, mapping = crossed_square.deep_copy_with_mapping(
            preserve_ids=False, vertex_filter=lambda v: v != centre
        )
        assert centre not in mapping
        assert not set(copy.vertices()) & set(crossed_square.vertices())
        assert copy.num_edges == 4

    def test_from_vertices_and_edges(self, square: PlanarGraph):
        vertices = {v: square.position(v) for v in square.vertices()}
        rebuilt = PlanarGraph.from_vertices_and_edges(vertices, list(square.all_edges()))
        assert set(rebuilt.vertices()) == set(square.vertices())
        assert rebuilt.num_edges == 4
