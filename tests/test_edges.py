"""Tests for EdgeStore and SpatialEdgeStore."""

from __future__ import annotations

import pytest

from planardiv.edges import EdgeStore, SpatialEdgeStore, as_point
from planardiv.errors import PreconditionError, UnknownEdgeError, UnknownVertexError
from planardiv.models import Envelope, VertexId


@pytest.fixture(params=[EdgeStore, SpatialEdgeStore])
def store(request) -> EdgeStore:
    return request.param()


@pytest.fixture
def spatial() -> SpatialEdgeStore:
    s = SpatialEdgeStore()
    a = s.add_vertex((0.0, 0.0))
    b = s.add_vertex((10.0, 0.0))
    c = s.add_vertex((10.0, 10.0))
    s.add_edge(a, b)
    s.add_edge(b, c)
    return s


class TestEdgeStore:
    def test_vertices_and_edges(self, store: EdgeStore):
        a = store.add_vertex((0.0, 0.0))
        b = store.add_vertex((1.0, 0.0))
        record = store.add_edge(a, b)
        assert store.num_vertices == 2
        assert store.num_edges == 1
        assert store.has_edge(a, b) and store.has_edge(b, a)
        assert record.other(a) == b
        assert store.edge_record(b, a) is record
        assert list(store.connected_vertices(a)) == [b]
        assert store.degree(b) == 1

    def test_explicit_vertex_id(self, store: EdgeStore):
        v = VertexId.new()
        assert store.add_vertex((3.0, 4.0), v) == v
        with pytest.raises(ValueError):
            store.add_vertex((5.0, 5.0), v)

    def test_rejects_bad_edges(self, store: EdgeStore):
        a = store.add_vertex((0.0, 0.0))
        b = store.add_vertex((1.0, 0.0))
        store.add_edge(a, b)
        with pytest.raises(ValueError):
            store.add_edge(a, a)
        with pytest.raises(ValueError):
            store.add_edge(b, a)
        with pytest.raises(UnknownVertexError):
            store.add_edge(a, VertexId.new())

    def test_remove(self, store: EdgeStore):
        a = store.add_vertex((0.0, 0.0))
        b = store.add_vertex((1.0, 0.0))
        store.add_edge(a, b)
        with pytest.raises(PreconditionError):
            store.remove_vertex(a)
        store.remove_edge(b, a)
        with pytest.raises(UnknownEdgeError):
            store.remove_edge(a, b)
        store.remove_vertex(a)
        assert store.num_vertices == 1
        assert store.num_edges == 0

    def test_position_of_unknown_vertex(self, store: EdgeStore):
        with pytest.raises(UnknownVertexError):
            store.position(VertexId.new())

    def test_as_point(self):
        assert as_point([1, 2]) == (1.0, 2.0)
        with pytest.raises(ValueError):
            as_point((float("inf"), 0.0))

    def test_deep_copy_with_filter(self, store: EdgeStore):
        a = store.add_vertex((0.0, 0.0))
        b = store.add_vertex((1.0, 0.0))
        c = store.add_vertex((2.0, 0.0))
        store.add_edge(a, b)
        store.add_edge(b, c)
        copy = store.deep_copy(preserve_ids=True, vertex_filter=lambda v: v != c)
        assert type(copy) is type(store)
        assert set(copy.vertices()) == {a, b}
        assert copy.num_edges == 1
        copy.remove_edge(a, b)
        assert store.has_edge(a, b)

    def test_affine_transform_validates_shape(self, store: EdgeStore):
        store.add_vertex((1.0, 1.0))
        with pytest.raises(ValueError):
            store.affine_transform([[1.0, 0.0], [0.0, 1.0]])


class TestSpatialEdgeStore:
    def test_vertex_queries(self, spatial: SpatialEdgeStore):
        assert len(spatial.vertices_in(Envelope(5.0, -1.0, 11.0, 11.0))) == 2
        assert len(spatial.vertices_in_circle((0.0, 0.0), 1.0)) == 1
        nearest = spatial.nearest_vertex((9.0, 9.0))
        assert spatial.position(nearest) == (10.0, 10.0)
        with pytest.raises(ValueError):
            spatial.vertices_in_circle((0.0, 0.0), -1.0)

    def test_edge_queries(self, spatial: SpatialEdgeStore):
        assert len(spatial.edges_in(Envelope(4.0, -1.0, 6.0, 1.0))) == 1
        assert len(spatial.edges_in(Envelope(9.0, 4.0, 11.0, 6.0))) == 1
        assert spatial.edges_in(Envelope(2.0, 2.0, 8.0, 8.0)) == []

    def test_indices_follow_removal(self, spatial: SpatialEdgeStore):
        a = next(v for v in spatial.vertices() if spatial.position(v) == (0.0, 0.0))
        b = next(v for v in spatial.vertices() if spatial.position(v) == (10.0, 0.0))
        spatial.remove_edge(a, b)
        spatial.remove_vertex(a)
        assert spatial.vertices_in(Envelope(-1.0, -1.0, 1.0, 1.0)) == []
        assert spatial.edges_in(Envelope(4.0, -1.0, 6.0, 1.0)) == []

    def test_transform_reindexes(self, spatial: SpatialEdgeStore):
        spatial.transform_vertices(lambda p: (p[0] + 50.0, p[1]))
        assert spatial.vertices_in(Envelope(-1.0, -1.0, 11.0, 11.0)) == []
        assert len(spatial.vertices_in(Envelope(49.0, -1.0, 61.0, 11.0))) == 3
        assert len(spatial.edges_in(Envelope(54.0, -1.0, 56.0, 1.0))) == 1

    def test_clear(self, spatial: SpatialEdgeStore):
        spatial.clear()
        assert spatial.num_vertices == 0
        assert spatial.vertices_in(Envelope(-100.0, -100.0, 100.0, 100.0)) == []
        assert spatial.edges_in(Envelope(-100.0, -100.0, 100.0, 100.0)) == []
