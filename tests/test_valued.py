"""Tests for ValuedSubdivision: per-face values and polygon overlays."""

from __future__ import annotations

import pytest

from planardiv import (
    FaceId,
    FaceValues,
    PlanarSubdivision,
    Polygon,
    ValuedSubdivision,
    validate_subdivision,
)
from planardiv.errors import UnknownFaceError

RED = "red"
BLUE = "blue"

SQUARE = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]
SMALL_SQUARE = [(1.0, 1.0), (2.0, 1.0), (2.0, 2.0), (1.0, 2.0)]


# ═══════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture
def red_square() -> ValuedSubdivision:
    vs: ValuedSubdivision[str] = ValuedSubdivision()
    vs.add_polygon_over(Polygon(tuple(SQUARE)), RED)
    return vs


# ═══════════════════════════════════════════════════════════════════
# Set / get
# ═══════════════════════════════════════════════════════════════════


class TestValues:
    def test_set_and_get(self):
        vs: ValuedSubdivision[str] = ValuedSubdivision()
        for i in range(4):
            vs.add_line(SQUARE[i], SQUARE[(i + 1) % 4])
        assert vs.num_faces == 1
        assert vs.face_at((5.0, 5.0)) != FaceId.EMPTY
        assert vs.face_at((11.0, 11.0)) == FaceId.EMPTY

        face = vs.face_at((1.0, 1.0))
        assert vs.try_get_value(face) is None
        vs.set_value(face, BLUE)
        assert vs.try_get_value(face) == BLUE
        assert vs.try_get_value((1.0, 1.0)) == BLUE
        assert vs.values() == {face: BLUE}

    def test_set_unknown_face(self, red_square: ValuedSubdivision):
        with pytest.raises(UnknownFaceError):
            red_square.set_value(FaceId.new(), BLUE)
        with pytest.raises(UnknownFaceError):
            red_square.set_value(FaceId.EMPTY, BLUE)

    def test_value_outside_is_none(self, red_square: ValuedSubdivision):
        assert red_square.value_at((20.0, 20.0)) is None

    def test_remove_value(self, red_square: ValuedSubdivision):
        face = red_square.faces()[0]
        assert red_square.remove_value(face)
        assert not red_square.remove_value(face)
        assert red_square.value_at((5.0, 5.0)) is None

    def test_wraps_existing_subdivision(self):
        sub = PlanarSubdivision(epsilon=0.01)
        vs: ValuedSubdivision[int] = ValuedSubdivision(subdivision=sub)
        assert vs.subdivision is sub
        assert vs.epsilon == 0.01
        with pytest.raises(ValueError):
            ValuedSubdivision(epsilon=0.01, subdivision=sub)


# ═══════════════════════════════════════════════════════════════════
# Values across topology edits
# ═══════════════════════════════════════════════════════════════════


class TestValuesFollowEdits:
    def test_split_copies_value(self, red_square: ValuedSubdivision):
        red_square.add_line((0.0, 0.0), (10.0, 10.0))
        assert red_square.num_faces == 2
        assert red_square.value_at((1.0, 9.0)) == RED
        assert red_square.value_at((9.0, 1.0)) == RED

    def test_merge_keeps_equal_values(self, red_square: ValuedSubdivision):
        chain = red_square.add_line((0.0, 0.0), (10.0, 10.0))
        red_square.delete_edge(chain[0], chain[-1])
        assert red_square.num_faces == 1
        assert red_square.value_at((5.0, 5.0)) == RED

    def test_merge_drops_conflicting_values(self, red_square: ValuedSubdivision):
        chain = red_square.add_line((0.0, 0.0), (10.0, 10.0))
        red_square.set_value(red_square.face_at((1.0, 9.0)), BLUE)
        red_square.delete_edge(chain[0], chain[-1])
        assert red_square.value_at((5.0, 5.0)) is None
        assert red_square.values() == {}

    def test_dangling_edge_keeps_value(self, red_square: ValuedSubdivision):
        red_square.add_line((5.0, 5.0), (10.0, 5.0))
        assert red_square.value_at((2.0, 2.0)) == RED
        assert len(red_square.values()) == 1

    def test_destroyed_face_drops_value(self, red_square: ValuedSubdivision):
        sub = red_square.subdivision
        red_square.delete_edge(sub.vertex_at((0.0, 0.0)), sub.vertex_at((10.0, 0.0)))
        assert red_square.num_faces == 0
        assert red_square.values() == {}

    def test_nested_ring_inherits_container_value(self, red_square: ValuedSubdivision):
        for i in range(4):
            red_square.add_line(SMALL_SQUARE[i], SMALL_SQUARE[(i + 1) % 4])
        assert red_square.num_faces == 2
        assert red_square.value_at((1.5, 1.5)) == RED
        assert red_square.value_at((5.0, 5.0)) == RED


class TestFaceValues:
    def test_mapping_protocol(self):
        values: FaceValues[int] = FaceValues()
        a, b = FaceId.new(), FaceId.new()
        values.set(a, 1)
        assert a in values
        assert b not in values
        assert len(values) == 1
        assert list(values) == [a]
        assert values.get(b, 7) == 7

    def test_event_handlers(self):
        values: FaceValues[int] = FaceValues()
        old, n1, n2, merged = (FaceId.new() for _ in range(4))
        values.set(old, 3)
        values.on_face_split(old, n1, n2)
        assert old not in values
        assert values.get(n1) == 3 and values.get(n2) == 3

        values.on_faces_merged(n1, n2, merged)
        assert values.get(merged) == 3
        assert len(values) == 1

        renamed = FaceId.new()
        values.on_face_renamed(merged, renamed)
        assert values.items() == [(renamed, 3)]

        inner = FaceId.new()
        values.on_face_created(inner, renamed)
        values.on_face_created(FaceId.new(), FaceId.EMPTY)
        assert values.get(inner) == 3
        assert len(values) == 2

        values.on_face_destroyed(renamed)
        values.on_face_destroyed(FaceId.new())
        assert values.items() == [(inner, 3)]

    def test_merge_with_one_missing_value(self):
        values: FaceValues[int] = FaceValues()
        a, b, c = FaceId.new(), FaceId.new(), FaceId.new()
        values.set(a, 1)
        values.on_faces_merged(a, b, c)
        assert len(values) == 0


# ═══════════════════════════════════════════════════════════════════
# Polygon overlays
# ═══════════════════════════════════════════════════════════════════


class TestAddPolygonOver:
    def test_first_polygon(self, red_square: ValuedSubdivision):
        assert red_square.num_faces == 1
        assert red_square.num_edges == 4
        assert red_square.num_vertices == 4
        assert red_square.value_at((1.0, 1.0)) == RED

    def test_overlapping_polygons(self, red_square: ValuedSubdivision):
        blue = Polygon(tuple(SQUARE)).translate(5.0, 5.0)
        face = red_square.add_polygon_over(blue, BLUE)

        assert red_square.num_faces == 2
        assert red_square.num_edges == 10
        assert red_square.num_vertices == 9
        assert red_square.value_at((1.0, 1.0)) == RED
        assert red_square.value_at((6.0, 6.0)) == BLUE
        assert red_square.value_at((11.0, 11.0)) == BLUE
        assert red_square.face_at((6.0, 6.0)) == face

        sub = red_square.subdivision
        assert red_square.try_get_value(sub.face_left_of_segment((0.0, 10.0), (0.0, 0.0))) == RED
        assert sub.face_left_of_segment((10.0, 0.0), (0.0, 0.0)) == FaceId.EMPTY
        assert validate_subdivision(sub) == []

    def test_nested_polygon(self, red_square: ValuedSubdivision):
        red_square.add_polygon_over(list(SMALL_SQUARE), BLUE)
        assert red_square.num_faces == 2
        assert red_square.num_edges == 8
        assert red_square.num_vertices == 8
        assert red_square.value_at((5.0, 5.0)) == RED
        assert red_square.value_at((1.5, 1.5)) == BLUE

    def test_removes_chords_inside(self, red_square: ValuedSubdivision):
        red_square.add_line((0.0, 0.0), (10.0, 10.0))
        red_square.add_polygon_over(Polygon.rectangle(2.0, 2.0, 8.0, 8.0), BLUE)
        assert red_square.num_faces == 3
        assert red_square.num_vertices == 8
        assert red_square.num_edges == 10
        assert red_square.value_at((3.0, 5.0)) == BLUE
        assert red_square.value_at((5.0, 3.0)) == BLUE
        assert red_square.value_at((1.0, 9.0)) == RED
        assert red_square.value_at((9.0, 1.0)) == RED

    def test_covering_polygon_swallows_everything(self, red_square: ValuedSubdivision):
        red_square.add_polygon_over(Polygon.rectangle(-5.0, -5.0, 15.0, 15.0), BLUE)
        assert red_square.num_faces == 1
        assert red_square.num_vertices == 4
        assert red_square.num_edges == 4
        assert red_square.value_at((5.0, 5.0)) == BLUE
        assert red_square.values() == {red_square.faces()[0]: BLUE}

    def test_rejects_degenerate_polygon(self, red_square: ValuedSubdivision):
        with pytest.raises(ValueError):
            red_square.add_polygon_over([(0.0, 0.0), (1.0, 1.0)], BLUE)


class TestDeepCopy:
    def test_copy_keeps_values(self, red_square: ValuedSubdivision):
        red_square.add_polygon_over(list(SMALL_SQUARE), BLUE)
        copy = red_square.deep_copy()
        assert copy.num_faces == 2
        assert copy.value_at((5.0, 5.0)) == RED
        assert copy.value_at((1.5, 1.5)) == BLUE

        copy.set_value(copy.face_at((5.0, 5.0)), BLUE)
        assert red_square.value_at((5.0, 5.0)) == RED

    def test_filtered_copy_drops_cut_faces(self, red_square: ValuedSubdivision):
        red_square.add_polygon_over(list(SMALL_SQUARE), BLUE)
        sub = red_square.subdivision
        corner = sub.vertex_at((10.0, 10.0))
        copy = red_square.deep_copy(preserve_ids=False, vertex_filter=lambda v: v != corner)
        assert copy.num_faces == 1
        assert copy.value_at((1.5, 1.5)) == BLUE
        assert copy.value_at((5.0, 5.0)) is None
