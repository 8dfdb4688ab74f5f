"""Numeric defaults shared by the spatial indices and the graph layers."""

# Distance below which two points are the same vertex.
DEFAULT_EPSILON = 1e-4

# Relative tolerance used by the segment intersection test for
# near-parallel segments.
INTERSECTION_TOLERANCE = 1e-9

# Bounding-box tree fan-out.
DEFAULT_MAX_ENTRIES = 9
MIN_MAX_ENTRIES = 4
MIN_MIN_ENTRIES = 2
DEFAULT_FILL_FACTOR = 0.4

# Hard bounds on topology walks.
DEFAULT_MAX_WALK_STEPS = 100_000
DEFAULT_MAX_VERTEX_DEGREE = 10_000
