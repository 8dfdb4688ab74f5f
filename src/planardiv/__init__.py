"""planardiv — dynamic planar subdivision engine.

Public API is organised into layers:

- **Core** — identifiers, envelopes, polygons, geometric predicates
- **Indices** — point k-d tree and bounding-box R-tree
- **Graph** — edge store and crossing-free line insertion
- **Subdivision** — half-edge faces, face events, per-face values
- **Tooling** — diagnostics, producers, I/O, rendering (requires matplotlib)
"""

import logging

# ── Core ────────────────────────────────────────────────────────────
from .config import SubdivisionConfig
from .errors import (
    PreconditionError,
    TopologyError,
    UnknownEdgeError,
    UnknownFaceError,
    UnknownVertexError,
)
from .models import Envelope, FaceId, FaceType, Point, VertexId
from .polygon import Polygon
from .geometry import PointLocation, point_in_polygon, segment_intersection

# ── Indices ─────────────────────────────────────────────────────────
from .point_index import SpatialPointIndex
from .bbox_tree import BoundingBoxTree

# ── Graph ───────────────────────────────────────────────────────────
from .edges import EdgeStore, SpatialEdgeStore
from .planar_graph import PlanarGraph

# ── Subdivision ─────────────────────────────────────────────────────
from .subdivision import FaceListener, PlanarSubdivision
from .valued import FaceValues, ValuedSubdivision

# ── Tooling ─────────────────────────────────────────────────────────
from .diagnostics import (
    SubdivisionStats,
    connected_components,
    euler_characteristic,
    find_edge_crossings,
    subdivision_stats,
    validate_subdivision,
)
from .builders import (
    add_delaunay_edges,
    add_polygon_edges,
    add_voronoi_edges,
    delaunay_edges,
    voronoi_cells,
)
from .io import graph_from_dict, graph_to_dict, load_json, save_json
from .logging_utils import configure_logging, get_logger

logging.getLogger("planardiv").addHandler(logging.NullHandler())

__all__ = [
    "BoundingBoxTree",
    "EdgeStore",
    "Envelope",
    "FaceId",
    "FaceListener",
    "FaceType",
    "FaceValues",
    "PlanarGraph",
    "PlanarSubdivision",
    "Point",
    "PointLocation",
    "Polygon",
    "PreconditionError",
    "SpatialEdgeStore",
    "SpatialPointIndex",
    "SubdivisionConfig",
    "SubdivisionStats",
    "TopologyError",
    "UnknownEdgeError",
    "UnknownFaceError",
    "UnknownVertexError",
    "ValuedSubdivision",
    "VertexId",
    "add_delaunay_edges",
    "add_polygon_edges",
    "add_voronoi_edges",
    "configure_logging",
    "connected_components",
    "delaunay_edges",
    "euler_characteristic",
    "find_edge_crossings",
    "get_logger",
    "graph_from_dict",
    "graph_to_dict",
    "load_json",
    "point_in_polygon",
    "save_json",
    "segment_intersection",
    "subdivision_stats",
    "validate_subdivision",
    "voronoi_cells",
]
