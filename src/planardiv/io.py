from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Type, Union

from .models import VertexId
from .planar_graph import PlanarGraph
from .subdivision import PlanarSubdivision

PathLike = Union[str, Path]

FORMAT_VERSION = 1


def graph_to_dict(graph: PlanarGraph) -> Dict[str, Any]:
    return {
        "version": FORMAT_VERSION,
        "epsilon": graph.epsilon,
        "vertices": [
            {"id": v.hex, "x": graph.position(v)[0], "y": graph.position(v)[1]}
            for v in graph.vertices()
        ],
        "edges": [[a.hex, b.hex] for a, b in graph.all_edges()],
    }


def graph_from_dict(
    data: Dict[str, Any],
    cls: Type[PlanarGraph] = PlanarSubdivision,
    epsilon: Optional[float] = None,
) -> PlanarGraph:
    """Rebuild a graph from :func:`graph_to_dict` output.

    A ``{"segments": [[x1, y1, x2, y2], ...]}`` document is also
    accepted; its segments are inserted with ``add_line`` so they may
    cross freely.
    """
    if epsilon is None:
        epsilon = data.get("epsilon")
    if "segments" in data:
        graph = cls(epsilon=epsilon)
        for segment in data["segments"]:
            if len(segment) != 4:
                raise ValueError(f"segment must have 4 coordinates, got {segment!r}")
            x1, y1, x2, y2 = segment
            graph.add_line((x1, y1), (x2, y2))
        return graph

    version = data.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise ValueError(f"unsupported format version {version!r}")
    vertices = {
        VertexId.from_hex(item["id"]): (item["x"], item["y"]) for item in data.get("vertices", [])
    }
    edges = [(VertexId.from_hex(a), VertexId.from_hex(b)) for a, b in data.get("edges", [])]
    return cls.from_vertices_and_edges(vertices, edges, epsilon=epsilon)


def load_json(
    path: PathLike,
    cls: Type[PlanarGraph] = PlanarSubdivision,
    epsilon: Optional[float] = None,
) -> PlanarGraph:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return graph_from_dict(data, cls=cls, epsilon=epsilon)


def save_json(graph: PlanarGraph, path: PathLike) -> None:
    Path(path).write_text(json.dumps(graph_to_dict(graph), indent=2), encoding="utf-8")
