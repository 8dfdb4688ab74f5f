"""Construction-time configuration for graphs and subdivisions."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .constants import (
    DEFAULT_EPSILON,
    DEFAULT_MAX_ENTRIES,
    DEFAULT_MAX_VERTEX_DEGREE,
    DEFAULT_MAX_WALK_STEPS,
    MIN_MAX_ENTRIES,
)


@dataclass(frozen=True)
class SubdivisionConfig:
    """Tunables of a :class:`~planardiv.planar_graph.PlanarGraph`.

    *epsilon* — snapping tolerance: points closer than this are one
    vertex, and a point this close to an edge lies on it.
    *max_walk_steps* — bound on a face boundary walk.
    *max_vertex_degree* — bound on a rotation around one vertex.
    *tree_max_entries* — fan-out of the bounding-box trees.
    """

    epsilon: float = DEFAULT_EPSILON
    max_walk_steps: int = DEFAULT_MAX_WALK_STEPS
    max_vertex_degree: int = DEFAULT_MAX_VERTEX_DEGREE
    tree_max_entries: int = DEFAULT_MAX_ENTRIES

    def __post_init__(self) -> None:
        if not (self.epsilon > 0.0) or math.isinf(self.epsilon):
            raise ValueError(f"epsilon must be a positive finite number, got {self.epsilon!r}")
        if self.max_walk_steps < 1:
            raise ValueError(f"max_walk_steps must be >= 1, got {self.max_walk_steps}")
        if self.max_vertex_degree < 1:
            raise ValueError(f"max_vertex_degree must be >= 1, got {self.max_vertex_degree}")
        if self.tree_max_entries < MIN_MAX_ENTRIES:
            raise ValueError(
                f"tree_max_entries must be >= {MIN_MAX_ENTRIES}, got {self.tree_max_entries}"
            )

    @classmethod
    def resolve(cls, epsilon: float | None = None, config: "SubdivisionConfig | None" = None) -> "SubdivisionConfig":
        """Combine the ``epsilon=`` shortcut with an explicit *config*."""
        if config is None:
            return cls() if epsilon is None else cls(epsilon=epsilon)
        if epsilon is not None and epsilon != config.epsilon:
            raise ValueError("pass either epsilon or config, not conflicting values of both")
        return config
