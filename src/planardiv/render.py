from __future__ import annotations

from pathlib import Path
from typing import Dict, Hashable, Mapping, Optional

from .models import FaceId
from .subdivision import PlanarSubdivision

_PALETTE = (
    "#5aa9e6", "#f4a259", "#8cb369", "#d1495b", "#b388eb",
    "#f7d08a", "#4ecdc4", "#e07a5f", "#81b29a", "#3d5a80",
)


def render_png(
    subdivision: PlanarSubdivision,
    output_path: str | Path,
    values: Optional[Mapping[FaceId, Hashable]] = None,
    face_alpha: float = 0.35,
    edge_color: str = "#2b2b2b",
    face_color: str = "#5aa9e6",
    vertex_color: str = "#2b2b2b",
    vertex_size: float = 8.0,
    padding: float = 0.5,
    dpi: int = 150,
) -> None:
    """Render a subdivision to PNG.

    Faces with an entry in *values* are coloured per distinct value;
    the rest use *face_color*. Requires matplotlib; imported lazily to
    keep the core package lightweight.
    """
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        from matplotlib.patches import Polygon as PolygonPatch
    except ImportError as exc:  # pragma: no cover - requires optional dep
        raise RuntimeError(
            "matplotlib is required for rendering. Install with `pip install matplotlib`."
        ) from exc

    if subdivision.num_vertices == 0:
        raise ValueError("Cannot render an empty subdivision.")

    colors: Dict[Hashable, str] = {}
    fig, ax = plt.subplots()

    for face_id in subdivision.faces():
        color = face_color
        if values is not None and face_id in values:
            value = values[face_id]
            if value not in colors:
                colors[value] = _PALETTE[len(colors) % len(_PALETTE)]
            color = colors[value]
        patch = PolygonPatch(
            subdivision.face_contour(face_id), closed=True, facecolor=color, alpha=face_alpha
        )
        ax.add_patch(patch)

    for a, b in subdivision.all_edges():
        (x1, y1), (x2, y2) = subdivision.position(a), subdivision.position(b)
        ax.plot([x1, x2], [y1, y2], color=edge_color, linewidth=1.0)

    xs = []
    ys = []
    for v in subdivision.vertices():
        x, y = subdivision.position(v)
        xs.append(x)
        ys.append(y)
    ax.scatter(xs, ys, s=vertex_size, c=vertex_color, zorder=3)

    ax.set_aspect("equal", "box")
    ax.set_xlim(min(xs) - padding, max(xs) + padding)
    ax.set_ylim(min(ys) - padding, max(ys) + padding)
    ax.axis("off")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=dpi, bbox_inches="tight", pad_inches=0)
    plt.close(fig)
