"""planardiv command-line interface."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .builders import add_delaunay_edges
from .diagnostics import subdivision_stats, validate_subdivision
from .io import load_json, save_json
from .logging_utils import configure_logging, get_logger
from .subdivision import PlanarSubdivision

log = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="planardiv CLI")
    parser.add_argument("--log-level", default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    stats = sub.add_parser("stats", help="Print vertex/edge/face counts")
    stats.add_argument("--in", dest="input_path", required=True)
    stats.add_argument("--epsilon", type=float)

    validate = sub.add_parser("validate", help="Check planarity and half-edge integrity")
    validate.add_argument("--in", dest="input_path", required=True)
    validate.add_argument("--epsilon", type=float)

    render = sub.add_parser("render", help="Render a subdivision to PNG")
    render.add_argument("--in", dest="input_path", required=True)
    render.add_argument("--out", dest="output_path", required=True)
    render.add_argument("--dpi", type=int, default=150)

    delaunay = sub.add_parser("delaunay", help="Triangulate a point list into a subdivision")
    delaunay.add_argument("--points", dest="points_path", required=True,
                          help="JSON file holding [[x, y], ...]")
    delaunay.add_argument("--out", dest="output_path", required=True)
    delaunay.add_argument("--epsilon", type=float)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "stats":
        subdivision = load_json(args.input_path, epsilon=args.epsilon)
        print(json.dumps(subdivision_stats(subdivision).to_dict(), indent=2))
        return

    if args.command == "validate":
        subdivision = load_json(args.input_path, epsilon=args.epsilon)
        errors = validate_subdivision(subdivision)
        if errors:
            for error in errors:
                print(error)
            sys.exit(1)
        print("ok")
        return

    if args.command == "render":
        from .render import render_png

        subdivision = load_json(args.input_path)
        render_png(subdivision, args.output_path, dpi=args.dpi)
        log.info("rendered %s", args.output_path)
        return

    if args.command == "delaunay":
        points = json.loads(Path(args.points_path).read_text(encoding="utf-8"))
        subdivision = PlanarSubdivision(epsilon=args.epsilon)
        fed = add_delaunay_edges(subdivision, [tuple(p) for p in points])
        save_json(subdivision, args.output_path)
        log.info(
            "triangulated %d points: %d edges fed, %d faces",
            len(points), fed, subdivision.num_faces,
        )
        return


if __name__ == "__main__":
    main()
