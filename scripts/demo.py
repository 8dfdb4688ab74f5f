import argparse
import random
import sys
from pathlib import Path

ROOT = Path(__file__).parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from planardiv import Polygon, ValuedSubdivision, configure_logging, validate_subdivision
from planardiv.diagnostics import subdivision_stats


def main() -> None:
    parser = argparse.ArgumentParser(description="Paint random rectangles over a subdivision")
    parser.add_argument("--count", type=int, default=12)
    parser.add_argument("--seed", type=int, default=1)
    parser.add_argument("--out", type=Path, default=None, help="Optional PNG output path")
    args = parser.parse_args()

    configure_logging("INFO")
    rng = random.Random(args.seed)
    painted: ValuedSubdivision[int] = ValuedSubdivision()
    for colour in range(args.count):
        x, y = rng.uniform(0, 80), rng.uniform(0, 80)
        w, h = rng.uniform(5, 20), rng.uniform(5, 20)
        painted.add_polygon_over(Polygon.rectangle(x, y, x + w, y + h), colour)

    errors = validate_subdivision(painted.subdivision)
    if errors:
        raise SystemExit("\n".join(errors))

    for key, value in subdivision_stats(painted.subdivision).to_dict().items():
        print(f"{key}: {value}")
    print("Distinct values:", len(set(painted.values().values())))

    if args.out is not None:
        from planardiv.render import render_png

        render_png(painted.subdivision, args.out, values=painted.values())
        print("Wrote", args.out)


if __name__ == "__main__":
    main()
