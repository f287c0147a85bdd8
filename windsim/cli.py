import argparse
import json
from typing import List, Optional

import numpy as np

from .common import debug
from .common.config import SimConfig
from .sim.wind_sim import WindSimulation
from .solids.api import BoxScene
from .wind.bake import BakeParams, bake
from .wind.delta import DeltaField


def build_parser(add_help: bool = True) -> argparse.ArgumentParser:
    """Create the ArgumentParser for the headless wind demo.

    Use add_help=False when composing this as a parent parser.
    """
    parser = argparse.ArgumentParser(
        description="Simulate wind in a box, bake it into streamlines and report the error",
        add_help=add_help,
    )
    parser.add_argument("--size", type=float, nargs=3, default=[12.0, 8.0, 12.0],
                        metavar=("W", "H", "D"), help="simulation extent in meters")
    parser.add_argument("--cell-size", type=float, default=1.0, help="meters per cell")
    parser.add_argument("--steps", type=int, default=10)
    parser.add_argument("--dt", type=float, default=0.01, help="seconds per step")
    parser.add_argument("--preset", choices=["vec", "tornado", "source"], default="vec",
                        help="initial velocity layout")
    parser.add_argument("--wind", type=float, nargs=3, default=[0.0, 0.0, 1.0],
                        metavar=("X", "Y", "Z"), help="velocity for the 'vec' preset")
    parser.add_argument(
        "--obstacle", type=float, nargs=6, action="append", default=[],
        metavar=("CX", "CY", "CZ", "SX", "SY", "SZ"),
        help="solid box by center and size (world meters); repeatable",
    )
    parser.add_argument("--origin", type=float, nargs=3, default=[0.0, 0.0, 0.0],
                        metavar=("X", "Y", "Z"), help="world position of the first interior cell")
    parser.add_argument("--stride", type=int, default=4, help="bake seed stride in cells")
    parser.add_argument("--kernel", choices=["trilinear", "gaussian"], default="trilinear")
    parser.add_argument("--env-config", action="store_true",
                        help="read solver switches from WINDSIM_* environment variables")
    # Export options
    parser.add_argument("--export-json", type=str, default="",
                        help="If set, write the baked wind source as JSON to this path.")
    parser.add_argument("--export-bin", type=str, default="",
                        help="If set, write the baked wind source in binary form to this path.")
    parser.add_argument("--debug", action="store_true", help="enable windsim debug logging")
    return parser


def parse_args(argv: Optional[List[str]] = None):
    return build_parser(add_help=True).parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.debug:
        debug.enable(True)
    log = debug.dbg("cli")

    config = SimConfig(run_enabled=True)
    if args.env_config:
        config = SimConfig.from_env(base=config)
    sim = WindSimulation(*args.size, cell_size=args.cell_size, config=config)

    scene = BoxScene()
    for cx, cy, cz, sx, sy, sz in args.obstacle:
        scene.add_box((cx, cy, cz), (sx, sy, sz))
    sim.build_for_scene(scene, args.origin)

    if args.preset == "tornado":
        sim.set_as_tornado()
    elif args.preset == "source":
        sim.add_velocity_source()
        sim.add_density_source()
    else:
        sim.set_as_vec(args.wind)

    for _ in range(int(args.steps)):
        sim.step(args.dt)
    log.info("stepped %d times, max divergence %.4g", args.steps, float(np.abs(sim.divergence()).max()))

    params = BakeParams(stride=(args.stride,) * 3, kernel=args.kernel)
    source = bake(sim, scene, args.origin, params)
    delta = DeltaField.from_pair(sim, source)
    stats = delta.box_plot()

    print(f"simulation: {sim}, obstructed cells {sim.O.count()}")
    print(f"wind source: {source.volume_type.to_string()} at {debug.pretty_vec(source.position)} "
          f"scale {debug.pretty_vec(source.scale)}, {source.byte_size()} bytes")
    print(f"mean error {delta.get_error():.4f}")
    print(f"box plot: median {stats.median:.4f} q1 {stats.q1:.4f} q3 {stats.q3:.4f} "
          f"whiskers [{stats.min:.4f}, {stats.max:.4f}] outliers {stats.outliers}")

    if args.export_json:
        with open(args.export_json, "w", encoding="utf-8") as fh:
            json.dump(source.to_dict(), fh, indent=2)
        print(f"Wrote JSON to {args.export_json}")
    if args.export_bin:
        with open(args.export_bin, "wb") as fh:
            fh.write(source.to_bytes())
        print(f"Wrote bytes to {args.export_bin}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
