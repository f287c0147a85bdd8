# bake.py
# -*- coding: utf-8 -*-
"""
Streamline baker: turns a simulated velocity field into spline functions.

Seeds are laid on a regular lattice of cells. From each seed the tracer walks
the velocity field one sampled vector per step, recording the point and the
wind magnitude, until the wind stalls, the walk leaves the simulation volume
or the step budget runs out. Segments that pass through an occluder are cut
at the hit point and the next step follows the wind sampled there.

All traces end up in one :class:`SplineGroup` inside one cube
:class:`WindSource` covering the simulation volume.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
import logging
from typing import Any, List, Mapping, Optional, Tuple

import numpy as np

from .base_functions import DEFAULT_SPLINE_DEGREE, SPLINE_SAMPLES_AUTO, Spline, SplineGroup
from .wind_source import VolumeType, WindSource
from ..solids.api import RayCast, RayCastLike, as_ray_cast

logger = logging.getLogger(__name__)

_F32 = 4


@dataclass
class BakeParams:
    # Seeding
    stride: Tuple[int, int, int] = (4, 4, 4)
    margin: Tuple[int, int, int] = (2, 1, 2)

    # Tracing
    max_steps: int = 100
    stall_threshold: float = 0.05   # m, per axis
    hit_epsilon: float = 0.01       # m, backed off from a hit along the ray
    min_points: int = 3
    kernel: str = "trilinear"

    # Output splines
    degree: int = DEFAULT_SPLINE_DEGREE
    sample_count: int = SPLINE_SAMPLES_AUTO

    def __post_init__(self) -> None:
        self.stride = tuple(int(s) for s in self.stride)
        self.margin = tuple(int(m) for m in self.margin)
        if len(self.stride) != 3 or any(s <= 0 for s in self.stride):
            raise ValueError(f"stride must be three positive integers, got {self.stride}")
        if len(self.margin) != 3 or any(m < 0 for m in self.margin):
            raise ValueError(f"margin must be three non-negative integers, got {self.margin}")
        if self.max_steps <= 0:
            raise ValueError("max_steps must be positive")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "BakeParams":
        known = {f for f in cls.__dataclass_fields__}
        kwargs = {}
        for key, value in values.items():
            if key in known:
                kwargs[key] = value
            else:
                logger.warning("ignoring unknown bake option %r", key)
        return replace(cls(), **kwargs)


def seed_cells(dim, params: BakeParams) -> List[Tuple[int, int, int]]:
    """Lattice of seed cells inside the padded ``dim``, respecting the margins."""
    axes = [
        range(m, n - m, s)
        for n, m, s in zip(dim, params.margin, params.stride)
    ]
    return [(x, y, z) for x in axes[0] for y in axes[1] for z in axes[2]]


def _inside(p: np.ndarray, lo: np.ndarray, hi: np.ndarray) -> bool:
    return bool(np.all(p >= lo) and np.all(p <= hi))


def trace_streamline(
    velocity,
    start,
    ray_cast: RayCast,
    origin_offset=(0.0, 0.0, 0.0),
    params: Optional[BakeParams] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Walk ``velocity`` from ``start`` (simulation meters).

    Returns ``(points, forces)`` with one force per point, or two empty arrays
    when the trace is too short to keep.
    """
    params = params or BakeParams()
    offset = np.asarray(origin_offset, dtype=np.float64)
    dim_m = velocity.dim_m
    upper = velocity.dim_m - 1.0
    empty = (np.zeros((0, 3)), np.zeros(0))

    point = np.asarray(start, dtype=np.float64).copy()
    if not _inside(point, np.zeros(3), dim_m):
        logger.error("cannot trace from %s, outside simulation extent %s", point, dim_m)
        return empty

    points = [point.copy()]
    forces: List[float] = []
    redirect: Optional[np.ndarray] = None
    for _ in range(params.max_steps):
        old = point.copy()
        if redirect is not None:
            sample, redirect = redirect, None
        else:
            sample = velocity.sample_near(point, kernel=params.kernel)
        point = point + sample
        forces.append(float(np.linalg.norm(sample)))

        if not np.any(np.abs(point - points[-1]) > params.stall_threshold):
            logger.debug("trace stalled at %s", point)
            break

        seg = point - old
        length = float(np.linalg.norm(seg))
        direction = seg / length
        hit = ray_cast.cast(old + offset, direction, length)
        if hit is not None:
            local = np.asarray(hit.point, dtype=np.float64) - offset
            redirect = velocity.sample_near(local, kernel=params.kernel)
            point = local - direction * params.hit_epsilon

        points.append(point.copy())
        if not _inside(point, np.zeros(3), upper):
            logger.debug("trace left the volume at %s", point)
            break

    if len(points) < params.min_points:
        logger.debug("dropping trace from %s with %d points", start, len(points))
        return empty

    if len(points) == len(forces) + 1:
        if _inside(points[-1], np.zeros(3), upper):
            forces.append(float(np.linalg.norm(velocity.sample_near(points[-1], kernel=params.kernel))))
        else:
            forces.append(forces[-1])

    return np.array(points), np.array(forces)


def bake(
    simulation,
    ray_cast: RayCastLike = None,
    origin_offset=(0.0, 0.0, 0.0),
    params: Optional[BakeParams] = None,
) -> WindSource:
    """Trace ``simulation``'s current velocity into a cube :class:`WindSource`."""
    params = params or BakeParams()
    oracle = as_ray_cast(ray_cast)
    velocity = simulation.V
    offset = np.asarray(origin_offset, dtype=np.float64)

    splines: List[Spline] = []
    for cell in seed_cells(velocity.dim, params):
        start = velocity.cell_to_meter(*cell)
        points, forces = trace_streamline(velocity, start, oracle, offset, params)
        if len(points):
            splines.append(Spline(points, forces, params.degree, params.sample_count))

    scale = velocity.dim_m - 1.0
    source = WindSource(VolumeType.CUBE, offset + scale / 2.0, scale)
    if splines:
        source.add_function(SplineGroup(splines))

    point_count = sum(len(s) for s in splines)
    sim_bytes = velocity.cell_count * _F32 * 3
    baked_bytes = point_count * _F32 * 3 + _F32
    logger.info(
        "baked %d streamlines (%d points); simulation %d bytes, wind source %d bytes",
        len(splines), point_count, sim_bytes, baked_bytes,
    )
    return source


__all__ = ["BakeParams", "bake", "seed_cells", "trace_streamline"]
