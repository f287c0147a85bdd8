# -*- coding: utf-8 -*-
"""Scene queries consumed by the wind solver and the streamline baker.

Purpose
-------
The numerical core never talks to a physics engine. It needs exactly two
capabilities from the host scene:

- :class:`Occupancy`: "is anything solid inside this box", asked once per
  cell when the obstruction grid is (re)built;
- :class:`RayCast`: "first solid hit along this ray segment", asked once per
  traced streamline segment.

Either may be given as an object implementing the protocol or as a plain
callable with the same signature. When the host cannot answer, the ``Null*``
oracles (nothing solid, nothing hit) are the accepted degraded mode.

:class:`BoxScene` is a small reference scene made of axis-aligned boxes that
implements both protocols; it is what the tests and the demo CLI use.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, List, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

import numpy as np

logger = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]


@dataclass
class AABox:
    """Axis-aligned box ``[min, max]`` in world meters."""

    min: np.ndarray
    max: np.ndarray

    def __post_init__(self) -> None:
        self.min = np.asarray(self.min, dtype=np.float64).reshape(3)
        self.max = np.asarray(self.max, dtype=np.float64).reshape(3)
        if np.any(self.max < self.min):
            raise ValueError(f"AABox max {self.max} lies below min {self.min}")

    @classmethod
    def from_center(cls, center: Vec3, size: Vec3) -> "AABox":
        c = np.asarray(center, dtype=np.float64)
        h = 0.5 * np.asarray(size, dtype=np.float64)
        return cls(c - h, c + h)

    def overlaps(self, other: "AABox") -> bool:
        return bool(np.all(self.min <= other.max) and np.all(other.min <= self.max))

    def contains(self, point) -> bool:
        p = np.asarray(point, dtype=np.float64)
        return bool(np.all(p >= self.min) and np.all(p <= self.max))


@dataclass
class Hit:
    """Result of a ray cast: world hit point and distance along the ray."""

    point: np.ndarray
    distance: float = 0.0
    normal: Optional[np.ndarray] = None


@runtime_checkable
class Occupancy(Protocol):
    def is_solid(self, box: AABox) -> bool: ...


@runtime_checkable
class RayCast(Protocol):
    def cast(self, origin: np.ndarray, direction: np.ndarray, max_distance: float) -> Optional[Hit]: ...


class NullOccupancy:
    """Degraded oracle: nothing is solid."""

    def is_solid(self, box: AABox) -> bool:
        return False


class NullRayCast:
    """Degraded oracle: no ray ever hits."""

    def cast(self, origin, direction, max_distance) -> Optional[Hit]:
        return None


class _CallableOccupancy:
    def __init__(self, fn: Callable[[AABox], bool]):
        self.fn = fn

    def is_solid(self, box: AABox) -> bool:
        return bool(self.fn(box))


class _CallableRayCast:
    def __init__(self, fn: Callable[..., Optional[Hit]]):
        self.fn = fn

    def cast(self, origin, direction, max_distance) -> Optional[Hit]:
        hit = self.fn(origin, direction, max_distance)
        if hit is None or isinstance(hit, Hit):
            return hit
        # Bare points are accepted as hits
        p = np.asarray(hit, dtype=np.float64).reshape(3)
        return Hit(point=p, distance=float(np.linalg.norm(p - np.asarray(origin, dtype=np.float64))))


OccupancyLike = Union[Occupancy, Callable[[AABox], bool], None]
RayCastLike = Union[RayCast, Callable[..., Optional[Hit]], None]


def as_occupancy(oracle: OccupancyLike) -> Occupancy:
    if oracle is None:
        logger.warning("no occupancy oracle given; treating every cell as unobstructed")
        return NullOccupancy()
    if isinstance(oracle, Occupancy):
        return oracle
    if callable(oracle):
        return _CallableOccupancy(oracle)
    raise TypeError(f"expected an Occupancy oracle or callable, got {type(oracle).__name__}")


def as_ray_cast(oracle: RayCastLike) -> RayCast:
    if oracle is None:
        logger.warning("no ray-cast oracle given; streamlines will ignore occluders")
        return NullRayCast()
    if isinstance(oracle, RayCast):
        return oracle
    if callable(oracle):
        return _CallableRayCast(oracle)
    raise TypeError(f"expected a RayCast oracle or callable, got {type(oracle).__name__}")


@dataclass
class BoxScene:
    """Scene of solid axis-aligned boxes answering both oracle protocols."""

    boxes: List[AABox] = field(default_factory=list)

    def add(self, box: AABox) -> "BoxScene":
        self.boxes.append(box)
        return self

    def add_box(self, center: Vec3, size: Vec3) -> "BoxScene":
        return self.add(AABox.from_center(center, size))

    def is_solid(self, box: AABox) -> bool:
        return any(b.overlaps(box) for b in self.boxes)

    def cast(self, origin, direction, max_distance: float) -> Optional[Hit]:
        """Slab test against every box; returns the nearest hit within range.

        A ray starting inside a box hits at distance zero.
        """
        o = np.asarray(origin, dtype=np.float64)
        d = np.asarray(direction, dtype=np.float64)
        best: Optional[Hit] = None
        for b in self.boxes:
            t = _slab(o, d, b)
            if t is None or t > max_distance:
                continue
            if best is None or t < best.distance:
                best = Hit(point=o + t * d, distance=t)
        return best


def _slab(o: np.ndarray, d: np.ndarray, box: AABox) -> Optional[float]:
    t_near, t_far = -np.inf, np.inf
    for axis in range(3):
        if abs(d[axis]) < 1e-12:
            if o[axis] < box.min[axis] or o[axis] > box.max[axis]:
                return None
            continue
        t0 = (box.min[axis] - o[axis]) / d[axis]
        t1 = (box.max[axis] - o[axis]) / d[axis]
        if t0 > t1:
            t0, t1 = t1, t0
        t_near = max(t_near, t0)
        t_far = min(t_far, t1)
        if t_near > t_far:
            return None
    if t_far < 0.0:
        return None
    return float(max(t_near, 0.0))


def scene_from_boxes(boxes: Sequence[Tuple[Vec3, Vec3]]) -> BoxScene:
    """Build a :class:`BoxScene` from ``(center, size)`` pairs."""
    scene = BoxScene()
    for center, size in boxes:
        scene.add_box(center, size)
    return scene


__all__ = [
    "AABox",
    "Hit",
    "Occupancy",
    "RayCast",
    "NullOccupancy",
    "NullRayCast",
    "BoxScene",
    "as_occupancy",
    "as_ray_cast",
    "scene_from_boxes",
]
