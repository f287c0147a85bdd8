# base_functions.py
# -*- coding: utf-8 -*-
"""
Analytic and spline wind basis functions.

A basis function maps a point in meters to a wind vector. Wind sources sum
the outputs of their functions. Four variants exist:

- :class:`Constant`    ``direction * magnitude`` everywhere
- :class:`Polynomial`  per-axis quadratic in the offset from ``origo``
- :class:`Spline`      one traced streamline; the force of its closest point
- :class:`SplineGroup` streamlines blended by distance to each of them

Binary layout (little-endian)
-----------------------------
Each function starts with a ``u32`` tag (0 constant, 1 spline, 2 polynomial,
3 spline group) followed by:

- constant:     ``f32 x3`` direction, ``f32`` magnitude
- polynomial:   ``f32 x3`` origo, ``f32 x9`` x0 x1 x2 y0 y1 y2 z0 z1 z2
- spline:       ``u32`` point count, ``u32`` force count, ``f32 x3`` per point,
                ``f32`` per force, ``u32`` degree, ``u32`` sample count
- spline group: ``u32`` spline count, then each spline body without its tag

Mapping layout
--------------
``{"type": "constant" | "polynomial" | "spline" | "splineGroup", ...}`` with
camelCase keys matching the binary fields. A function without ``type`` is a
constant.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import struct
from typing import Any, ClassVar, Dict, List, Optional, Sequence

import numpy as np
from scipy.interpolate import BSpline

from ..common.stats import gaussian

logger = logging.getLogger(__name__)

TAG_CONSTANT = 0
TAG_SPLINE = 1
TAG_POLYNOMIAL = 2
TAG_SPLINE_GROUP = 3

# Sample count meaning "one sample per meter of estimated curve length"
SPLINE_SAMPLES_AUTO = 0xFFFFFFFF
DEFAULT_SPLINE_DEGREE = 2

# Distance between first and last point under which a spline is a closed loop
_LOOP_EPSILON = 0.1


def as_vec3(value) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"expected a 3-vector, got shape {arr.shape}")
    return arr


# ---------------------------------------------------------------------------
# Byte streams
# ---------------------------------------------------------------------------
class ByteReader:
    """Sequential little-endian reader; truncation raises ``ValueError``."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data = bytes(data)
        self.offset = offset

    def read(self, fmt: str):
        fmt = "<" + fmt
        size = struct.calcsize(fmt)
        if self.offset + size > len(self.data):
            raise ValueError(
                f"truncated buffer: need {size} bytes at offset {self.offset}, "
                f"have {len(self.data) - self.offset}"
            )
        values = struct.unpack_from(fmt, self.data, self.offset)
        self.offset += size
        return values

    def u8(self) -> int:
        return self.read("B")[0]

    def u32(self) -> int:
        return self.read("I")[0]

    def f32(self) -> float:
        return self.read("f")[0]

    def vec3(self) -> np.ndarray:
        return np.array(self.read("3f"), dtype=np.float64)

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset


def _pack_vec3(v: np.ndarray) -> bytes:
    return struct.pack("<3f", *(float(c) for c in v))


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class BaseFn:
    """Common interface of all wind basis functions."""

    tag: ClassVar[int] = -1
    type_name: ClassVar[str] = ""

    def evaluate(self, point) -> np.ndarray:
        raise NotImplementedError

    def __call__(self, point) -> np.ndarray:
        return self.evaluate(point)

    # Binary codec ----------------------------------------------------------
    def _body_bytes(self) -> bytes:
        raise NotImplementedError

    def to_bytes(self) -> bytes:
        return struct.pack("<I", self.tag) + self._body_bytes()

    @staticmethod
    def read(reader: ByteReader) -> "BaseFn":
        tag = reader.u32()
        cls = _BY_TAG.get(tag)
        if cls is None:
            raise ValueError(f"unknown basis function tag {tag}")
        return cls._read_body(reader)

    @staticmethod
    def from_bytes(data: bytes) -> "BaseFn":
        reader = ByteReader(data)
        fn = BaseFn.read(reader)
        if reader.remaining:
            logger.warning("%d trailing bytes after basis function ignored", reader.remaining)
        return fn

    # Mapping codec ---------------------------------------------------------
    def _body_dict(self) -> Dict[str, Any]:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        out = {"type": self.type_name}
        out.update(self._body_dict())
        return out

    @staticmethod
    def from_dict(value: Dict[str, Any]) -> "BaseFn":
        type_name = value.get("type", Constant.type_name)
        cls = _BY_NAME.get(type_name)
        if cls is None:
            raise ValueError(f"unknown basis function type {type_name!r}")
        return cls._from_body_dict(value)


# ---------------------------------------------------------------------------
# Constant
# ---------------------------------------------------------------------------
@dataclass(eq=False)
class Constant(BaseFn):
    direction: np.ndarray = field(default_factory=lambda: np.zeros(3))
    magnitude: float = 0.0

    tag: ClassVar[int] = TAG_CONSTANT
    type_name: ClassVar[str] = "constant"

    def __post_init__(self) -> None:
        self.direction = as_vec3(self.direction)
        self.magnitude = float(self.magnitude)

    def evaluate(self, point) -> np.ndarray:
        return self.direction * self.magnitude

    def _body_bytes(self) -> bytes:
        return _pack_vec3(self.direction) + struct.pack("<f", self.magnitude)

    @classmethod
    def _read_body(cls, reader: ByteReader) -> "Constant":
        direction = reader.vec3()
        return cls(direction, reader.f32())

    def _body_dict(self) -> Dict[str, Any]:
        return {"direction": self.direction.tolist(), "magnitude": self.magnitude}

    @classmethod
    def _from_body_dict(cls, value: Dict[str, Any]) -> "Constant":
        return cls(value.get("direction", (0.0, 0.0, 0.0)), value.get("magnitude", 0.0))


# ---------------------------------------------------------------------------
# Polynomial
# ---------------------------------------------------------------------------
_POLY_COEFFS = ("x0", "x1", "x2", "y0", "y1", "y2", "z0", "z1", "z2")


@dataclass(eq=False)
class Polynomial(BaseFn):
    """``(x0 + x1*dx + x2*dx^2, y0 + ..., z0 + ...)`` with ``d = point - origo``."""

    origo: np.ndarray = field(default_factory=lambda: np.zeros(3))
    x0: float = 0.0
    x1: float = 0.0
    x2: float = 0.0
    y0: float = 0.0
    y1: float = 0.0
    y2: float = 0.0
    z0: float = 0.0
    z1: float = 0.0
    z2: float = 0.0

    tag: ClassVar[int] = TAG_POLYNOMIAL
    type_name: ClassVar[str] = "polynomial"

    def __post_init__(self) -> None:
        self.origo = as_vec3(self.origo)

    @property
    def coefficients(self) -> np.ndarray:
        """Coefficients as a ``(3, 3)`` array, one row per axis, constant term first."""
        return np.array([getattr(self, n) for n in _POLY_COEFFS], dtype=np.float64).reshape(3, 3)

    def evaluate(self, point) -> np.ndarray:
        d = as_vec3(point) - self.origo
        c = self.coefficients
        return c[:, 0] + c[:, 1] * d + c[:, 2] * d * d

    def _body_bytes(self) -> bytes:
        return _pack_vec3(self.origo) + struct.pack("<9f", *(getattr(self, n) for n in _POLY_COEFFS))

    @classmethod
    def _read_body(cls, reader: ByteReader) -> "Polynomial":
        origo = reader.vec3()
        return cls(origo, *reader.read("9f"))

    def _body_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"origo": self.origo.tolist()}
        out.update({n: float(getattr(self, n)) for n in _POLY_COEFFS})
        return out

    @classmethod
    def _from_body_dict(cls, value: Dict[str, Any]) -> "Polynomial":
        return cls(value.get("origo", (0.0, 0.0, 0.0)), *(value.get(n, 0.0) for n in _POLY_COEFFS))


# ---------------------------------------------------------------------------
# Spline
# ---------------------------------------------------------------------------
@dataclass(eq=False)
class Spline(BaseFn):
    """
    One streamline: ordered points with a force magnitude per point.

    Evaluation takes the point of the streamline closest to the query and
    returns the unit direction towards the next point scaled by that point's
    force. At the last point the direction continues the final segment, or
    wraps to the first point when the streamline closes on itself.
    """

    points: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    forces: np.ndarray = field(default_factory=lambda: np.zeros(0))
    degree: int = DEFAULT_SPLINE_DEGREE
    sample_count: int = SPLINE_SAMPLES_AUTO

    tag: ClassVar[int] = TAG_SPLINE
    type_name: ClassVar[str] = "spline"

    def __post_init__(self) -> None:
        self.points = np.asarray(self.points, dtype=np.float64).reshape(-1, 3)
        self.forces = np.asarray(self.forces, dtype=np.float64).reshape(-1)
        self.degree = int(self.degree)
        self.sample_count = int(self.sample_count)

    def __len__(self) -> int:
        return len(self.points)

    def closest_point(self, point):
        """Return ``(index, distance)`` of the point nearest to ``point``."""
        d = np.linalg.norm(self.points - as_vec3(point), axis=1)
        idx = int(np.argmin(d))
        return idx, float(d[idx])

    def force_at(self, index: int) -> np.ndarray:
        pts = self.points
        n = len(pts)
        a = pts[index]
        if index + 1 < n:
            b = pts[index + 1]
        elif n < 2:
            return np.zeros(3)
        elif np.linalg.norm(pts[0] - pts[-1]) > _LOOP_EPSILON:
            b = a + (a - pts[index - 1])
        else:
            b = pts[0]
        direction = b - a
        length = np.linalg.norm(direction)
        if length == 0.0:
            return np.zeros(3)
        force = self.forces[index] if index < len(self.forces) else 0.0
        return direction / length * force

    def evaluate(self, point) -> np.ndarray:
        if len(self.points) == 0:
            return np.zeros(3)
        idx, _ = self.closest_point(point)
        return self.force_at(idx)

    # Geometry ----------------------------------------------------------------
    def length_estimate(self) -> float:
        """Length of the control polygon."""
        if len(self.points) < 2:
            return 0.0
        return float(np.linalg.norm(np.diff(self.points, axis=0), axis=1).sum())

    def basis(self) -> BSpline:
        """Clamped B-spline of ``degree`` with the points as control points."""
        n, k = len(self.points), self.degree
        if n <= k:
            raise ValueError(f"a degree {k} spline needs at least {k + 1} points, got {n}")
        inner = np.linspace(0.0, 1.0, n - k + 1)[1:-1]
        knots = np.concatenate([np.zeros(k + 1), inner, np.ones(k + 1)])
        return BSpline(knots, self.points, k)

    def curve(self, samples: Optional[int] = None) -> np.ndarray:
        """Sample the B-spline curve at ``t = i / samples`` for ``i = 1..samples``.

        With the auto sample count, one sample is taken per meter of curve
        length (measured on ten sub-samples per control point).
        """
        if samples is None:
            samples = self.sample_count
        spline = self.basis()
        if samples == SPLINE_SAMPLES_AUTO:
            t = np.linspace(0.0, 1.0, len(self.points) * 10 + 1)
            dense = spline(t)
            length = float(np.linalg.norm(np.diff(dense, axis=0), axis=1).sum())
            samples = max(1, int(length))
        t = np.arange(1, samples + 1, dtype=np.float64) / samples
        return spline(t)

    # Codecs ------------------------------------------------------------------
    def _body_bytes(self) -> bytes:
        out = [struct.pack("<II", len(self.points), len(self.forces))]
        out.append(self.points.astype("<f4").tobytes())
        out.append(self.forces.astype("<f4").tobytes())
        out.append(struct.pack("<II", self.degree, self.sample_count))
        return b"".join(out)

    @classmethod
    def _read_body(cls, reader: ByteReader) -> "Spline":
        pcount, fcount = reader.read("II")
        points = reader.read(f"{3 * pcount}f") if pcount else ()
        forces = reader.read(f"{fcount}f") if fcount else ()
        degree, samples = reader.read("II")
        return cls(np.array(points, dtype=np.float64), np.array(forces, dtype=np.float64), degree, samples)

    def _body_dict(self) -> Dict[str, Any]:
        return {
            "points": self.points.tolist(),
            "forces": self.forces.tolist(),
            "degree": self.degree,
            "sampleCount": self.sample_count,
        }

    @classmethod
    def _from_body_dict(cls, value: Dict[str, Any]) -> "Spline":
        points = np.asarray(value.get("points", []), dtype=np.float64).reshape(-1, 3)
        if "forces" in value:
            forces = value["forces"]
        else:
            logger.warning("spline without forces; defaulting every point to 1.0")
            forces = np.ones(len(points))
        return cls(
            points,
            forces,
            value.get("degree", DEFAULT_SPLINE_DEGREE),
            value.get("sampleCount", SPLINE_SAMPLES_AUTO),
        )


# ---------------------------------------------------------------------------
# Spline group
# ---------------------------------------------------------------------------
@dataclass(eq=False)
class SplineGroup(BaseFn):
    """
    Streamlines blended by proximity.

    Each spline contributes its closest-point force weighted by
    ``gaussian(dist, 1, 0, max(1, nearest_dist))``; weights are normalized.
    """

    splines: List[Spline] = field(default_factory=list)

    tag: ClassVar[int] = TAG_SPLINE_GROUP
    type_name: ClassVar[str] = "splineGroup"

    def __len__(self) -> int:
        return len(self.splines)

    def evaluate(self, point) -> np.ndarray:
        usable = [s for s in self.splines if len(s.points)]
        if not usable:
            return np.zeros(3)
        closest = [s.closest_point(point) for s in usable]
        dists = np.array([d for _, d in closest], dtype=np.float64)
        forces = np.array([s.force_at(i) for s, (i, _) in zip(usable, closest)])
        g = gaussian(dists, 1.0, 0.0, float(dists.min()))
        return (forces * (g / g.sum())[:, None]).sum(axis=0)

    def _body_bytes(self) -> bytes:
        return struct.pack("<I", len(self.splines)) + b"".join(s._body_bytes() for s in self.splines)

    @classmethod
    def _read_body(cls, reader: ByteReader) -> "SplineGroup":
        count = reader.u32()
        return cls([Spline._read_body(reader) for _ in range(count)])

    def _body_dict(self) -> Dict[str, Any]:
        return {"splines": [s._body_dict() for s in self.splines]}

    @classmethod
    def _from_body_dict(cls, value: Dict[str, Any]) -> "SplineGroup":
        return cls([Spline._from_body_dict(s) for s in value.get("splines", [])])


_BY_TAG = {c.tag: c for c in (Constant, Spline, Polynomial, SplineGroup)}
_BY_NAME = {c.type_name: c for c in (Constant, Spline, Polynomial, SplineGroup)}


def evaluate_all(functions: Sequence[BaseFn], point) -> np.ndarray:
    """Sum of ``functions`` at ``point``."""
    out = np.zeros(3)
    for fn in functions:
        out += fn.evaluate(point)
    return out


__all__ = [
    "BaseFn",
    "ByteReader",
    "Constant",
    "Polynomial",
    "Spline",
    "SplineGroup",
    "SPLINE_SAMPLES_AUTO",
    "DEFAULT_SPLINE_DEGREE",
    "TAG_CONSTANT",
    "TAG_SPLINE",
    "TAG_POLYNOMIAL",
    "TAG_SPLINE_GROUP",
    "evaluate_all",
]
