# -*- coding: utf-8 -*-
"""Vector field made of three co-indexed scalar component fields.

Vectors are assembled on read and split on write; nothing is stored packed,
so the solver can diffuse, advect and swap each component independently.
"""
from __future__ import annotations

from typing import Tuple

import numpy as np

from .field import Dim, Field
from ..common.stats import gaussian


class VectorField:
    """Velocity-like field with ``x``, ``y`` and ``z`` component :class:`Field` s."""

    def __init__(self, width: int, height: int, depth: int, cell_size: float = 1.0):
        self.x = Field(width, height, depth, cell_size)
        self.y = Field(width, height, depth, cell_size)
        self.z = Field(width, height, depth, cell_size)

    @property
    def dim(self) -> Dim:
        return self.x.dim

    @property
    def cell_size(self) -> float:
        return self.x.cell_size

    @property
    def cell_count(self) -> int:
        return self.x.cell_count

    @property
    def dim_m(self) -> np.ndarray:
        return self.x.dim_m

    @property
    def components(self) -> Tuple[Field, Field, Field]:
        return self.x, self.y, self.z

    def in_bounds(self, x: int, y: int, z: int) -> bool:
        return self.x.in_bounds(x, y, z)

    def cell_to_meter(self, x: float, y: float, z: float) -> np.ndarray:
        return self.x.cell_to_meter(x, y, z)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    def get(self, x: int, y: int = None, z: int = None) -> np.ndarray:
        """``get(x, y, z)`` or ``get(offset)``; returns a float64 3-vector."""
        return np.array([self.x.get(x, y, z), self.y.get(x, y, z), self.z.get(x, y, z)], dtype=np.float64)

    def set(self, *args) -> None:
        """``set(x, y, z, vec)`` or ``set(offset, vec)``."""
        *pos, vec = args
        vx, vy, vz = vec
        self.x.set(*pos, vx)
        self.y.set(*pos, vy)
        self.z.set(*pos, vz)

    def fill(self, vec) -> None:
        vx, vy, vz = vec
        self.x.fill(vx)
        self.y.fill(vy)
        self.z.fill(vz)

    def as_array(self) -> np.ndarray:
        """Stacked copy of shape ``(width, height, depth, 3)``."""
        return np.stack([self.x.data, self.y.data, self.z.data], axis=-1).astype(np.float64)

    def magnitude(self) -> np.ndarray:
        return np.sqrt(
            self.x.data.astype(np.float64) ** 2
            + self.y.data.astype(np.float64) ** 2
            + self.z.data.astype(np.float64) ** 2
        )

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------
    def sample_near(self, point, kernel: str = "trilinear") -> np.ndarray:
        """Sample the field at ``point`` (meters) from its 8 surrounding cells.

        Cell ``(i, j, k)`` is taken to sit at ``(i, j, k) * cell_size``.
        Corners outside the grid contribute nothing, so a point far outside
        the volume samples the zero vector. ``kernel`` is ``"trilinear"`` or
        ``"gaussian"`` (weights fall off with distance; the width is
        ``max(1, cell_size / 2)`` meters because :func:`gaussian` floors it
        at one).
        """
        return self.sample_many(np.asarray(point, dtype=np.float64)[None, :], kernel=kernel)[0]

    def sample_many(self, points: np.ndarray, kernel: str = "trilinear") -> np.ndarray:
        """Vectorized :meth:`sample_near` for an ``(N, 3)`` array of points."""
        P = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        C = P / self.cell_size
        base = np.floor(C).astype(np.int64)
        frac = C - base
        w, h, d = self.dim

        out = np.zeros((P.shape[0], 3), dtype=np.float64)
        if kernel == "gaussian":
            weights = []
            for corner in _CORNERS:
                dist = np.linalg.norm(C - (base + corner), axis=1) * self.cell_size
                weights.append(gaussian(dist, 1.0, 0.0, self.cell_size / 2.0))
            total = np.sum(weights, axis=0)
            weights = [wgt / total for wgt in weights]
        elif kernel == "trilinear":
            weights = []
            for corner in _CORNERS:
                t = np.where(corner == 1, frac, 1.0 - frac)
                weights.append(t[:, 0] * t[:, 1] * t[:, 2])
        else:
            raise ValueError(f"unknown sampling kernel {kernel!r}")

        for corner, wgt in zip(_CORNERS, weights):
            idx = base + corner
            ok = (
                (idx[:, 0] >= 0) & (idx[:, 0] < w)
                & (idx[:, 1] >= 0) & (idx[:, 1] < h)
                & (idx[:, 2] >= 0) & (idx[:, 2] < d)
            )
            if not np.any(ok):
                continue
            i, j, k = idx[ok, 0], idx[ok, 1], idx[ok, 2]
            out[ok, 0] += wgt[ok] * self.x.data[i, j, k]
            out[ok, 1] += wgt[ok] * self.y.data[i, j, k]
            out[ok, 2] += wgt[ok] * self.z.data[i, j, k]
        return out

    @staticmethod
    def swap(field0: "VectorField", field1: "VectorField") -> None:
        for a, b in zip(field0.components, field1.components):
            Field.swap(a, b)

    def __repr__(self) -> str:
        return f"VectorField(dim={tuple(self.dim)}, cell_size={self.cell_size})"


_CORNERS = [np.array(c, dtype=np.int64) for c in (
    (0, 0, 0), (0, 0, 1), (0, 1, 0), (0, 1, 1),
    (1, 0, 0), (1, 0, 1), (1, 1, 0), (1, 1, 1),
)]

__all__ = ["VectorField"]
