# field.py
# -*- coding: utf-8 -*-
"""
Dense 3D grid storage shared by every field of a wind simulation.

A :class:`Field` owns one numpy array of shape ``(width, height, depth)``
stored in Fortran order, so the flat offset of cell ``(x, y, z)`` is
``x + width*y + width*height*z``. Solver loops sweep that flat buffer in
increasing offset order (x fastest, z slowest).

Fields carry their cell size in meters and convert between cell indices and
positions. The cell ``(x, y, z)`` spans ``[x, x+1) * cell_size`` on each axis;
``cell_to_meter`` returns its lower corner.

Indices outside ``[0, dim)`` are the caller's responsibility: numpy may raise
or wrap negative indices. The solver only ever touches valid cells.
"""

from __future__ import annotations
from typing import NamedTuple, Tuple

import numpy as np


class Dim(NamedTuple):
    width: int
    height: int
    depth: int

    @property
    def cell_count(self) -> int:
        return self.width * self.height * self.depth

    def padded(self, pad: int = 1) -> "Dim":
        return Dim(self.width + 2 * pad, self.height + 2 * pad, self.depth + 2 * pad)


class Field:
    """Scalar field of ``dtype`` values on a ``width x height x depth`` grid."""

    dtype = np.float32

    def __init__(self, width: int, height: int, depth: int, cell_size: float = 1.0, dtype=None):
        self.dim = Dim(int(width), int(height), int(depth))
        self.cell_size = float(cell_size)
        self.data = np.zeros(self.dim, dtype=dtype or self.dtype, order="F")

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    @property
    def cell_count(self) -> int:
        return self.dim.cell_count

    @property
    def flat(self) -> np.ndarray:
        """Flat view of the data in offset order."""
        return self.data.ravel(order="F")

    @property
    def dim_m(self) -> np.ndarray:
        """Extent of the field in meters."""
        return np.array(self.dim, dtype=np.float64) * self.cell_size

    def from_pos(self, x: int, y: int, z: int) -> int:
        w, h, _ = self.dim
        return int(x + w * y + w * h * z)

    def from_offset(self, offset: int) -> Tuple[int, int, int]:
        w, h, _ = self.dim
        return int(offset % w), int((offset % (w * h)) // w), int(offset // (w * h))

    def in_bounds(self, x: int, y: int, z: int) -> bool:
        w, h, d = self.dim
        return 0 <= x < w and 0 <= y < h and 0 <= z < d

    def on_edge(self, x: int, y: int, z: int) -> bool:
        w, h, d = self.dim
        return x == 0 or y == 0 or z == 0 or x == w - 1 or y == h - 1 or z == d - 1

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    def get(self, x: int, y: int = None, z: int = None):
        """``get(x, y, z)`` for a cell or ``get(offset)`` for a flat offset."""
        if y is None:
            return self.flat[x]
        return self.data[x, y, z]

    def set(self, *args) -> None:
        """``set(x, y, z, value)`` or ``set(offset, value)``."""
        if len(args) == 2:
            offset, value = args
            self.data[self.from_offset(offset)] = value
        elif len(args) == 4:
            x, y, z, value = args
            self.data[x, y, z] = value
        else:
            raise TypeError("set expects (offset, value) or (x, y, z, value)")

    def get_clamped(self, x: int, y: int, z: int):
        w, h, d = self.dim
        return self.data[min(max(x, 0), w - 1), min(max(y, 0), h - 1), min(max(z, 0), d - 1)]

    def fill(self, value) -> None:
        self.data.fill(value)

    # ------------------------------------------------------------------
    # Coordinates
    # ------------------------------------------------------------------
    def cell_to_meter(self, x: float, y: float, z: float) -> np.ndarray:
        return np.array([x, y, z], dtype=np.float64) * self.cell_size

    def meter_to_cell(self, point) -> np.ndarray:
        """Fractional cell coordinates of a position in meters."""
        return np.asarray(point, dtype=np.float64) / self.cell_size

    # ------------------------------------------------------------------
    # Buffering
    # ------------------------------------------------------------------
    @staticmethod
    def swap(field0: "Field", field1: "Field") -> None:
        """Exchange the backing arrays of two fields of identical dimensions."""
        if field0.dim != field1.dim:
            raise ValueError(
                f"swapping field data requires equal dimensions; got {field0.dim} and {field1.dim}"
            )
        field0.data, field1.data = field1.data, field0.data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(dim={tuple(self.dim)}, cell_size={self.cell_size})"


__all__ = ["Dim", "Field"]
