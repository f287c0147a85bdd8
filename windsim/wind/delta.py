# -*- coding: utf-8 -*-
"""Difference between a simulated velocity field and its baked approximation."""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from ..common.stats import BoxPlot, box_plot
from ..grid.vector_field import VectorField
from .wind_source import WindSource

logger = logging.getLogger(__name__)


class DeltaField:
    """Per-cell ``baked - simulated`` wind, zero in obstructed cells.

    Built once from a ``(simulation, wind_source)`` pair; later changes to
    either are not reflected until :meth:`build` is called again.
    """

    def __init__(self):
        self.delta: Optional[VectorField] = None
        self.simulated: Optional[VectorField] = None
        self.baked: Optional[VectorField] = None
        self._obstructed: Optional[np.ndarray] = None

    @classmethod
    def from_pair(cls, simulation, wind_source: WindSource) -> "DeltaField":
        out = cls()
        out.build(simulation, wind_source)
        return out

    @property
    def is_built(self) -> bool:
        return self.delta is not None

    def build(self, simulation, wind_source: WindSource) -> None:
        w, h, d = simulation.dim
        cs = simulation.cell_size
        self.delta = VectorField(w, h, d, cs)
        self.simulated = VectorField(w, h, d, cs)
        self.baked = VectorField(w, h, d, cs)
        self._obstructed = simulation.O.data.copy()

        for z in range(d):
            for y in range(h):
                for x in range(w):
                    v_sim = simulation.V.get(x, y, z)
                    v_bake = wind_source.wind_at_point(
                        np.array([x + 0.5, y + 0.5, z + 0.5]) * cs
                    )
                    obstructed = self._obstructed[x, y, z]
                    self.delta.set(x, y, z, np.zeros(3) if obstructed else v_bake - v_sim)
                    self.simulated.set(x, y, z, v_sim)
                    self.baked.set(x, y, z, v_bake)
        logger.debug("delta field %s built, mean error %.4f", (w, h, d), self.get_error())

    def _require(self) -> VectorField:
        if self.delta is None:
            raise RuntimeError("delta field has not been built")
        return self.delta

    def get(self, x: int, y: int, z: int) -> np.ndarray:
        return self._require().get(x, y, z)

    def magnitudes(self, include_obstructed: bool = True) -> np.ndarray:
        mag = self._require().magnitude()
        if include_obstructed:
            return mag.ravel()
        return mag[~self._obstructed]

    def get_error(self) -> float:
        """Mean delta magnitude over every cell, obstructed ones included."""
        mag = self.magnitudes()
        if mag.size == 0:
            return 0.0
        return float(mag.mean())

    def box_plot(self, whisker: float = 1.5) -> BoxPlot:
        """Box plot of delta magnitudes over unobstructed cells."""
        return box_plot(self.magnitudes(include_obstructed=False), whisker=whisker)


__all__ = ["DeltaField"]
