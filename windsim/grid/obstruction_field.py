from __future__ import annotations

import logging

import numpy as np

from .field import Field
from ..solids.api import AABox, OccupancyLike, as_occupancy

logger = logging.getLogger(__name__)

# Fraction of a cell shaved off each side of the query box, so that solids
# merely touching a cell face do not mark the cell.
CELL_INSET = 0.05


class ObstructionField(Field):
    """Boolean solid/empty flag per cell, built from an occupancy oracle."""

    dtype = np.bool_

    def build_for_scene(self, occupancy: OccupancyLike, position=(0.0, 0.0, 0.0)) -> int:
        """Rebuild every cell from ``occupancy``; returns the obstructed count.

        ``position`` is the world position of the first interior cell, so the
        padding layer sits one cell below it on each axis.
        """
        oracle = as_occupancy(occupancy)
        self.fill(False)
        cs = self.cell_size
        origin = np.asarray(position, dtype=np.float64) - cs
        w, h, d = self.dim
        for z in range(d):
            for y in range(h):
                for x in range(w):
                    pos = origin + np.array([x, y, z], dtype=np.float64) * cs
                    box = AABox(pos + CELL_INSET * cs, pos + (1.0 - CELL_INSET) * cs)
                    if oracle.is_solid(box):
                        self.data[x, y, z] = True
        count = self.count()
        logger.debug("obstruction grid %s rebuilt: %d solid cells", tuple(self.dim), count)
        return count

    def count(self) -> int:
        return int(np.count_nonzero(self.data))

    def is_obstructed(self, x: int, y: int, z: int) -> bool:
        return bool(self.data[x, y, z])


__all__ = ["ObstructionField", "CELL_INSET"]
