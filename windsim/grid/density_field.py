from __future__ import annotations

import numpy as np

from .field import Field


class DensityField(Field):
    """Per-cell density of air, one ``float32`` per cell."""

    dtype = np.float32

    def total(self, interior_only: bool = True) -> float:
        """Summed density, by default excluding the one-cell padding."""
        if interior_only:
            return float(self.data[1:-1, 1:-1, 1:-1].sum(dtype=np.float64))
        return float(self.data.sum(dtype=np.float64))
