# wind_sim.py
# -*- coding: utf-8 -*-
"""
Grid wind simulation for scene volumes.

Features
--------
- Stable-fluids (Stam) Navier–Stokes solver extended to 3D
- Density and velocity fields on a grid padded by one boundary cell per side
- Implicit diffusion via fixed-count Gauss-Seidel relaxation
- Semi-Lagrangian advection with trilinear interpolation
- Projection onto a divergence-free velocity field
- Static obstruction grid built from a scene occupancy query; velocity never
  flows into an obstructed neighbour
- One-shot density/velocity sources and preset velocity layouts
- Pre/post step hooks and a headless field export for visualization

Units
-----
Constructor extents and cell sizes are in meters; the solver itself works in
cells. Cell ``(x, y, z)`` of the padded grid has its lower corner at
``(x, y, z) * cell_size`` in simulation space; interior cells are ``1..dim``.

References (informal)
---------------------
- Stam (1999) "Stable Fluids"
- Stam (2003) "Real-Time Fluid Dynamics for Games"
"""

from __future__ import annotations
from enum import Enum
import logging
from typing import Optional, Tuple

import numpy as np

from ..common.config import FieldKind, SimConfig
from ..common.sim_hooks import SimHooks
from ..grid.density_field import DensityField
from ..grid.field import Dim, Field
from ..grid.obstruction_field import ObstructionField
from ..grid.vector_field import VectorField
from ..solids.api import OccupancyLike

logger = logging.getLogger(__name__)

# Relaxation sweeps per diffusion/projection solve. Fixed, not adaptive.
GAUSS_SEIDEL_STEPS = 10

DEFAULT_DIFFUSION = 0.001
DEFAULT_VISCOSITY = 0.0


class FieldSubKind(Enum):
    """Which quantity a scalar field holds; selects boundary behaviour."""
    DENSITY = 0
    VEL_X = 1
    VEL_Y = 2
    VEL_Z = 3

    @property
    def axis(self) -> Optional[int]:
        return None if self is FieldSubKind.DENSITY else self.value - 1


class WindSimulation:
    """
    Wind solver over a box of ``width x height x depth`` meters.

    Fields (all padded to ``(W+2) x (H+2) x (D+2)`` cells):
      - D, D0: density and its previous/source buffer
      - V, V0: velocity and its previous/source buffer
      - O:     obstruction flags, only written by :meth:`build_for_scene`
    """

    def __init__(
        self,
        width: float,
        height: float,
        depth: float,
        cell_size: float = 1.0,
        *,
        config: Optional[SimConfig] = None,
        hooks: Optional[SimHooks] = None,
        diffusion: float = DEFAULT_DIFFUSION,
        viscosity: float = DEFAULT_VISCOSITY,
    ):
        if cell_size <= 0:
            raise ValueError(f"cell size must be positive, got {cell_size}")
        self.width = int(round(width / cell_size))
        self.height = int(round(height / cell_size))
        self.depth = int(round(depth / cell_size))
        if self.width <= 0 or self.height <= 0 or self.depth <= 0:
            raise ValueError(
                f"extent of wind simulation must not be zero in any dimension; "
                f"got {width} x {height} x {depth} m at cell size {cell_size}"
            )
        self._cell_size = float(cell_size)

        pw, ph, pd = self.width + 2, self.height + 2, self.depth + 2
        self.D = DensityField(pw, ph, pd, cell_size)
        self.D0 = DensityField(pw, ph, pd, cell_size)
        self.V = VectorField(pw, ph, pd, cell_size)
        self.V0 = VectorField(pw, ph, pd, cell_size)
        self.O = ObstructionField(pw, ph, pd, cell_size)

        self.diffusion = float(diffusion)
        self.viscosity = float(viscosity)
        self.config = config or SimConfig()
        self.hooks = hooks or SimHooks()

        # One-shot sources, consumed by the next step
        self._pending_density_source = False
        self._pending_density_sink = False
        self._pending_velocity_source = False

        logger.debug(
            "wind simulation %dx%dx%d cells (cell size %.3f m)",
            self.width, self.height, self.depth, self._cell_size,
        )

    # ---------------------------------------------------------------------
    # Geometry
    # ---------------------------------------------------------------------
    @property
    def dim(self) -> Dim:
        """Padded field dimensions."""
        return self.D.dim

    @property
    def interior_dim(self) -> Dim:
        return Dim(self.width, self.height, self.depth)

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def dim_m(self) -> np.ndarray:
        """Padded extent in meters."""
        return self.D.dim_m

    @property
    def max_dim(self) -> int:
        return max(self.width, self.height, self.depth)

    # ---------------------------------------------------------------------
    # Scene
    # ---------------------------------------------------------------------
    def build_for_scene(self, occupancy: OccupancyLike, origin_offset=(0.0, 0.0, 0.0)) -> None:
        """Rebuild the obstruction grid from ``occupancy`` and re-apply velocity boundaries."""
        self.O.build_for_scene(occupancy, origin_offset)
        for vf in (self.V, self.V0):
            self.set_boundary(vf.x, FieldSubKind.VEL_X)
            self.set_boundary(vf.y, FieldSubKind.VEL_Y)
            self.set_boundary(vf.z, FieldSubKind.VEL_Z)

    # ---------------------------------------------------------------------
    # Stepping
    # ---------------------------------------------------------------------
    def step(self, delta: float, config: Optional[SimConfig] = None) -> bool:
        """Advance one host tick; returns ``False`` when running is disabled."""
        _check_delta(delta)
        cfg = config or self.config
        if not cfg.run_enabled:
            return False
        delta *= cfg.run_speed
        self.hooks.run_pre(self, delta)
        self.step_density(delta, cfg)
        self.step_velocity(delta, cfg)
        self.hooks.run_post(self, delta)
        return True

    def step_n(self, delta: float, steps: int) -> None:
        """Run ``steps`` density+velocity steps regardless of the run flag."""
        _check_delta(delta)
        for _ in range(int(steps)):
            self.step_density(delta)
            self.step_velocity(delta)

    def step_density(self, delta: float, config: Optional[SimConfig] = None) -> None:
        cfg = config or self.config

        # Sources
        self.D.data += np.float32(delta) * self.D0.data
        if self._pending_density_source:
            self._pending_density_source = False
            self.D.data[1, 1:6, 1] = 0.5
        if self._pending_density_sink:
            self._pending_density_sink = False
            x, z = self.width - 3, self.depth - 3
            if x >= 0 and z >= 0:
                self.D.data[x, 1:6, z] = 0.0
            else:
                logger.warning("density sink lies outside a %s grid; skipped", tuple(self.dim))

        # Diffusion
        if cfg.density_diffusion_enabled:
            Field.swap(self.D, self.D0)
            self.diffuse(self.D, self.D0, FieldSubKind.DENSITY, self.diffusion, delta)

        # Advection
        if cfg.density_advection_enabled:
            Field.swap(self.D, self.D0)
            self.advect(self.D, self.D0, self.V, FieldSubKind.DENSITY, delta)

    def step_velocity(self, delta: float, config: Optional[SimConfig] = None) -> None:
        cfg = config or self.config
        V, V0 = self.V, self.V0

        # Sources
        for c, c0 in zip(V.components, V0.components):
            c.data += np.float32(delta) * c0.data
        if self._pending_velocity_source:
            self._pending_velocity_source = False
            for vf in (V, V0):
                vf.x.data[11:16, 3:7, 4:6] = 0.0
                vf.y.data[11:16, 3:7, 4:6] = 0.0
                vf.z.data[11:16, 3:7, 4:6] = 50.0

        # Diffusion
        if cfg.velocity_diffusion_enabled:
            for c, c0, kind in zip(V.components, V0.components, _VEL_KINDS):
                Field.swap(c0, c)
                self.diffuse(c, c0, kind, self.viscosity, delta)
            self.project(V.x, V.y, V.z, V0.x, V0.y)

        # Advection
        if cfg.velocity_advection_enabled:
            for c, c0 in zip(V.components, V0.components):
                Field.swap(c0, c)
            for c, c0, kind in zip(V.components, V0.components, _VEL_KINDS):
                self.advect(c, c0, V0, kind, delta)
            self.project(V.x, V.y, V.z, V0.x, V0.y)

    # ---------------------------------------------------------------------
    # Solver kernels
    # ---------------------------------------------------------------------
    def gauss_seidel(self, f: Field, f0: Field, kind: FieldSubKind, a: float, c: float) -> None:
        """Relax ``f = (f0 + a * sum(6 neighbours)) / c`` in place.

        Sweeps update cells in increasing flat-offset order (x fastest) and
        read neighbours already updated in the same sweep. Boundaries are
        re-applied after every sweep.
        """
        pw, ph, _ = f.dim
        sy, sz = pw, pw * ph
        src = f0.data.ravel(order="F").tolist()
        for _ in range(GAUSS_SEIDEL_STEPS):
            vals = f.data.ravel(order="F").tolist()
            for k in range(1, self.depth + 1):
                for j in range(1, self.height + 1):
                    base = sy * j + sz * k
                    for o in range(base + 1, base + self.width + 1):
                        comb = (
                            vals[o - 1] + vals[o + 1]
                            + vals[o - sy] + vals[o + sy]
                            + vals[o - sz] + vals[o + sz]
                        )
                        vals[o] = (src[o] + a * comb) / c
            f.data[...] = np.asarray(vals, dtype=f.data.dtype).reshape(f.dim, order="F")
            self.set_boundary(f, kind)

    def diffuse(self, f: Field, f0: Field, kind: FieldSubKind, coeff: float, delta: float) -> None:
        m = self.max_dim
        a = delta * coeff * m * m * m
        self.gauss_seidel(f, f0, kind, a, 1.0 + 6.0 * a)

    def advect(self, f: Field, f0: Field, vec_field: VectorField, kind: FieldSubKind, delta: float) -> None:
        """Semi-Lagrangian transport of ``f0`` along ``vec_field`` into ``f``."""
        W, H, Dp = self.width, self.height, self.depth
        dt0 = delta * self.max_dim
        inner = (slice(1, W + 1), slice(1, H + 1), slice(1, Dp + 1))
        i, j, k = np.meshgrid(
            np.arange(1, W + 1), np.arange(1, H + 1), np.arange(1, Dp + 1), indexing="ij"
        )
        vx = vec_field.x.data[inner].astype(np.float64)
        vy = vec_field.y.data[inner].astype(np.float64)
        vz = vec_field.z.data[inner].astype(np.float64)

        x = np.clip(i - dt0 * vx, 0.5, W + 0.5)
        y = np.clip(j - dt0 * vy, 0.5, H + 0.5)
        z = np.clip(k - dt0 * vz, 0.5, Dp + 0.5)
        i0 = x.astype(np.int64); j0 = y.astype(np.int64); k0 = z.astype(np.int64)
        i1 = i0 + 1; j1 = j0 + 1; k1 = k0 + 1
        s1 = x - i0; s0 = 1.0 - s1
        t1 = y - j0; t0 = 1.0 - t1
        u1 = z - k0; u0 = 1.0 - u1

        F = f0.data
        tu0 = (t0 * u0 * F[i0, j0, k0] + t1 * u0 * F[i0, j1, k0]
               + t0 * u1 * F[i0, j0, k1] + t1 * u1 * F[i0, j1, k1])
        tu1 = (t0 * u0 * F[i1, j0, k0] + t1 * u0 * F[i1, j1, k0]
               + t0 * u1 * F[i1, j0, k1] + t1 * u1 * F[i1, j1, k1])
        f.data[inner] = s0 * tu0 + s1 * tu1
        self.set_boundary(f, kind)

    def project(self, u: Field, v: Field, w: Field, prj: Field, div: Field) -> None:
        """Remove the gradient part of ``(u, v, w)``; ``prj`` and ``div`` are scratch."""
        W = self.width
        inner = (slice(1, -1), slice(1, -1), slice(1, -1))
        U, Vv, Ww = u.data, v.data, w.data
        comb = (
            (U[2:, 1:-1, 1:-1] - U[:-2, 1:-1, 1:-1]) / W
            + (Vv[1:-1, 2:, 1:-1] - Vv[1:-1, :-2, 1:-1]) / W
            + (Ww[1:-1, 1:-1, 2:] - Ww[1:-1, 1:-1, :-2]) / W
        )
        div.data[inner] = -1.0 / 3.0 * comb
        prj.data[inner] = 0.0
        self.set_boundary(div, FieldSubKind.DENSITY)
        self.set_boundary(prj, FieldSubKind.DENSITY)

        self.gauss_seidel(prj, div, FieldSubKind.DENSITY, 1.0, 6.0)

        P = prj.data
        U[inner] -= 0.5 * W * (P[2:, 1:-1, 1:-1] - P[:-2, 1:-1, 1:-1])
        Vv[inner] -= 0.5 * W * (P[1:-1, 2:, 1:-1] - P[1:-1, :-2, 1:-1])
        Ww[inner] -= 0.5 * W * (P[1:-1, 1:-1, 2:] - P[1:-1, 1:-1, :-2])

        self.set_boundary(u, FieldSubKind.VEL_X)
        self.set_boundary(v, FieldSubKind.VEL_Y)
        self.set_boundary(w, FieldSubKind.VEL_Z)

    def set_boundary(self, f: Field, kind: FieldSubKind) -> None:
        """Fill the padding of ``f`` from its interior and block flow into solids.

        1) Velocity components pointing into an obstructed neighbour along
           their own axis are zeroed.
        2) Faces copy the adjacent interior value, negated on the faces whose
           normal matches the component.
        3) Edges average their two face neighbours, corners their three edge
           neighbours.
        """
        F = f.data
        axis = kind.axis

        # 1) Obstructions
        if axis is not None:
            O = self.O.data
            inner = F[1:-1, 1:-1, 1:-1]
            lo = [slice(1, -1)] * 3
            hi = [slice(1, -1)] * 3
            lo[axis] = slice(None, -2)
            hi[axis] = slice(2, None)
            inner[...] = np.where(O[tuple(lo)], np.maximum(inner, 0.0), inner)
            inner[...] = np.where(O[tuple(hi)], np.minimum(inner, 0.0), inner)

        # 2) Faces
        sx = -1.0 if axis == 0 else 1.0
        sy = -1.0 if axis == 1 else 1.0
        sz = -1.0 if axis == 2 else 1.0
        F[1:-1, 1:-1, 0] = sz * F[1:-1, 1:-1, 1]
        F[1:-1, 1:-1, -1] = sz * F[1:-1, 1:-1, -2]
        F[0, 1:-1, 1:-1] = sx * F[1, 1:-1, 1:-1]
        F[-1, 1:-1, 1:-1] = sx * F[-2, 1:-1, 1:-1]
        F[1:-1, 0, 1:-1] = sy * F[1:-1, 1, 1:-1]
        F[1:-1, -1, 1:-1] = sy * F[1:-1, -2, 1:-1]

        # 3) Edges along x, y, z
        F[1:-1, 0, 0] = 0.5 * (F[1:-1, 1, 0] + F[1:-1, 0, 1])
        F[1:-1, -1, 0] = 0.5 * (F[1:-1, -2, 0] + F[1:-1, -1, 1])
        F[1:-1, 0, -1] = 0.5 * (F[1:-1, 0, -2] + F[1:-1, 1, -1])
        F[1:-1, -1, -1] = 0.5 * (F[1:-1, -2, -1] + F[1:-1, -1, -2])

        F[0, 1:-1, 0] = 0.5 * (F[1, 1:-1, 0] + F[0, 1:-1, 1])
        F[-1, 1:-1, 0] = 0.5 * (F[-2, 1:-1, 0] + F[-1, 1:-1, 1])
        F[0, 1:-1, -1] = 0.5 * (F[0, 1:-1, -2] + F[1, 1:-1, -1])
        F[-1, 1:-1, -1] = 0.5 * (F[-2, 1:-1, -1] + F[-1, 1:-1, -2])

        F[0, 0, 1:-1] = 0.5 * (F[0, 1, 1:-1] + F[1, 0, 1:-1])
        F[0, -1, 1:-1] = 0.5 * (F[0, -2, 1:-1] + F[1, -1, 1:-1])
        F[-1, 0, 1:-1] = 0.5 * (F[-2, 0, 1:-1] + F[-1, 1, 1:-1])
        F[-1, -1, 1:-1] = 0.5 * (F[-1, -2, 1:-1] + F[-2, -1, 1:-1])

        # 3) Corners
        for cx, nx in ((0, 1), (-1, -2)):
            for cy, ny in ((0, 1), (-1, -2)):
                for cz, nz in ((0, 1), (-1, -2)):
                    F[cx, cy, cz] = (F[nx, cy, cz] + F[cx, ny, cz] + F[cx, cy, nz]) / 3.0

    # ---------------------------------------------------------------------
    # Presets
    # ---------------------------------------------------------------------
    def set_as_vec(self, vec) -> None:
        """Set every interior cell of ``V`` and ``V0`` to ``vec``."""
        vx, vy, vz = (float(c) for c in vec)
        for vf in (self.V, self.V0):
            vf.x.data[1:-1, 1:-1, 1:-1] = vx
            vf.y.data[1:-1, 1:-1, 1:-1] = vy
            vf.z.data[1:-1, 1:-1, 1:-1] = vz

    def set_as_tornado(self) -> None:
        """Swirl around the vertical axis through the volume centre, rising with height."""
        W, H, Dp = self.width, self.height, self.depth
        i, j, k = np.meshgrid(
            np.arange(1, W + 1, dtype=np.float64),
            np.arange(1, H + 1, dtype=np.float64),
            np.arange(1, Dp + 1, dtype=np.float64),
            indexing="ij",
        )
        dx = i - W / 2.0
        dz = k - Dp / 2.0
        dist = np.sqrt(dx * dx + dz * dz)
        safe = np.where(dist > 0.0, dist, 1.0)
        nx = np.where(dist > 0.0, dx / safe, 0.0)
        nz = np.where(dist > 0.0, dz / safe, 0.0)

        scale = j / np.clip(dist, 1.0, 10.0)
        res_x = np.clip(nz * scale, -5.0, 5.0)
        res_y = np.clip(0.1 * scale, -5.0, 5.0)
        res_z = np.clip(-nx * scale, -5.0, 5.0)
        for vf in (self.V, self.V0):
            vf.x.data[1:-1, 1:-1, 1:-1] = res_x
            vf.y.data[1:-1, 1:-1, 1:-1] = res_y
            vf.z.data[1:-1, 1:-1, 1:-1] = res_z

    def add_density_source(self) -> None:
        self._pending_density_source = True

    def add_density_sink(self) -> None:
        self._pending_density_sink = True

    def add_velocity_source(self) -> None:
        self._pending_velocity_source = True

    # ---------------------------------------------------------------------
    # Diagnostics & export
    # ---------------------------------------------------------------------
    def divergence(self) -> np.ndarray:
        """Central-difference divergence of ``V`` over interior cells (per cell units)."""
        U, Vv, Ww = (c.data.astype(np.float64) for c in self.V.components)
        return 0.5 * (
            (U[2:, 1:-1, 1:-1] - U[:-2, 1:-1, 1:-1])
            + (Vv[1:-1, 2:, 1:-1] - Vv[1:-1, :-2, 1:-1])
            + (Ww[1:-1, 1:-1, 2:] - Ww[1:-1, 1:-1, :-2])
        )

    def export_field(self, kind=None, config: Optional[SimConfig] = None) -> Tuple[np.ndarray, np.ndarray]:
        """Return cell-centre positions and per-cell values for visualization.

        ``kind`` defaults to the configured visualization field kind. Velocity
        is zeroed in obstructed cells; obstruction is exported as booleans.
        """
        cfg = config or self.config
        kind = FieldKind.parse(kind if kind is not None else cfg.visualization_field_kind)
        pw, ph, pd = self.dim
        cs = self._cell_size
        X, Y, Z = np.meshgrid(
            (np.arange(pw) + 0.5) * cs,
            (np.arange(ph) + 0.5) * cs,
            (np.arange(pd) + 0.5) * cs,
            indexing="ij",
        )
        pos = np.stack([X, Y, Z], axis=-1).reshape(-1, 3)
        if kind is FieldKind.DENSITY:
            values = self.D.data.astype(np.float64).reshape(-1)
        elif kind is FieldKind.OBSTRUCTION:
            values = self.O.data.reshape(-1).copy()
        else:
            vec = self.V.as_array()
            vec[self.O.data] = 0.0
            values = vec.reshape(-1, 3)
        return pos, values

    def __repr__(self) -> str:
        return (
            f"WindSimulation({self.width}x{self.height}x{self.depth} cells, "
            f"cell_size={self._cell_size})"
        )


_VEL_KINDS = (FieldSubKind.VEL_X, FieldSubKind.VEL_Y, FieldSubKind.VEL_Z)


def _check_delta(delta: float) -> None:
    if delta < 0:
        raise ValueError(f"time step must be non-negative, got {delta}")


__all__ = ["WindSimulation", "FieldSubKind", "GAUSS_SEIDEL_STEPS"]
