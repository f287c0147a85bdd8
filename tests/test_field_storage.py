import os
import sys
import numpy as np
import pytest

# Ensure windsim is importable
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from windsim.grid.field import Dim, Field
from windsim.grid.density_field import DensityField


def test_flat_offset_matches_x_fastest_layout():
    f = Field(3, 4, 5)
    assert f.from_pos(1, 2, 3) == 1 + 3 * 2 + 12 * 3
    assert f.from_offset(43) == (1, 2, 3)

    f.data[1, 2, 3] = 7.0
    assert f.flat[43] == 7.0
    assert f.get(43) == 7.0

    f.set(43, 9.0)
    assert f.data[1, 2, 3] == 9.0
    f.set(0, 1, 2, 4.0)
    assert f.get(0, 1, 2) == 4.0


def test_set_rejects_wrong_arity():
    f = Field(2, 2, 2)
    with pytest.raises(TypeError):
        f.set(1, 2, 3)


def test_swap_is_an_involution():
    rng = np.random.default_rng(3)
    a = Field(4, 3, 2)
    b = Field(4, 3, 2)
    a.data[...] = rng.standard_normal(a.dim)
    b.data[...] = rng.standard_normal(b.dim)
    a0, b0 = a.data.copy(), b.data.copy()

    Field.swap(a, b)
    assert np.array_equal(a.data, b0)
    assert np.array_equal(b.data, a0)

    Field.swap(a, b)
    assert np.array_equal(a.data, a0)
    assert np.array_equal(b.data, b0)


def test_swap_requires_equal_dimensions():
    with pytest.raises(ValueError):
        Field.swap(Field(2, 2, 2), Field(2, 2, 3))


def test_bounds_edges_and_clamped_access():
    f = Field(3, 3, 3)
    f.data[0, 0, 2] = 5.0
    assert f.in_bounds(2, 2, 2)
    assert not f.in_bounds(3, 0, 0)
    assert f.on_edge(0, 1, 1)
    assert not f.on_edge(1, 1, 1)
    assert f.get_clamped(-4, -1, 10) == 5.0


def test_cell_meter_conversions():
    f = Field(4, 4, 4, cell_size=0.5)
    assert np.allclose(f.cell_to_meter(1, 2, 3), [0.5, 1.0, 1.5])
    assert np.allclose(f.meter_to_cell([0.5, 1.0, 1.5]), [1.0, 2.0, 3.0])
    assert np.allclose(f.dim_m, [2.0, 2.0, 2.0])


def test_dim_padding_and_counts():
    d = Dim(4, 5, 6)
    assert d.cell_count == 120
    assert d.padded() == Dim(6, 7, 8)


def test_density_total_excludes_padding_by_default():
    d = DensityField(4, 4, 4)
    d.fill(1.0)
    assert d.total() == pytest.approx(8.0)
    assert d.total(interior_only=False) == pytest.approx(64.0)
