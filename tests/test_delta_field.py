import os
import sys
import numpy as np
import pytest

# Ensure windsim is importable
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from windsim.sim.wind_sim import WindSimulation
from windsim.wind.base_functions import Constant
from windsim.wind.delta import DeltaField
from windsim.wind.wind_source import VolumeType, WindSource


def _source(fn):
    src = WindSource(VolumeType.CUBE, (3.0, 3.0, 3.0), (6.0, 6.0, 6.0))
    src.add_function(fn)
    return src


def test_identical_fields_have_zero_error():
    sim = WindSimulation(4, 4, 4)
    sim.V.fill((0.0, 0.0, 1.0))
    delta = DeltaField.from_pair(sim, _source(Constant((0.0, 0.0, 1.0), 1.0)))
    assert delta.is_built
    assert delta.get_error() == pytest.approx(0.0)
    assert np.allclose(delta.get(2, 3, 1), 0.0)
    assert np.allclose(delta.baked.get(0, 0, 0), [0.0, 0.0, 1.0])
    assert np.allclose(delta.simulated.get(5, 5, 5), [0.0, 0.0, 1.0])


def test_obstructed_cells_count_as_zero_error():
    sim = WindSimulation(4, 4, 4)
    sim.V.fill((0.0, 0.0, 1.0))
    sim.O.data[2, 2, 2] = True
    delta = DeltaField.from_pair(sim, _source(Constant((0.0, 0.0, 1.0), 2.0)))

    assert np.allclose(delta.get(1, 1, 1), [0.0, 0.0, 1.0])
    assert np.allclose(delta.get(2, 2, 2), 0.0)
    # 216 padded cells, one of them solid
    assert delta.get_error() == pytest.approx(215.0 / 216.0)

    stats = delta.box_plot()
    assert stats.count == 215
    assert stats.median == pytest.approx(1.0)
    assert stats.min == pytest.approx(1.0)
    assert stats.max == pytest.approx(1.0)
    assert stats.outliers == 0


def test_delta_is_baked_minus_simulated():
    sim = WindSimulation(3, 3, 3)
    sim.V.fill((1.0, 0.0, 0.0))
    delta = DeltaField.from_pair(sim, _source(Constant((0.0, 1.0, 0.0), 1.0)))
    assert np.allclose(delta.get(1, 1, 1), [-1.0, 1.0, 0.0])
    assert delta.get_error() == pytest.approx(np.sqrt(2.0))


def test_snapshot_ignores_later_changes():
    sim = WindSimulation(3, 3, 3)
    src = _source(Constant((0.0, 0.0, 1.0), 1.0))
    delta = DeltaField.from_pair(sim, src)
    before = delta.get_error()
    sim.V.fill((5.0, 5.0, 5.0))
    assert delta.get_error() == before

    delta.build(sim, src)
    assert delta.get_error() != before


def test_unbuilt_field_raises():
    delta = DeltaField()
    assert not delta.is_built
    with pytest.raises(RuntimeError):
        delta.get(0, 0, 0)
    with pytest.raises(RuntimeError):
        delta.get_error()
