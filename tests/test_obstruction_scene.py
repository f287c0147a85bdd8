import logging
import os
import sys
import numpy as np
import pytest

# Ensure windsim is importable
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from windsim.grid.obstruction_field import ObstructionField
from windsim.sim.wind_sim import WindSimulation
from windsim.solids.api import (
    AABox,
    BoxScene,
    Hit,
    NullOccupancy,
    NullRayCast,
    as_occupancy,
    as_ray_cast,
    scene_from_boxes,
)


def test_unit_box_marks_single_cell():
    sim = WindSimulation(6, 6, 6)
    scene = BoxScene().add_box((2.5, 2.5, 2.5), (1.0, 1.0, 1.0))
    sim.build_for_scene(scene)
    assert sim.O.count() == 1
    assert sim.O.is_obstructed(3, 3, 3)


def test_origin_offset_shifts_the_grid():
    sim = WindSimulation(6, 6, 6)
    scene = BoxScene().add_box((12.5, 2.5, 2.5), (1.0, 1.0, 1.0))
    sim.build_for_scene(scene, (10.0, 0.0, 0.0))
    assert sim.O.count() == 1
    assert sim.O.is_obstructed(3, 3, 3)


def test_touching_solids_do_not_mark_cells():
    field = ObstructionField(4, 4, 4)
    # Solid ends on the face shared by padded cells 1 and 2
    scene = BoxScene().add(AABox((-10.0, -10.0, -10.0), (1.0, 10.0, 10.0)))
    field.build_for_scene(scene, (0.0, 0.0, 0.0))
    assert np.all(field.data[:2])
    assert not np.any(field.data[2:])


def test_rebuild_clears_previous_solids():
    sim = WindSimulation(6, 6, 6)
    sim.build_for_scene(BoxScene().add_box((2.5, 2.5, 2.5), (1.0, 1.0, 1.0)))
    sim.build_for_scene(BoxScene())
    assert sim.O.count() == 0


def test_rebuild_is_idempotent():
    scene = scene_from_boxes([((2.5, 2.5, 2.5), (2.0, 1.0, 1.0)), ((5.0, 1.0, 5.0), (1.0, 1.0, 1.0))])
    sim = WindSimulation(6, 6, 6)
    sim.build_for_scene(scene)
    first = sim.O.data.copy()
    sim.build_for_scene(scene)
    assert np.array_equal(first, sim.O.data)


def test_build_reapplies_velocity_boundaries():
    sim = WindSimulation(6, 6, 6)
    sim.set_as_vec((1.0, 0.0, 0.0))
    sim.build_for_scene(BoxScene().add_box((2.5, 2.5, 2.5), (1.0, 1.0, 1.0)))
    assert sim.V.x.data[2, 3, 3] == 0.0
    assert sim.V0.x.data[2, 3, 3] == 0.0
    assert sim.V.x.data[4, 3, 3] == 1.0


def test_missing_occupancy_is_degraded_mode(caplog):
    sim = WindSimulation(3, 3, 3)
    sim.O.data[1, 1, 1] = True
    with caplog.at_level(logging.WARNING):
        sim.build_for_scene(None)
    assert sim.O.count() == 0
    assert "occupancy" in caplog.text


def test_callable_oracles_are_adapted():
    occ = as_occupancy(lambda box: bool(box.min[0] > 2.0))
    assert occ.is_solid(AABox((3, 0, 0), (4, 1, 1)))
    assert not occ.is_solid(AABox((0, 0, 0), (1, 1, 1)))

    rc = as_ray_cast(lambda o, d, m: (1.0, 0.0, 0.0))
    hit = rc.cast(np.zeros(3), np.array([1.0, 0.0, 0.0]), 5.0)
    assert isinstance(hit, Hit)
    assert hit.distance == pytest.approx(1.0)

    with pytest.raises(TypeError):
        as_occupancy(42)


def test_null_oracles():
    assert not NullOccupancy().is_solid(AABox((0, 0, 0), (1, 1, 1)))
    assert NullRayCast().cast(np.zeros(3), np.array([1.0, 0, 0]), 10.0) is None


def test_box_rejects_inverted_extent():
    with pytest.raises(ValueError):
        AABox((1, 1, 1), (0, 2, 2))


def test_ray_cast_hits_nearest_face():
    scene = BoxScene().add(AABox((2, 2, 2), (3, 3, 3))).add(AABox((5, 2, 2), (6, 3, 3)))
    hit = scene.cast((0.0, 2.5, 2.5), (1.0, 0.0, 0.0), 10.0)
    assert hit is not None
    assert hit.distance == pytest.approx(2.0)
    assert np.allclose(hit.point, [2.0, 2.5, 2.5])


def test_ray_cast_range_and_misses():
    scene = BoxScene().add(AABox((2, 2, 2), (3, 3, 3)))
    assert scene.cast((0.0, 2.5, 2.5), (1.0, 0.0, 0.0), 1.0) is None
    assert scene.cast((0.0, 5.0, 2.5), (1.0, 0.0, 0.0), 10.0) is None
    assert scene.cast((4.0, 2.5, 2.5), (1.0, 0.0, 0.0), 10.0) is None


def test_ray_starting_inside_hits_immediately():
    scene = BoxScene().add(AABox((2, 2, 2), (3, 3, 3)))
    hit = scene.cast((2.5, 2.5, 2.5), (0.0, 0.0, 1.0), 1.0)
    assert hit is not None
    assert hit.distance == 0.0
