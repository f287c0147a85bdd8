import logging
import os
import struct
import sys
import numpy as np
import pytest

# Ensure windsim is importable
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from windsim.wind.base_functions import (
    SPLINE_SAMPLES_AUTO,
    BaseFn,
    Constant,
    Polynomial,
    Spline,
    SplineGroup,
)
from windsim.wind.wind_source import VolumeType, WindSource


def _probe_points(n=10, seed=0):
    return np.random.default_rng(seed).uniform(-5.0, 15.0, size=(n, 3))


def _line_spline(y=0.0, force=1.0):
    pts = [(x, y, 0.0) for x in range(5)]
    return Spline(pts, [force] * 5)


def test_constant_evaluates_everywhere():
    fn = Constant((0.0, 0.0, 1.0), 2.0)
    for p in _probe_points():
        assert np.allclose(fn(p), [0.0, 0.0, 2.0])


def test_polynomial_per_axis_quadratic():
    fn = Polynomial((1.0, 0.0, 0.0), x0=1.0, x1=2.0, x2=3.0, y0=-1.0, z2=0.5)
    out = fn.evaluate((3.0, 5.0, 2.0))
    assert np.allclose(out, [1.0 + 2.0 * 2.0 + 3.0 * 4.0, -1.0, 0.5 * 4.0])
    assert fn.coefficients.shape == (3, 3)


def test_spline_follows_next_point_scaled_by_force():
    s = Spline([(0, 0, 0), (1, 0, 0), (2, 0, 0)], [1.0, 2.0, 3.0])
    assert np.allclose(s.evaluate((0.1, 0.3, 0.0)), [1.0, 0.0, 0.0])
    assert np.allclose(s.evaluate((1.1, 0.0, 0.0)), [2.0, 0.0, 0.0])
    # Last point continues the final segment
    assert np.allclose(s.evaluate((2.2, 0.0, 0.0)), [3.0, 0.0, 0.0])


def test_closed_spline_wraps_to_first_point():
    s = Spline([(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 0.05, 0)], [1.0, 1.0, 1.0, 4.0])
    assert np.allclose(s.evaluate((0.0, 0.06, 0.0)), [0.0, -4.0, 0.0])


def test_degenerate_splines_evaluate_to_zero():
    assert np.allclose(Spline().evaluate((1.0, 2.0, 3.0)), 0.0)
    assert np.allclose(Spline([(1, 1, 1)], [5.0]).evaluate((0.0, 0.0, 0.0)), 0.0)
    assert np.allclose(Spline([(1, 1, 1), (1, 1, 1)], [5.0, 5.0]).evaluate((0.0, 0.0, 0.0)), 0.0)


def test_spline_group_prefers_the_nearest_trace():
    near = _line_spline(y=0.0, force=1.0)
    far = _line_spline(y=10.0, force=5.0)
    group = SplineGroup([near, far])
    assert np.allclose(group.evaluate((0.5, 0.0, 0.0)), [1.0, 0.0, 0.0], atol=1e-6)
    assert np.allclose(group.evaluate((0.5, 10.0, 0.0)), [5.0, 0.0, 0.0], atol=1e-5)

    # Halfway between, both traces weigh the same
    mid = group.evaluate((2.0, 5.0, 0.0))
    assert mid[0] == pytest.approx(3.0)


def test_empty_group_is_zero():
    assert np.allclose(SplineGroup().evaluate((0.0, 0.0, 0.0)), 0.0)


def test_spline_geometry():
    s = Spline([(0, 0, 0), (1, 0, 0), (2, 0, 0), (3, 0, 0)], [1.0] * 4, degree=2)
    assert s.length_estimate() == pytest.approx(3.0)

    curve = s.curve(5)
    assert curve.shape == (5, 3)
    assert np.allclose(curve[:, 1:], 0.0)
    assert np.allclose(curve[-1], [3.0, 0.0, 0.0])
    assert np.all(np.diff(curve[:, 0]) > 0.0)

    auto = s.curve()
    assert 1 <= len(auto) <= 3


def test_spline_curve_needs_enough_points():
    with pytest.raises(ValueError):
        Spline([(0, 0, 0), (1, 0, 0)], [1.0, 1.0], degree=2).basis()


@pytest.mark.parametrize("fn", [
    Constant((0.3, -0.2, 0.9), 1.5),
    Polynomial((1.0, 2.0, 3.0), 0.5, 0.25, -0.125, 1.0, 0.0, 0.5, -1.0, 0.75, 0.0),
    Spline([(0, 0, 0), (1, 0.5, 0), (2, 1, 0.5), (3, 1, 1)], [1.0, 2.0, 1.5, 0.5]),
    SplineGroup([_line_spline(0.0, 1.0), _line_spline(3.0, 2.0)]),
])
def test_binary_round_trip_evaluates_identically(fn):
    back = BaseFn.from_bytes(fn.to_bytes())
    assert type(back) is type(fn)
    for p in _probe_points():
        assert np.allclose(back.evaluate(p), fn.evaluate(p), atol=1e-5)


def test_binary_layout_tags_and_sizes():
    assert struct.unpack("<I", Constant().to_bytes()[:4])[0] == 0
    assert struct.unpack("<I", Spline().to_bytes()[:4])[0] == 1
    assert struct.unpack("<I", Polynomial().to_bytes()[:4])[0] == 2
    assert struct.unpack("<I", SplineGroup().to_bytes()[:4])[0] == 3

    assert len(Constant().to_bytes()) == 4 + 16
    assert len(Polynomial().to_bytes()) == 4 + 48
    s = Spline([(0, 0, 0), (1, 0, 0), (2, 0, 0)], [1.0, 2.0, 3.0], degree=2, sample_count=7)
    # Each force is written once
    assert len(s.to_bytes()) == 4 + 8 + 3 * 12 + 3 * 4 + 8
    back = BaseFn.from_bytes(s.to_bytes())
    assert back.degree == 2
    assert back.sample_count == 7
    assert np.allclose(back.forces, [1.0, 2.0, 3.0])


def test_malformed_bytes_raise_value_error():
    with pytest.raises(ValueError):
        BaseFn.from_bytes(struct.pack("<I", 9))
    with pytest.raises(ValueError):
        BaseFn.from_bytes(Constant((1, 0, 0), 1.0).to_bytes()[:-2])
    with pytest.raises(ValueError):
        BaseFn.from_bytes(b"")


def test_mapping_round_trip():
    fns = [
        Constant((0.0, 1.0, 0.0), 3.0),
        Polynomial((0.0, 0.0, 0.0), x1=1.0),
        _line_spline(1.0, 2.0),
        SplineGroup([_line_spline(0.0, 1.0)]),
    ]
    for fn in fns:
        data = fn.to_dict()
        assert data["type"] == fn.type_name
        back = BaseFn.from_dict(data)
        for p in _probe_points(5):
            assert np.allclose(back.evaluate(p), fn.evaluate(p))


def test_mapping_defaults(caplog):
    fn = BaseFn.from_dict({"direction": [1.0, 0.0, 0.0], "magnitude": 2.0})
    assert isinstance(fn, Constant)

    with caplog.at_level(logging.WARNING):
        s = BaseFn.from_dict({"type": "spline", "points": [[0, 0, 0], [1, 0, 0], [2, 0, 0]]})
    assert np.allclose(s.forces, 1.0)
    assert s.degree == 2
    assert s.sample_count == SPLINE_SAMPLES_AUTO
    assert "forces" in caplog.text

    with pytest.raises(ValueError):
        BaseFn.from_dict({"type": "vortex"})


def test_wind_source_sums_functions_and_round_trips():
    src = WindSource(VolumeType.CYLINDER, (1.0, 2.0, 3.0), (4.0, 4.0, 4.0))
    src.add_function(Constant((1.0, 0.0, 0.0), 1.0))
    src.add_functions([Constant((0.0, 1.0, 0.0), 2.0), _line_spline(0.0, 1.0)])
    assert np.allclose(src.wind_at_point((100.0, 100.0, 100.0)), [2.0, 2.0, 0.0])

    back = WindSource.from_bytes(src.to_bytes())
    assert back.volume_type is VolumeType.CYLINDER
    assert np.allclose(back.position, [1.0, 2.0, 3.0])
    assert np.allclose(back.scale, [4.0, 4.0, 4.0])
    assert len(back.functions) == 3
    for p in _probe_points():
        assert np.allclose(back.wind_at_point(p), src.wind_at_point(p), atol=1e-5)

    again = WindSource.from_dict(src.to_dict())
    assert again.volume_type is VolumeType.CYLINDER
    assert src.to_dict()["volumeType"] == "cylinder"
    assert len(again.functions) == 3


def test_volume_type_conversions_and_containment():
    assert VolumeType.from_string("Cylinder") is VolumeType.CYLINDER
    assert VolumeType.from_string("box") is VolumeType.CUBE
    assert VolumeType.from_u8(VolumeType.CYLINDER.to_u8()) is VolumeType.CYLINDER
    with pytest.raises(ValueError):
        VolumeType.from_u8(5)

    cube = WindSource(VolumeType.CUBE, (0.0, 0.0, 0.0), (2.0, 2.0, 2.0))
    assert cube.contains((0.9, 0.9, 0.9))
    cyl = WindSource(VolumeType.CYLINDER, (0.0, 0.0, 0.0), (2.0, 2.0, 2.0))
    assert not cyl.contains((0.9, 0.0, 0.9))
    assert cyl.contains((0.5, 0.9, 0.5))
