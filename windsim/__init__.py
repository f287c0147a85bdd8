"""Grid wind simulation, streamline baking and bake validation."""

from .common.config import FieldKind, SimConfig
from .common.sim_hooks import SimHooks
from .sim.wind_sim import FieldSubKind, WindSimulation
from .solids.api import AABox, BoxScene, Hit, NullOccupancy, NullRayCast
from .wind.base_functions import BaseFn, Constant, Polynomial, Spline, SplineGroup
from .wind.bake import BakeParams, bake
from .wind.delta import DeltaField
from .wind.wind_source import VolumeType, WindSource

__version__ = "0.1.0"

__all__ = [
    "FieldKind",
    "SimConfig",
    "SimHooks",
    "FieldSubKind",
    "WindSimulation",
    "AABox",
    "BoxScene",
    "Hit",
    "NullOccupancy",
    "NullRayCast",
    "BaseFn",
    "Constant",
    "Polynomial",
    "Spline",
    "SplineGroup",
    "BakeParams",
    "bake",
    "DeltaField",
    "VolumeType",
    "WindSource",
]
