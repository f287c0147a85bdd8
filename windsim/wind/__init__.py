from .base_functions import (
    BaseFn,
    Constant,
    Polynomial,
    Spline,
    SplineGroup,
    SPLINE_SAMPLES_AUTO,
)
from .wind_source import VolumeType, WindSource
from .bake import BakeParams, bake, trace_streamline
from .delta import DeltaField

__all__ = [
    "BaseFn",
    "Constant",
    "Polynomial",
    "Spline",
    "SplineGroup",
    "SPLINE_SAMPLES_AUTO",
    "VolumeType",
    "WindSource",
    "BakeParams",
    "bake",
    "trace_streamline",
    "DeltaField",
]
