from .api import (
    AABox,
    BoxScene,
    Hit,
    NullOccupancy,
    NullRayCast,
    Occupancy,
    RayCast,
    as_occupancy,
    as_ray_cast,
    scene_from_boxes,
)

__all__ = [
    "AABox",
    "BoxScene",
    "Hit",
    "NullOccupancy",
    "NullRayCast",
    "Occupancy",
    "RayCast",
    "as_occupancy",
    "as_ray_cast",
    "scene_from_boxes",
]
