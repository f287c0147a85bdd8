from .field import Dim, Field
from .density_field import DensityField
from .vector_field import VectorField
from .obstruction_field import ObstructionField

__all__ = ["Dim", "Field", "DensityField", "VectorField", "ObstructionField"]
