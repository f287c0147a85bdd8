from .wind_sim import GAUSS_SEIDEL_STEPS, FieldSubKind, WindSimulation

__all__ = ["GAUSS_SEIDEL_STEPS", "FieldSubKind", "WindSimulation"]
