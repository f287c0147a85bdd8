# -*- coding: utf-8 -*-
"""Simulation configuration.

Only the options listed in :data:`RECOGNIZED_KEYS` exist. They can be set
directly on :class:`SimConfig`, loaded from a key/value mapping using the
camelCase keys of the host's settings store, or read from ``WINDSIM_*``
environment variables.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import logging
import os
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


class FieldKind(Enum):
    """Field selected for visualization export."""
    DENSITY = 0
    VELOCITY = 1
    OBSTRUCTION = 2

    @classmethod
    def parse(cls, value: Any) -> "FieldKind":
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        name = str(value).strip().upper()
        if name.isdigit():
            return cls(int(name))
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"unknown field kind {value!r}") from None


# camelCase key -> SimConfig attribute
RECOGNIZED_KEYS = {
    "runEnabled": "run_enabled",
    "runSpeed": "run_speed",
    "densityDiffusionEnabled": "density_diffusion_enabled",
    "densityAdvectionEnabled": "density_advection_enabled",
    "velocityDiffusionEnabled": "velocity_diffusion_enabled",
    "velocityAdvectionEnabled": "velocity_advection_enabled",
    "visualizationFieldKind": "visualization_field_kind",
}


_TRUE_TOKENS = ("1", "true", "yes", "y", "on")
_FALSE_TOKENS = ("0", "false", "no", "n", "off", "")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
        raise ValueError(f"cannot read {value!r} as a boolean switch")
    return bool(value)


@dataclass
class SimConfig:
    # Stepping
    run_enabled: bool = False
    run_speed: float = 1.0

    # Physical effects
    density_diffusion_enabled: bool = True
    density_advection_enabled: bool = True
    velocity_diffusion_enabled: bool = True
    velocity_advection_enabled: bool = True

    # Export
    visualization_field_kind: FieldKind = FieldKind.VELOCITY

    def __post_init__(self) -> None:
        self.visualization_field_kind = FieldKind.parse(self.visualization_field_kind)
        self.run_speed = float(self.run_speed)
        if self.run_speed < 0.0:
            raise ValueError("runSpeed must be >= 0")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], base: Optional["SimConfig"] = None) -> "SimConfig":
        """Build a config from camelCase keys; unknown keys are logged and ignored."""
        updates = {}
        for key, value in values.items():
            attr = RECOGNIZED_KEYS.get(key)
            if attr is None:
                logger.warning("ignoring unrecognized config key %r", key)
                continue
            if attr == "run_speed":
                updates[attr] = float(value)
            elif attr == "visualization_field_kind":
                updates[attr] = FieldKind.parse(value)
            else:
                updates[attr] = _as_bool(value)
        return replace(base or cls(), **updates)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, base: Optional["SimConfig"] = None) -> "SimConfig":
        """Read ``WINDSIM_<ATTRIBUTE>`` variables, e.g. ``WINDSIM_RUN_SPEED=0.5``."""
        env = os.environ if environ is None else environ
        values = {}
        for key, attr in RECOGNIZED_KEYS.items():
            name = f"WINDSIM_{attr.upper()}"
            if name in env:
                values[key] = env[name]
        return cls.from_mapping(values, base=base)

    def to_mapping(self) -> dict:
        out = {}
        for key, attr in RECOGNIZED_KEYS.items():
            value = getattr(self, attr)
            out[key] = value.name.capitalize() if isinstance(value, FieldKind) else value
        return out


__all__ = ["FieldKind", "SimConfig", "RECOGNIZED_KEYS"]
