# -*- coding: utf-8 -*-
"""Wind source: a volume in the scene carrying a list of basis functions.

Binary layout (little-endian): ``u8`` volume type, ``f32 x3`` position,
``f32 x3`` scale, ``u32`` function count, then each function with its tag.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import struct
from typing import Any, Dict, Iterable, List

import numpy as np

from .base_functions import BaseFn, ByteReader, as_vec3, evaluate_all

logger = logging.getLogger(__name__)


class VolumeType(Enum):
    CUBE = 0
    CYLINDER = 1

    def to_string(self) -> str:
        return self.name.lower()

    @classmethod
    def from_string(cls, value: str) -> "VolumeType":
        # Anything unrecognized is a cube
        if str(value).strip().lower() == "cylinder":
            return cls.CYLINDER
        return cls.CUBE

    def to_u8(self) -> int:
        return self.value

    @classmethod
    def from_u8(cls, value: int) -> "VolumeType":
        try:
            return cls(int(value))
        except ValueError:
            raise ValueError(f"unknown volume type {value}") from None


@dataclass(eq=False)
class WindSource:
    """Volume of type ``volume_type`` centred on ``position`` with extent ``scale``."""

    volume_type: VolumeType = VolumeType.CUBE
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    functions: List[BaseFn] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.position = as_vec3(self.position)
        self.scale = as_vec3(self.scale)

    def add_function(self, fn: BaseFn) -> "WindSource":
        self.functions.append(fn)
        return self

    def add_functions(self, fns: Iterable[BaseFn]) -> "WindSource":
        self.functions.extend(fns)
        return self

    def wind_at_point(self, point) -> np.ndarray:
        """Sum of every function evaluated at ``point``."""
        return evaluate_all(self.functions, point)

    def contains(self, point) -> bool:
        """Whether ``point`` lies inside the volume (cylinders stand along y)."""
        d = as_vec3(point) - self.position
        half = self.scale / 2.0
        if self.volume_type is VolumeType.CYLINDER:
            radius = min(half[0], half[2])
            return bool(abs(d[1]) <= half[1] and d[0] * d[0] + d[2] * d[2] <= radius * radius)
        return bool(np.all(np.abs(d) <= half))

    # Codecs ------------------------------------------------------------------
    def to_bytes(self) -> bytes:
        out = [
            struct.pack("<B", self.volume_type.to_u8()),
            struct.pack("<3f", *self.position),
            struct.pack("<3f", *self.scale),
            struct.pack("<I", len(self.functions)),
        ]
        out.extend(fn.to_bytes() for fn in self.functions)
        return b"".join(out)

    @classmethod
    def read(cls, reader: ByteReader) -> "WindSource":
        volume_type = VolumeType.from_u8(reader.u8())
        position = reader.vec3()
        scale = reader.vec3()
        count = reader.u32()
        functions = [BaseFn.read(reader) for _ in range(count)]
        return cls(volume_type, position, scale, functions)

    @classmethod
    def from_bytes(cls, data: bytes) -> "WindSource":
        reader = ByteReader(data)
        source = cls.read(reader)
        if reader.remaining:
            logger.warning("%d trailing bytes after wind source ignored", reader.remaining)
        return source

    def to_dict(self) -> Dict[str, Any]:
        return {
            "volumeType": self.volume_type.to_string(),
            "position": self.position.tolist(),
            "scale": self.scale.tolist(),
            "functions": [fn.to_dict() for fn in self.functions],
        }

    @classmethod
    def from_dict(cls, value: Dict[str, Any]) -> "WindSource":
        return cls(
            VolumeType.from_string(value.get("volumeType", "cube")),
            value.get("position", (0.0, 0.0, 0.0)),
            value.get("scale", (1.0, 1.0, 1.0)),
            [BaseFn.from_dict(fn) for fn in value.get("functions", [])],
        )

    def byte_size(self) -> int:
        return len(self.to_bytes())


__all__ = ["VolumeType", "WindSource"]
