# -*- coding: utf-8 -*-
"""Shared helpers: configuration, step hooks, debug logging and statistics."""

from .config import FieldKind, SimConfig, RECOGNIZED_KEYS
from .sim_hooks import SimHooks
from .stats import BoxPlot, box_plot, gaussian, median, quartile1, quartile3

__all__ = [
    "FieldKind",
    "SimConfig",
    "RECOGNIZED_KEYS",
    "SimHooks",
    "BoxPlot",
    "box_plot",
    "gaussian",
    "median",
    "quartile1",
    "quartile3",
]
