from __future__ import annotations

"""Centralized debug logging for the wind solver, baker and validation stage.

Use `enable(True)` (or set env WINDSIM_DEBUG=1) to turn on step-by-step
logging across the solver, the streamline baker and the delta field.

Helpers:
- dbg(name): namespaced logger under "windsim.<name>"
- enable(flag): turn logging on/off globally
- is_enabled(): check global flag
- pretty_vec(v): compact rendering of a 3-vector for logs

By default, logging is quiet; enabling debug configures a stream handler on
the root "windsim" logger with a timestamped format.
"""

import logging
import os
from typing import Any

_ENABLED = bool(int(os.getenv("WINDSIM_DEBUG", "0") or "0"))

def enable(flag: bool = True, *, level: int = logging.DEBUG) -> None:
    """Enable or disable debug logging for the windsim namespace."""
    global _ENABLED
    _ENABLED = bool(flag)
    lg = logging.getLogger("windsim")
    if _ENABLED:
        if not any(isinstance(h, logging.StreamHandler) for h in lg.handlers):
            h = logging.StreamHandler()
            fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
            h.setFormatter(logging.Formatter(fmt=fmt, datefmt="%H:%M:%S"))
            lg.addHandler(h)
        lg.setLevel(level)
    else:
        lg.setLevel(logging.WARNING)

def is_enabled() -> bool:
    return _ENABLED

def dbg(name: str) -> logging.Logger:
    """Return a child logger under the windsim namespace."""
    if _ENABLED:
        enable(True)
    return logging.getLogger(f"windsim.{name}")

def pretty_vec(v: Any) -> str:
    try:
        x, y, z = (float(c) for c in v)
    except (TypeError, ValueError):
        return str(v)
    return f"({x:.3f}, {y:.3f}, {z:.3f})"

__all__ = ["enable", "is_enabled", "dbg", "pretty_vec"]
