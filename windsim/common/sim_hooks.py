from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Any, Optional

@dataclass
class SimHooks:
    """Optional pre/post hooks for simulation steps.

    Each hook receives the simulation instance and the (scaled) timestep
    ``delta``. Use to inject sources before a tick or to sample the fields
    after one. Exceptions raised by a hook propagate to the caller of
    ``step``.
    """
    pre: Optional[Callable[[Any, float], None]] = None
    post: Optional[Callable[[Any, float], None]] = None

    def run_pre(self, sim: Any, delta: float) -> None:
        if self.pre is not None:
            self.pre(sim, delta)

    def run_post(self, sim: Any, delta: float) -> None:
        if self.post is not None:
            self.post(sim, delta)
