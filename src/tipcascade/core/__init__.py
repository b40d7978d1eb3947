"""Core simulation components."""

from tipcascade.core.engine import advance, compute_stress, should_tip
from tipcascade.core.state import SimulationRun, new_run
from tipcascade.core.driver import SimulationDriver
from tipcascade.core.model import CascadeModel
from tipcascade.core.results import RunHistory

__all__ = [
    "advance",
    "compute_stress",
    "should_tip",
    "SimulationRun",
    "new_run",
    "SimulationDriver",
    "CascadeModel",
    "RunHistory",
]
