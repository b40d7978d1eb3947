"""
tipcascade - Climate Tipping Cascade Simulator

An educational simulation of interacting climate tipping elements
(ice sheets, ocean circulation, rainforest) under warming scenarios,
after Wunderling et al. (2021).
"""

__version__ = "0.1.0"

from tipcascade.core.errors import CatalogIntegrityError, InvalidReferenceError
from tipcascade.core.elements import ELEMENTS, TippingElement, get_element, list_elements
from tipcascade.core.interactions import INTERACTIONS, Interaction, InteractionType
from tipcascade.core.random_source import RandomSource
from tipcascade.core.state import (
    CascadeEvent,
    ElementRunState,
    SimulationRun,
    new_run,
)
from tipcascade.core.engine import (
    compute_stress,
    tipping_probability,
    should_tip,
    scenario_temperature,
    advance,
    is_terminal,
    temperature_band,
    INTERACTION_STRENGTH,
)
from tipcascade.core.driver import DriverState, RunSnapshot, SimulationDriver
from tipcascade.core.model import CascadeModel
from tipcascade.core.results import RunHistory
from tipcascade.scenarios import SCENARIOS, Scenario, get_scenario, list_scenarios

__all__ = [
    "__version__",
    "CatalogIntegrityError",
    "InvalidReferenceError",
    "ELEMENTS",
    "TippingElement",
    "get_element",
    "list_elements",
    "INTERACTIONS",
    "Interaction",
    "InteractionType",
    "RandomSource",
    "CascadeEvent",
    "ElementRunState",
    "SimulationRun",
    "new_run",
    "compute_stress",
    "tipping_probability",
    "should_tip",
    "scenario_temperature",
    "advance",
    "is_terminal",
    "temperature_band",
    "INTERACTION_STRENGTH",
    "DriverState",
    "RunSnapshot",
    "SimulationDriver",
    "CascadeModel",
    "RunHistory",
    "SCENARIOS",
    "Scenario",
    "get_scenario",
    "list_scenarios",
]
