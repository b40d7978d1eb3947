"""
Per-run simulation state.

All types here are immutable: the engine builds a new ``SimulationRun``
each tick instead of mutating the old one.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple
from dataclasses import dataclass, field
import logging

from tipcascade.core.elements import ELEMENTS, TippingElement, get_element
from tipcascade.core.errors import InvalidReferenceError
from tipcascade.core.random_source import RandomSource
from tipcascade.scenarios.catalog import Scenario

logger = logging.getLogger(__name__)

START_YEAR = 2025
BASELINE_TEMP = 1.1


@dataclass(frozen=True)
class ElementRunState:
    """Stress, tipped flag and sampled threshold of one element in one run."""
    
    stress: float = 0.0
    tipped: bool = False
    threshold: float = 0.0


@dataclass(frozen=True)
class CascadeEvent:
    """
    One element tipping.
    
    Attributes
    ----------
    year : int
        Simulated year of the tick that tipped the element.
    element_id : str
        Element that tipped.
    temperature : float
        Global temperature anomaly at that tick (°C).
    is_cascade : bool
        True if another element had tipped on an earlier tick.
    """
    
    year: int
    element_id: str
    temperature: float
    is_cascade: bool
    
    @property
    def element(self) -> TippingElement:
        return get_element(self.element_id)
    
    def as_dict(self) -> Dict[str, Any]:
        element = ELEMENTS.get(self.element_id)
        return {
            "year": self.year,
            "element_id": self.element_id,
            "element": element.full_name if element else self.element_id,
            "icon": element.icon if element else "",
            "temperature": round(self.temperature, 3),
            "is_cascade": self.is_cascade,
        }


@dataclass(frozen=True)
class SimulationRun:
    """
    Aggregate state of one simulation run.
    
    Attributes
    ----------
    elements : Mapping[str, ElementRunState]
        Run state per element id.
    year : int
        Current simulated year.
    temperature : float
        Current global temperature anomaly (°C).
    scenario : Scenario, optional
        Scenario driving the run; ``None`` for an idle run.
    running : bool
        Whether the driver should keep ticking.
    terminal : bool
        True once every element has tipped.
    events : tuple of CascadeEvent
        Tipping events in chronological order.
    start_year : int
        Year the run started from.
    baseline_temp : float
        Temperature the run started from (°C).
    """
    
    elements: Mapping[str, ElementRunState]
    year: int = START_YEAR
    temperature: float = BASELINE_TEMP
    scenario: Optional[Scenario] = None
    running: bool = False
    terminal: bool = False
    events: Tuple[CascadeEvent, ...] = field(default_factory=tuple)
    start_year: int = START_YEAR
    baseline_temp: float = BASELINE_TEMP
    
    @property
    def ticks_elapsed(self) -> int:
        return self.year - self.start_year
    
    @property
    def tipped_ids(self) -> List[str]:
        return [key for key, state in self.elements.items() if state.tipped]
    
    @property
    def tipped_count(self) -> int:
        return sum(1 for state in self.elements.values() if state.tipped)
    
    @property
    def all_tipped(self) -> bool:
        return all(state.tipped for state in self.elements.values())
    
    @property
    def scenario_id(self) -> Optional[str]:
        return self.scenario.id if self.scenario is not None else None
    
    def state_of(self, element_id: str) -> ElementRunState:
        """Run state of one element; raises InvalidReferenceError if unknown."""
        try:
            return self.elements[element_id]
        except KeyError:
            raise InvalidReferenceError(
                f"Unknown element '{element_id}'. Available: {list(self.elements)}"
            ) from None
    
    def __repr__(self) -> str:
        scenario = self.scenario.name if self.scenario else "None"
        status = "TERMINAL" if self.terminal else ("RUNNING" if self.running else "STOPPED")
        return (
            f"SimulationRun(scenario='{scenario}', year={self.year}, "
            f"temperature={self.temperature:.2f}, "
            f"tipped={self.tipped_count}/{len(self.elements)}, status={status})"
        )


def sample_thresholds(
    rng: RandomSource,
    elements: Mapping[str, TippingElement] = ELEMENTS,
) -> Dict[str, float]:
    """Draw one threshold per element uniformly from its range."""
    return {
        key: rng.uniform(element.threshold_min, element.threshold_max)
        for key, element in elements.items()
    }


def new_run(
    scenario: Optional[Scenario] = None,
    rng: Optional[RandomSource] = None,
    start_year: int = START_YEAR,
    baseline_temp: float = BASELINE_TEMP,
    elements: Mapping[str, TippingElement] = ELEMENTS,
    running: bool = False,
) -> SimulationRun:
    """
    Create a fresh run with newly sampled thresholds.
    
    Parameters
    ----------
    scenario : Scenario, optional
        Scenario to bind. ``None`` gives an idle run.
    rng : RandomSource, optional
        Source for threshold draws. A fresh unseeded one if omitted.
    start_year : int
        Epoch year. Default 2025.
    baseline_temp : float
        Starting temperature anomaly. Default 1.1°C.
    elements : Mapping
        Element registry.
    running : bool
        Initial running flag.
    
    Returns
    -------
    SimulationRun
        Run with zero stress, nothing tipped and an empty event log.
    """
    rng = rng if rng is not None else RandomSource()
    thresholds = sample_thresholds(rng, elements)
    
    logger.debug(
        "Sampled thresholds: "
        + ", ".join(f"{key}={value:.3f}" for key, value in thresholds.items())
    )
    
    return SimulationRun(
        elements={
            key: ElementRunState(stress=0.0, tipped=False, threshold=threshold)
            for key, threshold in thresholds.items()
        },
        year=start_year,
        temperature=baseline_temp,
        scenario=scenario,
        running=running,
        terminal=False,
        events=(),
        start_year=start_year,
        baseline_temp=baseline_temp,
    )
