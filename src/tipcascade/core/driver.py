"""
Real-time driver for a cascade simulation.

The driver owns the authoritative ``SimulationRun`` and is its only
mutator. It ticks the engine on a fixed wall-clock cadence with a
``threading.Timer`` that is re-armed only after the previous tick has
committed, so at most one tick is ever in flight. Every armed timer
carries a generation number; pause, reset and scenario selection bump
the generation, which turns any timer already in the air into a no-op.
"""

from typing import Any, Callable, Dict, Optional, Sequence, Tuple
from dataclasses import dataclass, replace
from enum import Enum
import logging
import threading

from tipcascade.core.elements import ELEMENTS, TippingElement
from tipcascade.core.engine import INTERACTION_STRENGTH, advance, temperature_band
from tipcascade.core.interactions import (
    INTERACTIONS,
    Interaction,
    active_interactions,
    validate_interactions,
)
from tipcascade.core.random_source import RandomSource
from tipcascade.core.state import (
    BASELINE_TEMP,
    START_YEAR,
    CascadeEvent,
    SimulationRun,
    new_run,
)
from tipcascade.scenarios.catalog import get_scenario
from tipcascade.utils.logging import log_error

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.6


class DriverState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class ElementSnapshot:
    """Read-only view of one element for the presentation layer."""
    
    id: str
    stress: float
    tipped: bool
    element: TippingElement
    
    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "stress": self.stress,
            "tipped": self.tipped,
            **{k: v for k, v in self.element.as_dict().items() if k != "id"},
        }


@dataclass(frozen=True)
class RunSnapshot:
    """
    Read-only view of the driver's run.
    
    Attributes
    ----------
    state : DriverState
        Driver state machine position.
    year : int
        Current simulated year.
    temperature : float
        Current global temperature anomaly (°C).
    temperature_band : str
        Display band of ``temperature``.
    running, terminal : bool
        Run flags.
    scenario_id : str, optional
        Selected scenario, ``None`` when idle.
    elements : dict
        ``ElementSnapshot`` per element id.
    events : tuple of CascadeEvent
        Event log in the requested order.
    active_interactions : tuple of Interaction
        Interactions whose source has tipped.
    """
    
    state: DriverState
    year: int
    temperature: float
    temperature_band: str
    running: bool
    terminal: bool
    scenario_id: Optional[str]
    elements: Dict[str, ElementSnapshot]
    events: Tuple[CascadeEvent, ...]
    active_interactions: Tuple[Interaction, ...]
    
    @property
    def tipped_count(self) -> int:
        return sum(1 for e in self.elements.values() if e.tipped)
    
    def as_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "year": self.year,
            "temperature": self.temperature,
            "temperature_band": self.temperature_band,
            "running": self.running,
            "terminal": self.terminal,
            "scenario_id": self.scenario_id,
            "tipped_count": self.tipped_count,
            "elements": {k: v.as_dict() for k, v in self.elements.items()},
            "events": [e.as_dict() for e in self.events],
            "active_interactions": [i.as_dict() for i in self.active_interactions],
        }


def driver_state(run: SimulationRun) -> DriverState:
    if run.terminal:
        return DriverState.TERMINAL
    if run.scenario is None:
        return DriverState.IDLE
    return DriverState.RUNNING if run.running else DriverState.PAUSED


def build_snapshot(
    run: SimulationRun,
    interactions: Sequence[Interaction] = INTERACTIONS,
    newest_first: bool = False,
) -> RunSnapshot:
    """Build the outbound view of ``run``."""
    events = tuple(reversed(run.events)) if newest_first else tuple(run.events)
    return RunSnapshot(
        state=driver_state(run),
        year=run.year,
        temperature=run.temperature,
        temperature_band=temperature_band(run.temperature),
        running=run.running,
        terminal=run.terminal,
        scenario_id=run.scenario_id,
        elements={
            key: ElementSnapshot(
                id=key,
                stress=state.stress,
                tipped=state.tipped,
                element=ELEMENTS[key],
            )
            for key, state in run.elements.items()
        },
        events=events,
        active_interactions=tuple(active_interactions(run.tipped_ids, interactions)),
    )


class SimulationDriver:
    """
    Fixed-cadence scheduler and command surface for one simulation.
    
    Parameters
    ----------
    interval : float, optional
        Wall-clock seconds between ticks. Default is 0.6.
    rng : RandomSource, optional
        Source for threshold sampling and tipping draws.
    start_year : int, optional
        Epoch of every run. Default is 2025.
    baseline_temp : float, optional
        Starting temperature of every run. Default is 1.1°C.
    interaction_strength : float, optional
        Global interaction scale K. Default is 0.35.
    interactions : Sequence[Interaction], optional
        Interaction table, checked against the element registry.
    on_tick : Callable[[RunSnapshot], None], optional
        Called with the new snapshot after every committed tick.
    threaded : bool, optional
        Arm a timer thread on start/resume. With ``False`` the caller
        drives the run by calling ``tick()``. Default is True.
    """
    
    def __init__(
        self,
        interval: float = DEFAULT_TICK_INTERVAL,
        rng: Optional[RandomSource] = None,
        start_year: int = START_YEAR,
        baseline_temp: float = BASELINE_TEMP,
        interaction_strength: float = INTERACTION_STRENGTH,
        interactions: Sequence[Interaction] = INTERACTIONS,
        on_tick: Optional[Callable[[RunSnapshot], None]] = None,
        threaded: bool = True,
    ):
        if interval <= 0:
            raise ValueError(f"Tick interval must be positive, got {interval}")
        
        self.interval = interval
        self.rng = rng if rng is not None else RandomSource()
        self.start_year = start_year
        self.baseline_temp = baseline_temp
        self.interaction_strength = interaction_strength
        self.interactions = list(interactions)
        validate_interactions(self.interactions)
        self.on_tick = on_tick
        self.threaded = threaded
        self.last_error: Optional[Exception] = None
        
        self._lock = threading.RLock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._terminal_event = threading.Event()
        self._run = self._fresh_run(None)
        
        logger.debug(f"Initialized {self!r}")
    
    # ------------------------------------------------------------------
    # Inbound commands
    # ------------------------------------------------------------------
    
    def select_scenario(self, scenario_id: str) -> RunSnapshot:
        """
        Start a fresh run bound to ``scenario_id``.
        
        Raises
        ------
        InvalidReferenceError
            If the scenario is unknown. The current run is left untouched.
        """
        scenario = get_scenario(scenario_id)
        
        with self._lock:
            self._cancel_timer()
            self._terminal_event.clear()
            self.last_error = None
            self._run = self._fresh_run(scenario, running=True)
            logger.info(f"Started scenario '{scenario.id}' ({scenario.name})")
            self._schedule()
            return self.snapshot()
    
    def pause(self) -> RunSnapshot:
        """Stop ticking without touching run content."""
        with self._lock:
            if self.state is DriverState.RUNNING:
                self._cancel_timer()
                self._run = replace(self._run, running=False)
                logger.info(f"Paused at year {self._run.year}")
            return self.snapshot()
    
    def resume(self) -> RunSnapshot:
        """Resume ticking; time spent paused is not replayed."""
        with self._lock:
            if self.state is DriverState.PAUSED:
                self._run = replace(self._run, running=True)
                logger.info(f"Resumed at year {self._run.year}")
                self._schedule()
            return self.snapshot()
    
    def toggle(self) -> RunSnapshot:
        """Pause if running, resume if paused."""
        with self._lock:
            if self.state is DriverState.RUNNING:
                return self.pause()
            return self.resume()
    
    def reset(self) -> RunSnapshot:
        """Cancel scheduling and return to idle with no scenario."""
        with self._lock:
            self._cancel_timer()
            self._terminal_event.clear()
            self.last_error = None
            self._run = self._fresh_run(None)
            logger.info("Simulation reset")
            return self.snapshot()
    
    def tick(self) -> Optional[RunSnapshot]:
        """
        Advance one year now.
        
        Returns
        -------
        RunSnapshot or None
            New snapshot, or ``None`` if the driver is not running.
        """
        with self._lock:
            if self.state is not DriverState.RUNNING:
                return None
            return self._tick_locked()
    
    def close(self) -> None:
        """Cancel any pending tick. The run itself is kept."""
        with self._lock:
            self._cancel_timer()
            if self.state is DriverState.RUNNING:
                self._run = replace(self._run, running=False)
    
    # ------------------------------------------------------------------
    # Outbound view
    # ------------------------------------------------------------------
    
    @property
    def run(self) -> SimulationRun:
        with self._lock:
            return self._run
    
    @property
    def state(self) -> DriverState:
        with self._lock:
            return driver_state(self._run)
    
    def snapshot(self, newest_first: bool = False) -> RunSnapshot:
        with self._lock:
            return build_snapshot(self._run, self.interactions, newest_first)
    
    def wait_until_terminal(self, timeout: Optional[float] = None) -> bool:
        """Block until every element has tipped; False on timeout."""
        return self._terminal_event.wait(timeout)
    
    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    
    def _fresh_run(self, scenario, running: bool = False) -> SimulationRun:
        return new_run(
            scenario,
            rng=self.rng,
            start_year=self.start_year,
            baseline_temp=self.baseline_temp,
            running=running,
        )
    
    def _cancel_timer(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
    
    def _schedule(self) -> None:
        if not self.threaded or self._timer is not None or not self._run.running:
            return
        generation = self._generation
        self._timer = threading.Timer(self.interval, self._on_timer, args=(generation,))
        self._timer.daemon = True
        self._timer.start()
    
    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug(f"Dropped stale tick from generation {generation}")
                return
            self._timer = None
            if self.state is not DriverState.RUNNING:
                return
            self._tick_locked()
            # on_tick may have paused, reset or restarted the driver
            if generation == self._generation:
                self._schedule()
    
    def _tick_locked(self) -> RunSnapshot:
        try:
            self._run = advance(
                self._run,
                rng=self.rng,
                interactions=self.interactions,
                interaction_strength=self.interaction_strength,
            )
        except Exception as e:
            self._halt(e, f"Simulation tick (year {self._run.year + 1})")
            raise
        
        if self._run.terminal:
            self._terminal_event.set()
        
        snapshot = self.snapshot()
        if self.on_tick is not None:
            # The tick has committed; a failing callback stops the run
            try:
                self.on_tick(snapshot)
            except Exception as e:
                self._halt(e, f"on_tick callback (year {snapshot.year})")
                raise
        return snapshot
    
    def _halt(self, error: Exception, context: str) -> None:
        log_error(error, context)
        self.last_error = error
        if self._run.running:
            self._run = replace(self._run, running=False)
    
    def __enter__(self) -> "SimulationDriver":
        return self
    
    def __exit__(self, *exc) -> None:
        self.close()
    
    def __repr__(self) -> str:
        return (
            f"SimulationDriver(interval={self.interval}, state={driver_state(self._run).value}, "
            f"year={self._run.year}, interaction_strength={self.interaction_strength})"
        )
