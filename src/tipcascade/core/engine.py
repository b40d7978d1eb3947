"""
Cascade engine: stress, tipping decision and tick advancement.

Stress model for an untipped element i at temperature T:

    ratio_i  = max(0, (T - T_floor) / (θ_i - T_floor))
    stress_i = clip(55·ratio_i + Σ_j∈tipped w_type · s_ji · K, 0, 100)

with T_floor = 0.8°C, θ_i the threshold sampled for the run, s_ji the
strength of interaction j → i, K the global interaction scale (0.35) and
w_type = +10 (destabilizing), -12 (stabilizing), +4 (uncertain). A tipped
element sits at stress 100.

Tipping hazard per tick:

    stress < 70         p = 0
    70 <= stress < 85   p = 0.05
    85 <= stress <= 100 p = 0.4·(stress - 85)/15

Every element in a tick is evaluated against the previous tick's state,
so results do not depend on iteration order.
"""

from typing import Dict, List, Optional, Sequence
from dataclasses import replace
import logging
import math

from tipcascade.core.errors import InvalidReferenceError
from tipcascade.core.interactions import INTERACTIONS, Interaction
from tipcascade.core.random_source import RandomSource
from tipcascade.core.state import CascadeEvent, ElementRunState, SimulationRun
from tipcascade.scenarios.catalog import Scenario
from tipcascade.utils.logging import log_calculation_issue

logger = logging.getLogger(__name__)


# Lowest plausible threshold across all elements; zero-point of the ratio
STRESS_FLOOR_TEMP = 0.8

# Maximum stress from temperature alone, leaves headroom for interactions
MAX_BASELINE_STRESS = 55.0

# Global interaction-strength scale
INTERACTION_STRENGTH = 0.35

MIN_STRESS = 0.0
MAX_STRESS = 100.0

# Hazard bands
WARNING_BAND_STRESS = 70.0
CRITICAL_BAND_STRESS = 85.0
WARNING_BAND_PROBABILITY = 0.05
MAX_TIP_PROBABILITY = 0.4

# Upper bounds (°C) of the display temperature bands
TEMPERATURE_BANDS = (
    (1.5, "safe"),
    (2.0, "elevated"),
    (3.0, "high"),
    (4.0, "severe"),
)

_default_rng = RandomSource()


def _clamp_stress(value: float, element_id: str) -> float:
    if math.isnan(value):
        log_calculation_issue(
            "NaN stress",
            f"Stress for '{element_id}' is NaN, clamped to {MIN_STRESS}",
            {"element_id": element_id},
        )
        return MIN_STRESS
    return max(MIN_STRESS, min(MAX_STRESS, value))


def baseline_stress(temperature: float, threshold: float) -> float:
    """
    Stress from temperature proximity to ``threshold``, before interactions.
    
    Zero at or below the 0.8°C floor and 55 at the threshold. A threshold
    sitting on the floor saturates as soon as the floor is exceeded.
    """
    if temperature <= STRESS_FLOOR_TEMP:
        return 0.0
    span = threshold - STRESS_FLOOR_TEMP
    if span <= 0:
        return math.inf
    return (temperature - STRESS_FLOOR_TEMP) / span * MAX_BASELINE_STRESS


def compute_stress(
    element_id: str,
    run: SimulationRun,
    temperature: float,
    interactions: Sequence[Interaction] = INTERACTIONS,
    interaction_strength: float = INTERACTION_STRENGTH,
) -> float:
    """
    Stress of one element for a given temperature.
    
    Pure: reads ``run`` and never mutates it, so the presentation layer
    may call it freely between ticks.
    
    Parameters
    ----------
    element_id : str
        Element to evaluate.
    run : SimulationRun
        Snapshot providing the sampled threshold and tipped flags.
    temperature : float
        Global temperature anomaly (°C).
    interactions : Sequence[Interaction], optional
        Interaction table. Defaults to the built-in table.
    interaction_strength : float, optional
        Global interaction scale K. Default is 0.35.
    
    Returns
    -------
    float
        Stress in [0, 100]; exactly 100 for a tipped element.
    
    Raises
    ------
    InvalidReferenceError
        If ``element_id`` is not part of the run.
    """
    state = run.state_of(element_id)
    if state.tipped:
        return MAX_STRESS
    
    stress = baseline_stress(temperature, state.threshold)
    
    for interaction in interactions:
        if interaction.target != element_id:
            continue
        source = run.elements.get(interaction.source)
        if source is not None and source.tipped:
            stress += interaction.contribution(interaction_strength)
    
    return _clamp_stress(stress, element_id)


def tipping_probability(stress: float) -> float:
    """
    Per-tick probability that an untipped element at ``stress`` tips.
    
    Returns
    -------
    float
        0 below 70, 0.05 on [70, 85), ramping linearly from 0 at 85 to
        0.4 at 100.
    """
    if stress >= CRITICAL_BAND_STRESS:
        stress = min(stress, MAX_STRESS)
        return (stress - CRITICAL_BAND_STRESS) / (MAX_STRESS - CRITICAL_BAND_STRESS) * MAX_TIP_PROBABILITY
    if stress >= WARNING_BAND_STRESS:
        return WARNING_BAND_PROBABILITY
    return 0.0


def should_tip(
    stress: float,
    already_tipped: bool,
    rng: Optional[RandomSource] = None,
) -> bool:
    """
    Bernoulli tipping decision for one element and one tick.
    
    Tipping is irreversible, so an already tipped element never tips
    again. When the probability is zero no draw is taken from ``rng``.
    """
    if already_tipped:
        return False
    probability = tipping_probability(stress)
    if probability <= 0:
        return False
    rng = rng if rng is not None else _default_rng
    return rng.random() < probability


def scenario_temperature(
    scenario: Scenario,
    ticks_elapsed: int,
    baseline_temp: float,
) -> float:
    """
    Temperature ``ticks_elapsed`` years into a scenario.
    
    Linear ramp from ``baseline_temp`` to ``scenario.target_temp`` over
    ``scenario.years_to_target`` years, held at the target afterwards.
    Never returns less than ``baseline_temp``.
    """
    progress = min(1.0, max(0.0, ticks_elapsed / scenario.years_to_target))
    if progress >= 1.0:
        temperature = float(scenario.target_temp)
    else:
        temperature = baseline_temp + (scenario.target_temp - baseline_temp) * progress
    
    if temperature < baseline_temp:
        log_calculation_issue(
            "Temperature below baseline",
            f"Scenario '{scenario.id}' gives {temperature:.3f}°C, held at baseline",
            {"baseline_temp": baseline_temp, "target_temp": scenario.target_temp},
        )
        temperature = baseline_temp
    return temperature


def is_terminal(run: SimulationRun) -> bool:
    """True once every element in the run has tipped."""
    return run.terminal or run.all_tipped


def advance(
    run: SimulationRun,
    scenario: Optional[Scenario] = None,
    rng: Optional[RandomSource] = None,
    interactions: Sequence[Interaction] = INTERACTIONS,
    interaction_strength: float = INTERACTION_STRENGTH,
) -> SimulationRun:
    """
    Advance a run by one simulated year.
    
    Parameters
    ----------
    run : SimulationRun
        State after the previous tick. Not modified.
    scenario : Scenario, optional
        Scenario to follow. Defaults to ``run.scenario``.
    rng : RandomSource, optional
        Source for the tipping draws.
    interactions : Sequence[Interaction], optional
        Interaction table.
    interaction_strength : float, optional
        Global interaction scale K.
    
    Returns
    -------
    SimulationRun
        The next state. A terminal run is returned unchanged.
    
    Raises
    ------
    InvalidReferenceError
        If neither ``scenario`` nor ``run.scenario`` is set.
    """
    if run.terminal:
        logger.debug("Run is terminal, tick ignored")
        return run
    
    scenario = scenario if scenario is not None else run.scenario
    if scenario is None:
        raise InvalidReferenceError("Cannot advance a run without a scenario")
    
    rng = rng if rng is not None else _default_rng
    
    year = run.year + 1
    temperature = scenario_temperature(scenario, year - run.start_year, run.baseline_temp)
    
    # Decisions read only the previous snapshot
    next_elements: Dict[str, ElementRunState] = {}
    newly_tipped: List[str] = []
    for element_id, previous in run.elements.items():
        stress = compute_stress(
            element_id, run, temperature, interactions, interaction_strength
        )
        if should_tip(stress, previous.tipped, rng):
            next_elements[element_id] = replace(previous, stress=MAX_STRESS, tipped=True)
            newly_tipped.append(element_id)
        else:
            next_elements[element_id] = replace(previous, stress=stress)
    
    had_prior_tips = any(state.tipped for state in run.elements.values())
    events = run.events + tuple(
        CascadeEvent(
            year=year,
            element_id=element_id,
            temperature=temperature,
            is_cascade=had_prior_tips,
        )
        for element_id in newly_tipped
    )
    
    for element_id in newly_tipped:
        logger.info(
            f"Year {year}: {element_id} tipped at {temperature:.2f}°C"
            + (" (cascade)" if had_prior_tips else "")
        )
    
    terminal = all(state.tipped for state in next_elements.values())
    if terminal:
        logger.info(f"Year {year}: all {len(next_elements)} elements tipped, run halted")
    
    return replace(
        run,
        elements=next_elements,
        year=year,
        temperature=temperature,
        scenario=scenario,
        running=run.running and not terminal,
        terminal=terminal,
        events=events,
    )


def temperature_band(temperature: float) -> str:
    """Display band for a temperature anomaly: safe, elevated, high, severe or extreme."""
    for upper, band in TEMPERATURE_BANDS:
        if temperature <= upper:
            return band
    return "extreme"
