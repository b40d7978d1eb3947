"""Pytest configuration."""
import logging

import pytest
import numpy as np

from tipcascade import ElementRunState, RandomSource, Scenario, SimulationRun


class ScriptedRandom(RandomSource):
    """Random source with fixed outcomes.
    
    ``random()`` always returns ``draw``; ``uniform(low, high)`` returns
    the point at ``fraction`` of the interval.
    """
    
    def __init__(self, draw=0.0, fraction=0.5):
        super().__init__(seed=0)
        self.draw = draw
        self.fraction = fraction
        self.calls = 0
    
    def random(self):
        self.calls += 1
        return self.draw
    
    def uniform(self, low, high):
        return low + self.fraction * (high - low)


@pytest.fixture(autouse=True)
def set_random_seed():
    np.random.seed(42)


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger("tipcascade")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers = []


@pytest.fixture
def always_tip():
    """Tips whenever the tipping probability is positive."""
    return ScriptedRandom(draw=0.0)


@pytest.fixture
def never_tip():
    return ScriptedRandom(draw=0.999999)


@pytest.fixture
def steep_scenario():
    """+0.1°C per year from 1.1°C, reaching 2.1°C after 10 years."""
    return Scenario(
        id="steep",
        name="Steep test ramp",
        icon="",
        target_temp=2.1,
        years_to_target=10,
    )


@pytest.fixture
def make_run():
    def _make_run(thresholds, tipped=(), scenario=None, year=2025,
                  temperature=1.1, running=True):
        elements = {
            key: ElementRunState(
                stress=100.0 if key in tipped else 0.0,
                tipped=key in tipped,
                threshold=value,
            )
            for key, value in thresholds.items()
        }
        return SimulationRun(
            elements=elements,
            year=year,
            temperature=temperature,
            scenario=scenario,
            running=running,
        )
    return _make_run


@pytest.fixture
def default_thresholds():
    return {"greenland": 2.0, "wais": 3.0, "amoc": 4.5, "amazon": 4.0}


@pytest.fixture
def scripted_random():
    return ScriptedRandom
