"""
Built-in warming scenarios.
"""

from tipcascade.scenarios.catalog import (
    Scenario,
    SCENARIOS,
    get_scenario,
    list_scenarios,
    validate_scenarios,
)

__all__ = [
    "Scenario",
    "SCENARIOS",
    "get_scenario",
    "list_scenarios",
    "validate_scenarios",
]
