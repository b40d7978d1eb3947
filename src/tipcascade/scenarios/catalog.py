"""
Warming scenarios.

Each scenario ramps global temperature linearly from the run's baseline
to ``target_temp`` over ``years_to_target`` years, then holds it:

- Paris 1.5°C: aggressive emissions cuts
- Paris 2°C: Paris Agreement upper limit
- Current Policies: where we are headed now (~2.7°C)
- High Emissions: continued fossil fuel use
"""

from typing import Dict, List, Mapping
from dataclasses import dataclass
import logging

from tipcascade.core.errors import CatalogIntegrityError, InvalidReferenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Scenario:
    """
    Named warming trajectory.
    
    Attributes
    ----------
    id : str
        Catalog key.
    name : str
        Display name.
    icon : str
        Display glyph.
    target_temp : float
        Final global temperature anomaly (°C).
    years_to_target : int
        Length of the linear ramp in years.
    color : str
        Hex display colour.
    description : str
        One-line summary.
    """
    
    id: str
    name: str
    icon: str
    target_temp: float
    years_to_target: int
    color: str = "#94a3b8"
    description: str = ""
    
    def as_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "target_temp": self.target_temp,
            "years_to_target": self.years_to_target,
            "color": self.color,
            "description": self.description,
        }


SCENARIOS: Dict[str, Scenario] = {
    "paris15": Scenario(
        id="paris15",
        name="Paris 1.5°C",
        icon="🌱",
        target_temp=1.5,
        years_to_target=30,
        color="#22c55e",
        description="Best case: aggressive emissions cuts",
    ),
    "paris2": Scenario(
        id="paris2",
        name="Paris 2°C",
        icon="🌡️",
        target_temp=2.0,
        years_to_target=35,
        color="#84cc16",
        description="Paris Agreement upper limit",
    ),
    "current": Scenario(
        id="current",
        name="Current Policies",
        icon="📈",
        target_temp=2.7,
        years_to_target=50,
        color="#eab308",
        description="Where we're headed now (~2.7°C)",
    ),
    "worst": Scenario(
        id="worst",
        name="High Emissions",
        icon="🔥",
        target_temp=4.0,
        years_to_target=75,
        color="#ef4444",
        description="Continued fossil fuel use",
    ),
}


def validate_scenarios(scenarios: Mapping[str, Scenario]) -> None:
    """Fail fast on malformed scenario entries."""
    for key, scenario in scenarios.items():
        if key != scenario.id:
            raise CatalogIntegrityError(
                f"Scenario registered as '{key}' has id '{scenario.id}'"
            )
        if int(scenario.years_to_target) != scenario.years_to_target or scenario.years_to_target <= 0:
            raise CatalogIntegrityError(
                f"Scenario '{key}' years_to_target must be a positive integer, "
                f"got {scenario.years_to_target}"
            )
    logger.debug(f"Validated {len(scenarios)} scenarios")


def get_scenario(key: str) -> Scenario:
    """
    Get scenario by key.
    
    Parameters
    ----------
    key : str
        Scenario key (e.g., "paris15", "worst") or a known alias
        such as "paris-1.5" or "high_emissions".
    
    Returns
    -------
    Scenario
        Scenario definition.
    
    Raises
    ------
    InvalidReferenceError
        If scenario not found.
    """
    if isinstance(key, Scenario):
        return key
    
    # Normalize key
    key_lower = str(key).lower().replace("-", "").replace("_", "").replace(" ", "")
    
    # Direct match
    if key_lower in SCENARIOS:
        return SCENARIOS[key_lower]
    
    # Try alternative formats
    key_map = {
        "paris1.5": "paris15",
        "1.5": "paris15",
        "paris2.0": "paris2",
        "2.0": "paris2",
        "currentpolicies": "current",
        "current2.7": "current",
        "2.7": "current",
        "highemissions": "worst",
        "high": "worst",
        "4.0": "worst",
    }
    
    if key_lower in key_map:
        return SCENARIOS[key_map[key_lower]]
    
    available = list(SCENARIOS.keys())
    raise InvalidReferenceError(f"Unknown scenario '{key}'. Available: {available}")


def list_scenarios() -> List[str]:
    """
    List available scenario keys.
    
    Returns
    -------
    List[str]
        List of scenario identifiers.
    """
    return list(SCENARIOS.keys())


validate_scenarios(SCENARIOS)
