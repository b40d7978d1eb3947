"""
Tipping element registry.

Threshold ranges follow Wunderling et al. (2021), Table 1. Ranges are
global mean temperature anomalies in °C above pre-industrial.
"""

from typing import Dict, List, Mapping, Tuple
from dataclasses import dataclass
import logging

from tipcascade.core.errors import CatalogIntegrityError, InvalidReferenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TippingElement:
    """
    Static description of one tipping element.
    
    Only ``id``, ``threshold_min`` and ``threshold_max`` are read by the
    engine. Everything else is passed through to the presentation layer.
    
    Attributes
    ----------
    id : str
        Registry key.
    name : str
        Short display name.
    tipping_name : str
        What "tipping" means for this element.
    full_name : str
        Scientific name.
    icon : str
        Display glyph.
    threshold_min, threshold_max : float
        Range the per-run threshold is sampled from (°C).
    role : str
        Role in the cascade network.
    short_desc, description : str
        Descriptive text.
    color : str
        Hex display colour.
    position : tuple of float
        Layout position (percent of canvas).
    """
    
    id: str
    name: str
    tipping_name: str
    full_name: str
    icon: str
    threshold_min: float
    threshold_max: float
    role: str
    short_desc: str
    description: str
    color: str
    position: Tuple[float, float]
    
    @property
    def threshold_range(self) -> Tuple[float, float]:
        return (self.threshold_min, self.threshold_max)
    
    def as_dict(self) -> Dict[str, object]:
        """Metadata dictionary for display."""
        return {
            "id": self.id,
            "name": self.name,
            "tipping_name": self.tipping_name,
            "full_name": self.full_name,
            "icon": self.icon,
            "threshold_min": self.threshold_min,
            "threshold_max": self.threshold_max,
            "role": self.role,
            "short_desc": self.short_desc,
            "description": self.description,
            "color": self.color,
            "position": {"x": self.position[0], "y": self.position[1]},
        }


ELEMENTS: Dict[str, TippingElement] = {
    "greenland": TippingElement(
        id="greenland",
        name="Greenland",
        tipping_name="Ice Sheet Collapse",
        full_name="Greenland Ice Sheet",
        icon="🏔️",
        threshold_min=0.8,
        threshold_max=3.2,
        role="Main Initiator",
        short_desc="Ice sheet disintegration",
        description=(
            "The Greenland Ice Sheet is the second-largest ice body on Earth. "
            "Tipping means melting becomes self-sustaining: the ice sheet keeps "
            "shrinking even if warming stops, eventually raising global sea "
            "levels by about 7 meters over centuries to millennia."
        ),
        color="#60a5fa",
        position=(50.0, 8.0),
    ),
    "wais": TippingElement(
        id="wais",
        name="Antarctica",
        tipping_name="Ice Sheet Collapse",
        full_name="West Antarctic Ice Sheet",
        icon="🧊",
        threshold_min=0.8,
        threshold_max=5.5,
        role="Initiator & Mediator",
        short_desc="Marine ice sheet collapse",
        description=(
            "The West Antarctic Ice Sheet rests on bedrock below sea level, "
            "which exposes it to marine ice sheet instability. Warming oceans "
            "melt the ice from below and glaciers such as Thwaites can retreat "
            "unstoppably. Full collapse would raise sea levels by 3+ meters."
        ),
        color="#a78bfa",
        position=(50.0, 92.0),
    ),
    "amoc": TippingElement(
        id="amoc",
        name="AMOC",
        tipping_name="Circulation Collapse",
        full_name="Atlantic Meridional Overturning Circulation",
        icon="🌊",
        threshold_min=3.5,
        threshold_max=6.0,
        role="Cascade Transmitter",
        short_desc="Ocean current shutdown",
        description=(
            "The AMOC is the Atlantic conveyor belt of currents that includes "
            "the Gulf Stream and keeps Europe about 5°C warmer than it would "
            "otherwise be. Collapse would cool Europe, shift rainfall belts "
            "worldwide and raise seas along the US East Coast."
        ),
        color="#2dd4bf",
        position=(8.0, 50.0),
    ),
    "amazon": TippingElement(
        id="amazon",
        name="Amazon",
        tipping_name="Rainforest Dieback",
        full_name="Amazon Rainforest",
        icon="🌳",
        threshold_min=3.5,
        threshold_max=4.5,
        role="Follower Only",
        short_desc="Forest-to-savanna shift",
        description=(
            "The Amazon produces much of its own rainfall through "
            "evapotranspiration. Tipping means this moisture recycling breaks "
            "down: drought kills trees, which reduces rainfall and kills more "
            "trees, turning large parts of the forest into savanna."
        ),
        color="#4ade80",
        position=(92.0, 50.0),
    ),
}


def validate_elements(elements: Mapping[str, TippingElement]) -> None:
    """
    Check registry integrity.
    
    Raises
    ------
    CatalogIntegrityError
        On a key/id mismatch, a non-positive threshold, or an
        unordered threshold range.
    """
    if not elements:
        raise CatalogIntegrityError("Element registry is empty")
    
    for key, element in elements.items():
        if key != element.id:
            raise CatalogIntegrityError(
                f"Element registered as '{key}' has id '{element.id}'"
            )
        if element.threshold_min <= 0 or element.threshold_max <= 0:
            raise CatalogIntegrityError(
                f"Element '{key}' thresholds must be positive, got "
                f"{element.threshold_min}-{element.threshold_max}"
            )
        if element.threshold_min >= element.threshold_max:
            raise CatalogIntegrityError(
                f"Element '{key}' has threshold_min={element.threshold_min} "
                f">= threshold_max={element.threshold_max}"
            )
    
    logger.debug(f"Validated {len(elements)} tipping elements")


def get_element(
    element_id: str,
    elements: Mapping[str, TippingElement] = ELEMENTS,
) -> TippingElement:
    """
    Get element by id.
    
    Raises
    ------
    InvalidReferenceError
        If the id is not registered.
    """
    try:
        return elements[element_id]
    except KeyError:
        raise InvalidReferenceError(
            f"Unknown element '{element_id}'. Available: {list(elements)}"
        ) from None


def list_elements() -> List[str]:
    """List registered element ids."""
    return list(ELEMENTS.keys())


validate_elements(ELEMENTS)
