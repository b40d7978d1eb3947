"""
Directed interactions between tipping elements.

Strengths follow Wunderling et al. (2021), Table 2. An interaction only
acts once its source element has tipped.
"""

from typing import Iterable, List, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
import logging

from tipcascade.core.elements import ELEMENTS, TippingElement
from tipcascade.core.errors import CatalogIntegrityError

logger = logging.getLogger(__name__)


class InteractionType(str, Enum):
    DESTABILIZING = "destabilizing"
    STABILIZING = "stabilizing"
    UNCERTAIN = "uncertain"
    
    @classmethod
    def parse(cls, value: "str | InteractionType") -> "InteractionType":
        """Parse a type tag; ``"unclear"`` is accepted for uncertain."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key == "unclear":
            return cls.UNCERTAIN
        try:
            return cls(key)
        except ValueError:
            raise CatalogIntegrityError(f"Unknown interaction type '{value}'") from None


# Stress per unit of scaled strength, by interaction type (signed).
TYPE_WEIGHTS = {
    InteractionType.DESTABILIZING: 10.0,
    InteractionType.STABILIZING: -12.0,
    InteractionType.UNCERTAIN: 4.0,
}


@dataclass(frozen=True)
class Interaction:
    """
    Influence of ``source`` tipping on the stress of ``target``.
    
    Attributes
    ----------
    source : str
        Element id whose tipping activates the interaction.
    target : str
        Element id receiving the stress contribution.
    type : InteractionType
        Sign and weight class of the effect.
    strength : float
        Positive interaction strength.
    label : str
        Short description of the physical mechanism.
    """
    
    source: str
    target: str
    type: InteractionType
    strength: float
    label: str = ""
    
    def __post_init__(self):
        object.__setattr__(self, "type", InteractionType.parse(self.type))
    
    def contribution(self, interaction_strength: float) -> float:
        """Signed stress added to ``target`` while ``source`` is tipped."""
        return self.strength * interaction_strength * TYPE_WEIGHTS[self.type]
    
    def as_dict(self) -> dict:
        return {
            "from": self.source,
            "to": self.target,
            "type": self.type.value,
            "strength": self.strength,
            "label": self.label,
        }


INTERACTIONS: List[Interaction] = [
    Interaction("greenland", "amoc", InteractionType.DESTABILIZING, 10, "Meltwater weakens currents"),
    Interaction("amoc", "greenland", InteractionType.STABILIZING, 10, "Less heat if AMOC weakens"),
    Interaction("greenland", "wais", InteractionType.DESTABILIZING, 10, "Sea level rise"),
    Interaction("wais", "greenland", InteractionType.DESTABILIZING, 2, "Sea level rise"),
    Interaction("wais", "amoc", InteractionType.UNCERTAIN, 3, "Complex effects"),
    Interaction("amoc", "wais", InteractionType.DESTABILIZING, 1.5, "Southern ocean warming"),
    Interaction("amoc", "amazon", InteractionType.UNCERTAIN, 3, "Rainfall pattern changes"),
]


def validate_interactions(
    interactions: Iterable[Interaction],
    elements: Mapping[str, TippingElement] = ELEMENTS,
) -> None:
    """
    Check that every interaction joins two distinct registered elements
    with a positive strength.
    
    Raises
    ------
    CatalogIntegrityError
        On the first violation found.
    """
    count = 0
    for interaction in interactions:
        for endpoint in (interaction.source, interaction.target):
            if endpoint not in elements:
                raise CatalogIntegrityError(
                    f"Interaction {interaction.source}->{interaction.target} "
                    f"references unknown element '{endpoint}'"
                )
        if interaction.source == interaction.target:
            raise CatalogIntegrityError(
                f"Interaction on '{interaction.source}' points to itself"
            )
        if not interaction.strength > 0:
            raise CatalogIntegrityError(
                f"Interaction {interaction.source}->{interaction.target} "
                f"has non-positive strength {interaction.strength}"
            )
        count += 1
    
    logger.debug(f"Validated {count} interactions")


def incoming_interactions(
    element_id: str,
    interactions: Sequence[Interaction] = INTERACTIONS,
) -> List[Interaction]:
    """Interactions whose target is ``element_id``."""
    return [i for i in interactions if i.target == element_id]


def active_interactions(
    tipped_ids: Iterable[str],
    interactions: Sequence[Interaction] = INTERACTIONS,
) -> List[Interaction]:
    """Interactions whose source has tipped."""
    tipped = set(tipped_ids)
    return [i for i in interactions if i.source in tipped]


validate_interactions(INTERACTIONS)
