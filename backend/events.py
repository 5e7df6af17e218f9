"""
Random business events

One event is drawn per tick from a cumulative probability table and
applied to the venture: windfalls, downturns, strikes, cost shocks and
research breakthroughs.
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional, Tuple

from config import CONFIG, EventConfig
from entities import Entity
from research import ResearchSystem

logger = logging.getLogger(__name__)

# (cumulative roll ceiling, event kind)
EVENT_TABLE: Tuple[Tuple[float, str], ...] = (
    (0.15, "Boom"),
    (0.30, "Downturn"),
    (0.45, "Strike"),
    (0.60, "TechBreakthrough"),
    (0.75, "PolicyChange"),
    (0.85, "SupplyChainDisruption"),
    (1.00, "ResearchBreakthrough"),
)


@dataclass(frozen=True)
class GameEvent:
    kind: str
    description: str
    cash_effect: float = 0.0


def draw_event(roll: float) -> str:
    for ceiling, kind in EVENT_TABLE:
        if roll < ceiling:
            return kind
    return EVENT_TABLE[-1][1]


class EventGenerator:
    """Draws and applies one random event per tick."""

    def __init__(self, research: ResearchSystem, rng: random.Random, config: EventConfig = CONFIG.events):
        self.research = research
        self.rng = rng
        self.config = config

    def trigger(self, entity: Entity) -> Optional[GameEvent]:
        if not self.config.enabled:
            return None
        event = self.apply(entity, draw_event(self.rng.random()))
        logger.debug(f"Event for {entity.name}: {event.description}")
        return event

    def apply(self, entity: Entity, kind: str) -> GameEvent:
        """Apply one event kind to the entity and describe what happened."""
        if kind == "Boom":
            entity.earn(self.config.boom_amount)
            return GameEvent(kind, "Economic boom! Revenue increased.", self.config.boom_amount)
        if kind == "Downturn":
            entity.spend(self.config.downturn_amount)
            return GameEvent(kind, "Economic downturn! Expenses increased.", -self.config.downturn_amount)
        if kind == "Strike":
            for employee in entity.employees:
                employee.morale = max(0.0, employee.morale - self.config.strike_morale_drop)
            return GameEvent(kind, "Employee strike! Morale dropped.")
        if kind == "TechBreakthrough":
            for product in entity.products:
                product.cost *= self.config.breakthrough_cost_factor
            return GameEvent(kind, "Tech breakthrough! Production costs reduced.")
        if kind == "PolicyChange":
            entity.earn(self.config.policy_amount)
            return GameEvent(kind, "Favorable policy change! Subsidy received.", self.config.policy_amount)
        if kind == "ResearchBreakthrough":
            self.research.boost_progress(entity.entity_id, self.config.research_breakthrough_progress)
            return GameEvent(kind, "Research breakthrough! Projects advanced.")
        return GameEvent("SupplyChainDisruption", "Supply chain disruption! Deliveries delayed.")
