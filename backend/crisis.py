"""
Crisis Subsystem

Stochastic adverse events and the responses that mitigate them. A crisis
amortizes its financial and reputation impact evenly over its original
duration; responses run for a fixed time and, on completion, repair
reputation and raise the entity's crisis resistance.
"""

import copy
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from config import CONFIG, CrisisConfig
from entities import Entity, EntityRegistry
from marketing import MarketingSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrisisProfile:
    """Roll ranges for one crisis category."""

    kind: str
    roll_ceiling: float  # category chosen when the type roll is below this
    severity: Tuple[float, float]
    duration: Tuple[int, int]
    financial_impact: Tuple[float, float]
    reputation_impact: Tuple[float, float]
    effect: str
    effect_value: float


CRISIS_PROFILES: Tuple[CrisisProfile, ...] = (
    CrisisProfile("Product Recall", 0.25, (0.3, 0.9), (10, 30), (50_000.0, 200_000.0), (0.2, 0.6),
                  "SalesReduction", 0.3),
    CrisisProfile("PR Disaster", 0.5, (0.2, 0.8), (5, 20), (20_000.0, 100_000.0), (0.1, 0.5),
                  "BrandDamage", 0.4),
    CrisisProfile("Legal Issue", 0.75, (0.4, 1.0), (15, 40), (100_000.0, 500_000.0), (0.1, 0.3),
                  "LegalCosts", 0.5),
    CrisisProfile("Natural Disaster", 1.0, (0.5, 1.0), (20, 50), (50_000.0, 300_000.0), (0.05, 0.2),
                  "ProductionDisruption", 0.6),
)

# Response action -> (budget divisor, duration in ticks)
RESPONSE_TYPES: Dict[str, Tuple[float, int]] = {
    "apology": (10_000.0, 3),
    "compensation": (50_000.0, 10),
    "investigation": (30_000.0, 15),
    "legaldefense": (100_000.0, 20),
    "rebranding": (200_000.0, 30),
}
DEFAULT_RESPONSE_EFFECTIVENESS = 0.5
DEFAULT_RESPONSE_DURATION = 10

# Response action -> sub-score deltas per unit of effectiveness ("overall" shifts every sub-score)
RESPONSE_EFFECTS: Dict[str, Dict[str, float]] = {
    "apology": {"customer_satisfaction": 0.2},
    "compensation": {"customer_satisfaction": 0.3},
    "investigation": {"overall": 0.1},
    "legaldefense": {"overall": 0.05},
    "rebranding": {"overall": 0.2, "customer_satisfaction": 0.1},
}


@dataclass(slots=True)
class Crisis:
    kind: str
    severity: float
    duration: int
    financial_impact: float
    reputation_impact: float
    effects: Dict[str, float] = field(default_factory=dict)
    remaining_ticks: int = field(init=False)
    resolved: bool = False

    def __post_init__(self):
        if self.duration <= 0:
            raise ValueError(f"crisis duration must be positive, got {self.duration}")
        self.remaining_ticks = self.duration

    @property
    def financial_per_tick(self) -> float:
        return self.financial_impact / self.duration

    @property
    def reputation_per_tick(self) -> float:
        return self.reputation_impact / self.duration


@dataclass(slots=True)
class CrisisResponse:
    action: str
    cost: float
    effectiveness: float
    duration: int
    remaining_ticks: int = field(init=False)

    def __post_init__(self):
        self.remaining_ticks = self.duration


@dataclass(frozen=True)
class CrisisStatus:
    entity_id: int
    active_crises: Tuple[Crisis, ...] = ()
    responses: Tuple[CrisisResponse, ...] = ()
    resistance: float = 0.0
    resolved_count: int = 0


class CrisisSystem:
    """
    Owns active crises, pending responses and resistance per entity.

    Reputation impacts are written to the marketing subsystem's brand
    reputation, which is why this subsystem runs after marketing.
    """

    def __init__(
        self,
        registry: EntityRegistry,
        marketing: MarketingSystem,
        rng: random.Random,
        config: CrisisConfig = CONFIG.crisis,
    ):
        self.registry = registry
        self.marketing = marketing
        self.rng = rng
        self.config = config
        self.crises: Dict[int, List[Crisis]] = {}
        self.responses: Dict[int, List[CrisisResponse]] = {}
        self.resistance: Dict[int, float] = {}

    def get_resistance(self, entity_id: int) -> float:
        return self.resistance.get(entity_id, self.config.base_resistance)

    def _set_resistance(self, entity: Entity, value: float) -> None:
        self.resistance[entity.entity_id] = value
        entity.crisis_resistance = value

    def spawn_chance(self, entity: Entity) -> float:
        chance = self.config.crisis_chance * (1.0 - self.get_resistance(entity.entity_id))
        return min(1.0, chance * entity.modifier("CrisisFrequency"))

    def check_for_new_crises(self, entity: Entity) -> bool:
        """Roll for a new crisis. Returns True when one was spawned."""
        if self.rng.random() >= self.spawn_chance(entity):
            return False
        type_roll = self.rng.random()
        profile = next(p for p in CRISIS_PROFILES if type_roll < p.roll_ceiling)
        crisis = self.create_crisis(entity, profile)
        logger.info(
            f"Crisis for {entity.name}: {crisis.kind} (severity {crisis.severity:.2f}, "
            f"{crisis.duration} ticks, impact {crisis.financial_impact:,.0f})"
        )
        return True

    def create_crisis(self, entity: Entity, profile: CrisisProfile) -> Crisis:
        """Draw a crisis from a profile's ranges and register it."""
        crisis = Crisis(
            kind=profile.kind,
            severity=self.rng.uniform(*profile.severity),
            duration=self.rng.randint(*profile.duration),
            financial_impact=self.rng.uniform(*profile.financial_impact) * entity.modifier("CrisisSeverity"),
            reputation_impact=self.rng.uniform(*profile.reputation_impact),
            effects={profile.effect: profile.effect_value},
        )
        self.add_crisis(entity, crisis)
        return crisis

    def add_crisis(self, entity: Entity, crisis: Crisis) -> None:
        self.crises.setdefault(entity.entity_id, []).append(crisis)

    def process(self) -> None:
        """Amortize every active crisis and advance every response."""
        for entity_id, crises in list(self.crises.items()):
            entity = self.registry.get(entity_id)
            if entity is None:
                continue
            for crisis in crises:
                if crisis.resolved:
                    continue
                self._apply_crisis_tick(entity, crisis)
                crisis.remaining_ticks -= 1
                if crisis.remaining_ticks <= 0:
                    crisis.resolved = True
                    entity.crises_resolved += 1
                    logger.info(f"Crisis resolved for {entity.name}: {crisis.kind}")
            self.crises[entity_id] = [c for c in crises if not c.resolved]

        for entity_id, responses in list(self.responses.items()):
            entity = self.registry.get(entity_id)
            if entity is None:
                continue
            for response in responses:
                response.remaining_ticks -= 1
                if response.remaining_ticks <= 0:
                    self._complete_response(entity, response)
            self.responses[entity_id] = [r for r in responses if r.remaining_ticks > 0]

    def _apply_crisis_tick(self, entity: Entity, crisis: Crisis) -> None:
        entity.spend(crisis.financial_per_tick)

        reputation = self.marketing.get_or_create_reputation(entity.entity_id)
        reputation.shift_overall(-crisis.reputation_per_tick)
        reputation.update_overall()
        entity.reputation = reputation.overall_score

        for effect, value in crisis.effects.items():
            fraction = value / crisis.duration
            if effect == "SalesReduction":
                for product in entity.products:
                    product.demand_multiplier *= 1.0 - fraction
            elif effect == "ProductionDisruption":
                entity.production_efficiency *= 1.0 - fraction
            elif effect == "LegalCosts":
                entity.spend(value * self.config.legal_cost_per_tick)
            elif effect == "BrandDamage":
                entity.brand_value *= 1.0 - fraction

    def respond_to_crisis(self, entity: Entity, action: str, budget: float) -> bool:
        if budget <= 0 or not entity.can_afford(budget):
            return False
        key = action.lower()
        divisor, duration = RESPONSE_TYPES.get(key, (None, DEFAULT_RESPONSE_DURATION))
        effectiveness = 0.5 * budget / divisor if divisor else DEFAULT_RESPONSE_EFFECTIVENESS
        entity.spend(budget)
        self.responses.setdefault(entity.entity_id, []).append(
            CrisisResponse(action=key, cost=budget, effectiveness=effectiveness, duration=duration)
        )
        return True

    def _complete_response(self, entity: Entity, response: CrisisResponse) -> None:
        reputation = self.marketing.get_or_create_reputation(entity.entity_id)
        for target, rate in RESPONSE_EFFECTS.get(response.action, {}).items():
            delta = response.effectiveness * rate
            if target == "overall":
                reputation.shift_overall(delta)
            else:
                reputation.adjust(target, delta)
        reputation.update_overall()
        entity.reputation = reputation.overall_score

        current = self.get_resistance(entity.entity_id)
        raised = current + response.effectiveness * self.config.response_resistance_gain
        # Responses never lower resistance already raised by prevention
        self._set_resistance(entity, max(current, min(self.config.response_resistance_cap, raised)))

    def improve_crisis_prevention(self, entity: Entity, investment: float) -> bool:
        if investment <= 0 or not entity.can_afford(investment):
            return False
        entity.spend(investment)
        current = self.get_resistance(entity.entity_id)
        self._set_resistance(
            entity,
            min(self.config.prevention_resistance_cap, current + investment / self.config.prevention_divisor),
        )
        return True

    def remove_entity(self, entity_id: int) -> None:
        self.crises.pop(entity_id, None)
        self.responses.pop(entity_id, None)
        self.resistance.pop(entity_id, None)

    def status(self, entity_id: int) -> CrisisStatus:
        entity = self.registry.get(entity_id)
        return CrisisStatus(
            entity_id=entity_id,
            active_crises=tuple(copy.deepcopy(c) for c in self.crises.get(entity_id, [])),
            responses=tuple(copy.copy(r) for r in self.responses.get(entity_id, [])),
            resistance=self.get_resistance(entity_id),
            resolved_count=entity.crises_resolved if entity else 0,
        )
