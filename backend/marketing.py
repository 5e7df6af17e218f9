"""
Marketing Subsystem

Campaigns, brand reputation, customer segments and market research.
Brand reputation is kept as six 0-100 sub-scores; the overall score is
always recomputed as their mean, so anything that wants to move the
overall score shifts the sub-scores instead.
"""

import copy
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config import CONFIG, MarketingConfig
from entities import Entity, EntityRegistry

logger = logging.getLogger(__name__)

SUB_SCORES = (
    "customer_satisfaction",
    "product_quality",
    "customer_service",
    "innovation",
    "social_responsibility",
    "environmental_impact",
)

# Campaign type -> budget divisor for effectiveness / reach
EFFECTIVENESS_DIVISORS = {
    "tv": 100_000.0,
    "digital": 50_000.0,
    "print": 30_000.0,
    "social": 20_000.0,
    "influencer": 40_000.0,
}
REACH_DIVISORS = {
    "tv": 50_000.0,
    "digital": 10_000.0,
    "print": 15_000.0,
    "social": 5_000.0,
    "influencer": 20_000.0,
}

# Campaign type -> per-tick sub-score deltas per unit of effectiveness
CAMPAIGN_EFFECTS: Dict[str, Dict[str, float]] = {
    "tv": {"customer_satisfaction": 0.1},
    "digital": {"customer_satisfaction": 0.15, "innovation": 0.1},
    "social": {"customer_satisfaction": 0.2, "social_responsibility": 0.1},
    "influencer": {"customer_satisfaction": 0.25, "product_quality": 0.1},
}

# Research type -> result key -> (low, high)
RESEARCH_RANGES: Dict[str, Dict[str, Tuple[float, float]]] = {
    "customer survey": {
        "Satisfaction": (40.0, 80.0),
        "PriceSensitivity": (0.3, 0.8),
        "FeaturePreference": (0.2, 0.9),
    },
    "competitor analysis": {
        "CompetitorStrength": (30.0, 90.0),
        "MarketShare": (0.1, 0.4),
        "PriceCompetitiveness": (0.5, 1.2),
    },
    "market trends": {
        "GrowthRate": (-0.1, 0.3),
        "DemandTrend": (0.8, 1.5),
        "TechnologyAdoption": (0.1, 0.8),
    },
}


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(slots=True)
class BrandReputation:
    """Six 0-100 sub-scores and their mean."""

    customer_satisfaction: float = 50.0
    product_quality: float = 50.0
    customer_service: float = 50.0
    innovation: float = 50.0
    social_responsibility: float = 50.0
    environmental_impact: float = 50.0
    overall_score: float = 50.0

    def adjust(self, sub_score: str, delta: float) -> None:
        setattr(self, sub_score, _clamp(getattr(self, sub_score) + delta, 0.0, 100.0))

    def shift_overall(self, delta: float) -> None:
        """Move every sub-score by delta so the mean moves with it."""
        for name in SUB_SCORES:
            self.adjust(name, delta)

    def update_overall(self) -> float:
        self.overall_score = sum(getattr(self, name) for name in SUB_SCORES) / len(SUB_SCORES)
        return self.overall_score


@dataclass(slots=True)
class Campaign:
    name: str
    kind: str
    budget: float
    duration: int
    target_audience: str
    remaining_ticks: int = field(init=False)
    effectiveness: float = field(init=False)
    reach: float = field(init=False)

    def __post_init__(self):
        kind = self.kind.lower()
        self.remaining_ticks = self.duration
        divisor = EFFECTIVENESS_DIVISORS.get(kind)
        self.effectiveness = 0.5 * self.budget / divisor if divisor else 0.5
        divisor = REACH_DIVISORS.get(kind)
        self.reach = 1000.0 * self.budget / divisor if divisor else 1000.0

    @property
    def is_active(self) -> bool:
        return self.remaining_ticks > 0


@dataclass(slots=True)
class CustomerSegment:
    name: str
    size: int
    price_sensitivity: float
    penetration: float = 0.0
    satisfaction: float = 50.0
    loyalty: float = 0.5


@dataclass(slots=True)
class MarketResearch:
    kind: str
    cost: float
    duration: int
    remaining_ticks: int = field(init=False)
    results: Dict[str, float] = field(default_factory=dict)
    completed: bool = False

    def __post_init__(self):
        self.remaining_ticks = self.duration


@dataclass(frozen=True)
class MarketingStatus:
    entity_id: int
    campaigns: Tuple[Campaign, ...] = ()
    reputation: Optional[BrandReputation] = None
    segments: Tuple[CustomerSegment, ...] = ()
    research: Tuple[MarketResearch, ...] = ()


def default_segments() -> List[CustomerSegment]:
    return [
        CustomerSegment("Young Professionals", 1_000_000, 0.7),
        CustomerSegment("Families", 2_000_000, 0.5),
        CustomerSegment("Seniors", 800_000, 0.3),
        CustomerSegment("Students", 500_000, 0.9),
    ]


class MarketingSystem:
    """Owns campaigns, reputations, segments and studies per entity."""

    def __init__(
        self,
        registry: EntityRegistry,
        rng: random.Random,
        config: MarketingConfig = CONFIG.marketing,
    ):
        self.registry = registry
        self.rng = rng
        self.config = config
        self.campaigns: Dict[int, List[Campaign]] = {}
        self.reputations: Dict[int, BrandReputation] = {}
        self.segments: Dict[int, List[CustomerSegment]] = {}
        self.research: Dict[int, List[MarketResearch]] = {}

    def get_or_create_reputation(self, entity_id: int) -> BrandReputation:
        reputation = self.reputations.get(entity_id)
        if reputation is None:
            reputation = BrandReputation()
            self.reputations[entity_id] = reputation
            self.segments[entity_id] = default_segments()
        return reputation

    def reputation_score(self, entity_id: int) -> float:
        reputation = self.reputations.get(entity_id)
        return reputation.overall_score if reputation else 50.0

    def brand_multiplier(self, entity_id: int) -> float:
        """Demand multiplier in [0.5, 1.0] derived from overall reputation."""
        return 0.5 + self.reputation_score(entity_id) / 100.0 * 0.5

    def launch_campaign(
        self,
        entity: Entity,
        kind: str,
        budget: float,
        duration: int,
        target_audience: str = "General",
        name: Optional[str] = None,
    ) -> bool:
        if budget <= 0 or duration <= 0 or not entity.can_afford(budget):
            return False
        campaign = Campaign(
            name=name or f"Campaign-{kind}",
            kind=kind,
            budget=budget,
            duration=duration,
            target_audience=target_audience,
        )
        entity.spend(budget)
        self.get_or_create_reputation(entity.entity_id)
        self.campaigns.setdefault(entity.entity_id, []).append(campaign)
        logger.debug(f"{entity.name} launched {kind} campaign (effectiveness {campaign.effectiveness:.2f})")
        return True

    def conduct_market_research(self, entity: Entity, kind: str, cost: float, duration: int) -> bool:
        if cost < 0 or duration <= 0 or not entity.can_afford(cost):
            return False
        entity.spend(cost)
        self.research.setdefault(entity.entity_id, []).append(
            MarketResearch(kind=kind, cost=cost, duration=duration)
        )
        return True

    def improve_customer_service(self, entity: Entity, investment: float) -> bool:
        if investment <= 0 or not entity.can_afford(investment):
            return False
        entity.spend(investment)
        reputation = self.get_or_create_reputation(entity.entity_id)
        reputation.adjust("customer_service", investment / self.config.customer_service_divisor)
        reputation.update_overall()
        entity.reputation = reputation.overall_score
        return True

    def invest_in_social_responsibility(self, entity: Entity, investment: float) -> bool:
        if investment <= 0 or not entity.can_afford(investment):
            return False
        entity.spend(investment)
        reputation = self.get_or_create_reputation(entity.entity_id)
        reputation.adjust(
            "social_responsibility", investment / self.config.social_responsibility_divisor
        )
        reputation.adjust("environmental_impact", investment / self.config.environmental_divisor)
        reputation.update_overall()
        entity.reputation = reputation.overall_score
        entity.social_responsibility = reputation.social_responsibility
        entity.environmental_impact = reputation.environmental_impact
        return True

    def process(self) -> None:
        """Apply campaign effects, complete studies and decay every reputation."""
        for entity_id, campaigns in list(self.campaigns.items()):
            reputation = self.get_or_create_reputation(entity_id)
            for campaign in campaigns:
                if not campaign.is_active:
                    continue
                campaign.remaining_ticks -= 1
                self._apply_campaign(entity_id, reputation, campaign)
            self.campaigns[entity_id] = [c for c in campaigns if c.is_active]

        for entity_id, studies in list(self.research.items()):
            for study in studies:
                if study.completed:
                    continue
                study.remaining_ticks -= 1
                if study.remaining_ticks <= 0:
                    self._complete_research(study)

        for entity_id, reputation in self.reputations.items():
            reputation.adjust("customer_satisfaction", -self.config.satisfaction_decay)
            reputation.shift_overall(-self.config.brand_decay)
            reputation.update_overall()
            entity = self.registry.get(entity_id)
            if entity is not None:
                entity.reputation = reputation.overall_score
                entity.customer_satisfaction = reputation.customer_satisfaction

    def _apply_campaign(self, entity_id: int, reputation: BrandReputation, campaign: Campaign) -> None:
        for sub_score, rate in CAMPAIGN_EFFECTS.get(campaign.kind.lower(), {}).items():
            reputation.adjust(sub_score, campaign.effectiveness * rate)

        for segment in self.segments.get(entity_id, []):
            if campaign.target_audience == segment.name or campaign.target_audience == "General":
                segment.satisfaction = _clamp(
                    segment.satisfaction + campaign.effectiveness * self.config.segment_satisfaction_rate,
                    0.0, 100.0,
                )
                segment.loyalty = _clamp(
                    segment.loyalty + campaign.effectiveness * self.config.segment_loyalty_rate,
                    0.0, 1.0,
                )

    def _complete_research(self, study: MarketResearch) -> None:
        ranges = RESEARCH_RANGES.get(study.kind.lower(), {})
        for key, (low, high) in ranges.items():
            study.results[key] = self.rng.uniform(low, high)
        study.completed = True

    def remove_entity(self, entity_id: int) -> None:
        self.campaigns.pop(entity_id, None)
        self.reputations.pop(entity_id, None)
        self.segments.pop(entity_id, None)
        self.research.pop(entity_id, None)

    def status(self, entity_id: int) -> MarketingStatus:
        reputation = self.reputations.get(entity_id)
        return MarketingStatus(
            entity_id=entity_id,
            campaigns=tuple(copy.copy(c) for c in self.campaigns.get(entity_id, [])),
            reputation=copy.copy(reputation) if reputation else None,
            segments=tuple(copy.copy(s) for s in self.segments.get(entity_id, [])),
            research=tuple(copy.deepcopy(r) for r in self.research.get(entity_id, [])),
        )
