"""
Progression Subsystem

Achievements, prestige tiers, unlockable features and the bonus
multipliers prestige grants. A tier's bonuses are applied exactly once,
on the tick it unlocks, by setting the entity's effective multiplier for
each bonus category; base fields are never compounded.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from config import CONFIG, ProgressionConfig
from entities import Entity, EntityRegistry

logger = logging.getLogger(__name__)

BONUS_CATEGORIES = ("Operational", "Innovation", "Market", "Financial")
ALL_BONUSES = "AllBonuses"


@dataclass(slots=True)
class Achievement:
    name: str
    description: str
    metric: str
    target: float
    reward: float
    current_value: float = 0.0
    completed: bool = False


@dataclass(slots=True)
class PrestigeTier:
    level: int
    name: str
    required_value: float
    bonuses: Dict[str, float] = field(default_factory=dict)  # bonus category -> multiplier
    features: Tuple[str, ...] = ()
    unlocked: bool = False


@dataclass(slots=True)
class Unlockable:
    name: str
    kind: str
    cost: float
    unlocked: bool = False


@dataclass(slots=True)
class ActiveBonus:
    name: str
    category: str
    magnitude: float = 1.0
    active: bool = False


@dataclass(frozen=True)
class ProgressionStatus:
    entity_id: int
    achievements: Tuple[Achievement, ...] = ()
    prestige_tiers: Tuple[PrestigeTier, ...] = ()
    unlockables: Tuple[Unlockable, ...] = ()
    bonuses: Tuple[ActiveBonus, ...] = ()
    current_prestige: str = ""
    progress: float = 0.0


def default_achievements() -> List[Achievement]:
    return [
        Achievement("First Million", "Reach $1,000,000 in capital", "capital", 1_000_000.0, 50_000.0),
        Achievement("Profit Master", "Earn $100,000 net income", "net_income", 100_000.0, 25_000.0),
        Achievement("Market Leader", "Hold 20% market share", "market_share", 0.2, 75_000.0),
        Achievement("Innovation Hub", "Complete 10 research projects", "completed_research", 10, 100_000.0),
        Achievement("Team Builder", "Employ 50 people", "employees", 50, 30_000.0),
        Achievement("Product Portfolio", "Sell 5 products", "products", 5, 40_000.0),
        Achievement("Global Expansion", "Enter 3 international markets", "international_markets", 3, 150_000.0),
        Achievement("Crisis Survivor", "Come through 5 crises", "crises_resolved", 5, 50_000.0),
        Achievement("IPO Success", "Go public", "is_public", 1, 200_000.0),
        Achievement("Merger Master", "Complete 3 acquisitions", "mergers", 3, 125_000.0),
    ]


def default_prestige_tiers() -> List[PrestigeTier]:
    return [
        PrestigeTier(1, "Startup", 0.0, {"Operational": 1.0}, ("Basic Operations", "Employee Hiring")),
        PrestigeTier(2, "Small Business", 1_000_000.0, {"Operational": 1.1, "Innovation": 1.1},
                     ("Advanced Marketing", "R&D Projects")),
        PrestigeTier(3, "Medium Business", 5_000_000.0, {"Operational": 1.2, "Market": 1.2},
                     ("International Expansion", "Mergers & Acquisitions")),
        PrestigeTier(4, "Large Business", 20_000_000.0, {"Operational": 1.3, "Financial": 1.3},
                     ("IPO Access", "Advanced Analytics")),
        PrestigeTier(5, "Corporation", 50_000_000.0, {"Operational": 1.5, ALL_BONUSES: 1.2},
                     ("Crisis Management", "Advanced Progression")),
    ]


def default_unlockables() -> List[Unlockable]:
    return [
        Unlockable("Research Lab", "Building", 500_000.0),
        Unlockable("Marketing HQ", "Building", 300_000.0),
        Unlockable("Training Center", "Building", 200_000.0),
        Unlockable("AI Integration", "Technology", 1_000_000.0),
        Unlockable("Cloud Infrastructure", "Technology", 750_000.0),
        Unlockable("Automation Systems", "Technology", 600_000.0),
        Unlockable("Advanced Analytics", "Feature", 400_000.0),
        Unlockable("Crisis Management", "Feature", 350_000.0),
        Unlockable("International Trade", "Feature", 800_000.0),
    ]


def default_bonuses() -> List[ActiveBonus]:
    names = ("Efficiency Boost", "Research Speed", "Market Access", "Financial Access")
    return [ActiveBonus(name, category) for name, category in zip(names, BONUS_CATEGORIES)]


def metric_value(entity: Entity, metric: str) -> float:
    """Read an achievement metric from the entity's live state."""
    if metric == "capital":
        return entity.cash
    if metric == "net_income":
        return entity.net_income
    if metric == "market_share":
        return entity.market_share
    if metric == "completed_research":
        return float(len(entity.completed_research))
    if metric == "employees":
        return float(len(entity.employees))
    if metric == "products":
        return float(len(entity.products))
    if metric == "international_markets":
        return float(entity.international_presence)
    if metric == "crises_resolved":
        return float(entity.crises_resolved)
    if metric == "is_public":
        return 1.0 if entity.is_public else 0.0
    if metric == "mergers":
        return float(entity.merger_count)
    return 0.0


class ProgressionSystem:
    """Owns achievements, prestige tiers, unlockables and bonuses per entity."""

    def __init__(self, registry: EntityRegistry, config: ProgressionConfig = CONFIG.progression):
        self.registry = registry
        self.config = config
        self.achievements: Dict[int, List[Achievement]] = {}
        self.tiers: Dict[int, List[PrestigeTier]] = {}
        self.unlockables: Dict[int, List[Unlockable]] = {}
        self.bonuses: Dict[int, List[ActiveBonus]] = {}

    def ensure_entity(self, entity_id: int) -> None:
        if entity_id in self.achievements:
            return
        self.achievements[entity_id] = default_achievements()
        self.tiers[entity_id] = sorted(default_prestige_tiers(), key=lambda t: t.required_value)
        self.unlockables[entity_id] = default_unlockables()
        self.bonuses[entity_id] = default_bonuses()

    @staticmethod
    def net_value(entity: Entity) -> float:
        return entity.cash + entity.total_assets

    def update_achievements(self, entity: Entity) -> List[Achievement]:
        """Refresh achievement metrics; returns achievements completed this call."""
        self.ensure_entity(entity.entity_id)
        newly_completed = []
        for achievement in self.achievements[entity.entity_id]:
            if achievement.completed:
                continue
            achievement.current_value = metric_value(entity, achievement.metric)
            if achievement.current_value >= achievement.target:
                achievement.completed = True
                entity.earn(achievement.reward * self.config.achievement_reward_scale)
                newly_completed.append(achievement)
                logger.info(f"{entity.name} unlocked achievement {achievement.name} (+{achievement.reward:,.0f})")
        achievements = self.achievements[entity.entity_id]
        entity.achievement_progress = sum(a.completed for a in achievements) / len(achievements)
        return newly_completed

    def update_prestige_levels(self, entity: Entity) -> List[PrestigeTier]:
        """Unlock every tier whose threshold is met, in ascending order."""
        self.ensure_entity(entity.entity_id)
        value = self.net_value(entity)
        newly_unlocked = []
        for tier in self.tiers[entity.entity_id]:
            if tier.unlocked:
                continue
            if value < tier.required_value:
                break
            tier.unlocked = True
            entity.prestige_level = max(entity.prestige_level, tier.level)
            self._apply_tier_bonuses(entity, tier)
            newly_unlocked.append(tier)
            logger.info(f"{entity.name} reached prestige tier {tier.level}: {tier.name}")
        return newly_unlocked

    def _apply_tier_bonuses(self, entity: Entity, tier: PrestigeTier) -> None:
        explicit = {k: v for k, v in tier.bonuses.items() if k != ALL_BONUSES}
        fallback = tier.bonuses.get(ALL_BONUSES)
        for bonus in self.bonuses[entity.entity_id]:
            magnitude = explicit.get(bonus.category, fallback)
            if magnitude is None:
                continue
            bonus.magnitude = magnitude
            bonus.active = magnitude != 1.0
            entity.bonus_multipliers[bonus.category] = magnitude

    def unlock_feature(self, entity: Entity, name: str) -> bool:
        self.ensure_entity(entity.entity_id)
        for unlockable in self.unlockables[entity.entity_id]:
            if unlockable.name != name:
                continue
            if unlockable.unlocked or not entity.can_afford(unlockable.cost):
                return False
            entity.spend(unlockable.cost)
            unlockable.unlocked = True
            logger.info(f"{entity.name} unlocked {name}")
            return True
        return False

    def is_unlocked(self, entity_id: int, name: str) -> bool:
        return any(u.unlocked and u.name == name for u in self.unlockables.get(entity_id, []))

    def unlocked_features(self, entity_id: int) -> List[str]:
        features: List[str] = []
        for tier in self.tiers.get(entity_id, []):
            if tier.unlocked:
                features.extend(tier.features)
        return features

    def current_prestige(self, entity_id: int) -> str:
        unlocked = [t for t in self.tiers.get(entity_id, []) if t.unlocked]
        return unlocked[-1].name if unlocked else "Startup"

    def progress_percentage(self, entity_id: int) -> float:
        achievements = self.achievements.get(entity_id, [])
        if not achievements:
            return 0.0
        return sum(a.completed for a in achievements) / len(achievements)

    def remove_entity(self, entity_id: int) -> None:
        self.achievements.pop(entity_id, None)
        self.tiers.pop(entity_id, None)
        self.unlockables.pop(entity_id, None)
        self.bonuses.pop(entity_id, None)

    def status(self, entity_id: int) -> ProgressionStatus:
        return ProgressionStatus(
            entity_id=entity_id,
            achievements=tuple(copy.copy(a) for a in self.achievements.get(entity_id, [])),
            prestige_tiers=tuple(copy.deepcopy(t) for t in self.tiers.get(entity_id, [])),
            unlockables=tuple(copy.copy(u) for u in self.unlockables.get(entity_id, [])),
            bonuses=tuple(copy.copy(b) for b in self.bonuses.get(entity_id, [])),
            current_prestige=self.current_prestige(entity_id),
            progress=self.progress_percentage(entity_id),
        )
