"""
Scenarios, challenges and special events

A scenario is a timed goal with objectives and modifiers that reshape the
economy while it runs. Timed challenges and special events appear at
random. All three feed the entity's modifier map, which the other
subsystems read (ResearchSpeed, CrisisFrequency, Revenue, ...).
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from config import CONFIG, ScenarioConfig
from entities import Entity, EntityRegistry
from international import InternationalSystem
from research import ResearchSystem

logger = logging.getLogger(__name__)

# (entity, scenario system) -> objective met?
ObjectiveCheck = Callable[[Entity, "ScenarioSystem"], bool]


@dataclass(slots=True)
class Objective:
    description: str
    check: ObjectiveCheck

    def is_met(self, entity: Entity, system: "ScenarioSystem") -> bool:
        return self.check(entity, system)


@dataclass(slots=True)
class Scenario:
    name: str
    description: str
    difficulty: str
    duration: int
    objectives: List[Objective] = field(default_factory=list)
    modifiers: Dict[str, float] = field(default_factory=dict)
    reward: float = 0.0
    remaining_ticks: int = field(init=False)
    completed: bool = False
    failed: bool = False

    def __post_init__(self):
        self.remaining_ticks = self.duration


@dataclass(slots=True)
class Challenge:
    name: str
    kind: str
    target: float
    time_limit: int
    current_value: float = 0.0
    remaining_ticks: int = field(init=False)
    completed: bool = False

    def __post_init__(self):
        self.remaining_ticks = self.time_limit


@dataclass(slots=True)
class SpecialEvent:
    name: str
    kind: str
    duration: int
    effects: Dict[str, float] = field(default_factory=dict)
    remaining_ticks: int = field(init=False)

    def __post_init__(self):
        self.remaining_ticks = self.duration


@dataclass(frozen=True)
class ScenarioStatus:
    entity_id: int
    active_scenario: Optional[str] = None
    remaining_ticks: int = 0
    objectives: Tuple[Tuple[str, bool], ...] = ()
    challenges: Tuple[Tuple[str, float, float, int], ...] = ()  # name, current, target, ticks left
    special_events: Tuple[Tuple[str, int], ...] = ()
    completed_scenarios: Tuple[str, ...] = ()
    modifiers: Tuple[Tuple[str, float], ...] = ()


def _scenario_definitions() -> Dict[str, Tuple[str, str, int, List[Objective], Dict[str, float]]]:
    return {
        "Startup Challenge": (
            "Build a successful startup from scratch", "Medium", 200,
            [
                Objective("Reach $1M in capital", lambda e, s: e.cash >= 1_000_000.0),
                Objective("Hire 10 employees", lambda e, s: len(e.employees) >= 10),
                Objective("Launch 2 products", lambda e, s: len(e.products) >= 2),
            ],
            {"CapitalGrowth": 0.8, "EmployeeCost": 1.2},
        ),
        "Market Domination": (
            "Become the dominant player in your industry", "Hard", 300,
            [
                Objective("Reach 30% market share", lambda e, s: e.market_share >= 0.3),
                Objective("Complete 5 acquisitions", lambda e, s: e.merger_count >= 5),
                Objective("Go public", lambda e, s: e.is_public),
            ],
            {"MarketShare": 1.3, "AcquisitionCost": 0.8},
        ),
        "Innovation Race": (
            "Lead the industry in innovation", "Hard", 250,
            [
                Objective("Complete 15 research projects", lambda e, s: len(e.completed_research) >= 15),
                Objective("File 5 patents", lambda e, s: s.patent_count(e.entity_id) >= 5),
                Objective("Achieve 50% R&D efficiency gain",
                          lambda e, s: e.effective_research_efficiency() >= 1.5),
            ],
            {"ResearchSpeed": 1.5, "PatentValue": 1.4},
        ),
        "Global Expansion": (
            "Expand your business globally", "Expert", 400,
            [
                Objective("Enter 5 countries", lambda e, s: e.international_presence >= 5),
                Objective("Create 3 subsidiaries", lambda e, s: s.subsidiary_count(e.entity_id) >= 3),
                Objective("Achieve $10M international revenue",
                          lambda e, s: s.international.remitted_total(e.entity_id) >= 10_000_000.0),
            ],
            {"InternationalCost": 0.7, "ExchangeRate": 1.1},
        ),
        "Crisis Management": (
            "Navigate through multiple crises", "Expert", 350,
            [
                Objective("Resolve 10 crises", lambda e, s: e.crises_resolved >= 10),
                Objective("Maintain 80% reputation", lambda e, s: e.reputation >= 80.0),
                Objective("Avoid bankruptcy", lambda e, s: e.cash > 0),
            ],
            {"CrisisFrequency": 2.0, "CrisisSeverity": 1.5},
        ),
    }


def scenario_names() -> List[str]:
    return list(_scenario_definitions().keys())


# kind -> (name, target, time limit)
CHALLENGE_TYPES: Dict[str, Tuple[str, float, int]] = {
    "Speed": ("Speed Run", 1_000_000.0, 50),
    "Efficiency": ("Efficiency Master", 2.0, 100),
    "Innovation": ("Innovation Sprint", 5.0, 75),
    "Survival": ("Survival Mode", 100.0, 200),
}

# kind -> (name, duration, effects)
SPECIAL_EVENT_TYPES: Dict[str, Tuple[str, int, Dict[str, float]]] = {
    "Economic": ("Economic Boom", 30, {"Revenue": 1.3, "MarketGrowth": 1.2}),
    "Technological": ("Tech Revolution", 25, {"ResearchSpeed": 1.5, "Innovation": 1.4}),
    "Social": ("Social Movement", 20, {"CustomerSatisfaction": 1.2}),
    "Environmental": ("Environmental Crisis", 35, {"ComplianceCost": 1.5, "Reputation": 0.8}),
}


def challenge_metric(entity: Entity, kind: str) -> float:
    if kind == "Speed":
        return entity.overall_performance()
    if kind == "Efficiency":
        return entity.effective_production_efficiency()
    if kind == "Innovation":
        return entity.innovation_score
    if kind == "Survival":
        return entity.cash
    return 0.0


class ScenarioSystem:
    """Owns the active scenario, challenges and special events per entity."""

    def __init__(
        self,
        registry: EntityRegistry,
        research: ResearchSystem,
        international: InternationalSystem,
        rng: random.Random,
        config: ScenarioConfig = CONFIG.scenarios,
    ):
        self.registry = registry
        self.research = research
        self.international = international
        self.rng = rng
        self.config = config
        self.active: Dict[int, Scenario] = {}
        self.completed: Dict[int, List[str]] = {}
        self.challenges: Dict[int, List[Challenge]] = {}
        self.special_events: Dict[int, List[SpecialEvent]] = {}

    def available_scenarios(self) -> List[str]:
        return scenario_names()

    def patent_count(self, entity_id: int) -> int:
        return len(self.research.patents.get(entity_id, []))

    def subsidiary_count(self, entity_id: int) -> int:
        return len(self.international.subsidiaries.get(entity_id, []))

    def reward_for(self, difficulty: str, duration: int) -> float:
        multiplier = self.config.difficulty_multipliers.get(difficulty, 1.0)
        return self.config.base_reward * multiplier * duration / 100.0

    def start_scenario(self, entity: Entity, name: str) -> bool:
        """Begin a named scenario; rejected if unknown or one is already running."""
        definition = _scenario_definitions().get(name)
        if definition is None or entity.entity_id in self.active:
            return False
        description, difficulty, duration, objectives, modifiers = definition
        self.active[entity.entity_id] = Scenario(
            name=name,
            description=description,
            difficulty=difficulty,
            duration=duration,
            objectives=objectives,
            modifiers=modifiers,
            reward=self.reward_for(difficulty, duration),
        )
        self._refresh_modifiers(entity)
        logger.info(f"{entity.name} started scenario {name} ({difficulty}, {duration} ticks)")
        return True

    def process(self, entity: Entity) -> None:
        """Advance the entity's scenario, challenges and special events."""
        entity_id = entity.entity_id

        scenario = self.active.get(entity_id)
        if scenario is not None:
            scenario.remaining_ticks -= 1
            if all(o.is_met(entity, self) for o in scenario.objectives):
                scenario.completed = True
                entity.earn(scenario.reward)
                self._finish_scenario(entity, scenario)
                logger.info(f"Scenario completed: {scenario.name} (+{scenario.reward:,.0f})")
            elif scenario.remaining_ticks <= 0:
                scenario.failed = True
                self._finish_scenario(entity, scenario)
                logger.info(f"Scenario failed: {scenario.name}")

        challenges = self.challenges.get(entity_id, [])
        for challenge in challenges:
            challenge.remaining_ticks -= 1
            challenge.current_value = challenge_metric(entity, challenge.kind)
            if challenge.current_value >= challenge.target:
                challenge.completed = True
                entity.earn(challenge.target * self.config.challenge_reward_rate)
                logger.info(f"Challenge completed: {challenge.name}")
        self.challenges[entity_id] = [
            c for c in challenges if not c.completed and c.remaining_ticks > 0
        ]

        events = self.special_events.get(entity_id, [])
        for event in events:
            event.remaining_ticks -= 1
        self.special_events[entity_id] = [e for e in events if e.remaining_ticks > 0]

        if self.rng.random() < self.config.special_event_chance:
            self.trigger_special_event(entity, self.rng.choice(list(SPECIAL_EVENT_TYPES)))
        if not self.challenges[entity_id] and self.rng.random() < self.config.challenge_chance:
            self.trigger_challenge(entity, self.rng.choice(list(CHALLENGE_TYPES)))

        self._refresh_modifiers(entity)

    def trigger_challenge(self, entity: Entity, kind: str) -> Optional[Challenge]:
        if kind not in CHALLENGE_TYPES:
            return None
        name, target, time_limit = CHALLENGE_TYPES[kind]
        challenge = Challenge(name=name, kind=kind, target=target, time_limit=time_limit)
        self.challenges.setdefault(entity.entity_id, []).append(challenge)
        logger.info(f"New challenge for {entity.name}: {name}")
        return challenge

    def trigger_special_event(self, entity: Entity, kind: str) -> Optional[SpecialEvent]:
        if kind not in SPECIAL_EVENT_TYPES:
            return None
        name, duration, effects = SPECIAL_EVENT_TYPES[kind]
        event = SpecialEvent(name=name, kind=kind, duration=duration, effects=dict(effects))
        self.special_events.setdefault(entity.entity_id, []).append(event)
        self._refresh_modifiers(entity)
        logger.info(f"Special event for {entity.name}: {name}")
        return event

    def _finish_scenario(self, entity: Entity, scenario: Scenario) -> None:
        del self.active[entity.entity_id]
        if scenario.completed:
            self.completed.setdefault(entity.entity_id, []).append(scenario.name)
        self._refresh_modifiers(entity)

    def _refresh_modifiers(self, entity: Entity) -> None:
        """Rebuild the entity's modifier map from every active source."""
        modifiers: Dict[str, float] = {}
        sources: List[Dict[str, float]] = []
        scenario = self.active.get(entity.entity_id)
        if scenario is not None:
            sources.append(scenario.modifiers)
        sources.extend(e.effects for e in self.special_events.get(entity.entity_id, []))
        for source in sources:
            for key, value in source.items():
                modifiers[key] = modifiers.get(key, 1.0) * value
        entity.modifiers = modifiers

    def remove_entity(self, entity_id: int) -> None:
        self.active.pop(entity_id, None)
        self.completed.pop(entity_id, None)
        self.challenges.pop(entity_id, None)
        self.special_events.pop(entity_id, None)

    def status(self, entity_id: int) -> ScenarioStatus:
        entity = self.registry.get(entity_id)
        scenario = self.active.get(entity_id)
        objectives: Tuple[Tuple[str, bool], ...] = ()
        if scenario is not None and entity is not None:
            objectives = tuple((o.description, o.is_met(entity, self)) for o in scenario.objectives)
        return ScenarioStatus(
            entity_id=entity_id,
            active_scenario=scenario.name if scenario else None,
            remaining_ticks=scenario.remaining_ticks if scenario else 0,
            objectives=objectives,
            challenges=tuple(
                (c.name, c.current_value, c.target, c.remaining_ticks)
                for c in self.challenges.get(entity_id, [])
            ),
            special_events=tuple((e.name, e.remaining_ticks) for e in self.special_events.get(entity_id, [])),
            completed_scenarios=tuple(self.completed.get(entity_id, [])),
            modifiers=tuple(sorted(entity.modifiers.items())) if entity else (),
        )
