"""
R&D Subsystem

Research projects, patents and researchers. Starting a project debits its
cost and tracks a private copy of the catalog entry; progress accrues each
tick from the base efficiency plus researcher bonuses, and the project is
resolved exactly once by a success roll.
"""

import copy
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from config import CONFIG, ResearchConfig
from entities import Employee, Entity, EntityRegistry

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ResearchProject:
    name: str
    category: str
    cost: float
    duration: int
    success_chance: float
    effects: Dict[str, float] = field(default_factory=dict)
    prerequisites: FrozenSet[str] = frozenset()
    progress: float = 0.0
    remaining_ticks: int = field(init=False)
    resolved: bool = False
    succeeded: bool = False

    def __post_init__(self):
        if self.duration <= 0:
            raise ValueError(f"project duration must be positive, got {self.duration}")
        if not (0.0 <= self.success_chance <= 1.0):
            raise ValueError(f"success_chance must be in [0,1], got {self.success_chance}")
        self.remaining_ticks = self.duration

    @property
    def is_finished(self) -> bool:
        return self.progress >= 1.0 or self.remaining_ticks <= 0


@dataclass(slots=True)
class Patent:
    name: str
    value: float
    duration: int
    licensing_rate: float
    remaining_ticks: int = field(init=False)

    def __post_init__(self):
        self.remaining_ticks = self.duration

    @property
    def licensing_revenue(self) -> float:
        return self.value * self.licensing_rate


@dataclass(slots=True)
class Researcher:
    name: str
    specialization: str
    wage: float
    skill: float
    efficiency: float

    def bonus_for(self, category: str, specialization_bonus: float) -> float:
        if self.specialization.lower() == category.lower():
            return self.efficiency * specialization_bonus
        return self.efficiency


@dataclass(frozen=True)
class ResearchStatus:
    entity_id: int
    active_projects: Tuple[ResearchProject, ...] = ()
    patents: Tuple[Patent, ...] = ()
    researchers: Tuple[Researcher, ...] = ()


def _project(name, category, cost, duration, chance, effects, prerequisites=()) -> ResearchProject:
    return ResearchProject(
        name=name,
        category=category,
        cost=cost,
        duration=duration,
        success_chance=chance,
        effects=effects,
        prerequisites=frozenset(prerequisites),
    )


def build_project_catalog() -> List[ResearchProject]:
    """The standard catalog of research projects."""
    return [
        _project("Basic Automation", "Technology", 50_000.0, 20, 0.9, {"ProductionEfficiency": 0.2}),
        _project("Advanced Materials", "Technology", 100_000.0, 30, 0.8, {"ProductQuality": 0.3},
                 ["Basic Automation"]),
        _project("AI Integration", "Technology", 200_000.0, 40, 0.7, {"ProductionEfficiency": 0.4},
                 ["Advanced Materials"]),
        _project("Quality Improvement", "Product", 30_000.0, 15, 0.95, {"ProductQuality": 0.25}),
        _project("Feature Development", "Product", 75_000.0, 25, 0.85, {"ProductFeatures": 0.3},
                 ["Quality Improvement"]),
        _project("Design Innovation", "Product", 150_000.0, 35, 0.75, {"DesignInnovation": 0.5},
                 ["Feature Development"]),
        _project("Lean Manufacturing", "Process", 40_000.0, 18, 0.9, {"ProcessEfficiency": 0.2}),
        _project("Supply Chain Optimization", "Process", 80_000.0, 28, 0.8, {"LogisticsEfficiency": 0.3},
                 ["Lean Manufacturing"]),
        _project("Green Technology", "Process", 120_000.0, 32, 0.85, {"Sustainability": 0.25}),
        _project("Patent Filing", "Patent", 25_000.0, 10, 0.95, {"PatentValue": 50_000.0}),
        _project("Technology Patent", "Patent", 100_000.0, 25, 0.8, {"PatentValue": 200_000.0},
                 ["Basic Automation"]),
        _project("Process Patent", "Patent", 75_000.0, 20, 0.85, {"PatentValue": 150_000.0},
                 ["Lean Manufacturing"]),
    ]


class ResearchSystem:
    """Owns active projects, patents and researchers per entity."""

    def __init__(
        self,
        registry: EntityRegistry,
        rng: random.Random,
        config: ResearchConfig = CONFIG.research,
        catalog: Optional[List[ResearchProject]] = None,
    ):
        self.registry = registry
        self.rng = rng
        self.config = config
        self.catalog: List[ResearchProject] = catalog if catalog is not None else build_project_catalog()
        self.projects: Dict[int, List[ResearchProject]] = {}
        self.patents: Dict[int, List[Patent]] = {}
        self.researchers: Dict[int, List[Researcher]] = {}

    def find_project(self, name: str) -> Optional[ResearchProject]:
        for project in self.catalog:
            if project.name == name:
                return project
        return None

    def is_in_progress(self, entity_id: int, name: str) -> bool:
        return any(p.name == name for p in self.projects.get(entity_id, []))

    def available_projects(self, entity: Entity) -> List[ResearchProject]:
        """Catalog projects the entity could start now, ignoring cash."""
        return [
            p for p in self.catalog
            if p.name not in entity.completed_research
            and p.prerequisites <= entity.completed_research
            and not self.is_in_progress(entity.entity_id, p.name)
        ]

    def start_project(self, entity: Entity, project: Union[ResearchProject, str]) -> bool:
        """
        Begin a research project.

        Requires every prerequisite to be completed, cash covering the cost,
        and the project neither completed nor already running.
        """
        template = self.find_project(project) if isinstance(project, str) else project
        if template is None:
            return False
        if not template.prerequisites <= entity.completed_research:
            logger.debug(f"{entity.name} lacks prerequisites for {template.name}")
            return False
        if template.name in entity.completed_research:
            return False
        if not entity.can_afford(template.cost) or self.is_in_progress(entity.entity_id, template.name):
            return False

        entity.spend(template.cost)
        tracked = ResearchProject(
            name=template.name,
            category=template.category,
            cost=template.cost,
            duration=template.duration,
            success_chance=template.success_chance,
            effects=dict(template.effects),
            prerequisites=template.prerequisites,
        )
        self.projects.setdefault(entity.entity_id, []).append(tracked)
        return True

    def hire_researcher(
        self,
        entity: Entity,
        name: str,
        specialization: str,
        wage: float,
        skill: float = 1.0,
        efficiency: float = 1.0,
    ) -> bool:
        if wage < 0 or not entity.can_afford(wage):
            return False
        self.researchers.setdefault(entity.entity_id, []).append(
            Researcher(name=name, specialization=specialization, wage=wage, skill=skill, efficiency=efficiency)
        )
        entity.hire_employee(Employee(name=name, role="Researcher", wage=wage, skill=skill))
        return True

    def progress_rate(self, entity: Entity, project: ResearchProject) -> float:
        """Progress added per tick for one project."""
        bonus = sum(
            r.bonus_for(project.category, self.config.specialization_bonus)
            for r in self.researchers.get(entity.entity_id, [])
        )
        speed = entity.effective_research_efficiency() * entity.modifier("ResearchSpeed")
        return (self.config.base_efficiency + bonus) * speed / project.duration

    def boost_progress(self, entity_id: int, amount: float) -> None:
        for project in self.projects.get(entity_id, []):
            project.progress = min(1.0, project.progress + amount)

    def process(self) -> None:
        """Advance projects, resolve finished ones and pay patent licensing."""
        for entity_id, projects in list(self.projects.items()):
            entity = self.registry.get(entity_id)
            if entity is None:
                continue
            for project in projects:
                if project.resolved:
                    continue
                project.progress = min(1.0, project.progress + self.progress_rate(entity, project))
                project.remaining_ticks -= 1
                if project.is_finished:
                    self._resolve(entity, project)
            self.projects[entity_id] = [p for p in projects if not p.resolved]

        for entity_id, patents in list(self.patents.items()):
            entity = self.registry.get(entity_id)
            if entity is None:
                continue
            for patent in patents:
                entity.earn(patent.licensing_revenue)
                patent.remaining_ticks -= 1
            self.patents[entity_id] = [p for p in patents if p.remaining_ticks > 0]

    def _resolve(self, entity: Entity, project: ResearchProject) -> None:
        project.resolved = True
        project.succeeded = self.rng.random() <= project.success_chance
        if not project.succeeded:
            logger.info(f"Research failed for {entity.name}: {project.name}")
            return
        for effect, value in project.effects.items():
            self._apply_effect(entity, project, effect, value)
        entity.complete_research(project.name, self.config.innovation_per_project * entity.modifier("Innovation"))
        logger.info(f"Research completed for {entity.name}: {project.name}")

    def _apply_effect(self, entity: Entity, project: ResearchProject, effect: str, value: float) -> None:
        if effect == "ProductionEfficiency":
            entity.production_efficiency += value
        elif effect == "ProcessEfficiency":
            entity.process_efficiency += value
        elif effect == "LogisticsEfficiency":
            entity.logistics_efficiency += value
        elif effect == "ProductQuality":
            for product in entity.products:
                product.scale_quality(1.0 + value)
        elif effect == "PatentValue":
            self.patents.setdefault(entity.entity_id, []).append(
                Patent(
                    name=project.name,
                    value=value * entity.modifier("PatentValue"),
                    duration=self.config.patent_duration,
                    licensing_rate=self.config.licensing_rate,
                )
            )
        else:
            logger.debug(f"No handler for research effect {effect}")

    def remove_entity(self, entity_id: int) -> None:
        self.projects.pop(entity_id, None)
        self.patents.pop(entity_id, None)
        self.researchers.pop(entity_id, None)

    def status(self, entity_id: int) -> ResearchStatus:
        return ResearchStatus(
            entity_id=entity_id,
            active_projects=tuple(copy.deepcopy(p) for p in self.projects.get(entity_id, [])),
            patents=tuple(copy.copy(p) for p in self.patents.get(entity_id, [])),
            researchers=tuple(copy.copy(r) for r in self.researchers.get(entity_id, [])),
        )
