"""
VentureSim Entity Registry

This module defines the economic entities that every subsystem acts upon:
the player's venture and its competitors, together with the staff and
products they own. Entities are addressed by a stable integer id that is
never reused during a run, so subsystem registries can key on it safely
even after an acquisition removes an entity.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

logger = logging.getLogger(__name__)

MIN_SKILL = 0.5
MAX_SKILL = 2.0
MIN_QUALITY = 0.5
MAX_QUALITY = 2.0
MIN_CREDIT_SCORE = 300.0
MAX_CREDIT_SCORE = 850.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(slots=True)
class Employee:
    """A staff record. Skill scales production output."""

    name: str
    role: str
    wage: float
    skill: float = 1.0
    morale: float = 1.0
    last_trained_tick: int = -1000

    def __post_init__(self):
        if self.wage < 0:
            raise ValueError(f"wage cannot be negative, got {self.wage}")
        self.skill = _clamp(self.skill, MIN_SKILL, MAX_SKILL)

    def can_train(self, current_tick: int, cooldown: int) -> bool:
        return current_tick - self.last_trained_tick >= cooldown

    def train(self, amount: float, current_tick: int) -> None:
        self.skill = _clamp(self.skill + amount, MIN_SKILL, MAX_SKILL)
        self.last_trained_tick = current_tick

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "role": self.role,
            "wage": self.wage,
            "skill": self.skill,
            "morale": self.morale,
        }


@dataclass(slots=True)
class Product:
    """A produced good owned by one entity and sold into its category market."""

    name: str
    category: str
    price: float
    cost: float
    inventory: int = 0
    quality: float = 1.0
    demand_multiplier: float = 1.0  # reduced by sales-hitting crises
    features: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.price < 0 or self.cost < 0:
            raise ValueError(f"price and cost must be non-negative for {self.name}")
        if self.inventory < 0:
            raise ValueError(f"inventory cannot be negative for {self.name}")
        self.quality = _clamp(self.quality, MIN_QUALITY, MAX_QUALITY)

    def scale_quality(self, factor: float) -> None:
        self.quality = _clamp(self.quality * factor, MIN_QUALITY, MAX_QUALITY)

    def shift_quality(self, delta: float) -> None:
        self.quality = _clamp(self.quality + delta, MIN_QUALITY, MAX_QUALITY)

    @property
    def inventory_value(self) -> float:
        return self.inventory * self.cost

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "cost": self.cost,
            "inventory": self.inventory,
            "quality": self.quality,
            "demand_multiplier": self.demand_multiplier,
            "features": list(self.features),
        }


@dataclass(slots=True)
class Entity:
    """
    A simulated business: the player's venture or a competitor.

    Cash may go negative (short-term debt); the orchestrator decides when
    an entity is terminal. Scalar scores are the only state shared between
    subsystems, so every mutation goes through plain attribute writes or
    the ledger helpers below.
    """

    # Identification
    entity_id: int
    name: str
    industry: str
    region: str

    # Ledger
    cash: float
    is_principal: bool = False
    revenue: float = 0.0  # accrued this month
    expenses: float = 0.0  # accrued this month
    last_month_revenue: float = 0.0
    last_month_expenses: float = 0.0
    taxes_paid: float = 0.0
    total_liabilities: float = 0.0

    # Holdings
    products: List[Product] = field(default_factory=list)
    employees: List[Employee] = field(default_factory=list)

    # Scores
    market_share: float = 0.0  # 0-1
    reputation: float = 50.0  # mirrors the brand reputation overall score
    credit_score: float = 500.0
    brand_value: float = 0.0
    customer_satisfaction: float = 50.0
    innovation_score: float = 0.0
    social_responsibility: float = 50.0
    environmental_impact: float = 50.0
    crisis_resistance: float = 0.3  # mirrors the crisis subsystem resistance, 0-1
    compliance_score: float = 70.0
    international_presence: int = 0
    merger_count: int = 0
    prestige_level: int = 1
    achievement_progress: float = 0.0

    # Base efficiencies (prestige bonuses live in bonus_multipliers)
    production_efficiency: float = 1.0
    process_efficiency: float = 1.0
    logistics_efficiency: float = 1.0
    research_efficiency: float = 1.0

    # Corporate status
    is_public: bool = False
    stock_price: float = 0.0

    # Lifetime tracking
    peak_cash: float = 0.0
    peak_market_share: float = 0.0
    days_in_business: int = 0
    total_revenue_ever: float = 0.0
    total_profit_ever: float = 0.0
    units_sold_last_tick: int = 0
    crises_resolved: int = 0
    completed_research: Set[str] = field(default_factory=set)

    # Bonus category -> effective multiplier set by prestige tiers
    bonus_multipliers: Dict[str, float] = field(default_factory=dict)
    # Scenario and special-event multipliers keyed by modifier name
    modifiers: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        """Validate invariants after initialization."""
        if not self.name:
            raise ValueError("entity name cannot be empty")
        self.peak_cash = max(self.peak_cash, self.cash)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def net_income(self) -> float:
        return self.revenue - self.expenses

    @property
    def inventory_value(self) -> float:
        return sum(p.inventory_value for p in self.products)

    @property
    def total_assets(self) -> float:
        return self.cash + self.inventory_value

    @property
    def net_worth(self) -> float:
        return self.total_assets - self.total_liabilities

    @property
    def payroll(self) -> float:
        return sum(e.wage for e in self.employees)

    def average_skill(self) -> float:
        if not self.employees:
            return 1.0
        return sum(e.skill for e in self.employees) / len(self.employees)

    def bonus(self, category: str) -> float:
        return self.bonus_multipliers.get(category, 1.0)

    def modifier(self, name: str) -> float:
        return self.modifiers.get(name, 1.0)

    def effective_production_efficiency(self) -> float:
        return self.production_efficiency * self.bonus("Operational")

    def effective_research_efficiency(self) -> float:
        return self.research_efficiency * self.bonus("Innovation")

    # ------------------------------------------------------------------
    # Ledger helpers
    # ------------------------------------------------------------------

    def earn(self, amount: float) -> None:
        """Credit cash and accrue revenue."""
        if amount < 0:
            raise ValueError(f"earn amount must be non-negative, got {amount}")
        self.cash += amount
        self.revenue += amount
        self.total_revenue_ever += amount
        self.update_peaks()

    def spend(self, amount: float) -> None:
        """Debit cash and accrue an expense. Cash may go negative."""
        if amount < 0:
            raise ValueError(f"spend amount must be non-negative, got {amount}")
        self.cash -= amount
        self.expenses += amount

    def can_afford(self, amount: float) -> bool:
        return self.cash >= amount

    def add_liability(self, amount: float) -> None:
        self.total_liabilities += amount

    def reduce_liability(self, amount: float) -> None:
        self.total_liabilities = max(0.0, self.total_liabilities - amount)

    def update_peaks(self) -> None:
        self.peak_cash = max(self.peak_cash, self.cash)
        self.peak_market_share = max(self.peak_market_share, self.market_share)

    def update_monthly_financials(self, days: int) -> None:
        """Close the month: roll accumulators into last-month values."""
        self.last_month_revenue = self.revenue
        self.last_month_expenses = self.expenses
        self.total_profit_ever += self.net_income
        self.revenue = 0.0
        self.expenses = 0.0
        self.days_in_business += days

    # ------------------------------------------------------------------
    # Staff and products
    # ------------------------------------------------------------------

    def hire_employee(self, employee: Employee) -> None:
        """Add staff; the first wage is paid on signing."""
        self.employees.append(employee)
        self.spend(employee.wage)

    def fire_employee(self, employee: Employee) -> bool:
        """Remove staff and pay one wage of severance."""
        if employee not in self.employees:
            return False
        self.employees.remove(employee)
        self.spend(employee.wage)
        return True

    def add_product(self, product: Product) -> None:
        self.products.append(product)

    def find_product(self, name: str) -> Optional[Product]:
        for product in self.products:
            if product.name == name:
                return product
        return None

    def produce(self, product: Product, quantity: int) -> int:
        """
        Manufacture units of a product.

        Output scales with average staff skill and effective production
        efficiency. Nothing is produced when cash cannot cover the cost.

        Returns:
            Units added to inventory
        """
        avg_skill = self.average_skill()
        units = int(round(quantity * avg_skill * self.effective_production_efficiency()))
        if units <= 0:
            return 0
        cost = product.cost * units
        if not self.can_afford(cost):
            return 0
        product.inventory += units
        self.spend(cost)
        product.shift_quality(0.01 * (avg_skill - 1.0))
        return units

    def sell(self, product: Product, quantity: int, price: float) -> int:
        """Sell up to quantity from inventory at price. Returns units sold."""
        sold = max(0, min(product.inventory, quantity))
        if sold == 0:
            return 0
        product.inventory -= sold
        self.earn(sold * price)
        return sold

    # ------------------------------------------------------------------
    # Scores and milestones
    # ------------------------------------------------------------------

    def update_credit_score(self) -> None:
        """Recompute credit score from balance sheet, staff and reputation."""
        assets = self.total_assets
        debt_ratio = self.total_liabilities / assets if assets > 0 else 1.0
        revenue = self.last_month_revenue or self.revenue
        expenses = self.last_month_expenses or self.expenses
        margin = (revenue - expenses) / revenue if revenue > 0 else 0.0

        score = 500.0
        score += min(200.0, assets / 10_000.0)
        score -= min(100.0, debt_ratio * 100.0)
        score += min(100.0, margin * 100.0)
        score += min(100.0, len(self.employees) * 10.0)
        score += min(100.0, len(self.completed_research) * 10.0)
        score += min(50.0, self.brand_value / 10_000.0)
        score += min(50.0, self.innovation_score / 10.0)
        score += min(50.0, self.compliance_score / 10.0)
        score = _clamp(score, MIN_CREDIT_SCORE, MAX_CREDIT_SCORE)
        self.credit_score = _clamp(score * self.bonus("Financial"), MIN_CREDIT_SCORE, MAX_CREDIT_SCORE)

    def complete_research(self, project_name: str, innovation_gain: float = 10.0) -> None:
        if project_name not in self.completed_research:
            self.completed_research.add(project_name)
            self.innovation_score += innovation_gain

    def go_public(self, share_price: float) -> None:
        self.is_public = True
        self.stock_price = share_price
        self.brand_value += 100_000.0

    def complete_merger(self) -> None:
        self.merger_count += 1
        self.brand_value += 75_000.0

    def expand_internationally(self) -> None:
        self.international_presence += 1
        self.brand_value += 50_000.0

    def overall_performance(self) -> float:
        """Weighted composite of cash, share, innovation, brand and standing."""
        return (
            self.cash / 100_000.0 * 25.0
            + self.market_share * 100.0 * 20.0
            + self.innovation_score / 10.0 * 15.0
            + self.brand_value / 100_000.0 * 15.0
            + self.customer_satisfaction * 10.0
            + self.compliance_score * 10.0
            + self.prestige_level * 5.0
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "entity_id": self.entity_id,
            "name": self.name,
            "industry": self.industry,
            "region": self.region,
            "is_principal": self.is_principal,
            "cash": self.cash,
            "revenue": self.revenue,
            "expenses": self.expenses,
            "net_income": self.net_income,
            "total_assets": self.total_assets,
            "total_liabilities": self.total_liabilities,
            "net_worth": self.net_worth,
            "market_share": self.market_share,
            "reputation": self.reputation,
            "credit_score": self.credit_score,
            "brand_value": self.brand_value,
            "innovation_score": self.innovation_score,
            "compliance_score": self.compliance_score,
            "crisis_resistance": self.crisis_resistance,
            "international_presence": self.international_presence,
            "merger_count": self.merger_count,
            "prestige_level": self.prestige_level,
            "production_efficiency": self.effective_production_efficiency(),
            "research_efficiency": self.effective_research_efficiency(),
            "is_public": self.is_public,
            "stock_price": self.stock_price,
            "days_in_business": self.days_in_business,
            "completed_research": sorted(self.completed_research),
            "products": [p.to_dict() for p in self.products],
            "employees": [e.to_dict() for e in self.employees],
        }


class EntityRegistry:
    """
    Canonical store of all entities, keyed by stable integer id.

    Ids are assigned monotonically and never reused, even after removal.
    """

    def __init__(self):
        self._entities: Dict[int, Entity] = {}
        self._next_id = 1
        self.principal_id: Optional[int] = None

    def create(
        self,
        name: str,
        category: str,
        region: str,
        starting_capital: float,
        principal: bool = False,
    ) -> int:
        """
        Create an entity and return its id.

        Args:
            name: Display name
            category: Industry, also used as the default product category
            region: Home region (used for the starting warehouse)
            starting_capital: Opening cash balance
            principal: Marks the player's venture (only one per registry)
        """
        if principal and self.principal_id is not None:
            raise ValueError("registry already has a principal entity")
        entity_id = self._next_id
        self._next_id += 1
        entity = Entity(
            entity_id=entity_id,
            name=name,
            industry=category,
            region=region,
            cash=float(starting_capital),
            is_principal=principal,
        )
        self._entities[entity_id] = entity
        if principal:
            self.principal_id = entity_id
        logger.debug(f"Created entity {entity_id} ({name}, {category}, {region})")
        return entity_id

    def get(self, entity_id: Optional[int]) -> Optional[Entity]:
        if entity_id is None:
            return None
        return self._entities.get(entity_id)

    def all(self) -> List[Entity]:
        return list(self._entities.values())

    @property
    def principal(self) -> Optional[Entity]:
        return self.get(self.principal_id)

    def competitors(self) -> List[Entity]:
        return [e for e in self._entities.values() if not e.is_principal]

    def remove(self, entity_id: int) -> Optional[Entity]:
        entity = self._entities.pop(entity_id, None)
        if entity is not None and entity_id == self.principal_id:
            self.principal_id = None
        return entity

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __len__(self) -> int:
        return len(self._entities)
