"""
Venture Simulation Engine

This module implements the tick orchestrator that drives the venture, its
competitors and every subsystem through one fixed execution order per tick.

The ordering is total and never changes: each phase observes cash and
score values already finalized by the phases before it. All randomness
flows through a single injected random.Random so a seeded run reproduces
exactly.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from config import CONFIG, SimulationConfig
from competitors import create_competitors
from corporate import acquisition_cost, can_acquire, can_go_public, ipo_share_price
from crisis import CrisisStatus, CrisisSystem
from entities import Employee, Entity, EntityRegistry, Product
from events import EventGenerator, GameEvent
from finance import FinanceStatus, FinanceSystem
from international import InternationalStatus, InternationalSystem
from logistics import LogisticsStatus, LogisticsSystem
from market import MarketEngine
from marketing import MarketingStatus, MarketingSystem
from progression import ProgressionStatus, ProgressionSystem
from research import ResearchStatus, ResearchSystem
from scenarios import ScenarioStatus, ScenarioSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    """Terminal result of a run."""
    kind: str  # Bankruptcy, Empire, Domination, Defunct
    won: bool
    tick: int
    message: str

    def to_dict(self) -> Dict[str, object]:
        return {"kind": self.kind, "won": self.won, "tick": self.tick, "message": self.message}


@dataclass(frozen=True)
class TickReport:
    """What happened during one tick."""
    tick: int
    prices: Dict[str, float] = field(default_factory=dict)
    units_sold: Dict[int, int] = field(default_factory=dict)
    market_shares: Dict[int, float] = field(default_factory=dict)
    taxes_paid: float = 0.0
    crisis_spawned: bool = False
    achievements: Tuple[str, ...] = ()
    prestige_tiers: Tuple[str, ...] = ()
    fired: Tuple[str, ...] = ()
    event: Optional[GameEvent] = None
    outcome: Optional[Outcome] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "tick": self.tick,
            "prices": dict(self.prices),
            "units_sold": {str(k): v for k, v in self.units_sold.items()},
            "market_shares": {str(k): v for k, v in self.market_shares.items()},
            "taxes_paid": self.taxes_paid,
            "crisis_spawned": self.crisis_spawned,
            "achievements": list(self.achievements),
            "prestige_tiers": list(self.prestige_tiers),
            "fired": list(self.fired),
            "event": self.event.description if self.event else None,
            "outcome": self.outcome.to_dict() if self.outcome else None,
        }


@dataclass
class _Listing:
    entity: Entity
    product: Product
    demand: int


class Simulation:
    """
    Tick orchestrator for the venture economy.

    Owns the entity registry, the market engine and one instance of every
    subsystem. Subsystems share the registry and the random source; the
    orchestrator is the only component that knows the global ordering.
    """

    def __init__(
        self,
        config: SimulationConfig = CONFIG,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Build every subsystem around one registry and one random source.

        Args:
            config: Simulation configuration (sections are handed to subsystems)
            seed: Seed for a fresh random.Random when rng is not given
            rng: Pre-built random source (tests inject scripted ones)
        """
        self.config = config
        self.rng = rng if rng is not None else random.Random(seed)

        self.registry = EntityRegistry()
        self.markets = MarketEngine(config.market)
        self.finance = FinanceSystem(self.registry, self.rng, config.finance)
        self.logistics = LogisticsSystem(self.registry, self.rng, config.logistics)
        self.research = ResearchSystem(self.registry, self.rng, config.research)
        self.marketing = MarketingSystem(self.registry, self.rng, config.marketing)
        self.international = InternationalSystem(self.registry, self.rng, config.international)
        self.crisis = CrisisSystem(self.registry, self.marketing, self.rng, config.crisis)
        self.scenarios = ScenarioSystem(
            self.registry, self.research, self.international, self.rng, config.scenarios
        )
        self.progression = ProgressionSystem(self.registry, config.progression)
        self.events = EventGenerator(self.research, self.rng, config.events)

        self.current_tick = 0
        self.is_paused = False
        self.outcome: Optional[Outcome] = None
        self.last_report: Optional[TickReport] = None

        # Smoothed share before bonuses, so bonuses never compound tick over tick
        self._base_share: Dict[int, float] = {}
        self._defunct_ticks = 0

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def start(
        self,
        name: str,
        category: str = "General",
        region: str = "Global",
        capital: float = 100_000.0,
        with_competitors: bool = True,
    ) -> int:
        """
        Create the venture and bootstrap its rivals.

        Returns:
            The venture's entity id
        """
        if self.registry.principal is not None:
            raise ValueError("simulation already has a venture")
        entity_id = self.registry.create(name, category, region, capital, principal=True)
        venture = self.registry.get(entity_id)

        ops = self.config.operations
        if capital >= ops.credit_bonus_high_capital:
            venture.credit_score += ops.credit_bonus_high
        elif capital >= ops.credit_bonus_mid_capital:
            venture.credit_score += ops.credit_bonus_mid

        self.logistics.bootstrap_entity(venture)
        self.marketing.get_or_create_reputation(entity_id)
        self.progression.ensure_entity(entity_id)

        if with_competitors:
            for competitor_id in create_competitors(self.registry, self.rng, self.config.competitors):
                self.marketing.get_or_create_reputation(competitor_id)

        logger.info(f"Venture {name} started in {category}/{region} with {capital:,.0f}")
        return entity_id

    @property
    def venture(self) -> Optional[Entity]:
        return self.registry.principal

    @property
    def is_finished(self) -> bool:
        return self.outcome is not None

    def pause(self) -> None:
        self.is_paused = True

    def resume(self) -> None:
        self.is_paused = False

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def step(self) -> Optional[TickReport]:
        """
        Execute one full simulation tick.

        Follows strict phase ordering:
        1. Finance (installments, maturities, monthly close)
        2. Logistics deliveries and warehouse costs
        3. R&D progress and patents
        4. Marketing campaigns and reputation decay
        5. International FX and subsidiaries
        6. Crisis amortization and spawning
        7. Scenarios, challenges, special events and compliance
        8. Achievements and prestige
        9. Wages, production, market clearing and sales
        10. Win/loss evaluation

        Returns None without doing anything while paused or finished.
        """
        venture = self.venture
        if self.is_paused or self.is_finished or venture is None:
            return None

        self.current_tick += 1
        entities = self.registry.all()

        # Phase 1: Finance
        for entity in entities:
            self.finance.process(entity)
        taxes = 0.0
        if self.current_tick % self.config.time.ticks_per_month == 0:
            days = self.config.time.ticks_per_month * self.config.time.days_per_tick
            for entity in entities:
                paid = self.finance.close_month(entity, days)
                if entity.is_principal:
                    taxes = paid

        # Phase 2: Logistics
        self.logistics.process()

        # Phase 3: R&D
        self.research.process()

        # Phase 4: Marketing
        self.marketing.process()

        # Phase 5: International
        self.international.process()

        # Phase 6: Crisis
        self.crisis.process()
        crisis_spawned = self.crisis.check_for_new_crises(venture)

        # Phase 7: Scenarios and regulatory compliance
        self.scenarios.process(venture)
        self._check_compliance(venture)

        # Phase 8: Progression
        achievements = self.progression.update_achievements(venture)
        tiers = self.progression.update_prestige_levels(venture)

        # Phase 9: Production and sales
        fired = self._pay_wages(entities)
        prices, units_sold, category_sales = self._produce_and_sell(entities)
        shares = self._update_market_shares(entities, category_sales)
        self.markets.reset_all()
        event = self.events.trigger(venture)

        # Phase 10: Win/loss
        outcome = self._evaluate_outcome(venture)

        report = TickReport(
            tick=self.current_tick,
            prices=prices,
            units_sold=units_sold,
            market_shares=shares,
            taxes_paid=taxes,
            crisis_spawned=crisis_spawned,
            achievements=tuple(a.name for a in achievements),
            prestige_tiers=tuple(t.name for t in tiers),
            fired=tuple(fired),
            event=event,
            outcome=outcome,
        )
        self.last_report = report
        return report

    def run(self, ticks: int) -> List[TickReport]:
        """Advance up to `ticks` ticks, stopping early on pause or outcome."""
        reports = []
        for _ in range(ticks):
            report = self.step()
            if report is None:
                break
            reports.append(report)
        return reports

    def _check_compliance(self, entity: Entity) -> None:
        outcome = self.config.outcome
        if entity.compliance_score > outcome.compliance_threshold:
            return
        entity.spend(outcome.compliance_penalty * entity.modifier("ComplianceCost"))
        reputation = self.marketing.get_or_create_reputation(entity.entity_id)
        reputation.shift_overall(-outcome.compliance_reputation_penalty)
        reputation.update_overall()
        entity.reputation = reputation.overall_score
        logger.warning(f"{entity.name} failed compliance (score {entity.compliance_score:.0f})")

    def _pay_wages(self, entities: List[Entity]) -> List[str]:
        """Charge payroll; an entity that goes negative lets one employee go."""
        fired = []
        for entity in entities:
            wages = entity.payroll * entity.modifier("EmployeeCost")
            if wages <= 0:
                continue
            entity.spend(wages)
            if entity.cash < 0 and entity.employees:
                employee = entity.employees[0]
                entity.fire_employee(employee)
                if entity.is_principal:
                    fired.append(employee.name)
                    logger.info(f"Could not pay wages! {employee.name} was fired.")
        return fired

    def _demand_for(self, entity: Entity, product: Product) -> int:
        ops = self.config.operations
        base = ops.base_demand + self.rng.randint(-ops.demand_jitter, ops.demand_jitter)
        quality = max(0.0, min(1.0, product.quality))
        demand = base * (1.0 + ops.quality_demand_weight * (quality - 1.0))
        demand *= self.marketing.brand_multiplier(entity.entity_id) * product.demand_multiplier
        demand *= (
            entity.modifier("MarketGrowth")
            * entity.modifier("CustomerSatisfaction")
            * entity.modifier("Reputation")
        )
        return max(0, int(round(demand)))

    def _produce_and_sell(
        self, entities: List[Entity]
    ) -> Tuple[Dict[str, float], Dict[int, int], Dict[str, Dict[int, int]]]:
        """
        Produce, list every product in its category market and sell at the clearing price.

        Returns:
            (clearing price per category, units sold per entity id,
             units sold per category then entity id)
        """
        listings: Dict[str, List[_Listing]] = {}
        for entity in entities:
            for product in entity.products:
                entity.produce(product, self.config.operations.units_per_tick)
                listings.setdefault(product.category, []).append(
                    _Listing(entity, product, self._demand_for(entity, product))
                )

        prices: Dict[str, float] = {}
        units_sold: Dict[int, int] = {entity.entity_id: 0 for entity in entities}
        category_sales: Dict[str, Dict[int, int]] = {}
        for category, category_listings in listings.items():
            anchor_price = category_listings[0].product.price or None
            market = self.markets.get_or_create(category, elasticity=anchor_price)
            for listing in category_listings:
                self.markets.accumulate_supply(market, listing.product.inventory)
                self.markets.accumulate_demand(market, listing.demand)
            price = self.markets.clear_price(market)
            prices[category] = price

            sales = category_sales.setdefault(category, {})
            for listing in category_listings:
                entity = listing.entity
                sale_price = price * entity.modifier("CapitalGrowth") * entity.modifier("Revenue")
                sold = entity.sell(listing.product, listing.demand, sale_price)
                units_sold[entity.entity_id] += sold
                sales[entity.entity_id] = sales.get(entity.entity_id, 0) + sold

        for entity in entities:
            entity.units_sold_last_tick = units_sold[entity.entity_id]
        return prices, units_sold, category_sales

    def _update_market_shares(
        self, entities: List[Entity], category_sales: Dict[str, Dict[int, int]]
    ) -> Dict[int, float]:
        """
        Exponentially smoothed share of units sold in each entity's categories.

        The raw share is the entity's units across its categories over every
        unit sold in those same categories.
        """
        if not entities:
            return {}
        category_totals = {category: sum(sales.values()) for category, sales in category_sales.items()}

        sold = np.zeros(len(entities), dtype=np.float64)
        totals = np.zeros(len(entities), dtype=np.float64)
        for index, entity in enumerate(entities):
            for category in {p.category for p in entity.products}:
                sold[index] += category_sales.get(category, {}).get(entity.entity_id, 0)
                totals[index] += category_totals.get(category, 0)
        raw = np.divide(sold, totals, out=np.zeros_like(sold), where=totals > 0)

        alpha = self.config.operations.share_smoothing_alpha
        previous = np.array([self._base_share.get(e.entity_id, 0.0) for e in entities], dtype=np.float64)
        base = (1.0 - alpha) * previous + alpha * raw
        bonus = np.array([e.bonus("Market") * e.modifier("MarketShare") for e in entities], dtype=np.float64)
        effective = np.clip(base * bonus, 0.0, 1.0)

        shares = {}
        for entity, base_share, share in zip(entities, base, effective):
            self._base_share[entity.entity_id] = float(base_share)
            entity.market_share = float(share)
            entity.update_peaks()
            shares[entity.entity_id] = entity.market_share
        return shares

    def _evaluate_outcome(self, venture: Entity) -> Optional[Outcome]:
        rules = self.config.outcome
        if not venture.employees and not venture.products:
            self._defunct_ticks += 1
        else:
            self._defunct_ticks = 0

        if venture.cash < rules.bankruptcy_threshold:
            outcome = Outcome("Bankruptcy", False, self.current_tick, "Game Over: Bankruptcy!")
        elif venture.cash > rules.empire_threshold:
            outcome = Outcome("Empire", True, self.current_tick, "Congratulations! You built a business empire!")
        elif venture.market_share > rules.domination_share:
            outcome = Outcome("Domination", True, self.current_tick, "Congratulations! You dominate the market!")
        elif self._defunct_ticks >= rules.grace_ticks:
            outcome = Outcome("Defunct", False, self.current_tick, "Game Over: No employees or products left!")
        else:
            return None

        self.outcome = outcome
        logger.info(f"Tick {self.current_tick}: {outcome.message}")
        return outcome

    # ------------------------------------------------------------------
    # Action entry points (return success, never raise on rejection)
    # ------------------------------------------------------------------

    def take_loan(self, amount: float, term: int) -> bool:
        venture = self.venture
        return venture is not None and self.finance.take_loan(venture, amount, term)

    def make_investment(self, kind: str, amount: float, maturity: int) -> bool:
        venture = self.venture
        return venture is not None and self.finance.make_investment(venture, kind, amount, maturity)

    def place_order(self, supplier_name: str, quantity: int) -> bool:
        venture = self.venture
        if venture is None:
            return False
        supplier = self.logistics.find_supplier(venture.entity_id, supplier_name)
        if supplier is None:
            logger.debug(f"Unknown supplier {supplier_name}")
            return False
        return self.logistics.place_order(venture, supplier, quantity)

    def add_warehouse(self, location: str, capacity: int) -> bool:
        venture = self.venture
        return venture is not None and self.logistics.add_warehouse(venture, location, capacity) is not None

    def respond_to_crisis(self, action: str, budget: float) -> bool:
        venture = self.venture
        return venture is not None and self.crisis.respond_to_crisis(venture, action, budget)

    def improve_crisis_prevention(self, investment: float) -> bool:
        venture = self.venture
        return venture is not None and self.crisis.improve_crisis_prevention(venture, investment)

    def launch_campaign(
        self,
        kind: str,
        budget: float,
        duration: int,
        target_audience: str = "General",
        name: Optional[str] = None,
    ) -> bool:
        venture = self.venture
        return venture is not None and self.marketing.launch_campaign(
            venture, kind, budget, duration, target_audience, name
        )

    def conduct_market_research(self, kind: str, cost: float, duration: int) -> bool:
        venture = self.venture
        return venture is not None and self.marketing.conduct_market_research(venture, kind, cost, duration)

    def improve_customer_service(self, investment: float) -> bool:
        venture = self.venture
        return venture is not None and self.marketing.improve_customer_service(venture, investment)

    def invest_in_social_responsibility(self, investment: float) -> bool:
        venture = self.venture
        return venture is not None and self.marketing.invest_in_social_responsibility(venture, investment)

    def expand_to_market(self, country: str) -> bool:
        venture = self.venture
        return venture is not None and self.international.expand_to_market(venture, country)

    def create_subsidiary(self, country: str, name: str, capital: float) -> bool:
        venture = self.venture
        return venture is not None and self.international.create_subsidiary(venture, country, name, capital)

    def stock_subsidiary(self, subsidiary_name: str, product_name: str, quantity: int) -> bool:
        venture = self.venture
        return venture is not None and self.international.stock_subsidiary(
            venture, subsidiary_name, product_name, quantity
        )

    def staff_subsidiary(self, subsidiary_name: str, name: str, wage: float) -> bool:
        venture = self.venture
        return venture is not None and self.international.staff_subsidiary(venture, subsidiary_name, name, wage)

    def negotiate_trade_agreement(self, country_a: str, country_b: str, cost: float) -> bool:
        venture = self.venture
        return venture is not None and self.international.negotiate_trade_agreement(
            venture, country_a, country_b, cost
        )

    def start_research_project(self, project_name: str) -> bool:
        venture = self.venture
        return venture is not None and self.research.start_project(venture, project_name)

    def hire_researcher(
        self,
        name: str,
        specialization: str,
        wage: float,
        skill: float = 1.0,
        efficiency: float = 1.0,
    ) -> bool:
        venture = self.venture
        return venture is not None and self.research.hire_researcher(
            venture, name, specialization, wage, skill, efficiency
        )

    def unlock_feature(self, name: str) -> bool:
        venture = self.venture
        return venture is not None and self.progression.unlock_feature(venture, name)

    def start_scenario(self, name: str) -> bool:
        venture = self.venture
        return venture is not None and self.scenarios.start_scenario(venture, name)

    def hire_employee(self, name: str, role: str = "Worker", wage: float = 2000.0, skill: float = 1.0) -> bool:
        venture = self.venture
        if venture is None or wage < 0 or not venture.can_afford(wage):
            return False
        venture.hire_employee(Employee(name=name, role=role, wage=wage, skill=skill))
        venture.update_credit_score()
        return True

    def fire_employee(self, name: str) -> bool:
        venture = self.venture
        if venture is None:
            return False
        for employee in venture.employees:
            if employee.name == name:
                return venture.fire_employee(employee)
        return False

    def launch_product(
        self,
        name: str,
        price: float,
        cost: float,
        category: Optional[str] = None,
        quality: float = 1.0,
    ) -> bool:
        venture = self.venture
        if venture is None or price <= 0 or cost < 0 or venture.find_product(name) is not None:
            return False
        venture.add_product(Product(
            name=name,
            category=category or venture.industry,
            price=price,
            cost=cost,
            quality=quality,
        ))
        logger.info(f"{venture.name} launched product {name}")
        return True

    def train_employees(self, amount: float, cost_per_employee: float) -> bool:
        """Raise skill of every employee off training cooldown."""
        venture = self.venture
        if venture is None or amount <= 0 or cost_per_employee < 0:
            return False
        cooldown = self.config.operations.training_cooldown
        eligible = [e for e in venture.employees if e.can_train(self.current_tick, cooldown)]
        total = cost_per_employee * len(eligible)
        if not eligible or not venture.can_afford(total):
            return False
        venture.spend(total)
        for employee in eligible:
            employee.train(amount, self.current_tick)
        return True

    def acquire(self, target_id: int) -> bool:
        """
        Buy a competitor outright.

        The target's liabilities and loan records move to the venture, then
        the target is dropped from the registry and from every subsystem.
        """
        venture = self.venture
        target = self.registry.get(target_id)
        if venture is None or target is None or not can_acquire(venture, target):
            return False

        cost = acquisition_cost(venture, target)
        venture.spend(cost)
        venture.add_liability(target.total_liabilities)
        self.finance.transfer(target_id, venture.entity_id)
        venture.complete_merger()
        self._remove_entity(target_id)
        logger.info(f"{venture.name} acquired {target.name} for {cost:,.0f}")
        return True

    def go_public(self) -> bool:
        venture = self.venture
        if venture is None or not can_go_public(venture, self.config.corporate):
            return False
        share_price = ipo_share_price(venture, self.config.corporate)
        venture.go_public(share_price)
        logger.info(f"{venture.name} has gone public at {share_price:.2f} per share")
        return True

    def _remove_entity(self, entity_id: int) -> None:
        for subsystem in (
            self.finance,
            self.logistics,
            self.research,
            self.marketing,
            self.international,
            self.crisis,
            self.scenarios,
            self.progression,
        ):
            subsystem.remove_entity(entity_id)
        self._base_share.pop(entity_id, None)
        self.registry.remove(entity_id)

    # ------------------------------------------------------------------
    # Snapshot queries
    # ------------------------------------------------------------------

    def _resolve_id(self, entity_id: Optional[int]) -> int:
        if entity_id is not None:
            return entity_id
        return self.registry.principal_id if self.registry.principal_id is not None else -1

    def finance_status(self, entity_id: Optional[int] = None) -> FinanceStatus:
        return self.finance.status(self._resolve_id(entity_id))

    def logistics_status(self, entity_id: Optional[int] = None) -> LogisticsStatus:
        return self.logistics.status(self._resolve_id(entity_id))

    def crisis_status(self, entity_id: Optional[int] = None) -> CrisisStatus:
        return self.crisis.status(self._resolve_id(entity_id))

    def marketing_status(self, entity_id: Optional[int] = None) -> MarketingStatus:
        return self.marketing.status(self._resolve_id(entity_id))

    def international_status(self, entity_id: Optional[int] = None) -> InternationalStatus:
        return self.international.status(self._resolve_id(entity_id))

    def research_status(self, entity_id: Optional[int] = None) -> ResearchStatus:
        return self.research.status(self._resolve_id(entity_id))

    def progression_status(self, entity_id: Optional[int] = None) -> ProgressionStatus:
        return self.progression.status(self._resolve_id(entity_id))

    def scenario_status(self, entity_id: Optional[int] = None) -> ScenarioStatus:
        return self.scenarios.status(self._resolve_id(entity_id))

    def get_economic_metrics(self) -> Dict[str, float]:
        """
        Aggregate indicators across every entity plus the venture's headline numbers.

        Returns:
            Flat dictionary suitable for JSON streaming and CLI tables
        """
        metrics: Dict[str, float] = {}
        entities = self.registry.all()

        if entities:
            cash = np.array([e.cash for e in entities], dtype=np.float64)
            shares = np.array([e.market_share for e in entities], dtype=np.float64)
            metrics["total_entities"] = len(entities)
            metrics["total_cash"] = float(cash.sum())
            metrics["mean_cash"] = float(cash.mean())
            metrics["median_cash"] = float(np.median(cash))
            metrics["total_employees"] = sum(len(e.employees) for e in entities)
            metrics["total_inventory"] = sum(p.inventory for e in entities for p in e.products)
            metrics["units_sold_this_tick"] = sum(e.units_sold_last_tick for e in entities)
            # Herfindahl index over current shares
            metrics["market_concentration"] = float(np.square(shares).sum())
        else:
            metrics.update({
                "total_entities": 0, "total_cash": 0.0, "mean_cash": 0.0, "median_cash": 0.0,
                "total_employees": 0, "total_inventory": 0, "units_sold_this_tick": 0,
                "market_concentration": 0.0,
            })

        venture = self.venture
        if venture is not None:
            metrics["venture_cash"] = venture.cash
            metrics["venture_net_worth"] = venture.net_worth
            metrics["venture_market_share"] = venture.market_share
            metrics["venture_reputation"] = venture.reputation
            metrics["venture_credit_score"] = venture.credit_score
            metrics["venture_innovation"] = venture.innovation_score
            metrics["venture_prestige_level"] = venture.prestige_level

        prices = self.markets.prices()
        metrics["mean_price"] = float(np.mean(list(prices.values()))) if prices else 0.0
        metrics["current_tick"] = self.current_tick
        return metrics

    def get_state(self) -> Dict[str, object]:
        """JSON-ready view of the whole run for outer surfaces."""
        venture = self.venture
        return {
            "tick": self.current_tick,
            "paused": self.is_paused,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "venture": venture.to_dict() if venture else None,
            "competitors": [e.to_dict() for e in self.registry.competitors()],
            "prices": self.markets.prices(),
            "metrics": self.get_economic_metrics(),
            "last_report": self.last_report.to_dict() if self.last_report else None,
        }
