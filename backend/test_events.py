"""
Unit tests for random events, competitor bootstrap and corporate rules

Tests cover:
- Cumulative event table boundaries
- Each event kind's effect on the venture
- Competitor creation with products and founding staff
- Acquisition eligibility and pricing
- IPO eligibility and share price
"""

import random

import pytest

from config import CompetitorConfig, CorporateConfig, EventConfig
from competitors import create_competitors
from corporate import acquisition_cost, can_acquire, can_go_public, ipo_share_price
from entities import Employee, EntityRegistry, Product
from events import EventGenerator, draw_event
from research import ResearchSystem


def make_generator(cash: float = 100_000.0, config: EventConfig = None):
    registry = EntityRegistry()
    entity = registry.get(registry.create("Venture", "General", "Global", cash, principal=True))
    rng = random.Random(23)
    research = ResearchSystem(registry, rng)
    return EventGenerator(research, rng, config or EventConfig()), research, entity


class TestEventTable:
    """Test suite for event selection"""

    @pytest.mark.parametrize("roll,kind", [
        (0.0, "Boom"),
        (0.1499, "Boom"),
        (0.15, "Downturn"),
        (0.44, "Strike"),
        (0.59, "TechBreakthrough"),
        (0.70, "PolicyChange"),
        (0.80, "SupplyChainDisruption"),
        (0.95, "ResearchBreakthrough"),
        (0.999999, "ResearchBreakthrough"),
    ])
    def test_draw_event(self, roll, kind):
        assert draw_event(roll) == kind


class TestEventEffects:
    """Test suite for applying events"""

    def test_boom_and_downturn(self):
        generator, _, entity = make_generator()
        assert generator.apply(entity, "Boom").cash_effect == 20_000.0
        assert entity.cash == 120_000.0
        generator.apply(entity, "Downturn")
        assert entity.cash == 105_000.0

    def test_policy_subsidy(self):
        generator, _, entity = make_generator()
        generator.apply(entity, "PolicyChange")
        assert entity.cash == 110_000.0

    def test_strike_lowers_morale(self):
        generator, _, entity = make_generator()
        entity.employees.append(Employee("A", "Worker", 100.0, morale=0.2))
        generator.apply(entity, "Strike")
        assert entity.employees[0].morale == 0.0

    def test_tech_breakthrough_cuts_cost(self):
        generator, _, entity = make_generator()
        entity.add_product(Product(name="W", category="General", price=100.0, cost=50.0))
        generator.apply(entity, "TechBreakthrough")
        assert abs(entity.products[0].cost - 40.0) < 1e-9

    def test_research_breakthrough_advances_projects(self):
        generator, research, entity = make_generator()
        research.start_project(entity, "Basic Automation")
        generator.apply(entity, "ResearchBreakthrough")
        assert abs(research.projects[entity.entity_id][0].progress - 0.2) < 1e-12

    def test_supply_chain_disruption_is_informational(self):
        generator, _, entity = make_generator()
        event = generator.apply(entity, "SupplyChainDisruption")
        assert event.kind == "SupplyChainDisruption"
        assert entity.cash == 100_000.0

    def test_disabled_generator(self):
        generator, _, entity = make_generator(config=EventConfig(enabled=False))
        assert generator.trigger(entity) is None
        assert entity.cash == 100_000.0


class TestCompetitors:
    """Test suite for rival bootstrap"""

    def test_competitors_created(self):
        registry = EntityRegistry()
        ids = create_competitors(registry, random.Random(4), CompetitorConfig())

        assert ids == [1, 2, 3]
        for i, entity_id in enumerate(ids, start=1):
            entity = registry.get(entity_id)
            assert entity.name == f"AI Corp {i}"
            assert entity.industry in ("General", "Tech", "Food")
            assert 130_000.0 <= entity.cash <= 170_000.0
            assert len(entity.employees) == 5
            assert entity.products[0].category == entity.industry
            assert not entity.is_principal

    def test_founding_staff_cost_nothing(self):
        registry = EntityRegistry()
        config = CompetitorConfig(count=1, capital_jitter=0.0)
        create_competitors(registry, random.Random(4), config)
        assert registry.get(1).cash == 150_000.0
        assert registry.get(1).expenses == 0.0


class TestCorporateRules:
    """Test suite for acquisition and IPO rules"""

    def make_pair(self, acquirer_cash: float, target_cash: float):
        registry = EntityRegistry()
        acquirer = registry.get(registry.create("A", "General", "Global", acquirer_cash))
        target = registry.get(registry.create("B", "General", "Global", target_cash))
        return acquirer, target

    def test_can_acquire_smaller_target(self):
        acquirer, target = self.make_pair(500_000.0, 100_000.0)
        assert can_acquire(acquirer, target)
        assert acquisition_cost(acquirer, target) == 100_000.0

    def test_cannot_acquire_larger_target_or_self(self):
        acquirer, target = self.make_pair(100_000.0, 500_000.0)
        assert not can_acquire(acquirer, target)
        assert not can_acquire(acquirer, acquirer)

    def test_cash_must_cover_target_worth(self):
        acquirer, target = self.make_pair(50_000.0, 40_000.0)
        acquirer.add_product(Product(name="W", category="General", price=1.0, cost=1.0, inventory=100_000))
        target.cash = 60_000.0
        assert acquirer.net_worth > target.net_worth
        assert not can_acquire(acquirer, target)

    def test_acquisition_cost_modifier(self):
        acquirer, target = self.make_pair(500_000.0, 100_000.0)
        acquirer.modifiers["AcquisitionCost"] = 0.8
        assert acquisition_cost(acquirer, target) == 80_000.0

    def test_ipo_eligibility(self):
        config = CorporateConfig()
        acquirer, _ = self.make_pair(6_000_000.0, 0.0)
        assert not can_go_public(acquirer, config)
        acquirer.days_in_business = 731
        assert can_go_public(acquirer, config)
        acquirer.is_public = True
        assert not can_go_public(acquirer, config)

    def test_share_price(self):
        acquirer, _ = self.make_pair(6_000_000.0, 0.0)
        assert abs(ipo_share_price(acquirer, CorporateConfig()) - 90.0) < 1e-9
