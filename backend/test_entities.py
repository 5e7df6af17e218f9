"""
Unit tests for the entity registry and entity ledger

Tests cover:
- Stable, never-reused integer ids
- Single principal per registry
- Ledger helpers (earn/spend) and derived balance-sheet values
- Production and sales bookkeeping
- Effective efficiencies and credit score bonuses
"""

import pytest

from entities import Employee, Entity, EntityRegistry, Product


def make_entity(cash: float = 100_000.0) -> Entity:
    return Entity(entity_id=1, name="Acme", industry="General", region="Global", cash=cash)


class TestEntityRegistry:
    """Test suite for EntityRegistry"""

    def test_ids_are_monotonic_and_not_reused(self):
        """Removing an entity must not free its id for reuse"""
        registry = EntityRegistry()
        first = registry.create("A", "General", "Global", 1000.0)
        second = registry.create("B", "General", "Global", 1000.0)
        registry.remove(second)
        third = registry.create("C", "General", "Global", 1000.0)

        assert first == 1
        assert second == 2
        assert third == 3
        assert second not in registry
        assert len(registry) == 2

    def test_only_one_principal(self):
        """A second principal entity is a programming error"""
        registry = EntityRegistry()
        registry.create("Venture", "General", "Global", 1000.0, principal=True)
        with pytest.raises(ValueError):
            registry.create("Other", "General", "Global", 1000.0, principal=True)

    def test_principal_and_competitors(self):
        """Competitors are every entity except the principal"""
        registry = EntityRegistry()
        venture_id = registry.create("Venture", "General", "Global", 1000.0, principal=True)
        rival_id = registry.create("Rival", "Tech", "Global", 1000.0)

        assert registry.principal.entity_id == venture_id
        assert [e.entity_id for e in registry.competitors()] == [rival_id]

    def test_missing_lookup_returns_none(self):
        """Unknown ids are a silent miss, not an error"""
        registry = EntityRegistry()
        assert registry.get(42) is None
        assert registry.get(None) is None
        assert registry.principal is None

    def test_removing_principal_clears_principal(self):
        registry = EntityRegistry()
        venture_id = registry.create("Venture", "General", "Global", 1000.0, principal=True)
        registry.remove(venture_id)
        assert registry.principal is None


class TestEntityLedger:
    """Test suite for Entity cash bookkeeping"""

    def test_earn_accrues_revenue_and_peak(self):
        """Earning credits cash, revenue and lifetime revenue"""
        entity = make_entity(1000.0)
        entity.earn(500.0)

        assert entity.cash == 1500.0
        assert entity.revenue == 500.0
        assert entity.total_revenue_ever == 500.0
        assert entity.peak_cash == 1500.0

    def test_spend_may_go_negative(self):
        """Cash is allowed to go below zero (short-term debt)"""
        entity = make_entity(100.0)
        entity.spend(300.0)

        assert entity.cash == -200.0
        assert entity.expenses == 300.0

    def test_negative_amounts_rejected(self):
        """Negative ledger amounts indicate a caller bug"""
        entity = make_entity()
        with pytest.raises(ValueError):
            entity.earn(-1.0)
        with pytest.raises(ValueError):
            entity.spend(-1.0)

    def test_net_worth_is_assets_minus_liabilities(self):
        """Net worth is always computable from current fields"""
        entity = make_entity(10_000.0)
        entity.add_product(Product(name="Widget", category="General", price=100.0, cost=40.0, inventory=10))
        entity.add_liability(2_500.0)

        assert entity.total_assets == 10_400.0
        assert entity.net_worth == 7_900.0

    def test_reduce_liability_floors_at_zero(self):
        entity = make_entity()
        entity.add_liability(100.0)
        entity.reduce_liability(250.0)
        assert entity.total_liabilities == 0.0

    def test_monthly_close_rolls_accumulators(self):
        """Month close moves accrued values into last-month fields"""
        entity = make_entity()
        entity.earn(3000.0)
        entity.spend(1000.0)
        entity.update_monthly_financials(30)

        assert entity.last_month_revenue == 3000.0
        assert entity.last_month_expenses == 1000.0
        assert entity.total_profit_ever == 2000.0
        assert entity.revenue == 0.0
        assert entity.expenses == 0.0
        assert entity.days_in_business == 30


class TestStaffAndProducts:
    """Test suite for hiring, production and sales"""

    def test_hire_pays_first_wage(self):
        entity = make_entity(10_000.0)
        entity.hire_employee(Employee(name="Ann", role="Worker", wage=2000.0))

        assert len(entity.employees) == 1
        assert entity.cash == 8000.0

    def test_fire_pays_severance(self):
        entity = make_entity(10_000.0)
        employee = Employee(name="Ann", role="Worker", wage=2000.0)
        entity.employees.append(employee)

        assert entity.fire_employee(employee)
        assert entity.cash == 8000.0
        assert not entity.fire_employee(employee)

    def test_skill_is_clamped(self):
        employee = Employee(name="Ann", role="Worker", wage=1.0, skill=5.0)
        assert employee.skill == 2.0
        employee.train(-10.0, current_tick=0)
        assert employee.skill == 0.5

    def test_produce_scales_with_skill_and_efficiency(self):
        """Output = quantity x average skill x effective production efficiency"""
        entity = make_entity(10_000.0)
        entity.employees.append(Employee(name="Ann", role="Worker", wage=0.0, skill=1.5))
        product = Product(name="Widget", category="General", price=100.0, cost=10.0)
        entity.add_product(product)

        units = entity.produce(product, 10)

        assert units == 15
        assert product.inventory == 15
        assert entity.cash == 10_000.0 - 150.0

    def test_produce_nothing_when_unaffordable(self):
        entity = make_entity(50.0)
        product = Product(name="Widget", category="General", price=100.0, cost=10.0)

        assert entity.produce(product, 10) == 0
        assert product.inventory == 0
        assert entity.cash == 50.0

    def test_sell_limited_by_inventory(self):
        entity = make_entity(0.0)
        product = Product(name="Widget", category="General", price=100.0, cost=10.0, inventory=3)

        sold = entity.sell(product, 5, 80.0)

        assert sold == 3
        assert product.inventory == 0
        assert entity.cash == 240.0

    def test_quality_clamped(self):
        product = Product(name="Widget", category="General", price=1.0, cost=1.0, quality=3.0)
        assert product.quality == 2.0
        product.scale_quality(0.1)
        assert product.quality == 0.5


class TestEffectiveMultipliers:
    """Prestige bonuses are applied as separate multipliers, never compounded into base fields"""

    def test_effective_efficiency_uses_bonus(self):
        entity = make_entity()
        entity.production_efficiency = 1.2
        entity.bonus_multipliers["Operational"] = 1.5

        assert abs(entity.effective_production_efficiency() - 1.8) < 1e-9
        assert entity.production_efficiency == 1.2

    def test_credit_score_clamped_with_financial_bonus(self):
        entity = make_entity(5_000_000.0)
        entity.bonus_multipliers["Financial"] = 2.0
        entity.update_credit_score()

        assert 300.0 <= entity.credit_score <= 850.0
        assert entity.credit_score == 850.0

    def test_modifier_defaults_to_one(self):
        entity = make_entity()
        assert entity.modifier("Revenue") == 1.0
        entity.modifiers["Revenue"] = 1.3
        assert entity.modifier("Revenue") == 1.3
