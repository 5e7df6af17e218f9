"""
Unit tests for the finance subsystem

Tests cover:
- Loan cap at twice current cash and leverage-based pricing
- Installment collection and liability amortization
- Investment returns by type and maturity payout
- Progressive taxation with a zero floor
- Monthly close and loan transfer on acquisition
"""

import random

import pytest

from config import FinanceConfig
from entities import EntityRegistry
from finance import FinanceSystem, Loan


def make_system(cash: float = 100_000.0):
    registry = EntityRegistry()
    entity_id = registry.create("Venture", "General", "Global", cash, principal=True)
    system = FinanceSystem(registry, random.Random(7))
    return system, registry.get(entity_id)


class TestLoans:
    """Test suite for loan applications and repayment"""

    def test_loan_scenario(self):
        """100k cash borrowing 50k over 12 ticks: cash 150k, one loan at base x 1.5"""
        system, entity = make_system(100_000.0)

        assert system.take_loan(entity, 50_000.0, 12)

        assert entity.cash == 150_000.0
        status = system.status(entity.entity_id)
        assert len(status.loans) == 1
        assert abs(status.loans[0].interest_rate - 0.05 * (1 + 50_000.0 / 100_000.0)) < 1e-12
        assert entity.total_liabilities == 50_000.0

    def test_loan_cap_boundary(self):
        """Accept exactly 2x cash, reject anything above it"""
        system, entity = make_system(100_000.0)
        assert not system.take_loan(entity, 200_000.01, 10)
        assert entity.cash == 100_000.0

        assert system.take_loan(entity, 200_000.0, 10)
        assert entity.cash == 300_000.0

    def test_existing_principal_counts_toward_cap(self):
        system, entity = make_system(100_000.0)
        assert system.take_loan(entity, 150_000.0, 10)
        # cash is now 250k; 150k + 400k > 500k
        assert not system.take_loan(entity, 400_000.0, 10)
        assert system.take_loan(entity, 350_000.0, 10)

    def test_rejects_non_positive_terms(self):
        system, entity = make_system()
        assert not system.take_loan(entity, 0.0, 10)
        assert not system.take_loan(entity, 1000.0, 0)
        assert system.status(entity.entity_id).loans == ()

    def test_installments_and_liability_amortization(self):
        """Each tick deducts principal x (1+rate)/term and amortizes the liability"""
        system, entity = make_system(100_000.0)
        system.take_loan(entity, 10_000.0, 4)
        loan = system.loans[entity.entity_id][0]
        cash_before = entity.cash

        system.process(entity)

        assert abs(entity.cash - (cash_before - loan.installment)) < 1e-9
        assert abs(entity.total_liabilities - 7_500.0) < 1e-9

        for _ in range(3):
            system.process(entity)
        assert system.status(entity.entity_id).loans == ()
        assert entity.total_liabilities < 1e-6

    def test_loan_validation(self):
        with pytest.raises(ValueError):
            Loan(principal=1.0, interest_rate=0.1, term=0)


class TestInvestments:
    """Test suite for investments"""

    @pytest.mark.parametrize("kind,low,high", [
        ("Stocks", 0.10, 0.20),
        ("bonds", 0.04, 0.06),
        ("RealEstate", 0.07, 0.13),
        ("crypto", 0.06, 0.10),
    ])
    def test_return_rate_within_type_band(self, kind, low, high):
        system, entity = make_system()
        assert system.make_investment(entity, kind, 1000.0, 5)
        rate = system.investments[entity.entity_id][0].return_rate
        assert low <= rate <= high

    def test_insufficient_cash_rejected(self):
        system, entity = make_system(500.0)
        assert not system.make_investment(entity, "bonds", 1000.0, 5)
        assert entity.cash == 500.0

    def test_maturity_pays_principal_plus_return(self):
        system, entity = make_system(10_000.0)
        system.make_investment(entity, "bonds", 1000.0, 2)
        investment = system.investments[entity.entity_id][0]
        assert entity.cash == 9_000.0

        system.process(entity)
        assert entity.cash == 9_000.0
        system.process(entity)

        assert abs(entity.cash - (9_000.0 + 1000.0 * (1 + investment.return_rate))) < 1e-9
        assert system.status(entity.entity_id).investments == ()


class TestTaxation:
    """Test suite for progressive taxation"""

    def test_brackets(self):
        system, entity = make_system()
        assert abs(system.compute_tax(entity, 100_000.0, 0.0) - 20_000.0) < 1e-9
        assert abs(system.compute_tax(entity, 600_000.0, 0.0) - 600_000.0 * 0.25) < 1e-9
        assert abs(system.compute_tax(entity, 2_000_000.0, 0.0) - 2_000_000.0 * 0.30) < 1e-9

    def test_losses_pay_no_tax(self):
        system, entity = make_system()
        assert system.compute_tax(entity, 100.0, 5_000.0) == 0.0

    def test_custom_rate(self):
        registry = EntityRegistry()
        entity = registry.get(registry.create("V", "General", "Global", 0.0))
        system = FinanceSystem(registry, random.Random(0), FinanceConfig(base_tax_rate=0.1))
        assert abs(system.compute_tax(entity, 1000.0, 0.0) - 100.0) < 1e-9

    def test_close_month(self):
        """Month close charges tax on accrued income and resets accumulators"""
        system, entity = make_system(0.0)
        entity.earn(10_000.0)
        entity.spend(4_000.0)

        tax = system.close_month(entity, 30)

        assert abs(tax - 1_200.0) < 1e-9
        assert abs(entity.cash - (6_000.0 - 1_200.0)) < 1e-9
        assert entity.taxes_paid == tax
        assert entity.revenue == 0.0
        assert entity.days_in_business == 30


class TestTransfer:
    """Loans follow their liabilities on acquisition"""

    def test_transfer_moves_loans(self):
        registry = EntityRegistry()
        a = registry.get(registry.create("A", "General", "Global", 100_000.0))
        b = registry.get(registry.create("B", "General", "Global", 100_000.0))
        system = FinanceSystem(registry, random.Random(1))
        system.take_loan(b, 10_000.0, 5)

        system.transfer(b.entity_id, a.entity_id)

        assert system.status(b.entity_id).loans == ()
        assert len(system.status(a.entity_id).loans) == 1

    def test_missing_entity_status_is_empty(self):
        system, _ = make_system()
        status = system.status(999)
        assert status.loans == ()
        assert status.outstanding_principal == 0.0
