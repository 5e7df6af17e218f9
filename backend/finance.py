"""
Finance Subsystem

Loans, investments and progressive taxation for every entity. Loans are
capped at a multiple of current cash and priced by existing leverage;
investments mature into principal plus a randomly drawn return.
"""

import copy
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from config import CONFIG, FinanceConfig
from entities import Entity, EntityRegistry

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Loan:
    """Amortizing loan with a fixed per-tick installment."""

    principal: float
    interest_rate: float
    term: int
    remaining_term: int = field(init=False)
    installment: float = field(init=False)

    def __post_init__(self):
        if self.term <= 0:
            raise ValueError(f"loan term must be positive, got {self.term}")
        self.remaining_term = self.term
        self.installment = self.principal * (1.0 + self.interest_rate) / self.term

    @property
    def principal_per_payment(self) -> float:
        return self.principal / self.term

    @property
    def is_repaid(self) -> bool:
        return self.remaining_term <= 0

    def process_payment(self) -> float:
        """Advance one term and return the installment due (0 once repaid)."""
        if self.remaining_term <= 0:
            return 0.0
        self.remaining_term -= 1
        return self.installment


@dataclass(slots=True)
class Investment:
    """Principal locked until maturity, then paid out with its return."""

    kind: str
    principal: float
    return_rate: float
    maturity: int
    remaining_ticks: int = field(init=False)

    def __post_init__(self):
        if self.maturity <= 0:
            raise ValueError(f"maturity must be positive, got {self.maturity}")
        self.remaining_ticks = self.maturity

    @property
    def payout(self) -> float:
        return self.principal * (1.0 + self.return_rate)


@dataclass(frozen=True)
class FinanceStatus:
    """Read-only view of an entity's loans and investments."""

    entity_id: int
    loans: Tuple[Loan, ...] = ()
    investments: Tuple[Investment, ...] = ()
    outstanding_principal: float = 0.0
    invested_principal: float = 0.0


class FinanceSystem:
    """Owns every loan and investment record, keyed by entity id."""

    def __init__(
        self,
        registry: EntityRegistry,
        rng: random.Random,
        config: FinanceConfig = CONFIG.finance,
    ):
        self.registry = registry
        self.rng = rng
        self.config = config
        self.loans: Dict[int, List[Loan]] = {}
        self.investments: Dict[int, List[Investment]] = {}

    def outstanding_principal(self, entity_id: int) -> float:
        return sum(loan.principal for loan in self.loans.get(entity_id, []))

    def take_loan(self, entity: Entity, amount: float, term: int) -> bool:
        """
        Borrow against current cash.

        Rejected when existing plus requested principal would exceed the
        configured multiple of cash. The rate rises with the leverage the
        loan leaves behind: (existing + requested) principal over cash.
        """
        if amount <= 0 or term <= 0:
            return False
        existing = self.outstanding_principal(entity.entity_id)
        if existing + amount > entity.cash * self.config.max_loan_to_cash_ratio:
            logger.debug(f"Loan of {amount:.0f} rejected for {entity.name}: exceeds cap")
            return False

        rate = self.config.base_interest_rate * (1.0 + (existing + amount) / entity.cash)
        loan = Loan(principal=amount, interest_rate=rate, term=term)
        self.loans.setdefault(entity.entity_id, []).append(loan)
        entity.cash += amount
        entity.add_liability(amount)
        entity.update_peaks()
        logger.info(f"{entity.name} borrowed {amount:,.0f} at {rate:.2%} over {term} ticks")
        return True

    def make_investment(self, entity: Entity, kind: str, amount: float, maturity: int) -> bool:
        if amount <= 0 or maturity <= 0 or not entity.can_afford(amount):
            return False
        base, jitter = self.config.investment_returns.get(
            kind.lower(), self.config.default_investment_return
        )
        return_rate = base + self.rng.uniform(-jitter, jitter)
        self.investments.setdefault(entity.entity_id, []).append(
            Investment(kind=kind, principal=amount, return_rate=return_rate, maturity=maturity)
        )
        entity.cash -= amount
        return True

    def compute_tax(self, entity: Entity, revenue: float, expenses: float) -> float:
        """Progressive tax on taxable income, floored at zero."""
        taxable = revenue - expenses
        rate = self.config.base_tax_rate
        if taxable > self.config.high_bracket_threshold:
            rate += self.config.high_bracket_surcharge
        elif taxable > self.config.mid_bracket_threshold:
            rate += self.config.mid_bracket_surcharge
        return max(0.0, taxable * rate)

    def process(self, entity: Entity) -> None:
        """Collect installments and mature investments for one entity."""
        loans = self.loans.get(entity.entity_id)
        if loans:
            for loan in loans:
                payment = loan.process_payment()
                if payment > 0:
                    entity.spend(payment)
                    entity.reduce_liability(loan.principal_per_payment)
            self.loans[entity.entity_id] = [loan for loan in loans if not loan.is_repaid]

        investments = self.investments.get(entity.entity_id)
        if investments:
            still_locked = []
            for investment in investments:
                investment.remaining_ticks -= 1
                if investment.remaining_ticks <= 0:
                    entity.cash += investment.payout
                    entity.update_peaks()
                else:
                    still_locked.append(investment)
            self.investments[entity.entity_id] = still_locked

    def close_month(self, entity: Entity, days: int) -> float:
        """
        Settle monthly taxes and roll the entity's accumulators.

        Returns:
            Tax paid this month
        """
        tax = self.compute_tax(entity, entity.revenue, entity.expenses)
        if tax > 0:
            entity.cash -= tax
            entity.taxes_paid += tax
        entity.update_monthly_financials(days)
        entity.update_credit_score()
        return tax

    def transfer(self, from_id: int, to_id: int) -> None:
        """Move loan records from one entity to another (acquisitions)."""
        moved = self.loans.pop(from_id, [])
        if moved:
            self.loans.setdefault(to_id, []).extend(moved)

    def remove_entity(self, entity_id: int) -> None:
        self.loans.pop(entity_id, None)
        self.investments.pop(entity_id, None)

    def status(self, entity_id: int) -> FinanceStatus:
        loans = tuple(copy.copy(loan) for loan in self.loans.get(entity_id, []))
        investments = tuple(copy.copy(inv) for inv in self.investments.get(entity_id, []))
        return FinanceStatus(
            entity_id=entity_id,
            loans=loans,
            investments=investments,
            outstanding_principal=sum(loan.principal for loan in loans),
            invested_principal=sum(inv.principal for inv in investments),
        )
