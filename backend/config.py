"""
Simulation Configuration

Centralizes all tunable parameters for the venture simulation.
Every subsystem receives its own section; the orchestrator passes the
sections down so no subsystem reaches for module-level state.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass
class TimeConfig:
    """Time-related constants."""
    ticks_per_month: int = 30  # One tick = one day
    days_per_tick: int = 1


@dataclass
class MarketConfig:
    """Market engine parameters."""
    default_elasticity: float = 1.0


@dataclass
class FinanceConfig:
    """Loans, investments and taxation."""
    base_tax_rate: float = 0.2
    base_interest_rate: float = 0.05
    max_loan_to_cash_ratio: float = 2.0

    # Progressive tax brackets (taxable income threshold -> surcharge)
    high_bracket_threshold: float = 1_000_000.0
    high_bracket_surcharge: float = 0.10
    mid_bracket_threshold: float = 500_000.0
    mid_bracket_surcharge: float = 0.05

    # Investment return model: type -> (base rate, jitter)
    investment_returns: Dict[str, Tuple[float, float]] = field(default_factory=lambda: {
        "stocks": (0.15, 0.05),
        "bonds": (0.05, 0.01),
        "realestate": (0.10, 0.03),
    })
    default_investment_return: Tuple[float, float] = (0.08, 0.02)


@dataclass
class LogisticsConfig:
    """Suppliers, deliveries and warehousing."""
    base_delivery_ticks: float = 5.0
    delivery_variance: float = 2.0
    failure_multiplier: float = 0.1
    quality_nudge_rate: float = 0.1  # quality *= 1 + (supplier_quality - 0.5) * rate
    storage_cost_per_unit: float = 0.1
    warehouse_operating_cost: float = 1000.0
    starting_warehouse_capacity: int = 1000


@dataclass
class CrisisConfig:
    """Adverse events and mitigations."""
    crisis_chance: float = 0.05
    base_resistance: float = 0.3
    response_resistance_cap: float = 0.8
    prevention_resistance_cap: float = 0.9
    response_resistance_gain: float = 0.1  # share of effectiveness added to resistance
    prevention_divisor: float = 100_000.0
    legal_cost_per_tick: float = 1000.0  # multiplied by the LegalCosts effect value


@dataclass
class MarketingConfig:
    """Campaigns, reputation and research studies."""
    satisfaction_decay: float = 0.05
    brand_decay: float = 0.1
    segment_satisfaction_rate: float = 0.1
    segment_loyalty_rate: float = 0.05
    customer_service_divisor: float = 10_000.0
    social_responsibility_divisor: float = 50_000.0
    environmental_divisor: float = 75_000.0


@dataclass
class InternationalConfig:
    """Foreign markets, subsidiaries and exchange rates."""
    expansion_cost: float = 500_000.0
    subsidiary_setup_cost: float = 1_000_000.0
    fx_volatility: float = 0.05
    subsidiary_revenue_rate: float = 0.1
    subsidiary_holding_cost_rate: float = 0.05


@dataclass
class ResearchConfig:
    """R&D projects, patents and researchers."""
    base_efficiency: float = 1.0
    specialization_bonus: float = 1.5
    patent_duration: int = 100
    licensing_rate: float = 0.01
    innovation_per_project: float = 10.0


@dataclass
class ProgressionConfig:
    """Achievements, prestige and unlockables."""
    achievement_reward_scale: float = 1.0


@dataclass
class ScenarioConfig:
    """Scenarios, timed challenges and special events."""
    base_reward: float = 100_000.0
    difficulty_multipliers: Dict[str, float] = field(default_factory=lambda: {
        "Easy": 0.5,
        "Medium": 1.0,
        "Hard": 2.0,
        "Expert": 4.0,
    })
    challenge_chance: float = 0.1
    challenge_reward_rate: float = 0.1
    special_event_chance: float = 0.05


@dataclass
class CompetitorConfig:
    """Rival entities bootstrapped at simulation start."""
    count: int = 3
    base_capital: float = 150_000.0
    capital_jitter: float = 20_000.0
    industries: Tuple[str, ...] = ("General", "Tech", "Food")
    region: str = "Global"
    product_price: float = 100.0
    product_cost: float = 50.0
    employees: int = 5
    employee_wage: float = 2000.0


@dataclass
class OperationsConfig:
    """Daily production, sales and payroll."""
    units_per_tick: int = 10
    base_demand: int = 8
    demand_jitter: int = 2
    quality_demand_weight: float = 0.5
    share_smoothing_alpha: float = 0.3
    training_cooldown: int = 5
    # Starting credit score adjustments for well-capitalized ventures
    credit_bonus_high_capital: float = 200_000.0
    credit_bonus_mid_capital: float = 100_000.0
    credit_bonus_high: float = 100.0
    credit_bonus_mid: float = 50.0


@dataclass
class EventConfig:
    """Random business events rolled once per tick."""
    enabled: bool = True
    boom_amount: float = 20_000.0
    downturn_amount: float = 15_000.0
    policy_amount: float = 10_000.0
    strike_morale_drop: float = 0.3
    breakthrough_cost_factor: float = 0.8
    research_breakthrough_progress: float = 0.2


@dataclass
class OutcomeConfig:
    """Win/loss thresholds."""
    bankruptcy_threshold: float = -50_000.0
    empire_threshold: float = 1_000_000.0
    domination_share: float = 0.5
    compliance_threshold: float = 50.0
    compliance_penalty: float = 10_000.0
    compliance_reputation_penalty: float = 5.0
    # Consecutive ticks without staff or products before the venture is defunct
    grace_ticks: int = 30


@dataclass
class CorporateConfig:
    """Acquisitions and public listing."""
    ipo_min_net_worth: float = 5_000_000.0
    ipo_min_days: int = 730
    ipo_pe_ratio: float = 15.0


@dataclass
class SimulationConfig:
    """Master configuration for the entire simulation."""

    time: TimeConfig = field(default_factory=TimeConfig)
    market: MarketConfig = field(default_factory=MarketConfig)
    finance: FinanceConfig = field(default_factory=FinanceConfig)
    logistics: LogisticsConfig = field(default_factory=LogisticsConfig)
    crisis: CrisisConfig = field(default_factory=CrisisConfig)
    marketing: MarketingConfig = field(default_factory=MarketingConfig)
    international: InternationalConfig = field(default_factory=InternationalConfig)
    research: ResearchConfig = field(default_factory=ResearchConfig)
    progression: ProgressionConfig = field(default_factory=ProgressionConfig)
    scenarios: ScenarioConfig = field(default_factory=ScenarioConfig)
    competitors: CompetitorConfig = field(default_factory=CompetitorConfig)
    operations: OperationsConfig = field(default_factory=OperationsConfig)
    events: EventConfig = field(default_factory=EventConfig)
    outcome: OutcomeConfig = field(default_factory=OutcomeConfig)
    corporate: CorporateConfig = field(default_factory=CorporateConfig)

    def __post_init__(self):
        """Validation of cross-cutting bounds."""
        if self.time.ticks_per_month <= 0:
            raise ValueError("ticks_per_month must be positive")

        for name, value in (
            ("crisis_chance", self.crisis.crisis_chance),
            ("base_resistance", self.crisis.base_resistance),
            ("failure_multiplier", self.logistics.failure_multiplier),
            ("challenge_chance", self.scenarios.challenge_chance),
            ("special_event_chance", self.scenarios.special_event_chance),
        ):
            if not (0.0 <= value <= 1.0):
                raise ValueError(f"{name} must be in [0, 1], got {value}")

        if self.crisis.response_resistance_cap > self.crisis.prevention_resistance_cap:
            raise ValueError("response_resistance_cap cannot exceed prevention_resistance_cap")
        if self.finance.max_loan_to_cash_ratio <= 0:
            raise ValueError("max_loan_to_cash_ratio must be positive")
        if self.market.default_elasticity <= 0:
            raise ValueError("default_elasticity must be positive")
        if self.competitors.count < 0:
            raise ValueError("competitor count cannot be negative")


# Global configuration instance
CONFIG = SimulationConfig()
