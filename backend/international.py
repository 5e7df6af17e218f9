"""
International Subsystem

Foreign market entries, subsidiaries, trade agreements and exchange rates.
Exchange rates are quoted in local currency units per USD and drift by a
bounded random walk every tick; subsidiary profits are converted back to
USD before being remitted to the parent.
"""

import copy
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config import CONFIG, InternationalConfig
from entities import Employee, Entity, EntityRegistry, Product

logger = logging.getLogger(__name__)

HOME_CURRENCY = "USD"

BASE_EXCHANGE_RATES: Dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.85,
    "GBP": 0.73,
    "JPY": 110.0,
    "CNY": 6.45,
    "INR": 74.5,
    "BRL": 5.2,
    "RUB": 73.8,
}

COUNTRY_CURRENCIES: Dict[str, str] = {
    "germany": "EUR",
    "france": "EUR",
    "italy": "EUR",
    "spain": "EUR",
    "uk": "GBP",
    "united kingdom": "GBP",
    "japan": "JPY",
    "china": "CNY",
    "india": "INR",
    "brazil": "BRL",
    "russia": "RUB",
}

REGULATORY_COSTS: Dict[str, float] = {
    "germany": 0.25,
    "japan": 0.3,
    "china": 0.4,
    "india": 0.35,
}

REGULATIONS: Dict[str, Tuple[str, ...]] = {
    "germany": ("Environmental Standards", "Labor Laws"),
    "japan": ("Quality Standards", "Import Restrictions"),
    "china": ("Government Approval", "Local Partnership"),
    "india": ("Bureaucratic Procedures", "Local Content"),
}

LOCAL_PREFERENCES: Dict[str, Dict[str, float]] = {
    "germany": {"Quality": 0.9, "Eco-Friendly": 0.8, "Price": 0.6},
    "japan": {"Quality": 0.95, "Innovation": 0.9, "Service": 0.8},
    "china": {"Price": 0.8, "Technology": 0.7, "Brand": 0.6},
    "india": {"Price": 0.9, "Value": 0.8, "Local": 0.7},
}

MARKET_POTENTIAL: Dict[str, float] = {
    "germany": 5_000_000.0,
    "france": 4_000_000.0,
    "united kingdom": 4_500_000.0,
    "uk": 4_500_000.0,
    "japan": 6_000_000.0,
    "china": 15_000_000.0,
    "india": 8_000_000.0,
    "brazil": 3_000_000.0,
    "russia": 2_500_000.0,
}
DEFAULT_MARKET_POTENTIAL = 1_000_000.0

AVAILABLE_COUNTRIES = (
    "Germany", "France", "United Kingdom", "Japan", "China",
    "India", "Brazil", "Russia", "Canada", "Australia",
)


def currency_for(country: str) -> str:
    return COUNTRY_CURRENCIES.get(country.lower(), HOME_CURRENCY)


@dataclass(slots=True)
class InternationalMarket:
    country: str
    currency: str
    exchange_rate: float
    market_size: float
    regulatory_cost: float
    cultural_barrier: float
    infrastructure_quality: float
    regulations: List[str] = field(default_factory=list)
    local_preferences: Dict[str, float] = field(default_factory=dict)


@dataclass(slots=True)
class Subsidiary:
    """A locally incorporated arm that remits its after-tax profit."""

    name: str
    country: str
    capital: float
    tax_rate: float
    products: List[Product] = field(default_factory=list)
    employees: List[Employee] = field(default_factory=list)
    local_revenue: float = 0.0
    local_expenses: float = 0.0
    is_profitable: bool = False

    def compute_local_results(self, revenue_rate: float, holding_rate: float) -> float:
        """Refresh local revenue/expenses and return pre-tax profit in local currency."""
        self.local_revenue = sum(p.price * p.inventory for p in self.products) * revenue_rate
        self.local_expenses = (
            sum(e.wage for e in self.employees)
            + sum(p.cost * p.inventory for p in self.products) * holding_rate
        )
        return self.local_revenue - self.local_expenses


@dataclass(slots=True)
class TradeAgreement:
    country_a: str
    country_b: str
    tariff_reduction: float
    duration: int
    remaining_ticks: int = field(init=False)

    def __post_init__(self):
        self.remaining_ticks = self.duration

    @property
    def is_active(self) -> bool:
        return self.remaining_ticks > 0


@dataclass(frozen=True)
class InternationalStatus:
    entity_id: int
    markets: Tuple[InternationalMarket, ...] = ()
    subsidiaries: Tuple[Subsidiary, ...] = ()
    agreements: Tuple[TradeAgreement, ...] = ()


class InternationalSystem:
    """Owns foreign presence per entity and the shared exchange-rate table."""

    def __init__(
        self,
        registry: EntityRegistry,
        rng: random.Random,
        config: InternationalConfig = CONFIG.international,
    ):
        self.registry = registry
        self.rng = rng
        self.config = config
        self.exchange_rates: Dict[str, float] = dict(BASE_EXCHANGE_RATES)
        self.markets: Dict[int, List[InternationalMarket]] = {}
        self.subsidiaries: Dict[int, List[Subsidiary]] = {}
        self.agreements: Dict[int, List[TradeAgreement]] = {}
        self.remitted: Dict[int, float] = {}

    def available_countries(self) -> List[str]:
        return list(AVAILABLE_COUNTRIES)

    def market_potential(self, country: str) -> float:
        return MARKET_POTENTIAL.get(country.lower(), DEFAULT_MARKET_POTENTIAL)

    def exchange_rate(self, currency: str) -> float:
        return self.exchange_rates.get(currency, 1.0)

    def has_presence(self, entity_id: int, country: str) -> bool:
        return any(m.country.lower() == country.lower() for m in self.markets.get(entity_id, []))

    def expansion_cost(self, entity: Entity) -> float:
        return self.config.expansion_cost * entity.modifier("InternationalCost")

    def expand_to_market(self, entity: Entity, country: str) -> bool:
        cost = self.expansion_cost(entity)
        if not entity.can_afford(cost) or self.has_presence(entity.entity_id, country):
            return False
        key = country.lower()
        currency = currency_for(country)
        market = InternationalMarket(
            country=country,
            currency=currency,
            exchange_rate=self.exchange_rate(currency),
            market_size=self.rng.uniform(1_000_000.0, 10_000_000.0),
            regulatory_cost=REGULATORY_COSTS.get(key, self.rng.uniform(0.1, 0.3)),
            cultural_barrier=self.rng.uniform(0.2, 0.6),
            infrastructure_quality=self.rng.uniform(0.5, 0.9),
            regulations=list(REGULATIONS.get(key, ())),
            local_preferences=dict(LOCAL_PREFERENCES.get(key, {})),
        )
        entity.spend(cost)
        entity.expand_internationally()
        self.markets.setdefault(entity.entity_id, []).append(market)
        logger.info(f"{entity.name} expanded into {country} ({currency})")
        return True

    def create_subsidiary(self, entity: Entity, country: str, name: str, capital: float) -> bool:
        if capital < 0 or not self.has_presence(entity.entity_id, country):
            return False
        total = self.config.subsidiary_setup_cost * entity.modifier("InternationalCost") + capital
        if not entity.can_afford(total):
            return False
        entity.spend(total)
        self.subsidiaries.setdefault(entity.entity_id, []).append(
            Subsidiary(name=name, country=country, capital=capital, tax_rate=self.rng.uniform(0.15, 0.35))
        )
        logger.info(f"{entity.name} opened subsidiary {name} in {country}")
        return True

    def find_subsidiary(self, entity_id: int, name: str) -> Optional[Subsidiary]:
        for subsidiary in self.subsidiaries.get(entity_id, []):
            if subsidiary.name == name:
                return subsidiary
        return None

    def stock_subsidiary(self, entity: Entity, subsidiary_name: str, product_name: str, quantity: int) -> bool:
        """
        Ship a parent product line to a subsidiary.

        The units are bought at the product's unit cost out of the
        subsidiary's own capital; repeated shipments add to its inventory.
        """
        subsidiary = self.find_subsidiary(entity.entity_id, subsidiary_name)
        product = entity.find_product(product_name)
        if subsidiary is None or product is None or quantity <= 0:
            return False
        cost = product.cost * quantity
        if cost > subsidiary.capital:
            return False
        subsidiary.capital -= cost
        local = next((p for p in subsidiary.products if p.name == product_name), None)
        if local is None:
            local = Product(
                name=product.name,
                category=product.category,
                price=product.price,
                cost=product.cost,
                quality=product.quality,
            )
            subsidiary.products.append(local)
        local.inventory += quantity
        logger.info(f"{subsidiary.name} stocked {quantity} units of {product_name}")
        return True

    def staff_subsidiary(self, entity: Entity, subsidiary_name: str, name: str, wage: float) -> bool:
        """Hire a local employee; wages are booked as subsidiary expenses every tick."""
        subsidiary = self.find_subsidiary(entity.entity_id, subsidiary_name)
        if subsidiary is None or wage < 0:
            return False
        subsidiary.employees.append(Employee(name=name, role="Local Staff", wage=wage))
        return True

    def negotiate_trade_agreement(self, entity: Entity, country_a: str, country_b: str, cost: float) -> bool:
        if cost < 0 or not entity.can_afford(cost):
            return False
        entity.spend(cost)
        self.agreements.setdefault(entity.entity_id, []).append(
            TradeAgreement(
                country_a=country_a,
                country_b=country_b,
                tariff_reduction=self.rng.uniform(0.1, 0.3),
                duration=self.rng.randint(50, 200),
            )
        )
        return True

    def process(self) -> None:
        """Drift exchange rates, remit subsidiary profits and age agreements."""
        volatility = self.config.fx_volatility
        for currency in self.exchange_rates:
            if currency == HOME_CURRENCY:
                continue
            self.exchange_rates[currency] *= self.rng.uniform(1.0 - volatility, 1.0 + volatility)

        for markets in self.markets.values():
            for market in markets:
                market.exchange_rate = self.exchange_rate(market.currency)

        for entity_id, subsidiaries in self.subsidiaries.items():
            entity = self.registry.get(entity_id)
            if entity is None:
                continue
            for subsidiary in subsidiaries:
                self._process_subsidiary(entity, subsidiary)

        for entity_id, agreements in list(self.agreements.items()):
            for agreement in agreements:
                agreement.remaining_ticks -= 1
            self.agreements[entity_id] = [a for a in agreements if a.is_active]

    def _process_subsidiary(self, entity: Entity, subsidiary: Subsidiary) -> None:
        profit = subsidiary.compute_local_results(
            self.config.subsidiary_revenue_rate, self.config.subsidiary_holding_cost_rate
        )
        taxes = max(0.0, profit) * subsidiary.tax_rate
        net_local = profit - taxes
        subsidiary.is_profitable = net_local > 0
        rate = self.exchange_rate(currency_for(subsidiary.country))
        net_home = net_local / rate * entity.modifier("ExchangeRate")
        if net_home > 0:
            entity.earn(net_home)
            self.remitted[entity.entity_id] = self.remitted.get(entity.entity_id, 0.0) + net_home

    def remitted_total(self, entity_id: int) -> float:
        return self.remitted.get(entity_id, 0.0)

    def remove_entity(self, entity_id: int) -> None:
        self.remitted.pop(entity_id, None)
        self.markets.pop(entity_id, None)
        self.subsidiaries.pop(entity_id, None)
        self.agreements.pop(entity_id, None)

    def status(self, entity_id: int) -> InternationalStatus:
        return InternationalStatus(
            entity_id=entity_id,
            markets=tuple(copy.deepcopy(m) for m in self.markets.get(entity_id, [])),
            subsidiaries=tuple(copy.deepcopy(s) for s in self.subsidiaries.get(entity_id, [])),
            agreements=tuple(copy.copy(a) for a in self.agreements.get(entity_id, [])),
        )
