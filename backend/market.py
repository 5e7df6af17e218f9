"""
Market Engine

Per-category price discovery. Each category market accumulates supply and
demand during a tick and derives a clearing price from their ratio. The
engine never resets its own counters: the orchestrator reads prices and
then calls reset_all() once per tick.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from config import CONFIG, MarketConfig


@dataclass(slots=True)
class Market:
    """Supply/demand counters for one product category."""

    category: str
    elasticity: float = 1.0
    total_supply: float = 0.0
    total_demand: float = 0.0
    last_price: float = 0.0

    def __post_init__(self):
        if self.elasticity <= 0:
            raise ValueError(f"elasticity must be positive for {self.category}")


class MarketEngine:
    """Registry of category markets, created lazily on first reference."""

    def __init__(self, config: MarketConfig = CONFIG.market):
        self.config = config
        self._markets: Dict[str, Market] = {}

    def get_or_create(self, category: str, elasticity: Optional[float] = None) -> Market:
        market = self._markets.get(category)
        if market is None:
            if elasticity is None:
                elasticity = self.config.default_elasticity
            market = Market(category=category, elasticity=elasticity)
            self._markets[category] = market
        return market

    def get(self, category: str) -> Optional[Market]:
        return self._markets.get(category)

    def accumulate_supply(self, market: Market, amount: float) -> None:
        market.total_supply += amount

    def accumulate_demand(self, market: Market, amount: float) -> None:
        market.total_demand += amount

    def clear_price(self, market: Market) -> float:
        """
        Derive the clearing price for a market.

        A category with no supply prices at its elasticity rather than
        dividing by zero.
        """
        if market.total_supply > 0:
            price = market.total_demand / market.total_supply * market.elasticity
        else:
            price = market.elasticity
        market.last_price = price
        return price

    def reset_all(self) -> None:
        for market in self._markets.values():
            market.total_supply = 0.0
            market.total_demand = 0.0

    def prices(self) -> Dict[str, float]:
        """Snapshot of last cleared prices by category."""
        return {category: m.last_price for category, m in self._markets.items()}

    def categories(self) -> List[str]:
        return list(self._markets.keys())
