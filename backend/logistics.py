"""
Logistics Subsystem

Suppliers, purchase orders and warehousing. Orders are paid up front and
carried as a liability until delivery; a delivered order is stored in the
first warehouse with room and nudges product quality toward the
supplier's quality.
"""

import copy
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config import CONFIG, LogisticsConfig
from entities import Entity, EntityRegistry

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Supplier:
    """A source of raw materials with a bulk-discounted price curve."""

    name: str
    material: str
    base_price: float
    reliability: float  # 0-1, probability weight against delivery failure
    quality: float  # 0-1
    min_order: int
    bulk_threshold: int
    bulk_discount: float  # fraction off the unit price at or above bulk_threshold

    def __post_init__(self):
        if not (0.0 <= self.reliability <= 1.0):
            raise ValueError(f"reliability must be in [0,1], got {self.reliability}")
        if not (0.0 <= self.bulk_discount < 1.0):
            raise ValueError(f"bulk_discount must be in [0,1), got {self.bulk_discount}")

    def unit_price(self, quantity: int) -> float:
        if quantity >= self.bulk_threshold:
            return self.base_price * (1.0 - self.bulk_discount)
        return self.base_price

    def order_cost(self, quantity: int) -> float:
        return self.unit_price(quantity) * quantity


@dataclass(slots=True)
class SupplyOrder:
    supplier: Supplier
    quantity: int
    total_cost: float
    remaining_ticks: int
    delivered: bool = False


@dataclass(slots=True)
class Warehouse:
    """Storage location with a per-material stock map."""

    location: str
    capacity: int
    stock: Dict[str, int] = field(default_factory=dict)
    storage_cost_per_unit: float = 0.1
    operating_cost: float = 1000.0

    @property
    def stored(self) -> int:
        return sum(self.stock.values())

    def can_store(self, amount: int) -> bool:
        return self.stored + amount <= self.capacity

    def store(self, material: str, amount: int) -> bool:
        if not self.can_store(amount):
            return False
        self.stock[material] = self.stock.get(material, 0) + amount
        return True

    def holding_cost(self) -> float:
        return self.stored * self.storage_cost_per_unit + self.operating_cost


@dataclass(frozen=True)
class LogisticsStatus:
    entity_id: int
    suppliers: Tuple[Supplier, ...] = ()
    orders: Tuple[SupplyOrder, ...] = ()
    warehouses: Tuple[Warehouse, ...] = ()


def default_suppliers() -> List[Supplier]:
    """Starting supplier catalog offered to a new venture."""
    return [
        Supplier("Quality Materials Co.", "Raw Materials", 100.0, 0.9, 0.9, 10, 50, 0.15),
        Supplier("Budget Supplies Inc.", "Raw Materials", 60.0, 0.7, 0.6, 5, 30, 0.10),
        Supplier("Premium Components", "Components", 200.0, 0.95, 0.95, 5, 20, 0.20),
        Supplier("Global Trading LLC", "Components", 150.0, 0.8, 0.8, 8, 40, 0.12),
    ]


class LogisticsSystem:
    """Owns suppliers, outstanding orders and warehouses per entity."""

    def __init__(
        self,
        registry: EntityRegistry,
        rng: random.Random,
        config: LogisticsConfig = CONFIG.logistics,
    ):
        self.registry = registry
        self.rng = rng
        self.config = config
        self.suppliers: Dict[int, List[Supplier]] = {}
        self.orders: Dict[int, List[SupplyOrder]] = {}
        self.warehouses: Dict[int, List[Warehouse]] = {}

    def bootstrap_entity(self, entity: Entity) -> None:
        """Give a new venture its starting supplier roster and one warehouse."""
        self.suppliers[entity.entity_id] = default_suppliers()
        self.add_warehouse(entity, entity.region, self.config.starting_warehouse_capacity)

    def find_supplier(self, entity_id: int, name: str) -> Optional[Supplier]:
        for supplier in self.suppliers.get(entity_id, []):
            if supplier.name == name:
                return supplier
        return None

    def _delivery_ticks(self) -> int:
        variance = self.rng.uniform(-self.config.delivery_variance, self.config.delivery_variance)
        return max(1, int(round(self.config.base_delivery_ticks + variance)))

    def place_order(self, entity: Entity, supplier: Supplier, quantity: int) -> bool:
        """
        Buy materials from a supplier.

        Rejected below the supplier's minimum order or when cash cannot
        cover the cost. Cost is debited now and held as a liability until
        the order resolves.
        """
        if quantity < supplier.min_order:
            logger.debug(f"Order of {quantity} from {supplier.name} below minimum {supplier.min_order}")
            return False
        cost = supplier.order_cost(quantity)
        if not entity.can_afford(cost):
            return False

        entity.spend(cost)
        entity.add_liability(cost)
        self.orders.setdefault(entity.entity_id, []).append(
            SupplyOrder(
                supplier=supplier,
                quantity=quantity,
                total_cost=cost,
                remaining_ticks=self._delivery_ticks(),
            )
        )
        return True

    def add_warehouse(self, entity: Entity, location: str, capacity: int) -> Optional[Warehouse]:
        if capacity <= 0:
            return None
        warehouse = Warehouse(
            location=location,
            capacity=capacity,
            storage_cost_per_unit=self.config.storage_cost_per_unit,
            operating_cost=self.config.warehouse_operating_cost,
        )
        self.warehouses.setdefault(entity.entity_id, []).append(warehouse)
        return warehouse

    def process(self) -> None:
        """Advance deliveries and charge warehouse costs for every entity."""
        for entity_id, orders in list(self.orders.items()):
            entity = self.registry.get(entity_id)
            if entity is None:
                continue
            for order in orders:
                if order.delivered:
                    continue
                order.remaining_ticks -= 1
                if order.remaining_ticks <= 0:
                    self._resolve_delivery(entity, order)
            self.orders[entity_id] = [o for o in orders if not o.delivered]

        for entity_id, warehouses in self.warehouses.items():
            entity = self.registry.get(entity_id)
            if entity is None:
                continue
            for warehouse in warehouses:
                entity.spend(warehouse.holding_cost())

    def _resolve_delivery(self, entity: Entity, order: SupplyOrder) -> None:
        failure_chance = (1.0 - order.supplier.reliability) * self.config.failure_multiplier
        if self.rng.random() < failure_chance:
            entity.cash += order.total_cost
            entity.expenses = max(0.0, entity.expenses - order.total_cost)
            entity.reduce_liability(order.total_cost)
            order.delivered = True
            logger.info(f"Delivery from {order.supplier.name} to {entity.name} failed; refunded")
            return

        for warehouse in self.warehouses.get(entity.entity_id, []):
            if warehouse.store(order.supplier.material, order.quantity):
                entity.reduce_liability(order.total_cost)
                order.delivered = True
                factor = 1.0 + (
                    (order.supplier.quality - 0.5)
                    * self.config.quality_nudge_rate
                    * entity.logistics_efficiency
                )
                for product in entity.products:
                    product.scale_quality(factor)
                return

        # No warehouse has room; try again next tick
        order.remaining_ticks = 1

    def remove_entity(self, entity_id: int) -> None:
        self.suppliers.pop(entity_id, None)
        self.orders.pop(entity_id, None)
        self.warehouses.pop(entity_id, None)

    def status(self, entity_id: int) -> LogisticsStatus:
        return LogisticsStatus(
            entity_id=entity_id,
            suppliers=tuple(copy.copy(s) for s in self.suppliers.get(entity_id, [])),
            orders=tuple(copy.copy(o) for o in self.orders.get(entity_id, [])),
            warehouses=tuple(copy.deepcopy(w) for w in self.warehouses.get(entity_id, [])),
        )
