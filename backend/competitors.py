"""
Competitor bootstrap

Rival entities are ordinary registry entries; they trade in the same
category markets as the venture during the production and sales phase.
"""

import logging
import random
from typing import List

from config import CONFIG, CompetitorConfig
from entities import Employee, EntityRegistry, Product

logger = logging.getLogger(__name__)


def create_competitors(
    registry: EntityRegistry,
    rng: random.Random,
    config: CompetitorConfig = CONFIG.competitors,
) -> List[int]:
    """
    Create the rival entities with one product and a small staff each.

    Returns:
        Entity ids of the new competitors
    """
    ids = []
    for i in range(1, config.count + 1):
        industry = rng.choice(config.industries)
        capital = config.base_capital + rng.uniform(-config.capital_jitter, config.capital_jitter)
        entity_id = registry.create(f"AI Corp {i}", industry, config.region, capital)
        entity = registry.get(entity_id)

        entity.add_product(Product(
            name=f"AI Product {i}",
            category=industry,
            price=config.product_price,
            cost=config.product_cost,
        ))
        # Founding staff join without a signing payment
        for j in range(config.employees):
            entity.employees.append(
                Employee(name=f"AI Corp {i} Employee {j + 1}", role="Worker", wage=config.employee_wage)
            )
        ids.append(entity_id)
        logger.info(f"Competitor {entity.name} entered {industry} with {capital:,.0f}")
    return ids
