"""
Corporate actions: acquisitions and public listing.

These are pure eligibility/pricing rules; the orchestrator performs the
state transfer so that removal from every subsystem happens in one place.
"""

from config import CONFIG, CorporateConfig
from entities import Entity


def can_acquire(acquirer: Entity, target: Entity) -> bool:
    """Acquirer must be worth more than the target and hold cash above its net worth."""
    if acquirer.entity_id == target.entity_id:
        return False
    return acquirer.net_worth > target.net_worth and acquirer.cash > target.net_worth


def acquisition_cost(acquirer: Entity, target: Entity) -> float:
    return max(0.0, target.net_worth * acquirer.modifier("AcquisitionCost"))


def can_go_public(entity: Entity, config: CorporateConfig = CONFIG.corporate) -> bool:
    if entity.is_public:
        return False
    return entity.net_worth > config.ipo_min_net_worth and entity.days_in_business > config.ipo_min_days


def ipo_share_price(entity: Entity, config: CorporateConfig = CONFIG.corporate) -> float:
    """Initial share price from net worth (in millions) and a fixed P/E ratio."""
    return entity.net_worth / 1_000_000.0 * config.ipo_pe_ratio
