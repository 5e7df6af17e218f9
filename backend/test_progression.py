"""
Unit tests for the progression subsystem

Tests cover:
- Achievement rewards granted exactly once
- Prestige tiers unlocked in ascending order
- Tier bonuses stored as effective multipliers, never compounded
- Feature unlocks
"""

from entities import EntityRegistry
from progression import ProgressionSystem


def make_system(cash: float = 0.0):
    registry = EntityRegistry()
    entity = registry.get(registry.create("Venture", "General", "Global", cash, principal=True))
    system = ProgressionSystem(registry)
    system.ensure_entity(entity.entity_id)
    return system, entity


class TestAchievements:
    """Test suite for achievement tracking"""

    def test_reward_granted_exactly_once(self):
        system, entity = make_system(cash=1_000_000.0)

        completed = system.update_achievements(entity)
        assert [a.name for a in completed] == ["First Million"]
        assert entity.cash == 1_050_000.0

        for _ in range(5):
            assert system.update_achievements(entity) == []
        assert entity.cash == 1_050_000.0

    def test_completed_achievement_stays_completed(self):
        system, entity = make_system(cash=1_000_000.0)
        system.update_achievements(entity)
        entity.cash = 0.0
        system.update_achievements(entity)
        first_million = system.status(entity.entity_id).achievements[0]
        assert first_million.completed

    def test_crisis_survivor_counts_resolved_crises(self):
        system, entity = make_system()
        entity.crises_resolved = 5
        names = [a.name for a in system.update_achievements(entity)]
        assert "Crisis Survivor" in names

    def test_progress_fraction(self):
        system, entity = make_system(cash=1_000_000.0)
        system.update_achievements(entity)
        assert abs(entity.achievement_progress - 0.1) < 1e-12
        assert abs(system.status(entity.entity_id).progress - 0.1) < 1e-12


class TestPrestige:
    """Test suite for prestige tiers and bonuses"""

    def test_tiers_unlock_in_ascending_order(self):
        system, entity = make_system(cash=600_000.0)  # net value 1.2M

        unlocked = system.update_prestige_levels(entity)

        assert [t.level for t in unlocked] == [1, 2]
        assert entity.prestige_level == 2
        assert system.current_prestige(entity.entity_id) == "Small Business"

    def test_bonus_applied_once_not_compounded(self):
        system, entity = make_system(cash=600_000.0)
        system.update_prestige_levels(entity)
        for _ in range(10):
            system.update_prestige_levels(entity)

        assert entity.bonus("Operational") == 1.1
        assert entity.bonus("Innovation") == 1.1
        assert entity.production_efficiency == 1.0
        assert abs(entity.effective_production_efficiency() - 1.1) < 1e-12

    def test_higher_tier_replaces_multiplier(self):
        system, entity = make_system(cash=600_000.0)
        system.update_prestige_levels(entity)
        entity.cash = 2_600_000.0
        unlocked = system.update_prestige_levels(entity)

        assert [t.level for t in unlocked] == [3]
        assert entity.bonus("Operational") == 1.2
        assert entity.bonus("Market") == 1.2
        assert entity.bonus("Innovation") == 1.1

    def test_all_bonuses_tier(self):
        system, entity = make_system(cash=30_000_000.0)
        system.update_prestige_levels(entity)
        assert entity.prestige_level == 5
        assert entity.bonus("Operational") == 1.5
        assert entity.bonus("Innovation") == 1.2
        assert entity.bonus("Financial") == 1.2
        active = {b.category for b in system.status(entity.entity_id).bonuses if b.active}
        assert active == {"Operational", "Innovation", "Market", "Financial"}

    def test_features_follow_unlocked_tiers(self):
        system, entity = make_system(cash=600_000.0)
        system.update_prestige_levels(entity)
        features = system.unlocked_features(entity.entity_id)
        assert "R&D Projects" in features
        assert "IPO Access" not in features


class TestUnlockables:
    """Test suite for feature purchases"""

    def test_unlock_debits_cost_once(self):
        system, entity = make_system(cash=1_000_000.0)
        assert system.unlock_feature(entity, "Research Lab")
        assert entity.cash == 500_000.0
        assert system.is_unlocked(entity.entity_id, "Research Lab")
        assert not system.unlock_feature(entity, "Research Lab")
        assert entity.cash == 500_000.0

    def test_unlock_requires_cash(self):
        system, entity = make_system(cash=100.0)
        assert not system.unlock_feature(entity, "Marketing HQ")

    def test_unknown_feature(self):
        system, entity = make_system(cash=1_000_000.0)
        assert not system.unlock_feature(entity, "Time Machine")
