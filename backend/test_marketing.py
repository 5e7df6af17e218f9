"""
Unit tests for the marketing subsystem

Tests cover:
- Campaign effectiveness and reach by channel
- Per-tick campaign deltas before and after natural decay
- Overall reputation always equal to the mean of the six sub-scores
- Market research completion ranges
- Customer service and social responsibility investments
"""

import random

import pytest

from entities import EntityRegistry
from marketing import SUB_SCORES, BrandReputation, Campaign, MarketingSystem


def make_system(cash: float = 1_000_000.0, seed: int = 3):
    registry = EntityRegistry()
    entity = registry.get(registry.create("Venture", "General", "Global", cash, principal=True))
    system = MarketingSystem(registry, random.Random(seed))
    return system, entity


def mean_of_sub_scores(reputation: BrandReputation) -> float:
    return sum(getattr(reputation, name) for name in SUB_SCORES) / len(SUB_SCORES)


class TestCampaigns:
    """Test suite for campaign launch and effects"""

    @pytest.mark.parametrize("kind,divisor", [
        ("TV", 100_000.0),
        ("digital", 50_000.0),
        ("print", 30_000.0),
        ("social", 20_000.0),
        ("influencer", 40_000.0),
    ])
    def test_effectiveness_by_channel(self, kind, divisor):
        campaign = Campaign(name="c", kind=kind, budget=10_000.0, duration=5, target_audience="General")
        assert abs(campaign.effectiveness - 0.5 * 10_000.0 / divisor) < 1e-12

    def test_unknown_channel_defaults(self):
        campaign = Campaign(name="c", kind="skywriting", budget=10_000.0, duration=5, target_audience="General")
        assert campaign.effectiveness == 0.5
        assert campaign.reach == 1000.0

    def test_launch_debits_budget(self):
        system, entity = make_system()
        assert system.launch_campaign(entity, "tv", 100_000.0, 10)
        assert entity.cash == 900_000.0
        assert entity.expenses == 100_000.0

    def test_launch_rejected_without_cash(self):
        system, entity = make_system(cash=10.0)
        assert not system.launch_campaign(entity, "tv", 100_000.0, 10)
        assert entity.cash == 10.0

    def test_tv_campaign_delta_before_decay(self):
        """Budget 100k TV: effectiveness 0.5 raises satisfaction by 0.05 that tick"""
        system, entity = make_system()
        system.launch_campaign(entity, "tv", 100_000.0, 10)
        reputation = system.get_or_create_reputation(entity.entity_id)
        campaign = system.campaigns[entity.entity_id][0]

        assert abs(campaign.effectiveness - 0.5) < 1e-12
        system._apply_campaign(entity.entity_id, reputation, campaign)
        assert abs(reputation.customer_satisfaction - 50.05) < 1e-9

    def test_tv_campaign_full_tick_includes_decay(self):
        """Over a whole process() call the campaign delta is followed by decay"""
        system, entity = make_system()
        system.launch_campaign(entity, "tv", 100_000.0, 10)

        system.process()

        reputation = system.reputations[entity.entity_id]
        assert abs(reputation.customer_satisfaction - (50.0 + 0.05 - 0.05 - 0.1)) < 1e-9
        assert entity.customer_satisfaction == reputation.customer_satisfaction

    def test_campaign_expires_after_duration(self):
        system, entity = make_system()
        system.launch_campaign(entity, "social", 20_000.0, 2)
        system.process()
        assert len(system.status(entity.entity_id).campaigns) == 1
        system.process()
        assert system.status(entity.entity_id).campaigns == ()

    def test_segments_respond_to_general_campaigns(self):
        system, entity = make_system()
        system.launch_campaign(entity, "tv", 100_000.0, 5)
        system.process()
        for segment in system.status(entity.entity_id).segments:
            assert abs(segment.satisfaction - 50.05) < 1e-9
            assert abs(segment.loyalty - 0.525) < 1e-9


class TestReputation:
    """Overall score never drifts from the sub-score mean"""

    def test_overall_is_mean_after_every_process(self):
        system, entity = make_system(cash=10_000_000.0)
        system.launch_campaign(entity, "influencer", 400_000.0, 30)
        system.launch_campaign(entity, "digital", 50_000.0, 3)
        system.invest_in_social_responsibility(entity, 100_000.0)

        for _ in range(40):
            system.process()
            reputation = system.reputations[entity.entity_id]
            assert abs(reputation.overall_score - mean_of_sub_scores(reputation)) < 1e-9
            assert entity.reputation == reputation.overall_score

    def test_scores_clamped(self):
        reputation = BrandReputation()
        reputation.shift_overall(500.0)
        reputation.update_overall()
        assert reputation.overall_score == 100.0
        reputation.adjust("innovation", -1000.0)
        assert reputation.innovation == 0.0

    def test_decay_floor_at_zero(self):
        system, entity = make_system()
        reputation = system.get_or_create_reputation(entity.entity_id)
        reputation.shift_overall(-49.95)
        for _ in range(5):
            system.process()
        assert reputation.customer_satisfaction == 0.0
        assert reputation.overall_score >= 0.0

    def test_customer_service_investment(self):
        system, entity = make_system()
        assert system.improve_customer_service(entity, 20_000.0)
        reputation = system.reputations[entity.entity_id]
        assert abs(reputation.customer_service - 52.0) < 1e-9
        assert abs(entity.reputation - mean_of_sub_scores(reputation)) < 1e-9

    def test_social_responsibility_investment(self):
        system, entity = make_system()
        assert system.invest_in_social_responsibility(entity, 150_000.0)
        assert abs(entity.social_responsibility - 53.0) < 1e-9
        assert abs(entity.environmental_impact - 52.0) < 1e-9

    def test_brand_multiplier(self):
        system, entity = make_system()
        assert abs(system.brand_multiplier(entity.entity_id) - 0.75) < 1e-12


class TestMarketResearch:
    """Test suite for research studies"""

    def test_study_completes_with_ranged_results(self):
        system, entity = make_system()
        assert system.conduct_market_research(entity, "Competitor Analysis", 5_000.0, 2)
        system.process()
        assert not system.research[entity.entity_id][0].completed
        system.process()

        study = system.status(entity.entity_id).research[0]
        assert study.completed
        assert 30.0 <= study.results["CompetitorStrength"] <= 90.0
        assert 0.1 <= study.results["MarketShare"] <= 0.4
        assert 0.5 <= study.results["PriceCompetitiveness"] <= 1.2

    def test_unknown_study_completes_empty(self):
        system, entity = make_system()
        system.conduct_market_research(entity, "astrology", 0.0, 1)
        system.process()
        study = system.status(entity.entity_id).research[0]
        assert study.completed
        assert study.results == {}

    def test_rejected_without_cash(self):
        system, entity = make_system(cash=100.0)
        assert not system.conduct_market_research(entity, "customer survey", 5_000.0, 2)
