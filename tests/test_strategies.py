"""Tests for the default agent strategies."""
from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest

from conftest import fast_settings, make_product
from dropship_agents.agents.base import Agent
from dropship_agents.agents.content_master import ContentMaster, meta_description, seo_keywords
from dropship_agents.agents.price_optimizer import PEAK_MONTHS, PriceOptimizer, margin_of
from dropship_agents.agents.product_scout import ProductScout, resolve_query, score_product
from dropship_agents.agents.trend_hunter import TrendHunter, keywords_for
from dropship_agents.core.errors import StrategyInputError, UnknownTaskError
from dropship_agents.core.market import (
    CompetitiveAnalysis,
    CompetitorData,
    CompetitorPricingReport,
    CompetitorReport,
    ProductScoutResult,
    TrendData,
    TrendOpportunity,
    TrendReport,
)
from dropship_agents.core.models import AgentType, MessageType


def _agent(agent_type: AgentType, strategy) -> Agent:
    return Agent(agent_type, strategy, fast_settings())


def _report(**overrides) -> TrendReport:
    values = {
        "niche": "fitness",
        "trends": [TrendData("yoga mat", 20000, 40, "low", ["summer"], 80)],
        "insights": [],
        "recommendations": [],
        "top_opportunities": [TrendOpportunity("massage gun", "growth", 120, "low")],
    }
    values.update(overrides)
    return TrendReport(**values)


# ----------------------------------------------------------------------
# Trend hunter
# ----------------------------------------------------------------------
@pytest.mark.anyio
async def test_trend_report_opportunities_meet_criteria(rng) -> None:
    hunter = TrendHunter(rng=rng, latency_scale=0)
    report = await _agent(AgentType.TREND_HUNTER, hunter).execute({"niche": "Pet Supplies"})

    assert [t.keyword for t in report.trends] == keywords_for("pet supplies")
    by_keyword = {t.keyword: t for t in report.trends}
    assert len(report.top_opportunities) <= 5
    for opportunity in report.top_opportunities:
        trend = by_keyword[opportunity.product]
        assert trend.score >= 75 and trend.growth_rate > 20
    scores = [by_keyword[o.product].score for o in report.top_opportunities]
    assert scores == sorted(scores, reverse=True)
    assert report.recommendations[-1] == "Test with small inventory before scaling to minimize risk"


def test_unknown_niche_falls_back_to_electronics() -> None:
    assert keywords_for("garden tools") == keywords_for("electronics")


@pytest.mark.anyio
async def test_trend_hunter_requires_niche(rng) -> None:
    agent = _agent(AgentType.TREND_HUNTER, TrendHunter(rng=rng, latency_scale=0))
    with pytest.raises(StrategyInputError):
        await agent.execute({"depth": "quick"})


@pytest.mark.anyio
async def test_find_competitors(rng) -> None:
    agent = _agent(AgentType.TREND_HUNTER, TrendHunter(rng=rng, latency_scale=0))
    report = await agent.execute({"niche": "beauty"}, action="find_competitors")

    assert isinstance(report, CompetitorReport)
    assert len(report.competitors) == 3
    for competitor in report.competitors:
        prices = [p["price"] for p in competitor.products]
        assert competitor.price_range["min"] == min(prices)
        assert competitor.price_range["max"] == max(prices)


@pytest.mark.anyio
async def test_unknown_action_is_rejected(rng) -> None:
    agent = _agent(AgentType.TREND_HUNTER, TrendHunter(rng=rng, latency_scale=0))
    with pytest.raises(UnknownTaskError):
        await agent.execute({"niche": "beauty"}, action="publish")


# ----------------------------------------------------------------------
# Product scout
# ----------------------------------------------------------------------
def test_resolve_query_prefers_top_opportunity() -> None:
    assert resolve_query(_report()) == "massage gun"
    assert resolve_query(_report(top_opportunities=[])) == "yoga mat"
    assert resolve_query(_report(top_opportunities=[], trends=[])) == "fitness"
    assert resolve_query("  desk lamp ") == "desk lamp"
    assert resolve_query({"query": "phone case"}) == "phone case"
    assert resolve_query({"trends": [{"keyword": "jump rope"}]}) == "jump rope"
    assert resolve_query(None) == "trending products"


def test_score_product_rewards_margin_rating_sales_and_low_competition() -> None:
    strong = score_product(
        make_product(profit_margin=55, rating=5.0, sold=6000, competitor_count=5, score=0, shipping_time="5-8 days"),
        30,
    )
    assert strong.score == 100
    assert len(strong.pros) == 3
    assert strong.cons == []

    weak = score_product(
        make_product(profit_margin=20, rating=4.0, sold=100, competitor_count=60, score=0, shipping_time="10-15 days"),
        30,
    )
    assert weak.score == 55
    assert weak.cons == ["Thin profit margin", "Below average ratings"]


@pytest.mark.anyio
async def test_scout_filters_sorts_and_caps(rng) -> None:
    agent = _agent(AgentType.PRODUCT_SCOUT, ProductScout(rng=rng, latency_scale=0))
    result = await agent.execute(_report(), options={"max_products": 4, "min_profit_margin": 55})

    assert isinstance(result, ProductScoutResult)
    assert result.query == "massage gun"
    assert result.total_found == 10
    assert len(result.products) <= 4
    assert all(p.score >= 60 and p.profit_margin >= 55 for p in result.products)
    assert [p.score for p in result.products] == sorted((p.score for p in result.products), reverse=True)


@pytest.mark.anyio
async def test_import_product(rng) -> None:
    agent = _agent(AgentType.PRODUCT_SCOUT, ProductScout(rng=rng, latency_scale=0))
    result = await agent.execute({"url": "https://aliexpress.com/item/usb-desk-fan"}, action="import_product")

    [product] = result.products
    assert product.supplier == "AliExpress"
    assert product.title == "Usb Desk Fan"
    assert 0 <= product.score <= 100

    with pytest.raises(StrategyInputError):
        await agent.execute({"url": "desk fan"}, action="import_product")


# ----------------------------------------------------------------------
# Content master
# ----------------------------------------------------------------------
def test_seo_keywords_and_meta_description() -> None:
    keywords = seo_keywords(make_product(title="The Ultra Comfortable Ergonomic Office Chair"))
    assert len(keywords) <= 15
    assert "the" not in keywords
    assert "best ultra" in keywords

    product = make_product(title="The Ultra Comfortable Ergonomic Office Chair With Lumbar Support " * 3)
    meta = meta_description(product, "premium")
    assert len(meta) <= 155
    assert meta.startswith("Shop ")


@pytest.mark.anyio
async def test_content_for_many_products_returns_list(rng) -> None:
    agent = _agent(AgentType.CONTENT_MASTER, ContentMaster(rng=rng, latency_scale=0))
    products = [make_product(id="a", title="Jade Roller"), make_product(id="b", title="Nail Art Kit")]

    results = await agent.execute({"products": products}, options={"style": "premium"})

    assert [c.product_id for c in results] == ["a", "b"]
    content = results[0]
    assert content.style == "premium"
    assert content.title_variations[0] == "Premium Jade Roller - Luxury Quality"
    assert len(content.bullet_points) == 5
    assert set(content.social_media) == {"instagram", "facebook", "tiktok"}
    assert content.email_template.startswith("Subject: Just Dropped: Jade Roller")


@pytest.mark.anyio
async def test_unknown_style_falls_back_and_empty_input_fails(rng) -> None:
    agent = _agent(AgentType.CONTENT_MASTER, ContentMaster(rng=rng, latency_scale=0))

    content = await agent.execute(make_product(), options={"style": "shouty"})
    assert content.style == "conversion-focused"

    with pytest.raises(StrategyInputError):
        await agent.execute({"products": []})


@pytest.mark.anyio
async def test_competitive_analysis_from_pricing_report(rng) -> None:
    agent = _agent(AgentType.CONTENT_MASTER, ContentMaster(rng=rng, latency_scale=0))
    competitor = CompetitorData("GadgetNest", "https://gadgetnest.com", [], {}, [], [], 10.0)
    pricing = CompetitorPricingReport(
        niche="electronics",
        competitors=[competitor],
        market_min=10.0,
        market_max=30.0,
        market_avg=20.0,
        price_gaps=["No offers between $12.00 and $25.00"],
        recommended_position="value",
        recommended_price=17.0,
    )

    analysis = await agent.execute(pricing, action="generate_competitive_analysis")

    assert isinstance(analysis, CompetitiveAnalysis)
    assert analysis.positioning == "value"
    assert "$17.00" in analysis.summary
    assert "No offers between $12.00 and $25.00" in analysis.talking_points

    with pytest.raises(StrategyInputError):
        await agent.execute("nothing", action="generate_competitive_analysis")


# ----------------------------------------------------------------------
# Price optimizer
# ----------------------------------------------------------------------
def _optimizer(month: int = 3, seed: int = 3) -> PriceOptimizer:
    return PriceOptimizer(
        rng=random.Random(seed),
        latency_scale=0,
        clock=lambda: datetime(2026, month, 1, tzinfo=timezone.utc),
    )


@pytest.mark.anyio
@pytest.mark.parametrize("strategy", ["premium", "competitive", "value", "penetration", "skimming"])
async def test_optimal_price_respects_minimum_viable_price(strategy) -> None:
    agent = _agent(AgentType.PRICE_OPTIMIZER, _optimizer())
    product = make_product(cost_price=20.0, suggested_price=22.0)

    analysis = await agent.execute(product, options={"strategy": strategy, "target_margin": 50})

    assert analysis.optimal_price >= 30.0
    assert analysis.price_range["min"] >= 30.0
    assert analysis.price_range["max"] == pytest.approx(analysis.optimal_price * 1.25, abs=0.02)
    assert set(analysis.pricing_tiers) == {"economy", "standard", "premium"}
    assert analysis.margin["optimal"] == pytest.approx(margin_of(analysis.optimal_price, 20.0))
    assert 0 <= analysis.confidence <= 100
    assert len(analysis.competitor_prices) == 5


@pytest.mark.anyio
async def test_profit_projection_scales_daily_sales() -> None:
    agent = _agent(AgentType.PRICE_OPTIMIZER, _optimizer())
    analysis = await agent.execute(make_product(sold=300), options={"competitor_analysis": False})

    projection = analysis.profit_projection
    assert projection["daily"].sales == 10
    assert projection["weekly"].sales == 70
    assert projection["monthly"].sales == 300
    assert analysis.competitor_prices == []


@pytest.mark.anyio
async def test_seasonal_and_demand_rules() -> None:
    assert 11 in PEAK_MONTHS and 3 not in PEAK_MONTHS
    optimizer = _optimizer(month=11)
    optimizer.set_dynamic_rule("rule-low-stock", False)
    optimizer.set_dynamic_rule("rule-competitor", False)
    agent = _agent(AgentType.PRICE_OPTIMIZER, optimizer)

    analysis = await agent.execute(make_product(sold=8000))

    assert {a.rule for a in analysis.dynamic_adjustments} == {"high_demand", "seasonal"}


@pytest.mark.anyio
async def test_competitor_undercut_alerts_autopilot() -> None:
    optimizer = _optimizer()
    for rule_id in ("rule-low-stock", "rule-high-demand", "rule-seasonal"):
        optimizer.set_dynamic_rule(rule_id, False)
    agent = _agent(AgentType.PRICE_OPTIMIZER, optimizer)

    alerted = False
    for _ in range(20):
        analysis = await agent.execute(make_product())
        if analysis.dynamic_adjustments:
            alerted = True
            break

    assert alerted
    alert = [m for m in agent.messages if m.type == MessageType.ALERT][-1]
    assert alert.recipient == AgentType.AUTO_PILOT
    assert alert.data["product_id"] == "prod-1"


def test_rule_management() -> None:
    optimizer = _optimizer()
    assert [r.condition for r in optimizer.get_dynamic_rules()] == [
        "stock_low",
        "competitor_undercut",
        "high_demand",
        "seasonal",
    ]
    assert optimizer.set_dynamic_rule("rule-seasonal", True, adjustment=25)
    assert not optimizer.set_dynamic_rule("rule-missing", True)
    assert next(r for r in optimizer.get_dynamic_rules() if r.id == "rule-seasonal").adjustment == 25

    rule = optimizer.add_dynamic_rule("Night owl", "time_based", 3)
    assert rule.id.startswith("rule-custom")
    assert len(optimizer.get_dynamic_rules()) == 5
    with pytest.raises(StrategyInputError):
        optimizer.add_dynamic_rule("Bad", "moon_phase", 1)

    optimizer.get_dynamic_rules()[0].enabled = False
    assert optimizer.get_dynamic_rules()[0].enabled


@pytest.mark.anyio
async def test_competitor_pricing_report() -> None:
    agent = _agent(AgentType.PRICE_OPTIMIZER, _optimizer())
    report = CompetitorReport(
        niche="electronics",
        competitors=[
            CompetitorData("A", "", [{"price": 10.0}, {"price": 12.0}], {}, [], [], 5.0),
            CompetitorData("B", "", [{"price": 30.0}], {}, [], [], 5.0),
        ],
        market_overview="",
    )

    pricing = await agent.execute(report, action="analyze_competitor_pricing", options={"strategy": "value"})

    assert pricing.market_min == 10.0
    assert pricing.market_max == 30.0
    assert pricing.market_avg == pytest.approx(17.33)
    assert pricing.price_gaps == ["No offers between $12.00 and $30.00"]
    assert pricing.recommended_price == pytest.approx(round(52 / 3 * 0.85, 2))

    with pytest.raises(StrategyInputError):
        await agent.execute(make_product(), action="analyze_competitor_pricing")
