"""Market records produced and consumed by the default agent strategies."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from dropship_agents.core.models import utcnow


@dataclass(slots=True)
class TrendData:
    keyword: str
    search_volume: int
    growth_rate: int
    competition: str
    seasonality: List[str]
    score: int
    related_keywords: List[str] = field(default_factory=list)


@dataclass(slots=True)
class TrendOpportunity:
    product: str
    reason: str
    potential_profit: int
    risk_level: str


@dataclass(slots=True)
class TrendReport:
    niche: str
    trends: List[TrendData]
    insights: List[str]
    recommendations: List[str]
    top_opportunities: List[TrendOpportunity]
    generated_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class ScoutedProduct:
    id: str
    title: str
    description: str
    source_url: str
    supplier: str
    cost_price: float
    suggested_price: float
    profit_margin: float
    rating: float = 4.0
    reviews: int = 0
    sold: int = 0
    shipping_time: str = ""
    competitor_count: int = 0
    score: int = 0
    images: List[str] = field(default_factory=list)
    variants: List[str] = field(default_factory=lambda: ["Default"])
    pros: List[str] = field(default_factory=list)
    cons: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ProductScoutResult:
    query: str
    total_found: int
    products: List[ScoutedProduct]
    filters: Dict[str, float]
    summary: str


@dataclass(slots=True)
class GeneratedContent:
    product_id: str
    product: ScoutedProduct
    style: str
    title_original: str
    title_seo: str
    title_variations: List[str]
    description_short: str
    description_long: str
    description_html: str
    bullet_points: List[str]
    seo_keywords: List[str]
    meta_description: str
    social_media: Dict[str, str]
    email_template: str


@dataclass(slots=True)
class PricingTier:
    price: float
    margin: float
    expected_sales: str


@dataclass(slots=True)
class ProfitProjection:
    sales: int
    revenue: float
    profit: float


@dataclass(slots=True)
class PriceAdjustment:
    rule: str
    adjustment: float
    reason: str


@dataclass(slots=True)
class PriceAnalysis:
    product_id: str
    product_title: str
    current_price: float
    cost_price: float
    optimal_price: float
    price_range: Dict[str, float]
    competitor_prices: List[Dict[str, float]]
    margin: Dict[str, float]
    recommendation: str
    confidence: float
    pricing_tiers: Dict[str, PricingTier]
    profit_projection: Dict[str, ProfitProjection]
    dynamic_adjustments: List[PriceAdjustment]
    strategy: str = "competitive"


@dataclass(slots=True)
class CompetitorData:
    name: str
    url: str
    products: List[Dict[str, object]]
    price_range: Dict[str, float]
    strengths: List[str]
    weaknesses: List[str]
    market_share: float


@dataclass(slots=True)
class CompetitorReport:
    niche: str
    competitors: List[CompetitorData]
    market_overview: str
    opportunities: List[str] = field(default_factory=list)
    threats: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class CompetitorPricingReport:
    """Price positioning across the competitors of a niche."""

    niche: str
    competitors: List[CompetitorData]
    market_min: float
    market_max: float
    market_avg: float
    price_gaps: List[str]
    recommended_position: str
    recommended_price: Optional[float] = None


@dataclass(slots=True)
class CompetitiveAnalysis:
    """Narrative written from a competitor pricing report."""

    niche: str
    headline: str
    summary: str
    positioning: str
    talking_points: List[str]
    recommendations: List[str]
