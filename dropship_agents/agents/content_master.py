"""Copywriting strategy: titles, descriptions, SEO and social content."""
from __future__ import annotations

import random
import re
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union

import structlog

from dropship_agents.agents.base import TaskPlan
from dropship_agents.agents.payloads import coerce_products, option, simulate_call
from dropship_agents.core.errors import StrategyInputError, UnknownTaskError
from dropship_agents.core.market import (
    CompetitiveAnalysis,
    CompetitorPricingReport,
    CompetitorReport,
    GeneratedContent,
    ScoutedProduct,
)
from dropship_agents.core.models import USER, AgentMessage, AgentTask, AgentType, MessageType, TaskPriority, address_of

if TYPE_CHECKING:
    from dropship_agents.agents.base import Agent
    from dropship_agents.services.llm_pool import LLMPool

logger = structlog.get_logger(__name__)

DEFAULT_STYLE = "conversion-focused"
META_DESCRIPTION_LIMIT = 155

_STOP_WORDS = {"the", "a", "an", "and", "or", "but", "for", "with", "to", "of"}

_TITLE_TEMPLATES: Dict[str, List[str]] = {
    "premium": [
        "Premium {title} - Luxury Quality",
        "{title} Pro - Professional Grade",
        "Exclusive {title} | Free Shipping",
    ],
    "value": [
        "{title} - Best Value Deal",
        "Affordable {title} - Great Quality",
        "{title} Sale - Limited Time Offer",
    ],
    "conversion-focused": [
        "{title} - #1 Best Seller",
        "{title} - 5-Star Rated | Fast Shipping",
        "{title} - As Seen on TikTok",
    ],
}

_BENEFITS: Dict[str, List[str]] = {
    "premium": [
        "Experience unmatched quality and craftsmanship.",
        "Stand out with exclusive, premium design.",
        "Invest in something that lasts.",
    ],
    "value": [
        "Get premium quality at an affordable price.",
        "Smart shoppers choose value without compromise.",
        "Why pay more when you can get the best for less?",
    ],
    "conversion-focused": [
        "Join thousands of happy customers.",
        "See why this is the #1 choice.",
        "Transform your life with one simple upgrade.",
    ],
}

_STYLE_BULLETS: Dict[str, List[str]] = {
    "premium": ["Luxury finish and premium feel", "Exclusive design you won't find elsewhere"],
    "value": ["Unbeatable price for this quality", "Save money without compromising quality"],
    "conversion-focused": ["#1 choice of influencers", "Limited stock - order now!"],
}

_CALLS_TO_ACTION = {
    "premium": "Experience luxury today.",
    "value": "Get yours at the best price.",
    "conversion-focused": "Order now - limited stock!",
}

_BASE_BULLETS = [
    "Premium quality materials built to last",
    "Easy to use - perfect for beginners and experts",
    "Compact design - perfect for home and travel",
]

_FEATURES = [
    "High-quality materials",
    "Modern, sleek design",
    "Easy to use and maintain",
    "Versatile for multiple uses",
    "Eco-friendly packaging",
]

_HASHTAGS = ["#DropshippingLife", "#OnlineShopping", "#MustHave", "#TrendingNow", "#ShopNow"]


def extract_keywords(title: str) -> List[str]:
    words = title.lower().split()
    return [word for word in words if len(word) > 2 and word not in _STOP_WORDS]


def seo_keywords(product: ScoutedProduct) -> List[str]:
    base = extract_keywords(product.title)
    keywords = list(base)
    for keyword in base[:3]:
        keywords.extend(f"{modifier} {keyword}" for modifier in ("best", "buy"))
    return keywords[:15]


def meta_description(product: ScoutedProduct, style: str) -> str:
    rating = f"Rated {product.rating:.1f}/5. " if product.rating >= 4.5 else ""
    cta = _CALLS_TO_ACTION.get(style, _CALLS_TO_ACTION[DEFAULT_STYLE])
    return f"Shop {product.title} - High quality, fast shipping. {rating}{cta}"[:META_DESCRIPTION_LIMIT]


class ContentMaster:
    """Generate product listing copy in one of three styles.

    When an :class:`~dropship_agents.services.llm_pool.LLMPool` with a
    registered model is supplied, the long description is written by the
    model; everything else comes from templates.
    """

    name = "ContentMaster"
    capabilities = [
        "Generate SEO titles",
        "Write product descriptions",
        "Create bullet points",
        "Generate social media content",
        "Translate to multiple languages",
        "A/B test variations",
    ]
    default_action = "generate_content"

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        latency_scale: float = 1.0,
        llm_pool: Optional[LLMPool] = None,
        llm_model: str = "gpt-4",
    ) -> None:
        self._rng = rng or random.Random()
        self._latency_scale = latency_scale
        self._llm_pool = llm_pool
        self._llm_model = llm_model

    def plan(self, action: str, payload: Any) -> TaskPlan:
        if action == "generate_competitive_analysis":
            return TaskPlan(
                description="Writing competitive analysis",
                priority=TaskPriority.MEDIUM,
                thought="Turning competitor pricing into a positioning story...",
            )
        products = coerce_products(payload)
        if len(products) == 1:
            title = products[0].title
            return TaskPlan(
                description=f"Creating content for: {title}",
                thought=f'Crafting compelling content for "{title}"...',
            )
        return TaskPlan(
            description=f"Creating content for {len(products)} products",
            thought="Planning copy for the product batch...",
        )

    async def perform_task(self, agent: Agent, task: AgentTask) -> Any:
        if task.type == "generate_content":
            return await self._generate_content(agent, task)
        if task.type == "generate_competitive_analysis":
            return await self._competitive_analysis(agent, task)
        raise UnknownTaskError(f"Unknown task type: {task.type}")

    def handle_message(self, agent: Agent, message: AgentMessage) -> None:
        if message.type == MessageType.REQUEST and address_of(message.sender) == AgentType.PRODUCT_SCOUT.value:
            logger.info("content_master.products_received", content=message.content)

    # ------------------------------------------------------------------
    async def _generate_content(
        self, agent: Agent, task: AgentTask
    ) -> Union[GeneratedContent, List[GeneratedContent]]:
        products = coerce_products(task.input)
        if not products:
            raise StrategyInputError("No products provided for content generation")
        style = str(option(task, "style", DEFAULT_STYLE))
        if style not in _TITLE_TEMPLATES:
            style = DEFAULT_STYLE

        results = []
        share = 100 / len(products)
        for index, product in enumerate(products):
            offset = index * share
            results.append(await self._content_for(agent, product, style, offset, share))

        if len(results) == 1:
            return results[0]
        agent.send_message(USER, MessageType.INFO, f"Content generated for {len(results)} products!")
        return results

    async def _content_for(
        self,
        agent: Agent,
        product: ScoutedProduct,
        style: str,
        offset: float,
        share: float,
    ) -> GeneratedContent:
        def progress(fraction: float) -> None:
            agent.update_progress(int(offset + share * fraction))

        agent.send_message(USER, MessageType.PROGRESS, f'Generating content for "{product.title}"...')
        progress(0.1)

        agent.send_message(USER, MessageType.PROGRESS, "Creating SEO-optimized titles...")
        await simulate_call(self._rng, 0.5, 1.0, scale=self._latency_scale)
        base_title = re.sub(r"[^\w\s]", "", product.title).strip()
        keywords = extract_keywords(product.title) or [base_title.lower()]
        variations = [t.format(title=base_title) for t in _TITLE_TEMPLATES[style]]
        progress(0.25)

        agent.send_message(USER, MessageType.PROGRESS, "Writing compelling descriptions...")
        await simulate_call(self._rng, 0.5, 1.0, scale=self._latency_scale)
        benefits = _BENEFITS[style]
        short = f"Discover the {product.title.lower()} that everyone's talking about. {benefits[0]} {benefits[1]}"
        long = await self._long_description(agent, product, style, benefits)
        progress(0.45)

        agent.send_message(USER, MessageType.PROGRESS, "Creating benefit-focused bullet points...")
        bullets = _BASE_BULLETS + _STYLE_BULLETS[style]
        progress(0.6)

        agent.send_message(USER, MessageType.PROGRESS, "Optimizing for search engines...")
        keywords_seo = seo_keywords(product)
        meta = meta_description(product, style)
        progress(0.75)

        agent.send_message(USER, MessageType.PROGRESS, "Creating social media content...")
        await simulate_call(self._rng, 0.5, 1.0, scale=self._latency_scale)
        social = self._social_media(product)
        progress(0.9)

        content = GeneratedContent(
            product_id=product.id,
            product=product,
            style=style,
            title_original=product.title,
            title_seo=f"{base_title} - {keywords[0]} | Free Shipping",
            title_variations=variations,
            description_short=short,
            description_long=long,
            description_html=self._html(product, benefits),
            bullet_points=bullets,
            seo_keywords=keywords_seo,
            meta_description=meta,
            social_media=social,
            email_template=self._email(product, benefits),
        )
        progress(1.0)
        agent.send_message(USER, MessageType.INFO, f'Content generated successfully for "{product.title}"!')
        return content

    async def _long_description(
        self, agent: Agent, product: ScoutedProduct, style: str, benefits: List[str]
    ) -> str:
        template = self._template_long(product, benefits)
        if self._llm_pool is None or not self._llm_pool.has_model(self._llm_model):
            return template
        try:
            return await self._llm_pool.complete(
                self._llm_model,
                [
                    {
                        "role": "system",
                        "content": f"You write {style} e-commerce product descriptions. Reply with plain text only.",
                    },
                    {"role": "user", "content": f"Rewrite this product description:\n\n{template}"},
                ],
                temperature=0.7,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("content_master.llm_failed", model=self._llm_model, error=str(exc))
            agent.send_message(USER, MessageType.ERROR, f"Copywriting model unavailable, using template: {exc}")
            return template

    @staticmethod
    def _template_long(product: ScoutedProduct, benefits: List[str]) -> str:
        lines = [
            f"Introducing the {product.title} - Your perfect solution for modern living.",
            "",
            " ".join(benefits),
            "",
            "What makes this product special:",
            *(f"- {feature}" for feature in _FEATURES),
            "",
            "Join thousands of satisfied customers who have already made the smart choice. "
            "Order now and experience the difference!",
        ]
        if product.rating >= 4.5:
            lines.append(f"Rated {product.rating:.1f}/5 by our customers")
        if product.sold >= 1000:
            lines.append(f"Over {product.sold:,} sold")
        return "\n".join(lines).strip()

    @staticmethod
    def _html(product: ScoutedProduct, benefits: List[str]) -> str:
        proof = []
        if product.rating >= 4.5:
            proof.append(f'<span class="rating">{product.rating:.1f}/5</span>')
        if product.sold >= 1000:
            proof.append(f'<span class="sold">{product.sold:,}+ sold</span>')
        return (
            '<div class="product-description">'
            f'<p class="intro"><strong>Introducing the {product.title}</strong> - '
            "Your perfect solution for modern living.</p>"
            f'<div class="benefits">{"".join(f"<p>{b}</p>" for b in benefits)}</div>'
            "<h4>Key Features:</h4>"
            f'<ul class="features">{"".join(f"<li>{f}</li>" for f in _FEATURES)}</ul>'
            f'<div class="social-proof">{"".join(proof)}</div>'
            "</div>"
        )

    @staticmethod
    def _social_media(product: ScoutedProduct) -> Dict[str, str]:
        tags = [f"#{keyword}" for keyword in extract_keywords(product.title)[:3]]
        hashtags = " ".join((tags + _HASHTAGS)[:10])
        rating = f"Rated {product.rating:.1f}/5 by our customers!\n\n" if product.rating >= 4.5 else ""
        return {
            "instagram": (
                f"NEW DROP\n\n{product.title}\n\nThe {product.title.lower()} you've been waiting for "
                f"is finally here!\n\nPremium quality\nFree shipping\n5-star reviews\n\n"
                f"Tap link in bio to shop!\n\n{hashtags}"
            ),
            "facebook": (
                f"JUST DROPPED: {product.title}\n\nWhy everyone's loving it:\n- Premium quality\n"
                f"- Affordable price\n- Fast shipping\n\n{rating}Shop now: [link]\n\nLimited stock available!"
            ),
            "tiktok": (
                f"POV: You finally got the {product.title.lower()} everyone's been talking about\n\n"
                f"#{product.title.replace(' ', '')} #TikTokMadeMeBuyIt #ViralProduct #MustHave #Trending"
            ),
        }

    @staticmethod
    def _email(product: ScoutedProduct, benefits: List[str]) -> str:
        return "\n".join(
            [
                f"Subject: Just Dropped: {product.title}",
                "",
                "Hi [Name],",
                "",
                "We're excited to introduce our latest product that's taking the market by storm!",
                "",
                product.title,
                "",
                *benefits[:2],
                "",
                "Special Launch Offer: Get FREE shipping on your order today!",
                "",
                "[SHOP NOW]",
            ]
        )

    # ------------------------------------------------------------------
    async def _competitive_analysis(self, agent: Agent, task: AgentTask) -> CompetitiveAnalysis:
        report = task.input
        if isinstance(report, CompetitorReport):
            niche, names = report.niche, [c.name for c in report.competitors]
            positioning, gaps, price = "competitive", list(report.opportunities), None
        elif isinstance(report, CompetitorPricingReport):
            niche, names = report.niche, [c.name for c in report.competitors]
            positioning, gaps, price = report.recommended_position, list(report.price_gaps), report.recommended_price
        elif isinstance(report, Mapping) and report.get("niche"):
            niche, names = str(report["niche"]), [str(n) for n in report.get("competitors", [])]
            positioning, gaps, price = str(report.get("recommended_position", "competitive")), [], None
        else:
            raise StrategyInputError("A competitor report is required for competitive analysis")

        agent.send_message(USER, MessageType.PROGRESS, f"Summarizing {len(names)} competitors in {niche}...")
        agent.update_progress(30)
        await simulate_call(self._rng, 0.5, 1.0, scale=self._latency_scale)

        price_line = f" at around ${price:.2f}" if price is not None else ""
        talking_points = [f"Differentiate from {name} with stronger product copy" for name in names[:3]]
        talking_points.extend(gaps[:3])
        recommendations = [
            f"Position listings as {positioning}{price_line}",
            "Lead with shipping speed and guarantees in titles",
            "Refresh product images before competitors copy the angle",
        ]
        agent.update_progress(100)

        return CompetitiveAnalysis(
            niche=niche,
            headline=f"How to win the {niche} market",
            summary=(
                f"{len(names)} competitors analyzed in {niche}. "
                f"Recommended positioning: {positioning}{price_line}."
            ),
            positioning=positioning,
            talking_points=talking_points,
            recommendations=recommendations,
        )
