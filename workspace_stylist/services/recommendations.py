"""상품 추천 생성

기본 카탈로그 + 선호 분위기별 상품을 예산 배수로 가격 조정한다.
실패해도 파이프라인을 막지 않도록 고정 추천 3개로 대체한다.
"""
import math
import random
import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote_plus

from ..models.schemas import (
    AnalysisContext,
    NormalizedAnalysis,
    PriceRange,
    ProductCategory,
    ProductRecommendation,
)
from ..utils.logger import logger

MAX_RECOMMENDATIONS = 8
PRICE_SPREAD = 0.2
RATING_RANGE = (4.2, 4.8)

LOW_BUDGET_MULTIPLIER = 0.6
MID_BUDGET_MULTIPLIER = 1.0
HIGH_BUDGET_MULTIPLIER = 1.8

LOW_BUDGET_KEYWORDS = ("under", "budget-friendly", "low")
HIGH_BUDGET_KEYWORDS = ("1500+", "premium", "high")

IMAGE_URL_TEMPLATE = "https://via.placeholder.com/300x200/4A90E2/FFFFFF?text={name}"


@dataclass(frozen=True)
class ProductTemplate:
    category: ProductCategory
    name: str
    description: str
    base_price: int
    tags: List[str] = field(default_factory=list)


BASE_PRODUCTS = [
    ProductTemplate(
        category=ProductCategory.CHAIR,
        name="Ergonomic Office Chair",
        description="Comfortable office chair with lumbar support and adjustable height for better posture and productivity.",
        base_price=150,
        tags=["ergonomic", "comfort", "productivity"],
    ),
    ProductTemplate(
        category=ProductCategory.DESK,
        name="Standing Desk Converter",
        description="Adjustable desk converter that lets you alternate between sitting and standing throughout the day.",
        base_price=200,
        tags=["adjustable", "health", "ergonomic"],
    ),
    ProductTemplate(
        category=ProductCategory.LIGHTING,
        name="LED Desk Lamp",
        description="Adjustable LED desk lamp with multiple brightness levels and color temperatures to reduce eye strain.",
        base_price=60,
        tags=["adjustable", "eye-care", "modern"],
    ),
    ProductTemplate(
        category=ProductCategory.STORAGE,
        name="Desktop Organizer",
        description="Multi-compartment desk organizer to keep your workspace tidy and improve organization.",
        base_price=35,
        tags=["organization", "tidy", "productivity"],
    ),
    ProductTemplate(
        category=ProductCategory.TECH,
        name="Monitor Stand",
        description="Adjustable monitor stand to improve screen positioning and reduce neck strain.",
        base_price=45,
        tags=["ergonomic", "adjustable", "organization"],
    ),
    ProductTemplate(
        category=ProductCategory.DECOR,
        name="Desktop Plant",
        description="Low-maintenance succulent or air plant to add natural elements and improve air quality.",
        base_price=25,
        tags=["natural", "air-quality", "aesthetic"],
    ),
]

# (분위기 키워드, 상품)
STYLE_PRODUCTS = [
    (("modern", "minimal"), ProductTemplate(
        category=ProductCategory.DECOR,
        name="Minimalist Wall Art",
        description="Clean, geometric wall art that complements a modern workspace aesthetic.",
        base_price=40,
        tags=["modern", "minimalist", "aesthetic"],
    )),
    (("cozy", "warm"), ProductTemplate(
        category=ProductCategory.LIGHTING,
        name="Warm Ambient Light",
        description="Soft, warm lighting to create a cozy and comfortable workspace atmosphere.",
        base_price=55,
        tags=["cozy", "warm", "ambient"],
    )),
    (("productive", "professional"), ProductTemplate(
        category=ProductCategory.STORAGE,
        name="Filing Cabinet",
        description="Compact filing cabinet to organize documents and maintain a professional workspace.",
        base_price=120,
        tags=["professional", "organization", "storage"],
    )),
    (("creative", "artistic"), ProductTemplate(
        category=ProductCategory.DECOR,
        name="Inspiration Board",
        description="Cork board or magnetic board for displaying ideas, sketches, and inspiration.",
        base_price=30,
        tags=["creative", "inspiration", "organization"],
    )),
    (("tech", "gaming"), ProductTemplate(
        category=ProductCategory.TECH,
        name="RGB LED Strip",
        description="Customizable RGB LED lighting to create an immersive tech workspace atmosphere.",
        base_price=35,
        tags=["tech", "gaming", "customizable"],
    )),
]

LIGHTING_PRIORITY_KEYWORDS = ("light", "bright", "dim", "glare")
STORAGE_PRIORITY_KEYWORDS = ("organiz", "clutter", "storage", "tidy")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def budget_multiplier(budget_description: Optional[str]) -> float:
    """예산 설명 → 가격 배수 (low 0.6 / mid 1.0 / high 1.8)"""
    if not budget_description:
        return MID_BUDGET_MULTIPLIER

    budget = budget_description.lower()
    if any(keyword in budget for keyword in LOW_BUDGET_KEYWORDS):
        return LOW_BUDGET_MULTIPLIER
    if any(keyword in budget for keyword in HIGH_BUDGET_KEYWORDS):
        return HIGH_BUDGET_MULTIPLIER
    return MID_BUDGET_MULTIPLIER


def price_range(base_price: int, multiplier: float) -> PriceRange:
    """조정 가격 ±20%"""
    adjusted = _round_half_up(base_price * multiplier)
    spread = _round_half_up(adjusted * PRICE_SPREAD)
    return PriceRange(min=adjusted - spread, max=adjusted + spread)


def style_products(vibe_description: Optional[str]) -> List[ProductTemplate]:
    if not vibe_description:
        return []

    vibe = vibe_description.lower()
    return [product for keywords, product in STYLE_PRODUCTS if any(k in vibe for k in keywords)]


def prioritize_by_analysis(products: List[ProductTemplate], analysis: NormalizedAnalysis) -> List[ProductTemplate]:
    """개선 우선순위에 조명/정리 문제가 있으면 해당 카테고리를 앞으로"""
    priorities = [p.lower() for p in analysis.improvement_priorities]

    def mentions(keywords) -> bool:
        return any(keyword in p for p in priorities for keyword in keywords)

    ordered = list(products)
    if mentions(LIGHTING_PRIORITY_KEYWORDS):
        ordered.sort(key=lambda p: p.category != ProductCategory.LIGHTING)
    if mentions(STORAGE_PRIORITY_KEYWORDS):
        ordered.sort(key=lambda p: p.category != ProductCategory.STORAGE)
    return ordered


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _rating(name: str) -> float:
    # 상품명 seed 로 결정적인 평점
    return round(random.Random(name).uniform(*RATING_RANGE), 1)


def _to_recommendation(index: int, product: ProductTemplate, multiplier: float) -> ProductRecommendation:
    return ProductRecommendation(
        id=f"rec_{index + 1}_{_slug(product.name)}",
        name=product.name,
        description=product.description,
        price=price_range(product.base_price, multiplier),
        category=product.category,
        image_url=IMAGE_URL_TEMPLATE.format(name=quote_plus(product.name)),
        tags=list(product.tags),
        rating=_rating(product.name),
    )


def fallback_recommendations() -> List[ProductRecommendation]:
    """생성 실패 시 고정 추천 (의자, 조명, 정리함)"""
    return [
        ProductRecommendation(
            id="rec_fallback_1",
            name="Ergonomic Office Chair",
            description="Comfortable office chair with lumbar support for better posture.",
            price=PriceRange(min=120, max=180),
            category=ProductCategory.CHAIR,
            image_url=IMAGE_URL_TEMPLATE.format(name="Office+Chair"),
            tags=["ergonomic", "comfort"],
            rating=4.3,
        ),
        ProductRecommendation(
            id="rec_fallback_2",
            name="LED Desk Lamp",
            description="Adjustable LED desk lamp to reduce eye strain.",
            price=PriceRange(min=45, max=75),
            category=ProductCategory.LIGHTING,
            image_url=IMAGE_URL_TEMPLATE.format(name="Desk+Lamp"),
            tags=["lighting", "adjustable"],
            rating=4.5,
        ),
        ProductRecommendation(
            id="rec_fallback_3",
            name="Desktop Organizer",
            description="Multi-compartment organizer to keep your workspace tidy.",
            price=PriceRange(min=25, max=45),
            category=ProductCategory.STORAGE,
            image_url=IMAGE_URL_TEMPLATE.format(name="Organizer"),
            tags=["organization", "storage"],
            rating=4.4,
        ),
    ]


def generate_recommendations(
    analysis: NormalizedAnalysis,
    context: AnalysisContext,
) -> List[ProductRecommendation]:
    """분석 결과 + 사용자 컨텍스트 → 추천 목록 (최대 8개)"""
    try:
        multiplier = budget_multiplier(context.budget_description)
        products = BASE_PRODUCTS + style_products(context.vibe_description)
        products = prioritize_by_analysis(products[:MAX_RECOMMENDATIONS], analysis)

        recommendations = [
            _to_recommendation(index, product, multiplier)
            for index, product in enumerate(products)
        ]
        logger.info(f"Generated {len(recommendations)} product recommendations (budget x{multiplier})")
        return recommendations
    except Exception as e:
        logger.warning(f"Failed to generate product recommendations, using fallback: {e}", exc_info=True)
        return fallback_recommendations()
