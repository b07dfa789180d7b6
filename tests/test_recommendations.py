"""
상품 추천 생성 테스트
"""
from unittest.mock import patch

import pytest

from workspace_stylist.models.schemas import (
    AnalysisContext,
    NormalizedAnalysis,
    ProductCategory,
    QuizAnswers,
)
from workspace_stylist.services.quiz_context import build_analysis_context
from workspace_stylist.services.recommendations import (
    HIGH_BUDGET_MULTIPLIER,
    LOW_BUDGET_MULTIPLIER,
    MAX_RECOMMENDATIONS,
    MID_BUDGET_MULTIPLIER,
    budget_multiplier,
    fallback_recommendations,
    generate_recommendations,
    price_range,
)


def _context(vibe="Modern and functional", budget="Mid-range quality"):
    return AnalysisContext(
        vibe_description=vibe,
        color_preference_description="Neutral and calming",
        budget_description=budget,
    )


def _price_of(recommendations, name):
    return next(r.price for r in recommendations if r.name == name)


class TestBudgetMultiplier:
    """Tests for budget keyword detection."""

    @pytest.mark.parametrize("budget_code,expected", [
        ("budget-low", LOW_BUDGET_MULTIPLIER),
        ("budget-mid", MID_BUDGET_MULTIPLIER),
        ("budget-high", HIGH_BUDGET_MULTIPLIER),
        ("unknown", MID_BUDGET_MULTIPLIER),
    ])
    def test_quiz_budget_tiers(self, budget_code, expected):
        context = build_analysis_context(QuizAnswers(budget_range=budget_code))
        assert budget_multiplier(context.budget_description) == expected

    def test_empty_budget_is_mid(self):
        assert budget_multiplier("") == MID_BUDGET_MULTIPLIER
        assert budget_multiplier(None) == MID_BUDGET_MULTIPLIER


class TestPriceRange:
    """Tests for price spread."""

    def test_low_budget_chair(self):
        """Base 150 at 0.6x centers on 90 with an 18 spread."""
        price = price_range(150, LOW_BUDGET_MULTIPLIER)
        assert (price.min, price.max) == (72, 108)
        assert price.currency == "USD"

    def test_rounding_half_up(self):
        # 25 * 1.8 = 45, spread 9
        assert (price_range(25, 1.8).min, price_range(25, 1.8).max) == (36, 54)
        # 35 * 0.6 = 21, spread round(4.2) = 4
        assert (price_range(35, 0.6).min, price_range(35, 0.6).max) == (17, 25)

    @pytest.mark.parametrize("base", [25, 30, 35, 45, 60, 120, 150, 200])
    def test_ordered_and_scaled(self, base):
        low = price_range(base, LOW_BUDGET_MULTIPLIER)
        mid = price_range(base, MID_BUDGET_MULTIPLIER)
        high = price_range(base, HIGH_BUDGET_MULTIPLIER)

        for price in (low, mid, high):
            assert price.min <= price.max
        assert low.min < mid.min < high.min
        assert low.max < mid.max < high.max


class TestGenerateRecommendations:
    """Tests for generate_recommendations."""

    def test_base_catalog_covers_every_category(self):
        recommendations = generate_recommendations(NormalizedAnalysis(), _context(vibe="Neutral"))

        assert len(recommendations) == 6
        assert {r.category for r in recommendations} == set(ProductCategory)

    def test_style_products_appended(self):
        context = build_analysis_context(QuizAnswers(workspace_vibe="cozy-warm"))
        names = [r.name for r in generate_recommendations(NormalizedAnalysis(), context)]
        assert "Warm Ambient Light" in names

    def test_truncated_to_max(self):
        vibe = "modern cozy professional creative tech"
        recommendations = generate_recommendations(NormalizedAnalysis(), _context(vibe=vibe))
        assert len(recommendations) == MAX_RECOMMENDATIONS

    def test_low_budget_prices(self):
        recommendations = generate_recommendations(NormalizedAnalysis(), _context(budget="Under $500 - Budget-friendly"))
        price = _price_of(recommendations, "Ergonomic Office Chair")
        assert price.min <= 90 <= price.max
        assert (price.min, price.max) == (72, 108)

    def test_ids_and_ratings_are_stable(self):
        first = generate_recommendations(NormalizedAnalysis(), _context())
        second = generate_recommendations(NormalizedAnalysis(), _context())

        assert [r.id for r in first] == [r.id for r in second]
        assert len({r.id for r in first}) == len(first)
        assert [r.rating for r in first] == [r.rating for r in second]
        for r in first:
            assert 4.2 <= r.rating <= 4.8
            assert r.image_url.startswith("https://")

    def test_lighting_priority_moves_lamp_first(self):
        analysis = NormalizedAnalysis(improvement_priorities=["Improve lighting near the desk"])
        recommendations = generate_recommendations(analysis, _context(vibe="Neutral"))
        assert recommendations[0].category == ProductCategory.LIGHTING

    def test_clutter_priority_moves_storage_first(self):
        analysis = NormalizedAnalysis(improvement_priorities=["Reduce clutter", "Add a brighter light"])
        recommendations = generate_recommendations(analysis, _context(vibe="Neutral"))

        assert recommendations[0].category == ProductCategory.STORAGE
        assert recommendations[1].category == ProductCategory.LIGHTING

    def test_failure_returns_fallback(self):
        with patch(
            "workspace_stylist.services.recommendations.budget_multiplier",
            side_effect=RuntimeError("boom"),
        ):
            recommendations = generate_recommendations(NormalizedAnalysis(), _context())

        assert recommendations == fallback_recommendations()
        assert len(recommendations) == 3
        assert [r.category for r in recommendations] == [
            ProductCategory.CHAIR,
            ProductCategory.LIGHTING,
            ProductCategory.STORAGE,
        ]
