"""인체공학 인사이트 생성

모델의 자유 형식 평가를 고정된 5개 카테고리 × 3단계 상태로 정규화하고,
빠진 카테고리는 기본값으로 채운 뒤 심각도 순으로 정렬한다.
"""
import re
import zlib
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..models.schemas import (
    ErgonomicCategory,
    ErgonomicInsight,
    ErgonomicStatus,
    ErgonomicSummary,
    NormalizedAnalysis,
    Strictness,
)
from ..utils.logger import logger

GOOD = ErgonomicStatus.GOOD
NEEDS = ErgonomicStatus.NEEDS_IMPROVEMENT
POOR = ErgonomicStatus.POOR

DESK = ErgonomicCategory.DESK_HEIGHT
CHAIR = ErgonomicCategory.CHAIR_POSTURE
LIGHTING = ErgonomicCategory.LIGHTING
SCREEN = ErgonomicCategory.SCREEN_POSITION
ORGANIZATION = ErgonomicCategory.ORGANIZATION


@dataclass(frozen=True)
class ErgonomicConfig:
    strictness: Strictness = Strictness.STANDARD
    fill_missing_categories: bool = True
    min_recommendation_length: int = 20


# 구분자 제거 후 소문자 키 → 카테고리
CATEGORY_ALIASES: Dict[str, ErgonomicCategory] = {
    "deskheight": DESK,
    "desk": DESK,
    "deskposition": DESK,
    "worksurface": DESK,
    "chairposture": CHAIR,
    "chair": CHAIR,
    "posture": CHAIR,
    "seating": CHAIR,
    "chairposition": CHAIR,
    "lighting": LIGHTING,
    "light": LIGHTING,
    "illumination": LIGHTING,
    "lightingposition": LIGHTING,
    "screenposition": SCREEN,
    "screen": SCREEN,
    "monitor": SCREEN,
    "monitorposition": SCREEN,
    "display": SCREEN,
    "organization": ORGANIZATION,
    "organisation": ORGANIZATION,
    "organize": ORGANIZATION,
    "organizationposition": ORGANIZATION,
    "clutter": ORGANIZATION,
    "storage": ORGANIZATION,
    "cablemanagement": ORGANIZATION,
}

# 자유 텍스트(우선순위 문장 등) 키워드 → 카테고리. 순서대로 첫 매칭.
CATEGORY_KEYWORDS = [
    ("posture", CHAIR),
    ("chair", CHAIR),
    ("monitor", SCREEN),
    ("screen", SCREEN),
    ("display", SCREEN),
    ("light", LIGHTING),
    ("illumination", LIGHTING),
    ("lamp", LIGHTING),
    ("organiz", ORGANIZATION),
    ("organis", ORGANIZATION),
    ("clutter", ORGANIZATION),
    ("storage", ORGANIZATION),
    ("cable", ORGANIZATION),
    ("desk", DESK),
    # 범용 단어는 마지막
    ("ergonomic", CHAIR),
    ("height", DESK),
]

# 같은 단어도 엄격도에 따라 다르게 매핑된다 (lenient ≥ standard ≥ strict)
STATUS_TABLES: Dict[Strictness, Dict[str, ErgonomicStatus]] = {
    Strictness.LENIENT: {
        "excellent": GOOD, "great": GOOD, "good": GOOD, "fine": GOOD,
        "ok": GOOD, "okay": GOOD, "acceptable": GOOD, "adequate": GOOD,
        "average": NEEDS, "moderate": NEEDS, "fair": NEEDS,
        "needsimprovement": NEEDS, "improvement": NEEDS, "needsattention": NEEDS,
        "poor": POOR, "bad": POOR, "terrible": POOR, "critical": POOR, "urgent": POOR,
    },
    Strictness.STANDARD: {
        "excellent": GOOD, "great": GOOD, "good": GOOD, "fine": GOOD,
        "ok": NEEDS, "okay": NEEDS, "acceptable": NEEDS, "adequate": NEEDS,
        "average": NEEDS, "moderate": NEEDS, "fair": NEEDS,
        "needsimprovement": NEEDS, "improvement": NEEDS, "needsattention": NEEDS,
        "poor": POOR, "bad": POOR, "terrible": POOR, "critical": POOR, "urgent": POOR,
    },
    Strictness.STRICT: {
        "excellent": GOOD, "great": NEEDS, "good": NEEDS, "fine": NEEDS,
        "ok": NEEDS, "okay": NEEDS, "acceptable": POOR, "adequate": POOR,
        "average": POOR, "moderate": POOR, "fair": POOR,
        "needsimprovement": POOR, "improvement": POOR, "needsattention": POOR,
        "poor": POOR, "bad": POOR, "terrible": POOR, "critical": POOR, "urgent": POOR,
    },
}

TITLES: Dict[ErgonomicCategory, Dict[ErgonomicStatus, str]] = {
    DESK: {
        GOOD: "Desk Height Optimal",
        NEEDS: "Desk Height Adjustment Needed",
        POOR: "Desk Height Requires Attention",
    },
    CHAIR: {
        GOOD: "Chair & Posture Excellent",
        NEEDS: "Chair Setup Needs Improvement",
        POOR: "Chair & Posture Issues Detected",
    },
    LIGHTING: {
        GOOD: "Lighting Conditions Good",
        NEEDS: "Lighting Could Be Enhanced",
        POOR: "Lighting Needs Immediate Attention",
    },
    SCREEN: {
        GOOD: "Screen Position Optimal",
        NEEDS: "Screen Position Adjustment Needed",
        POOR: "Screen Position Problematic",
    },
    ORGANIZATION: {
        GOOD: "Workspace Well Organized",
        NEEDS: "Organization Opportunities",
        POOR: "Workspace Needs Organization",
    },
}

MAINTAIN_RECOMMENDATION = "Maintain current setup and monitor for changes."

RECOMMENDATIONS: Dict[ErgonomicCategory, Dict[ErgonomicStatus, List[str]]] = {
    DESK: {
        NEEDS: [
            "Adjust desk height so elbows rest at 90 degrees when typing.",
            "Consider a height-adjustable desk or keyboard tray.",
            "Ensure feet are flat on the floor or supported by a footrest.",
        ],
        POOR: [
            "Adjust desk height right away; the current setup may cause strain.",
            "Use a standing desk converter or adjustable keyboard tray.",
            "Measure your seated elbow height and match the work surface to it.",
        ],
    },
    CHAIR: {
        NEEDS: [
            "Adjust chair height and back angle for better lumbar support.",
            "Make sure the chair back supports the natural curve of your spine.",
            "Consider an ergonomic chair with adjustable features.",
        ],
        POOR: [
            "Replace the chair or add lumbar support as soon as possible.",
            "Adjust chair settings: seat height, back angle, and armrests.",
            "Take regular breaks to prevent long-term strain while seated.",
        ],
    },
    LIGHTING: {
        NEEDS: [
            "Add task lighting to reduce eye strain.",
            "Position light sources to minimize glare on the screen.",
            "Consider an adjustable desk lamp with warm light.",
        ],
        POOR: [
            "Improve lighting right away; the current setup strains the eyes.",
            "Add multiple light sources for even illumination.",
            "Place the screen perpendicular to windows to reduce glare.",
        ],
    },
    SCREEN: {
        NEEDS: [
            "Adjust monitor height so the top of the screen is at eye level.",
            "Position the screen 50-70cm away from your eyes.",
            "Tilt the screen slightly backward, around 10-20 degrees.",
        ],
        POOR: [
            "Reposition the screen right away to prevent neck strain.",
            "Use a monitor arm or stand to reach a proper height.",
            "Place the screen directly in front of you, not to the side.",
        ],
    },
    ORGANIZATION: {
        NEEDS: [
            "Add storage solutions to reduce desktop clutter.",
            "Keep frequently used items within arm's reach.",
            "Create designated spaces for different work materials.",
        ],
        POOR: [
            "Declutter the workspace to restore focus.",
            "Set up a filing system for papers and supplies.",
            "Remove unnecessary items from the work surface.",
        ],
    },
}

STATUS_ORDER = [POOR, NEEDS, GOOD]
CATEGORY_ORDER = [CHAIR, DESK, SCREEN, LIGHTING, ORGANIZATION]

DEFAULT_DESCRIPTION = "No specific issues identified in this area."
MISSING_OBSERVATION = "Assessment in progress."


def _compact(value: str) -> str:
    return re.sub(r"[^a-z]", "", (value or "").lower())


def normalize_category(raw: str) -> Optional[ErgonomicCategory]:
    """자유 형식 카테고리 → 정식 카테고리 (없으면 None)"""
    compact = _compact(raw)
    if not compact:
        return None

    if compact in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[compact]

    return detect_category(raw)


def detect_category(text: str) -> Optional[ErgonomicCategory]:
    lowered = (text or "").lower()
    for keyword, category in CATEGORY_KEYWORDS:
        if keyword in lowered:
            return category
    return None


def normalize_status(raw: str, strictness: Strictness = Strictness.STANDARD) -> ErgonomicStatus:
    """엄격도별 상태 매핑, 모르는 값은 needs-improvement"""
    return STATUS_TABLES[Strictness(strictness)].get(_compact(raw), NEEDS)


def build_title(category: ErgonomicCategory, status: ErgonomicStatus) -> str:
    return TITLES[category][status]


def pick_recommendation(category: ErgonomicCategory, status: ErgonomicStatus, seed: str = "") -> str:
    """카테고리×상태별 권장 문구 중 하나를 seed 로 결정적으로 선택"""
    if status == GOOD:
        return MAINTAIN_RECOMMENDATION

    options = RECOMMENDATIONS[category][status]
    return options[zlib.crc32(seed.encode("utf-8")) % len(options)]


def _recommendation_for(
    provided: Optional[str],
    category: ErgonomicCategory,
    status: ErgonomicStatus,
    seed: str,
    config: ErgonomicConfig,
) -> str:
    if provided and len(provided) >= config.min_recommendation_length:
        return provided
    return pick_recommendation(category, status, seed)


def _sort_key(insight: ErgonomicInsight):
    return STATUS_ORDER.index(insight.status), CATEGORY_ORDER.index(insight.category)


def prioritize_insights(insights: List[ErgonomicInsight]) -> List[ErgonomicInsight]:
    """심각도 → 카테고리 우선순위 순 정렬"""
    return sorted(insights, key=_sort_key)


def build_insights(
    analysis: NormalizedAnalysis,
    config: Optional[ErgonomicConfig] = None,
) -> List[ErgonomicInsight]:
    """정규화된 분석 → 카테고리당 하나의 인사이트"""
    config = config or ErgonomicConfig()
    by_category: Dict[ErgonomicCategory, ErgonomicInsight] = {}

    # 1. 모델 평가 항목
    for entry in analysis.ergonomic_evaluation:
        category = normalize_category(entry.category)
        if category is None:
            logger.debug(f"Dropping ergonomic entry with unknown category: {entry.category!r}")
            continue

        status = normalize_status(entry.status, config.strictness)
        existing = by_category.get(category)
        # 같은 카테고리가 여러 번 오면 더 심각한 쪽만 유지
        if existing and STATUS_ORDER.index(existing.status) <= STATUS_ORDER.index(status):
            continue

        description = entry.observation or MISSING_OBSERVATION
        by_category[category] = ErgonomicInsight(
            category=category,
            status=status,
            title=build_title(category, status),
            description=description,
            recommendation=_recommendation_for(
                entry.recommendation, category, status, description, config
            ),
        )

    # 2. 개선 우선순위 문장 (아직 다뤄지지 않은 카테고리만)
    first_unmatched = True
    for priority in analysis.improvement_priorities:
        category = detect_category(priority)
        if category is None or category in by_category:
            continue

        status = POOR if first_unmatched else NEEDS
        first_unmatched = False
        by_category[category] = ErgonomicInsight(
            category=category,
            status=status,
            title=build_title(category, status),
            description=priority,
            recommendation=pick_recommendation(category, status, priority),
        )

    # 3. 빠진 카테고리는 "문제 없음" 기본값
    if config.fill_missing_categories:
        for category in ErgonomicCategory:
            if category not in by_category:
                by_category[category] = ErgonomicInsight(
                    category=category,
                    status=GOOD,
                    title=build_title(category, GOOD),
                    description=DEFAULT_DESCRIPTION,
                )

    insights = prioritize_insights(list(by_category.values()))
    logger.info(
        f"Ergonomic insights built: "
        f"{sum(1 for i in insights if i.status != GOOD)} issues / {len(insights)} categories "
        f"(strictness={Strictness(config.strictness).value})"
    )
    return insights


def summarize_insights(insights: List[ErgonomicInsight]) -> ErgonomicSummary:
    """전체 점수 (good 100, needs 60, poor 20 평균)"""
    critical = sum(1 for i in insights if i.status == POOR)
    improvement = sum(1 for i in insights if i.status == NEEDS)
    good = sum(1 for i in insights if i.status == GOOD)

    if insights:
        score = int((good * 100 + improvement * 60 + critical * 20) / len(insights) + 0.5)
    else:
        score = 70

    if score >= 80:
        summary = "Your workspace has a good ergonomic setup with minor areas for improvement."
    elif score >= 60:
        summary = "Your workspace has a moderate ergonomic setup with several areas that could be improved."
    else:
        summary = ("Your workspace has significant ergonomic issues that should be addressed "
                   "for better health and productivity.")

    return ErgonomicSummary(
        overall_score=score,
        critical_issues=critical,
        improvement_areas=improvement,
        good_areas=good,
        summary=summary,
    )
