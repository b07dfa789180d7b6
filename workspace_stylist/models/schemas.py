from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List, Literal, Union, Dict, Any


class ErgonomicCategory(str, Enum):
    """인체공학 평가 카테고리 (고정 5종)"""
    DESK_HEIGHT = "desk-height"
    CHAIR_POSTURE = "chair-posture"
    LIGHTING = "lighting"
    SCREEN_POSITION = "screen-position"
    ORGANIZATION = "organization"


class ErgonomicStatus(str, Enum):
    """평가 상태"""
    GOOD = "good"
    NEEDS_IMPROVEMENT = "needs-improvement"
    POOR = "poor"


class Strictness(str, Enum):
    """상태 매핑 엄격도"""
    LENIENT = "lenient"
    STANDARD = "standard"
    STRICT = "strict"


class PaletteMood(str, Enum):
    FOCUS = "focus"
    CREATIVITY = "creativity"
    CALM = "calm"
    ENERGIZING = "energizing"


class ProductCategory(str, Enum):
    DESK = "desk"
    CHAIR = "chair"
    LIGHTING = "lighting"
    STORAGE = "storage"
    DECOR = "decor"
    TECH = "tech"


# ==================== 입력 ====================

class QuizOption(BaseModel):
    id: str
    label: str
    description: str


class QuizQuestion(BaseModel):
    """스타일 퀴즈 문항"""
    id: str
    title: str
    options: List[QuizOption]


class QuizAnswers(BaseModel):
    """퀴즈 응답 (문항별 선택 코드 하나)"""
    workspace_vibe: Optional[str] = None
    color_preference: Optional[str] = None
    budget_range: Optional[str] = None

    @classmethod
    def from_responses(cls, responses: List[Dict[str, Any]]) -> "QuizAnswers":
        """[{question_id, selected_option_ids}] 형태의 응답 목록에서 생성"""
        picked = {}
        for response in responses:
            options = response.get("selected_option_ids") or []
            if response.get("question_id") and options:
                picked[response["question_id"]] = options[0]

        return cls(
            workspace_vibe=picked.get("workspace-vibe"),
            color_preference=picked.get("color-preference"),
            budget_range=picked.get("budget-range"),
        )


class AnalysisContext(BaseModel):
    """퀴즈 응답에서 만든 프롬프트 컨텍스트"""
    vibe_description: str
    color_preference_description: str
    budget_description: str

    model_config = {"frozen": True}


class PhotoPayload(BaseModel):
    """분석할 사진"""
    content: bytes
    size_bytes: int
    width: Optional[int] = None
    height: Optional[int] = None
    uri: Optional[str] = None


# ==================== 모델 응답 정규화 ====================

class StyleAssessment(BaseModel):
    current_style: str = ""
    alignment_score: float = Field(default=0.7, ge=0.0, le=1.0)
    alignment_explanation: str = ""


class ErgonomicEvaluation(BaseModel):
    """모델이 준 원본 평가 항목 (category/status 는 아직 자유 형식)"""
    category: str
    status: str = ""
    observation: str = ""
    recommendation: Optional[str] = None


class ColorAnalysis(BaseModel):
    dominant_colors: List[str] = Field(default_factory=list)
    mood: str = ""
    color_harmony: str = ""


class NormalizedAnalysis(BaseModel):
    """파싱 + 정리된 모델 응답"""
    workspace_description: str = ""
    style_assessment: Optional[StyleAssessment] = None
    ergonomic_evaluation: List[ErgonomicEvaluation] = Field(default_factory=list)
    improvement_priorities: List[str] = Field(default_factory=list)
    color_analysis: Optional[ColorAnalysis] = None


class ParsedResponse(BaseModel):
    """JSON 파싱 성공"""
    kind: Literal["parsed"] = "parsed"
    analysis: NormalizedAnalysis
    missing_fields: List[str] = Field(default_factory=list)


class HeuristicResponse(BaseModel):
    """JSON 없음 - 키워드 기반 추출"""
    kind: Literal["heuristic"] = "heuristic"
    analysis: NormalizedAnalysis


class EmptyResponse(BaseModel):
    """빈 응답 - 기본값"""
    kind: Literal["empty"] = "empty"
    analysis: NormalizedAnalysis


ParseOutcome = Union[ParsedResponse, HeuristicResponse, EmptyResponse]


# ==================== 결과 ====================

class ErgonomicInsight(BaseModel):
    category: ErgonomicCategory
    status: ErgonomicStatus
    title: str
    description: str
    recommendation: Optional[str] = None


class ErgonomicSummary(BaseModel):
    overall_score: int
    critical_issues: int
    improvement_areas: int
    good_areas: int
    summary: str


class PriceRange(BaseModel):
    min: int
    max: int
    currency: Literal["USD"] = "USD"


class ProductRecommendation(BaseModel):
    id: str
    name: str
    description: str
    price: PriceRange
    category: ProductCategory
    image_url: str
    tags: List[str] = Field(default_factory=list)
    rating: Optional[float] = None


class ColorPalette(BaseModel):
    """추출된 색상 팔레트"""
    name: str = "Workspace Colors"
    colors: List[str]
    mood: PaletteMood
    description: str


class StyleMatch(BaseModel):
    vibe: str
    confidence: float
    explanation: str


class WorkspaceAnalysisResult(BaseModel):
    """최종 분석 결과"""
    id: str
    summary: str
    recommendations: List[ProductRecommendation]
    color_palette: Optional[ColorPalette] = None
    ergonomic_insights: List[ErgonomicInsight]
    ergonomic_summary: Optional[ErgonomicSummary] = None
    style_match: StyleMatch
    parse_kind: str
    created_at: int  # epoch ms
    processing_time: int  # ms

    model_config = {"frozen": True}
