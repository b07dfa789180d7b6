"""퀴즈 응답 → AnalysisContext 매핑"""
from typing import List

from ..models.schemas import AnalysisContext, QuizAnswers, QuizOption, QuizQuestion


# 미리 정의된 퀴즈 문항
QUIZ_QUESTIONS: List[QuizQuestion] = [
    QuizQuestion(
        id="workspace-vibe",
        title="What's your ideal workspace mood?",
        options=[
            QuizOption(
                id="focus-minimal",
                label="Focus & Minimal",
                description="Clean, distraction-free environment for deep work",
            ),
            QuizOption(
                id="creative-inspiring",
                label="Creative & Inspiring",
                description="Vibrant space that sparks creativity and innovation",
            ),
            QuizOption(
                id="cozy-warm",
                label="Cozy & Warm",
                description="Comfortable, welcoming atmosphere for relaxed productivity",
            ),
        ],
    ),
    QuizQuestion(
        id="color-preference",
        title="Which color palette appeals to you?",
        options=[
            QuizOption(
                id="neutral-tones",
                label="Neutral Tones",
                description="Calming beiges, whites, and soft grays",
            ),
            QuizOption(
                id="bold-accents",
                label="Bold Accents",
                description="Energizing pops of color with strong contrasts",
            ),
            QuizOption(
                id="natural-greens",
                label="Natural Greens",
                description="Refreshing plant-inspired earth tones",
            ),
        ],
    ),
    QuizQuestion(
        id="budget-range",
        title="What's your furniture budget?",
        options=[
            QuizOption(
                id="budget-low",
                label="Under $500",
                description="Budget-friendly essentials and DIY solutions",
            ),
            QuizOption(
                id="budget-mid",
                label="$500 - $1500",
                description="Quality pieces with good value for money",
            ),
            QuizOption(
                id="budget-high",
                label="$1500+",
                description="Premium furniture and complete workspace transformation",
            ),
        ],
    ),
]

DEFAULT_VIBE = "Modern and functional"
DEFAULT_COLOR_PREFERENCE = "Neutral and calming"
DEFAULT_BUDGET = "Mid-range quality"


def _describe(question_id: str, option_id: str, default: str) -> str:
    """'Label - Description' 형식, 모르는 코드는 default"""
    question = next((q for q in QUIZ_QUESTIONS if q.id == question_id), None)
    if question is None or not option_id:
        return default

    option = next((o for o in question.options if o.id == option_id), None)
    if option is None:
        return default

    return f"{option.label} - {option.description}"


def build_analysis_context(answers: QuizAnswers) -> AnalysisContext:
    """퀴즈 응답에서 컨텍스트 생성 (실패하지 않음)"""
    return AnalysisContext(
        vibe_description=_describe("workspace-vibe", answers.workspace_vibe, DEFAULT_VIBE),
        color_preference_description=_describe(
            "color-preference", answers.color_preference, DEFAULT_COLOR_PREFERENCE
        ),
        budget_description=_describe("budget-range", answers.budget_range, DEFAULT_BUDGET),
    )
