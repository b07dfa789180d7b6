"""
공용 테스트 픽스처
"""
import io
import os

import pytest

# 테스트 중에는 logs/app.log 를 만들지 않음
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("GEMINI_API_KEY", "test-key")


def make_image_bytes(color=(70, 110, 160), size=(64, 64), image_format="JPEG") -> bytes:
    from PIL import Image

    img = Image.new("RGB", size, color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes():
    """단색 JPEG 이미지"""
    return make_image_bytes()


@pytest.fixture
def photo(jpeg_bytes):
    from workspace_stylist.models.schemas import PhotoPayload

    return PhotoPayload(content=jpeg_bytes, size_bytes=len(jpeg_bytes), width=64, height=64)


@pytest.fixture
def quiz_answers():
    from workspace_stylist.models.schemas import QuizAnswers

    return QuizAnswers(
        workspace_vibe="focus-minimal",
        color_preference="neutral-tones",
        budget_range="budget-mid",
    )


@pytest.fixture
def model_json_response():
    """Vision 모델의 정상 JSON 응답"""
    return """Here is my analysis:
```json
{
    "workspace_description": "A compact desk by a window with a laptop and a small lamp.",
    "style_assessment": {
        "current_style": "Minimal Scandinavian",
        "alignment_score": 0.85,
        "alignment_explanation": "Clean lines match the focus-oriented preference."
    },
    "ergonomic_evaluation": [
        {
            "category": "screen-position",
            "status": "poor",
            "observation": "The laptop screen sits well below eye level.",
            "recommendation": "Raise the laptop on a stand and use an external keyboard."
        },
        {
            "category": "lighting",
            "status": "good",
            "observation": "Plenty of daylight from the window.",
            "recommendation": ""
        }
    ],
    "improvement_priorities": [
        "Raise the screen to eye level",
        "Add cable management under the desk"
    ],
    "color_analysis": {
        "dominant_colors": ["#f5f5f0", "#8B7355", "#2F4F4F"],
        "mood": "calm",
        "color_harmony": "Soft neutrals with warm wood accents."
    }
}
```"""
