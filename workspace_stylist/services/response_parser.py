"""Vision 모델 응답 파싱 및 정리

JSON(코드 블록 → 본문 첫 객체)을 먼저 시도하고, 실패하면 문장 단위 키워드
추출로 대체한다. 어떤 입력에도 예외를 던지지 않는다.
"""
import json
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as SchemaValidationError

from ..exceptions import ParseError
from ..models.schemas import (
    ColorAnalysis,
    EmptyResponse,
    ErgonomicEvaluation,
    HeuristicResponse,
    NormalizedAnalysis,
    ParsedResponse,
    ParseOutcome,
    StyleAssessment,
)
from ..utils.logger import logger

PLACEHOLDER = "Analysis not available"
DEFAULT_ALIGNMENT_SCORE = 0.7
REQUIRED_FIELDS = ["workspace_description"]
TOP_LEVEL_FIELDS = [
    "workspace_description",
    "style_assessment",
    "ergonomic_evaluation",
    "improvement_priorities",
    "color_analysis",
]

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_FENCE_MARKER = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_WRAPPED = re.compile(r"^\s*[\[{]([\s\S]*)[\]}]\s*$")
_KEY_PREFIX = re.compile(r'^\s*"[^"\n]{1,60}"\s*:\s*')
_QUOTED = re.compile(r"^([\"'])([\s\S]*)\1$")
_EDGE_COMMAS = re.compile(r"^\s*,|,\s*$")
_WHITESPACE = re.compile(r"\s+")
_WORD_CHAR = re.compile(r"[A-Za-z0-9]")
_HEX_COLOR = re.compile(r"#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{3})\b")
_SENTENCE_BREAK = re.compile(r"[.!?\n]+")
_LIST_MARKER = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s+")

# 역슬래시 이스케이프 (순서 중요: \\ 는 마지막)
_ESCAPES = [('\\"', '"'), ("\\'", "'"), ("\\n", " "), ("\\t", " "), ("\\r", ""), ("\\\\", "\\")]

# 휴리스틱 추출용 키워드
_SECTION_KEYWORDS = {
    "workspace_description": ("workspace", "description", "current"),
    "current_style": ("style", "aesthetic"),
    "alignment_explanation": ("alignment", "match", "preference"),
    "color_harmony": ("color", "colour", "palette"),
}
_ERGONOMIC_KEYWORDS = [
    ("desk-height", ("desk",)),
    ("chair-posture", ("chair", "posture")),
    ("lighting", ("lighting", "light", "lamp")),
    ("screen-position", ("screen", "monitor")),
    ("organization", ("organization", "organized", "clutter", "storage")),
]
_MOODS = ("focus", "creativity", "calm", "energizing")


# ==================== 텍스트 정리 ====================

def _strip_once(text: str) -> str:
    """포맷 잔여물 한 겹 제거"""
    text = _FENCE_MARKER.sub("", text).strip()

    wrapped = _WRAPPED.match(text)
    if wrapped:
        text = wrapped.group(1).strip()

    text = _EDGE_COMMAS.sub("", text).strip()
    text = _KEY_PREFIX.sub("", text)

    quoted = _QUOTED.match(text)
    if quoted:
        text = quoted.group(2)

    for escaped, plain in _ESCAPES:
        text = text.replace(escaped, plain)

    return _WHITESPACE.sub(" ", text).strip()


def clean_text(value: Any) -> str:
    """자유 텍스트에서 코드 펜스/따옴표/괄호/JSON 키/이스케이프 제거

    의미 없는 값(3자 미만, 문장부호만)은 빈 문자열이 된다.
    """
    if not isinstance(value, str):
        return ""

    cleaned = value
    previous = None
    while cleaned != previous:
        previous = cleaned
        cleaned = _strip_once(cleaned)

    if len(cleaned) < 3 or not _WORD_CHAR.search(cleaned):
        return ""

    if cleaned[0].islower():
        cleaned = cleaned[0].upper() + cleaned[1:]

    return cleaned


def _plain(value: Any) -> str:
    """category/status 같은 짧은 코드값 (길이 제한 없이)"""
    if not isinstance(value, str):
        return ""
    return value.strip().strip("\"'").strip()


def _normalize_hex(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None

    match = _HEX_COLOR.fullmatch(value.strip()) or _HEX_COLOR.fullmatch("#" + value.strip())
    if not match:
        return None

    digits = match.group(0)[1:]
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return f"#{digits.upper()}"


# ==================== JSON 경로 ====================

def _key(name: str) -> str:
    """snake_case / camelCase 키를 같은 형태로"""
    return re.sub(r"[^a-z0-9]", "", name.lower())


def _index(data: Dict[str, Any]) -> Dict[str, Any]:
    return {_key(str(k)): v for k, v in data.items()}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _score(value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return DEFAULT_ALIGNMENT_SCORE

    # 0-100 스케일로 준 경우
    if 1.0 < score <= 100.0:
        score = score / 100.0
    return min(max(score, 0.0), 1.0)


def _has_known_field(data: Dict[str, Any]) -> bool:
    keys = _index(data)
    return any(_key(name) in keys for name in TOP_LEVEL_FIELDS)


def _loads(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except (json.JSONDecodeError, RecursionError):
        return None


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """코드 블록 JSON → 본문의 첫 최상위 객체 순으로 시도"""
    for block in _FENCED_BLOCK.finditer(text):
        data = _loads(block.group(1))
        if isinstance(data, dict):
            return data

    decoder = json.JSONDecoder()
    start = text.find("{")
    first = True
    while start != -1:
        try:
            data, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            data = None
        except RecursionError:
            # 중첩이 너무 깊으면 이후 위치도 마찬가지
            logger.warning("JSON nesting too deep, skipping object scan")
            return None

        # 첫 '{' 이후 위치는 중첩 객체일 수 있으므로 최상위 필드가 있어야 채택
        if isinstance(data, dict) and (first or _has_known_field(data)):
            return data

        first = False
        start = text.find("{", start + 1)

    return None


def _evaluation_from_json(item: Any) -> Optional[ErgonomicEvaluation]:
    if not isinstance(item, dict):
        return None

    fields = _index(item)
    category = _plain(fields.get("category"))
    if not category:
        return None

    observation = clean_text(fields.get("observation")) or clean_text(fields.get("description"))
    return ErgonomicEvaluation(
        category=category,
        status=_plain(fields.get("status")),
        observation=observation,
        recommendation=clean_text(fields.get("recommendation")) or None,
    )


def _analysis_from_json(data: Dict[str, Any]) -> Tuple[NormalizedAnalysis, List[str]]:
    fields = _index(data)
    try:
        style_assessment = None
        style = fields.get("styleassessment")
        if isinstance(style, dict):
            style_fields = _index(style)
            style_assessment = StyleAssessment(
                current_style=clean_text(style_fields.get("currentstyle")),
                alignment_score=_score(style_fields.get("alignmentscore")),
                alignment_explanation=clean_text(style_fields.get("alignmentexplanation")),
            )

        color_analysis = None
        colors = fields.get("coloranalysis")
        if isinstance(colors, dict):
            color_fields = _index(colors)
            hex_colors = [_normalize_hex(c) for c in _as_list(color_fields.get("dominantcolors"))]
            color_analysis = ColorAnalysis(
                dominant_colors=[c for c in hex_colors if c],
                mood=_plain(color_fields.get("mood")).lower(),
                color_harmony=clean_text(color_fields.get("colorharmony")),
            )

        evaluations = [_evaluation_from_json(item) for item in _as_list(fields.get("ergonomicevaluation"))]
        priorities = [clean_text(p) for p in _as_list(fields.get("improvementpriorities"))]

        analysis = NormalizedAnalysis(
            workspace_description=clean_text(fields.get("workspacedescription")),
            style_assessment=style_assessment,
            ergonomic_evaluation=[e for e in evaluations if e],
            improvement_priorities=[p for p in priorities if p],
            color_analysis=color_analysis,
        )
    except SchemaValidationError as e:
        raise ParseError(f"Unexpected response structure: {e}")

    missing = [name for name in REQUIRED_FIELDS if not getattr(analysis, name)]
    return analysis, missing


# ==================== 휴리스틱 경로 ====================

def _sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_BREAK.split(text) if s.strip()]


def _find_sentence(sentences: List[str], keywords) -> Optional[str]:
    for sentence in sentences:
        lowered = sentence.lower()
        if any(keyword in lowered for keyword in keywords):
            cleaned = clean_text(sentence)
            if cleaned:
                return cleaned
    return None


def _extract_priorities(text: str, limit: int = 3) -> List[str]:
    """번호/글머리표 줄을 개선 우선순위로"""
    priorities = []
    for line in text.splitlines():
        if _LIST_MARKER.match(line) and len(line.strip()) > 10:
            priority = clean_text(_LIST_MARKER.sub("", line, count=1))
            if priority:
                priorities.append(priority)
        if len(priorities) >= limit:
            break
    return priorities


def _analysis_from_prose(text: str) -> NormalizedAnalysis:
    sentences = _sentences(text)

    def section(name: str) -> str:
        return _find_sentence(sentences, _SECTION_KEYWORDS[name]) or PLACEHOLDER

    evaluations = []
    for category, keywords in _ERGONOMIC_KEYWORDS:
        observation = _find_sentence(sentences, keywords)
        if observation:
            evaluations.append(ErgonomicEvaluation(
                category=category,
                status="needs-improvement",
                observation=observation,
            ))

    colors = []
    for match in _HEX_COLOR.finditer(text):
        color = _normalize_hex(match.group(0))
        if color and color not in colors:
            colors.append(color)

    lowered = text.lower()
    mood = next((m for m in _MOODS if m in lowered), "")

    return NormalizedAnalysis(
        workspace_description=section("workspace_description"),
        style_assessment=StyleAssessment(
            current_style=section("current_style"),
            alignment_score=DEFAULT_ALIGNMENT_SCORE,
            alignment_explanation=section("alignment_explanation"),
        ),
        ergonomic_evaluation=evaluations,
        improvement_priorities=_extract_priorities(text),
        color_analysis=ColorAnalysis(
            dominant_colors=colors,
            mood=mood,
            color_harmony=section("color_harmony"),
        ),
    )


# ==================== 진입점 ====================

def parse_response(raw_text: Any) -> ParseOutcome:
    """원본 응답 → ParsedResponse | HeuristicResponse | EmptyResponse"""
    text = raw_text if isinstance(raw_text, str) else ""
    if not text.strip():
        logger.warning("Empty model response, using default analysis")
        return EmptyResponse(analysis=NormalizedAnalysis(workspace_description=PLACEHOLDER))

    try:
        data = extract_json_object(text)
        if data is not None:
            analysis, missing = _analysis_from_json(data)
            if missing:
                logger.warning(f"Model response missing required fields: {missing}")
            logger.info(f"Parsed JSON response ({len(analysis.ergonomic_evaluation)} ergonomic entries)")
            return ParsedResponse(analysis=analysis, missing_fields=missing)
    except ParseError as e:
        logger.warning(f"JSON response rejected, falling back to heuristics: {e}")
    except Exception as e:
        logger.warning(f"JSON extraction failed, falling back to heuristics: {type(e).__name__}: {e}")

    try:
        logger.warning("No usable JSON in model response, using heuristic extraction")
        return HeuristicResponse(analysis=_analysis_from_prose(text))
    except Exception as e:
        logger.error(f"Heuristic extraction failed: {e}", exc_info=True)
        return EmptyResponse(analysis=NormalizedAnalysis(workspace_description=PLACEHOLDER))


def parse(raw_text: Any) -> NormalizedAnalysis:
    """항상 NormalizedAnalysis 반환 (예외 없음)"""
    return parse_response(raw_text).analysis
