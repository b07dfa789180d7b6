"""작업 공간 분석 오케스트레이터

컨텍스트 생성 → 사진 검증 → Vision 호출 (재시도) → 파싱 → 보강(색상/인체공학/추천)
순서로 진행하고 WorkspaceAnalysisResult 를 만든다.
Vision 호출과 사진 검증 외의 단계는 실패해도 기본값으로 대체된다.
"""
import asyncio
import time
import uuid
from enum import Enum
from typing import Callable, List, Optional

from ..config import settings
from ..exceptions import (
    AnalysisCancelledError,
    AnalysisError,
    ExhaustedRetriesError,
    TransportError,
)
from ..models.schemas import (
    ColorPalette,
    ErgonomicInsight,
    ErgonomicSummary,
    NormalizedAnalysis,
    PhotoPayload,
    QuizAnswers,
    Strictness,
    StyleMatch,
    WorkspaceAnalysisResult,
)
from ..utils.logger import logger
from .color_palette import (
    PaletteOptions,
    extract_palette,
    fallback_palette,
    palette_from_color_analysis,
    sample_pixels,
)
from .ergonomics import ErgonomicConfig, build_insights, summarize_insights
from .image_processing import encode_for_vision, validate_photo
from .prompts import build_analysis_prompt
from .quiz_context import build_analysis_context
from .recommendations import generate_recommendations
from .response_parser import PLACEHOLDER, parse_response
from .vision_client import classify_error, get_vision_client

ProgressCallback = Callable[[str, int], None]

DEFAULT_SUMMARY = "Workspace analysis completed"
DEFAULT_STYLE = "Modern workspace"
DEFAULT_STYLE_CONFIDENCE = 0.7
DEFAULT_STYLE_EXPLANATION = "Good style alignment"


class AnalysisStage(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    IMAGE_VALIDATION = "image-validation"
    MODEL_CALL = "model-call"
    RETRYING = "retrying"
    PARSING = "parsing"
    ENRICHMENT = "enrichment"
    DONE = "done"


class AnalysisOrchestrator:
    """한 번의 analyze() 호출 = Vision 호출 최대 max_attempts 회"""

    def __init__(
        self,
        vision_client,
        max_attempts: int = 5,
        retry_delay: float = 2.0,
        timeout: Optional[float] = 30,
        max_image_size_bytes: int = 20 * 1024 * 1024,
        palette_options: Optional[PaletteOptions] = None,
        palette_sample_size: int = 64,
        ergonomic_config: Optional[ErgonomicConfig] = None,
        sleep=asyncio.sleep,
    ):
        self.vision_client = vision_client
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.timeout = timeout or None
        self.max_image_size_bytes = max_image_size_bytes
        self.palette_options = palette_options or PaletteOptions()
        self.palette_sample_size = palette_sample_size
        self.ergonomic_config = ergonomic_config or ErgonomicConfig()
        self._sleep = sleep

    async def analyze(
        self,
        photo: PhotoPayload,
        quiz_answers: QuizAnswers,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> WorkspaceAnalysisResult:
        start_time = time.time()

        def report(stage: AnalysisStage, message: str, percent: int) -> None:
            logger.info(f"[{stage.value}] {message} ({percent}%)")
            if on_progress is None:
                return
            try:
                on_progress(message, percent)
            except Exception as e:
                logger.warning(f"Progress callback raised {type(e).__name__}: {e}")

        report(AnalysisStage.INITIALIZING, "Initializing analysis...", 10)
        context = build_analysis_context(quiz_answers)
        report(AnalysisStage.INITIALIZING, "Preparing analysis context...", 20)

        report(AnalysisStage.IMAGE_VALIDATION, "Validating photo...", 30)
        validate_photo(photo, self.max_image_size_bytes)
        image_bytes, mime_type = encode_for_vision(photo.content)
        prompt = build_analysis_prompt(context)

        report(AnalysisStage.MODEL_CALL, "Analyzing workspace with AI...", 50)
        raw_text = await self._call_with_retry(image_bytes, mime_type, prompt, report, cancel_event)

        report(AnalysisStage.PARSING, "Processing analysis results...", 70)
        outcome = parse_response(raw_text)
        analysis = outcome.analysis

        report(AnalysisStage.ENRICHMENT, "Extracting color palette...", 80)
        color_palette = await self._build_palette(photo, analysis)

        report(AnalysisStage.ENRICHMENT, "Evaluating ergonomics...", 85)
        insights, ergonomic_summary = self._build_ergonomics(analysis)

        report(AnalysisStage.ENRICHMENT, "Generating recommendations...", 90)
        recommendations = generate_recommendations(analysis, context)

        result = WorkspaceAnalysisResult(
            id=f"analysis_{uuid.uuid4().hex}",
            summary=self._summary(analysis),
            recommendations=recommendations,
            color_palette=color_palette,
            ergonomic_insights=insights,
            ergonomic_summary=ergonomic_summary,
            style_match=self._style_match(analysis),
            parse_kind=outcome.kind,
            created_at=int(time.time() * 1000),
            processing_time=int((time.time() - start_time) * 1000),
        )

        report(AnalysisStage.DONE, "Analysis complete!", 100)
        logger.info(f"Analysis {result.id} finished in {result.processing_time}ms (parse={outcome.kind})")
        return result

    # ==================== Vision 호출 ====================

    async def _call_with_retry(self, image_bytes, mime_type, prompt, report, cancel_event) -> str:
        last_error: Optional[AnalysisError] = None

        for attempt in range(1, self.max_attempts + 1):
            self._check_cancelled(cancel_event)
            try:
                logger.info(f"Vision call attempt {attempt}/{self.max_attempts}")
                return await self._until_cancelled(
                    self._call_once(image_bytes, mime_type, prompt), cancel_event
                )
            except Exception as e:
                error = classify_error(e)
                if not error.retryable:
                    logger.error(f"Non-retryable failure on attempt {attempt}: {error.message}")
                    if error is e:
                        raise
                    raise error from e

                last_error = error
                logger.warning(f"Attempt {attempt}/{self.max_attempts} failed: {error.message}")

            if attempt < self.max_attempts:
                delay = attempt * self.retry_delay
                report(AnalysisStage.RETRYING, f"Retrying analysis ({attempt + 1}/{self.max_attempts})...", 50)
                logger.info(f"Retrying in {delay}s...")
                await self._backoff(delay, cancel_event)

        logger.error(f"Analysis FAILED after {self.max_attempts} attempts")
        raise ExhaustedRetriesError(last_error, self.max_attempts)

    async def _call_once(self, image_bytes: bytes, mime_type: str, prompt: str) -> str:
        call = self.vision_client.call(image_bytes, prompt, mime_type)
        if self.timeout is None:
            return await call

        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise TransportError(f"Vision call timed out after {self.timeout}s")

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Analysis cancelled")
            raise AnalysisCancelledError("분석이 취소되었습니다.")

    async def _backoff(self, delay: float, cancel_event: Optional[asyncio.Event]) -> None:
        """delay 동안 대기, 그 사이 취소되면 즉시 중단"""
        self._check_cancelled(cancel_event)
        await self._until_cancelled(self._sleep(delay), cancel_event)

    async def _until_cancelled(self, awaitable, cancel_event: Optional[asyncio.Event]):
        """awaitable 과 취소 이벤트 중 먼저 끝나는 쪽을 따름 (이벤트가 set 이면 결과는 버림)"""
        if cancel_event is None:
            return await awaitable

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(cancel_event.wait())
        _, pending = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        if cancel_event.is_set():
            if work.done() and not work.cancelled() and work.exception() is not None:
                logger.info(f"Discarding result of cancelled call: {type(work.exception()).__name__}")
            self._check_cancelled(cancel_event)
        return work.result()

    # ==================== 보강 ====================

    async def _build_palette(self, photo: PhotoPayload, analysis: NormalizedAnalysis) -> ColorPalette:
        """사진 픽셀 → 모델이 준 색상 → 고정 팔레트 순으로 시도"""
        try:
            pixels = await asyncio.to_thread(sample_pixels, photo.content, self.palette_sample_size)
            if pixels:
                return extract_palette(pixels, self.palette_options)
        except Exception as e:
            logger.warning(f"Could not sample photo pixels for color extraction: {e}")

        try:
            palette = palette_from_color_analysis(analysis.color_analysis, self.palette_options.max_colors)
            if palette is not None:
                logger.info("Using model-reported colors for palette")
                return palette
        except Exception as e:
            logger.warning(f"Model color analysis unusable: {e}")

        return fallback_palette()

    def _build_ergonomics(self, analysis: NormalizedAnalysis):
        try:
            insights: List[ErgonomicInsight] = build_insights(analysis, self.ergonomic_config)
        except Exception as e:
            logger.error(f"Ergonomic insight generation failed: {e}", exc_info=True)
            insights = build_insights(NormalizedAnalysis(), self.ergonomic_config)

        summary: ErgonomicSummary = summarize_insights(insights)
        return insights, summary

    @staticmethod
    def _summary(analysis: NormalizedAnalysis) -> str:
        description = analysis.workspace_description
        if not description or description == PLACEHOLDER:
            return DEFAULT_SUMMARY
        return description

    @staticmethod
    def _style_match(analysis: NormalizedAnalysis) -> StyleMatch:
        style = analysis.style_assessment
        if style is None:
            return StyleMatch(
                vibe=DEFAULT_STYLE,
                confidence=DEFAULT_STYLE_CONFIDENCE,
                explanation=DEFAULT_STYLE_EXPLANATION,
            )

        return StyleMatch(
            vibe=style.current_style or DEFAULT_STYLE,
            confidence=style.alignment_score,
            explanation=style.alignment_explanation or DEFAULT_STYLE_EXPLANATION,
        )


# 싱글톤 인스턴스
_orchestrator: Optional[AnalysisOrchestrator] = None

def get_orchestrator() -> AnalysisOrchestrator:
    """AnalysisOrchestrator 인스턴스 가져오기"""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = AnalysisOrchestrator(
            vision_client=get_vision_client(),
            max_attempts=settings.analysis_max_attempts,
            retry_delay=settings.analysis_retry_delay_seconds,
            timeout=settings.vision_timeout_seconds,
            max_image_size_bytes=settings.max_image_size_bytes,
            palette_options=PaletteOptions(max_colors=settings.palette_max_colors),
            palette_sample_size=settings.palette_sample_size,
            ergonomic_config=ErgonomicConfig(strictness=Strictness(settings.ergonomic_strictness)),
        )
    return _orchestrator
