"""
분석 오케스트레이터 테스트 (Vision 클라이언트/대기는 가짜 구현)
"""
import asyncio

import pytest

from workspace_stylist.exceptions import (
    AnalysisCancelledError,
    AuthError,
    ExhaustedRetriesError,
    QuotaError,
    TransportError,
    ValidationError,
)
from workspace_stylist.models.schemas import (
    ErgonomicCategory,
    ErgonomicStatus,
    PaletteMood,
    PhotoPayload,
)
from workspace_stylist.services.analysis import (
    DEFAULT_STYLE,
    DEFAULT_SUMMARY,
    AnalysisOrchestrator,
)
from workspace_stylist.services.color_palette import PaletteOptions

from conftest import make_image_bytes


class FakeVisionClient:
    """미리 정한 응답/예외를 순서대로 돌려준다 (마지막 항목은 반복)"""

    def __init__(self, *responses, on_call=None):
        self.responses = list(responses)
        self.calls = []
        self.on_call = on_call

    async def call(self, image_bytes, prompt, mime_type="image/jpeg"):
        self.calls.append({"image_bytes": image_bytes, "prompt": prompt, "mime_type": mime_type})
        if self.on_call:
            self.on_call()
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def sleep():
    return RecordingSleep()


def _orchestrator(client, sleep, **kwargs):
    kwargs.setdefault("max_attempts", 3)
    kwargs.setdefault("retry_delay", 2.0)
    return AnalysisOrchestrator(client, sleep=sleep, **kwargs)


# ==================== SUCCESS ====================

class TestAnalyzeSuccess:
    """Tests for a completed analysis."""

    def test_full_result(self, photo, quiz_answers, model_json_response, sleep):
        client = FakeVisionClient(model_json_response)
        progress = []

        result = asyncio.run(_orchestrator(client, sleep).analyze(
            photo, quiz_answers, on_progress=lambda step, percent: progress.append((step, percent)),
        ))

        assert result.id.startswith("analysis_")
        assert result.parse_kind == "parsed"
        assert result.summary == "A compact desk by a window with a laptop and a small lamp."
        assert result.style_match.vibe == "Minimal Scandinavian"
        assert result.style_match.confidence == pytest.approx(0.85)
        assert result.created_at > 0
        assert result.processing_time >= 0

        assert len(result.ergonomic_insights) == 5
        first = result.ergonomic_insights[0]
        assert (first.category, first.status) == (ErgonomicCategory.SCREEN_POSITION, ErgonomicStatus.POOR)
        assert result.ergonomic_summary.critical_issues >= 1

        assert result.color_palette.colors
        assert result.color_palette.mood in set(PaletteMood)
        assert result.recommendations

        assert [p for _, p in progress] == [10, 20, 30, 50, 70, 80, 85, 90, 100]
        assert progress[-1][0] == "Analysis complete!"
        assert sleep.delays == []

        sent = client.calls[0]
        assert sent["mime_type"] == "image/jpeg"
        assert sent["image_bytes"] == photo.content
        assert "Focus & Minimal" in sent["prompt"]

    def test_png_sent_with_png_mime(self, quiz_answers, model_json_response, sleep):
        content = make_image_bytes(image_format="PNG")
        client = FakeVisionClient(model_json_response)

        asyncio.run(_orchestrator(client, sleep).analyze(
            PhotoPayload(content=content, size_bytes=len(content)), quiz_answers,
        ))

        assert client.calls[0]["mime_type"] == "image/png"

    def test_other_formats_reencoded_to_jpeg(self, quiz_answers, model_json_response, sleep):
        content = make_image_bytes(image_format="BMP")
        client = FakeVisionClient(model_json_response)

        asyncio.run(_orchestrator(client, sleep).analyze(
            PhotoPayload(content=content, size_bytes=len(content)), quiz_answers,
        ))

        assert client.calls[0]["mime_type"] == "image/jpeg"
        assert client.calls[0]["image_bytes"].startswith(b"\xff\xd8\xff")

    def test_palette_from_model_colors_when_pixels_unreadable(self, quiz_answers, model_json_response, sleep):
        # JPEG 시그니처만 있고 디코딩 불가
        content = b"\xff\xd8\xff" + b"\x00" * 64
        client = FakeVisionClient(model_json_response)

        result = asyncio.run(_orchestrator(client, sleep).analyze(
            PhotoPayload(content=content, size_bytes=len(content)), quiz_answers,
        ))

        assert result.color_palette.colors == ["#F5F5F0", "#8B7355", "#2F4F4F"]
        assert result.color_palette.mood == PaletteMood.CALM

    def test_model_colors_capped_at_max_colors(self, quiz_answers, model_json_response, sleep):
        content = b"\xff\xd8\xff" + b"\x00" * 64
        orchestrator = _orchestrator(
            FakeVisionClient(model_json_response), sleep, palette_options=PaletteOptions(max_colors=2),
        )

        result = asyncio.run(orchestrator.analyze(PhotoPayload(content=content, size_bytes=len(content)), quiz_answers))

        assert result.color_palette.colors == ["#F5F5F0", "#8B7355"]

    def test_heuristic_response_uses_defaults(self, photo, quiz_answers, sleep):
        client = FakeVisionClient("I could not produce JSON. The chair looks fine.")

        result = asyncio.run(_orchestrator(client, sleep).analyze(photo, quiz_answers))

        assert result.parse_kind == "heuristic"
        assert result.summary == DEFAULT_SUMMARY
        assert len(result.ergonomic_insights) == 5

    def test_missing_style_assessment_defaults(self, photo, quiz_answers, sleep):
        client = FakeVisionClient('{"workspace_description": "Bare desk"}')

        result = asyncio.run(_orchestrator(client, sleep).analyze(photo, quiz_answers))

        assert result.style_match.vibe == DEFAULT_STYLE
        assert result.style_match.confidence == pytest.approx(0.7)

    def test_progress_callback_errors_are_ignored(self, photo, quiz_answers, model_json_response, sleep):
        def broken(step, percent):
            raise RuntimeError("ui gone")

        result = asyncio.run(_orchestrator(FakeVisionClient(model_json_response), sleep).analyze(
            photo, quiz_answers, on_progress=broken,
        ))
        assert result.parse_kind == "parsed"


# ==================== RETRY ====================

class TestRetry:
    """Tests for the retry loop."""

    def test_exhausts_retries_on_transport_errors(self, photo, quiz_answers, sleep):
        """Three transport failures: growing backoff, then a terminal error."""
        client = FakeVisionClient(TransportError("connection reset"))

        with pytest.raises(ExhaustedRetriesError) as exc_info:
            asyncio.run(_orchestrator(client, sleep, max_attempts=3).analyze(photo, quiz_answers))

        assert len(client.calls) == 3
        assert sleep.delays == [2.0, 4.0]
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, TransportError)
        assert "connection reset" in str(exc_info.value)

    def test_recovers_after_quota_error(self, photo, quiz_answers, model_json_response, sleep):
        client = FakeVisionClient(QuotaError("rate limited"), model_json_response)
        progress = []

        result = asyncio.run(_orchestrator(client, sleep).analyze(
            photo, quiz_answers, on_progress=lambda step, percent: progress.append(step),
        ))

        assert result.parse_kind == "parsed"
        assert len(client.calls) == 2
        assert sleep.delays == [2.0]
        assert "Retrying analysis (2/3)..." in progress

    def test_unexpected_exception_is_retried(self, photo, quiz_answers, model_json_response, sleep):
        client = FakeVisionClient(RuntimeError("something odd"), model_json_response)

        result = asyncio.run(_orchestrator(client, sleep).analyze(photo, quiz_answers))

        assert result.parse_kind == "parsed"
        assert len(client.calls) == 2

    def test_auth_error_aborts_immediately(self, photo, quiz_answers, sleep):
        client = FakeVisionClient(AuthError("bad key"))

        with pytest.raises(AuthError):
            asyncio.run(_orchestrator(client, sleep).analyze(photo, quiz_answers))

        assert len(client.calls) == 1
        assert sleep.delays == []

    def test_timeout_is_retryable_transport_error(self, photo, quiz_answers, sleep):
        class SlowClient:
            async def call(self, image_bytes, prompt, mime_type="image/jpeg"):
                await asyncio.sleep(5)
                return "{}"

        orchestrator = _orchestrator(SlowClient(), sleep, max_attempts=2, timeout=0.01)
        with pytest.raises(ExhaustedRetriesError) as exc_info:
            asyncio.run(orchestrator.analyze(photo, quiz_answers))

        assert isinstance(exc_info.value.last_error, TransportError)
        assert sleep.delays == [2.0]


# ==================== VALIDATION ====================

class TestValidation:
    """Tests for up-front photo validation."""

    def test_empty_photo(self, quiz_answers, sleep):
        client = FakeVisionClient("{}")

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(_orchestrator(client, sleep).analyze(
                PhotoPayload(content=b"", size_bytes=0), quiz_answers,
            ))

        assert exc_info.value.status_code == 400
        assert client.calls == []

    def test_oversized_photo(self, photo, quiz_answers, sleep):
        client = FakeVisionClient("{}")

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(_orchestrator(client, sleep, max_image_size_bytes=100).analyze(photo, quiz_answers))

        assert exc_info.value.status_code == 413
        assert client.calls == []

    def test_undecodable_photo(self, quiz_answers, sleep):
        client = FakeVisionClient("{}")
        content = b"definitely not an image"

        with pytest.raises(ValidationError):
            asyncio.run(_orchestrator(client, sleep).analyze(
                PhotoPayload(content=content, size_bytes=len(content)), quiz_answers,
            ))

        assert client.calls == []


# ==================== CANCELLATION ====================

class TestCancellation:
    """Tests for the external cancel signal."""

    def test_cancelled_before_start(self, photo, quiz_answers, sleep):
        async def run():
            event = asyncio.Event()
            event.set()
            client = FakeVisionClient("{}")
            with pytest.raises(AnalysisCancelledError):
                await _orchestrator(client, sleep).analyze(photo, quiz_answers, cancel_event=event)
            return client

        client = asyncio.run(run())
        assert client.calls == []

    def test_cancelled_after_failed_attempt(self, photo, quiz_answers, sleep):
        async def run():
            event = asyncio.Event()
            client = FakeVisionClient(TransportError("network down"), on_call=event.set)
            with pytest.raises(AnalysisCancelledError):
                await _orchestrator(client, sleep).analyze(photo, quiz_answers, cancel_event=event)
            return client

        client = asyncio.run(run())
        assert len(client.calls) == 1
        assert sleep.delays == []

    def test_cancelled_during_backoff(self, photo, quiz_answers):
        async def run():
            event = asyncio.Event()

            async def slow_sleep(delay):
                event.set()
                await asyncio.sleep(10)

            client = FakeVisionClient(TransportError("network down"))
            orchestrator = AnalysisOrchestrator(client, max_attempts=3, retry_delay=1.0, sleep=slow_sleep)
            with pytest.raises(AnalysisCancelledError):
                await asyncio.wait_for(orchestrator.analyze(photo, quiz_answers, cancel_event=event), timeout=5)
            return client

        client = asyncio.run(run())
        assert len(client.calls) == 1

    def test_cancelled_during_successful_call(self, photo, quiz_answers, model_json_response, sleep):
        async def run():
            event = asyncio.Event()
            client = FakeVisionClient(model_json_response, on_call=event.set)
            with pytest.raises(AnalysisCancelledError):
                await _orchestrator(client, sleep).analyze(photo, quiz_answers, cancel_event=event)
            return client

        client = asyncio.run(run())
        assert len(client.calls) == 1
        assert sleep.delays == []

    def test_cancel_interrupts_hanging_call(self, photo, quiz_answers, sleep):
        started = []

        class HangingVisionClient:
            async def call(self, image_bytes, prompt, mime_type="image/jpeg"):
                started.append(True)
                await asyncio.sleep(10)
                return "{}"

        async def run():
            event = asyncio.Event()
            asyncio.get_running_loop().call_later(0.05, event.set)
            orchestrator = _orchestrator(HangingVisionClient(), sleep, timeout=None)
            with pytest.raises(AnalysisCancelledError):
                await asyncio.wait_for(orchestrator.analyze(photo, quiz_answers, cancel_event=event), timeout=5)

        asyncio.run(run())
        assert started == [True]
        assert sleep.delays == []
