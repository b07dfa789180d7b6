import asyncio
from typing import Optional

from google import genai
from google.genai import errors, types

from ..config import settings
from ..exceptions import (
    AnalysisError,
    AuthError,
    QuotaError,
    TransportError,
    VisionModelError,
)
from ..utils.logger import logger
from .credentials import ProxyCredentialProvider, StaticCredentialProvider

QUOTA_KEYWORDS = ("rate limit", "rate_limit", "quota", "resource_exhausted", "too many requests")
AUTH_KEYWORDS = ("api key", "api_key", "unauthorized", "permission denied", "unauthenticated")
TRANSPORT_KEYWORDS = ("timeout", "timed out", "connection", "network", "unavailable", "overloaded")


def classify_error(exc: Exception) -> AnalysisError:
    """SDK/네트워크 예외 → 분석 예외 (재시도 여부 포함)"""
    if isinstance(exc, AnalysisError):
        return exc

    message = str(exc) or type(exc).__name__
    lowered = message.lower()
    code = exc.code if isinstance(exc, errors.APIError) else None

    if code == 429 or any(k in lowered for k in QUOTA_KEYWORDS):
        return QuotaError(f"Vision API rate limit or quota exceeded: {message}")
    if code in (401, 403) or any(k in lowered for k in AUTH_KEYWORDS):
        return AuthError(f"Vision API rejected credentials: {message}")
    if isinstance(exc, (asyncio.TimeoutError, ConnectionError)):
        return TransportError(f"Vision API transport failure: {message}")
    if (code is not None and (code >= 500 or code == 408)) or any(k in lowered for k in TRANSPORT_KEYWORDS):
        return TransportError(f"Vision API transport failure: {message}")
    return VisionModelError(f"Vision API error: {message}")


class GeminiVisionClient:
    """Google Gemini Vision 호출 (call(image, prompt) -> 원문 텍스트)"""

    def __init__(
        self,
        credentials,
        model: str = "gemini-2.5-flash",
        temperature: float = 0.7,
        max_output_tokens: int = 4000,
    ):
        self.credentials = credentials
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._client = None
        self._client_key = None

        logger.info(f"GeminiVisionClient initialized (model={model})")

    def _get_client(self) -> genai.Client:
        # 프록시 키가 바뀌면 클라이언트 재생성
        credential = self.credentials.get()
        if self._client is None or self._client_key != credential.key:
            self._client = genai.Client(api_key=credential.key)
            self._client_key = credential.key
        return self._client

    async def call(self, image_bytes: bytes, prompt: str, mime_type: str = "image/jpeg") -> str:
        """사진 + 프롬프트 전송 후 응답 텍스트 반환"""
        try:
            client = self._get_client()
            response = await asyncio.to_thread(
                client.models.generate_content,
                model=self.model,
                contents=[prompt, types.Part.from_bytes(data=image_bytes, mime_type=mime_type)],
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    max_output_tokens=self.max_output_tokens,
                ),
            )
        except Exception as e:
            error = classify_error(e)
            logger.warning(f"Vision call failed: {type(error).__name__}: {error.message}")
            raise error from e

        text = response.text
        if not text or not text.strip():
            raise VisionModelError("Vision API returned an empty response")

        logger.info(f"Vision response received ({len(text)} chars)")
        return text


def build_credential_provider():
    """설정에 따라 프록시 또는 고정 키 제공자"""
    if settings.uses_credential_proxy:
        return ProxyCredentialProvider(
            url=settings.credential_proxy_url,
            token=settings.credential_proxy_token,
            cache_seconds=settings.credential_cache_seconds,
        )
    return StaticCredentialProvider(settings.gemini_api_key)


# 싱글톤 인스턴스
_vision_client: Optional[GeminiVisionClient] = None

def get_vision_client() -> GeminiVisionClient:
    """GeminiVisionClient 인스턴스 가져오기"""
    global _vision_client
    if _vision_client is None:
        _vision_client = GeminiVisionClient(
            credentials=build_credential_provider(),
            model=settings.vision_model,
            temperature=settings.vision_temperature,
            max_output_tokens=settings.vision_max_output_tokens,
        )
    return _vision_client
