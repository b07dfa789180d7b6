"""애플리케이션 설정"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """환경변수 기반 설정"""

    # API Keys (직접 키 또는 프록시 중 하나)
    gemini_api_key: Optional[str] = None
    credential_proxy_url: Optional[str] = None
    credential_proxy_token: Optional[str] = None
    credential_cache_seconds: int = 300  # 프록시에서 받은 키 캐시 5분

    # Application
    app_name: str = "Workspace Stylist API"
    app_version: str = "1.0.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Photo Upload
    max_image_size_mb: int = 20  # Vision 모델 제한
    allowed_extensions: List[str] = [".jpg", ".jpeg", ".png", ".webp"]

    # Vision Model
    vision_model: str = "gemini-2.5-flash"
    vision_temperature: float = 0.7
    vision_max_output_tokens: int = 4000
    vision_timeout_seconds: float = 30  # 0이면 타임아웃 없음 (명시적 opt-in)

    # Retry
    analysis_max_attempts: int = 5
    analysis_retry_delay_seconds: float = 2.0  # attempt × delay 선형 backoff

    # Enrichment
    palette_max_colors: int = 5
    palette_sample_size: int = 64  # 색상 추출 전 NxN 이하로 축소
    ergonomic_strictness: str = "standard"

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def max_image_size_bytes(self) -> int:
        return self.max_image_size_mb * 1024 * 1024

    @property
    def uses_credential_proxy(self) -> bool:
        return bool(self.credential_proxy_url)


# 전역 설정 인스턴스
settings = Settings()
