from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import analysis
from .config import settings
from .utils.logger import logger

logger.info(f"Starting {settings.app_name} v{settings.app_version}")

# FastAPI 앱 생성
app = FastAPI(
    title=settings.app_name,
    description="작업 공간 사진 분석 및 인체공학/스타일 추천 API",
    version=settings.app_version,
    debug=settings.debug
)

# CORS 설정 (환경변수 기반)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info(f"CORS enabled for origins: {settings.cors_origins}")

# 라우터 등록
app.include_router(analysis.router)


@app.get("/health")
async def health_check():
    """헬스 체크 및 시스템 상태"""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "vision_credentials_configured": bool(settings.gemini_api_key or settings.credential_proxy_url),
        "config": {
            "vision_model": settings.vision_model,
            "max_image_size_mb": settings.max_image_size_mb,
            "max_attempts": settings.analysis_max_attempts,
            "timeout_seconds": settings.vision_timeout_seconds
        }
    }


@app.on_event("startup")
async def startup_event():
    """애플리케이션 시작 시 실행"""
    logger.info("="*50)
    logger.info("Application startup")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Vision model: {settings.vision_model}")
    logger.info(f"Credential source: {'proxy' if settings.uses_credential_proxy else 'api key'}")
    logger.info(f"Max image size: {settings.max_image_size_mb}MB")
    logger.info("="*50)


@app.on_event("shutdown")
async def shutdown_event():
    """애플리케이션 종료 시 실행"""
    logger.info("Application shutdown")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )
