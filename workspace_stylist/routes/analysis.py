from fastapi import APIRouter, UploadFile, File, Form, HTTPException
import os
from typing import List, Optional

from ..models.schemas import (
    PhotoPayload,
    QuizAnswers,
    QuizQuestion,
    WorkspaceAnalysisResult,
)
from ..exceptions import AnalysisError, ExhaustedRetriesError, ValidationError
from ..services.analysis import get_orchestrator
from ..services.quiz_context import QUIZ_QUESTIONS
from ..config import settings
from ..utils.logger import logger

router = APIRouter(prefix="/api", tags=["analysis"])

CHUNK_SIZE = 1024 * 1024  # 1MB chunks


@router.get("/quiz", response_model=List[QuizQuestion])
async def get_quiz():
    """스타일 퀴즈 문항 목록 반환"""
    return QUIZ_QUESTIONS


async def _read_photo(file: UploadFile) -> PhotoPayload:
    """업로드 파일을 청크로 읽으면서 크기 검증"""
    if file.filename:
        file_ext = os.path.splitext(file.filename)[1].lower()
        if file_ext and file_ext not in settings.allowed_extensions:
            logger.warning(f"Invalid file extension: {file_ext}")
            raise HTTPException(
                status_code=400,
                detail=f"지원하지 않는 파일 형식입니다. 허용된 형식: {', '.join(settings.allowed_extensions)}"
            )

    max_size = settings.max_image_size_bytes
    content = bytearray()

    while True:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        content.extend(chunk)
        if len(content) > max_size:
            logger.warning(f"File too large: {len(content)} bytes")
            raise HTTPException(
                status_code=413,
                detail=f"파일 크기가 너무 큽니다. 최대 {settings.max_image_size_mb}MB까지 허용됩니다."
            )

    return PhotoPayload(content=bytes(content), size_bytes=len(content), uri=file.filename)


@router.post("/analyze", response_model=WorkspaceAnalysisResult)
async def analyze_workspace(
    photo: UploadFile = File(...),
    workspace_vibe: Optional[str] = Form(None),
    color_preference: Optional[str] = Form(None),
    budget_range: Optional[str] = Form(None),
):
    """작업 공간 사진 + 퀴즈 응답 분석"""
    try:
        logger.info(f"Analysis requested: {photo.filename}")
        payload = await _read_photo(photo)
        answers = QuizAnswers(
            workspace_vibe=workspace_vibe,
            color_preference=color_preference,
            budget_range=budget_range,
        )

        orchestrator = get_orchestrator()
        return await orchestrator.analyze(payload, answers)

    except HTTPException:
        raise
    except ValidationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except ExhaustedRetriesError as e:
        logger.error(f"Analysis exhausted retries: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=f"분석 실패 (재시도 {e.attempts}회 초과): {e.last_error}")
    except AnalysisError as e:
        logger.error(f"Analysis failed: {type(e).__name__}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=f"분석 실패: {e.message}")
    except Exception as e:
        logger.error(f"Analysis failed: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"분석 실패: {str(e)}")
