"""분석 파이프라인 예외 계층

retryable: 재시도 루프가 다시 시도해도 되는 오류인지
status_code: 라우트에서 HTTPException 으로 바꿀 때 쓰는 코드
"""
from typing import Optional


class AnalysisError(Exception):
    """분석 오류 기본 클래스"""

    retryable = False
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(AnalysisError):
    """사진 입력 오류 (재시도 불가)"""
    status_code = 400


class TransportError(AnalysisError):
    """네트워크/타임아웃/서버 오류"""
    retryable = True
    status_code = 503


class AuthError(AnalysisError):
    """자격 증명 오류 (재시도 불가)"""
    status_code = 502


class QuotaError(AnalysisError):
    """rate limit / quota 초과"""
    retryable = True
    status_code = 429


class VisionModelError(AnalysisError):
    """그 외 모델 API 오류 또는 빈 응답"""
    retryable = True
    status_code = 502


class ParseError(AnalysisError):
    """응답 파서 내부 전용. 파서 밖으로 전파되지 않는다."""


class AnalysisCancelledError(AnalysisError):
    """외부 취소 신호로 중단됨"""
    status_code = 499


class ExhaustedRetriesError(AnalysisError):
    """모든 재시도 실패"""
    status_code = 503

    def __init__(self, last_error: Exception, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"Analysis failed after {attempts} attempts: {last_error}")
