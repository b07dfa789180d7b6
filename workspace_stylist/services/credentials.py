"""Vision API 자격 증명 제공자

Vision 클라이언트에 주입해서 사용한다. 프록시 제공자는 받은 키를 일정 시간 캐시한다.
"""
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from ..exceptions import AuthError, TransportError
from ..utils.logger import logger


@dataclass(frozen=True)
class Credential:
    key: str
    fetched_at: float
    expires_at: Optional[float] = None  # None 이면 만료 없음


class StaticCredentialProvider:
    """설정에 있는 API 키를 그대로 사용"""

    def __init__(self, api_key: str, clock: Callable[[], float] = time.time):
        if not api_key:
            raise AuthError("GEMINI_API_KEY가 설정되지 않았습니다.")
        self._credential = Credential(key=api_key, fetched_at=clock())

    def get(self) -> Credential:
        return self._credential

    def is_expired(self, credential: Credential) -> bool:
        return False

    def clear_cache(self) -> None:
        pass


class ProxyCredentialProvider:
    """프록시 엔드포인트에서 키를 받아 cache_seconds 동안 재사용"""

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        cache_seconds: float = 300,
        timeout: float = 10,
        clock: Callable[[], float] = time.time,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.token = token
        self.cache_seconds = cache_seconds
        self.timeout = timeout
        self._clock = clock
        self._session = session or requests.Session()
        self._cached: Optional[Credential] = None

    def is_expired(self, credential: Credential) -> bool:
        return credential.expires_at is not None and self._clock() >= credential.expires_at

    def clear_cache(self) -> None:
        self._cached = None

    def get(self) -> Credential:
        if self._cached is not None and not self.is_expired(self._cached):
            return self._cached

        self._cached = self._fetch()
        return self._cached

    def _fetch(self) -> Credential:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        logger.info(f"Fetching API credential from proxy: {self.url}")
        try:
            response = self._session.get(self.url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Credential proxy unreachable: {e}")

        if response.status_code in (401, 403):
            raise AuthError(f"Credential proxy rejected the request ({response.status_code})")
        if response.status_code != 200:
            raise TransportError(f"Credential proxy failed with status {response.status_code}")

        try:
            key = response.json().get("key")
        except (ValueError, AttributeError) as e:
            raise TransportError(f"Invalid credential proxy response: {e}")

        if not key:
            raise AuthError("Credential proxy returned no API key")

        now = self._clock()
        logger.info("API credential fetched from proxy")
        return Credential(key=key, fetched_at=now, expires_at=now + self.cache_seconds)
