import logging
from typing import Any, Optional

import httpx

from quizapp.core.config import settings
from quizapp.schemas.quiz import QuizOut

logger = logging.getLogger(__name__)


class QuizAPIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class QuizAPIClient:
    """HTTP client for the quiz endpoints used by a quiz session"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.api_base_url
        self.token = token
        self.timeout = timeout or settings.api_timeout
        self.transport = transport

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, json: Any = None) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        ) as client:
            response = await client.request(method, path, json=json, headers=self._headers())

        if response.is_error:
            message = f"Request failed: {response.status_code}"
            details = None
            try:
                body = response.json()
                message = body.get("error") or body.get("detail") or message
                details = body.get("details")
            except (ValueError, AttributeError):
                pass
            logger.warning(f"{method} {path} -> {response.status_code}: {message}")
            raise QuizAPIError(message, response.status_code, details)

        return response

    async def fetch_quiz(self, quiz_type: str, slug: str) -> Optional[QuizOut]:
        """Fetch a quiz with its questions; None when the server sent no data"""
        response = await self._request("GET", f"/api/quizzes/{quiz_type}/{slug}")
        if not response.content:
            return None
        data = response.json()
        if not data:
            return None
        return QuizOut.model_validate(data)

    async def complete_quiz(self, slug: str, payload: dict) -> dict:
        response = await self._request(
            "POST", f"/api/quizzes/common/{slug}/complete", json=payload
        )
        return response.json()
