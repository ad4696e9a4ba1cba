"""
HTTP client for the enrollment/test API. Cookie session: login stores the token cookie on the httpx client
and every later call sends it. Non-2xx responses raise ApiError with the server's envelope message.
Pass any httpx.Client (FastAPI's TestClient in tests); base_url defaults to the local dev server.
"""
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response, or status_code 0 when the server could not be reached."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class NotAuthenticated(ApiError):
    """401: the UI should redirect to login."""


class LmsClient:
    def __init__(self, http: httpx.Client | None = None, base_url: str = "http://localhost:8080", timeout: float = 30.0):
        self._owns_http = http is None
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "LmsClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            r = self.http.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.warning("%s %s: no response (%s)", method, path, e)
            raise ApiError(0, f"Network error: {e}") from e
        if r.is_success:
            return r.json() if r.content else None
        try:
            body = r.json()
            message = body.get("message") or body.get("detail") or r.reason_phrase
        except ValueError:
            message = r.text or r.reason_phrase
        logger.debug("%s %s failed: %s %s", method, path, r.status_code, message)
        if r.status_code == 401:
            raise NotAuthenticated(r.status_code, str(message))
        raise ApiError(r.status_code, str(message))

    # ==================== AUTH ====================

    def login(self, email: str, password: str) -> dict:
        """Log in; the token cookie set by the server is kept on self.http."""
        return self._request("POST", "/auth/login", json={"email": email, "password": password})

    def logout(self) -> dict:
        return self._request("GET", "/auth/logout")

    def me(self) -> dict:
        return self._request("GET", "/auth/me")

    # ==================== ENROLLMENT ====================

    def enroll(self, course_id: str) -> dict:
        return self._request("POST", f"/enrollment/{course_id}/enroll")

    def mark_video_watched(self, course_id: str) -> dict:
        return self._request("PATCH", f"/enrollment/{course_id}/video-watched")

    def get_test(self, course_id: str) -> dict:
        """{hasAttempted, gate, questions, timeLimit, previousResult}"""
        return self._request("GET", f"/enrollment/{course_id}/test")

    def submit_test(self, course_id: str, answers: list[int]) -> dict:
        """{score, correctAnswers, wrongAnswers, totalQuestions, passed, attemptNumber, certificateGenerated}"""
        return self._request("POST", f"/enrollment/{course_id}/test/submit", json={"answers": answers})

    def certificate_status(self) -> dict:
        return self._request("GET", "/enrollment/certificate-status")

    def my_enrollments(self) -> list[dict]:
        return self._request("GET", "/enrollment/my-enrollments")["enrollments"]
