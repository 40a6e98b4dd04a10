"""
Portal API Client & Status Fetcher
세션 쿠키 기반 비동기 HTTP 클라이언트

StatusFetcher.fetch()는 부작용이 없고 재시도하지 않는다.
재시도 여부는 호출자 정책이다.
"""

from typing import Any, Dict, Optional
import logging

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.core.errors import (
    AuthUnresolved,
    InvalidTransition,
    StatusFetchFailed,
    TransitionRequestFailed,
    Unauthenticated,
)
from app.models.account import Role
from app.models.onboarding import OnboardingStatus, OnboardingStep, SubscriptionPlan
from app.onboarding.gating import AuthState

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        return body.get("error") or default
    return default


class ApiClient:
    """
    포털 API 클라이언트

    Args:
        base_url: API 서버 주소
        timeout: 요청 타임아웃 (초)
        transport: httpx 트랜스포트 (테스트에서 ASGI 앱 주입)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.API_BASE_URL
        self.timeout = timeout if timeout is not None else settings.STATUS_FETCH_TIMEOUT_SECONDS
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        return await self._client.request(method, path, **kwargs)

    # ========================================
    # Session
    # ========================================

    async def register(self, username: str, password: str, email: str, company_name: str = "") -> Dict[str, Any]:
        response = await self.request("POST", "/api/register", json={
            "username": username,
            "password": password,
            "email": email,
            "companyName": company_name,
        })
        if response.status_code != 201:
            raise Unauthenticated(_error_message(response, "Registration failed"))
        return response.json()

    async def login(self, username: str, password: str) -> Dict[str, Any]:
        response = await self.request("POST", "/api/login", json={
            "username": username,
            "password": password,
        })
        if response.status_code != 200:
            raise Unauthenticated(_error_message(response, "Invalid username or password"))
        return response.json()

    async def logout(self):
        await self.request("POST", "/api/logout")
        self._client.cookies.clear()

    async def resolve_auth(self) -> AuthState:
        """
        인증 상태 확인

        401/403이면 익명, 네트워크/서버 오류는 AuthUnresolved (대기 후 재시도).
        """
        try:
            response = await self.request("GET", "/api/user")
        except httpx.HTTPError as e:
            raise AuthUnresolved(f"Could not resolve session: {e}")

        if response.status_code in (401, 403):
            return AuthState.anonymous()
        if response.status_code != 200:
            raise AuthUnresolved(_error_message(response, "Could not resolve session"))

        body = response.json()
        return AuthState.signed_in(body["id"], Role(body.get("role", Role.STANDARD.value)))

    # ========================================
    # Onboarding
    # ========================================

    async def request_transition(self, current_step: OnboardingStep, next_step: OnboardingStep) -> Dict[str, Any]:
        """
        단계 전환 요청

        Raises:
            InvalidTransition: 검증기 거부 (4xx)
            Unauthenticated: 세션 없음
            TransitionRequestFailed: 네트워크/서버 오류
        """
        try:
            response = await self.request("POST", "/api/onboarding/next-step", json={
                "currentStep": current_step.value,
                "nextStep": next_step.value,
            })
        except httpx.HTTPError as e:
            raise TransitionRequestFailed(f"Transition request failed: {e}")

        if response.status_code == 401:
            raise Unauthenticated("Session expired")

        if 400 <= response.status_code < 500:
            body = {}
            try:
                body = response.json()
            except ValueError:
                pass
            details = {k: v for k, v in body.items() if k not in ("error", "code")} if isinstance(body, dict) else {}
            raise InvalidTransition(
                _error_message(response, "Failed to proceed to next step."),
                code=body.get("code", "invalid_transition") if isinstance(body, dict) else "invalid_transition",
                details=details,
            )

        if response.status_code != 200:
            raise TransitionRequestFailed(
                _error_message(response, "An error occurred while updating your onboarding progress.")
            )

        return response.json()

    async def resend_confirmation(self) -> Dict[str, Any]:
        response = await self.request("POST", "/api/resend-confirmation")
        if response.status_code == 401:
            raise Unauthenticated("Session expired")
        if response.status_code != 200:
            raise TransitionRequestFailed(_error_message(response, "Failed to resend confirmation email."))
        return response.json()

    async def upload_document(self, file_name: str, content: bytes, content_type: str = "application/pdf") -> Dict[str, Any]:
        response = await self.request(
            "POST",
            "/api/company-documents",
            files={"file": (file_name, content, content_type)},
        )
        if response.status_code == 401:
            raise Unauthenticated("Session expired")
        if response.status_code != 201:
            raise TransitionRequestFailed(_error_message(response, "Document upload failed."))
        return response.json()

    async def select_plan(self, plan: SubscriptionPlan) -> Dict[str, Any]:
        response = await self.request("POST", "/api/subscription", json={"plan": plan.value})
        if response.status_code == 401:
            raise Unauthenticated("Session expired")
        if response.status_code != 200:
            raise TransitionRequestFailed(_error_message(response, "Plan selection failed."))
        return response.json()


class StatusFetcher:
    """
    온보딩 상태 조회기

    단일 연산 fetch() -> OnboardingStatus
    """

    def __init__(self, client: ApiClient):
        self.client = client

    async def fetch(self) -> OnboardingStatus:
        """
        현재 계정의 온보딩 상태 스냅샷

        Raises:
            Unauthenticated: 401
            StatusFetchFailed: 네트워크/타임아웃/서버 오류/잘못된 응답
        """
        try:
            response = await self.client.request("GET", "/api/onboarding-status")
        except httpx.TimeoutException as e:
            logger.warning(f"Onboarding status fetch timed out after {self.client.timeout}s")
            raise StatusFetchFailed(f"Onboarding status request timed out: {e}")
        except httpx.HTTPError as e:
            logger.warning(f"Onboarding status fetch failed: {e}")
            raise StatusFetchFailed(f"Onboarding status request failed: {e}")

        if response.status_code == 401:
            raise Unauthenticated("Unauthorized")

        if response.status_code != 200:
            raise StatusFetchFailed(
                _error_message(response, "Failed to fetch onboarding status."),
                status_code=response.status_code,
            )

        try:
            return OnboardingStatus.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise StatusFetchFailed(f"Malformed onboarding status: {e}")
