"""
Unit Tests for Status Fetcher / API Client
httpx MockTransport로 응답/오류 매핑 테스트

Run: pytest tests/unit/test_client_fetcher.py -v
"""

import pytest
import httpx

from app.client.fetcher import ApiClient, StatusFetcher
from app.core.errors import (
    AuthUnresolved,
    InvalidTransition,
    StatusFetchFailed,
    TransitionRequestFailed,
    Unauthenticated,
)
from app.models.account import Role
from app.models.onboarding import OnboardingStep

STATUS_BODY = {
    "currentStep": "upload_document",
    "completed": False,
    "emailVerified": True,
    "documentStatus": {
        "documentId": "doc_1",
        "fileName": "profile.pdf",
        "status": "pending",
        "uploadedAt": "2025-03-01T09:30:00",
    },
    "hasSubscription": False,
    "hasTutorial": False,
}


def _client(handler) -> ApiClient:
    return ApiClient(base_url="http://testserver", timeout=2.0, transport=httpx.MockTransport(handler))


class TestStatusFetcher:
    """StatusFetcher.fetch() 오류 매핑"""

    @pytest.mark.asyncio
    async def test_fetch_parses_snapshot(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=STATUS_BODY)

        async with _client(handler) as client:
            status = await StatusFetcher(client).fetch()

        assert status.current_step == OnboardingStep.UPLOAD_DOCUMENT
        assert status.email_verified is True
        assert status.document_status.file_name == "profile.pdf"
        assert requests[0].method == "GET"
        assert requests[0].url.path == "/api/onboarding-status"

    @pytest.mark.asyncio
    async def test_unauthorized_raises_unauthenticated(self):
        async with _client(lambda request: httpx.Response(401, json={"error": "Unauthorized"})) as client:
            with pytest.raises(Unauthenticated):
                await StatusFetcher(client).fetch()

    @pytest.mark.asyncio
    async def test_server_error_raises_fetch_failed(self):
        def handler(request):
            return httpx.Response(500, json={"error": "Failed to fetch onboarding status"})

        async with _client(handler) as client:
            with pytest.raises(StatusFetchFailed) as exc_info:
                await StatusFetcher(client).fetch()

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Failed to fetch onboarding status"

    @pytest.mark.asyncio
    async def test_timeout_raises_fetch_failed(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler) as client:
            with pytest.raises(StatusFetchFailed) as exc_info:
                await StatusFetcher(client).fetch()

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_network_error_raises_fetch_failed(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(StatusFetchFailed):
                await StatusFetcher(client).fetch()

    @pytest.mark.asyncio
    async def test_malformed_body_raises_fetch_failed(self):
        def handler(request):
            return httpx.Response(200, json={"currentStep": "tutorial"})

        async with _client(handler) as client:
            with pytest.raises(StatusFetchFailed):
                await StatusFetcher(client).fetch()

    @pytest.mark.asyncio
    async def test_no_retry_on_failure(self):
        """실패해도 재시도하지 않음"""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        async with _client(handler) as client:
            with pytest.raises(StatusFetchFailed):
                await StatusFetcher(client).fetch()

        assert len(calls) == 1


class TestApiClient:
    """ApiClient 요청/응답 매핑"""

    @pytest.mark.asyncio
    async def test_transition_rejection_carries_code(self):
        def handler(request):
            return httpx.Response(400, json={
                "error": "Invalid current step",
                "code": "stale_current_step",
                "expected": "choose_plan",
                "received": "upload_document",
            })

        async with _client(handler) as client:
            with pytest.raises(InvalidTransition) as exc_info:
                await client.request_transition(OnboardingStep.UPLOAD_DOCUMENT, OnboardingStep.CHOOSE_PLAN)

        error = exc_info.value
        assert error.code == "stale_current_step"
        assert error.details == {"expected": "choose_plan", "received": "upload_document"}

    @pytest.mark.asyncio
    async def test_transition_sends_camel_case_body(self):
        bodies = []

        def handler(request):
            bodies.append(request.content)
            return httpx.Response(200, json={"success": True})

        async with _client(handler) as client:
            await client.request_transition(OnboardingStep.PAYMENT, OnboardingStep.COMPLETED)

        assert b'"currentStep":"payment"' in bodies[0].replace(b" ", b"")
        assert b'"nextStep":"completed"' in bodies[0].replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_transition_server_error(self):
        async with _client(lambda request: httpx.Response(502)) as client:
            with pytest.raises(TransitionRequestFailed):
                await client.request_transition(OnboardingStep.PAYMENT, OnboardingStep.COMPLETED)

    @pytest.mark.asyncio
    async def test_resolve_auth(self):
        def handler(request):
            return httpx.Response(200, json={"id": "acct_1", "username": "acme", "role": "admin"})

        async with _client(handler) as client:
            auth = await client.resolve_auth()

        assert auth.authenticated
        assert auth.role == Role.ADMIN

    @pytest.mark.asyncio
    async def test_resolve_auth_anonymous(self):
        async with _client(lambda request: httpx.Response(401, json={"error": "Unauthorized"})) as client:
            auth = await client.resolve_auth()

        assert not auth.authenticated
        assert not auth.loading

    @pytest.mark.asyncio
    async def test_resolve_auth_server_error_is_transient(self):
        """인증 확인 실패는 AuthUnresolved (익명으로 취급하지 않음)"""
        async with _client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(AuthUnresolved):
                await client.resolve_auth()
