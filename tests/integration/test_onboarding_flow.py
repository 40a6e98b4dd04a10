"""
Integration Tests for Client Onboarding Flow
클라이언트 컴포넌트(ApiClient, RouteGuard, OnboardingController)를
실제 앱(ASGI)에 연결한 전체 흐름 테스트

Run: pytest tests/integration/test_onboarding_flow.py -v
"""

import asyncio

import httpx
import pytest

from app.client import ApiClient, OnboardingController, RoleGuard, RouteGuard, StatusFetcher
from app.core.errors import InvalidTransition
from app.models.onboarding import OnboardingStep
from app.onboarding.gating import DecisionKind

PASSWORD = "secret-pass"
PDF_BYTES = b"%PDF-1.4\n%%EOF\n"


@pytest.fixture
def api_client(portal_app):
    """실제 앱에 연결된 클라이언트 팩토리"""

    def _make() -> ApiClient:
        return ApiClient(
            base_url="http://testserver",
            transport=httpx.ASGITransport(app=portal_app),
        )

    return _make


async def _confirm(client: ApiClient, mailer):
    response = await client.request("GET", "/api/confirm-email", params={"token": mailer.last_token()})
    assert response.status_code == 200


class TestClientFlow:
    """가입부터 대시보드 진입까지"""

    @pytest.mark.asyncio
    async def test_full_onboarding_journey(self, api_client, mailer):
        async with api_client() as client:
            await client.register("acme", PASSWORD, "ops@acme.test", "Acme Contracting")
            auth = await client.resolve_auth()
            guard = RouteGuard(StatusFetcher(client))

            # 1. 미완료 계정은 온보딩으로
            decision = await guard.evaluate("/dashboard", auth)
            assert decision.kind == DecisionKind.REDIRECT
            assert decision.location == "/onboarding"

            controller = OnboardingController(client)
            await controller.load()
            assert controller.view().step == OnboardingStep.EMAIL_VERIFICATION
            assert await controller.resend_confirmation()

            # 2. 이메일 확인 -> upload_document
            await _confirm(client, mailer)
            await controller.load()
            assert controller.active_step == 1
            assert controller.progress_percent() == 25

            # 3. 문서 업로드 후 계속
            assert await controller.upload_document("profile.pdf", PDF_BYTES)
            assert "continue_after_upload" in controller.view().actions
            assert await controller.continue_after_upload()
            assert controller.view().step == OnboardingStep.CHOOSE_PLAN

            # 4. 플랜/결제 건너뛰기
            assert await controller.skip_plan()
            assert controller.view().step == OnboardingStep.PAYMENT
            assert controller.redirect_to is None
            assert await controller.skip_payment()
            assert controller.redirect_to == "/dashboard"

            # 5. 이제 보호 화면 렌더
            decision = await guard.evaluate_session("/dashboard")
            assert decision.renders

    @pytest.mark.asyncio
    async def test_rejected_transition_surfaces_notice(self, api_client):
        async with api_client() as client:
            await client.register("acme", PASSWORD, "ops@acme.test")
            controller = OnboardingController(client)
            await controller.load()

            assert not await controller.skip_plan()

            assert controller.status.current_step == OnboardingStep.EMAIL_VERIFICATION
            assert controller.notices[-1].destructive
            assert controller.notices[-1].description == "Invalid current step"

    @pytest.mark.asyncio
    async def test_session_expiry_redirects_to_sign_in(self, api_client):
        async with api_client() as client:
            await client.register("acme", PASSWORD, "ops@acme.test")
            auth = await client.resolve_auth()
            await client.logout()

            decision = await RouteGuard(StatusFetcher(client)).evaluate("/dashboard", auth)

            assert decision.location == "/auth"

    @pytest.mark.asyncio
    async def test_role_guard_with_resolved_auth(self, api_client):
        async with api_client() as client:
            await client.register("acme", PASSWORD, "ops@acme.test")
            auth = await client.resolve_auth()

            assert RoleGuard().evaluate("/admin", auth).location == "/dashboard"


class TestConcurrentTransitions:
    """같은 계정의 동시 전환 요청"""

    @pytest.mark.asyncio
    async def test_only_one_identical_transition_succeeds(self, api_client, mailer):
        async with api_client() as first, api_client() as second:
            await first.register("acme", PASSWORD, "ops@acme.test")
            await second.login("acme", PASSWORD)
            await _confirm(first, mailer)
            await first.upload_document("profile.pdf", PDF_BYTES)

            results = await asyncio.gather(
                first.request_transition(OnboardingStep.UPLOAD_DOCUMENT, OnboardingStep.CHOOSE_PLAN),
                second.request_transition(OnboardingStep.UPLOAD_DOCUMENT, OnboardingStep.CHOOSE_PLAN),
                return_exceptions=True,
            )

            successes = [r for r in results if isinstance(r, dict)]
            rejections = [r for r in results if isinstance(r, InvalidTransition)]
            assert len(successes) == 1
            assert len(rejections) == 1
            assert rejections[0].code == "stale_current_step"

            status = await StatusFetcher(first).fetch()
            assert status.current_step == OnboardingStep.CHOOSE_PLAN
