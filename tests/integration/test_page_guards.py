"""
Integration Tests for Page Guards
서버측 라우트 가드 / 역할 가드 리다이렉트 테스트

Run: pytest tests/integration/test_page_guards.py -v
"""

import pytest

from app.web.pages import PROTECTED_PAGES


def _get(client, path):
    return client.get(path, follow_redirects=False)


class TestRouteGuardPages:
    """온보딩 완료가 필요한 화면"""

    @pytest.mark.parametrize("path", PROTECTED_PAGES)
    def test_anonymous_redirected_to_sign_in(self, client, path):
        response = _get(client, path)

        assert response.status_code == 303
        assert response.headers["location"] == "/auth"

    @pytest.mark.parametrize("path", PROTECTED_PAGES)
    def test_incomplete_redirected_to_onboarding(self, portal, client, path):
        portal.register("acme")

        response = _get(client, path)

        assert response.status_code == 303
        assert response.headers["location"] == "/onboarding"

    def test_redirect_until_last_step_done(self, portal, client):
        """payment 단계에서도 여전히 온보딩으로"""
        portal.register("acme")
        portal.confirm_email()
        portal.upload_pdf()
        portal.next_step("upload_document", "choose_plan")
        portal.next_step("choose_plan", "payment")

        assert _get(client, "/dashboard").headers["location"] == "/onboarding"

        portal.next_step("payment", "completed")

        response = _get(client, "/dashboard")
        assert response.status_code == 200
        assert response.json()["page"] == "/dashboard"

    def test_completed_account_renders(self, portal, client):
        portal.complete_onboarding("acme")

        response = _get(client, "/tenders")

        assert response.status_code == 200
        assert response.json()["account"]["username"] == "acme"

    def test_status_unavailable_withholds_page(self, portal, client, monkeypatch):
        """상태 저장소 오류 -> 503 (fail closed)"""
        portal.complete_onboarding("acme")

        class BrokenService:
            def get_status(self, account_id):
                raise ConnectionError("database is locked")

        monkeypatch.setattr("app.web.guards.get_onboarding_service", lambda: BrokenService())

        response = _get(client, "/dashboard")

        assert response.status_code == 503
        assert response.headers["retry-after"] == "5"


class TestOnboardingPage:
    """온보딩 화면 (로그인만 필요)"""

    def test_anonymous_redirected_to_sign_in(self, client):
        response = _get(client, "/onboarding")
        assert response.headers["location"] == "/auth"

    def test_incomplete_account_sees_onboarding(self, portal, client):
        portal.register("acme")

        response = _get(client, "/onboarding")

        assert response.status_code == 200
        assert response.json()["onboarding"]["currentStep"] == "email_verification"

    def test_completed_account_sent_to_dashboard(self, portal, client):
        portal.complete_onboarding("acme")

        response = _get(client, "/onboarding")

        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"


class TestRoleGuardPages:
    """관리자 화면 (역할만 확인)"""

    def test_anonymous_redirected_to_sign_in(self, client):
        assert _get(client, "/admin").headers["location"] == "/auth"

    def test_standard_account_redirected_to_dashboard(self, portal, client):
        portal.complete_onboarding("acme")

        response = _get(client, "/admin")

        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

    def test_admin_with_incomplete_onboarding_allowed(self, portal, client, admin_account):
        portal.login("admin")

        assert _get(client, "/admin").status_code == 200
        assert _get(client, "/admin/scrape-logs").status_code == 200
        # 관리자도 일반 보호 화면은 온보딩 규칙을 따름
        assert _get(client, "/dashboard").headers["location"] == "/onboarding"
