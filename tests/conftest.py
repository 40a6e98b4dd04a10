"""
Pytest Configuration and Fixtures
Esddar 테스트 공통 설정

Features:
- 테스트마다 새 인메모리 저장소
- 발송 메일 캡처 (확인 토큰 추출)
- 앱 / TestClient / 계정 헬퍼
"""

import pytest
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from app.core.auth import hash_password
from app.models.account import Role
from app.models.onboarding import DocumentStatus, OnboardingStatus, OnboardingStep
from app.services.email_service import ConfirmationMailer, set_mailer
from app.services.storage import InMemoryAccountStorage, set_account_storage


PASSWORD = "secret-pass"
PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\n%%EOF\n"


# ============================================================
# Mail Capture
# ============================================================

class CapturingMailer(ConfirmationMailer):
    """발송 대신 메일을 기록하는 채널"""

    def __init__(self):
        self.sent: List[Dict[str, str]] = []
        self.welcomed: List[str] = []

    def deliver(self, to_email: str, username: str, confirmation_link: str) -> None:
        self.sent.append({"to": to_email, "username": username, "link": confirmation_link})

    def deliver_welcome(self, to_email: str, username: str) -> None:
        self.welcomed.append(to_email)

    def last_token(self) -> Optional[str]:
        if not self.sent:
            return None
        query = parse_qs(urlparse(self.sent[-1]["link"]).query)
        return query["token"][0]


class FailingMailer(ConfirmationMailer):
    """항상 실패하는 발송 채널"""

    def deliver(self, to_email: str, username: str, confirmation_link: str) -> None:
        raise ConnectionError("SMTP relay unavailable")

    def deliver_welcome(self, to_email: str, username: str) -> None:
        raise ConnectionError("SMTP relay unavailable")


# ============================================================
# Storage / Mail Fixtures
# ============================================================

@pytest.fixture
def storage() -> InMemoryAccountStorage:
    """테스트용 인메모리 저장소 (전역 교체)"""
    store = InMemoryAccountStorage()
    set_account_storage(store)
    return store


@pytest.fixture
def mailer():
    """메일 캡처 채널"""
    capture = CapturingMailer()
    set_mailer(capture)
    yield capture
    set_mailer(ConfirmationMailer())


@pytest.fixture
def failing_mailer() -> FailingMailer:
    return FailingMailer()


# ============================================================
# App Fixtures
# ============================================================

@pytest.fixture
def portal_app(storage, mailer):
    """테스트마다 새 앱 (Rate limit 상태 분리)"""
    from app.main import create_app
    return create_app()


@pytest.fixture
def client(portal_app):
    """FastAPI TestClient (쿠키 유지)"""
    with TestClient(portal_app) as test_client:
        yield test_client


@pytest.fixture
def admin_account(storage):
    """관리자 계정 (온보딩 미완료)"""
    return storage.create_account(
        username="admin",
        password_hash=hash_password(PASSWORD),
        email="admin@esddar.test",
        company_name="System Administrator",
        role=Role.ADMIN,
        profile_completeness=100,
    )


# ============================================================
# Portal Helper
# ============================================================

class PortalActions:
    """HTTP 계약을 통한 계정/온보딩 조작 헬퍼"""

    def __init__(self, client: TestClient, mailer: CapturingMailer):
        self.client = client
        self.mailer = mailer

    def register(self, username: str = "acme", email: Optional[str] = "ops@acme.test") -> Dict[str, Any]:
        """가입 (세션 쿠키가 client에 설정됨)"""
        response = self.client.post("/api/register", json={
            "username": username,
            "password": PASSWORD,
            "email": email,
            "companyName": "Acme Contracting",
        })
        assert response.status_code == 201, response.text
        return response.json()

    def login(self, username: str) -> Dict[str, Any]:
        response = self.client.post("/api/login", json={"username": username, "password": PASSWORD})
        assert response.status_code == 200, response.text
        return response.json()

    def confirm_email(self) -> Dict[str, Any]:
        response = self.client.get("/api/confirm-email", params={"token": self.mailer.last_token()})
        assert response.status_code == 200, response.text
        return response.json()

    def upload_pdf(self, file_name: str = "company-profile.pdf") -> Dict[str, Any]:
        response = self.client.post(
            "/api/company-documents",
            files={"file": (file_name, PDF_BYTES, "application/pdf")},
        )
        assert response.status_code == 201, response.text
        return response.json()

    def next_step(self, current_step: str, next_step: str):
        return self.client.post("/api/onboarding/next-step", json={
            "currentStep": current_step,
            "nextStep": next_step,
        })

    def status(self) -> Dict[str, Any]:
        response = self.client.get("/api/onboarding-status")
        assert response.status_code == 200, response.text
        return response.json()

    def complete_onboarding(self, username: str = "acme") -> Dict[str, Any]:
        """가입부터 completed까지 진행"""
        account = self.register(username, email=f"{username}@acme.test")
        self.confirm_email()
        self.upload_pdf()
        for current, following in [
            ("upload_document", "choose_plan"),
            ("choose_plan", "payment"),
            ("payment", "completed"),
        ]:
            response = self.next_step(current, following)
            assert response.status_code == 200, response.text
        return account


@pytest.fixture
def portal(client, mailer) -> PortalActions:
    return PortalActions(client, mailer)


@pytest.fixture
def make_status():
    """상태 스냅샷 팩토리 (document: 문서 처리 상태)"""

    def _make(
        step: OnboardingStep = OnboardingStep.EMAIL_VERIFICATION,
        email_verified: bool = False,
        document: Optional[str] = None,
    ) -> OnboardingStatus:
        document_status = None
        if document is not None:
            document_status = DocumentStatus(
                document_id="doc_test",
                file_name="profile.pdf",
                status=document,
                uploaded_at=datetime(2025, 1, 1, 12, 0, 0),
            )
        return OnboardingStatus(
            current_step=step,
            completed=step.is_terminal,
            email_verified=email_verified,
            document_status=document_status,
        )

    return _make
