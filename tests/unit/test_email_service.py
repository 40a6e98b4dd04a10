"""
Unit Tests for Email Confirmation Service
확인 토큰 발급/검증 테스트

Run: pytest tests/unit/test_email_service.py -v
"""

import pytest
from datetime import timedelta

from app.models.onboarding import OnboardingStep
from app.services.email_service import EmailConfirmationService, MailDeliveryError
from app.services.storage import InMemoryAccountStorage


@pytest.fixture
def store():
    return InMemoryAccountStorage()


@pytest.fixture
def account(store):
    return store.create_account(username="acme", password_hash="hash", email="ops@acme.test")


@pytest.fixture
def service(store, mailer):
    return EmailConfirmationService(storage=store, mailer=mailer)


class TestSendConfirmation:
    """확인 메일 발송"""

    def test_sends_link_with_token(self, service, mailer, account):
        token = service.send_confirmation(account, base_url="https://portal.esddar.test/")

        assert len(token) == 64
        assert mailer.sent[0]["to"] == "ops@acme.test"
        assert mailer.sent[0]["link"] == f"https://portal.esddar.test/confirm-email?token={token}"

    def test_each_send_issues_new_token(self, service, account):
        assert service.send_confirmation(account) != service.send_confirmation(account)

    def test_account_without_email(self, store, service):
        no_email = store.create_account(username="noemail", password_hash="hash")

        with pytest.raises(MailDeliveryError):
            service.send_confirmation(no_email)

    def test_delivery_failure_is_wrapped(self, store, account, failing_mailer):
        service = EmailConfirmationService(storage=store, mailer=failing_mailer)

        with pytest.raises(MailDeliveryError):
            service.send_confirmation(account)


class TestVerifyToken:
    """토큰 검증"""

    def test_valid_token_verifies_email_and_advances(self, service, store, account):
        token = service.send_confirmation(account)

        record = service.verify_token(token)

        assert record.email_verified is True
        assert record.onboarding_step == OnboardingStep.UPLOAD_DOCUMENT

    def test_token_is_single_use(self, service, account):
        token = service.send_confirmation(account)

        assert service.verify_token(token) is not None
        assert service.verify_token(token) is None

    def test_unknown_token(self, service):
        assert service.verify_token("0" * 64) is None

    def test_expired_token(self, store, mailer, account):
        service = EmailConfirmationService(storage=store, mailer=mailer)
        service.ttl = timedelta(seconds=-1)
        token = service.send_confirmation(account)

        assert service.verify_token(token) is None
        assert store.get_account(account.id).email_verified is False


class TestSendWelcome:
    """확인 후 환영 메일"""

    def test_welcome_sent_to_confirmed_account(self, service, mailer, account):
        record = service.verify_token(service.send_confirmation(account))

        assert service.send_welcome(record) is True
        assert mailer.welcomed == ["ops@acme.test"]

    def test_welcome_failure_does_not_raise(self, store, account, failing_mailer):
        service = EmailConfirmationService(storage=store, mailer=failing_mailer)

        assert service.send_welcome(account) is False

    def test_account_without_email_skipped(self, store, service, mailer):
        no_email = store.create_account(username="noemail", password_hash="hash")

        assert service.send_welcome(no_email) is False
        assert mailer.welcomed == []
