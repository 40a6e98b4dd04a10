"""
이메일 확인 서비스

확인 토큰 발급/검증 및 발송 채널 연결.
실제 메일 발송은 외부 알림 채널이 담당하며, 기본 구현은 링크를 로그로 남긴다.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from app.core.config import settings
from app.services.storage import AccountRecord, ConfirmationToken, get_account_storage

logger = logging.getLogger(__name__)


class MailDeliveryError(Exception):
    """메일 발송 실패"""


class ConfirmationMailer:
    """
    확인 메일 발송 채널

    외부 알림 채널 연동 시 이 클래스를 상속해 deliver / deliver_welcome을 구현한다.
    """

    def deliver(self, to_email: str, username: str, confirmation_link: str) -> None:
        logger.info(
            f"[MAIL] from={settings.MAIL_FROM} to={to_email} "
            f"subject='Confirm Your Esddar Account' user={username} link={confirmation_link}"
        )

    def deliver_welcome(self, to_email: str, username: str) -> None:
        logger.info(
            f"[MAIL] from={settings.MAIL_FROM} to={to_email} "
            f"subject='Welcome to Esddar - Let's Get Started!' user={username}"
        )


class EmailConfirmationService:
    """이메일 확인 토큰 서비스"""

    def __init__(self, storage=None, mailer: Optional[ConfirmationMailer] = None):
        self.storage = storage if storage is not None else get_account_storage()
        self.mailer = mailer or ConfirmationMailer()
        self.ttl = timedelta(hours=settings.EMAIL_TOKEN_TTL_HOURS)

    def issue_token(self, account: AccountRecord) -> str:
        """확인 토큰 발급 (기본 24시간 유효)"""
        token = secrets.token_hex(32)
        self.storage.save_confirmation_token(ConfirmationToken(
            token=token,
            user_id=account.id,
            email=account.email or "",
            expires_at=datetime.utcnow() + self.ttl,
        ))
        return token

    def confirmation_link(self, token: str, base_url: Optional[str] = None) -> str:
        base = (base_url or settings.PUBLIC_BASE_URL).rstrip("/")
        return f"{base}/confirm-email?token={token}"

    def send_confirmation(self, account: AccountRecord, base_url: Optional[str] = None) -> str:
        """
        확인 메일 발송

        Returns:
            발급된 토큰

        Raises:
            MailDeliveryError: 발송 실패
        """
        if not account.email:
            raise MailDeliveryError("No email address associated with this account")

        token = self.issue_token(account)
        link = self.confirmation_link(token, base_url)

        try:
            self.mailer.deliver(account.email, account.username, link)
        except Exception as e:
            logger.error(f"Confirmation email delivery failed for {account.id}: {e}")
            raise MailDeliveryError(str(e)) from e

        logger.info(f"Confirmation email sent to account {account.id}")
        return token

    def verify_token(self, token: str) -> Optional[AccountRecord]:
        """
        토큰 검증 및 이메일 인증 처리

        토큰은 1회용이며 만료된 토큰은 삭제 후 거부한다.

        Returns:
            인증된 계정 (실패 시 None)
        """
        confirmation = self.storage.pop_confirmation_token(token)
        if confirmation is None:
            logger.warning("Unknown confirmation token")
            return None

        if confirmation.expires_at < datetime.utcnow():
            logger.warning(f"Expired confirmation token for account {confirmation.user_id}")
            return None

        return self.storage.mark_email_verified(confirmation.user_id)

    def send_welcome(self, account: AccountRecord) -> bool:
        """환영 메일 발송 (실패해도 이메일 확인 결과에는 영향 없음)"""
        if not account.email:
            return False

        try:
            self.mailer.deliver_welcome(account.email, account.username)
        except Exception as e:
            logger.warning(f"Welcome email delivery failed for {account.id}: {e}")
            return False

        logger.info(f"Welcome email sent to account {account.id}")
        return True


_mailer: ConfirmationMailer = ConfirmationMailer()


def set_mailer(mailer: ConfirmationMailer) -> None:
    """발송 채널 교체"""
    global _mailer
    _mailer = mailer


def get_email_service() -> EmailConfirmationService:
    return EmailConfirmationService(mailer=_mailer)
