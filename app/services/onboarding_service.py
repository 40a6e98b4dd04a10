"""
Onboarding Service
상태 스냅샷 계산 및 단계 전환 적용

스냅샷은 조회할 때마다 저장소에서 다시 계산한다 (캐시 없음).
"""

import logging
from typing import Optional

from app.core.config import settings
from app.core.errors import InvalidTransition
from app.models.onboarding import DocumentStatus, OnboardingStatus, OnboardingStep
from app.onboarding.validator import TransitionValidator, ValidatorConfig
from app.services.storage import AccountRecord, StaleStepError, get_account_storage

logger = logging.getLogger(__name__)


class AccountNotFound(Exception):
    """계정 없음"""


class OnboardingService:
    """온보딩 상태 조회/전환 서비스"""

    def __init__(self, storage=None, validator: Optional[TransitionValidator] = None):
        self.storage = storage if storage is not None else get_account_storage()
        self.validator = validator or TransitionValidator(ValidatorConfig(
            require_processed_document=settings.ONBOARDING_REQUIRE_PROCESSED_DOCUMENT,
        ))

    def _load(self, account_id: str) -> AccountRecord:
        record = self.storage.get_account(account_id)
        if record is None:
            raise AccountNotFound(account_id)
        return record

    def snapshot_for(self, record: AccountRecord) -> OnboardingStatus:
        """계정 레코드 + 최신 문서로 스냅샷 계산"""
        document = self.storage.latest_document(record.id)
        document_status = None
        if document is not None:
            document_status = DocumentStatus(
                document_id=document.document_id,
                file_name=document.file_name,
                status=document.status,
                uploaded_at=document.uploaded_at,
            )

        step = record.onboarding_step
        return OnboardingStatus(
            current_step=step,
            completed=step.is_terminal,
            email_verified=record.email_verified,
            document_status=document_status,
            has_subscription=bool(record.subscription_plan),
            has_tutorial=record.has_seen_tutorial,
        )

    def get_status(self, account_id: str) -> OnboardingStatus:
        """
        온보딩 상태 조회

        Raises:
            AccountNotFound: 계정 없음
        """
        return self.snapshot_for(self._load(account_id))

    def request_transition(
        self,
        account_id: str,
        current_step: OnboardingStep,
        next_step: OnboardingStep,
    ) -> OnboardingStatus:
        """
        단계 전환 요청 처리

        검증기 통과 시 저장소에 compare-and-set으로 기록하고
        저장소에서 다시 읽은 스냅샷을 반환한다.

        Raises:
            AccountNotFound: 계정 없음
            InvalidTransition: 전환 거부
        """
        facts = self.get_status(account_id)
        self.validator.validate(account_id, current_step, next_step, facts)

        try:
            self.storage.advance_step(account_id, current_step, next_step)
        except StaleStepError as e:
            # 검증과 기록 사이에 다른 요청이 단계를 바꿈
            raise InvalidTransition(
                "Invalid current step",
                code="stale_current_step",
                details={
                    "expected": e.actual.value if e.actual else None,
                    "received": current_step.value,
                },
            )

        logger.info(f"Onboarding step advanced for {account_id}: {current_step.value} -> {next_step.value}")
        return self.get_status(account_id)


_onboarding_service: Optional[OnboardingService] = None


def get_onboarding_service() -> OnboardingService:
    """온보딩 서비스 싱글톤"""
    global _onboarding_service
    if _onboarding_service is None or _onboarding_service.storage is not get_account_storage():
        _onboarding_service = OnboardingService()
    return _onboarding_service
