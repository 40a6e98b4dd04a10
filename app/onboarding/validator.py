"""
Transition Validator
단계 전환 검증 (순수 로직)

요청된 (currentStep -> nextStep) 이동을 최신 상태 스냅샷 기준으로
허용하거나 InvalidTransition으로 거부한다. 상태를 변경하지 않는다.
"""

from dataclasses import dataclass
import logging

from app.core.errors import InvalidTransition
from app.models.onboarding import OnboardingStatus, OnboardingStep

logger = logging.getLogger(__name__)


# 문서 분석이 끝났음을 뜻하는 상태값
DOCUMENT_PROCESSED = "completed"


@dataclass
class ValidatorConfig:
    """검증기 설정"""
    require_processed_document: bool = False


class TransitionValidator:
    """
    단계 전환 검증기

    규칙 (첫 번째 실패에서 거부):
    1. completed는 종료 상태 - 더 이상 전환 없음
    2. 요청의 currentStep이 저장된 단계와 같아야 함
    3. nextStep은 바로 다음 단계여야 함 (건너뛰기/역행 금지)
    4. email_verification 이탈: 이메일 인증 필요
    5. upload_document 이탈: 문서 제출 필요
    choose_plan, payment 이탈은 조건 없음 ("나중에 하기")
    """

    def __init__(self, config: ValidatorConfig = None):
        self.config = config or ValidatorConfig()

    def validate(
        self,
        account_id: str,
        current_step: OnboardingStep,
        next_step: OnboardingStep,
        facts: OnboardingStatus,
    ) -> OnboardingStep:
        """
        전환 검증

        Args:
            account_id: 계정 ID (로그용)
            current_step: 요청된 현재 단계
            next_step: 요청된 다음 단계
            facts: 최신 상태 스냅샷

        Returns:
            허용된 다음 단계

        Raises:
            InvalidTransition: 전환 거부
        """
        stored = facts.current_step

        if facts.completed or stored.is_terminal:
            raise InvalidTransition(
                "Onboarding is already completed",
                code="onboarding_completed",
            )

        if current_step != stored:
            raise InvalidTransition(
                "Invalid current step",
                code="stale_current_step",
                details={"expected": stored.value, "received": current_step.value},
            )

        expected_next = stored.next()
        if next_step != expected_next:
            raise InvalidTransition(
                "Invalid next step",
                code="invalid_next_step",
                details={"validSteps": [expected_next.value] if expected_next else []},
            )

        self._check_exit_precondition(stored, facts)

        logger.debug(f"Transition accepted for {account_id}: {stored.value} -> {next_step.value}")
        return next_step

    def _check_exit_precondition(self, step: OnboardingStep, facts: OnboardingStatus):
        """현재 단계를 떠나기 위한 조건 확인"""
        if step == OnboardingStep.EMAIL_VERIFICATION and not facts.email_verified:
            raise InvalidTransition(
                "Email must be verified to proceed",
                code="email_not_verified",
            )

        if step == OnboardingStep.UPLOAD_DOCUMENT:
            if facts.document_status is None:
                raise InvalidTransition(
                    "Company document must be uploaded to proceed",
                    code="document_missing",
                )
            if (
                self.config.require_processed_document
                and facts.document_status.status != DOCUMENT_PROCESSED
            ):
                raise InvalidTransition(
                    "Document is still being processed. Please wait until processing is complete.",
                    code="document_processing",
                    details={"status": facts.document_status.status},
                )
