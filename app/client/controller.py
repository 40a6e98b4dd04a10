"""
Onboarding Controller
온보딩 화면 컨트롤러

- 서버 상태 스냅샷을 읽고 현재 단계에 맞는 화면/액션을 결정
- 단계 전환은 POST -> 상태 재조회 -> 결정 순서로 직렬화
- 단계 표시기(active_step) 선택은 안내용이며, 실제 검증은 서버 검증기가 담당
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from app.client.fetcher import ApiClient, StatusFetcher
from app.core.errors import (
    InvalidTransition,
    StatusFetchFailed,
    TransitionRequestFailed,
    Unauthenticated,
)
from app.models.onboarding import (
    DocumentStatus,
    OnboardingStatus,
    OnboardingStep,
    SubscriptionPlan,
)
from app.onboarding.gating import DASHBOARD_PATH, SIGN_IN_PATH

logger = logging.getLogger(__name__)

LAST_STEP_INDEX = OnboardingStep.COMPLETED.position
SUBSCRIBE_PATH = "/subscribe"


class ViewState(str, Enum):
    """화면 로딩 상태"""
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass
class Notice:
    """사용자 알림 (토스트)"""
    title: str
    description: str
    variant: str = "default"

    @property
    def destructive(self) -> bool:
        return self.variant == "destructive"


@dataclass
class StepView:
    """현재 선택된 단계의 화면 구성"""
    step: OnboardingStep
    message: str
    actions: List[str] = field(default_factory=list)
    document: Optional[DocumentStatus] = None


# 단계별 화면 액션
STEP_ACTIONS = {
    OnboardingStep.EMAIL_VERIFICATION: ["resend_confirmation"],
    OnboardingStep.UPLOAD_DOCUMENT: ["upload_document"],
    OnboardingStep.CHOOSE_PLAN: ["choose_plan", "skip_plan"],
    OnboardingStep.PAYMENT: ["complete_payment", "skip_payment"],
    OnboardingStep.COMPLETED: ["enter_application"],
}

STEP_MESSAGES = {
    OnboardingStep.EMAIL_VERIFICATION: "Please verify your email address to continue.",
    OnboardingStep.UPLOAD_DOCUMENT: "Please upload your company profile document to help us match you with relevant tenders.",
    OnboardingStep.CHOOSE_PLAN: "Choose the subscription plan that fits your business.",
    OnboardingStep.PAYMENT: "Complete your payment to activate your subscription.",
    OnboardingStep.COMPLETED: "Your account is ready.",
}


class OnboardingController:
    """
    온보딩 컨트롤러

    Usage:
        controller = OnboardingController(client)
        await controller.load()
        await controller.continue_after_upload()
    """

    def __init__(self, client: ApiClient, fetcher: Optional[StatusFetcher] = None):
        self.client = client
        self.fetcher = fetcher or StatusFetcher(client)
        self.state = ViewState.LOADING
        self.status: Optional[OnboardingStatus] = None
        self.active_step = 0
        self.notices: List[Notice] = []
        self.redirect_to: Optional[str] = None

    # ========================================
    # Notices
    # ========================================

    def _notify(self, title: str, description: str, variant: str = "default"):
        self.notices.append(Notice(title, description, variant))

    def _error(self, description: str):
        self._notify("Error", description, "destructive")

    def drain_notices(self) -> List[Notice]:
        notices, self.notices = self.notices, []
        return notices

    # ========================================
    # Status
    # ========================================

    async def load(self) -> Optional[OnboardingStatus]:
        """상태 스냅샷 조회 후 표시 단계 동기화"""
        self.state = ViewState.LOADING
        try:
            snapshot = await self.fetcher.fetch()
        except Unauthenticated:
            self.state = ViewState.ERROR
            self.redirect_to = SIGN_IN_PATH
            return None
        except StatusFetchFailed as e:
            logger.warning(f"Onboarding status unavailable: {e}")
            self.state = ViewState.ERROR
            if e.status_code is None:
                self._error("An error occurred while fetching your onboarding status.")
            else:
                self._error("Failed to fetch onboarding status.")
            return None

        self.status = snapshot
        self.active_step = snapshot.current_step.position
        self.state = ViewState.LOADED

        if snapshot.completed:
            self.redirect_to = DASHBOARD_PATH
        return snapshot

    def view(self) -> Optional[StepView]:
        """선택된 단계의 화면 (상태 미확정이면 None)"""
        if self.status is None or self.state != ViewState.LOADED:
            return None

        step = OnboardingStep.at(self.active_step)
        actions = list(STEP_ACTIONS[step])

        if step == OnboardingStep.UPLOAD_DOCUMENT and self.status.has_document:
            actions.append("continue_after_upload")

        return StepView(
            step=step,
            message=STEP_MESSAGES[step],
            actions=actions,
            document=self.status.document_status,
        )

    def progress_percent(self) -> int:
        return round(self.active_step / LAST_STEP_INDEX * 100)

    # ========================================
    # Step indicator
    # ========================================

    def can_select(self, index: int) -> bool:
        status = self.status
        if status is None:
            return False
        if index == 0:
            return True
        if index == 1:
            return status.email_verified
        if index == 2:
            return status.has_document
        if index == 3:
            return status.current_step >= OnboardingStep.CHOOSE_PLAN
        if index == 4:
            return status.completed
        return False

    def select_step(self, index: int) -> bool:
        """단계 표시기 선택 (서버 상태는 바꾸지 않음)"""
        if self.can_select(index):
            self.active_step = index
            return True

        self._notify(
            "Complete previous steps",
            "Please complete the previous steps first before proceeding.",
        )
        return False

    def previous_step(self) -> bool:
        if self.active_step == 0:
            return False
        self.active_step -= 1
        return True

    # ========================================
    # Actions
    # ========================================

    async def _transition(self, current_step: OnboardingStep, next_step: OnboardingStep) -> bool:
        """
        단계 전환: POST 후 반드시 재조회가 끝난 뒤에 결정한다.

        거부 시 스냅샷과 active_step은 그대로 유지된다.
        """
        try:
            await self.client.request_transition(current_step, next_step)
        except InvalidTransition as e:
            logger.info(f"Transition {current_step.value} -> {next_step.value} rejected: {e.code}")
            self._error(e.message or "Failed to proceed to next step.")
            return False
        except Unauthenticated:
            self.redirect_to = SIGN_IN_PATH
            return False
        except TransitionRequestFailed as e:
            logger.warning(f"Transition request failed: {e}")
            self._error("An error occurred while updating your onboarding progress.")
            return False

        self._notify("Success", "Moved to the next step successfully.")
        await self.load()
        return True

    async def resend_confirmation(self) -> bool:
        try:
            await self.client.resend_confirmation()
        except Unauthenticated:
            self.redirect_to = SIGN_IN_PATH
            return False
        except TransitionRequestFailed as e:
            self._error(e.message or "Failed to resend confirmation email.")
            return False

        self._notify("Email Sent", "A confirmation email has been sent to your email address.")
        return True

    async def upload_document(self, file_name: str, content: bytes, content_type: str = "application/pdf") -> bool:
        """업로드 협력자에 위임 후 document_uploaded()"""
        try:
            await self.client.upload_document(file_name, content, content_type)
        except Unauthenticated:
            self.redirect_to = SIGN_IN_PATH
            return False
        except TransitionRequestFailed as e:
            self._error(e.message)
            return False
        await self.document_uploaded()
        return True

    async def document_uploaded(self):
        """업로드 완료 통지 - 상태 재조회 (단계는 바뀌지 않음)"""
        await self.load()
        self._notify("Document Uploaded", "Your document has been uploaded successfully.")

    async def continue_after_upload(self) -> bool:
        if self.status is None or not self.status.has_document:
            self._error("Please upload your company document first.")
            return False
        return await self._transition(OnboardingStep.UPLOAD_DOCUMENT, OnboardingStep.CHOOSE_PLAN)

    async def skip_plan(self) -> bool:
        return await self._transition(OnboardingStep.CHOOSE_PLAN, OnboardingStep.PAYMENT)

    async def skip_payment(self) -> bool:
        return await self._transition(OnboardingStep.PAYMENT, OnboardingStep.COMPLETED)

    async def choose_plan(self, plan: SubscriptionPlan) -> Optional[str]:
        """
        플랜 선택 - 구독 흐름으로 넘김

        Returns:
            구독 화면 경로 (실패 시 None)
        """
        try:
            await self.client.select_plan(plan)
        except Unauthenticated:
            self.redirect_to = SIGN_IN_PATH
            return None
        except TransitionRequestFailed as e:
            self._error(e.message)
            return None

        self.redirect_to = f"{SUBSCRIBE_PATH}/{plan.value}"
        return self.redirect_to

    def complete_payment(self, plan: SubscriptionPlan = SubscriptionPlan.PROFESSIONAL) -> str:
        """결제는 외부 구독 흐름에서 처리"""
        self.redirect_to = f"{SUBSCRIBE_PATH}/{plan.value}"
        return self.redirect_to

    def enter_application(self) -> Optional[str]:
        if self.status is None or not self.status.completed:
            self._notify(
                "Complete previous steps",
                "Please complete the previous steps first before proceeding.",
            )
            return None
        self.redirect_to = DASHBOARD_PATH
        return self.redirect_to
