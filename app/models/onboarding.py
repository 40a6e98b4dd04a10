"""
Onboarding Models
온보딩 단계 열거형 및 상태 스냅샷 모델

단계 순서는 명시적인 position 값으로 정의되며,
"건너뛰기 금지" 규칙은 next() 비교 하나로 표현된다.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ============================================================
# Step Ordering
# ============================================================

class OnboardingStep(str, Enum):
    """온보딩 단계 (순서 고정)"""
    EMAIL_VERIFICATION = "email_verification"
    UPLOAD_DOCUMENT = "upload_document"
    CHOOSE_PLAN = "choose_plan"
    PAYMENT = "payment"
    COMPLETED = "completed"

    @classmethod
    def ordered(cls) -> List["OnboardingStep"]:
        """정의 순서대로 단계 목록"""
        return list(cls)

    @property
    def position(self) -> int:
        """순서상 위치 (0부터)"""
        return _STEP_POSITIONS[self]

    @classmethod
    def at(cls, position: int) -> "OnboardingStep":
        return cls.ordered()[position]

    def next(self) -> Optional["OnboardingStep"]:
        """바로 다음 단계 (completed면 None)"""
        steps = self.ordered()
        if self.position + 1 >= len(steps):
            return None
        return steps[self.position + 1]

    @property
    def is_terminal(self) -> bool:
        return self is OnboardingStep.COMPLETED

    def __lt__(self, other):
        if not isinstance(other, OnboardingStep):
            return NotImplemented
        return self.position < other.position

    def __le__(self, other):
        if not isinstance(other, OnboardingStep):
            return NotImplemented
        return self.position <= other.position

    def __gt__(self, other):
        if not isinstance(other, OnboardingStep):
            return NotImplemented
        return self.position > other.position

    def __ge__(self, other):
        if not isinstance(other, OnboardingStep):
            return NotImplemented
        return self.position >= other.position


_STEP_POSITIONS: Dict[OnboardingStep, int] = {
    step: index for index, step in enumerate(OnboardingStep)
}


# ============================================================
# Wire Models
# ============================================================

class CamelModel(BaseModel):
    """camelCase 직렬화 기본 모델"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class DocumentStatus(CamelModel):
    """제출된 회사 문서 상태"""
    document_id: str
    file_name: str
    status: str
    uploaded_at: datetime


class OnboardingStatus(CamelModel):
    """
    계정별 온보딩 상태 스냅샷

    서버에서 매 조회마다 다시 계산되며, 클라이언트는 읽기만 한다.
    """
    current_step: OnboardingStep
    completed: bool
    email_verified: bool
    document_status: Optional[DocumentStatus] = None
    has_subscription: bool = False
    has_tutorial: bool = False

    @property
    def has_document(self) -> bool:
        return self.document_status is not None


class TransitionRequest(CamelModel):
    """단계 전환 요청 (currentStep -> nextStep)"""
    current_step: OnboardingStep
    next_step: OnboardingStep


class TransitionResponse(CamelModel):
    """단계 전환 성공 응답"""
    success: bool = True
    current_step: OnboardingStep
    completed: bool
    status: OnboardingStatus


class SubscriptionPlan(str, Enum):
    """구독 플랜"""
    BASIC = "basic"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


class PlanSelection(CamelModel):
    plan: SubscriptionPlan


class DocumentStatusUpdate(CamelModel):
    """문서 처리 결과 콜백"""
    status: str = Field(..., min_length=1, max_length=32)
