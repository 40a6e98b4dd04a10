"""
데이터 모델 패키지
"""
from app.models.account import Account, AccountCreate, AccountLogin, Role
from app.models.onboarding import (
    DocumentStatus,
    OnboardingStatus,
    OnboardingStep,
    TransitionRequest,
    TransitionResponse,
)

__all__ = [
    'Account',
    'AccountCreate',
    'AccountLogin',
    'Role',
    'DocumentStatus',
    'OnboardingStatus',
    'OnboardingStep',
    'TransitionRequest',
    'TransitionResponse',
]
