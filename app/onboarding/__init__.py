"""
Onboarding Core
단계 전환 검증 및 라우트 게이트 결정
"""

from app.onboarding.validator import TransitionValidator, ValidatorConfig
from app.onboarding.gating import (
    AuthState,
    DecisionKind,
    GuardDecision,
    StatusState,
    decide_admin,
    decide_route,
)

__all__ = [
    "TransitionValidator",
    "ValidatorConfig",
    "AuthState",
    "DecisionKind",
    "GuardDecision",
    "StatusState",
    "decide_admin",
    "decide_route",
]
