"""
Esddar Portal - Core Package
코어 레이어: 설정, 인증, 보안, 예외
"""

# Settings
from app.core.config import settings

# Errors
from app.core.errors import (
    OnboardingError,
    AuthUnresolved,
    Unauthenticated,
    StatusFetchFailed,
    InvalidTransition,
    TransitionRequestFailed,
    RoleMismatch,
)


__all__ = [
    # Settings
    "settings",

    # Errors
    "OnboardingError",
    "AuthUnresolved",
    "Unauthenticated",
    "StatusFetchFailed",
    "InvalidTransition",
    "TransitionRequestFailed",
    "RoleMismatch",
]

__version__ = "1.0.0"
