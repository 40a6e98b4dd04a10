"""
Services 패키지
- storage: 계정/문서/토큰 저장소 (온보딩 상태의 단일 진실 공급원)
- onboarding_service: 상태 스냅샷 계산 및 전환 적용
- email_service: 이메일 확인 토큰 및 발송 채널
"""

from app.services.storage import (
    AccountStorageService,
    InMemoryAccountStorage,
    get_account_storage,
    set_account_storage,
)
from app.services.onboarding_service import OnboardingService, get_onboarding_service
from app.services.email_service import EmailConfirmationService, get_email_service

__all__ = [
    "AccountStorageService",
    "InMemoryAccountStorage",
    "get_account_storage",
    "set_account_storage",
    "OnboardingService",
    "get_onboarding_service",
    "EmailConfirmationService",
    "get_email_service",
]
