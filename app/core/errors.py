"""
Onboarding Error Taxonomy
인증/온보딩 관련 예외 계층
"""

from typing import Any, Dict, Optional


class OnboardingError(Exception):
    """온보딩 관련 예외 기본 클래스"""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class AuthUnresolved(OnboardingError):
    """인증 확인 중 (일시적, 대기 후 재평가)"""


class Unauthenticated(OnboardingError):
    """미인증 - 로그인 화면으로 리다이렉트"""


class StatusFetchFailed(OnboardingError):
    """상태 조회 실패 (네트워크/서버 오류, 재시도 가능)"""

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidTransition(OnboardingError):
    """전환 검증기에서 거부된 단계 전환"""

    def __init__(
        self,
        message: str,
        code: str = "invalid_transition",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code, **self.details}


class TransitionRequestFailed(OnboardingError):
    """전환 요청 자체가 전달되지 못함 (네트워크/5xx)"""


class RoleMismatch(OnboardingError):
    """역할 불일치 - 대시보드로 리다이렉트"""
