"""
Route Gating Decisions
라우트 가드/역할 가드의 순수 결정 로직

서버 페이지 가드와 클라이언트 가드가 같은 함수를 사용한다.
상태 스냅샷은 전역 상태가 아니라 인자로 명시적으로 전달된다.

인증 로딩과 상태 로딩은 별개의 플래그로 유지해야 한다.
하나로 합치면 인증 완료 ~ 상태 조회 완료 사이에 잘못된 화면이 보일 수 있다.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.models.account import Role
from app.models.onboarding import OnboardingStatus

SIGN_IN_PATH = "/auth"
ONBOARDING_PATH = "/onboarding"
DASHBOARD_PATH = "/dashboard"


class DecisionKind(str, Enum):
    """가드 결정 종류"""
    LOADING = "loading"
    REDIRECT = "redirect"
    RENDER = "render"


@dataclass(frozen=True)
class AuthState:
    """인증 상태 (인증 협력자가 제공)"""
    loading: bool = False
    account_id: Optional[str] = None
    role: Optional[Role] = None

    @property
    def authenticated(self) -> bool:
        return self.account_id is not None

    @classmethod
    def resolving(cls) -> "AuthState":
        return cls(loading=True)

    @classmethod
    def anonymous(cls) -> "AuthState":
        return cls(loading=False)

    @classmethod
    def signed_in(cls, account_id: str, role: Role = Role.STANDARD) -> "AuthState":
        return cls(loading=False, account_id=account_id, role=role)


@dataclass(frozen=True)
class StatusState:
    """온보딩 상태 조회 결과 (인증 상태와 독립)"""
    loading: bool = False
    snapshot: Optional[OnboardingStatus] = None
    error: Optional[str] = None

    @classmethod
    def pending(cls) -> "StatusState":
        return cls(loading=True)

    @classmethod
    def resolved(cls, snapshot: OnboardingStatus) -> "StatusState":
        return cls(loading=False, snapshot=snapshot)

    @classmethod
    def failed(cls, error: str) -> "StatusState":
        return cls(loading=False, error=error)


@dataclass(frozen=True)
class GuardDecision:
    """가드 평가 결과"""
    kind: DecisionKind
    destination: str
    location: Optional[str] = None
    reason: str = ""
    notice: Optional[str] = None
    stale: bool = False

    @classmethod
    def loading(cls, destination: str, reason: str, notice: Optional[str] = None) -> "GuardDecision":
        return cls(DecisionKind.LOADING, destination, reason=reason, notice=notice)

    @classmethod
    def redirect(cls, destination: str, location: str, reason: str) -> "GuardDecision":
        return cls(DecisionKind.REDIRECT, destination, location=location, reason=reason)

    @classmethod
    def render(cls, destination: str) -> "GuardDecision":
        return cls(DecisionKind.RENDER, destination, reason="allowed")

    @property
    def renders(self) -> bool:
        return self.kind == DecisionKind.RENDER and not self.stale

    def as_stale(self) -> "GuardDecision":
        return GuardDecision(
            self.kind, self.destination, self.location, self.reason, self.notice, stale=True
        )


def needs_status(destination: str, auth: AuthState) -> bool:
    """상태 스냅샷 조회가 필요한지 (온보딩 화면 자체는 제외)"""
    return auth.authenticated and not auth.loading and destination != ONBOARDING_PATH


def decide_route(destination: str, auth: AuthState, status: StatusState) -> GuardDecision:
    """
    라우트 가드 결정

    1. 인증 확인 중 -> 로딩
    2. 미인증 -> 로그인 화면
    3. 온보딩 화면 자체 -> 렌더
    4. 상태 조회 중 -> 로딩 (인증 로딩과 별개)
    5. 상태를 모름 (조회 실패) -> 렌더 보류 (fail closed)
    6. 온보딩 미완료 -> 온보딩 화면
    7. 그 외 -> 렌더
    """
    if auth.loading:
        return GuardDecision.loading(destination, reason="auth_resolving")

    if not auth.authenticated:
        return GuardDecision.redirect(destination, SIGN_IN_PATH, reason="unauthenticated")

    if destination == ONBOARDING_PATH:
        return GuardDecision.render(destination)

    if status.loading:
        return GuardDecision.loading(destination, reason="status_resolving")

    if status.snapshot is None:
        return GuardDecision.loading(
            destination,
            reason="status_unknown",
            notice=status.error or "Onboarding status is not available yet",
        )

    if not status.snapshot.completed:
        return GuardDecision.redirect(destination, ONBOARDING_PATH, reason="onboarding_incomplete")

    return GuardDecision.render(destination)


def decide_admin(destination: str, auth: AuthState) -> GuardDecision:
    """
    역할 가드 결정 (온보딩 상태는 확인하지 않음)

    관리자는 온보딩 미완료 상태여도 관리자 화면에 접근할 수 있다.
    """
    if auth.loading:
        return GuardDecision.loading(destination, reason="auth_resolving")

    if not auth.authenticated:
        return GuardDecision.redirect(destination, SIGN_IN_PATH, reason="unauthenticated")

    if auth.role != Role.ADMIN:
        return GuardDecision.redirect(destination, DASHBOARD_PATH, reason="role_mismatch")

    return GuardDecision.render(destination)
