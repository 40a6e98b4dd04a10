"""
Server-side Route Guards
페이지 목적지 앞단의 라우트 가드 / 역할 가드

클라이언트 가드와 같은 결정 함수(app.onboarding.gating)를 사용한다.
서버에서는 인증이 요청 안에서 즉시 확정되므로 인증 로딩 단계가 없고,
상태 조회 실패는 503으로 렌더를 보류한다 (fail closed).
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request

from app.core.auth import decode_token
from app.core.config import settings
from app.models.account import Account
from app.models.onboarding import OnboardingStatus
from app.onboarding.gating import (
    AuthState,
    DecisionKind,
    GuardDecision,
    StatusState,
    decide_admin,
    decide_route,
    needs_status,
)
from app.services.onboarding_service import get_onboarding_service
from app.services.storage import get_account_storage

logger = logging.getLogger(__name__)


def _session_token(request: Request) -> Optional[str]:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return None


def resolve_account(request: Request) -> Optional[Account]:
    """요청의 세션으로 계정 확인 (없거나 무효면 None)"""
    token = _session_token(request)
    if not token:
        return None

    payload = decode_token(token)
    if not payload:
        return None

    record = get_account_storage().get_account(payload.get("sub"))
    if not record or not record.is_active:
        return None
    return record.to_account()


def _auth_state(account: Optional[Account]) -> AuthState:
    if account is None:
        return AuthState.anonymous()
    return AuthState.signed_in(account.id, account.role)


def _status_state(account_id: str) -> StatusState:
    try:
        return StatusState.resolved(get_onboarding_service().get_status(account_id))
    except Exception as e:
        logger.error(f"Onboarding status unavailable for {account_id}: {e}")
        return StatusState.failed("Onboarding status is temporarily unavailable")


def enforce(decision: GuardDecision):
    """결정을 HTTP로 변환 (리다이렉트 303 / 보류 503)"""
    if decision.kind == DecisionKind.REDIRECT:
        logger.info(f"Guard redirect {decision.destination} -> {decision.location} ({decision.reason})")
        raise HTTPException(
            status_code=303,
            detail=f"Redirecting to {decision.location}",
            headers={"Location": decision.location},
        )

    if decision.kind == DecisionKind.LOADING:
        raise HTTPException(
            status_code=503,
            detail=decision.notice or "Please try again shortly",
            headers={"Retry-After": "5"},
        )


class GuardedPage:
    """가드 통과 후 렌더에 필요한 컨텍스트"""

    def __init__(self, destination: str, account: Account, status: Optional[OnboardingStatus] = None):
        self.destination = destination
        self.account = account
        self.status = status


def route_guard(destination: str):
    """라우트 가드 의존성 (인증 + 온보딩 완료)"""
    async def guard(request: Request) -> GuardedPage:
        account = resolve_account(request)
        auth = _auth_state(account)

        status = StatusState()
        if needs_status(destination, auth):
            status = _status_state(account.id)

        enforce(decide_route(destination, auth, status))
        return GuardedPage(destination, account, status.snapshot)
    return guard


def role_guard(destination: str):
    """역할 가드 의존성 (인증 + 관리자 역할, 온보딩 미확인)"""
    async def guard(request: Request) -> GuardedPage:
        account = resolve_account(request)
        enforce(decide_admin(destination, _auth_state(account)))
        return GuardedPage(destination, account)
    return guard
