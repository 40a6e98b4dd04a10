"""
Client Route Guards
클라이언트측 라우트 가드 / 역할 가드

인증 로딩(auth_loading)과 상태 로딩(status_loading)은 독립된 플래그다.
평가마다 세대(generation) 번호를 매기고, 더 새로운 평가가 시작된 뒤
끝난 이전 평가의 결정은 stale로 표시해 적용하지 않는다.
"""

import logging
from typing import Callable, Optional

from app.core.errors import AuthUnresolved, StatusFetchFailed, Unauthenticated
from app.client.fetcher import StatusFetcher
from app.models.onboarding import OnboardingStatus
from app.onboarding.gating import (
    AuthState,
    GuardDecision,
    StatusState,
    decide_admin,
    decide_route,
    needs_status,
)

logger = logging.getLogger(__name__)


class RouteGuard:
    """
    라우트 가드 (인증 + 온보딩 완료)

    Usage:
        guard = RouteGuard(StatusFetcher(client))
        decision = await guard.evaluate("/dashboard", auth)
    """

    def __init__(
        self,
        fetcher: StatusFetcher,
        on_decision: Optional[Callable[[GuardDecision], None]] = None,
    ):
        self.fetcher = fetcher
        self.on_decision = on_decision
        self.auth_loading = False
        self.status_loading = False
        self.decision: Optional[GuardDecision] = None
        self.snapshot: Optional[OnboardingStatus] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def _apply(self, decision: GuardDecision) -> GuardDecision:
        self.decision = decision
        if self.on_decision:
            self.on_decision(decision)
        return decision

    async def evaluate(self, destination: str, auth: AuthState) -> GuardDecision:
        """
        목적지 진입 평가

        상태 조회가 끝날 때까지 보호 화면은 렌더되지 않는다 (낙관적 렌더 없음).
        """
        return await self._evaluate(destination, auth, self._next_generation())

    async def evaluate_session(self, destination: str) -> GuardDecision:
        """
        세션 확인부터 평가

        세션 확인 중에도 LOADING을 발행하고 세대를 먼저 올린다.
        확인 도중 끝난 이전 평가는 stale로 처리된다.
        인증 확인 실패는 로딩으로 유지한다.
        """
        generation = self._next_generation()
        self.auth_loading = True
        self.status_loading = False
        self._apply(GuardDecision.loading(destination, reason="auth_resolving"))

        try:
            auth = await self.fetcher.client.resolve_auth()
        except AuthUnresolved as e:
            logger.warning(f"Session for {destination} not resolved yet: {e}")
            auth = AuthState.resolving()

        if generation != self._generation:
            logger.debug(f"Discarding stale session check for {destination}")
            return decide_route(destination, auth, StatusState.pending()).as_stale()

        return await self._evaluate(destination, auth, generation)

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    async def _evaluate(self, destination: str, auth: AuthState, generation: int) -> GuardDecision:
        self.auth_loading = auth.loading

        if not needs_status(destination, auth):
            self.status_loading = False
            return self._apply(decide_route(destination, auth, StatusState()))

        self.status_loading = True
        self._apply(decide_route(destination, auth, StatusState.pending()))

        try:
            snapshot = await self.fetcher.fetch()
            status = StatusState.resolved(snapshot)
        except Unauthenticated:
            # 세션 만료 - 로그인 화면으로
            auth = AuthState.anonymous()
            status = StatusState()
            snapshot = None
        except StatusFetchFailed as e:
            logger.warning(f"Guard for {destination} withheld render: {e}")
            status = StatusState.failed(str(e))
            snapshot = None

        decision = decide_route(destination, auth, status)

        if generation != self._generation:
            logger.debug(f"Discarding stale guard decision for {destination}")
            return decision.as_stale()

        self.status_loading = False
        if snapshot is not None:
            self.snapshot = snapshot
        return self._apply(decision)


class RoleGuard:
    """역할 가드 (인증 + 관리자 역할, 온보딩 상태는 보지 않음)"""

    def __init__(self):
        self.auth_loading = False
        self.decision: Optional[GuardDecision] = None

    def evaluate(self, destination: str, auth: AuthState) -> GuardDecision:
        self.auth_loading = auth.loading
        self.decision = decide_admin(destination, auth)
        return self.decision
