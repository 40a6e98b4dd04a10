"""
Portal Client
온보딩 상태 조회기, 클라이언트 가드, 온보딩 컨트롤러
"""

from app.client.fetcher import ApiClient, StatusFetcher
from app.client.guards import RoleGuard, RouteGuard
from app.client.controller import Notice, OnboardingController, StepView, ViewState

__all__ = [
    "ApiClient",
    "StatusFetcher",
    "RouteGuard",
    "RoleGuard",
    "OnboardingController",
    "Notice",
    "StepView",
    "ViewState",
]
