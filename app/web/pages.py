"""
Page Destinations
보호된 화면 목적지 (화면 구성은 프론트엔드 담당)
"""

from fastapi import APIRouter, Depends

from app.onboarding.gating import DASHBOARD_PATH, ONBOARDING_PATH, GuardDecision
from app.services.onboarding_service import get_onboarding_service
from app.web.guards import GuardedPage, enforce, route_guard, role_guard

router = APIRouter(tags=["Pages"])

# 온보딩 완료가 필요한 화면
PROTECTED_PAGES = [
    DASHBOARD_PATH,
    "/tenders",
    "/saved-tenders",
    "/profile",
    "/settings",
    "/analytics",
    "/proposals",
]

ADMIN_PAGES = ["/admin", "/admin/scrape-logs"]


def _page_payload(page: GuardedPage) -> dict:
    return {
        "page": page.destination,
        "account": page.account.to_public(),
    }


def _register_protected(path: str):
    async def protected_page(page: GuardedPage = Depends(route_guard(path))):
        return _page_payload(page)

    protected_page.__name__ = f"page_{path.strip('/').replace('-', '_').replace('/', '_') or 'root'}"
    router.add_api_route(path, protected_page, methods=["GET"])


def _register_admin(path: str):
    async def admin_page(page: GuardedPage = Depends(role_guard(path))):
        return _page_payload(page)

    admin_page.__name__ = f"page_{path.strip('/').replace('-', '_').replace('/', '_')}"
    router.add_api_route(path, admin_page, methods=["GET"])


for _path in PROTECTED_PAGES:
    _register_protected(_path)

for _path in ADMIN_PAGES:
    _register_admin(_path)


@router.get(ONBOARDING_PATH)
async def onboarding_page(page: GuardedPage = Depends(route_guard(ONBOARDING_PATH))):
    """
    온보딩 화면

    로그인만 필요. 이미 완료된 계정은 대시보드로 보낸다.
    """
    status = get_onboarding_service().get_status(page.account.id)
    if status.completed:
        enforce(GuardDecision.redirect(ONBOARDING_PATH, DASHBOARD_PATH, reason="onboarding_completed"))

    return {
        **_page_payload(page),
        "onboarding": status.to_wire(),
    }
