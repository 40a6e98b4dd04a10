"""
Admin API
관리 엔드포인트 - 관리자 역할 필요 (온보딩 상태와 무관)
"""

from fastapi import APIRouter, HTTPException, Query, Depends
import logging

from app.core.auth import require_role
from app.models.account import Account, Role
from app.models.onboarding import OnboardingStep
from app.services.onboarding_service import get_onboarding_service
from app.services.storage import get_account_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")


@router.get("/accounts")
async def list_accounts(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: Account = Depends(require_role(Role.ADMIN))
):
    """
    계정 목록 + 온보딩 스냅샷

    Returns:
        계정별 온보딩 진행 상태
    """
    service = get_onboarding_service()
    results = []
    for record in get_account_storage().list_accounts(limit=limit, offset=offset):
        results.append({
            **record.to_account().to_public(),
            "onboarding": service.snapshot_for(record).to_wire(),
        })
    return results


@router.get("/accounts/{account_id}")
async def get_account(account_id: str, _: Account = Depends(require_role(Role.ADMIN))):
    """특정 계정 조회"""
    record = get_account_storage().get_account(account_id)
    if not record:
        raise HTTPException(status_code=404, detail="User not found")

    return {
        **record.to_account().to_public(),
        "onboarding": get_onboarding_service().snapshot_for(record).to_wire(),
    }


@router.get("/onboarding/summary")
async def onboarding_summary(_: Account = Depends(require_role(Role.ADMIN))):
    """단계별 계정 수 요약"""
    by_step = get_account_storage().count_by_step()
    counts = {step.value: by_step.get(step, 0) for step in OnboardingStep.ordered()}
    return {"steps": counts, "total": sum(counts.values())}
