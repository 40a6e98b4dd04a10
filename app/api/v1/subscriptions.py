"""
Subscription API
구독 플랜 선택 기록 (결제 처리는 외부 협력자)
"""

from fastapi import APIRouter, HTTPException, Depends, Request

from app.core.auth import get_current_account
from app.core.security import log_audit, AuditAction
from app.models.account import Account
from app.models.onboarding import PlanSelection
from app.services.storage import get_account_storage

router = APIRouter(prefix="/subscription")


@router.post("")
async def select_plan(data: PlanSelection, request: Request, account: Account = Depends(get_current_account)):
    """플랜 선택 (hasSubscription 반영)"""
    updated = get_account_storage().update_account(account.id, {"subscription_plan": data.plan.value})
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")

    log_audit(AuditAction.PLAN_SELECTED, request, user_id=account.id, details={"plan": data.plan.value})
    return {"success": True, "plan": data.plan.value}
