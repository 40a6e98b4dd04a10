"""
Onboarding API
계정 온보딩 상태 조회 및 단계 전환 엔드포인트
"""

from fastapi import APIRouter, HTTPException, Depends, Query, Request
from typing import Optional
import logging

from app.core.auth import get_current_account
from app.core.errors import InvalidTransition
from app.core.security import log_audit, AuditAction
from app.models.account import Account
from app.models.onboarding import TransitionRequest, TransitionResponse
from app.services.email_service import MailDeliveryError, get_email_service
from app.services.onboarding_service import AccountNotFound, get_onboarding_service
from app.services.storage import get_account_storage

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================
# Status & Transitions
# ============================================================

@router.get("/onboarding-status")
async def get_onboarding_status(account: Account = Depends(get_current_account)):
    """
    온보딩 상태 조회

    부작용 없음 - 반복 호출/폴링 가능

    Returns:
        OnboardingStatus 스냅샷 (camelCase)
    """
    try:
        status = get_onboarding_service().get_status(account.id)
    except AccountNotFound:
        raise HTTPException(status_code=404, detail="User not found")
    except Exception as e:
        logger.error(f"Onboarding status error for {account.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch onboarding status")

    return status.to_wire()


@router.post("/onboarding/next-step")
async def next_step(
    data: TransitionRequest,
    request: Request,
    account: Account = Depends(get_current_account),
):
    """
    온보딩 단계 전환 요청

    전환 검증기가 유일한 권한자이며, 성공 시 갱신된 스냅샷을 반환한다.
    거부되면 400 {error, code, ...}.
    """
    try:
        status = get_onboarding_service().request_transition(
            account.id, data.current_step, data.next_step
        )
    except AccountNotFound:
        raise HTTPException(status_code=404, detail="User not found")
    except InvalidTransition as e:
        log_audit(
            AuditAction.STEP_REJECTED,
            request,
            user_id=account.id,
            details={
                "current": data.current_step.value,
                "next": data.next_step.value,
                "code": e.code,
            },
        )
        raise

    log_audit(
        AuditAction.STEP_ADVANCED,
        request,
        user_id=account.id,
        details={"current": data.current_step.value, "next": data.next_step.value},
    )

    return TransitionResponse(
        current_step=status.current_step,
        completed=status.completed,
        status=status,
    ).to_wire()


@router.post("/onboarding/skip-tutorial")
async def skip_tutorial(account: Account = Depends(get_current_account)):
    """튜토리얼 건너뛰기"""
    updated = get_account_storage().update_account(account.id, {"has_seen_tutorial": True})
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "hasSeenTutorial": True}


# ============================================================
# Email Verification
# ============================================================

@router.post("/resend-confirmation")
async def resend_confirmation(request: Request, account: Account = Depends(get_current_account)):
    """확인 메일 재발송"""
    record = get_account_storage().get_account(account.id)
    if not record:
        raise HTTPException(status_code=404, detail="User not found")

    if record.email_verified:
        raise HTTPException(status_code=400, detail="Email is already verified")

    if not record.email:
        raise HTTPException(status_code=400, detail="No email address associated with this account")

    try:
        get_email_service().send_confirmation(record)
    except MailDeliveryError:
        raise HTTPException(
            status_code=502,
            detail="Failed to send confirmation email. Please try again later."
        )

    log_audit(AuditAction.CONFIRMATION_RESENT, request, user_id=account.id)
    return {"success": True, "message": "Confirmation email sent successfully"}


@router.get("/confirm-email")
async def confirm_email(request: Request, token: Optional[str] = Query(default=None)):
    """
    이메일 확인

    링크의 토큰으로 emailVerified를 설정한다 (로그인 불필요).
    """
    if not token:
        raise HTTPException(
            status_code=400,
            detail="Invalid or missing token. Please request a new confirmation email."
        )

    email_service = get_email_service()
    record = email_service.verify_token(token)
    if not record:
        raise HTTPException(
            status_code=400,
            detail="Invalid or expired token. Please request a new confirmation email."
        )

    log_audit(AuditAction.EMAIL_CONFIRMED, request, user_id=record.id)
    email_service.send_welcome(record)
    return {
        "success": True,
        "message": "Email confirmed successfully. You can now continue with the onboarding process."
    }
