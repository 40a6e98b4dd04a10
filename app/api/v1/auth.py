"""
Authentication API
회원가입/로그인/세션 엔드포인트
"""

from fastapi import APIRouter, HTTPException, Depends, Request, Response
from app.core.auth import (
    register_account, authenticate, create_access_token,
    set_session_cookie, clear_session_cookie, get_current_account,
)
from app.core.security import log_audit, AuditAction
from app.models.account import Account, AccountCreate, AccountLogin
from app.services.email_service import MailDeliveryError, get_email_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Public Endpoints (No Auth Required)
# ============================================

@router.post("/register", status_code=201)
async def register(data: AccountCreate, request: Request, response: Response):
    """
    회원가입

    계정은 email_verification 단계에서 시작하며 확인 메일이 발송된다.
    """
    record = register_account(data)

    # 확인 메일 발송 실패는 가입 자체를 막지 않음 (재발송 가능)
    try:
        get_email_service().send_confirmation(record)
    except MailDeliveryError as e:
        logger.warning(f"Confirmation email not sent for {record.username}: {e}")

    account = record.to_account()
    set_session_cookie(response, create_access_token(account))

    log_audit(AuditAction.REGISTER, request, user_id=account.id)
    return account.to_public()


@router.post("/login")
async def login(credentials: AccountLogin, request: Request, response: Response):
    """
    로그인

    Returns:
        계정 정보 (세션 쿠키 설정)
    """
    record = authenticate(credentials.username, credentials.password)
    if not record:
        logger.warning(f"Login failed for: {credentials.username}")
        log_audit(AuditAction.LOGIN_FAILED, request, details={"username": credentials.username})
        raise HTTPException(status_code=401, detail="Invalid username or password")

    if not record.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    account = record.to_account()
    set_session_cookie(response, create_access_token(account))

    log_audit(AuditAction.LOGIN, request, user_id=account.id)
    logger.info(f"User logged in: {account.username}")
    return account.to_public()


@router.post("/logout")
async def logout(request: Request, response: Response, account: Account = Depends(get_current_account)):
    """로그아웃 (세션 쿠키 삭제)"""
    clear_session_cookie(response)
    log_audit(AuditAction.LOGOUT, request, user_id=account.id)
    return {"success": True}


# ============================================
# Session Endpoints
# ============================================

@router.get("/user")
async def get_user(account: Account = Depends(get_current_account)):
    """현재 계정 정보"""
    return account.to_public()
