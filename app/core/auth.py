"""
Authentication & Authorization
세션 인증 및 역할 기반 접근 제어
"""

from datetime import datetime, timedelta
from typing import Optional
from fastapi import HTTPException, Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
import bcrypt
import secrets
import logging

from app.core.config import settings
from app.core.errors import RoleMismatch
from app.models.account import Account, AccountCreate, Role
from app.services.storage import AccountRecord, get_account_storage

logger = logging.getLogger(__name__)

# ============================================
# Configuration
# ============================================

JWT_SECRET = settings.JWT_SECRET
if not JWT_SECRET:
    JWT_SECRET = secrets.token_hex(32)
    logger.warning("JWT_SECRET not set! Generated random secret (will change on restart). Set JWT_SECRET env var for production.")
JWT_ALGORITHM = settings.JWT_ALGORITHM
JWT_EXPIRE_HOURS = settings.JWT_EXPIRE_HOURS

security = HTTPBearer(auto_error=False)


# ============================================
# Password Hashing
# ============================================

def hash_password(password: str) -> str:
    """비밀번호 해시 (bcrypt)"""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def check_password(password: str, password_hash: str) -> bool:
    """비밀번호 검증"""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        logger.warning("Malformed password hash encountered")
        return False


# ============================================
# Account Operations
# ============================================

def register_account(data: AccountCreate) -> AccountRecord:
    """
    회원가입 (일반 계정만 생성)

    Raises:
        HTTPException: 사용자명 중복 / 이메일 누락
    """
    storage = get_account_storage()

    if storage.get_account_by_username(data.username):
        raise HTTPException(status_code=400, detail="Username already exists")

    if not data.email:
        raise HTTPException(status_code=400, detail="Email is required")

    try:
        record = storage.create_account(
            username=data.username,
            password_hash=hash_password(data.password),
            email=data.email,
            company_name=data.company_name,
            industry=data.industry,
            role=Role.STANDARD,
        )
    except ValueError:
        # 조회 후 생성 사이에 같은 사용자명이 먼저 등록된 경우
        raise HTTPException(status_code=400, detail="Username already exists")

    logger.info(f"Registered account: {record.username}")
    return record


def authenticate(username: str, password: str) -> Optional[AccountRecord]:
    """로그인 검증 (성공 시 마지막 로그인 시간 갱신)"""
    storage = get_account_storage()
    record = storage.get_account_by_username(username)
    if not record or not check_password(password, record.password_hash):
        return None

    return storage.update_account(record.id, {"last_login": datetime.utcnow()})


# ============================================
# JWT Token Management
# ============================================

def create_access_token(account: Account) -> str:
    """JWT 토큰 생성"""
    expire = datetime.utcnow() + timedelta(hours=JWT_EXPIRE_HOURS)
    payload = {
        "sub": account.id,
        "username": account.username,
        "role": account.role.value,
        "exp": expire,
        "iat": datetime.utcnow()
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """JWT 토큰 디코드"""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        return payload
    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token: {e}")
        return None


def set_session_cookie(response: Response, token: str):
    """세션 쿠키 설정"""
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=JWT_EXPIRE_HOURS * 3600,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


def clear_session_cookie(response: Response):
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME)


# ============================================
# FastAPI Dependencies
# ============================================

def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """세션 쿠키 우선, 없으면 Bearer 헤더"""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token
    if credentials:
        return credentials.credentials
    return None


async def get_current_account(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Account:
    """현재 로그인된 계정 가져오기"""
    token = _extract_token(request, credentials)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    payload = decode_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    record = get_account_storage().get_account(payload.get("sub"))
    if not record:
        raise HTTPException(status_code=401, detail="User not found")

    if not record.is_active:
        raise HTTPException(status_code=403, detail="User is deactivated")

    return record.to_account()


def require_role(role: Role):
    """역할 필요 의존성 (API용, 불일치 시 RoleMismatch -> 403)"""
    async def role_checker(account: Account = Depends(get_current_account)) -> Account:
        if account.role != role:
            raise RoleMismatch(f"Role {role.value} required")
        return account
    return role_checker
