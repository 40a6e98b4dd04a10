"""
Esddar Security Module
보안 미들웨어, Rate Limiting, 감사 로그
"""

import os
import time
import logging
from datetime import datetime
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.core.config import settings

logger = logging.getLogger(__name__)

# 감사 로그 전용 로거
audit_logger = logging.getLogger("audit")
audit_logger.setLevel(logging.INFO)


def _configure_audit_handler(path: str):
    """감사 로그 파일 핸들러 (디렉토리 자동 생성)"""
    if any(isinstance(h, logging.FileHandler) for h in audit_logger.handlers):
        return
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    handler = logging.FileHandler(path)
    handler.setFormatter(logging.Formatter(
        "[AUDIT] %(asctime)s | %(message)s"
    ))
    audit_logger.addHandler(handler)


try:
    _configure_audit_handler(settings.AUDIT_LOG_PATH)
except OSError as e:
    logger.warning(f"Audit log file unavailable ({e}); audit events go to the application log only")


# ============================================
# Security Headers Middleware
# ============================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """보안 헤더 추가 미들웨어"""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        # 보안 헤더 추가
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        # HSTS (프로덕션에서만)
        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


# ============================================
# Rate Limiting
# ============================================

class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    간단한 인메모리 Rate Limiting

    프로덕션에서는 공유 저장소 기반으로 교체 권장
    """

    def __init__(self, app, requests_per_minute: int = 60):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.request_counts: dict = {}  # IP -> [timestamp]
        self.cleanup_interval = 60  # 초
        self.last_cleanup = time.time()

    def _cleanup_old_entries(self):
        """오래된 항목 정리"""
        now = time.time()
        if now - self.last_cleanup < self.cleanup_interval:
            return

        cutoff = now - 60
        for ip in list(self.request_counts.keys()):
            self.request_counts[ip] = [ts for ts in self.request_counts[ip] if ts > cutoff]
            if not self.request_counts[ip]:
                del self.request_counts[ip]

        self.last_cleanup = now

    async def dispatch(self, request: Request, call_next) -> Response:
        self._cleanup_old_entries()

        client_ip = get_client_ip(request)
        now = time.time()

        timestamps = self.request_counts.setdefault(client_ip, [])
        recent_requests = sum(1 for ts in timestamps if ts > now - 60)

        if recent_requests >= self.requests_per_minute:
            logger.warning(f"Rate limit exceeded for IP: {client_ip}")
            return Response(
                content='{"error": "Rate limit exceeded", "retry_after": 60}',
                status_code=429,
                media_type="application/json",
                headers={"Retry-After": "60"}
            )

        timestamps.append(now)

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(
            max(0, self.requests_per_minute - recent_requests - 1)
        )

        return response


def get_client_ip(request: Request) -> str:
    """클라이언트 IP 추출 (프록시 뒤일 때 X-Forwarded-For)"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


# ============================================
# Audit Logging
# ============================================

class AuditAction:
    """감사 로그 액션 타입"""
    REGISTER = "register"
    LOGIN = "login"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    EMAIL_CONFIRMED = "email_confirmed"
    CONFIRMATION_RESENT = "confirmation_resent"
    STEP_ADVANCED = "onboarding_step_advanced"
    STEP_REJECTED = "onboarding_step_rejected"
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_STATUS_UPDATED = "document_status_updated"
    PLAN_SELECTED = "plan_selected"


def log_audit(
    action: str,
    request: Request,
    user_id: str = "anonymous",
    details: Optional[dict] = None
):
    """
    감사 로그 기록

    Args:
        action: 액션 타입
        request: FastAPI Request 객체
        user_id: 계정 ID
        details: 추가 정보
    """
    log_entry = {
        "timestamp": datetime.utcnow().isoformat(),
        "action": action,
        "user_id": user_id,
        "ip": get_client_ip(request),
        "path": request.url.path,
        "method": request.method,
        "user_agent": request.headers.get("User-Agent", "unknown")[:100],
    }

    log_str = " | ".join(f"{k}={v}" for k, v in log_entry.items())
    if details:
        log_str += f" | details={details}"

    audit_logger.info(log_str)


# ============================================
# Input Validation Helpers
# ============================================

def sanitize_string(value: str, max_length: int = 1000) -> str:
    """문자열 새니타이즈"""
    if not value:
        return ""
    # 길이 제한
    value = value[:max_length]
    # 제어 문자 제거
    return "".join(c for c in value if c.isprintable() or c in "\n\t")


def sanitize_filename(name: Optional[str]) -> str:
    """업로드 파일명 정리 (경로 구분자 제거)"""
    name = sanitize_string(name or "", max_length=255)
    name = name.replace("\\", "/").split("/")[-1]
    return name or "document"
