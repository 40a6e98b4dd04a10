"""
전역 설정 관리
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """애플리케이션 전역 설정"""

    # ============================================
    # Application Settings
    # ============================================
    APP_NAME: str = "Esddar Tender Portal"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ============================================
    # Server Settings
    # ============================================
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000
    APP_RELOAD: bool = True

    # ============================================
    # Storage
    # ============================================
    DATABASE_URL: str = "sqlite:///./data/esddar.db"

    # ============================================
    # Session / JWT
    # ============================================
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_HOURS: int = 24
    SESSION_COOKIE_NAME: str = "esddar_session"
    SESSION_COOKIE_SECURE: bool = False

    # ============================================
    # Email Confirmation
    # ============================================
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    EMAIL_TOKEN_TTL_HOURS: int = 24
    MAIL_FROM: str = "support@esddar.com"

    # ============================================
    # Onboarding
    # ============================================
    # 원래 시스템은 문서 분석 완료까지 요구했음 (기본값: 업로드만 확인)
    ONBOARDING_REQUIRE_PROCESSED_DOCUMENT: bool = False

    # ============================================
    # Client (Status Fetcher)
    # ============================================
    API_BASE_URL: str = "http://localhost:8000"
    STATUS_FETCH_TIMEOUT_SECONDS: float = 10.0

    # ============================================
    # CORS / Rate Limiting / Audit
    # ============================================
    CORS_ORIGINS: str = "http://localhost:3000"
    RATE_LIMIT_PER_MINUTE: int = 120
    AUDIT_LOG_PATH: str = "logs/audit.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"  # 추가 환경변수 허용


# 싱글톤 인스턴스
settings = Settings()
