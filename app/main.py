"""
Esddar Tender Portal - Main Application
FastAPI 메인 앱
"""

# 환경변수 로드 (가장 먼저 실행)
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import time

from app.core.config import settings

# 로깅 설정
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from app.core.errors import InvalidTransition, RoleMismatch
from app.core.security import (
    SecurityHeadersMiddleware,
    RateLimitMiddleware
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 생명주기 관리

    Startup:
    - 계정 저장소 연결 확인
    """
    # ============ STARTUP ============
    logger.info(f"Starting {settings.APP_NAME}...")

    from app.services.storage import get_account_storage, get_storage_type
    get_account_storage()
    storage_type = get_storage_type()
    if storage_type == "memory":
        logger.warning("Account storage is in-memory; onboarding progress will not survive a restart")
    else:
        logger.info(f"Account storage ready: {storage_type}")

    yield

    # ============ SHUTDOWN ============
    logger.info(f"{settings.APP_NAME} stopped")


def create_app() -> FastAPI:
    """FastAPI 앱 생성"""
    app = FastAPI(
        title=settings.APP_NAME,
        description="정부 입찰 대시보드 - 계정 활성화(온보딩) 및 라우트 게이트",
        version=settings.APP_VERSION,
        lifespan=lifespan
    )

    # ============================================
    # CORS 설정 - 가장 먼저!
    # ============================================
    allowed_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    logger.info(f"CORS Origins: {allowed_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )

    # Rate Limiting 미들웨어
    app.add_middleware(RateLimitMiddleware, requests_per_minute=settings.RATE_LIMIT_PER_MINUTE)

    # 보안 헤더 미들웨어
    app.add_middleware(SecurityHeadersMiddleware)

    # 요청 로깅 미들웨어
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """요청/응답 로깅"""
        start_time = time.time()

        logger.info(f"{request.method} {request.url.path}")

        response = await call_next(request)

        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)

        logger.info(
            f"{request.method} {request.url.path} | "
            f"Status: {response.status_code} | "
            f"Time: {process_time:.3f}s"
        )

        return response

    # ============================================
    # 에러 핸들러 - {"error": ...} 형식
    # ============================================
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition):
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(RoleMismatch)
    async def role_mismatch_handler(request: Request, exc: RoleMismatch):
        return JSONResponse(status_code=403, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """전역 에러 핸들러"""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "path": request.url.path
            }
        )

    # ============================================
    # 라우터 등록
    # ============================================
    from app.api.v1 import router as api_router
    from app.web.pages import router as pages_router

    app.include_router(api_router)
    app.include_router(pages_router)

    @app.get("/health", tags=["System"])
    async def health():
        """헬스체크"""
        from app.services.storage import get_storage_type
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "storage": get_storage_type(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on {settings.APP_HOST}:{settings.APP_PORT}")

    uvicorn.run(
        "app.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=settings.APP_RELOAD,
        log_level="info"
    )
