"""
API v1
"""
from fastapi import APIRouter

router = APIRouter(prefix="/api")

# Sub-routers
from app.api.v1 import auth, onboarding, documents, subscriptions, admin

router.include_router(auth.router, tags=["Authentication"])
router.include_router(onboarding.router, tags=["Onboarding"])
router.include_router(documents.router, tags=["Company Documents"])
router.include_router(subscriptions.router, tags=["Subscription"])
router.include_router(admin.router, tags=["Admin"])
