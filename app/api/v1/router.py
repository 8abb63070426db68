"""
API v1 router - aggregates all endpoint modules (RESTful structure).
"""

from fastapi import APIRouter

from app.api.v1.endpoints import auth, health, items, live, profiles, trades

api_router = APIRouter(prefix="/v1")

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
api_router.include_router(items.router, prefix="/items", tags=["items"])
api_router.include_router(trades.router, prefix="/trades", tags=["trades"])
api_router.include_router(live.router, tags=["live"])
