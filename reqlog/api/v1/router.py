"""
Master API router for the example service.
"""

from fastapi import APIRouter

from reqlog.api.v1.endpoints import auth, system

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(system.router, prefix="/system", tags=["System"])
