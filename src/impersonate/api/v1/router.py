from fastapi import APIRouter

from src.impersonate.api.v1 import impersonate

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(impersonate.router)
