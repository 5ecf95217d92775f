"""
Main API v1 router
Combines all handlers
"""
from fastapi import APIRouter

from utp.api.v1.handlers import content_handler, health_handler, text_handler

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(text_handler.router)
api_router.include_router(content_handler.router)
api_router.include_router(health_handler.router)
