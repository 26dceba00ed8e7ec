"""Centralized v1 API router: all module routers are included here."""

from fastapi import APIRouter

from src.modules.audit.router import router as audit_router
from src.modules.order.router import router as order_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(order_router)
v1_router.include_router(audit_router)
