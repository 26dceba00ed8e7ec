"""Audit log API router (admin only)."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.models.enums import Role
from src.modules.audit.schemas import AuditLogResponse
from src.modules.audit.service import AuditLogService
from src.modules.auth import AuthenticatedUser, require_role
from src.schemas.responses import ErrorResponse

router = APIRouter(
    prefix="/audit-logs",
    tags=["audit"],
    responses={403: {"model": ErrorResponse}},
)


@router.get("/", response_model=list[AuditLogResponse])
async def list_audit_logs(
    entity_type: str | None = Query(None, max_length=100),
    entity_id: uuid.UUID | None = Query(None),
    limit: int | None = Query(None, ge=1),
    user: AuthenticatedUser = Depends(require_role(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """List audit entries, newest first."""
    svc = AuditLogService(db)
    logs = await svc.list_logs(entity_type=entity_type, entity_id=entity_id, limit=limit)
    return [AuditLogResponse.model_validate(log) for log in logs]


@router.get("/{log_id}", response_model=AuditLogResponse, responses={404: {"model": ErrorResponse}})
async def get_audit_log(
    log_id: uuid.UUID,
    user: AuthenticatedUser = Depends(require_role(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    svc = AuditLogService(db)
    return AuditLogResponse.model_validate(await svc.get_log(log_id))
