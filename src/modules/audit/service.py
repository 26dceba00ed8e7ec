"""Read access to the audit trail."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.exceptions import NotFoundException
from src.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditLogService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_logs(
        self,
        entity_type: str | None = None,
        entity_id: uuid.UUID | None = None,
        limit: int | None = None,
    ) -> list[AuditLog]:
        """Newest audit entries first, capped at ``settings.audit_log_max_limit``."""
        cap = settings.audit_log_max_limit
        limit = cap if limit is None else min(limit, cap)

        query = select(AuditLog)
        if entity_type is not None:
            query = query.where(AuditLog.entity_type == entity_type)
        if entity_id is not None:
            query = query.where(AuditLog.entity_id == entity_id)

        result = await self.db.execute(
            query.order_by(AuditLog.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def get_log(self, log_id: uuid.UUID) -> AuditLog:
        result = await self.db.execute(select(AuditLog).where(AuditLog.id == log_id))
        log = result.scalar_one_or_none()
        if log is None:
            raise NotFoundException(f"Audit log {log_id} not found")
        return log
