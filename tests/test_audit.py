"""Tests for audit trail reads and the admin gate on /audit-logs."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.config import settings
from src.exceptions import NotFoundException
from src.models.audit_log import AuditLog
from src.models.enums import AuditAction, Role
from src.modules.audit.service import AuditLogService
from tests.fakes import make_user

SERVICE_PATH = "src.modules.audit.router.AuditLogService"


def _make_log(**overrides) -> AuditLog:
    fields = {
        "id": uuid.uuid4(),
        "action": AuditAction.ORDER_STATUS_CHANGE.value,
        "entity_type": "Order",
        "entity_id": uuid.uuid4(),
        "actor_id": uuid.uuid4(),
        "diff": {"from": "Pending", "to": "Cancelled", "reason": "Status changed"},
        "created_at": datetime.now(UTC),
    }
    fields.update(overrides)
    return AuditLog(**fields)


def _make_list_result(values):
    result = MagicMock()
    result.scalars.return_value.all.return_value = values
    return result


class TestAuditLogService:
    @pytest.mark.asyncio
    async def test_list_defaults_to_cap(self, mock_db):
        mock_db.execute.return_value = _make_list_result([])
        await AuditLogService(mock_db).list_logs()

        statement = mock_db.execute.await_args.args[0]
        assert statement._limit == settings.audit_log_max_limit

    @pytest.mark.asyncio
    async def test_list_limit_is_capped(self, mock_db):
        mock_db.execute.return_value = _make_list_result([])
        await AuditLogService(mock_db).list_logs(limit=10_000)

        statement = mock_db.execute.await_args.args[0]
        assert statement._limit == settings.audit_log_max_limit

    @pytest.mark.asyncio
    async def test_list_respects_smaller_limit(self, mock_db):
        logs = [_make_log(), _make_log()]
        mock_db.execute.return_value = _make_list_result(logs)

        result = await AuditLogService(mock_db).list_logs(entity_type="Order", limit=5)

        assert result == logs
        assert mock_db.execute.await_args.args[0]._limit == 5

    @pytest.mark.asyncio
    async def test_get_log_not_found(self, mock_db):
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_db.execute.return_value = result

        with pytest.raises(NotFoundException):
            await AuditLogService(mock_db).get_log(uuid.uuid4())


class TestAuditRouter:
    @pytest.mark.asyncio
    async def test_operator_is_forbidden(self, async_client):
        response = await async_client.get("/api/v1/audit-logs/")
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("current_user", [make_user(Role.ADMIN)])
    async def test_admin_can_list(self, async_client, current_user):
        log = _make_log()
        instance = MagicMock()
        instance.list_logs = AsyncMock(return_value=[log])

        with patch(SERVICE_PATH, MagicMock(return_value=instance)):
            response = await async_client.get(f"/api/v1/audit-logs/?entity_id={log.entity_id}")

        assert response.status_code == 200
        [entry] = response.json()
        assert entry["action"] == "ORDER_STATUS_CHANGE"
        assert entry["diff"]["to"] == "Cancelled"
        assert instance.list_logs.await_args.kwargs["entity_id"] == log.entity_id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("current_user", [make_user(Role.ADMIN)])
    async def test_admin_get_missing_log(self, async_client, current_user):
        instance = MagicMock()
        instance.get_log = AsyncMock(side_effect=NotFoundException("Audit log not found"))

        with patch(SERVICE_PATH, MagicMock(return_value=instance)):
            response = await async_client.get(f"/api/v1/audit-logs/{uuid.uuid4()}")

        assert response.status_code == 404
