"""Order creation, lookups and workflow-gated status transitions."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.exceptions import ConflictException, NotFoundException, ValidationException
from src.models.audit_log import AuditLog
from src.models.enums import AuditAction, OrderStatus, PaymentStatus, Role
from src.models.order import Order
from src.models.order_qr_snapshot import OrderQRSnapshot
from src.models.status_history import StatusHistory
from src.modules.order.constants import (
    AUDIT_ENTITY_ORDER,
    EDITABLE_ORDER_FIELDS,
    HISTORY_SOURCE_API,
    PAYMENT_STATUS_FOR_ORDER_STATUS,
    REASON_ORDER_CREATED,
    REASON_STATUS_CHANGED,
    TransitionFailure,
)
from src.modules.order.qr_snapshot import build_qr_data
from src.modules.workflow import (
    INITIAL_STATUS,
    allowed_next_states,
    can_transition,
    parse_role,
    parse_status,
)

logger = logging.getLogger(__name__)


def _audit_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of ``OrderService.apply_transition``.

    A rejected result carries the failure tag and, where known, the statuses
    the caller could have moved to instead. Rejections never leave writes
    behind.
    """

    order: Order | None = None
    from_status: OrderStatus | None = None
    to_status: OrderStatus | None = None
    failure: TransitionFailure | None = None
    allowed: tuple[OrderStatus, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failure is None


class OrderService:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _transaction(self):
        """Begin a transaction, or a SAVEPOINT if the caller already holds one."""
        if self.db.in_transaction():
            return self.db.begin_nested()
        return self.db.begin()

    # ------------------------------------------------------------------
    # Reference number generation
    # ------------------------------------------------------------------

    async def _generate_order_number(self) -> str:
        """Generate ORD-YYYY-NNNNNN reference using a DB sequence."""
        result = await self.db.execute(text("SELECT nextval('order_number_seq')"))
        seq_val = result.scalar()
        year = datetime.now(UTC).year
        return f"ORD-{year}-{seq_val:06d}"

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_order(
        self,
        created_by: uuid.UUID | None,
        order_number: str | None = None,
        total_amount: Decimal = Decimal("0"),
        estimated_delivery_at: datetime | None = None,
        meta: dict | None = None,
    ) -> Order:
        """Create an order in the initial status with its first ledger rows."""
        try:
            async with self._transaction():
                order = await self._insert_order(
                    created_by, order_number, total_amount, estimated_delivery_at, meta
                )
        except IntegrityError as exc:
            raise ConflictException(f"Order number {order_number} already exists") from exc

        logger.info("Created order %s (%s)", order.id, order.order_number)
        return order

    async def _insert_order(
        self,
        created_by: uuid.UUID | None,
        order_number: str | None,
        total_amount: Decimal,
        estimated_delivery_at: datetime | None,
        meta: dict | None,
    ) -> Order:
        if order_number is None:
            order_number = await self._generate_order_number()
        else:
            existing = await self.db.execute(
                select(func.count())
                .select_from(Order)
                .where(Order.order_number == order_number)
            )
            if (existing.scalar() or 0) > 0:
                raise ConflictException(f"Order number {order_number} already exists")

        order = Order(
            order_number=order_number,
            status=INITIAL_STATUS,
            payment_status=PaymentStatus.NONE,
            total_amount=total_amount,
            estimated_delivery_at=estimated_delivery_at,
            meta=meta or {},
            version=0,
        )
        self.db.add(order)
        await self.db.flush()

        self.db.add(
            StatusHistory(
                order_id=order.id,
                from_status=None,
                to_status=INITIAL_STATUS,
                changed_by=created_by,
                reason=REASON_ORDER_CREATED,
                metadata_extra={
                    "source": HISTORY_SOURCE_API,
                    "created_at": datetime.now(UTC).isoformat(),
                    "order_number": order_number,
                },
            )
        )
        self.db.add(
            AuditLog(
                action=AuditAction.ORDER_CREATE.value,
                entity_type=AUDIT_ENTITY_ORDER,
                entity_id=order.id,
                actor_id=created_by,
                diff={
                    "created": {
                        "order_number": order_number,
                        "status": INITIAL_STATUS.value,
                        "total_amount": str(total_amount),
                    }
                },
            )
        )
        await self.db.flush()
        await self._refresh_qr_snapshot(order)
        return order

    # ------------------------------------------------------------------
    # Get / List
    # ------------------------------------------------------------------

    async def get_order(self, order_id: uuid.UUID) -> Order:
        result = await self.db.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundException(f"Order {order_id} not found")
        return order

    async def list_orders(
        self,
        status: OrderStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Order], int]:
        """List orders newest first, optionally filtered by status."""
        query = select(Order)
        count_query = select(func.count()).select_from(Order)

        if status is not None:
            query = query.where(Order.status == status)
            count_query = count_query.where(Order.status == status)

        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(Order.created_at.desc()).offset(offset).limit(limit)
        result = await self.db.execute(query)
        items = list(result.scalars().all())

        return items, total

    async def list_status_history(self, order_id: uuid.UUID) -> list[StatusHistory]:
        """Status ledger for an order, newest first.

        Ordered by ``seq``, which is allocated at insert time under the order row
        lock; ``created_at`` alone can disagree with lock order.
        """
        result = await self.db.execute(
            select(StatusHistory)
            .where(StatusHistory.order_id == order_id)
            .order_by(StatusHistory.seq.desc())
        )
        return list(result.scalars().all())

    async def ledger_is_consistent(self, order_id: uuid.UUID) -> bool:
        """True if the order's status equals the ``to_status`` of its latest ledger row."""
        order = await self.get_order(order_id)
        result = await self.db.execute(
            select(StatusHistory.to_status)
            .where(StatusHistory.order_id == order_id)
            .order_by(StatusHistory.seq.desc())
            .limit(1)
        )
        latest = result.scalar_one_or_none()
        return latest is not None and latest == order.status

    async def allowed_transitions(
        self, order_id: uuid.UUID, role: Role | str | None
    ) -> tuple[Order, tuple[OrderStatus, ...]]:
        """The order plus the statuses *role* may move it to right now."""
        order = await self.get_order(order_id)
        return order, allowed_next_states(role, order.status)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def _lock_order(self, order_id: uuid.UUID) -> Order | None:
        """Load the order row FOR UPDATE, refreshing any stale in-session copy."""
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def apply_transition(
        self,
        order_id: uuid.UUID,
        to_status: OrderStatus | str,
        actor_id: uuid.UUID | None,
        role: Role | str | None,
        reason: str | None = None,
        expected_status: OrderStatus | str | None = None,
    ) -> TransitionResult:
        """Move an order to *to_status* if *role* is allowed to.

        The status update, the ledger row and the audit row are written in a
        single transaction under a row lock. The current status is read only
        after the lock is held, so a request that raced with another
        transition is judged against the committed result. Persistence
        errors propagate and roll everything back.
        """
        target = parse_status(to_status)
        if target is None:
            logger.info("Rejected transition of order %s: unknown status %r", order_id, to_status)
            return TransitionResult(failure=TransitionFailure.INVALID_STATUS)

        parsed_role = parse_role(role)
        if parsed_role is None:
            logger.info("Rejected transition of order %s: no valid role (%r)", order_id, role)
            return TransitionResult(to_status=target, failure=TransitionFailure.MISSING_ROLE)

        expected = None
        if expected_status is not None:
            expected = parse_status(expected_status)
            if expected is None:
                return TransitionResult(to_status=target, failure=TransitionFailure.INVALID_STATUS)

        async with self._transaction():
            order = await self._lock_order(order_id)
            if order is None:
                return TransitionResult(to_status=target, failure=TransitionFailure.NOT_FOUND)

            current = order.status
            allowed = allowed_next_states(parsed_role, current)

            if expected is not None and current != expected:
                logger.info(
                    "Rejected transition of order %s: expected %s but found %s",
                    order_id, expected.value, current.value,
                )
                return TransitionResult(
                    order=order,
                    from_status=current,
                    to_status=target,
                    failure=TransitionFailure.STALE_PRECONDITION,
                    allowed=allowed,
                )

            if not can_transition(parsed_role, current, target):
                logger.info(
                    "Rejected transition of order %s: %s may not move %s -> %s",
                    order_id, parsed_role.value, current.value, target.value,
                )
                return TransitionResult(
                    order=order,
                    from_status=current,
                    to_status=target,
                    failure=TransitionFailure.FORBIDDEN_TRANSITION,
                    allowed=allowed,
                )

            reason = reason or REASON_STATUS_CHANGED
            order.status = target
            order.version = (order.version or 0) + 1
            if target in PAYMENT_STATUS_FOR_ORDER_STATUS:
                order.payment_status = PAYMENT_STATUS_FOR_ORDER_STATUS[target]
            if target == OrderStatus.DELIVERED:
                order.delivery_confirmed_at = datetime.now(UTC)

            self.db.add(
                StatusHistory(
                    order_id=order.id,
                    from_status=current,
                    to_status=target,
                    changed_by=actor_id,
                    reason=reason,
                    metadata_extra={
                        "source": HISTORY_SOURCE_API,
                        "changed_at": datetime.now(UTC).isoformat(),
                        "order_number": order.order_number,
                    },
                )
            )
            self.db.add(
                AuditLog(
                    action=AuditAction.ORDER_STATUS_CHANGE.value,
                    entity_type=AUDIT_ENTITY_ORDER,
                    entity_id=order.id,
                    actor_id=actor_id,
                    diff={"from": current.value, "to": target.value, "reason": reason},
                )
            )
            await self.db.flush()

            if "status" in settings.qr_affecting_fields:
                await self._refresh_qr_snapshot(order)

        logger.info(
            "Order %s transitioned %s -> %s by %s (%s)",
            order_id, current.value, target.value, actor_id, parsed_role.value,
        )
        return TransitionResult(
            order=order,
            from_status=current,
            to_status=target,
            allowed=allowed_next_states(parsed_role, target),
        )

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    async def update_order(
        self,
        order_id: uuid.UUID,
        actor_id: uuid.UUID | None,
        role: Role | str | None,
        changes: dict[str, Any],
        status: OrderStatus | str | None = None,
        reason: str | None = None,
        expected_status: OrderStatus | str | None = None,
    ) -> tuple[Order, TransitionResult | None]:
        """Edit an order's mutable fields and, optionally, its status.

        A requested status goes through ``apply_transition`` first; if that is
        rejected the rejected result is returned and no field is written.
        Field edits write one ``ORDER_UPDATE`` audit row with the before and
        after values of the fields that actually changed.
        """
        unknown = set(changes) - set(EDITABLE_ORDER_FIELDS)
        if unknown:
            raise ValidationException(
                "Only order details can be edited",
                details=[{"field": name, "message": "Not editable"} for name in sorted(unknown)],
            )

        async with self._transaction():
            order = await self._lock_order(order_id)
            if order is None:
                raise NotFoundException(f"Order {order_id} not found")

            transition = None
            if status is not None:
                transition = await self.apply_transition(
                    order_id=order_id,
                    to_status=status,
                    actor_id=actor_id,
                    role=role,
                    reason=reason,
                    expected_status=expected_status,
                )
                if not transition.ok:
                    return order, transition

            before: dict[str, Any] = {}
            after: dict[str, Any] = {}
            for field, value in changes.items():
                current = getattr(order, field)
                if current == value:
                    continue
                before[field] = _audit_value(current)
                after[field] = _audit_value(value)
                setattr(order, field, value)

            if after:
                self.db.add(
                    AuditLog(
                        action=AuditAction.ORDER_UPDATE.value,
                        entity_type=AUDIT_ENTITY_ORDER,
                        entity_id=order.id,
                        actor_id=actor_id,
                        diff={"before": before, "after": after},
                    )
                )
                await self.db.flush()

                if any(field in settings.qr_affecting_fields for field in after):
                    await self._refresh_qr_snapshot(order)

        if after:
            logger.info("Order %s updated by %s: %s", order_id, actor_id, ", ".join(sorted(after)))
        return order, transition

    # ------------------------------------------------------------------
    # QR snapshot
    # ------------------------------------------------------------------

    async def get_qr_data(self, order_id: uuid.UUID) -> OrderQRSnapshot:
        result = await self.db.execute(
            select(OrderQRSnapshot).where(OrderQRSnapshot.order_id == order_id)
        )
        snapshot = result.scalar_one_or_none()
        if snapshot is None:
            raise NotFoundException(f"QR data for order {order_id} not found")
        return snapshot

    async def regenerate_qr(self, order_id: uuid.UUID) -> OrderQRSnapshot:
        """Rebuild the QR payload from the current order. Errors propagate."""
        async with self._transaction():
            order = await self._lock_order(order_id)
            if order is None:
                raise NotFoundException(f"Order {order_id} not found")
            snapshot = await self._write_qr_snapshot(order)

        logger.info("Regenerated QR data for order %s (v%s)", order_id, snapshot.version)
        return snapshot

    async def _write_qr_snapshot(self, order: Order) -> OrderQRSnapshot:
        result = await self.db.execute(
            select(OrderQRSnapshot).where(OrderQRSnapshot.order_id == order.id)
        )
        snapshot = result.scalar_one_or_none()
        data = build_qr_data(order)
        if snapshot is None:
            snapshot = OrderQRSnapshot(order_id=order.id, data_json=data, version=1)
            self.db.add(snapshot)
        else:
            snapshot.data_json = data
            snapshot.version = (snapshot.version or 1) + 1
        await self.db.flush()
        return snapshot

    async def _refresh_qr_snapshot(self, order: Order) -> None:
        """Rewrite the order's QR payload inside a SAVEPOINT.

        Failures are logged and discarded; they never undo the caller's writes.
        """
        try:
            async with self.db.begin_nested():
                await self._write_qr_snapshot(order)
        except Exception:
            logger.warning("QR snapshot refresh failed for order %s", order.id, exc_info=True)
