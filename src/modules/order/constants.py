"""Order service constants: audit tags, ledger sources, rejection reasons."""

from __future__ import annotations

import enum

from src.models.enums import OrderStatus, PaymentStatus

# ---------------------------------------------------------------------------
# Audit / ledger tagging
# ---------------------------------------------------------------------------

AUDIT_ENTITY_ORDER = "Order"

HISTORY_SOURCE_API = "api"

# Fields PUT /orders/{id} may change directly; status goes through the workflow
EDITABLE_ORDER_FIELDS = ("total_amount", "estimated_delivery_at", "meta")

REASON_ORDER_CREATED = "Order created"
REASON_STATUS_CHANGED = "Status changed"

# ---------------------------------------------------------------------------
# Derived fields kept in step with the workflow status
# ---------------------------------------------------------------------------

PAYMENT_STATUS_FOR_ORDER_STATUS: dict[OrderStatus, PaymentStatus] = {
    OrderStatus.PENDING_PAYMENT: PaymentStatus.PENDING_PAYMENT,
    OrderStatus.PAID: PaymentStatus.PAID,
}

# ---------------------------------------------------------------------------
# Reasons a status change request is turned down
# ---------------------------------------------------------------------------


class TransitionFailure(str, enum.Enum):
    INVALID_STATUS = "INVALID_STATUS"
    MISSING_ROLE = "MISSING_ROLE"
    NOT_FOUND = "NOT_FOUND"
    STALE_PRECONDITION = "STALE_PRECONDITION"
    FORBIDDEN_TRANSITION = "FORBIDDEN_TRANSITION"
