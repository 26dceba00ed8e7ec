"""Role-gated order status transitions, terminal and initial states."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from src.models.enums import OrderStatus, Role

# ---------------------------------------------------------------------------
# role -> current_status -> allowed next statuses (declaration order is the
# order offered to the UI). Read-only after import.
# ---------------------------------------------------------------------------

ROLE_TRANSITIONS: Mapping[Role, Mapping[OrderStatus, tuple[OrderStatus, ...]]] = MappingProxyType({
    Role.RECEPTIONIST: MappingProxyType({
        OrderStatus.PENDING: (OrderStatus.CANCELLED,),
    }),
    Role.OPERATOR: MappingProxyType({
        OrderStatus.PENDING: (OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED),
        OrderStatus.IN_PROGRESS: (OrderStatus.EXECUTED, OrderStatus.CANCELLED),
        OrderStatus.EXECUTED: (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
        OrderStatus.COMPLETED: (OrderStatus.DELIVERED, OrderStatus.PENDING_PAYMENT),
    }),
    Role.ADMIN: MappingProxyType({
        OrderStatus.PENDING: (OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED),
        OrderStatus.IN_PROGRESS: (OrderStatus.EXECUTED, OrderStatus.CANCELLED),
        OrderStatus.EXECUTED: (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
        OrderStatus.COMPLETED: (OrderStatus.DELIVERED, OrderStatus.PENDING_PAYMENT),
        OrderStatus.DELIVERED: (OrderStatus.PENDING_PAYMENT, OrderStatus.PAID),
        OrderStatus.PENDING_PAYMENT: (OrderStatus.PAID,),
    }),
})

# The only status an order may be created in
INITIAL_STATUS = OrderStatus.PENDING

# Terminal statuses (no role lists a destination from them)
TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.CANCELLED,
    OrderStatus.PAID,
})
