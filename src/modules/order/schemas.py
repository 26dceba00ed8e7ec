"""Pydantic v2 schemas for order and status workflow endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.enums import OrderStatus, PaymentStatus, Role
from src.modules.order.constants import EDITABLE_ORDER_FIELDS

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class OrderCreate(BaseModel):
    order_number: str | None = Field(None, min_length=1, max_length=50)
    total_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=14, decimal_places=2)
    estimated_delivery_at: datetime | None = None
    meta: dict = Field(default_factory=dict)


class StatusChangeRequest(BaseModel):
    # Plain strings: unknown values are reported as INVALID_STATUS (400)
    # by the workflow, not as a schema error.
    to_status: str = Field(..., min_length=1, max_length=50)
    reason: str | None = Field(None, max_length=1000)
    expected_status: str | None = Field(None, max_length=50)


class OrderUpdate(BaseModel):
    """Partial edit. Only fields present in the body are applied."""

    total_amount: Decimal | None = Field(None, ge=0, max_digits=14, decimal_places=2)
    estimated_delivery_at: datetime | None = None
    meta: dict | None = None
    status: str | None = Field(None, min_length=1, max_length=50)
    reason: str | None = Field(None, max_length=1000)
    expected_status: str | None = Field(None, max_length=50)

    @model_validator(mode="after")
    def _reject_null_required_fields(self) -> OrderUpdate:
        for name in ("total_amount", "meta"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def field_changes(self) -> dict:
        return self.model_dump(include=set(EDITABLE_ORDER_FIELDS), exclude_unset=True)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    status: OrderStatus
    payment_status: PaymentStatus
    total_amount: Decimal
    estimated_delivery_at: datetime | None = None
    delivery_confirmed_at: datetime | None = None
    meta: dict = Field(default_factory=dict)
    version: int
    created_at: datetime
    updated_at: datetime


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    limit: int
    offset: int


class StatusChangeResponse(BaseModel):
    order: OrderResponse
    from_status: OrderStatus
    to_status: OrderStatus
    allowed_next_states: list[OrderStatus]


class AllowedTransitionsResponse(BaseModel):
    order_id: uuid.UUID
    current_status: OrderStatus
    role: Role
    allowed_next_states: list[OrderStatus]


class StatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: uuid.UUID
    order_id: uuid.UUID
    from_status: OrderStatus | None = None
    to_status: OrderStatus
    changed_by: uuid.UUID | None = None
    reason: str | None = None
    metadata: dict = Field(default_factory=dict, validation_alias="metadata_extra")
    created_at: datetime


class QRSnapshotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    data: dict = Field(validation_alias="data_json")
    version: int
