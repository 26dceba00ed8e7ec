from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, DateTime, ForeignKey, Identity, Index, Text, text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, UUIDPrimaryKeyMixin
from src.models.enums import OrderStatus, enum_values

if TYPE_CHECKING:
    from src.models.order import Order

_order_status_type = SQLAlchemyEnum(
    OrderStatus, name="orderstatus", create_type=False, values_callable=enum_values
)


class StatusHistory(UUIDPrimaryKeyMixin, Base):
    """Append-only ledger of order status changes. No updated_at column.

    ``from_status`` is NULL only for the row written when the order is created.
    ``seq`` is allocated at insert time, under the order row lock, and defines
    ledger order. ``created_at`` is the insert time, not the transaction start.
    """

    __tablename__ = "status_history"

    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="RESTRICT"),
        nullable=False,
    )
    from_status: Mapped[OrderStatus | None] = mapped_column(_order_status_type)
    to_status: Mapped[OrderStatus] = mapped_column(_order_status_type, nullable=False)
    changed_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    reason: Mapped[str | None] = mapped_column(Text)
    metadata_extra: Mapped[dict] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict, server_default="{}"
    )
    seq: Mapped[int] = mapped_column(BigInteger, Identity(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("clock_timestamp()"), nullable=False
    )

    # Relationships
    order: Mapped[Order] = relationship(
        "Order", back_populates="status_history", lazy="noload"
    )

    __table_args__ = (
        Index("ix_status_history_order_id", "order_id", "seq"),
        Index("ix_status_history_changed_by", "changed_by"),
    )
