"""Order model: the entity whose ``status`` the workflow engine governs."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Index, Integer, Numeric, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import OrderStatus, PaymentStatus, enum_values

if TYPE_CHECKING:
    from src.models.order_qr_snapshot import OrderQRSnapshot
    from src.models.status_history import StatusHistory


class Order(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True
    )
    status: Mapped[OrderStatus] = mapped_column(
        SQLAlchemyEnum(
            OrderStatus,
            name="orderstatus",
            create_type=False,
            values_callable=enum_values,
        ),
        nullable=False,
        default=OrderStatus.PENDING,
        server_default=OrderStatus.PENDING.value,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLAlchemyEnum(
            PaymentStatus,
            name="paymentstatus",
            create_type=False,
            values_callable=enum_values,
        ),
        nullable=False,
        default=PaymentStatus.NONE,
        server_default=PaymentStatus.NONE.value,
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0"), server_default="0"
    )
    estimated_delivery_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    delivery_confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    meta: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=dict, server_default="{}"
    )
    # Bumped on every accepted status transition
    version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    # Relationships
    status_history: Mapped[list[StatusHistory]] = relationship(
        "StatusHistory", back_populates="order", lazy="noload"
    )
    qr_snapshot: Mapped[OrderQRSnapshot | None] = relationship(
        "OrderQRSnapshot", back_populates="order", lazy="noload", uselist=False
    )

    # Server-side timestamps are read back on flush
    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        Index("ix_orders_status", "status"),
        Index("ix_orders_estimated_delivery_at", "estimated_delivery_at"),
    )
