# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from src.models.audit_log import AuditLog
from src.models.enums import AuditAction, OrderStatus, PaymentStatus, Role
from src.models.order import Order
from src.models.order_qr_snapshot import OrderQRSnapshot
from src.models.status_history import StatusHistory

__all__ = [
    "AuditAction",
    "AuditLog",
    "Order",
    "OrderQRSnapshot",
    "OrderStatus",
    "PaymentStatus",
    "Role",
    "StatusHistory",
]
