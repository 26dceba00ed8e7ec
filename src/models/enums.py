import enum


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    EXECUTED = "Executed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    DELIVERED = "Delivered"
    PENDING_PAYMENT = "PendingPayment"
    PAID = "Paid"


class Role(str, enum.Enum):
    RECEPTIONIST = "Receptionist"
    OPERATOR = "Operator"
    ADMIN = "Admin"


class PaymentStatus(str, enum.Enum):
    NONE = "None"
    PENDING_PAYMENT = "PendingPayment"
    PAID = "Paid"


class AuditAction(str, enum.Enum):
    ORDER_CREATE = "ORDER_CREATE"
    ORDER_UPDATE = "ORDER_UPDATE"
    ORDER_STATUS_CHANGE = "ORDER_STATUS_CHANGE"


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Persist enum members by value ("InProgress") rather than by name."""
    return [member.value for member in enum_cls]
