"""Payload encoded into an order's QR code.

Only the data is built and stored here; rendering the image happens
elsewhere.
"""

from __future__ import annotations

from typing import Any

from src.models.order import Order


def _isoformat(value) -> str | None:
    return value.isoformat() if value is not None else None


def build_qr_data(order: Order) -> dict[str, Any]:
    meta = order.meta or {}
    items = meta.get("items")
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "status": order.status.value,
        "total_amount": str(order.total_amount) if order.total_amount is not None else None,
        "estimated_delivery_at": _isoformat(order.estimated_delivery_at),
        "created_at": _isoformat(order.created_at),
        "meta": {
            "clientName": meta.get("clientName"),
            "contact": meta.get("contact"),
            "serviceType": meta.get("serviceType"),
            "pricing": meta.get("pricing"),
            # Short keys keep the QR payload small
            "items": [
                {
                    "d": item.get("description"),
                    "q": item.get("quantity"),
                    "u": item.get("unitPrice"),
                    "t": item.get("total"),
                }
                for item in items
                if isinstance(item, dict)
            ] if isinstance(items, list) else None,
        },
    }
