"""Tests for the QR payload builder."""

from __future__ import annotations

from decimal import Decimal

from src.models.enums import OrderStatus
from src.modules.order.qr_snapshot import build_qr_data
from tests.fakes import make_order


class TestBuildQRData:
    def test_core_fields(self):
        order = make_order(OrderStatus.EXECUTED, total_amount=Decimal("42.10"))
        data = build_qr_data(order)

        assert data["id"] == str(order.id)
        assert data["order_number"] == order.order_number
        assert data["status"] == "Executed"
        assert data["total_amount"] == "42.10"
        assert data["estimated_delivery_at"] is None
        assert data["created_at"] == order.created_at.isoformat()
        assert data["meta"]["clientName"] == "Acme Plant"
        assert data["meta"]["items"] is None

    def test_items_use_short_keys(self):
        order = make_order(
            meta={"items": [{"description": "Sensor", "quantity": 2, "unitPrice": "5", "total": "10"}]}
        )
        assert build_qr_data(order)["meta"]["items"] == [
            {"d": "Sensor", "q": 2, "u": "5", "t": "10"}
        ]

    def test_non_object_items_are_skipped(self):
        order = make_order(
            meta={"items": [{"description": "Sensor", "quantity": 1}, "loose note", 3, None]}
        )
        assert build_qr_data(order)["meta"]["items"] == [
            {"d": "Sensor", "q": 1, "u": None, "t": None}
        ]

    def test_items_that_are_not_a_list(self):
        order = make_order(meta={"items": "see attached"})
        assert build_qr_data(order)["meta"]["items"] is None

    def test_empty_meta(self):
        order = make_order(meta=None)
        meta = build_qr_data(order)["meta"]
        assert meta["clientName"] is None
        assert meta["items"] is None
