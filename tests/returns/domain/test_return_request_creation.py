"""Tests for ReturnRequest creation and identifiers."""

import re

from returns.return_request.events import ReturnRequested
from returns.return_request.return_request import (
    ReturnRequest,
    ReturnStatus,
    ReturnType,
    generate_pickup_tracking_id,
    generate_refund_id,
    generate_return_code,
)


def _make_return(**overrides):
    values = {
        "return_code": "RET-TEST-0001",
        "order_id": "ord-ret-001",
        "order_item_id": "oi-ret-001",
        "customer_id": "cust-ret-001",
        "reason": "DEFECTIVE",
        "quantity": 2,
        "item_price": 225.0,
    }
    values.update(overrides)
    return ReturnRequest.create(**values)


class TestReturnRequestCreation:
    def test_starts_requested(self):
        rr = _make_return()
        assert rr.status == ReturnStatus.REQUESTED.value
        assert rr.return_type == ReturnType.RETURN.value
        assert rr.revision == 1
        assert rr.is_active is True

    def test_first_history_entry_by_customer(self):
        rr = _make_return()
        assert len(rr.history) == 1
        entry = rr.history[0]
        assert entry.sequence == 1
        assert entry.status == ReturnStatus.REQUESTED.value
        assert entry.comment == "Return request submitted by customer"
        assert entry.updated_by == "cust-ret-001"

    def test_return_amount_is_price_times_quantity(self):
        rr = _make_return()
        assert rr.return_amount == 450.0

    def test_unknown_price_leaves_amount_empty(self):
        rr = _make_return(item_price=None)
        assert rr.return_amount is None

    def test_images_and_pickup_address(self):
        rr = _make_return(
            images=["https://img.example.com/1.jpg"],
            pickup_address={"city": "Nagpur", "pincode": "440001", "preferred_time_slot": "10-12"},
        )
        assert rr.image_list == ["https://img.example.com/1.jpg"]
        assert rr.pickup.city == "Nagpur"
        assert rr.pickup.preferred_time_slot == "10-12"

    def test_exchange_type(self):
        rr = _make_return(return_type="EXCHANGE", reason="SIZE_FIT")
        assert rr.return_type == ReturnType.EXCHANGE.value

    def test_raises_return_requested(self):
        rr = _make_return(vendor_id="vend-ret-001")
        events = [e for e in rr._events if isinstance(e, ReturnRequested)]
        assert len(events) == 1
        assert events[0].return_code == "RET-TEST-0001"
        assert events[0].vendor_id == "vend-ret-001"
        assert events[0].quantity == 2


class TestIdentifiers:
    def test_return_code_format(self):
        assert re.fullmatch(r"RET\d{13,}\d{4}", generate_return_code())

    def test_refund_id_format(self):
        assert re.fullmatch(r"REF\d{13,}", generate_refund_id())

    def test_pickup_tracking_id_format(self):
        assert re.fullmatch(r"PKP\d{13,}", generate_pickup_tracking_id())
