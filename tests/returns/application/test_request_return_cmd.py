"""Application tests for requesting a return."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from returns.return_request.cancellation import CancelReturn
from returns.return_request.creation import RequestReturn
from returns.return_request.return_request import ReturnRequest, ReturnStatus
from shared.errors import ConstraintViolation


def _request(order_item_id="oi-app-001", **overrides):
    values = {
        "order_id": "ord-app-001",
        "order_item_id": order_item_id,
        "customer_id": "cust-app-001",
        "vendor_id": "vend-app-001",
        "product_name": "Cotton Kurta",
        "reason": "SIZE_FIT",
        "quantity": 1,
        "item_price": 799.0,
        "images": json.dumps(["https://img.example.com/k1.jpg"]),
        "pickup_address": json.dumps({"city": "Lucknow", "pincode": "226001"}),
    }
    values.update(overrides)
    return current_domain.process(RequestReturn(**values), asynchronous=False)


def _repo():
    return current_domain.repository_for(ReturnRequest)


class TestRequestReturn:
    def test_returns_code(self):
        code = _request()
        assert code.startswith("RET")

    def test_persists_return(self):
        code = _request()
        rr = _repo().find_by_code(code)
        assert rr.status == ReturnStatus.REQUESTED.value
        assert rr.product_name == "Cotton Kurta"
        assert rr.image_list == ["https://img.example.com/k1.jpg"]
        assert rr.pickup.city == "Lucknow"
        assert rr.return_amount == 799.0

    def test_find_by_internal_id(self):
        code = _request()
        rr = _repo().find_by_code(code)
        assert _repo().find_by_code(str(rr.id)).return_code == code

    def test_unknown_reason_rejected(self):
        with pytest.raises(ValidationError):
            _request(reason="BORED")


class TestOneActiveReturnPerItem:
    def test_duplicate_active_return_rejected(self):
        code = _request()
        with pytest.raises(ConstraintViolation) as exc:
            _request()
        assert code in str(exc.value.messages)

    def test_other_item_on_same_order_allowed(self):
        _request()
        assert _request(order_item_id="oi-app-002")

    def test_new_return_allowed_after_cancel(self):
        code = _request()
        current_domain.process(
            CancelReturn(return_code=code, customer_id="cust-app-001"),
            asynchronous=False,
        )
        assert _request() != code
