"""Tests for ReturnRequest repository views and scans."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError
from returns.refund_gateway import get_refund_gateway
from returns.return_request.creation import RequestReturn
from returns.return_request.pickup import CompletePickup, SchedulePickup
from returns.return_request.quality_check import StartQualityCheck, SubmitQualityCheck
from returns.return_request.refund import CompleteRefund, InitiateRefund
from returns.return_request.return_request import ReturnRequest, ReturnStatus
from returns.return_request.review import ApproveReturn, RejectReturn, SubmitReturnForApproval
from returns.return_request.transit import MarkReturnInTransit, ReceiveReturn
from shared.errors import ConstraintViolation


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _request(item, order_id="ord-rep-001", customer_id="cust-rep-001", vendor_id="vend-rep-001", price=100.0):
    return _process(
        RequestReturn(
            order_id=order_id,
            order_item_id=item,
            customer_id=customer_id,
            vendor_id=vendor_id,
            reason="DEFECTIVE",
            item_price=price,
        )
    )


def _to_passed(code):
    _process(ApproveReturn(return_code=code))
    _process(SchedulePickup(return_code=code, scheduled_date=datetime.now(UTC)))
    _process(CompletePickup(return_code=code))
    _process(MarkReturnInTransit(return_code=code))
    _process(ReceiveReturn(return_code=code))
    _process(StartQualityCheck(return_code=code))
    _process(SubmitQualityCheck(return_code=code, passed=True))


def _repo():
    return current_domain.repository_for(ReturnRequest)


class TestLookups:
    def test_unknown_code(self):
        with pytest.raises(ObjectNotFoundError):
            _repo().find_by_code("RET-MISSING")

    def test_active_for_item(self):
        code = _request("oi-1")
        assert _repo().active_for_item("ord-rep-001", "oi-1").return_code == code
        _process(RejectReturn(return_code=code))
        assert _repo().active_for_item("ord-rep-001", "oi-1") is None


class TestViews:
    def test_order_customer_vendor(self):
        _request("oi-1")
        _request("oi-2")
        _request("oi-3", order_id="ord-rep-002", customer_id="cust-other", vendor_id="vend-other")
        assert len(_repo().for_order("ord-rep-001")) == 2
        assert len(_repo().for_customer("cust-rep-001")) == 2
        assert len(_repo().for_vendor("vend-other")) == 1

    def test_pending_for_vendor(self):
        waiting = _request("oi-1")
        pending = _request("oi-2")
        approved = _request("oi-3")
        _process(SubmitReturnForApproval(return_code=pending))
        _process(ApproveReturn(return_code=approved))
        codes = {r.return_code for r in _repo().pending_for_vendor("vend-rep-001")}
        assert codes == {waiting, pending}

    def test_with_status(self):
        code = _request("oi-1")
        _request("oi-2")
        _process(ApproveReturn(return_code=code))
        assert [r.return_code for r in _repo().with_status(ReturnStatus.APPROVED)] == [code]


class TestSummary:
    def test_counts_and_refund_totals(self):
        _request("oi-1")
        rejected = _request("oi-2")
        _process(RejectReturn(return_code=rejected))
        approved = _request("oi-3")
        _process(ApproveReturn(return_code=approved))
        refunded = _request("oi-4", price=250.0)
        _to_passed(refunded)
        _process(InitiateRefund(return_code=refunded))
        _process(CompleteRefund(return_code=refunded, transaction_id="TXN-1"))
        in_flight = _request("oi-5", price=60.0)
        _to_passed(in_flight)
        _process(InitiateRefund(return_code=in_flight))

        summary = _repo().summary("vend-rep-001")
        assert summary["total"] == 5
        assert summary["pending"] == 1
        assert summary["approved"] == 1
        assert summary["rejected"] == 1
        assert summary["completed"] == 1
        assert summary["total_refunded"] == 250.0
        assert summary["pending_refund"] == 60.0
        assert summary["by_status"]["REFUND_INITIATED"] == 1

    def test_empty_summary(self):
        summary = _repo().summary("vend-nobody")
        assert summary["total"] == 0
        assert summary["by_status"] == {}


class TestOperationalScans:
    def test_stuck(self):
        code = _request("oi-1")
        done = _request("oi-2")
        _process(RejectReturn(return_code=done))
        stuck = _repo().stuck(datetime.now(UTC) + timedelta(minutes=1))
        assert [r.return_code for r in stuck] == [code]
        assert _repo().stuck(datetime.now(UTC) - timedelta(hours=72)) == []

    def test_failed_refunds(self):
        ok = _request("oi-1")
        _to_passed(ok)
        _process(InitiateRefund(return_code=ok))

        get_refund_gateway().configure(should_succeed=False)
        declined = _request("oi-2")
        _to_passed(declined)
        _process(InitiateRefund(return_code=declined))

        assert [r.return_code for r in _repo().failed_refunds()] == [declined]


class TestStoreUniqueness:
    def test_duplicate_return_code_rejected_on_add(self):
        _repo().add(
            ReturnRequest.create(
                return_code="RET17000000000001",
                order_id="ord-uq-1",
                order_item_id="oi-1",
                customer_id="cust-uq",
                reason="DEFECTIVE",
            )
        )
        clash = ReturnRequest.create(
            return_code="RET17000000000001",
            order_id="ord-uq-2",
            order_item_id="oi-2",
            customer_id="cust-uq",
            reason="DAMAGED",
        )

        with pytest.raises(ConstraintViolation) as exc:
            _repo().add(clash)

        assert "return_code" in exc.value.messages
        assert [r.order_id for r in _repo().for_customer("cust-uq")] == ["ord-uq-1"]
