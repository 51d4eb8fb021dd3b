"""Shared BDD fixtures and step definitions for the Returns domain."""

from datetime import UTC, datetime

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then
from returns.return_request.events import (
    ExchangeShipped,
    PickupScheduled,
    QualityCheckRecorded,
    RefundCompleted,
    RefundFailed,
    RefundInitiated,
    RefundSubmitted,
    ReturnRequested,
    ReturnStatusChanged,
)
from returns.return_request.return_request import ReturnRequest

_RETURN_EVENT_CLASSES = {
    "ReturnRequested": ReturnRequested,
    "ReturnStatusChanged": ReturnStatusChanged,
    "PickupScheduled": PickupScheduled,
    "QualityCheckRecorded": QualityCheckRecorded,
    "RefundInitiated": RefundInitiated,
    "RefundSubmitted": RefundSubmitted,
    "RefundFailed": RefundFailed,
    "RefundCompleted": RefundCompleted,
    "ExchangeShipped": ExchangeShipped,
}


def _new_return(return_type="RETURN"):
    return ReturnRequest.create(
        return_code="RET-BDD-0001",
        order_id="ord-bdd-001",
        order_item_id="oi-bdd-001",
        customer_id="cust-bdd",
        reason="DEFECTIVE",
        return_type=return_type,
        quantity=2,
        item_price=225.0,
    )


def _through_inspection(rr):
    rr.approve("vendor-bdd")
    rr.schedule_pickup(datetime.now(UTC))
    rr.complete_pickup()
    rr.mark_in_transit()
    rr.mark_received()
    rr.start_quality_check("inspector-bdd")
    return rr


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a requested return", target_fixture="rr")
def requested_return():
    rr = _new_return()
    rr._events.clear()
    return rr


@given("an approved return", target_fixture="rr")
def approved_return():
    rr = _new_return()
    rr.approve("vendor-bdd")
    rr._events.clear()
    return rr


@given(parsers.cfparse('a {return_type} return awaiting inspection'), target_fixture="rr")
def return_awaiting_inspection(return_type):
    rr = _through_inspection(_new_return(return_type))
    rr._events.clear()
    return rr


@given(parsers.cfparse('a {return_type} return that passed inspection'), target_fixture="rr")
def return_passed_inspection(return_type):
    rr = _through_inspection(_new_return(return_type))
    rr.submit_quality_check(passed=True)
    rr._events.clear()
    return rr


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the return status is "{status}"'))
def return_status_is(rr, status):
    assert rr.status == status


@then(parsers.cfparse('the refund status is "{status}"'))
def refund_status_is(rr, status):
    assert rr.refund is not None
    assert rr.refund.status == status


@then(parsers.cfparse("the refund amount is {amount:g}"))
def refund_amount_is(rr, amount):
    assert rr.refund.amount == amount


@then("the return action fails with a validation error")
def return_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("a {event_type} event is raised"))
def return_event_raised(rr, event_type):
    event_cls = _RETURN_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in rr._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in rr._events]}"


@then(parsers.cfparse('the latest history comment is "{comment}"'))
def latest_comment_is(rr, comment):
    assert rr.history[-1].comment == comment
