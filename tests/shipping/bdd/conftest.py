"""Shared BDD fixtures and step definitions for the Shipping domain."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then
from shipping.shipment.events import (
    CourierAssigned,
    ReturnShipmentCreated,
    ShipmentCreated,
    ShipmentStatusChanged,
)
from shipping.shipment.shipment import Actor, Shipment, ShipmentStatus

_SHIPMENT_EVENT_CLASSES = {
    "ShipmentCreated": ShipmentCreated,
    "ShipmentStatusChanged": ShipmentStatusChanged,
    "CourierAssigned": CourierAssigned,
    "ReturnShipmentCreated": ReturnShipmentCreated,
}


def _new_shipment(**overrides):
    values = {
        "tracking_number": "ODOP-BDD-0001",
        "order_id": "ord-bdd-001",
        "customer_id": "cust-bdd",
        "vendor_id": "vend-bdd",
        "pickup_address": {"name": "Seller", "city": "Ludhiana"},
        "delivery_address": {"name": "Kabir", "city": "Kochi"},
        "shipping_mode": "Standard",
    }
    values.update(overrides)
    return Shipment.create(**values)


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a newly placed shipment", target_fixture="shipment")
def placed_shipment():
    shipment = _new_shipment()
    shipment._events.clear()
    return shipment


@given(parsers.cfparse('a shipment in "{status}" status'), target_fixture="shipment")
def shipment_in_status(status):
    shipment = _new_shipment()
    shipment.apply_transition(ShipmentStatus(status), actor=Actor.SYSTEM)
    shipment._events.clear()
    return shipment


@given(
    parsers.cfparse("a shipment in transit that was due {days:d} days ago"),
    target_fixture="shipment",
)
def overdue_shipment(days):
    shipment = _new_shipment(estimated_delivery_date=datetime.now(UTC) - timedelta(days=days))
    shipment.apply_transition(ShipmentStatus.IN_TRANSIT, actor=Actor.COURIER)
    shipment._events.clear()
    return shipment


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the shipment status is "{status}"'))
def shipment_status_is(shipment, status):
    assert shipment.status == status


@then("the shipment action fails with a validation error")
def shipment_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("a {event_type} event is raised"))
def shipment_event_raised(shipment, event_type):
    event_cls = _SHIPMENT_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in shipment._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in shipment._events]}"


@then("no event is raised")
def no_event_raised(shipment):
    assert shipment._events == []


@then(parsers.cfparse("the shipment has {count:d} tracking events"))
def shipment_has_n_tracking_events(shipment, count):
    assert len(shipment.history) == count


@then(parsers.cfparse("the shipment revision is {revision:d}"))
def shipment_revision_is(shipment, revision):
    assert shipment.revision == revision
