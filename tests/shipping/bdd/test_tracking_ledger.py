"""BDD tests for the shipment tracking ledger."""

from protean.exceptions import ValidationError
from pytest_bdd import parsers, scenarios, then, when
from shipping.shipment.shipment import Actor, ShipmentStatus

scenarios("features/tracking_ledger.feature")


@when(
    parsers.cfparse('the courier reports "{status}" at "{location}"'),
    target_fixture="shipment",
)
def courier_reports_at(shipment, status, location):
    shipment.apply_transition(ShipmentStatus(status), location=location, actor=Actor.COURIER)
    return shipment


@when(
    parsers.cfparse('the courier reports "{status}" with key "{key}"'),
    target_fixture="shipment",
)
def courier_reports_with_key(shipment, status, key):
    shipment.apply_transition(ShipmentStatus(status), actor=Actor.COURIER, idempotency_key=key)
    return shipment


@when(
    parsers.cfparse('the courier attempts to report "{status}"'),
    target_fixture="shipment",
)
def courier_attempts(shipment, status, error):
    try:
        shipment.apply_transition(ShipmentStatus(status), actor=Actor.COURIER)
    except ValidationError as exc:
        error["exc"] = exc
    return shipment


@when(parsers.cfparse('courier "{name}" is assigned'), target_fixture="shipment")
def courier_assigned(shipment, name):
    shipment.assign_courier(courier_name=name)
    return shipment


@then(parsers.cfparse('the latest tracking event is at "{location}"'))
def latest_event_location(shipment, location):
    assert shipment.latest_event.location == location


@then(parsers.cfparse('replaying the ledger yields "{status}"'))
def replay_yields(shipment, status):
    assert shipment.replay().status == status
