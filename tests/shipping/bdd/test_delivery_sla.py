"""BDD tests for delivery SLA detection."""

from pytest_bdd import scenarios, then, when
from shipping.shipment.shipment import Actor, ShipmentStatus

scenarios("features/delivery_sla.feature")


@when("the shipment is delivered", target_fixture="shipment")
def deliver(shipment):
    shipment.apply_transition(ShipmentStatus.DELIVERED, actor=Actor.COURIER)
    return shipment


@then("the shipment is delayed")
def is_delayed(shipment):
    assert shipment.is_delayed() is True


@then("the shipment is not delayed")
def is_not_delayed(shipment):
    assert shipment.is_delayed() is False
