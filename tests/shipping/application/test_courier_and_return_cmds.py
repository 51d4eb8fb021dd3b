"""Application tests for courier assignment and return shipment creation."""

import pytest
from protean import current_domain
from shared.errors import ConcurrentModification, ConstraintViolation, InvalidStateTransition
from shipping.shipment.courier import AssignCourier
from shipping.shipment.creation import CreateShipment
from shipping.shipment.return_shipment import CreateReturnShipment
from shipping.shipment.shipment import Shipment, ShipmentStatus
from shipping.shipment.status import UpdateShipmentStatus


def _create_shipment(order_id="ord-cr-001"):
    return current_domain.process(
        CreateShipment(order_id=order_id, customer_id="cust-cr-001"),
        asynchronous=False,
    )


def _deliver(tracking_number):
    current_domain.process(
        UpdateShipmentStatus(tracking_number=tracking_number, status="DELIVERED"),
        asynchronous=False,
    )


def _repo():
    return current_domain.repository_for(Shipment)


class TestAssignCourierCommand:
    def test_assigns_courier(self):
        tn = _create_shipment()
        current_domain.process(
            AssignCourier(tracking_number=tn, courier_name="Ekart", courier_tracking_id="EK-77"),
            asynchronous=False,
        )
        shipment = _repo().find_by_tracking_number(tn)
        assert shipment.courier.name == "Ekart"
        assert _repo().find_by_courier_tracking_id("EK-77").tracking_number == tn

    def test_stale_revision_rejected(self):
        tn = _create_shipment()
        with pytest.raises(ConcurrentModification):
            current_domain.process(
                AssignCourier(tracking_number=tn, courier_name="Ekart", expected_revision=7),
                asynchronous=False,
            )


class TestCreateReturnShipmentCommand:
    def test_creates_return_with_return_prefix(self):
        tn = _create_shipment()
        _deliver(tn)
        return_tn = current_domain.process(
            CreateReturnShipment(original_tracking_number=tn, reason="Damaged"),
            asynchronous=False,
        )
        assert return_tn.startswith("ODOPR")
        returned = _repo().find_by_tracking_number(return_tn)
        assert returned.is_return_shipment is True
        assert returned.order_id == "ord-cr-001-RETURN"

    def test_original_unchanged(self):
        tn = _create_shipment()
        _deliver(tn)
        revision = _repo().find_by_tracking_number(tn).revision
        current_domain.process(CreateReturnShipment(original_tracking_number=tn), asynchronous=False)
        original = _repo().find_by_tracking_number(tn)
        assert original.status == ShipmentStatus.DELIVERED.value
        assert original.revision == revision

    def test_second_return_rejected(self):
        tn = _create_shipment()
        _deliver(tn)
        current_domain.process(CreateReturnShipment(original_tracking_number=tn), asynchronous=False)
        with pytest.raises(ConstraintViolation):
            current_domain.process(CreateReturnShipment(original_tracking_number=tn), asynchronous=False)

    def test_undelivered_original_rejected(self):
        tn = _create_shipment()
        with pytest.raises(InvalidStateTransition):
            current_domain.process(CreateReturnShipment(original_tracking_number=tn), asynchronous=False)
