"""Courier assignment — command and handler."""

import structlog
from protean import handle
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from shared.errors import assert_expected_revision
from shipping.domain import shipping
from shipping.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)


@shipping.command(part_of="Shipment")
class AssignCourier:
    """Assign a courier partner to a shipment."""

    tracking_number = String(required=True, max_length=50)
    courier_name = String(required=True, max_length=100)
    courier_code = String(max_length=50)
    courier_tracking_id = String(max_length=100)
    expected_revision = Integer(min_value=0)


@shipping.command_handler(part_of=Shipment)
class AssignCourierHandler:
    @handle(AssignCourier)
    def assign_courier(self, command):
        repo = current_domain.repository_for(Shipment)
        shipment = repo.find_by_tracking_number(command.tracking_number)
        assert_expected_revision(shipment, command.expected_revision)

        shipment.assign_courier(
            courier_name=command.courier_name,
            courier_code=command.courier_code,
            courier_tracking_id=command.courier_tracking_id,
        )
        repo.add(shipment)

        logger.info(
            "Courier assigned",
            tracking_number=shipment.tracking_number,
            courier=command.courier_name,
            status=shipment.status,
        )
        return shipment.tracking_number
