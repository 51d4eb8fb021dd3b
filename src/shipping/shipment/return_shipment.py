"""Return shipment creation — command and handler.

A return travels as its own Shipment with pickup and delivery addresses
swapped. The delivered original stays untouched.
"""

import structlog
from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from shared.errors import ConstraintViolation
from shipping.domain import shipping
from shipping.shipment.shipment import RETURN_TRACKING_PREFIX, Shipment

logger = structlog.get_logger(__name__)


@shipping.command(part_of="Shipment")
class CreateReturnShipment:
    """Create the reverse shipment for a delivered order."""

    original_tracking_number = String(required=True, max_length=50)
    reason = String(max_length=500)


@shipping.command_handler(part_of=Shipment)
class CreateReturnShipmentHandler:
    @handle(CreateReturnShipment)
    def create_return_shipment(self, command):
        repo = current_domain.repository_for(Shipment)
        original = repo.find_by_tracking_number(command.original_tracking_number)

        existing = repo.return_shipment_for(str(original.id))
        if existing is not None:
            raise ConstraintViolation(
                {
                    "original_tracking_number": [
                        f"Return shipment {existing.tracking_number} already exists for {original.tracking_number}"
                    ]
                }
            )

        shipment = Shipment.create_return_for(
            original,
            tracking_number=repo.next_tracking_number(RETURN_TRACKING_PREFIX),
            reason=command.reason,
        )
        repo.add(shipment)

        logger.info(
            "Return shipment created",
            tracking_number=shipment.tracking_number,
            original_tracking_number=original.tracking_number,
        )
        return shipment.tracking_number
