"""Shipment status updates — command and handler.

Couriers, admins and customers report progress here. The handler appends
to the tracking ledger after the optimistic revision check; a request that
repeats an idempotency key already in the ledger changes nothing.
"""

import structlog
from protean import handle
from protean.fields import Integer, String, Text
from protean.utils.globals import current_domain

from shared.errors import assert_expected_revision
from shipping.domain import shipping
from shipping.shipment.shipment import Actor, Shipment, ShipmentStatus

logger = structlog.get_logger(__name__)


@shipping.command(part_of="Shipment")
class UpdateShipmentStatus:
    """Move a shipment to a new status by appending a tracking event."""

    tracking_number = String(required=True, max_length=50)
    status = String(required=True, max_length=50, choices=ShipmentStatus)
    location = String(max_length=200)
    description = String(max_length=500)
    remarks = Text()
    actor = String(max_length=50, choices=Actor, default=Actor.ADMIN.value)
    delivered_to = String(max_length=150)
    delivery_proof_url = String(max_length=500)
    delivery_notes = Text()
    return_reason = String(max_length=500)
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@shipping.command_handler(part_of=Shipment)
class UpdateShipmentStatusHandler:
    @handle(UpdateShipmentStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Shipment)
        shipment = repo.find_by_tracking_number(command.tracking_number)

        if shipment.has_idempotency_key(command.idempotency_key):
            logger.info(
                "Duplicate shipment status update ignored",
                tracking_number=shipment.tracking_number,
                idempotency_key=command.idempotency_key,
            )
            return shipment.tracking_number

        assert_expected_revision(shipment, command.expected_revision)
        previous = shipment.status
        shipment.apply_transition(
            ShipmentStatus(command.status),
            location=command.location,
            description=command.description,
            actor=Actor(command.actor or Actor.ADMIN.value),
            remarks=command.remarks,
            idempotency_key=command.idempotency_key,
            delivered_to=command.delivered_to,
            delivery_proof_url=command.delivery_proof_url,
            delivery_notes=command.delivery_notes,
            return_reason=command.return_reason,
        )
        repo.add(shipment)

        logger.info(
            "Shipment status updated",
            tracking_number=shipment.tracking_number,
            from_status=previous,
            to_status=shipment.status,
            revision=shipment.revision,
        )
        return shipment.tracking_number
