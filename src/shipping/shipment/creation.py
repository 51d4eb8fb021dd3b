"""Shipment creation — command and handler."""

import json

import structlog
from protean import handle
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from shared.errors import ConstraintViolation
from shipping.domain import shipping
from shipping.shipment.shipment import TRACKING_PREFIX, Shipment

logger = structlog.get_logger(__name__)


def _load(value):
    return json.loads(value) if isinstance(value, str) else value


@shipping.command(part_of="Shipment")
class CreateShipment:
    """Create the shipment for an order that is confirmed for dispatch."""

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    vendor_id = Identifier()
    pickup_address = Text()  # JSON dict of ShippingAddress fields
    delivery_address = Text()  # JSON dict of ShippingAddress fields
    package = Text()  # JSON dict of PackageDetails fields
    notifications = Text()  # JSON dict: {"sms": bool, "email": bool, "whatsapp": bool}
    shipping_mode = String(max_length=50)
    payment_mode = String(max_length=50)
    shipping_cost = Float(min_value=0.0)
    estimated_delivery_date = DateTime()


@shipping.command_handler(part_of=Shipment)
class CreateShipmentHandler:
    @handle(CreateShipment)
    def create_shipment(self, command):
        repo = current_domain.repository_for(Shipment)
        if repo.order_has_shipment(command.order_id):
            raise ConstraintViolation({"order_id": [f"Shipment already exists for order: {command.order_id}"]})

        shipment = Shipment.create(
            tracking_number=repo.next_tracking_number(TRACKING_PREFIX),
            order_id=command.order_id,
            customer_id=command.customer_id,
            vendor_id=command.vendor_id,
            pickup_address=_load(command.pickup_address),
            delivery_address=_load(command.delivery_address),
            package=_load(command.package),
            shipping_mode=command.shipping_mode,
            payment_mode=command.payment_mode,
            shipping_cost=command.shipping_cost,
            notifications=_load(command.notifications),
            estimated_delivery_date=command.estimated_delivery_date,
        )
        repo.add(shipment)

        logger.info(
            "Shipment created",
            tracking_number=shipment.tracking_number,
            order_id=str(command.order_id),
        )
        return shipment.tracking_number
