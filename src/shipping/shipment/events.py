"""Shipment domain events — immutable facts about shipment state changes.

All events are past tense and versioned. Status changes carry the ledger
sequence so consumers can detect gaps or duplicates.
"""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from shipping.domain import shipping


@shipping.event(part_of="Shipment")
class ShipmentCreated:
    """A shipment was created for a confirmed order."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    tracking_number = String(required=True)
    order_id = String(required=True)
    customer_id = String(required=True)
    vendor_id = String()
    shipping_mode = String()
    estimated_delivery_date = DateTime()
    created_at = DateTime(required=True)


@shipping.event(part_of="Shipment")
class ShipmentStatusChanged:
    """A tracking event was appended and the shipment moved to a new status."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    tracking_number = String(required=True)
    previous_status = String()
    new_status = String(required=True)
    location = String()
    description = String()
    actor = String()
    sequence = Integer(required=True)
    is_terminal = Boolean(default=False)
    occurred_at = DateTime(required=True)


@shipping.event(part_of="Shipment")
class CourierAssigned:
    """A courier was assigned to carry the shipment."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    tracking_number = String(required=True)
    courier_name = String(required=True)
    courier_code = String()
    courier_tracking_id = String()
    assigned_at = DateTime(required=True)


@shipping.event(part_of="Shipment")
class ReturnShipmentCreated:
    """A reverse shipment was created for a delivered shipment."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    tracking_number = String(required=True)
    original_shipment_id = Identifier(required=True)
    original_tracking_number = String(required=True)
    return_reason = String()
    created_at = DateTime(required=True)
