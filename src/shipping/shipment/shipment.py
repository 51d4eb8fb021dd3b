"""Shipment aggregate (CQRS) — the core of the shipping domain.

A Shipment follows a single parcel from order placement to a terminal
outcome. Every status change is recorded as a TrackingEvent appended to the
shipment's tracking ledger; ``status``, ``status_description`` and
``last_updated_at`` are a cache of the ledger's tail and can always be
rebuilt with ``replay_ledger``.

State Machine:
    Any non-terminal status may move to any status (carriers report
    out of order, skip hubs, reattempt delivery).
    DELIVERED, CANCELLED, RETURNED, LOST, DAMAGED are terminal.
    A terminal shipment can still originate a separate return Shipment.
"""

import random
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from shared.clock import as_utc, not_before, utcnow
from shared.errors import InvalidStateTransition
from shipping.domain import shipping
from shipping.shipment.events import (
    CourierAssigned,
    ReturnShipmentCreated,
    ShipmentCreated,
    ShipmentStatusChanged,
)

TRACKING_PREFIX = "ODOP"
RETURN_TRACKING_PREFIX = "ODOPR"
RETURN_SHIPMENT_TRANSIT_DAYS = 7


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ShipmentStatus(Enum):
    ORDER_PLACED = "ORDER_PLACED"
    ORDER_CONFIRMED = "ORDER_CONFIRMED"
    PROCESSING = "PROCESSING"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT_TO_HUB = "IN_TRANSIT_TO_HUB"
    REACHED_HUB = "REACHED_HUB"
    IN_TRANSIT = "IN_TRANSIT"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERY_ATTEMPTED = "DELIVERY_ATTEMPTED"
    RESCHEDULED = "RESCHEDULED"
    DELIVERED = "DELIVERED"
    RETURNED = "RETURNED"
    CANCELLED = "CANCELLED"
    LOST = "LOST"
    DAMAGED = "DAMAGED"

    @property
    def display_name(self) -> str:
        return STATUS_CATALOGUE[self][0]

    @property
    def description(self) -> str:
        return STATUS_CATALOGUE[self][1]

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class Actor(Enum):
    SYSTEM = "System"
    COURIER = "Courier"
    ADMIN = "Admin"
    CUSTOMER = "Customer"


STATUS_CATALOGUE = {
    ShipmentStatus.ORDER_PLACED: ("Order Placed", "Your order has been successfully placed"),
    ShipmentStatus.ORDER_CONFIRMED: ("Order Confirmed", "Your order has been confirmed by the seller"),
    ShipmentStatus.PROCESSING: ("Processing", "Your order is being processed"),
    ShipmentStatus.READY_FOR_PICKUP: ("Ready for Pickup", "Package is ready for courier pickup"),
    ShipmentStatus.PICKED_UP: ("Picked Up", "Package has been picked up by courier"),
    ShipmentStatus.IN_TRANSIT_TO_HUB: ("In Transit to Hub", "Package is on the way to the distribution hub"),
    ShipmentStatus.REACHED_HUB: ("Reached Hub", "Package has arrived at the distribution hub"),
    ShipmentStatus.IN_TRANSIT: ("In Transit", "Package is on the way to your location"),
    ShipmentStatus.OUT_FOR_DELIVERY: ("Out for Delivery", "Package is out for delivery"),
    ShipmentStatus.DELIVERY_ATTEMPTED: ("Delivery Attempted", "Delivery was attempted but unsuccessful"),
    ShipmentStatus.RESCHEDULED: ("Rescheduled", "Delivery has been rescheduled"),
    ShipmentStatus.DELIVERED: ("Delivered", "Package has been delivered successfully"),
    ShipmentStatus.RETURNED: ("Returned", "Package has been returned to seller"),
    ShipmentStatus.CANCELLED: ("Cancelled", "Shipment has been cancelled"),
    ShipmentStatus.LOST: ("Lost", "Package is lost in transit"),
    ShipmentStatus.DAMAGED: ("Damaged", "Package was damaged during transit"),
}

TERMINAL_STATUSES = frozenset(
    {
        ShipmentStatus.DELIVERED,
        ShipmentStatus.CANCELLED,
        ShipmentStatus.RETURNED,
        ShipmentStatus.LOST,
        ShipmentStatus.DAMAGED,
    }
)

# Permissive by choice: carriers skip hubs and report out of order, so any
# non-terminal status may be followed by any other status.
_VALID_TRANSITIONS = {
    status: set() if status in TERMINAL_STATUSES else set(ShipmentStatus) for status in ShipmentStatus
}

# Buckets used by the vendor dashboard
PENDING_STATUSES = frozenset(
    {ShipmentStatus.ORDER_PLACED, ShipmentStatus.ORDER_CONFIRMED, ShipmentStatus.PROCESSING}
)
IN_TRANSIT_STATUSES = frozenset(
    {
        ShipmentStatus.PICKED_UP,
        ShipmentStatus.IN_TRANSIT_TO_HUB,
        ShipmentStatus.REACHED_HUB,
        ShipmentStatus.IN_TRANSIT,
    }
)

_COURIER_READY_STATUSES = {ShipmentStatus.ORDER_CONFIRMED, ShipmentStatus.PROCESSING}


# ---------------------------------------------------------------------------
# Identifier and scheduling helpers
# ---------------------------------------------------------------------------
def generate_tracking_number(prefix: str = TRACKING_PREFIX) -> str:
    """Human-readable tracking code: prefix, millis mod 1e8, 4-digit random suffix.

    Not unique by itself; the repository rejects clashes and the caller retries.
    """
    millis = int(time.time() * 1000)
    return f"{prefix}{millis % 100_000_000}{random.randint(0, 9999):04d}"


def estimate_delivery(shipping_mode: str | None, start: datetime | None = None) -> datetime:
    """Estimated delivery date for a shipping mode, counted from ``start``."""
    days = {
        "same-day": 0,
        "express": 2,
        "standard": 5,
    }.get((shipping_mode or "standard").lower(), 7)
    return (as_utc(start) or utcnow()) + timedelta(days=days)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@shipping.value_object(part_of="Shipment")
class ShippingAddress:
    """A pickup or delivery address."""

    name = String(max_length=150)
    phone = String(max_length=20)
    email = String(max_length=254)
    address_line1 = String(max_length=255)
    address_line2 = String(max_length=255)
    city = String(max_length=100)
    state = String(max_length=100)
    pincode = String(max_length=20)
    country = String(max_length=100, default="India")
    landmark = String(max_length=255)
    latitude = Float()
    longitude = Float()


@shipping.value_object(part_of="Shipment")
class PackageDetails:
    """Physical package attributes."""

    weight = Float(min_value=0.0)
    length = Float(min_value=0.0)
    width = Float(min_value=0.0)
    height = Float(min_value=0.0)
    number_of_items = Integer(min_value=1, default=1)
    package_type = String(max_length=50)


@shipping.value_object(part_of="Shipment")
class CourierInfo:
    """Courier partner carrying the shipment."""

    name = String(max_length=100)
    code = String(max_length=50)
    tracking_id = String(max_length=100)


@shipping.value_object(part_of="Shipment")
class NotificationPreferences:
    sms = Boolean(default=True)
    email = Boolean(default=True)
    whatsapp = Boolean(default=False)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@shipping.entity(part_of="Shipment")
class TrackingEvent:
    """One entry of the tracking ledger. Appended, never edited."""

    sequence = Integer(required=True, min_value=1)
    status = String(required=True, max_length=50, choices=ShipmentStatus)
    location = String(max_length=200)
    description = String(max_length=500)
    remarks = Text()
    actor = String(max_length=50, choices=Actor, default=Actor.SYSTEM.value)
    idempotency_key = String(max_length=255)
    occurred_at = DateTime(required=True)


@dataclass(frozen=True)
class LedgerState:
    """Shipment fields derived from the tracking ledger."""

    status: str | None
    status_description: str | None
    last_updated_at: datetime | None
    last_sequence: int


def replay_ledger(events) -> LedgerState:
    """Rebuild the derived shipment fields from tracking events, oldest first by sequence."""
    ordered = sorted(events, key=lambda e: e.sequence)
    if not ordered:
        return LedgerState(status=None, status_description=None, last_updated_at=None, last_sequence=0)
    tail = ordered[-1]
    return LedgerState(
        status=tail.status,
        status_description=tail.description,
        last_updated_at=as_utc(tail.occurred_at),
        last_sequence=tail.sequence,
    )


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@shipping.aggregate
class Shipment:
    tracking_number = String(required=True, max_length=50, unique=True)
    order_id = Identifier(required=True, unique=True)
    customer_id = Identifier(required=True)
    vendor_id = Identifier()
    status = String(
        max_length=50,
        choices=ShipmentStatus,
        default=ShipmentStatus.ORDER_PLACED.value,
    )
    status_description = String(max_length=500)
    pickup_address = ValueObject(ShippingAddress)
    delivery_address = ValueObject(ShippingAddress)
    package = ValueObject(PackageDetails)
    courier = ValueObject(CourierInfo)
    notifications = ValueObject(NotificationPreferences)
    shipping_cost = Float(min_value=0.0)
    shipping_mode = String(max_length=50, default="Standard")
    payment_mode = String(max_length=50, default="Prepaid")
    tracking_events = HasMany(TrackingEvent)
    revision = Integer(default=0)

    created_at = DateTime()
    picked_up_at = DateTime()
    dispatched_at = DateTime()
    estimated_delivery_date = DateTime()
    actual_delivery_date = DateTime()
    last_updated_at = DateTime()

    delivered_to = String(max_length=150)
    delivery_proof_url = String(max_length=500)
    delivery_notes = Text()

    is_return_shipment = Boolean(default=False)
    return_reason = String(max_length=500)
    original_shipment_id = Identifier()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def status_matches_latest_tracking_event(self):
        history = self.history
        if history and history[-1].status != self.status:
            raise ValidationError({"status": ["Current status must match the latest tracking event"]})

    @invariant.post
    def tracking_history_is_chronological(self):
        history = self.history
        for earlier, later in zip(history, history[1:]):
            if as_utc(later.occurred_at) < as_utc(earlier.occurred_at):
                raise ValidationError({"tracking_events": ["Tracking history must be in chronological order"]})

    # -------------------------------------------------------------------
    # Factory methods
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        tracking_number: str,
        order_id: str,
        customer_id: str,
        vendor_id: str | None = None,
        pickup_address: dict | None = None,
        delivery_address: dict | None = None,
        package: dict | None = None,
        shipping_mode: str | None = None,
        payment_mode: str | None = None,
        shipping_cost: float | None = None,
        notifications: dict | None = None,
        estimated_delivery_date: datetime | None = None,
    ):
        """Create a shipment for a confirmed order, with ORDER_PLACED as its first ledger entry."""
        now = utcnow()
        shipping_mode = shipping_mode or "Standard"
        shipment = cls(
            tracking_number=tracking_number,
            order_id=order_id,
            customer_id=customer_id,
            vendor_id=vendor_id,
            pickup_address=ShippingAddress(**pickup_address) if pickup_address else None,
            delivery_address=ShippingAddress(**delivery_address) if delivery_address else None,
            package=PackageDetails(**package) if package else None,
            shipping_mode=shipping_mode,
            payment_mode=payment_mode or "Prepaid",
            shipping_cost=shipping_cost,
            notifications=NotificationPreferences(**(notifications or {})),
            estimated_delivery_date=as_utc(estimated_delivery_date) or estimate_delivery(shipping_mode, now),
            created_at=now,
        )
        shipment._append(
            ShipmentStatus.ORDER_PLACED,
            location="Online",
            description="Order placed successfully",
            actor=Actor.SYSTEM,
            occurred_at=now,
        )
        shipment.raise_(
            ShipmentCreated(
                shipment_id=str(shipment.id),
                tracking_number=tracking_number,
                order_id=str(order_id),
                customer_id=str(customer_id),
                vendor_id=str(vendor_id) if vendor_id else None,
                shipping_mode=shipping_mode,
                estimated_delivery_date=shipment.estimated_delivery_date,
                created_at=now,
            )
        )
        return shipment

    @classmethod
    def create_return_for(cls, original: "Shipment", tracking_number: str, reason: str | None = None):
        """Create the reverse shipment for a delivered one. The original is not modified."""
        if ShipmentStatus(original.status) != ShipmentStatus.DELIVERED:
            raise InvalidStateTransition(
                {"status": [f"Can only create return for delivered shipments, not {original.status}"]}
            )

        now = utcnow()
        shipment = cls(
            tracking_number=tracking_number,
            order_id=f"{original.order_id}-RETURN",
            customer_id=original.customer_id,
            vendor_id=original.vendor_id,
            pickup_address=original.delivery_address,
            delivery_address=original.pickup_address,
            package=original.package,
            shipping_mode="Standard",
            payment_mode="Prepaid",
            notifications=original.notifications,
            estimated_delivery_date=now + timedelta(days=RETURN_SHIPMENT_TRANSIT_DAYS),
            created_at=now,
            is_return_shipment=True,
            return_reason=reason,
            original_shipment_id=str(original.id),
        )
        shipment._append(
            ShipmentStatus.ORDER_PLACED,
            location="Online",
            description=f"Return shipment initiated: {reason}" if reason else "Return shipment initiated",
            actor=Actor.SYSTEM,
            occurred_at=now,
        )
        shipment.raise_(
            ReturnShipmentCreated(
                shipment_id=str(shipment.id),
                tracking_number=tracking_number,
                original_shipment_id=str(original.id),
                original_tracking_number=original.tracking_number,
                return_reason=reason,
                created_at=now,
            )
        )
        return shipment

    # -------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------
    @property
    def history(self) -> list[TrackingEvent]:
        """Tracking events, oldest first."""
        return sorted(self.tracking_events or [], key=lambda e: e.sequence)

    @property
    def latest_event(self) -> TrackingEvent | None:
        history = self.history
        return history[-1] if history else None

    def has_idempotency_key(self, key: str | None) -> bool:
        return bool(key) and any(e.idempotency_key == key for e in self.tracking_events or [])

    def replay(self) -> LedgerState:
        return replay_ledger(self.tracking_events or [])

    def _append(
        self,
        status: ShipmentStatus,
        location: str | None = None,
        description: str | None = None,
        remarks: str | None = None,
        actor: Actor = Actor.SYSTEM,
        idempotency_key: str | None = None,
        occurred_at: datetime | None = None,
    ) -> TrackingEvent:
        """Append a tracking event and move the cached status fields to it in one step."""
        latest = self.latest_event
        event = TrackingEvent(
            sequence=(latest.sequence if latest else 0) + 1,
            status=status.value,
            location=location,
            description=description or status.description,
            remarks=remarks,
            actor=actor.value,
            idempotency_key=idempotency_key,
            occurred_at=not_before(latest.occurred_at if latest else None, occurred_at),
        )
        with atomic_change(self):
            self.add_tracking_events(event)
            self.status = event.status
            self.status_description = event.description
            self.last_updated_at = event.occurred_at
            self.revision = (self.revision or 0) + 1
        return event

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: ShipmentStatus) -> None:
        current = ShipmentStatus(self.status)
        if current in TERMINAL_STATUSES:
            raise InvalidStateTransition(
                {"status": [f"Cannot change status from terminal state {current.value}"]}
            )
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStateTransition(
                {"status": [f"Cannot transition from {current.value} to {target_status.value}"]}
            )

    # -------------------------------------------------------------------
    # Status updates
    # -------------------------------------------------------------------
    def apply_transition(
        self,
        new_status: ShipmentStatus,
        location: str | None = None,
        description: str | None = None,
        actor: Actor = Actor.ADMIN,
        remarks: str | None = None,
        idempotency_key: str | None = None,
        delivered_to: str | None = None,
        delivery_proof_url: str | None = None,
        delivery_notes: str | None = None,
        return_reason: str | None = None,
    ) -> bool:
        """Apply a status change by appending to the tracking ledger.

        Returns False without touching the ledger when ``idempotency_key`` was
        already recorded, so a resubmitted request is a no-op.
        """
        if self.has_idempotency_key(idempotency_key):
            return False

        self._assert_can_transition(new_status)
        previous = self.status
        event = self._append(
            new_status,
            location=location,
            description=description,
            remarks=remarks,
            actor=actor,
            idempotency_key=idempotency_key,
        )

        if new_status == ShipmentStatus.PICKED_UP:
            self.picked_up_at = event.occurred_at
        elif new_status == ShipmentStatus.IN_TRANSIT:
            self.dispatched_at = event.occurred_at
        elif new_status == ShipmentStatus.DELIVERED:
            self.actual_delivery_date = event.occurred_at
            self.delivered_to = delivered_to
            self.delivery_proof_url = delivery_proof_url
            self.delivery_notes = delivery_notes
        elif new_status == ShipmentStatus.RETURNED:
            self.return_reason = return_reason

        self._raise_status_changed(previous, event)
        return True

    def assign_courier(self, courier_name: str, courier_code: str | None = None, courier_tracking_id: str | None = None):
        """Hand the shipment to a courier; confirmed shipments become READY_FOR_PICKUP."""
        current = ShipmentStatus(self.status)
        if current in TERMINAL_STATUSES:
            raise InvalidStateTransition(
                {"status": [f"Cannot assign a courier to a shipment in terminal state {current.value}"]}
            )

        now = utcnow()
        self.courier = CourierInfo(name=courier_name, code=courier_code, tracking_id=courier_tracking_id)
        self.revision = (self.revision or 0) + 1
        self.raise_(
            CourierAssigned(
                shipment_id=str(self.id),
                tracking_number=self.tracking_number,
                courier_name=courier_name,
                courier_code=courier_code,
                courier_tracking_id=courier_tracking_id,
                assigned_at=now,
            )
        )

        if current in _COURIER_READY_STATUSES:
            event = self._append(
                ShipmentStatus.READY_FOR_PICKUP,
                location=self.pickup_address.city if self.pickup_address else None,
                description=f"Courier assigned: {courier_name}",
                actor=Actor.SYSTEM,
                occurred_at=now,
            )
            self._raise_status_changed(current.value, event)

    def _raise_status_changed(self, previous: str | None, event: TrackingEvent) -> None:
        self.raise_(
            ShipmentStatusChanged(
                shipment_id=str(self.id),
                tracking_number=self.tracking_number,
                previous_status=previous,
                new_status=event.status,
                location=event.location,
                description=event.description,
                actor=event.actor,
                sequence=event.sequence,
                is_terminal=ShipmentStatus(event.status) in TERMINAL_STATUSES,
                occurred_at=event.occurred_at,
            )
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return ShipmentStatus(self.status) not in TERMINAL_STATUSES

    def is_delayed(self, as_of: datetime | None = None) -> bool:
        """Active and past its estimated delivery date (an SLA breach)."""
        if not self.is_active or self.estimated_delivery_date is None:
            return False
        return as_utc(self.estimated_delivery_date) < (as_utc(as_of) or utcnow())

    def needs_update(self, cutoff: datetime) -> bool:
        """Active and not updated since ``cutoff``."""
        if not self.is_active:
            return False
        last = as_utc(self.last_updated_at or self.created_at)
        return last is not None and last < as_utc(cutoff)
