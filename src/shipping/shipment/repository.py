"""Repository for the Shipment aggregate.

Holds the lookups the API and the reconciliation scanner need. Scans are
paged so that no query silently stops at the provider's default limit.
"""

from collections.abc import Iterator
from datetime import datetime

from protean.exceptions import ObjectNotFoundError

from shared.clock import as_utc
from shared.errors import ConstraintViolation, store_conflicts
from shipping.domain import shipping
from shipping.shipment.shipment import (
    IN_TRANSIT_STATUSES,
    PENDING_STATUSES,
    TRACKING_PREFIX,
    Shipment,
    ShipmentStatus,
    generate_tracking_number,
)

PAGE_SIZE = 100
TRACKING_NUMBER_ATTEMPTS = 5


def _newest_first(shipments: list[Shipment]) -> list[Shipment]:
    return sorted(shipments, key=lambda s: as_utc(s.created_at), reverse=True)


@shipping.repository(part_of=Shipment)
class ShipmentRepository:
    def _scan_pages(self, **filters) -> Iterator[Shipment]:
        offset = 0
        while True:
            query = self._dao.query
            if filters:
                query = query.filter(**filters)
            items = query.offset(offset).limit(PAGE_SIZE).all().items
            yield from items
            if len(items) < PAGE_SIZE:
                return
            offset += PAGE_SIZE

    def _first_match(self, **filters) -> Shipment | None:
        return self._dao.query.filter(**filters).all().first

    def add(self, shipment: Shipment) -> Shipment:
        """Persist, surfacing duplicate codes and stale writes as domain errors."""
        with store_conflicts("tracking_number", "order_id"):
            return super().add(shipment)

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    def find_by_tracking_number(self, tracking_number: str) -> Shipment:
        shipment = self._first_match(tracking_number=tracking_number)
        if shipment is None:
            raise ObjectNotFoundError(f"Shipment not found: {tracking_number}")
        return shipment

    def find_by_order_id(self, order_id: str) -> Shipment:
        shipment = self._first_match(order_id=order_id)
        if shipment is None:
            raise ObjectNotFoundError(f"No shipment found for order: {order_id}")
        return shipment

    def find_by_courier_tracking_id(self, courier_tracking_id: str) -> Shipment:
        for shipment in self._scan_pages():
            if shipment.courier and shipment.courier.tracking_id == courier_tracking_id:
                return shipment
        raise ObjectNotFoundError(f"No shipment found for courier tracking id: {courier_tracking_id}")

    def order_has_shipment(self, order_id: str) -> bool:
        return self._first_match(order_id=order_id) is not None

    def tracking_number_exists(self, tracking_number: str) -> bool:
        return self._first_match(tracking_number=tracking_number) is not None

    def return_shipment_for(self, original_shipment_id: str) -> Shipment | None:
        return self._first_match(original_shipment_id=original_shipment_id)

    def next_tracking_number(self, prefix: str = TRACKING_PREFIX) -> str:
        """Generate a tracking number not yet used, retrying on the rare clash."""
        for _ in range(TRACKING_NUMBER_ATTEMPTS):
            candidate = generate_tracking_number(prefix)
            if not self.tracking_number_exists(candidate):
                return candidate
        raise ConstraintViolation(
            {"tracking_number": [f"Could not allocate a unique tracking number after {TRACKING_NUMBER_ATTEMPTS} attempts"]}
        )

    # -------------------------------------------------------------------
    # Customer / vendor views
    # -------------------------------------------------------------------
    def for_customer(self, customer_id: str) -> list[Shipment]:
        return _newest_first(list(self._scan_pages(customer_id=customer_id)))

    def active_for_customer(self, customer_id: str) -> list[Shipment]:
        return [s for s in self.for_customer(customer_id) if s.is_active]

    def for_vendor(self, vendor_id: str) -> list[Shipment]:
        return _newest_first(list(self._scan_pages(vendor_id=vendor_id)))

    def vendor_stats(self, vendor_id: str) -> dict[str, int]:
        stats = {"pending": 0, "in_transit": 0, "out_for_delivery": 0, "delivered": 0}
        for shipment in self._scan_pages(vendor_id=vendor_id):
            status = ShipmentStatus(shipment.status)
            if status in PENDING_STATUSES:
                stats["pending"] += 1
            elif status in IN_TRANSIT_STATUSES:
                stats["in_transit"] += 1
            elif status == ShipmentStatus.OUT_FOR_DELIVERY:
                stats["out_for_delivery"] += 1
            elif status == ShipmentStatus.DELIVERED:
                stats["delivered"] += 1
        return stats

    # -------------------------------------------------------------------
    # Operational scans
    # -------------------------------------------------------------------
    def active(self) -> Iterator[Shipment]:
        return (s for s in self._scan_pages() if s.is_active)

    def delayed(self, as_of: datetime | None = None) -> list[Shipment]:
        """Active shipments past their estimated delivery date."""
        return sorted(
            (s for s in self.active() if s.is_delayed(as_of)),
            key=lambda s: as_utc(s.estimated_delivery_date),
        )

    def needing_update(self, cutoff: datetime) -> list[Shipment]:
        """Active shipments whose last update is older than ``cutoff``."""
        return sorted(
            (s for s in self.active() if s.needs_update(cutoff)),
            key=lambda s: as_utc(s.last_updated_at),
        )
