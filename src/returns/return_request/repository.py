"""Repository for the ReturnRequest aggregate."""

from collections.abc import Iterator
from datetime import datetime

from protean.exceptions import ObjectNotFoundError

from returns.domain import returns
from returns.return_request.return_request import (
    AWAITING_REVIEW_STATUSES,
    RefundStatus,
    ReturnRequest,
    ReturnStatus,
    generate_return_code,
)
from shared.clock import as_utc
from shared.errors import ConstraintViolation, store_conflicts

PAGE_SIZE = 100
RETURN_CODE_ATTEMPTS = 5


def _newest_first(requests: list[ReturnRequest]) -> list[ReturnRequest]:
    return sorted(requests, key=lambda r: as_utc(r.created_at), reverse=True)


@returns.repository(part_of=ReturnRequest)
class ReturnRequestRepository:
    def _scan_pages(self, **filters) -> Iterator[ReturnRequest]:
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

    def _first_match(self, **filters) -> ReturnRequest | None:
        return self._dao.query.filter(**filters).all().first

    def add(self, return_request: ReturnRequest) -> ReturnRequest:
        """Persist, surfacing duplicate codes and stale writes as domain errors."""
        with store_conflicts("return_code"):
            return super().add(return_request)

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    def find_by_code(self, return_code: str) -> ReturnRequest:
        """Look up by return code, falling back to the internal id."""
        return_request = self._first_match(return_code=return_code) or self._first_match(id=return_code)
        if return_request is None:
            raise ObjectNotFoundError(f"Return request not found: {return_code}")
        return return_request

    def return_code_exists(self, return_code: str) -> bool:
        return self._first_match(return_code=return_code) is not None

    def next_return_code(self) -> str:
        for _ in range(RETURN_CODE_ATTEMPTS):
            candidate = generate_return_code()
            if not self.return_code_exists(candidate):
                return candidate
        raise ConstraintViolation(
            {"return_code": [f"Could not allocate a unique return code after {RETURN_CODE_ATTEMPTS} attempts"]}
        )

    def active_for_item(self, order_id: str, order_item_id: str) -> ReturnRequest | None:
        """The non-terminal return for an order line, if any."""
        for return_request in self._scan_pages(order_id=order_id, order_item_id=order_item_id):
            if return_request.is_active:
                return return_request
        return None

    # -------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------
    def for_order(self, order_id: str) -> list[ReturnRequest]:
        return _newest_first(list(self._scan_pages(order_id=order_id)))

    def for_customer(self, customer_id: str) -> list[ReturnRequest]:
        return _newest_first(list(self._scan_pages(customer_id=customer_id)))

    def for_vendor(self, vendor_id: str) -> list[ReturnRequest]:
        return _newest_first(list(self._scan_pages(vendor_id=vendor_id)))

    def pending_for_vendor(self, vendor_id: str) -> list[ReturnRequest]:
        """Returns awaiting the vendor's decision."""
        return [r for r in self.for_vendor(vendor_id) if ReturnStatus(r.status) in AWAITING_REVIEW_STATUSES]

    def with_status(self, status: ReturnStatus) -> list[ReturnRequest]:
        return _newest_first(list(self._scan_pages(status=status.value)))

    def summary(self, vendor_id: str | None = None) -> dict:
        """Counts by bucket and refund totals, optionally for one vendor."""
        counts = {status: 0 for status in ReturnStatus}
        total_refunded = 0.0
        pending_refund = 0.0
        total = 0
        filters = {"vendor_id": vendor_id} if vendor_id else {}
        for return_request in self._scan_pages(**filters):
            total += 1
            counts[ReturnStatus(return_request.status)] += 1
            refund = return_request.refund
            if refund is None:
                continue
            if refund.status == RefundStatus.COMPLETED.value:
                total_refunded += refund.amount or 0.0
            elif refund.status in (RefundStatus.PENDING.value, RefundStatus.PROCESSING.value):
                pending_refund += refund.amount or 0.0
        return {
            "total": total,
            "pending": sum(counts[s] for s in AWAITING_REVIEW_STATUSES),
            "approved": counts[ReturnStatus.APPROVED] + counts[ReturnStatus.PICKUP_SCHEDULED],
            "completed": counts[ReturnStatus.COMPLETED],
            "rejected": counts[ReturnStatus.REJECTED],
            "total_refunded": round(total_refunded, 2),
            "pending_refund": round(pending_refund, 2),
            "by_status": {status.value: count for status, count in counts.items() if count},
        }

    # -------------------------------------------------------------------
    # Operational scans
    # -------------------------------------------------------------------
    def active(self) -> Iterator[ReturnRequest]:
        return (r for r in self._scan_pages() if r.is_active)

    def stuck(self, cutoff: datetime) -> list[ReturnRequest]:
        """Active returns without a status change since ``cutoff``."""
        return sorted(
            (r for r in self.active() if r.is_stuck(cutoff)),
            key=lambda r: as_utc(r.updated_at or r.created_at),
        )

    def failed_refunds(self) -> list[ReturnRequest]:
        """Returns whose refund failed and waits for a manual re-drive."""
        return [
            r
            for r in self._scan_pages(status=ReturnStatus.REFUND_INITIATED.value)
            if r.has_failed_refund
        ]
