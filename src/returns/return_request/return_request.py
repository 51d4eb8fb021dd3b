"""ReturnRequest aggregate (CQRS) — the core of the returns domain.

A ReturnRequest tracks one returned order line. Like a Shipment it keeps an
append-only status history whose tail is cached in ``status``. The refund
is a sub-state owned by the aggregate (``refund``), gated by the parent's
status so the two can never disagree.

State Machine:
    REQUESTED → PENDING_APPROVAL → APPROVED
    REQUESTED → APPROVED → PICKUP_SCHEDULED → PICKUP_COMPLETED → IN_TRANSIT → RECEIVED
    RECEIVED → QUALITY_CHECK → {QC_PASSED, QC_FAILED}
    QC_PASSED → REFUND_INITIATED → REFUND_COMPLETED → COMPLETED     (RETURN)
    QC_PASSED → EXCHANGE_SHIPPED → COMPLETED       (EXCHANGE, REPLACEMENT, REPAIR)
    {any status before RECEIVED} → {REJECTED, CANCELLED}
    COMPLETED, REJECTED, CANCELLED, QC_FAILED are terminal.

Refund sub-state:
    PENDING → PROCESSING → COMPLETED
    {PENDING, PROCESSING} → FAILED → PENDING (manual retry)
"""

import json
import random
import time
from datetime import datetime
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

from returns.domain import returns
from returns.return_request.events import (
    ExchangeShipped,
    PickupScheduled,
    QualityCheckRecorded,
    RefundCompleted,
    RefundFailed,
    RefundInitiated,
    RefundSubmitted,
    ReturnRequested,
    ReturnStatusChanged,
)
from shared.clock import as_utc, not_before, utcnow
from shared.errors import ConstraintViolation, InvalidStateTransition

SYSTEM_ACTOR = "SYSTEM"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ReturnType(Enum):
    RETURN = "RETURN"
    EXCHANGE = "EXCHANGE"
    REPLACEMENT = "REPLACEMENT"
    REPAIR = "REPAIR"


class ReturnReason(Enum):
    DEFECTIVE = "DEFECTIVE"
    DAMAGED = "DAMAGED"
    WRONG_ITEM = "WRONG_ITEM"
    NOT_AS_DESCRIBED = "NOT_AS_DESCRIBED"
    SIZE_FIT = "SIZE_FIT"
    QUALITY_ISSUE = "QUALITY_ISSUE"
    CHANGED_MIND = "CHANGED_MIND"
    BETTER_PRICE = "BETTER_PRICE"
    LATE_DELIVERY = "LATE_DELIVERY"
    MISSING_PARTS = "MISSING_PARTS"
    OTHER = "OTHER"


class ReturnStatus(Enum):
    REQUESTED = "REQUESTED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PICKUP_SCHEDULED = "PICKUP_SCHEDULED"
    PICKUP_COMPLETED = "PICKUP_COMPLETED"
    IN_TRANSIT = "IN_TRANSIT"
    RECEIVED = "RECEIVED"
    QUALITY_CHECK = "QUALITY_CHECK"
    QC_PASSED = "QC_PASSED"
    QC_FAILED = "QC_FAILED"
    REFUND_INITIATED = "REFUND_INITIATED"
    REFUND_COMPLETED = "REFUND_COMPLETED"
    EXCHANGE_SHIPPED = "EXCHANGE_SHIPPED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class RefundMethod(Enum):
    ORIGINAL_PAYMENT = "ORIGINAL_PAYMENT"
    BANK_TRANSFER = "BANK_TRANSFER"
    WALLET = "WALLET"
    STORE_CREDIT = "STORE_CREDIT"


class RefundStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset(
    {
        ReturnStatus.COMPLETED,
        ReturnStatus.REJECTED,
        ReturnStatus.CANCELLED,
        ReturnStatus.QC_FAILED,
    }
)

PRE_RECEIPT_STATUSES = frozenset(
    {
        ReturnStatus.REQUESTED,
        ReturnStatus.PENDING_APPROVAL,
        ReturnStatus.APPROVED,
        ReturnStatus.PICKUP_SCHEDULED,
        ReturnStatus.PICKUP_COMPLETED,
        ReturnStatus.IN_TRANSIT,
    }
)

AWAITING_REVIEW_STATUSES = frozenset({ReturnStatus.REQUESTED, ReturnStatus.PENDING_APPROVAL})

_CUSTOMER_CANCELLABLE = {
    ReturnStatus.REQUESTED,
    ReturnStatus.PENDING_APPROVAL,
    ReturnStatus.APPROVED,
}

_INSPECTED_STATUSES = {
    ReturnStatus.QC_PASSED,
    ReturnStatus.QC_FAILED,
    ReturnStatus.REFUND_INITIATED,
    ReturnStatus.REFUND_COMPLETED,
    ReturnStatus.EXCHANGE_SHIPPED,
}

_EXIT = {ReturnStatus.REJECTED, ReturnStatus.CANCELLED}

_VALID_TRANSITIONS = {
    ReturnStatus.REQUESTED: {ReturnStatus.PENDING_APPROVAL, ReturnStatus.APPROVED} | _EXIT,
    ReturnStatus.PENDING_APPROVAL: {ReturnStatus.APPROVED} | _EXIT,
    ReturnStatus.APPROVED: {ReturnStatus.PICKUP_SCHEDULED} | _EXIT,
    ReturnStatus.PICKUP_SCHEDULED: {ReturnStatus.PICKUP_COMPLETED} | _EXIT,
    ReturnStatus.PICKUP_COMPLETED: {ReturnStatus.IN_TRANSIT} | _EXIT,
    ReturnStatus.IN_TRANSIT: {ReturnStatus.RECEIVED} | _EXIT,
    ReturnStatus.RECEIVED: {ReturnStatus.QUALITY_CHECK},
    ReturnStatus.QUALITY_CHECK: {ReturnStatus.QC_PASSED, ReturnStatus.QC_FAILED},
    ReturnStatus.QC_PASSED: {ReturnStatus.REFUND_INITIATED, ReturnStatus.EXCHANGE_SHIPPED},
    ReturnStatus.REFUND_INITIATED: {ReturnStatus.REFUND_COMPLETED},
    ReturnStatus.REFUND_COMPLETED: {ReturnStatus.COMPLETED},
    ReturnStatus.EXCHANGE_SHIPPED: {ReturnStatus.COMPLETED},
    ReturnStatus.COMPLETED: set(),  # terminal
    ReturnStatus.REJECTED: set(),  # terminal
    ReturnStatus.CANCELLED: set(),  # terminal
    ReturnStatus.QC_FAILED: set(),  # terminal
}

# Statuses that only a dedicated operation may enter
_GATED_STATUSES = {
    ReturnStatus.QC_PASSED: "submit_quality_check",
    ReturnStatus.QC_FAILED: "submit_quality_check",
    ReturnStatus.REFUND_INITIATED: "initiate_refund",
    ReturnStatus.REFUND_COMPLETED: "complete_refund",
    ReturnStatus.EXCHANGE_SHIPPED: "ship_exchange",
}


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------
def _millis() -> int:
    return int(time.time() * 1000)


def generate_return_code() -> str:
    """``RET`` + epoch millis + 4-digit random suffix. Uniqueness is checked on save."""
    return f"RET{_millis()}{random.randint(0, 9999):04d}"


def generate_refund_id() -> str:
    return f"REF{_millis()}"


def generate_pickup_tracking_id() -> str:
    return f"PKP{_millis()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@returns.value_object(part_of="ReturnRequest")
class PickupDetails:
    """Where and when the returned item is collected."""

    address_line1 = String(max_length=255)
    address_line2 = String(max_length=255)
    city = String(max_length=100)
    state = String(max_length=100)
    pincode = String(max_length=20)
    landmark = String(max_length=255)
    contact_phone = String(max_length=20)
    preferred_date = DateTime()
    preferred_time_slot = String(max_length=50)
    scheduled_date = DateTime()
    agent_name = String(max_length=150)
    agent_phone = String(max_length=20)
    tracking_id = String(max_length=50)


_PICKUP_FIELDS = (
    "address_line1",
    "address_line2",
    "city",
    "state",
    "pincode",
    "landmark",
    "contact_phone",
    "preferred_date",
    "preferred_time_slot",
    "scheduled_date",
    "agent_name",
    "agent_phone",
    "tracking_id",
)


@returns.value_object(part_of="ReturnRequest")
class ShippingDetails:
    """Movement of an item between customer and warehouse."""

    method = String(max_length=50)
    tracking_number = String(max_length=100)
    carrier = String(max_length=100)
    shipped_date = DateTime()
    delivered_date = DateTime()


@returns.value_object(part_of="ReturnRequest")
class QualityCheckResult:
    """Outcome of inspecting the returned item. Recorded once."""

    passed = Boolean(default=False)
    inspector_id = String(max_length=100)
    inspector_name = String(max_length=150)
    inspected_at = DateTime()
    condition = String(max_length=100)
    notes = Text()
    defect_images = Text()  # JSON list of image URLs
    eligible_for_restock = Boolean(default=False)


@returns.value_object(part_of="ReturnRequest")
class RefundDetails:
    """Refund sub-record. Replaced wholesale on every refund state change."""

    refund_id = String(max_length=50)
    method = String(max_length=50, choices=RefundMethod)
    status = String(max_length=50, choices=RefundStatus, default=RefundStatus.PENDING.value)
    gross_amount = Float(min_value=0.0)
    deductions = Float(min_value=0.0, default=0.0)
    deduction_reason = String(max_length=500)
    amount = Float(min_value=0.0)
    transaction_id = String(max_length=100)
    gateway_reference = String(max_length=100)
    attempts = Integer(min_value=0, default=0)
    initiated_at = DateTime()
    completed_at = DateTime()
    failed_at = DateTime()
    failure_reason = String(max_length=500)


_REFUND_FIELDS = (
    "refund_id",
    "method",
    "status",
    "gross_amount",
    "deductions",
    "deduction_reason",
    "amount",
    "transaction_id",
    "gateway_reference",
    "attempts",
    "initiated_at",
    "completed_at",
    "failed_at",
    "failure_reason",
)


def _copy_vo(vo_cls, current, field_names, **changes):
    values = {name: getattr(current, name) for name in field_names} if current else {}
    values.update(changes)
    return vo_cls(**values)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@returns.entity(part_of="ReturnRequest")
class StatusHistoryEntry:
    """One entry of the status history. Appended, never edited."""

    sequence = Integer(required=True, min_value=1)
    status = String(required=True, max_length=50, choices=ReturnStatus)
    comment = Text()
    updated_by = String(max_length=100)
    idempotency_key = String(max_length=255)
    occurred_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Decision functions
# ---------------------------------------------------------------------------
def quality_gate(result: QualityCheckResult) -> ReturnStatus:
    """Route an inspected return: passed items may be refunded or exchanged, failed items may not."""
    return ReturnStatus.QC_PASSED if result.passed else ReturnStatus.QC_FAILED


def calculate_refund(
    item_price: float | None,
    quantity: int,
    amount: float | None = None,
    deductions: float | None = None,
    deduction_reason: str | None = None,
) -> tuple[float, float]:
    """Return ``(gross, refund)`` where refund = item_price x quantity - deductions, to 2 decimals.

    ``amount`` is the gross amount claimed by the caller; when the item price
    is known it must match item_price x quantity.
    """
    deductions = deductions or 0.0
    expected = round(item_price * quantity, 2) if item_price is not None else None
    gross = amount if amount is not None else expected
    if gross is None:
        raise ValidationError({"amount": ["Refund amount is required when the item price is unknown"]})
    if expected is not None and abs(gross - expected) > 0.005:
        raise ValidationError(
            {"amount": [f"Refund amount {gross:.2f} must equal item price x quantity ({expected:.2f})"]}
        )
    if deductions < 0:
        raise ValidationError({"deductions": ["Deductions cannot be negative"]})
    if deductions > gross:
        raise ValidationError({"deductions": [f"Deductions {deductions:.2f} exceed the refundable amount {gross:.2f}"]})
    if deductions > 0 and not (deduction_reason or "").strip():
        raise ValidationError({"deduction_reason": ["A deduction reason is required when deductions are applied"]})
    return round(gross, 2), round(gross - deductions, 2)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@returns.aggregate
class ReturnRequest:
    return_code = String(required=True, max_length=50, unique=True)
    order_id = Identifier(required=True)
    order_item_id = Identifier(required=True)
    product_id = Identifier()
    product_name = String(max_length=255)
    product_image = String(max_length=500)
    variant_id = Identifier()
    variant_info = String(max_length=255)
    customer_id = Identifier(required=True)
    customer_name = String(max_length=150)
    customer_email = String(max_length=254)
    customer_phone = String(max_length=20)
    vendor_id = Identifier()
    vendor_name = String(max_length=150)

    return_type = String(max_length=20, choices=ReturnType, default=ReturnType.RETURN.value)
    reason = String(required=True, max_length=50, choices=ReturnReason)
    reason_details = Text()
    quantity = Integer(min_value=1, default=1)
    item_price = Float(min_value=0.0)
    return_amount = Float(min_value=0.0)
    images = Text()  # JSON list of image URLs

    status = String(
        max_length=50,
        choices=ReturnStatus,
        default=ReturnStatus.REQUESTED.value,
    )
    status_history = HasMany(StatusHistoryEntry)
    revision = Integer(default=0)

    pickup = ValueObject(PickupDetails)
    shipping = ValueObject(ShippingDetails)
    exchange_shipping = ValueObject(ShippingDetails)
    quality_check = ValueObject(QualityCheckResult)
    refund = ValueObject(RefundDetails)

    internal_notes = Text()
    customer_notes = Text()
    created_at = DateTime()
    updated_at = DateTime()
    resolved_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def status_matches_latest_history_entry(self):
        history = self.history
        if history and history[-1].status != self.status:
            raise ValidationError({"status": ["Current status must match the latest status history entry"]})

    @invariant.post
    def status_history_is_chronological(self):
        history = self.history
        for earlier, later in zip(history, history[1:]):
            if as_utc(later.occurred_at) < as_utc(earlier.occurred_at):
                raise ValidationError({"status_history": ["Status history must be in chronological order"]})

    @invariant.post
    def inspected_returns_carry_quality_check(self):
        if ReturnStatus(self.status) in _INSPECTED_STATUSES and self.quality_check is None:
            raise ValidationError({"quality_check": ["An inspected return must carry its quality check result"]})

    @invariant.post
    def refund_consistent_with_status(self):
        status = ReturnStatus(self.status)
        refund_status = RefundStatus(self.refund.status) if self.refund else None
        if status == ReturnStatus.REFUND_INITIATED and refund_status is None:
            raise ValidationError({"refund": ["A return in REFUND_INITIATED must carry refund details"]})
        if status == ReturnStatus.REFUND_COMPLETED and refund_status != RefundStatus.COMPLETED:
            raise ValidationError({"refund": ["Refund must be completed before the return records REFUND_COMPLETED"]})
        if (
            status == ReturnStatus.COMPLETED
            and self.return_type == ReturnType.RETURN.value
            and refund_status != RefundStatus.COMPLETED
        ):
            raise ValidationError({"refund": ["A return cannot be completed while its refund is not completed"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        return_code: str,
        order_id: str,
        order_item_id: str,
        customer_id: str,
        reason: str,
        return_type: str = ReturnType.RETURN.value,
        quantity: int = 1,
        item_price: float | None = None,
        reason_details: str | None = None,
        images: list[str] | None = None,
        pickup_address: dict | None = None,
        **details,
    ):
        """Create a return request in REQUESTED, submitted by the customer."""
        now = utcnow()
        rr = cls(
            return_code=return_code,
            order_id=order_id,
            order_item_id=order_item_id,
            customer_id=customer_id,
            reason=reason,
            return_type=return_type or ReturnType.RETURN.value,
            quantity=quantity,
            item_price=item_price,
            return_amount=round(item_price * quantity, 2) if item_price is not None else None,
            reason_details=reason_details,
            images=json.dumps(images or []),
            pickup=PickupDetails(**pickup_address) if pickup_address else None,
            created_at=now,
            **details,
        )
        rr._append(ReturnStatus.REQUESTED, "Return request submitted by customer", str(customer_id), occurred_at=now)
        rr.raise_(
            ReturnRequested(
                return_id=str(rr.id),
                return_code=return_code,
                order_id=str(order_id),
                order_item_id=str(order_item_id),
                customer_id=str(customer_id),
                vendor_id=str(rr.vendor_id) if rr.vendor_id else None,
                return_type=rr.return_type,
                reason=reason,
                quantity=quantity,
                requested_at=now,
            )
        )
        return rr

    # -------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------
    @property
    def history(self) -> list[StatusHistoryEntry]:
        """Status history, oldest first."""
        return sorted(self.status_history or [], key=lambda e: e.sequence)

    @property
    def image_list(self) -> list[str]:
        return json.loads(self.images) if self.images else []

    @property
    def is_active(self) -> bool:
        return ReturnStatus(self.status) not in TERMINAL_STATUSES

    def has_idempotency_key(self, key: str | None) -> bool:
        return bool(key) and any(e.idempotency_key == key for e in self.status_history or [])

    def _append(
        self,
        status: ReturnStatus,
        comment: str | None,
        updated_by: str | None,
        idempotency_key: str | None = None,
        occurred_at: datetime | None = None,
    ) -> StatusHistoryEntry:
        history = self.history
        latest = history[-1] if history else None
        entry = StatusHistoryEntry(
            sequence=(latest.sequence if latest else 0) + 1,
            status=status.value,
            comment=comment,
            updated_by=updated_by or SYSTEM_ACTOR,
            idempotency_key=idempotency_key,
            occurred_at=not_before(latest.occurred_at if latest else None, occurred_at),
        )
        with atomic_change(self):
            self.add_status_history(entry)
            self.status = entry.status
            self.updated_at = entry.occurred_at
            self.revision = (self.revision or 0) + 1
        return entry

    def _assert_can_transition(self, target_status: ReturnStatus) -> None:
        current = ReturnStatus(self.status)
        if current in TERMINAL_STATUSES:
            raise InvalidStateTransition({"status": [f"Return is already {current.value} and cannot change"]})
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStateTransition(
                {"status": [f"Cannot transition from {current.value} to {target_status.value}"]}
            )

    def _transition(
        self,
        target_status: ReturnStatus,
        comment: str | None,
        updated_by: str | None,
        idempotency_key: str | None = None,
    ) -> StatusHistoryEntry:
        self._assert_can_transition(target_status)
        previous = self.status
        entry = self._append(target_status, comment, updated_by, idempotency_key)
        if target_status in TERMINAL_STATUSES:
            self.resolved_at = entry.occurred_at
        self.raise_(
            ReturnStatusChanged(
                return_id=str(self.id),
                return_code=self.return_code,
                previous_status=previous,
                new_status=entry.status,
                comment=entry.comment,
                updated_by=entry.updated_by,
                sequence=entry.sequence,
                is_terminal=target_status in TERMINAL_STATUSES,
                occurred_at=entry.occurred_at,
            )
        )
        return entry

    def record_status(
        self,
        status: ReturnStatus,
        comment: str | None = None,
        updated_by: str | None = None,
        idempotency_key: str | None = None,
    ) -> bool:
        """Append a status history entry after validating the transition.

        Inspection outcomes, refunds and exchange shipments carry extra data
        and must go through their own operations. Returns False when the
        idempotency key was already recorded.
        """
        if self.has_idempotency_key(idempotency_key):
            return False
        if status in _GATED_STATUSES:
            raise InvalidStateTransition(
                {"status": [f"{status.value} can only be reached through {_GATED_STATUSES[status]}"]}
            )
        self._transition(status, comment, updated_by, idempotency_key)
        return True

    # -------------------------------------------------------------------
    # Review
    # -------------------------------------------------------------------
    def submit_for_approval(self, updated_by: str | None = None, comment: str | None = None, idempotency_key=None):
        self._transition(
            ReturnStatus.PENDING_APPROVAL, comment or "Awaiting vendor approval", updated_by, idempotency_key
        )

    def approve(self, approved_by: str | None = None, comment: str | None = None, idempotency_key=None):
        self._transition(ReturnStatus.APPROVED, comment or "Return request approved", approved_by, idempotency_key)

    def reject(self, rejected_by: str | None = None, reason: str | None = None, idempotency_key=None):
        self._transition(ReturnStatus.REJECTED, reason or "Return request rejected", rejected_by, idempotency_key)

    def cancel(
        self,
        reason: str | None = None,
        customer_id: str | None = None,
        cancelled_by: str | None = None,
        idempotency_key=None,
    ):
        """Cancel the return.

        When ``customer_id`` is given the caller is the customer: it must own
        the return and may only cancel before pickup is scheduled.
        """
        current = ReturnStatus(self.status)
        if customer_id is not None:
            if str(customer_id) != str(self.customer_id):
                raise ConstraintViolation({"customer_id": ["Unauthorized to cancel this return"]})
            if current not in _CUSTOMER_CANCELLABLE:
                raise InvalidStateTransition({"status": [f"Cannot cancel return in {current.value} status"]})
        self._transition(
            ReturnStatus.CANCELLED,
            reason or ("Cancelled by customer" if customer_id is not None else "Return cancelled"),
            cancelled_by or customer_id,
            idempotency_key,
        )

    # -------------------------------------------------------------------
    # Pickup and transit
    # -------------------------------------------------------------------
    def schedule_pickup(
        self,
        scheduled_date: datetime,
        time_slot: str | None = None,
        agent_name: str | None = None,
        agent_phone: str | None = None,
        scheduled_by: str | None = None,
        idempotency_key=None,
    ) -> str:
        """Schedule collection of the item and return the pickup tracking id."""
        self._assert_can_transition(ReturnStatus.PICKUP_SCHEDULED)
        scheduled_date = as_utc(scheduled_date)
        tracking_id = generate_pickup_tracking_id()
        self.pickup = _copy_vo(
            PickupDetails,
            self.pickup,
            _PICKUP_FIELDS,
            scheduled_date=scheduled_date,
            preferred_time_slot=time_slot or (self.pickup.preferred_time_slot if self.pickup else None),
            agent_name=agent_name,
            agent_phone=agent_phone,
            tracking_id=tracking_id,
        )
        self._transition(
            ReturnStatus.PICKUP_SCHEDULED,
            f"Pickup scheduled for {scheduled_date.isoformat()}",
            scheduled_by,
            idempotency_key,
        )
        self.raise_(
            PickupScheduled(
                return_id=str(self.id),
                return_code=self.return_code,
                scheduled_date=scheduled_date,
                time_slot=self.pickup.preferred_time_slot,
                pickup_tracking_id=tracking_id,
            )
        )
        return tracking_id

    def complete_pickup(self, completed_by: str | None = None, idempotency_key=None):
        self._transition(ReturnStatus.PICKUP_COMPLETED, "Item picked up from customer", completed_by, idempotency_key)

    def mark_in_transit(
        self,
        updated_by: str | None = None,
        method: str | None = None,
        carrier: str | None = None,
        tracking_number: str | None = None,
        idempotency_key=None,
    ):
        self._assert_can_transition(ReturnStatus.IN_TRANSIT)
        self.shipping = ShippingDetails(
            method=method,
            carrier=carrier,
            tracking_number=tracking_number,
            shipped_date=utcnow(),
        )
        self._transition(ReturnStatus.IN_TRANSIT, "Item in transit to warehouse", updated_by, idempotency_key)

    def mark_received(self, received_by: str | None = None, idempotency_key=None):
        self._assert_can_transition(ReturnStatus.RECEIVED)
        current = self.shipping
        self.shipping = ShippingDetails(
            method=current.method if current else None,
            carrier=current.carrier if current else None,
            tracking_number=current.tracking_number if current else None,
            shipped_date=current.shipped_date if current else None,
            delivered_date=utcnow(),
        )
        self._transition(ReturnStatus.RECEIVED, "Item received at warehouse", received_by, idempotency_key)

    def start_quality_check(self, inspector: str | None = None, idempotency_key=None):
        self._transition(ReturnStatus.QUALITY_CHECK, "Quality inspection started", inspector, idempotency_key)

    # -------------------------------------------------------------------
    # Quality check gate
    # -------------------------------------------------------------------
    def submit_quality_check(
        self,
        passed: bool,
        inspector_id: str | None = None,
        inspector_name: str | None = None,
        condition: str | None = None,
        notes: str | None = None,
        defect_images: list[str] | None = None,
        eligible_for_restock: bool = False,
        idempotency_key=None,
    ) -> ReturnStatus:
        """Record the inspection outcome and route the return. Allowed exactly once."""
        current = ReturnStatus(self.status)
        if current != ReturnStatus.QUALITY_CHECK or self.quality_check is not None:
            raise InvalidStateTransition(
                {"status": [f"Quality check can only be submitted once, while in QUALITY_CHECK (current: {current.value})"]}
            )

        now = utcnow()
        result = QualityCheckResult(
            passed=bool(passed),
            inspector_id=inspector_id,
            inspector_name=inspector_name,
            inspected_at=now,
            condition=condition,
            notes=notes,
            defect_images=json.dumps(defect_images or []),
            eligible_for_restock=bool(eligible_for_restock),
        )
        self.quality_check = result
        outcome = quality_gate(result)
        comment = f"Quality check {'passed' if result.passed else 'failed'}"
        if notes:
            comment = f"{comment}: {notes}"
        self._transition(outcome, comment, inspector_id, idempotency_key)
        self.raise_(
            QualityCheckRecorded(
                return_id=str(self.id),
                return_code=self.return_code,
                product_id=str(self.product_id) if self.product_id else None,
                variant_id=str(self.variant_id) if self.variant_id else None,
                quantity=self.quantity,
                passed=result.passed,
                condition=condition,
                eligible_for_restock=result.eligible_for_restock,
                inspector_id=inspector_id,
                inspected_at=now,
            )
        )
        return outcome

    # -------------------------------------------------------------------
    # Refund sub-state
    # -------------------------------------------------------------------
    def _assert_refund_status(self, allowed: set[RefundStatus], action: str) -> RefundStatus:
        if ReturnStatus(self.status) != ReturnStatus.REFUND_INITIATED or self.refund is None:
            raise InvalidStateTransition({"refund": [f"Cannot {action}: no refund in progress (status {self.status})"]})
        current = RefundStatus(self.refund.status)
        if current not in allowed:
            raise InvalidStateTransition({"refund": [f"Cannot {action} a refund in {current.value}"]})
        return current

    def _replace_refund(self, **changes) -> None:
        self.refund = _copy_vo(RefundDetails, self.refund, _REFUND_FIELDS, **changes)
        self.revision = (self.revision or 0) + 1

    def initiate_refund(
        self,
        method: RefundMethod = RefundMethod.ORIGINAL_PAYMENT,
        amount: float | None = None,
        deductions: float | None = None,
        deduction_reason: str | None = None,
        initiated_by: str | None = None,
        idempotency_key=None,
    ) -> RefundDetails:
        """Create the refund for a RETURN-type request that passed inspection."""
        current = ReturnStatus(self.status)
        if current != ReturnStatus.QC_PASSED:
            raise InvalidStateTransition(
                {"status": [f"Refund can only be initiated after a passed quality check, not from {current.value}"]}
            )
        if self.return_type != ReturnType.RETURN.value:
            raise InvalidStateTransition(
                {"return_type": [f"{self.return_type} requests are settled by exchange shipment, not refund"]}
            )

        gross, refund_amount = calculate_refund(self.item_price, self.quantity, amount, deductions, deduction_reason)
        now = utcnow()
        self.refund = RefundDetails(
            refund_id=generate_refund_id(),
            method=method.value,
            status=RefundStatus.PENDING.value,
            gross_amount=gross,
            deductions=round(deductions or 0.0, 2),
            deduction_reason=deduction_reason,
            amount=refund_amount,
            attempts=0,
            initiated_at=now,
        )
        self.return_amount = refund_amount
        self._transition(
            ReturnStatus.REFUND_INITIATED,
            f"Refund of {refund_amount:.2f} initiated",
            initiated_by,
            idempotency_key,
        )
        self.raise_(
            RefundInitiated(
                return_id=str(self.id),
                return_code=self.return_code,
                refund_id=self.refund.refund_id,
                method=method.value,
                gross_amount=gross,
                deductions=self.refund.deductions,
                refund_amount=refund_amount,
                initiated_at=now,
            )
        )
        return self.refund

    def mark_refund_submitted(self, gateway_reference: str | None = None) -> None:
        """The refund gateway accepted the refund: PENDING → PROCESSING."""
        self._assert_refund_status({RefundStatus.PENDING}, "submit")
        now = utcnow()
        attempt = (self.refund.attempts or 0) + 1
        self._replace_refund(
            status=RefundStatus.PROCESSING.value,
            gateway_reference=gateway_reference,
            attempts=attempt,
            failure_reason=None,
        )
        self.updated_at = not_before(self.updated_at, now)
        self.raise_(
            RefundSubmitted(
                return_id=str(self.id),
                return_code=self.return_code,
                refund_id=self.refund.refund_id,
                gateway_reference=gateway_reference,
                attempt=attempt,
                submitted_at=now,
            )
        )

    def fail_refund(self, reason: str, count_attempt: bool = False) -> None:
        """Record a failed refund. The return stays in REFUND_INITIATED until re-driven."""
        if not (reason or "").strip():
            raise ValidationError({"reason": ["A failure reason is required"]})
        self._assert_refund_status({RefundStatus.PENDING, RefundStatus.PROCESSING}, "fail")
        now = utcnow()
        attempt = (self.refund.attempts or 0) + (1 if count_attempt else 0)
        self._replace_refund(
            status=RefundStatus.FAILED.value,
            failure_reason=reason,
            failed_at=now,
            attempts=attempt,
        )
        self.updated_at = not_before(self.updated_at, now)
        self.raise_(
            RefundFailed(
                return_id=str(self.id),
                return_code=self.return_code,
                refund_id=self.refund.refund_id,
                reason=reason,
                attempt=attempt,
                failed_at=now,
            )
        )

    def retry_refund(self) -> None:
        """Re-drive a failed refund: FAILED → PENDING, ready to resubmit."""
        self._assert_refund_status({RefundStatus.FAILED}, "retry")
        self._replace_refund(status=RefundStatus.PENDING.value)
        self.updated_at = not_before(self.updated_at)

    def complete_refund(self, transaction_id: str | None = None, idempotency_key=None) -> None:
        """Settle the refund and close the return."""
        self._assert_refund_status({RefundStatus.PENDING, RefundStatus.PROCESSING}, "complete")
        now = utcnow()
        self._replace_refund(
            status=RefundStatus.COMPLETED.value,
            transaction_id=transaction_id,
            completed_at=now,
        )
        self._transition(
            ReturnStatus.REFUND_COMPLETED,
            f"Refund completed. Transaction ID: {transaction_id}",
            SYSTEM_ACTOR,
            idempotency_key,
        )
        self._transition(ReturnStatus.COMPLETED, "Return process completed", SYSTEM_ACTOR)
        self.raise_(
            RefundCompleted(
                return_id=str(self.id),
                return_code=self.return_code,
                refund_id=self.refund.refund_id,
                refund_amount=self.refund.amount,
                transaction_id=transaction_id,
                completed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Exchange path
    # -------------------------------------------------------------------
    def ship_exchange(
        self,
        shipped_by: str | None = None,
        carrier: str | None = None,
        tracking_number: str | None = None,
        idempotency_key=None,
    ) -> None:
        """Ship the replacement item for an exchange, replacement or repair."""
        current = ReturnStatus(self.status)
        if current != ReturnStatus.QC_PASSED:
            raise InvalidStateTransition(
                {"status": [f"Exchange can only be shipped after a passed quality check, not from {current.value}"]}
            )
        if self.return_type == ReturnType.RETURN.value:
            raise InvalidStateTransition({"return_type": ["RETURN requests are settled by refund, not exchange"]})

        now = utcnow()
        self.exchange_shipping = ShippingDetails(carrier=carrier, tracking_number=tracking_number, shipped_date=now)
        self._transition(ReturnStatus.EXCHANGE_SHIPPED, "Exchange item shipped", shipped_by, idempotency_key)
        self.raise_(
            ExchangeShipped(
                return_id=str(self.id),
                return_code=self.return_code,
                return_type=self.return_type,
                carrier=carrier,
                tracking_number=tracking_number,
                shipped_at=now,
            )
        )

    def complete_exchange(self, completed_by: str | None = None, idempotency_key=None) -> None:
        self._transition(ReturnStatus.COMPLETED, "Exchange delivered, return completed", completed_by, idempotency_key)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def is_stuck(self, cutoff: datetime) -> bool:
        """Active and without a status change since ``cutoff``."""
        if not self.is_active:
            return False
        last = as_utc(self.updated_at or self.created_at)
        return last is not None and last < as_utc(cutoff)

    @property
    def has_failed_refund(self) -> bool:
        return self.refund is not None and self.refund.status == RefundStatus.FAILED.value
