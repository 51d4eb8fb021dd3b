"""Return domain events — immutable facts about return request state changes.

All events are past tense, versioned, and carry the return code so that
notification and inventory collaborators need not load the aggregate.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from returns.domain import returns


@returns.event(part_of="ReturnRequest")
class ReturnRequested:
    """A customer submitted a return request."""

    __version__ = 1

    return_id = Identifier(required=True)
    return_code = String(required=True)
    order_id = String(required=True)
    order_item_id = String(required=True)
    customer_id = String(required=True)
    vendor_id = String()
    return_type = String(required=True)
    reason = String(required=True)
    quantity = Integer(required=True)
    requested_at = DateTime(required=True)


@returns.event(part_of="ReturnRequest")
class ReturnStatusChanged:
    """A status history entry was appended."""

    __version__ = 1

    return_id = Identifier(required=True)
    return_code = String(required=True)
    previous_status = String()
    new_status = String(required=True)
    comment = String()
    updated_by = String()
    sequence = Integer(required=True)
    is_terminal = Boolean(default=False)
    occurred_at = DateTime(required=True)


@returns.event(part_of="ReturnRequest")
class PickupScheduled:
    """A pickup was scheduled to collect the returned item."""

    __version__ = 1

    return_id = Identifier(required=True)
    return_code = String(required=True)
    scheduled_date = DateTime(required=True)
    time_slot = String()
    pickup_tracking_id = String(required=True)


@returns.event(part_of="ReturnRequest")
class QualityCheckRecorded:
    """The returned item was inspected. Carries the restock flag for inventory."""

    __version__ = 1

    return_id = Identifier(required=True)
    return_code = String(required=True)
    product_id = String()
    variant_id = String()
    quantity = Integer()
    passed = Boolean(required=True)
    condition = String()
    eligible_for_restock = Boolean(default=False)
    inspector_id = String()
    inspected_at = DateTime(required=True)


@returns.event(part_of="ReturnRequest")
class RefundInitiated:
    """A refund was calculated and created for a return that passed inspection."""

    __version__ = 1

    return_id = Identifier(required=True)
    return_code = String(required=True)
    refund_id = String(required=True)
    method = String(required=True)
    gross_amount = Float(required=True)
    deductions = Float(default=0.0)
    refund_amount = Float(required=True)
    initiated_at = DateTime(required=True)


@returns.event(part_of="ReturnRequest")
class RefundSubmitted:
    """The refund gateway accepted the refund for processing."""

    __version__ = 1

    return_id = Identifier(required=True)
    return_code = String(required=True)
    refund_id = String(required=True)
    gateway_reference = String()
    attempt = Integer(required=True)
    submitted_at = DateTime(required=True)


@returns.event(part_of="ReturnRequest")
class RefundCompleted:
    """The refund settled; the return is complete."""

    __version__ = 1

    return_id = Identifier(required=True)
    return_code = String(required=True)
    refund_id = String(required=True)
    refund_amount = Float(required=True)
    transaction_id = String()
    completed_at = DateTime(required=True)


@returns.event(part_of="ReturnRequest")
class RefundFailed:
    """The refund failed and awaits a manual re-drive."""

    __version__ = 1

    return_id = Identifier(required=True)
    return_code = String(required=True)
    refund_id = String(required=True)
    reason = String(required=True)
    attempt = Integer(required=True)
    failed_at = DateTime(required=True)


@returns.event(part_of="ReturnRequest")
class ExchangeShipped:
    """A replacement item was shipped for an exchange, replacement or repair."""

    __version__ = 1

    return_id = Identifier(required=True)
    return_code = String(required=True)
    return_type = String(required=True)
    carrier = String()
    tracking_number = String()
    shipped_at = DateTime(required=True)
