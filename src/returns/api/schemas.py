"""Pydantic API schemas for the Returns domain.

These are the external API contracts — separate from domain commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class PickupAddressPayload(BaseModel):
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    landmark: str | None = None
    contact_phone: str | None = None
    preferred_date: datetime | None = None
    preferred_time_slot: str | None = None


class CreateReturnRequest(BaseModel):
    order_id: str
    order_item_id: str
    customer_id: str
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    product_id: str | None = None
    product_name: str | None = None
    product_image: str | None = None
    variant_id: str | None = None
    variant_info: str | None = None
    vendor_id: str | None = None
    vendor_name: str | None = None
    return_type: str = "RETURN"
    reason: str
    reason_details: str | None = None
    quantity: int = Field(default=1, ge=1)
    item_price: float | None = Field(default=None, ge=0)
    images: list[str] = []
    pickup_address: PickupAddressPayload | None = None
    customer_notes: str | None = None


class ReviewRequest(BaseModel):
    actor: str | None = None
    comment: str | None = None
    expected_revision: int | None = None
    idempotency_key: str | None = None


class CancelReturnRequest(BaseModel):
    customer_id: str | None = None
    cancelled_by: str | None = None
    reason: str | None = None
    expected_revision: int | None = None
    idempotency_key: str | None = None


class SchedulePickupRequest(BaseModel):
    scheduled_date: datetime
    time_slot: str | None = None
    agent_name: str | None = None
    agent_phone: str | None = None
    scheduled_by: str | None = None
    expected_revision: int | None = None
    idempotency_key: str | None = None


class TransitRequest(BaseModel):
    method: str | None = None
    carrier: str | None = None
    tracking_number: str | None = None
    actor: str | None = None
    expected_revision: int | None = None
    idempotency_key: str | None = None


class QualityCheckRequest(BaseModel):
    passed: bool
    inspector_id: str | None = None
    inspector_name: str | None = None
    condition: str | None = None
    notes: str | None = None
    defect_images: list[str] = []
    eligible_for_restock: bool = False
    expected_revision: int | None = None
    idempotency_key: str | None = None


class InitiateRefundRequest(BaseModel):
    method: str = "ORIGINAL_PAYMENT"
    amount: float | None = None
    deductions: float = 0.0
    deduction_reason: str | None = None
    initiated_by: str | None = None
    expected_revision: int | None = None
    idempotency_key: str | None = None


class CompleteRefundRequest(BaseModel):
    transaction_id: str | None = None
    expected_revision: int | None = None
    idempotency_key: str | None = None


class FailRefundRequest(BaseModel):
    reason: str
    expected_revision: int | None = None


class RetryRefundRequest(BaseModel):
    expected_revision: int | None = None


class ShipExchangeRequest(BaseModel):
    carrier: str | None = None
    tracking_number: str | None = None
    shipped_by: str | None = None
    expected_revision: int | None = None
    idempotency_key: str | None = None


class ConfigureRefundGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Refund declined by gateway"


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class StatusHistoryResponse(BaseModel):
    sequence: int
    status: str
    comment: str | None = None
    updated_by: str | None = None
    occurred_at: datetime


class PickupResponse(PickupAddressPayload):
    scheduled_date: datetime | None = None
    agent_name: str | None = None
    agent_phone: str | None = None
    tracking_id: str | None = None


class ShippingResponse(BaseModel):
    method: str | None = None
    carrier: str | None = None
    tracking_number: str | None = None
    shipped_date: datetime | None = None
    delivered_date: datetime | None = None


class QualityCheckResponse(BaseModel):
    passed: bool
    inspector_id: str | None = None
    inspector_name: str | None = None
    inspected_at: datetime | None = None
    condition: str | None = None
    notes: str | None = None
    defect_images: list[str] = []
    eligible_for_restock: bool = False


class RefundResponse(BaseModel):
    refund_id: str | None = None
    method: str | None = None
    status: str | None = None
    gross_amount: float | None = None
    deductions: float | None = None
    deduction_reason: str | None = None
    amount: float | None = None
    transaction_id: str | None = None
    gateway_reference: str | None = None
    attempts: int | None = None
    initiated_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    failure_reason: str | None = None


class ReturnResponse(BaseModel):
    return_id: str
    return_code: str
    order_id: str
    order_item_id: str
    customer_id: str
    customer_name: str | None = None
    vendor_id: str | None = None
    vendor_name: str | None = None
    product_id: str | None = None
    product_name: str | None = None
    variant_id: str | None = None
    return_type: str
    reason: str
    reason_details: str | None = None
    quantity: int
    item_price: float | None = None
    return_amount: float | None = None
    images: list[str] = []
    status: str
    is_active: bool
    revision: int
    pickup: PickupResponse | None = None
    shipping: ShippingResponse | None = None
    exchange_shipping: ShippingResponse | None = None
    quality_check: QualityCheckResponse | None = None
    refund: RefundResponse | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    resolved_at: datetime | None = None
    status_history: list[StatusHistoryResponse] = []


class ReturnListResponse(BaseModel):
    returns: list[ReturnResponse]


class ReturnSummaryResponse(BaseModel):
    vendor_id: str | None = None
    total: int
    pending: int
    approved: int
    completed: int
    rejected: int
    total_refunded: float
    pending_refund: float
    by_status: dict[str, int] = {}


class ReturnPolicyResponse(BaseModel):
    return_window_days: int
    eligible_reasons: list[str]
    non_returnable_categories: list[str]
    refund_processing_time: str
    pickup_info: str
    required_documents: list[str]


class RefundGatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
