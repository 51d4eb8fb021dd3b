"""FastAPI routes for the Returns domain.

Static paths are declared before ``/{return_code}`` so they are matched
first.
"""

import json
import os

from fastapi import APIRouter, HTTPException
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from returns.api.schemas import (
    CancelReturnRequest,
    CompleteRefundRequest,
    ConfigureRefundGatewayRequest,
    CreateReturnRequest,
    FailRefundRequest,
    InitiateRefundRequest,
    PickupResponse,
    QualityCheckRequest,
    QualityCheckResponse,
    RefundGatewayConfigResponse,
    RefundResponse,
    RetryRefundRequest,
    ReturnListResponse,
    ReturnPolicyResponse,
    ReturnResponse,
    ReturnSummaryResponse,
    ReviewRequest,
    SchedulePickupRequest,
    ShipExchangeRequest,
    ShippingResponse,
    StatusHistoryResponse,
    TransitRequest,
)
from returns.refund_gateway import get_refund_gateway
from returns.refund_gateway.fake_adapter import FakeRefundGateway
from returns.return_request.cancellation import CancelReturn
from returns.return_request.creation import RequestReturn
from returns.return_request.exchange import CompleteExchange, ShipExchange
from returns.return_request.pickup import CompletePickup, SchedulePickup
from returns.return_request.policy import return_policy
from returns.return_request.quality_check import StartQualityCheck, SubmitQualityCheck
from returns.return_request.refund import CompleteRefund, FailRefund, InitiateRefund, RetryRefund
from returns.return_request.return_request import ReturnRequest, ReturnStatus
from returns.return_request.review import ApproveReturn, RejectReturn, SubmitReturnForApproval
from returns.return_request.transit import MarkReturnInTransit, ReceiveReturn

router = APIRouter(prefix="/returns", tags=["returns"])


def _view(model_cls, value):
    if value is None:
        return None
    return model_cls(**{name: getattr(value, name, None) for name in model_cls.model_fields})


def _to_response(return_request: ReturnRequest) -> ReturnResponse:
    quality_check = None
    if return_request.quality_check:
        qc = return_request.quality_check
        quality_check = QualityCheckResponse(
            passed=bool(qc.passed),
            inspector_id=qc.inspector_id,
            inspector_name=qc.inspector_name,
            inspected_at=qc.inspected_at,
            condition=qc.condition,
            notes=qc.notes,
            defect_images=json.loads(qc.defect_images) if qc.defect_images else [],
            eligible_for_restock=bool(qc.eligible_for_restock),
        )

    return ReturnResponse(
        return_id=str(return_request.id),
        return_code=return_request.return_code,
        order_id=str(return_request.order_id),
        order_item_id=str(return_request.order_item_id),
        customer_id=str(return_request.customer_id),
        customer_name=return_request.customer_name,
        vendor_id=str(return_request.vendor_id) if return_request.vendor_id else None,
        vendor_name=return_request.vendor_name,
        product_id=str(return_request.product_id) if return_request.product_id else None,
        product_name=return_request.product_name,
        variant_id=str(return_request.variant_id) if return_request.variant_id else None,
        return_type=return_request.return_type,
        reason=return_request.reason,
        reason_details=return_request.reason_details,
        quantity=return_request.quantity,
        item_price=return_request.item_price,
        return_amount=return_request.return_amount,
        images=return_request.image_list,
        status=return_request.status,
        is_active=return_request.is_active,
        revision=return_request.revision or 0,
        pickup=_view(PickupResponse, return_request.pickup),
        shipping=_view(ShippingResponse, return_request.shipping),
        exchange_shipping=_view(ShippingResponse, return_request.exchange_shipping),
        quality_check=quality_check,
        refund=_view(RefundResponse, return_request.refund),
        created_at=return_request.created_at,
        updated_at=return_request.updated_at,
        resolved_at=return_request.resolved_at,
        status_history=[
            StatusHistoryResponse(
                sequence=entry.sequence,
                status=entry.status,
                comment=entry.comment,
                updated_by=entry.updated_by,
                occurred_at=entry.occurred_at,
            )
            for entry in return_request.history
        ],
    )


def _repo():
    return current_domain.repository_for(ReturnRequest)


def _by_code(return_code: str) -> ReturnResponse:
    return _to_response(_repo().find_by_code(return_code))


def _list(return_requests) -> ReturnListResponse:
    return ReturnListResponse(returns=[_to_response(r) for r in return_requests])


def _process(command) -> ReturnResponse:
    return _by_code(current_domain.process(command, asynchronous=False))


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------
@router.post("", status_code=201, response_model=ReturnResponse)
async def create_return(body: CreateReturnRequest) -> ReturnResponse:
    """Submit a return request for one order line."""
    command = RequestReturn(
        order_id=body.order_id,
        order_item_id=body.order_item_id,
        customer_id=body.customer_id,
        customer_name=body.customer_name,
        customer_email=body.customer_email,
        customer_phone=body.customer_phone,
        product_id=body.product_id,
        product_name=body.product_name,
        product_image=body.product_image,
        variant_id=body.variant_id,
        variant_info=body.variant_info,
        vendor_id=body.vendor_id,
        vendor_name=body.vendor_name,
        return_type=body.return_type,
        reason=body.reason,
        reason_details=body.reason_details,
        quantity=body.quantity,
        item_price=body.item_price,
        images=json.dumps(body.images),
        pickup_address=body.pickup_address.model_dump_json(exclude_none=True) if body.pickup_address else None,
        customer_notes=body.customer_notes,
    )
    return _process(command)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
@router.get("/policy", response_model=ReturnPolicyResponse)
async def get_policy() -> ReturnPolicyResponse:
    return ReturnPolicyResponse(**return_policy())


@router.get("/summary", response_model=ReturnSummaryResponse)
async def get_summary(vendor_id: str | None = None) -> ReturnSummaryResponse:
    return ReturnSummaryResponse(vendor_id=vendor_id, **_repo().summary(vendor_id))


@router.get("/refunds/failed", response_model=ReturnListResponse)
async def failed_refunds() -> ReturnListResponse:
    """Returns whose refund failed and waits for a manual re-drive."""
    return _list(_repo().failed_refunds())


@router.get("/customer/{customer_id}", response_model=ReturnListResponse)
async def customer_returns(customer_id: str) -> ReturnListResponse:
    return _list(_repo().for_customer(customer_id))


@router.get("/vendor/{vendor_id}", response_model=ReturnListResponse)
async def vendor_returns(vendor_id: str) -> ReturnListResponse:
    return _list(_repo().for_vendor(vendor_id))


@router.get("/vendor/{vendor_id}/pending", response_model=ReturnListResponse)
async def vendor_pending_returns(vendor_id: str) -> ReturnListResponse:
    return _list(_repo().pending_for_vendor(vendor_id))


@router.get("/status/{status}", response_model=ReturnListResponse)
async def returns_by_status(status: str) -> ReturnListResponse:
    try:
        wanted = ReturnStatus(status.upper())
    except ValueError as exc:
        raise ValidationError({"status": [f"Unknown return status: {status}"]}) from exc
    return _list(_repo().with_status(wanted))


@router.get("/order/{order_id}", response_model=ReturnListResponse)
async def order_returns(order_id: str) -> ReturnListResponse:
    return _list(_repo().for_order(order_id))


@router.post("/refund-gateway/configure", response_model=RefundGatewayConfigResponse)
async def configure_refund_gateway(body: ConfigureRefundGatewayRequest) -> RefundGatewayConfigResponse:
    """Toggle the fake refund gateway (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Refund gateway configuration not available in production")

    gateway = get_refund_gateway()
    if not isinstance(gateway, FakeRefundGateway):
        raise HTTPException(status_code=400, detail="Refund gateway configuration only available for FakeRefundGateway")

    gateway.configure(should_succeed=body.should_succeed, failure_reason=body.failure_reason)
    return RefundGatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )


@router.get("/{return_code}", response_model=ReturnResponse)
async def get_return(return_code: str) -> ReturnResponse:
    return _by_code(return_code)


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------
@router.post("/{return_code}/submit-for-approval", response_model=ReturnResponse)
async def submit_for_approval(return_code: str, body: ReviewRequest) -> ReturnResponse:
    return _process(
        SubmitReturnForApproval(
            return_code=return_code,
            updated_by=body.actor,
            comment=body.comment,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


@router.post("/{return_code}/approve", response_model=ReturnResponse)
async def approve_return(return_code: str, body: ReviewRequest) -> ReturnResponse:
    return _process(
        ApproveReturn(
            return_code=return_code,
            approved_by=body.actor,
            comment=body.comment,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


@router.post("/{return_code}/reject", response_model=ReturnResponse)
async def reject_return(return_code: str, body: ReviewRequest) -> ReturnResponse:
    return _process(
        RejectReturn(
            return_code=return_code,
            rejected_by=body.actor,
            reason=body.comment,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


@router.post("/{return_code}/cancel", response_model=ReturnResponse)
async def cancel_return(return_code: str, body: CancelReturnRequest) -> ReturnResponse:
    return _process(
        CancelReturn(
            return_code=return_code,
            customer_id=body.customer_id,
            cancelled_by=body.cancelled_by,
            reason=body.reason,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


# ---------------------------------------------------------------------------
# Logistics
# ---------------------------------------------------------------------------
@router.post("/{return_code}/schedule-pickup", response_model=ReturnResponse)
async def schedule_pickup(return_code: str, body: SchedulePickupRequest) -> ReturnResponse:
    return _process(
        SchedulePickup(
            return_code=return_code,
            scheduled_date=body.scheduled_date,
            time_slot=body.time_slot,
            agent_name=body.agent_name,
            agent_phone=body.agent_phone,
            scheduled_by=body.scheduled_by,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


@router.post("/{return_code}/complete-pickup", response_model=ReturnResponse)
async def complete_pickup(return_code: str, body: TransitRequest) -> ReturnResponse:
    return _process(
        CompletePickup(
            return_code=return_code,
            completed_by=body.actor,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


@router.post("/{return_code}/in-transit", response_model=ReturnResponse)
async def mark_in_transit(return_code: str, body: TransitRequest) -> ReturnResponse:
    return _process(
        MarkReturnInTransit(
            return_code=return_code,
            method=body.method,
            carrier=body.carrier,
            tracking_number=body.tracking_number,
            updated_by=body.actor,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


@router.post("/{return_code}/receive", response_model=ReturnResponse)
async def receive_return(return_code: str, body: TransitRequest) -> ReturnResponse:
    return _process(
        ReceiveReturn(
            return_code=return_code,
            received_by=body.actor,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------
@router.post("/{return_code}/start-quality-check", response_model=ReturnResponse)
async def start_quality_check(return_code: str, body: TransitRequest) -> ReturnResponse:
    return _process(
        StartQualityCheck(
            return_code=return_code,
            inspector=body.actor,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


@router.post("/{return_code}/quality-check", response_model=ReturnResponse)
async def submit_quality_check(return_code: str, body: QualityCheckRequest) -> ReturnResponse:
    return _process(
        SubmitQualityCheck(
            return_code=return_code,
            passed=body.passed,
            inspector_id=body.inspector_id,
            inspector_name=body.inspector_name,
            condition=body.condition,
            notes=body.notes,
            defect_images=json.dumps(body.defect_images),
            eligible_for_restock=body.eligible_for_restock,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


# ---------------------------------------------------------------------------
# Refunds
# ---------------------------------------------------------------------------
@router.post("/{return_code}/refund", response_model=ReturnResponse)
async def initiate_refund(return_code: str, body: InitiateRefundRequest) -> ReturnResponse:
    """Calculate the refund and submit it to the refund gateway."""
    return _process(
        InitiateRefund(
            return_code=return_code,
            method=body.method,
            amount=body.amount,
            deductions=body.deductions,
            deduction_reason=body.deduction_reason,
            initiated_by=body.initiated_by,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


@router.post("/{return_code}/refund/complete", response_model=ReturnResponse)
async def complete_refund(return_code: str, body: CompleteRefundRequest) -> ReturnResponse:
    return _process(
        CompleteRefund(
            return_code=return_code,
            transaction_id=body.transaction_id,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


@router.post("/{return_code}/refund/fail", response_model=ReturnResponse)
async def fail_refund(return_code: str, body: FailRefundRequest) -> ReturnResponse:
    return _process(
        FailRefund(return_code=return_code, reason=body.reason, expected_revision=body.expected_revision)
    )


@router.post("/{return_code}/refund/retry", response_model=ReturnResponse)
async def retry_refund(return_code: str, body: RetryRefundRequest) -> ReturnResponse:
    """Re-drive a failed refund through the gateway."""
    return _process(RetryRefund(return_code=return_code, expected_revision=body.expected_revision))


# ---------------------------------------------------------------------------
# Exchanges
# ---------------------------------------------------------------------------
@router.post("/{return_code}/exchange/ship", response_model=ReturnResponse)
async def ship_exchange(return_code: str, body: ShipExchangeRequest) -> ReturnResponse:
    return _process(
        ShipExchange(
            return_code=return_code,
            carrier=body.carrier,
            tracking_number=body.tracking_number,
            shipped_by=body.shipped_by,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )


@router.post("/{return_code}/exchange/complete", response_model=ReturnResponse)
async def complete_exchange(return_code: str, body: TransitRequest) -> ReturnResponse:
    return _process(
        CompleteExchange(
            return_code=return_code,
            completed_by=body.actor,
            expected_revision=body.expected_revision,
            idempotency_key=body.idempotency_key,
        )
    )
