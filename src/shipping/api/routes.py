"""FastAPI routes for the Shipping domain.

Thin adapters that translate HTTP requests into domain commands and
shipments into response views. Tracking lookups are public.
"""

import json
from datetime import datetime, timedelta

from fastapi import APIRouter
from protean.utils.globals import current_domain

from shared.clock import as_utc, utcnow
from shared.settings import shipment_stale_hours
from shipping.api.schemas import (
    AddressPayload,
    AssignCourierRequest,
    CourierResponse,
    CreateReturnShipmentRequest,
    CreateShipmentRequest,
    PackagePayload,
    ShipmentListResponse,
    ShipmentReportResponse,
    ShipmentResponse,
    StatusCatalogueResponse,
    StatusInfo,
    TrackingEventResponse,
    UpdateShipmentStatusRequest,
    VendorStatsResponse,
)
from shipping.shipment.courier import AssignCourier
from shipping.shipment.creation import CreateShipment
from shipping.shipment.return_shipment import CreateReturnShipment
from shipping.shipment.shipment import Shipment, ShipmentStatus
from shipping.shipment.status import UpdateShipmentStatus

router = APIRouter(prefix="/shipping", tags=["shipping"])


def _vo_dict(value) -> dict | None:
    return value.to_dict() if value else None


def _to_response(shipment: Shipment) -> ShipmentResponse:
    status = ShipmentStatus(shipment.status)
    return ShipmentResponse(
        shipment_id=str(shipment.id),
        tracking_number=shipment.tracking_number,
        order_id=str(shipment.order_id),
        customer_id=str(shipment.customer_id),
        vendor_id=str(shipment.vendor_id) if shipment.vendor_id else None,
        status=status.value,
        status_display=status.display_name,
        status_description=shipment.status_description,
        is_active=shipment.is_active,
        revision=shipment.revision or 0,
        courier=CourierResponse(**_vo_dict(shipment.courier)) if shipment.courier else None,
        pickup_address=AddressPayload(**_vo_dict(shipment.pickup_address)) if shipment.pickup_address else None,
        delivery_address=AddressPayload(**_vo_dict(shipment.delivery_address)) if shipment.delivery_address else None,
        package=PackagePayload(**_vo_dict(shipment.package)) if shipment.package else None,
        shipping_mode=shipment.shipping_mode,
        payment_mode=shipment.payment_mode,
        shipping_cost=shipment.shipping_cost,
        created_at=shipment.created_at,
        picked_up_at=shipment.picked_up_at,
        dispatched_at=shipment.dispatched_at,
        estimated_delivery_date=shipment.estimated_delivery_date,
        actual_delivery_date=shipment.actual_delivery_date,
        last_updated_at=shipment.last_updated_at,
        delivered_to=shipment.delivered_to,
        delivery_proof_url=shipment.delivery_proof_url,
        is_return_shipment=bool(shipment.is_return_shipment),
        return_reason=shipment.return_reason,
        original_shipment_id=str(shipment.original_shipment_id) if shipment.original_shipment_id else None,
        tracking_history=[
            TrackingEventResponse(
                sequence=event.sequence,
                status=event.status,
                status_display=ShipmentStatus(event.status).display_name,
                location=event.location,
                description=event.description,
                remarks=event.remarks,
                actor=event.actor,
                occurred_at=event.occurred_at,
            )
            for event in shipment.history
        ],
    )


def _repo():
    return current_domain.repository_for(Shipment)


def _by_tracking_number(tracking_number: str) -> ShipmentResponse:
    return _to_response(_repo().find_by_tracking_number(tracking_number))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@router.post("/create", status_code=201, response_model=ShipmentResponse)
async def create_shipment(body: CreateShipmentRequest) -> ShipmentResponse:
    """Create the shipment for a confirmed order."""
    command = CreateShipment(
        order_id=body.order_id,
        customer_id=body.customer_id,
        vendor_id=body.vendor_id,
        pickup_address=body.pickup_address.model_dump_json(exclude_none=True) if body.pickup_address else None,
        delivery_address=body.delivery_address.model_dump_json(exclude_none=True) if body.delivery_address else None,
        package=body.package.model_dump_json(exclude_none=True) if body.package else None,
        notifications=json.dumps(
            {
                "sms": body.sms_notification,
                "email": body.email_notification,
                "whatsapp": body.whatsapp_notification,
            }
        ),
        shipping_mode=body.shipping_mode,
        payment_mode=body.payment_mode,
        shipping_cost=body.shipping_cost,
        estimated_delivery_date=body.estimated_delivery_date,
    )
    tracking_number = current_domain.process(command, asynchronous=False)
    return _by_tracking_number(tracking_number)


@router.put("/{tracking_number}/status", response_model=ShipmentResponse)
async def update_status(tracking_number: str, body: UpdateShipmentStatusRequest) -> ShipmentResponse:
    """Append a tracking event and move the shipment to a new status."""
    command = UpdateShipmentStatus(
        tracking_number=tracking_number,
        status=body.status,
        location=body.location,
        description=body.description,
        remarks=body.remarks,
        actor=body.actor,
        delivered_to=body.delivered_to,
        delivery_proof_url=body.delivery_proof_url,
        delivery_notes=body.delivery_notes,
        return_reason=body.return_reason,
        expected_revision=body.expected_revision,
        idempotency_key=body.idempotency_key,
    )
    current_domain.process(command, asynchronous=False)
    return _by_tracking_number(tracking_number)


@router.post("/{tracking_number}/assign-courier", response_model=ShipmentResponse)
async def assign_courier(tracking_number: str, body: AssignCourierRequest) -> ShipmentResponse:
    """Assign a courier partner to the shipment."""
    command = AssignCourier(
        tracking_number=tracking_number,
        courier_name=body.courier_name,
        courier_code=body.courier_code,
        courier_tracking_id=body.courier_tracking_id,
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return _by_tracking_number(tracking_number)


@router.post("/{tracking_number}/return", status_code=201, response_model=ShipmentResponse)
async def create_return_shipment(tracking_number: str, body: CreateReturnShipmentRequest) -> ShipmentResponse:
    """Create the reverse shipment for a delivered shipment."""
    command = CreateReturnShipment(original_tracking_number=tracking_number, reason=body.reason)
    return_tracking_number = current_domain.process(command, asynchronous=False)
    return _by_tracking_number(return_tracking_number)


# ---------------------------------------------------------------------------
# Public tracking
# ---------------------------------------------------------------------------
@router.get("/track/{tracking_number}", response_model=ShipmentResponse)
async def track_shipment(tracking_number: str) -> ShipmentResponse:
    return _by_tracking_number(tracking_number)


@router.get("/track/order/{order_id}", response_model=ShipmentResponse)
async def track_by_order(order_id: str) -> ShipmentResponse:
    return _to_response(_repo().find_by_order_id(order_id))


@router.get("/statuses", response_model=StatusCatalogueResponse)
async def list_statuses() -> StatusCatalogueResponse:
    """Display name and description of every shipment status."""
    return StatusCatalogueResponse(
        statuses=[
            StatusInfo(
                status=status.value,
                display_name=status.display_name,
                description=status.description,
                terminal=status.is_terminal,
            )
            for status in ShipmentStatus
        ]
    )


# ---------------------------------------------------------------------------
# Customer / vendor views
# ---------------------------------------------------------------------------
@router.get("/customer/{customer_id}", response_model=ShipmentListResponse)
async def customer_shipments(customer_id: str) -> ShipmentListResponse:
    return ShipmentListResponse(shipments=[_to_response(s) for s in _repo().for_customer(customer_id)])


@router.get("/customer/{customer_id}/active", response_model=ShipmentListResponse)
async def customer_active_shipments(customer_id: str) -> ShipmentListResponse:
    return ShipmentListResponse(shipments=[_to_response(s) for s in _repo().active_for_customer(customer_id)])


@router.get("/vendor/{vendor_id}", response_model=ShipmentListResponse)
async def vendor_shipments(vendor_id: str) -> ShipmentListResponse:
    return ShipmentListResponse(shipments=[_to_response(s) for s in _repo().for_vendor(vendor_id)])


@router.get("/vendor/{vendor_id}/stats", response_model=VendorStatsResponse)
async def vendor_stats(vendor_id: str) -> VendorStatsResponse:
    return VendorStatsResponse(vendor_id=vendor_id, **_repo().vendor_stats(vendor_id))


# ---------------------------------------------------------------------------
# Ops reports
# ---------------------------------------------------------------------------
@router.get("/reports/delayed", response_model=ShipmentReportResponse)
async def delayed_shipments(as_of: datetime | None = None) -> ShipmentReportResponse:
    """Active shipments past their estimated delivery date."""
    as_of = as_utc(as_of) or utcnow()
    shipments = _repo().delayed(as_of)
    return ShipmentReportResponse(
        as_of=as_of,
        count=len(shipments),
        shipments=[_to_response(s) for s in shipments],
    )


@router.get("/reports/stale", response_model=ShipmentReportResponse)
async def stale_shipments(hours: int | None = None, as_of: datetime | None = None) -> ShipmentReportResponse:
    """Active shipments with no tracking update within the freshness threshold."""
    as_of = as_utc(as_of) or utcnow()
    hours = hours or shipment_stale_hours()
    shipments = _repo().needing_update(as_of - timedelta(hours=hours))
    return ShipmentReportResponse(
        as_of=as_of,
        threshold_hours=hours,
        count=len(shipments),
        shipments=[_to_response(s) for s in shipments],
    )
