"""Pydantic API schemas for the Shipping domain.

These are the external API contracts — separate from domain commands.
The API layer translates between these schemas and domain commands.
"""

from datetime import datetime

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class AddressPayload(BaseModel):
    name: str | None = None
    phone: str | None = None
    email: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    country: str | None = None
    landmark: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class PackagePayload(BaseModel):
    weight: float | None = None
    length: float | None = None
    width: float | None = None
    height: float | None = None
    number_of_items: int | None = None
    package_type: str | None = None


class CreateShipmentRequest(BaseModel):
    order_id: str
    customer_id: str
    vendor_id: str | None = None
    pickup_address: AddressPayload | None = None
    delivery_address: AddressPayload | None = None
    package: PackagePayload | None = None
    shipping_mode: str | None = None
    payment_mode: str | None = None
    shipping_cost: float | None = None
    sms_notification: bool = True
    email_notification: bool = True
    whatsapp_notification: bool = False
    estimated_delivery_date: datetime | None = None


class UpdateShipmentStatusRequest(BaseModel):
    status: str
    location: str | None = None
    description: str | None = None
    remarks: str | None = None
    actor: str = "Admin"
    delivered_to: str | None = None
    delivery_proof_url: str | None = None
    delivery_notes: str | None = None
    return_reason: str | None = None
    expected_revision: int | None = None
    idempotency_key: str | None = None


class AssignCourierRequest(BaseModel):
    courier_name: str
    courier_code: str | None = None
    courier_tracking_id: str | None = None
    expected_revision: int | None = None


class CreateReturnShipmentRequest(BaseModel):
    reason: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class TrackingEventResponse(BaseModel):
    sequence: int
    status: str
    status_display: str
    location: str | None = None
    description: str | None = None
    remarks: str | None = None
    actor: str | None = None
    occurred_at: datetime


class CourierResponse(BaseModel):
    name: str | None = None
    code: str | None = None
    tracking_id: str | None = None


class ShipmentResponse(BaseModel):
    shipment_id: str
    tracking_number: str
    order_id: str
    customer_id: str
    vendor_id: str | None = None
    status: str
    status_display: str
    status_description: str | None = None
    is_active: bool
    revision: int
    courier: CourierResponse | None = None
    pickup_address: AddressPayload | None = None
    delivery_address: AddressPayload | None = None
    package: PackagePayload | None = None
    shipping_mode: str | None = None
    payment_mode: str | None = None
    shipping_cost: float | None = None
    created_at: datetime | None = None
    picked_up_at: datetime | None = None
    dispatched_at: datetime | None = None
    estimated_delivery_date: datetime | None = None
    actual_delivery_date: datetime | None = None
    last_updated_at: datetime | None = None
    delivered_to: str | None = None
    delivery_proof_url: str | None = None
    is_return_shipment: bool = False
    return_reason: str | None = None
    original_shipment_id: str | None = None
    tracking_history: list[TrackingEventResponse] = []


class ShipmentListResponse(BaseModel):
    shipments: list[ShipmentResponse]


class VendorStatsResponse(BaseModel):
    vendor_id: str
    pending: int
    in_transit: int
    out_for_delivery: int
    delivered: int


class StatusInfo(BaseModel):
    status: str
    display_name: str
    description: str
    terminal: bool


class StatusCatalogueResponse(BaseModel):
    statuses: list[StatusInfo]


class ShipmentReportResponse(BaseModel):
    as_of: datetime
    threshold_hours: int | None = None
    count: int
    shipments: list[ShipmentResponse]
