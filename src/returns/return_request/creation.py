"""Return request creation — command and handler.

A customer may hold at most one active return per order line; a second
request for the same line is rejected until the first one ends.
"""

import json

import structlog
from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from returns.domain import returns
from returns.return_request.return_request import ReturnReason, ReturnRequest, ReturnType
from shared.errors import ConstraintViolation

logger = structlog.get_logger(__name__)


@returns.command(part_of="ReturnRequest")
class RequestReturn:
    order_id = Identifier(required=True)
    order_item_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    customer_name = String(max_length=150)
    customer_email = String(max_length=254)
    customer_phone = String(max_length=20)
    product_id = Identifier()
    product_name = String(max_length=255)
    product_image = String(max_length=500)
    variant_id = Identifier()
    variant_info = String(max_length=255)
    vendor_id = Identifier()
    vendor_name = String(max_length=150)
    return_type = String(max_length=20, choices=ReturnType, default=ReturnType.RETURN.value)
    reason = String(required=True, max_length=50, choices=ReturnReason)
    reason_details = Text()
    quantity = Integer(min_value=1, default=1)
    item_price = Float(min_value=0.0)
    images = Text()  # JSON list of image URLs
    pickup_address = Text()  # JSON dict of PickupDetails fields
    customer_notes = Text()


@returns.command_handler(part_of=ReturnRequest)
class RequestReturnHandler:
    @handle(RequestReturn)
    def request_return(self, command):
        repo = current_domain.repository_for(ReturnRequest)
        existing = repo.active_for_item(command.order_id, command.order_item_id)
        if existing is not None:
            raise ConstraintViolation(
                {"order_item_id": [f"A return request already exists for this item: {existing.return_code}"]}
            )

        return_request = ReturnRequest.create(
            return_code=repo.next_return_code(),
            order_id=command.order_id,
            order_item_id=command.order_item_id,
            customer_id=command.customer_id,
            reason=command.reason,
            return_type=command.return_type,
            quantity=command.quantity or 1,
            item_price=command.item_price,
            reason_details=command.reason_details,
            images=json.loads(command.images) if command.images else None,
            pickup_address=json.loads(command.pickup_address) if command.pickup_address else None,
            customer_name=command.customer_name,
            customer_email=command.customer_email,
            customer_phone=command.customer_phone,
            product_id=command.product_id,
            product_name=command.product_name,
            product_image=command.product_image,
            variant_id=command.variant_id,
            variant_info=command.variant_info,
            vendor_id=command.vendor_id,
            vendor_name=command.vendor_name,
            customer_notes=command.customer_notes,
        )
        repo.add(return_request)

        logger.info(
            "Return request created",
            return_code=return_request.return_code,
            order_id=str(command.order_id),
            order_item_id=str(command.order_item_id),
            return_type=return_request.return_type,
        )
        return return_request.return_code
