"""Movement of the returned item back to the warehouse."""

import structlog
from protean import handle
from protean.fields import Integer, String

from returns.domain import returns
from returns.return_request.changes import load_for_change
from returns.return_request.return_request import ReturnRequest

logger = structlog.get_logger(__name__)


@returns.command(part_of="ReturnRequest")
class MarkReturnInTransit:
    return_code = String(required=True, max_length=50)
    method = String(max_length=50)
    carrier = String(max_length=100)
    tracking_number = String(max_length=100)
    updated_by = String(max_length=100)
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command(part_of="ReturnRequest")
class ReceiveReturn:
    return_code = String(required=True, max_length=50)
    received_by = String(max_length=100)
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command_handler(part_of=ReturnRequest)
class ReturnTransitHandler:
    @handle(MarkReturnInTransit)
    def mark_in_transit(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            return_request.mark_in_transit(
                updated_by=command.updated_by,
                method=command.method,
                carrier=command.carrier,
                tracking_number=command.tracking_number,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info("Return in transit", return_code=return_request.return_code, carrier=command.carrier)
        return return_request.return_code

    @handle(ReceiveReturn)
    def receive(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            return_request.mark_received(
                received_by=command.received_by,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info("Return received at warehouse", return_code=return_request.return_code)
        return return_request.return_code
