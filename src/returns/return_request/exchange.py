"""Exchange path — ship the replacement item and close the return."""

import structlog
from protean import handle
from protean.fields import Integer, String

from returns.domain import returns
from returns.return_request.changes import load_for_change
from returns.return_request.return_request import ReturnRequest

logger = structlog.get_logger(__name__)


@returns.command(part_of="ReturnRequest")
class ShipExchange:
    return_code = String(required=True, max_length=50)
    carrier = String(max_length=100)
    tracking_number = String(max_length=100)
    shipped_by = String(max_length=100)
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command(part_of="ReturnRequest")
class CompleteExchange:
    return_code = String(required=True, max_length=50)
    completed_by = String(max_length=100)
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command_handler(part_of=ReturnRequest)
class ExchangeHandler:
    @handle(ShipExchange)
    def ship_exchange(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            return_request.ship_exchange(
                shipped_by=command.shipped_by,
                carrier=command.carrier,
                tracking_number=command.tracking_number,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info(
                "Exchange shipped",
                return_code=return_request.return_code,
                return_type=return_request.return_type,
                tracking_number=command.tracking_number,
            )
        return return_request.return_code

    @handle(CompleteExchange)
    def complete_exchange(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            return_request.complete_exchange(
                completed_by=command.completed_by,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info("Exchange completed", return_code=return_request.return_code)
        return return_request.return_code
