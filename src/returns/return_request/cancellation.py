"""Return cancellation — by the owning customer or by an admin."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text

from returns.domain import returns
from returns.return_request.changes import load_for_change
from returns.return_request.return_request import ReturnRequest

logger = structlog.get_logger(__name__)


@returns.command(part_of="ReturnRequest")
class CancelReturn:
    """Cancel a return. ``customer_id`` marks a customer-initiated cancel."""

    return_code = String(required=True, max_length=50)
    customer_id = Identifier()
    cancelled_by = String(max_length=100)
    reason = Text()
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command_handler(part_of=ReturnRequest)
class CancelReturnHandler:
    @handle(CancelReturn)
    def cancel_return(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            return_request.cancel(
                reason=command.reason,
                customer_id=command.customer_id,
                cancelled_by=command.cancelled_by,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info(
                "Return cancelled",
                return_code=return_request.return_code,
                by_customer=command.customer_id is not None,
            )
        return return_request.return_code
