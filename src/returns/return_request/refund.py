"""Refunds for returns that passed inspection.

Initiating a refund calculates it on the aggregate and hands it to the
refund gateway in the same command. Acceptance moves the refund to
PROCESSING; a decline records FAILED and leaves the return in
REFUND_INITIATED for a manual re-drive. The gateway is never called again
automatically.
"""

import structlog
from protean import handle
from protean.fields import Float, Integer, String, Text

from returns.domain import returns
from returns.refund_gateway import get_refund_gateway
from returns.return_request.changes import load_for_change
from returns.return_request.return_request import RefundMethod, ReturnRequest
from shared.errors import DependencyFailure

logger = structlog.get_logger(__name__)


@returns.command(part_of="ReturnRequest")
class InitiateRefund:
    return_code = String(required=True, max_length=50)
    method = String(max_length=50, choices=RefundMethod, default=RefundMethod.ORIGINAL_PAYMENT.value)
    amount = Float(min_value=0.0)
    deductions = Float(default=0.0)
    deduction_reason = String(max_length=500)
    initiated_by = String(max_length=100)
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command(part_of="ReturnRequest")
class CompleteRefund:
    return_code = String(required=True, max_length=50)
    transaction_id = String(max_length=100)
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command(part_of="ReturnRequest")
class FailRefund:
    """Gateway reported that a refund it accepted did not settle."""

    return_code = String(required=True, max_length=50)
    reason = Text(required=True)
    expected_revision = Integer(min_value=0)


@returns.command(part_of="ReturnRequest")
class RetryRefund:
    return_code = String(required=True, max_length=50)
    expected_revision = Integer(min_value=0)


def submit_to_gateway(return_request: ReturnRequest) -> None:
    """Hand the pending refund to the gateway and record the outcome."""
    refund = return_request.refund
    attempt = (refund.attempts or 0) + 1
    try:
        result = get_refund_gateway().submit_refund(
            refund_id=refund.refund_id,
            order_id=str(return_request.order_id),
            amount=refund.amount,
            method=refund.method,
            idempotency_key=f"{refund.refund_id}-{attempt}",
        )
    except Exception as exc:
        raise DependencyFailure(
            {"refund": [f"Refund gateway unavailable: {exc}"]},
            dependency="refund_gateway",
        ) from exc

    if result.accepted:
        return_request.mark_refund_submitted(result.gateway_reference)
        logger.info(
            "Refund submitted to gateway",
            return_code=return_request.return_code,
            refund_id=refund.refund_id,
            gateway_reference=result.gateway_reference,
            attempt=attempt,
        )
    else:
        return_request.fail_refund(result.failure_reason or "Refund declined by gateway", count_attempt=True)
        logger.warning(
            "Refund declined by gateway",
            return_code=return_request.return_code,
            refund_id=refund.refund_id,
            reason=result.failure_reason,
            attempt=attempt,
        )


@returns.command_handler(part_of=ReturnRequest)
class RefundHandler:
    @handle(InitiateRefund)
    def initiate_refund(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            refund = return_request.initiate_refund(
                method=RefundMethod(command.method or RefundMethod.ORIGINAL_PAYMENT.value),
                amount=command.amount,
                deductions=command.deductions,
                deduction_reason=command.deduction_reason,
                initiated_by=command.initiated_by,
                idempotency_key=command.idempotency_key,
            )
            logger.info(
                "Refund initiated",
                return_code=return_request.return_code,
                refund_id=refund.refund_id,
                gross_amount=refund.gross_amount,
                deductions=refund.deductions,
                refund_amount=refund.amount,
            )
            submit_to_gateway(return_request)
            repo.add(return_request)
        return return_request.return_code

    @handle(CompleteRefund)
    def complete_refund(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            return_request.complete_refund(
                transaction_id=command.transaction_id,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info(
                "Refund completed",
                return_code=return_request.return_code,
                refund_id=return_request.refund.refund_id,
                transaction_id=command.transaction_id,
            )
        return return_request.return_code

    @handle(FailRefund)
    def fail_refund(self, command):
        repo, return_request, _ = load_for_change(command)
        return_request.fail_refund(command.reason)
        repo.add(return_request)
        logger.warning(
            "Refund failed",
            return_code=return_request.return_code,
            refund_id=return_request.refund.refund_id,
            reason=command.reason,
        )
        return return_request.return_code

    @handle(RetryRefund)
    def retry_refund(self, command):
        repo, return_request, _ = load_for_change(command)
        return_request.retry_refund()
        submit_to_gateway(return_request)
        repo.add(return_request)
        logger.info(
            "Refund re-driven",
            return_code=return_request.return_code,
            refund_id=return_request.refund.refund_id,
            refund_status=return_request.refund.status,
        )
        return return_request.return_code
