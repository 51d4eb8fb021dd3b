"""Vendor review of return requests — send for approval, approve, reject."""

import structlog
from protean import handle
from protean.fields import Integer, String, Text

from returns.domain import returns
from returns.return_request.changes import load_for_change
from returns.return_request.return_request import ReturnRequest

logger = structlog.get_logger(__name__)


@returns.command(part_of="ReturnRequest")
class SubmitReturnForApproval:
    return_code = String(required=True, max_length=50)
    updated_by = String(max_length=100)
    comment = Text()
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command(part_of="ReturnRequest")
class ApproveReturn:
    return_code = String(required=True, max_length=50)
    approved_by = String(max_length=100)
    comment = Text()
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command(part_of="ReturnRequest")
class RejectReturn:
    return_code = String(required=True, max_length=50)
    rejected_by = String(max_length=100)
    reason = Text()
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command_handler(part_of=ReturnRequest)
class ReturnReviewHandler:
    @handle(SubmitReturnForApproval)
    def submit_for_approval(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            return_request.submit_for_approval(
                updated_by=command.updated_by,
                comment=command.comment,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info("Return sent for approval", return_code=return_request.return_code)
        return return_request.return_code

    @handle(ApproveReturn)
    def approve(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            return_request.approve(
                approved_by=command.approved_by,
                comment=command.comment,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info("Return approved", return_code=return_request.return_code, approved_by=command.approved_by)
        return return_request.return_code

    @handle(RejectReturn)
    def reject(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            return_request.reject(
                rejected_by=command.rejected_by,
                reason=command.reason,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info("Return rejected", return_code=return_request.return_code, rejected_by=command.rejected_by)
        return return_request.return_code
