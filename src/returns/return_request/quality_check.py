"""Quality inspection of returned items — the gate in front of refunds and exchanges."""

import json

import structlog
from protean import handle
from protean.fields import Boolean, Integer, String, Text

from returns.domain import returns
from returns.return_request.changes import load_for_change
from returns.return_request.return_request import ReturnRequest

logger = structlog.get_logger(__name__)


@returns.command(part_of="ReturnRequest")
class StartQualityCheck:
    return_code = String(required=True, max_length=50)
    inspector = String(max_length=100)
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command(part_of="ReturnRequest")
class SubmitQualityCheck:
    return_code = String(required=True, max_length=50)
    passed = Boolean(required=True)
    inspector_id = String(max_length=100)
    inspector_name = String(max_length=150)
    condition = String(max_length=100)
    notes = Text()
    defect_images = Text()  # JSON list of image URLs
    eligible_for_restock = Boolean(default=False)
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command_handler(part_of=ReturnRequest)
class QualityCheckHandler:
    @handle(StartQualityCheck)
    def start_quality_check(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            return_request.start_quality_check(
                inspector=command.inspector,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info("Quality check started", return_code=return_request.return_code)
        return return_request.return_code

    @handle(SubmitQualityCheck)
    def submit_quality_check(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            outcome = return_request.submit_quality_check(
                passed=command.passed,
                inspector_id=command.inspector_id,
                inspector_name=command.inspector_name,
                condition=command.condition,
                notes=command.notes,
                defect_images=json.loads(command.defect_images) if command.defect_images else None,
                eligible_for_restock=command.eligible_for_restock,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info(
                "Quality check recorded",
                return_code=return_request.return_code,
                outcome=outcome.value,
                inspector_id=command.inspector_id,
            )
        return return_request.return_code
