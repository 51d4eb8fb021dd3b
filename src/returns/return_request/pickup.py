"""Pickup of the returned item — schedule and complete."""

import structlog
from protean import handle
from protean.fields import DateTime, Integer, String

from returns.domain import returns
from returns.return_request.changes import load_for_change
from returns.return_request.return_request import ReturnRequest

logger = structlog.get_logger(__name__)


@returns.command(part_of="ReturnRequest")
class SchedulePickup:
    return_code = String(required=True, max_length=50)
    scheduled_date = DateTime(required=True)
    time_slot = String(max_length=50)
    agent_name = String(max_length=150)
    agent_phone = String(max_length=20)
    scheduled_by = String(max_length=100)
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command(part_of="ReturnRequest")
class CompletePickup:
    return_code = String(required=True, max_length=50)
    completed_by = String(max_length=100)
    expected_revision = Integer(min_value=0)
    idempotency_key = String(max_length=255)


@returns.command_handler(part_of=ReturnRequest)
class PickupHandler:
    @handle(SchedulePickup)
    def schedule_pickup(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            tracking_id = return_request.schedule_pickup(
                scheduled_date=command.scheduled_date,
                time_slot=command.time_slot,
                agent_name=command.agent_name,
                agent_phone=command.agent_phone,
                scheduled_by=command.scheduled_by,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info(
                "Return pickup scheduled",
                return_code=return_request.return_code,
                pickup_tracking_id=tracking_id,
                scheduled_date=command.scheduled_date.isoformat(),
            )
        return return_request.return_code

    @handle(CompletePickup)
    def complete_pickup(self, command):
        repo, return_request, fresh = load_for_change(command)
        if fresh:
            return_request.complete_pickup(
                completed_by=command.completed_by,
                idempotency_key=command.idempotency_key,
            )
            repo.add(return_request)
            logger.info("Return picked up", return_code=return_request.return_code)
        return return_request.return_code
