"""Shared prelude for return request command handlers."""

import structlog
from protean.utils.globals import current_domain

from returns.return_request.return_request import ReturnRequest
from shared.errors import assert_expected_revision

logger = structlog.get_logger(__name__)


def load_for_change(command):
    """Load the return named by ``command`` and check it may be changed.

    Returns ``(repo, return_request, fresh)``. ``fresh`` is False when the
    command's idempotency key is already in the status history, in which
    case the handler must not change anything.
    """
    repo = current_domain.repository_for(ReturnRequest)
    return_request = repo.find_by_code(command.return_code)

    idempotency_key = getattr(command, "idempotency_key", None)
    if return_request.has_idempotency_key(idempotency_key):
        logger.info(
            "Duplicate return command ignored",
            return_code=return_request.return_code,
            command=type(command).__name__,
            idempotency_key=idempotency_key,
        )
        return repo, return_request, False

    assert_expected_revision(return_request, getattr(command, "expected_revision", None))
    return repo, return_request, True
