"""Error taxonomy shared by the shipping and returns contexts.

Domain errors extend Protean's ``ValidationError`` so that the Protean
FastAPI exception handlers (and ``current_domain.process``) surface them as
client errors. ``ObjectNotFoundError`` from Protean is used as-is for
unknown tracking numbers, orders and return codes.
"""

from contextlib import contextmanager

from protean.exceptions import ExpectedVersionError, ValidationError


class InvalidStateTransition(ValidationError):
    """The requested transition is not allowed from the entity's current status."""


class ConstraintViolation(ValidationError):
    """A uniqueness or ownership rule was violated (duplicate active return, duplicate code, ...)."""


class ConcurrentModification(ConstraintViolation):
    """The caller acted on a stale revision of the aggregate and must reload and retry."""


class DependencyFailure(Exception):
    """A collaborator (persistence, gateway) was unavailable. Not retried by the core."""

    def __init__(self, messages, dependency: str | None = None):
        super().__init__(messages)
        self.messages = messages
        self.dependency = dependency


def assert_expected_revision(aggregate, expected_revision: int | None) -> None:
    """Optimistic concurrency check against the aggregate's ledger revision."""
    if expected_revision is None:
        return
    if (aggregate.revision or 0) != expected_revision:
        raise ConcurrentModification(
            {"revision": [f"Expected revision {expected_revision} but found {aggregate.revision}"]}
        )


def concurrent_modification(exc: ExpectedVersionError) -> ConcurrentModification:
    return ConcurrentModification({"revision": [f"Aggregate was modified concurrently, reload and retry: {exc}"]})


@contextmanager
def store_conflicts(*unique_fields: str):
    """Translate store rejections into domain errors.

    A stale write (Protean's version check) becomes ``ConcurrentModification``;
    a unique index rejection on one of ``unique_fields`` becomes
    ``ConstraintViolation``.
    """
    try:
        yield
    except ExpectedVersionError as exc:
        raise concurrent_modification(exc) from exc
    except ValidationError as exc:
        if isinstance(exc, ConstraintViolation) or not set(exc.messages) & set(unique_fields):
            raise
        raise ConstraintViolation(exc.messages) from exc
