"""HTTP error mapping shared by all routers."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from shared.errors import ConcurrentModification, DependencyFailure, concurrent_modification

logger = structlog.get_logger(__name__)


def _messages(exc: Exception):
    return getattr(exc, "messages", None) or str(exc)


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": _messages(exc)})


async def _invalid(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": _messages(exc)})


async def _conflict(request: Request, exc: ConcurrentModification) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": _messages(exc)})


async def _version_conflict(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    # Raised by the unit of work at commit, after the handler returned
    return await _conflict(request, concurrent_modification(exc))


async def _dependency_failure(request: Request, exc: DependencyFailure) -> JSONResponse:
    logger.error(
        "Dependency failure",
        path=request.url.path,
        dependency=exc.dependency,
        error=str(exc),
    )
    return JSONResponse(status_code=500, content={"error": _messages(exc)})


def register_error_handlers(app: FastAPI) -> None:
    """Install Protean's handlers, then pin the status codes of our own taxonomy."""
    register_exception_handlers(app)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(ValidationError, _invalid)
    app.add_exception_handler(ConcurrentModification, _conflict)
    app.add_exception_handler(ExpectedVersionError, _version_conflict)
    app.add_exception_handler(DependencyFailure, _dependency_failure)
