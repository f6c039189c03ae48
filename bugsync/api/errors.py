"""Error responses for the bug service.

Every error leaves the service as ``{"message": ..., "errors": {...}}`` so the
client gateway can map it onto its error taxonomy.
"""

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.errors import FieldError

logger = logging.getLogger(__name__)


class BugRequestError(Exception):
    """A request the service refuses, rendered with its status code."""

    def __init__(self, status_code: int, message: str, errors: dict[str, FieldError] | None = None):
        self.status_code = status_code
        self.message = message
        self.errors = errors or {}
        super().__init__(message)

    def to_body(self) -> dict:
        return {
            "message": self.message,
            "errors": {name: err.model_dump() for name, err in self.errors.items()},
        }


async def bug_request_error_handler(request: Request, exc: BugRequestError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are client errors like any other validation failure."""
    errors = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "body"
        errors[field] = FieldError(code="INVALID", message=error.get("msg", "Invalid value"))
    details = ", ".join(f"{name}: {err.message}" for name, err in errors.items())
    return JSONResponse(
        status_code=400,
        content=BugRequestError(400, f"Invalid request: {details}", errors).to_body(),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    logger.error(traceback.format_exc())
    return JSONResponse(status_code=500, content={"message": "Internal Server Error", "errors": {}})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BugRequestError, bug_request_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
