"""Error taxonomy and the FastAPI handlers that render it as JSON."""
from __future__ import annotations
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ReelStoryError(Exception):
    status_code = 500
    error = "Server Error"

    def __init__(self, message: str, details: Any = None, error: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if error is not None:
            self.error = error

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class AuthenticationError(ReelStoryError):
    status_code = 401
    error = "Unauthorized"


class AdminRequiredError(ReelStoryError):
    status_code = 403
    error = "Forbidden"


class NotFoundError(ReelStoryError):
    status_code = 404
    error = "Not Found"


class ValidationError(ReelStoryError):
    status_code = 400
    error = "Bad Request"


class ConflictError(ReelStoryError):
    status_code = 409
    error = "Conflict"


class UpstreamError(ReelStoryError):
    """Database or storage failure; details stay in the server log."""

    status_code = 500
    error = "Upstream Error"


_HTTP_ERRORS = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method not allowed",
    413: "Payload Too Large",
}


async def _reelstory_error_handler(request: Request, exc: ReelStoryError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _http_error_handler(request: Request, exc: StarletteHTTPException):
    error = _HTTP_ERRORS.get(exc.status_code, "Error")
    message = exc.detail if isinstance(exc.detail, str) else error
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": error, "message": message},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        fields.append({"field": ".".join(loc), "message": err.get("msg", "")})
    missing = [f["field"] for f in fields if f["field"]]
    message = f"Invalid or missing fields: {', '.join(missing)}" if missing else "Invalid request body"
    return JSONResponse(
        status_code=400,
        content={"error": "Missing required fields", "message": message, "details": fields},
    )


async def _unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "Server Error", "message": "An unexpected error occurred"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReelStoryError, _reelstory_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
