# app/core/exceptions.py
"""Scheduling error taxonomy and its HTTP rendering"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    """Base class for every expected scheduling failure"""
    status_code = 400
    code = "SCHEDULING_ERROR"
    public_message = None  # when set, replaces the message in responses

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.public_message or self.message, "code": self.code}


class ValidationError(SchedulingError):
    """Malformed input; always user-correctable"""
    status_code = 400
    code = "VALIDATION_ERROR"


class InvalidRangeError(SchedulingError):
    status_code = 400
    code = "INVALID_RANGE"


class OutsideOpeningHoursError(SchedulingError):
    status_code = 422
    code = "OUTSIDE_OPENING_HOURS"


class SlotUnavailableError(SchedulingError):
    status_code = 409
    code = "SLOT_UNAVAILABLE"
    public_message = "This time is no longer available, please pick another."


class PastDateError(SchedulingError):
    status_code = 422
    code = "PAST_DATE"


class AppointmentNotFoundError(SchedulingError):
    status_code = 404
    code = "APPOINTMENT_NOT_FOUND"


class OverrideNotFoundError(SchedulingError):
    status_code = 404
    code = "OVERRIDE_NOT_FOUND"


class AuthorizationError(SchedulingError):
    status_code = 401
    code = "UNAUTHORIZED"


class StorageUnavailableError(SchedulingError):
    """Transient infrastructure failure, retryable by the caller"""
    status_code = 503
    code = "STORAGE_UNAVAILABLE"
    public_message = "Something went wrong, please try again."


class ExportError(SchedulingError):
    status_code = 500
    code = "EXPORT_FAILED"
    public_message = "Calendar feed could not be generated."


class FeedNotConfiguredError(SchedulingError):
    status_code = 503
    code = "FEED_NOT_CONFIGURED"
    public_message = "Calendar feed is not configured."


# Errors that signal an operational problem rather than a bad request
_ALERTING_ERRORS = (StorageUnavailableError, ExportError)


async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if isinstance(exc, _ALERTING_ERRORS):
        logger.error(
            f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
            extra={
                "correlation_id": getattr(request.state, "correlation_id", "unknown"),
                **exc.context,
            },
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and query strings use the same error envelope"""
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"error": message, "code": ValidationError.code})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SchedulingError, scheduling_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
