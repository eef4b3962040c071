import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class NotepError(Exception):
    """Base class for errors reported back to the caller of a single request."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(NotepError):
    """Malformed or missing required field."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request format"


class Conflict(NotepError):
    """Uniqueness violation on registration."""
    status_code = status.HTTP_409_CONFLICT
    default_message = "Email already exists"


class Unauthorized(NotepError):
    """Unknown email or wrong password; the two are never told apart."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class NotFoundOrForbidden(NotepError):
    """Note does not exist or belongs to another user; the two are never told apart."""
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Note not found or you don't have permission"


class StorageFailure(NotepError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Storage failure"


async def notep_error_handler(request: Request, exc: NotepError):
    if isinstance(exc, StorageFailure):
        logger.error(f"Storage failure on {request.method} {request.url.path}: {exc.__cause__!r}")
    else:
        logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Log field errors only; request bodies may carry passwords
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()!r}")
    return JSONResponse(
        status_code=InvalidInput.status_code,
        content={"error": InvalidInput.default_message, "detail": _jsonable_errors(exc)},
    )


def _jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers translating domain and validation errors into JSON responses."""
    app.add_exception_handler(NotepError, notep_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
