"""Error taxonomy for the gallery API and the handlers that render it."""

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger()

GENERIC_SERVER_ERROR = "Server error, please try again later"


class GalleryError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = GENERIC_SERVER_ERROR

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(GalleryError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Missing required parameters"


class NameTooLong(InvalidInput):
    default_message = "Name must be at most 20 characters"


class InvalidImageFormat(InvalidInput):
    default_message = "Invalid image format"


class TooLong(InvalidInput):
    default_message = "Comment must be at most 200 characters"


class Unauthorized(GalleryError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class NotFound(GalleryError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Pig not found"


class RateLimited(GalleryError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, please try again later"


class UpstreamError(GalleryError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service failed"


class NotConfigured(GalleryError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Feature is not configured on this server"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def gallery_exception_handler(request: Request, exc: GalleryError):
    return error_response(exc.status_code, exc.message)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies are plain bad input for this API
    return error_response(status.HTTP_400_BAD_REQUEST, InvalidInput.default_message)


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("database_error", path=request.url.path, method=request.method)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_SERVER_ERROR)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_SERVER_ERROR)


def register_exception_handlers(app) -> None:
    app.add_exception_handler(GalleryError, gallery_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
