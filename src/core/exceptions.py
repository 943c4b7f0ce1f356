"""Domain exception taxonomy and the handlers that render it."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.shared.schemas import ResponseEnvelope

logger = logging.getLogger(__name__)


class BusinessLogicError(Exception):
    """Raised for domain-specific validation errors."""

    status_code: int = 422
    retryable: bool = False

    def __init__(self, detail: str, status_code: int | None = None):
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail)


class ValidationError(BusinessLogicError):
    """Malformed input: time ordering, non-positive amounts."""


class ConflictError(BusinessLogicError):
    """The requested slot overlaps an existing scheduled appointment."""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(BusinessLogicError):
    """A referenced appointment, patient or professional is missing or inactive."""

    status_code = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(BusinessLogicError):
    status_code = status.HTTP_403_FORBIDDEN


class ConcurrencyTimeout(BusinessLogicError):
    """A balance row lock could not be acquired in time.

    Nothing was written; callers may retry the same request as-is.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


def register_exception_handlers(app: FastAPI) -> None:
    """Attach shared exception handlers to the FastAPI app."""

    @app.exception_handler(BusinessLogicError)
    async def _business_error_handler(request: Request, exc: BusinessLogicError):
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.detail)
        headers = {"Retry-After": "1"} if exc.retryable else None
        body = ResponseEnvelope(success=False, message=exc.detail, retryable=exc.retryable)
        return JSONResponse(
            body.model_dump(exclude={"data"}),
            status_code=exc.status_code,
            headers=headers,
        )
