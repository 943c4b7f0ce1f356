"""Common Pydantic schemas."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ResponseEnvelope(BaseModel, Generic[T]):
    """Standard API envelope, also used for domain error bodies."""

    success: bool = True
    data: T | None = None
    message: str | None = None
    # Set on errors that leave nothing written and may be resent unchanged.
    retryable: bool = False
