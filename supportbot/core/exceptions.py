"""Custom exception hierarchy for the support assistant."""

from __future__ import annotations

from fastapi import status


class ApplicationError(Exception):
    """Base application error with HTTP semantics."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "application_error"

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.message = message


class NotFoundError(ApplicationError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ValidationError(ApplicationError):
    status_code = 422
    code = "validation_error"


class UnauthorizedError(ApplicationError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"


class ForbiddenError(ApplicationError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class InvalidStatusTransitionError(ApplicationError):
    """Raised when a document is moved along an edge its lifecycle does not allow."""

    status_code = status.HTTP_409_CONFLICT
    code = "invalid_status_transition"


class ExtractionError(ApplicationError):
    """Raised when text cannot be extracted from an uploaded file."""

    status_code = 422
    code = "extraction_failed"


class UnsupportedTypeError(ExtractionError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    code = "unsupported_type"


class ProviderError(ApplicationError):
    """Raised when the language-model provider fails to produce a response."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "provider_error"
