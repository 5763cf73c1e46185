"""Mapping of domain errors to HTTP responses."""

from rest_framework import status
from rest_framework.response import Response

from admissions.domain.errors import (
    DomainError,
    ErrorCode,
    ErrorKind,
    InvalidRequestError,
    QrExpiredError,
    TicketAlreadyUsedError,
)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_body(code: str, message: str) -> dict:
    return {"code": code, "message": message}


def domain_error_response(error: DomainError) -> Response:
    body = error_body(error.code.value, error.message)
    if isinstance(error, TicketAlreadyUsedError):
        body["scanned_at"] = error.scanned_at.isoformat() if error.scanned_at else None
        body["scanned_by"] = error.scanned_by
    elif isinstance(error, QrExpiredError):
        body["expired_at"] = error.expired_at.isoformat()
    elif isinstance(error, InvalidRequestError):
        body["fields"] = error.fields
    return Response(body, status=STATUS_BY_KIND[error.kind])


def internal_error_response() -> Response:
    return Response(
        error_body(ErrorCode.INTERNAL_ERROR.value, "Internal server error"),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
