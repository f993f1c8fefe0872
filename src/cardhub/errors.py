"""
cardhub.errors

Error taxonomy shared by services, the API layer and the clients.

Responsibilities:
- Define one exception type per failure class with a stable wire code.
- Map exceptions to HTTP status codes and back.
"""

from __future__ import annotations

from typing import Any

from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)


class CardhubError(Exception):
    """
    Base class for errors surfaced to callers.

    `code` is part of the wire contract; `message` is safe to show to end users.
    """

    code: str = "internal"
    status_code: int = HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message}


class Unauthenticated(CardhubError):
    code = "unauthenticated"
    status_code = HTTP_401_UNAUTHORIZED


class PermissionDenied(CardhubError):
    code = "permission-denied"
    status_code = HTTP_403_FORBIDDEN


class InvalidArgument(CardhubError):
    code = "invalid-argument"
    status_code = HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.field is not None:
            body["field"] = self.field
        return body


class NotFound(CardhubError):
    code = "not-found"
    status_code = HTTP_404_NOT_FOUND


class Internal(CardhubError):
    code = "internal"
    status_code = HTTP_500_INTERNAL_SERVER_ERROR


_BY_CODE: dict[str, type[CardhubError]] = {
    cls.code: cls for cls in (Unauthenticated, PermissionDenied, InvalidArgument, NotFound, Internal)
}


def error_from_payload(status_code: int, payload: Any) -> CardhubError:
    """
    Rebuild a typed error from an API error body (client side).
    """

    if isinstance(payload, dict) and payload.get("error") in _BY_CODE:
        cls = _BY_CODE[payload["error"]]
        message = str(payload.get("message", ""))
        if cls is InvalidArgument:
            return InvalidArgument(message, field=payload.get("field"))
        return cls(message)

    for cls in _BY_CODE.values():
        if cls.status_code == status_code:
            return cls(f"HTTP {status_code}")
    return Internal(f"HTTP {status_code}")


# --- Module Notes -----------------------------------------------------------
# Retry policy by class: Unauthenticated/PermissionDenied/InvalidArgument are never
# retried automatically; Internal is safe to retry only for idempotent operations.
