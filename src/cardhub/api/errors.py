"""
cardhub.api.errors

Exception handlers for the API layer.

Responsibilities:
- Render `CardhubError` subclasses as `{"error", "message"}` bodies.
- Report request-validation failures as `invalid-argument` with a field hint.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cardhub.errors import CardhubError, Internal, InvalidArgument
from cardhub.observability.logging import get_logger

log = get_logger(__name__)


async def cardhub_error_handler(request: Request, exc: CardhubError) -> JSONResponse:
    if isinstance(exc, Internal):
        # Internal detail stays in the logs; the cause is chained on the exception.
        log.error("internal_error", message=exc.message, cause=repr(exc.__cause__))
    else:
        log.info("request_rejected", code=exc.code, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    fields = [".".join(str(p) for p in e.get("loc", ()) if p != "body") for e in errors]
    field = next((f for f in fields if f), None)
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return await cardhub_error_handler(request, InvalidArgument(message, field=field))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CardhubError, cardhub_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
