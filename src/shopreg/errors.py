"""Service error taxonomy and its mapping onto HTTP responses."""

import logging
import re

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shopreg.packet_log import log_response_packet

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"[0-9]+")


class ServiceError(Exception):
    status_code = 500
    default_reason = "Internal error"

    def __init__(self, fail_reason: str | None = None) -> None:
        self.fail_reason = fail_reason or self.default_reason
        super().__init__(self.fail_reason)


class ValidationError(ServiceError):
    status_code = 400
    default_reason = "Invalid request payload"


class ReferentialError(ServiceError):
    status_code = 400
    default_reason = "User not found"


class NotFoundError(ServiceError):
    status_code = 404
    default_reason = "Not found"


class MethodNotSupported(ServiceError):
    status_code = 405
    default_reason = "Method not allowed"


class OracleUnavailable(ServiceError):
    status_code = 503
    default_reason = "User service unavailable"


def parse_id(raw: str, label: str = "ID") -> int:
    """Parse a path segment as a non-negative decimal integer."""
    if not _ID_PATTERN.fullmatch(raw):
        raise ValidationError(f"Invalid {label}")
    return int(raw)


def _failure(status_code: int, fail_reason: str, headers: dict[str, str] | None = None, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "FAIL", "fail_reason": fail_reason, **extra},
        headers=headers,
    )


def _route(request: Request) -> str:
    return f"{request.method} {request.url.path}"


def install_error_handlers(app: FastAPI, service_logger: logging.Logger | None = None) -> None:
    """Register handlers turning service and framework errors into FAIL payloads."""
    log = service_logger or logger

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        payload = {"status": "FAIL", "fail_reason": exc.fail_reason}
        log_response_packet(log, _route(request), payload)
        return _failure(exc.status_code, exc.fail_reason)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        log.warning("%s invalid payload: %s", _route(request), errors)
        error = ValidationError()
        return _failure(error.status_code, error.fail_reason, errors=errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == MethodNotSupported.status_code:
            error: ServiceError = MethodNotSupported()
        elif exc.status_code == NotFoundError.status_code:
            error = NotFoundError()
        else:
            log.warning("%s unexpected HTTP error %s: %s", _route(request), exc.status_code, exc.detail)
            return _failure(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))
        log_response_packet(log, _route(request), {"status": "FAIL", "fail_reason": error.fail_reason})
        return _failure(error.status_code, error.fail_reason, headers=getattr(exc, "headers", None))
