"""Service error taxonomy and the FastAPI handlers that render it.

Every failure the services report is a ``ServiceError`` tagged with one
``ErrorKind``. Handlers dispatch on the tag, never on the exception class.
"""

import logging
from enum import Enum

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something broke!"


class ErrorKind(str, Enum):
    ACCESS_DENIED = "access_denied"
    REGISTRATION_REQUIRED = "registration_required"
    BAD_INPUT = "bad_input"
    INTERNAL = "internal"


class ServiceError(Exception):
    def __init__(self, kind: ErrorKind, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(message)

    @classmethod
    def access_denied(cls, message: str = "Access denied") -> "ServiceError":
        return cls(ErrorKind.ACCESS_DENIED, message)

    @classmethod
    def registration_required(cls, message: str = "Registration required") -> "ServiceError":
        return cls(ErrorKind.REGISTRATION_REQUIRED, message)

    @classmethod
    def bad_input(cls, message: str) -> "ServiceError":
        return cls(ErrorKind.BAD_INPUT, message)

    @classmethod
    def internal(cls, message: str) -> "ServiceError":
        return cls(ErrorKind.INTERNAL, message)

    def __repr__(self) -> str:
        return f"ServiceError(kind={self.kind.value!r}, message={self.message!r})"


def _is_production(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return settings is not None and settings.is_production


_STATUS_BY_KIND = {
    ErrorKind.ACCESS_DENIED: 403,
    ErrorKind.REGISTRATION_REQUIRED: 406,
    ErrorKind.BAD_INPUT: 500,
    ErrorKind.INTERNAL: 500,
}


def error_response(exc: ServiceError, production: bool = False) -> JSONResponse:
    status_code = _STATUS_BY_KIND[exc.kind]
    if exc.kind is ErrorKind.BAD_INPUT:
        return JSONResponse(status_code=status_code, content={"message": exc.message})
    if exc.kind is ErrorKind.INTERNAL:
        message = GENERIC_ERROR_MESSAGE if production else exc.message
        return JSONResponse(status_code=status_code, content={"error": message})
    return JSONResponse(status_code=status_code, content={"error": exc.message})


async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.kind is ErrorKind.INTERNAL:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind.value, exc.message)
    return error_response(exc, production=_is_production(request))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = GENERIC_ERROR_MESSAGE if _is_production(request) else str(exc) or GENERIC_ERROR_MESSAGE
    return JSONResponse(status_code=500, content={"message": message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, handle_service_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
