"""
Error taxonomy and the exception handlers that render it.

Every failure a client can observe is raised as an ``ApiError`` subclass
carrying its HTTP status and a short client-facing message.  Handlers
registered on the app turn these into the uniform envelope
``{"success": false, "message": ...}``; nothing in the routers or guards
builds error responses by hand.
"""
from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Server error"


class ApiError(Exception):
    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = GENERIC_SERVER_ERROR

    def __init__(self, message: str | None = None, *, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": False, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class Unauthenticated(ApiError):
    status = HTTPStatus.UNAUTHORIZED
    default_message = "Unauthorized"


class InvalidInput(ApiError):
    status = HTTPStatus.BAD_REQUEST
    default_message = "Invalid input"


class Forbidden(ApiError):
    status = HTTPStatus.FORBIDDEN
    default_message = "Not authorized"


class NotFound(ApiError):
    status = HTTPStatus.NOT_FOUND
    default_message = "Not found"


class Conflict(ApiError):
    status = HTTPStatus.CONFLICT
    default_message = "Already exists"


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status, content=exc.to_dict(), headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(p) for p in err["loc"] if p != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    error = InvalidInput(details=jsonable_encoder(details))
    return JSONResponse(status_code=error.status, content=error.to_dict())


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content={"success": False, "message": GENERIC_SERVER_ERROR},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
