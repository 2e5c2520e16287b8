"""
Exception handlers — turn failures into the ``{success: false, error}`` envelope.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple, Type

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth.errors import (
    AccountDisabledError,
    AuthError,
    DuplicateAccountError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    MissingTokenError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

AUTH_ERROR_STATUS: Dict[Type[AuthError], int] = {
    DuplicateAccountError: status.HTTP_400_BAD_REQUEST,
    InvalidCredentialsError: status.HTTP_401_UNAUTHORIZED,
    AccountDisabledError: status.HTTP_401_UNAUTHORIZED,
    InvalidOrExpiredTokenError: status.HTTP_401_UNAUTHORIZED,
    MissingTokenError: status.HTTP_401_UNAUTHORIZED,
    UserNotFoundError: status.HTTP_404_NOT_FOUND,
}

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}

# (field, pydantic error type) -> message shown to API clients.
FIELD_MESSAGES: Dict[Tuple[str, str], str] = {
    ("email", "missing"): "Email is required",
    ("email", "value_error"): "Email must be a valid email address",
    ("password", "missing"): "Password is required",
    ("password", "string_too_short"): "Password must be at least 6 characters long",
    ("password", "string_too_long"): "Password must not exceed 100 characters",
    ("firstName", "string_too_long"): "First name must not exceed 50 characters",
    ("lastName", "string_too_long"): "Last name must not exceed 50 characters",
}


def status_for(exc: AuthError) -> int:
    for cls in type(exc).__mro__:
        if cls in AUTH_ERROR_STATUS:
            return AUTH_ERROR_STATUS[cls]
    return status.HTTP_400_BAD_REQUEST


def error_response(
    status_code: int,
    message: str,
    details: Optional[List[Dict[str, Any]]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    error: Dict[str, Any] = {"message": message}
    if details is not None:
        error["details"] = details
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    code = status_for(exc)
    logger.info("%s %s — %d %s", request.method, request.url.path, code, exc.message)
    headers = _BEARER_CHALLENGE if code == status.HTTP_401_UNAUTHORIZED else None
    return error_response(code, exc.message, headers=headers)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = ".".join(loc)
        message = FIELD_MESSAGES.get((field, err.get("type", "")), err.get("msg", ""))
        details.append({"field": field, "message": message})
    return error_response(
        status.HTTP_400_BAD_REQUEST, "Validation failed", details=details
    )


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(
        exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None)
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
