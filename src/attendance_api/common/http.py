from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from ..auth.model import ClientContext
from ..core.enums import ErrorKind
from ..core.exceptions import DomainError, InvalidCredentialsError, ValidationError

if TYPE_CHECKING:
    from ..auth.service import AuthService

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.USERNAME_EXISTS: 409,
    ErrorKind.USER_NOT_FOUND: 401,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.INVALID_STATE: 404,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INTERNAL: 500,
}

INTERNAL_ERROR_MESSAGE = "Internal server error"


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def client_context() -> ClientContext:
    return ClientContext(device=request.headers.get("User-Agent"), ip_address=request.remote_addr)


def error_response(error: DomainError) -> tuple[dict[str, Any], int]:
    status = STATUS_BY_KIND.get(error.kind, 500)

    if error.kind == ErrorKind.USER_NOT_FOUND:
        # unknown user and wrong password look the same to the caller
        body: dict[str, Any] = {"error": InvalidCredentialsError().args[0]}
    elif status >= 500:
        body = {"error": INTERNAL_ERROR_MESSAGE}
    else:
        body = {"error": str(error)}

    if isinstance(error, ValidationError):
        body["errors"] = error.errors
    return body, status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        body, status = error_response(error)
        if status >= 500:
            logger.error("Unhandled %s on %s %s", type(error).__name__, request.method, request.path, exc_info=error)
        return jsonify(body), status

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({"error": error.description or error.name}), error.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception):
        logger.error("Unexpected error on %s %s", request.method, request.path, exc_info=error)
        return jsonify({"error": INTERNAL_ERROR_MESSAGE}), 500


def bearer_required(auth_service: "AuthService"):
    """Resolve the bearer token and hand the user id to the view as `current_user_id`."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user_id = auth_service.authenticate_bearer(request.headers.get("Authorization"))
            return view(*args, current_user_id=user_id, **kwargs)

        return wrapper

    return decorator
