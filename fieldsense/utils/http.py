"""
JSON envelope helpers for the admin API.

Every response body has the shape ``{"ok": bool, "data": ..., "error": ...}``.
Server-side failures are logged with their traceback; the client only ever
sees a fixed message for the status code.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from flask import Response, jsonify

from fieldsense.utils.time import iso_now

_log = logging.getLogger(__name__)

_SERVER_ERROR_MESSAGE = "An internal error occurred"


def success_response(data: Any = None, status: int = 200, *, message: str | None = None) -> Response:
    body: dict[str, Any] = {"ok": True, "data": data, "error": None}
    if message is not None:
        body["message"] = message
    response = jsonify(body)
    response.status_code = status
    return response


def error_response(message: str, status: int = 400, *, details: dict | None = None) -> Response:
    """``error`` carries the message, a UTC timestamp and any ``details`` keys."""
    error: dict[str, Any] = {"message": message, "timestamp": iso_now(), **(details or {})}
    response = jsonify({"ok": False, "data": None, "error": error})
    response.status_code = status
    return response


def safe_error(exc: BaseException, status: int = 500, *, context: str = "") -> Response:
    """Log ``exc`` and answer with the generic server-error message."""
    _log.error("Admin API error [%s] %s: %s", status, context, exc, exc_info=exc)
    return error_response(_SERVER_ERROR_MESSAGE, status)


def safe_route(error_message: str = _SERVER_ERROR_MESSAGE) -> Callable:
    """
    Wrap a route so domain errors map to their ``http_status``.

    4xx ``FieldSenseError``s return their own message; anything else is
    logged under ``error_message`` and becomes a 500.
    """
    from fieldsense.domain.exceptions import FieldSenseError

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Response:
            try:
                return fn(*args, **kwargs)
            except FieldSenseError as exc:
                if exc.http_status >= 500:
                    return safe_error(exc, exc.http_status, context=error_message)
                return error_response(str(exc) or error_message, exc.http_status)
            except Exception as exc:
                return safe_error(exc, 500, context=error_message)

        return wrapper

    return decorator
