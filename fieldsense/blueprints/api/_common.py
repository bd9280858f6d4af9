"""
Blueprint Common Utilities
==========================

Shared helpers for the API blueprints: container access, request JSON
parsing and the standard response envelope.
"""
from __future__ import annotations

from flask import current_app, request

from fieldsense.utils.http import error_response, success_response


def get_container():
    """
    Get the service container from Flask app config.

    Raises:
        RuntimeError: If container is not configured
    """
    container = current_app.config.get("CONTAINER")
    if not container:
        raise RuntimeError("ServiceContainer not found in app config")
    return container


def get_json() -> dict:
    """Get JSON request body, or an empty dict when absent or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def get_actor() -> str:
    """Identify the caller for audit records."""
    return request.headers.get("X-Actor") or request.remote_addr or "unknown"


def success(data: dict | list | None = None, status: int = 200, *, message: str | None = None):
    """Format: {"ok": true, "data": ..., "error": null}"""
    return success_response(data, status, message=message)


def fail(message: str, status: int = 400, *, details: dict | None = None):
    """Format: {"ok": false, "data": null, "error": {...}}"""
    return error_response(message, status, details=details)
