"""Centralized exception hierarchy for FieldSense.

All domain and service exceptions inherit from :class:`FieldSenseError` so
callers can catch a single base class when they need a broad safety net,
yet still match on specific subclasses where narrower handling is
appropriate.

The admin API (see ``fieldsense.utils.http.safe_route``) maps these to HTTP
status codes automatically. Inside the ingestion pipeline none of them
cross the router boundary: per-message failures are logged and dropped.

Hierarchy
---------
::

    FieldSenseError (base - maps to 500)
    ├── ValidationError             (400 - bad input from caller)
    ├── NotFoundError               (404 - entity does not exist)
    ├── ServiceError                (500 - business-logic failure)
    │   └── RepositoryError         (500 - database / persistence)
    │       └── PersistenceFailure  (500 - a storage call failed)
    └── ConfigurationError          (500 - missing / invalid config)
"""

from __future__ import annotations


class FieldSenseError(Exception):
    """Base exception for all FieldSense application errors.

    Parameters
    ----------
    message:
        Human-readable description (logged server-side, **not** leaked to
        the HTTP client unless the exception class opts in).
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging.
    """

    http_status: int = 500

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


# ── Client errors (4xx) ──────────────────────────────────────────────


class ValidationError(FieldSenseError):
    """Caller supplied invalid or incomplete input (HTTP 400)."""

    http_status: int = 400


class NotFoundError(FieldSenseError):
    """Requested entity does not exist (HTTP 404)."""

    http_status: int = 404


# ── Server errors (5xx) ──────────────────────────────────────────────


class ServiceError(FieldSenseError):
    """Business-logic failure in a service method (HTTP 500)."""

    http_status: int = 500


class RepositoryError(ServiceError):
    """Database / persistence layer failure (HTTP 500)."""

    http_status: int = 500


class PersistenceFailure(RepositoryError):
    """A sensor upsert or reading insert failed; the message is dropped."""


class ConfigurationError(FieldSenseError):
    """Missing or invalid application configuration (HTTP 500)."""

    http_status: int = 500
