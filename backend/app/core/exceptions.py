"""Domain exceptions rendered into JSON error envelopes by app.main."""
from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base app exception."""

    status_code = 400

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra


class InvalidRequestError(AppError):
    """Malformed request that passed schema validation."""

    status_code = 400


class PermissionDeniedError(AppError):
    """Authenticated caller lacks the capability or does not own the resource."""

    status_code = 403


class NotFoundError(AppError):
    """Referenced resource does not exist."""

    status_code = 404


class BusinessRuleError(AppError):
    """Request is well-formed but violates a business rule."""

    status_code = 422


class QuotaExceededError(BusinessRuleError):
    """A plan limit (featured slots, hot deals, products) is exhausted."""

    def __init__(self, message: str, current: int, max_allowed: int):
        super().__init__(message, current=current, max_allowed=max_allowed)
        self.current = current
        self.max_allowed = max_allowed


class InvalidTransitionError(BusinessRuleError):
    """Status change not permitted from the current state."""


class ValidationFailedError(AppError):
    """Field-level validation failure detected by a service."""

    status_code = 422

    def __init__(self, message: str, errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message, errors=errors or {})
        self.errors = errors or {}


class RateLimitedError(AppError):
    """Too many requests from one client."""

    status_code = 429
