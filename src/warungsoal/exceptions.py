"""Domain exceptions.

Every error carries an HTTP status and a stable ``code`` so the global
handler in ``warungsoal.middleware.error_handler`` can render it without
routers translating each case by hand.
"""

from __future__ import annotations

from typing import Any


class WarungSoalError(Exception):
    """Base class for all WarungSoal domain errors."""

    status_code: int = 400
    code: str = "error"
    retryable: bool = False

    def __init__(self, message: str, **details: Any) -> None:  # noqa: ANN401
        super().__init__(message)
        self.message = message
        self.details = details


class NotFound(WarungSoalError):
    """Referenced user, season, question or answer does not exist."""

    status_code = 404
    code = "not_found"


class InvalidAction(WarungSoalError):
    """Action/difficulty (or leaderboard scope) outside the enumerated domain."""

    status_code = 422
    code = "invalid_action"


class ConcurrencyConflict(WarungSoalError):
    """An atomic update lost a race; the caller may retry."""

    status_code = 409
    code = "concurrency_conflict"
    retryable = True


class StoreUnavailable(WarungSoalError):
    """The persisted store could not be reached."""

    status_code = 503
    code = "store_unavailable"
    retryable = True


class PermissionDenied(WarungSoalError):
    """The acting user may not perform this workflow step."""

    status_code = 403
    code = "permission_denied"


class SelfAwardForbidden(PermissionDenied):
    """A user tried to earn experience from their own question or answer."""

    code = "self_award_forbidden"


class AlreadyApproved(WarungSoalError):
    """The answer was already approved in this capacity."""

    status_code = 409
    code = "already_approved"


class IdempotencyKeyReused(WarungSoalError):
    """An idempotency key was replayed with a different user, action or difficulty."""

    status_code = 409
    code = "idempotency_key_reused"
