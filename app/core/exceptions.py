"""Typed errors raised by the dues ledger.

Validation errors (InvalidPeriod, InvalidTransition, InvalidCategory,
InvalidAmount, InvalidEntry) carry a user-facing message. StorageUnavailable
is raised only after the single internal retry has been spent.
"""
from fastapi import HTTPException


class LedgerError(Exception):
    """Base class for all ledger errors."""
    code = "ledger_error"
    http_status = 400

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


class InvalidPeriod(LedgerError):
    """Period is already settled or the month/year is malformed."""
    code = "invalid_period"
    http_status = 400


class InvalidTransition(LedgerError):
    """Payment status change not allowed from the current state."""
    code = "invalid_transition"
    http_status = 409


class InvalidCategory(LedgerError):
    """Unknown expense category."""
    code = "invalid_category"
    http_status = 400


class InvalidAmount(LedgerError):
    """Amount must be a positive number."""
    code = "invalid_amount"
    http_status = 400


class InvalidEntry(LedgerError):
    """Income or expense line is missing a required field."""
    code = "invalid_entry"
    http_status = 400


class NotFound(LedgerError):
    """Record not found."""
    code = "not_found"
    http_status = 404


class StorageUnavailable(LedgerError):
    """Storage failed or timed out."""
    code = "storage_unavailable"
    http_status = 503


class AuthorizationDenied(LedgerError):
    """Actor lacks the capability required for this action."""
    code = "authorization_denied"
    http_status = 403


class DuplicateKeyViolation(LedgerError):
    """Uniqueness invariant on an obligation key was violated."""
    code = "duplicate_key"
    http_status = 500


def to_http_exception(error: LedgerError) -> HTTPException:
    """Map a ledger error to the HTTPException returned by the routers."""
    return HTTPException(
        status_code=error.http_status,
        detail={"code": error.code, "message": error.message},
    )
