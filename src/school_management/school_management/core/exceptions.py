class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFound(DomainError):
    """Raised when a person or record is absent or belongs to another branch."""


class InactiveSubject(DomainError):
    """Raised when attendance or payment targets a disabled person."""


class InvalidQR(ValidationError):
    """Raised when a QR payload is malformed or does not match the subject."""


class InvalidAmount(ValidationError):
    """Raised when a payment amount or discount is not acceptable."""


class DuplicateAttendance(DomainError):
    """Raised when an attendance record already exists for the key.

    ``existing`` carries the stored record so callers can answer with a conflict
    instead of aborting.
    """

    def __init__(self, message: str, existing=None):
        super().__init__(message)
        self.existing = existing


class AlreadyComplete(DuplicateAttendance):
    """Raised when the record for the key is already checked out."""


class NoCheckIn(DomainError):
    """Raised on check-out without a prior check-in."""


class BatchFull(DomainError):
    """Raised when a batch reached its daily attendance limit."""


class LedgerInvariantViolation(DomainError):
    """Raised by storage when a ledger delta would break paid + due == total."""


class StalePayment(DomainError):
    """Raised when a payment changed between the read and the write that relied on it."""
