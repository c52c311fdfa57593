class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced employee, record, break or correction does not exist."""


class EmployeeNotFoundError(NotFoundError):
    pass


class RecordNotFoundError(NotFoundError):
    pass


class BreakNotFoundError(NotFoundError):
    pass


class CorrectionNotFoundError(NotFoundError):
    pass


class ConflictError(DomainError):
    """Raised when the operation does not fit the current state of the employee-day."""


class AlreadyCheckedInError(ConflictError):
    pass


class NotCheckedInError(ConflictError):
    pass


class AlreadyCheckedOutError(ConflictError):
    pass


class BreakAlreadyActiveError(ConflictError):
    pass


class NoActiveBreakError(ConflictError):
    pass


class DuplicateRecordError(ConflictError):
    pass


class InvalidStateError(ConflictError):
    """Raised when a correction or break approval is no longer pending."""


class NotManualEntryError(ConflictError):
    pass


class RecordBusyError(ConflictError):
    """Raised when another writer holds the employee-day for too long."""


class PolicyViolationError(DomainError):
    """A policy was exceeded but the operation still went through.

    Never raised by the services; returned as a value so callers can warn.
    """


class OperationCancelledError(DomainError):
    """Raised when the caller cancelled before anything was persisted."""
