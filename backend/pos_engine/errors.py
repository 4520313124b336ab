"""
POS engine error taxonomy.

Every operation raises one of these at the point of violation, before any
mutation is written. Callers (the HTTP layer, the CLI) decide how each kind is
presented; the engine itself never knows about status codes.
"""


class PosError(Exception):
    """Base class for engine errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(PosError):
    """Missing transaction, session, or item. Messages never reveal other tenants."""


class AccessDeniedError(PosError):
    """Resource exists but belongs to another tenant."""


class ValidationError(PosError):
    """Bad input: empty void reason, insufficient cash, amount over balance, etc."""


class InvalidStateError(PosError):
    """Operation not permitted for the current status or payment status."""


class AlreadyPaidError(InvalidStateError):
    """Transaction has no remaining balance."""


class ExternalServiceError(PosError):
    """Card gateway charge/refund failed."""


class FatalError(PosError):
    """Sequence or storage failure; not recoverable locally."""
