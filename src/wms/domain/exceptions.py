"""Domain-level exceptions.

All engine failures are expressed as subclasses of DomainException so
callers (and the CLI layer) can catch them uniformly. The engine itself
never logs; it only raises these.
"""


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated by the caller's input."""


class NotFoundError(DomainException):
    """A referenced item, warehouse, lot or document does not exist."""


class NoApprovalRuleError(DomainException):
    """No approval bracket covers the document type and amount.

    This is a configuration gap. Callers must treat it as fatal for the
    submission and never fall back to an arbitrary approver.
    """


class InvalidTransitionError(DomainException):
    """The requested document status change is not an allowed edge."""


class InsufficientStockError(DomainException):
    """Not enough stock (or lot quantity) to satisfy the request."""


class ConcurrentModificationError(DomainException):
    """A stock key lock could not be acquired in time. Safe to retry."""


class ConfigurationError(DomainException):
    """Static engine configuration (e.g. approval brackets) is invalid."""
