"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
"""


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule, invariant or input value was rejected."""


class NotEnoughStockError(ValidationError):
    """An item does not have enough stock left for the requested count."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class PagingConflictError(DomainException):
    """Paging was requested from a fetch strategy that multiplies rows.

    LIMIT/OFFSET on a one-to-many join cuts the (order x line) row stream,
    not the order list, so those strategies refuse a page outright.
    """
