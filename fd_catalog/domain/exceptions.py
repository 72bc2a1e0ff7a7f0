"""Domain-specific exceptions"""

from typing import List
from fd_catalog.domain.models import InvariantViolation


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvariantViolationError(DomainException):
    """Candidate issuer tree breaks one or more business rules"""

    def __init__(self, violations: List[InvariantViolation]):
        self.violations = violations
        super().__init__(f"{len(violations)} business rule violation(s)")


class NotFoundError(DomainException):
    """Issuer, scheme or slab does not exist"""

    pass


class DuplicateIdError(DomainException):
    """Identifier already taken within its parent scope"""

    pass


class ConflictError(DomainException):
    """Stored revision advanced, or entity is referenced and cannot be removed"""

    pass


class NoMatchError(DomainException):
    """No active slab fits the requested tenure and payout frequency"""

    pass


class QuoteValidationError(DomainException):
    """Calculation inputs fall outside the scheme or slab limits"""

    pass
