"""Unit tests for domain exception to HTTP mapping"""

import pytest
from fd_catalog.api.errors import to_http_exception
from fd_catalog.domain.exceptions import (
    ConflictError,
    DomainException,
    DuplicateIdError,
    InvariantViolationError,
    NoMatchError,
    NotFoundError,
    QuoteValidationError,
)
from fd_catalog.domain.models import InvariantViolation


@pytest.mark.parametrize(
    "error, status",
    [
        (QuoteValidationError("tenure_months must be positive"), 422),
        (NotFoundError("Issuer x not found"), 404),
        (NoMatchError("no slab"), 404),
        (ConflictError("revision moved"), 409),
        (DuplicateIdError("taken"), 409),
    ],
)
def test_status_per_exception(error, status):
    http_error = to_http_exception(error, "req-1")

    assert http_error.status_code == status
    assert http_error.detail == str(error)


def test_invariant_violations_listed():
    violation = InvariantViolation(rule="tenure_order", field="schemes[0].min_tenure_months", message="min > max")

    http_error = to_http_exception(InvariantViolationError([violation]), "req-1")

    assert http_error.status_code == 422
    assert http_error.detail["error"] == "Validation failed"
    assert http_error.detail["details"][0]["rule"] == "tenure_order"


def test_unmapped_domain_exception_is_bad_request():
    """Test a plain DomainException falls back to 400"""
    http_error = to_http_exception(DomainException("unsupported operation"), "req-1")

    assert http_error.status_code == 400
    assert http_error.detail == "unsupported operation"
