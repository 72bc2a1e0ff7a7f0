"""Mapping of domain failures to HTTP responses"""

import dataclasses
import logging
from fastapi import HTTPException

from fd_catalog.domain.exceptions import (
    ConflictError,
    DomainException,
    DuplicateIdError,
    InvariantViolationError,
    NoMatchError,
    NotFoundError,
    QuoteValidationError,
)


def to_http_exception(error: DomainException, request_id: str) -> HTTPException:
    """
    Translate a domain exception.

    - InvariantViolationError -> 422 with every field-tagged violation
    - QuoteValidationError    -> 422
    - NotFoundError           -> 404
    - NoMatchError            -> 404 (well-formed request, no applicable product)
    - ConflictError           -> 409 (caller must re-read and retry)
    - DuplicateIdError        -> 409
    - any other DomainException -> 400
    """
    if isinstance(error, InvariantViolationError):
        logging.warning(
            f"Validation failed: {error}",
            extra={"request_id": request_id, "rules": [v.rule for v in error.violations]},
        )
        return HTTPException(
            status_code=422,
            detail={
                "error": "Validation failed",
                "details": [dataclasses.asdict(v) for v in error.violations],
            },
        )

    logging.warning(f"{type(error).__name__}: {error}", extra={"request_id": request_id})
    if isinstance(error, QuoteValidationError):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, (NotFoundError, NoMatchError)):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, (ConflictError, DuplicateIdError)):
        return HTTPException(status_code=409, detail=str(error))
    # base DomainException or a subclass with no dedicated status
    return HTTPException(status_code=400, detail=str(error))
