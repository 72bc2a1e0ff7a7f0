"""/v1/fd/issuers/{issuer_id}/schemes - schemes and rate slabs embedded in an issuer"""

import logging
from typing import Callable, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from fd_catalog.api.v1.schemas import IssuerResponse, RateSlabSchema, SchemeSchema
from fd_catalog.api.v1.issuers import issuer_response
from fd_catalog.api.dependencies import Caller, get_request_id, require_admin
from fd_catalog.api.errors import to_http_exception
from fd_catalog.domain.models import IssuerRecord
from fd_catalog.domain.exceptions import DomainException
from fd_catalog.infrastructure.database.documents import (
    scheme_from_document,
    scheme_to_document,
    slab_from_document,
    slab_to_document,
)
from fd_catalog.infrastructure.database.session import get_db
from fd_catalog.infrastructure.observability.logging import log_catalog_write
from fd_catalog.services.catalog import CatalogQueryService, CatalogWriteService

router = APIRouter()


def _write(
    db: Session,
    request_id: str,
    caller: Caller,
    operation: str,
    issuer_id: str,
    action: Callable[[CatalogWriteService], IssuerRecord],
    scheme_id: Optional[str] = None,
    slab_id: Optional[str] = None,
) -> IssuerResponse:
    """Run a nested write, commit, and return the issuer at its new revision"""
    try:
        record = action(CatalogWriteService(db))
        db.commit()
    except DomainException as e:
        db.rollback()
        raise to_http_exception(e, request_id)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error in {operation}: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail=f"Failed to {operation.replace('_', ' ')}")

    log_catalog_write(request_id, operation, issuer_id, record.revision, caller.user_id, scheme_id, slab_id)
    return issuer_response(record)


# Read operations


@router.get("/issuers/{issuer_id}/schemes", response_model=List[SchemeSchema])
def list_schemes(
    issuer_id: str,
    request: Request,
    active_only: bool = Query(True),
    db: Session = Depends(get_db),
):
    """Schemes for an issuer (active only by default)"""
    try:
        schemes = CatalogQueryService(db).list_schemes(issuer_id, active_only=active_only)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return [scheme_to_document(s) for s in schemes]


@router.get("/issuers/{issuer_id}/schemes/{scheme_id}", response_model=SchemeSchema)
def get_scheme(issuer_id: str, scheme_id: str, request: Request, db: Session = Depends(get_db)):
    """Single scheme with its rate slabs"""
    try:
        scheme = CatalogQueryService(db).get_scheme(issuer_id, scheme_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return scheme_to_document(scheme)


@router.get("/issuers/{issuer_id}/schemes/{scheme_id}/slabs", response_model=List[RateSlabSchema])
def list_slabs(
    issuer_id: str,
    scheme_id: str,
    request: Request,
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    """Rate slabs for a scheme"""
    try:
        slabs = CatalogQueryService(db).list_slabs(issuer_id, scheme_id, active_only=active_only)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return [slab_to_document(s) for s in slabs]


# Scheme writes


@router.post("/issuers/{issuer_id}/schemes", response_model=IssuerResponse, status_code=201)
def add_scheme(
    issuer_id: str,
    request_body: SchemeSchema,
    request: Request,
    expected_revision: Optional[int] = Query(None),
    caller: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Append a scheme (with its slabs) to an issuer"""
    scheme = scheme_from_document(request_body.model_dump(mode="json"))
    return _write(
        db,
        get_request_id(request),
        caller,
        "add_scheme",
        issuer_id,
        lambda service: service.add_scheme(issuer_id, scheme, expected_revision),
        scheme_id=scheme.scheme_id,
    )


@router.put("/issuers/{issuer_id}/schemes/{scheme_id}", response_model=IssuerResponse)
def update_scheme(
    issuer_id: str,
    scheme_id: str,
    request_body: SchemeSchema,
    request: Request,
    expected_revision: Optional[int] = Query(None),
    caller: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Replace a scheme subtree; the path scheme_id wins over the body"""
    scheme = scheme_from_document(request_body.model_dump(mode="json"))
    return _write(
        db,
        get_request_id(request),
        caller,
        "update_scheme",
        issuer_id,
        lambda service: service.update_scheme(issuer_id, scheme_id, scheme, expected_revision),
        scheme_id=scheme_id,
    )


@router.delete("/issuers/{issuer_id}/schemes/{scheme_id}", response_model=IssuerResponse)
def delete_scheme(
    issuer_id: str,
    scheme_id: str,
    request: Request,
    expected_revision: Optional[int] = Query(None),
    caller: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Remove a scheme; the remaining tree is re-validated"""
    return _write(
        db,
        get_request_id(request),
        caller,
        "delete_scheme",
        issuer_id,
        lambda service: service.delete_scheme(issuer_id, scheme_id, expected_revision),
        scheme_id=scheme_id,
    )


# Rate slab writes


@router.post("/issuers/{issuer_id}/schemes/{scheme_id}/slabs", response_model=IssuerResponse, status_code=201)
def add_slab(
    issuer_id: str,
    scheme_id: str,
    request_body: RateSlabSchema,
    request: Request,
    expected_revision: Optional[int] = Query(None),
    caller: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    slab = slab_from_document(request_body.model_dump(mode="json"))
    return _write(
        db,
        get_request_id(request),
        caller,
        "add_slab",
        issuer_id,
        lambda service: service.add_slab(issuer_id, scheme_id, slab, expected_revision),
        scheme_id=scheme_id,
        slab_id=slab.slab_id,
    )


@router.put("/issuers/{issuer_id}/schemes/{scheme_id}/slabs/{slab_id}", response_model=IssuerResponse)
def update_slab(
    issuer_id: str,
    scheme_id: str,
    slab_id: str,
    request_body: RateSlabSchema,
    request: Request,
    expected_revision: Optional[int] = Query(None),
    caller: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    slab = slab_from_document(request_body.model_dump(mode="json"))
    return _write(
        db,
        get_request_id(request),
        caller,
        "update_slab",
        issuer_id,
        lambda service: service.update_slab(issuer_id, scheme_id, slab_id, slab, expected_revision),
        scheme_id=scheme_id,
        slab_id=slab_id,
    )


@router.delete("/issuers/{issuer_id}/schemes/{scheme_id}/slabs/{slab_id}", response_model=IssuerResponse)
def delete_slab(
    issuer_id: str,
    scheme_id: str,
    slab_id: str,
    request: Request,
    expected_revision: Optional[int] = Query(None),
    caller: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return _write(
        db,
        get_request_id(request),
        caller,
        "delete_slab",
        issuer_id,
        lambda service: service.delete_slab(issuer_id, scheme_id, slab_id, expected_revision),
        scheme_id=scheme_id,
        slab_id=slab_id,
    )
