"""/v1/fd/issuers - FD issuer listing and maintenance"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session

from fd_catalog.api.v1.schemas import IssuerCreateRequest, IssuerUpdateRequest, IssuerResponse, IssuerSummary
from fd_catalog.api.dependencies import Caller, get_request_id, require_admin
from fd_catalog.api.errors import to_http_exception
from fd_catalog.domain.models import IssuerRecord
from fd_catalog.domain.exceptions import DomainException
from fd_catalog.infrastructure.database.documents import issuer_to_document
from fd_catalog.infrastructure.database.session import get_db
from fd_catalog.infrastructure.observability.logging import log_catalog_write
from fd_catalog.services.catalog import CatalogQueryService, CatalogWriteService

router = APIRouter()

# Top-level fields that cannot be cleared with an explicit null
REQUIRED_ISSUER_FIELDS = {
    "legal_name",
    "short_name",
    "issuer_type",
    "min_deposit_amount",
    "premature_withdrawal_policy",
    "is_active",
    "schemes",
}


def issuer_response(record: IssuerRecord) -> IssuerResponse:
    return IssuerResponse(revision=record.revision, **issuer_to_document(record.issuer))


def issuer_summary(record: IssuerRecord) -> IssuerSummary:
    issuer = record.issuer
    return IssuerSummary(
        issuer_id=issuer.issuer_id,
        revision=record.revision,
        legal_name=issuer.legal_name,
        short_name=issuer.short_name,
        issuer_type=issuer.issuer_type,
        credit_rating_agency=issuer.credit_rating_agency,
        credit_rating=issuer.credit_rating,
        is_active=issuer.is_active,
        scheme_count=len(issuer.schemes),
        active_scheme_count=sum(1 for s in issuer.schemes if s.is_active),
    )


@router.get("/issuers", response_model=List[IssuerSummary])
def list_issuers(
    active_only: bool = Query(True, description="Only active issuers"),
    db: Session = Depends(get_db),
):
    """List issuers (active only by default)"""
    records = CatalogQueryService(db).list_issuers(active_only=active_only)
    return [issuer_summary(r) for r in records]


@router.get("/issuers/{issuer_id}", response_model=IssuerResponse)
def get_issuer(
    issuer_id: str,
    request: Request,
    active_only: bool = Query(False, description="Hide inactive schemes and slabs"),
    db: Session = Depends(get_db),
):
    """Get a single issuer with all nested schemes and slabs"""
    try:
        record = CatalogQueryService(db).get_issuer_with_schemes(issuer_id, active_only=active_only)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return issuer_response(record)


@router.post("/issuers", response_model=IssuerResponse, status_code=201)
def create_issuer(
    request_body: IssuerCreateRequest,
    request: Request,
    caller: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Create an issuer with at least one scheme, each with at least one slab.

    The whole tree is validated before anything is stored.
    """
    request_id = get_request_id(request)
    try:
        record = CatalogWriteService(db).create_issuer(request_body.model_dump(mode="json"))
        db.commit()
    except DomainException as e:
        db.rollback()
        raise to_http_exception(e, request_id)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error creating issuer: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Failed to create issuer")

    log_catalog_write(request_id, "create_issuer", record.issuer.issuer_id, record.revision, caller.user_id)
    return issuer_response(record)


@router.put("/issuers/{issuer_id}", response_model=IssuerResponse)
def update_issuer(
    issuer_id: str,
    request_body: IssuerUpdateRequest,
    request: Request,
    caller: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Update top-level issuer fields.

    Requires the revision the caller last read; a stale revision yields 409
    and the caller must re-fetch and retry. Passing "schemes" replaces the
    whole scheme list.
    """
    request_id = get_request_id(request)
    changes = request_body.model_dump(mode="json", exclude_unset=True, exclude={"revision"})
    changes = {k: v for k, v in changes.items() if v is not None or k not in REQUIRED_ISSUER_FIELDS}

    try:
        record = CatalogWriteService(db).update_issuer(issuer_id, request_body.revision, changes)
        db.commit()
    except DomainException as e:
        db.rollback()
        raise to_http_exception(e, request_id)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error updating issuer: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Failed to update issuer")

    log_catalog_write(request_id, "update_issuer", issuer_id, record.revision, caller.user_id)
    return issuer_response(record)


@router.delete("/issuers/{issuer_id}", status_code=204)
def delete_issuer(
    issuer_id: str,
    request: Request,
    expected_revision: Optional[int] = Query(None),
    caller: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete an issuer; refused with 409 once any quote references it (deactivate instead)"""
    request_id = get_request_id(request)
    try:
        CatalogWriteService(db).delete_issuer(issuer_id, expected_revision)
        db.commit()
    except DomainException as e:
        db.rollback()
        raise to_http_exception(e, request_id)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error deleting issuer: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Failed to delete issuer")

    log_catalog_write(request_id, "delete_issuer", issuer_id, None, caller.user_id)
    return Response(status_code=204)
