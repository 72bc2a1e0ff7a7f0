"""POST /v1/fd/quotes - FD rate and maturity calculation"""

import time
from datetime import date
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from fd_catalog.api.v1.schemas import QuoteRequestSchema, QuoteResponse, QuoteHistoryItem, QuoteHistoryResponse
from fd_catalog.api.dependencies import Caller, get_caller, get_request_id
from fd_catalog.api.errors import to_http_exception
from fd_catalog.domain.models import QuoteRequest
from fd_catalog.domain.exceptions import DomainException
from fd_catalog.infrastructure.database.session import get_db
from fd_catalog.infrastructure.observability.logging import log_quote
from fd_catalog.services.quotes import QuoteService

router = APIRouter()


@router.post("/quotes", response_model=QuoteResponse)
def calculate_rate(
    request_body: QuoteRequestSchema,
    request: Request,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """
    Quote an FD deposit.

    Flow:
    1. Resolve the slab for tenure + payout frequency (404 when none fits)
    2. Add senior citizen / women / renewal bonuses to the base rate
    3. Compute maturity amount and date
    4. Log the quote and return it
    """
    start_time = time.time()
    request_id = get_request_id(request)

    quote_request = QuoteRequest(
        deposit_amount=request_body.deposit_amount,
        tenure_months=request_body.tenure_months,
        payout_frequency=request_body.payout_frequency,
        deposit_date=request_body.deposit_date or date.today(),
        senior_citizen=request_body.senior_citizen,
        women=request_body.women,
        is_renewal=request_body.renewal,
    )

    try:
        quote = QuoteService(db).calculate_rate(
            request_body.issuer_id,
            request_body.scheme_id,
            quote_request,
            requested_by=caller.user_id,
        )
        db.commit()
    except DomainException as e:
        db.rollback()
        raise to_http_exception(e, request_id)

    duration_ms = (time.time() - start_time) * 1000
    log_quote(request_id, quote.issuer_id, quote.scheme_id, quote.slab_id, quote.total_rate_bps, duration_ms)

    return QuoteResponse(
        issuer_id=quote.issuer_id,
        scheme_id=quote.scheme_id,
        slab_id=quote.slab_id,
        principal=quote.principal,
        tenure_months=quote.tenure_months,
        payout_frequency=quote.payout_frequency,
        base_rate_bps=quote.base_rate_bps,
        bonus_bps=quote.bonus_bps,
        total_rate_bps=quote.total_rate_bps,
        total_rate_pa=quote.total_rate_pa,
        maturity_amount=quote.maturity_amount,
        total_interest=quote.total_interest,
        periodic_payout_amount=quote.periodic_payout_amount,
        compounding_frequency=quote.compounding_frequency,
        effective_yield_pa=quote.effective_yield_pa,
        deposit_date=quote.deposit_date,
        maturity_date=quote.maturity_date,
        is_cumulative=quote.is_cumulative,
        tds_applicable=quote.tds_applicable,
        form15g15h_available=quote.form15g15h_available,
    )


@router.get("/quotes/history", response_model=QuoteHistoryResponse)
def get_quote_history(
    issuer_id: str = Query(..., description="Issuer identifier"),
    db: Session = Depends(get_db),
):
    """Recent quotes issued against an issuer"""
    quotes = QuoteService(db).quote_history(issuer_id)

    items = [
        QuoteHistoryItem(
            quote_id=q.id,
            scheme_id=q.scheme_id,
            slab_id=q.slab_id,
            issuer_revision=q.issuer_revision,
            principal=q.principal,
            tenure_months=q.tenure_months,
            payout_frequency=q.payout_frequency,
            total_rate_bps=q.total_rate_bps,
            maturity_amount=q.maturity_amount,
            maturity_date=q.maturity_date,
            created_at=q.created_at.isoformat(),
        )
        for q in quotes
    ]

    return QuoteHistoryResponse(issuer_id=issuer_id, quotes=items)
