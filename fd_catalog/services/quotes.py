"""Rate quoting: resolve the slab, calculate, and log the issued quote"""

from typing import List, Optional
from sqlalchemy.orm import Session

from fd_catalog.config import settings
from fd_catalog.domain.models import Quote, QuoteRequest
from fd_catalog.domain.calculator import calculate_quote, check_tenure
from fd_catalog.domain.resolver import resolve_slab
from fd_catalog.domain.exceptions import NoMatchError, NotFoundError, QuoteValidationError
from fd_catalog.infrastructure.database.models import FDRateQuote
from fd_catalog.infrastructure.database.repositories import IssuerRepository, QuoteRepository
from fd_catalog.infrastructure.observability.metrics import record_quote


class QuoteService:
    """Read-side quoting against whichever issuer revision is committed"""

    def __init__(self, db: Session):
        self.issuers = IssuerRepository(db)
        self.quotes = QuoteRepository(db)

    def calculate_rate(
        self,
        issuer_id: str,
        scheme_id: str,
        request: QuoteRequest,
        requested_by: Optional[str] = None,
    ) -> Quote:
        """
        Quote a deposit against a scheme.

        Flow:
        1. Load issuer (current revision)
        2. Reject inactive issuer/scheme and tenure outside the scheme range
        3. Resolve slab for tenure + payout frequency
        4. Calculate rate, maturity amount and date
        5. Log the quote so the referenced slab is protected from hard deletion

        Raises:
            NotFoundError: Unknown issuer or scheme
            QuoteValidationError: Inactive product or out-of-range inputs
            NoMatchError: No slab fits the request
        """
        try:
            record = self.issuers.get(issuer_id)
            issuer = record.issuer
            scheme = issuer.find_scheme(scheme_id)
            if scheme is None:
                raise NotFoundError(f"Scheme {scheme_id} not found in issuer {issuer_id}")
            if not issuer.is_active:
                raise QuoteValidationError(f"Issuer {issuer_id} is not active")
            if not scheme.is_active:
                raise QuoteValidationError(f"Scheme {scheme_id} is not active")

            check_tenure(scheme, request.tenure_months)
            slab = resolve_slab(scheme, request.tenure_months, request.payout_frequency)
            quote = calculate_quote(issuer, scheme, slab, request)
        except NoMatchError:
            record_quote("no_match")
            raise
        except (QuoteValidationError, NotFoundError):
            record_quote("invalid")
            raise

        self.quotes.create_quote(quote, issuer_revision=record.revision, requested_by=requested_by)
        record_quote("quoted", quote.total_rate_bps)
        return quote

    def quote_history(self, issuer_id: str, limit: Optional[int] = None) -> List[FDRateQuote]:
        return self.quotes.get_quotes_by_issuer(issuer_id, limit=limit or settings.quote_history_limit)
