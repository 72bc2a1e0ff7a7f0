"""Data access layer for FD issuers and issued quotes"""

from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.sql import func
from fd_catalog.infrastructure.database.models import FDIssuerRecord, FDRateQuote
from fd_catalog.infrastructure.database.documents import issuer_to_document, issuer_from_document, quote_details
from fd_catalog.domain.models import Issuer, IssuerRecord, Quote
from fd_catalog.domain.exceptions import NotFoundError, DuplicateIdError, ConflictError
from fd_catalog.domain.rules import ensure_valid


class IssuerRepository:
    """
    Issuer record store.

    The whole issuer tree is one write unit. Every create/replace validates
    the complete candidate tree first, and replace is a compare-and-swap on
    the stored revision so concurrent editors of the same issuer cannot both
    succeed from a stale read.
    """

    def __init__(self, db: Session):
        self.db = db

    def _to_record(self, row: FDIssuerRecord) -> IssuerRecord:
        return IssuerRecord(issuer=issuer_from_document(row.document), revision=row.revision)

    def exists(self, issuer_id: str) -> bool:
        return self.db.query(FDIssuerRecord.issuer_id).filter(FDIssuerRecord.issuer_id == issuer_id).first() is not None

    def get(self, issuer_id: str) -> IssuerRecord:
        """
        Raises:
            NotFoundError: No issuer with this id
        """
        row = self.db.query(FDIssuerRecord).filter(FDIssuerRecord.issuer_id == issuer_id).first()
        if row is None:
            raise NotFoundError(f"Issuer {issuer_id} not found")
        return self._to_record(row)

    def list(self, active_only: bool = False) -> List[IssuerRecord]:
        query = self.db.query(FDIssuerRecord)
        if active_only:
            query = query.filter(FDIssuerRecord.is_active.is_(True))
        return [self._to_record(row) for row in query.order_by(FDIssuerRecord.short_name).all()]

    def create(self, issuer: Issuer) -> str:
        """
        Persist a new issuer at revision 1.

        Raises:
            InvariantViolationError: Tree breaks a business rule
            DuplicateIdError: Issuer id already taken
        """
        ensure_valid(issuer)
        if self.exists(issuer.issuer_id):
            raise DuplicateIdError(f"Issuer with id {issuer.issuer_id} already exists")

        self.db.add(
            FDIssuerRecord(
                issuer_id=issuer.issuer_id,
                legal_name=issuer.legal_name,
                short_name=issuer.short_name,
                is_active=issuer.is_active,
                revision=1,
                document=issuer_to_document(issuer),
            )
        )
        self.db.flush()
        return issuer.issuer_id

    def replace(self, issuer_id: str, issuer: Issuer, expected_revision: int) -> int:
        """
        Swap in a new tree if the stored revision still equals expected_revision.

        Returns:
            The new revision

        Raises:
            InvariantViolationError: Tree breaks a business rule (nothing written)
            NotFoundError: No issuer with this id
            ConflictError: Stored revision has advanced since the caller read it
        """
        if issuer.issuer_id != issuer_id:
            raise ConflictError(f"Issuer id cannot change ({issuer_id} -> {issuer.issuer_id})")
        ensure_valid(issuer)

        updated = (
            self.db.query(FDIssuerRecord)
            .filter(
                FDIssuerRecord.issuer_id == issuer_id,
                FDIssuerRecord.revision == expected_revision,
            )
            .update(
                {
                    FDIssuerRecord.legal_name: issuer.legal_name,
                    FDIssuerRecord.short_name: issuer.short_name,
                    FDIssuerRecord.is_active: issuer.is_active,
                    FDIssuerRecord.document: issuer_to_document(issuer),
                    FDIssuerRecord.revision: expected_revision + 1,
                    FDIssuerRecord.updated_at: func.now(),
                },
                synchronize_session="fetch",
            )
        )
        if updated == 0:
            if not self.exists(issuer_id):
                raise NotFoundError(f"Issuer {issuer_id} not found")
            raise ConflictError(
                f"Issuer {issuer_id} was modified concurrently (expected revision {expected_revision}); re-read and retry"
            )
        return expected_revision + 1

    def delete(self, issuer_id: str, expected_revision: Optional[int] = None) -> None:
        """
        Raises:
            NotFoundError: No issuer with this id
            ConflictError: expected_revision given and stale
        """
        query = self.db.query(FDIssuerRecord).filter(FDIssuerRecord.issuer_id == issuer_id)
        if expected_revision is not None:
            query = query.filter(FDIssuerRecord.revision == expected_revision)
        deleted = query.delete(synchronize_session="fetch")
        if deleted == 0:
            if not self.exists(issuer_id):
                raise NotFoundError(f"Issuer {issuer_id} not found")
            raise ConflictError(f"Issuer {issuer_id} was modified concurrently; re-read and retry")


class QuoteRepository:
    """Repository for issued rate quotes"""

    def __init__(self, db: Session):
        self.db = db

    def create_quote(self, quote: Quote, issuer_revision: int, requested_by: Optional[str] = None) -> FDRateQuote:
        """Persist quote to database"""
        db_quote = FDRateQuote(
            issuer_id=quote.issuer_id,
            scheme_id=quote.scheme_id,
            slab_id=quote.slab_id,
            issuer_revision=issuer_revision,
            requested_by=requested_by,
            principal=quote.principal,
            tenure_months=quote.tenure_months,
            payout_frequency=quote.payout_frequency.value,
            total_rate_bps=quote.total_rate_bps,
            maturity_amount=quote.maturity_amount,
            maturity_date=quote.maturity_date,
            details=quote_details(quote),
        )
        self.db.add(db_quote)
        self.db.flush()  # Get ID without committing
        return db_quote

    def count_references(self, issuer_id: str, scheme_id: Optional[str] = None, slab_id: Optional[str] = None) -> int:
        """Number of quotes that point at an issuer, or at one of its schemes/slabs"""
        query = self.db.query(func.count(FDRateQuote.id)).filter(FDRateQuote.issuer_id == issuer_id)
        if scheme_id is not None:
            query = query.filter(FDRateQuote.scheme_id == scheme_id)
        if slab_id is not None:
            query = query.filter(FDRateQuote.slab_id == slab_id)
        return query.scalar() or 0

    def get_quotes_by_issuer(self, issuer_id: str, limit: int = 50) -> List[FDRateQuote]:
        """Fetch recent quotes for an issuer"""
        return (
            self.db.query(FDRateQuote)
            .filter(FDRateQuote.issuer_id == issuer_id)
            .order_by(FDRateQuote.created_at.desc())
            .limit(limit)
            .all()
        )
