"""Catalog query and write services over the issuer record store"""

import dataclasses
import re
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy.orm import Session

from fd_catalog.config import settings
from fd_catalog.domain.models import Issuer, IssuerRecord, Scheme, RateSlab
from fd_catalog.domain.exceptions import (
    ConflictError,
    DuplicateIdError,
    InvariantViolationError,
    NotFoundError,
)
from fd_catalog.infrastructure.database.documents import issuer_from_document, issuer_to_document
from fd_catalog.infrastructure.database.repositories import IssuerRepository, QuoteRepository
from fd_catalog.infrastructure.observability.metrics import record_catalog_write


def derive_issuer_key(short_name: str) -> str:
    """Lowercase slug of the short name: "Bajaj Finance" becomes bajaj_finance"""
    key = re.sub(r"\s+", "_", short_name.strip().lower())
    return re.sub(r"[^a-z0-9_\-]", "", key)


class CatalogQueryService:
    """Read-only projections used by the CRUD layer; no business logic beyond active filtering"""

    def __init__(self, db: Session):
        self.issuers = IssuerRepository(db)

    def list_issuers(self, active_only: bool = True) -> List[IssuerRecord]:
        return self.issuers.list(active_only=active_only)

    def list_active_issuers(self) -> List[IssuerRecord]:
        return self.issuers.list(active_only=True)

    def get_issuer_with_schemes(self, issuer_id: str, active_only: bool = False) -> IssuerRecord:
        record = self.issuers.get(issuer_id)
        if not active_only:
            return record

        schemes = [
            dataclasses.replace(s, rate_slabs=[slab for slab in s.rate_slabs if slab.is_active])
            for s in record.issuer.schemes
            if s.is_active
        ]
        return IssuerRecord(issuer=dataclasses.replace(record.issuer, schemes=schemes), revision=record.revision)

    def list_schemes(self, issuer_id: str, active_only: bool = True) -> List[Scheme]:
        schemes = self.issuers.get(issuer_id).issuer.schemes
        return [s for s in schemes if s.is_active] if active_only else schemes

    def get_scheme(self, issuer_id: str, scheme_id: str) -> Scheme:
        """
        Raises:
            NotFoundError: Unknown issuer or scheme
        """
        scheme = self.issuers.get(issuer_id).issuer.find_scheme(scheme_id)
        if scheme is None:
            raise NotFoundError(f"Scheme {scheme_id} not found in issuer {issuer_id}")
        return scheme

    def list_slabs(self, issuer_id: str, scheme_id: str, active_only: bool = False) -> List[RateSlab]:
        slabs = self.get_scheme(issuer_id, scheme_id).rate_slabs
        return [s for s in slabs if s.is_active] if active_only else slabs


class CatalogWriteService:
    """
    Issuer, scheme and slab mutations.

    Every operation reads the current issuer, builds the complete candidate
    tree, and hands it to the record store, which validates the whole tree
    and swaps it in only if the revision is unchanged. Nested operations take
    an optional expected revision; without one the revision just read is used.
    """

    def __init__(self, db: Session):
        self.issuers = IssuerRepository(db)
        self.quotes = QuoteRepository(db)

    def _tracked(self, operation: str, action: Callable[[], Any]) -> Any:
        try:
            result = action()
        except InvariantViolationError as e:
            record_catalog_write(operation, "invalid", [v.rule for v in e.violations])
            raise
        except ConflictError:
            record_catalog_write(operation, "conflict")
            raise
        except NotFoundError:
            record_catalog_write(operation, "not_found")
            raise
        except DuplicateIdError:
            record_catalog_write(operation, "duplicate")
            raise
        record_catalog_write(operation, "committed")
        return result

    def _commit(self, record: IssuerRecord, candidate: Issuer, expected_revision: Optional[int]) -> IssuerRecord:
        base_revision = record.revision if expected_revision is None else expected_revision
        new_revision = self.issuers.replace(candidate.issuer_id, candidate, base_revision)
        return IssuerRecord(issuer=candidate, revision=new_revision)

    def _locate_scheme(self, issuer: Issuer, scheme_id: str) -> int:
        for index, scheme in enumerate(issuer.schemes):
            if scheme.scheme_id == scheme_id:
                return index
        raise NotFoundError(f"Scheme {scheme_id} not found in issuer {issuer.issuer_id}")

    def _ensure_unreferenced(self, issuer_id: str, label: str, scheme_id: Optional[str] = None, slab_id: Optional[str] = None) -> None:
        references = self.quotes.count_references(issuer_id, scheme_id=scheme_id, slab_id=slab_id)
        if references:
            raise ConflictError(
                f"{label} is referenced by {references} quote(s); set is_active to false instead of deleting"
            )

    # Issuers

    def _next_issuer_key(self, short_name: str) -> str:
        base_key = derive_issuer_key(short_name)
        candidate = base_key
        for counter in range(1, settings.issuer_key_max_attempts + 1):
            if not self.issuers.exists(candidate):
                return candidate
            candidate = f"{base_key}_{counter}"
        raise DuplicateIdError(f"Unable to generate a unique issuer key from {short_name!r}")

    def create_issuer(self, payload: Dict[str, Any]) -> IssuerRecord:
        """
        Create an issuer from a document-shaped payload.

        The issuer id is derived from short_name when the payload has none.
        """

        def action() -> IssuerRecord:
            doc = dict(payload)
            if not doc.get("issuer_id"):
                doc["issuer_id"] = self._next_issuer_key(doc["short_name"])
            issuer = issuer_from_document(doc)
            self.issuers.create(issuer)
            return IssuerRecord(issuer=issuer, revision=1)

        return self._tracked("create_issuer", action)

    def update_issuer(self, issuer_id: str, expected_revision: int, changes: Dict[str, Any]) -> IssuerRecord:
        """Merge top-level fields; a "schemes" entry replaces the whole scheme list"""

        def action() -> IssuerRecord:
            record = self.issuers.get(issuer_id)
            doc = issuer_to_document(record.issuer)
            doc.update(changes)
            doc["issuer_id"] = issuer_id  # Key never changes
            return self._commit(record, issuer_from_document(doc), expected_revision)

        return self._tracked("update_issuer", action)

    def delete_issuer(self, issuer_id: str, expected_revision: Optional[int] = None) -> None:
        def action() -> None:
            if not self.issuers.exists(issuer_id):
                raise NotFoundError(f"Issuer {issuer_id} not found")
            self._ensure_unreferenced(issuer_id, f"Issuer {issuer_id}")
            self.issuers.delete(issuer_id, expected_revision)

        self._tracked("delete_issuer", action)

    # Schemes

    def add_scheme(self, issuer_id: str, scheme: Scheme, expected_revision: Optional[int] = None) -> IssuerRecord:
        def action() -> IssuerRecord:
            record = self.issuers.get(issuer_id)
            if record.issuer.find_scheme(scheme.scheme_id) is not None:
                raise DuplicateIdError(f"Scheme with id {scheme.scheme_id} already exists")
            candidate = dataclasses.replace(record.issuer, schemes=[*record.issuer.schemes, scheme])
            return self._commit(record, candidate, expected_revision)

        return self._tracked("add_scheme", action)

    def update_scheme(
        self, issuer_id: str, scheme_id: str, scheme: Scheme, expected_revision: Optional[int] = None
    ) -> IssuerRecord:
        """Replace the whole scheme subtree (slabs included); the scheme keeps its id"""

        def action() -> IssuerRecord:
            record = self.issuers.get(issuer_id)
            index = self._locate_scheme(record.issuer, scheme_id)
            schemes = list(record.issuer.schemes)
            schemes[index] = dataclasses.replace(scheme, scheme_id=scheme_id)
            candidate = dataclasses.replace(record.issuer, schemes=schemes)
            return self._commit(record, candidate, expected_revision)

        return self._tracked("update_scheme", action)

    def delete_scheme(self, issuer_id: str, scheme_id: str, expected_revision: Optional[int] = None) -> IssuerRecord:
        def action() -> IssuerRecord:
            record = self.issuers.get(issuer_id)
            self._locate_scheme(record.issuer, scheme_id)
            self._ensure_unreferenced(issuer_id, f"Scheme {scheme_id}", scheme_id=scheme_id)
            schemes = [s for s in record.issuer.schemes if s.scheme_id != scheme_id]
            candidate = dataclasses.replace(record.issuer, schemes=schemes)
            return self._commit(record, candidate, expected_revision)

        return self._tracked("delete_scheme", action)

    # Rate slabs

    def _with_slabs(self, issuer: Issuer, index: int, slabs: List[RateSlab]) -> Issuer:
        schemes = list(issuer.schemes)
        schemes[index] = dataclasses.replace(schemes[index], rate_slabs=slabs)
        return dataclasses.replace(issuer, schemes=schemes)

    def add_slab(
        self, issuer_id: str, scheme_id: str, slab: RateSlab, expected_revision: Optional[int] = None
    ) -> IssuerRecord:
        def action() -> IssuerRecord:
            record = self.issuers.get(issuer_id)
            index = self._locate_scheme(record.issuer, scheme_id)
            scheme = record.issuer.schemes[index]
            if scheme.find_slab(slab.slab_id) is not None:
                raise DuplicateIdError(f"Rate slab with id {slab.slab_id} already exists")
            candidate = self._with_slabs(record.issuer, index, [*scheme.rate_slabs, slab])
            return self._commit(record, candidate, expected_revision)

        return self._tracked("add_slab", action)

    def update_slab(
        self,
        issuer_id: str,
        scheme_id: str,
        slab_id: str,
        slab: RateSlab,
        expected_revision: Optional[int] = None,
    ) -> IssuerRecord:
        def action() -> IssuerRecord:
            record = self.issuers.get(issuer_id)
            index = self._locate_scheme(record.issuer, scheme_id)
            scheme = record.issuer.schemes[index]
            if scheme.find_slab(slab_id) is None:
                raise NotFoundError(f"Rate slab {slab_id} not found in scheme {scheme_id}")
            slabs = [dataclasses.replace(slab, slab_id=slab_id) if s.slab_id == slab_id else s for s in scheme.rate_slabs]
            candidate = self._with_slabs(record.issuer, index, slabs)
            return self._commit(record, candidate, expected_revision)

        return self._tracked("update_slab", action)

    def delete_slab(
        self, issuer_id: str, scheme_id: str, slab_id: str, expected_revision: Optional[int] = None
    ) -> IssuerRecord:
        def action() -> IssuerRecord:
            record = self.issuers.get(issuer_id)
            index = self._locate_scheme(record.issuer, scheme_id)
            scheme = record.issuer.schemes[index]
            if scheme.find_slab(slab_id) is None:
                raise NotFoundError(f"Rate slab {slab_id} not found in scheme {scheme_id}")
            self._ensure_unreferenced(issuer_id, f"Rate slab {slab_id}", scheme_id=scheme_id, slab_id=slab_id)
            slabs = [s for s in scheme.rate_slabs if s.slab_id != slab_id]
            candidate = self._with_slabs(record.issuer, index, slabs)
            return self._commit(record, candidate, expected_revision)

        return self._tracked("delete_slab", action)
