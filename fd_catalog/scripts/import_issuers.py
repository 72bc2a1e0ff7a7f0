"""
Bulk-load FD issuers from a JSON file.

The file holds a list of issuer documents (schemes and slabs embedded).
Each issuer goes through the same validation as API writes; an invalid
issuer is reported and skipped, the rest are still imported.

Usage:
    python -m fd_catalog.scripts.import_issuers sample-fd-data.json --dry-run
    python -m fd_catalog.scripts.import_issuers sample-fd-data.json --save [--replace]
"""

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError
from sqlalchemy.orm import Session

from fd_catalog.api.v1.schemas import IssuerCreateRequest
from fd_catalog.config import settings
from fd_catalog.domain.exceptions import DomainException, InvariantViolationError
from fd_catalog.domain.rules import validate_issuer
from fd_catalog.infrastructure.database.documents import issuer_from_document
from fd_catalog.infrastructure.database.models import Base
from fd_catalog.infrastructure.database.repositories import IssuerRepository
from fd_catalog.infrastructure.database.session import SessionLocal, engine
from fd_catalog.infrastructure.observability.logging import setup_logging
from fd_catalog.services.catalog import CatalogWriteService

logger = logging.getLogger(__name__)


def parse_document(raw: Any) -> Dict[str, Any]:
    """Check document shape the way the API does; raises pydantic ValidationError"""
    return IssuerCreateRequest.model_validate(raw).model_dump(mode="json")


def _field_errors(error: ValidationError) -> List[str]:
    return [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors()]


def import_issuers(db: Session, documents: List[Dict[str, Any]], replace: bool = False) -> Dict[str, int]:
    """
    Create (or, with replace=True, overwrite) each issuer document.

    Returns counts of created, replaced, skipped and failed issuers.
    Each issuer is committed on its own so one bad record does not block the rest.
    """
    service = CatalogWriteService(db)
    repo = IssuerRepository(db)
    result = {"created": 0, "replaced": 0, "skipped": 0, "failed": 0}

    for raw in documents:
        issuer_id = raw.get("issuer_id") if isinstance(raw, dict) else None
        try:
            doc = parse_document(raw)
            if issuer_id and repo.exists(issuer_id):
                if not replace:
                    logger.info("Issuer exists, skipping", extra={"issuer_id": issuer_id})
                    result["skipped"] += 1
                    continue
                current = repo.get(issuer_id)
                changes = {k: v for k, v in doc.items() if k != "issuer_id"}
                service.update_issuer(issuer_id, current.revision, changes)
                result["replaced"] += 1
            else:
                service.create_issuer(doc)
                result["created"] += 1
            db.commit()
        except ValidationError as e:
            logger.error(
                "Issuer record is malformed",
                extra={"issuer_id": issuer_id, "errors": _field_errors(e)},
            )
            result["failed"] += 1
        except InvariantViolationError as e:
            db.rollback()
            logger.error(
                "Issuer failed validation",
                extra={"issuer_id": issuer_id, "violations": [v.message for v in e.violations]},
            )
            result["failed"] += 1
        except DomainException as e:
            db.rollback()
            logger.error(f"Issuer import failed: {e}", extra={"issuer_id": issuer_id})
            result["failed"] += 1

    return result


def check_documents(documents: List[Dict[str, Any]]) -> int:
    """Validate without writing; returns the number of invalid issuers"""
    invalid = 0
    for raw in documents:
        label = (raw.get("issuer_id") or raw.get("short_name")) if isinstance(raw, dict) else None
        try:
            doc = parse_document(raw)
        except ValidationError as e:
            invalid += 1
            for message in _field_errors(e):
                print(f"  {label}: [malformed] {message}")
            continue
        violations = validate_issuer(issuer_from_document({**doc, "issuer_id": doc["issuer_id"] or "pending"}))
        if violations:
            invalid += 1
            for v in violations:
                print(f"  {label}: [{v.rule}] {v.message}")
    return invalid


def main():
    parser = argparse.ArgumentParser(description="Import FD issuers from a JSON file")
    parser.add_argument("path", type=Path, help="JSON file with a list of issuer documents")
    parser.add_argument("--dry-run", action="store_true", help="Validate only")
    parser.add_argument("--save", action="store_true", help="Write issuers to the database")
    parser.add_argument("--replace", action="store_true", help="Overwrite issuers that already exist")
    args = parser.parse_args()

    if not args.dry_run and not args.save:
        parser.error("Either --dry-run or --save is required")

    setup_logging(settings.log_level)
    documents = json.loads(args.path.read_text(encoding="utf-8"))
    print(f"Loaded {len(documents)} issuers from {args.path}")

    if args.dry_run:
        invalid = check_documents(documents)
        print(f"\nResult: {len(documents) - invalid} valid, {invalid} invalid")
        return

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        result = import_issuers(db, documents, replace=args.replace)
    finally:
        db.close()
    print(f"\nResult: {result}")


if __name__ == "__main__":
    main()
