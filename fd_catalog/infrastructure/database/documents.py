"""Conversion between the issuer dataclass tree and its stored JSON document.

Decimals are stored as strings and enums as their values so that a
document survives a write/read cycle unchanged.
"""

from decimal import Decimal
from typing import Any, Dict, Optional
from fd_catalog.domain.models import (
    Issuer,
    Quote,
    Scheme,
    RateSlab,
    IssuerType,
    PayoutFrequency,
    CompoundingFrequency,
)


def _decimal_out(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


def _decimal_in(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    # str() first so floats from hand-written JSON keep their printed digits
    return Decimal(str(value))


def slab_to_document(slab: RateSlab) -> Dict[str, Any]:
    return {
        "slab_id": slab.slab_id,
        "tenure_min_months": slab.tenure_min_months,
        "tenure_max_months": slab.tenure_max_months,
        "payout_frequency": slab.payout_frequency.value,
        "base_interest_rate_pa": _decimal_out(slab.base_interest_rate_pa),
        "compounding_frequency": slab.compounding_frequency.value if slab.compounding_frequency else None,
        "effective_yield_pa": _decimal_out(slab.effective_yield_pa),
        "notes_public_display": slab.notes_public_display,
        "is_active": slab.is_active,
    }


def slab_from_document(doc: Dict[str, Any]) -> RateSlab:
    compounding = doc.get("compounding_frequency")
    return RateSlab(
        slab_id=doc["slab_id"],
        tenure_min_months=int(doc["tenure_min_months"]),
        tenure_max_months=int(doc["tenure_max_months"]),
        payout_frequency=PayoutFrequency(doc["payout_frequency"]),
        base_interest_rate_pa=_decimal_in(doc["base_interest_rate_pa"]),
        compounding_frequency=CompoundingFrequency(compounding) if compounding else None,
        effective_yield_pa=_decimal_in(doc.get("effective_yield_pa")),
        notes_public_display=doc.get("notes_public_display"),
        is_active=doc.get("is_active", True),
    )


def scheme_to_document(scheme: Scheme) -> Dict[str, Any]:
    return {
        "scheme_id": scheme.scheme_id,
        "scheme_name": scheme.scheme_name,
        "description_short": scheme.description_short,
        "is_cumulative": scheme.is_cumulative,
        "payout_frequencies": [f.value for f in scheme.payout_frequencies],
        "lock_in_months": scheme.lock_in_months,
        "premature_allowed": scheme.premature_allowed,
        "premature_terms": scheme.premature_terms,
        "min_tenure_months": scheme.min_tenure_months,
        "max_tenure_months": scheme.max_tenure_months,
        "min_amount": _decimal_out(scheme.min_amount),
        "max_amount": _decimal_out(scheme.max_amount),
        "senior_citizen_bonus_bps": scheme.senior_citizen_bonus_bps,
        "women_bonus_bps": scheme.women_bonus_bps,
        "renewal_bonus_bps": scheme.renewal_bonus_bps,
        "tds_applicable": scheme.tds_applicable,
        "show_form15g15h_option": scheme.show_form15g15h_option,
        "is_active": scheme.is_active,
        "rate_slabs": [slab_to_document(s) for s in scheme.rate_slabs],
    }


def scheme_from_document(doc: Dict[str, Any]) -> Scheme:
    return Scheme(
        scheme_id=doc["scheme_id"],
        scheme_name=doc["scheme_name"],
        description_short=doc.get("description_short"),
        is_cumulative=doc["is_cumulative"],
        payout_frequencies=[PayoutFrequency(f) for f in doc["payout_frequencies"]],
        lock_in_months=int(doc.get("lock_in_months", 0)),
        premature_allowed=doc.get("premature_allowed", False),
        premature_terms=doc.get("premature_terms"),
        min_tenure_months=int(doc["min_tenure_months"]),
        max_tenure_months=int(doc["max_tenure_months"]),
        min_amount=_decimal_in(doc.get("min_amount")),
        max_amount=_decimal_in(doc.get("max_amount")),
        senior_citizen_bonus_bps=int(doc.get("senior_citizen_bonus_bps", 0)),
        women_bonus_bps=int(doc.get("women_bonus_bps", 0)),
        renewal_bonus_bps=int(doc.get("renewal_bonus_bps", 0)),
        tds_applicable=doc.get("tds_applicable", True),
        show_form15g15h_option=doc.get("show_form15g15h_option", False),
        is_active=doc.get("is_active", True),
        rate_slabs=[slab_from_document(s) for s in doc.get("rate_slabs") or []],
    )


def issuer_to_document(issuer: Issuer) -> Dict[str, Any]:
    return {
        "issuer_id": issuer.issuer_id,
        "legal_name": issuer.legal_name,
        "short_name": issuer.short_name,
        "issuer_type": issuer.issuer_type.value,
        "credit_rating_agency": issuer.credit_rating_agency,
        "credit_rating": issuer.credit_rating,
        "min_deposit_amount": _decimal_out(issuer.min_deposit_amount),
        "max_deposit_amount": _decimal_out(issuer.max_deposit_amount),
        "premature_withdrawal_policy": issuer.premature_withdrawal_policy,
        "notes_compliance": issuer.notes_compliance,
        "is_active": issuer.is_active,
        "schemes": [scheme_to_document(s) for s in issuer.schemes],
    }


def issuer_from_document(doc: Dict[str, Any]) -> Issuer:
    return Issuer(
        issuer_id=doc["issuer_id"],
        legal_name=doc["legal_name"],
        short_name=doc["short_name"],
        issuer_type=IssuerType(doc["issuer_type"]),
        credit_rating_agency=doc.get("credit_rating_agency"),
        credit_rating=doc.get("credit_rating"),
        min_deposit_amount=_decimal_in(doc["min_deposit_amount"]),
        max_deposit_amount=_decimal_in(doc.get("max_deposit_amount")),
        premature_withdrawal_policy=doc["premature_withdrawal_policy"],
        notes_compliance=doc.get("notes_compliance"),
        is_active=doc.get("is_active", True),
        schemes=[scheme_from_document(s) for s in doc.get("schemes") or []],
    )


def quote_details(quote: Quote) -> Dict[str, Any]:
    """Quote fields not promoted to their own columns"""
    return {
        "base_rate_bps": quote.base_rate_bps,
        "bonus_bps": dict(quote.bonus_bps),
        "total_rate_pa": _decimal_out(quote.total_rate_pa),
        "total_interest": _decimal_out(quote.total_interest),
        "periodic_payout_amount": _decimal_out(quote.periodic_payout_amount),
        "compounding_frequency": quote.compounding_frequency.value if quote.compounding_frequency else None,
        "effective_yield_pa": _decimal_out(quote.effective_yield_pa),
        "deposit_date": quote.deposit_date.isoformat(),
        "is_cumulative": quote.is_cumulative,
        "tds_applicable": quote.tds_applicable,
        "form15g15h_available": quote.form15g15h_available,
    }
