"""Business rule validator for issuer trees.

Every rule is a checker over the complete Issuer tree, registered in RULES
under a stable rule id. Checkers yield one InvariantViolation per offending
node so callers can render field-level errors; validate_issuer runs the whole
table and returns every violation found, not just the first.
"""

import re
from decimal import Decimal
from typing import Callable, Dict, Iterator, List, Optional
from fd_catalog.domain.models import Issuer, InvariantViolation, PayoutFrequency
from fd_catalog.domain.exceptions import InvariantViolationError

MAX_INTEREST_RATE = Decimal("30")
RATE_PRECISION = Decimal("0.01")

ISSUER_ID_PATTERN = re.compile(r"^[a-z0-9_\-]+$")
CHILD_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")

RuleChecker = Callable[[Issuer], Iterator[InvariantViolation]]


def _blank(text: Optional[str]) -> bool:
    return text is None or text.strip() == ""


def check_tenure_order(issuer: Issuer) -> Iterator[InvariantViolation]:
    for scheme in issuer.schemes:
        if scheme.min_tenure_months > scheme.max_tenure_months:
            yield InvariantViolation(
                rule="tenure_order",
                message=(
                    f"Scheme {scheme.scheme_id}: min_tenure_months ({scheme.min_tenure_months}) "
                    f"must be <= max_tenure_months ({scheme.max_tenure_months})"
                ),
                scheme_id=scheme.scheme_id,
                field="min_tenure_months",
            )
        for slab in scheme.rate_slabs:
            if slab.tenure_min_months > slab.tenure_max_months:
                yield InvariantViolation(
                    rule="tenure_order",
                    message=(
                        f"Scheme {scheme.scheme_id}, Slab {slab.slab_id}: tenure_min_months "
                        f"({slab.tenure_min_months}) must be <= tenure_max_months ({slab.tenure_max_months})"
                    ),
                    scheme_id=scheme.scheme_id,
                    slab_id=slab.slab_id,
                    field="tenure_min_months",
                )


def check_slab_within_scheme_tenure(issuer: Issuer) -> Iterator[InvariantViolation]:
    for scheme in issuer.schemes:
        for slab in scheme.rate_slabs:
            if slab.tenure_min_months < scheme.min_tenure_months:
                yield InvariantViolation(
                    rule="slab_within_scheme_tenure",
                    message=(
                        f"Slab {slab.slab_id} tenure_min_months ({slab.tenure_min_months}) is below "
                        f"scheme {scheme.scheme_id} min_tenure_months ({scheme.min_tenure_months})"
                    ),
                    scheme_id=scheme.scheme_id,
                    slab_id=slab.slab_id,
                    field="tenure_min_months",
                )
            if slab.tenure_max_months > scheme.max_tenure_months:
                yield InvariantViolation(
                    rule="slab_within_scheme_tenure",
                    message=(
                        f"Slab {slab.slab_id} tenure_max_months ({slab.tenure_max_months}) exceeds "
                        f"scheme {scheme.scheme_id} max_tenure_months ({scheme.max_tenure_months})"
                    ),
                    scheme_id=scheme.scheme_id,
                    slab_id=slab.slab_id,
                    field="tenure_max_months",
                )


def check_cumulative_on_maturity_only(issuer: Issuer) -> Iterator[InvariantViolation]:
    for scheme in issuer.schemes:
        if scheme.is_cumulative and set(scheme.payout_frequencies) != {PayoutFrequency.ON_MATURITY}:
            yield InvariantViolation(
                rule="cumulative_on_maturity_only",
                message=f'Scheme {scheme.scheme_id}: cumulative schemes must only have "On Maturity" payout frequency',
                scheme_id=scheme.scheme_id,
                field="payout_frequencies",
            )


def check_non_cumulative_excludes_on_maturity(issuer: Issuer) -> Iterator[InvariantViolation]:
    for scheme in issuer.schemes:
        if not scheme.is_cumulative and PayoutFrequency.ON_MATURITY in scheme.payout_frequencies:
            yield InvariantViolation(
                rule="non_cumulative_excludes_on_maturity",
                message=f'Scheme {scheme.scheme_id}: non-cumulative schemes cannot have "On Maturity" payout frequency',
                scheme_id=scheme.scheme_id,
                field="payout_frequencies",
            )


def check_slab_frequency_allowed(issuer: Issuer) -> Iterator[InvariantViolation]:
    for scheme in issuer.schemes:
        for slab in scheme.rate_slabs:
            if slab.payout_frequency not in scheme.payout_frequencies:
                yield InvariantViolation(
                    rule="slab_frequency_allowed",
                    message=(
                        f'Scheme {scheme.scheme_id}, Slab {slab.slab_id}: payout frequency '
                        f'"{slab.payout_frequency.value}" not allowed in scheme'
                    ),
                    scheme_id=scheme.scheme_id,
                    slab_id=slab.slab_id,
                    field="payout_frequency",
                )


def check_premature_terms(issuer: Issuer) -> Iterator[InvariantViolation]:
    for scheme in issuer.schemes:
        if scheme.premature_allowed and _blank(scheme.premature_terms):
            yield InvariantViolation(
                rule="premature_terms",
                message=f"Scheme {scheme.scheme_id}: premature_terms is required when premature_allowed is true",
                scheme_id=scheme.scheme_id,
                field="premature_terms",
            )
        elif not scheme.premature_allowed and not _blank(scheme.premature_terms):
            yield InvariantViolation(
                rule="premature_terms",
                message=f"Scheme {scheme.scheme_id}: premature_terms must be empty when premature_allowed is false",
                scheme_id=scheme.scheme_id,
                field="premature_terms",
            )


def _check_rate(value: Optional[Decimal], field: str, scheme_id: str, slab_id: str) -> Iterator[InvariantViolation]:
    if value is None:
        return
    if value < 0 or value > MAX_INTEREST_RATE:
        yield InvariantViolation(
            rule="non_negative_values",
            message=f"Slab {slab_id}: {field} ({value}) must be between 0 and {MAX_INTEREST_RATE}",
            scheme_id=scheme_id,
            slab_id=slab_id,
            field=field,
        )
    elif value != value.quantize(RATE_PRECISION):
        yield InvariantViolation(
            rule="non_negative_values",
            message=f"Slab {slab_id}: {field} ({value}) allows at most two decimal places",
            scheme_id=scheme_id,
            slab_id=slab_id,
            field=field,
        )


def check_non_negative_values(issuer: Issuer) -> Iterator[InvariantViolation]:
    for name in ("min_deposit_amount", "max_deposit_amount"):
        value = getattr(issuer, name)
        if value is not None and value < 0:
            yield InvariantViolation(
                rule="non_negative_values",
                message=f"Issuer {issuer.issuer_id}: {name} must not be negative",
                field=name,
            )

    for scheme in issuer.schemes:
        for name in (
            "lock_in_months",
            "min_amount",
            "max_amount",
            "senior_citizen_bonus_bps",
            "women_bonus_bps",
            "renewal_bonus_bps",
        ):
            value = getattr(scheme, name)
            if value is not None and value < 0:
                yield InvariantViolation(
                    rule="non_negative_values",
                    message=f"Scheme {scheme.scheme_id}: {name} must not be negative",
                    scheme_id=scheme.scheme_id,
                    field=name,
                )
        for slab in scheme.rate_slabs:
            yield from _check_rate(slab.base_interest_rate_pa, "base_interest_rate_pa", scheme.scheme_id, slab.slab_id)
            yield from _check_rate(slab.effective_yield_pa, "effective_yield_pa", scheme.scheme_id, slab.slab_id)


def check_unique_identifiers(issuer: Issuer) -> Iterator[InvariantViolation]:
    seen_schemes = set()
    for scheme in issuer.schemes:
        if scheme.scheme_id in seen_schemes:
            yield InvariantViolation(
                rule="unique_identifiers",
                message=f"Scheme id {scheme.scheme_id} is used more than once in issuer {issuer.issuer_id}",
                scheme_id=scheme.scheme_id,
                field="scheme_id",
            )
        seen_schemes.add(scheme.scheme_id)

        seen_slabs = set()
        for slab in scheme.rate_slabs:
            if slab.slab_id in seen_slabs:
                yield InvariantViolation(
                    rule="unique_identifiers",
                    message=f"Slab id {slab.slab_id} is used more than once in scheme {scheme.scheme_id}",
                    scheme_id=scheme.scheme_id,
                    slab_id=slab.slab_id,
                    field="slab_id",
                )
            seen_slabs.add(slab.slab_id)


def check_schemes_required(issuer: Issuer) -> Iterator[InvariantViolation]:
    if not issuer.schemes:
        yield InvariantViolation(
            rule="schemes_required",
            message=f"Issuer {issuer.issuer_id} must have at least one scheme",
            field="schemes",
        )


def check_slabs_required(issuer: Issuer) -> Iterator[InvariantViolation]:
    for scheme in issuer.schemes:
        if not scheme.rate_slabs:
            yield InvariantViolation(
                rule="slabs_required",
                message=f"Scheme {scheme.scheme_id} must have at least one rate slab",
                scheme_id=scheme.scheme_id,
                field="rate_slabs",
            )


def check_active_scheme_required(issuer: Issuer) -> Iterator[InvariantViolation]:
    # Empty scheme lists are reported by schemes_required
    if issuer.is_active and issuer.schemes and not any(s.is_active for s in issuer.schemes):
        yield InvariantViolation(
            rule="active_scheme_required",
            message=f"Active issuer {issuer.issuer_id} must retain at least one active scheme",
            field="schemes",
        )


def check_credit_rating_pair(issuer: Issuer) -> Iterator[InvariantViolation]:
    if _blank(issuer.credit_rating_agency) != _blank(issuer.credit_rating):
        yield InvariantViolation(
            rule="credit_rating_pair",
            message="credit_rating_agency and credit_rating must both be set or both be empty",
            field="credit_rating" if _blank(issuer.credit_rating) else "credit_rating_agency",
        )


def check_withdrawal_policy_required(issuer: Issuer) -> Iterator[InvariantViolation]:
    if _blank(issuer.premature_withdrawal_policy):
        yield InvariantViolation(
            rule="withdrawal_policy_required",
            message="premature_withdrawal_policy must not be empty",
            field="premature_withdrawal_policy",
        )


def check_deposit_bounds_order(issuer: Issuer) -> Iterator[InvariantViolation]:
    if issuer.max_deposit_amount is not None and issuer.min_deposit_amount > issuer.max_deposit_amount:
        yield InvariantViolation(
            rule="deposit_bounds_order",
            message=(
                f"Issuer {issuer.issuer_id}: min_deposit_amount ({issuer.min_deposit_amount}) "
                f"must be <= max_deposit_amount ({issuer.max_deposit_amount})"
            ),
            field="min_deposit_amount",
        )
    for scheme in issuer.schemes:
        if scheme.min_amount is not None and scheme.max_amount is not None and scheme.min_amount > scheme.max_amount:
            yield InvariantViolation(
                rule="deposit_bounds_order",
                message=(
                    f"Scheme {scheme.scheme_id}: min_amount ({scheme.min_amount}) "
                    f"must be <= max_amount ({scheme.max_amount})"
                ),
                scheme_id=scheme.scheme_id,
                field="min_amount",
            )


def check_identifier_format(issuer: Issuer) -> Iterator[InvariantViolation]:
    if not ISSUER_ID_PATTERN.match(issuer.issuer_id or ""):
        yield InvariantViolation(
            rule="identifier_format",
            message=f'Issuer id "{issuer.issuer_id}" must match [a-z0-9_-]+',
            field="issuer_id",
        )
    for scheme in issuer.schemes:
        if not CHILD_ID_PATTERN.match(scheme.scheme_id or ""):
            yield InvariantViolation(
                rule="identifier_format",
                message=f'Scheme id "{scheme.scheme_id}" must match [A-Za-z0-9_-]+',
                scheme_id=scheme.scheme_id,
                field="scheme_id",
            )
        for slab in scheme.rate_slabs:
            if not CHILD_ID_PATTERN.match(slab.slab_id or ""):
                yield InvariantViolation(
                    rule="identifier_format",
                    message=f'Slab id "{slab.slab_id}" must match [A-Za-z0-9_-]+',
                    scheme_id=scheme.scheme_id,
                    slab_id=slab.slab_id,
                    field="slab_id",
                )


# Rule id -> checker. Insertion order is the reporting order.
RULES: Dict[str, RuleChecker] = {
    "tenure_order": check_tenure_order,
    "slab_within_scheme_tenure": check_slab_within_scheme_tenure,
    "cumulative_on_maturity_only": check_cumulative_on_maturity_only,
    "non_cumulative_excludes_on_maturity": check_non_cumulative_excludes_on_maturity,
    "slab_frequency_allowed": check_slab_frequency_allowed,
    "premature_terms": check_premature_terms,
    "non_negative_values": check_non_negative_values,
    "unique_identifiers": check_unique_identifiers,
    "schemes_required": check_schemes_required,
    "slabs_required": check_slabs_required,
    "active_scheme_required": check_active_scheme_required,
    "credit_rating_pair": check_credit_rating_pair,
    "withdrawal_policy_required": check_withdrawal_policy_required,
    "deposit_bounds_order": check_deposit_bounds_order,
    "identifier_format": check_identifier_format,
}


def validate_issuer(issuer: Issuer) -> List[InvariantViolation]:
    """Run every rule against the full tree and collect all violations"""
    violations: List[InvariantViolation] = []
    for checker in RULES.values():
        violations.extend(checker(issuer))
    return violations


def ensure_valid(issuer: Issuer) -> None:
    """
    Raise if the candidate tree breaks any rule.

    Raises:
        InvariantViolationError: carrying every violation found
    """
    violations = validate_issuer(issuer)
    if violations:
        raise InvariantViolationError(violations)
