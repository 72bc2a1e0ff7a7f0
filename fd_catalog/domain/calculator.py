"""Rate and maturity calculator - core FD quoting arithmetic"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Tuple
from fd_catalog.domain.models import (
    Issuer,
    Scheme,
    RateSlab,
    Quote,
    QuoteRequest,
    CompoundingFrequency,
    PayoutFrequency,
    PERIODS_PER_YEAR,
)
from fd_catalog.domain.exceptions import QuoteValidationError
from fd_catalog.utils.date_utils import add_months

DEFAULT_COMPOUNDING = CompoundingFrequency.QUARTERLY
CENTS = Decimal("0.01")
BPS_PER_UNIT = Decimal(10_000)


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def effective_deposit_bounds(issuer: Issuer, scheme: Scheme) -> Tuple[Decimal, Optional[Decimal]]:
    """Scheme bounds override issuer bounds when present"""
    minimum = scheme.min_amount if scheme.min_amount is not None else issuer.min_deposit_amount
    maximum = scheme.max_amount if scheme.max_amount is not None else issuer.max_deposit_amount
    return minimum, maximum


def check_deposit_amount(issuer: Issuer, scheme: Scheme, amount: Decimal) -> None:
    minimum, maximum = effective_deposit_bounds(issuer, scheme)
    if amount <= 0:
        raise QuoteValidationError("deposit_amount must be positive")
    if amount < minimum:
        raise QuoteValidationError(f"deposit_amount {amount} is below the minimum of {minimum}")
    if maximum is not None and amount > maximum:
        raise QuoteValidationError(f"deposit_amount {amount} exceeds the maximum of {maximum}")


def check_tenure(scheme: Scheme, tenure_months: int) -> None:
    """Tenure must be positive and inside the scheme range before any slab is looked up"""
    if tenure_months <= 0:
        raise QuoteValidationError("tenure_months must be positive")
    if not scheme.min_tenure_months <= tenure_months <= scheme.max_tenure_months:
        raise QuoteValidationError(
            f"tenure_months {tenure_months} is outside scheme range "
            f"{scheme.min_tenure_months}-{scheme.max_tenure_months}"
        )


def check_slab_fit(scheme: Scheme, slab: RateSlab, tenure_months: int, payout_frequency: PayoutFrequency) -> None:
    """Re-check what the resolver guarantees; resolution and calculation can be called separately"""
    if scheme.find_slab(slab.slab_id) != slab:
        raise QuoteValidationError(f"Slab {slab.slab_id} does not belong to scheme {scheme.scheme_id}")
    if not slab.is_active:
        raise QuoteValidationError(f"Slab {slab.slab_id} is not active")
    if not slab.covers(tenure_months):
        raise QuoteValidationError(
            f"tenure_months {tenure_months} is outside slab {slab.slab_id} range "
            f"{slab.tenure_min_months}-{slab.tenure_max_months}"
        )
    if payout_frequency not in scheme.payout_frequencies or payout_frequency != slab.payout_frequency:
        raise QuoteValidationError(
            f'payout frequency "{payout_frequency.value}" does not match slab {slab.slab_id}'
        )


def bonus_breakdown(scheme: Scheme, request: QuoteRequest) -> Dict[str, int]:
    """Bonuses that apply to this request, in bps. Additive, never compounded with each other."""
    return {
        "senior_citizen": scheme.senior_citizen_bonus_bps if request.senior_citizen else 0,
        "women": scheme.women_bonus_bps if request.women else 0,
        "renewal": scheme.renewal_bonus_bps if request.is_renewal else 0,
    }


def cumulative_maturity_amount(
    principal: Decimal,
    rate_bps: int,
    tenure_months: int,
    compounding: CompoundingFrequency = DEFAULT_COMPOUNDING,
) -> Decimal:
    """
    Compound the principal over the tenure.

    maturity = P × (1 + r/n)^(n × tenure_months/12)

    Unrounded; the exponent is fractional when the tenure is not a whole
    number of compounding periods.
    """
    n = PERIODS_PER_YEAR[compounding.value]
    rate = Decimal(rate_bps) / BPS_PER_UNIT
    exponent = Decimal(n * tenure_months) / Decimal(12)
    return principal * (1 + rate / n) ** exponent


def effective_annual_yield(rate_bps: int, compounding: CompoundingFrequency = DEFAULT_COMPOUNDING) -> Decimal:
    """Annualised yield in percent: ((1 + r/n)^n - 1) × 100, two decimals"""
    n = PERIODS_PER_YEAR[compounding.value]
    rate = Decimal(rate_bps) / BPS_PER_UNIT
    return round_money(((1 + rate / n) ** n - 1) * 100)


def periodic_payout_amount(principal: Decimal, rate_bps: int, payout_frequency: PayoutFrequency) -> Decimal:
    """Interest disbursed each payout period for non-cumulative schemes"""
    periods = PERIODS_PER_YEAR[payout_frequency.value]
    return round_money(principal * Decimal(rate_bps) / BPS_PER_UNIT / periods)


def calculate_quote(issuer: Issuer, scheme: Scheme, slab: RateSlab, request: QuoteRequest) -> Quote:
    """
    Produce a quote for a resolved slab.

    Steps:
    1. Deposit amount within effective bounds
    2. Tenure and frequency consistent with scheme and slab
    3. Total rate = base + applicable bonuses (bps)
    4. Cumulative: compound at the slab's compounding frequency (default quarterly)
       Non-cumulative: periodic payout, principal returned at maturity
    5. Maturity date by calendar-month arithmetic
    6. TDS / Form-15G/15H flags copied from the scheme

    Raises:
        QuoteValidationError: Out-of-range amount or tenure, or mismatched slab
    """
    check_deposit_amount(issuer, scheme, request.deposit_amount)
    check_tenure(scheme, request.tenure_months)
    check_slab_fit(scheme, slab, request.tenure_months, request.payout_frequency)

    principal = request.deposit_amount
    bonuses = bonus_breakdown(scheme, request)
    total_bps = slab.base_rate_bps + sum(bonuses.values())

    compounding = None
    effective_yield = None
    periodic_payout = None

    if scheme.is_cumulative:
        compounding = slab.compounding_frequency or DEFAULT_COMPOUNDING
        maturity_amount = round_money(
            cumulative_maturity_amount(principal, total_bps, request.tenure_months, compounding)
        )
        total_interest = maturity_amount - principal
        effective_yield = effective_annual_yield(total_bps, compounding)
    else:
        if request.payout_frequency == PayoutFrequency.ON_MATURITY:
            raise QuoteValidationError("Non-cumulative schemes pay out periodically, not on maturity")
        # Interest leaves the deposit each period; only principal comes back at maturity
        periodic_payout = periodic_payout_amount(principal, total_bps, request.payout_frequency)
        total_interest = round_money(
            principal * Decimal(total_bps) / BPS_PER_UNIT * Decimal(request.tenure_months) / Decimal(12)
        )
        maturity_amount = round_money(principal)

    return Quote(
        issuer_id=issuer.issuer_id,
        scheme_id=scheme.scheme_id,
        slab_id=slab.slab_id,
        principal=principal,
        tenure_months=request.tenure_months,
        payout_frequency=request.payout_frequency,
        base_rate_bps=slab.base_rate_bps,
        bonus_bps=bonuses,
        total_rate_bps=total_bps,
        total_rate_pa=(Decimal(total_bps) / 100).quantize(CENTS),
        maturity_amount=maturity_amount,
        total_interest=total_interest,
        deposit_date=request.deposit_date,
        maturity_date=add_months(request.deposit_date, request.tenure_months),
        tds_applicable=scheme.tds_applicable,
        form15g15h_available=scheme.show_form15g15h_option,
        is_cumulative=scheme.is_cumulative,
        periodic_payout_amount=periodic_payout,
        compounding_frequency=compounding,
        effective_yield_pa=effective_yield,
    )
