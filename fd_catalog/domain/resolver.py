"""Slab resolution - find the rate slab that applies to a tenure/frequency request"""

from typing import List
from fd_catalog.domain.models import Scheme, RateSlab, PayoutFrequency
from fd_catalog.domain.exceptions import NoMatchError


def matching_slabs(scheme: Scheme, tenure_months: int, payout_frequency: PayoutFrequency) -> List[RateSlab]:
    """Active slabs whose band contains the tenure and whose frequency equals the request"""
    return [
        slab
        for slab in scheme.rate_slabs
        if slab.is_active and slab.payout_frequency == payout_frequency and slab.covers(tenure_months)
    ]


def resolve_slab(scheme: Scheme, tenure_months: int, payout_frequency: PayoutFrequency) -> RateSlab:
    """
    Pick the applicable slab for a scheme.

    Bands are expected not to overlap, but overlaps are tolerated:
    - Narrowest band wins (most specific)
    - Ties go to the smallest tenure_min_months
    - Remaining ties keep list order (sorted() is stable)

    Raises:
        NoMatchError: No band/frequency combination fits. Callers must not
            substitute a default rate.
    """
    candidates = matching_slabs(scheme, tenure_months, payout_frequency)
    if not candidates:
        raise NoMatchError(
            f"No matching rate slab found in scheme {scheme.scheme_id} "
            f"for {tenure_months} months, {payout_frequency.value} payout"
        )

    return sorted(candidates, key=lambda s: (s.band_width, s.tenure_min_months))[0]
