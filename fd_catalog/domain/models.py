"""Domain models - pure Python dataclasses for the FD product catalog"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional


class IssuerType(str, Enum):
    NBFC = "NBFC"
    BANK = "Bank"
    CORPORATE = "Corporate"


class PayoutFrequency(str, Enum):
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    HALF_YEARLY = "Half-Yearly"
    YEARLY = "Yearly"
    ON_MATURITY = "On Maturity"


class CompoundingFrequency(str, Enum):
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    HALF_YEARLY = "Half-Yearly"
    YEARLY = "Yearly"


# Periods per year for payouts and compounding
PERIODS_PER_YEAR: Dict[str, int] = {
    "Monthly": 12,
    "Quarterly": 4,
    "Half-Yearly": 2,
    "Yearly": 1,
}


@dataclass
class RateSlab:
    """Tenure band with a base annual rate"""

    slab_id: str
    tenure_min_months: int
    tenure_max_months: int
    payout_frequency: PayoutFrequency
    base_interest_rate_pa: Decimal  # Percentage, e.g. Decimal("7.50")
    compounding_frequency: Optional[CompoundingFrequency] = None
    effective_yield_pa: Optional[Decimal] = None  # Display only
    notes_public_display: Optional[str] = None
    is_active: bool = True

    @property
    def base_rate_bps(self) -> int:
        return int((self.base_interest_rate_pa * 100).to_integral_value())

    @property
    def band_width(self) -> int:
        return self.tenure_max_months - self.tenure_min_months

    def covers(self, tenure_months: int) -> bool:
        return self.tenure_min_months <= tenure_months <= self.tenure_max_months


@dataclass
class Scheme:
    """Deposit product variant offered by an issuer"""

    scheme_id: str
    scheme_name: str
    is_cumulative: bool
    payout_frequencies: List[PayoutFrequency]
    min_tenure_months: int
    max_tenure_months: int
    rate_slabs: List[RateSlab]
    lock_in_months: int = 0
    premature_allowed: bool = False
    premature_terms: Optional[str] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    senior_citizen_bonus_bps: int = 0
    women_bonus_bps: int = 0
    renewal_bonus_bps: int = 0
    tds_applicable: bool = True
    show_form15g15h_option: bool = False
    description_short: Optional[str] = None
    is_active: bool = True

    def find_slab(self, slab_id: str) -> Optional[RateSlab]:
        return next((s for s in self.rate_slabs if s.slab_id == slab_id), None)


@dataclass
class Issuer:
    """Deposit-taking entity; the unit of storage and concurrency"""

    issuer_id: str
    legal_name: str
    short_name: str
    issuer_type: IssuerType
    min_deposit_amount: Decimal
    premature_withdrawal_policy: str
    schemes: List[Scheme]
    max_deposit_amount: Optional[Decimal] = None
    credit_rating_agency: Optional[str] = None
    credit_rating: Optional[str] = None
    notes_compliance: Optional[str] = None
    is_active: bool = True

    def find_scheme(self, scheme_id: str) -> Optional[Scheme]:
        return next((s for s in self.schemes if s.scheme_id == scheme_id), None)


@dataclass
class IssuerRecord:
    """Stored issuer plus its optimistic-concurrency revision"""

    issuer: Issuer
    revision: int


@dataclass
class InvariantViolation:
    """Single business-rule failure, tagged with where it happened"""

    rule: str
    message: str
    scheme_id: Optional[str] = None
    slab_id: Optional[str] = None
    field: Optional[str] = None


@dataclass
class QuoteRequest:
    """Inputs for a rate/maturity calculation"""

    deposit_amount: Decimal
    tenure_months: int
    payout_frequency: PayoutFrequency
    deposit_date: date
    senior_citizen: bool = False
    women: bool = False
    is_renewal: bool = False


@dataclass
class Quote:
    """Output of a rate/maturity calculation"""

    issuer_id: str
    scheme_id: str
    slab_id: str
    principal: Decimal
    tenure_months: int
    payout_frequency: PayoutFrequency
    base_rate_bps: int
    bonus_bps: Dict[str, int]
    total_rate_bps: int
    total_rate_pa: Decimal
    maturity_amount: Decimal
    total_interest: Decimal
    deposit_date: date
    maturity_date: date
    tds_applicable: bool
    form15g15h_available: bool
    is_cumulative: bool
    periodic_payout_amount: Optional[Decimal] = None
    compounding_frequency: Optional[CompoundingFrequency] = None
    effective_yield_pa: Optional[Decimal] = None
