"""Pydantic schemas for API request/response validation.

Schemas check shape and types only. Business rules (tenure bands, payout
frequencies, bonus signs...) are left to the domain validator so that every
violation comes back in one field-tagged list.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from fd_catalog.domain.models import CompoundingFrequency, IssuerType, PayoutFrequency


class RateSlabSchema(BaseModel):
    """Tenure band with a base annual rate"""

    slab_id: str
    tenure_min_months: int
    tenure_max_months: int
    payout_frequency: PayoutFrequency
    base_interest_rate_pa: Decimal = Field(..., description="Annual rate in percent, e.g. 7.50")
    compounding_frequency: Optional[CompoundingFrequency] = None
    effective_yield_pa: Optional[Decimal] = Field(None, description="Display only; never used for maturity")
    notes_public_display: Optional[str] = None
    is_active: bool = True


class SchemeSchema(BaseModel):
    """Deposit product variant, embedded in an issuer"""

    scheme_id: str
    scheme_name: str
    description_short: Optional[str] = None
    is_cumulative: bool
    payout_frequencies: List[PayoutFrequency]
    lock_in_months: int = 0
    premature_allowed: bool = False
    premature_terms: Optional[str] = None
    min_tenure_months: int
    max_tenure_months: int
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    senior_citizen_bonus_bps: int = 0
    women_bonus_bps: int = 0
    renewal_bonus_bps: int = 0
    tds_applicable: bool = True
    show_form15g15h_option: bool = False
    is_active: bool = True
    rate_slabs: List[RateSlabSchema]


class IssuerCreateRequest(BaseModel):
    """Request body for POST /v1/fd/issuers"""

    issuer_id: Optional[str] = Field(None, description="Derived from short_name when omitted")
    legal_name: str
    short_name: str
    issuer_type: IssuerType
    credit_rating_agency: Optional[str] = None
    credit_rating: Optional[str] = None
    min_deposit_amount: Decimal
    max_deposit_amount: Optional[Decimal] = None
    premature_withdrawal_policy: str
    notes_compliance: Optional[str] = None
    is_active: bool = True
    schemes: List[SchemeSchema]


class IssuerUpdateRequest(BaseModel):
    """Request body for PUT /v1/fd/issuers/{issuer_id}; unset fields are left unchanged"""

    revision: int = Field(..., description="Revision the caller last read")
    legal_name: Optional[str] = None
    short_name: Optional[str] = None
    issuer_type: Optional[IssuerType] = None
    credit_rating_agency: Optional[str] = None
    credit_rating: Optional[str] = None
    min_deposit_amount: Optional[Decimal] = None
    max_deposit_amount: Optional[Decimal] = None
    premature_withdrawal_policy: Optional[str] = None
    notes_compliance: Optional[str] = None
    is_active: Optional[bool] = None
    schemes: Optional[List[SchemeSchema]] = None


class IssuerResponse(BaseModel):
    """Issuer with all nested schemes and slabs"""

    issuer_id: str
    revision: int
    legal_name: str
    short_name: str
    issuer_type: IssuerType
    credit_rating_agency: Optional[str] = None
    credit_rating: Optional[str] = None
    min_deposit_amount: Decimal
    max_deposit_amount: Optional[Decimal] = None
    premature_withdrawal_policy: str
    notes_compliance: Optional[str] = None
    is_active: bool
    schemes: List[SchemeSchema]


class IssuerSummary(BaseModel):
    """Single issuer in a listing"""

    issuer_id: str
    revision: int
    legal_name: str
    short_name: str
    issuer_type: IssuerType
    credit_rating_agency: Optional[str] = None
    credit_rating: Optional[str] = None
    is_active: bool
    scheme_count: int
    active_scheme_count: int


class ViolationSchema(BaseModel):
    """Field-tagged business rule failure"""

    rule: str
    message: str
    scheme_id: Optional[str] = None
    slab_id: Optional[str] = None
    field: Optional[str] = None


class QuoteRequestSchema(BaseModel):
    """Request body for POST /v1/fd/quotes"""

    issuer_id: str = Field(..., min_length=1)
    scheme_id: str = Field(..., min_length=1)
    deposit_amount: Decimal
    tenure_months: int
    payout_frequency: PayoutFrequency
    deposit_date: Optional[date] = Field(None, description="Defaults to today")
    senior_citizen: bool = False
    women: bool = False
    renewal: bool = False


class QuoteResponse(BaseModel):
    """Response for POST /v1/fd/quotes"""

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
    periodic_payout_amount: Optional[Decimal] = None
    compounding_frequency: Optional[CompoundingFrequency] = None
    effective_yield_pa: Optional[Decimal] = None
    deposit_date: date
    maturity_date: date
    is_cumulative: bool
    tds_applicable: bool
    form15g15h_available: bool


class QuoteHistoryItem(BaseModel):
    """Single logged quote"""

    quote_id: str
    scheme_id: str
    slab_id: str
    issuer_revision: int
    principal: Decimal
    tenure_months: int
    payout_frequency: str
    total_rate_bps: int
    maturity_amount: Decimal
    maturity_date: date
    created_at: str


class QuoteHistoryResponse(BaseModel):
    """Response for GET /v1/fd/quotes/history"""

    issuer_id: str
    quotes: List[QuoteHistoryItem]
