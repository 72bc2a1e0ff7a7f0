"""Pytest fixtures for testing"""

import pytest
from decimal import Decimal
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fd_catalog.api.main import create_app
from fd_catalog.infrastructure.database.models import Base
from fd_catalog.infrastructure.database.session import get_db
from fd_catalog.domain.models import (
    CompoundingFrequency,
    Issuer,
    IssuerType,
    PayoutFrequency,
    RateSlab,
    Scheme,
)


# Test database: one shared in-memory connection
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN_HEADERS = {"X-User-Id": "ECS001", "X-User-Role": "admin"}


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def admin_headers() -> dict:
    return dict(ADMIN_HEADERS)


def build_slab(**overrides) -> RateSlab:
    fields = dict(
        slab_id="CUM-12-24",
        tenure_min_months=12,
        tenure_max_months=24,
        payout_frequency=PayoutFrequency.ON_MATURITY,
        base_interest_rate_pa=Decimal("7.50"),
        compounding_frequency=CompoundingFrequency.QUARTERLY,
    )
    fields.update(overrides)
    return RateSlab(**fields)


def build_cumulative_scheme(**overrides) -> Scheme:
    fields = dict(
        scheme_id="SFL-CUM",
        scheme_name="Shriram Cumulative Deposit",
        is_cumulative=True,
        payout_frequencies=[PayoutFrequency.ON_MATURITY],
        min_tenure_months=12,
        max_tenure_months=60,
        premature_allowed=True,
        premature_terms="Allowed after 3 months lock-in at 1% lower rate",
        lock_in_months=3,
        senior_citizen_bonus_bps=50,
        women_bonus_bps=10,
        renewal_bonus_bps=25,
        tds_applicable=True,
        show_form15g15h_option=True,
        rate_slabs=[
            build_slab(),
            build_slab(
                slab_id="CUM-25-60",
                tenure_min_months=25,
                tenure_max_months=60,
                base_interest_rate_pa=Decimal("8.00"),
            ),
        ],
    )
    fields.update(overrides)
    return Scheme(**fields)


def build_non_cumulative_scheme(**overrides) -> Scheme:
    fields = dict(
        scheme_id="SFL-NC",
        scheme_name="Shriram Monthly Income",
        is_cumulative=False,
        payout_frequencies=[PayoutFrequency.MONTHLY, PayoutFrequency.QUARTERLY],
        min_tenure_months=12,
        max_tenure_months=60,
        senior_citizen_bonus_bps=50,
        women_bonus_bps=0,
        renewal_bonus_bps=0,
        tds_applicable=True,
        show_form15g15h_option=False,
        rate_slabs=[
            build_slab(
                slab_id="NC-Q-12-36",
                tenure_min_months=12,
                tenure_max_months=36,
                payout_frequency=PayoutFrequency.QUARTERLY,
                base_interest_rate_pa=Decimal("7.25"),
                compounding_frequency=None,
            ),
            build_slab(
                slab_id="NC-M-12-36",
                tenure_min_months=12,
                tenure_max_months=36,
                payout_frequency=PayoutFrequency.MONTHLY,
                base_interest_rate_pa=Decimal("7.00"),
                compounding_frequency=None,
            ),
        ],
    )
    fields.update(overrides)
    return Scheme(**fields)


def build_issuer(**overrides) -> Issuer:
    fields = dict(
        issuer_id="shriram_finance",
        legal_name="Shriram Finance Limited",
        short_name="Shriram Finance",
        issuer_type=IssuerType.NBFC,
        credit_rating_agency="CRISIL",
        credit_rating="AA+",
        min_deposit_amount=Decimal("5000"),
        max_deposit_amount=Decimal("50000000"),
        premature_withdrawal_policy="Premature withdrawal allowed after 3 months with reduced interest",
        schemes=[build_cumulative_scheme(), build_non_cumulative_scheme()],
    )
    fields.update(overrides)
    return Issuer(**fields)


@pytest.fixture
def make_slab() -> Callable[..., RateSlab]:
    return build_slab


@pytest.fixture
def make_scheme() -> Callable[..., Scheme]:
    return build_cumulative_scheme


@pytest.fixture
def make_non_cumulative_scheme() -> Callable[..., Scheme]:
    return build_non_cumulative_scheme


@pytest.fixture
def make_issuer() -> Callable[..., Issuer]:
    return build_issuer


@pytest.fixture
def issuer_payload() -> dict:
    """API payload for a valid issuer (no issuer_id, derived from short_name)"""
    return {
        "legal_name": "Bajaj Finance Limited",
        "short_name": "Bajaj Finance",
        "issuer_type": "NBFC",
        "credit_rating_agency": "CRISIL",
        "credit_rating": "AAA",
        "min_deposit_amount": "15000",
        "max_deposit_amount": "50000000",
        "premature_withdrawal_policy": "Not allowed within 3 months of deposit",
        "schemes": [
            {
                "scheme_id": "BAJ-CUM",
                "scheme_name": "Bajaj Cumulative FD",
                "is_cumulative": True,
                "payout_frequencies": ["On Maturity"],
                "min_tenure_months": 12,
                "max_tenure_months": 60,
                "premature_allowed": False,
                "senior_citizen_bonus_bps": 40,
                "women_bonus_bps": 10,
                "renewal_bonus_bps": 25,
                "tds_applicable": True,
                "show_form15g15h_option": True,
                "rate_slabs": [
                    {
                        "slab_id": "BAJ-CUM-12-24",
                        "tenure_min_months": 12,
                        "tenure_max_months": 24,
                        "payout_frequency": "On Maturity",
                        "base_interest_rate_pa": "7.50",
                        "compounding_frequency": "Quarterly",
                    },
                    {
                        "slab_id": "BAJ-CUM-25-60",
                        "tenure_min_months": 25,
                        "tenure_max_months": 60,
                        "payout_frequency": "On Maturity",
                        "base_interest_rate_pa": "8.10",
                        "compounding_frequency": "Yearly",
                    },
                ],
            },
            {
                "scheme_id": "BAJ-NC",
                "scheme_name": "Bajaj Periodic Payout FD",
                "is_cumulative": False,
                "payout_frequencies": ["Monthly", "Quarterly"],
                "min_tenure_months": 12,
                "max_tenure_months": 60,
                "premature_allowed": True,
                "premature_terms": "Allowed after 3 months; rate reduced by 1%",
                "tds_applicable": True,
                "show_form15g15h_option": False,
                "rate_slabs": [
                    {
                        "slab_id": "BAJ-NC-Q-12-60",
                        "tenure_min_months": 12,
                        "tenure_max_months": 60,
                        "payout_frequency": "Quarterly",
                        "base_interest_rate_pa": "7.25",
                    },
                ],
            },
        ],
    }
