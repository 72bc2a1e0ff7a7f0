"""SQLAlchemy ORM models for the FD catalog"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, JSON, Numeric, Date
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class FDIssuerRecord(Base):
    """One row per issuer; schemes and slabs live embedded in the document"""

    __tablename__ = "fd_issuer"

    issuer_id = Column(String(64), primary_key=True)
    legal_name = Column(Text, nullable=False)
    short_name = Column(Text, nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, index=True)
    revision = Column(Integer, nullable=False, default=1)
    document = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class FDRateQuote(Base):
    """Quote issued against a catalog revision; blocks hard deletion of what it references"""

    __tablename__ = "fd_rate_quote"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    issuer_id = Column(String(64), nullable=False, index=True)
    scheme_id = Column(String(64), nullable=False)
    slab_id = Column(String(64), nullable=False)
    issuer_revision = Column(Integer, nullable=False)
    requested_by = Column(Text, nullable=True)
    principal = Column(Numeric(18, 2), nullable=False)
    tenure_months = Column(Integer, nullable=False)
    payout_frequency = Column(Text, nullable=False)
    total_rate_bps = Column(Integer, nullable=False)
    maturity_amount = Column(Numeric(18, 2), nullable=False)
    maturity_date = Column(Date, nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
