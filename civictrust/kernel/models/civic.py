"""
Civic source tables read by the trust score engine.

These tables are populated by the ingestion jobs (parliament roll calls,
campaign finance filings, fact-check tracking). This core maps them only to
read them and never writes to them outside of tests and fixtures.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from civictrust.kernel.models.base import Base, CreatedAtMixin


class VoteDecision:
    """Roll-call decision values as recorded by the parliament feed."""
    YES = "yes"
    NO = "no"
    ABSTAIN = "abstain"
    PAIRED = "paired"


class Politician(Base, CreatedAtMixin):
    __tablename__ = "politicians"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    party: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    parliament_member_id: Mapped[Optional[str]] = mapped_column(
        String(50),
        unique=True,
        nullable=True,
    )


class BillRollcallRecord(Base, CreatedAtMixin):
    """One member's decision on one roll call."""

    __tablename__ = "bill_rollcall_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rollcall_id: Mapped[int] = mapped_column(Integer, nullable=False)
    member_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    decision: Mapped[str] = mapped_column(String(20), nullable=False)
    party: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class CampaignFinance(Base, CreatedAtMixin):
    """Campaign-finance aggregate for a reporting period."""

    __tablename__ = "campaign_finance"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    politician_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("politicians.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class PoliticianTruthTracking(Base, CreatedAtMixin):
    """Fact-check veracity score on a 0..5 scale."""

    __tablename__ = "politician_truth_tracking"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    politician_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("politicians.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    truth_score: Mapped[Optional[Decimal]] = mapped_column(Numeric(3, 2), nullable=True)
    fact_check_result: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    checked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
