"""
Trust Score Engine - bounded 0..100 trust score for a politician.

Three signals feed the score:
- Vote consistency: share of roll calls where the member took a side
- Spend penalty: size of the latest campaign-finance filing
- Truth penalty: latest fact-check veracity on a 0..5 scale

Missing data is neutral-to-cautious: no votes counts as 50% consistency and
no fact-check history costs a flat 10 points of truth penalty, so a
politician with no data at all scores 58.
"""

import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from civictrust.kernel.errors import NotFoundError
from civictrust.kernel.models.civic import (
    BillRollcallRecord,
    CampaignFinance,
    Politician,
    PoliticianTruthTracking,
    VoteDecision,
)

Number = Union[int, float, Decimal]

BASE_SCORE = 60.0
VOTE_WEIGHT = 0.6
TRUTH_WEIGHT = 0.2
NEUTRAL_VOTE_CONSISTENCY = 50.0
SPEND_PENALTY_CAP = 20.0
SPEND_PENALTY_DIVISOR = 10000.0
TRUTH_SCALE = 20.0
NO_TRUTH_PENALTY = 10.0

_NON_COMMITTAL = {VoteDecision.ABSTAIN, VoteDecision.PAIRED}


@dataclass
class TrustScoreInputs:
    """Raw signals for one politician."""
    votes: List[str] = field(default_factory=list)
    latest_finance_amount: Optional[Number] = None
    latest_truth_score: Optional[Number] = None


class TrustScoreBreakdown(BaseModel):
    """Intermediate values behind a trust score."""

    vote_consistency: float
    spend_penalty: float
    truth_penalty: float
    vote_count: int
    raw_score: float
    trust_score: int


def vote_consistency(votes: Iterable[str]) -> float:
    """Percentage of votes that were neither abstain nor paired. 50 with no votes."""
    decisions = [str(v).strip().lower() for v in votes]
    if not decisions:
        return NEUTRAL_VOTE_CONSISTENCY
    non_committal = sum(1 for d in decisions if d in _NON_COMMITTAL)
    return (1 - non_committal / len(decisions)) * 100


def spend_penalty(amount: Optional[Number]) -> float:
    if amount is None:
        return 0.0
    return min(SPEND_PENALTY_CAP, float(amount) / SPEND_PENALTY_DIVISOR)


def truth_penalty(truth_score: Optional[Number]) -> float:
    if truth_score is None:
        return NO_TRUTH_PENALTY
    return max(0.0, 100 - float(truth_score) * TRUTH_SCALE)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_components(inputs: TrustScoreInputs) -> TrustScoreBreakdown:
    """Compute every intermediate value and the final score."""
    consistency = vote_consistency(inputs.votes)
    spend = spend_penalty(inputs.latest_finance_amount)
    truth = truth_penalty(inputs.latest_truth_score)

    raw = (
        BASE_SCORE
        + (consistency - NEUTRAL_VOTE_CONSISTENCY) * VOTE_WEIGHT
        - spend
        - truth * TRUTH_WEIGHT
    )
    clamped = max(0.0, min(100.0, raw))

    return TrustScoreBreakdown(
        vote_consistency=round(consistency, 2),
        spend_penalty=round(spend, 2),
        truth_penalty=round(truth, 2),
        vote_count=len(inputs.votes),
        raw_score=round(raw, 2),
        trust_score=_round_half_up(clamped),
    )


def compute_trust_score(inputs: TrustScoreInputs) -> int:
    """Pure trust score in [0, 100]. Same inputs always give the same score."""
    return score_components(inputs).trust_score


def _recorded_truth_score(truth: Optional[PoliticianTruthTracking]) -> Optional[Number]:
    """A truth row without a score counts as 0; only a missing row is 'no data'."""
    if truth is None:
        return None
    return truth.truth_score if truth.truth_score is not None else 0


class TrustScoreEngine:
    """Gathers a politician's inputs from the civic source tables and scores them."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def compute(self, politician_id: int) -> int:
        """
        Trust score for a politician.

        Raises:
            NotFoundError: Unknown politician
        """
        return (await self.breakdown(politician_id)).trust_score

    async def breakdown(self, politician_id: int) -> TrustScoreBreakdown:
        inputs = await self.gather_inputs(politician_id)
        return score_components(inputs)

    async def gather_inputs(self, politician_id: int) -> TrustScoreInputs:
        politician = await self.session.get(Politician, politician_id)
        if politician is None:
            raise NotFoundError(
                f"Politician {politician_id} not found",
                context={"politician_id": politician_id},
            )

        votes: List[str] = []
        if politician.parliament_member_id:
            result = await self.session.execute(
                select(BillRollcallRecord.decision).where(
                    BillRollcallRecord.member_id == politician.parliament_member_id
                )
            )
            votes = list(result.scalars().all())

        finance = (
            await self.session.execute(
                select(CampaignFinance)
                .where(CampaignFinance.politician_id == politician_id)
                .order_by(
                    desc(CampaignFinance.date).nulls_last(),
                    desc(CampaignFinance.created_at),
                    desc(CampaignFinance.id),
                )
                .limit(1)
            )
        ).scalar_one_or_none()

        truth = (
            await self.session.execute(
                select(PoliticianTruthTracking)
                .where(PoliticianTruthTracking.politician_id == politician_id)
                .order_by(
                    desc(PoliticianTruthTracking.checked_at).nulls_last(),
                    desc(PoliticianTruthTracking.created_at),
                    desc(PoliticianTruthTracking.id),
                )
                .limit(1)
            )
        ).scalar_one_or_none()

        return TrustScoreInputs(
            votes=votes,
            latest_finance_amount=finance.amount if finance is not None else None,
            latest_truth_score=_recorded_truth_score(truth),
        )
