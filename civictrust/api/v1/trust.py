"""
Politician trust score endpoint.
"""

from fastapi import APIRouter

from civictrust.api.deps import DbSession
from civictrust.engines.trust.trust_score import TrustScoreEngine
from civictrust.schemas.trust import TrustScoreComponents, TrustScoreResponse

router = APIRouter()


@router.get("/politicians/{politician_id}/score", response_model=TrustScoreResponse)
async def get_trust_score(politician_id: int, db: DbSession):
    """Compute a politician's trust score from current source data."""
    breakdown = await TrustScoreEngine(db).breakdown(politician_id)
    return TrustScoreResponse(
        politician_id=politician_id,
        trust_score=breakdown.trust_score,
        components=TrustScoreComponents(
            vote_consistency=breakdown.vote_consistency,
            spend_penalty=breakdown.spend_penalty,
            truth_penalty=breakdown.truth_penalty,
            vote_count=breakdown.vote_count,
        ),
    )
