"""
Pydantic schemas for trust scores.
"""

from civictrust.schemas.common import CamelModel


class TrustScoreComponents(CamelModel):
    """Intermediate values behind a score."""

    vote_consistency: float
    spend_penalty: float
    truth_penalty: float
    vote_count: int


class TrustScoreResponse(CamelModel):
    politician_id: int
    trust_score: int
    components: TrustScoreComponents
