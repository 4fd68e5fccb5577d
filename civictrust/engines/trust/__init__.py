"""
Trust Engine - politician trust scoring.
"""

from civictrust.engines.trust.trust_score import (
    TrustScoreBreakdown,
    TrustScoreEngine,
    TrustScoreInputs,
    compute_trust_score,
    score_components,
)

__all__ = [
    "TrustScoreBreakdown",
    "TrustScoreEngine",
    "TrustScoreInputs",
    "compute_trust_score",
    "score_components",
]
