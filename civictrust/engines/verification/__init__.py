"""
Verification Engine - identity-proof intake and adjudication.
"""

from civictrust.engines.verification.workflow import (
    VerificationWorkflow,
    VerificationStatus,
    can_transition,
    valid_transitions,
)

__all__ = [
    "VerificationWorkflow",
    "VerificationStatus",
    "can_transition",
    "valid_transitions",
]
