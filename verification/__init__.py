# verification/__init__.py
from .base_verifier import VerificationCollaborator, VerificationOutcome, VerificationRequest
from .dispatcher import VerificationDispatcher
from .mandate_verifier import SimulatedMandateVerifier

__all__ = [
    "VerificationCollaborator",
    "VerificationOutcome",
    "VerificationRequest",
    "VerificationDispatcher",
    "SimulatedMandateVerifier",
]
