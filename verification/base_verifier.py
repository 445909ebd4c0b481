# --- File: verification/base_verifier.py ---
from abc import ABC, abstractmethod
from typing import Optional
import logging

from pydantic import BaseModel, Field

from core.models import VerificationStatus
from security.envelope import Envelope

logger = logging.getLogger(__name__)

class VerificationRequest(BaseModel):
    """What an external verification service receives for one document."""
    deal_id: str
    document_id: str
    content: Envelope = Field(..., description="Sealed document content; the service never receives plaintext from the engine")


class VerificationOutcome(BaseModel):
    """Result reported back for one document. Artifacts are optional and applied independently."""
    status: VerificationStatus
    redacted_content: Optional[Envelope] = None
    original_principal_info: Optional[Envelope] = None
    note: Optional[str] = None


class VerificationCollaborator(ABC):
    """
    Abstract base for document verification services (AI scrutiny, redaction, manual review).
    Implementations own their own timeout and retry policy and return exactly one outcome per request.
    """
    def __init__(self, collaborator_id: str):
        self.collaborator_id = collaborator_id
        logger.info(f"Verification collaborator '{self.collaborator_id}' initialized.")

    @abstractmethod
    async def verify(self, request: VerificationRequest) -> VerificationOutcome:
        """Inspects the sealed document and returns its terminal verification outcome."""
        pass
