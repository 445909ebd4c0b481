# --- File: verification/mandate_verifier.py ---
import asyncio
import logging
import re
from typing import List, Tuple

import config
from core.errors import DecryptionError
from core.models import VerificationStatus
from security.envelope_crypto import EnvelopeCipher
from verification.base_verifier import VerificationCollaborator, VerificationOutcome, VerificationRequest

logger = logging.getLogger(__name__)

# Two capitalized words in a row, e.g. "John Smith".
PRINCIPAL_NAME_PATTERN = re.compile(rb"\b[A-Z][a-z]+ [A-Z][a-z]+\b")
REDACTION_MARKER = b"[PRINCIPAL NAME REDACTED]"
NO_PRINCIPAL_FOUND_NOTE = b"No principal-identifying fragments detected"


def redact_principal_names(content: bytes) -> Tuple[bytes, List[bytes]]:
    """Masks every name-like fragment. Returns the masked bytes and the fragments removed, in order."""
    fragments = [match.group(0) for match in PRINCIPAL_NAME_PATTERN.finditer(content)]
    return PRINCIPAL_NAME_PATTERN.sub(REDACTION_MARKER, content), fragments


class SimulatedMandateVerifier(VerificationCollaborator):
    """
    Stand-in for an external AI redaction service. After a fixed delay it masks
    principal names in the document and seals the removed fragments for audit.
    """
    def __init__(
        self,
        cipher: EnvelopeCipher,
        delay_seconds: float = config.VERIFICATION_DELAY_SECONDS,
        collaborator_id: str = "SimulatedMandateVerifier"
    ):
        super().__init__(collaborator_id)
        self.cipher = cipher
        self.delay_seconds = delay_seconds

    async def verify(self, request: VerificationRequest) -> VerificationOutcome:
        logger.info(f"[{self.collaborator_id}] Scrutinizing document {request.document_id} of deal {request.deal_id} (delay {self.delay_seconds}s)")
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        try:
            plaintext = self.cipher.open_envelope(request.content)
        except DecryptionError as e:
            logger.error(f"[{self.collaborator_id}] Could not open document {request.document_id}; rejecting: {e}")
            return VerificationOutcome(
                status=VerificationStatus.REJECTED,
                note=f"Document could not be decrypted: {e}",
            )

        masked, fragments = redact_principal_names(plaintext)
        redacted_envelope = self.cipher.seal(masked)
        principal_info = b"; ".join(fragments) if fragments else NO_PRINCIPAL_FOUND_NOTE
        principal_envelope = self.cipher.seal(principal_info)

        logger.info(f"[{self.collaborator_id}] Document {request.document_id}: {len(fragments)} principal fragment(s) redacted.")
        return VerificationOutcome(
            status=VerificationStatus.REDACTED,
            redacted_content=redacted_envelope,
            original_principal_info=principal_envelope,
            note=f"{len(fragments)} fragment(s) masked",
        )
