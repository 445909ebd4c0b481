# --- File: core/document_custody.py ---
import logging
import uuid
from typing import Optional

from core.deal_engine import DealEngine
from core.errors import NotFoundError
from core.models import (
    Deal, Document, DocumentCategory, DocumentUpload, VerificationStatus, utc_now
)
from verification.base_verifier import VerificationOutcome, VerificationRequest
from verification.dispatcher import VerificationDispatcher

logger = logging.getLogger(__name__)

# Only mandates are scrutinized automatically; every other category waits for an out-of-band request.
AUTO_VERIFIED_CATEGORIES = frozenset({DocumentCategory.MANDATE})


class DocumentCustody:
    """
    Stores sealed documents on their deal and drives each document's verification state:
    pending -> verified | rejected | redacted, with no way back to pending.
    """
    def __init__(self, engine: DealEngine, dispatcher: VerificationDispatcher):
        self.engine = engine
        self.cipher = engine.cipher
        self.dispatcher = dispatcher
        self.dispatcher.bind(self.on_verified)

    def attach(self, deal_id: str, upload: DocumentUpload) -> Deal:
        """Seals and appends the document, then schedules verification for mandates. Returns the updated deal."""
        document = Document(
            id=str(uuid.uuid4()),
            name=upload.name,
            media_type=upload.media_type,
            category=upload.category,
            uploaded_by=upload.uploaded_by,
            uploaded_at=utc_now(),
            content=self.cipher.seal(upload.content),
            verification_status=VerificationStatus.PENDING,
        )

        deal = self.engine.update(deal_id, lambda d: d.documents.append(document))
        logger.info(f"Document '{document.name}' (ID: {document.id}, category: {document.category.value if document.category else 'none'}) attached to deal {deal_id} by {document.uploaded_by}")

        # Scheduled only after the commit, so completion can never be seen before the attachment.
        if document.category in AUTO_VERIFIED_CATEGORIES:
            self._schedule(deal_id, document)
        return deal

    def request_verification(self, deal_id: str, document_id: str) -> Document:
        """Out-of-band verification for any document that is still pending."""
        document = self.get_document(deal_id, document_id)
        if document.verification_status != VerificationStatus.PENDING:
            logger.info(f"Document {document_id} already '{document.verification_status.value}'; verification not rescheduled.")
            return document
        self._schedule(deal_id, document)
        return document

    def _schedule(self, deal_id: str, document: Document):
        logger.info(f"Scheduling verification for document {document.id} of deal {deal_id}")
        self.dispatcher.submit(VerificationRequest(deal_id=deal_id, document_id=document.id, content=document.content))

    def on_verified(self, deal_id: str, document_id: str, outcome: VerificationOutcome):
        """
        Completion callback from the verification collaborator.
        A missing deal or document, or a document already in a terminal state, is a silent no-op.
        """
        if outcome.status == VerificationStatus.PENDING:
            logger.warning(f"Ignoring verification outcome for document {document_id}: 'pending' is not a completion state.")
            return
        try:
            self.engine.get(deal_id)
        except NotFoundError:
            logger.info(f"Verification completed for document {document_id} but deal {deal_id} no longer exists; ignoring.")
            return

        applied = []

        def _apply(deal: Deal):
            document = deal.find_document(document_id)
            if document is None:
                logger.info(f"Verification completed for unknown document {document_id} on deal {deal_id}; ignoring.")
                return
            if document.verification_status != VerificationStatus.PENDING:
                logger.info(f"Document {document_id} already '{document.verification_status.value}'; late outcome ignored.")
                return
            document.verification_status = outcome.status
            document.verified_at = utc_now()
            if outcome.redacted_content is not None:
                document.redacted_content = outcome.redacted_content
            if outcome.original_principal_info is not None:
                document.original_principal_info = outcome.original_principal_info
            applied.append(document_id)

        try:
            self.engine.update(deal_id, _apply)
        except NotFoundError:
            logger.info(f"Deal {deal_id} disappeared before verification of document {document_id} could be applied; ignoring.")
            return
        if applied:
            logger.info(f"Document {document_id} of deal {deal_id} verification -> '{outcome.status.value}'")

    # --- Reads ---

    def get_document(self, deal_id: str, document_id: str) -> Document:
        document = self.engine.get(deal_id).find_document(document_id)
        if document is None:
            raise NotFoundError("Document", document_id)
        return document

    def read_content(self, deal_id: str, document_id: str) -> bytes:
        return self.cipher.open_envelope(self.get_document(deal_id, document_id).content)

    def read_redacted_content(self, deal_id: str, document_id: str) -> Optional[bytes]:
        document = self.get_document(deal_id, document_id)
        if document.redacted_content is None:
            return None
        return self.cipher.open_envelope(document.redacted_content)

    def recover_principal_info(self, deal_id: str, document_id: str, requested_by: str) -> Optional[bytes]:
        """Audited recovery of the fragment removed during redaction."""
        document = self.get_document(deal_id, document_id)
        if document.original_principal_info is None:
            return None
        logger.warning(f"AUDIT: principal information of document {document_id} (deal {deal_id}) recovered by {requested_by}")
        return self.cipher.open_envelope(document.original_principal_info)
