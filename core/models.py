# --- File: core/models.py ---
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from security.envelope import Envelope

# --- Domain Enums ---

class Commodity(str, Enum):
    GOLD = "gold"
    SILVER = "silver"
    OIL = "oil"
    DIAMOND = "diamond"


class Exclusivity(str, Enum):
    STANDARD = "standard"
    EXCLUSIVE = "exclusive"
    PREMIER = "premier"


class DealStatus(str, Enum):
    """Pipeline stages of a deal, in their usual order."""
    INITIATED = "initiated"
    KYC = "kyc"
    CONTRACTED = "contracted"
    INSPECTION = "inspection"
    PAYMENT = "payment"
    SHIPPED = "shipped"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class DocumentCategory(str, Enum):
    MANDATE = "mandate"
    CONTRACT = "contract"
    CERTIFICATE = "certificate"
    PROOF_OF_FUNDS = "proof_of_funds"
    OTHER = "other"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    REDACTED = "redacted"


TERMINAL_VERIFICATION_STATES = frozenset({
    VerificationStatus.VERIFIED, VerificationStatus.REJECTED, VerificationStatus.REDACTED
})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# --- Entities ---

class Agent(BaseModel):
    """A registered participant. Agents may point at a parent agent, forming a forest."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    parent_agent_id: Optional[str] = None


class StatusChange(BaseModel):
    status: DealStatus
    at: datetime = Field(default_factory=utc_now)


class Document(BaseModel):
    id: str
    name: str
    media_type: str = Field(..., description="Declared media type of the uploaded file")
    category: Optional[DocumentCategory] = None
    uploaded_by: str
    uploaded_at: datetime = Field(default_factory=utc_now)
    content: Envelope = Field(..., description="Sealed file content")
    verification_status: VerificationStatus = VerificationStatus.PENDING
    verified_at: Optional[datetime] = None
    redacted_content: Optional[Envelope] = Field(None, description="Sealed rendering with principal information masked")
    original_principal_info: Optional[Envelope] = Field(None, description="Sealed fragment removed during redaction, kept for audited recovery")


class Deal(BaseModel):
    """Aggregate root: commercial facts, participant chain, status history and owned documents."""
    id: str
    title: str
    commodity: Commodity
    exclusivity: Exclusivity
    quantity_kg: float = Field(..., ge=0)
    price_per_kg: float = Field(..., ge=0)
    location: str
    details: Optional[Envelope] = None
    chain: List[str] = Field(default_factory=list, description="Agent ids in chain order (seller, brokers, buyer)")
    status: DealStatus = DealStatus.INITIATED
    history: List[StatusChange] = Field(default_factory=list)
    documents: List[Document] = Field(default_factory=list)
    invite_token: str
    invite_link: str
    created_at: datetime = Field(default_factory=utc_now)
    created_by: str

    def find_document(self, document_id: str) -> Optional[Document]:
        for document in self.documents:
            if document.id == document_id:
                return document
        return None


# --- Engine Inputs ---

class DealSpec(BaseModel):
    """Validated input for opening a deal. Enum fields only admit known values."""
    title: str = Field(..., min_length=1)
    commodity: Commodity
    exclusivity: Exclusivity
    quantity_kg: float = Field(..., ge=0)
    price_per_kg: float = Field(..., ge=0)
    location: str = Field(..., min_length=1)
    details: Optional[str] = Field(None, description="Free text, sealed before storage")
    chain: List[str] = Field(default_factory=list)


class DocumentUpload(BaseModel):
    name: str = Field(..., min_length=1)
    media_type: str = Field(..., min_length=1)
    category: Optional[DocumentCategory] = None
    content: bytes = Field(..., description="Raw file bytes; never retained past the attach call")
    uploaded_by: str = Field(..., min_length=1)
