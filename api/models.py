# --- File: api/models.py ---
from pydantic import BaseModel, Field
from typing import List, Optional

from core.models import Commodity, DealStatus, DocumentCategory, Exclusivity, VerificationStatus

# --- API Request/Response Models (using Pydantic) ---

class CreateAgentRequest(BaseModel):
    """Request model for registering an agent."""
    name: str = Field(..., min_length=1, description="Display name of the agent")
    parent_agent_id: Optional[str] = Field(None, description="Optional parent agent ID (hierarchy)")

class CreateDealRequest(BaseModel):
    """Request model for opening a deal. Participants must already be registered agents."""
    title: str = Field(..., min_length=1)
    commodity: Commodity
    exclusivity: Exclusivity
    quantity_kg: float = Field(..., ge=0)
    price_per_kg: float = Field(..., ge=0)
    location: str = Field(..., min_length=1)
    details: Optional[str] = Field(None, description="Sensitive free text; encrypted before storage")
    participants: List[str] = Field(default_factory=list, description="Agent IDs in chain order (buyer/seller/brokers)")
    created_by: str = Field(..., min_length=1, description="Caller identity supplied by the auth layer")

class UpdateStatusRequest(BaseModel):
    status: DealStatus

class UploadDocumentRequest(BaseModel):
    """Request model for attaching a document to a deal."""
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, description="Declared media type, e.g. 'application/pdf'")
    category: Optional[DocumentCategory] = None
    content: str = Field(..., min_length=1, description="Base64-encoded file content")
    uploaded_by: str = Field(..., min_length=1)

class JoinDealRequest(BaseModel):
    invite_code: str = Field(..., min_length=1)
    agent_id: str = Field(..., min_length=1)

class DealDetailsResponse(BaseModel):
    deal_id: str
    details: Optional[str] = Field(None, description="Decrypted details, or null when the deal has none")

class VerificationRequestResponse(BaseModel):
    deal_id: str
    document_id: str
    verification_status: VerificationStatus
    message: str
