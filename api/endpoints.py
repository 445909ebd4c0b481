# --- File: api/endpoints.py ---
from fastapi import Body, Depends, HTTPException
from typing import List, Optional
import base64
import binascii
import logging

from api.models import (
    CreateAgentRequest, CreateDealRequest, UpdateStatusRequest, UploadDocumentRequest,
    JoinDealRequest, DealDetailsResponse, VerificationRequestResponse
)
from core.agent_registry import AgentRegistry
from core.deal_engine import DealEngine
from core.document_custody import DocumentCustody
from core.errors import ValidationError
from core.invites import DealMembershipWorkflow
from core.models import Agent, Deal, DealSpec, DocumentUpload, VerificationStatus

# --- Dependency Injection Setup ---
# Global instances, set by lifespan in main.py (or directly by tests)
_agent_registry_instance: Optional[AgentRegistry] = None
_deal_engine_instance: Optional[DealEngine] = None
_document_custody_instance: Optional[DocumentCustody] = None
_membership_workflow_instance: Optional[DealMembershipWorkflow] = None


def initialize_services(registry: AgentRegistry, engine: DealEngine, custody: DocumentCustody):
    global _agent_registry_instance, _deal_engine_instance, _document_custody_instance, _membership_workflow_instance
    _agent_registry_instance = registry
    _deal_engine_instance = engine
    _document_custody_instance = custody
    _membership_workflow_instance = DealMembershipWorkflow(registry=registry, engine=engine)


def reset_services():
    global _agent_registry_instance, _deal_engine_instance, _document_custody_instance, _membership_workflow_instance
    _agent_registry_instance = None
    _deal_engine_instance = None
    _document_custody_instance = None
    _membership_workflow_instance = None


def get_agent_registry() -> AgentRegistry:
    if _agent_registry_instance is None:
        logging.error("AgentRegistry instance was None! It should have been set by lifespan.")
        raise HTTPException(status_code=503, detail="Agent registry not available (lifespan init failed).")
    return _agent_registry_instance

def get_deal_engine() -> DealEngine:
    if _deal_engine_instance is None:
        logging.error("DealEngine instance was None! It should have been set by lifespan.")
        raise HTTPException(status_code=503, detail="Deal engine not available (lifespan init failed).")
    return _deal_engine_instance

def get_document_custody() -> DocumentCustody:
    if _document_custody_instance is None:
        logging.error("DocumentCustody instance was None! It should have been set by lifespan.")
        raise HTTPException(status_code=503, detail="Document custody not available (lifespan init failed).")
    return _document_custody_instance

def get_membership_workflow() -> DealMembershipWorkflow:
    if _membership_workflow_instance is None:
        logging.error("DealMembershipWorkflow instance was None! It should have been set by lifespan.")
        raise HTTPException(status_code=503, detail="Membership workflow not available (lifespan init failed).")
    return _membership_workflow_instance

# --- API Endpoints: Agents ---

async def create_agent(
    request: CreateAgentRequest = Body(...),
    registry: AgentRegistry = Depends(get_agent_registry)
) -> Agent:
    logging.info(f"Received agent registration: name={request.name}, parent={request.parent_agent_id}")
    return registry.register(request.name, request.parent_agent_id)

async def list_agents(registry: AgentRegistry = Depends(get_agent_registry)) -> List[Agent]:
    return registry.list()

async def get_agent(agent_id: str, registry: AgentRegistry = Depends(get_agent_registry)) -> Agent:
    return registry.get(agent_id)

# --- API Endpoints: Deals ---

async def create_deal(
    request: CreateDealRequest = Body(...),
    workflow: DealMembershipWorkflow = Depends(get_membership_workflow)
) -> Deal:
    logging.info(f"Received deal creation: title={request.title}, commodity={request.commodity.value}, participants={len(request.participants)}")
    spec = DealSpec(
        title=request.title,
        commodity=request.commodity,
        exclusivity=request.exclusivity,
        quantity_kg=request.quantity_kg,
        price_per_kg=request.price_per_kg,
        location=request.location,
        details=request.details,
        chain=request.participants,
    )
    return workflow.open_deal(spec, request.created_by)

async def list_deals(engine: DealEngine = Depends(get_deal_engine)) -> List[Deal]:
    return engine.list()

async def get_deal(deal_id: str, engine: DealEngine = Depends(get_deal_engine)) -> Deal:
    return engine.get(deal_id)

async def get_deal_details(deal_id: str, engine: DealEngine = Depends(get_deal_engine)) -> DealDetailsResponse:
    return DealDetailsResponse(deal_id=deal_id, details=engine.reveal_details(deal_id))

async def set_deal_status(
    deal_id: str,
    request: UpdateStatusRequest = Body(...),
    engine: DealEngine = Depends(get_deal_engine)
) -> Deal:
    logging.info(f"Received status update for deal {deal_id}: {request.status.value}")
    return engine.transition_status(deal_id, request.status)

async def upload_document(
    deal_id: str,
    request: UploadDocumentRequest = Body(...),
    custody: DocumentCustody = Depends(get_document_custody)
) -> Deal:
    try:
        content = base64.b64decode(request.content, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Document content is not valid base64: {e}")
    upload = DocumentUpload(
        name=request.name,
        media_type=request.type,
        category=request.category,
        content=content,
        uploaded_by=request.uploaded_by,
    )
    return custody.attach(deal_id, upload)

async def request_document_verification(
    deal_id: str,
    document_id: str,
    custody: DocumentCustody = Depends(get_document_custody)
) -> VerificationRequestResponse:
    document = custody.request_verification(deal_id, document_id)
    return VerificationRequestResponse(
        deal_id=deal_id,
        document_id=document_id,
        verification_status=document.verification_status,
        message="Verification scheduled." if document.verification_status == VerificationStatus.PENDING else "Document already verified.",
    )

# --- API Endpoints: Invites ---

async def join_deal(
    request: JoinDealRequest = Body(...),
    workflow: DealMembershipWorkflow = Depends(get_membership_workflow)
) -> Deal:
    logging.info(f"Received join request for agent {request.agent_id}")
    return workflow.join(request.invite_code, request.agent_id)

async def get_deal_by_invite(code: str, workflow: DealMembershipWorkflow = Depends(get_membership_workflow)) -> Deal:
    return workflow.preview(code)
