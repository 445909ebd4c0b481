# --- File: main.py ---
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from api import endpoints
from api.models import DealDetailsResponse, VerificationRequestResponse
from core.agent_registry import AgentRegistry
from core.deal_engine import DealEngine
from core.document_custody import DocumentCustody
from core.errors import DecryptionError, NotFoundError, ValidationError
from core.models import Agent, Deal
from core.repository import InMemoryRepository
from core.sqlite_repository import SQLiteRepository
from core.transitions import PERMISSIVE_POLICY, PIPELINE_POLICY
from security.envelope_crypto import EnvelopeCipher
from verification.dispatcher import VerificationDispatcher
from verification.mandate_verifier import SimulatedMandateVerifier
from contextlib import asynccontextmanager
from typing import List, Optional
import asyncio
import uvicorn
import logging
import config # Your config file

_dispatcher_instance: Optional[VerificationDispatcher] = None
_repositories: list = []


def build_services():
    """Wires the engine components from config. Returns (registry, engine, custody, dispatcher)."""
    cipher = EnvelopeCipher(secret=config.ENCRYPTION_KEY)

    if config.STORAGE_BACKEND == "sqlite":
        logging.info(f"Using SQLite storage at {config.SQLITE_DB_PATH}")
        agent_repo = SQLiteRepository(Agent, "agents", db_path=config.SQLITE_DB_PATH)
        deal_repo = SQLiteRepository(Deal, "deals", db_path=config.SQLITE_DB_PATH)
    else:
        logging.info("Using in-memory storage. All deals are lost when the process exits.")
        agent_repo = InMemoryRepository(name="agents")
        deal_repo = InMemoryRepository(name="deals")
    _repositories[:] = [agent_repo, deal_repo]

    registry = AgentRegistry(repository=agent_repo)
    engine = DealEngine(
        cipher=cipher,
        repository=deal_repo,
        transition_policy=PIPELINE_POLICY if config.STRICT_STATUS_TRANSITIONS else PERMISSIVE_POLICY,
    )
    dispatcher = VerificationDispatcher(SimulatedMandateVerifier(cipher=cipher))
    custody = DocumentCustody(engine=engine, dispatcher=dispatcher)
    return registry, engine, custody, dispatcher


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    logging.info("Application startup sequence initiated...")
    global _dispatcher_instance
    registry, engine, custody, dispatcher = build_services()
    dispatcher.attach_loop(asyncio.get_running_loop())
    _dispatcher_instance = dispatcher
    endpoints.initialize_services(registry, engine, custody)
    logging.info("All custody components initialized via lifespan.")

    yield

    # --- Shutdown ---
    logging.info("Application shutdown sequence initiated...")
    if _dispatcher_instance:
        await _dispatcher_instance.shutdown()
    for repository in _repositories:
        repository.close()
    endpoints.reset_services()
    logging.info("Application shutdown complete.")

app = FastAPI(
    title="Deal Custody API",
    description="Boundary for the deal/document custody engine: agents, deals, documents and invite links.",
    version="0.1.0",
    lifespan=lifespan
)

logging.info(f"CORS allowed origins: {config.CORS_ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError):
    logging.warning(f"Not found: {exc}, Path: {request.url.path}")
    return JSONResponse(status_code=404, content={"message": str(exc)})

@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    logging.warning(f"Rejected request: {exc}, Path: {request.url.path}")
    return JSONResponse(status_code=400, content={"message": str(exc)})

@app.exception_handler(DecryptionError)
async def decryption_exception_handler(request: Request, exc: DecryptionError):
    logging.error(f"Decryption failure: {exc}, Path: {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"message": "Stored payload could not be decrypted (tampered data or wrong key)."},
    )

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logging.error(f"HTTP Exception: Status Code={exc.status_code}, Detail={exc.detail}, Path: {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": f"An error occurred: {exc.detail}"},
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logging.exception(f"Unhandled Exception at Path {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"message": "An unexpected internal server error occurred. Please check server logs."},
    )

app.post("/agents", response_model=Agent, summary="Register an Agent", tags=["Agents"], status_code=201)(endpoints.create_agent)
app.get("/agents", response_model=List[Agent], summary="List Agents", tags=["Agents"])(endpoints.list_agents)
app.get("/agents/{agent_id}", response_model=Agent, summary="Get an Agent", tags=["Agents"])(endpoints.get_agent)

app.post("/deals", response_model=Deal, summary="Open a Deal", tags=["Deals"], status_code=201)(endpoints.create_deal)
app.get("/deals", response_model=List[Deal], summary="List Deals", tags=["Deals"])(endpoints.list_deals)
# Registered before /deals/{deal_id} routes so "join" and "invite" are never read as deal IDs.
app.post("/deals/join", response_model=Deal, summary="Join a Deal Chain via Invite Code", tags=["Invites"])(endpoints.join_deal)
app.get("/deals/invite/{code}", response_model=Deal, summary="Preview a Deal by Invite Code", tags=["Invites"])(endpoints.get_deal_by_invite)
app.get("/deals/{deal_id}", response_model=Deal, summary="Get a Deal", tags=["Deals"])(endpoints.get_deal)
app.get("/deals/{deal_id}/details", response_model=DealDetailsResponse, summary="Decrypt Deal Details", tags=["Deals"])(endpoints.get_deal_details)
app.patch("/deals/{deal_id}/status", response_model=Deal, summary="Record a Status Change", tags=["Deals"])(endpoints.set_deal_status)

app.post(
    "/deals/{deal_id}/documents", response_model=Deal, summary="Attach a Document",
    tags=["Documents"], status_code=201
)(endpoints.upload_document)
app.post(
    "/deals/{deal_id}/documents/{document_id}/verify", response_model=VerificationRequestResponse,
    summary="Request Out-of-Band Verification", tags=["Documents"], status_code=202
)(endpoints.request_document_verification)

@app.get("/", summary="Root endpoint", tags=["General"], include_in_schema=False)
async def read_root():
    return {"message": "Deal Custody API. See /docs for details."}

if __name__ == "__main__":
    log_level = config.LOG_LEVEL_FROM_ENV.lower()
    logging.info(f"Server starting on {config.HOST}:{config.PORT} with log level {log_level}")
    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        log_level=log_level,
    )
