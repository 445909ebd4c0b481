# --- File: config.py ---
import os
from dotenv import load_dotenv
import logging

load_dotenv()

LOG_LEVEL_FROM_ENV = os.getenv("LOG_LEVEL", "INFO").upper()
numeric_level = getattr(logging, LOG_LEVEL_FROM_ENV, logging.INFO)

logging.basicConfig(
    level=numeric_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# --- Encryption ---
# Accepts a 32-byte key as base64 or hex; any other value is hashed into a key.
ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY", "")

# --- Invite Links ---
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
INVITE_LINK_TEMPLATE = os.getenv("INVITE_LINK_TEMPLATE", "{base_url}/join-deal/{token}")

# --- Document Verification ---
VERIFICATION_DELAY_SECONDS = float(os.getenv("VERIFICATION_DELAY_SECONDS", "2.0"))

# --- Storage Settings ---
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory") # "memory" or "sqlite"
SQLITE_DB_PATH = os.getenv("SQLITE_DB_PATH", "./custody.db")

# --- Deal Pipeline ---
# When true, the API's status endpoint only accepts forward pipeline moves (plus cancellation).
STRICT_STATUS_TRANSITIONS = os.getenv("STRICT_STATUS_TRANSITIONS", "false").lower() == 'true'

# --- Server ---
CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000").split(",")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))


# --- Basic Validation ---
if not ENCRYPTION_KEY:
    logger.warning("ENCRYPTION_KEY environment variable not set. A fixed development key will be used; do NOT run like this in production.")
if STORAGE_BACKEND not in ("memory", "sqlite"):
    logger.warning(f"Unknown STORAGE_BACKEND '{STORAGE_BACKEND}'. Falling back to in-memory storage.")
    STORAGE_BACKEND = "memory"
if VERIFICATION_DELAY_SECONDS < 0:
    logger.warning("VERIFICATION_DELAY_SECONDS is negative. Setting to 0.")
    VERIFICATION_DELAY_SECONDS = 0.0
