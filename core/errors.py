# --- File: core/errors.py ---
from typing import Optional

# --- Engine Failure Taxonomy ---

class CustodyError(Exception):
    """Base class for every failure raised by the custody engine."""


class NotFoundError(CustodyError):
    """A referenced agent, deal, document or invite token does not resolve."""
    def __init__(self, entity: str, identifier: str, message: Optional[str] = None):
        self.entity = entity
        self.identifier = identifier
        super().__init__(message or f"{entity} not found: {identifier}")


class DecryptionError(CustodyError):
    """Authentication tag did not verify (tampered payload or wrong key), or the IV is malformed."""


class ValidationError(CustodyError):
    """Malformed input rejected at the boundary before it reaches the engine."""


class InvalidTransitionError(ValidationError):
    """A status change was refused by the configured transition policy."""
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Status transition '{current}' -> '{requested}' is not allowed")
