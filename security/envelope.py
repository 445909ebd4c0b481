# --- File: security/envelope.py ---
import base64
from pydantic import BaseModel, ConfigDict, Field

class Envelope(BaseModel):
    """
    Unit of encrypted-at-rest storage: AES-GCM ciphertext (tag appended) plus the IV it was sealed with.
    The two fields always travel together; neither is usable alone.
    """
    model_config = ConfigDict(frozen=True)

    ciphertext_b64: str = Field(..., description="Ciphertext concatenated with the 16-byte GCM tag (base64).")
    iv_b64: str = Field(..., description="96-bit initialization vector used for this payload only (base64).")

    @classmethod
    def from_bytes(cls, ciphertext: bytes, iv: bytes) -> "Envelope":
        return cls(
            ciphertext_b64=base64.b64encode(ciphertext).decode('utf-8'),
            iv_b64=base64.b64encode(iv).decode('utf-8'),
        )

    @property
    def ciphertext(self) -> bytes:
        return base64.b64decode(self.ciphertext_b64)

    @property
    def iv(self) -> bytes:
        return base64.b64decode(self.iv_b64)
