# --- File: security/envelope_crypto.py ---
import base64
import binascii
import hashlib
import logging
from typing import Optional, Union

from Crypto.Cipher import AES
from Crypto.Random import get_random_bytes

import config
from core.errors import DecryptionError
from .envelope import Envelope

logger = logging.getLogger(__name__)

KEY_SIZE_BYTES = 32 # AES-256
IV_SIZE_BYTES = 12 # 96-bit GCM nonce
TAG_SIZE_BYTES = 16
# Fixed label for the development fallback key. Anyone can derive it, so it is never safe in production.
DEV_KEY_LABEL = b"dev-key"


def derive_key(secret: Optional[str] = None) -> bytes:
    """
    Normalizes a configured secret into a 32-byte AES key.
    Order: base64 that decodes to 32 bytes, then hex that decodes to 32 bytes, then SHA-256 of the raw secret.
    With no secret, returns SHA-256 of a constant label (development only).
    """
    if not secret:
        logger.warning("No encryption secret configured. Deriving the INSECURE development key.")
        return hashlib.sha256(DEV_KEY_LABEL).digest()

    try:
        decoded = base64.b64decode(secret, validate=True)
        if len(decoded) == KEY_SIZE_BYTES:
            logger.debug("Encryption secret accepted as base64-encoded key.")
            return decoded
    except (binascii.Error, ValueError):
        pass

    try:
        decoded = bytes.fromhex(secret)
        if len(decoded) == KEY_SIZE_BYTES:
            logger.debug("Encryption secret accepted as hex-encoded key.")
            return decoded
    except ValueError:
        pass

    logger.debug("Encryption secret is not a raw 32-byte key. Hashing it into one.")
    return hashlib.sha256(secret.encode('utf-8')).digest()


class EnvelopeCipher:
    """
    AES-256-GCM sealing and opening of byte payloads.
    Every seal draws a fresh random IV; the tag is appended to the ciphertext.
    """
    def __init__(self, key: Optional[bytes] = None, secret: Optional[str] = config.ENCRYPTION_KEY):
        self._key = key if key is not None else derive_key(secret)
        if len(self._key) != KEY_SIZE_BYTES:
            raise ValueError(f"Envelope key must be {KEY_SIZE_BYTES} bytes, got {len(self._key)}.")

    def seal(self, plaintext: bytes) -> Envelope:
        """Encrypts plaintext under a fresh IV. Empty plaintext still yields a valid (tag-only) envelope."""
        if not isinstance(plaintext, (bytes, bytearray)):
            raise TypeError(f"seal() expects bytes, got {type(plaintext).__name__}")
        iv = get_random_bytes(IV_SIZE_BYTES)
        cipher = AES.new(self._key, AES.MODE_GCM, nonce=iv)
        ciphertext_bytes, tag_bytes = cipher.encrypt_and_digest(bytes(plaintext))
        return Envelope.from_bytes(ciphertext_bytes + tag_bytes, iv)

    def seal_optional(self, value: Optional[Union[str, bytes]]) -> Optional[Envelope]:
        """Seals an optional field. None or empty input produces no envelope at all."""
        if not value:
            return None
        if isinstance(value, str):
            value = value.encode('utf-8')
        return self.seal(value)

    def open(self, ciphertext: bytes, iv: bytes) -> bytes:
        if len(iv) != IV_SIZE_BYTES:
            logger.error(f"Decryption refused: IV must be {IV_SIZE_BYTES} bytes, got {len(iv)}.")
            raise DecryptionError(f"Invalid IV length: {len(iv)}")
        if len(ciphertext) < TAG_SIZE_BYTES:
            logger.error("Decryption refused: ciphertext shorter than the authentication tag.")
            raise DecryptionError("Ciphertext is truncated")

        body, tag = ciphertext[:-TAG_SIZE_BYTES], ciphertext[-TAG_SIZE_BYTES:]
        cipher = AES.new(self._key, AES.MODE_GCM, nonce=iv)
        try:
            return cipher.decrypt_and_verify(body, tag)
        except ValueError as e: # MAC check failed
            logger.error(f"AES-GCM authentication failed (tampered payload or wrong key): {e}")
            raise DecryptionError("Authentication tag verification failed") from e

    def open_envelope(self, envelope: Envelope) -> bytes:
        try:
            ciphertext, iv = envelope.ciphertext, envelope.iv
        except (binascii.Error, ValueError) as e:
            raise DecryptionError(f"Envelope is not valid base64: {e}") from e
        return self.open(ciphertext, iv)
