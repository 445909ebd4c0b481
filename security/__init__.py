# security/__init__.py
from .envelope import Envelope
from .envelope_crypto import EnvelopeCipher, derive_key

__all__ = ["Envelope", "EnvelopeCipher", "derive_key"]
