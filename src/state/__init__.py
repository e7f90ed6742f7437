"""
Persisted and wire models plus the decryption-signature cache.

Signatures are serialized as JSON, optionally encrypted with Fernet, and
stored in a host-supplied key-value store (memory, local file, or S3).
"""

from .models import ClearValue, DecryptionSignature, PlantInfo, ZERO_HANDLE

__all__ = ["ClearValue", "DecryptionSignature", "PlantInfo", "ZERO_HANDLE"]
