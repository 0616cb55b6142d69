"""Credential encryption.

Secrets are stored as base64(nonce + ciphertext + tag) using AES-256-GCM with
the key from settings.
"""

import base64
import json
import os
from typing import Any, Dict, Optional

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from pumpflix.config import settings
from pumpflix.credentials.exceptions import CredentialEncryptionError

logger = structlog.get_logger()

NONCE_SIZE = 12
TAG_SIZE = 16


def generate_encryption_key() -> str:
    """Generate a new base64 encoded 256-bit key."""
    return base64.b64encode(os.urandom(32)).decode("utf-8")


class CredentialEncryption:
    """Encrypts and decrypts credential payloads with AES-256-GCM."""

    def __init__(self, encryption_key: Optional[str] = None):
        try:
            self.key = base64.b64decode(encryption_key or settings.encryption_key)
        except (ValueError, TypeError) as e:
            raise CredentialEncryptionError("Encryption key is not valid base64") from e

        if len(self.key) != 32:
            raise CredentialEncryptionError("Encryption key must be 256 bits (32 bytes)")

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string."""
        nonce = os.urandom(NONCE_SIZE)
        encryptor = Cipher(algorithms.AES(self.key), modes.GCM(nonce)).encryptor()
        ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
        return base64.b64encode(nonce + ciphertext + encryptor.tag).decode("utf-8")

    def decrypt(self, encrypted: str) -> str:
        """Decrypt a string produced by ``encrypt``."""
        try:
            data = base64.b64decode(encrypted)
            if len(data) < NONCE_SIZE + TAG_SIZE:
                raise ValueError("Encrypted payload is too short")

            nonce, ciphertext, tag = data[:NONCE_SIZE], data[NONCE_SIZE:-TAG_SIZE], data[-TAG_SIZE:]
            decryptor = Cipher(algorithms.AES(self.key), modes.GCM(nonce, tag)).decryptor()
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
            return plaintext.decode("utf-8")
        except (InvalidTag, ValueError) as e:
            logger.error("Credential decryption failed", error=type(e).__name__)
            raise CredentialEncryptionError("Failed to decrypt credential") from e

    def encrypt_dict(self, data: Dict[str, Any]) -> str:
        """Encrypt a dictionary as compact JSON."""
        return self.encrypt(json.dumps(data, separators=(",", ":")))

    def decrypt_dict(self, encrypted: str) -> Dict[str, Any]:
        """Decrypt a dictionary."""
        return json.loads(self.decrypt(encrypted))


_credential_encryption: Optional[CredentialEncryption] = None


def get_credential_encryption() -> CredentialEncryption:
    """Shared encryption instance built from settings."""
    global _credential_encryption
    if _credential_encryption is None:
        _credential_encryption = CredentialEncryption()
    return _credential_encryption
