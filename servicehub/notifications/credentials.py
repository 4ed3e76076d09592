"""
Integration credential encryption.
Provider configs (API keys, auth tokens, SMTP passwords) are stored as Fernet-encrypted JSON.
"""

import base64
import hashlib
import json
from typing import Any

from cryptography.fernet import Fernet

from ..config import CREDENTIALS_ENCRYPTION_KEY, SECRET_KEY


def _build_cipher() -> Fernet:
    if CREDENTIALS_ENCRYPTION_KEY:
        return Fernet(CREDENTIALS_ENCRYPTION_KEY.encode())
    # Derive a valid 32-byte urlsafe key from SECRET_KEY
    derived = base64.urlsafe_b64encode(hashlib.sha256(SECRET_KEY.encode()).digest())
    return Fernet(derived)


cipher_suite = _build_cipher()


def encrypt_config(config: dict[str, Any]) -> str:
    """Encrypt a provider config for storage"""
    return cipher_suite.encrypt(json.dumps(config).encode()).decode()


def decrypt_config(encrypted_config: str) -> dict[str, Any]:
    """Decrypt a stored provider config"""
    return json.loads(cipher_suite.decrypt(encrypted_config.encode()).decode())
