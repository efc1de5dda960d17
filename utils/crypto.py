# utils/crypto.py
"""
AES-256-GCM encryption for stored broker credentials.

Packed format (base64): iv (12 bytes) + auth tag (16 bytes) + ciphertext.
Rows written before encryption was enabled hold plain JSON and are still
readable.
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from typing import Any, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

IV_LENGTH = 12
TAG_LENGTH = 16


class CredentialsError(Exception):
    """Encryption key missing/invalid, or stored credentials unrecoverable."""


def load_key(hex_key: Optional[str] = None) -> bytes:
    raw = hex_key if hex_key is not None else os.getenv("CREDENTIALS_ENCRYPTION_KEY", "")
    if not raw:
        raise CredentialsError("CREDENTIALS_ENCRYPTION_KEY is not set")
    try:
        key = bytes.fromhex(raw)
    except ValueError as e:
        raise CredentialsError("CREDENTIALS_ENCRYPTION_KEY must be hex") from e
    if len(key) != 32:
        raise CredentialsError("CREDENTIALS_ENCRYPTION_KEY must be 64 hex characters (32 bytes)")
    return key


def encrypt(plaintext: str, key: bytes) -> str:
    iv = os.urandom(IV_LENGTH)
    # cryptography appends the tag to the ciphertext; repack as iv + tag + ct
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return base64.b64encode(iv + tag + ciphertext).decode("ascii")


def _is_json(s: str) -> bool:
    try:
        json.loads(s)
    except ValueError:
        return False
    return True


def decrypt(stored: str, key: bytes) -> str:
    if stored.startswith("{") or stored.startswith("["):
        return stored

    try:
        packed = base64.b64decode(stored, validate=True)
    except (binascii.Error, ValueError):
        packed = b""

    if len(packed) < IV_LENGTH + TAG_LENGTH + 1:
        if _is_json(stored):
            return stored
        raise CredentialsError("Stored credentials could not be decrypted. Please reconnect your account.")

    iv = packed[:IV_LENGTH]
    tag = packed[IV_LENGTH:IV_LENGTH + TAG_LENGTH]
    ciphertext = packed[IV_LENGTH + TAG_LENGTH:]
    try:
        return AESGCM(key).decrypt(iv, ciphertext + tag, None).decode("utf-8")
    except InvalidTag as e:
        if _is_json(stored):
            return stored
        logger.error("credentials_decrypt_failed")
        raise CredentialsError("Stored credentials could not be decrypted. Please reconnect your account.") from e


def encrypt_credentials(credentials: Any, key: bytes) -> str:
    return encrypt(json.dumps(credentials), key)


def decrypt_credentials(stored: str, key: bytes) -> Any:
    return json.loads(decrypt(stored, key))
