"""
Password-based encryption for shared state tokens.

Key: PBKDF2-HMAC-SHA256 (100k iterations, 16-byte random salt) -> 256-bit key
Cipher: AES-256-GCM with a 12-byte random nonce

Output format: base64url(salt) "." base64url(nonce) "." base64url(ciphertext+tag)
"""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import DecryptionError, InvalidEncryptedTokenError

PBKDF2_ITERATIONS = 100_000
KEY_BYTES = 32
SALT_BYTES = 16
NONCE_BYTES = 12


def b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def b64url_decode(text: str) -> bytes:
    padded = text + "=" * (-len(text) % 4)
    return base64.b64decode(padded.replace("-", "+").replace("_", "/"), validate=True)


def derive_key(password: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_BYTES,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def encrypt(plaintext: str, password: str) -> str:
    """Encrypt with a fresh salt and nonce, so equal inputs never give equal output."""
    salt = os.urandom(SALT_BYTES)
    nonce = os.urandom(NONCE_BYTES)
    key = derive_key(password, salt)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    return ".".join([b64url_encode(salt), b64url_encode(nonce), b64url_encode(ciphertext)])


def decrypt(encrypted: str, password: str) -> str:
    """
    Decrypt a `salt.nonce.ciphertext` string.

    Raises InvalidEncryptedTokenError for a malformed string and
    DecryptionError when the password is wrong or the data was altered.
    """
    parts = encrypted.split(".")
    if len(parts) != 3 or not all(parts):
        raise InvalidEncryptedTokenError(
            f"Invalid encrypted data format: expected 3 segments, got {len(parts)}"
        )

    try:
        salt, nonce, ciphertext = (b64url_decode(p) for p in parts)
    except (binascii.Error, ValueError) as e:
        raise InvalidEncryptedTokenError(f"Invalid encrypted data encoding: {e}") from e

    if len(nonce) != NONCE_BYTES:
        raise InvalidEncryptedTokenError(f"Invalid nonce length: {len(nonce)}")

    key = derive_key(password, salt)
    try:
        raw = AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as e:
        raise DecryptionError("Decryption failed: wrong password or corrupted data") from e

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidEncryptedTokenError("Decrypted payload is not UTF-8") from e


def is_encrypted(data: str | None) -> bool:
    """True if the string looks like `salt.nonce.ciphertext`."""
    if not data:
        return False
    parts = data.split(".")
    return len(parts) == 3 and all(parts)
