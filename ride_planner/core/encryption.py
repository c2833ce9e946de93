"""Token encryption utilities using Fernet symmetric encryption.

Peloton access and refresh tokens are stored encrypted in peloton_tokens.
"""

from __future__ import annotations

import os

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger


class EncryptionError(Exception):
    """Raised when encryption/decryption operations fail."""


class DecryptionError(EncryptionError):
    """Raised when a stored token cannot be decrypted.

    Usually ENCRYPTION_KEY is unset or was rotated, so tokens written with the
    previous key are unreadable and the user has to reconnect Peloton.
    """


_cipher: Fernet | None = None


def _get_encryption_key() -> bytes:
    """Get the Fernet key from ENCRYPTION_KEY, generating a throwaway one if unset."""
    key_env = os.getenv("ENCRYPTION_KEY")
    if key_env:
        return key_env.encode()

    logger.warning(
        "ENCRYPTION_KEY not set. Generating a new key (NOT suitable for production). "
        "Set ENCRYPTION_KEY environment variable with a Fernet key (use Fernet.generate_key())."
    )
    return Fernet.generate_key()


def _get_cipher() -> Fernet:
    global _cipher
    if _cipher is None:
        try:
            _cipher = Fernet(_get_encryption_key())
        except ValueError as e:
            raise EncryptionError("Invalid ENCRYPTION_KEY format. Must be a Fernet key (base64-encoded string).") from e
    return _cipher


def encrypt_token(token: str) -> str:
    """Encrypt a token string for storage.

    Raises:
        EncryptionError: If encryption fails
    """
    try:
        return _get_cipher().encrypt(token.encode()).decode()
    except EncryptionError:
        raise
    except Exception as e:
        logger.error(f"Token encryption failed: {e}")
        raise EncryptionError(f"Failed to encrypt token: {e}") from e


def decrypt_token(encrypted_token: str) -> str:
    """Decrypt a stored token string.

    Raises:
        DecryptionError: If the token cannot be decrypted with the current key
    """
    try:
        return _get_cipher().decrypt(encrypted_token.encode()).decode()
    except InvalidToken as e:
        logger.error("Token decryption failed: wrong or rotated ENCRYPTION_KEY")
        raise DecryptionError("Failed to decrypt Peloton token. Please reconnect Peloton.") from e
