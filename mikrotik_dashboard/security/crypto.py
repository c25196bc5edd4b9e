"""Encryption of stored device secrets.

Device passwords are kept in the registry as Fernet tokens (AES-128-CBC with
HMAC authentication) and decrypted only when a session is opened.

Key handling:
- Key comes from MIKROTIK_DASHBOARD_ENCRYPTION_KEY
- staging/prod refuse to start without a real key
- lab falls back to a per-process random key, so stored secrets do not
  survive a restart
- Plaintext secrets are never logged
"""

import logging
from typing import Final

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

# Sentinel value for insecure default key (lab only)
_INSECURE_LAB_KEY: Final[str] = "INSECURE_LAB_KEY_DO_NOT_USE_IN_PRODUCTION"

_KEY_HINT: Final[str] = "Generate one with: mikrotik-dashboard --generate-key"


class EncryptionError(Exception):
    """Base exception for encryption/decryption errors."""

    pass


class InvalidEncryptionKeyError(EncryptionError):
    """Raised when encryption key is invalid or malformed."""

    pass


class DecryptionError(EncryptionError):
    """Raised when decryption fails (wrong key, tampered data, etc)."""

    pass


class CredentialEncryption:
    """Encrypt and decrypt device secrets using Fernet.

    Keep one instance per process: with the lab fallback key each instance
    holds its own random key.

    Example:
        crypto = CredentialEncryption(settings.encryption_key, settings.environment)
        row.password_encrypted = crypto.encrypt("s3cret")
        password = crypto.decrypt(row.password_encrypted)
    """

    def __init__(self, encryption_key: str, environment: str = "lab") -> None:
        """Initialize credential encryption.

        Args:
            encryption_key: Base64-encoded Fernet key (32 bytes)
            environment: Deployment environment (lab/staging/prod)

        Raises:
            InvalidEncryptionKeyError: If key is invalid or is the lab sentinel outside lab
        """
        self.environment = environment

        if encryption_key == _INSECURE_LAB_KEY:
            if environment in ("staging", "prod"):
                raise InvalidEncryptionKeyError(
                    f"Insecure default encryption key not allowed in {environment}. "
                    f"Set MIKROTIK_DASHBOARD_ENCRYPTION_KEY. {_KEY_HINT}"
                )
            logger.warning(
                "Using a temporary encryption key (lab only); stored device "
                "passwords will not decrypt after a restart. %s",
                _KEY_HINT,
            )
            encryption_key = generate_encryption_key()

        try:
            self._fernet = Fernet(encryption_key.encode("utf-8"))
        except (ValueError, TypeError) as e:
            raise InvalidEncryptionKeyError(
                f"Invalid encryption key format. Must be a base64-encoded 32-byte "
                f"Fernet key. {_KEY_HINT}"
            ) from e

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a secret and return the Fernet token as text."""
        try:
            return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")
        except Exception as e:
            logger.error("Encryption failed")
            raise EncryptionError(f"Failed to encrypt data: {type(e).__name__}") from e

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a Fernet token.

        Raises:
            DecryptionError: Wrong key or tampered data
        """
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            logger.error("Decryption failed - invalid token or wrong key")
            raise DecryptionError(
                "Failed to decrypt secret. Possible causes: wrong encryption key, "
                "tampered data, or a lab key from a previous run."
            ) from e


def generate_encryption_key() -> str:
    """Generate a new Fernet encryption key.

    Example:
        key = generate_encryption_key()
        print(f"export MIKROTIK_DASHBOARD_ENCRYPTION_KEY='{key}'")
    """
    return Fernet.generate_key().decode("utf-8")
