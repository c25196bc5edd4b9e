"""Security module for the MikroTik dashboard.

- crypto: Device secret encryption/decryption (Fernet)
"""

from mikrotik_dashboard.security.crypto import (
    CredentialEncryption,
    DecryptionError,
    EncryptionError,
    InvalidEncryptionKeyError,
    generate_encryption_key,
)

__all__ = [
    "CredentialEncryption",
    "EncryptionError",
    "DecryptionError",
    "InvalidEncryptionKeyError",
    "generate_encryption_key",
]
