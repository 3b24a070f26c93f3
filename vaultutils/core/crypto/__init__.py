"""
vaultutils Cryptographic Core
=============================

Single-key authenticated encryption of text into sealed tokens.

Security Properties:
    - All encryption is authenticated (AES-256-GCM)
    - Fresh random nonce for every encryption
    - Secure RNG for all random values

WARNING: This module handles sensitive cryptographic material.
         Incorrect usage can compromise security.
"""

from vaultutils.core.crypto.aes_gcm import (
    AES_KEY_SIZE,
    AES_NONCE_SIZE,
    AES_TAG_SIZE,
    AesGcmCipher,
    DataEncryptor,
    new_encryptor,
)

__all__ = [
    "AES_KEY_SIZE",
    "AES_NONCE_SIZE",
    "AES_TAG_SIZE",
    "AesGcmCipher",
    "DataEncryptor",
    "new_encryptor",
]
