"""
Core module - Contains configuration, logging, and the sealed-token cipher.
"""

from vaultutils.core.config import UtilsConfig, LoggingConfig, EncryptionConfig
from vaultutils.core.logging import build_logger, get_secure_logger, SecureLogFilter
from vaultutils.core.crypto import AesGcmCipher, DataEncryptor, new_encryptor

__all__ = [
    "UtilsConfig",
    "LoggingConfig",
    "EncryptionConfig",
    "build_logger",
    "get_secure_logger",
    "SecureLogFilter",
    "AesGcmCipher",
    "DataEncryptor",
    "new_encryptor",
]
