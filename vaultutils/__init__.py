"""
vaultutils - Security Utilities for RPC Services
================================================

This package provides the shared plumbing of a card-handling service:
sealed-token encryption, classified errors and secure logging.

Security Notice:
- No secrets are logged
- Fail-closed design pattern
- Authentication failures never reveal their cause
"""

from vaultutils.core.config import UtilsConfig
from vaultutils.core.logging import build_logger, get_secure_logger
from vaultutils.core.crypto import AesGcmCipher, DataEncryptor, new_encryptor
from vaultutils.errors import ErrorCode, StandardError, BadRequestError, InternalError

__version__ = "0.1.0"

__all__ = [
    "UtilsConfig",
    "build_logger",
    "get_secure_logger",
    "AesGcmCipher",
    "DataEncryptor",
    "new_encryptor",
    "ErrorCode",
    "StandardError",
    "BadRequestError",
    "InternalError",
    "__version__",
]
