"""
Secure Configuration Module
===========================

Provides immutable, environment-aware configuration with security-first defaults.

Security Features:
- Immutable configuration after initialization
- Environment variable override support
- No secrets in default values
- Secrets are read from their own variable, never through generic overrides
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final, Mapping, Any, Optional
import hashlib

from vaultutils.core.crypto.aes_gcm import AesGcmCipher
from vaultutils.errors import BadRequestError


# Security Constants
_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "key", "token", "api_key",
    "private", "credential", "auth", "salt"
})

_VALID_LEVELS: Final[frozenset[str]] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

DEFAULT_ENV_PREFIX: Final[str] = "VAULTUTILS"


# Setting names that contain a sensitive word but never hold secrets
_NON_SENSITIVE_NAMES: Final[frozenset[str]] = frozenset({"time_key"})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    name = key.lower().rsplit(".", 1)[-1]
    if name in _NON_SENSITIVE_NAMES:
        return False
    return any(sensitive in name for sensitive in _SENSITIVE_KEYS)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class EncryptionConfig:
    """Where the sealed-token secret key comes from."""

    secret_key_env: str = f"{DEFAULT_ENV_PREFIX}_SECRET_KEY"

    def __post_init__(self) -> None:
        if not self.secret_key_env:
            raise ValueError("secret_key_env cannot be empty")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """
    Immutable logging configuration.

    Attributes:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit one JSON object per record instead of plain text
        output_paths: "stderr", "stdout" or file paths
        time_key: Name of the timestamp field in JSON records
    """

    level: str = "INFO"
    json_output: bool = True
    output_paths: tuple[str, ...] = ("stderr",)
    time_key: str = "timestamp"
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    def __post_init__(self) -> None:
        """Validate logging settings."""
        if self.level.upper() not in _VALID_LEVELS:
            raise ValueError(f"Invalid log level: {self.level}")
        if not self.output_paths:
            raise ValueError("At least one log output path is required")
        if self.max_file_size_bytes <= 0:
            raise ValueError("max_file_size_bytes must be positive")
        if self.backup_count < 0:
            raise ValueError("backup_count cannot be negative")


class UtilsConfig:
    """
    Centralized, immutable configuration loader with environment override support.

    Usage:
        config = UtilsConfig.load()
        level = config.logging.level
        key = load_secret_key(config)
    """

    __slots__ = ("_encryption", "_logging", "_frozen", "_config_hash")

    def __init__(
        self,
        encryption: Optional[EncryptionConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        """Initialize configuration. Use UtilsConfig.load() for standard initialization."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_encryption", encryption or EncryptionConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        """Compute a hash of the configuration for integrity checking."""
        config_str = f"{self._encryption}|{self._logging}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def encryption(self) -> EncryptionConfig:
        return self._encryption

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def config_hash(self) -> str:
        """Get configuration integrity hash."""
        return self._config_hash

    @classmethod
    def load(
        cls,
        env_prefix: str = DEFAULT_ENV_PREFIX,
        environ: Optional[Mapping[str, str]] = None,
    ) -> UtilsConfig:
        """
        Load configuration with environment variable overrides.

        Environment variables should be prefixed with VAULTUTILS_ and use
        double underscores between section and key.

        Examples:
            VAULTUTILS_LOGGING__LEVEL=DEBUG
            VAULTUTILS_LOGGING__JSON_OUTPUT=false
            VAULTUTILS_LOGGING__OUTPUT_PATHS=stderr,/var/log/vaultutils/app.log

        Args:
            env_prefix: Prefix for environment variables (default: VAULTUTILS)
            environ: Mapping to read instead of os.environ

        Returns:
            Configured UtilsConfig instance
        """
        env_overrides = cls._parse_env_overrides(env_prefix, environ)

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env_overrides:
            logging_kwargs["level"] = env_overrides["logging.level"].upper()
        if "logging.json_output" in env_overrides:
            logging_kwargs["json_output"] = _parse_bool(env_overrides["logging.json_output"])
        if "logging.output_paths" in env_overrides:
            logging_kwargs["output_paths"] = tuple(
                p.strip() for p in env_overrides["logging.output_paths"].split(",") if p.strip()
            )
        if "logging.time_key" in env_overrides:
            logging_kwargs["time_key"] = env_overrides["logging.time_key"]
        if "logging.max_file_size_bytes" in env_overrides:
            logging_kwargs["max_file_size_bytes"] = int(env_overrides["logging.max_file_size_bytes"])
        if "logging.backup_count" in env_overrides:
            logging_kwargs["backup_count"] = int(env_overrides["logging.backup_count"])

        # The secret key variable name follows the prefix; its value is read
        # separately by load_secret_key().
        encryption = EncryptionConfig(secret_key_env=f"{env_prefix.upper()}_SECRET_KEY")

        return cls(
            encryption=encryption,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(
        prefix: str,
        environ: Optional[Mapping[str, str]] = None,
    ) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"
        source = os.environ if environ is None else environ

        for key, value in source.items():
            if key.startswith(prefix_upper):
                # Convert VAULTUTILS_SECTION__KEY to section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                # SECURITY: Skip sensitive keys from generic overrides
                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    def __repr__(self) -> str:
        """Safe string representation without sensitive data."""
        return f"UtilsConfig(hash={self._config_hash})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("UtilsConfig is immutable after initialization")
        super().__setattr__(name, value)


def load_secret_key(
    config: Optional[UtilsConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> bytes:
    """
    Read the sealed-token secret key from the environment.

    Args:
        config: Configuration naming the variable (default: UtilsConfig.load())
        environ: Mapping to read instead of os.environ

    Returns:
        The key as bytes (length is checked by the cipher)

    Raises:
        BadRequestError: If the variable is unset or empty
    """
    config = config or UtilsConfig.load(environ=environ)
    source = os.environ if environ is None else environ

    value = source.get(config.encryption.secret_key_env)
    if not value:
        raise BadRequestError("secret key is not configured")
    return value.encode("utf-8")


def build_encryptor(
    config: Optional[UtilsConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AesGcmCipher:
    """
    Create the sealed-token encryptor from the configured secret key.

    Raises:
        BadRequestError: If the key is missing or not 32 bytes long
    """
    return AesGcmCipher(load_secret_key(config, environ))
