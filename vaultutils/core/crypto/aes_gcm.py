"""
AES-256-GCM Sealed Tokens
=========================

Encrypts text under a fixed 256-bit key into self-contained, URL-safe
tokens, and opens them again with integrity verification.

Token Format:
    base64url_nopad( nonce(12) || ciphertext || tag(16) )

Security Properties:
    - 256-bit key, validated once at construction
    - 96-bit nonce drawn from the OS CSPRNG for every encryption
    - 128-bit authentication tag, verified before any plaintext is returned
    - No associated data

NIST SP 800-38D Compliance:
    - GCM mode with 96-bit IV
    - Random IV per encryption under the same key

WARNING:
    - Never log plaintext, keys or nonces
    - Authentication failures are reported with a generic message only
"""

from __future__ import annotations

import base64
import re
import secrets
from typing import Final, Optional, Protocol, runtime_checkable

from cryptography.hazmat.primitives.ciphers import algorithms
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from vaultutils.errors import BadRequestError, InternalError

# Constants following NIST recommendations
AES_KEY_SIZE: Final[int] = 32  # 256 bits
AES_NONCE_SIZE: Final[int] = 12  # 96 bits (NIST recommended for GCM)
AES_TAG_SIZE: Final[int] = 16  # 128 bits

_TOKEN_ALPHABET: Final[re.Pattern[str]] = re.compile(r"[A-Za-z0-9_-]*")


class BlockCipher(Protocol):
    """A keyed block cipher (AES)."""

    @property
    def key(self) -> bytes: ...


class Aead(Protocol):
    """An AEAD primitive with the `cryptography` calling convention."""

    def encrypt(self, nonce: bytes, data: bytes, associated_data: Optional[bytes]) -> bytes: ...

    def decrypt(self, nonce: bytes, data: bytes, associated_data: Optional[bytes]) -> bytes: ...


class BlockCipherFactory(Protocol):
    def __call__(self, key: bytes) -> BlockCipher: ...


class AeadFactory(Protocol):
    def __call__(self, block: BlockCipher) -> Aead: ...


class RandomSource(Protocol):
    def __call__(self, size: int) -> bytes: ...


@runtime_checkable
class DataEncryptor(Protocol):
    """Anything that turns text into sealed tokens and back."""

    def encrypt(self, plaintext: str) -> str: ...

    def decrypt(self, ciphertext: str) -> str: ...


def new_aes_block(key: bytes) -> algorithms.AES:
    """Create the AES block cipher for key."""
    return algorithms.AES(key)


def new_gcm(block: BlockCipher) -> AESGCM:
    """Wrap a block cipher in GCM mode (12-byte nonce, 16-byte tag)."""
    return AESGCM(block.key)


def _encode_token(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _decode_token(token: str) -> bytes:
    """
    Strictly decode an unpadded base64url token.

    Raises:
        TypeError: If the token is not a str
        ValueError: If the token is not valid unpadded base64url
    """
    if not isinstance(token, str):
        raise TypeError("token must be a string")
    if not _TOKEN_ALPHABET.fullmatch(token):
        raise ValueError("token contains characters outside the base64url alphabet")
    if len(token) % 4 == 1:
        raise ValueError("token has an invalid length")
    return base64.urlsafe_b64decode(token + "=" * (-len(token) % 4))


class AesGcmCipher:
    """
    AES-256-GCM sealed-token encryptor.

    The instance holds only the key and the three primitive factories, all
    read-only, so one instance can be shared by concurrent callers.

    Usage:
        cipher = AesGcmCipher(secret_key)

        token = cipher.encrypt("Hello, World!")
        assert cipher.decrypt(token) == "Hello, World!"

    Failure injection:
        The block-cipher factory, AEAD factory and random source can be
        replaced at construction to exercise each failure stage.
    """

    __slots__ = ("_key", "_new_block", "_new_aead", "_random")

    def __init__(
        self,
        secret_key: bytes | str,
        *,
        block_cipher_factory: Optional[BlockCipherFactory] = None,
        aead_factory: Optional[AeadFactory] = None,
        random_source: Optional[RandomSource] = None,
    ) -> None:
        """
        Args:
            secret_key: Exactly 32 bytes (a str is UTF-8 encoded first)
            block_cipher_factory: Builds the block cipher from the key
            aead_factory: Wraps the block cipher in GCM
            random_source: Returns `size` cryptographically random bytes

        Raises:
            BadRequestError: If the key is not 32 bytes long
        """
        if isinstance(secret_key, str):
            secret_key = secret_key.encode("utf-8")
        if not isinstance(secret_key, (bytes, bytearray)) or len(secret_key) != AES_KEY_SIZE:
            raise BadRequestError("secret key must be 32 bytes long")

        self._key = bytes(secret_key)
        self._new_block = block_cipher_factory or new_aes_block
        self._new_aead = aead_factory or new_gcm
        self._random = random_source or secrets.token_bytes

    def __repr__(self) -> str:
        """Safe representation without exposing key material."""
        return "AesGcmCipher(algorithm='AES-256-GCM')"

    @staticmethod
    def generate_key() -> bytes:
        """Generate a random AES-256 key from the OS CSPRNG."""
        return secrets.token_bytes(AES_KEY_SIZE)

    def _aead(self) -> Aead:
        try:
            block = self._new_block(self._key)
        except Exception as e:
            raise InternalError("could not create cipher block", original=e) from e

        try:
            return self._new_aead(block)
        except Exception as e:
            raise InternalError("could not create GCM block cipher", original=e) from e

    def _nonce(self) -> bytes:
        try:
            nonce = self._random(AES_NONCE_SIZE)
        except Exception as e:
            raise InternalError("could not create nonce", original=e) from e

        # A short or oversized read must never reach the AEAD
        if not isinstance(nonce, bytes) or len(nonce) != AES_NONCE_SIZE:
            raise InternalError("could not create nonce")
        return nonce

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt text into a sealed token.

        Args:
            plaintext: Text to encrypt (can be empty)

        Returns:
            base64url (unpadded) of nonce || ciphertext || tag

        Raises:
            BadRequestError: If plaintext is not a str
            InternalError: If cipher setup, nonce generation or sealing fails
        """
        if not isinstance(plaintext, str):
            raise BadRequestError("plaintext must be a string")

        aead = self._aead()
        nonce = self._nonce()

        try:
            sealed = aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        except Exception as e:
            raise InternalError("could not seal plaintext", original=e) from e

        return _encode_token(nonce + sealed)

    def decrypt(self, ciphertext: str) -> str:
        """
        Open a sealed token.

        Args:
            ciphertext: Token produced by encrypt()

        Returns:
            The original text

        Raises:
            InternalError: If cipher setup fails, the token is malformed or
                too short, or authentication fails

        Security Notes:
            - The tag is verified before any plaintext is produced
            - Authentication failures carry no cause, so callers cannot
              tell a bad tag from a wrong key or corrupted data
        """
        aead = self._aead()

        try:
            raw = _decode_token(ciphertext)
        except (TypeError, ValueError) as e:
            raise InternalError("could not decode ciphertext", original=e) from e

        if len(raw) < AES_NONCE_SIZE:
            raise InternalError("ciphertext too short")

        nonce, sealed = raw[:AES_NONCE_SIZE], raw[AES_NONCE_SIZE:]

        try:
            plaintext = aead.decrypt(nonce, sealed, None)
        except Exception:
            raise InternalError("could not decrypt ciphertext") from None

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InternalError("could not decode plaintext", original=e) from e


def new_encryptor(secret_key: bytes | str) -> DataEncryptor:
    """Create the default sealed-token encryptor for secret_key."""
    return AesGcmCipher(secret_key)
