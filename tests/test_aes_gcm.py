#!/usr/bin/env python3
"""
Tests for AES-256-GCM sealed tokens: key gate, round trips, tamper
detection, malformed input and failure injection at every setup stage.
"""

import base64
from concurrent.futures import ThreadPoolExecutor

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from vaultutils.core.crypto import AES_NONCE_SIZE, AES_TAG_SIZE, DataEncryptor, new_encryptor
from vaultutils.core.crypto.aes_gcm import AesGcmCipher, new_aes_block, new_gcm
from vaultutils.errors import BadRequestError, ErrorCode, InternalError

from tests.conftest import OTHER_KEY, SECRET_KEY


def raw_decode(token):
    return base64.urlsafe_b64decode(token + "=" * (-len(token) % 4))


def raw_encode(raw):
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


# ── Construction ─────────────────────────────────────────────────────────────

def test_valid_key_bytes():
    assert AesGcmCipher(b"k" * 32) is not None


def test_valid_key_string():
    cipher = AesGcmCipher(SECRET_KEY)
    assert cipher.decrypt(cipher.encrypt("x")) == "x"


@pytest.mark.parametrize("length", [0, 8, 16, 24, 31, 33, 64])
def test_invalid_key_length(length):
    with pytest.raises(BadRequestError) as exc_info:
        AesGcmCipher(b"k" * length)
    assert "secret key must be 32 bytes long" in str(exc_info.value)
    assert exc_info.value.code == ErrorCode.BAD_REQUEST


def test_short_string_key():
    with pytest.raises(BadRequestError, match="secret key must be 32 bytes long"):
        AesGcmCipher("shortkey")


def test_multibyte_string_key_length_counts_bytes():
    # 16 characters, 32 UTF-8 bytes
    assert AesGcmCipher("é" * 16) is not None
    with pytest.raises(BadRequestError):
        AesGcmCipher("é" * 32)


def test_non_bytes_key_rejected():
    with pytest.raises(BadRequestError):
        AesGcmCipher(12345)


def test_repr_hides_key(cipher):
    assert SECRET_KEY not in repr(cipher)
    assert "AES-256-GCM" in repr(cipher)


def test_generate_key_is_valid():
    key = AesGcmCipher.generate_key()
    assert len(key) == 32
    assert AesGcmCipher(key) is not None


def test_new_encryptor_satisfies_protocol(secret_key):
    encryptor = new_encryptor(secret_key)
    assert isinstance(encryptor, DataEncryptor)


# ── Encrypt ──────────────────────────────────────────────────────────────────

def test_encrypt_valid_plaintext(cipher):
    token = cipher.encrypt("Hello, World!")
    assert token
    assert "=" not in token


def test_encrypt_empty_plaintext(cipher):
    token = cipher.encrypt("")
    assert len(token) == 38
    assert len(raw_decode(token)) == AES_NONCE_SIZE + AES_TAG_SIZE


def test_token_layout(cipher):
    plaintext = "card 4111 1111 1111 1111"
    raw = raw_decode(cipher.encrypt(plaintext))
    assert len(raw) == AES_NONCE_SIZE + len(plaintext.encode()) + AES_TAG_SIZE


def test_token_is_url_safe(cipher):
    for _ in range(20):
        token = cipher.encrypt("?" * 50)
        assert set(token) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")


def test_token_opens_with_plain_aesgcm(cipher, secret_key):
    raw = raw_decode(cipher.encrypt("interop"))
    nonce, sealed = raw[:AES_NONCE_SIZE], raw[AES_NONCE_SIZE:]
    assert AESGCM(secret_key).decrypt(nonce, sealed, None) == b"interop"


def test_encrypt_is_non_deterministic(cipher):
    tokens = {cipher.encrypt("same input") for _ in range(50)}
    assert len(tokens) == 50
    nonces = {raw_decode(t)[:AES_NONCE_SIZE] for t in tokens}
    assert len(nonces) == 50


def test_encrypt_rejects_bytes(cipher):
    with pytest.raises(BadRequestError, match="plaintext must be a string"):
        cipher.encrypt(b"bytes")


# ── Decrypt ──────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("plaintext", [
    "",
    "Hello, World!",
    "päß wörd ✓ 日本語 🔐",
    "line1\nline2\ttab\x00nul",
    "X" * 100_000,
])
def test_roundtrip(cipher, plaintext):
    assert cipher.decrypt(cipher.encrypt(plaintext)) == plaintext


def test_roundtrip_across_instances(secret_key):
    token = AesGcmCipher(secret_key).encrypt("shared key")
    assert AesGcmCipher(secret_key).decrypt(token) == "shared key"


def test_invalid_base64_ciphertext(cipher):
    with pytest.raises(InternalError) as exc_info:
        cipher.decrypt("invalid$$$-base64")
    assert "could not decode ciphertext" in str(exc_info.value)
    assert exc_info.value.original is not None


@pytest.mark.parametrize("token", [
    "c2hvcnQK==",     # padding is not part of the format
    "ab+/cdef",       # standard alphabet characters
    "abcd efgh",      # whitespace
    "abcde",          # length 1 mod 4
])
def test_malformed_tokens(cipher, token):
    with pytest.raises(InternalError, match="could not decode ciphertext"):
        cipher.decrypt(token)


def test_non_string_token(cipher):
    with pytest.raises(InternalError, match="could not decode ciphertext"):
        cipher.decrypt(None)


@pytest.mark.parametrize("token", ["", "c2hvcnQK", raw_encode(b"\x00" * 11)])
def test_short_ciphertext(cipher, token):
    with pytest.raises(InternalError) as exc_info:
        cipher.decrypt(token)
    assert "ciphertext too short" in str(exc_info.value)


def test_nonce_only_token_fails_authentication(cipher):
    with pytest.raises(InternalError, match="could not decrypt ciphertext"):
        cipher.decrypt(raw_encode(b"\x00" * AES_NONCE_SIZE))


def test_tampered_ciphertext(cipher):
    token = cipher.encrypt("Hello, World!")
    with pytest.raises(InternalError) as exc_info:
        cipher.decrypt(token[:-1])

    error = exc_info.value
    assert "could not decrypt ciphertext" in str(error)
    # The rejection reason is not observable
    assert error.original is None
    assert error.__cause__ is None
    assert error.__suppress_context__


def test_every_flipped_byte_is_detected(cipher):
    raw = raw_decode(cipher.encrypt("Hello, World!"))
    for i in range(len(raw)):
        tampered = bytearray(raw)
        tampered[i] ^= 0x01
        with pytest.raises(InternalError, match="could not decrypt ciphertext"):
            cipher.decrypt(raw_encode(bytes(tampered)))


def test_truncated_and_extended_tokens_are_detected(cipher):
    raw = raw_decode(cipher.encrypt("Hello, World!"))
    for candidate in (raw[:-1], raw[:-AES_TAG_SIZE], raw + b"\x00", raw + raw[-1:]):
        with pytest.raises(InternalError, match="could not decrypt ciphertext"):
            cipher.decrypt(raw_encode(candidate))


def test_cross_key_rejection(cipher):
    token = cipher.encrypt("Hello, World!")
    with pytest.raises(InternalError, match="could not decrypt ciphertext"):
        AesGcmCipher(OTHER_KEY).decrypt(token)


def test_authenticated_non_utf8_payload(secret_key):
    nonce = b"\x07" * AES_NONCE_SIZE
    token = raw_encode(nonce + AESGCM(secret_key).encrypt(nonce, b"\xff\xfe\xfd", None))
    with pytest.raises(InternalError, match="could not decode plaintext"):
        AesGcmCipher(secret_key).decrypt(token)


def test_concurrent_use(cipher):
    messages = [f"message {i}" for i in range(200)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda m: cipher.decrypt(cipher.encrypt(m)), messages))
    assert results == messages


# ── Failure injection ────────────────────────────────────────────────────────

class FailingAead:
    def encrypt(self, nonce, data, associated_data):
        raise RuntimeError("mock seal error")

    def decrypt(self, nonce, data, associated_data):
        raise RuntimeError("mock open error")


def failing_block(key):
    raise RuntimeError("mock cipher creation error")


def failing_gcm(block):
    raise RuntimeError("mock GCM creation error")


def failing_random(size):
    raise OSError("mock io full read error")


@pytest.mark.parametrize("operation", ["encrypt", "decrypt"])
def test_cipher_creation_error(secret_key, operation):
    cipher = AesGcmCipher(secret_key, block_cipher_factory=failing_block)
    with pytest.raises(InternalError) as exc_info:
        getattr(cipher, operation)("test-ciphertext")

    error = exc_info.value
    assert "could not create cipher block" in str(error)
    assert "mock cipher creation error" in str(error)
    assert isinstance(error.__cause__, RuntimeError)


@pytest.mark.parametrize("operation", ["encrypt", "decrypt"])
def test_gcm_creation_error(secret_key, operation):
    cipher = AesGcmCipher(secret_key, aead_factory=failing_gcm)
    with pytest.raises(InternalError) as exc_info:
        getattr(cipher, operation)("test-ciphertext")

    assert "could not create GCM block cipher" in str(exc_info.value)
    assert "mock GCM creation error" in str(exc_info.value)


def test_nonce_creation_error(secret_key):
    cipher = AesGcmCipher(secret_key, random_source=failing_random)
    with pytest.raises(InternalError) as exc_info:
        cipher.encrypt("test plaintext")

    assert "could not create nonce" in str(exc_info.value)
    assert "mock io full read error" in str(exc_info.value)


@pytest.mark.parametrize("nonce", [b"", b"\x00" * 11, b"\x00" * 13])
def test_wrong_size_nonce_is_never_used(secret_key, nonce):
    calls = []

    class RecordingAead:
        def encrypt(self, *args):
            calls.append(args)
            return b""

    cipher = AesGcmCipher(
        secret_key,
        aead_factory=lambda block: RecordingAead(),
        random_source=lambda size: nonce,
    )
    with pytest.raises(InternalError, match="could not create nonce"):
        cipher.encrypt("test plaintext")
    assert calls == []


def test_seal_error(secret_key):
    cipher = AesGcmCipher(secret_key, aead_factory=lambda block: FailingAead())
    with pytest.raises(InternalError, match="could not seal plaintext"):
        cipher.encrypt("test plaintext")


def test_open_error_is_opaque(secret_key):
    token = AesGcmCipher(secret_key).encrypt("test plaintext")
    cipher = AesGcmCipher(secret_key, aead_factory=lambda block: FailingAead())
    with pytest.raises(InternalError) as exc_info:
        cipher.decrypt(token)

    assert "could not decrypt ciphertext" in str(exc_info.value)
    assert "mock open error" not in str(exc_info.value)


def test_injected_random_source_is_used(secret_key):
    nonce = bytes(range(AES_NONCE_SIZE))
    cipher = AesGcmCipher(secret_key, random_source=lambda size: nonce)
    token = cipher.encrypt("fixed")
    assert raw_decode(token)[:AES_NONCE_SIZE] == nonce
    assert cipher.decrypt(token) == "fixed"


def test_default_factories(secret_key):
    block = new_aes_block(secret_key)
    aead = new_gcm(block)
    nonce = b"\x00" * AES_NONCE_SIZE
    assert aead.decrypt(nonce, aead.encrypt(nonce, b"data", None), None) == b"data"
