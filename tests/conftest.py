import logging

import pytest

from vaultutils.core.crypto.aes_gcm import AesGcmCipher

SECRET_KEY = "39b04101cac8b8f8c24f4780fd5f1950"
OTHER_KEY = b"\x01" * 32


@pytest.fixture
def secret_key():
    return SECRET_KEY.encode()


@pytest.fixture
def cipher(secret_key):
    return AesGcmCipher(secret_key)


@pytest.fixture
def logger_name(request):
    """Unique logger name, with handlers removed after the test."""
    name = f"vaultutils.tests.{request.node.name}"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
