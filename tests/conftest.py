"""
Shared fixtures: RSA key pairs are generated once per test session.
"""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from novapay.keygen import generate_key_pair

PASSPHRASE = "test_passphrase_2024!"


@pytest.fixture(scope="session")
def key_passphrase():
    return PASSPHRASE


@pytest.fixture(scope="session")
def key_pair():
    """Unencrypted 2048-bit merchant key pair."""
    return generate_key_pair(2048)


@pytest.fixture(scope="session")
def encrypted_key_pair():
    """Passphrase-protected 2048-bit key pair (PASSPHRASE)."""
    return generate_key_pair(2048, passphrase=PASSPHRASE)


@pytest.fixture(scope="session")
def other_key_pair():
    """Unrelated key pair, e.g. a different counterparty."""
    return generate_key_pair(2048)


@pytest.fixture(scope="session")
def ec_private_pem():
    """A valid PEM private key that is not RSA."""
    key = ec.generate_private_key(ec.SECP256R1())
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def ec_public_pem(ec_private_pem):
    key = serialization.load_pem_private_key(ec_private_pem.encode("ascii"), password=None)
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


@pytest.fixture
def payment_payload():
    return {
        "merchant_id": "test_merchant",
        "external_id": "order-42",
        "amount": 100.5,
        "currency": "UAH",
        "use_hold": False,
        "description": None,
        "delivery": {"weight": 0.5, "city": "kyiv"},
        "products": [
            {"description": "Book", "count": 1, "price": 100.5},
        ],
    }
