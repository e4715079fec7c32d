"""
RSA key material loading.

KeyMaterial is an immutable value holding PEM bytes, the key role and the
resolved passphrase. Key handles from the cryptography library are built
fresh on every call from that value, so no handle is shared between
threads or cached at module level.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import InvalidKeyError, WrongPassphraseError

logger = logging.getLogger(__name__)

KeyText = Union[str, bytes]

# PEM markers of passphrase-protected private keys (PKCS#8 and traditional OpenSSL)
ENCRYPTED_PEM_MARKERS = (b"ENCRYPTED PRIVATE KEY", b"Proc-Type: 4,ENCRYPTED")

# Fragments of cryptography's own error text for passphrase failures
_MISSING_PASSWORD = "Password was not given but private key is encrypted"
_UNEXPECTED_PASSWORD = "Password was given but private key is not encrypted"
_BAD_PASSWORD = ("incorrect password", "bad decrypt")


class KeyRole(Enum):
    PRIVATE = "private"
    PUBLIC = "public"


@dataclass(frozen=True)
class KeyMaterial:
    """
    Loaded key content.

    An empty passphrase is stored as None so that "" and "no passphrase"
    behave the same everywhere.
    """
    raw: bytes
    role: KeyRole
    passphrase: Optional[bytes] = field(default=None, repr=False)

    def __post_init__(self):
        if not self.passphrase:
            object.__setattr__(self, "passphrase", None)

    @property
    def pem(self) -> str:
        return self.raw.decode("ascii")

    @property
    def encrypted(self) -> bool:
        return self.role is KeyRole.PRIVATE and self.passphrase is not None


def to_bytes(value: Optional[KeyText]) -> Optional[bytes]:
    """Encode str input as UTF-8; empty values become None."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.encode("utf-8")
    return value or None


def looks_like_pem(raw: bytes) -> bool:
    return b"-----BEGIN " in raw


def has_encrypted_marker(raw: bytes) -> bool:
    return any(marker in raw for marker in ENCRYPTED_PEM_MARKERS)


def deserialize_private_key(raw: bytes, passphrase: Optional[bytes] = None):
    """
    Deserialize a PEM private key of any algorithm.

    A passphrase given for an unencrypted key is ignored.

    Returns:
        Tuple of (key object, passphrase actually needed or None)

    Raises:
        InvalidKeyError: If the content is not a private key
        WrongPassphraseError: If the key is encrypted and the passphrase is wrong or missing
    """
    if not looks_like_pem(raw):
        raise InvalidKeyError("Invalid private key: no PEM block found")

    try:
        return serialization.load_pem_private_key(raw, password=passphrase), passphrase
    except TypeError as exc:
        if _UNEXPECTED_PASSWORD in str(exc):
            return deserialize_private_key(raw, None)
        if _MISSING_PASSWORD in str(exc):
            raise WrongPassphraseError(
                "Invalid private key or incorrect passphrase: key is encrypted but no passphrase was given"
            ) from exc
        raise InvalidKeyError(f"Invalid private key: {exc}") from exc
    except ValueError as exc:
        message = str(exc).lower()
        if any(fragment in message for fragment in _BAD_PASSWORD):
            raise WrongPassphraseError("Invalid private key or incorrect passphrase") from exc
        # Cannot tell a corrupt key from a wrong passphrase here
        if passphrase is not None and has_encrypted_marker(raw):
            raise WrongPassphraseError("Invalid private key or incorrect passphrase") from exc
        raise InvalidKeyError(f"Invalid private key: {exc}") from exc
    except UnsupportedAlgorithm as exc:
        raise InvalidKeyError(f"Invalid private key: {exc}") from exc


def resolve_private_key(material: KeyMaterial) -> rsa.RSAPrivateKey:
    """Build a private key handle from KeyMaterial."""
    if material.role is not KeyRole.PRIVATE:
        raise InvalidKeyError("Expected private key material")
    key, _ = deserialize_private_key(material.raw, material.passphrase)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise InvalidKeyError(f"Not an RSA private key: {type(key).__name__}")
    return key


def resolve_public_key(material: KeyMaterial) -> rsa.RSAPublicKey:
    """Build a public key handle from KeyMaterial."""
    if material.role is not KeyRole.PUBLIC:
        raise InvalidKeyError("Expected public key material")
    if not looks_like_pem(material.raw):
        raise InvalidKeyError("Invalid public key: no PEM block found")

    try:
        key = serialization.load_pem_public_key(material.raw)
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise InvalidKeyError(f"Invalid public key: {exc}") from exc

    if not isinstance(key, rsa.RSAPublicKey):
        raise InvalidKeyError(f"Not an RSA public key: {type(key).__name__}")
    return key


def load_private_key(pem: KeyText, passphrase: Optional[KeyText] = None) -> KeyMaterial:
    """
    Load and validate a PEM-encoded RSA private key.

    Args:
        pem: PEM text (PKCS#1 or PKCS#8, optionally encrypted)
        passphrase: Passphrase for an encrypted key; "" counts as none

    Returns:
        Private KeyMaterial; passphrase is kept only if the key needs it

    Raises:
        InvalidKeyError: If the content is not an RSA private key
        WrongPassphraseError: If the passphrase does not decrypt the key
    """
    raw = to_bytes(pem) or b""
    secret = to_bytes(passphrase)

    try:
        key, needed = deserialize_private_key(raw, secret)
    except (InvalidKeyError, WrongPassphraseError) as exc:
        logger.warning(f"Private key load failed: {exc}")
        raise

    if not isinstance(key, rsa.RSAPrivateKey):
        raise InvalidKeyError(f"Not an RSA private key: {type(key).__name__}")

    return KeyMaterial(raw=raw, role=KeyRole.PRIVATE, passphrase=needed)


def load_public_key(pem: KeyText) -> KeyMaterial:
    """
    Load and validate a PEM-encoded RSA public key.

    Raises:
        InvalidKeyError: If the content is not an RSA public key
    """
    material = KeyMaterial(raw=to_bytes(pem) or b"", role=KeyRole.PUBLIC)
    try:
        resolve_public_key(material)
    except InvalidKeyError as exc:
        logger.warning(f"Public key load failed: {exc}")
        raise
    return material
