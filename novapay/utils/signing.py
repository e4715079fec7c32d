"""
Payload signing utilities for RSA signatures.

A signing profile pins the canonicalization scheme and the digest
algorithm. Both sides of the wire must use the same profile; changing it
is a breaking protocol change.

Process:
1. Canonicalize the payload (reserved x-sign field removed)
2. RSASSA-PKCS1-v1_5 sign with the profile digest
3. Base64-encode the raw signature for the x-sign header
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Mapping

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from ..errors import CanonicalizationError, SigningFailedError
from ..keys import KeyMaterial, resolve_private_key, resolve_public_key
from .canonical_json import SCHEMES, SCHEME_JSON, SCHEME_SORTED_PAIRS, canonicalize

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-sign"

_DIGESTS = {
    "sha1": hashes.SHA1,
    "sha256": hashes.SHA256,
    "sha512": hashes.SHA512,
}


@dataclass(frozen=True)
class SigningProfile:
    """Wire contract: (canonicalization scheme, digest algorithm)."""
    scheme: str = SCHEME_SORTED_PAIRS
    digest: str = "sha256"

    def __post_init__(self):
        if self.scheme not in SCHEMES:
            raise CanonicalizationError(f"Unknown canonicalization scheme: {self.scheme}")
        if self.digest not in _DIGESTS:
            raise ValueError(f"Unsupported digest algorithm: {self.digest}")

    def hash_algorithm(self) -> hashes.HashAlgorithm:
        return _DIGESTS[self.digest]()


DEFAULT_PROFILE = SigningProfile(SCHEME_SORTED_PAIRS, "sha256")

# Earlier gateway revisions signed canonical JSON with SHA-1
LEGACY_JSON_PROFILE = SigningProfile(SCHEME_JSON, "sha1")


def signature_payload(payload: Mapping[str, Any], profile: SigningProfile = DEFAULT_PROFILE) -> bytes:
    """
    Generate the canonical bytes that get signed for a payload.

    Args:
        payload: Request or callback mapping
        profile: Signing profile fixing the canonicalization scheme

    Returns:
        Canonical bytes ready for signing
    """
    return canonicalize(payload, profile.scheme)


def sign_rsa(payload: Mapping[str, Any], material: KeyMaterial, profile: SigningProfile = DEFAULT_PROFILE) -> str:
    """
    Sign a payload with an RSA private key.

    Args:
        payload: Request mapping to sign
        material: Private KeyMaterial
        profile: Signing profile

    Returns:
        Base64-encoded signature

    Raises:
        InvalidKeyError: If the key cannot be loaded
        WrongPassphraseError: If the key passphrase is wrong or missing
        SigningFailedError: If the RSA operation fails
    """
    data = signature_payload(payload, profile)
    private_key = resolve_private_key(material)

    try:
        signature = private_key.sign(data, padding.PKCS1v15(), profile.hash_algorithm())
    except Exception as e:
        logger.error(f"RSA signing failed: {e}")
        raise SigningFailedError(f"Failed to create signature: {e}") from e

    logger.debug(f"Signed {len(data)} canonical bytes with {profile.scheme}/{profile.digest}")
    return base64.b64encode(signature).decode("ascii")


def decode_signature(signature: str) -> bytes:
    """Strict base64 decode; raises binascii.Error on malformed input."""
    return base64.b64decode(signature, validate=True)


def verify_rsa(
    payload: Mapping[str, Any],
    signature: str,
    material: KeyMaterial,
    profile: SigningProfile = DEFAULT_PROFILE,
) -> bool:
    """
    Verify an RSA signature on a payload.

    Process:
    1. Load the public key (malformed key raises)
    2. Base64-decode the signature
    3. Canonicalize the payload and check the signature

    Args:
        payload: Received mapping, possibly still holding the x-sign field
        signature: Base64 signature from the x-sign header
        material: Public KeyMaterial of the sender
        profile: Signing profile

    Returns:
        True if the signature matches, False otherwise

    Raises:
        InvalidKeyError: If the public key itself is malformed
    """
    public_key = resolve_public_key(material)

    if not signature:
        logger.warning("Empty signature")
        return False

    try:
        raw_signature = decode_signature(signature)
    except (binascii.Error, ValueError):
        logger.warning("Signature is not valid base64")
        return False

    data = signature_payload(payload, profile)

    try:
        public_key.verify(raw_signature, data, padding.PKCS1v15(), profile.hash_algorithm())
    except InvalidSignature:
        logger.warning("Signature verification failed")
        return False

    return True
