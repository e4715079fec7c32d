"""
Signer/verifier bound to one merchant key pair and one signing profile.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .keys import KeyMaterial, KeyText, has_encrypted_marker, load_private_key, load_public_key, to_bytes
from .keygen import is_private_key_encrypted
from .utils.signing import DEFAULT_PROFILE, SigningProfile, sign_rsa, verify_rsa

logger = logging.getLogger(__name__)


class PayloadSigner:
    """
    Signs outgoing payloads with the merchant private key and verifies
    incoming payloads against the gateway public key.

    Keys are loaded lazily and cached as immutable KeyMaterial only; a
    fresh key handle is built for every operation, so one instance can be
    shared between threads. Re-keying means building a new instance.
    """

    def __init__(
        self,
        private_key: KeyText,
        public_key: KeyText,
        passphrase: Optional[KeyText] = None,
        profile: SigningProfile = DEFAULT_PROFILE,
    ):
        """
        Args:
            private_key: Merchant private key PEM, optionally encrypted
            public_key: Counterparty public key PEM
            passphrase: Private key passphrase; "" counts as none
            profile: Wire contract shared by signing and verification
        """
        self._private_pem = to_bytes(private_key) or b""
        self._public_pem = to_bytes(public_key) or b""
        self._passphrase = to_bytes(passphrase)
        self.profile = profile
        self._private: Optional[KeyMaterial] = None
        self._public: Optional[KeyMaterial] = None

    def _private_material(self) -> KeyMaterial:
        if self._private is None:
            self._private = load_private_key(self._private_pem, self._passphrase)
        return self._private

    def _public_material(self) -> KeyMaterial:
        if self._public is None:
            self._public = load_public_key(self._public_pem)
        return self._public

    def create_signature(self, data: Mapping[str, Any]) -> str:
        """Sign an outgoing payload; returns the x-sign header value."""
        return sign_rsa(data, self._private_material(), self.profile)

    def verify_signature(self, data: Mapping[str, Any], signature: str) -> bool:
        """Verify an incoming payload against the counterparty public key."""
        return verify_rsa(data, signature, self._public_material(), self.profile)

    def validate_private_key(self) -> bool:
        """
        Check that the private key loads with the configured passphrase.

        Raises:
            InvalidKeyError: If the key is malformed
            WrongPassphraseError: If the passphrase is wrong or missing
        """
        self._private_material()
        return True

    def is_private_key_encrypted(self) -> bool:
        if self._private is not None:
            return self._private.encrypted or has_encrypted_marker(self._private_pem)
        return is_private_key_encrypted(self._private_pem)

    def create_test_signature(self) -> Dict[str, Any]:
        """
        Sign a fixed sample payload as a self-check of the key setup.

        The returned signature verifies only when the configured public
        key belongs to the same key pair.
        """
        data = {
            "test": True,
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "message": "NovaPay signature test",
        }
        signature = self.create_signature(data)
        logger.debug("Created test signature")
        return {"data": data, "signature": signature}
