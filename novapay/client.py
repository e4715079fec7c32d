"""
HTTP client for the NovaPay gateway with built-in request signing.

Usage:
    from novapay import NovaPayClient

    client = NovaPayClient(
        merchant_id="merchant-001",
        private_key=open("keys/private.key").read(),
        public_key=NOVAPAY_PUBLIC_KEY,
        passphrase="key passphrase",
    )

    session = client.create_session({"external_id": "order-1", "amount": 100, "currency": "UAH"})
"""

import logging
from typing import Any, Dict, Mapping, Optional

import requests

from .config import NovaPayConfig
from .errors import APIError, SignatureError
from .keys import KeyText
from .signer import PayloadSigner
from .utils.canonical_json import dumps_canonical
from .utils.signing import DEFAULT_PROFILE, SIGNATURE_HEADER, SigningProfile

logger = logging.getLogger(__name__)

SANDBOX_URL = "https://api-qecom.novapay.ua/v1"
PRODUCTION_URL = "https://api-ecom.novapay.ua/v1"

USER_AGENT = "novapay-python/0.1.0"


class NovaPayClient:
    """
    Client for the NovaPay gateway.

    Every request body is signed and sent with an x-sign header; responses
    carrying an x-sign header are verified against the gateway public key.
    """

    def __init__(
        self,
        merchant_id: str,
        private_key: KeyText,
        public_key: KeyText,
        passphrase: Optional[KeyText] = None,
        sandbox: bool = True,
        timeout: int = 30,
        profile: SigningProfile = DEFAULT_PROFILE,
    ):
        """
        Initialize NovaPay client

        Args:
            merchant_id: Merchant identifier
            private_key: Merchant private key PEM
            public_key: NovaPay public key PEM
            passphrase: Passphrase of an encrypted private key
            sandbox: Use the sandbox environment
            timeout: Request timeout in seconds
            profile: Signing profile agreed with the gateway
        """
        self.merchant_id = merchant_id
        self.base_url = SANDBOX_URL if sandbox else PRODUCTION_URL
        self.timeout = timeout
        self.signer = PayloadSigner(private_key, public_key, passphrase=passphrase, profile=profile)

        self.session = requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        })

    @classmethod
    def from_config(cls, config: NovaPayConfig) -> "NovaPayClient":
        return cls(
            merchant_id=config.merchant_id,
            private_key=config.private_key,
            public_key=config.public_key,
            passphrase=config.passphrase,
            sandbox=config.sandbox,
            timeout=config.timeout,
        )

    def post(self, endpoint: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Sign and POST a payload to a gateway endpoint.

        Args:
            endpoint: Path such as "/session"
            data: Request payload

        Returns:
            Decoded JSON response

        Raises:
            InvalidKeyError, WrongPassphraseError: If the private key cannot be used
            SignatureError: If the response signature does not verify
            APIError: If the request fails or the gateway returns an error
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        signature = self.signer.create_signature(data)

        try:
            response = self.session.post(
                url,
                data=dumps_canonical(data),
                headers={SIGNATURE_HEADER: signature},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Request to {endpoint} failed: {e}")
            raise APIError(f"Request failed: {e}", status_code=0) from e

        try:
            body = response.json() if response.text else None
        except ValueError:
            body = None

        if response.status_code != 200:
            message = body.get("message") if isinstance(body, dict) else None
            logger.error(f"Gateway error {response.status_code} for {endpoint}")
            raise APIError(
                f"HTTP error {response.status_code}: {message or response.text}",
                status_code=response.status_code,
                response=body if isinstance(body, dict) else None,
            )

        if not isinstance(body, dict):
            raise APIError("Gateway returned a non-JSON response", status_code=response.status_code)

        response_signature = response.headers.get(SIGNATURE_HEADER)
        if response_signature and not self.signer.verify_signature(body, response_signature):
            logger.warning(f"Response signature mismatch for {endpoint}")
            raise SignatureError("Response signature verification failed")

        logger.debug(f"{endpoint} succeeded")
        return body

    def create_session(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a payment session."""
        payload = dict(data)
        payload["merchant_id"] = self.merchant_id
        return self.post("/session", payload)

    def add_payment(self, session_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Add a payment to an existing session."""
        payload = dict(data)
        payload["session_id"] = session_id
        return self.post("/payment", payload)

    def get_status(self, session_id: str) -> Dict[str, Any]:
        return self.post("/get-status", {"session_id": session_id})

    def verify_callback(self, data: Mapping[str, Any], signature: str) -> bool:
        """Verify a callback body against its x-sign header."""
        return self.signer.verify_signature(data, signature)

    def close(self):
        """Close session"""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
