"""
Exception hierarchy for the NovaPay signing layer.

Key loading, signing and key lifecycle failures are raised as typed
exceptions so callers can tell "regenerate the key" apart from
"re-enter the passphrase". Signature mismatches are not errors: verify
functions return False for them.
"""

from typing import Any, Dict, Optional


class NovaPayError(Exception):
    """Base exception for NovaPay client errors"""
    pass


class SignatureError(NovaPayError):
    """Raised when a signature cannot be created or checked"""
    pass


class InvalidKeyError(SignatureError):
    """Key material is not a usable PEM-encoded RSA key"""
    pass


class WrongPassphraseError(SignatureError):
    """Private key is encrypted and the passphrase is wrong or missing"""
    pass


class SigningFailedError(SignatureError):
    """The RSA operation itself failed on otherwise valid key material"""
    pass


class KeyGenerationError(NovaPayError):
    """Raised when a key lifecycle request is rejected"""
    pass


class WeakKeySizeError(KeyGenerationError):
    pass


class EmptyPassphraseError(KeyGenerationError):
    pass


class PassphraseTooShortError(KeyGenerationError):
    pass


class UnsupportedCipherError(KeyGenerationError):
    pass


class CanonicalizationError(NovaPayError, ValueError):
    """Raised when a payload holds a value with no canonical form"""
    pass


class ConfigurationError(NovaPayError):
    """Raised when required configuration is missing"""
    pass


class APIError(NovaPayError):
    """Raised when the gateway returns an error"""
    def __init__(self, message: str, status_code: int, response: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response
