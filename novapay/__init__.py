"""NovaPay gateway client - RSA request signing and key management"""

from .client import NovaPayClient
from .config import NovaPayConfig, load_key_source
from .errors import (
    APIError,
    CanonicalizationError,
    ConfigurationError,
    EmptyPassphraseError,
    InvalidKeyError,
    KeyGenerationError,
    NovaPayError,
    PassphraseTooShortError,
    SignatureError,
    SigningFailedError,
    UnsupportedCipherError,
    WeakKeySizeError,
    WrongPassphraseError,
)
from .keygen import (
    KeyInfo,
    KeyPair,
    decrypt_private_key,
    encrypt_private_key,
    generate_key_pair,
    generate_passphrase,
    get_key_info,
    is_private_key_encrypted,
    validate_private_key,
)
from .keys import KeyMaterial, KeyRole, load_private_key, load_public_key
from .signer import PayloadSigner
from .utils import DEFAULT_PROFILE, LEGACY_JSON_PROFILE, SigningProfile, canonicalize, sign_rsa, verify_rsa

__version__ = "0.1.0"

__all__ = [
    "NovaPayClient",
    "NovaPayConfig",
    "load_key_source",
    "APIError",
    "CanonicalizationError",
    "ConfigurationError",
    "EmptyPassphraseError",
    "InvalidKeyError",
    "KeyGenerationError",
    "NovaPayError",
    "PassphraseTooShortError",
    "SignatureError",
    "SigningFailedError",
    "UnsupportedCipherError",
    "WeakKeySizeError",
    "WrongPassphraseError",
    "KeyInfo",
    "KeyPair",
    "decrypt_private_key",
    "encrypt_private_key",
    "generate_key_pair",
    "generate_passphrase",
    "get_key_info",
    "is_private_key_encrypted",
    "validate_private_key",
    "KeyMaterial",
    "KeyRole",
    "load_private_key",
    "load_public_key",
    "PayloadSigner",
    "DEFAULT_PROFILE",
    "LEGACY_JSON_PROFILE",
    "SigningProfile",
    "canonicalize",
    "sign_rsa",
    "verify_rsa",
]
