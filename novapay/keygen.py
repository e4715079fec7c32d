"""
RSA key lifecycle: generation, passphrase encryption and decryption,
encryption detection, validation, inspection and passphrase generation.

Private keys are exported as PKCS#8 PEM, public keys as SubjectPublicKeyInfo
PEM. Passphrase-protected keys use a PKCS#8 encryption envelope with a named
cipher (AES-256-CBC by default).
"""

import logging
import secrets
import string
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa

from .errors import (
    EmptyPassphraseError,
    InvalidKeyError,
    NovaPayError,
    PassphraseTooShortError,
    UnsupportedCipherError,
    WeakKeySizeError,
    WrongPassphraseError,
)
from .keys import (
    KeyMaterial,
    KeyRole,
    KeyText,
    deserialize_private_key,
    has_encrypted_marker,
    load_private_key,
    to_bytes,
)

logger = logging.getLogger(__name__)

MIN_KEY_BITS = 2048
DEFAULT_KEY_BITS = 2048
PUBLIC_EXPONENT = 65537

DEFAULT_CIPHER = "AES-256-CBC"

# Cipher name -> envelope factory. PKCS#8 best-available encryption is
# PBES2 with AES-256-CBC; cryptography offers no other PKCS#8 scheme.
CIPHERS = {
    "AES-256-CBC": serialization.BestAvailableEncryption,
}

MIN_PASSPHRASE_LENGTH = 12
DEFAULT_PASSPHRASE_LENGTH = 32
PASSPHRASE_ALPHABET = string.ascii_letters + string.digits
PASSPHRASE_SPECIAL = "!@#$%^&*()_+-=[]{}|;:,.<>?"


@dataclass(frozen=True)
class KeyPair:
    """Freshly generated key pair; persisting it is up to the caller."""
    private: KeyMaterial
    public: KeyMaterial
    encrypted: bool

    @property
    def private_pem(self) -> str:
        return self.private.pem

    @property
    def public_pem(self) -> str:
        return self.public.pem


@dataclass(frozen=True)
class KeyInfo:
    bits: int
    algorithm: str
    encrypted: bool

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _cipher_scheme(cipher: str):
    name = cipher.upper().replace("_", "-")
    if name not in CIPHERS:
        raise UnsupportedCipherError(
            f"Unsupported cipher: {cipher} (supported: {', '.join(sorted(CIPHERS))})"
        )
    return CIPHERS[name]


def _encryption(passphrase: Optional[bytes], cipher: str) -> serialization.KeySerializationEncryption:
    if not passphrase:
        return serialization.NoEncryption()
    return _cipher_scheme(cipher)(passphrase)


def _export_private(key, passphrase: Optional[bytes], cipher: str) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=_encryption(passphrase, cipher),
    )


def _export_public(key) -> bytes:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def generate_key_pair(
    bits: int = DEFAULT_KEY_BITS,
    passphrase: Optional[KeyText] = None,
    cipher: str = DEFAULT_CIPHER,
) -> KeyPair:
    """
    Generate a new RSA key pair.

    Args:
        bits: Modulus size, at least 2048
        passphrase: Optional passphrase to encrypt the private key
        cipher: Cipher for the private key envelope (default: AES-256-CBC)

    Returns:
        KeyPair with PEM private and public keys

    Raises:
        WeakKeySizeError: If bits < 2048
        UnsupportedCipherError: If the cipher is not available

    Example:
        >>> pair = generate_key_pair(2048, passphrase="s3cret-passphrase")
        >>> pair.encrypted
        True
    """
    if bits < MIN_KEY_BITS:
        raise WeakKeySizeError(f"Key size must be at least {MIN_KEY_BITS} bits for security, got {bits}")

    secret = to_bytes(passphrase)
    if secret:
        # Fail on a bad cipher name before spending time on key generation
        _cipher_scheme(cipher)

    # OpenSSL's CSPRNG is safe for concurrent use
    private_key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=bits)

    private_pem = _export_private(private_key, secret, cipher)
    public_pem = _export_public(private_key)

    logger.info(f"Generated {bits}-bit RSA key pair (encrypted={bool(secret)})")

    return KeyPair(
        private=KeyMaterial(raw=private_pem, role=KeyRole.PRIVATE, passphrase=secret),
        public=KeyMaterial(raw=public_pem, role=KeyRole.PUBLIC),
        encrypted=bool(secret),
    )


def encrypt_private_key(
    private_key: KeyText,
    passphrase: KeyText,
    cipher: str = DEFAULT_CIPHER,
    current_passphrase: Optional[KeyText] = None,
) -> KeyMaterial:
    """
    Encrypt an existing private key with a passphrase.

    Args:
        private_key: Private key PEM
        passphrase: New passphrase, must not be empty
        cipher: Cipher for the envelope
        current_passphrase: Passphrase of an already encrypted input key

    Returns:
        Private KeyMaterial holding the encrypted PEM

    Raises:
        EmptyPassphraseError: If passphrase is empty
        InvalidKeyError: If the input is not a private key
        WrongPassphraseError: If an encrypted input cannot be opened
    """
    secret = to_bytes(passphrase)
    if not secret:
        raise EmptyPassphraseError("Passphrase cannot be empty")
    _cipher_scheme(cipher)

    key, _ = deserialize_private_key(to_bytes(private_key) or b"", to_bytes(current_passphrase))
    encrypted_pem = _export_private(key, secret, cipher)

    logger.info(f"Encrypted private key with {cipher}")
    return KeyMaterial(raw=encrypted_pem, role=KeyRole.PRIVATE, passphrase=secret)


def decrypt_private_key(private_key: KeyText, passphrase: KeyText) -> KeyMaterial:
    """
    Remove passphrase protection from a private key.

    Raises:
        WrongPassphraseError: If the passphrase does not decrypt the key
        InvalidKeyError: If the input is not a private key
    """
    key, _ = deserialize_private_key(to_bytes(private_key) or b"", to_bytes(passphrase))
    decrypted_pem = _export_private(key, None, DEFAULT_CIPHER)

    logger.info("Decrypted private key")
    return KeyMaterial(raw=decrypted_pem, role=KeyRole.PRIVATE)


def is_private_key_encrypted(private_key: KeyText) -> bool:
    """
    Check whether a private key needs a passphrase.

    Tries a load without a passphrase and classifies the failure. When
    the failure gives no clear answer the PEM headers decide, so this is
    best effort for damaged input.
    """
    raw = to_bytes(private_key) or b""
    try:
        deserialize_private_key(raw, None)
    except WrongPassphraseError:
        return True
    except InvalidKeyError:
        return has_encrypted_marker(raw)
    return False


def validate_private_key(private_key: KeyText, passphrase: Optional[KeyText] = None) -> bool:
    """Return whether the key loads with the given passphrase. Never raises."""
    try:
        load_private_key(private_key, passphrase)
    except NovaPayError:
        return False
    return True


def _algorithm_name(key) -> str:
    if isinstance(key, rsa.RSAPrivateKey):
        return "RSA"
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return "EC"
    if isinstance(key, dsa.DSAPrivateKey):
        return "DSA"
    if isinstance(key, ed25519.Ed25519PrivateKey):
        return "Ed25519"
    if isinstance(key, ed448.Ed448PrivateKey):
        return "Ed448"
    return "Other"


def get_key_info(private_key: KeyText, passphrase: Optional[KeyText] = None) -> KeyInfo:
    """
    Report bit length, algorithm and encryption state of a private key.

    Raises:
        InvalidKeyError: If the key cannot be loaded with the given passphrase
    """
    raw = to_bytes(private_key) or b""
    try:
        key, _ = deserialize_private_key(raw, to_bytes(passphrase))
    except WrongPassphraseError as exc:
        raise InvalidKeyError(f"Cannot load private key. Check key format and passphrase: {exc}") from exc

    if isinstance(key, ed25519.Ed25519PrivateKey):
        bits = 256
    elif isinstance(key, ed448.Ed448PrivateKey):
        bits = 456
    else:
        bits = getattr(key, "key_size", 0)

    return KeyInfo(bits=bits, algorithm=_algorithm_name(key), encrypted=is_private_key_encrypted(raw))


def generate_passphrase(length: int = DEFAULT_PASSPHRASE_LENGTH, include_special: bool = True) -> str:
    """
    Generate a random passphrase from a CSPRNG.

    Args:
        length: Number of characters, at least 12
        include_special: Add punctuation symbols to the alphabet

    Raises:
        PassphraseTooShortError: If length < 12
    """
    if length < MIN_PASSPHRASE_LENGTH:
        raise PassphraseTooShortError(
            f"Passphrase must be at least {MIN_PASSPHRASE_LENGTH} characters long, got {length}"
        )

    alphabet = PASSPHRASE_ALPHABET + (PASSPHRASE_SPECIAL if include_special else "")
    return "".join(secrets.choice(alphabet) for _ in range(length))
