"""Utilities for canonical serialization and signing."""

from .canonical_json import (
    RESERVED_FIELDS,
    SCHEME_JSON,
    SCHEME_SORTED_PAIRS,
    ValueKind,
    canonicalize,
    classify,
    dumps_canonical,
    dumps_pairs,
)
from .signing import (
    DEFAULT_PROFILE,
    LEGACY_JSON_PROFILE,
    SIGNATURE_HEADER,
    SigningProfile,
    signature_payload,
    sign_rsa,
    verify_rsa,
)

__all__ = [
    "RESERVED_FIELDS",
    "SCHEME_JSON",
    "SCHEME_SORTED_PAIRS",
    "ValueKind",
    "canonicalize",
    "classify",
    "dumps_canonical",
    "dumps_pairs",
    "DEFAULT_PROFILE",
    "LEGACY_JSON_PROFILE",
    "SIGNATURE_HEADER",
    "SigningProfile",
    "signature_payload",
    "sign_rsa",
    "verify_rsa",
]
