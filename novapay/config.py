"""
Client configuration from the process environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError

ENV_PREFIX = "NOVAPAY_"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def load_key_source(value: str) -> str:
    """
    Resolve a key setting to PEM text.

    Inline PEM is returned unchanged, an existing file path is read, and
    anything else is passed through so the key loader can reject it.
    """
    if "-----BEGIN " in value:
        return value
    try:
        path = Path(value).expanduser()
        if path.is_file():
            return path.read_text()
    except (OSError, ValueError):
        # Not a usable path (too long, embedded NUL)
        pass
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _env_required(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"Missing required setting: {name}")
    return value


@dataclass
class NovaPayConfig:
    """Settings for NovaPayClient."""
    merchant_id: str
    private_key: str
    public_key: str
    passphrase: Optional[str] = field(default=None, repr=False)
    sandbox: bool = True
    timeout: int = 30

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "NovaPayConfig":
        """
        Load settings from environment variables.

        Variables (with the default prefix):
            NOVAPAY_MERCHANT_ID: Merchant identifier (required)
            NOVAPAY_PRIVATE_KEY: Private key PEM or path (required)
            NOVAPAY_PRIVATE_KEY_PASSPHRASE: Private key passphrase
            NOVAPAY_PUBLIC_KEY: Gateway public key PEM or path (required)
            NOVAPAY_SANDBOX: Use the sandbox gateway (default true)
            NOVAPAY_TIMEOUT: Request timeout in seconds (default 30)

        Raises:
            ConfigurationError: If a required setting is missing or malformed
        """
        timeout_raw = os.getenv(f"{prefix}TIMEOUT", "30")
        try:
            timeout = int(timeout_raw)
        except ValueError:
            raise ConfigurationError(f"{prefix}TIMEOUT must be an integer, got {timeout_raw!r}")

        return cls(
            merchant_id=_env_required(f"{prefix}MERCHANT_ID"),
            private_key=load_key_source(_env_required(f"{prefix}PRIVATE_KEY")),
            public_key=load_key_source(_env_required(f"{prefix}PUBLIC_KEY")),
            passphrase=os.getenv(f"{prefix}PRIVATE_KEY_PASSPHRASE") or None,
            sandbox=_env_bool(f"{prefix}SANDBOX", True),
            timeout=timeout,
        )
