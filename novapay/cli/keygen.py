#!/usr/bin/env python3
"""
CLI tool for NovaPay RSA key management.

Usage:
    novapay-keygen generate --out-dir keys --random-passphrase
    novapay-keygen encrypt keys/private.key --passphrase "..." --out keys/private.enc.key
    novapay-keygen decrypt keys/private.enc.key --passphrase "..."
    novapay-keygen info keys/private.key --passphrase "..."
    novapay-keygen passphrase --length 40

Security:
    - Private key files are written with mode 0600
    - Never commit private keys or passphrases to version control
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from ..errors import NovaPayError
from ..keygen import (
    DEFAULT_CIPHER,
    DEFAULT_KEY_BITS,
    DEFAULT_PASSPHRASE_LENGTH,
    decrypt_private_key,
    encrypt_private_key,
    generate_key_pair,
    generate_passphrase,
    get_key_info,
)


def write_private(path: Path, pem: str) -> None:
    """Write a private key readable by the owner only."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(pem)
    os.chmod(path, 0o600)


def emit(pem: str, out: Optional[str]) -> None:
    if out:
        write_private(Path(out), pem)
        print(f"✓ Wrote {out}")
    else:
        sys.stdout.write(pem)


def cmd_generate(args) -> int:
    passphrase = args.passphrase
    if args.random_passphrase:
        passphrase = generate_passphrase()

    pair = generate_key_pair(args.bits, passphrase=passphrase, cipher=args.cipher)

    out_dir = Path(args.out_dir)
    private_path = out_dir / f"{args.name}.key"
    public_path = out_dir / f"{args.name}.pub"

    write_private(private_path, pair.private_pem)
    public_path.write_text(pair.public_pem)

    print(f"✓ Generated {args.bits}-bit RSA key pair")
    print(f"  private key: {private_path}")
    print(f"  public key:  {public_path}")
    print(f"  encrypted:   {pair.encrypted}")
    if args.random_passphrase:
        print(f"  passphrase:  {passphrase}")
        print("  Store the passphrase in your secret manager; it is not saved anywhere.")
    return 0


def cmd_encrypt(args) -> int:
    material = encrypt_private_key(
        Path(args.keyfile).read_text(),
        args.passphrase,
        cipher=args.cipher,
        current_passphrase=args.current_passphrase,
    )
    emit(material.pem, args.out)
    return 0


def cmd_decrypt(args) -> int:
    material = decrypt_private_key(Path(args.keyfile).read_text(), args.passphrase)
    emit(material.pem, args.out)
    return 0


def cmd_info(args) -> int:
    info = get_key_info(Path(args.keyfile).read_text(), args.passphrase)
    print(json.dumps(info.as_dict(), indent=2))
    return 0


def cmd_passphrase(args) -> int:
    print(generate_passphrase(args.length, include_special=not args.no_special))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="novapay-keygen", description="NovaPay RSA key management")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a new RSA key pair")
    gen.add_argument("--bits", type=int, default=DEFAULT_KEY_BITS, help="Key size in bits (min 2048)")
    group = gen.add_mutually_exclusive_group()
    group.add_argument("--passphrase", help="Passphrase to encrypt the private key")
    group.add_argument("--random-passphrase", action="store_true", help="Generate and print a passphrase")
    gen.add_argument("--cipher", default=DEFAULT_CIPHER, help="Cipher for private key encryption")
    gen.add_argument("--out-dir", required=True, help="Directory for the key files")
    gen.add_argument("--name", default="private", help="Base name; writes <name>.key and <name>.pub")
    gen.set_defaults(func=cmd_generate)

    enc = sub.add_parser("encrypt", help="Encrypt an existing private key")
    enc.add_argument("keyfile", help="Private key PEM file")
    enc.add_argument("--passphrase", required=True, help="New passphrase")
    enc.add_argument("--current-passphrase", help="Passphrase of an already encrypted key")
    enc.add_argument("--cipher", default=DEFAULT_CIPHER, help="Cipher for private key encryption")
    enc.add_argument("--out", help="Output file (default: stdout)")
    enc.set_defaults(func=cmd_encrypt)

    dec = sub.add_parser("decrypt", help="Remove passphrase protection from a private key")
    dec.add_argument("keyfile", help="Encrypted private key PEM file")
    dec.add_argument("--passphrase", required=True, help="Current passphrase")
    dec.add_argument("--out", help="Output file (default: stdout)")
    dec.set_defaults(func=cmd_decrypt)

    info = sub.add_parser("info", help="Show key size, algorithm and encryption state")
    info.add_argument("keyfile", help="Private key PEM file")
    info.add_argument("--passphrase", help="Passphrase of an encrypted key")
    info.set_defaults(func=cmd_info)

    pw = sub.add_parser("passphrase", help="Generate a strong passphrase")
    pw.add_argument("--length", type=int, default=DEFAULT_PASSPHRASE_LENGTH, help="Passphrase length (min 12)")
    pw.add_argument("--no-special", action="store_true", help="Alphanumeric characters only")
    pw.set_defaults(func=cmd_passphrase)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        return args.func(args)
    except (NovaPayError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
