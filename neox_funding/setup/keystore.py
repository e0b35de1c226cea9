#!/usr/bin/env python3
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from eth_account import Account

from ..errors import KeystoreError

logger = logging.getLogger(__name__)


def read_keystore(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise KeystoreError(f"Cannot read keystore {path}: {e}")
    if not isinstance(data, dict) or "crypto" not in {k.lower() for k in data}:
        raise KeystoreError(f"Not a keystore file: {path}")
    return data


def decrypt_keystore(keystore_json: dict[str, Any], password: str) -> str:
    """Decrypt a keystore JSON and return the 0x-prefixed private key hex string."""
    try:
        key_bytes = Account.decrypt(keystore_json, password)
    except (ValueError, TypeError, KeyError) as e:
        raise KeystoreError(f"Keystore decryption failed: {e}")
    return "0x" + bytes(key_bytes).hex()


def read_password_file(path: Path) -> str:
    logger.info(f"Reading keystore password from: {path}")
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except OSError as e:
        raise KeystoreError(f"Cannot read keystore password file {path}: {e}")


def resolve_password(password: str | None, password_file: Path | None) -> str:
    """Resolve the keystore password.

    An explicit password wins, including the empty string; otherwise the
    password file is read.
    """
    if password is not None:
        return password
    if password_file is not None:
        return read_password_file(password_file)
    raise KeystoreError(
        "Keystore password not provided. Use --keystore-pass, set SENDER_KEYSTORE_PASSWORD "
        "or SENDER_KEYSTORE_PASSWORD_FILE."
    )
