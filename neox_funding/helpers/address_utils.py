"""
Address normalization helpers.

Public API
----------
is_valid(address)
    True when ``address`` is a 20-byte hex address whose mixed-case
    checksum, if any, is correct.
normalize(address)
    Canonical checksum form, adding a missing ``0x``; None if invalid.
validate(address, context="")
    Like ``normalize`` but raises InvalidAddressError.
same_address(a, b)
    Prefix- and case-insensitive equality.
"""
from __future__ import annotations

from eth_utils import (
    is_address,
    is_checksum_address,
    is_checksum_formatted_address,
    to_checksum_address,
)

from ..errors import InvalidAddressError

__all__ = ["is_valid", "normalize", "validate", "same_address"]


def is_valid(address: str | None) -> bool:
    if not isinstance(address, str):
        return False
    if not is_address(address):
        return False
    # mixed case means the checksum was meant to be checked
    if is_checksum_formatted_address(address) and not is_checksum_address(address):
        return False
    return True


def normalize(address: str | None) -> str | None:
    if not address or not isinstance(address, str):
        return None
    address = address.strip()
    if not address.startswith("0x"):
        address = "0x" + address
    if not is_valid(address):
        return None
    return to_checksum_address(address)


def validate(address: str | None, context: str = "") -> str:
    normalized = normalize(address)
    if normalized is None:
        where = f" for {context}" if context else ""
        raise InvalidAddressError(f"Invalid address format{where}: {address}")
    return normalized


def same_address(a: str | None, b: str | None) -> bool:
    na, nb = normalize(a), normalize(b)
    return na is not None and na == nb
