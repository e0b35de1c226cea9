#!/usr/bin/env python3
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from ..errors import AddressMismatchError, KeystoreError
from ..helpers.address_utils import normalize
from .keystore import decrypt_keystore, read_keystore, resolve_password

logger = logging.getLogger(__name__)


@dataclass
class FundingWallet:
    """A signing account, optionally bound to an RPC connection."""

    account: LocalAccount
    w3: Web3 | None = None

    @property
    def address(self) -> str:
        return self.account.address

    def connect(self, w3: Web3) -> FundingWallet:
        return FundingWallet(self.account, w3)

    def require_connection(self) -> Web3:
        if self.w3 is None:
            raise RuntimeError(f"Wallet {self.address} is not connected to a node")
        return self.w3


def load_from_keystore(
    keystore_path: Path,
    password: str | None = None,
    w3: Web3 | None = None,
    password_file: Path | None = None,
) -> FundingWallet:
    """Decrypt ``keystore_path`` into a wallet.

    When ``password`` is None it is read from ``password_file``.
    """
    password = resolve_password(password, password_file)

    logger.info(f"Loading keystore from: {keystore_path}")
    try:
        private_key = decrypt_keystore(read_keystore(keystore_path), password)
    except KeystoreError as e:
        logger.error(f"Error loading keystore from {keystore_path}: {e}")
        raise
    account: LocalAccount = Account.from_key(private_key)
    return FundingWallet(account, w3)


def load_named_wallet(wallet_name: str, wallets_dir: Path, w3: Web3 | None = None) -> FundingWallet:
    """Load ``<wallets_dir>/<wallet_name>.json``; named wallets use an empty password."""
    return load_from_keystore(Path(wallets_dir) / f"{wallet_name}.json", "", w3)


def validate_wallet(wallet: FundingWallet, expected_address: str | None = None) -> int | None:
    """Check the wallet is the expected account and log its balance.

    Returns the balance in wei when the wallet is connected, else None.
    """
    if expected_address:
        normalized_expected = normalize(expected_address)
        normalized_actual = normalize(wallet.address)
        if normalized_actual != normalized_expected:
            raise AddressMismatchError(
                f"Address mismatch: expected {normalized_expected or expected_address}, got {normalized_actual}"
            )

    if wallet.w3 is None:
        return None

    balance = int(wallet.w3.eth.get_balance(wallet.address))
    logger.info(f"   Wallet {wallet.address} balance: {Web3.from_wei(balance, 'ether')} ETH")
    return balance
