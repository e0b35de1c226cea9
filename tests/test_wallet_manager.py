"""Keystore loading and sender validation."""
import json

import pytest
from eth_account import Account

from neox_funding.errors import AddressMismatchError, KeystoreError
from neox_funding.setup.keystore import read_keystore, resolve_password
from neox_funding.setup.wallet_manager import (
    FundingWallet,
    load_from_keystore,
    load_named_wallet,
    validate_wallet,
)

from conftest import ETHER, OWNER_KEY, SENDER_KEY, write_keystore

SENDER_ADDRESS = Account.from_key(SENDER_KEY).address


def test_load_from_keystore_with_password(tmp_path):
    path = write_keystore(tmp_path / "sender.json", SENDER_KEY, "secret")
    wallet = load_from_keystore(path, "secret")
    assert wallet.address == SENDER_ADDRESS
    assert wallet.w3 is None


def test_load_from_keystore_reads_password_file(tmp_path):
    path = write_keystore(tmp_path / "sender.json", SENDER_KEY, "secret")
    password_file = tmp_path / "password.txt"
    password_file.write_text("secret\n")

    wallet = load_from_keystore(path, None, password_file=password_file)

    assert wallet.address == SENDER_ADDRESS


def test_wrong_password_propagates(tmp_path):
    path = write_keystore(tmp_path / "sender.json", SENDER_KEY, "secret")
    with pytest.raises(KeystoreError, match="decryption failed"):
        load_from_keystore(path, "wrong")


def test_malformed_keystore(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text(json.dumps({"address": "abc"}))
    with pytest.raises(KeystoreError):
        read_keystore(path)
    with pytest.raises(KeystoreError):
        load_from_keystore(tmp_path / "missing.json", "x")


def test_named_wallet_uses_empty_password(tmp_path, w3):
    write_keystore(tmp_path / "owner.json", OWNER_KEY, "")
    wallet = load_named_wallet("owner", tmp_path, w3)
    assert wallet.address == Account.from_key(OWNER_KEY).address
    assert wallet.w3 is w3


def test_validate_wallet_matches_normalized_address(w3):
    wallet = FundingWallet(Account.from_key(SENDER_KEY), w3)
    w3.eth.balances[wallet.address] = 3 * ETHER

    assert validate_wallet(wallet, SENDER_ADDRESS.lower()[2:]) == 3 * ETHER


def test_validate_wallet_rejects_other_address():
    wallet = FundingWallet(Account.from_key(SENDER_KEY))
    with pytest.raises(AddressMismatchError):
        validate_wallet(wallet, Account.from_key(OWNER_KEY).address)
    assert validate_wallet(wallet) is None


def test_resolve_password_precedence(tmp_path):
    password_file = tmp_path / "pw"
    password_file.write_text("from-file\n")
    assert resolve_password("explicit", password_file) == "explicit"
    assert resolve_password("", password_file) == ""
    assert resolve_password(None, password_file) == "from-file"
    with pytest.raises(KeystoreError):
        resolve_password(None, None)
