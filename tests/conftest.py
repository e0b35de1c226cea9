"""Shared fixtures: an in-memory stand-in for the web3 surface the tools use."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest
from eth_account import Account
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3RPCError

from neox_funding.config.gas import GasConfig
from neox_funding.setup.wallet_manager import FundingWallet

SENDER_KEY = "0x" + "11" * 32
OWNER_KEY = "0x" + "22" * 32
DEPLOYER_KEY = "0x" + "33" * 32
RELAYER_KEY = "0x" + "44" * 32

ADDR_A = Web3.to_checksum_address("0x" + "aa" * 20)
ADDR_B = Web3.to_checksum_address("0x" + "bb" * 20)
ADDR_C = Web3.to_checksum_address("0x" + "cc" * 20)

ETHER = 10**18


class FakeBoundFunction:
    def __init__(self, contract: "FakeContract", name: str, args: tuple) -> None:
        self._contract = contract
        self._name = name
        self._args = args

    def call(self) -> Any:
        handler = self._contract.views[self._name]
        if isinstance(handler, Exception):
            raise handler
        return handler(*self._args) if callable(handler) else handler


class FakeFunctions:
    def __init__(self, contract: "FakeContract") -> None:
        self._contract = contract

    def __getattr__(self, name: str) -> Callable[..., FakeBoundFunction]:
        if name not in self._contract.views:
            raise AttributeError(name)
        return lambda *args: FakeBoundFunction(self._contract, name, args)


class FakeContract:
    """Views are plain values, callables or exceptions; writes go through ``writes``."""

    def __init__(self, address: str, views: dict[str, Any] | None = None, writes: dict[str, Callable] | None = None):
        self.address = address
        self.views = dict(views or {})
        self.writes = dict(writes or {})
        self.encoded: dict[str, tuple[str, list]] = {}
        self.functions = FakeFunctions(self)

    def encode_abi(self, abi_element_identifier: str, args: list | None = None) -> str:
        data = "0x" + abi_element_identifier.encode().hex() + f"{len(self.encoded):04x}"
        self.encoded[data] = (abi_element_identifier, list(args or []))
        return data

    def apply(self, data: str, sender: str) -> bool:
        name, args = self.encoded[data]
        handler = self.writes.get(name)
        if handler is None:
            return False
        return bool(handler(sender, *args))


class FakeEth:
    def __init__(self) -> None:
        self.chain_id = 1337
        self.balances: dict[str, int] = {}
        self.codes: dict[str, bytes] = {}
        self.contracts: dict[str, FakeContract] = {}
        self.nonces: dict[str, int] = {}
        self.signed: dict[bytes, dict[str, Any]] = {}
        self.sent: list[dict[str, Any] | None] = []
        self.receipts: dict[str, dict[str, Any]] = {}
        self.balance_errors: set[str] = set()
        self.send_errors: set[str] = set()
        self.revert_to: set[str] = set()
        self.timeout_to: set[str] = set()
        self.nonce_read_errors: set[str] = set()
        self.block_failures = 0
        self._block_number = 100

    @property
    def block_number(self) -> int:
        if self.block_failures > 0:
            self.block_failures -= 1
            raise ConnectionError("connection refused")
        return self._block_number

    def get_balance(self, address: str) -> int:
        if address in self.balance_errors:
            raise Web3RPCError("balance unavailable")
        return self.balances.get(address, 0)

    def get_code(self, address: str) -> bytes:
        return self.codes.get(address, b"")

    def get_transaction_count(self, address: str, block_identifier: str = "latest") -> int:
        # only plain nonce reads fail; the pending count used for sending still works
        if block_identifier == "latest" and address in self.nonce_read_errors:
            raise Web3RPCError("rpc down")
        return self.nonces.get(address, 0)

    def contract(self, address: str, abi: list) -> FakeContract:
        if address not in self.contracts:
            raise ValueError(f"no contract at {address}")
        return self.contracts[address]

    def send_raw_transaction(self, raw: bytes):
        raw = bytes(raw)
        tx = self.signed.get(raw)
        if tx is not None and tx["to"] in self.send_errors:
            raise Web3RPCError("nonce too low")
        self.sent.append(tx)
        tx_hash = Web3.keccak(raw)
        status = 1
        if tx is not None:
            sender = tx["from"]
            self.nonces[sender] = self.nonces.get(sender, 0) + 1
            if tx["to"] in self.revert_to:
                status = 0
            else:
                status = self._execute(tx)
        self.receipts[Web3.to_hex(tx_hash)] = {
            "status": status,
            "blockNumber": self._block_number + 1,
            "gasUsed": 21000,
            "to": tx["to"] if tx else None,
        }
        return tx_hash

    def _execute(self, tx: dict[str, Any]) -> int:
        value = int(tx.get("value", 0))
        data = tx.get("data")
        if data and tx["to"] in self.contracts:
            if not self.contracts[tx["to"]].apply(data, tx["from"]):
                return 0
        self.balances[tx["from"]] = self.balances.get(tx["from"], 0) - value
        self.balances[tx["to"]] = self.balances.get(tx["to"], 0) + value
        return 1

    def wait_for_transaction_receipt(self, tx_hash: str, timeout: float = 120, poll_latency: float = 0.1):
        receipt = self.receipts.get(tx_hash)
        if receipt is None:
            raise ValueError(f"unknown transaction {tx_hash}")
        if receipt["to"] in self.timeout_to:
            raise TimeExhausted(f"Transaction {tx_hash} is not in the chain after {timeout} seconds")
        return receipt


class FakeWeb3:
    def __init__(self) -> None:
        self.eth = FakeEth()


class RecordingAccount:
    """Signs with a real key and tells the fake chain what each raw tx contains."""

    def __init__(self, private_key: str, eth: FakeEth) -> None:
        self._account = Account.from_key(private_key)
        self._eth = eth

    @property
    def address(self) -> str:
        return self._account.address

    def sign_transaction(self, tx: dict[str, Any]):
        signed = self._account.sign_transaction(tx)
        self._eth.signed[bytes(signed.raw_transaction)] = {**tx, "from": self.address}
        return signed


def make_wallet(private_key: str, w3: FakeWeb3) -> FundingWallet:
    return FundingWallet(RecordingAccount(private_key, w3.eth), w3)


def write_keystore(path: Path, private_key: str, password: str) -> Path:
    keystore = Account.encrypt(private_key, password, kdf="pbkdf2", iterations=2)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(keystore))
    return path


@pytest.fixture
def w3() -> FakeWeb3:
    return FakeWeb3()


@pytest.fixture
def sender(w3: FakeWeb3) -> FundingWallet:
    wallet = make_wallet(SENDER_KEY, w3)
    w3.eth.balances[wallet.address] = 1000 * ETHER
    return wallet


@pytest.fixture
def gas() -> GasConfig:
    return GasConfig()
