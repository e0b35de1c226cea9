"""
Runtime configuration for the funding commands.

Everything is read once from the environment (optionally seeded from a
.env file) and handed to the components as frozen dataclasses.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dotenv import load_dotenv
from web3 import Web3

from ..errors import ConfigurationError
from .gas import GasConfig

# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_RPC_URL = "http://localhost:8562"

NODE1_BASE_DIR = Path("../go-ethereum/privnet/single/node1")
DEFAULT_KEYSTORE_PATH = (
    NODE1_BASE_DIR / "keystore" / "UTC--2023-12-25T15-29-12.815843682Z--74f4effb0b538baec703346b03b6d9292f53a4cd"
)
DEFAULT_PASSWORD_FILE = NODE1_BASE_DIR / "password.txt"
DEFAULT_SENDER_ADDRESS = "0x74f4effb0b538baec703346b03b6d9292f53a4cd"

DEFAULT_FUNDING_CSV = Path("neox-funding.csv")
DEFAULT_WALLETS_DIR = Path("neox-wallets")
DEFAULT_ADDRESSES_FILE = Path("../addresses/neox-addresses.json")

DEFAULT_WALLET_FUNDING_ETH = "100"
DEFAULT_NATIVE_BRIDGE_FUNDING_ETH = "100"
DEFAULT_TOKEN_BRIDGE_FUNDING_TOKENS = "10000"

DEFAULT_CONTRACT_GAS_LIMIT = 200_000

# Timing (seconds)
SEND_DELAY = 0.5
CONFIRMATION_TIMEOUT = 60
NODE_READY_RETRIES = 60
NODE_READY_INTERVAL = 5
DEPLOYMENT_POLL_INTERVAL = 5
DEPLOYMENT_MAX_WAIT = 600
DEPLOYMENT_SETTLE_DELAY = 60

# Share of the available balance the bridge funder is allowed to send
BRIDGE_SAFETY_PERCENT = 90

RELAYER_BUMP_ETH = "0.0001"

NEO_RPC_TIMEOUT = 30


def load_env(env_file: str | None = None) -> None:
    """Load ``.env`` from the working directory, then ``env_file`` on top."""
    base_env = Path(".env")
    if base_env.exists():
        load_dotenv(base_env)
    if env_file:
        if not Path(env_file).exists():
            raise ConfigurationError(f"env file not found: {env_file}")
        load_dotenv(env_file, override=True)


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _env_decimal(name: str, default: str) -> Decimal:
    raw = _env(name, default)
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ConfigurationError(f"{name} must be a decimal number, got {raw!r}")
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative")
    return value


def parse_ether(amount: str | Decimal, name: str = "amount") -> int:
    """Convert an ether-denominated string to wei."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ConfigurationError(f"Invalid {name}: {amount}")
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative")
    return int(Web3.to_wei(value, "ether"))


def gas_from_env() -> GasConfig:
    try:
        return GasConfig(
            gas_limit=_env_int("GAS_LIMIT", 21000),
            max_fee_gwei=_env_decimal("MAX_FEE_PER_GAS_GWEI", "40"),
            priority_fee_gwei=_env_decimal("MAX_PRIORITY_FEE_PER_GAS_GWEI", "25"),
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid gas configuration: {e}")


@dataclass(frozen=True)
class FundingConfig:
    """Settings for the account funding run."""

    rpc_url: str = DEFAULT_RPC_URL
    keystore_path: Path = DEFAULT_KEYSTORE_PATH
    keystore_password: str | None = None
    password_file: Path | None = DEFAULT_PASSWORD_FILE
    sender_address: str | None = DEFAULT_SENDER_ADDRESS
    funding_csv: Path = DEFAULT_FUNDING_CSV
    wallets_dir: Path = DEFAULT_WALLETS_DIR
    wallet_funding_wei: int = 100 * 10**18
    chain_id: int | None = None
    gas: GasConfig = field(default_factory=GasConfig)
    send_delay: float = SEND_DELAY
    confirmation_timeout: float = CONFIRMATION_TIMEOUT
    node_ready_retries: int = NODE_READY_RETRIES
    node_ready_interval: float = NODE_READY_INTERVAL

    @classmethod
    def from_env(cls) -> FundingConfig:
        password_file = _env("SENDER_KEYSTORE_PASSWORD_FILE")
        chain_id = _env("NEOX_CHAIN_ID")
        return cls(
            rpc_url=_env("NEOX_RPC_URL", DEFAULT_RPC_URL),
            keystore_path=Path(_env("SENDER_KEYSTORE_PATH", str(DEFAULT_KEYSTORE_PATH))),
            keystore_password=os.getenv("SENDER_KEYSTORE_PASSWORD"),
            password_file=Path(password_file) if password_file else DEFAULT_PASSWORD_FILE,
            sender_address=_env("SENDER_ADDRESS", DEFAULT_SENDER_ADDRESS),
            funding_csv=Path(_env("FUNDING_CSV", str(DEFAULT_FUNDING_CSV))),
            wallets_dir=Path(_env("NEOX_WALLETS_DIR", str(DEFAULT_WALLETS_DIR))),
            wallet_funding_wei=parse_ether(
                _env("NEOX_WALLET_FUNDING_ETH", DEFAULT_WALLET_FUNDING_ETH), "NEOX_WALLET_FUNDING_ETH"
            ),
            chain_id=_env_int("NEOX_CHAIN_ID", 0) if chain_id else None,
            gas=gas_from_env(),
            send_delay=_env_float("SEND_DELAY", SEND_DELAY),
            confirmation_timeout=_env_float("CONFIRMATION_TIMEOUT", CONFIRMATION_TIMEOUT),
            node_ready_retries=_env_int("NODE_READY_RETRIES", NODE_READY_RETRIES),
            node_ready_interval=_env_float("NODE_READY_INTERVAL", NODE_READY_INTERVAL),
        )


@dataclass(frozen=True)
class BridgeConfig:
    """Settings for funding the native and token bridge contracts."""

    rpc_url: str = DEFAULT_RPC_URL
    addresses_file: Path = DEFAULT_ADDRESSES_FILE
    wallets_dir: Path = DEFAULT_WALLETS_DIR
    native_funding_eth: str = DEFAULT_NATIVE_BRIDGE_FUNDING_ETH
    token_funding_tokens: str = DEFAULT_TOKEN_BRIDGE_FUNDING_TOKENS
    gas: GasConfig = field(default_factory=GasConfig)
    contract_gas_limit: int = DEFAULT_CONTRACT_GAS_LIMIT
    safety_percent: int = BRIDGE_SAFETY_PERCENT
    poll_interval: float = DEPLOYMENT_POLL_INTERVAL
    max_wait: float = DEPLOYMENT_MAX_WAIT
    settle_delay: float = DEPLOYMENT_SETTLE_DELAY
    confirmation_timeout: float = CONFIRMATION_TIMEOUT
    node_ready_retries: int = NODE_READY_RETRIES
    node_ready_interval: float = NODE_READY_INTERVAL

    def __post_init__(self) -> None:
        if not 0 < self.safety_percent <= 100:
            raise ConfigurationError("safety_percent must be within 1..100")

    @property
    def contract_gas(self) -> GasConfig:
        return self.gas.with_gas_limit(self.contract_gas_limit)

    @property
    def native_funding_wei(self) -> int:
        return parse_ether(self.native_funding_eth, "NATIVE_BRIDGE_FUNDING_ETH")

    @classmethod
    def from_env(cls) -> BridgeConfig:
        return cls(
            rpc_url=_env("NEOX_RPC_URL", DEFAULT_RPC_URL),
            addresses_file=Path(_env("ADDRESSES_FILE", str(DEFAULT_ADDRESSES_FILE))),
            wallets_dir=Path(_env("NEOX_WALLETS_DIR", str(DEFAULT_WALLETS_DIR))),
            native_funding_eth=_env("NATIVE_BRIDGE_FUNDING_ETH", DEFAULT_NATIVE_BRIDGE_FUNDING_ETH),
            token_funding_tokens=_env("TOKEN_BRIDGE_FUNDING_TOKENS", DEFAULT_TOKEN_BRIDGE_FUNDING_TOKENS),
            gas=gas_from_env(),
            contract_gas_limit=_env_int("CONTRACT_GAS_LIMIT", DEFAULT_CONTRACT_GAS_LIMIT),
            safety_percent=_env_int("BRIDGE_SAFETY_PERCENT", BRIDGE_SAFETY_PERCENT),
            poll_interval=_env_float("DEPLOYMENT_POLL_INTERVAL", DEPLOYMENT_POLL_INTERVAL),
            max_wait=_env_float("DEPLOYMENT_MAX_WAIT", DEPLOYMENT_MAX_WAIT),
            settle_delay=_env_float("BRIDGE_SETTLE_DELAY", DEPLOYMENT_SETTLE_DELAY),
            confirmation_timeout=_env_float("CONFIRMATION_TIMEOUT", CONFIRMATION_TIMEOUT),
            node_ready_retries=_env_int("NODE_READY_RETRIES", NODE_READY_RETRIES),
            node_ready_interval=_env_float("NODE_READY_INTERVAL", NODE_READY_INTERVAL),
        )


@dataclass(frozen=True)
class NeoBridgeConfig:
    """Settings for reading the Neo N3 message bridge contract."""

    rpc_url: str | None = None
    contract_hash: str | None = None
    message_nonce: int | None = None
    request_timeout: float = NEO_RPC_TIMEOUT

    def require(self) -> NeoBridgeConfig:
        if not self.rpc_url:
            raise ConfigurationError("NEO_NODE_URL environment variable is required")
        if not self.contract_hash:
            raise ConfigurationError("MESSAGE_BRIDGE_CONTRACT_HASH environment variable is required")
        return self

    @classmethod
    def from_env(cls) -> NeoBridgeConfig:
        nonce = _env("MESSAGE_NONCE")
        return cls(
            rpc_url=_env("NEO_NODE_URL"),
            contract_hash=_env("MESSAGE_BRIDGE_CONTRACT_HASH"),
            message_nonce=_env_int("MESSAGE_NONCE", 0) if nonce else None,
            request_timeout=_env_float("NEO_RPC_TIMEOUT", NEO_RPC_TIMEOUT),
        )
