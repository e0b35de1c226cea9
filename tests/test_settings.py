"""Environment-driven configuration."""
from decimal import Decimal
from pathlib import Path

import pytest

from neox_funding.config.settings import (
    DEFAULT_PASSWORD_FILE,
    BridgeConfig,
    FundingConfig,
    NeoBridgeConfig,
    load_env,
    parse_ether,
)
from neox_funding.errors import ConfigurationError

ENV_VARS = [
    "NEOX_RPC_URL",
    "NEOX_CHAIN_ID",
    "SENDER_KEYSTORE_PATH",
    "SENDER_KEYSTORE_PASSWORD",
    "SENDER_KEYSTORE_PASSWORD_FILE",
    "SENDER_ADDRESS",
    "FUNDING_CSV",
    "NEOX_WALLETS_DIR",
    "NEOX_WALLET_FUNDING_ETH",
    "GAS_LIMIT",
    "MAX_FEE_PER_GAS_GWEI",
    "MAX_PRIORITY_FEE_PER_GAS_GWEI",
    "CONTRACT_GAS_LIMIT",
    "BRIDGE_SAFETY_PERCENT",
    "BRIDGE_SETTLE_DELAY",
    "NODE_READY_RETRIES",
    "NODE_READY_INTERVAL",
    "NEO_NODE_URL",
    "MESSAGE_BRIDGE_CONTRACT_HASH",
    "MESSAGE_NONCE",
    "NEO_RPC_TIMEOUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # setenv first so values loaded by dotenv are removed again on teardown
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def test_parse_ether():
    assert parse_ether("1") == 10**18
    assert parse_ether("0.5") == 5 * 10**17
    assert parse_ether(Decimal("0")) == 0
    with pytest.raises(ConfigurationError):
        parse_ether("lots")
    with pytest.raises(ConfigurationError):
        parse_ether("-1")


def test_funding_config_defaults():
    config = FundingConfig.from_env()
    assert config.rpc_url == "http://localhost:8562"
    assert config.keystore_password is None
    assert config.password_file == DEFAULT_PASSWORD_FILE
    assert config.wallet_funding_wei == 100 * 10**18
    assert config.chain_id is None
    assert config.gas.gas_limit == 21000


def test_funding_config_from_env(monkeypatch):
    monkeypatch.setenv("NEOX_RPC_URL", "http://node:8545")
    monkeypatch.setenv("NEOX_CHAIN_ID", "2970385")
    monkeypatch.setenv("SENDER_KEYSTORE_PASSWORD", "")
    monkeypatch.setenv("FUNDING_CSV", "custom.csv")
    monkeypatch.setenv("NEOX_WALLET_FUNDING_ETH", "2.5")
    monkeypatch.setenv("MAX_FEE_PER_GAS_GWEI", "50")

    config = FundingConfig.from_env()

    assert config.rpc_url == "http://node:8545"
    assert config.chain_id == 2970385
    assert config.keystore_password == ""
    assert config.funding_csv == Path("custom.csv")
    assert config.wallet_funding_wei == 25 * 10**17
    assert config.gas.max_fee_gwei == Decimal("50")


def test_invalid_gas_settings_are_rejected(monkeypatch):
    monkeypatch.setenv("MAX_PRIORITY_FEE_PER_GAS_GWEI", "100")
    with pytest.raises(ConfigurationError):
        FundingConfig.from_env()

    monkeypatch.setenv("MAX_PRIORITY_FEE_PER_GAS_GWEI", "1")
    monkeypatch.setenv("GAS_LIMIT", "many")
    with pytest.raises(ConfigurationError):
        FundingConfig.from_env()


def test_bridge_config_from_env(monkeypatch):
    monkeypatch.setenv("CONTRACT_GAS_LIMIT", "300000")
    monkeypatch.setenv("BRIDGE_SAFETY_PERCENT", "80")
    monkeypatch.setenv("BRIDGE_SETTLE_DELAY", "0")

    config = BridgeConfig.from_env()

    assert config.contract_gas.gas_limit == 300_000
    assert config.gas.gas_limit == 21000
    assert config.safety_percent == 80
    assert config.settle_delay == 0
    assert config.native_funding_wei == 100 * 10**18


def test_bridge_config_rejects_bad_safety_percent(monkeypatch):
    monkeypatch.setenv("BRIDGE_SAFETY_PERCENT", "150")
    with pytest.raises(ConfigurationError):
        BridgeConfig.from_env()


def test_load_env_layers_files(monkeypatch, tmp_path):
    (tmp_path / ".env").write_text("NEOX_RPC_URL=http://base:1\nSENDER_ADDRESS=0xabc\n")
    override = tmp_path / "override.env"
    override.write_text("NEOX_RPC_URL=http://override:2\n")

    load_env(str(override))

    config = FundingConfig.from_env()
    assert config.rpc_url == "http://override:2"
    assert config.sender_address == "0xabc"


def test_load_env_missing_file():
    with pytest.raises(ConfigurationError):
        load_env("does-not-exist.env")


def test_node_ready_settings_from_env(monkeypatch):
    assert BridgeConfig.from_env().node_ready_retries == 60

    monkeypatch.setenv("NODE_READY_RETRIES", "3")
    monkeypatch.setenv("NODE_READY_INTERVAL", "0.5")

    for config in (FundingConfig.from_env(), BridgeConfig.from_env()):
        assert config.node_ready_retries == 3
        assert config.node_ready_interval == 0.5


def test_neo_bridge_config_from_env(monkeypatch):
    monkeypatch.setenv("NEO_NODE_URL", "http://neo:40332")
    monkeypatch.setenv("MESSAGE_BRIDGE_CONTRACT_HASH", "0x" + "ab" * 20)
    monkeypatch.setenv("MESSAGE_NONCE", "7")

    config = NeoBridgeConfig.from_env().require()

    assert config.rpc_url == "http://neo:40332"
    assert config.message_nonce == 7
    assert config.request_timeout == 30


def test_neo_bridge_config_requires_node_and_contract(monkeypatch):
    config = NeoBridgeConfig.from_env()
    assert config.message_nonce is None
    with pytest.raises(ConfigurationError, match="NEO_NODE_URL"):
        config.require()

    monkeypatch.setenv("NEO_NODE_URL", "http://neo:40332")
    with pytest.raises(ConfigurationError, match="MESSAGE_BRIDGE_CONTRACT_HASH"):
        NeoBridgeConfig.from_env().require()
