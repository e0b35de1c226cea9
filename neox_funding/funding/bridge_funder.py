#!/usr/bin/env python3
"""
Fund the neox native bridge and token bridge once they are deployed.

The deployment pipeline writes a JSON file with ``bridge`` and ``neoToken``
addresses. This module polls for it, waits for the post-deployment
configuration steps to settle, then:

  - sends native funds from the ``owner`` wallet to the bridge, after
    checking the owner is the funder registered in the bridge management
    contract;
  - transfers tokens from the ``deployer`` wallet to the bridge, minting
    the shortfall first when the token allows it.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from web3 import Web3

from ..config.abis import BRIDGE_ABI, MANAGEMENT_ABI, TOKEN_ABI
from ..config.gas import GasConfig
from ..config.settings import BridgeConfig
from ..errors import (
    BridgeFundingError,
    ConfigurationError,
    FundingError,
    InsufficientBalanceError,
    PermissionCheckError,
)
from ..helpers.address_utils import same_address, validate
from ..helpers.file_utils import read_json
from ..helpers.transactions import send_and_wait
from ..helpers.web3_setup import RPC_ERRORS
from ..setup.wallet_manager import FundingWallet, load_named_wallet, validate_wallet

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_DECIMALS = 18


@dataclass(frozen=True)
class TokenInfo:
    address: str
    symbol: str = "UNKNOWN"
    decimals: int = DEFAULT_TOKEN_DECIMALS

    def format(self, amount: int) -> str:
        return f"{Decimal(amount) / (Decimal(10) ** self.decimals)} {self.symbol}"


def _eth(value: int) -> str:
    return f"{Web3.from_wei(value, 'ether')} ETH"


def parse_units(amount: str, decimals: int) -> int:
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ConfigurationError(f"Invalid token amount: {amount}")
    if value < 0:
        raise ConfigurationError("Token amount must not be negative")
    return int(value * (Decimal(10) ** decimals))


# =============================================================================
# DEPLOYMENT POLLING
# =============================================================================

def read_contract_addresses(addresses_file: Path) -> dict[str, Any]:
    addresses = read_json(addresses_file, "contract addresses")
    if not isinstance(addresses, dict):
        raise ValueError(f"{addresses_file} does not contain a JSON object")

    logger.info("Found contract addresses:")
    logger.info(f"   Bridge: {addresses.get('bridge') or 'NOT_FOUND'}")
    logger.info(f"   NEO Token: {addresses.get('neoToken') or 'NOT_FOUND'}")
    return addresses


def has_complete_addresses(addresses: dict[str, Any]) -> bool:
    return bool(addresses.get("bridge")) and bool(addresses.get("neoToken"))


def log_incomplete_deployment(addresses: dict[str, Any]) -> None:
    if addresses.get("bridge") and not addresses.get("neoToken"):
        logger.info("Bridge deployed but token not yet available. Waiting for token deployment...")
    else:
        logger.info("Bridge address not found yet. Waiting...")


def wait_for_deployment_and_fund(
    w3: Web3,
    config: BridgeConfig,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Poll for the addresses file, then fund both bridges.

    Returns False when the deployment does not show up within
    ``config.max_wait`` seconds or funding fails.
    """
    logger.info(f"Waiting for contract addresses file: {config.addresses_file}")
    start = clock()

    while clock() - start < config.max_wait:
        if Path(config.addresses_file).exists():
            logger.info("Contract addresses file found! Checking for complete deployment...")
            try:
                addresses = read_contract_addresses(config.addresses_file)
            except (OSError, ValueError) as e:
                logger.info(f"Error reading addresses file: {e}. Continuing to wait...")
            else:
                if has_complete_addresses(addresses):
                    logger.info("Both bridge and token addresses found! Waiting for full deployment to complete...")
                    logger.info(
                        f"Waiting {config.settle_delay} seconds for unpause scripts and Neo side configuration to complete..."
                    )
                    sleep(config.settle_delay)
                    logger.info("Starting bridge funding...")
                    return fund_bridges(w3, config)
                log_incomplete_deployment(addresses)
        else:
            logger.info("Contract addresses file not found yet, waiting...")

        sleep(config.poll_interval)

    logger.warning("Timeout waiting for contract deployment. Bridge funding skipped.")
    return False


# =============================================================================
# ORCHESTRATION
# =============================================================================

def load_owner_wallet(w3: Web3, wallets_dir: Path) -> FundingWallet:
    owner = load_named_wallet("owner", wallets_dir, w3)
    logger.info(f"Owner/Funder address: {owner.address}")
    validate_wallet(owner)
    return owner


def load_deployer_wallet(w3: Web3, wallets_dir: Path) -> FundingWallet:
    deployer = load_named_wallet("deployer", wallets_dir, w3)
    logger.info(f"Deployer address: {deployer.address}")
    validate_wallet(deployer)
    return deployer


def fund_bridges(w3: Web3, config: BridgeConfig) -> bool:
    try:
        addresses = read_contract_addresses(config.addresses_file)
        if not addresses.get("bridge"):
            raise BridgeFundingError("Bridge address not found in addresses file")

        owner = load_owner_wallet(w3, config.wallets_dir)
        deployer = load_deployer_wallet(w3, config.wallets_dir)

        fund_native_bridge(owner, addresses["bridge"], config)

        if addresses.get("neoToken"):
            fund_token_bridge(deployer, addresses["bridge"], addresses["neoToken"], config)
        else:
            logger.info("NEO token address not found, skipping token bridge funding")
    except (FundingError, *RPC_ERRORS) as e:
        logger.error(f"Bridge funding failed: {e}")
        return False
    return True


# =============================================================================
# NATIVE BRIDGE
# =============================================================================

def fund_native_bridge(owner: FundingWallet, bridge_address: str, config: BridgeConfig) -> int:
    """Send native funds to the bridge; returns the amount sent in wei."""
    logger.info(f"Funding Native Bridge with {config.native_funding_eth} ETH...")
    bridge_address = validate(bridge_address, "bridge")
    w3 = owner.require_connection()
    gas = config.contract_gas

    try:
        log_bridge_balances(w3, owner, bridge_address)
        verify_funder_permissions(w3, owner, bridge_address)

        owner_balance = int(w3.eth.get_balance(owner.address))
        estimated_gas_cost = gas.max_gas_cost_wei(1)
        logger.info(f"   Estimated gas cost: {_eth(estimated_gas_cost)}")
        amount = calculate_funding_amount(
            config.native_funding_wei, owner_balance, estimated_gas_cost, config.safety_percent
        )
        perform_bridge_state_checks(w3, bridge_address)

        send_native_to_bridge(owner, bridge_address, amount, gas, config.confirmation_timeout)
    except FundingError as e:
        logger.error(f"   Error funding native bridge: {e}")
        raise

    new_balance = int(w3.eth.get_balance(bridge_address))
    logger.info(f"   New bridge ETH balance: {_eth(new_balance)}")
    logger.info("   Native bridge funding completed successfully!")
    return amount


def log_bridge_balances(w3: Web3, owner: FundingWallet, bridge_address: str) -> None:
    logger.info(f"   Current bridge ETH balance: {_eth(int(w3.eth.get_balance(bridge_address)))}")
    logger.info(f"   Owner wallet balance: {_eth(int(w3.eth.get_balance(owner.address)))}")


def verify_funder_permissions(w3: Web3, owner: FundingWallet, bridge_address: str) -> str:
    """The owner must be the funder registered in the bridge's management contract."""
    logger.info("   Verifying funder permissions...")
    try:
        bridge = w3.eth.contract(address=bridge_address, abi=BRIDGE_ABI)
        management_address = bridge.functions.management().call()
        logger.info(f"   Management contract address: {management_address}")

        management = w3.eth.contract(address=management_address, abi=MANAGEMENT_ABI)
        expected_funder = management.functions.getFunder().call()
    except Exception as e:
        raise PermissionCheckError(f"Could not read funder from bridge management: {e}")

    logger.info(f"   Expected funder address: {expected_funder}")
    logger.info(f"   Owner wallet address: {owner.address}")
    if not same_address(expected_funder, owner.address):
        raise PermissionCheckError(
            f"Owner wallet {owner.address} is not set as funder. Expected funder: {expected_funder}"
        )

    logger.info("   Owner wallet is correctly set as funder")
    return expected_funder


def calculate_funding_amount(
    requested_amount: int,
    owner_balance: int,
    estimated_gas_cost: int,
    safety_percent: int = 90,
) -> int:
    """Return ``safety_percent`` of min(requested, balance - gas), truncated.

    Never exceeds what the owner can send after paying for gas.
    """
    max_sendable = owner_balance - estimated_gas_cost
    if max_sendable <= 0:
        raise InsufficientBalanceError(
            f"Insufficient balance for gas. Need at least {_eth(estimated_gas_cost)} for gas"
        )

    base_amount = min(requested_amount, max_sendable)
    actual_amount = base_amount * safety_percent // 100

    logger.info(f"   Using {safety_percent}% of available amount for safety: {_eth(actual_amount)}")
    if actual_amount < requested_amount:
        logger.info(f"   Reduced from requested {_eth(requested_amount)} to {_eth(actual_amount)}")
    return actual_amount


def perform_bridge_state_checks(w3: Web3, bridge_address: str) -> bool:
    """Sanity-check the bridge contract; problems are only warned about."""
    logger.info("   Performing bridge state checks...")
    try:
        code = bytes(w3.eth.get_code(bridge_address))
        logger.info(f"   Bridge contract code length: {len(code)} bytes")
        if len(code) <= 4:
            raise BridgeFundingError(f"Bridge contract appears to have no code at address {bridge_address}")
        logger.info("   Bridge contract has code deployed")

        bridge = w3.eth.contract(address=bridge_address, abi=BRIDGE_ABI)
        bridge.functions.management().call()
        logger.info("   Bridge contract is responsive")
    except Exception as e:
        logger.warning(f"   Warning during bridge state check: {e}")
        logger.warning("   Proceeding with funding attempt despite state check issues")
        return False
    return True


def send_native_to_bridge(
    owner: FundingWallet,
    bridge_address: str,
    amount: int,
    gas: GasConfig,
    timeout: float = 60,
) -> str:
    logger.info(f"   Sending {_eth(amount)} to bridge...")
    result = send_and_wait(owner, {"to": bridge_address, "value": amount}, gas, timeout)
    if not result.success:
        raise BridgeFundingError(result.error or "native transfer failed")
    return result.tx_hash


# =============================================================================
# TOKEN BRIDGE
# =============================================================================

def fund_token_bridge(deployer: FundingWallet, bridge_address: str, token_address: str, config: BridgeConfig) -> int:
    """Transfer the configured token amount to the bridge; returns it in base units."""
    logger.info(f"Funding Token Bridge with {config.token_funding_tokens} tokens...")
    bridge_address = validate(bridge_address, "bridge")
    w3 = deployer.require_connection()
    gas = config.contract_gas

    try:
        token = create_token_contract(w3, token_address)
        info = get_token_info(token, token.address)
        amount = parse_units(config.token_funding_tokens, info.decimals)

        ensure_sufficient_token_balance(deployer, token, amount, info, gas, config.confirmation_timeout)
        transfer_tokens_to_bridge(deployer, token, bridge_address, amount, info, gas, config.confirmation_timeout)
    except FundingError as e:
        logger.error(f"   Error funding token bridge: {e}")
        raise
    return amount


def create_token_contract(w3: Web3, token_address: str):
    normalized = validate(token_address, "token")
    logger.info(f"   Token address: {normalized}")

    code = bytes(w3.eth.get_code(normalized))
    if not code:
        raise BridgeFundingError(f"No contract found at token address {normalized}")
    return w3.eth.contract(address=normalized, abi=TOKEN_ABI)


def get_token_info(token, token_address: str) -> TokenInfo:
    try:
        symbol = token.functions.symbol().call()
        decimals = int(token.functions.decimals().call())
    except Exception as e:
        logger.warning(f"   Warning: Could not read token metadata: {e}")
        logger.warning(f"   Assuming standard ERC20 with {DEFAULT_TOKEN_DECIMALS} decimals")
        return TokenInfo(address=token_address)

    logger.info(f"   Token: {symbol} ({decimals} decimals)")
    return TokenInfo(address=token_address, symbol=symbol, decimals=decimals)


def ensure_sufficient_token_balance(
    wallet: FundingWallet,
    token,
    required_amount: int,
    info: TokenInfo,
    gas: GasConfig,
    timeout: float = 60,
) -> int:
    try:
        balance = int(token.functions.balanceOf(wallet.address).call())
    except Exception as e:
        raise BridgeFundingError(f"Failed to check token balance: {e}")
    logger.info(f"   Owner wallet token balance: {info.format(balance)}")

    if balance < required_amount:
        mint_tokens_if_needed(wallet, token, required_amount - balance, info, gas, timeout)
    return balance


def mint_tokens_if_needed(
    wallet: FundingWallet,
    token,
    amount: int,
    info: TokenInfo,
    gas: GasConfig,
    timeout: float = 60,
) -> bool:
    """Best-effort mint of ``amount`` to the wallet; never raises."""
    logger.info("   Insufficient token balance. Attempting to mint tokens...")
    try:
        data = token.encode_abi("mint", args=[wallet.address, amount])
    except Exception as e:
        logger.warning(f"   Minting failed: {e}")
        logger.warning("   Please ensure owner wallet has sufficient token balance")
        return False

    result = send_and_wait(wallet, {"to": info.address, "data": data}, gas, timeout)
    if not result.success:
        logger.warning(f"   Could not mint tokens: {result.error}")
        logger.warning("   Please ensure owner wallet has sufficient token balance")
        return False

    logger.info("   Tokens minted successfully")
    return True


def transfer_tokens_to_bridge(
    wallet: FundingWallet,
    token,
    bridge_address: str,
    amount: int,
    info: TokenInfo,
    gas: GasConfig,
    timeout: float = 60,
) -> str:
    try:
        current = int(token.functions.balanceOf(bridge_address).call())
    except Exception as e:
        raise BridgeFundingError(f"Failed to check bridge token balance: {e}")
    logger.info(f"   Current bridge token balance: {info.format(current)}")

    data = token.encode_abi("transfer", args=[bridge_address, amount])
    result = send_and_wait(wallet, {"to": info.address, "data": data}, gas, timeout)
    if not result.success:
        raise BridgeFundingError(f"Token transfer failed: {result.error}")

    try:
        new_balance = int(token.functions.balanceOf(bridge_address).call())
        logger.info(f"   New bridge token balance: {info.format(new_balance)}")
    except Exception as e:
        logger.warning(f"   Could not read new bridge token balance: {e}")
    logger.info("   Token bridge funding completed successfully!")
    return result.tx_hash
