"""
Transaction submit / verify helpers.

Public API
----------
send_transaction(wallet, options, gas)
    Sign and broadcast a single transaction without waiting for it.
wait_for_transaction(w3, tx_hash, timeout)
    Poll for the receipt and check its status.
wait_and_verify(w3, tx_hash, to_address=None, timeout)
    ``wait_for_transaction`` plus a balance log of the recipient.
send_and_wait(wallet, options, gas, timeout)
    Both of the above in sequence.

Every function returns a TransactionResult instead of raising, so a
failing transfer never aborts a batch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from web3 import Web3
from web3.exceptions import TimeExhausted

from ..config.gas import GasConfig
from ..setup.wallet_manager import FundingWallet

__all__ = [
    "TransactionResult",
    "send_transaction",
    "wait_for_transaction",
    "wait_and_verify",
    "send_and_wait",
]

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60
POLL_LATENCY = 1.0


@dataclass
class TransactionResult:
    success: bool
    tx_hash: str | None = None
    receipt: Any = None
    error: str | None = None


def _format_ether(value: int) -> str:
    return f"{Web3.from_wei(value, 'ether')} ETH"


def _receipt_field(receipt: Any, name: str) -> Any:
    try:
        return receipt[name]
    except (KeyError, TypeError):
        return getattr(receipt, name, None)


def send_transaction(wallet: FundingWallet, options: dict[str, Any], gas: GasConfig) -> TransactionResult:
    """Sign ``options`` with the wallet key and broadcast it.

    ``options`` carries ``to`` and optionally ``value``/``data``; gas fields
    come from ``gas`` unless ``options`` overrides them. The nonce is the
    sender's pending transaction count.
    """
    tx: dict[str, Any] = {**gas.as_tx_fields(), "value": 0, **options}
    logger.info(f"   Sending transaction to {tx.get('to')}...")
    if tx.get("value"):
        logger.info(f"   Amount: {tx['value']} wei ({_format_ether(tx['value'])})")

    try:
        w3 = wallet.require_connection()
        tx["nonce"] = w3.eth.get_transaction_count(wallet.address, "pending")
        tx["chainId"] = w3.eth.chain_id
        signed = wallet.account.sign_transaction(tx)
        tx_hash = Web3.to_hex(w3.eth.send_raw_transaction(signed.raw_transaction))
    except Exception as e:
        logger.error(f"   Error sending transaction: {e}")
        return TransactionResult(success=False, error=str(e))

    logger.info(f"   Transaction hash: {tx_hash}")
    return TransactionResult(success=True, tx_hash=tx_hash)


def wait_for_transaction(w3: Web3, tx_hash: str, timeout: float = DEFAULT_TIMEOUT) -> TransactionResult:
    logger.info("   Waiting for confirmation...")
    try:
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout, poll_latency=POLL_LATENCY)
    except TimeExhausted:
        logger.error(f"   Timed out after {timeout}s waiting for {tx_hash}")
        return TransactionResult(success=False, tx_hash=tx_hash, error=f"timeout after {timeout}s")
    except Exception as e:
        logger.error(f"   Error waiting for transaction: {e}")
        return TransactionResult(success=False, tx_hash=tx_hash, error=str(e))

    status = _receipt_field(receipt, "status")
    if status == 1:
        logger.info(f"   Transaction confirmed in block {_receipt_field(receipt, 'blockNumber')}")
        logger.info(f"   Gas used: {_receipt_field(receipt, 'gasUsed')}")
        return TransactionResult(success=True, tx_hash=tx_hash, receipt=receipt)

    logger.warning(f"   Transaction failed (status: {status})")
    return TransactionResult(success=False, tx_hash=tx_hash, receipt=receipt, error="Transaction failed")


def wait_and_verify(
    w3: Web3,
    tx_hash: str,
    to_address: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> TransactionResult:
    logger.info(f"   Verifying transaction {tx_hash}...")
    result = wait_for_transaction(w3, tx_hash, timeout)
    if not result.success:
        logger.warning(f"   Transaction failed: {result.error}")
        return result

    if to_address:
        try:
            balance_after = w3.eth.get_balance(to_address)
            logger.info(f"   Balance after: {_format_ether(balance_after)}")
        except Exception as e:
            logger.warning(f"   Could not read balance of {to_address}: {e}")
    return result


def send_and_wait(
    wallet: FundingWallet,
    options: dict[str, Any],
    gas: GasConfig,
    timeout: float = DEFAULT_TIMEOUT,
) -> TransactionResult:
    sent = send_transaction(wallet, options, gas)
    if not sent.success:
        return sent

    verified = wait_and_verify(wallet.require_connection(), sent.tx_hash, options.get("to"), timeout)
    return TransactionResult(
        success=verified.success,
        tx_hash=sent.tx_hash,
        receipt=verified.receipt,
        error=verified.error,
    )
