"""
Web3 setup helper - connection and node readiness.

Public API
----------
get_web3_instance(rpc_url)
    Return a Web3 instance connected to ``rpc_url`` with the POA extra-data
    middleware installed (neox blocks carry consensus data in extraData).
wait_for_node_ready(w3, retries, interval)
    Poll ``eth.block_number`` until the node answers.
check_chain_id(w3, expected)
    Guard against pointing the tool at the wrong network.
RPC_ERRORS
    Exception types a failed node call can raise.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable

from web3 import Web3
from web3.exceptions import Web3Exception
from web3.middleware import ExtraDataToPOAMiddleware

from ..errors import ConfigurationError, NodeNotReadyError

__all__ = ["RPC_ERRORS", "get_web3_instance", "wait_for_node_ready", "check_chain_id"]

# What a failed node call can raise: web3 errors, transport errors (requests
# exceptions are OSErrors) and the ValueError older providers still use.
RPC_ERRORS = (Web3Exception, OSError, ValueError)

logger = logging.getLogger(__name__)


def get_web3_instance(rpc_url: str | None) -> Web3:
    if not rpc_url:
        raise ConfigurationError("No RPC URL available. Set NEOX_RPC_URL or pass --rpc-url.")
    logger.info(f"Connecting to: {rpc_url}")
    w3 = Web3(Web3.HTTPProvider(rpc_url))
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


def wait_for_node_ready(
    w3: Web3,
    retries: int = 60,
    interval: float = 5,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Return the current block number once the node responds.

    Raises NodeNotReadyError after ``retries`` failed attempts.
    """
    logger.info("Waiting for neox node to be ready...")
    for attempt in range(1, retries + 1):
        try:
            block_number = int(w3.eth.block_number)
            logger.info(f"Node is ready. Current block: {block_number}")
            return block_number
        except Exception as e:
            logger.info(f"Attempt {attempt}/{retries}: Node not ready yet ({e})")
            if attempt < retries:
                sleep(interval)
    raise NodeNotReadyError(f"Node is not ready after {retries} attempts")


def check_chain_id(w3: Web3, expected: int | None) -> int:
    actual = int(w3.eth.chain_id)
    if expected and actual != expected:
        raise ConfigurationError(f"Unexpected chainId {actual}; expected {expected}")
    return actual
