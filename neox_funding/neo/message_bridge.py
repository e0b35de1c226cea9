"""
Read-only view of the Neo N3 message bridge contract.

Every call is an ``invokefunction`` test invocation, so nothing here needs
a wallet or spends GAS. Fees are reported in 10^-8 GAS units.
"""
from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any

from ..errors import NeoRpcError
from .rpc import NeoRpcClient, decode_stack_item, integer_param, normalize_script_hash

logger = logging.getLogger(__name__)


class MessageType(IntEnum):
    EXECUTABLE = 0
    STORE_ONLY = 1
    RESULT = 2


@dataclass(frozen=True)
class NeoMessage:
    metadata_bytes: str
    raw_message: str


@dataclass(frozen=True)
class MessageMetadata:
    type: MessageType
    timestamp: int
    sender: str
    store_result: bool | None = None
    initial_message_nonce: int | None = None


@dataclass(frozen=True)
class ExecutableState:
    executed: bool
    expiration_time: int


@dataclass(frozen=True)
class BridgeState:
    nonce: int
    root: str


@dataclass(frozen=True)
class MessageBridgeConfigData:
    sending_fee: int
    max_message_size: int
    max_nr_messages: int
    execution_manager: str
    execution_window_ms: int


@dataclass(frozen=True)
class MessageBridgeData:
    evm_to_neo_state: BridgeState
    neo_to_evm_state: BridgeState
    config: MessageBridgeConfigData


def _expect_list(value: Any, length: int, what: str, exact: bool = True) -> list:
    if not isinstance(value, list) or (len(value) != length if exact else len(value) < length):
        raise NeoRpcError(f"Invalid {what} data structure received")
    return value


class MessageBridgeReader:
    def __init__(self, client: NeoRpcClient, contract_hash: str):
        self.client = client
        self.contract_hash = normalize_script_hash(contract_hash)

    # --- raw access ---

    def _stack_value(self, method: str, args: list | None = None) -> Any:
        result = self.client.invoke_function(self.contract_hash, method, args)
        return result["stack"][0]

    def _int(self, method: str, args: list | None = None) -> int:
        value = decode_stack_item(self._stack_value(method, args))
        if value is None:
            raise NeoRpcError(f"Invalid {method} value returned from contract")
        return int(value)

    def _bool(self, method: str) -> bool:
        return bool(decode_stack_item(self._stack_value(method)))

    def _hex(self, method: str, args: list | None = None) -> str:
        return str(decode_stack_item(self._stack_value(method, args)))

    def _text(self, method: str) -> str:
        item = self._stack_value(method)
        value = item.get("value") if isinstance(item, dict) else item
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError):
                return value
        return str(value)

    def _object(self, method: str, args: list | None = None) -> Any:
        return decode_stack_item(self._stack_value(method, args))

    # --- contract info ---

    def version(self) -> str:
        return self._text("version")

    def linked_chain_id(self) -> int:
        return self._int("linkedChainId")

    def is_paused(self) -> bool:
        return self._bool("isPaused")

    def sending_is_paused(self) -> bool:
        return self._bool("sendingIsPaused")

    def executing_is_paused(self) -> bool:
        return self._bool("executingIsPaused")

    def sending_fee(self) -> int:
        return self._int("sendingFee")

    def unclaimed_fees(self) -> int:
        return self._int("unclaimedFees")

    def management(self) -> str:
        return self._hex("management")

    def execution_manager(self) -> str:
        return self._hex("executionManager")

    # --- bridge state ---

    def neo_to_evm_nonce(self) -> int:
        return self._int("neoToEvmNonce")

    def neo_to_evm_root(self) -> str:
        return self._hex("neoToEvmRoot")

    def evm_to_neo_nonce(self) -> int:
        return self._int("evmToNeoNonce")

    def evm_to_neo_root(self) -> str:
        return self._hex("evmToNeoRoot")

    def get_message_bridge(self) -> MessageBridgeData:
        evm_to_neo, neo_to_evm, config = _expect_list(self._object("getMessageBridge"), 3, "MessageBridge")
        evm_to_neo = _expect_list(evm_to_neo, 2, "MessageBridge state", exact=False)
        neo_to_evm = _expect_list(neo_to_evm, 2, "MessageBridge state", exact=False)
        config = _expect_list(config, 5, "MessageBridge config", exact=False)
        return MessageBridgeData(
            evm_to_neo_state=BridgeState(nonce=int(evm_to_neo[0]), root=str(evm_to_neo[1])),
            neo_to_evm_state=BridgeState(nonce=int(neo_to_evm[0]), root=str(neo_to_evm[1])),
            config=MessageBridgeConfigData(
                sending_fee=int(config[0]),
                max_message_size=int(config[1]),
                max_nr_messages=int(config[2]),
                execution_manager=str(config[3]),
                execution_window_ms=int(config[4]),
            ),
        )

    # --- messages ---

    def get_message(self, nonce: int) -> NeoMessage:
        metadata_bytes, raw_message = _expect_list(
            self._object("getMessage", [integer_param(nonce)]), 2, "NeoMessage"
        )
        return NeoMessage(metadata_bytes=str(metadata_bytes), raw_message=str(raw_message))

    def get_metadata(self, nonce: int) -> MessageMetadata:
        raw = _expect_list(self._object("getMetadata", [integer_param(nonce)]), 3, "metadata", exact=False)
        try:
            message_type = MessageType(int(raw[0]))
        except ValueError:
            raise NeoRpcError(f"Unknown metadata type: {raw[0]}")

        timestamp, sender = int(raw[1]), str(raw[2])
        if message_type is MessageType.STORE_ONLY:
            return MessageMetadata(message_type, timestamp, sender)
        if len(raw) < 4:
            raise NeoRpcError(f"Invalid {message_type.name.lower()} metadata structure received")
        if message_type is MessageType.EXECUTABLE:
            return MessageMetadata(message_type, timestamp, sender, store_result=bool(raw[3]))
        return MessageMetadata(message_type, timestamp, sender, initial_message_nonce=int(raw[3]))

    def get_executable_state(self, nonce: int) -> ExecutableState:
        executed, expiration_time = _expect_list(
            self._object("getExecutableState", [integer_param(nonce)]), 2, "ExecutableState"
        )
        return ExecutableState(executed=bool(executed), expiration_time=int(expiration_time))

    def get_evm_execution_result(self, related_neo_to_evm_nonce: int) -> str:
        return self._hex("getEvmExecutionResult", [integer_param(related_neo_to_evm_nonce)])

    def get_neo_execution_result(self, related_evm_to_neo_nonce: int) -> str:
        return self._hex("getNeoExecutionResult", [integer_param(related_evm_to_neo_nonce)])


def collect_bridge_info(reader: MessageBridgeReader, nonce: int | None = None) -> dict[str, Any]:
    """Read and log the bridge's public state.

    Contract-wide values are required; the per-message lookups for
    ``nonce`` are best-effort since the message may not exist yet.
    """
    logger.info("--- Message bridge read-only state ---")
    info: dict[str, Any] = {
        "version": reader.version(),
        "sending_fee": reader.sending_fee(),
        "management": reader.management(),
        "unclaimed_fees": reader.unclaimed_fees(),
        "linked_chain_id": reader.linked_chain_id(),
        "execution_manager": reader.execution_manager(),
        "neo_to_evm_nonce": reader.neo_to_evm_nonce(),
        "evm_to_neo_nonce": reader.evm_to_neo_nonce(),
        "neo_to_evm_root": reader.neo_to_evm_root(),
        "evm_to_neo_root": reader.evm_to_neo_root(),
        "paused": reader.is_paused(),
        "sending_paused": reader.sending_is_paused(),
        "executing_paused": reader.executing_is_paused(),
        "bridge": asdict(reader.get_message_bridge()),
    }
    for key, value in info.items():
        logger.info(f"   {key}: {value}")

    if nonce is None:
        return info

    lookups = {
        "message": lambda: asdict(reader.get_message(nonce)),
        "metadata": lambda: asdict(reader.get_metadata(nonce)),
        "executable_state": lambda: asdict(reader.get_executable_state(nonce)),
        "evm_execution_result": lambda: reader.get_evm_execution_result(nonce),
        "neo_execution_result": lambda: reader.get_neo_execution_result(nonce),
    }
    for key, lookup in lookups.items():
        try:
            info[key] = lookup()
            logger.info(f"   {key} (nonce {nonce}): {info[key]}")
        except NeoRpcError as e:
            info[key] = None
            logger.info(f"   {key} (nonce {nonce}): not available ({e})")
    return info
