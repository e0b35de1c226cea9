"""
Minimal Neo N3 JSON-RPC client for read-only contract calls.

Public API
----------
NeoRpcClient(rpc_url, timeout, session)
    ``call`` any RPC method, ``get_version`` and ``invoke_function`` (a
    test invocation that is never broadcast).
integer_param(value)
    ContractParameter JSON for an Integer argument.
decode_stack_item(item)
    Turn a VM stack item into plain Python values: ByteString/Buffer
    become ``0x`` hex strings, Integer int, Boolean bool, Array/Struct list.
normalize_script_hash(value)
    Validate a UInt160 contract hash and return it ``0x``-prefixed.
"""
from __future__ import annotations

import base64
import binascii
import itertools
import logging
import re
from typing import Any

import requests

from ..errors import ConfigurationError, ContractInvocationError, NeoRpcError

logger = logging.getLogger(__name__)

_SCRIPT_HASH_RE = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")


def normalize_script_hash(value: str) -> str:
    value = (value or "").strip()
    if not _SCRIPT_HASH_RE.match(value):
        raise ConfigurationError(f"Invalid contract hash: {value!r} (expected 40 hex chars)")
    return "0x" + value[-40:].lower()


def integer_param(value: int) -> dict[str, str]:
    return {"type": "Integer", "value": str(int(value))}


def base64_to_hex(value: str) -> str:
    try:
        return "0x" + base64.b64decode(value, validate=True).hex()
    except (binascii.Error, ValueError):
        return value


def decode_stack_item(item: Any) -> Any:
    if isinstance(item, list):
        return [decode_stack_item(i) for i in item]
    if not isinstance(item, dict) or "type" not in item:
        return item

    kind, value = item["type"], item.get("value")
    if kind in ("Array", "Struct"):
        return [decode_stack_item(i) for i in value] if isinstance(value, list) else value
    if kind in ("ByteString", "Buffer"):
        return base64_to_hex(value) if isinstance(value, str) else value
    if kind == "Integer":
        return int(value)
    if kind == "Boolean":
        return value if isinstance(value, bool) else str(value).lower() == "true"
    if kind == "Null":
        return None
    return value


class NeoRpcClient:
    def __init__(self, rpc_url: str, timeout: float = 30, session: requests.Session | None = None):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._ids = itertools.count(1)

    def call(self, method: str, params: list | None = None) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        logger.debug("Neo RPC %s %s", method, payload["params"])
        try:
            response = self._session.post(self.rpc_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            raise NeoRpcError(f"{method} request to {self.rpc_url} failed: {e}")
        except ValueError as e:
            raise NeoRpcError(f"{method} returned a non-JSON response: {e}")

        if not isinstance(body, dict):
            raise NeoRpcError(f"{method} returned an unexpected response: {body!r}")
        if body.get("error"):
            error = body["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise NeoRpcError(f"{method} failed: {message}")
        return body.get("result")

    def get_version(self) -> dict[str, Any]:
        return self.call("getversion")

    def invoke_function(self, contract_hash: str, method: str, args: list | None = None) -> dict[str, Any]:
        result = self.call("invokefunction", [contract_hash, method, args or []])
        if not isinstance(result, dict) or result.get("state") != "HALT":
            exception = result.get("exception") if isinstance(result, dict) else None
            raise ContractInvocationError(
                f"Failed to get {method}: {contract_hash} execution failed", exception or "Unknown error"
            )
        if not result.get("stack"):
            raise ContractInvocationError(f"No result returned from {contract_hash}.{method} call")
        return result
