"""
EIP-1559 gas settings for neox transactions.

Values are kept in gwei as configured and converted to wei when a
transaction is built.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from web3 import Web3

NATIVE_TRANSFER_GAS = 21000


@dataclass(frozen=True)
class GasConfig:
    gas_limit: int = NATIVE_TRANSFER_GAS
    max_fee_gwei: Decimal = Decimal("40")
    priority_fee_gwei: Decimal = Decimal("25")

    def __post_init__(self) -> None:
        if self.gas_limit < NATIVE_TRANSFER_GAS:
            raise ValueError(f"gas_limit must be >= {NATIVE_TRANSFER_GAS}")
        if self.priority_fee_gwei > self.max_fee_gwei:
            raise ValueError("priority fee cannot exceed max fee")

    @property
    def max_fee_per_gas_wei(self) -> int:
        return int(Web3.to_wei(self.max_fee_gwei, "gwei"))

    @property
    def priority_fee_per_gas_wei(self) -> int:
        return int(Web3.to_wei(self.priority_fee_gwei, "gwei"))

    def as_tx_fields(self) -> dict[str, int]:
        return {
            "gas": int(self.gas_limit),
            "maxFeePerGas": self.max_fee_per_gas_wei,
            "maxPriorityFeePerGas": self.priority_fee_per_gas_wei,
            "type": 2,
        }

    def max_gas_cost_wei(self, tx_count: int = 1) -> int:
        """Upper bound on fees for ``tx_count`` transactions at the max fee."""
        if tx_count <= 0:
            return 0
        return self.max_fee_per_gas_wei * int(self.gas_limit) * tx_count

    def with_gas_limit(self, gas_limit: int) -> GasConfig:
        return replace(self, gas_limit=gas_limit)
