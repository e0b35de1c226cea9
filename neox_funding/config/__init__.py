"""
Configuration package for the funding commands.
"""

from .gas import GasConfig, NATIVE_TRANSFER_GAS
from .settings import (
    BridgeConfig,
    FundingConfig,
    NeoBridgeConfig,
    load_env,
    parse_ether,
)
from .abis import TOKEN_ABI, BRIDGE_ABI, MANAGEMENT_ABI

__all__ = [
    'GasConfig',
    'NATIVE_TRANSFER_GAS',
    'BridgeConfig',
    'FundingConfig',
    'NeoBridgeConfig',
    'load_env',
    'parse_ether',
    'TOKEN_ABI',
    'BRIDGE_ABI',
    'MANAGEMENT_ABI',
]
