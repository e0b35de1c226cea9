"""
Contract ABI package for the funding commands.

Contains the minimal ABIs needed to fund the neox bridge contracts.
"""

from .erc20 import TOKEN_ABI
from .bridge import BRIDGE_ABI, MANAGEMENT_ABI

__all__ = ["TOKEN_ABI", "BRIDGE_ABI", "MANAGEMENT_ABI"]
