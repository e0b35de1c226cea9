"""
Funding tooling for neox test accounts and bridge contracts.

Signing, serialization and RPC transport are handled by web3.py and
eth-account; this package owns the funding workflows around them.
"""

__version__ = "0.1.0"
