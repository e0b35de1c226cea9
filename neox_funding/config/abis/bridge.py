"""
Bridge contract ABIs.

Only the view functions used to check that the funding account is the
registered fee sponsor.
"""

BRIDGE_ABI = [
    {
        "inputs": [],
        "name": "management",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]

MANAGEMENT_ABI = [
    {
        "inputs": [],
        "name": "getFunder",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]
