"""Forwarder contract ABI (ERC-2771 forwarder with ForwardRequestData)."""

FORWARD_REQUEST_COMPONENTS = [
    {"name": "from", "type": "address"},
    {"name": "to", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "gas", "type": "uint256"},
    {"name": "deadline", "type": "uint48"},
    {"name": "data", "type": "bytes"},
    {"name": "signature", "type": "bytes"},
]

FORWARDER_ABI = [
    {
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "nonces",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {
                "components": FORWARD_REQUEST_COMPONENTS,
                "name": "request",
                "type": "tuple",
            }
        ],
        "name": "verify",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {
                "components": FORWARD_REQUEST_COMPONENTS,
                "name": "request",
                "type": "tuple",
            }
        ],
        "name": "execute",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
]
