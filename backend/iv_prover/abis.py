"""
Contract ABIs for Uniswap V3 pool interactions.

Contains a minimal UniswapV3Pool ABI (slot0, liquidity) plus the Swap
event signature and data layout used to filter and decode raw logs.
"""

# UniswapV3Pool ABI (minimal - state reads only)
V3_POOL_ABI = [
    {
        "name": "slot0",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "observationIndex", "type": "uint16"},
            {"name": "observationCardinality", "type": "uint16"},
            {"name": "observationCardinalityNext", "type": "uint16"},
            {"name": "feeProtocol", "type": "uint8"},
            {"name": "unlocked", "type": "bool"},
        ],
    },
    {
        "name": "liquidity",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint128"}],
    },
]

SWAP_EVENT_SIGNATURE = "Swap(address,address,int256,int256,uint160,uint128,int24)"

# Non-indexed Swap fields, in log data order
SWAP_DATA_TYPES = ["int256", "int256", "uint160", "uint128", "int24"]
