"""Minimal ABIs for the factory, its tokens and their pools."""

DEPLOYED_EVENT_SIGNATURE = "Deployed(address,uint256)"

FACTORY_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "addr", "type": "address"},
            {"indexed": False, "name": "amount", "type": "uint256"},
        ],
        "name": "Deployed",
        "type": "event",
    }
]


def _view(name: str, output: str) -> dict:
    return {
        "constant": True,
        "inputs": [],
        "name": name,
        "outputs": [{"name": "", "type": output}],
        "stateMutability": "view",
        "type": "function",
    }


ERC20_ABI = [
    _view("symbol", "string"),
    _view("decimals", "uint8"),
    _view("totalSupply", "uint256"),
]

# Extra descriptive getters exposed by factory-deployed tokens
TOKEN_META_ABI = [
    _view("description", "string"),
    _view("website", "string"),
    _view("telegram", "string"),
    _view("twitter", "string"),
]

PAIR_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "getReserves",
        "outputs": [
            {"name": "reserve0", "type": "uint112"},
            {"name": "reserve1", "type": "uint112"},
            {"name": "blockTimestampLast", "type": "uint32"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    _view("token0", "address"),
    _view("token1", "address"),
]

TOKEN_ABI = ERC20_ABI + TOKEN_META_ABI + PAIR_ABI

TOKEN_READ_FIELDS: frozenset[str] = frozenset(
    {
        "symbol",
        "decimals",
        "totalSupply",
        "description",
        "website",
        "telegram",
        "twitter",
    }
)
