"""Chain specific data.

Map chain ids to the names we use in environment variables
and to the canonical bridging asset used in swap paths.
"""

from eth_typing import HexAddress

#: Chain id -> network name.
#:
#: The name is used to pick the private key environment variable,
#: e.g. ``MAINNET_PRIVKEY`` for chain id 1.
CHAIN_NAMES: dict[int, str] = {
    1: "mainnet",
    4: "rinkeby",
    5: "goerli",
    11155111: "sepolia",
}

#: Wrapped native currency per chain.
#:
#: Most DEX liquidity pairs against WETH, so it is our default
#: intermediate hop when swapping yield to the target token.
WRAPPED_NATIVE_TOKEN: dict[int, HexAddress] = {
    1: HexAddress("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"),  # Ethereum
    4: HexAddress("0xc778417E063141139Fce010982780140Aa0cD5Ab"),  # Rinkeby
    5: HexAddress("0xB4FBF271143F4FBf7B91A5ded31805e42b2208d6"),  # Goerli
    11155111: HexAddress("0xfFf9976782d46CC05630D1f6eBAb18b2324d6B14"),  # Sepolia
}


def get_chain_name(chain_id: int) -> str:
    """Translate Ethereum chain id to its name."""
    name = CHAIN_NAMES.get(chain_id)
    if name:
        return name

    return f"<Unknown chain, id {chain_id}>"


def get_private_key_env(chain_id: int) -> str:
    """Get the private key environment variable name for a chain.

    Unknown chains fall back to ``PRIVKEY_<chain id>``.

    Example:

    .. code-block:: python

        assert get_private_key_env(1) == "MAINNET_PRIVKEY"
        assert get_private_key_env(31337) == "PRIVKEY_31337"
    """
    assert type(chain_id) is int, f"Chain ID must be an integer: {type(chain_id)}"
    name = CHAIN_NAMES.get(chain_id)
    if name:
        return f"{name.upper()}_PRIVKEY"
    return f"PRIVKEY_{chain_id}"
