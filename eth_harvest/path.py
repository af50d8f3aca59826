"""Swap path construction for harvests.

The harvester contract swaps the vault yield through a Uniswap v2 style router,
which takes the route as a list of token addresses.

.. note ::

    This is a static heuristic. We do not search the liquidity graph
    for the best route. If the target token has no pool against the bridging
    asset, the harvest call reverts during gas estimation.
"""

from eth_typing import HexAddress
from web3 import Web3

from eth_harvest.exceptions import PathResolutionFailure


def _checksum(address: HexAddress | str, what: str) -> HexAddress:
    if not isinstance(address, str) or not Web3.is_address(address):
        raise PathResolutionFailure(f"{what} is not an address: {address}")
    return Web3.to_checksum_address(address)


def resolve_swap_path(
    underlying: HexAddress | str,
    target: HexAddress | str,
    bridging_asset: HexAddress | str,
) -> list[HexAddress]:
    """Choose the swap route from the underlying token to the target token.

    - If the target is the bridging asset, swap directly: ``[underlying, target]``

    - Otherwise route through the bridging asset: ``[underlying, bridging_asset, target]``

    Addresses are compared case-insensitively and returned checksummed.

    Example:

    .. code-block:: python

        # USDC -> WETH is a direct hop
        path = resolve_swap_path(usdc, weth, bridging_asset=weth)
        assert path == [usdc, weth]

        # USDC -> WBTC goes through WETH
        path = resolve_swap_path(usdc, wbtc, bridging_asset=weth)
        assert path == [usdc, weth, wbtc]

    :param underlying:
        The token the vault yield is denominated in

    :param target:
        The token the vault wants to receive

    :param bridging_asset:
        Intermediate hop, usually the wrapped native token

    :raise PathResolutionFailure:
        If any of the inputs is not an address
    """
    underlying = _checksum(underlying, "Underlying")
    target = _checksum(target, "Target")
    bridging_asset = _checksum(bridging_asset, "Bridging asset")

    if target.lower() == bridging_asset.lower():
        return [underlying, target]

    return [underlying, bridging_asset, target]
