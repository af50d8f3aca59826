"""Typed clients for the deployed vault and harvester contracts.

Only the functions the harvest pipeline needs are exposed.
"""

import logging
from functools import cached_property

from eth_typing import HexAddress, HexStr
from web3 import Web3
from web3.contract.contract import Contract

from eth_harvest.abi import get_deployed_contract

logger = logging.getLogger(__name__)


class VaultClient:
    """Read access to a yield vault.

    Example:

    .. code-block:: python

        vault = VaultClient(web3, "0x...")
        print(f"Vault has {vault.fetch_underlying_yield()} raw units of yield waiting")
    """

    def __init__(self, web3: Web3, address: HexAddress | str):
        assert isinstance(web3, Web3), f"Got {type(web3)} instead of Web3"
        self.web3 = web3
        self.address = Web3.to_checksum_address(address)

    def __repr__(self):
        return f"<Vault {self.address}>"

    @cached_property
    def contract(self) -> Contract:
        return get_deployed_contract(self.web3, "Vault.json", self.address)

    def fetch_underlying(self) -> HexAddress:
        """The token depositors put in and the yield accrues in."""
        return self.contract.functions.underlying().call()

    def fetch_target(self) -> HexAddress:
        """The token the yield is swapped to."""
        return self.contract.functions.target().call()

    def fetch_harvester(self) -> HexAddress:
        """The harvester contract allowed to swap the yield."""
        return self.contract.functions.harvester().call()

    def fetch_decimals(self) -> int:
        return self.contract.functions.decimals().call()

    def fetch_underlying_yield(self) -> int:
        """How much yield the vault has accrued, in raw underlying units.

        ``underlyingYield()`` is not a view function, as strategies may need to
        touch their money market to accrue interest. We only simulate it with ``eth_call``,
        nothing is written on chain.
        """
        raw_yield = self.contract.functions.underlyingYield().call()
        logger.info("Vault %s underlying yield is %d", self.address, raw_yield)
        return raw_yield


class HarvesterClient:
    """Build harvest calls against a harvester contract.

    We never call the harvester directly. The encoded call data is
    signed locally and sent through the relay.
    """

    def __init__(self, web3: Web3, address: HexAddress | str):
        assert isinstance(web3, Web3), f"Got {type(web3)} instead of Web3"
        self.web3 = web3
        self.address = Web3.to_checksum_address(address)

    def __repr__(self):
        return f"<Harvester {self.address}>"

    @cached_property
    def contract(self) -> Contract:
        return get_deployed_contract(self.web3, "TipHarvester.json", self.address)

    def encode_harvest_vault(
        self,
        vault: HexAddress | str,
        amount: int,
        minimum_output: int,
        path: list[HexAddress],
        deadline: int,
    ) -> HexStr:
        """Encode ``harvestVault(vault, amount, outMin, path, deadline)`` call data.

        :param path:
            Checksummed swap route, see :py:func:`eth_harvest.path.resolve_swap_path`

        :return:
            0x prefixed call data
        """
        assert type(amount) is int and amount > 0, f"Bad harvest amount: {amount}"
        assert type(minimum_output) is int and minimum_output >= 0, f"Bad minimum output: {minimum_output}"
        assert len(path) >= 2, f"Path too short: {path}"
        return self.contract.encode_abi(
            abi_element_identifier="harvestVault",
            args=[Web3.to_checksum_address(vault), amount, minimum_output, list(path), deadline],
        )
