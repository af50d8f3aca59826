"""Gas limit and gas price for harvest transactions.

`Web3.py no longer support gas price strategies post London hard work <https://web3py.readthedocs.io/en/stable/gas_price.html>`_,
so we fill in fee fields ourselves before signing.
"""

import enum
import logging
from dataclasses import dataclass
from pprint import pformat
from typing import Optional

from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import Web3Exception

from eth_harvest.exceptions import GasEstimationFailure

logger = logging.getLogger(__name__)


class GasPriceMethod(enum.Enum):
    """What method we did use for setting the gas price."""

    #: Legacy chains
    legacy = "legacy"

    #: Post London hard work
    london = "london"


@dataclass
class GasPriceSuggestion:
    """Gas price details.

    Capture the necessary information for the gas price to used during the transaction building.

    - EIP-1559 London hard fork chains (Ethereumm mainnet)

    - Legacy EVM
    """

    #: How the gas price was determined
    method: GasPriceMethod

    #: Non London hard fork chains
    legacy_gas_price: Optional[int] = None

    #: London hard fork chains
    base_fee: Optional[int] = None

    #: London hard fork chains
    max_priority_fee_per_gas: Optional[int] = None

    #: London hard fork chains
    max_fee_per_gas: Optional[int] = None

    def __repr__(self):
        return f"<Gas pricing method:{self.method.name} base:{self.base_fee} priority:{self.max_priority_fee_per_gas} max:{self.max_fee_per_gas} legacy:{self.legacy_gas_price}>"

    def pformat(self) -> str:
        """Pretty format for logging."""

        def _format(value: Optional[int]) -> str:
            if value is None:
                return "-"
            return f"{value / 10**9:.2f}G ({value:,})"

        data = {
            "Base Fee": _format(self.base_fee),
            "Max priority fee per gas": _format(self.max_priority_fee_per_gas),
            "Max fee per gas": _format(self.max_fee_per_gas),
            "Legacy gas price": _format(self.legacy_gas_price),
        }
        return pformat(data)


def estimate_gas_price(web3: Web3, method=None) -> GasPriceSuggestion:
    """Get a good gas price for a transaction.

    :raise GasEstimationFailure:
        If the node does not answer
    """

    try:
        last_block = web3.eth.get_block("latest")
        base_fee = last_block.get("baseFeePerGas")

        if method is None:
            if base_fee is not None:
                method = GasPriceMethod.london
            else:
                method = GasPriceMethod.legacy

        if method == GasPriceMethod.london:
            # see https://github.com/ethereum/web3.py/blob/36adb16c68f570c343d01ecc8d0096cbac814172/web3/middleware/gas_price_strategy.py#L57
            max_priority_fee_per_gas = web3.eth.max_priority_fee
            max_fee_per_gas = max_priority_fee_per_gas + (2 * base_fee)
            return GasPriceSuggestion(
                method=GasPriceMethod.london,
                base_fee=base_fee,
                max_priority_fee_per_gas=max_priority_fee_per_gas,
                max_fee_per_gas=max_fee_per_gas,
            )
        else:
            return GasPriceSuggestion(method=GasPriceMethod.legacy, legacy_gas_price=web3.eth.gas_price)
    except (Web3Exception, RequestException) as e:
        raise GasEstimationFailure(f"Could not read gas price from the node: {e}") from e


def apply_gas(tx: dict, suggestion: GasPriceSuggestion) -> dict:
    """Apply gas fees to a raw transaction dict.

    :return:
        Mutated dict
    """

    assert isinstance(tx, dict), f"Expected tx to be dict, got {type(tx)}"

    if suggestion.method == GasPriceMethod.london:
        tx["maxFeePerGas"] = suggestion.max_fee_per_gas
        tx["maxPriorityFeePerGas"] = suggestion.max_priority_fee_per_gas

        if "gasPrice" in tx:
            # Cannot have both maxFeePerGas + maxPriorityFeePerGas and gasPrice
            del tx["gasPrice"]
    else:
        tx["gasPrice"] = suggestion.legacy_gas_price

    return tx


def estimate_gas_limit(web3: Web3, tx: dict, floor: int) -> int:
    """Estimate the gas limit of a transaction, but never go below a floor.

    Gas estimation simulates the call against the latest block,
    so a harvest that would revert fails here and not on chain.

    Example:

    .. code-block:: python

        gas_limit = estimate_gas_limit(web3, {"from": wallet.address, "to": harvester.address, "data": data}, floor=1_000_000)
        assert gas_limit >= 1_000_000

    :param tx:
        Transaction with at least ``to`` and ``data``

    :param floor:
        Minimum gas limit returned

    :raise GasEstimationFailure:
        The call reverts or the node refuses to estimate
    """
    assert floor > 0, f"Bad gas floor: {floor}"
    assert "to" in tx, f"Transaction has no destination: {tx}"

    try:
        estimate = web3.eth.estimate_gas(tx)
    except (Web3Exception, RequestException, ValueError) as e:
        raise GasEstimationFailure(f"Gas estimation failed for call to {tx['to']}: {e}") from e

    gas_limit = max(estimate, floor)
    logger.info("Gas estimate %d, using gas limit %d", estimate, gas_limit)
    return gas_limit
