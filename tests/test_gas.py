"""Gas helpers."""

from unittest.mock import Mock

import pytest
from requests.exceptions import ConnectionError
from web3 import Web3
from web3.exceptions import ContractLogicError

from eth_harvest.exceptions import GasEstimationFailure
from eth_harvest.gas import GasPriceMethod, GasPriceSuggestion, apply_gas, estimate_gas_limit, estimate_gas_price


def test_gas_fees_london(web3: Web3):
    """Estimate gas fees on London hard-fork compatible blockchain.

    Note: We cannot test for non-London EVMs, as EthereumTester does not support them.
    """
    fees = estimate_gas_price(web3)
    assert fees.method == GasPriceMethod.london
    assert fees.base_fee > 0
    assert fees.max_priority_fee_per_gas > 0
    assert fees.max_fee_per_gas == fees.max_priority_fee_per_gas + 2 * fees.base_fee
    assert "Base Fee" in fees.pformat()


def test_apply_gas_london():
    tx = {"gasPrice": 1}
    apply_gas(tx, GasPriceSuggestion(method=GasPriceMethod.london, base_fee=10, max_priority_fee_per_gas=2, max_fee_per_gas=22))
    assert tx == {"maxFeePerGas": 22, "maxPriorityFeePerGas": 2}


def test_apply_gas_legacy():
    tx = {}
    apply_gas(tx, GasPriceSuggestion(method=GasPriceMethod.legacy, legacy_gas_price=5))
    assert tx == {"gasPrice": 5}


def test_gas_limit_floor(web3: Web3, deployer: str, hot_wallet):
    """Simple calls estimate well below the floor, so the floor wins."""
    tx = {"from": hot_wallet.address, "to": deployer, "data": "0x1234"}
    estimate = web3.eth.estimate_gas(tx)
    assert estimate < 1_000_000
    assert estimate_gas_limit(web3, tx, floor=1_000_000) == 1_000_000


def test_gas_limit_estimate_above_floor(web3: Web3, deployer: str, hot_wallet):
    tx = {"from": hot_wallet.address, "to": deployer, "data": "0x1234"}
    assert estimate_gas_limit(web3, tx, floor=1) == web3.eth.estimate_gas(tx)


@pytest.mark.parametrize(
    "error",
    [
        ContractLogicError("execution reverted: Vault: not harvester"),
        ConnectionError("Connection refused"),
        ValueError({"code": -32000, "message": "insufficient funds for gas * price + value"}),
    ],
)
def test_gas_limit_failure(error):
    """Reverting call or dead node gives a typed error."""
    web3 = Mock()
    web3.eth.estimate_gas.side_effect = error
    with pytest.raises(GasEstimationFailure):
        estimate_gas_limit(web3, {"to": "0x2222222222222222222222222222222222222222", "data": "0x"}, floor=1_000_000)


def test_gas_price_failure():
    web3 = Mock()
    web3.eth.get_block.side_effect = ConnectionError("Connection refused")
    with pytest.raises(GasEstimationFailure):
        estimate_gas_price(web3)
