"""Shared fixtures for harvest tests."""

import secrets
from unittest.mock import Mock

import pytest
from web3 import EthereumTesterProvider, Web3

from eth_harvest.archer.api import ArcherRelayClient, RelayResponse
from eth_harvest.chain import WRAPPED_NATIVE_TOKEN
from eth_harvest.config import HarvestConfig
from eth_harvest.hotwallet import HotWallet


@pytest.fixture
def tester_provider():
    # https://web3py.readthedocs.io/en/stable/examples.html#contract-unit-tests-in-python
    return EthereumTesterProvider()


@pytest.fixture
def web3(tester_provider):
    """Set up a local unit testing blockchain."""
    return Web3(tester_provider)


@pytest.fixture()
def deployer(web3) -> str:
    """Account with plenty of test ETH."""
    return web3.eth.accounts[0]


@pytest.fixture()
def hot_wallet_private_key() -> str:
    """Generate a private key"""
    return "0x" + secrets.token_hex(32)


@pytest.fixture()
def hot_wallet(web3, deployer, hot_wallet_private_key) -> HotWallet:
    """Hot wallet with 10 ETH, so the node can estimate its calls."""
    wallet = HotWallet.from_private_key(hot_wallet_private_key)
    tx_hash = web3.eth.send_transaction({"from": deployer, "to": wallet.address, "value": 10 * 10**18})
    web3.eth.wait_for_transaction_receipt(tx_hash)
    return wallet


@pytest.fixture()
def weth() -> str:
    """Mainnet WETH, used as the bridging asset on the test chain."""
    return WRAPPED_NATIVE_TOKEN[1]


@pytest.fixture()
def config(web3, hot_wallet_private_key, weth) -> HarvestConfig:
    chain_id = web3.eth.chain_id
    return HarvestConfig(
        chain_id=chain_id,
        relay_api_key="test-api-key",
        private_keys={chain_id: hot_wallet_private_key},
        bridging_asset=weth,
    )


@pytest.fixture()
def relay() -> Mock:
    """Relay quoting 0.001 ETH tip and accepting everything."""
    relay = Mock(spec=ArcherRelayClient)
    relay.get_tip.return_value = 10**15
    relay.submit.return_value = RelayResponse(status=200, body={"id": 1, "result": "ok"})
    return relay
