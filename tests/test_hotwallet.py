"""Hot wallet key selection, nonce handling and signing."""

import pytest
from web3 import Web3

from eth_harvest.config import HarvestConfig
from eth_harvest.exceptions import ConfigurationError, HarvestError, SigningFailure, TransactionSigningFailure
from eth_harvest.hotwallet import HotWallet, create_hot_wallet_for_chain, select_private_key
from eth_harvest.tx import DecodeFailure, decode_signed_transaction

MAINNET_KEY = "0x54c137e27d2930f7b3433249c5f07b37ddcfea70871c0a4ef9e0f65655faf957"
RINKEBY_KEY = "0x8a8d9d0b5c1e4b6f1e4f5e6a0d7b8c9e0f1a2b3c4d5e6f708192a3b4c5d6e7f8"


@pytest.fixture()
def multi_chain_config() -> HarvestConfig:
    return HarvestConfig(chain_id=1, private_keys={1: MAINNET_KEY, 4: RINKEBY_KEY})


def test_select_key_per_network(multi_chain_config):
    assert select_private_key(multi_chain_config) == MAINNET_KEY
    assert select_private_key(multi_chain_config, chain_id=4) == RINKEBY_KEY


def test_select_key_missing(multi_chain_config):
    with pytest.raises(SigningFailure) as exc_info:
        select_private_key(multi_chain_config, chain_id=5)
    assert "GOERLI_PRIVKEY" in str(exc_info.value)


def test_signing_failure_is_configuration_error(multi_chain_config):
    with pytest.raises(ConfigurationError):
        create_hot_wallet_for_chain(multi_chain_config, chain_id=11155111)


def test_create_wallet_for_chain(multi_chain_config):
    mainnet_wallet = create_hot_wallet_for_chain(multi_chain_config)
    rinkeby_wallet = create_hot_wallet_for_chain(multi_chain_config, chain_id=4)
    assert mainnet_wallet.address != rinkeby_wallet.address
    assert Web3.is_checksum_address(mainnet_wallet.address)


@pytest.mark.parametrize(
    "bad_key",
    [
        "54c137e27d2930f7b3433249c5f07b37ddcfea70871c0a4ef9e0f65655faf957",
        "0x1234",
        "0xzz",
        None,
    ],
)
def test_bad_private_key(bad_key):
    with pytest.raises(SigningFailure) as exc_info:
        HotWallet.from_private_key(bad_key)
    if bad_key:
        assert bad_key not in str(exc_info.value)


def test_sync_nonce(web3, deployer, hot_wallet):
    hot_wallet.sync_nonce(web3)
    assert hot_wallet.current_nonce == 0
    assert hot_wallet.allocate_nonce() == 0
    assert hot_wallet.allocate_nonce() == 1


def test_sign_with_fresh_nonce(web3, deployer, hot_wallet):
    """Sign a plain ETH transfer and send it ourselves."""
    tx = {
        "chainId": web3.eth.chain_id,
        "from": hot_wallet.address,
        "to": deployer,
        "value": 10**18,
        "gas": 21_000,
        "gasPrice": 2 * web3.eth.gas_price,
    }
    signed_tx = hot_wallet.sign_transaction_with_fresh_nonce(web3, tx)
    assert signed_tx.nonce == 0
    assert signed_tx.address == hot_wallet.address
    assert signed_tx.source["nonce"] == 0

    decoded = decode_signed_transaction(signed_tx.raw_transaction)
    assert decoded["nonce"] == 0
    assert decoded["value"] == 10**18

    tx_hash = web3.eth.send_raw_transaction(signed_tx.raw_transaction)
    receipt = web3.eth.wait_for_transaction_receipt(tx_hash)
    assert receipt["status"] == 1

    # Next fresh read picks up the mined transaction
    hot_wallet.sync_nonce(web3)
    assert hot_wallet.current_nonce == 1


def test_rollback_nonce(web3, hot_wallet):
    hot_wallet.sync_nonce(web3)
    nonce = hot_wallet.allocate_nonce()
    hot_wallet.rollback_nonce(nonce)
    assert hot_wallet.current_nonce == nonce

    # Only the latest nonce can be given back
    first = hot_wallet.allocate_nonce()
    hot_wallet.allocate_nonce()
    hot_wallet.rollback_nonce(first)
    assert hot_wallet.current_nonce == first + 2


def test_sign_from_wrong_account(web3, deployer, hot_wallet):
    hot_wallet.sync_nonce(web3)
    tx = {"chainId": web3.eth.chain_id, "from": deployer, "to": deployer, "gas": 21_000, "gasPrice": 10**9, "value": 0}
    with pytest.raises(TransactionSigningFailure):
        hot_wallet.sign_transaction_with_new_nonce(tx)

    # Nonce is given back, so the next transaction does not leave a gap
    assert hot_wallet.current_nonce == 0
    assert "nonce" not in tx

    # Runtime failure, not a configuration problem
    assert issubclass(TransactionSigningFailure, HarvestError)
    assert not issubclass(TransactionSigningFailure, ConfigurationError)


def test_decode_garbage():
    with pytest.raises(DecodeFailure):
        decode_signed_transaction(b"\xff\x00\x01")
