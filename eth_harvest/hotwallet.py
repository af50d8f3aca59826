"""Hot wallet for signing harvest transactions.

- Pick the private key for the active network

- Manage the nonce against the on-chain transaction count

- Sign transactions locally, the relay broadcasts them
"""

import binascii
import logging
from typing import NamedTuple, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_typing import HexAddress
from hexbytes import HexBytes
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import Web3Exception

from eth_harvest.chain import get_chain_name, get_private_key_env
from eth_harvest.config import HarvestConfig
from eth_harvest.exceptions import HarvestError, SigningFailure, TransactionSigningFailure
from eth_harvest.tx import decode_signed_transaction, get_tx_broadcast_data

logger = logging.getLogger(__name__)


class SignedTransactionWithNonce(NamedTuple):
    """A signed transaction with the nonce and source retained.

    - Retains more information about the transaction source,
      to allow us to diagnose relay failures better
    """

    #: Bytes to be sent to the relay
    raw_transaction: HexBytes

    #: Transaction hash
    hash: HexBytes

    #: Signature
    r: int

    #: Signature
    s: int

    #: Signature
    v: int

    #: What was the source nonce for this transaction
    nonce: int

    #: Whas was the source address for this trasaction
    address: str

    #: Unencoded transaction data as a dict.
    #:
    #: If submission fails, retain the source so we can debug the cause,
    #: like the original gas parameters.
    #:
    source: Optional[dict] = None

    def __repr__(self):
        return f"<SignedTransactionWithNonce hash:{Web3.to_hex(self.hash)} nonce:{self.nonce} payload:{Web3.to_hex(self.raw_transaction)}>"


class HotWallet:
    """Hot wallet for signing transactions.

    - A hot wallet maintains an plain text private key of an Ethereum address in the process memory
      using :py:class:`eth_account.signers.local.LocalAccount` and nonce counter.

    - We sign raw transactions ourselves, as the relay takes signed payloads
      and node side signing does not give us those.

    Example:

    .. code-block:: python

        wallet = create_hot_wallet_for_chain(config, chain_id=web3.eth.chain_id)
        wallet.sync_nonce(web3)
        signed_tx = wallet.sign_transaction_with_new_nonce(tx)

    .. note ::

        This class is not thread safe. The nonce is read from the chain, so two
        harvests running for the same account at the same time will collide.
    """

    def __init__(self, account: LocalAccount):
        """Create a hot wallet from a local account."""
        self.account = account
        self.current_nonce: Optional[int] = None

    def __repr__(self):
        return f"<Hot wallet {self.account.address}>"

    @property
    def address(self) -> HexAddress:
        """Ethereum address of the wallet."""
        return self.account.address

    def sync_nonce(self, web3: Web3):
        """Initialise the current nonce from the on-chain data.

        :raise HarvestError:
            If the node does not answer
        """
        try:
            new_nonce = web3.eth.get_transaction_count(self.account.address)
        except (Web3Exception, RequestException) as e:
            raise HarvestError(f"Could not read nonce for {self.account.address}: {e}") from e

        if self.current_nonce:
            if new_nonce < self.current_nonce:
                logger.warning("Nonce sync failed, read onchain nonce %d that is older than our current nonce: %d. This may happen if the relay has not included our last transaction yet.", new_nonce, self.current_nonce)
                return
        self.current_nonce = new_nonce
        logger.info("Synced nonce for %s to %d", self.account.address, self.current_nonce)

    def allocate_nonce(self) -> int:
        """Get the next free available nonce to be used with a transaction.

        Ethereum tx nonces are a counter.

        Increase the nonce counter
        """
        assert self.current_nonce is not None, f"Nonce is not yet synced from the blockchain: {self}"
        nonce = self.current_nonce
        self.current_nonce += 1
        return nonce

    def rollback_nonce(self, nonce: int):
        """Give back a nonce that never reached the chain.

        Only the latest allocated nonce can be given back.
        """
        if self.current_nonce == nonce + 1:
            self.current_nonce = nonce
            logger.info("Rolled back nonce for %s to %d", self.account.address, nonce)
        else:
            logger.warning("Cannot roll back nonce %d for %s, current nonce is %s", nonce, self.account.address, self.current_nonce)

    def sign_transaction_with_new_nonce(self, tx: dict) -> SignedTransactionWithNonce:
        """Signs a transaction and allocates a nonce for it.

        :param tx:
            Ethereum transaction data as a dict.
            This is modified in-place to include nonce.

        :raise TransactionSigningFailure:
            eth_account refused the transaction. The nonce is given back.

        :return:
            A transaction payload and nonce with used to generate this transaction.
        """
        assert type(tx) == dict
        assert "nonce" not in tx
        tx["nonce"] = self.allocate_nonce()

        try:
            _signed = self.account.sign_transaction(tx)
        except (TypeError, ValueError) as e:
            # Probably mismatch between the gas parameter format and what the chain wants
            self.rollback_nonce(tx.pop("nonce"))
            raise TransactionSigningFailure(f"Could not sign transaction for {self.address}: {e}") from e

        raw_bytes = get_tx_broadcast_data(_signed)
        # Check that we can decode
        decode_signed_transaction(raw_bytes)

        return SignedTransactionWithNonce(
            raw_transaction=raw_bytes,
            hash=_signed.hash,
            v=_signed.v,
            r=_signed.r,
            s=_signed.s,
            nonce=tx["nonce"],
            source=tx,
            address=self.address,
        )

    def sign_transaction_with_fresh_nonce(self, web3: Web3, tx: dict) -> SignedTransactionWithNonce:
        """Read the account nonce from the chain and sign.

        The nonce is read at the moment of signing, so this is
        only safe when one harvest per account runs at a time.
        """
        self.sync_nonce(web3)
        return self.sign_transaction_with_new_nonce(tx)

    @staticmethod
    def from_private_key(key: str) -> "HotWallet":
        """Create a hot wallet from a private key that is passed in as a hex string.

        Example:

        .. code-block::

            # Generated with  openssl rand -hex 32
            wallet = HotWallet.from_private_key("0x54c137e27d2930f7b3433249c5f07b37ddcfea70871c0a4ef9e0f65655faf957")

        :param key:
            0x prefixed hex string

        :raise SigningFailure:
            The key is not a valid private key

        :return:
            Ready to go hot wallet account
        """
        if type(key) != str:
            raise SigningFailure(f"Expected private key as string, got {type(key)}")
        if not key.startswith("0x"):
            # Do not leak the key to logs
            raise SigningFailure("This system assumes private keys are prefixed with 0x. Please add 0x prefix to your private key hex string")
        try:
            account = Account.from_key(key)
        except (ValueError, binascii.Error) as e:
            raise SigningFailure("Could not load private key, check it is 32 bytes of hex") from e
        return HotWallet(account)


def select_private_key(config: HarvestConfig, chain_id: int | None = None) -> str:
    """Pick the private key configured for a network.

    Each network has its own key, so a testnet key never signs mainnet transactions.

    :param chain_id:
        Defaults to the configured chain

    :raise SigningFailure:
        No key configured for this chain
    """
    if chain_id is None:
        chain_id = config.chain_id

    key = config.private_keys.get(chain_id)
    if not key:
        raise SigningFailure(f"No private key configured for chain {get_chain_name(chain_id)}, set {get_private_key_env(chain_id)}")
    return key


def create_hot_wallet_for_chain(config: HarvestConfig, chain_id: int | None = None) -> HotWallet:
    """Create the hot wallet that signs for a network.

    Does not touch the network, so configuration problems surface before any call is made.

    :raise SigningFailure:
        Missing or bad key
    """
    key = select_private_key(config, chain_id)
    wallet = HotWallet.from_private_key(key)
    logger.info("Using hot wallet %s on chain %s", wallet.address, get_chain_name(chain_id or config.chain_id))
    return wallet
