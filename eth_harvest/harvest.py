"""Harvest vault yield and relay the swap transaction.

The pipeline for one vault:

1. Read how much yield the vault has, or use the amount the operator gave

2. Skip if there is nothing to harvest

3. Resolve the swap path from the underlying token to the target token

4. Encode ``harvestVault()`` call on the vault's harvester and estimate its gas

5. Fetch a fresh tip from the relay and attach it as the transaction value

6. Sign locally with the hot wallet for the active network

7. Submit to the relay with a deadline

Everything runs sequentially and blocks. Run one harvest per account at a time,
as the nonce is read from the chain when signing.

Example:

.. code-block:: python

    from eth_harvest.config import read_harvest_config_from_env
    from eth_harvest.harvest import run_harvest

    config = read_harvest_config_from_env(chain_id=web3.eth.chain_id)
    outcome = run_harvest(web3, config, "0x...")
    if outcome.skipped:
        print("Nothing to harvest")
    else:
        print(f"Relay replied {outcome.response.status}: {outcome.response.body}")
"""

import logging
import math
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable

from eth_typing import HexAddress
from hexbytes import HexBytes
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import Web3Exception

from eth_harvest.archer.api import ArcherRelayClient, RelayResponse, SignedRelayTransaction
from eth_harvest.archer.constants import ArcherTipSpeed
from eth_harvest.config import HarvestConfig
from eth_harvest.exceptions import HarvestError, InvalidHarvestAmount
from eth_harvest.gas import apply_gas, estimate_gas_limit, estimate_gas_price
from eth_harvest.hotwallet import HotWallet, create_hot_wallet_for_chain
from eth_harvest.path import resolve_swap_path
from eth_harvest.token import convert_to_decimals, convert_to_raw
from eth_harvest.vault import HarvesterClient, VaultClient

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class HarvestRequest:
    """One harvest call, built fresh per run and consumed once."""

    #: Vault we harvest
    vault: HexAddress

    #: Raw amount of underlying yield to swap
    amount: int

    #: Slippage floor for the swap, in raw target token units
    minimum_output: int

    #: Swap route, underlying first and target last
    path: tuple[HexAddress, ...]

    #: UNIX timestamp after which the swap must not execute
    deadline: int

    def __post_init__(self):
        assert type(self.amount) is int, f"Amount must be raw int, got {type(self.amount)}"
        assert self.amount > 0, f"Nothing to harvest, amount is {self.amount}"
        assert type(self.minimum_output) is int and self.minimum_output >= 0, f"Bad minimum output: {self.minimum_output}"
        assert len(self.path) >= 2, f"Swap path needs at least two tokens: {self.path}"
        assert type(self.deadline) is int, f"Deadline must be an integer UNIX timestamp: {self.deadline}"

    def is_slippage_protected(self) -> bool:
        return self.minimum_output > 0


@dataclass(slots=True, frozen=True)
class HarvestOutcome:
    """What happened when we tried to harvest a vault."""

    #: Vault address
    vault: HexAddress

    #: ``True`` when the vault had nothing to harvest and we did nothing
    skipped: bool

    #: Raw amount harvested, zero when skipped
    amount: int

    #: The harvest call we built
    request: HarvestRequest | None = None

    #: Gas limit attached
    gas_limit: int | None = None

    #: Relay tip attached as value, in wei
    tip: int | None = None

    #: Nonce used for signing
    nonce: int | None = None

    #: Hash of the signed transaction
    tx_hash: HexBytes | None = None

    #: Signed payload we gave or would have given to the relay
    signed_tx: SignedRelayTransaction | None = None

    #: Relay reply, ``None`` on dry runs
    response: RelayResponse | None = None

    def is_submitted(self) -> bool:
        return self.response is not None


def _read_vault(func: Callable, what: str, vault: VaultClient):
    try:
        return func()
    except (Web3Exception, RequestException, ValueError) as e:
        raise HarvestError(f"Could not read {what} from vault {vault.address}: {e}") from e


def resolve_harvest_amount(vault: VaultClient, amount: Decimal | str | None) -> int:
    """Figure out how much raw underlying to harvest.

    :param amount:
        Human readable amount in vault decimals, or ``None`` to harvest all accrued yield

    :raise InvalidHarvestAmount:
        The amount does not fit the vault decimals
    """
    if amount is None:
        return _read_vault(vault.fetch_underlying_yield, "underlying yield", vault)

    decimals = _read_vault(vault.fetch_decimals, "decimals", vault)
    try:
        return convert_to_raw(amount, decimals)
    except ValueError as e:
        raise InvalidHarvestAmount(f"Cannot harvest {amount} from vault {vault.address}: {e}") from e


def run_harvest(
    web3: Web3,
    config: HarvestConfig,
    vault: HexAddress | str | VaultClient,
    amount: Decimal | str | None = None,
    relay: ArcherRelayClient | None = None,
    wallet: HotWallet | None = None,
    speed: ArcherTipSpeed | str | None = None,
    minimum_output: int = 0,
    dry_run: bool = False,
    clock: Callable[[], float] = time.time,
) -> HarvestOutcome:
    """Harvest one vault and relay the transaction.

    Configuration problems are raised before any network call.

    :param web3:
        Node connection for reads, gas estimation and nonce

    :param vault:
        Vault address or a client

    :param amount:
        Human readable amount to harvest. ``None`` harvests all accrued yield.

    :param relay:
        Relay client. Created from ``config`` if not given.

    :param wallet:
        Signing wallet. Created from ``config`` if not given.

    :param speed:
        Tip tier, defaults to the configured one

    :param minimum_output:
        Swap slippage floor. Zero means no protection.

    :param dry_run:
        Build and sign, but do not submit

    :param clock:
        Returns current UNIX time

    :return:
        Outcome, with ``skipped`` set if there was nothing to harvest

    :raise HarvestError:
        Any of the typed failures in :py:mod:`eth_harvest.exceptions`
    """

    # Fail fast on configuration before touching the network
    if wallet is None:
        wallet = create_hot_wallet_for_chain(config)

    if relay is None:
        if not dry_run:
            config.get_relay_api_key()
        relay = ArcherRelayClient.from_config(config)

    bridging_asset = config.get_bridging_asset()

    if speed is None:
        speed = config.tip_speed

    if isinstance(vault, VaultClient):
        vault_client = vault
    else:
        if not Web3.is_address(vault):
            raise HarvestError(f"Vault is not an address: {vault}")
        vault_client = VaultClient(web3, vault)

    raw_amount = resolve_harvest_amount(vault_client, amount)

    if raw_amount == 0:
        logger.info("Nothing to harvest in vault %s. Skipping.", vault_client.address)
        return HarvestOutcome(vault=vault_client.address, skipped=True, amount=0)

    underlying = _read_vault(vault_client.fetch_underlying, "underlying", vault_client)
    target = _read_vault(vault_client.fetch_target, "target", vault_client)
    harvester_address = _read_vault(vault_client.fetch_harvester, "harvester", vault_client)
    decimals = _read_vault(vault_client.fetch_decimals, "decimals", vault_client)

    logger.info("Harvesting %s from vault %s", convert_to_decimals(raw_amount, decimals), vault_client.address)

    path = resolve_swap_path(underlying, target, bridging_asset)

    deadline = math.ceil(clock()) + config.get_deadline_seconds()

    request = HarvestRequest(
        vault=vault_client.address,
        amount=raw_amount,
        minimum_output=minimum_output,
        path=tuple(path),
        deadline=deadline,
    )

    if not request.is_slippage_protected():
        logger.warning("Harvest of %s has no minimum output, swap is not protected against slippage", request.vault)

    harvester = HarvesterClient(web3, harvester_address)
    data = harvester.encode_harvest_vault(
        request.vault,
        request.amount,
        request.minimum_output,
        list(request.path),
        request.deadline,
    )

    gas_limit = estimate_gas_limit(
        web3,
        {"from": wallet.address, "to": harvester.address, "data": data},
        floor=config.gas_limit_floor,
    )

    tip = relay.get_tip(speed)

    tx = {
        "chainId": config.chain_id,
        "from": wallet.address,
        "to": harvester.address,
        "data": data,
        "gas": gas_limit,
        "value": tip,
    }
    apply_gas(tx, estimate_gas_price(web3))

    signed_tx = wallet.sign_transaction_with_fresh_nonce(web3, tx)
    envelope = SignedRelayTransaction(raw_signed_tx=bytes(signed_tx.raw_transaction), deadline=request.deadline)

    logger.info("Signed harvest tx %s, nonce %d, gas limit %d, tip %d", Web3.to_hex(signed_tx.hash), signed_tx.nonce, gas_limit, tip)

    response = None
    if dry_run:
        logger.info("Dry run, not submitting to the relay")
        wallet.rollback_nonce(signed_tx.nonce)
    else:
        try:
            response = relay.submit(envelope, now=clock())
        except HarvestError:
            wallet.rollback_nonce(signed_tx.nonce)
            raise

        if not response.is_success():
            wallet.rollback_nonce(signed_tx.nonce)

    return HarvestOutcome(
        vault=request.vault,
        skipped=False,
        amount=request.amount,
        request=request,
        gas_limit=gas_limit,
        tip=tip,
        nonce=signed_tx.nonce,
        tx_hash=signed_tx.hash,
        signed_tx=envelope,
        response=response,
    )


def harvest_vaults(
    web3: Web3,
    config: HarvestConfig,
    vaults: Iterable[HexAddress | str],
    amount: Decimal | str | None = None,
    relay: ArcherRelayClient | None = None,
    wallet: HotWallet | None = None,
    **kwargs,
) -> list[tuple[HexAddress | str, HarvestOutcome | HarvestError]]:
    """Harvest several vaults one after another.

    A failing vault does not stop the batch. Its error is returned in place of the outcome,
    so the relay responses of vaults already submitted are never lost.

    :param kwargs:
        Passed to :py:func:`run_harvest`

    :raise ConfigurationError:
        Before any vault is touched, as it would fail every vault the same way

    :return:
        List of (vault address, outcome or error) in the given order
    """
    if wallet is None:
        wallet = create_hot_wallet_for_chain(config)

    if relay is None:
        if not kwargs.get("dry_run"):
            config.get_relay_api_key()
        relay = ArcherRelayClient.from_config(config)

    config.get_bridging_asset()

    results = []
    for vault in vaults:
        try:
            outcome = run_harvest(web3, config, vault, amount=amount, relay=relay, wallet=wallet, **kwargs)
            results.append((vault, outcome))
        except HarvestError as e:
            logger.error("Harvesting vault %s failed: %s", vault, e)
            results.append((vault, e))
    return results
