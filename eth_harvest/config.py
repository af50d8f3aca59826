"""Harvest pipeline configuration.

All components receive a :py:class:`HarvestConfig` instance.
Environment variables are only read in :py:func:`read_harvest_config_from_env`,
which is called by the command line entry point.

Environment variables:

- ``JSON_RPC_URL``: node to read from and estimate gas against

- ``CHAIN_ID``: optional, otherwise asked from the node

- ``ARCHER_DAO_API_KEY``: relay credential

- ``MAINNET_PRIVKEY``, ``RINKEBY_PRIVKEY``, ...: hot wallet key per network,
  see :py:func:`eth_harvest.chain.get_private_key_env`

- ``ARCHER_API_URL``, ``BRIDGING_ASSET``, ``GAS_LIMIT_FLOOR``, ``HARVEST_DEADLINE_SECONDS``,
  ``ARCHER_TIP_SPEED``, ``ARCHER_API_TIMEOUT``, ``ARCHER_TIP_RETRIES``: optional overrides
"""

import datetime
import os
from dataclasses import dataclass, field
from typing import Mapping

from eth_typing import HexAddress
from web3 import Web3

from eth_harvest.archer.constants import ARCHER_DEFAULT_API_URL, ArcherTipSpeed
from eth_harvest.chain import CHAIN_NAMES, WRAPPED_NATIVE_TOKEN, get_chain_name, get_private_key_env
from eth_harvest.exceptions import ConfigurationError

#: Never attach less gas than this to a harvest transaction.
#:
#: Node estimates for multi-hop swaps have been observed to come in low.
DEFAULT_GAS_LIMIT_FLOOR = 1_000_000

#: How long the relay may hold on to our transaction
DEFAULT_DEADLINE_WINDOW = datetime.timedelta(hours=1)

#: HTTP timeout for relay API calls
DEFAULT_API_TIMEOUT = datetime.timedelta(seconds=30)


@dataclass(slots=True, frozen=True)
class HarvestConfig:
    """Everything the harvest pipeline needs to know about its environment.

    Example:

    .. code-block:: python

        config = HarvestConfig(
            chain_id=1,
            json_rpc_url="https://eth-mainnet.example.com",
            relay_api_key=os.environ["ARCHER_DAO_API_KEY"],
            private_keys={1: os.environ["MAINNET_PRIVKEY"]},
        )
        outcome = run_harvest(web3, config, vault_address)
    """

    #: Chain id of the network we harvest on
    chain_id: int

    #: JSON-RPC node URL.
    #:
    #: May contain an API key, never log as is.
    json_rpc_url: str | None = None

    #: Archer DAO API key sent as ``Authorization`` header
    relay_api_key: str | None = field(default=None, repr=False)

    #: Chain id -> 0x prefixed private key
    private_keys: Mapping[int, str] = field(default_factory=dict, repr=False)

    #: Relay API base URL
    relay_api_url: str = ARCHER_DEFAULT_API_URL

    #: Intermediate token for swaps.
    #:
    #: ``None`` uses the wrapped native token of the chain.
    bridging_asset: HexAddress | str | None = None

    #: Minimum gas limit for harvest transactions
    gas_limit_floor: int = DEFAULT_GAS_LIMIT_FLOOR

    #: Transaction deadline is now + this
    deadline_window: datetime.timedelta = DEFAULT_DEADLINE_WINDOW

    #: Which tip tier we pay
    tip_speed: ArcherTipSpeed = ArcherTipSpeed.standard

    #: HTTP timeout for the relay
    api_timeout: datetime.timedelta = DEFAULT_API_TIMEOUT

    #: How many times we retry tip quote reads.
    #:
    #: Submissions are never retried.
    tip_retries: int = 0

    def __post_init__(self):
        assert type(self.chain_id) is int, f"Chain ID must be an integer: {type(self.chain_id)}"
        assert self.gas_limit_floor > 0, f"Bad gas limit floor: {self.gas_limit_floor}"
        assert self.deadline_window.total_seconds() > 0, f"Deadline window must be positive: {self.deadline_window}"
        assert self.tip_retries >= 0, f"Bad retry count: {self.tip_retries}"

    def get_bridging_asset(self) -> HexAddress:
        """Get the checksummed bridging asset address for our chain.

        :raise ConfigurationError:
            No bridging asset configured and we do not know WETH for this chain
        """
        asset = self.bridging_asset or WRAPPED_NATIVE_TOKEN.get(self.chain_id)
        if not asset:
            raise ConfigurationError(f"No bridging asset configured for chain {get_chain_name(self.chain_id)}, set BRIDGING_ASSET")
        if not Web3.is_address(asset):
            raise ConfigurationError(f"Bridging asset is not an address: {asset}")
        return Web3.to_checksum_address(asset)

    def get_relay_api_key(self) -> str:
        """Get the relay credential.

        :raise ConfigurationError:
            If not set
        """
        if not self.relay_api_key:
            raise ConfigurationError("Archer DAO API key missing, set ARCHER_DAO_API_KEY")
        return self.relay_api_key

    def get_deadline_seconds(self) -> int:
        return int(self.deadline_window.total_seconds())


def _read_int(environ: Mapping[str, str], name: str, minimum: int = 1) -> int | None:
    value = environ.get(name)
    if not value:
        return None
    try:
        result = int(value)
    except ValueError as e:
        raise ConfigurationError(f"Environment variable {name} is not an integer: {value}") from e
    if result < minimum:
        raise ConfigurationError(f"Environment variable {name} must be at least {minimum}, got {result}")
    return result


def read_harvest_config_from_env(
    environ: Mapping[str, str] | None = None,
    chain_id: int | None = None,
) -> HarvestConfig:
    """Read the harvest configuration from environment variables.

    Private keys are read for every network listed in :py:data:`eth_harvest.chain.CHAIN_NAMES`
    and for the active chain, so the same environment can serve several networks.

    :param environ:
        Defaults to ``os.environ``

    :param chain_id:
        Chain id if already known, e.g. asked from the node.
        Otherwise ``CHAIN_ID`` must be set.

    :raise ConfigurationError:
        If a variable is missing or malformed
    """

    if environ is None:
        environ = os.environ

    if chain_id is None:
        chain_id = _read_int(environ, "CHAIN_ID")
        if chain_id is None:
            raise ConfigurationError("Environment variable CHAIN_ID is not set and chain id was not given")

    private_keys = {}
    for candidate in set(CHAIN_NAMES) | {chain_id}:
        key = environ.get(get_private_key_env(candidate))
        if key:
            private_keys[candidate] = key.strip()

    kwargs = {}

    api_url = environ.get("ARCHER_API_URL")
    if api_url:
        kwargs["relay_api_url"] = api_url.rstrip("/")

    floor = _read_int(environ, "GAS_LIMIT_FLOOR")
    if floor is not None:
        kwargs["gas_limit_floor"] = floor

    deadline_seconds = _read_int(environ, "HARVEST_DEADLINE_SECONDS")
    if deadline_seconds is not None:
        kwargs["deadline_window"] = datetime.timedelta(seconds=deadline_seconds)

    api_timeout = _read_int(environ, "ARCHER_API_TIMEOUT")
    if api_timeout is not None:
        kwargs["api_timeout"] = datetime.timedelta(seconds=api_timeout)

    tip_retries = _read_int(environ, "ARCHER_TIP_RETRIES", minimum=0)
    if tip_retries is not None:
        kwargs["tip_retries"] = tip_retries

    speed = environ.get("ARCHER_TIP_SPEED")
    if speed:
        kwargs["tip_speed"] = ArcherTipSpeed.parse(speed)

    try:
        return HarvestConfig(
            chain_id=chain_id,
            json_rpc_url=environ.get("JSON_RPC_URL"),
            relay_api_key=environ.get("ARCHER_DAO_API_KEY"),
            private_keys=private_keys,
            bridging_asset=environ.get("BRIDGING_ASSET") or None,
            **kwargs,
        )
    except AssertionError as e:
        raise ConfigurationError(f"Bad harvest configuration: {e}") from e
