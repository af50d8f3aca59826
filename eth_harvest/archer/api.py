"""Archer DAO relay API client.

- Fetch miner tip quotes: ``GET /v1/gas``

- Submit signed transactions: ``POST /v1/transaction``

Submissions go to the private relay network instead of the public mempool.
They are fire and forget: we do not poll for inclusion and we never retry,
the caller decides whether to trigger a new harvest.
"""

import datetime
import logging
import time
from dataclasses import dataclass
from pprint import pformat
from typing import Any

import requests
from hexbytes import HexBytes
from requests.exceptions import RequestException, RetryError
from requests.sessions import HTTPAdapter
from web3 import Web3

from eth_harvest.archer.constants import (
    ARCHER_DEFAULT_API_URL,
    ARCHER_GAS_PATH,
    ARCHER_SUBMIT_METHOD,
    ARCHER_TRANSACTION_PATH,
    ArcherTipSpeed,
)
from eth_harvest.config import DEFAULT_API_TIMEOUT, HarvestConfig
from eth_harvest.exceptions import ConfigurationError, DeadlineExpired, RelayUnavailable
from eth_harvest.logging_retry import LoggingRetry

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ArcherTips:
    """Miner tip quote from the relay.

    Tips are market data and are only good for a moment, so
    we fetch a fresh quote for every transaction.
    """

    #: Tier -> tip in wei
    tips: dict[ArcherTipSpeed, int]

    def get_tip(self, speed: ArcherTipSpeed | str = ArcherTipSpeed.standard) -> int:
        """Tip in wei for a tier.

        Unknown tier names fall back to ``standard``.
        """
        return self.tips[ArcherTipSpeed.parse(speed)]

    def pformat(self) -> str:
        return pformat({speed.value: f"{wei / 10**9:.2f}G ({wei:,})" for speed, wei in self.tips.items()})


@dataclass(slots=True, frozen=True)
class SignedRelayTransaction:
    """Signed transaction payload with the deadline the relay must honour.

    Immutable once created and submitted to one relay at most.
    """

    #: Signed and RLP encoded transaction
    raw_signed_tx: bytes

    #: UNIX timestamp after which the relay drops the transaction
    deadline: int

    def __post_init__(self):
        assert isinstance(self.raw_signed_tx, bytes), f"Expected bytes, got {type(self.raw_signed_tx)}"
        assert len(self.raw_signed_tx) > 0, "Empty transaction payload"
        assert type(self.deadline) is int, f"Deadline must be an integer UNIX timestamp, got {type(self.deadline)}"

    def is_expired(self, now: float | None = None) -> bool:
        """Has the deadline passed, or is it right now."""
        if now is None:
            now = time.time()
        return self.deadline <= now

    def get_hex_payload(self) -> str:
        """0x prefixed hex as the relay wants it."""
        return Web3.to_hex(self.raw_signed_tx)


@dataclass(slots=True, frozen=True)
class RelayResponse:
    """What the relay said about our submission.

    Passed through as is.
    """

    #: HTTP status code
    status: int

    #: Decoded JSON reply, or text if the reply was not JSON
    body: Any

    def is_success(self) -> bool:
        return 200 <= self.status < 300


def parse_tips(data: dict) -> ArcherTips:
    """Parse ``GET /v1/gas`` reply.

    The reply looks like:

    .. code-block:: json

        {"data": {"immediate": "3000000000000000", "rapid": "2000000000000000", ... }}

    Tip values may come as integers or decimal strings.

    :raise RelayUnavailable:
        The reply does not contain all tiers
    """
    if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
        raise RelayUnavailable(f"Relay tip reply has no data:\n{pformat(data)}")

    quote = data["data"]
    tips = {}
    for speed in ArcherTipSpeed:
        value = quote.get(speed.value)
        if value is None:
            raise RelayUnavailable(f"Relay tip reply lacks tier {speed.value}:\n{pformat(data)}")
        try:
            tips[speed] = int(value)
        except (TypeError, ValueError) as e:
            raise RelayUnavailable(f"Relay tip for {speed.value} is not an integer: {value}") from e

    return ArcherTips(tips=tips)


class ArcherRelayClient:
    """Talk to the Archer DAO relay.

    Example:

    .. code-block:: python

        relay = ArcherRelayClient.from_config(config)
        tip = relay.get_tip("standard")
        response = relay.submit_transaction(signed_tx.raw_transaction, deadline)
        print(f"Relay replied {response.status}: {response.body}")
    """

    def __init__(
        self,
        api_key: str | None,
        api_url: str = ARCHER_DEFAULT_API_URL,
        api_timeout: datetime.timedelta = DEFAULT_API_TIMEOUT,
        tip_retries: int = 0,
        session: requests.Session | None = None,
    ):
        """
        :param api_key:
            Relay credential. Only needed for submissions, tip quotes are public.

        :param tip_retries:
            How many times we retry tip quote reads on throttling and server errors.

        :param session:
            Give your own HTTP session, e.g. for testing.
        """
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.api_timeout = api_timeout

        if session is None:
            session = requests.Session()
            if tip_retries > 0:
                retry_policy = LoggingRetry(
                    total=tip_retries,
                    backoff_factor=0.1,
                    status_forcelist=[429, 500, 502, 503, 504],
                    allowed_methods=["GET"],  # Never POST, a submission must not go out twice
                )
                session.mount("https://", HTTPAdapter(max_retries=retry_policy))
                session.mount("http://", HTTPAdapter(max_retries=retry_policy))

        self.session = session

    def __repr__(self):
        return f"<ArcherRelayClient {self.api_url}>"

    @staticmethod
    def from_config(config: HarvestConfig, session: requests.Session | None = None) -> "ArcherRelayClient":
        return ArcherRelayClient(
            api_key=config.relay_api_key,
            api_url=config.relay_api_url,
            api_timeout=config.api_timeout,
            tip_retries=config.tip_retries,
            session=session,
        )

    def fetch_tips(self) -> ArcherTips:
        """Get a fresh tip quote for all tiers.

        :raise RelayUnavailable:
            Relay down, erroring or replying garbage
        """
        url = f"{self.api_url}/{ARCHER_GAS_PATH}"
        headers = {
            "Content-Type": "application/json",
            "Referrer-Policy": "no-referrer",
        }

        try:
            resp = self.session.get(url, headers=headers, timeout=self.api_timeout.total_seconds())
            resp.raise_for_status()
            data = resp.json()
        except RetryError as e:
            raise RelayUnavailable(f"Ran out of retries fetching tips from {url}") from e
        except RequestException as e:
            raise RelayUnavailable(f"Could not get Archer tips from {url}: {e}") from e
        except ValueError as e:
            raise RelayUnavailable(f"Archer tip reply from {url} is not JSON") from e

        tips = parse_tips(data)
        logger.info("Archer tips:\n%s", tips.pformat())
        return tips

    def get_tip(self, speed: ArcherTipSpeed | str = ArcherTipSpeed.standard) -> int:
        """Get the current tip for a tier in wei.

        Each call fetches a new quote.
        """
        speed = ArcherTipSpeed.parse(speed)
        tip = self.fetch_tips().get_tip(speed)
        logger.info("Using %s tip %d wei", speed.value, tip)
        return tip

    def submit(self, envelope: SignedRelayTransaction, now: float | None = None) -> RelayResponse:
        """Send a signed transaction to the relay.

        :param now:
            Current UNIX time, for testing

        :raise DeadlineExpired:
            Deadline has already passed. Nothing is sent.

        :raise RelayUnavailable:
            No reply from the relay

        :return:
            Relay reply, whatever the HTTP status
        """
        if now is None:
            now = time.time()

        if envelope.is_expired(now):
            raise DeadlineExpired(f"Transaction deadline {envelope.deadline} is not in the future, now is {now:.0f}")

        if not self.api_key:
            raise ConfigurationError("Archer DAO API key missing, set ARCHER_DAO_API_KEY")

        url = f"{self.api_url}/{ARCHER_TRANSACTION_PATH}"

        # Request id is the submission time in milliseconds
        request_id = int(now * 1000)

        payload = {
            "jsonrpc": "2.0",
            "method": ARCHER_SUBMIT_METHOD,
            "tx": envelope.get_hex_payload(),
            "deadline": envelope.deadline,
            "id": request_id,
        }

        headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json",
        }

        logger.info("Submitting transaction to Archer relay %s, deadline %d, id %d", url, envelope.deadline, request_id)

        try:
            resp = self.session.post(url, json=payload, headers=headers, timeout=self.api_timeout.total_seconds())
        except RequestException as e:
            raise RelayUnavailable(f"Error sending transaction to Archer relay {url}: {e}") from e

        if resp is None:
            raise RelayUnavailable(f"No response from Archer relay {url}")

        try:
            body = resp.json()
        except ValueError:
            body = resp.text

        response = RelayResponse(status=resp.status_code, body=body)
        if response.is_success():
            logger.info("Response from Archer DAO relay, status: %d, data: %s", response.status, body)
        else:
            logger.error("Archer DAO relay refused our transaction, status: %d, data: %s", response.status, body)
        return response

    def submit_transaction(self, signed_tx: bytes | HexBytes, deadline: int, now: float | None = None) -> RelayResponse:
        """Wrap signed bytes with a deadline and submit.

        See :py:meth:`submit`.
        """
        return self.submit(SignedRelayTransaction(raw_signed_tx=bytes(signed_tx), deadline=deadline), now=now)
