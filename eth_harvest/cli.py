"""eth-harvest command line tool.

Harvest a vault through the Archer DAO relay:

.. code-block:: shell

    export JSON_RPC_URL=...
    export MAINNET_PRIVKEY=0x...
    export ARCHER_DAO_API_KEY=...
    eth-harvest harvest --vault 0x...

Harvest a fixed amount, expressed in vault decimals, and only sign:

.. code-block:: shell

    eth-harvest harvest --vault 0x... --amount 125.5 --dry-run

Show current relay tips:

.. code-block:: shell

    eth-harvest tips

"""

import argparse
import logging
import os
import sys
from decimal import Decimal, InvalidOperation
from typing import Sequence

from requests.exceptions import RequestException
from tabulate import tabulate
from web3 import HTTPProvider, Web3
from web3.exceptions import Web3Exception

from eth_harvest.archer.api import ArcherRelayClient
from eth_harvest.archer.constants import ArcherTipSpeed
from eth_harvest.chain import get_chain_name
from eth_harvest.config import read_harvest_config_from_env
from eth_harvest.exceptions import ConfigurationError, HarvestError
from eth_harvest.harvest import HarvestOutcome, harvest_vaults
from eth_harvest.utils import get_url_domain, setup_console_logging

logger = logging.getLogger(__name__)


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"Not a decimal amount: {value}")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="eth-harvest", description="Harvest vault yield through the Archer DAO relay.")
    parser.add_argument("--simplified-logging", action="store_true", help="Use simplified output without timestamps")
    subparsers = parser.add_subparsers(dest="command", required=True)

    harvest = subparsers.add_parser("harvest", help="Harvest a vault")
    harvest.add_argument("--vault", type=str, required=True, action="append", help="Vault address. Give several times to harvest many vaults in a row.")
    harvest.add_argument("--amount", type=_decimal, required=False, help="Amount to harvest in vault decimals, e.g. 125.5. Default is all accrued yield.")
    harvest.add_argument("--speed", type=str, required=False, choices=[s.value for s in ArcherTipSpeed], help="Relay tip tier")
    harvest.add_argument("--dry-run", action="store_true", help="Build and sign the transaction, but do not submit it")

    subparsers.add_parser("tips", help="Show current relay tips")

    return parser.parse_args(argv)


def format_outcome(outcome: HarvestOutcome) -> str:
    """Human readable line about a harvest."""
    if outcome.skipped:
        return f"Vault {outcome.vault}: Nothing to harvest. Skipping."

    if outcome.response is None:
        return f"Vault {outcome.vault}: signed {Web3.to_hex(outcome.tx_hash)} with nonce {outcome.nonce}, payload {outcome.signed_tx.get_hex_payload()}, not submitted"

    return f"Vault {outcome.vault}: Response from Archer DAO relay, status: {outcome.response.status}, data: {outcome.response.body}"


def show_tips(relay: ArcherRelayClient):
    tips = relay.fetch_tips()
    table = [[speed.value, wei, f"{Web3.from_wei(wei, 'gwei'):,.2f}"] for speed, wei in tips.tips.items()]
    print(tabulate(table, headers=["Speed", "Tip (wei)", "Tip (gwei)"], disable_numparse=True))


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line tool.

    :return:
        Process exit code
    """
    args = parse_args(argv)
    setup_console_logging(simplified_logging=args.simplified_logging)

    json_rpc_url = os.environ.get("JSON_RPC_URL")

    try:
        if args.command == "tips":
            chain_id = int(os.environ.get("CHAIN_ID", "1"))
            config = read_harvest_config_from_env(chain_id=chain_id)
            show_tips(ArcherRelayClient.from_config(config))
            return 0

        if not json_rpc_url:
            raise ConfigurationError("Environment variable JSON_RPC_URL is not set")

        web3 = Web3(HTTPProvider(json_rpc_url))

        chain_id = os.environ.get("CHAIN_ID")
        if chain_id:
            config = read_harvest_config_from_env()
        else:
            config = read_harvest_config_from_env(chain_id=web3.eth.chain_id)

        logger.info("Connected to %s, chain %s", get_url_domain(json_rpc_url), get_chain_name(config.chain_id))

        results = harvest_vaults(
            web3,
            config,
            args.vault,
            amount=args.amount,
            speed=args.speed,
            dry_run=args.dry_run,
        )
    except (HarvestError, ValueError, RequestException, Web3Exception) as e:
        logger.error("%s", e)
        return 1

    failed = 0
    for vault, result in results:
        if isinstance(result, HarvestOutcome):
            print(format_outcome(result))
            if result.response is not None and not result.response.is_success():
                failed += 1
        else:
            print(f"Vault {vault}: failed: {result}")
            failed += 1

    return 1 if failed else 0


def run():
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
