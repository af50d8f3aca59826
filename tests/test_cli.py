"""Command line entry point."""

from decimal import Decimal
from unittest.mock import patch

import pytest

from eth_harvest.archer.api import ArcherTips, RelayResponse, SignedRelayTransaction
from eth_harvest.archer.constants import ArcherTipSpeed
from eth_harvest.cli import format_outcome, main, parse_args
from eth_harvest.exceptions import RelayUnavailable
from eth_harvest.harvest import HarvestOutcome

VAULT = "0x1111111111111111111111111111111111111111"


def test_parse_harvest_args():
    args = parse_args(["harvest", "--vault", VAULT, "--vault", "0x2", "--amount", "125.5", "--speed", "rapid", "--dry-run"])
    assert args.command == "harvest"
    assert args.vault == [VAULT, "0x2"]
    assert args.amount == Decimal("125.5")
    assert args.speed == "rapid"
    assert args.dry_run


def test_parse_harvest_defaults():
    args = parse_args(["harvest", "--vault", VAULT])
    assert args.amount is None
    assert args.speed is None
    assert not args.dry_run


def test_parse_bad_amount():
    with pytest.raises(SystemExit):
        parse_args(["harvest", "--vault", VAULT, "--amount", "lots"])


def test_format_skipped():
    outcome = HarvestOutcome(vault=VAULT, skipped=True, amount=0)
    assert format_outcome(outcome) == f"Vault {VAULT}: Nothing to harvest. Skipping."


def test_format_submitted():
    outcome = HarvestOutcome(vault=VAULT, skipped=False, amount=1, response=RelayResponse(status=200, body={"result": "ok"}))
    assert format_outcome(outcome) == f"Vault {VAULT}: Response from Archer DAO relay, status: 200, data: {{'result': 'ok'}}"


def test_format_dry_run():
    outcome = HarvestOutcome(
        vault=VAULT,
        skipped=False,
        amount=1,
        nonce=3,
        tx_hash=b"\x01" * 32,
        signed_tx=SignedRelayTransaction(raw_signed_tx=b"\x02\xf8", deadline=1),
    )
    line = format_outcome(outcome)
    assert "0x02f8" in line
    assert "signed 0x" + "01" * 32 + " with nonce 3" in line
    assert "not submitted" in line


def test_main_needs_json_rpc_url(monkeypatch):
    monkeypatch.delenv("JSON_RPC_URL", raising=False)
    with patch("eth_harvest.cli.setup_console_logging"):
        assert main(["harvest", "--vault", VAULT]) == 1


def test_main_tips(monkeypatch, capsys):
    monkeypatch.setenv("CHAIN_ID", "1")
    tips = ArcherTips(tips={speed: 10**15 for speed in ArcherTipSpeed})
    with patch("eth_harvest.cli.setup_console_logging"), patch("eth_harvest.cli.ArcherRelayClient.fetch_tips", return_value=tips):
        assert main(["tips"]) == 0
    out = capsys.readouterr().out
    assert "immediate" in out
    assert "1,000,000.00" in out
    assert "1000000000000000" in out
    assert "1e+06" not in out


def test_main_tips_relay_down(monkeypatch):
    monkeypatch.setenv("CHAIN_ID", "1")
    with patch("eth_harvest.cli.setup_console_logging"), patch("eth_harvest.cli.ArcherRelayClient.fetch_tips", side_effect=RelayUnavailable("503")):
        assert main(["tips"]) == 1
