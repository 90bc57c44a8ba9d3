"""CLI smoke tests via typer's CliRunner."""
from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from nftmarket.cli.main import app
from nftmarket.devnet import UNIT

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("NFTMARKET_CONFIG_FILE", "NFTMARKET_SERVICE_FEE_BPS", "NFTMARKET_PAYMENT_TOKENS"):
        monkeypatch.delenv(name, raising=False)


def test_config_prints_json():
    r = runner.invoke(app, ["config"])
    assert r.exit_code == 0, r.output
    assert json.loads(r.output)["fees"]["service_fee_bps"] == 125


def test_quote_uses_configured_fee(monkeypatch):
    monkeypatch.setenv("NFTMARKET_SERVICE_FEE_BPS", "200")
    r = runner.invoke(app, ["quote", "10000", "--json"])
    assert r.exit_code == 0, r.output
    assert json.loads(r.output) == {"gross": 10_000, "fee_bps": 200, "fee": 200, "proceeds": 9_800}


def test_quote_rejects_fee_above_hundred_percent():
    r = runner.invoke(app, ["quote", "100", "--fee-bps", "10001"])
    assert r.exit_code == 2


def test_demo_fixed():
    r = runner.invoke(app, ["demo", "fixed", "--json"])
    assert r.exit_code == 0, r.output
    out = json.loads(r.output)
    price = 50_000_000 * UNIT
    fee = price * 125 // 10_000
    assert out["nft_owner"] == "buyer"
    assert out["balances"]["seller"] == price - fee
    assert out["balances"]["treasury"] == fee
    assert out["events"][-1] == "Settled"


def test_demo_auction_refunds_losing_bidder():
    r = runner.invoke(app, ["demo", "auction", "--json"])
    assert r.exit_code == 0, r.output
    out = json.loads(r.output)
    assert out["nft_owner"] == "bidder_b"
    assert out["balances"]["bidder_a"] == 2 * 50_000_000 * UNIT
    assert "BidRefunded" in out["events"]
    assert out["balances"]["marketplace"] == 0


@pytest.mark.parametrize("extra,owner,last", [([], "buyer", "DeliveryConfirmed"), (["--cancel"], "seller", "DeliveryCancelled")])
def test_demo_phygital(extra, owner, last):
    r = runner.invoke(app, ["demo", "phygital", "--json", *extra])
    assert r.exit_code == 0, r.output
    out = json.loads(r.output)
    assert out["nft_owner"] == owner
    assert out["events"][-1] == last


def test_demo_with_invalid_fee_fails():
    r = runner.invoke(app, ["demo", "fixed", "--fee-bps", "20000"])
    assert r.exit_code == 1


def test_version_flag():
    r = runner.invoke(app, ["--version"])
    assert r.exit_code == 0
    assert r.output.strip()


def test_quote_reports_invalid_env_fee(monkeypatch):
    monkeypatch.setenv("NFTMARKET_SERVICE_FEE_BPS", "lots")
    r = runner.invoke(app, ["quote", "100"])
    assert r.exit_code == 2
    assert "error:" in r.output
    assert r.exception is None or isinstance(r.exception, SystemExit)
