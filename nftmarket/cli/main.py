"""
nftmarket.cli.main
------------------

Operator / devnet tooling for the marketplace engine.

Examples
--------
# Show the resolved configuration (defaults < $NFTMARKET_CONFIG_FILE < env)
nftmarket config

# Fee split for a sale of 50,000,000 units at the configured rate, or at 2.5%
nftmarket quote 50000000
nftmarket quote 50000000 --fee-bps 250

# Scripted flows on a fresh in-memory devnet
nftmarket demo fixed
nftmarket demo auction --json
nftmarket demo phygital --cancel

# Serve the REST surface over a devnet (requires uvicorn)
nftmarket serve --port 8080
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict, Optional

import typer

from .. import config as market_config
from ..devnet import UNIT, Devnet, build_devnet
from ..economics.split import split_fee
from ..errors import MarketError
from ..version import __version__

log = logging.getLogger(__name__)

app = typer.Typer(
    name="nftmarket",
    add_completion=False,
    no_args_is_help=True,
    help="NFT marketplace engine: configuration, fee quotes and devnet demos.",
)

DAY = 24 * 60 * 60
PRICE = 50_000_000 * UNIT
GAP = 1_000_000 * UNIT


class Flow(str, Enum):
    fixed = "fixed"
    auction = "auction"
    phygital = "phygital"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", "-l", help="Python logging level."),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Print the version and exit."
    ),
) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _emit(data: Dict[str, Any], as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(data, indent=2, sort_keys=True, default=str))
        return
    for k, v in data.items():
        if isinstance(v, dict):
            typer.echo(f"{k}:")
            for kk, vv in v.items():
                typer.echo(f"  - {kk}: {vv}")
        elif isinstance(v, list):
            typer.echo(f"{k}: {', '.join(str(x) for x in v)}")
        else:
            typer.echo(f"{k}: {v}")


@app.command("config")
def show_config() -> None:
    """Print the resolved configuration as JSON."""
    try:
        cfg = market_config.load()
    except (ValueError, FileNotFoundError) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(2)
    typer.echo(market_config.pretty(cfg))


@app.command("quote")
def quote(
    gross: int = typer.Argument(..., min=0, help="Gross sale amount in base units."),
    fee_bps: Optional[int] = typer.Option(None, "--fee-bps", min=0, help="Fee in basis points (default: configured)."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show how a sale splits between the treasury and the seller."""
    try:
        bps = fee_bps if fee_bps is not None else market_config.load().fees.service_fee_bps
        split = split_fee(gross, bps)
    except (MarketError, ValueError, FileNotFoundError) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(2)
    _emit(split.to_dict(), as_json)


# -------------------- demo flows --------------------


def _demo_fixed(dev: Devnet) -> None:
    seller, buyer = dev.account("seller"), dev.account("buyer")
    dev.fund("buyer", PRICE)
    tid = dev.mint_nft("seller")
    t0 = dev.clock.now()
    dev.market.create_listing(seller, dev.collection.address, tid, True, False, t0 + 60, t0 + 60 + DAY,
                              dev.token.address, PRICE)
    dev.clock.set(t0 + 60)
    dev.market.buy_fixed_price(buyer, dev.collection.address, tid)


def _demo_auction(dev: Devnet) -> None:
    seller = dev.account("seller")
    a, b = dev.fund("bidder_a", PRICE * 2), dev.fund("bidder_b", PRICE * 2)
    tid = dev.mint_nft("seller")
    t0 = dev.clock.now()
    dev.market.create_listing(seller, dev.collection.address, tid, False, False, t0 + 60, t0 + 60 + DAY,
                              dev.token.address, PRICE, GAP)
    dev.clock.set(t0 + 60)
    dev.market.bid(a, dev.collection.address, tid, PRICE + GAP)
    dev.market.bid(b, dev.collection.address, tid, PRICE + 2 * GAP)
    dev.clock.set(t0 + 60 + DAY)
    dev.market.process_payment(b, dev.collection.address, tid)


def _demo_phygital(dev: Devnet, cancel: bool) -> None:
    seller, buyer = dev.account("seller"), dev.account("buyer")
    dev.fund("buyer", PRICE)
    tid = dev.mint_nft("seller")
    t0 = dev.clock.now()
    dev.market.create_listing(seller, dev.collection.address, tid, True, True, t0 + 60, t0 + 60 + DAY,
                              dev.token.address, PRICE)
    dev.clock.set(t0 + 60)
    dev.market.buy_fixed_price(buyer, dev.collection.address, tid)
    dev.clock.advance(DAY)
    if cancel:
        dev.market.cancel(buyer, dev.collection.address, tid)
    else:
        dev.market.confirm_received(buyer, dev.collection.address, tid)


@app.command("demo")
def demo(
    flow: Flow = typer.Argument(..., help="Which flow to run."),
    cancel: bool = typer.Option(False, "--cancel", help="Phygital only: cancel the delivery instead of confirming."),
    fee_bps: Optional[int] = typer.Option(None, "--fee-bps", min=0, help="Override the service fee."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Run a scripted trading flow on a fresh in-memory devnet and report the outcome."""
    cfg = market_config.MarketConfig()
    if fee_bps is not None:
        cfg.fees.service_fee_bps = fee_bps
    try:
        cfg.validate()
        dev = build_devnet(config=cfg)
        if flow is Flow.fixed:
            _demo_fixed(dev)
        elif flow is Flow.auction:
            _demo_auction(dev)
        else:
            _demo_phygital(dev, cancel)
    except (MarketError, ValueError) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)

    owner = dev.collection.owner_of(0)
    names = {v: k for k, v in dev.accounts.items()}
    report = {
        "flow": flow.value,
        "fee_bps": dev.market.service_fee_percent,
        "nft_owner": names.get(owner, owner),
        "balances": dev.balances(n for n in dev.accounts if n != "owner"),
        "events": [e.name for e in dev.market.events.all()],
    }
    _emit(report, as_json)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8080, "--port"),
) -> None:
    """Serve the REST surface and /metrics over a devnet using the system clock."""
    import uvicorn

    uvicorn.run("nftmarket.rpc.mount:create_devnet_app", host=host, port=port, factory=True)


if __name__ == "__main__":
    app()
