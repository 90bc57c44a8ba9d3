"""
nftmarket.rpc.mount
-------------------

Helpers to mount the marketplace RPC surface into an existing FastAPI app
and/or to register the JSON-RPC methods with your dispatcher.

Typical usage (REST):
    from fastapi import FastAPI
    from nftmarket.rpc.mount import mount_market
    app = FastAPI()
    mount_market(app, market, prefix="/market")

Typical usage (JSON-RPC):
    from nftmarket.rpc.mount import register_jsonrpc
    register_jsonrpc(dispatcher, market)

Standalone devnet app (uvicorn):
    uvicorn --factory nftmarket.rpc.mount:create_devnet_app
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

from fastapi import FastAPI

from .. import metrics
from ..market.marketplace import Marketplace
from ..version import __version__
from . import RPC_PREFIX
from .methods import build_rest_router, make_methods


class _JsonRpcDispatcherLike(Protocol):
    """Minimal protocol to support common JSON-RPC dispatchers."""
    def add(self, method: str, func: Any) -> None: ...
    def register(self, method: str, func: Any) -> None: ...


def mount_market(app: FastAPI, market: Marketplace, *, prefix: str = RPC_PREFIX) -> None:
    """Mount the marketplace REST endpoints under `prefix` on a FastAPI app."""
    app.include_router(build_rest_router(market), prefix=prefix, tags=["market"])


def register_jsonrpc(dispatcher: _JsonRpcDispatcherLike, market: Marketplace) -> None:
    """
    Register JSON-RPC methods on a dispatcher.

    We try `.add(name, fn)` first and fall back to `.register(name, fn)`.
    """
    for name, fn in make_methods(market).items():
        add = getattr(dispatcher, "add", None)
        if callable(add):
            add(name, fn)
        else:
            dispatcher.register(name, fn)


def create_app(market: Marketplace, *, prefix: str = RPC_PREFIX, with_metrics: bool = True) -> FastAPI:
    """FastAPI app exposing `market` under `prefix` and Prometheus metrics at /metrics."""
    app = FastAPI(title="nftmarket", version=__version__)
    app.state.market = market
    mount_market(app, market, prefix=prefix)
    if with_metrics:
        metrics.mount_fastapi(app)

    @app.get("/healthz")
    def healthz():
        return {"ok": True, "paused": market.paused, "version": __version__}

    return app


def create_devnet_app(prefix: Optional[str] = None) -> FastAPI:
    """App over a fresh in-memory devnet; configuration comes from `nftmarket.config.load()`."""
    from ..chain.clock import SystemClock
    from ..config import load
    from ..devnet import build_devnet

    dev = build_devnet(config=load(), clock=SystemClock())
    app = create_app(dev.market, prefix=prefix or RPC_PREFIX)
    app.state.devnet = dev
    return app


__all__ = ["mount_market", "register_jsonrpc", "create_app", "create_devnet_app"]
