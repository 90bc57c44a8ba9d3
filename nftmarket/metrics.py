"""
Prometheus metrics for the marketplace engine.

We expose counters and histograms covering:
- listings: created / updated / cancelled, by mechanism
- sales: purchases and won auctions, by mechanism and phygital flag
- bids: accepted bids and outbid refunds
- settlements: count, gross volume and fees by payment token
- deliveries: opened / confirmed / cancelled phygital orders
- rejections: failed calls by action and reason code
- latency: wall time spent inside each public call

Counters are driven from the committed event log (see `record_events`), so a
call that is rolled back never moves a metric other than REJECTIONS.

This module can be mounted into any FastAPI app via `mount_fastapi`.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterable, Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, Histogram, generate_latest

# Use a dedicated registry so embedding apps can choose to merge or expose it directly.
REGISTRY = CollectorRegistry()

# ────────────────────────────────────────────────────────────────────────────────
# Label conventions
#   mechanism: "fixed_price" | "auction"
#   phygital: "true" | "false"
#   source: "immediate" | "delivery"
#   outcome: "opened" | "confirmed" | "cancelled"
#   reason: a nftmarket.errors.Reason value
# ────────────────────────────────────────────────────────────────────────────────

LISTINGS = Counter(
    "nftmarket_listings_total",
    "Listing lifecycle actions by mechanism.",
    labelnames=("action", "mechanism"),
    registry=REGISTRY,
)

SALES = Counter(
    "nftmarket_sales_total",
    "Items sold (purchase or won auction) by mechanism and phygital flag.",
    labelnames=("mechanism", "phygital"),
    registry=REGISTRY,
)

BIDS = Counter(
    "nftmarket_bids_total",
    "Accepted auction bids.",
    registry=REGISTRY,
)

BID_REFUNDS = Counter(
    "nftmarket_bid_refunds_total",
    "Outbid refunds pushed back to previous bidders.",
    registry=REGISTRY,
)

SETTLEMENTS = Counter(
    "nftmarket_settlements_total",
    "Completed settlements by source.",
    labelnames=("source",),
    registry=REGISTRY,
)

SETTLED_VOLUME = Counter(
    "nftmarket_settled_volume_units_total",
    "Gross settled amount in payment-token base units.",
    labelnames=("token",),
    registry=REGISTRY,
)

FEES_COLLECTED = Counter(
    "nftmarket_fees_collected_units_total",
    "Service fees remitted to the treasury in payment-token base units.",
    labelnames=("token",),
    registry=REGISTRY,
)

DELIVERIES = Counter(
    "nftmarket_deliveries_total",
    "Phygital delivery orders by outcome.",
    labelnames=("outcome",),
    registry=REGISTRY,
)

REJECTIONS = Counter(
    "nftmarket_rejections_total",
    "Rejected calls by action and reason code.",
    labelnames=("action", "reason"),
    registry=REGISTRY,
)

PAUSED = Gauge(
    "nftmarket_paused",
    "1 while the engine is paused, 0 otherwise.",
    registry=REGISTRY,
)

_LATENCY_BUCKETS = (0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0)

CALL_SECONDS = Histogram(
    "nftmarket_call_seconds",
    "Wall time spent inside public engine calls, by action.",
    labelnames=("action",),
    buckets=_LATENCY_BUCKETS,
    registry=REGISTRY,
)

# ────────────────────────────────────────────────────────────────────────────────
# Recording helpers
# ────────────────────────────────────────────────────────────────────────────────


def _mechanism(is_fixed_price: Any) -> str:
    return "fixed_price" if is_fixed_price else "auction"


def record_event(name: str, args: dict) -> None:
    """Translate one committed engine event into metric updates."""
    if name == "ListingCreated":
        LISTINGS.labels(action="created", mechanism=_mechanism(args.get("is_fixed_price"))).inc()
    elif name == "ListingUpdated":
        LISTINGS.labels(action="updated", mechanism=_mechanism(args.get("is_fixed_price"))).inc()
    elif name == "ListingCancelled":
        LISTINGS.labels(action="cancelled", mechanism=_mechanism(args.get("is_fixed_price"))).inc()
    elif name == "ItemSold":
        SALES.labels(
            mechanism=_mechanism(args.get("is_fixed_price")),
            phygital="true" if args.get("is_phygital") else "false",
        ).inc()
    elif name == "BidPlaced":
        BIDS.inc()
    elif name == "BidRefunded":
        BID_REFUNDS.inc()
    elif name == "Settled":
        SETTLEMENTS.labels(source=args.get("source", "immediate")).inc()
        token = str(args.get("payment_token", ""))
        SETTLED_VOLUME.labels(token=token).inc(float(args.get("gross", 0)))
        FEES_COLLECTED.labels(token=token).inc(float(args.get("fee", 0)))
    elif name == "DeliveryOpened":
        DELIVERIES.labels(outcome="opened").inc()
    elif name == "DeliveryConfirmed":
        DELIVERIES.labels(outcome="confirmed").inc()
    elif name == "DeliveryCancelled":
        DELIVERIES.labels(outcome="cancelled").inc()
    elif name == "Paused":
        PAUSED.set(1)
    elif name == "Unpaused":
        PAUSED.set(0)


def record_events(events: Iterable[Any]) -> None:
    """Record a batch of committed `nftmarket.market.events.Event` records."""
    for ev in events:
        record_event(ev.name, ev.args)


@contextmanager
def time_call(action: str):
    """Context manager to observe the latency of a public call."""
    start = time.perf_counter()
    try:
        yield
    finally:
        CALL_SECONDS.labels(action=action).observe(time.perf_counter() - start)


# ────────────────────────────────────────────────────────────────────────────────
# FastAPI mounting helper
# ────────────────────────────────────────────────────────────────────────────────


def render_latest(registry: Optional[CollectorRegistry] = None) -> bytes:
    return generate_latest(registry or REGISTRY)


def mount_fastapi(app, path: str = "/metrics", registry: Optional[CollectorRegistry] = None) -> None:
    """
    Mount a GET {path} endpoint on a FastAPI app to serve metrics.

    Usage:
        from fastapi import FastAPI
        from nftmarket.metrics import mount_fastapi
        app = FastAPI()
        mount_fastapi(app)
    """
    from fastapi import Response

    reg = registry or REGISTRY

    @app.get(path)
    def _metrics() -> Response:
        return Response(render_latest(reg), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "LISTINGS",
    "SALES",
    "BIDS",
    "BID_REFUNDS",
    "SETTLEMENTS",
    "SETTLED_VOLUME",
    "FEES_COLLECTED",
    "DELIVERIES",
    "REJECTIONS",
    "PAUSED",
    "CALL_SECONDS",
    "record_event",
    "record_events",
    "time_call",
    "render_latest",
    "mount_fastapi",
]
