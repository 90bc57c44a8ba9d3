"""
nftmarket.rpc.methods
---------------------

JSON-RPC style method implementations for the marketplace engine.

Exposed methods (bind via `make_methods`):
  • market.getConfig
  • market.quoteFee
  • market.getListing
  • market.listListings
  • market.getDeliveryOrder
  • market.getHistory
  • market.createListing
  • market.updateListing
  • market.cancelListing
  • market.buyFixedPrice
  • market.bid
  • market.processPayment
  • market.confirmReceived
  • market.cancelDelivery
  • market.setServiceFee
  • market.setDeliveryDuration
  • market.setPaymentToken
  • market.pause
  • market.unpause

Design:
  - Transport-agnostic: `make_methods` returns a dict of callables that a
    JSON-RPC dispatcher can register; `build_rest_router` exposes the same
    callables via FastAPI.
  - Mutating methods take an explicit `caller` address. Request signing and
    authentication belong to the transport in front of this module.
  - Engine errors propagate as `MarketError`; the REST adapter maps them to
    HTTP status codes by class.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, Field

from ..core.types import ListingStatus
from ..errors import AuthorizationError, MarketError, PausedError, Reason, StateError, ValidationError
from ..market.marketplace import Marketplace

# ---- Request models (REST bodies) -------------------------------------------


class CallerParams(BaseModel):
    caller: str = Field(..., description="Acting account address (0x-hex).")


class ListingTerms(CallerParams):
    isFixedPrice: bool
    isPhygital: bool = False
    startTime: int = Field(..., ge=0)
    endTime: int = Field(..., ge=0)
    paymentToken: str
    amount: int = Field(..., ge=0)
    gap: int = Field(0, ge=0)


class CreateListingParams(ListingTerms):
    collection: str
    tokenId: int = Field(..., ge=0)


class BidParams(CallerParams):
    amount: int = Field(..., ge=0)


class FeeParams(CallerParams):
    feeBps: int = Field(..., ge=0)


class DurationParams(CallerParams):
    seconds: int = Field(..., ge=0)


class PaymentTokenParams(CallerParams):
    token: str
    accepted: bool = True


# ---- Helpers ---------------------------------------------------------------


def _coerce_int(value: Any, name: str) -> int:
    try:
        iv = int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(Reason.INVALID_PARAMS, f"invalid {name}: must be a non-negative integer") from e
    if iv < 0:
        raise ValidationError(Reason.INVALID_PARAMS, f"invalid {name}: must be a non-negative integer")
    return iv


def _coerce_status(value: Optional[str]) -> Optional[ListingStatus]:
    if value is None:
        return None
    try:
        return ListingStatus(value)
    except ValueError as e:
        allowed = ", ".join(s.value for s in ListingStatus)
        raise ValidationError(Reason.INVALID_PARAMS, f"invalid status '{value}', allowed: {allowed}") from e


def _outcome(result: Any) -> Dict[str, Any]:
    """Sale outcome → JSON: either a settlement receipt or an open delivery order."""
    kind = "delivery" if hasattr(result, "next_update_deadline") else "settlement"
    return {"kind": kind, kind: result.to_dict()}


# ---- JSON-RPC method factory ----------------------------------------------


def make_methods(market: Marketplace) -> Dict[str, Callable[..., Any]]:
    """
    Build a mapping of JSON-RPC method name -> callable.
    Each callable returns plain JSON-serializable structures.
    """

    def get_config() -> Dict[str, Any]:
        return {
            "serviceFeeBps": market.service_fee_percent,
            "deliveryDuration": market.delivery_duration,
            "percentage": market.settings.snapshot_values().percentage,
            "paymentTokens": market.payment_tokens(),
            "paused": market.paused,
            "marketplace": market.address,
            "treasury": market.treasury.address,
        }

    def quote_fee(*, gross: Any, feeBps: Optional[Any] = None) -> Dict[str, Any]:
        bps = None if feeBps is None else _coerce_int(feeBps, "feeBps")
        return market.quote(_coerce_int(gross, "gross"), bps).to_dict()

    def get_listing(*, collection: str, tokenId: Any) -> Optional[Dict[str, Any]]:
        listing = market.get_listing(collection, _coerce_int(tokenId, "tokenId"))
        return listing.to_dict() if listing else None

    def list_listings(
        *,
        seller: Optional[str] = None,
        isFixedPrice: Optional[bool] = None,
        isPhygital: Optional[bool] = None,
        status: Optional[str] = None,
        offset: Optional[int] = 0,
        limit: Optional[int] = 100,
    ) -> Dict[str, Any]:
        off = _coerce_int(offset, "offset")
        lim = _coerce_int(limit, "limit")
        found = market.listings(
            seller=seller, is_fixed_price=isFixedPrice, is_phygital=isPhygital, status=_coerce_status(status)
        )
        items = [l.to_dict() for l in found[off:off + lim]]
        return {"items": items, "nextOffset": off + len(items), "total": len(found)}

    def get_delivery_order(*, collection: str, tokenId: Any) -> Optional[Dict[str, Any]]:
        order = market.get_delivery_order(collection, _coerce_int(tokenId, "tokenId"))
        return order.to_dict() if order else None

    def get_history(*, collection: str, tokenId: Any) -> Dict[str, Any]:
        records = market.listing_history(collection, _coerce_int(tokenId, "tokenId"))
        return {"items": [r.to_dict() for r in records]}

    def create_listing(
        *,
        caller: str,
        collection: str,
        tokenId: Any,
        isFixedPrice: bool,
        isPhygital: bool,
        startTime: Any,
        endTime: Any,
        paymentToken: str,
        amount: Any,
        gap: Any = 0,
    ) -> Dict[str, Any]:
        listing = market.create_listing(
            caller, collection, _coerce_int(tokenId, "tokenId"), bool(isFixedPrice), bool(isPhygital),
            _coerce_int(startTime, "startTime"), _coerce_int(endTime, "endTime"), paymentToken,
            _coerce_int(amount, "amount"), _coerce_int(gap, "gap"),
        )
        return listing.to_dict()

    def update_listing(
        *,
        caller: str,
        collection: str,
        tokenId: Any,
        isFixedPrice: bool,
        isPhygital: bool,
        startTime: Any,
        endTime: Any,
        paymentToken: str,
        amount: Any,
        gap: Any = 0,
    ) -> Dict[str, Any]:
        listing = market.update_listing(
            caller, collection, _coerce_int(tokenId, "tokenId"), bool(isFixedPrice), bool(isPhygital),
            _coerce_int(startTime, "startTime"), _coerce_int(endTime, "endTime"), paymentToken,
            _coerce_int(amount, "amount"), _coerce_int(gap, "gap"),
        )
        return listing.to_dict()

    def cancel_listing(*, caller: str, collection: str, tokenId: Any) -> Dict[str, Any]:
        return market.cancel_listing(caller, collection, _coerce_int(tokenId, "tokenId")).to_dict()

    def buy_fixed_price(*, caller: str, collection: str, tokenId: Any) -> Dict[str, Any]:
        return _outcome(market.buy_fixed_price(caller, collection, _coerce_int(tokenId, "tokenId")))

    def bid(*, caller: str, collection: str, tokenId: Any, amount: Any) -> Dict[str, Any]:
        listing = market.bid(caller, collection, _coerce_int(tokenId, "tokenId"), _coerce_int(amount, "amount"))
        return listing.to_dict()

    def process_payment(*, caller: str, collection: str, tokenId: Any) -> Dict[str, Any]:
        return _outcome(market.process_payment(caller, collection, _coerce_int(tokenId, "tokenId")))

    def confirm_received(*, caller: str, collection: str, tokenId: Any) -> Dict[str, Any]:
        return market.confirm_received(caller, collection, _coerce_int(tokenId, "tokenId")).to_dict()

    def cancel_delivery(*, caller: str, collection: str, tokenId: Any) -> Dict[str, Any]:
        return market.cancel(caller, collection, _coerce_int(tokenId, "tokenId")).to_dict()

    def set_service_fee(*, caller: str, feeBps: Any) -> Dict[str, Any]:
        prev = market.update_service_fee_percent(caller, _coerce_int(feeBps, "feeBps"))
        return {"previous": prev, "current": market.service_fee_percent}

    def set_delivery_duration(*, caller: str, seconds: Any) -> Dict[str, Any]:
        prev = market.update_delivery_duration(caller, _coerce_int(seconds, "seconds"))
        return {"previous": prev, "current": market.delivery_duration}

    def set_payment_token(*, caller: str, token: str, accepted: bool = True) -> Dict[str, Any]:
        changed = market.update_payment_token(caller, token, bool(accepted))
        return {"token": token.lower(), "accepted": market.is_payment_token(token), "changed": changed}

    def pause(*, caller: str) -> Dict[str, Any]:
        market.pause(caller)
        return {"paused": market.paused}

    def unpause(*, caller: str) -> Dict[str, Any]:
        market.unpause(caller)
        return {"paused": market.paused}

    # Map JSON-RPC names → callables
    return {
        "market.getConfig": get_config,
        "market.quoteFee": quote_fee,
        "market.getListing": get_listing,
        "market.listListings": list_listings,
        "market.getDeliveryOrder": get_delivery_order,
        "market.getHistory": get_history,
        "market.createListing": create_listing,
        "market.updateListing": update_listing,
        "market.cancelListing": cancel_listing,
        "market.buyFixedPrice": buy_fixed_price,
        "market.bid": bid,
        "market.processPayment": process_payment,
        "market.confirmReceived": confirm_received,
        "market.cancelDelivery": cancel_delivery,
        "market.setServiceFee": set_service_fee,
        "market.setDeliveryDuration": set_delivery_duration,
        "market.setPaymentToken": set_payment_token,
        "market.pause": pause,
        "market.unpause": unpause,
    }


# ---- REST adapter (FastAPI) ------------------------------------------------


def http_status_for(err: MarketError) -> int:
    if isinstance(err, PausedError):
        return 503
    if isinstance(err, AuthorizationError):
        return 403
    if isinstance(err, StateError):
        return 409
    return 400


def build_rest_router(market: Marketplace):
    """
    Return a FastAPI APIRouter exposing the marketplace.
    Mount path suggestion: "/market" (see `nftmarket.rpc.mount`).
    """
    from fastapi import APIRouter, HTTPException, Query

    router = APIRouter()
    methods = make_methods(market)

    def call(name: str, **kwargs: Any) -> Any:
        try:
            return methods[name](**kwargs)
        except MarketError as e:
            raise HTTPException(status_code=http_status_for(e), detail=e.to_dict()) from e

    @router.get("/config")
    def http_get_config():
        return call("market.getConfig")

    @router.get("/quote")
    def http_quote(gross: int = Query(..., ge=0), feeBps: Optional[int] = Query(None, ge=0)):
        return call("market.quoteFee", gross=gross, feeBps=feeBps)

    @router.get("/listings")
    def http_list_listings(
        seller: Optional[str] = None,
        isFixedPrice: Optional[bool] = None,
        isPhygital: Optional[bool] = None,
        status: Optional[str] = None,
        offset: int = Query(0, ge=0),
        limit: int = Query(100, ge=1, le=500),
    ):
        return call(
            "market.listListings",
            seller=seller, isFixedPrice=isFixedPrice, isPhygital=isPhygital, status=status,
            offset=offset, limit=limit,
        )

    @router.post("/listings")
    def http_create_listing(body: CreateListingParams):
        return call("market.createListing", **body.model_dump())

    @router.get("/listings/{collection}/{token_id}")
    def http_get_listing(collection: str, token_id: int):
        found = call("market.getListing", collection=collection, tokenId=token_id)
        if found is None:
            raise HTTPException(status_code=404, detail={"reason": Reason.UNLISTED.value})
        return found

    @router.put("/listings/{collection}/{token_id}")
    def http_update_listing(collection: str, token_id: int, body: ListingTerms):
        return call("market.updateListing", collection=collection, tokenId=token_id, **body.model_dump())

    @router.post("/listings/{collection}/{token_id}/cancel")
    def http_cancel_listing(collection: str, token_id: int, body: CallerParams):
        return call("market.cancelListing", collection=collection, tokenId=token_id, caller=body.caller)

    @router.post("/listings/{collection}/{token_id}/buy")
    def http_buy(collection: str, token_id: int, body: CallerParams):
        return call("market.buyFixedPrice", collection=collection, tokenId=token_id, caller=body.caller)

    @router.post("/listings/{collection}/{token_id}/bid")
    def http_bid(collection: str, token_id: int, body: BidParams):
        return call("market.bid", collection=collection, tokenId=token_id, caller=body.caller, amount=body.amount)

    @router.post("/listings/{collection}/{token_id}/process")
    def http_process_payment(collection: str, token_id: int, body: CallerParams):
        return call("market.processPayment", collection=collection, tokenId=token_id, caller=body.caller)

    @router.get("/listings/{collection}/{token_id}/history")
    def http_history(collection: str, token_id: int):
        return call("market.getHistory", collection=collection, tokenId=token_id)

    @router.get("/listings/{collection}/{token_id}/delivery")
    def http_get_delivery(collection: str, token_id: int):
        found = call("market.getDeliveryOrder", collection=collection, tokenId=token_id)
        if found is None:
            raise HTTPException(status_code=404, detail={"reason": Reason.UNSOLD.value})
        return found

    @router.post("/listings/{collection}/{token_id}/delivery/confirm")
    def http_confirm(collection: str, token_id: int, body: CallerParams):
        return call("market.confirmReceived", collection=collection, tokenId=token_id, caller=body.caller)

    @router.post("/listings/{collection}/{token_id}/delivery/cancel")
    def http_cancel_delivery(collection: str, token_id: int, body: CallerParams):
        return call("market.cancelDelivery", collection=collection, tokenId=token_id, caller=body.caller)

    @router.post("/admin/fee")
    def http_set_fee(body: FeeParams):
        return call("market.setServiceFee", caller=body.caller, feeBps=body.feeBps)

    @router.post("/admin/delivery-duration")
    def http_set_duration(body: DurationParams):
        return call("market.setDeliveryDuration", caller=body.caller, seconds=body.seconds)

    @router.post("/admin/payment-tokens")
    def http_set_payment_token(body: PaymentTokenParams):
        return call("market.setPaymentToken", caller=body.caller, token=body.token, accepted=body.accepted)

    @router.post("/admin/pause")
    def http_pause(body: CallerParams):
        return call("market.pause", caller=body.caller)

    @router.post("/admin/unpause")
    def http_unpause(body: CallerParams):
        return call("market.unpause", caller=body.caller)

    return router


__all__ = [
    "CallerParams",
    "ListingTerms",
    "CreateListingParams",
    "BidParams",
    "FeeParams",
    "DurationParams",
    "PaymentTokenParams",
    "make_methods",
    "http_status_for",
    "build_rest_router",
]
