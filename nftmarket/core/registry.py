"""Payment tokens accepted by the marketplace."""

from __future__ import annotations

import logging
from typing import Iterable, List, Set

from ..chain.address import normalize_address

log = logging.getLogger(__name__)


class AssetRegistry:
    def __init__(self, tokens: Iterable[str] = ()) -> None:
        self._accepted: Set[str] = {normalize_address(t, field="payment_token") for t in tokens}

    def is_payment_token(self, token: str) -> bool:
        return token.lower() in self._accepted

    def payment_tokens(self) -> List[str]:
        return sorted(self._accepted)

    def update_payment_token(self, token: str, accepted: bool) -> bool:
        """Add or remove `token`; returns True when membership changed."""
        token = normalize_address(token, field="payment_token")
        if accepted == (token in self._accepted):
            return False
        if accepted:
            self._accepted.add(token)
        else:
            self._accepted.discard(token)
        log.info("payment token %s accepted=%s", token, accepted)
        return True

    def snapshot(self):
        return frozenset(self._accepted)

    def restore(self, state) -> None:
        self._accepted = set(state)


__all__ = ["AssetRegistry"]
