from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Type

import pytest

from nftmarket.devnet import UNIT
from nftmarket.errors import MarketError, Reason

DAY = 24 * 60 * 60
PRICE = 50_000_000 * UNIT
GAP = 1_000_000 * UNIT


@contextmanager
def rejects(reason: Reason, kind: Type[MarketError] = MarketError) -> Iterator[None]:
    """Expect exactly `reason` from a MarketError (optionally of a given subclass)."""
    with pytest.raises(kind) as ei:
        yield
    assert ei.value.reason is reason, f"expected {reason.value}, got {ei.value}"
