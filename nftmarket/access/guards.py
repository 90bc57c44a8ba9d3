"""
Cross-cutting guards for the engine's public surface.

Authorization, deny-list, pause and atomicity are applied uniformly as
decorators so the listing/settlement/delivery state machines stay free of
them. The decorated object must expose:

- ``gate``        : AccessGate
- ``pause_gate``  : PauseGate
- ``journal``     : Journal
- ``events``      : EventLog (committed events feed the metrics)
- ``_lock``       : a re-entrant lock serializing public calls
- ``call_clock``  : CallClock pinned to one timestamp per call

The first positional argument after ``self`` (or the ``caller`` keyword) is
the acting address.

Usage:
    class Marketplace:
        @atomic("cancel_listing")
        @when_not_paused
        @not_denied
        def cancel_listing(self, caller, collection, token_id): ...
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Mapping, Sequence, TypeVar

from .. import metrics
from ..errors import AuthorizationError, MarketError, Reason
from .gate import Role, role_reason

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _caller(args: Sequence[Any], kwargs: Mapping[str, Any]) -> str:
    if "caller" in kwargs:
        return str(kwargs["caller"])
    if not args:
        raise TypeError("guarded operation requires a caller")
    return str(args[0])


def only_role(role: Role) -> Callable[[F], F]:
    """Reject callers that do not hold `role` with the role-specific reason."""

    def deco(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            caller = _caller(args, kwargs)
            if not self.gate.has_role(role, caller):
                raise AuthorizationError(role_reason(role), details={"caller": caller})
            return fn(self, *args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return deco


def not_denied(fn: F) -> F:
    """Reject deny-listed callers."""

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        caller = _caller(args, kwargs)
        if self.gate.is_denied(caller):
            raise AuthorizationError(Reason.DENIED, details={"account": caller})
        return fn(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def when_not_paused(fn: F) -> F:
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        self.pause_gate.require_not_paused()
        return fn(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def atomic(action: str) -> Callable[[F], F]:
    """
    Run the operation under the facade lock inside one journal transaction.
    Any exception restores every journaled ledger; rejections are counted by
    reason.
    """

    def deco(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            with self._lock, self.call_clock.pinned(), metrics.time_call(action):
                mark = len(self.events)
                try:
                    with self.journal.transaction():
                        result = fn(self, *args, **kwargs)
                except MarketError as e:
                    metrics.REJECTIONS.labels(action=action, reason=e.reason.value).inc()
                    log.debug("%s rejected: %s", action, e)
                    raise
                metrics.record_events(self.events.since(mark))
                return result

        return wrapper  # type: ignore[return-value]

    return deco


__all__ = ["only_role", "not_denied", "when_not_paused", "atomic"]
