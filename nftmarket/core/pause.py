"""
Process-wide emergency switch.

Every state-mutating engine call consults `require_not_paused()` first and
fails with ``PAUSED`` while the switch is on. Read-only lookups stay available.
"""

from __future__ import annotations

import logging

from ..errors import PausedError, Reason, StateError

log = logging.getLogger(__name__)


class PauseGate:
    def __init__(self, paused: bool = False) -> None:
        self._paused = bool(paused)

    @property
    def paused(self) -> bool:
        return self._paused

    def require_not_paused(self) -> None:
        if self._paused:
            raise PausedError()

    def pause(self) -> None:
        if self._paused:
            raise StateError(Reason.PAUSED, "already paused")
        self._paused = True
        log.warning("engine paused")

    def unpause(self) -> None:
        if not self._paused:
            raise StateError(Reason.NOT_PAUSED)
        self._paused = False
        log.warning("engine unpaused")

    def snapshot(self):
        return self._paused

    def restore(self, state) -> None:
        self._paused = state


__all__ = ["PauseGate"]
