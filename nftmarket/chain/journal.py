"""
Call journal: checkpoint/revert across every ledger a call may touch.

Participants expose `snapshot()` (an opaque, independent copy of their state)
and `restore(state)`. A transaction snapshots every participant at entry and
restores all of them if the body raises, so a rejected call leaves listings,
balances, ownership, configuration and the event log exactly as they were.

A checkpoint is taken on every public call, so snapshots stay proportional to
live state: append-only records (event logs, token logs, listing history,
treasury remittances) are journaled by their length and truncated on revert.

Typical flow
------------
    journal = Journal([store, token, collection, events])
    with journal.transaction():
        ...  # any exception rolls every participant back
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Protocol, Sequence, Tuple, runtime_checkable

log = logging.getLogger(__name__)


@runtime_checkable
class Journaled(Protocol):
    def snapshot(self) -> Any: ...
    def restore(self, state: Any) -> None: ...


Checkpoint = Sequence[Tuple[Journaled, Any]]


class Journal:
    def __init__(self, participants: Iterable[Journaled] = ()) -> None:
        self._participants: List[Journaled] = []
        self._depth = 0
        for p in participants:
            self.register(p)

    def register(self, participant: Journaled) -> None:
        if not isinstance(participant, Journaled):
            raise TypeError(f"{participant!r} does not implement snapshot()/restore()")
        if any(p is participant for p in self._participants):
            return
        self._participants.append(participant)

    @property
    def participants(self) -> Tuple[Journaled, ...]:
        return tuple(self._participants)

    def checkpoint(self) -> Checkpoint:
        return [(p, p.snapshot()) for p in self._participants]

    def revert(self, checkpoint: Checkpoint) -> None:
        for participant, state in checkpoint:
            participant.restore(state)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        # Nested transactions join the outermost one.
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        cp = self.checkpoint()
        self._depth = 1
        try:
            yield
        except BaseException as exc:
            self.revert(cp)
            log.debug("journal reverted %d participant(s): %s", len(cp), exc)
            raise
        finally:
            self._depth = 0


__all__ = ["Journal", "Journaled", "Checkpoint"]
