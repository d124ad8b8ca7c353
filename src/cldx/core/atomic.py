"""
All-or-nothing execution for contract entry points.

Every participant exposes ``snapshot()`` and ``restore(snapshot)``. The
``atomic`` block captures each participant before the operation runs and
restores all of them if any exception escapes, so a rejected call leaves
no partial state behind.

Participants that carry a ``lock`` are locked, in the order given, for the
whole block. Writers that go straight to a shared token therefore cannot
commit between the snapshot and a rollback. Callers list participants in
one global order: the wallet, then CLDX, then other tokens, then native
currency.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack, contextmanager
from typing import Any, Dict, Iterator, Protocol

logger = logging.getLogger(__name__)


class Snapshotable(Protocol):
    def snapshot(self) -> Dict[str, Any]: ...

    def restore(self, snapshot: Dict[str, Any]) -> None: ...


@contextmanager
def atomic(operation: str, *participants: Snapshotable) -> Iterator[None]:
    # The same token can be reached through several adapters
    unique = list({id(p): p for p in participants}.values())
    with ExitStack() as held:
        for participant in unique:
            lock = getattr(participant, "lock", None)
            if lock is not None:
                held.enter_context(lock)

        snapshots = [(p, p.snapshot()) for p in unique]
        try:
            yield
        except BaseException as exc:
            for participant, state in reversed(snapshots):
                participant.restore(state)
            logger.info(
                "Operation %s reverted: %s",
                operation,
                exc,
                extra={"event": "atomic.reverted", "operation": operation, "error": type(exc).__name__},
            )
            raise
