from __future__ import annotations

import threading
from typing import Callable

from .ring_snapshot import RingSnapshot
from .results import MutationResult


class SnapshotGuard:
    """
    Single-writer, many-reader publication of ring snapshots.

    Readers call ``current()`` once per operation and never take a lock.
    Writers go through ``mutate()``, which serializes them against each
    other, builds the next snapshot off to the side and publishes it with a
    single reference swap before returning. A lookup that starts after
    ``mutate()`` returns always sees the new snapshot; one running
    concurrently sees either the old or the new snapshot in full.
    """

    __slots__ = (
        "_snapshot",
        "_write_lock",
    )

    def __init__(self, snapshot: RingSnapshot | None = None) -> None:
        self._snapshot = snapshot or RingSnapshot.empty()
        self._write_lock = threading.Lock()

    def current(self) -> RingSnapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    def mutate(
        self,
        mutation: Callable[[RingSnapshot], MutationResult],
    ) -> MutationResult:
        with self._write_lock:
            result = mutation(self._snapshot)

            if result.success:
                self._snapshot = result.snapshot

            return result
