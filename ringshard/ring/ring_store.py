"""
Immutable sorted ring of (position, node_id) entries.

A RingStore is never modified in place. Mutations build a new store from
the old one, which lets a published store be read from any number of
threads without locking.

Lookup rule: a position belongs to the first stored position at or after
it walking clockwise, wrapping from the end of the ring back to the
smallest stored position.
"""

from __future__ import annotations

import bisect
from collections import defaultdict
from typing import Iterable, Iterator

from ringshard.errors import EmptyRingError, RingInvariantError
from ringshard.hashing import RING_SIZE


class RingStore:
    __slots__ = (
        "_positions",
        "_owners",
    )

    def __init__(
        self,
        positions: tuple[int, ...] = (),
        owners: tuple[str, ...] = (),
    ) -> None:
        if len(positions) != len(owners):
            raise RingInvariantError(
                f"Ring has {len(positions)} positions but {len(owners)} owners"
            )

        self._positions = positions
        self._owners = owners

    @classmethod
    def from_entries(cls, entries: Iterable[tuple[int, str]]) -> RingStore:
        ordered = sorted(entries, key=lambda entry: entry[0])
        store = cls(
            positions=tuple(position for position, _ in ordered),
            owners=tuple(node_id for _, node_id in ordered),
        )
        store.verify()

        return store

    @property
    def positions(self) -> tuple[int, ...]:
        return self._positions

    @property
    def owners(self) -> tuple[str, ...]:
        return self._owners

    def __len__(self) -> int:
        return len(self._positions)

    def __bool__(self) -> bool:
        return len(self._positions) > 0

    def __iter__(self) -> Iterator[tuple[int, str]]:
        return iter(zip(self._positions, self._owners))

    def __repr__(self) -> str:
        return f"RingStore(entries={len(self._positions)})"

    def contains_position(self, position: int) -> bool:
        idx = bisect.bisect_left(self._positions, position)
        return idx < len(self._positions) and self._positions[idx] == position

    def owner_at(self, position: int) -> str | None:
        idx = bisect.bisect_left(self._positions, position)
        if idx < len(self._positions) and self._positions[idx] == position:
            return self._owners[idx]

        return None

    def successor_index(self, position: int) -> int:
        if not self._positions:
            raise EmptyRingError()

        # Binary search for first position >= position
        idx = bisect.bisect_left(self._positions, position)

        # Wrap around if past the end
        if idx >= len(self._positions):
            idx = 0

        return idx

    def successor(self, position: int) -> str:
        return self._owners[self.successor_index(position)]

    def walk(self, position: int) -> Iterator[str]:
        """Yield owners clockwise from the successor of ``position``, once per entry."""
        if not self._positions:
            return

        start = self.successor_index(position)
        ring_size = len(self._positions)

        for offset in range(ring_size):
            yield self._owners[(start + offset) % ring_size]

    def with_entries(self, entries: Iterable[tuple[int, str]]) -> RingStore:
        added = list(entries)

        for position, node_id in added:
            if self.contains_position(position):
                raise RingInvariantError(
                    f"Position {position} for node {node_id} is already owned by {self.owner_at(position)}"
                )

        return RingStore.from_entries([*self, *added])

    def without_positions(self, positions: Iterable[int]) -> RingStore:
        removed = set(positions)

        # Filtering a sorted sequence keeps it sorted.
        kept = [
            (position, node_id)
            for position, node_id in self
            if position not in removed
        ]

        return RingStore(
            positions=tuple(position for position, _ in kept),
            owners=tuple(node_id for _, node_id in kept),
        )

    def verify(self) -> None:
        positions = self._positions
        for idx in range(1, len(positions)):
            if positions[idx - 1] >= positions[idx]:
                raise RingInvariantError(
                    f"Ring positions not strictly ascending at index {idx}: "
                    f"{positions[idx - 1]} >= {positions[idx]}"
                )

        if positions and (positions[0] < 0 or positions[-1] >= RING_SIZE):
            raise RingInvariantError("Ring position outside of keyspace")

    def owned_fraction(self) -> dict[str, float]:
        """
        Return the share of the keyspace owned by each node.

        Each stored position owns the arc from its predecessor (exclusive)
        up to itself (inclusive). The first position also owns the wrapped
        arc past the last position.
        """
        if not self._positions:
            return {}

        ownership: dict[str, int] = defaultdict(int)
        ring_size = len(self._positions)

        for idx in range(ring_size):
            position = self._positions[idx]
            if idx == 0:
                span = position + (RING_SIZE - self._positions[-1])

            else:
                span = position - self._positions[idx - 1]

            ownership[self._owners[idx]] += span

        return {
            node_id: span / RING_SIZE
            for node_id, span in ownership.items()
        }
