from __future__ import annotations

from dataclasses import dataclass, field

from .node_registry import NodeRegistry
from .ring_store import RingStore


@dataclass(frozen=True, slots=True)
class RingSnapshot:
    """
    A fully built ring plus its node index.

    Snapshots are published whole and never modified afterwards, so a
    reader holding one always sees a consistent ring.
    """

    version: int = 0
    store: RingStore = field(default_factory=RingStore)
    registry: NodeRegistry = field(default_factory=NodeRegistry)

    @classmethod
    def empty(cls) -> RingSnapshot:
        return cls()

    @property
    def is_empty(self) -> bool:
        return len(self.store) == 0

    def list_nodes(self) -> frozenset[str]:
        return self.registry.list_nodes()
