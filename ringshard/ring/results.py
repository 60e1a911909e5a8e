from __future__ import annotations

from dataclasses import dataclass

from ringshard.errors import RingError
from ringshard.models import VirtualNode

from .ring_snapshot import RingSnapshot


@dataclass(slots=True)
class MutationResult:
    """Result of adding or removing a node."""
    success: bool
    node_id: str
    snapshot: RingSnapshot  # Published snapshot after the call (unchanged on failure)
    virtual_nodes: tuple[VirtualNode, ...] = ()  # Added or removed virtual nodes
    error: RingError | None = None

    def unwrap(self) -> RingSnapshot:
        if self.error is not None:
            raise self.error

        return self.snapshot


@dataclass(slots=True)
class LookupResult:
    """Result of a key lookup against one ring snapshot."""
    success: bool
    key: str
    position: int
    version: int  # Version of the snapshot that answered
    node_ids: tuple[str, ...] = ()
    error: RingError | None = None

    @property
    def node_id(self) -> str | None:
        if not self.node_ids:
            return None

        return self.node_ids[0]

    def unwrap(self) -> str:
        if self.error is not None:
            raise self.error

        return self.node_ids[0]
