"""
Consistent hashing ring.

Provides:
- Immutable ring storage with O(log m) successor lookup
- Node registry tracking each node's virtual node positions
- Mutation controller with deterministic collision resolution
- Snapshot guard publishing each mutation as one atomic swap
"""

from .consistent_hash_ring import ConsistentHashRing
from .mutation_controller import MutationController
from .node_registry import NodeRegistry
from .results import LookupResult, MutationResult
from .ring_snapshot import RingSnapshot
from .ring_store import RingStore
from .snapshot_guard import SnapshotGuard

__all__ = [
    # Main ring
    "ConsistentHashRing",
    # Results
    "LookupResult",
    "MutationResult",
    # Components
    "MutationController",
    "NodeRegistry",
    "RingSnapshot",
    "RingStore",
    "SnapshotGuard",
]
