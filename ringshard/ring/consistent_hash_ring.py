"""
Consistent Hashing Ring for deterministic key-to-node assignment.

This implementation provides:
- Deterministic mapping: same key always maps to same node (when node is present)
- Minimal redistribution: adding/removing nodes only affects keys near the change
- Virtual nodes: ensures even distribution across physical nodes
- Lock-free lookups: readers work against an immutable published snapshot

Usage:
    ring = ConsistentHashRing(replica_factor=3)
    ring.add_node("cache-1:6379")
    ring.add_node("cache-2:6379")

    result = ring.lookup("user:123")
    if result.success:
        owner = result.node_id

    replicas = ring.lookup_n("user:123", 2).node_ids
"""

from __future__ import annotations

from typing import Iterable, Iterator

from ringshard.env import Env, load_env
from ringshard.errors import EmptyRingError
from ringshard.hashing import HashFunction, HashFunctionName, get_hash_function
from ringshard.logging import LoggerStream, LoggingConfig
from ringshard.logging.ring_logging_models import RingLookupFailed

from .mutation_controller import MutationController
from .results import LookupResult, MutationResult
from .ring_snapshot import RingSnapshot
from .snapshot_guard import SnapshotGuard


class ConsistentHashRing:
    """
    A consistent hashing ring for distributed node assignment.

    Uses virtual nodes to spread each physical node across the ring,
    reducing hotspots and improving balance.

    Thread-safe: any number of threads may look keys up while membership
    changes are applied. Lookups never block; add/remove calls are
    serialized against each other.

    Attributes:
        replica_factor: Default number of virtual nodes per physical node.
    """

    __slots__ = (
        "_guard",
        "_controller",
        "_hash",
        "_replica_factor",
        "_env",
        "_logger",
        "_owns_logger",
    )

    def __init__(
        self,
        replica_factor: int | None = None,
        hash_function: HashFunction | HashFunctionName | None = None,
        env: Env | None = None,
        logger: LoggerStream | None = None,
        nodes: Iterable[str] | None = None,
    ) -> None:
        """
        Initialize the consistent hash ring.

        Args:
            replica_factor: Virtual nodes per physical node. Defaults to
                RING_REPLICA_FACTOR.
            hash_function: HashFunction instance or name ("md5", "murmur3").
                Defaults to RING_HASH_FUNCTION.
            env: Ring configuration. Loaded from the environment and .env
                file when omitted.
            logger: Stream for ring log entries. When omitted the ring builds
                and owns one from the RING_LOG_* settings, and closes it in
                ``close()``.
            nodes: Node ids to add on construction.
        """
        if env is None:
            env = load_env(Env)

        if replica_factor is None:
            replica_factor = env.RING_REPLICA_FACTOR

        if replica_factor < 1:
            raise ValueError("replica_factor must be >= 1")

        if hash_function is None:
            hash_function = env.RING_HASH_FUNCTION

        hash_function = get_hash_function(hash_function)

        owns_logger = logger is None
        if owns_logger:
            # Only settings given explicitly replace the process-wide logging config.
            explicit = env.model_fields_set
            LoggingConfig().update(
                log_level=env.RING_LOG_LEVEL if "RING_LOG_LEVEL" in explicit else None,
                log_output=env.RING_LOG_OUTPUT if "RING_LOG_OUTPUT" in explicit else None,
            )

            logger = LoggerStream(
                name="ringshard",
                path=env.logs_path(),
            )

        self._env = env
        self._owns_logger = owns_logger
        self._replica_factor = replica_factor
        self._hash = hash_function
        self._logger = logger
        self._controller = MutationController(
            self._hash,
            max_collision_retries=env.RING_MAX_COLLISION_RETRIES,
            logger=logger,
        )
        self._guard = SnapshotGuard()

        for node_id in nodes or ():
            self.add_node(node_id)

    @property
    def replica_factor(self) -> int:
        return self._replica_factor

    @property
    def hash_function(self) -> HashFunction:
        return self._hash

    @property
    def logger(self) -> LoggerStream:
        return self._logger

    @property
    def snapshot(self) -> RingSnapshot:
        return self._guard.current()

    @property
    def version(self) -> int:
        return self._guard.version

    # =========================================================================
    # Node Management
    # =========================================================================

    def add_node(
        self,
        node_id: str,
        replica_factor: int | None = None,
    ) -> MutationResult:
        """
        Add a physical node to the ring.

        Creates ``replica_factor`` positions on the ring for this node. If the
        node already exists the ring is left unchanged and the result carries
        a DuplicateNodeError.

        Args:
            node_id: Unique identifier for the node (e.g., "cache-1:6379")
            replica_factor: Virtual nodes for this node, defaults to the
                ring's replica_factor.
        """
        if replica_factor is None:
            replica_factor = self._replica_factor

        return self._guard.mutate(
            lambda snapshot: self._controller.add_node(
                snapshot,
                node_id,
                replica_factor,
            )
        )

    def remove_node(self, node_id: str) -> MutationResult:
        """
        Remove a physical node and every virtual node it owns.

        If the node isn't registered the ring is left unchanged and the
        result carries a NodeNotFoundError.
        """
        return self._guard.mutate(
            lambda snapshot: self._controller.remove_node(snapshot, node_id)
        )

    def clear(self) -> MutationResult:
        """Remove all nodes from the ring in a single transition."""
        return self._guard.mutate(self._controller.clear)

    def list_nodes(self) -> frozenset[str]:
        return self._guard.current().list_nodes()

    def get_all_nodes(self) -> list[str]:
        return list(self._guard.current().registry)

    # =========================================================================
    # Lookup Operations
    # =========================================================================

    def lookup(self, key: str) -> LookupResult:
        """
        Find the node responsible for a key.

        The owner is the first virtual node at or after the key's hash
        position walking clockwise, wrapping to the smallest position.
        """
        return self.lookup_n(key, 1)

    def lookup_n(self, key: str, n: int) -> LookupResult:
        """
        Find up to ``n`` distinct nodes for a key (for replication).

        Starts with the primary and proceeds clockwise around the ring,
        skipping virtual nodes of physical nodes already collected.
        """
        if n < 1:
            raise ValueError("n must be >= 1")

        snapshot = self._guard.current()
        position = self._hash.hash_key(key)

        if snapshot.is_empty:
            self._logger.log(
                RingLookupFailed(
                    message="Lookup against empty ring",
                    key=key,
                    ring_version=snapshot.version,
                )
            )

            return LookupResult(
                success=False,
                key=key,
                position=position,
                version=snapshot.version,
                error=EmptyRingError(),
            )

        count = min(n, len(snapshot.registry))
        result: list[str] = []
        seen: set[str] = set()

        for node_id in snapshot.store.walk(position):
            if node_id in seen:
                continue

            seen.add(node_id)
            result.append(node_id)

            if len(result) >= count:
                break

        return LookupResult(
            success=True,
            key=key,
            position=position,
            version=snapshot.version,
            node_ids=tuple(result),
        )

    def get_node(self, key: str) -> str | None:
        """Return the node_id responsible for ``key``, or None if the ring is empty."""
        return self.lookup(key).node_id

    def get_backup(self, key: str) -> str | None:
        """
        Get the backup node for a key.

        Returns the next distinct physical node after the primary, or None
        when fewer than two nodes are registered.
        """
        node_ids = self.lookup_n(key, 2).node_ids
        if len(node_ids) < 2:
            return None

        return node_ids[1]

    def get_nodes_for_key(self, key: str, count: int = 2) -> list[str]:
        if count < 1:
            return []

        return list(self.lookup_n(key, count).node_ids)

    def is_owner(self, key: str, node_id: str) -> bool:
        return self.get_node(key) == node_id

    # =========================================================================
    # Statistics
    # =========================================================================

    def key_distribution(self, sample_keys: Iterable[str]) -> dict[str, int]:
        """
        Analyze key distribution across nodes.

        All keys are resolved against the same snapshot.

        Returns:
            Dict mapping node_id -> count of assigned keys
        """
        snapshot = self._guard.current()
        distribution: dict[str, int] = {node: 0 for node in snapshot.registry}

        if snapshot.is_empty:
            return distribution

        for key in sample_keys:
            node_id = snapshot.store.successor(self._hash.hash_key(key))
            distribution[node_id] += 1

        return distribution

    def keyspace_ownership(self) -> dict[str, float]:
        """Return the fraction of the keyspace each node owns."""
        snapshot = self._guard.current()
        ownership = {node: 0.0 for node in snapshot.registry}
        ownership.update(snapshot.store.owned_fraction())

        return ownership

    def get_ring_info(self) -> dict:
        """Get information about the ring state."""
        snapshot = self._guard.current()

        return {
            "version": snapshot.version,
            "node_count": len(snapshot.registry),
            "virtual_node_count": len(snapshot.store),
            "replica_factor": self._replica_factor,
            "hash_function": self._hash.name,
            "nodes": {
                node_id: {
                    "replica_factor": record.replica_factor,
                    "virtual_nodes": len(record.virtual_nodes),
                    "positions": list(record.positions),
                }
                for node_id, record in snapshot.registry.records.items()
            },
        }

    def __len__(self) -> int:
        """Return the number of physical nodes in the ring."""
        return len(self._guard.current().registry)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._guard.current().registry

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._guard.current().registry))

    def close(self) -> None:
        """Close the log stream if the ring created it. A caller's stream is left open."""
        if self._owns_logger:
            self._logger.close()

    def __enter__(self) -> ConsistentHashRing:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
