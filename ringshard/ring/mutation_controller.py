"""
Membership changes for the consistent hashing ring.

The controller is pure with respect to ring state: it takes the current
snapshot and returns the next one inside a MutationResult. Publishing the
new snapshot is the SnapshotGuard's job.

Collision policy: a virtual node label hashing onto an occupied position is
rejected and rehashed with a retry label. An existing owner is never
overwritten. After ``max_collision_retries`` failed attempts the replica is
dropped, so the virtual node count can be lower than replica_factor. A node
that cannot place any replica is rejected with a NodePlacementError.
"""

from __future__ import annotations

from ringshard.errors import (
    DuplicateNodeError,
    NodeNotFoundError,
    NodePlacementError,
    RingInvariantError,
)
from ringshard.hashing import HashFunction, virtual_node_label
from ringshard.logging import LoggerStream
from ringshard.logging.ring_logging_models import (
    RingCollisionResolved,
    RingInvariantViolated,
    RingMutationRejected,
    RingNodeAdded,
    RingNodeRemoved,
    RingReplicaDropped,
)
from ringshard.models import NodeRecord, VirtualNode

from .ring_snapshot import RingSnapshot
from .results import MutationResult
from .ring_store import RingStore


class MutationController:
    __slots__ = (
        "_hash",
        "_max_collision_retries",
        "_logger",
    )

    def __init__(
        self,
        hash_function: HashFunction,
        max_collision_retries: int = 16,
        logger: LoggerStream | None = None,
    ) -> None:
        if max_collision_retries < 0:
            raise ValueError("max_collision_retries must be >= 0")

        self._hash = hash_function
        self._max_collision_retries = max_collision_retries
        self._logger = logger

    @property
    def hash_function(self) -> HashFunction:
        return self._hash

    def add_node(
        self,
        snapshot: RingSnapshot,
        node_id: str,
        replica_factor: int,
    ) -> MutationResult:
        if replica_factor < 1:
            raise ValueError("replica_factor must be >= 1")

        existing = snapshot.registry.get(node_id)
        if existing is not None:
            message: str | None = None
            if existing.replica_factor != replica_factor:
                message = (
                    f"Node {node_id} is already registered with replica_factor "
                    f"{existing.replica_factor}, cannot re-register with {replica_factor}"
                )

            error = DuplicateNodeError(node_id, message=message)
            self._log(
                RingMutationRejected(
                    message=str(error),
                    node_id=node_id,
                    operation="add",
                    reason="duplicate",
                    ring_version=snapshot.version,
                )
            )

            return MutationResult(
                success=False,
                node_id=node_id,
                snapshot=snapshot,
                error=error,
            )

        virtual_nodes = self._place_virtual_nodes(snapshot, node_id, replica_factor)
        if not virtual_nodes:
            # Nodes without ring positions are never registered.
            error = NodePlacementError(node_id, self._max_collision_retries + 1)
            self._log(
                RingMutationRejected(
                    message=str(error),
                    node_id=node_id,
                    operation="add",
                    reason="no_free_positions",
                    ring_version=snapshot.version,
                )
            )

            return MutationResult(
                success=False,
                node_id=node_id,
                snapshot=snapshot,
                error=error,
            )

        record = NodeRecord(
            node_id=node_id,
            replica_factor=replica_factor,
            virtual_nodes=virtual_nodes,
        )

        next_snapshot = RingSnapshot(
            version=snapshot.version + 1,
            store=snapshot.store.with_entries(
                (vnode.position, node_id) for vnode in virtual_nodes
            ),
            registry=snapshot.registry.with_node(record),
        )
        self.verify_snapshot(next_snapshot)

        self._log(
            RingNodeAdded(
                message=f"Added node {node_id} with {len(virtual_nodes)} virtual nodes",
                node_id=node_id,
                replica_factor=replica_factor,
                virtual_nodes=len(virtual_nodes),
                ring_version=next_snapshot.version,
            )
        )

        return MutationResult(
            success=True,
            node_id=node_id,
            snapshot=next_snapshot,
            virtual_nodes=virtual_nodes,
        )

    def remove_node(
        self,
        snapshot: RingSnapshot,
        node_id: str,
    ) -> MutationResult:
        record = snapshot.registry.get(node_id)
        if record is None:
            error = NodeNotFoundError(node_id)
            self._log(
                RingMutationRejected(
                    message=str(error),
                    node_id=node_id,
                    operation="remove",
                    reason="not_found",
                    ring_version=snapshot.version,
                )
            )

            return MutationResult(
                success=False,
                node_id=node_id,
                snapshot=snapshot,
                error=error,
            )

        next_snapshot = RingSnapshot(
            version=snapshot.version + 1,
            store=snapshot.store.without_positions(record.positions),
            registry=snapshot.registry.without_node(node_id),
        )
        self.verify_snapshot(next_snapshot)

        self._log(
            RingNodeRemoved(
                message=f"Removed node {node_id}",
                node_id=node_id,
                virtual_nodes=len(record.virtual_nodes),
                ring_version=next_snapshot.version,
            )
        )

        return MutationResult(
            success=True,
            node_id=node_id,
            snapshot=next_snapshot,
            virtual_nodes=record.virtual_nodes,
        )

    def clear(self, snapshot: RingSnapshot) -> MutationResult:
        removed = tuple(
            vnode
            for record in snapshot.registry.records.values()
            for vnode in record.virtual_nodes
        )

        return MutationResult(
            success=True,
            node_id="*",
            snapshot=RingSnapshot(version=snapshot.version + 1),
            virtual_nodes=removed,
        )

    def verify_snapshot(self, snapshot: RingSnapshot) -> None:
        """Raise RingInvariantError if the store and registry disagree."""
        try:
            snapshot.store.verify()

            store = snapshot.store
            registry = snapshot.registry

            if len(store) != registry.virtual_node_count():
                raise RingInvariantError(
                    f"Ring holds {len(store)} positions but registry tracks "
                    f"{registry.virtual_node_count()}"
                )

            for node_id, record in registry.records.items():
                for vnode in record.virtual_nodes:
                    owner = store.owner_at(vnode.position)
                    if owner != node_id:
                        raise RingInvariantError(
                            f"Position {vnode.position} of node {node_id} is owned by {owner}"
                        )

        except RingInvariantError as err:
            self._log(
                RingInvariantViolated(
                    message=str(err),
                    ring_version=snapshot.version,
                )
            )
            raise

    def _place_virtual_nodes(
        self,
        snapshot: RingSnapshot,
        node_id: str,
        replica_factor: int,
    ) -> tuple[VirtualNode, ...]:
        store = snapshot.store
        claimed: set[int] = set()
        virtual_nodes: list[VirtualNode] = []

        for replica_index in range(replica_factor):
            vnode = self._place_replica(store, claimed, node_id, replica_index)
            if vnode is None:
                continue

            claimed.add(vnode.position)
            virtual_nodes.append(vnode)

        return tuple(virtual_nodes)

    def _place_replica(
        self,
        store: RingStore,
        claimed: set[int],
        node_id: str,
        replica_index: int,
    ) -> VirtualNode | None:
        for attempt in range(self._max_collision_retries + 1):
            position = self._hash.position(node_id, replica_index, attempt=attempt)

            if position in claimed or store.contains_position(position):
                continue

            if attempt > 0:
                self._log(
                    RingCollisionResolved(
                        message=f"Resolved collision for {node_id} replica {replica_index}",
                        node_id=node_id,
                        replica_index=replica_index,
                        attempts=attempt,
                        position=position,
                    )
                )

            return VirtualNode(
                node_id=node_id,
                replica_index=replica_index,
                position=position,
                label=virtual_node_label(node_id, replica_index, attempt=attempt),
                attempts=attempt,
            )

        self._log(
            RingReplicaDropped(
                message=f"Dropped replica {replica_index} of {node_id} after exhausting collision retries",
                node_id=node_id,
                replica_index=replica_index,
                attempts=self._max_collision_retries + 1,
            )
        )

        return None

    def _log(self, entry) -> None:
        if self._logger is not None:
            self._logger.log(entry)
