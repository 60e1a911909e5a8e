"""
Test: Mutation controller

1. Adding a node builds a new snapshot without touching the old one
2. Duplicate adds and unknown removes are returned as error values
3. Removal uses stored positions rather than rehashing
4. Collisions are resolved by rehashing, never by overwriting an owner
5. Snapshots that break ring invariants are rejected
6. Nodes that cannot place a single replica are rejected

Run with: pytest tests/unit/ring/test_mutation_controller.py
"""

import pytest

from ringshard.errors import (
    DuplicateNodeError,
    NodeNotFoundError,
    NodePlacementError,
    RingInvariantError,
)
from ringshard.hashing import MD5HashFunction, Murmur3HashFunction
from ringshard.logging import LoggerStream, LogLevel
from ringshard.models import NodeRecord, VirtualNode
from ringshard.ring import MutationController, NodeRegistry, RingSnapshot, RingStore


@pytest.fixture
def controller(ring_logger: LoggerStream) -> MutationController:
    return MutationController(MD5HashFunction(), logger=ring_logger)


def test_add_node_builds_next_snapshot(controller: MutationController):
    empty = RingSnapshot.empty()

    result = controller.add_node(empty, "A", 3)

    assert result.success
    assert result.error is None
    assert result.snapshot.version == 1
    assert len(result.virtual_nodes) == 3
    assert [vnode.replica_index for vnode in result.virtual_nodes] == [0, 1, 2]
    assert [vnode.label for vnode in result.virtual_nodes] == ["A:0", "A:1", "A:2"]
    assert len(result.snapshot.store) == 3
    assert result.snapshot.list_nodes() == frozenset({"A"})

    assert empty.version == 0
    assert len(empty.store) == 0
    assert empty.is_empty


def test_add_node_positions_match_hash(controller: MutationController):
    result = controller.add_node(RingSnapshot.empty(), "A", 5)
    hash_function = MD5HashFunction()

    assert sorted(vnode.position for vnode in result.virtual_nodes) == sorted(
        hash_function.position("A", idx) for idx in range(5)
    )


def test_add_duplicate_returns_error_value(controller: MutationController):
    snapshot = controller.add_node(RingSnapshot.empty(), "A", 3).snapshot

    result = controller.add_node(snapshot, "A", 3)

    assert not result.success
    assert isinstance(result.error, DuplicateNodeError)
    assert result.error.node_id == "A"
    assert result.snapshot is snapshot

    with pytest.raises(DuplicateNodeError):
        result.unwrap()


def test_add_duplicate_with_different_replica_factor_fails_fast(controller: MutationController):
    snapshot = controller.add_node(RingSnapshot.empty(), "A", 3).snapshot

    result = controller.add_node(snapshot, "A", 5)

    assert isinstance(result.error, DuplicateNodeError)
    assert "replica_factor" in str(result.error)
    assert snapshot.registry.get("A").replica_factor == 3
    assert len(snapshot.store) == 3


def test_replica_factor_must_be_positive(controller: MutationController):
    with pytest.raises(ValueError):
        controller.add_node(RingSnapshot.empty(), "A", 0)


def test_remove_unknown_node_returns_error_value(controller: MutationController):
    snapshot = RingSnapshot.empty()

    result = controller.remove_node(snapshot, "missing")

    assert not result.success
    assert isinstance(result.error, NodeNotFoundError)
    assert result.snapshot is snapshot


def test_remove_node_drops_every_virtual_node(controller: MutationController):
    snapshot = controller.add_node(RingSnapshot.empty(), "A", 4).snapshot
    snapshot = controller.add_node(snapshot, "B", 4).snapshot

    result = controller.remove_node(snapshot, "A")

    assert result.success
    assert result.snapshot.version == 3
    assert len(result.virtual_nodes) == 4
    assert set(result.snapshot.store.owners) == {"B"}
    assert len(result.snapshot.store) == 4
    assert result.snapshot.list_nodes() == frozenset({"B"})


def test_remove_uses_stored_positions(ring_logger: LoggerStream):
    added = MutationController(MD5HashFunction(), logger=ring_logger).add_node(
        RingSnapshot.empty(), "A", 3
    )

    # A controller with a different hash function still removes exactly
    # the positions recorded when the node was added.
    removed = MutationController(Murmur3HashFunction(), logger=ring_logger).remove_node(
        added.snapshot, "A"
    )

    assert removed.success
    assert len(removed.snapshot.store) == 0
    assert removed.snapshot.is_empty


def test_collision_with_other_node_is_rehashed(ring_logger: LoggerStream, fixed_hash_factory):
    hash_function = fixed_hash_factory({"A:0": 500, "B:0": 500})
    controller = MutationController(hash_function, logger=ring_logger)

    snapshot = controller.add_node(RingSnapshot.empty(), "A", 1).snapshot
    result = controller.add_node(snapshot, "B", 1)

    (vnode,) = result.virtual_nodes
    assert vnode.attempts == 1
    assert vnode.label == "B:0:retry:1"
    assert vnode.position == MD5HashFunction().hash_key("B:0:retry:1")
    assert result.snapshot.store.owner_at(500) == "A"
    assert len(result.snapshot.store) == 2


def test_collision_between_own_replicas_is_rehashed(ring_logger: LoggerStream, fixed_hash_factory):
    hash_function = fixed_hash_factory({"A:0": 7, "A:1": 7})
    controller = MutationController(hash_function, logger=ring_logger)

    result = controller.add_node(RingSnapshot.empty(), "A", 2)

    first, second = result.virtual_nodes
    assert first.position == 7
    assert second.attempts == 1
    assert second.position != 7
    assert len(result.snapshot.store) == 2


def test_exhausted_retries_drop_replica(ring_logger: LoggerStream, fixed_hash_factory):
    hash_function = fixed_hash_factory({
        "A:0": 500,
        "B:0": 500,
        "B:0:retry:1": 500,
        "B:0:retry:2": 500,
    })
    controller = MutationController(
        hash_function,
        max_collision_retries=2,
        logger=ring_logger,
    )

    snapshot = controller.add_node(RingSnapshot.empty(), "A", 1).snapshot
    result = controller.add_node(snapshot, "B", 2)

    assert result.success
    assert [vnode.replica_index for vnode in result.virtual_nodes] == [1]
    assert result.snapshot.registry.get("B").dropped_replicas == 1
    assert result.snapshot.store.owner_at(500) == "A"
    assert len(result.snapshot.store) == 2

    dropped = [
        log for log in ring_logger.read()
        if log.entry.level == LogLevel.WARN
    ]
    assert len(dropped) == 1


def test_node_with_no_placeable_replica_is_rejected(ring_logger: LoggerStream, fixed_hash_factory):
    hash_function = fixed_hash_factory({
        "A:0": 5,
        "B:0": 5,
        "B:0:retry:1": 5,
    })
    controller = MutationController(
        hash_function,
        max_collision_retries=1,
        logger=ring_logger,
    )

    snapshot = controller.add_node(RingSnapshot.empty(), "A", 1).snapshot
    result = controller.add_node(snapshot, "B", 1)

    assert result.success is False
    assert isinstance(result.error, NodePlacementError)
    assert result.error.node_id == "B"
    assert result.error.attempts == 2
    assert result.snapshot is snapshot
    assert "B" not in result.snapshot.registry

    with pytest.raises(NodePlacementError):
        result.unwrap()

    rejected = [
        log.entry.message for log in ring_logger.read()
        if log.entry.message.startswith("Node B could not be placed")
    ]
    assert len(rejected) == 1


def test_collision_resolution_is_deterministic(ring_logger: LoggerStream, fixed_hash_factory):
    table = {"A:0": 500, "B:0": 500}

    def build():
        controller = MutationController(fixed_hash_factory(table), logger=ring_logger)
        snapshot = controller.add_node(RingSnapshot.empty(), "A", 2).snapshot
        return controller.add_node(snapshot, "B", 2).snapshot

    first = build()
    second = build()

    assert first.store.positions == second.store.positions
    assert first.store.owners == second.store.owners


def test_clear_returns_empty_snapshot(controller: MutationController):
    snapshot = controller.add_node(RingSnapshot.empty(), "A", 2).snapshot
    snapshot = controller.add_node(snapshot, "B", 2).snapshot

    result = controller.clear(snapshot)

    assert result.success
    assert result.snapshot.is_empty
    assert result.snapshot.version == snapshot.version + 1
    assert len(result.virtual_nodes) == 4


def test_verify_snapshot_rejects_registry_store_mismatch(controller: MutationController):
    record = NodeRecord(
        node_id="A",
        replica_factor=1,
        virtual_nodes=(
            VirtualNode(node_id="A", replica_index=0, position=10, label="A:0"),
        ),
    )
    snapshot = RingSnapshot(
        version=1,
        store=RingStore.from_entries([(11, "A")]),
        registry=NodeRegistry({"A": record}),
    )

    with pytest.raises(RingInvariantError):
        controller.verify_snapshot(snapshot)


def test_verify_snapshot_rejects_count_mismatch(controller: MutationController):
    snapshot = RingSnapshot(
        version=1,
        store=RingStore.from_entries([(11, "A")]),
        registry=NodeRegistry(),
    )

    with pytest.raises(RingInvariantError):
        controller.verify_snapshot(snapshot)


def test_mutations_are_logged(controller: MutationController, ring_logger: LoggerStream):
    snapshot = controller.add_node(RingSnapshot.empty(), "A", 3).snapshot
    controller.remove_node(snapshot, "A")
    controller.remove_node(snapshot, "missing")

    messages = [log.entry.message for log in ring_logger.read()]

    assert "Added node A with 3 virtual nodes" in messages
    assert "Removed node A" in messages
    assert "Node missing is not registered" in messages


def test_negative_retry_limit_rejected():
    with pytest.raises(ValueError):
        MutationController(MD5HashFunction(), max_collision_retries=-1)
