from __future__ import annotations

from types import MappingProxyType
from typing import Iterator, Mapping

from ringshard.errors import RingInvariantError
from ringshard.models import NodeRecord


class NodeRegistry:
    """
    Immutable index of live physical nodes and the ring positions each owns.

    Removal is driven by the positions stored here at add time, never by
    rehashing, so it stays correct even if the hash function configuration
    changes between an add and a remove.
    """

    __slots__ = (
        "_records",
        "_virtual_node_count",
    )

    def __init__(self, records: Mapping[str, NodeRecord] | None = None) -> None:
        self._records: Mapping[str, NodeRecord] = MappingProxyType(dict(records or {}))
        self._virtual_node_count = sum(
            len(record.virtual_nodes) for record in self._records.values()
        )

    @property
    def records(self) -> Mapping[str, NodeRecord]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __repr__(self) -> str:
        return f"NodeRegistry(nodes={len(self._records)}, virtual_nodes={self._virtual_node_count})"

    def contains(self, node_id: str) -> bool:
        return node_id in self._records

    def get(self, node_id: str) -> NodeRecord | None:
        return self._records.get(node_id)

    def list_nodes(self) -> frozenset[str]:
        return frozenset(self._records)

    def positions_of(self, node_id: str) -> tuple[int, ...]:
        record = self._records.get(node_id)
        if record is None:
            return ()

        return record.positions

    def virtual_node_count(self) -> int:
        return self._virtual_node_count

    def with_node(self, record: NodeRecord) -> NodeRegistry:
        if record.node_id in self._records:
            raise RingInvariantError(
                f"Node {record.node_id} registered twice"
            )

        records = dict(self._records)
        records[record.node_id] = record

        return NodeRegistry(records)

    def without_node(self, node_id: str) -> NodeRegistry:
        if node_id not in self._records:
            raise RingInvariantError(
                f"Node {node_id} removed without being registered"
            )

        return NodeRegistry({
            existing_id: record
            for existing_id, record in self._records.items()
            if existing_id != node_id
        })
