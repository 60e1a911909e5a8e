from __future__ import annotations

import msgspec

from .virtual_node import VirtualNode


class NodeRecord(msgspec.Struct, frozen=True):
    node_id: str
    replica_factor: int
    virtual_nodes: tuple[VirtualNode, ...] = ()

    @property
    def positions(self) -> tuple[int, ...]:
        return tuple(vnode.position for vnode in self.virtual_nodes)

    @property
    def dropped_replicas(self) -> int:
        return self.replica_factor - len(self.virtual_nodes)
