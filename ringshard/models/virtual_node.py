import msgspec


class VirtualNode(msgspec.Struct, frozen=True):
    """One ring position owned by a physical node."""

    node_id: str
    replica_index: int
    position: int
    label: str
    attempts: int = 0
