from .models import Entry, LogLevel


class RingNodeAdded(Entry, kw_only=True):
    node_id: str
    replica_factor: int
    virtual_nodes: int
    ring_version: int
    level: LogLevel = LogLevel.INFO

class RingNodeRemoved(Entry, kw_only=True):
    node_id: str
    virtual_nodes: int
    ring_version: int
    level: LogLevel = LogLevel.INFO

class RingMutationRejected(Entry, kw_only=True):
    node_id: str
    operation: str
    reason: str
    ring_version: int
    level: LogLevel = LogLevel.DEBUG

class RingCollisionResolved(Entry, kw_only=True):
    node_id: str
    replica_index: int
    attempts: int
    position: int
    level: LogLevel = LogLevel.DEBUG

class RingReplicaDropped(Entry, kw_only=True):
    node_id: str
    replica_index: int
    attempts: int
    level: LogLevel = LogLevel.WARN

class RingInvariantViolated(Entry, kw_only=True):
    ring_version: int
    level: LogLevel = LogLevel.FATAL

class RingLookupFailed(Entry, kw_only=True):
    key: str
    ring_version: int
    level: LogLevel = LogLevel.TRACE
