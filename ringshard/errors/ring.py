"""
Ring errors for the consistent hashing ring.

EmptyRingError, DuplicateNodeError, NodeNotFoundError and NodePlacementError
describe ordinary caller conditions. Ring operations return them inside
result values rather than raising them; ``unwrap()`` on a result raises the
carried error for callers that prefer exceptions.

RingInvariantError signals a broken ring (unsorted positions, a registry
entry missing from the published ring). It is always raised.
"""


class RingError(Exception):
    """Base class for ring errors returned by ring operations."""
    pass


class EmptyRingError(RingError):
    """Raised (or returned) when looking up a key on a ring with no nodes."""

    def __init__(self, message: str = "Ring has no registered nodes") -> None:
        super().__init__(message)


class DuplicateNodeError(RingError):
    def __init__(self, node_id: str, message: str | None = None) -> None:
        self.node_id = node_id
        super().__init__(message or f"Node {node_id} is already registered")


class NodeNotFoundError(RingError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node {node_id} is not registered")


class NodePlacementError(RingError):
    """Every replica of a node collided past the retry limit."""

    def __init__(self, node_id: str, attempts: int) -> None:
        self.node_id = node_id
        self.attempts = attempts
        super().__init__(
            f"Node {node_id} could not be placed, every replica collided {attempts} times"
        )


class RingInvariantError(AssertionError):
    """
    Raised when a built or published ring violates its structural invariants.

    No recovery is attempted since routing keys against a corrupt ring would
    silently send them to the wrong node.
    """
    pass
