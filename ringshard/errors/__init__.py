from .ring import (
    DuplicateNodeError as DuplicateNodeError,
    EmptyRingError as EmptyRingError,
    NodeNotFoundError as NodeNotFoundError,
    NodePlacementError as NodePlacementError,
    RingError as RingError,
    RingInvariantError as RingInvariantError,
)
