from .env import Env as Env, load_env as load_env
from .errors import (
    DuplicateNodeError as DuplicateNodeError,
    EmptyRingError as EmptyRingError,
    NodeNotFoundError as NodeNotFoundError,
    NodePlacementError as NodePlacementError,
    RingError as RingError,
    RingInvariantError as RingInvariantError,
)
from .hashing import (
    RING_SIZE as RING_SIZE,
    HashFunction as HashFunction,
    MD5HashFunction as MD5HashFunction,
    Murmur3HashFunction as Murmur3HashFunction,
    get_hash_function as get_hash_function,
)
from .models import NodeRecord as NodeRecord, VirtualNode as VirtualNode
from .ring import (
    ConsistentHashRing as ConsistentHashRing,
    LookupResult as LookupResult,
    MutationResult as MutationResult,
    RingSnapshot as RingSnapshot,
)
