"""
Hash functions mapping virtual node labels and keys onto the ring.

Every hash function returns an unsigned 32-bit position in [0, RING_SIZE).
None of them use a per-process seed, so independent processes that add the
same nodes in the same order build identical rings.

Cryptographic strength is not needed. MD5 is kept as the default for
cross-platform reproducibility; MurmurHash3 is faster and avalanches just
as well.
"""

from __future__ import annotations

import hashlib
from typing import Literal

import mmh3


RING_SIZE = 2**32

HashFunctionName = Literal["md5", "murmur3"]


def virtual_node_label(node_id: str, replica_index: int, attempt: int = 0) -> str:
    """
    Build the label hashed for a virtual node.

    The first attempt hashes ``"{node_id}:{replica_index}"``. Collision
    retries append ``":retry:{attempt}"`` so each retry lands on an
    unrelated position while staying reproducible.
    """
    if attempt == 0:
        return f"{node_id}:{replica_index}"

    return f"{node_id}:{replica_index}:retry:{attempt}"


class HashFunction:
    __slots__ = ()

    name: str = "base"

    def __call__(self, data: bytes) -> int:
        raise NotImplementedError()

    def hash_key(self, key: str) -> int:
        # Lone surrogates are valid in str, so encode them rather than raise.
        return self(key.encode("utf-8", errors="surrogatepass"))

    def position(self, node_id: str, replica_index: int, attempt: int = 0) -> int:
        return self.hash_key(
            virtual_node_label(node_id, replica_index, attempt=attempt)
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class MD5HashFunction(HashFunction):
    __slots__ = ()

    name = "md5"

    def __call__(self, data: bytes) -> int:
        digest = hashlib.md5(data, usedforsecurity=False).digest()
        # Use first 4 bytes as unsigned 32-bit integer
        return int.from_bytes(digest[:4], byteorder="big")


class Murmur3HashFunction(HashFunction):
    __slots__ = ()

    name = "murmur3"

    def __call__(self, data: bytes) -> int:
        return mmh3.hash(data, 0, signed=False)


_HASH_FUNCTIONS: dict[str, type[HashFunction]] = {
    MD5HashFunction.name: MD5HashFunction,
    Murmur3HashFunction.name: Murmur3HashFunction,
}


def get_hash_function(name: HashFunctionName | HashFunction) -> HashFunction:
    if isinstance(name, HashFunction):
        return name

    hash_function_type = _HASH_FUNCTIONS.get(name)
    if hash_function_type is None:
        raise ValueError(
            f"Unknown hash function {name!r}, expected one of {sorted(_HASH_FUNCTIONS)}"
        )

    return hash_function_type()
