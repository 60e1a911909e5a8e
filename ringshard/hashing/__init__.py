from .hash_function import (
    RING_SIZE as RING_SIZE,
    HashFunction as HashFunction,
    HashFunctionName as HashFunctionName,
    MD5HashFunction as MD5HashFunction,
    Murmur3HashFunction as Murmur3HashFunction,
    get_hash_function as get_hash_function,
    virtual_node_label as virtual_node_label,
)
