import os
from typing import Callable, Dict, Literal, Union

from pydantic import BaseModel, StrictInt, StrictStr

PrimaryType = Union[str, int, float, bytes, bool]


class Env(BaseModel):
    RING_REPLICA_FACTOR: StrictInt = 3
    RING_HASH_FUNCTION: Literal["md5", "murmur3"] = "md5"
    RING_MAX_COLLISION_RETRIES: StrictInt = 16
    RING_LOG_LEVEL: StrictStr = "info"
    RING_LOG_OUTPUT: Literal["stdout", "stderr"] = "stderr"
    RING_LOGS_DIRECTORY: StrictStr | None = None

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "RING_REPLICA_FACTOR": int,
            "RING_HASH_FUNCTION": str,
            "RING_MAX_COLLISION_RETRIES": int,
            "RING_LOG_LEVEL": str,
            "RING_LOG_OUTPUT": str,
            "RING_LOGS_DIRECTORY": str,
        }

    def logs_path(self) -> str | None:
        if self.RING_LOGS_DIRECTORY is None:
            return None

        return os.path.join(self.RING_LOGS_DIRECTORY, "ring.json")
