import pytest

from ringshard.env import Env
from ringshard.hashing import HashFunction, MD5HashFunction
from ringshard.logging import Entry, LoggingConfig, LogLevel
from ringshard.logging.streams import LoggerStream
from ringshard.ring import ConsistentHashRing


class FixedHashFunction(HashFunction):
    """Hash function with pinned positions for chosen labels, MD5 elsewhere."""

    __slots__ = (
        "_table",
        "_fallback",
    )

    name = "fixed"

    def __init__(self, table: dict[str, int]) -> None:
        self._table = table
        self._fallback = MD5HashFunction()

    def __call__(self, data: bytes) -> int:
        label = data.decode("utf-8")
        if label in self._table:
            return self._table[label]

        return self._fallback(data)


@pytest.fixture(autouse=True)
def configure_log_level():
    config = LoggingConfig()
    config.update(log_level="debug", log_output="stderr")
    yield
    config.update(log_level="error", log_output="stderr")


@pytest.fixture
def temp_log_directory(tmp_path) -> str:
    return str(tmp_path)


@pytest.fixture
def ring_env() -> Env:
    return Env(RING_LOG_LEVEL="debug")


@pytest.fixture
def ring_logger(temp_log_directory: str):
    stream = LoggerStream(
        name="test_ring",
        filename="ring.json",
        directory=temp_log_directory,
    )
    yield stream
    stream.close()


@pytest.fixture
def make_ring(ring_env: Env, ring_logger: LoggerStream):
    def create_ring(
        replica_factor: int = 3,
        hash_function: HashFunction | str = "md5",
        nodes: list[str] | None = None,
    ) -> ConsistentHashRing:
        return ConsistentHashRing(
            replica_factor=replica_factor,
            hash_function=hash_function,
            env=ring_env,
            logger=ring_logger,
            nodes=nodes,
        )

    return create_ring


@pytest.fixture
def fixed_hash_factory():
    def create_hash_function(table: dict[str, int]) -> FixedHashFunction:
        return FixedHashFunction(table)

    return create_hash_function


@pytest.fixture
def sample_entry() -> Entry:
    return Entry(
        message="Test log message",
        level=LogLevel.INFO,
    )


@pytest.fixture
def sample_keys() -> list[str]:
    return [f"key-{i}" for i in range(2000)]
