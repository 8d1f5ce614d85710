from smsgate.tools.blocklist.gate import (
    BlocklistGate,
    BlocklistStore,
    BlocklistUnavailableError,
    InMemoryBlocklistStore,
    RedisBlocklistStore,
)

__all__ = [
    "BlocklistGate",
    "BlocklistStore",
    "BlocklistUnavailableError",
    "InMemoryBlocklistStore",
    "RedisBlocklistStore",
]
