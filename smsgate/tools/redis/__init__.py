"""Redis tooling package: namespaced client and key naming.

Modules
-------
- client: RedisClient wrapper (URL or REDIS_URL env, namespaced stream/ops keys)
- config: key builders for blocklist entries, partition streams, leases and idempotency locks
"""

from .client import RedisClient  # noqa: F401
