"""Redis Streams health/visibility for the sms_events channel.

Shows, per partition stream: length, consumer groups, consumers with pending
counts, an XPENDING summary and the current partition lease holder.

Usage:
  python scripts/streams_health.py
  python scripts/streams_health.py --verbose

Names come from the same env vars the processes use (REDIS_URL,
REDIS_NAMESPACE, SMS_EVENTS_TOPIC, SMS_EVENTS_PARTITIONS, SMS_CONSUMER_GROUP).
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import redis

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from smsgate.config.settings import ConfigError, load_settings
from smsgate.tools.redis.client import RedisClient
from smsgate.tools.redis.config import full_key, lease_key, stream_key


def _safe_print(title: str, data) -> None:
    print(title)
    print(json.dumps(data, indent=2, default=str))


def _xpending_summary(client, key: str, group: str):
    info = client.xpending(key, group)
    # redis-py returns a dict; consumers is a list of {"name", "pending"}
    return {
        "pending": info.get("pending"),
        "min": info.get("min"),
        "max": info.get("max"),
        "consumers": info.get("consumers"),
    }


def inspect_partition(r: RedisClient, topic: str, partition: int, group: str, verbose: bool = False) -> None:
    client = r.client
    key = full_key(r.ns, stream_key(topic, partition))
    print(f"\n=== Stream: {key} ===")
    try:
        sinfo = client.xinfo_stream(key)
    except redis.exceptions.ResponseError as e:
        print(f"xinfo_stream error: {e}")
        return
    print(f"length: {sinfo.get('length')} | last-generated-id: {sinfo.get('last-generated-id')}")
    if verbose:
        _safe_print("xinfo_stream:", sinfo)

    groups = client.xinfo_groups(key)
    if not groups:
        print("groups: (none)")
    for g in groups:
        print(
            f"  group={g.get('name')} consumers={g.get('consumers')} pending={g.get('pending')} "
            f"last-delivered-id={g.get('last-delivered-id')}"
        )

    if any(g.get("name") == group for g in groups):
        for c in client.xinfo_consumers(key, group):
            print(f"  - consumer={c.get('name')} pending={c.get('pending')} idle_ms={c.get('idle')}")
        print(f"xpending ({group}):", json.dumps(_xpending_summary(client, key, group), indent=2, default=str))

    lease = lease_key(topic, group, partition)
    holder = r.get(lease)
    ttl = client.ttl(full_key(r.ns, lease))
    print(f"lease: holder={holder or '(free)'} ttl={ttl}")


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args()

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return 2

    r = RedisClient(url=settings.redis_url, namespace=settings.namespace)
    print("Namespace:", settings.namespace)
    print("Topic:", settings.topic, "| partitions:", settings.partitions, "| group:", settings.consumer_group)
    try:
        for p in range(settings.partitions):
            inspect_partition(r, settings.topic, p, settings.consumer_group, verbose=args.verbose)
    finally:
        r.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
