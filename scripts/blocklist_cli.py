"""Block, unblock or check recipients against the configured Redis.

Usage:
  python scripts/blocklist_cli.py block +15550001111
  python scripts/blocklist_cli.py unblock +15550001111
  python scripts/blocklist_cli.py check +15550001111 +1111111111
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from smsgate.config.settings import ConfigError, load_settings
from smsgate.tools.blocklist.gate import BlocklistGate, BlocklistUnavailableError, RedisBlocklistStore
from smsgate.tools.redis.client import RedisClient


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    ap.add_argument("action", choices=["block", "unblock", "check"])
    ap.add_argument("recipients", nargs="+")
    args = ap.parse_args(argv)

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return 2

    r = RedisClient(url=settings.redis_url, namespace=settings.namespace)
    gate = BlocklistGate(RedisBlocklistStore(r))
    try:
        for recipient in args.recipients:
            if args.action == "block":
                gate.block(recipient)
                print(f"{recipient}: blocked")
            elif args.action == "unblock":
                gate.unblock(recipient)
                print(f"{recipient}: unblocked")
            else:
                print(f"{recipient}: {'blocked' if gate.is_blocked(recipient) else 'not blocked'}")
    except BlocklistUnavailableError as e:
        print(f"blocklist unavailable: {e}", file=sys.stderr)
        return 1
    finally:
        r.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
