"""Process entry points (`smsgate-sender`, `smsgate-store`).

Both load settings once; a ConfigError is fatal and exits with status 2.
uvicorn owns SIGINT/SIGTERM: when it returns, the store process stops its
consumer (the in-flight record finishes) and every handle is closed.
"""
from __future__ import annotations

import logging
import sys

import uvicorn

import platform_monitoring
from smsgate.api.sender_app import create_sender_app
from smsgate.api.store_app import create_store_app
from smsgate.config.settings import ConfigError, Settings, load_settings
from smsgate.factory import build_sender_context, build_store_context

logger = logging.getLogger("smsgate.runner")


def _load() -> Settings:
    platform_monitoring.configure_logging()
    try:
        settings = load_settings()
    except ConfigError as e:
        logger.critical("invalid configuration: %s", e)
        raise SystemExit(2) from e
    logging.getLogger().setLevel(settings.log_level.upper())
    if settings.enable_metrics:
        platform_monitoring.start_metrics_server(settings.metrics_port)
    return settings


def _serve(app, settings: Settings, port: int) -> None:
    config = uvicorn.Config(app, host=settings.server_host, port=port, log_level=settings.log_level.lower())
    uvicorn.Server(config).run()


def sender_main() -> int:
    settings = _load()
    ctx = build_sender_context(settings)
    platform_monitoring.log_event("sender.start", {"port": settings.sender_port, "topic": settings.topic})
    try:
        _serve(create_sender_app(ctx), settings, settings.sender_port)
    finally:
        ctx.close()
        platform_monitoring.log_event("sender.stop", {})
    return 0


def store_main() -> int:
    settings = _load()
    ctx = build_store_context(settings)
    platform_monitoring.log_event(
        "store.start",
        {"port": settings.store_port, "topic": settings.topic, "group": settings.consumer_group},
    )
    ctx.consumer.start()
    try:
        _serve(create_store_app(ctx), settings, settings.store_port)
    finally:
        logger.info("shutting down consumer")
        ctx.consumer.stop()
        ctx.close()
        platform_monitoring.log_event("store.stop", {})
    return 0


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else "sender"
    raise SystemExit(store_main() if target == "store" else sender_main())
