"""Process configuration for the sender and store processes.

Values come from environment variables (a `.env` file at the repo root is loaded
first, without overriding variables that are already set). `load_settings()` is
called once by each runner; a missing or invalid required value raises
`ConfigError`, which the runner treats as fatal.
"""
from __future__ import annotations

import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class ConfigError(EnvironmentError):
    """Raised when required configuration is missing or invalid at start-up."""


def _env_int(name: str, fallback: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return fallback
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, fallback: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return fallback
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def _env_flag(name: str, fallback: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return fallback
    return raw.strip().lower() in ("1", "true", "yes")


def _env_list(name: str, fallback: str = "") -> List[str]:
    raw = os.getenv(name, fallback)
    return [p.strip() for p in raw.split(",") if p.strip()]


class Settings(BaseModel):
    # Redis (blocklist keys + event streams)
    redis_url: str = "redis://localhost:6379/0"
    namespace: str = "smsgate"

    # Durable channel
    channel_kind: str = "redis"
    topic: str = "sms_events"
    partitions: int = 1
    consumer_group: str = "sms-storage-group"
    consumer_name: str = Field(default_factory=lambda: f"c-{os.getpid()}")
    publish_timeout_seconds: float = 5.0
    lease_ttl_seconds: int = 30
    consumer_max_partitions: Optional[int] = None
    consumer_dedup: bool = False
    dedup_ttl_seconds: int = 86400

    # Document store
    persist_kind: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    recipients_table: str = "sms_recipients"

    # Delivery channel
    delivery_kind: str = "noop"
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_from_number: Optional[str] = None

    # Blocklist
    blocklist_seed: List[str] = Field(default_factory=lambda: ["+1111111111"])

    # HTTP + ops
    server_host: str = "0.0.0.0"
    sender_port: int = 8080
    store_port: int = 8081
    enable_metrics: bool = False
    metrics_port: int = 8001
    log_level: str = "INFO"

    def validate_required(self) -> None:
        missing = []
        if not self.redis_url:
            missing.append("REDIS_URL")
        if not self.topic:
            missing.append("SMS_EVENTS_TOPIC")
        if not self.consumer_group:
            missing.append("SMS_CONSUMER_GROUP")
        if self.persist_kind == "supabase":
            if not self.supabase_url:
                missing.append("SUPABASE_URL")
            if not self.supabase_key:
                missing.append("SUPABASE_SERVICE_KEY")
        if self.delivery_kind == "twilio":
            for env_name, value in (
                ("TWILIO_ACCOUNT_SID", self.twilio_account_sid),
                ("TWILIO_AUTH_TOKEN", self.twilio_auth_token),
                ("TWILIO_FROM_NUMBER", self.twilio_from_number),
            ):
                if not value:
                    missing.append(env_name)
        if missing:
            raise ConfigError(f"Missing required env vars: {', '.join(missing)}")

        if self.partitions < 1:
            raise ConfigError("SMS_EVENTS_PARTITIONS must be >= 1")
        if self.publish_timeout_seconds <= 0:
            raise ConfigError("PUBLISH_TIMEOUT_SECONDS must be > 0")
        if self.persist_kind not in ("memory", "supabase"):
            raise ConfigError(f"Unknown PERSIST_KIND '{self.persist_kind}'")
        if self.delivery_kind not in ("noop", "twilio"):
            raise ConfigError(f"Unknown DELIVERY_KIND '{self.delivery_kind}'")
        if self.channel_kind not in ("redis", "memory"):
            raise ConfigError(f"Unknown CHANNEL_KIND '{self.channel_kind}'")


def load_settings(dotenv: bool = True) -> Settings:
    """Build and validate Settings from the environment."""
    if dotenv:
        load_dotenv()

    settings = Settings(
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        namespace=os.getenv("REDIS_NAMESPACE", "smsgate"),
        channel_kind=os.getenv("CHANNEL_KIND", "redis").lower(),
        topic=os.getenv("SMS_EVENTS_TOPIC", "sms_events"),
        partitions=_env_int("SMS_EVENTS_PARTITIONS", 1),
        consumer_group=os.getenv("SMS_CONSUMER_GROUP", "sms-storage-group"),
        consumer_name=os.getenv("SMS_CONSUMER_NAME") or f"c-{os.getpid()}",
        publish_timeout_seconds=_env_float("PUBLISH_TIMEOUT_SECONDS", 5.0),
        lease_ttl_seconds=_env_int("LEASE_TTL_SECONDS", 30),
        consumer_max_partitions=_env_int("SMS_CONSUMER_MAX_PARTITIONS", 0) or None,
        consumer_dedup=_env_flag("CONSUMER_DEDUP", False),
        dedup_ttl_seconds=_env_int("CONSUMER_DEDUP_TTL_SECONDS", 86400),
        persist_kind=os.getenv("PERSIST_KIND", "memory").lower(),
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_KEY"),
        recipients_table=os.getenv("SMS_RECIPIENTS_TABLE", "sms_recipients"),
        delivery_kind=os.getenv("DELIVERY_KIND", "noop").lower(),
        twilio_account_sid=os.getenv("TWILIO_ACCOUNT_SID"),
        twilio_auth_token=os.getenv("TWILIO_AUTH_TOKEN"),
        twilio_from_number=os.getenv("TWILIO_FROM_NUMBER"),
        blocklist_seed=_env_list("BLOCKLIST_SEED", "+1111111111"),
        server_host=os.getenv("SERVER_HOST", "0.0.0.0"),
        sender_port=_env_int("SENDER_PORT", 8080),
        store_port=_env_int("STORE_PORT", 8081),
        enable_metrics=_env_flag("ENABLE_METRICS", False),
        metrics_port=_env_int("METRICS_PORT", 8001),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
    settings.validate_required()
    return settings


__all__ = ["Settings", "ConfigError", "load_settings"]
