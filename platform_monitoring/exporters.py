from typing import Dict, Any, Union
import logging
import os
import re
import threading

from prometheus_client import REGISTRY, Counter, start_http_server

_SECRET_KEY_RE = re.compile(r"(?i)(key|token|secret|authorization|apikey|api_key|password|passwd|bearer)")
_SECRET_VAL_RE = re.compile(r"(?i)^(?:sk|ghp|hf|xox|ya29|eyJ|pk_|rk_|AC[0-9a-f]{8})[A-Za-z0-9\-\._]{8,}$")


def _mask_value(v: Any) -> Any:
    if isinstance(v, str):
        # mask long token-like strings
        if _SECRET_VAL_RE.search(v.strip()):
            return "***REDACTED***"
        # redact bearer tokens in headers-like strings
        if v.lower().startswith("bearer "):
            return "Bearer ***REDACTED***"
    return v


def _sanitize(obj: Any) -> Any:
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for k, v in obj.items():
            if _SECRET_KEY_RE.search(str(k)):
                out[k] = "***REDACTED***"
            else:
                out[k] = _sanitize(v)
        return out
    if isinstance(obj, (list, tuple)):
        return [_sanitize(x) for x in obj]
    return _mask_value(obj)


logger = logging.getLogger('platform_monitoring')

_configured = False
_configure_lock = threading.Lock()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once per process.

    LOG_LEVEL (env) is used when `level` is not given. Safe to call repeatedly.
    """
    global _configured
    with _configure_lock:
        if _configured:
            return
        name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
        logging.basicConfig(
            level=getattr(logging, name, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        # Suppress noisy HTTP client logs
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("twilio.http_client").setLevel(logging.WARNING)
        _configured = True


def log_event(event: Union[str, Dict[str, Any]], payload: Dict[str, Any] | None = None, level: int = logging.INFO):
    """Log a monitoring event to the central logger.

    Flexible signature supports:
      - log_event({'event': 'name', ...})
      - log_event('name', {...}) (preferred)
    """
    if isinstance(event, str):
        record = {'event': event, **(payload or {})}
    else:
        record = event
    logger.log(level, 'MONITOR_EVENT %s', _sanitize(record))


# Counters are registered once on the default registry at import time.
_COUNTERS: Dict[str, Counter] = {
    "smsgate_dispatch_total": Counter(
        "smsgate_dispatch_total", "Send requests handled by the dispatcher", ["status"]
    ),
    "smsgate_publish_failures_total": Counter(
        "smsgate_publish_failures_total", "Outcome records that could not be published", ["kind"]
    ),
    "smsgate_consumer_records_total": Counter(
        "smsgate_consumer_records_total", "Outcome records seen by the consumer", ["outcome"]
    ),
}


def prometheus_metric(name: str, labels: Dict[str, str] | None = None, value: float = 1.0):
    counter = _COUNTERS.get(name)
    if counter is None:
        logger.warning('PROM_METRIC unknown counter %s labels=%s', name, labels)
        return
    if labels:
        counter.labels(**labels).inc(value)
    else:
        counter.inc(value)


def metric_value(name: str, labels: Dict[str, str] | None = None) -> float:
    """Current value of a counter (test/diagnostic helper)."""
    value = REGISTRY.get_sample_value(name, labels or {})
    return value or 0.0


def start_metrics_server(port: int) -> None:
    start_http_server(port)
    logger.info("metrics exporter listening on :%s", port)
