# mobilewash/monitoring.py
"""
Metrics, logging and error reporting for the API and its upstream providers.

The recording helpers swallow their own errors.

Env vars:
- PROMETHEUS_ENABLED (default: true)
- SENTRY_DSN (optional)
- LOG_AS_JSON (default: true)
- LOG_LEVEL (default: INFO)
- ENVIRONMENT (default: development)
"""

import os
import logging
import time
from typing import Tuple

import sentry_sdk
from prometheus_client import (
    Counter, Histogram, Gauge,
    generate_latest, CONTENT_TYPE_LATEST, REGISTRY,
)
from pythonjsonlogger import jsonlogger

# --- ENV flags
PROMETHEUS_ENABLED = os.getenv("PROMETHEUS_ENABLED", "true").lower() in ("1", "true", "yes")
SENTRY_DSN = os.getenv("SENTRY_DSN", None)
LOG_AS_JSON = os.getenv("LOG_AS_JSON", "true").lower() in ("1", "true", "yes")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


# --- Logging
def setup_logger(name: str = "mobilewash", level: int = None) -> logging.Logger:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO")) if level is None else level
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        if LOG_AS_JSON:
            fmt = jsonlogger.JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s"
            )
            handler.setFormatter(fmt)
        logger.addHandler(handler)
    return logger


logger = setup_logger()

# --- Sentry (optional)
if SENTRY_DSN:
    sentry_sdk.init(dsn=SENTRY_DSN, environment=ENVIRONMENT)
    logger.info("Sentry initialized")


# --- Prometheus metrics
REQUEST_COUNT = Counter(
    "mobilewash_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "mobilewash_request_latency_seconds",
    "Request latency in seconds",
    ["endpoint"],
)

UPSTREAM_CALLS = Counter(
    "mobilewash_upstream_calls_total",
    "Outbound calls to third-party AI providers",
    ["provider", "outcome"],
)

UPSTREAM_LATENCY = Histogram(
    "mobilewash_upstream_latency_seconds",
    "Latency of outbound provider calls",
    ["provider"],
)

AUTO_MODE_SELECTIONS = Counter(
    "mobilewash_auto_mode_selections_total",
    "Auto mode routing decisions",
    ["category"],
)

AUTO_MODE_FALLBACKS = Counter(
    "mobilewash_auto_mode_fallbacks_total",
    "Auto mode fallbacks after the selected proxy failed",
    ["outcome"],
)

CIRCUIT_STATE = Gauge(
    "mobilewash_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=half_open, 2=open)",
    ["circuit"],
)

RATE_LIMITED = Counter(
    "mobilewash_rate_limited_total",
    "Requests rejected by the rate limiter or bot filter",
    ["reason"],
)

_CIRCUIT_STATE_VALUES = {"CLOSED": 0, "HALF_OPEN": 1, "OPEN": 2}


# --- Recording helpers
def observe_request(start_ts: float, endpoint: str, method: str, status: str):
    try:
        REQUEST_LATENCY.labels(endpoint=endpoint).observe(time.time() - start_ts)
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status).inc()
    except Exception:
        pass


def observe_upstream(start_ts: float, provider: str, outcome: str):
    try:
        UPSTREAM_LATENCY.labels(provider=provider).observe(time.time() - start_ts)
        UPSTREAM_CALLS.labels(provider=provider, outcome=outcome).inc()
    except Exception:
        pass


def inc_auto_selection(category: str):
    try:
        AUTO_MODE_SELECTIONS.labels(category=category).inc()
    except Exception:
        pass


def inc_auto_fallback(outcome: str):
    try:
        AUTO_MODE_FALLBACKS.labels(outcome=outcome).inc()
    except Exception:
        pass


def set_circuit_state(circuit: str, state: str):
    try:
        CIRCUIT_STATE.labels(circuit=circuit).set(_CIRCUIT_STATE_VALUES.get(state, 0))
    except Exception:
        pass


def inc_rate_limited(reason: str):
    try:
        RATE_LIMITED.labels(reason=reason).inc()
    except Exception:
        pass


def prometheus_metrics_response() -> Tuple[bytes, str]:
    """Return (body_bytes, content_type) for Prometheus scrape."""
    try:
        return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
    except Exception:
        return b"", CONTENT_TYPE_LATEST
