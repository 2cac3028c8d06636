# mobilewash/connectors/openrouter_connector.py
"""
Raw OpenRouter passthrough used by /api/ai: the client body is relayed as-is
(over a few defaults) and the upstream status/JSON come back unchanged.
"""

import os
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from mobilewash import monitoring
from mobilewash.circuit_breaker import CircuitBreakerError, protected_call
from mobilewash.errors import ProxyError, counts_as_upstream_failure
from mobilewash.prompts import BUSINESS_NAME

OPENROUTER_CHAT_URL = os.getenv("OPENROUTER_CHAT_URL", "https://openrouter.ai/api/v1/chat/completions")
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))
SITE_URL = os.getenv("SITE_URL", "https://jaysmobilewash.net")

RELAY_DEFAULT_MODEL = "deepseek/deepseek-r1-distill-llama-70b:free"
RELAY_DEFAULT_MAX_TOKENS = 500
RELAY_DEFAULT_TEMPERATURE = 0.7


def build_relay_body(body: Dict[str, Any]) -> Dict[str, Any]:
    """Defaults first, then every client key on top."""
    payload = {
        "model": RELAY_DEFAULT_MODEL,
        "messages": body.get("messages") or [],
        "max_tokens": body.get("max_tokens") or RELAY_DEFAULT_MAX_TOKENS,
        "temperature": body.get("temperature") or RELAY_DEFAULT_TEMPERATURE,
    }
    payload.update(body)
    return payload


def _post_json(url: str, payload: Dict[str, Any], headers: Dict[str, str],
               timeout: float = UPSTREAM_TIMEOUT_SECONDS) -> httpx.Response:
    with httpx.Client(timeout=timeout) as http:
        return http.post(url, json=payload, headers=headers)


def relay_chat(api_key: str, body: Dict[str, Any],
               referer: Optional[str] = None) -> Tuple[int, Any]:
    """Forward a chat-completions body; return (upstream status, upstream JSON)."""
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "HTTP-Referer": referer or SITE_URL,
        "X-Title": BUSINESS_NAME,
    }
    payload = build_relay_body(body)

    def _do() -> Tuple[int, Any]:
        try:
            resp = _post_json(OPENROUTER_CHAT_URL, payload, headers)
        except httpx.HTTPError as e:
            raise ProxyError(503, f"OpenRouter is unreachable: {e}", provider="OpenRouter")
        try:
            data = resp.json()
        except ValueError:
            data = {"error": resp.text}
        # Upstream health still matters for the breaker even though the status is relayed
        if resp.status_code >= 500 or resp.status_code == 429:
            raise _RelayedFailure(resp.status_code, data)
        return resp.status_code, data

    start = time.time()
    try:
        status, data = protected_call(
            "openrouter_relay", _do, is_failure=_relay_is_failure,
        )
    except _RelayedFailure as e:
        monitoring.observe_upstream(start, "openrouter_relay", f"http_{e.status}")
        return e.status, e.data
    except CircuitBreakerError:
        monitoring.observe_upstream(start, "openrouter_relay", "circuit_open")
        raise
    except ProxyError as e:
        monitoring.observe_upstream(start, "openrouter_relay", f"http_{e.status}")
        raise
    monitoring.observe_upstream(start, "openrouter_relay", "success" if status < 400 else f"http_{status}")
    return status, data


class _RelayedFailure(Exception):
    def __init__(self, status: int, data: Any):
        super().__init__(f"upstream status {status}")
        self.status = status
        self.data = data


def _relay_is_failure(exc: BaseException) -> bool:
    if isinstance(exc, _RelayedFailure):
        return True
    return counts_as_upstream_failure(exc)
