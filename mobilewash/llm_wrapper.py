# mobilewash/llm_wrapper.py
"""
Centralized chat-completion wrapper. OpenRouter and OpenAI both speak the
OpenAI chat-completions protocol, so one SDK serves both.
Returns a standardized dict:
{
  "text": "<assistant text>",
  "model": "<model used>",
  "response_id": "<model response id if available>",
  "raw": <raw response object>
}

Configuration (env vars):
  OPENROUTER_API_KEY=...          (read per call)
  OPENAI_API_KEY=...              (read per call)
  OPENAI_MODEL=...                (default: gpt-3.5-turbo)
  SITE_URL=...                    (OpenRouter HTTP-Referer, default https://jaysmobilewash.net)
  UPSTREAM_TIMEOUT_SECONDS=30
  MOCK_LLM=true                   (deterministic offline replies for dev/tests)

Usage:
  from mobilewash.llm_wrapper import call_chat
  resp = call_chat(messages=..., model="deepseek/deepseek-r1:free", provider="openrouter")
  text = resp["text"]; model = resp["model"]; rid = resp["response_id"]
"""

import os
import time
from typing import Dict, Any, Optional, List

import openai
from openai import OpenAI

from mobilewash import monitoring
from mobilewash.circuit_breaker import CircuitBreakerError, protected_call
from mobilewash.errors import ProxyError, map_upstream_error, missing_key, counts_as_upstream_failure

MOCK_LLM = os.getenv("MOCK_LLM", "false").lower() in ("1", "true", "yes")
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))
SITE_URL = os.getenv("SITE_URL", "https://jaysmobilewash.net")
APP_TITLE = "JaysMobileWash"

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENAI_DEFAULT_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")

PROVIDERS = {
    "openrouter": {"label": "OpenRouter", "key_env": "OPENROUTER_API_KEY", "base_url": OPENROUTER_BASE_URL},
    "openai": {"label": "OpenAI", "key_env": "OPENAI_API_KEY", "base_url": None},
}


def resolve_api_key(env_name: str) -> str:
    """Read a provider key at call time; raise a 500 ProxyError when absent."""
    key = os.getenv(env_name, "").strip()
    if not key:
        raise missing_key(env_name)
    return key


def _make_client(provider: str, api_key: str, timeout: float) -> OpenAI:
    conf = PROVIDERS[provider]
    kwargs: Dict[str, Any] = {"api_key": api_key, "timeout": timeout, "max_retries": 0}
    if conf["base_url"]:
        kwargs["base_url"] = conf["base_url"]
    if provider == "openrouter":
        kwargs["default_headers"] = {"HTTP-Referer": SITE_URL, "X-Title": APP_TITLE}
    return OpenAI(**kwargs)


# ---------------------------------------------------------------------------
# Real backend
# ---------------------------------------------------------------------------
def _real_chat_completion(provider: str, api_key: str, messages: List[Dict[str, str]], model: str,
                          max_tokens: Optional[int] = None,
                          temperature: Optional[float] = None,
                          timeout: float = UPSTREAM_TIMEOUT_SECONDS) -> Dict[str, Any]:
    conf = PROVIDERS[provider]
    client = _make_client(provider, api_key, timeout)

    kwargs: Dict[str, Any] = {"model": model, "messages": messages}
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens
    if temperature is not None:
        kwargs["temperature"] = temperature

    try:
        resp = client.chat.completions.create(**kwargs)
    except openai.APIStatusError as e:
        text = e.response.text if e.response is not None else str(e)
        raise map_upstream_error(conf["label"], e.status_code, text, model=model)
    except (openai.APITimeoutError, openai.APIConnectionError) as e:
        raise ProxyError(503, f"{conf['label']} is unreachable: {e}", provider=conf["label"], model=model)

    choices = getattr(resp, "choices", None) or []
    text = None
    if choices and getattr(choices[0], "message", None) is not None:
        text = choices[0].message.content
    rid = getattr(resp, "id", None)
    return {"text": text, "model": model, "response_id": rid, "raw": resp}


# ---------------------------------------------------------------------------
# Mock backend
# ---------------------------------------------------------------------------
def _mock_llm(messages: List[Dict[str, str]], model: str, **kwargs) -> Dict[str, Any]:
    """
    Deterministic mock used in dev/tests. Returns the concatenation of user messages as text,
    and a deterministic response_id based on time.
    """
    user_texts = [m["content"] for m in messages if m.get("role") == "user"]
    text = ("\n\n").join(user_texts)[:1000]  # truncated
    rid = f"mock-{model}-{int(time.time() * 1000)}"
    return {"text": text, "model": model, "response_id": rid, "raw": {"mock": True}}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def call_chat(messages: List[Dict[str, str]], model: Optional[str] = None,
              provider: str = "openrouter",
              max_tokens: Optional[int] = None, temperature: Optional[float] = None,
              timeout: float = UPSTREAM_TIMEOUT_SECONDS) -> Dict[str, Any]:
    """
    messages: list of {role, content}
    model: model id understood by the provider
    Returns: dict with keys 'text','model','response_id','raw'
    Raises ProxyError with a client-facing status on any upstream problem.
    """
    if provider not in PROVIDERS:
        raise ValueError(f"Unknown provider: {provider}. Available: {list(PROVIDERS.keys())}")
    model = model or OPENAI_DEFAULT_MODEL
    if MOCK_LLM:
        return _mock_llm(messages, model=model)

    api_key = resolve_api_key(PROVIDERS[provider]["key_env"])
    start = time.time()
    try:
        result = protected_call(
            provider, _real_chat_completion, provider, api_key, messages, model,
            max_tokens=max_tokens, temperature=temperature, timeout=timeout,
            is_failure=counts_as_upstream_failure,
        )
    except CircuitBreakerError:
        monitoring.observe_upstream(start, provider, "circuit_open")
        raise
    except ProxyError as e:
        monitoring.observe_upstream(start, provider, f"http_{e.status}")
        monitoring.logger.error(
            "Upstream chat completion failed",
            extra={"provider": provider, "model": model, "status": e.status, "error": e.message},
        )
        raise
    monitoring.observe_upstream(start, provider, "success")
    return result
