# mobilewash/processors/auto_router.py
"""
Auto mode: pick a proxy endpoint/model by keyword match, forward the request
to it, and retry once against the fallback route on failure.

Categories are checked in a fixed priority order (business, creative,
technical, reasoning); the first keyword hit wins. No match -> fallback.
"""

import os
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Tuple

import httpx

from mobilewash import monitoring
from mobilewash.errors import bad_request
from mobilewash.schemas import AutoModeInfo

UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))

AUTO_MODE_ROUTING: Dict[str, Dict[str, Any]] = {
    "business": {
        "keywords": ["service", "price", "cost", "location", "appointment", "contact", "hours",
                     "detailing", "wash", "ceramic", "graphene", "mini", "luxury", "max",
                     "beverly hills", "orange county", "los angeles", "jay", "mobile",
                     "car wash", "auto detailing"],
        "endpoint": "/api/llama2",
        "model": "llama2-7b-chat",
        "label": "Business",
        "confidence": 0.9,
    },
    "creative": {
        "keywords": ["write", "story", "poem", "creative", "imagine", "design", "art", "music",
                     "compose", "generate", "create"],
        "endpoint": "/api/openrouter",
        "model": "deepseek/deepseek-r1:free",
        "label": "Creative",
        "confidence": 0.8,
    },
    "technical": {
        "keywords": ["code", "programming", "technical", "develop", "debug", "algorithm",
                     "software", "api", "function", "javascript", "python", "html", "css",
                     "database"],
        "endpoint": "/api/openrouter",
        "model": "qwen/qwen-2.5-72b-instruct:free",
        "label": "Technical",
        "confidence": 0.8,
    },
    "reasoning": {
        "keywords": ["analyze", "explain", "why", "how", "reason", "logic", "compare",
                     "evaluate", "calculate", "solve", "problem", "think"],
        "endpoint": "/api/openrouter",
        "model": "meta-llama/llama-3.3-70b-instruct:free",
        "label": "Reasoning",
        "confidence": 0.7,
    },
    "fallback": {
        "keywords": [],
        "endpoint": "/api/deepseek",
        "model": "deepseek-chat",
        "label": "Fallback",
        "confidence": 0.5,
    },
}

PRIORITY: List[str] = ["business", "creative", "technical", "reasoning"]


@dataclass
class RouteSelection:
    category: str
    endpoint: str
    model: str
    reason: str
    confidence: float

    def auto_mode_block(self) -> Dict[str, str]:
        return AutoModeInfo(
            selectedCategory=self.category,
            selectedModel=self.model,
            selectedEndpoint=self.endpoint,
            reason=self.reason,
        ).model_dump()


class ForwardError(Exception):
    """Raised when a forwarded proxy call fails (non-2xx or transport error)."""


def _selection(category: str, reason: str) -> RouteSelection:
    conf = AUTO_MODE_ROUTING[category]
    return RouteSelection(category, conf["endpoint"], conf["model"], reason, conf["confidence"])


def select_best_model(prompt: str) -> RouteSelection:
    lower = prompt.lower()
    for category in PRIORITY:
        for keyword in AUTO_MODE_ROUTING[category]["keywords"]:
            if keyword in lower:
                label = AUTO_MODE_ROUTING[category]["label"]
                return _selection(category, f'{label} query detected (keyword: "{keyword}")')
    return _selection("fallback", "No specific category detected, using fallback")


def base_url() -> str:
    explicit = os.getenv("AUTO_MODE_BASE_URL", "").strip()
    if explicit:
        return explicit.rstrip("/")
    vercel = os.getenv("VERCEL_URL", "").strip()
    if vercel:
        return f"https://{vercel}"
    return "http://localhost:3000"


def _post_json(url: str, payload: Dict[str, Any],
               timeout: float = UPSTREAM_TIMEOUT_SECONDS) -> httpx.Response:
    with httpx.Client(timeout=timeout) as http:
        return http.post(url, json=payload)


def _forward_request(endpoint: str, body: Dict[str, Any], model: str) -> Dict[str, Any]:
    """POST body (model overridden) to one of our own proxy routes."""
    forward_body = {**body, "model": model}
    url = f"{base_url()}{endpoint}"
    try:
        resp = _post_json(url, forward_body)
    except httpx.HTTPError as e:
        raise ForwardError(f"Forwarded request failed: {e}")
    if resp.status_code < 200 or resp.status_code >= 300:
        raise ForwardError(f"Forwarded request failed: {resp.status_code} {resp.reason_phrase}")
    try:
        return resp.json()
    except ValueError:
        raise ForwardError("Forwarded request failed: response was not JSON")


def extract_prompt(body: Dict[str, Any]) -> str:
    """The prompt field, or the last user message when only messages were sent."""
    prompt = body.get("prompt")
    if isinstance(prompt, str) and prompt.strip():
        return prompt
    messages = body.get("messages")
    if isinstance(messages, list):
        for msg in reversed(messages):
            if isinstance(msg, dict) and msg.get("role") == "user" and msg.get("content"):
                return str(msg["content"])
    return ""


def with_prompt(body: Dict[str, Any], prompt: str) -> Dict[str, Any]:
    """
    The client body with the routed prompt filled in, so proxies that only
    read `prompt` see messages-only requests too. An empty messages list is
    dropped since some proxies reject it.
    """
    out = {**body, "prompt": prompt}
    if out.get("messages") == []:
        del out["messages"]
    return out


def _merge(result: Any, selection: RouteSelection, reason: Optional[str] = None) -> Dict[str, Any]:
    merged = dict(result) if isinstance(result, dict) else {"response": result}
    block = selection.auto_mode_block()
    if reason:
        block["reason"] = reason
    merged["autoMode"] = block
    merged["selectedModel"] = selection.model
    return merged


def handle_auto(body: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
    """Returns (status, response body)."""
    prompt = extract_prompt(body)
    if not prompt:
        raise bad_request("Prompt is required")

    body = with_prompt(body, prompt)
    selection = select_best_model(prompt)
    monitoring.inc_auto_selection(selection.category)
    monitoring.logger.info(
        "Auto mode selection",
        extra={**asdict(selection), "prompt": prompt[:100]},
    )

    try:
        result = _forward_request(selection.endpoint, body, selection.model)
        return 200, _merge(result, selection)
    except ForwardError as forward_error:
        monitoring.logger.warning(
            "Forward request failed, trying fallback",
            extra={"category": selection.category, "error": str(forward_error)},
        )
        if selection.category == "fallback":
            monitoring.inc_auto_fallback("failed")
            return 500, {
                "error": "Auto mode failed: fallback model failed",
                "details": str(forward_error),
            }

        fallback = _selection("fallback", selection.reason)
        try:
            result = _forward_request(fallback.endpoint, body, fallback.model)
        except ForwardError as fallback_error:
            monitoring.inc_auto_fallback("failed")
            monitoring.logger.error(
                "Fallback also failed",
                extra={"selected_error": str(forward_error), "fallback_error": str(fallback_error)},
            )
            return 500, {
                "error": "Auto mode failed: both selected model and fallback failed",
                "details": {
                    "selectedError": str(forward_error),
                    "fallbackError": str(fallback_error),
                },
            }
        monitoring.inc_auto_fallback("recovered")
        return 200, _merge(
            result, fallback,
            reason=f"Original selection failed, using fallback ({selection.reason})",
        )
