# mobilewash/errors.py
"""
Shared error taxonomy for every proxy handler.

Handlers raise ProxyError; the app-level exception handler turns it into
{"error": <category>, "message": ...} with the matching HTTP status.
"""

from typing import Any, Dict, Optional

ERROR_CATEGORIES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    429: "Rate Limit Exceeded",
    500: "Configuration Error",
    503: "Service Unavailable",
}

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
MODEL_LOADING_MESSAGE = "Model is loading. Please try again in a few minutes."


def error_category(status: int) -> str:
    return ERROR_CATEGORIES.get(status, "Internal Server Error")


class ProxyError(Exception):
    """An error with an HTTP status that is safe to return to the client."""

    def __init__(self, status: int, message: str, provider: Optional[str] = None,
                 model: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.provider = provider
        self.model = model

    @property
    def category(self) -> str:
        return error_category(self.status)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.category, "message": self.message}
        if self.model:
            body["model"] = self.model
        return body


def bad_request(message: str) -> ProxyError:
    return ProxyError(400, message)


def missing_key(env_name: str) -> ProxyError:
    return ProxyError(500, f"{env_name} environment variable is not set")


def map_upstream_error(provider: str, status: int, text: str = "",
                       model: Optional[str] = None,
                       loading_aware: bool = False) -> ProxyError:
    """
    Translate a non-2xx provider response into a ProxyError that mirrors the
    upstream status. loading_aware is for Hugging Face, whose 503 means the
    model is still being loaded.
    """
    if status == 401:
        return ProxyError(401, f"Invalid {provider} API key", provider=provider, model=model)
    if status == 429:
        return ProxyError(429, RATE_LIMIT_MESSAGE, provider=provider, model=model)
    if status == 503 and loading_aware:
        return ProxyError(503, MODEL_LOADING_MESSAGE, provider=provider, model=model)
    return ProxyError(
        status,
        f"{provider} API error: {status} {text}".strip(),
        provider=provider,
        model=model,
    )


def counts_as_upstream_failure(exc: BaseException) -> bool:
    """True for errors that say something about provider health (5xx, 429, transport)."""
    if isinstance(exc, ProxyError):
        return exc.status >= 500 or exc.status == 429
    return True
