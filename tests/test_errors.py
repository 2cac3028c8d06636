# tests/test_errors.py
import httpx
import pytest

from mobilewash.errors import (
    MODEL_LOADING_MESSAGE,
    RATE_LIMIT_MESSAGE,
    ProxyError,
    counts_as_upstream_failure,
    error_category,
    map_upstream_error,
)


@pytest.mark.parametrize("status,category", [
    (400, "Bad Request"),
    (401, "Unauthorized"),
    (429, "Rate Limit Exceeded"),
    (500, "Configuration Error"),
    (503, "Service Unavailable"),
    (502, "Internal Server Error"),
])
def test_error_category(status, category):
    assert error_category(status) == category


def test_map_upstream_error_mirrors_status():
    err = map_upstream_error("OpenRouter", 401, "nope", model="m")
    assert (err.status, err.message) == (401, "Invalid OpenRouter API key")
    assert err.to_dict() == {"error": "Unauthorized", "message": "Invalid OpenRouter API key", "model": "m"}

    assert map_upstream_error("OpenRouter", 429).message == RATE_LIMIT_MESSAGE
    assert map_upstream_error("OpenRouter", 400, "bad model").message == "OpenRouter API error: 400 bad model"


def test_model_loading_only_for_loading_aware_providers():
    assert map_upstream_error("Hugging Face", 503, loading_aware=True).message == MODEL_LOADING_MESSAGE
    assert map_upstream_error("OpenRouter", 503, "down").message == "OpenRouter API error: 503 down"


@pytest.mark.parametrize("exc,counted", [
    (ProxyError(400, "bad"), False),
    (ProxyError(401, "key"), False),
    (ProxyError(429, "slow down"), True),
    (ProxyError(503, "down"), True),
    (httpx.ConnectError("refused"), True),
])
def test_counts_as_upstream_failure(exc, counted):
    assert counts_as_upstream_failure(exc) is counted
