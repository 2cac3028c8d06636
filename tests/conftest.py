# tests/conftest.py
import pytest

from mobilewash import access
from mobilewash import llm_wrapper
from mobilewash import circuit_breaker as cbmod


@pytest.fixture(autouse=True)
def isolate_global_state(monkeypatch):
    """Fresh breakers, no rate limiting and real (monkeypatched) upstream paths per test."""
    cbmod.registry.clear()
    monkeypatch.setattr(cbmod, "CIRCUIT_BREAKER_ENABLED", True)
    monkeypatch.setattr(access, "RATE_LIMIT_ENABLED", False)
    monkeypatch.setattr(llm_wrapper, "MOCK_LLM", False)
    for key in ("OPENROUTER_API_KEY", "HUGGINGFACE_API_KEY", "GOOGLE_VISION_API_KEY",
                "HF_API_KEY", "OPENAI_API_KEY", "AUTO_MODE_BASE_URL", "VERCEL_URL"):
        monkeypatch.delenv(key, raising=False)
    yield
    cbmod.registry.clear()
