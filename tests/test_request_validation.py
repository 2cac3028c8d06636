# tests/test_request_validation.py
"""Bad input is rejected with 400 before any upstream call is attempted."""
import pytest
from fastapi.testclient import TestClient

from mobilewash.app import app
from mobilewash import llm_wrapper
from mobilewash.connectors import huggingface_connector as hf


@pytest.fixture
def client(monkeypatch):
    def _no_network(*args, **kwargs):
        raise AssertionError("upstream must not be called for invalid input")

    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", _no_network)
    monkeypatch.setattr(hf, "_post_json", _no_network)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-test")
    return TestClient(app)


def test_missing_body_is_400(client):
    r = client.post("/api/openrouter")
    assert r.status_code == 400
    assert r.json()["error"] == "Bad Request"


def test_malformed_json_is_400(client):
    r = client.post("/api/deepseek", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json() == {"error": "Bad Request", "message": "Invalid JSON"}


def test_non_string_prompt_is_400(client):
    r = client.post("/api/openrouter", json={"prompt": 123})
    assert r.status_code == 400
    assert r.json()["message"].startswith("prompt:")


@pytest.mark.parametrize("path", ["/api/openrouter", "/api/llama33"])
def test_prompt_or_messages_required(client, path):
    r = client.post(path, json={"prompt": "   "})
    assert r.status_code == 400
    assert r.json()["message"] == "Prompt or messages array is required"


def test_deepseek_requires_prompt(client):
    r = client.post("/api/deepseek", json={"role": "chat"})
    assert r.status_code == 400
    assert r.json()["message"] == "prompt is required and must be a string"


def test_deepseek_rejects_empty_messages(client):
    r = client.post("/api/deepseek", json={"messages": []})
    assert r.status_code == 400
    assert r.json()["message"] == "messages array cannot be empty"


def test_deepseek_rejects_message_without_content(client):
    r = client.post("/api/deepseek", json={"messages": [{"role": "user"}]})
    assert r.status_code == 400
    assert r.json()["message"] == "Each message must have role and content"


@pytest.mark.parametrize("path", ["/api/openrouter", "/api/deepseek", "/api/llama2", "/api/openai", "/api/auto"])
def test_oversized_prompt_is_400(client, path):
    r = client.post(path, json={"prompt": "x" * 10001})
    assert r.status_code == 400
    assert r.json()["message"] == "prompt is too long (max 10000 characters)"


def test_llama2_requires_prompt(client):
    r = client.post("/api/llama2", json={})
    assert r.status_code == 400
    assert r.json()["message"] == "Prompt is required"


@pytest.mark.parametrize("path", ["/api/vision", "/api/image-analysis"])
def test_image_required(client, path):
    r = client.post(path, json={"prompt": "look at this"})
    assert r.status_code == 400
    assert r.json()["message"] == "image is required and must be a base64 string"


def test_openai_empty_prompt(client):
    r = client.post("/api/openai", json={"prompt": "   "})
    assert r.status_code == 400
    assert r.json()["message"] == "prompt cannot be empty"


def test_auto_requires_prompt(client):
    r = client.post("/api/auto", json={"role": "chat"})
    assert r.status_code == 400
    assert r.json()["message"] == "Prompt is required"
