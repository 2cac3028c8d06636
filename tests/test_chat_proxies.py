# tests/test_chat_proxies.py
import httpx
import pytest
from fastapi.testclient import TestClient

from mobilewash.app import app
from mobilewash import llm_wrapper
from mobilewash.connectors import huggingface_connector as hf
from mobilewash.connectors import openrouter_connector
from mobilewash.errors import ProxyError, map_upstream_error
from mobilewash.prompts import ROLE_PROMPTS, OPENROUTER_SYSTEM_PROMPT, mock_response


@pytest.fixture
def client():
    return TestClient(app)


class FakeCompletion:
    """Records what was sent and returns a canned completion."""

    def __init__(self, text="Hello from the model"):
        self.text = text
        self.calls = []

    def __call__(self, provider, api_key, messages, model, **kwargs):
        self.calls.append({"provider": provider, "api_key": api_key, "messages": messages,
                           "model": model, **kwargs})
        return {"text": self.text, "model": model, "response_id": "resp-1", "raw": {}}


def _hf_response(status, payload=None, text=None):
    request = httpx.Request("POST", "https://api-inference.huggingface.co/models/x")
    if payload is not None:
        return httpx.Response(status, json=payload, request=request)
    return httpx.Response(status, text=text or "", request=request)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("path,env_name", [
    ("/api/openrouter", "OPENROUTER_API_KEY"),
    ("/api/deepseek", "OPENROUTER_API_KEY"),
    ("/api/llama2", "HUGGINGFACE_API_KEY"),
    ("/api/llama33", "HUGGINGFACE_API_KEY"),
    ("/api/ai", "OPENROUTER_API_KEY"),
])
def test_missing_key_is_configuration_error(client, path, env_name):
    r = client.post(path, json={"prompt": "hello", "messages": [{"role": "user", "content": "hello"}]})
    assert r.status_code == 500
    assert r.json() == {
        "error": "Configuration Error",
        "message": f"{env_name} environment variable is not set",
    }


# ---------------------------------------------------------------------------
# /api/openrouter
# ---------------------------------------------------------------------------
def test_openrouter_prepends_system_prompt_and_sanitizes(client, monkeypatch):
    fake = FakeCompletion(text='He said \\"hi\\"   and\n\nleft ')
    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", fake)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")

    r = client.post("/api/openrouter", json={"prompt": "Tell me a joke"})
    assert r.status_code == 200
    assert r.json() == {
        "responseText": 'He said "hi" and left',
        "selectedModel": "deepseek/deepseek-r1-0528-qwen3-8b:free",
    }
    sent = fake.calls[0]["messages"]
    assert sent[0] == {"role": "system", "content": OPENROUTER_SYSTEM_PROMPT}
    assert sent[1] == {"role": "user", "content": "Tell me a joke"}
    assert fake.calls[0]["api_key"] == "sk-test"


def test_openrouter_keeps_caller_system_message(client, monkeypatch):
    fake = FakeCompletion()
    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", fake)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    messages = [{"role": "system", "content": "Be brief"}, {"role": "user", "content": "Hi"}]

    r = client.post("/api/openrouter", json={"messages": messages, "model": "qwen/qwen-2.5-72b-instruct:free"})
    assert r.status_code == 200
    assert r.json()["selectedModel"] == "qwen/qwen-2.5-72b-instruct:free"
    assert fake.calls[0]["messages"] == messages


def test_openrouter_prompt_with_empty_messages(client, monkeypatch):
    fake = FakeCompletion()
    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", fake)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")

    r = client.post("/api/openrouter", json={"prompt": "hi there", "messages": []})
    assert r.status_code == 200
    assert fake.calls[0]["messages"][-1] == {"role": "user", "content": "hi there"}


@pytest.mark.parametrize("upstream,expected_status,expected_body", [
    (401, 401, {"error": "Unauthorized", "message": "Invalid OpenRouter API key"}),
    (429, 429, {"error": "Rate Limit Exceeded", "message": "Rate limit exceeded. Please try again later."}),
    (400, 400, {"error": "Bad Request", "message": "OpenRouter API error: 400 bad model"}),
])
def test_openrouter_upstream_errors_are_mapped(client, monkeypatch, upstream, expected_status, expected_body):
    def failing(provider, api_key, messages, model, **kwargs):
        text = "bad model" if upstream == 400 else ""
        raise map_upstream_error("OpenRouter", upstream, text)

    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", failing)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    r = client.post("/api/openrouter", json={"prompt": "hi"})
    assert r.status_code == expected_status
    assert r.json() == expected_body


def test_transport_error_is_503(client, monkeypatch):
    def unreachable(provider, api_key, messages, model, **kwargs):
        raise ProxyError(503, "OpenRouter is unreachable: timed out", provider="OpenRouter")

    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", unreachable)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    r = client.post("/api/openrouter", json={"prompt": "hi"})
    assert r.status_code == 503
    assert r.json()["error"] == "Service Unavailable"


def test_mock_llm_mode_needs_no_key(client, monkeypatch):
    monkeypatch.setattr(llm_wrapper, "MOCK_LLM", True)
    r = client.post("/api/openrouter", json={"prompt": "echo me"})
    assert r.status_code == 200
    assert r.json()["responseText"] == "echo me"


# ---------------------------------------------------------------------------
# /api/deepseek
# ---------------------------------------------------------------------------
def test_deepseek_applies_role_prompt_and_model(client, monkeypatch):
    fake = FakeCompletion(text="  A quote  ")
    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", fake)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")

    r = client.post("/api/deepseek", json={"prompt": "Sedan full detail", "role": "quotes"})
    assert r.status_code == 200
    assert r.json() == {"response": "A quote", "role": "assistant",
                        "model": "meta-llama/llama-3-8b-instruct:free"}
    assert fake.calls[0]["messages"] == [
        {"role": "user", "content": ROLE_PROMPTS["quotes"] + "Sedan full detail"}
    ]


def test_deepseek_auto_role_uses_keywords_without_hf_key(client, monkeypatch):
    fake = FakeCompletion()
    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", fake)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")

    r = client.post("/api/deepseek", json={"prompt": "Please summarize the main points", "role": "auto"})
    assert r.status_code == 200
    assert r.json()["model"] == "mistralai/mistral-7b-instruct:free"
    assert fake.calls[0]["messages"][0]["content"].startswith(ROLE_PROMPTS["summaries"])


def test_deepseek_ignores_unknown_explicit_model(client, monkeypatch):
    fake = FakeCompletion()
    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", fake)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")

    r = client.post("/api/deepseek", json={"prompt": "hi", "model": "deepseek-chat"})
    assert r.json()["model"] == "deepseek/deepseek-r1-0528-qwen3-8b:free"


def test_deepseek_prefixes_last_user_message(client, monkeypatch):
    fake = FakeCompletion()
    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", fake)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    messages = [
        {"role": "user", "content": "first"},
        {"role": "assistant", "content": "reply"},
        {"role": "user", "content": "second"},
    ]
    r = client.post("/api/deepseek", json={"messages": messages})
    assert r.status_code == 200
    sent = fake.calls[0]["messages"]
    assert sent[0]["content"] == "first"
    assert sent[2]["content"] == ROLE_PROMPTS["chat"] + "second"


def test_deepseek_empty_completion_gets_apology(client, monkeypatch):
    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", FakeCompletion(text="   "))
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    r = client.post("/api/deepseek", json={"prompt": "hi"})
    assert r.json()["response"].startswith("I apologize")


# ---------------------------------------------------------------------------
# Hugging Face proxies
# ---------------------------------------------------------------------------
def test_llama2_success_cleans_output(client, monkeypatch):
    seen = {}

    def fake_post(url, payload, headers=None, timeout=None):
        seen.update(url=url, payload=payload, headers=headers)
        return _hf_response(200, [{"generated_text": "<s>We offer ceramic coating.</s>"}])

    monkeypatch.setattr(hf, "_post_json", fake_post)
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-test")

    r = client.post("/api/llama2", json={"prompt": "Do you do coatings?", "model": "llama2-7b-chat"})
    assert r.status_code == 200
    assert r.json() == {
        "responseText": "We offer ceramic coating.",
        "model": "meta-llama/Llama-2-7b-chat-hf",
        "modelKey": "llama2-7b-chat",
    }
    assert seen["url"].endswith("/meta-llama/Llama-2-7b-chat-hf")
    assert seen["payload"]["inputs"].startswith("<s>[INST] <<SYS>>")
    assert seen["payload"]["parameters"]["return_full_text"] is False
    assert seen["headers"]["Authorization"] == "Bearer hf-test"


def test_llama2_unknown_model_key_uses_base_model(client, monkeypatch):
    monkeypatch.setattr(hf, "_post_json", lambda *a, **k: _hf_response(200, {"generated_text": "ok"}))
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-test")
    r = client.post("/api/llama2", json={"prompt": "hi", "model": "gpt-9"})
    assert r.json()["modelKey"] == "llama2-7b"
    assert r.json()["model"] == "meta-llama/Llama-2-7b"


def test_llama2_model_loading_is_503(client, monkeypatch):
    monkeypatch.setattr(hf, "_post_json", lambda *a, **k: _hf_response(503, text="loading"))
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-test")
    r = client.post("/api/llama2", json={"prompt": "hi"})
    assert r.status_code == 503
    assert r.json() == {
        "error": "Service Unavailable",
        "message": "Model is loading. Please try again in a few minutes.",
        "model": "meta-llama/Llama-2-7b",
    }


def test_llama2_transport_error_is_503(client, monkeypatch):
    def boom(*args, **kwargs):
        raise httpx.ConnectTimeout("timed out")

    monkeypatch.setattr(hf, "_post_json", boom)
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-test")
    r = client.post("/api/llama2", json={"prompt": "hi"})
    assert r.status_code == 503


def test_llama33_formats_messages_and_strips_echo(client, monkeypatch):
    seen = {}

    def fake_post(url, payload, headers=None, timeout=None):
        seen["payload"] = payload
        return _hf_response(200, [{"generated_text": "User: hi\nAssistant: Hello there</s>"}])

    monkeypatch.setattr(hf, "_post_json", fake_post)
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-test")
    r = client.post("/api/llama33", json={"messages": [{"role": "user", "content": "hi"}]})
    assert r.status_code == 200
    assert r.json() == {"responseText": "Hello there", "selectedModel": "meta-llama/Llama-3.3-70B-Instruct"}
    assert seen["payload"]["inputs"] == "user: hi"


def test_llama33_prompt_with_empty_messages(client, monkeypatch):
    seen = {}

    def fake_post(url, payload, headers=None, timeout=None):
        seen["payload"] = payload
        return _hf_response(200, [{"generated_text": "Hello there"}])

    monkeypatch.setattr(hf, "_post_json", fake_post)
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-test")
    r = client.post("/api/llama33", json={"prompt": "hi there", "messages": []})
    assert r.status_code == 200
    assert r.json()["responseText"] == "Hello there"
    assert seen["payload"]["inputs"].endswith("User: hi there\nAssistant:")


# ---------------------------------------------------------------------------
# /api/openai
# ---------------------------------------------------------------------------
def test_openai_without_key_returns_canned_reply(client):
    r = client.post("/api/openai", json={"prompt": "hi", "role": "reasoning"})
    assert r.status_code == 200
    assert r.json() == {"response": mock_response("reasoning"), "role": "assistant", "model": "mock"}


def test_openai_with_key_calls_provider(client, monkeypatch):
    fake = FakeCompletion(text="Use a pH-neutral shampoo.")
    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", fake)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
    r = client.post("/api/openai", json={"prompt": "How do I wash my car?"})
    assert r.status_code == 200
    assert r.json()["response"] == "Use a pH-neutral shampoo."
    assert fake.calls[0]["provider"] == "openai"
    assert fake.calls[0]["max_tokens"] == 500


def test_openai_upstream_failure_falls_back_to_canned_reply(client, monkeypatch):
    def failing(*args, **kwargs):
        raise ProxyError(500, "OpenAI API error: 500")

    monkeypatch.setattr(llm_wrapper, "_real_chat_completion", failing)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
    r = client.post("/api/openai", json={"prompt": "hi"})
    assert r.status_code == 200
    assert r.json()["response"] == mock_response("chat")


# ---------------------------------------------------------------------------
# /api/ai raw relay
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("ua", ["curl/8.0", "Googlebot/2.1", "python-requests/2.31", "Scrapy/2.11"])
def test_ai_blocks_bots(client, monkeypatch, ua):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    r = client.post("/api/ai", json={"messages": []}, headers={"User-Agent": ua})
    assert r.status_code == 403
    assert r.json() == {"error": "Access denied"}


def test_ai_relays_upstream_status_and_body(client, monkeypatch):
    seen = {}

    def fake_post(url, payload, headers, timeout=None):
        seen.update(payload=payload, headers=headers)
        return httpx.Response(402, json={"error": {"message": "Insufficient credits"}},
                              request=httpx.Request("POST", url))

    monkeypatch.setattr(openrouter_connector, "_post_json", fake_post)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    body = {"messages": [{"role": "user", "content": "hi"}], "temperature": 0.2}
    r = client.post("/api/ai", json=body, headers={"Referer": "https://example.test/"})
    assert r.status_code == 402
    assert r.json() == {"error": {"message": "Insufficient credits"}}
    assert seen["payload"]["model"] == "deepseek/deepseek-r1-distill-llama-70b:free"
    assert seen["payload"]["max_tokens"] == 500
    assert seen["payload"]["temperature"] == 0.2
    assert seen["headers"]["HTTP-Referer"] == "https://example.test/"


def test_ai_rejects_non_object_body(client, monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    r = client.post("/api/ai", json=[1, 2, 3])
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid JSON"}


def test_relay_body_lets_client_override_defaults():
    body = openrouter_connector.build_relay_body({"model": "qwen/qwen3-30b-a3b:free", "stream": False})
    assert body["model"] == "qwen/qwen3-30b-a3b:free"
    assert body["messages"] == []
    assert body["max_tokens"] == 500
    assert body["temperature"] == 0.7
    assert body["stream"] is False
