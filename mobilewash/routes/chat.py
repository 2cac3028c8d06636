# mobilewash/routes/chat.py
"""Chat proxy endpoints. Each validates, makes one upstream call and reshapes the result."""

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse

from mobilewash import monitoring
from mobilewash import access
from mobilewash.circuit_breaker import CircuitBreakerError
from mobilewash.connectors import huggingface_connector as hf
from mobilewash.connectors import openrouter_connector
from mobilewash.errors import ProxyError, bad_request
from mobilewash.llm_wrapper import call_chat, resolve_api_key, OPENAI_DEFAULT_MODEL
from mobilewash.processors import prompt_builder as pb
from mobilewash.processors import role_detector
from mobilewash.processors.auto_router import handle_auto
from mobilewash.processors.response_cleanup import (
    sanitize_openrouter,
    clean_llama2,
    clean_llama33,
    finalize_chat_text,
)
from mobilewash.prompts import AI_DISABLED_MESSAGE, mock_response
from mobilewash.schemas import ChatRequest

router = APIRouter()

OPENROUTER_DEFAULT_MODEL = "deepseek/deepseek-r1-0528-qwen3-8b:free"


@router.post("/api/openrouter")
def openrouter_proxy(req: ChatRequest):
    messages = pb.validate_messages(req.messages, allow_empty=True)
    pb.require_prompt_or_messages(req.prompt, messages)
    pb.check_prompt_length(req.prompt)

    model = req.model or OPENROUTER_DEFAULT_MODEL
    monitoring.logger.info("OpenRouter request", extra={"model": model, "prompt_preview": (req.prompt or "")[:200]})
    result = call_chat(
        pb.openrouter_messages((req.prompt or "").strip(), req.role, messages),
        model=model,
        provider="openrouter",
    )
    return {"responseText": sanitize_openrouter(result["text"]), "selectedModel": model}


@router.post("/api/deepseek")
def deepseek_proxy(req: ChatRequest):
    """
    Role-aware OpenRouter proxy. `role` picks both a prompt prefix and a model;
    role="auto" detects it from the prompt.
    """
    messages = pb.validate_messages(req.messages)
    prompt = (req.prompt or "").strip()
    if not messages and not prompt:
        raise bad_request("prompt is required and must be a string")
    pb.check_prompt_length(req.prompt)

    role = req.role or "chat"
    if role == "auto":
        role = role_detector.detect_role_auto(prompt or pb.last_user_content(messages))
    model = role_detector.select_model(role, req.model)
    monitoring.logger.info("DeepSeek request", extra={"selected_role": role, "model": model})

    result = call_chat(pb.deepseek_messages(prompt, role, messages), model=model, provider="openrouter")
    return {"response": finalize_chat_text(result["text"]), "role": "assistant", "model": model}


@router.post("/api/llama2")
def llama2_proxy(req: ChatRequest):
    prompt = (req.prompt or "").strip()
    if not prompt:
        raise bad_request("Prompt is required")
    pb.check_prompt_length(prompt)

    api_key = resolve_api_key("HUGGINGFACE_API_KEY")
    model_key = req.model if req.model in pb.LLAMA2_MODELS else pb.LLAMA2_DEFAULT_KEY
    model_name = pb.LLAMA2_MODELS[model_key]
    text = hf.generate_text(api_key, model_name, pb.llama2_prompt(prompt, model_key))
    return {"responseText": clean_llama2(text), "model": model_name, "modelKey": model_key}


@router.post("/api/llama33")
def llama33_proxy(req: ChatRequest):
    messages = pb.validate_messages(req.messages, allow_empty=True)
    pb.require_prompt_or_messages(req.prompt, messages)
    pb.check_prompt_length(req.prompt)

    api_key = resolve_api_key("HUGGINGFACE_API_KEY")
    model_name = pb.LLAMA33_MODELS.get(req.model or "", pb.LLAMA33_DEFAULT_MODEL)
    text = hf.generate_text(api_key, model_name, pb.llama33_prompt((req.prompt or "").strip(), messages))
    return {"responseText": clean_llama33(text), "selectedModel": model_name}


@router.post("/api/openai")
def openai_proxy(req: ChatRequest):
    prompt = (req.prompt or "").strip()
    if not req.prompt:
        raise bad_request("prompt is required and must be a string")
    if not prompt:
        raise bad_request("prompt cannot be empty")
    pb.check_prompt_length(req.prompt)
    role = req.role or "chat"

    try:
        resolve_api_key("OPENAI_API_KEY")
    except ProxyError:
        monitoring.logger.info("No OpenAI API key configured, returning canned response")
        return {"response": mock_response(role), "role": "assistant", "model": "mock"}

    try:
        result = call_chat(
            pb.openai_messages(prompt), model=OPENAI_DEFAULT_MODEL, provider="openai",
            max_tokens=500, temperature=0.7,
        )
    except (ProxyError, CircuitBreakerError) as e:
        # Canned reply keeps the widget usable while OpenAI is failing
        monitoring.logger.warning("OpenAI call failed, returning canned response", extra={"error": str(e)})
        return {"response": mock_response(role), "role": "assistant", "model": "mock"}
    return {"response": finalize_chat_text(result["text"]), "role": "assistant", "model": result["model"]}


@router.post("/api/ai")
def ai_relay(request: Request, body: Any = Body(None)):
    if access.is_blocked_user_agent(request.headers.get("user-agent")):
        return JSONResponse(status_code=403, content={"error": "Access denied"})
    if body is None:
        body = {}
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"error": "Invalid JSON"})

    api_key = resolve_api_key("OPENROUTER_API_KEY")
    referer = request.headers.get("referer") or request.headers.get("origin")
    status, data = openrouter_connector.relay_chat(api_key, body, referer=referer)
    return JSONResponse(status_code=status, content=data)


@router.post("/api/none")
def ai_disabled(body: Any = Body(None)):
    return {"responseText": AI_DISABLED_MESSAGE, "selectedModel": "none", "disabled": True}


@router.post("/api/auto")
def auto_mode(req: ChatRequest):
    pb.check_prompt_length(req.prompt)
    status, content = handle_auto(req.forward_body())
    return JSONResponse(status_code=status, content=content)
