# mobilewash/processors/prompt_builder.py
"""
Turns a validated ChatRequest into what each provider expects: chat message
lists for OpenRouter/OpenAI, a single formatted string for Hugging Face.
"""

from typing import Any, Dict, List, Optional

from mobilewash.errors import bad_request
from mobilewash.prompts import (
    OPENROUTER_SYSTEM_PROMPT,
    LLAMA_SYSTEM_PROMPT,
    LLAMA33_SYSTEM_PROMPT,
    OPENAI_SYSTEM_PROMPT,
    ROLE_PROMPTS,
)
from mobilewash.schemas import MAX_PROMPT_LENGTH, ChatMessage

CHAT_ROLES = ("system", "user", "assistant")

LLAMA2_MODELS = {
    "llama2-7b": "meta-llama/Llama-2-7b",
    "llama2-7b-chat": "meta-llama/Llama-2-7b-chat-hf",
    "llama2-13b-chat": "meta-llama/Llama-2-13b-chat-hf",
    "llama2-70b-chat": "meta-llama/Llama-2-70b-chat-hf",
    "code-llama-7b": "codellama/CodeLlama-7b-Instruct-hf",
    "code-llama-13b": "codellama/CodeLlama-13b-Instruct-hf",
    "code-llama-34b": "codellama/CodeLlama-34b-Instruct-hf",
}
LLAMA2_DEFAULT_KEY = "llama2-7b"

LLAMA33_MODELS = {
    "llama33_70b": "meta-llama/Llama-3.3-70B-Instruct",
    "llama33": "meta-llama/Llama-3.3-70B-Instruct",
}
LLAMA33_DEFAULT_MODEL = "meta-llama/Llama-3.3-70B-Instruct"


def check_prompt_length(prompt: Optional[str]):
    if prompt and len(prompt) > MAX_PROMPT_LENGTH:
        raise bad_request(f"prompt is too long (max {MAX_PROMPT_LENGTH} characters)")


def validate_messages(messages: Optional[List[Dict[str, Any]]],
                      allow_empty: bool = False) -> Optional[List[Dict[str, str]]]:
    """
    None when absent; otherwise a non-empty list of {role, content} strings.
    With allow_empty an empty list is treated as absent instead of rejected.
    """
    if messages is None:
        return None
    cleaned = []
    for msg in messages:
        if not isinstance(msg, dict) or not msg.get("role") or not msg.get("content"):
            raise bad_request("Each message must have role and content")
        cleaned.append(ChatMessage(role=str(msg["role"]), content=msg["content"]).model_dump())
    if not cleaned:
        if allow_empty:
            return None
        raise bad_request("messages array cannot be empty")
    return cleaned


def require_prompt_or_messages(prompt: Optional[str], messages: Optional[List[Dict[str, Any]]]):
    if not (prompt and prompt.strip()) and not messages:
        raise bad_request("Prompt or messages array is required")


def last_user_content(messages: Optional[List[Dict[str, str]]]) -> str:
    for msg in reversed(messages or []):
        if msg.get("role") == "user":
            return msg.get("content", "")
    return ""


def openrouter_messages(prompt: str, role: Optional[str],
                        messages: Optional[List[Dict[str, str]]]) -> List[Dict[str, str]]:
    """Business persona first unless the caller already supplied a system message."""
    if messages:
        if messages[0].get("role") != "system":
            return [{"role": "system", "content": OPENROUTER_SYSTEM_PROMPT}] + messages
        return messages
    # `role` here is the widget's assistant mode ("chat", "quotes", ...), not a chat role
    chat_role = role if role in CHAT_ROLES else "user"
    return [
        {"role": "system", "content": OPENROUTER_SYSTEM_PROMPT},
        {"role": chat_role, "content": prompt},
    ]


def deepseek_messages(prompt: str, role: str,
                      messages: Optional[List[Dict[str, str]]]) -> List[Dict[str, str]]:
    """Prefix the role prompt onto the last user turn (or the bare prompt)."""
    prefix = ROLE_PROMPTS.get(role, ROLE_PROMPTS["chat"])
    if messages:
        out = list(messages)
        last = out[-1]
        if last.get("role") == "user":
            out[-1] = {"role": "user", "content": prefix + last["content"]}
        return out
    return [{"role": "user", "content": prefix + prompt}]


def openai_messages(prompt: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": OPENAI_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def llama2_prompt(prompt: str, model_key: str) -> str:
    if model_key == LLAMA2_DEFAULT_KEY:
        # base model has no chat template
        return f"{LLAMA_SYSTEM_PROMPT}\n\nUser: {prompt}\nAssistant:"
    return f"<s>[INST] <<SYS>>\n{LLAMA_SYSTEM_PROMPT}\n<</SYS>>\n\n{prompt} [/INST]"


def llama33_prompt(prompt: str, messages: Optional[List[Dict[str, str]]]) -> str:
    if messages:
        return "\n".join(f"{m['role']}: {m['content']}" for m in messages)
    return f"{LLAMA33_SYSTEM_PROMPT}\n\nUser: {prompt}\nAssistant:"
