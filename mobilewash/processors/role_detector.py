# mobilewash/processors/role_detector.py
"""
Role selection for /api/deepseek: role -> OpenRouter model map and
`role="auto"` detection (zero-shot first, keyword scoring otherwise).
"""

import re
from typing import Dict, List, Optional

from mobilewash import monitoring
from mobilewash.connectors import huggingface_connector as hf

MODEL_MAP: Dict[str, str] = {
    "reasoning": "qwen/qwen3-30b-a3b:free",
    "tools": "mistralai/mistral-7b-instruct:free",
    "quotes": "meta-llama/llama-3-8b-instruct:free",
    "photo_uploads": "google/gemma-7b-it:free",
    "summaries": "mistralai/mistral-7b-instruct:free",
    "search": "google/gemma-7b-it:free",
    "analytics": "meta-llama/llama-3-8b-instruct:free",
    "accessibility": "mistralai/mistral-7b-instruct:free",
    "chat": "deepseek/deepseek-r1-0528-qwen3-8b:free",
    "fallback": "mistralai/mistral-7b-instruct:free",
    # model-family aliases
    "qwen": "qwen/qwen3-30b-a3b:free",
    "gemini": "google/gemma-7b-it:free",
    "mistral": "mistralai/mistral-7b-instruct:free",
    "llama": "meta-llama/llama-3-8b-instruct:free",
    "deepseek": "deepseek/deepseek-r1-0528-qwen3-8b:free",
}

CANDIDATE_ROLES: List[str] = [
    "reasoning", "tools", "quotes", "photo_uploads", "summaries",
    "search", "analytics", "accessibility", "chat",
]

TIE_BREAK_PRIORITY: List[str] = [
    "photo_uploads", "quotes", "reasoning", "summaries", "tools",
    "analytics", "search", "accessibility", "chat",
]

KEYWORDS: Dict[str, List[str]] = {
    "reasoning": ["reason", "analyz", "explain", "step by step", "why", "logic", "deduce",
                  "diagnose", "cause", "how do", "can you explain", "?"],
    "tools": ["tool", "equipment", "supply", "product", "device", "machine", "accessory",
              "kit", "what do i need", "which tool", "equipment needed"],
    "quotes": ["price", "quote", "cost", "estimate", "how much", "$", "fee", "charge", "rate",
               "pricing", "total", "invoice"],
    "photo_uploads": ["photo", "image", "upload", "picture", "see attached", ".jpg", ".png",
                      ".jpeg", "analyze this image", "analyze this photo", "attached file"],
    "summaries": ["summary", "summarize", "recap", "overview", "tl;dr", "in short",
                  "in summary", "briefly", "can you summarize", "main points"],
    "search": ["search", "find", "lookup", "look up", "discover", "where can i", "resource",
               "reference", "information about", "can you find"],
    "analytics": ["analyz", "insight", "data", "trend", "statistic", "report", "pattern",
                  "analyze the data", "insights", "metrics"],
    "accessibility": ["accessib", "accessible", "disability", "screen reader", "contrast",
                      "readable", "easy to read", "for blind", "for visually impaired", "ada"],
}

# (pattern, role, bonus)
_PATTERN_BONUSES = [
    (re.compile(r"\$|\d+\s*(usd|dollars|bucks|eur|gbp|pounds)"), "quotes", 2),
    (re.compile(r"(summary|summarize|tl;dr|recap|overview|main points|in short)"), "summaries", 2),
    (re.compile(r"(tool|equipment|supply|device|machine|kit)"), "tools", 2),
    (re.compile(r"(photo|image|upload|picture|attached|\.jpg|\.png|\.jpeg)"), "photo_uploads", 2),
    (re.compile(r"(how|why|what|can you|explain|step by step)"), "reasoning", 1),
]
_NUMBER = re.compile(r"\d{2,}")
_PRICE_WORD = re.compile(r"(price|cost|quote|estimate|invoice|total)")


def score_roles(prompt: str) -> Dict[str, int]:
    lower = prompt.lower()
    scores = {role: 0 for role in CANDIDATE_ROLES}
    for role, keywords in KEYWORDS.items():
        for kw in keywords:
            if kw in lower:
                scores[role] += 2
    if "?" in lower:
        scores["reasoning"] += 1
        scores["search"] += 1
    for pattern, role, bonus in _PATTERN_BONUSES:
        if pattern.search(lower):
            scores[role] += bonus
    if _NUMBER.search(lower) and _PRICE_WORD.search(lower):
        scores["quotes"] += 1
    return scores


def detect_role_by_keywords(prompt: str) -> str:
    """Highest score wins; ties go to TIE_BREAK_PRIORITY; all zero -> chat."""
    scores = score_roles(prompt)
    best = max(scores.values())
    if best <= 0:
        return "chat"
    for role in TIE_BREAK_PRIORITY:
        if scores[role] == best:
            return role
    return "chat"


def detect_role_auto(prompt: str) -> str:
    ml_role = hf.zero_shot_classify(prompt, CANDIDATE_ROLES)
    if ml_role:
        monitoring.logger.info("Role detected by zero-shot", extra={"role": ml_role})
        return ml_role
    return detect_role_by_keywords(prompt)


def select_model(role: str, explicit_model: Optional[str] = None) -> str:
    """Explicit model only if it is one we route to; otherwise by role."""
    if explicit_model and explicit_model in MODEL_MAP.values():
        return explicit_model
    return MODEL_MAP.get(role) or MODEL_MAP["fallback"]
