# mobilewash/processors/response_cleanup.py
"""Post-processing of provider output before it is returned to the widget."""

import json
import re
from collections import OrderedDict
from typing import Any, Optional

from mobilewash.prompts import EMPTY_RESPONSE_MESSAGE, UNEXPECTED_RESPONSE_MESSAGE

_INST_BLOCK = re.compile(r"^\s*\[INST\].*?\[/INST\]\s*", re.DOTALL)
_EDGE_SENTENCE_TAGS = re.compile(r"^<s>|</s>$")
_PROMPT_ECHO = re.compile(r"^\s*User:.*?Assistant:\s*", re.DOTALL)
_SENTENCE_TAGS = re.compile(r"(<s>|</s>)")

NO_DEFECTS_MESSAGE = (
    "No defects detected. If you have a specific concern, please upload another image "
    "showing the area you want analyzed."
)
NO_DETECTION_MESSAGE = (
    "I couldn't analyze this image. Please try uploading a clearer photo or another angle."
)


def sanitize_openrouter(text: Optional[str]) -> str:
    """Unescape quotes, drop stray backslashes and collapse whitespace."""
    if not text:
        return UNEXPECTED_RESPONSE_MESSAGE
    text = text.replace('\\"', '"').replace("\\", "")
    return re.sub(r"\s+", " ", text).strip()


def clean_llama2(text: str) -> str:
    if not text:
        return text
    text = _INST_BLOCK.sub("", text)
    return _EDGE_SENTENCE_TAGS.sub("", text).strip()


def clean_llama33(text: str) -> str:
    if not text:
        return text
    text = _PROMPT_ECHO.sub("", text)
    return _SENTENCE_TAGS.sub("", text).strip()


def finalize_chat_text(text: Optional[str]) -> str:
    """Trimmed completion, or a polite apology when the model returned nothing."""
    text = (text or "").strip()
    return text or EMPTY_RESPONSE_MESSAGE


def format_defect_result(data: Any) -> str:
    """Summarize the defect-detection Space `data` payload as markdown."""
    if not data:
        result = NO_DETECTION_MESSAGE
    else:
        first = data[0] if isinstance(data, list) else data
        if isinstance(first, str):
            result = first
        elif isinstance(first, list):
            if not first:
                result = NO_DEFECTS_MESSAGE
            else:
                counts: "OrderedDict[str, int]" = OrderedDict()
                for det in first:
                    det = det if isinstance(det, dict) else {}
                    label = det.get("label") or det.get("class") or "defect"
                    counts[label] = counts.get(label, 0) + 1
                result = "\n".join(f"• {label}: {count}" for label, count in counts.items())
        elif isinstance(first, dict):
            result = json.dumps(first, indent=2)
        else:
            result = str(first)
    return f"**Defect Detection Result:**\n{result}"
