# mobilewash/connectors/huggingface_connector.py
"""
Hugging Face clients: hosted inference (text generation, zero-shot
classification) and the YOLOv8 defect-detection Space.

Env vars:
- HUGGINGFACE_API_KEY  text generation (Llama models)
- HF_API_KEY           zero-shot role detection (optional; skipped when unset)
- HF_INFERENCE_URL     default https://api-inference.huggingface.co/models
- DEFECT_SPACE_URL     default https://jjmandog-yolov8-metal-defect-detection.hf.space/run/predict
"""

import os
import time
from typing import Any, Dict, List, Optional

import httpx

from mobilewash import monitoring
from mobilewash.circuit_breaker import CircuitBreakerError, protected_call
from mobilewash.errors import ProxyError, map_upstream_error, counts_as_upstream_failure
from mobilewash.prompts import UNEXPECTED_RESPONSE_MESSAGE

HF_INFERENCE_URL = os.getenv("HF_INFERENCE_URL", "https://api-inference.huggingface.co/models")
DEFECT_SPACE_URL = os.getenv(
    "DEFECT_SPACE_URL",
    "https://jjmandog-yolov8-metal-defect-detection.hf.space/run/predict",
)
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))

ZERO_SHOT_MODEL = "facebook/bart-large-mnli"
ZERO_SHOT_MIN_SCORE = 0.55

DEFAULT_GENERATION_PARAMETERS = {
    "max_length": 1024,
    "temperature": 0.7,
    "top_p": 0.9,
    "do_sample": True,
    "return_full_text": False,
}

PROVIDER_LABEL = "Hugging Face"


def _post_json(url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None,
               timeout: float = UPSTREAM_TIMEOUT_SECONDS) -> httpx.Response:
    """Single outbound POST. Isolated so tests can monkeypatch without a network."""
    with httpx.Client(timeout=timeout) as http:
        return http.post(url, json=payload, headers=headers or {})


def _checked_post(circuit: str, url: str, payload: Dict[str, Any],
                  headers: Optional[Dict[str, str]], model: Optional[str],
                  label: str = PROVIDER_LABEL) -> Any:
    """POST, map non-2xx/transport errors to ProxyError, return decoded JSON."""
    def _do() -> Any:
        try:
            resp = _post_json(url, payload, headers)
        except httpx.HTTPError as e:
            raise ProxyError(503, f"{label} is unreachable: {e}", provider=label, model=model)
        if resp.status_code >= 400:
            raise map_upstream_error(label, resp.status_code, resp.text, model=model, loading_aware=True)
        try:
            return resp.json()
        except ValueError:
            raise ProxyError(502, f"{label} returned a non-JSON response", provider=label, model=model)

    start = time.time()
    try:
        data = protected_call(circuit, _do, is_failure=counts_as_upstream_failure)
    except CircuitBreakerError:
        monitoring.observe_upstream(start, circuit, "circuit_open")
        raise
    except ProxyError as e:
        monitoring.observe_upstream(start, circuit, f"http_{e.status}")
        monitoring.logger.error(
            f"{label} API error",
            extra={"circuit": circuit, "model": model, "status": e.status, "error": e.message},
        )
        raise
    monitoring.observe_upstream(start, circuit, "success")
    return data


def extract_generated_text(data: Any) -> str:
    """Pull the completion out of the several shapes the inference API returns."""
    if isinstance(data, list) and data:
        first = data[0] if isinstance(data[0], dict) else {}
        return first.get("generated_text") or first.get("text") or "No response generated"
    if isinstance(data, dict) and data.get("generated_text"):
        return data["generated_text"]
    return UNEXPECTED_RESPONSE_MESSAGE


def generate_text(api_key: str, model_name: str, inputs: str,
                  parameters: Optional[Dict[str, Any]] = None) -> str:
    """Run text generation on a hosted model and return the raw generated text."""
    url = f"{HF_INFERENCE_URL}/{model_name}"
    payload = {"inputs": inputs, "parameters": parameters or DEFAULT_GENERATION_PARAMETERS}
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    monitoring.logger.info("Calling Hugging Face text generation", extra={"model": model_name})
    data = _checked_post("huggingface", url, payload, headers, model=model_name)
    return extract_generated_text(data)


def zero_shot_classify(sequence: str, candidate_labels: List[str],
                       min_score: float = ZERO_SHOT_MIN_SCORE) -> Optional[str]:
    """
    Best-effort intent label. Returns None when HF_API_KEY is unset, the call
    fails, or the top label's score is not above min_score.
    """
    api_key = os.getenv("HF_API_KEY", "").strip()
    if not api_key:
        return None
    url = f"{HF_INFERENCE_URL}/{ZERO_SHOT_MODEL}"
    payload = {"inputs": sequence, "parameters": {"candidate_labels": candidate_labels}}
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    try:
        resp = _post_json(url, payload, headers)
    except httpx.HTTPError as e:
        monitoring.logger.warning("Zero-shot classification failed", extra={"error": str(e)})
        return None
    if resp.status_code >= 400:
        return None
    try:
        data = resp.json()
    except ValueError:
        return None

    # Classic shape is {"labels": [...], "scores": [...]}; newer deployments
    # return a list of {"label", "score"} sorted by score.
    if isinstance(data, dict) and data.get("labels") and data.get("scores"):
        label, score = data["labels"][0], data["scores"][0]
    elif isinstance(data, list) and data and isinstance(data[0], dict) and "label" in data[0]:
        label, score = data[0]["label"], data[0].get("score", 0)
    else:
        return None
    if score > min_score and label in candidate_labels:
        return label
    return None


def detect_defects(image_base64: str) -> Any:
    """Send an image to the defect-detection Space and return its `data` payload."""
    payload = {"data": [image_base64]}
    data = _checked_post(
        "defect_space", DEFECT_SPACE_URL, payload,
        {"Content-Type": "application/json"}, model=None, label="YOLOv8 Space",
    )
    if isinstance(data, dict):
        return data.get("data")
    return None
