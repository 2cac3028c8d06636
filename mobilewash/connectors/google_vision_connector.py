# mobilewash/connectors/google_vision_connector.py
"""
Google Cloud Vision `images:annotate` client and the detailing analysis
rendered from its labels/objects/text.
"""

import os
import re
import time
from typing import Any, Dict, List, Optional

import httpx

from mobilewash import monitoring
from mobilewash.circuit_breaker import CircuitBreakerError, protected_call
from mobilewash.errors import ProxyError, map_upstream_error, counts_as_upstream_failure

VISION_URL = os.getenv("GOOGLE_VISION_URL", "https://vision.googleapis.com/v1/images:annotate")
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))

PROVIDER_LABEL = "Google Vision"

FEATURES = [
    {"type": "LABEL_DETECTION", "maxResults": 10},
    {"type": "TEXT_DETECTION", "maxResults": 5},
    {"type": "OBJECT_LOCALIZATION", "maxResults": 10},
]

CAR_KEYWORDS = ["car", "vehicle", "automobile", "sedan", "suv", "truck",
                "wheel", "tire", "bumper", "windshield"]

NO_RESULT_MESSAGE = "I couldn't analyze this image. Please try uploading a clearer photo."
NOT_A_VEHICLE_MESSAGE = (
    "This doesn't appear to be a vehicle image. Please upload a photo of your car "
    "for accurate detailing recommendations."
)
DETAILING_RECOMMENDATIONS = """**Detailing Recommendations:**
• For exterior: Consider our premium wash with clay bar treatment
• For wheels: Deep wheel cleaning and tire shine service
• For interior: Vacuum, wipe down, and conditioning treatment
• For protection: Ceramic coating for long-term paint protection

**Estimated Services:**
• Mini Detail ($70) - Basic cleaning
• Luxury Detail ($130) - Comprehensive care
• Max Detail ($200) - Full premium service

Would you like a personalized quote based on your specific needs?"""

_DATA_URL_PREFIX = re.compile(r"^data:image/[^;]+;base64,")


def strip_data_url(image_base64: str) -> str:
    return _DATA_URL_PREFIX.sub("", image_base64)


def _post_json(url: str, payload: Dict[str, Any], params: Dict[str, str],
               timeout: float = UPSTREAM_TIMEOUT_SECONDS) -> httpx.Response:
    with httpx.Client(timeout=timeout) as http:
        return http.post(url, json=payload, params=params)


def annotate(api_key: str, image_base64: str) -> Optional[Dict[str, Any]]:
    """Return the first annotate response, or None when Vision returned nothing."""
    payload = {
        "requests": [
            {"image": {"content": strip_data_url(image_base64)}, "features": FEATURES}
        ]
    }

    def _do():
        try:
            resp = _post_json(VISION_URL, payload, {"key": api_key})
        except httpx.HTTPError as e:
            raise ProxyError(503, f"{PROVIDER_LABEL} is unreachable: {e}", provider=PROVIDER_LABEL)
        if resp.status_code >= 400:
            raise map_upstream_error(PROVIDER_LABEL, resp.status_code, resp.text)
        try:
            return resp.json()
        except ValueError:
            raise ProxyError(502, f"{PROVIDER_LABEL} returned a non-JSON response", provider=PROVIDER_LABEL)

    start = time.time()
    try:
        data = protected_call("google_vision", _do, is_failure=counts_as_upstream_failure)
    except CircuitBreakerError:
        monitoring.observe_upstream(start, "google_vision", "circuit_open")
        raise
    except ProxyError as e:
        monitoring.observe_upstream(start, "google_vision", f"http_{e.status}")
        monitoring.logger.error("Google Vision API error", extra={"status": e.status, "error": e.message})
        raise
    monitoring.observe_upstream(start, "google_vision", "success")

    responses = (data or {}).get("responses") or []
    return responses[0] if responses else None


def _descriptions(items: Optional[List[Dict[str, Any]]], key: str) -> List[str]:
    return [i.get(key, "") for i in (items or []) if i.get(key)]


def build_analysis(result: Optional[Dict[str, Any]]) -> str:
    """Render the customer-facing analysis text for one annotate response."""
    if not result:
        return NO_RESULT_MESSAGE

    labels = _descriptions(result.get("labelAnnotations"), "description")
    texts = _descriptions(result.get("textAnnotations"), "description")
    objects = _descriptions(result.get("localizedObjectAnnotations"), "name")

    analysis = "Based on the image analysis:\n\n"
    if labels:
        analysis += f"**What I see:** {', '.join(labels[:5])}\n\n"
    if objects:
        analysis += f"**Objects detected:** {', '.join(objects[:5])}\n\n"
    if texts and len(texts[0]) < 100:
        analysis += f"**Text found:** {texts[0]}\n\n"

    has_car = any(kw in item.lower() for item in labels + objects for kw in CAR_KEYWORDS)
    analysis += DETAILING_RECOMMENDATIONS if has_car else NOT_A_VEHICLE_MESSAGE
    return analysis
