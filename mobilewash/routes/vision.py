# mobilewash/routes/vision.py
"""Image endpoints: Google Vision detailing analysis and YOLOv8 defect detection."""

from fastapi import APIRouter

from mobilewash import monitoring
from mobilewash.connectors import google_vision_connector as vision
from mobilewash.connectors import huggingface_connector as hf
from mobilewash.errors import bad_request
from mobilewash.llm_wrapper import resolve_api_key
from mobilewash.processors.response_cleanup import format_defect_result
from mobilewash.schemas import ImageRequest

router = APIRouter()


def _require_image(req: ImageRequest) -> str:
    if not req.image:
        raise bad_request("image is required and must be a base64 string")
    return req.image


@router.post("/api/vision")
def vision_analysis(req: ImageRequest):
    image = _require_image(req)
    api_key = resolve_api_key("GOOGLE_VISION_API_KEY")
    monitoring.logger.info("Vision analysis request", extra={"image_chars": len(image)})
    result = vision.annotate(api_key, image)
    return {"response": vision.build_analysis(result), "role": "assistant"}


@router.post("/api/image-analysis")
def defect_analysis(req: ImageRequest):
    image = _require_image(req)
    data = hf.detect_defects(image)
    return {"response": format_defect_result(data), "role": "assistant"}
