# mobilewash/routes/quotes.py
import datetime

from fastapi import APIRouter

from mobilewash import monitoring
from mobilewash import quotes
from mobilewash.errors import bad_request
from mobilewash.schemas import QuoteRequest

router = APIRouter()


@router.get("/api/quotes")
def quote_catalogue():
    return quotes.catalogue()


@router.post("/api/quotes")
def create_quote(req: QuoteRequest):
    if not req.service or not req.service.strip():
        raise bad_request("service is required")
    try:
        quote = quotes.build_quote(req.service, req.vehicle_type, req.add_ons, req.location)
    except quotes.UnknownServiceError as e:
        raise bad_request(str(e))
    monitoring.logger.info(
        "Quote generated",
        extra={"quote_id": quote["id"], "total": quote["breakdown"]["total"]},
    )
    return {
        "quote": quote,
        "metadata": {
            "api": "Service Quotes API",
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        },
    }
