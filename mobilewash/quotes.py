# mobilewash/quotes.py
"""
Price quotes for the detailing catalogue.

A quote is base price + vehicle upcharge + add-ons, plus sales tax. Unknown
add-ons are ignored; an unknown service is an error.
"""

import uuid
import datetime
from typing import Any, Dict, List, Optional

from mobilewash.prompts import BUSINESS_PHONE

TAX_RATE = 0.0875
QUOTE_VALIDITY = "30 days"
QUOTE_EMAIL = "quotes@jaysmobilewash.com"
MINUTES_PER_ADD_ON = 30
DEFAULT_DURATION_MINUTES = 90

VEHICLE_TYPES = ["car", "truck", "suv", "van"]

# base price plus upcharge per vehicle type
SERVICE_PRICES: Dict[str, Dict[str, int]] = {
    "basic wash": {"base": 50, "car": 0, "truck": 15, "suv": 10, "van": 15},
    "full detail": {"base": 120, "car": 0, "truck": 30, "suv": 20, "van": 25},
    "ceramic coating": {"base": 400, "car": 0, "truck": 100, "suv": 50, "van": 75},
    "interior detail": {"base": 80, "car": 0, "truck": 20, "suv": 15, "van": 20},
    "exterior detail": {"base": 70, "car": 0, "truck": 15, "suv": 10, "van": 15},
}

ADD_ON_PRICES: Dict[str, int] = {
    "interior protection": 50,
    "tire shine": 20,
    "engine cleaning": 40,
    "headlight restoration": 60,
    "scratch removal": 80,
}

SERVICE_DURATIONS: Dict[str, int] = {
    "basic wash": 60,
    "full detail": 180,
    "ceramic coating": 240,
    "interior detail": 120,
    "exterior detail": 90,
}


class UnknownServiceError(ValueError):
    pass


def catalogue() -> Dict[str, Any]:
    return {
        "name": "Service Quotes API",
        "description": "Generate detailed quotes for mobile car wash services",
        "availableServices": list(SERVICE_PRICES),
        "availableAddOns": list(ADD_ON_PRICES),
        "vehicleTypes": VEHICLE_TYPES,
        "status": "active",
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }


def match_service(service: str) -> Optional[str]:
    """Exact catalogue key, else the first key that contains or is contained in the request."""
    key = (service or "").strip().lower()
    if not key:
        return None
    if key in SERVICE_PRICES:
        return key
    for name in SERVICE_PRICES:
        if name in key or key in name:
            return name
    return None


def estimated_duration(service_key: str, add_on_count: int) -> str:
    base = SERVICE_DURATIONS.get(service_key, DEFAULT_DURATION_MINUTES)
    return f"{base + add_on_count * MINUTES_PER_ADD_ON} minutes"


def build_quote(service: str, vehicle_type: str = "car", add_ons: Optional[List[str]] = None,
                location: Optional[str] = None) -> Dict[str, Any]:
    service_key = match_service(service)
    if service_key is None:
        raise UnknownServiceError(f"Service '{service}' not found")
    prices = SERVICE_PRICES[service_key]
    vehicle_key = (vehicle_type or "car").strip().lower()

    base_price = prices["base"]
    upcharge = prices[vehicle_key] if vehicle_key in VEHICLE_TYPES else 0

    included = []
    for add_on in add_ons or []:
        price = ADD_ON_PRICES.get(str(add_on).strip().lower())
        if price:
            included.append({"name": add_on, "price": price})

    subtotal = base_price + upcharge + sum(a["price"] for a in included)
    tax = round(subtotal * TAX_RATE, 2)

    notes = [
        "Price includes all materials and labor",
        "Service performed at your location",
        "Satisfaction guaranteed",
    ]
    if location:
        notes.append(f"Service area: {location}")

    return {
        "id": f"quote-{uuid.uuid4().hex[:12]}",
        "service": service,
        "vehicleType": vehicle_type,
        "location": location,
        "breakdown": {
            "baseService": {"name": service_key, "price": base_price},
            "vehicleUpcharge": upcharge,
            "addOns": included,
            "subtotal": subtotal,
            "tax": tax,
            "total": round(subtotal + tax, 2),
        },
        "validity": QUOTE_VALIDITY,
        "notes": notes,
        "estimatedDuration": estimated_duration(service_key, len(included)),
        "contact": {"phone": BUSINESS_PHONE, "email": QUOTE_EMAIL},
    }
