# tests/test_quotes.py
import pytest
from fastapi.testclient import TestClient

from mobilewash.app import app
from mobilewash import quotes


@pytest.fixture
def client():
    return TestClient(app)


def test_build_quote_breakdown():
    q = quotes.build_quote("Full Detail", "SUV", ["tire shine", "moon polish"], "Long Beach")
    assert q["id"].startswith("quote-")
    b = q["breakdown"]
    assert b["baseService"] == {"name": "full detail", "price": 120}
    assert b["vehicleUpcharge"] == 20
    assert b["addOns"] == [{"name": "tire shine", "price": 20}]
    assert b["subtotal"] == 160
    assert b["tax"] == 14.0
    assert b["total"] == 174.0
    assert q["estimatedDuration"] == "210 minutes"
    assert q["notes"][-1] == "Service area: Long Beach"
    assert q["contact"]["phone"] == "(562) 228-9429"


@pytest.mark.parametrize("requested,matched", [
    ("ceramic", "ceramic coating"),
    ("basic wash please", "basic wash"),
    ("detail", "full detail"),
    ("teleport", None),
    ("", None),
])
def test_match_service(requested, matched):
    assert quotes.match_service(requested) == matched


def test_unknown_vehicle_has_no_upcharge():
    b = quotes.build_quote("basic wash", "motorcycle")["breakdown"]
    assert b["vehicleUpcharge"] == 0
    assert b["total"] == pytest.approx(54.38)


def test_catalogue_endpoint(client):
    r = client.get("/api/quotes")
    assert r.status_code == 200
    body = r.json()
    assert body["availableServices"][0] == "basic wash"
    assert "tire shine" in body["availableAddOns"]
    assert body["vehicleTypes"] == ["car", "truck", "suv", "van"]


def test_quote_endpoint(client):
    r = client.post("/api/quotes", json={"service": "ceramic coating", "vehicleType": "truck",
                                         "addOns": ["Headlight Restoration"]})
    assert r.status_code == 200
    body = r.json()
    assert body["quote"]["breakdown"]["subtotal"] == 560
    assert body["quote"]["estimatedDuration"] == "270 minutes"
    assert body["metadata"]["api"] == "Service Quotes API"


def test_quote_requires_service(client):
    r = client.post("/api/quotes", json={"vehicleType": "car"})
    assert r.status_code == 400
    assert r.json() == {"error": "Bad Request", "message": "service is required"}


def test_quote_unknown_service(client):
    r = client.post("/api/quotes", json={"service": "teleport"})
    assert r.status_code == 400
    assert r.json()["message"] == "Service 'teleport' not found"


def test_quotes_delete_is_405(client):
    r = client.delete("/api/quotes")
    assert r.status_code == 405
    assert r.json()["message"] == "Only GET, POST requests are supported"
    assert r.headers["allow"] == "GET, POST"
