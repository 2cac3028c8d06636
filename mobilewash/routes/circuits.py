# mobilewash/routes/circuits.py
from fastapi import APIRouter, Path

from mobilewash.circuit_breaker import registry
from mobilewash.errors import ProxyError

router = APIRouter()


@router.get("/api/circuit-breakers")
def list_circuit_breakers():
    return {"circuits": registry.get_all_statuses()}


@router.post("/api/circuit-breakers/{name}/reset")
def reset_circuit_breaker(name: str = Path(..., description="Circuit name")):
    if not registry.reset(name):
        raise ProxyError(404, f"Circuit breaker {name} not found")
    return {"status": "reset", "circuit": registry.get_status(name)}
