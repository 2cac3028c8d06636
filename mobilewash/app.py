# mobilewash/app.py
import time

# Load .env BEFORE any mobilewash imports (they read env vars at import time)
from dotenv import load_dotenv
load_dotenv(override=True)

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mobilewash import monitoring
from mobilewash import access
from mobilewash import db as dbmod
from mobilewash.circuit_breaker import CircuitBreakerError
from mobilewash.errors import ProxyError, error_category
from mobilewash.routes import chat, vision, circuits, customers, quotes

app = FastAPI(title="Jay's Mobile Wash API")

# Initialize DB tables on startup
dbmod.init_db()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}


def _with_cors(response: Response) -> Response:
    for key, value in CORS_HEADERS.items():
        response.headers[key] = value
    return response


# ---------------------------------------------------------------------------
# Rate-limit middleware (runs on /api/* paths)
# ---------------------------------------------------------------------------
@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    path = request.url.path
    if not path.startswith("/api/") or request.method == "OPTIONS":
        return await call_next(request)

    client = request.client.host if request.client else "anonymous"
    allowed, remaining = access.check_rate_limit(client)
    if not allowed:
        monitoring.inc_rate_limited("rate_limit")
        resp = JSONResponse(
            status_code=429,
            content={"error": error_category(429), "message": "Rate limit exceeded. Please try again later."},
        )
        resp.headers["Retry-After"] = "60"
        return resp

    response = await call_next(request)
    if remaining is not None:
        response.headers["X-RateLimit-Remaining"] = str(remaining)
    return response


# ---------------------------------------------------------------------------
# Metrics middleware
# ---------------------------------------------------------------------------
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    endpoint = request.url.path
    method = request.method
    status = "500"
    try:
        response = await call_next(request)
        status = str(response.status_code)
        return response
    except Exception:
        monitoring.logger.exception("Unhandled exception in request", extra={"path": endpoint})
        raise
    finally:
        monitoring.observe_request(start, endpoint, method, status)


# ---------------------------------------------------------------------------
# CORS middleware (outermost: every response carries the headers)
# ---------------------------------------------------------------------------
@app.middleware("http")
async def cors_middleware(request: Request, call_next):
    if request.method == "OPTIONS" and request.url.path.startswith("/api/"):
        return _with_cors(Response(status_code=204))
    response = await call_next(request)
    return _with_cors(response)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
@app.exception_handler(ProxyError)
async def proxy_error_handler(request: Request, exc: ProxyError):
    if exc.status >= 500:
        monitoring.logger.error(
            "Proxy error", extra={"path": request.url.path, "status": exc.status, "error": exc.message}
        )
    return JSONResponse(status_code=exc.status, content=exc.to_dict())


@app.exception_handler(CircuitBreakerError)
async def circuit_open_handler(request: Request, exc: CircuitBreakerError):
    monitoring.logger.warning("Request short-circuited", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse(
        status_code=503,
        content={
            "error": error_category(503),
            "message": "The AI provider is temporarily unavailable. Please try again later.",
        },
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Invalid JSON"
    loc = [str(p) for p in first.get("loc", ()) if p != "body"]
    field = ".".join(loc) or "body"
    return f"{field}: {first.get('msg')}"


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    message = _describe_validation_error(exc)
    if request.url.path.startswith("/api/customers"):
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Bad Request", "message": message},
        )
    return JSONResponse(status_code=400, content={"error": error_category(400), "message": message})


_METHOD_ORDER = ["GET", "POST", "PUT", "DELETE"]


def _allowed_methods(path: str, allow_header: str = ""):
    """
    Methods served on path. The router's Allow header only names the first
    route it matched; the CRUD collection has one route per method, so the
    routes of our own routers are merged in.
    """
    methods = {m.strip().upper() for m in allow_header.split(",") if m.strip()}
    for router in ROUTERS:
        for route in router.routes:
            if getattr(route, "path", None) == path:
                methods |= set(getattr(route, "methods", None) or ())
    return [m for m in _METHOD_ORDER if m in methods]


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        methods = _allowed_methods(request.url.path, (exc.headers or {}).get("Allow", ""))
        allow = ", ".join(methods) or "POST"
        resp = JSONResponse(
            status_code=405,
            content={
                "error": "Method not allowed",
                "message": f"Only {allow} requests are supported",
            },
        )
        resp.headers["Allow"] = allow
        return resp
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": error_category(exc.status_code), "message": str(exc.detail)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # Runs outside the http middlewares, so CORS headers are added here
    monitoring.logger.exception("Unhandled error", extra={"path": request.url.path})
    return _with_cors(JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "message": "An unexpected error occurred while processing your request"},
    ))


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
ROUTERS = [chat.router, vision.router, circuits.router, customers.router, quotes.router]
for _router in ROUTERS:
    app.include_router(_router)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    if not monitoring.PROMETHEUS_ENABLED:
        return PlainTextResponse("Prometheus disabled", status_code=404)
    payload, content_type = monitoring.prometheus_metrics_response()
    return Response(content=payload, media_type=content_type)
