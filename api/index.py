# api/index.py
"""
Serverless entry point. The Python runtime imports this module and serves
the ASGI `app` it exposes; every /api/* route of the mobilewash app is
reachable through it.
"""
import sys
import os

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# Short-lived function instances have no scrape target
os.environ.setdefault("PROMETHEUS_ENABLED", "false")

# Only /tmp is writable in the function sandbox
if not os.environ.get("DATABASE_URL"):
    os.environ["DATABASE_URL"] = "sqlite:////tmp/mobilewash.db"

# Provider keys normally come from the platform; .env covers local runs
from dotenv import load_dotenv
load_dotenv(os.path.join(ROOT, ".env"), override=True)

from mobilewash.app import app  # noqa: F401
