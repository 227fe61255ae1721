import json
import logging
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

QUIET_PATHS = ("/health",)


def format_request_line(fields: dict) -> str:
    """One JSON-ish log line, e.g. api_request {"request_id": "...", "path": "/feeds", "status": 200, ...}."""
    return "api_request " + json.dumps(fields, separators=(",", ":"))


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Tags every control API request with an x-request-id and logs method, path, status and latency."""

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = rid
        started = time.perf_counter()

        response = await call_next(request)

        fields = {
            "request_id": rid,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "latency_ms": round((time.perf_counter() - started) * 1000.0, 2),
        }
        level = logging.DEBUG if request.url.path in QUIET_PATHS else logging.INFO
        logger.log(level, format_request_line(fields), extra=fields)
        response.headers["x-request-id"] = rid
        return response


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")
