from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


def _dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


_LOG = logging.getLogger("rosetta.access")


def _get_client_ip(request: Request) -> str:
    # Prefer X-Forwarded-For (first hop) when behind a trusted proxy; informational only.
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    client = request.client
    return client.host if client else "-"


def _ensure_request_id(request: Request) -> str:
    rid = request.headers.get("x-request-id") or request.headers.get("x-trace-id")
    if rid:
        return rid
    return uuid.uuid4().hex


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Structured access logging with tracing IDs.

    - Emits a single JSON line per HTTP request:
      {
        "event":"http_request",
        "req_id":"…",
        "method":"POST",
        "path":"/network/status",
        "status":200,
        "duration_ms":12.34,
        "bytes_sent":1234,
        "client_ip":"203.0.113.5",
        "user_agent":"…",
        "rosetta_code":5
      }
      INFO for 1xx-3xx, WARNING for error statuses, ERROR with traceback when
      the handler raised.

    - Adds `X-Request-ID` response header (and uses incoming header if provided).
    - `rosetta_code` is present when the handler set `request.state.rosetta_code`.
    """

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        if request.scope.get("type") != "http":
            return await call_next(request)

        req_id = _ensure_request_id(request)
        start = time.perf_counter()

        method = request.method
        path = request.url.path
        client_ip = _get_client_ip(request)
        ua = request.headers.get("user-agent", "-")

        status = 500
        bytes_sent: Optional[int] = None
        exc_info: Optional[BaseException] = None
        try:
            response: Response = await call_next(request)
            status = int(response.status_code)
            response.headers["X-Request-ID"] = req_id
            cl = response.headers.get("content-length")
            if cl and cl.isdigit():
                bytes_sent = int(cl)
            return response
        except Exception as e:
            exc_info = e
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0

            record: Dict[str, Any] = {
                "event": "http_request",
                "req_id": req_id,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 3),
                "bytes_sent": bytes_sent,
                "client_ip": client_ip,
                "user_agent": ua,
            }
            code = getattr(request.state, "rosetta_code", None)
            if code is not None:
                record["rosetta_code"] = code

            line = _dumps(record)
            if exc_info is None and 100 <= status < 400:
                _LOG.info(line)
            elif exc_info is None:
                _LOG.warning(line)
            else:
                _LOG.error(line, exc_info=exc_info)


__all__ = ["LoggingMiddleware"]
