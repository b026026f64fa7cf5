from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

_LOG = logging.getLogger("zkprover.rpc.access")


def _dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def _detect_jsonrpc_method(b: bytes) -> Optional[str]:
    if not b:
        return None
    # Best-effort parse, tolerate non-JSON bodies
    try:
        obj = json.loads(b.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None
    if isinstance(obj, list) and obj:
        obj = obj[0]
    if isinstance(obj, dict):
        m = obj.get("method")
        return str(m) if isinstance(m, str) else None
    return None


def _body_within(content_length: Optional[str], limit: Optional[int]) -> bool:
    """Only bodies with a declared length under the ceiling are peeked at."""
    if content_length is None or not content_length.isdigit():
        return False
    return limit is None or int(content_length) <= limit


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    One JSON line per HTTP request:
      {"event":"http_request","req_id":"…","method":"POST","path":"/",
       "status":200,"duration_ms":12.34,"jsonrpc_method":"prove"}

    Adds `X-Request-ID` (reusing the incoming header when present). Proof
    requests can take minutes, so duration is the interesting field here.
    """

    def __init__(self, app, max_body_bytes: Optional[int] = None) -> None:
        super().__init__(app)
        self.max_body_bytes = max_body_bytes

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        req_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        start = time.perf_counter()
        jsonrpc_method = None
        if _body_within(request.headers.get("content-length"), self.max_body_bytes):
            jsonrpc_method = _detect_jsonrpc_method(await request.body())

        status = 500
        try:
            response: Response = await call_next(request)
            status = response.status_code
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            record: Dict[str, Any] = {
                "event": "http_request",
                "req_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round((time.perf_counter() - start) * 1000.0, 3),
            }
            if jsonrpc_method:
                record["jsonrpc_method"] = jsonrpc_method
            if 100 <= status < 400:
                _LOG.info(_dumps(record))
            else:
                _LOG.warning(_dumps(record))


__all__ = ["LoggingMiddleware"]
