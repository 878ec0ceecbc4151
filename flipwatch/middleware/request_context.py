# flipwatch/middleware/request_context.py
from __future__ import annotations

import logging
import re
import time
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

_request_id: ContextVar[Optional[str]] = ContextVar("flipwatch_request_id", default=None)

# client-supplied ids end up in log lines; keep them short and printable
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")

log = logging.getLogger("flipwatch.request")


def get_request_id() -> Optional[str]:
    return _request_id.get()


def _incoming_id(request: Request) -> str:
    rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if rid and _SAFE_ID.match(rid):
        return rid
    return uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Per-request id plus one access log line.

    The id is taken from X-Request-ID when the caller sends a sane one,
    otherwise generated, echoed back on the response, and visible to the JSON
    formatter for everything logged while the request runs (a manual sync
    triggered over the API logs every page and batch under it).
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _incoming_id(request)
        token = _request_id.set(rid)
        started = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            log.info(
                "%s %s -> %d",
                request.method,
                request.url.path,
                status_code,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "latency_ms": int((time.perf_counter() - started) * 1000),
                },
            )
            _request_id.reset(token)
