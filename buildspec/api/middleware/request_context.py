from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from buildspec.core.observability.metrics import record_http

log = logging.getLogger("buildspec.api.request")

REQUEST_ID_HEADER = "X-Request-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Adds:
      request.state.request_id
      response header: X-Request-Id
    and logs one line per /api/ request.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = rid

        start = time.time()
        resp = await call_next(request)
        dur_ms = int((time.time() - start) * 1000)

        resp.headers[REQUEST_ID_HEADER] = rid
        record_http(request.method, resp.status_code)

        if request.url.path.startswith("/api/"):
            log.info(
                "request rid=%s method=%s path=%s status=%s duration_ms=%s",
                rid,
                request.method,
                request.url.path,
                resp.status_code,
                dur_ms,
            )
        return resp
