from __future__ import annotations

import logging
import traceback
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from buildspec.core.errors import BuildSpecError, NoPublicationDefinedError
from buildspec.core.observability.metrics import record_stage_failure

log = logging.getLogger("buildspec.api.errors")


def status_for(exc: BuildSpecError) -> int:
    # a well-formed descriptor that simply has nothing to publish
    if isinstance(exc, NoPublicationDefinedError):
        return 409
    return 400


async def build_error_handler(request: Request, exc: BuildSpecError) -> JSONResponse:
    """Build failures are client errors: name the stage and field, never a traceback."""
    record_stage_failure(exc.stage)
    log.info("build error stage=%s path=%s: %s", exc.stage, request.url.path, exc.message)
    payload = exc.to_dict()
    rid = getattr(request.state, "request_id", None)
    if rid:
        payload["request_id"] = rid
    return JSONResponse(status_code=status_for(exc), content=payload)


class SafeErrorMiddleware(BaseHTTPMiddleware):
    """Turns anything that escapes the routes into a bare 500.

    The traceback goes to the server log only; the client sees the request id
    so the two can be matched up.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            rid = getattr(request.state, "request_id", None) or request.headers.get("x-request-id")
            log.error(
                "unhandled %s on %s %s rid=%s\n%s",
                type(exc).__name__,
                request.method,
                request.url.path,
                rid,
                traceback.format_exc(),
            )
            body = {"detail": "Internal Server Error"}
            if rid:
                body["request_id"] = rid
            return JSONResponse(status_code=500, content=body)
