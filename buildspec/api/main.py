from __future__ import annotations

from fastapi import FastAPI

from buildspec import __version__
from buildspec.api.endpoints import health
from buildspec.api.endpoints.descriptors import router as descriptors_router
from buildspec.api.middleware.error_shaping import SafeErrorMiddleware, build_error_handler
from buildspec.api.middleware.request_context import RequestContextMiddleware
from buildspec.core.errors import BuildSpecError

app = FastAPI(
    title="buildspec API",
    version=__version__,
)

app.add_exception_handler(BuildSpecError, build_error_handler)

# Starlette reverses add_middleware order: the LAST call is the OUTERMOST wrapper.
app.add_middleware(RequestContextMiddleware)
app.add_middleware(SafeErrorMiddleware)

app.include_router(health.router)
app.include_router(descriptors_router)
