"""Request middleware: request ID tracking and request size limits.

Adds:
  - X-Request-ID header propagation (or generation) for log correlation
  - Request body size enforcement
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from stakepool.core.logging import log_context

logger = logging.getLogger(__name__)

# Pool payloads are a handful of fields; anything larger is abuse.
DEFAULT_MAX_REQUEST_SIZE = 64 * 1024  # 64 KB


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate or generate X-Request-ID for every request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        with log_context(request_id=request_id):
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Enforce maximum request body size."""

    def __init__(self, app: ASGIApp, max_size: int = DEFAULT_MAX_REQUEST_SIZE) -> None:
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method not in ("POST", "PUT", "PATCH"):
            return await call_next(request)

        content_length = request.headers.get("content-length")
        if content_length and int(content_length) > self.max_size:
            logger.warning(
                "Rejected oversized request to %s", request.url.path,
                extra={"path": request.url.path},
            )
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={
                    "error": {
                        "code": "PAYLOAD_TOO_LARGE",
                        "message": f"Request body too large: {content_length} bytes (max: {self.max_size})",
                        "details": None,
                        "request_id": getattr(request.state, "request_id", None),
                    }
                },
            )

        return await call_next(request)
