"""Per-request id, timing and metrics for the POS API."""
from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from foodhub.core.metrics import request_metrics
from foodhub.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        set_request_context(request_id=request_id)

        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            status_code = response.status_code if response is not None else 500
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            self._finish(request, request_id, status_code, elapsed_ms)
            if response is not None:
                response.headers[REQUEST_ID_HEADER] = request_id
            clear_request_context()

    @staticmethod
    def _finish(request: Request, request_id: str, status_code: int, elapsed_ms: float) -> None:
        restaurant = request.path_params.get("slug") or None
        user = getattr(request.state, "user", None)
        user_id = str(user.id) if getattr(user, "id", None) is not None else None
        set_request_context(restaurant=restaurant, user_id=user_id)

        # group by route template so /orders/1 and /orders/2 share a bucket
        route = request.scope.get("route")
        request_metrics.observe(
            endpoint=getattr(route, "path", None) or request.url.path,
            method=request.method,
            status_code=status_code,
            duration_ms=elapsed_ms,
            restaurant=restaurant,
        )
        logger.info(
            "request completed",
            extra={
                "request_id": request_id,
                "restaurant": restaurant,
                "user_id": user_id,
                "endpoint": request.url.path,
                "method": request.method,
                "status_code": status_code,
                "duration_ms": elapsed_ms,
            },
        )
