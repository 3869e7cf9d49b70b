import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from trainerhub.core.logging import LOGGER_NAME, request_id_ctx_var
from trainerhub.core.metrics import http_request_latency_total, http_requests_total, latency_bucket, normalize_path

logger = logging.getLogger(LOGGER_NAME)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the duration of the request, echo it back and count the request."""

    def __init__(self, app, header_name: str = "x-request-id"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get(self.header_name) or uuid4().hex
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_ctx_var.reset(token)

        elapsed_ms = (time.perf_counter() - started) * 1000
        path = normalize_path(request.url.path)
        bucket = latency_bucket(elapsed_ms)
        response.headers[self.header_name] = rid
        http_requests_total.inc({"method": request.method, "path": path, "status": response.status_code})
        http_request_latency_total.inc({"bucket": bucket})
        logger.info(
            "%s %s -> %s",
            request.method,
            path,
            response.status_code,
            extra={"request_id": rid, "event_type": "http.request", "latency_bucket": bucket},
        )
        return response
