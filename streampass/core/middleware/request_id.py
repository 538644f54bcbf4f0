"""
Request correlation for the StreamPass API.

Binds a request id for the duration of each request and emits one
``request.complete`` event carrying the calling subscriber (``X-User-Id``)
or, for protocol callbacks, the declared protocol host.
"""
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from streampass.core.logging import latency_bucket_ms, log_event, request_id_ctx_var


class RequestIdMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, header_name: str = "x-request-id"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = request.headers.get(self.header_name) or str(uuid4())
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)
        try:
            start = time.perf_counter()
            response = await call_next(request)
            response.headers[self.header_name] = rid

            protocol_host = request.headers.get("x-protocol-host")
            fields = {
                "path": request.url.path,
                "method": request.method,
                "status": response.status_code,
                "latency_bucket": latency_bucket_ms((time.perf_counter() - start) * 1000),
            }
            if protocol_host:
                fields["protocol_host"] = protocol_host
            log_event(
                "info",
                "request.complete",
                request_id=rid,
                subscriber=(request.headers.get("x-user-id") or "").strip() or None,
                event_type="protocol_callback" if protocol_host else None,
                extra=fields,
            )
            return response
        finally:
            request_id_ctx_var.reset(token)
