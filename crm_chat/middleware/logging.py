import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


logger = logging.getLogger("crm_chat.middleware")

REQUEST_ID_HEADER = "X-Request-ID"

# Probes would drown the access log
QUIET_PATHS = frozenset({"/health"})


class LoggingMiddleware(BaseHTTPMiddleware):
    """Access log for HTTP requests, tagged with a request id.

    A client-supplied ``X-Request-ID`` is echoed back; otherwise one is minted.
    WebSocket handshakes do not pass through here.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = (time.perf_counter() - start_time) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        if request.url.path not in QUIET_PATHS:
            logger.info(
                "%s %s - %.2fms - %s",
                request.method,
                request.url.path,
                process_time,
                response.status_code,
                extra={"request_id": request_id},
            )
        return response
