"""Access log plus request correlation.

Each request is tagged with ``request.state.request_id``; the same id is
echoed in the ``X-Request-ID`` header and in the ApiResponse envelope, and
ends the log line:

    INFO bb.request: POST /api/v1/trades/trd_.../accept -> 409 in 12ms [req_a1b2c3d4e5f6]
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.bb_common.id_generator import new_request_id

logger = logging.getLogger("bb.request")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = new_request_id()
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "%s %s -> %d in %.0fms [%s]",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
            request_id,
        )
        return response
