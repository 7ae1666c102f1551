"""HTTP middleware for request ID propagation and correlation.

Every request/response pair carries a correlation id so that admission
decisions logged by the rate limiter can be tied back to a request.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """Accept or generate a request id and echo it on the response.

    If the client provides the configured header (``LOG_REQUEST_ID_HEADER``,
    default ``X-Request-ID``) its value is reused, otherwise a UUID4 is
    generated. The id is stored in contextvars for the duration of the
    request and cleared afterwards.

    Side Effects:
        - Adds the request id header to the response
        - Adds X-Request-Duration-ms header to the response
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
