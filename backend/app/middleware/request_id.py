"""
Notes Keyset API — Request ID Middleware
=========================================

What:  Assigns an ID to each incoming request and echoes it in the response.
Why:   Every log line, error body, and response header of one request share
       the same ID, so a client report can be matched to server logs.
How:   Reuses a client-sent X-Request-ID or generates one, stores it in a
       ContextVar, and sets the response header.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Coroutine-local: concurrent requests on one thread each see their own value
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID header when present
        2. Otherwise generate a short UUID prefix (8 chars is enough to correlate)
        3. Store in the ContextVar and in request.state
        4. Add to response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
