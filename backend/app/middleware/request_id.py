"""
TreeSpotter Backend - Request ID Middleware
============================================

What:  Tags each request with a short correlation ID.
How:   Reuses the client's X-Request-ID header when it is a plausible ID,
       otherwise generates one; stores it in a ContextVar and echoes it back
       in the response header.
Who:   Read by the access log and the exception handlers, which put it in
       every error body.

The ID ends up in log lines and JSON error bodies, so a client value is only
accepted when it is at most 64 characters of letters, digits, '-', '_' or '.'.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"

_CLIENT_ID_PATTERN = re.compile(r"[A-Za-z0-9._-]{1,64}")


def choose_request_id(client_value: Optional[str]) -> str:
    """The client's ID when it passes the pattern, a fresh 8-hex ID otherwise."""
    if client_value and _CLIENT_ID_PATTERN.fullmatch(client_value):
        return client_value
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns the request ID and returns it in the response headers."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = choose_request_id(request.headers.get(REQUEST_ID_HEADER))
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
