"""
Per-request correlation ids.

The middleware picks the id from the first matching request header (or makes
a new one), exposes it to log records through a context variable and returns
it in the response headers.
"""

import uuid
from contextvars import ContextVar
from typing import Any, Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

_current_id: ContextVar[Optional[str]] = ContextVar("voicecall_correlation_id", default=None)


def get_correlation_id() -> Optional[str]:
    return _current_id.get()


def bind_correlation_id(value: Optional[str]):
    """Set the id for the current context; returns a token for ``reset_correlation_id``."""
    return _current_id.set(value)


def reset_correlation_id(token) -> None:
    _current_id.reset(token)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Bind a correlation id for the duration of each request."""

    def __init__(
        self,
        app: Any,
        accepted_headers: tuple[str, ...] = (CORRELATION_ID_HEADER, REQUEST_ID_HEADER),
        new_id: Callable[[], str] = generate_correlation_id,
    ) -> None:
        super().__init__(app)
        self._accepted_headers = accepted_headers
        self._new_id = new_id

    def _incoming_id(self, request: Request) -> str:
        for header in self._accepted_headers:
            value = request.headers.get(header, "").strip()
            if value:
                return value
        return self._new_id()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = self._incoming_id(request)
        token = bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            reset_correlation_id(token)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
