"""Security headers and request body size limit."""

from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger()

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


class SecurityMiddleware(BaseHTTPMiddleware):
    """Reject oversized bodies and add security headers to every response."""

    def __init__(self, app: Any, max_body_bytes: int = 1_048_576, hsts_max_age: int = 15_552_000) -> None:  # noqa: ANN401
        super().__init__(app)
        self.max_body_bytes = max_body_bytes
        self.hsts_max_age = hsts_max_age

    def _check_size(self, request: Request) -> JSONResponse | None:
        content_length = request.headers.get("content-length")
        if content_length is None:
            return None
        try:
            size = int(content_length)
        except ValueError:
            return JSONResponse(status_code=400, content={"detail": "Invalid Content-Length header"})
        if size > self.max_body_bytes:
            logger.warning("request_too_large", path=request.url.path, content_length=size)
            return JSONResponse(status_code=413, content={"detail": "Request entity too large"})
        return None

    def _add_headers(self, request: Request, response: Response) -> None:
        for name, value in _SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        # HTTPS only
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = f"max-age={self.hsts_max_age}; includeSubDomains"

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = self._check_size(request)
        if response is None:
            response = await call_next(request)
        self._add_headers(request, response)
        return response
