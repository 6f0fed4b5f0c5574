"""
Request logging middleware with request ID tracking and context propagation.
"""
import logging
import re
import time
import uuid
from contextvars import ContextVar

from hookwarden.core.logging_config import log_api_request

logger = logging.getLogger(__name__)

# Context variables for request ID propagation
request_id_ctx: ContextVar[str] = ContextVar('request_id', default='unknown')
request_path_ctx: ContextVar[str] = ContextVar('request_path', default='unknown')

# Default status code when response is not captured
DEFAULT_STATUS_CODE = 500

# /webhooks/{integration_id}/{token}
_WEBHOOK_TOKEN_PATH = re.compile(r"(/webhooks/[^/]+/)[^/]+$")


def redact_path(path: str) -> str:
    """Hide webhook tokens carried in the URL path."""
    return _WEBHOOK_TOKEN_PATH.sub(r"\1***", path)


class RequestLoggingMiddleware:
    """
    ASGI middleware that tags every HTTP request with an ID and logs its outcome.

    Features:
    - Generates a unique request ID and exposes it via context variables
    - Adds an x-request-id response header
    - Logs method, redacted path, status and duration
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        request_id_ctx.set(request_id)

        method = scope.get("method", "UNKNOWN")
        path = redact_path(scope.get("path", "/"))
        request_path_ctx.set(path)
        start_time = time.time()
        status_code = DEFAULT_STATUS_CODE

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", DEFAULT_STATUS_CODE)
                headers = list(message.get("headers", []))
                headers.append([b"x-request-id", request_id.encode()])
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            logger.error(
                "Request failed with exception",
                extra={"request_id": request_id, "method": method, "path": path},
                exc_info=True,
            )
            raise
        finally:
            duration_ms = round((time.time() - start_time) * 1000, 2)
            log_api_request(method, path, status_code, duration_ms, request_id=request_id)
