
import json
import time
import uuid
import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qsl

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .core.principals import ANONYMOUS, AdminPrincipal, UserPrincipal
from .core.request_info import client_ip
from .exceptions import PayloadTooLargeError, app_exception_handler
from .repositories.log_repository import LogRepository

logger = logging.getLogger(__name__)

# Requests under these prefixes are never written to api_logs
LOG_EXCLUDE_PATHS = ("/api/logs", "/logs.js", "/admin_logs.js", "/admin.js", "/logs")

BODY_METHODS = ("POST", "PUT", "PATCH")
SENSITIVE_FIELDS = ("password", "token")
MAX_PATH_LENGTH = 500
MAX_USER_AGENT_LENGTH = 500
MAX_BODY_PREVIEW = 500
MAX_BODY_LENGTH = 5000
MAX_ERROR_LENGTH = 2000
MAX_REQUEST_BODY = 10 * 1024

# Response headers sent on every response
SECURITY_HEADERS = {
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
    "Cross-Origin-Embedder-Policy": "require-corp",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


def is_excluded(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in LOG_EXCLUDE_PATHS)


def body_preview(raw: bytes, content_type: str) -> Optional[str]:
    """
    JSON preview of a request body with credentials removed.

    Returns None for empty, unparsable or credential-only bodies.
    """
    if not raw:
        return None

    data: Any
    try:
        if "application/x-www-form-urlencoded" in content_type:
            data = dict(parse_qsl(raw.decode("utf-8", errors="replace")))
        else:
            data = json.loads(raw)
    except ValueError:
        return None

    if not isinstance(data, dict):
        return None

    safe = {key: value for key, value in data.items() if key not in SENSITIVE_FIELDS}
    if not safe:
        return None
    preview = json.dumps(safe, ensure_ascii=False, default=str)[:MAX_BODY_PREVIEW]
    return preview[:MAX_BODY_LENGTH]


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation ID (request_id) and log request timing.
    """
    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

        # Add to request state so downstream can use it
        request.state.request_id = request_id

        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed",
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": round(process_time, 2),
                    "error": str(e)
                },
                exc_info=True
            )
            raise

        process_time = (time.perf_counter() - start_time) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(round(process_time, 2))

        logger.info(
            "Request completed",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": round(process_time, 2),
            }
        )

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        return response


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than ``max_body_size`` bytes with 413.

    A declared Content-Length is checked before anything is read. A body sent
    without one is read here up to the limit and replayed downstream, so
    nothing past the limit is ever buffered.
    """
    def __init__(self, app: ASGIApp, max_body_size: int = MAX_REQUEST_BODY):
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in BODY_METHODS:
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None:
            if declared.isdigit() and int(declared) > self.max_body_size:
                await self._reject(scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        body = b""
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] != "http.request":
                # client disconnected
                return
            body += message.get("body", b"")
            if len(body) > self.max_body_size:
                await self._reject(scope, receive, send)
                return
            more_body = message.get("more_body", False)

        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if replayed:
                return await receive()
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = await app_exception_handler(Request(scope), PayloadTooLargeError())
        await response(scope, receive, send)


class AuditLogMiddleware(BaseHTTPMiddleware):
    """
    Write one ``api_logs`` row per request.

    The principal, if any, is read from ``request.state.principal`` where the
    auth dependencies record it. A failed insert is logged and otherwise
    ignored; it never changes the response.
    """
    def __init__(self, app: ASGIApp, log_repo_factory: Callable[[], Optional[LogRepository]]):
        super().__init__(app)
        self.log_repo_factory = log_repo_factory

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if is_excluded(path):
            return await call_next(request)

        start_time = time.perf_counter()

        preview = None
        if request.method in BODY_METHODS:
            raw = await request.body()
            preview = body_preview(raw, request.headers.get("content-type", ""))

        try:
            response = await call_next(request)
        except Exception as exc:
            entry = self._build_entry(request, 500, start_time, preview, type(exc).__name__)
            await self._write(entry)
            raise

        error = None
        if response.status_code >= 400:
            response, error = await self._capture_body(response)

        entry = self._build_entry(request, response.status_code, start_time, preview, error)
        await self._write(entry)
        return response

    @staticmethod
    async def _capture_body(response: Response):
        body = b"".join([chunk async for chunk in response.body_iterator])
        replayed = Response(
            content=body,
            status_code=response.status_code,
            headers=response.headers,
            media_type=response.media_type,
        )
        return replayed, body.decode("utf-8", errors="replace")[:MAX_ERROR_LENGTH] or None

    @staticmethod
    def _build_entry(
        request: Request,
        status_code: int,
        start_time: float,
        preview: Optional[str],
        error: Optional[str],
    ) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "method": request.method,
            "path": request.url.path[:MAX_PATH_LENGTH],
            "ip": client_ip(request),
            "user_agent": request.headers.get("user-agent", "")[:MAX_USER_AGENT_LENGTH],
            "status_code": status_code,
            "response_time": int((time.perf_counter() - start_time) * 1000),
            "request_body": preview,
            "error": error[:MAX_ERROR_LENGTH] if error else None,
        }

        principal = getattr(request.state, "principal", ANONYMOUS)
        if isinstance(principal, UserPrincipal):
            entry["user_id"] = principal.id
            entry["username"] = principal.username
        elif isinstance(principal, AdminPrincipal):
            entry["admin_id"] = principal.id
            entry["admin_name"] = principal.username
        return entry

    async def _write(self, entry: Dict[str, Any]) -> None:
        repo = self.log_repo_factory()
        if repo is None:
            return
        try:
            await repo.insert_log(entry)
        except Exception:
            logger.exception("Failed to write api log", extra={"path": entry["path"], "method": entry["method"]})
