"""Shared plumbing for the Vercel JSON endpoints."""

import asyncio
import json
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler
from typing import Any, Awaitable, Callable, Mapping, Optional
from urllib.parse import parse_qsl, urlsplit

from src.utils.errors import BadRequestError, TaskboardError, UnauthenticatedError, ValidationFailedError
from src.utils.logging import correlation_context, get_structured_logger
from src.utils.logging_config import LoggingConfig

logger = get_structured_logger(__name__)


@dataclass
class ApiRequest:
    """Transport-independent view of an HTTP request."""
    method: str
    path: str
    query: dict[str, str] = field(default_factory=dict)
    headers: Mapping[str, Any] = field(default_factory=dict)
    body: bytes = b""

    @classmethod
    def from_target(
        cls,
        method: str,
        target: str,
        headers: Optional[Mapping[str, Any]] = None,
        body: bytes = b"",
    ) -> "ApiRequest":
        """Build from a request target such as `/api/tasks?page=2`."""
        parts = urlsplit(target)
        # Repeated keys keep the first value
        query: dict[str, str] = {}
        for key, value in parse_qsl(parts.query, keep_blank_values=True):
            query.setdefault(key, value)
        return cls(method=method.upper(), path=parts.path, query=query, headers=headers or {}, body=body)

    def json(self) -> Any:
        """Decode the body as JSON; an empty body is an empty object."""
        if not self.body:
            return {}
        try:
            return json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise BadRequestError("Request body is not valid JSON")

    def segments_after(self, prefix: str) -> list[str]:
        """Path segments following `prefix`, e.g. ['stats'] for /api/tasks/stats."""
        path = self.query.get("path")
        if path is None:
            path = self.path
            if path.startswith(prefix):
                path = path[len(prefix):]
        return [segment for segment in path.split("/") if segment]


@dataclass
class ApiResponse:
    status: int
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)


Endpoint = Callable[[ApiRequest], Awaitable[ApiResponse]]


def json_response(status: int, payload: Any) -> ApiResponse:
    return ApiResponse(status=status, body=payload)


def empty_response(status: int = 204) -> ApiResponse:
    return ApiResponse(status=status)


def method_not_allowed(allowed: list[str]) -> ApiResponse:
    return ApiResponse(
        status=405,
        body={"message": "Method not allowed"},
        headers={"Allow": ", ".join(allowed)},
    )


def not_found(message: str = "Not found") -> ApiResponse:
    return json_response(404, {"message": message})


def error_response(error: TaskboardError) -> ApiResponse:
    """Map an expected error onto its status code and public body."""
    body: dict[str, Any] = {"message": error.public_message}
    headers: dict[str, str] = {}
    if isinstance(error, ValidationFailedError):
        body["errors"] = error.errors
    if isinstance(error, UnauthenticatedError):
        headers["WWW-Authenticate"] = "Bearer"
    return ApiResponse(status=error.status_code, body=body, headers=headers)


async def handle_request(endpoint: Endpoint, request: ApiRequest) -> ApiResponse:
    """
    Run an endpoint and convert failures into responses.

    Expected errors map to their status codes; anything else is logged and
    reported as a generic 500 without internals.
    """
    try:
        return await endpoint(request)
    except TaskboardError as e:
        if e.status_code >= 500:
            logger.error(f"{request.method} {request.path} failed: {e}", exc_info=True, error_type=type(e).__name__)
        else:
            logger.info(
                f"{request.method} {request.path} rejected",
                status_code=e.status_code,
                error_type=type(e).__name__,
            )
        return error_response(e)
    except Exception as e:
        logger.error(f"Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
        return json_response(500, {"message": "Internal server error"})


class JSONRequestHandler(BaseHTTPRequestHandler):
    """
    Vercel serverless handler base.

    Subclasses set `endpoint` to an async function taking an ApiRequest.
    """

    endpoint: Endpoint

    def do_GET(self):
        self._serve()

    def do_POST(self):
        self._serve()

    def do_PATCH(self):
        self._serve()

    def do_PUT(self):
        self._serve()

    def do_DELETE(self):
        self._serve()

    def _read_body(self) -> bytes:
        content_length = int(self.headers.get('Content-Length', 0) or 0)
        return self.rfile.read(content_length) if content_length > 0 else b""

    def _serve(self) -> None:
        incoming_id = self.headers.get(LoggingConfig.LOG_CORRELATION_ID_HEADER)
        with correlation_context(incoming_id) as correlation_id:
            try:
                request = ApiRequest.from_target(self.command, self.path, self.headers, self._read_body())
            except ValueError:
                self._write(json_response(400, {"message": "Malformed request"}), correlation_id)
                return
            response = asyncio.run(handle_request(type(self).endpoint, request))
            self._write(response, correlation_id)

    def _write(self, response: ApiResponse, correlation_id: str) -> None:
        self.send_response(response.status)
        self.send_header(LoggingConfig.LOG_CORRELATION_ID_HEADER, correlation_id)
        for name, value in response.headers.items():
            self.send_header(name, value)

        if response.body is None:
            self.send_header('Content-Length', '0')
            self.end_headers()
            return

        payload = json.dumps(response.body).encode('utf-8')
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        logger.debug("HTTP access: " + format % args)
