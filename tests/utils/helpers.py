"""Test helper functions."""

import json
from typing import Any, Dict, Optional

from src.utils.http import ApiRequest


def auth_headers(token: str = "token-a") -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}


def create_api_request(
    method: str = "GET",
    target: str = "/api/tasks",
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> ApiRequest:
    """Create an ApiRequest the way the handler builds one from the socket."""
    if headers is None:
        headers = auth_headers()

    if body is None:
        raw = b""
    elif isinstance(body, (bytes, str)):
        raw = body.encode("utf-8") if isinstance(body, str) else body
    else:
        raw = json.dumps(body).encode("utf-8")

    return ApiRequest.from_target(method, target, headers, raw)
