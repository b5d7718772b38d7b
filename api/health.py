"""Health check endpoint."""

from src.utils.config import AppConfig
from src.utils.http import ApiRequest, ApiResponse, JSONRequestHandler, json_response, method_not_allowed


async def health_endpoint(request: ApiRequest) -> ApiResponse:
    if request.method not in ("GET", "POST"):
        return method_not_allowed(["GET", "POST"])
    return json_response(200, {"status": "ok", "service": AppConfig.service_name()})


class handler(JSONRequestHandler):
    """Health check handler for Vercel serverless function."""
    endpoint = staticmethod(health_endpoint)
