"""Task endpoints for Vercel: /api/tasks, /api/tasks/stats, /api/tasks/{id}."""

from src.services import task_service
from src.services.auth import authenticate_request
from src.utils.http import (
    ApiRequest,
    ApiResponse,
    JSONRequestHandler,
    empty_response,
    json_response,
    method_not_allowed,
    not_found,
)
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()

PREFIX = "/api/tasks"


async def tasks_endpoint(request: ApiRequest) -> ApiResponse:
    """Route a task request after authenticating the caller."""
    segments = request.segments_after(PREFIX)
    if len(segments) > 1:
        return not_found()

    identity = authenticate_request(request.headers)
    owner_id = identity.account_id

    if not segments:
        if request.method == "GET":
            page = await task_service.list_tasks(owner_id, request.query)
            return json_response(200, page.to_wire())
        if request.method == "POST":
            task = await task_service.create_task(owner_id, request.json(), identity=identity)
            return json_response(201, task.to_wire())
        return method_not_allowed(["GET", "POST"])

    if segments[0] == "stats":
        if request.method != "GET":
            return method_not_allowed(["GET"])
        stats = await task_service.get_stats(owner_id)
        return json_response(200, stats.to_wire())

    task_id = segments[0]
    if request.method == "GET":
        task = await task_service.get_task(owner_id, task_id)
        return json_response(200, task.to_wire())
    if request.method == "PATCH":
        task = await task_service.update_task(owner_id, task_id, request.json())
        return json_response(200, task.to_wire())
    if request.method == "DELETE":
        await task_service.delete_task(owner_id, task_id)
        return empty_response(204)
    return method_not_allowed(["GET", "PATCH", "DELETE"])


class handler(JSONRequestHandler):
    """Vercel serverless function handler for tasks."""
    endpoint = staticmethod(tasks_endpoint)
