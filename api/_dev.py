"""
Local development server.

Serves every endpoint from one process the way Vercel routes them:

    TASK_STORE_BACKEND=memory APP_ENV=development AUTH_DEV_ACCOUNT_ID=dev-user \
        python -m api._dev --port 3000
"""

import argparse
import logging
from http.server import ThreadingHTTPServer

from api.auth.user import current_account_endpoint
from api.health import health_endpoint
from api.tasks import tasks_endpoint
from src.utils.http import ApiRequest, ApiResponse, JSONRequestHandler, not_found
from src.utils.logging_config import LoggingConfig

logger = logging.getLogger(__name__)

ROUTES = (
    ("/api/tasks", tasks_endpoint),
    ("/api/auth/user", current_account_endpoint),
    ("/api/health", health_endpoint),
)


async def dev_endpoint(request: ApiRequest) -> ApiResponse:
    for prefix, endpoint in ROUTES:
        if request.path == prefix or request.path.startswith(prefix + "/"):
            return await endpoint(request)
    return not_found()


class DevHandler(JSONRequestHandler):
    endpoint = staticmethod(dev_endpoint)


def build_server(host: str = "127.0.0.1", port: int = 3000) -> ThreadingHTTPServer:
    return ThreadingHTTPServer((host, port), DevHandler)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the taskboard API locally")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=3000)
    args = parser.parse_args()

    LoggingConfig.setup_logging()
    server = build_server(args.host, args.port)
    logger.info(f"Serving on http://{args.host}:{server.server_address[1]}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
