"""Current account endpoint: GET /api/auth/user."""

from src.services.account_store import get_account_store
from src.services.auth import authenticate_request
from src.utils.http import ApiRequest, ApiResponse, JSONRequestHandler, json_response, method_not_allowed
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()


async def current_account_endpoint(request: ApiRequest) -> ApiResponse:
    """
    Return the signed-in account.

    Profile claims from the token refresh the local mirror; identities without
    claims (dev bypass) keep whatever is stored.
    """
    if request.method != "GET":
        return method_not_allowed(["GET"])

    identity = authenticate_request(request.headers)
    store = get_account_store()

    if identity.has_profile():
        account = await store.upsert_account(identity)
    else:
        account = await store.get_account(identity.account_id) or await store.upsert_account(identity)

    return json_response(200, account.to_wire())


class handler(JSONRequestHandler):
    """Vercel serverless function handler for the current account."""
    endpoint = staticmethod(current_account_endpoint)
