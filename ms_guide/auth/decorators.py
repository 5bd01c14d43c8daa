import hmac
from functools import wraps
from typing import Callable, Optional

from flask import current_app, request

from ..responses import error_response


def extract_api_key() -> Optional[str]:
    """Return the API key from the X-API-Key header, falling back to the api_key query param."""
    header_key = request.headers.get("X-API-Key", "").strip()
    if header_key:
        return header_key
    query_key = request.args.get("api_key", "").strip()
    return query_key or None


def api_key_required(fn: Callable):
    """Decorator enforcing the shared service API key."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        provided = extract_api_key()
        if not provided:
            current_app.logger.warning(
                "API Key not provided path=%s method=%s ip=%s", request.path, request.method, request.remote_addr
            )
            return error_response(
                "API Key is required. Provide it via X-API-Key header or api_key query parameter.", 401
            )

        expected = current_app.config.get("API_KEY") or ""
        if not expected or not hmac.compare_digest(provided.encode(), expected.encode()):
            current_app.logger.warning(
                "Invalid API Key provided path=%s method=%s ip=%s", request.path, request.method, request.remote_addr
            )
            return error_response("Invalid API Key", 403)

        return fn(*args, **kwargs)

    return wrapper
