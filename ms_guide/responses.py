from datetime import datetime, timezone
from typing import Any

from flask import jsonify


def utc_timestamp() -> str:
    return datetime.now(tz=timezone.utc).isoformat().replace("+00:00", "Z")


def success_response(data: Any = None, status_code: int = 200, **extra: Any):
    """Wrap a payload in the standard success envelope; extra keys sit beside ``data``."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    body.update(extra)
    body["timestamp"] = utc_timestamp()
    return jsonify(body), status_code


def error_response(message: str, status_code: int, **extra: Any):
    body: dict[str, Any] = {"success": False, "error": message, **extra}
    body["timestamp"] = utc_timestamp()
    return jsonify(body), status_code
